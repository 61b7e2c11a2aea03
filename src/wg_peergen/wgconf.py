# src/wg_peergen/wgconf.py
"""
Lecture des fichiers de configuration WireGuard (format `Key = Value`).

Une ligne correspond à une clé quand, en début de ligne, la partie gauche
du `=` (espaces retirés) est exactement la clé, casse comprise. La valeur
est la partie droite sans aucun espace. La première occurrence gagne.
"""
from __future__ import annotations
import re
from typing import Iterator, List, Optional

from .models import ServerSettings, TemplateSettings
from .log import get_logger

log = get_logger()

_WS = re.compile(r"\s+")


def _matches(text: str, key: str) -> Iterator[str]:
    pattern = re.compile(rf"^{re.escape(key)}\s*=(.*)$")
    for line in text.splitlines():
        m = pattern.match(line)
        if m:
            yield _WS.sub("", m.group(1))


def first_value(text: str, key: str) -> Optional[str]:
    """Valeur de la première ligne `key = ...`, ou None (valeur vide = None)."""
    for value in _matches(text, key):
        return value or None
    return None


def raw_values(text: str, key: str) -> List[str]:
    """Toutes les valeurs de `key`, seulement trimées, lignes indentées comprises (scan des AllowedIPs)."""
    pattern = re.compile(rf"^\s*{re.escape(key)}\s*=")
    out = []
    for line in text.splitlines():
        if pattern.match(line):
            out.append(line.split("=", 1)[1].strip())
    return out


def _int_or_none(value: Optional[str], key: str) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        log.warning("Valeur %s invalide ignorée : %r", key, value)
        return None


def parse_server_conf(text: str) -> ServerSettings:
    return ServerSettings(
        private_key=first_value(text, "PrivateKey"),
        address=first_value(text, "Address"),
        listen_port=_int_or_none(first_value(text, "ListenPort"), "ListenPort"),
        mtu=_int_or_none(first_value(text, "MTU"), "MTU"),
        allowed_ips=raw_values(text, "AllowedIPs"),
    )


def parse_template_conf(text: str) -> TemplateSettings:
    endpoint = first_value(text, "Endpoint")
    if endpoint is not None and not is_endpoint(endpoint):
        log.warning("Endpoint du template non exploitable : %r", endpoint)
        endpoint = None

    return TemplateSettings(
        endpoint=endpoint,
        mtu=_int_or_none(first_value(text, "MTU"), "MTU"),
        dns=first_value(text, "DNS"),
        allowed_ips=first_value(text, "AllowedIPs"),
    )


def is_endpoint(value: str) -> bool:
    """`host:port` (IPv6 entre crochets accepté)."""
    host, sep, port = value.rpartition(":")
    return bool(sep and host and port.isdigit() and 0 < int(port) < 65536)
