# src/wg_peergen/resolver.py
"""
Résolution des paramètres de génération.

Pour chaque champ, indépendamment : valeur explicite > valeur du template
(endpoint, MTU, DNS, AllowedIPs) > valeur détectée dans la config serveur >
valeur par défaut. La clé publique et l'endpoint du serveur n'ont pas de
défaut : sans valeur explicite ni dérivable, on lève ResolutionError.
"""
from __future__ import annotations
from typing import Callable, Optional

from . import ipam, wireguard
from .log import get_logger
from .models import (
    DEFAULT_ALLOWED_IPS,
    DEFAULT_BLOCK,
    DEFAULT_LISTEN_PORT,
    DEFAULT_MTU,
    DEFAULT_SERVER_OFFSET,
    GenerationParams,
    Overrides,
    ResolutionError,
    ServerSettings,
    TemplateSettings,
)
from .wgconf import parse_server_conf, parse_template_conf

log = get_logger()


def resolve_settings(
    server_text: str,
    overrides: Optional[Overrides] = None,
    template_text: Optional[str] = None,
    derive_public_key: Optional[Callable[[str], str]] = None,
    local_address: Optional[Callable[[], Optional[str]]] = None,
) -> GenerationParams:
    overrides = overrides or Overrides()
    server = parse_server_conf(server_text)
    template = parse_template_conf(template_text) if template_text is not None else TemplateSettings()

    public_key = _resolve_public_key(server, overrides, derive_public_key or wireguard.derive_public_key)

    # Bloc d'adresses et offset du serveur
    server_block = ipam.infer_block(server.address)
    if overrides.block:
        block = overrides.block
    elif server_block:
        block = server_block
        log.info("Sous-réseau client détecté depuis l'adresse serveur : %s", block)
    else:
        block = DEFAULT_BLOCK
        log.warning("Adresse serveur illisible, sous-réseau par défaut : %s", block)

    server_offset = ipam.host_offset(server.address)
    if server_offset is None:
        server_offset = DEFAULT_SERVER_OFFSET
    elif server_block != block:
        # le serveur n'occupe aucune adresse du bloc choisi
        server_offset = None

    listen_port = server.listen_port
    if listen_port is None:
        listen_port = DEFAULT_LISTEN_PORT
        log.warning("ListenPort absent, port par défaut : %s", listen_port)
    else:
        log.info("Port serveur détecté : %s", listen_port)

    endpoint = _resolve_endpoint(server, template, overrides, listen_port, local_address or wireguard.detect_local_address)

    mtu = _first(overrides.mtu, template.mtu, server.mtu)
    if mtu is None:
        mtu = DEFAULT_MTU
        log.warning("MTU absent, valeur par défaut : %s", mtu)

    allowed_ips = _first(overrides.allowed_ips, template.allowed_ips)
    if allowed_ips is None:
        allowed_ips = DEFAULT_ALLOWED_IPS
        log.warning("AllowedIPs par défaut (full tunnel) : %s", allowed_ips)

    if overrides.start_offset is not None:
        start_offset = overrides.start_offset
    else:
        start_offset = ipam.next_offset(server.allowed_ips, block, server_offset)
        log.info("Premier offset libre : %s.%s", block, start_offset)

    return GenerationParams(
        server_public_key=public_key,
        endpoint=endpoint,
        block=block,
        start_offset=start_offset,
        server_offset=server_offset,
        listen_port=listen_port,
        mtu=mtu,
        dns=_first(overrides.dns, template.dns),
        allowed_ips=allowed_ips,
    )


def _first(*values):
    for v in values:
        if v is not None:
            return v
    return None


def _resolve_public_key(server: ServerSettings, overrides: Overrides, derive: Callable[[str], str]) -> str:
    if overrides.public_key:
        return overrides.public_key

    if not server.private_key:
        raise ResolutionError(
            "server_public_key",
            "Unable to find the server PrivateKey; pass the server public key explicitly",
        )

    # KeyGenerationError remonte telle quelle : c'est fatal
    public_key = derive(server.private_key)
    log.info("Clé publique du serveur dérivée de la clé privée : %s", public_key)
    return public_key


def _resolve_endpoint(
    server: ServerSettings,
    template: TemplateSettings,
    overrides: Overrides,
    listen_port: int,
    local_address: Callable[[], Optional[str]],
) -> str:
    if overrides.endpoint:
        return overrides.endpoint
    if template.endpoint:
        log.info("Endpoint repris du template : %s", template.endpoint)
        return template.endpoint

    host = ipam.host_ip(server.address) or local_address()
    if not host:
        raise ResolutionError(
            "endpoint",
            "Unable to detect the server address; pass the server endpoint explicitly",
        )

    endpoint = f"{host}:{listen_port}"
    log.info("Endpoint détecté : %s", endpoint)
    log.warning("Pour un accès externe, forcer l'endpoint public (ex: vpn.example.com:%s)", listen_port)
    return endpoint
