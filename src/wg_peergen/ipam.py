# src/wg_peergen/ipam.py
from __future__ import annotations
import ipaddress
import re
from typing import Iterable, List, Optional

from .models import FIRST_PEER_OFFSET, MAX_OFFSET


def _split_address(address: Optional[str]) -> Optional[List[str]]:
    if not address:
        return None
    # Address peut contenir plusieurs entrées : on garde la première
    try:
        iface = ipaddress.ip_interface(address.split(",")[0].strip())
    except ValueError:
        return None
    if iface.version != 4:
        return None
    return str(iface.ip).split(".")


def infer_block(address: Optional[str]) -> Optional[str]:
    """'192.168.48.254/24' -> '192.168.48' (None si illisible)"""
    octets = _split_address(address)
    return ".".join(octets[:3]) if octets else None


def host_offset(address: Optional[str]) -> Optional[int]:
    """Dernier octet de l'adresse du serveur."""
    octets = _split_address(address)
    return int(octets[3]) if octets else None


def host_ip(address: Optional[str]) -> Optional[str]:
    octets = _split_address(address)
    return ".".join(octets) if octets else None


def is_block(value: str) -> bool:
    """'10.0.5' : trois premiers octets d'une adresse IPv4."""
    try:
        ipaddress.IPv4Address(f"{value}.0")
    except ValueError:
        return False
    return True


def used_offsets(allowed_ips: Iterable[str], block: str) -> List[int]:
    """
    Offsets déjà pris dans le bloc, d'après les valeurs AllowedIPs du serveur.
    Seule la première entrée de chaque ligne compte.
    """
    pattern = re.compile(rf"^{re.escape(block)}\.(\d+)(?:/\d+)?(?:\s|,|$)")
    found = []
    for value in allowed_ips:
        m = pattern.match(value.strip())
        if m:
            found.append(int(m.group(1)))
    return found


def next_offset(allowed_ips: Iterable[str], block: str, server_offset: Optional[int]) -> int:
    used = used_offsets(allowed_ips, block)
    start = max(used) + 1 if used else FIRST_PEER_OFFSET

    # On évite l'adresse du serveur
    if start == server_offset:
        start += 1
    return start


def allocate_offsets(start: int, count: int, server_offset: Optional[int]) -> List[int]:
    """
    Retourne `count` offsets contigus à partir de `start`, sans l'offset
    du serveur. Pas de réutilisation des trous.
    """
    offsets = []
    current = start
    while len(offsets) < count:
        if current != server_offset:
            offsets.append(current)
        current += 1

    if offsets and (offsets[0] < 1 or offsets[-1] > MAX_OFFSET):
        raise RuntimeError(
            f"No free address in block for {count} peers starting at offset {start} "
            f"(valid offsets are 1-{MAX_OFFSET})"
        )
    return offsets
