# src/wg_peergen/wireguard.py
from __future__ import annotations
import shutil
import subprocess
from typing import List, Optional

from .ipam import allocate_offsets
from .log import get_logger
from .models import GenerationParams, KeyGenerationError, PeerRecord

log = get_logger()


# ---------- Commandes externes ----------

def _which(binary: str) -> str:
    path = shutil.which(binary)
    if path is None:
        raise FileNotFoundError(f"Required command not found: {binary}")
    return path


def run_cmd(cmd: List[str], check: bool = True, input: Optional[str] = None) -> subprocess.CompletedProcess:
    return subprocess.run(cmd, input=input, capture_output=True, text=True, check=check)


def _wg(*args: str, input: Optional[str] = None) -> str:
    try:
        out = run_cmd(["wg", *args], input=input).stdout.strip()
    except FileNotFoundError as e:
        raise KeyGenerationError("'wg' is not installed (wireguard-tools)") from e
    except subprocess.CalledProcessError as e:
        raise KeyGenerationError(f"wg {args[0]} failed: {e.stderr.strip()}") from e
    if not out:
        raise KeyGenerationError(f"wg {args[0]} returned no key")
    return out


# ---------- Génération de clés ----------

def generate_private_key() -> str:
    return _wg("genkey")


def derive_public_key(private_key: str) -> str:
    # pubkey lit la clé privée sur stdin
    return _wg("pubkey", input=private_key + "\n")


def generate_keypair() -> tuple[str, str]:
    priv = generate_private_key()
    return priv, derive_public_key(priv)


def generate_preshared_key() -> str:
    return _wg("genpsk")


def detect_local_address() -> Optional[str]:
    """Première adresse de `hostname -I`, ou None."""
    try:
        out = run_cmd(["hostname", "-I"]).stdout
    except (OSError, subprocess.CalledProcessError):
        return None
    parts = out.split()
    return parts[0] if parts else None


# ---------- Gestion des peers ----------

def generate_peers(
    params: GenerationParams,
    count: int,
    prefix: str,
    with_preshared: bool = True,
) -> List[PeerRecord]:
    """
    Crée `count` peers nommés <prefix>1..<prefix>N. Les offsets sont
    alloués avant toute génération de clé ; une erreur de `wg` interrompt
    tout le lot.
    """
    offsets = allocate_offsets(params.start_offset, count, params.server_offset)

    peers = []
    for i, offset in enumerate(offsets, start=1):
        priv, pub = generate_keypair()
        psk = generate_preshared_key() if with_preshared else None
        peers.append(
            PeerRecord(
                name=f"{prefix}{i}",
                private_key=priv,
                public_key=pub,
                block=params.block,
                offset=offset,
                preshared_key=psk,
            )
        )
        log.debug("Clés générées pour %s (%s)", peers[-1].name, peers[-1].address)
    return peers


# ---------- Rendu des configs ----------

def render_client_conf(params: GenerationParams, peer: PeerRecord) -> str:
    lines = [
        "[Interface]",
        f"PrivateKey = {peer.private_key}",
        f"Address = {peer.address}/24",
    ]

    if params.mtu:
        lines.append(f"MTU = {params.mtu}")
    if params.dns:
        lines.append(f"DNS = {params.dns}")

    lines += [
        "",
        "[Peer]",
        f"PublicKey = {params.server_public_key}",
    ]

    if peer.preshared_key:
        lines.append(f"PresharedKey = {peer.preshared_key}")

    lines += [
        f"AllowedIPs = {params.allowed_ips}",
        f"Endpoint = {params.endpoint}",
        # On force le keepalive si on veut du roaming téléphone
        "PersistentKeepalive = 25",
    ]

    return "\n".join(lines) + "\n"


def render_server_peer(peer: PeerRecord) -> str:
    lines = [
        "[Peer]",
        f"# User {peer.name}",
        f"PublicKey = {peer.public_key}",
    ]
    if peer.preshared_key:
        lines.append(f"PresharedKey = {peer.preshared_key}")
    lines.append(f"AllowedIPs = {peer.address}/32")
    lines.append("")  # blank

    return "\n".join(lines) + "\n"
