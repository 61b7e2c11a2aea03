# src/wg_peergen/output.py
from __future__ import annotations
from pathlib import Path
from typing import List

import qrcode

from .models import GenerationParams, PeerRecord
from .wireguard import render_client_conf, render_server_peer

SERVER_PEERS_FILENAME = "new_server_peers.conf"


def write_client_confs(params: GenerationParams, peers: List[PeerRecord], out_dir: Path) -> List[Path]:
    """
    Écrit <out_dir>/<nom>.conf pour chaque peer (permissions 600,
    le fichier contient la clé privée).
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for peer in peers:
        path = out_dir / f"{peer.name}.conf"
        with path.open("w", encoding="utf-8") as f:
            f.write(render_client_conf(params, peer))
        path.chmod(0o600)
        paths.append(path)
    return paths


def write_server_peers(peers: List[PeerRecord], out_dir: Path) -> Path:
    """Fichier agrégé des stanzas [Peer], recréé à chaque exécution."""
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / SERVER_PEERS_FILENAME
    with path.open("w", encoding="utf-8") as f:
        for peer in peers:
            f.write(render_server_peer(peer))
    path.chmod(0o600)
    return path


def write_qr_codes(conf_paths: List[Path], out_dir: Path) -> Path:
    qr_dir = out_dir / "qrcodes"
    qr_dir.mkdir(parents=True, exist_ok=True)
    for conf in conf_paths:
        img = qrcode.make(conf.read_text(encoding="utf-8"))
        img.save(qr_dir / f"{conf.stem}.png")
    return qr_dir
