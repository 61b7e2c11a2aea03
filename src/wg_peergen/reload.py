# src/wg_peergen/reload.py
"""
Fusion des nouveaux peers dans la config serveur et rechargement du tunnel.

Le rechargement essaie des stratégies dans l'ordre ; la première qui
réussit arrête la chaîne. Aucun échec ici n'est fatal : les fichiers
clients sont déjà écrits.
"""
from __future__ import annotations
import os
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .log import get_logger
from .wireguard import _which, run_cmd

log = get_logger()


def append_to_server_conf(peers_file: Path, server_conf: Path) -> None:
    """Ajoute le fichier agrégé à la fin de la config serveur."""
    content = peers_file.read_text(encoding="utf-8")
    with server_conf.open("a", encoding="utf-8") as f:
        f.write(content)


def manual_restart_command(interface: str) -> str:
    return f"sudo systemctl restart wg-quick@{interface}"


@dataclass
class SyncConfReload:
    """`wg-quick strip` puis `wg syncconf`, sans couper les sessions."""
    name: str = "syncconf"

    def __call__(self, interface: str) -> bool:
        try:
            _which("wg-quick")
            _which("wg")
            stripped = run_cmd(["wg-quick", "strip", interface]).stdout
        except (OSError, subprocess.CalledProcessError) as e:
            log.debug("wg-quick strip a échoué : %s", e)
            return False

        fd, tmp = tempfile.mkstemp(prefix="wg-strip-", suffix=".conf")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(stripped)
            run_cmd(["wg", "syncconf", interface, tmp])
        except (OSError, subprocess.CalledProcessError) as e:
            log.debug("wg syncconf a échoué : %s", e)
            return False
        finally:
            os.unlink(tmp)
        return True


@dataclass
class ServiceRestartReload:
    """Redémarrage complet du service wg-quick@<interface>."""
    name: str = "systemctl-restart"

    def __call__(self, interface: str) -> bool:
        try:
            _which("systemctl")
            run_cmd(["systemctl", "restart", f"wg-quick@{interface}"])
        except (OSError, subprocess.CalledProcessError) as e:
            log.debug("systemctl restart a échoué : %s", e)
            return False
        return True


DEFAULT_STRATEGIES = (SyncConfReload(), ServiceRestartReload())


def reload_interface(interface: str, strategies: Optional[Sequence] = None) -> Optional[str]:
    """
    Retourne le nom de la stratégie qui a réussi, ou None si toutes ont
    échoué (un avertissement est alors journalisé).
    """
    strategies = list(strategies if strategies is not None else DEFAULT_STRATEGIES)

    for i, strategy in enumerate(strategies):
        if i:
            log.info("Méthode de rechargement alternative : %s", strategy.name)
        if strategy(interface):
            return strategy.name

    log.warning("Échec du rechargement de la configuration WireGuard.")
    log.warning("Redémarrer WireGuard manuellement : %s", manual_restart_command(interface))
    return None
