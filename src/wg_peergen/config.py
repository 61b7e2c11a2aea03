# src/wg_peergen/config.py
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# .env chargé une fois à l'import ; sans effet s'il n'existe pas
load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Invalid integer for {name}: {raw!r}") from None


@dataclass(frozen=True)
class Defaults:
    """Valeurs par défaut des options CLI, surchargeables par l'environnement."""
    interface: str = "wg0"
    config_root: Path = Path("/etc/wireguard")
    output_dir: Path = Path("wg-configs")
    client_prefix: str = "client"
    client_count: int = 20
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Defaults":
        return cls(
            interface=os.getenv("WG_INTERFACE", "wg0"),
            config_root=Path(os.getenv("WG_CONFIG_ROOT", "/etc/wireguard")),
            output_dir=Path(os.getenv("WG_OUTPUT_DIR", "wg-configs")),
            client_prefix=os.getenv("WG_CLIENT_PREFIX", "client"),
            client_count=_int_env("WG_CLIENT_COUNT", 20),
            log_level=os.getenv("WG_LOG_LEVEL", "INFO"),
            log_file=os.getenv("WG_LOG_FILE") or None,
        )

    def server_conf_path(self, interface: str) -> Path:
        return self.config_root / f"{interface}.conf"
