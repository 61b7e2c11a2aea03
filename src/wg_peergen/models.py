# src/wg_peergen/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional


DEFAULT_BLOCK = "192.168.48"
DEFAULT_LISTEN_PORT = 51820
DEFAULT_MTU = 1360
DEFAULT_ALLOWED_IPS = "0.0.0.0/0, ::/0"
DEFAULT_SERVER_OFFSET = 254
FIRST_PEER_OFFSET = 2
MAX_OFFSET = 254

# Conventions de routage documentées (jamais imposées)
ALLOWED_IPS_PRESETS = {
    "full": "0.0.0.0/0, ::/0",
    "private": "10.0.0.0/8, 172.16.0.0/12, 192.168.0.0/16",
    "subnet": "<A.B.C>.0/24",
}


class ResolutionError(RuntimeError):
    """A mandatory generation setting could not be resolved."""

    def __init__(self, field_name: str, message: str):
        super().__init__(message)
        self.field = field_name


class KeyGenerationError(RuntimeError):
    pass


@dataclass
class ServerSettings:
    private_key: Optional[str] = None
    address: Optional[str] = None        # ex "10.8.0.1/24"
    listen_port: Optional[int] = None
    mtu: Optional[int] = None
    allowed_ips: List[str] = field(default_factory=list)  # toutes les lignes AllowedIPs


@dataclass
class TemplateSettings:
    endpoint: Optional[str] = None       # ex "vpn.example.com:51820"
    mtu: Optional[int] = None
    dns: Optional[str] = None
    allowed_ips: Optional[str] = None


@dataclass
class Overrides:
    endpoint: Optional[str] = None
    public_key: Optional[str] = None
    block: Optional[str] = None          # ex "10.0.5"
    start_offset: Optional[int] = None
    allowed_ips: Optional[str] = None
    mtu: Optional[int] = None
    dns: Optional[str] = None


@dataclass(frozen=True)
class GenerationParams:
    server_public_key: str
    endpoint: str
    block: str
    start_offset: int
    server_offset: Optional[int]         # None si le serveur est hors du bloc
    listen_port: int
    mtu: Optional[int]
    dns: Optional[str]
    allowed_ips: str


@dataclass
class PeerRecord:
    name: str
    private_key: str
    public_key: str
    block: str
    offset: int
    preshared_key: Optional[str] = None

    @property
    def address(self) -> str:
        return f"{self.block}.{self.offset}"
