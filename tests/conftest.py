import itertools
import logging

import pytest

from wg_peergen import wireguard


SERVER_CONF = """[Interface]
Address = 10.8.0.1/24
ListenPort = 51999
PrivateKey = c2VydmVyLXByaXZhdGU=
MTU = 1420

[Peer]
# User client1
PublicKey = cGVlcjc=
AllowedIPs = 10.8.0.7/32

[Peer]
# User client2
PublicKey = cGVlcjk=
AllowedIPs = 10.8.0.9/32
"""


def fake_pubkey(private_key):
    return f"pub-{private_key.strip()}"


@pytest.fixture
def server_conf():
    return SERVER_CONF


@pytest.fixture
def fake_wg(monkeypatch):
    """Remplace wg genkey/pubkey/genpsk et hostname -I par des valeurs déterministes."""
    counter = itertools.count(1)
    psk_counter = itertools.count(1)

    monkeypatch.setattr(wireguard, "generate_private_key", lambda: f"priv-{next(counter)}")
    monkeypatch.setattr(wireguard, "derive_public_key", fake_pubkey)
    monkeypatch.setattr(wireguard, "generate_preshared_key", lambda: f"psk-{next(psk_counter)}")
    monkeypatch.setattr(wireguard, "detect_local_address", lambda: "192.0.2.10")
    return wireguard


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    log = logging.getLogger("wg_peergen")
    for h in list(log.handlers):
        log.removeHandler(h)
    log.setLevel(logging.NOTSET)
