import re

import pytest

import cli
from conftest import fake_pubkey


@pytest.fixture
def server_file(tmp_path, server_conf):
    path = tmp_path / "wg0.conf"
    path.write_text(server_conf)
    return path


def run(tmp_path, server_file, *extra):
    out = tmp_path / "out"
    argv = ["--server-config", str(server_file), "-c", str(out), "-q", "--no-qr", *extra]
    return cli.main(argv), out


def test_generates_three_peers(fake_wg, tmp_path, server_file):
    code, out = run(tmp_path, server_file, "-n", "3", "-p", "emp", "-s", "10.0.5", "-o", "50", "--no-append")
    assert code == 0
    assert sorted(p.name for p in out.glob("*.conf")) == [
        "emp1.conf", "emp2.conf", "emp3.conf", "new_server_peers.conf",
    ]
    for i, offset in enumerate([50, 51, 52], start=1):
        conf = (out / f"emp{i}.conf").read_text()
        assert f"Address = 10.0.5.{offset}/24" in conf
        assert "Endpoint = 10.8.0.1:51999" in conf
        assert "MTU = 1420" in conf
        assert "PersistentKeepalive = 25" in conf


def test_continues_numbering_from_server(fake_wg, tmp_path, server_file):
    code, out = run(tmp_path, server_file, "-n", "2", "--no-append")
    assert code == 0
    assert "Address = 10.8.0.10/24" in (out / "client1.conf").read_text()
    assert "Address = 10.8.0.11/24" in (out / "client2.conf").read_text()


def test_each_client_matches_one_server_stanza(fake_wg, tmp_path, server_file):
    code, out = run(tmp_path, server_file, "-n", "4", "--no-append")
    assert code == 0
    stanzas = (out / "new_server_peers.conf").read_text().split("[Peer]")[1:]
    assert len(stanzas) == 4

    for i in range(1, 5):
        conf = (out / f"client{i}.conf").read_text()
        priv = re.search(r"^PrivateKey = (.+)$", conf, re.M).group(1)
        psk = re.search(r"^PresharedKey = (.+)$", conf, re.M).group(1)
        address = re.search(r"^Address = ([\d.]+)/24$", conf, re.M).group(1)
        matching = [s for s in stanzas if f"PublicKey = {fake_pubkey(priv)}\n" in s]
        assert len(matching) == 1
        assert f"PresharedKey = {psk}\n" in matching[0]
        assert f"AllowedIPs = {address}/32\n" in matching[0]
        assert f"# User client{i}\n" in matching[0]


def test_no_preshared(fake_wg, tmp_path, server_file):
    code, out = run(tmp_path, server_file, "-n", "1", "--no-append", "--no-preshared")
    assert code == 0
    assert "PresharedKey" not in (out / "client1.conf").read_text()
    assert "PresharedKey" not in (out / "new_server_peers.conf").read_text()


def test_template_and_overrides(fake_wg, tmp_path, server_file):
    template = tmp_path / "old.conf"
    template.write_text("[Peer]\nEndpoint = tpl.example.com:4500\nDNS = 10.8.0.1\nMTU = 1280\n")
    code, out = run(tmp_path, server_file, "-n", "1", "--no-append", "-t", str(template), "-m", "1300")
    assert code == 0
    conf = (out / "client1.conf").read_text()
    assert "Endpoint = tpl.example.com:4500" in conf
    assert "DNS = 10.8.0.1" in conf
    assert "MTU = 1300" in conf


def test_missing_private_key_writes_nothing(fake_wg, tmp_path):
    server = tmp_path / "wg0.conf"
    server.write_text("[Interface]\nAddress = 10.8.0.1/24\n")
    code, out = run(tmp_path, server)
    assert code == 1
    assert not out.exists()


def test_missing_server_config(fake_wg, tmp_path):
    code, out = run(tmp_path, tmp_path / "absent.conf")
    assert code == 1
    assert not out.exists()


def test_missing_template_is_fatal(fake_wg, tmp_path, server_file):
    code, out = run(tmp_path, server_file, "-t", str(tmp_path / "nope.conf"))
    assert code == 1
    assert not out.exists()


def test_unknown_flag_exits_non_zero(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--bogus"])
    assert exc.value.code != 0
    assert "usage:" in capsys.readouterr().err


def test_invalid_subnet_is_rejected():
    with pytest.raises(SystemExit) as exc:
        cli.main(["-s", "10.0.5.1"])
    assert exc.value.code != 0


def test_append_and_reload(fake_wg, tmp_path, server_file, monkeypatch):
    reloaded = []
    monkeypatch.setattr(cli, "reload_interface", lambda iface: reloaded.append(iface) or "syncconf")
    code, out = run(tmp_path, server_file, "-n", "2", "-i", "wg7")
    assert code == 0
    assert reloaded == ["wg7"]
    server_text = server_file.read_text()
    assert server_text.endswith((out / "new_server_peers.conf").read_text())
    assert server_text.count("[Peer]") == 4


def test_reload_failure_still_exits_zero(fake_wg, tmp_path, server_file, monkeypatch):
    monkeypatch.setattr(cli, "reload_interface", lambda iface: None)
    code, _ = run(tmp_path, server_file, "-n", "1")
    assert code == 0


def test_qr_codes(fake_wg, tmp_path, server_file):
    out = tmp_path / "out"
    code = cli.main(["--server-config", str(server_file), "-c", str(out), "-q", "-n", "2", "--no-append"])
    assert code == 0
    assert sorted(p.name for p in (out / "qrcodes").iterdir()) == ["client1.png", "client2.png"]


def test_env_defaults(fake_wg, tmp_path, server_file, monkeypatch):
    monkeypatch.setenv("WG_CLIENT_PREFIX", "env")
    monkeypatch.setenv("WG_CLIENT_COUNT", "2")
    code, out = run(tmp_path, server_file, "--no-append")
    assert code == 0
    assert (out / "env2.conf").exists()
    assert not (out / "env3.conf").exists()


def test_unwritable_output_dir_exits_one(fake_wg, tmp_path, server_file):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    out = blocker / "out"
    code = cli.main(["--server-config", str(server_file), "-c", str(out), "-q", "--no-qr", "-n", "1", "--no-append"])
    assert code == 1
    assert not out.exists()


def test_help_lists_allowed_ips_conventions(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--help"])
    assert exc.value.code == 0
    help_text = capsys.readouterr().out
    assert "<A.B.C>.0/24" in help_text
    assert "<block>" not in help_text
