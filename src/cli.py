import argparse
import sys
from pathlib import Path

from wg_peergen.config import Defaults
from wg_peergen.ipam import is_block
from wg_peergen.log import setup_logging
from wg_peergen.models import ALLOWED_IPS_PRESETS, MAX_OFFSET, Overrides, ResolutionError
from wg_peergen.output import write_client_confs, write_qr_codes, write_server_peers
from wg_peergen.reload import append_to_server_conf, reload_interface
from wg_peergen.resolver import resolve_settings
from wg_peergen.wireguard import generate_peers

# option à utiliser quand un champ obligatoire n'a pas pu être détecté
FIELD_FLAGS = {
    "server_public_key": "-k/--server-public-key",
    "endpoint": "-e/--server-endpoint",
}


# ---------------------------------------------------
# Types d'arguments
# ---------------------------------------------------

def positive_int(value):
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if n < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return n


def offset_arg(value):
    n = positive_int(value)
    if n > MAX_OFFSET:
        raise argparse.ArgumentTypeError(f"must be <= {MAX_OFFSET}")
    return n


def block_arg(value):
    if not is_block(value):
        raise argparse.ArgumentTypeError(f"expected the first three octets, e.g. 10.0.5 (got {value!r})")
    return value


# ---------------------------------------------------
# Lecture des fichiers
# ---------------------------------------------------

def _read(path, what, log):
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        log.error("Fichier %s introuvable : %s", what, path)
    except PermissionError:
        log.error("Lecture de %s refusée : %s (relancer avec sudo)", what, path)
    except OSError as e:
        log.error("Lecture de %s impossible : %s (%s)", what, path, e)
    return None


# ---------------------------------------------------
# Commande : génération des clients
# ---------------------------------------------------

def cmd_generate(args, defaults):
    log = setup_logging(
        level="DEBUG" if args.verbose else defaults.log_level,
        quiet=args.quiet,
        log_file=args.log_file,
    )

    server_conf = Path(args.server_config) if args.server_config else defaults.server_conf_path(args.interface)
    log.info("Extraction de la configuration depuis %s...", server_conf)

    server_text = _read(server_conf, "de configuration serveur", log)
    if server_text is None:
        log.error("Vérifier que WireGuard est installé et configuré.")
        return 1

    template_text = None
    if args.template:
        template_text = _read(Path(args.template), "template", log)
        if template_text is None:
            return 1

    overrides = Overrides(
        endpoint=args.server_endpoint,
        public_key=args.server_public_key,
        block=args.subnet,
        start_offset=args.starting_ip,
        allowed_ips=args.allowed_ips,
        mtu=args.mtu,
        dns=args.dns,
    )

    try:
        params = resolve_settings(server_text, overrides, template_text)
    except ResolutionError as e:
        log.error("%s", e)
        log.error("Préciser la valeur avec l'option %s", FIELD_FLAGS.get(e.field, e.field))
        return 1
    except RuntimeError as e:
        log.error("%s", e)
        return 1

    _print_summary(log, params, args.num_clients)

    try:
        peers = generate_peers(params, args.num_clients, args.prefix, with_preshared=not args.no_preshared)
    except RuntimeError as e:
        log.error("%s", e)
        return 1

    out_dir = Path(args.config_dir)
    try:
        conf_paths = write_client_confs(params, peers, out_dir)
        peers_file = write_server_peers(peers, out_dir)
    except OSError as e:
        log.error("Écriture dans %s impossible : %s", out_dir, e)
        return 1
    for peer in peers:
        log.info("Config générée pour %s avec l'IP %s", peer.name, peer.address)
    log.info("Toutes les configurations clients sont dans %s/", out_dir)

    if args.no_append:
        log.info("Nouvelles entrées serveur enregistrées dans %s", peers_file)
        log.info("--no-append : peers non ajoutés à la config serveur.")
    else:
        _merge_and_reload(log, peers_file, server_conf, args.interface, len(peers))

    if not args.no_qr:
        try:
            qr_dir = write_qr_codes(conf_paths, out_dir)
        except OSError as e:
            log.error("Écriture des QR codes impossible : %s", e)
            return 1
        log.info("QR codes enregistrés dans %s/", qr_dir)

    log.info("Terminé ! Fichiers clients disponibles dans %s/", out_dir)
    return 0


def _print_summary(log, params, count):
    log.info("----------------------------------------")
    log.info("Endpoint serveur     : %s", params.endpoint)
    log.info("Clé publique serveur : %s", params.server_public_key)
    log.info("Sous-réseau client   : %s", params.block)
    log.info("Premier offset       : %s", params.start_offset)
    log.info("Clients à générer    : %s", count)
    log.info("MTU                  : %s", params.mtu)
    log.info("AllowedIPs           : %s", params.allowed_ips)
    if params.dns:
        log.info("DNS                  : %s", params.dns)
    log.info("----------------------------------------")


def _merge_and_reload(log, peers_file, server_conf, interface, count):
    log.info("Ajout des nouveaux peers à %s", server_conf)
    try:
        append_to_server_conf(peers_file, server_conf)
    except OSError as e:
        log.error("Impossible de modifier %s : %s", server_conf, e)
        log.warning("Ajouter %s à la main puis redémarrer WireGuard.", peers_file)
        return

    log.info("Rechargement de la configuration WireGuard...")
    if reload_interface(interface):
        log.info("%s nouveaux peers ajoutés au serveur WireGuard.", count)


# ---------------------------------------------------
# CLI / Parser
# ---------------------------------------------------

def build_parser(defaults):
    presets = "\n".join(f"  {name:<8} {value}" for name, value in ALLOWED_IPS_PRESETS.items())
    parser = argparse.ArgumentParser(
        prog="wg-peergen",
        description="Generate WireGuard client configurations from an existing server configuration",
        epilog=(
            "AllowedIPs conventions (pass the value with -a):\n"
            f"{presets}\n\n"
            "Example overriding endpoint (for port forwarding):\n"
            "  wg-peergen -e public.example.com:51820"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("-e", "--server-endpoint", help="server endpoint (IP:port), overrides auto-detection")
    parser.add_argument("-k", "--server-public-key", help="server public key (derived from PrivateKey if omitted)")
    parser.add_argument("-n", "--num-clients", type=positive_int, default=defaults.client_count,
                        help=f"number of clients to generate (default: {defaults.client_count})")
    parser.add_argument("-s", "--subnet", type=block_arg, help="client subnet, first three octets (auto-detected)")
    parser.add_argument("-o", "--starting-ip", type=offset_arg, help="starting IP offset for clients (auto-detected)")
    parser.add_argument("-a", "--allowed-ips", help="AllowedIPs for clients (default: 0.0.0.0/0, ::/0)")
    parser.add_argument("-m", "--mtu", type=positive_int, help="MTU value (auto-detected)")
    parser.add_argument("-d", "--dns", help="DNS servers (default: none)")
    parser.add_argument("-i", "--interface", default=defaults.interface,
                        help=f"server interface name (default: {defaults.interface})")
    parser.add_argument("-c", "--config-dir", default=str(defaults.output_dir),
                        help=f"directory to store configs (default: {defaults.output_dir})")
    parser.add_argument("-p", "--prefix", default=defaults.client_prefix,
                        help=f"client name prefix (default: {defaults.client_prefix})")
    parser.add_argument("-t", "--template", help="existing client config used as defaults for endpoint/MTU/DNS/AllowedIPs")
    parser.add_argument("--server-config", help="server config path (default: <config root>/<interface>.conf)")
    parser.add_argument("--no-preshared", action="store_true", help="disable generation of preshared keys")
    parser.add_argument("--no-append", action="store_true", help="don't append to server config (just generate clients)")
    parser.add_argument("--no-qr", action="store_true", help="don't generate QR codes")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("-q", "--quiet", action="store_true")
    parser.add_argument("--log-file", default=defaults.log_file)
    return parser


def main(argv=None):
    try:
        defaults = Defaults.from_env()
    except RuntimeError as e:
        print(f"[ERREUR] {e}", file=sys.stderr)
        return 1

    parser = build_parser(defaults)
    args = parser.parse_args(argv)
    return cmd_generate(args, defaults)


if __name__ == "__main__":
    sys.exit(main())
