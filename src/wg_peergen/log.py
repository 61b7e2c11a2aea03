# src/wg_peergen/log.py
from __future__ import annotations
import logging
import sys
from logging.handlers import RotatingFileHandler

LOGGER_NAME = "wg_peergen"

# Mêmes marqueurs que les anciens print()
_MARKERS = {
    logging.DEBUG: "[.]",
    logging.INFO: "[+]",
    logging.WARNING: "[!]",
    logging.ERROR: "[ERREUR]",
    logging.CRITICAL: "[ERREUR]",
}


class MarkerFormatter(logging.Formatter):
    def format(self, record):
        marker = _MARKERS.get(record.levelno, "[*]")
        return f"{marker} {record.getMessage()}"


def setup_logging(*, level: str = "INFO", quiet: bool = False, log_file: str | None = None):
    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(level.upper())
    for h in list(log.handlers):
        log.removeHandler(h)

    if not quiet:
        h = logging.StreamHandler(stream=sys.stderr)
        h.setLevel(level.upper())
        h.setFormatter(MarkerFormatter())
        log.addHandler(h)

    if log_file:
        fh = RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
        fh.setLevel(level.upper())
        fh.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        log.addHandler(fh)

    return log


def get_logger():
    return logging.getLogger(LOGGER_NAME)
