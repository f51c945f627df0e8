"""Logging setup for the cdbundle command line."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_LOG = logging.getLogger("cdbundle")


def init_logging(level: str = "WARNING", log_file: Path | None = None) -> logging.Logger:
    """Attach a stderr handler (and optional file handler) to the cdbundle logger.

    Safe to call more than once; later calls adjust the level and point the
    console handler at the current sys.stderr.
    """
    lvl = getattr(logging, str(level or "WARNING").upper().strip(), logging.WARNING)
    _LOG.setLevel(lvl)

    if getattr(init_logging, "_initialised", False):
        for handler in _LOG.handlers:
            handler.setLevel(lvl)
            if type(handler) is logging.StreamHandler:
                handler.setStream(sys.stderr)
        return _LOG

    formatter = logging.Formatter(LOG_FORMAT)

    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(lvl)
    sh.setFormatter(formatter)
    _LOG.addHandler(sh)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(lvl)
        fh.setFormatter(formatter)
        _LOG.addHandler(fh)

    setattr(init_logging, "_initialised", True)
    return _LOG
