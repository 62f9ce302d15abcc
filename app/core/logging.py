"""
Process-wide logging setup.

Every module logs through `logging.getLogger(__name__)`; this only installs
the root handler/format once (stdout, picked up by gunicorn / the platform).
"""
from __future__ import annotations

import logging

_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level.upper())
        return
    logging.basicConfig(level=level.upper(), format=_FORMAT, datefmt=_DATEFMT)
