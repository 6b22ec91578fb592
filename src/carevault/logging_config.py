"""Lightweight logging setup for processes embedding the vault."""

import logging
import sys


def configure_logging(level=logging.INFO) -> None:
    # Configure root logger once; accepts a level name or number.
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
