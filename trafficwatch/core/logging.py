from __future__ import annotations

import logging
import sys

from trafficwatch.core.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def setup_logging(level: str | None = None) -> None:
    """Attach a stderr handler to the package logger.

    Safe to call more than once; later calls only change the level.
    """
    global _configured

    root = logging.getLogger("trafficwatch")
    root.setLevel((level or LOG_LEVEL).upper())
    if _configured:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    _configured = True
