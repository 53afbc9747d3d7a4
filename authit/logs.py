"""Process-wide logging setup."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger.

    Safe to call more than once; later calls only adjust the level.
    """
    root = logging.getLogger()
    root.setLevel((level or "INFO").upper())
    if any(getattr(h, "_authit", False) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._authit = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    # httpx logs every request URL at INFO, which can include reset tokens.
    logging.getLogger("httpx").setLevel(logging.WARNING)
