from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logging.basicConfig(level=resolved, format=_FORMAT, force=True)

    # Gateway heartbeats and HTTP rate-limit notices are noise at INFO.
    logging.getLogger("discord.gateway").setLevel(max(resolved, logging.WARNING))
    logging.getLogger("discord.http").setLevel(max(resolved, logging.WARNING))
    logging.getLogger("aiosqlite").setLevel(max(resolved, logging.WARNING))

    logging.getLogger("clearwater").debug("Logging configured at %s", logging.getLevelName(resolved))
