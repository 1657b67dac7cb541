from __future__ import annotations

import logging
import os

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def resolve_level(level: str | int | None = None) -> int:
    if level is None:
        level = os.getenv("SHOPCRAWL_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        return _LEVELS.get(level.upper(), logging.INFO)
    return level


def setup_logging(level: str | int | None = None) -> None:
    """
    Configure application logging once for the CLI and the API server.
    Third-party chatter (aiohttp, asyncio) stays at WARNING unless DEBUG is asked for.
    """
    resolved = resolve_level(level)
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    if resolved > logging.DEBUG:
        for noisy in ("aiohttp", "asyncio"):
            logging.getLogger(noisy).setLevel(logging.WARNING)
