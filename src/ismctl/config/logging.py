"""Logging setup for the ismctl command line."""

from __future__ import annotations

import logging

from .env import env_log_level

LOG_LEVEL_ENV = "ISMCTL_LOG_LEVEL"

# request lines from the gateway client, one per RPC call
_CHATTY_LOGGERS = ("httpx", "httpcore")


def configure_logging(*, verbose: bool = False, force: bool = False) -> int:
    """Configure the root logger and return the level in effect.

    ``ISMCTL_LOG_LEVEL`` wins over ``verbose``. Per-request HTTP logging is
    only shown at DEBUG.
    """

    default = logging.DEBUG if verbose else logging.INFO
    level = env_log_level(LOG_LEVEL_ENV, default)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)
    return level
