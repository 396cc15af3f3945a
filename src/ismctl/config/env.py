"""Typed readers for ``ISMCTL_*`` environment settings.

Blank values count as unset everywhere, so an empty line in ``.env`` falls
back to the default instead of failing a parse.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from .errors import InvalidSettingError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence


def env_value(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return the given settings, raising once for every missing one."""

    values = {name: env_value(name) for name in names}
    missing = [name for name, value in values.items() if value is None]
    if missing:
        raise MissingConfigurationError(missing)
    return {name: value for name, value in values.items() if value is not None}


def env_seconds(name: str, default: float) -> float:
    """Read a strictly positive duration in seconds."""

    value = env_value(name)
    if value is None:
        return default
    try:
        seconds = float(value)
    except ValueError as exc:
        raise InvalidSettingError(name, value, "a number") from exc
    if seconds <= 0:
        raise InvalidSettingError(name, value, "a positive number")
    return seconds


def env_log_level(name: str, default: int) -> int:
    """Read a logging level given by name (``debug``) or number (``10``)."""

    value = env_value(name)
    if value is None:
        return default
    if value.isdigit():
        return int(value)
    level = logging.getLevelNamesMapping().get(value.upper())
    if level is None:
        raise InvalidSettingError(name, value, "a logging level name")
    return level
