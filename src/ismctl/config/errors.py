"""Errors raised while reading ismctl settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ConfigurationError(RuntimeError):
    """Raised when a setting cannot be used; ``names`` lists the offending variables."""

    def __init__(self, message: str, *, names: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.names = tuple(names)


class MissingConfigurationError(ConfigurationError):
    """Raised when required settings are absent or blank."""

    def __init__(self, names: Iterable[str]) -> None:
        missing = sorted(names)
        super().__init__(f"Missing configuration for: {', '.join(missing)}", names=missing)


class InvalidSettingError(ConfigurationError):
    """Raised when a setting is present but cannot be parsed."""

    def __init__(self, name: str, value: str, expected: str) -> None:
        super().__init__(f"{name} must be {expected}, got {value!r}", names=(name,))
        self.value = value
