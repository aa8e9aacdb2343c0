"""Exception hierarchy for configuration loading, saving and migration."""

from __future__ import annotations

from pathlib import Path


class ConfigError(RuntimeError):
    """Base class for every configuration failure."""

    def __init__(self, message: str, *, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class ConfigNotFoundError(ConfigError):
    """The configuration file or its directory does not exist."""


class ConfigParseError(ConfigError):
    """The configuration file exists but is not a valid configuration document."""


class ConfigWriteError(ConfigError):
    """The configuration could not be persisted to disk."""


class LegacyEnumerationError(ConfigError):
    """A legacy configuration source could not be enumerated at all."""


__all__ = [
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigParseError",
    "ConfigWriteError",
    "LegacyEnumerationError",
]
