"""Persisted configuration store for managing named game instances."""

from .config_manager import (
    ConfigurationStore,
    InstanceHandle,
    current_store,
    open_store,
    reset_store,
)
from .config_schema import ConfigurationModel, InstanceEntry
from .errors import (
    ConfigError,
    ConfigNotFoundError,
    ConfigParseError,
    ConfigWriteError,
    LegacyEnumerationError,
)
from .legacy_source import (
    LegacyConfigSource,
    NullLegacySource,
    Win32RegistryConfigSource,
    detect_legacy_source,
)

__all__ = [
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigParseError",
    "ConfigWriteError",
    "ConfigurationModel",
    "ConfigurationStore",
    "InstanceEntry",
    "InstanceHandle",
    "LegacyConfigSource",
    "LegacyEnumerationError",
    "NullLegacySource",
    "Win32RegistryConfigSource",
    "current_store",
    "detect_legacy_source",
    "open_store",
    "reset_store",
]
