"""Read-only access to the pre-JSON configuration kept in the Windows registry."""

from __future__ import annotations

import json
import os
from contextlib import suppress
from typing import Any, Iterable, Protocol, runtime_checkable

from .app_identity import LEGACY_REGISTRY_KEY
from .errors import LegacyEnumerationError
from .logging_utils import get_logger, log_context

if os.name == "nt":
    import winreg

LOGGER = get_logger(__name__, component='LegacySource')

AUTH_TOKENS_SUBKEY = "AuthTokens"


@runtime_checkable
class LegacyConfigSource(Protocol):
    """What the migration routine needs from an older configuration store."""

    def exists(self) -> bool: ...

    def get_instances(self) -> list[tuple[str, str]]: ...

    def get_ksp_builds(self) -> Any: ...

    @property
    def auto_start_instance(self) -> str | None: ...

    @property
    def download_cache_dir(self) -> str | None: ...

    @property
    def cache_size_limit(self) -> int | None: ...

    @property
    def refresh_rate(self) -> int | None: ...

    def get_auth_token_hosts(self) -> Iterable[str]: ...

    def try_get_auth_token(self, host: str) -> tuple[bool, str]: ...

    def delete_all_keys(self) -> None: ...


class NullLegacySource:
    """Stand-in used where no legacy configuration can exist."""

    auto_start_instance = None
    download_cache_dir = None
    cache_size_limit = None
    refresh_rate = None

    def exists(self) -> bool:
        return False

    def get_instances(self) -> list[tuple[str, str]]:
        return []

    def get_ksp_builds(self) -> Any:
        return None

    def get_auth_token_hosts(self) -> Iterable[str]:
        return []

    def try_get_auth_token(self, host: str) -> tuple[bool, str]:
        return False, ""

    def delete_all_keys(self) -> None:
        return None


class Win32RegistryConfigSource:
    """Legacy settings stored as values under ``HKCU\\Software\\CKAN``."""

    def __init__(self, root_key: str = LEGACY_REGISTRY_KEY) -> None:
        self.root_key = root_key
        self.auth_tokens_key = f"{root_key}\\{AUTH_TOKENS_SUBKEY}"

    @staticmethod
    def is_supported() -> bool:
        return os.name == "nt"

    def exists(self) -> bool:
        if not self.is_supported():
            return False
        try:
            with winreg.OpenKey(winreg.HKEY_CURRENT_USER, self.root_key, 0, winreg.KEY_READ):
                return True
        except OSError:
            return False

    def _get_value(self, name: str, default: Any = None) -> Any:
        with winreg.OpenKey(winreg.HKEY_CURRENT_USER, self.root_key, 0, winreg.KEY_READ) as key:
            try:
                value, _value_type = winreg.QueryValueEx(key, name)
            except FileNotFoundError:
                return default
        return value

    def _get_int(self, name: str) -> int | None:
        value = self._get_value(name)
        if value is None or value == "":
            return None
        return int(value)

    def get_instances(self) -> list[tuple[str, str]]:
        try:
            count = self._get_int("KSPInstanceCount") or 0
            return [
                (
                    str(self._get_value(f"KSPInstanceName_{index}", "")),
                    str(self._get_value(f"KSPInstancePath_{index}", "")),
                )
                for index in range(count)
            ]
        except (OSError, ValueError) as exc:
            raise LegacyEnumerationError(
                f"Unable to enumerate legacy instances: {exc}"
            ) from exc

    def get_ksp_builds(self) -> Any:
        raw = self._get_value("KSPBuilds")
        if not raw:
            return None
        return json.loads(raw)

    @property
    def auto_start_instance(self) -> str | None:
        return self._get_value("KSPAutoStartInstance", "")

    @property
    def download_cache_dir(self) -> str | None:
        return self._get_value("DownloadCacheDir") or None

    @property
    def cache_size_limit(self) -> int | None:
        return self._get_int("CacheSizeLimit")

    @property
    def refresh_rate(self) -> int | None:
        return self._get_int("RefreshRate")

    def get_auth_token_hosts(self) -> list[str]:
        try:
            with winreg.OpenKey(
                winreg.HKEY_CURRENT_USER, self.auth_tokens_key, 0, winreg.KEY_READ
            ) as key:
                _subkeys, value_count, _modified = winreg.QueryInfoKey(key)
                return [winreg.EnumValue(key, index)[0] for index in range(value_count)]
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise LegacyEnumerationError(
                f"Unable to enumerate legacy auth tokens: {exc}"
            ) from exc

    def try_get_auth_token(self, host: str) -> tuple[bool, str]:
        try:
            with winreg.OpenKey(
                winreg.HKEY_CURRENT_USER, self.auth_tokens_key, 0, winreg.KEY_READ
            ) as key:
                value, _value_type = winreg.QueryValueEx(key, host)
        except OSError:
            return False, ""
        if not isinstance(value, str):
            return False, ""
        return True, value

    def delete_all_keys(self) -> None:
        """Remove the legacy keys. Never called unless explicitly requested.

        Registry errors other than a missing key are logged and not raised.
        """

        if not self.is_supported():
            return
        try:
            with suppress(FileNotFoundError):
                winreg.DeleteKey(winreg.HKEY_CURRENT_USER, self.auth_tokens_key)
            with suppress(FileNotFoundError):
                winreg.DeleteKey(winreg.HKEY_CURRENT_USER, self.root_key)
        except OSError as exc:
            LOGGER.warning(
                log_context(
                    "Legacy registry configuration could not be removed.",
                    event="config.migration.legacy_delete_failed",
                    key=self.root_key,
                    error=str(exc),
                )
            )
            return
        LOGGER.info(
            log_context(
                "Legacy registry configuration removed.",
                event="config.migration.legacy_deleted",
                key=self.root_key,
            )
        )


def detect_legacy_source() -> LegacyConfigSource:
    """Return the registry source when it is present, else a null source."""

    if Win32RegistryConfigSource.is_supported():
        registry = Win32RegistryConfigSource()
        if registry.exists():
            return registry
    return NullLegacySource()


__all__ = [
    "LegacyConfigSource",
    "NullLegacySource",
    "Win32RegistryConfigSource",
    "detect_legacy_source",
]
