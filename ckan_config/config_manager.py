"""Thread-safe, disk-backed configuration store.

There is one authoritative in-memory copy of the configuration per store and
it is written to disk on every change. Every read and every
mutate-then-persist sequence happens under a single lock, so within a process
no caller can observe memory and disk disagreeing.

Separate processes are not coordinated: each believes its own copy is
authoritative and the last one to write wins.
"""

from __future__ import annotations

import copy
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Mapping, Protocol

from . import file_store
from .config_schema import (
    ConfigurationModel,
    InstanceEntry,
    normalize_auto_start_instance,
    normalize_cache_size_limit,
    normalize_download_cache_dir,
    normalize_refresh_rate,
)
from .errors import ConfigNotFoundError
from .legacy_source import LegacyConfigSource, detect_legacy_source
from .logging_utils import get_logger, log_context, log_duration
from .migration import migrate_from_legacy
from .paths import default_download_cache_dir, resolve_config_file

CONFIG_LOGGER = get_logger("ckan_config.config", component="ConfigurationStore")


class InstanceHandle(Protocol):
    """A live instance as known to the instance manager."""

    def game_dir(self) -> str | os.PathLike[str]: ...


class ConfigurationStore:
    """Owns the configuration model and persists it after every change."""

    def __init__(
        self,
        config_file: str | os.PathLike[str] | None = None,
        *,
        legacy_source: LegacyConfigSource | None = None,
        purge_legacy_source: bool = False,
    ) -> None:
        self._lock = threading.RLock()
        self._config_path = resolve_config_file(config_file)
        self._legacy_source = legacy_source
        self._purge_legacy_source = purge_legacy_source
        self._model = ConfigurationModel()
        self.migrated = False
        self._load()

    @property
    def config_file(self) -> Path:
        """Where the config file is located."""
        return self._config_path

    def _load(self) -> None:
        """Replace the in-memory state with the file, creating it if missing.

        A missing file is materialized from the legacy source when one is
        present, otherwise from defaults. A malformed file raises
        :class:`ConfigParseError` and is left untouched.
        """

        with self._lock:
            try:
                self._model = file_store.load(self._config_path)
                return
            except ConfigNotFoundError:
                CONFIG_LOGGER.info(
                    log_context(
                        "Configuration file not found; generating a fresh profile.",
                        event="config.load.first_run",
                        path=str(self._config_path),
                    )
                )

            source = self._legacy_source
            if source is None:
                source = detect_legacy_source()

            model = ConfigurationModel()
            completed = False
            if source.exists():
                with log_duration(
                    CONFIG_LOGGER,
                    "Migrating legacy configuration.",
                    event="config.migration",
                    details={"path": str(self._config_path)},
                ) as migration_details:
                    model, completed = migrate_from_legacy(source)
                    migration_details["completed"] = completed
                self.migrated = True

            self._model = model
            file_store.save(self._config_path, self._model)

            if completed and self._purge_legacy_source:
                source.delete_all_keys()

    @contextmanager
    def _mutation(self, setting: str) -> Iterator[ConfigurationModel]:
        """Lock, let the caller mutate the model, then persist it.

        If persisting fails the previous model is restored before the error
        propagates, so memory never runs ahead of disk.
        """

        with self._lock:
            previous = self._model.model_copy(deep=True)
            try:
                yield self._model
                file_store.save(self._config_path, self._model)
            except Exception as exc:
                self._model = previous
                CONFIG_LOGGER.warning(
                    log_context(
                        "Configuration change rolled back.",
                        event="config.store.rolled_back",
                        setting=setting,
                        error=str(exc),
                    )
                )
                raise
            CONFIG_LOGGER.debug(
                log_context(
                    "Configuration updated.",
                    event="config.store.updated",
                    setting=setting,
                )
            )

    @property
    def download_cache_dir(self) -> str:
        with self._lock:
            return self._model.download_cache_dir or str(default_download_cache_dir())

    @download_cache_dir.setter
    def download_cache_dir(self, value: str | os.PathLike[str] | None) -> None:
        with self._mutation("download_cache_dir") as model:
            model.download_cache_dir = normalize_download_cache_dir(value)

    @property
    def cache_size_limit(self) -> int | None:
        """Byte limit for the download cache, ``None`` for unlimited."""
        with self._lock:
            return self._model.cache_size_limit

    @cache_size_limit.setter
    def cache_size_limit(self, value: int | None) -> None:
        with self._mutation("cache_size_limit") as model:
            model.cache_size_limit = normalize_cache_size_limit(value)

    @property
    def refresh_rate(self) -> int:
        """Refresh interval in minutes, ``0`` when disabled."""
        with self._lock:
            return self._model.refresh_rate or 0

    @refresh_rate.setter
    def refresh_rate(self, value: int | None) -> None:
        with self._mutation("refresh_rate") as model:
            model.refresh_rate = normalize_refresh_rate(value)

    @property
    def auto_start_instance(self) -> str:
        with self._lock:
            return self._model.auto_start_instance or ""

    @auto_start_instance.setter
    def auto_start_instance(self, value: str | None) -> None:
        with self._mutation("auto_start_instance") as model:
            model.auto_start_instance = normalize_auto_start_instance(value)

    def get_build_map(self) -> Any:
        with self._lock:
            return copy.deepcopy(self._model.ksp_builds)

    def set_build_map(self, build_map: Any) -> None:
        with self._mutation("build_map") as model:
            model.ksp_builds = copy.deepcopy(build_map)

    def get_instances(self) -> list[tuple[str, str]]:
        with self._lock:
            return [entry.as_tuple() for entry in self._model.ksp_instances]

    def replace_instances(self, instances: Mapping[str, InstanceHandle]) -> None:
        """Replace the stored instance list with ``instances``.

        Keys are instance names; each handle reports its directory through
        ``game_dir()``. Order follows the mapping's iteration order.
        """

        entries = [
            InstanceEntry(name=name, path=os.fspath(handle.game_dir()))
            for name, handle in instances.items()
        ]
        with self._mutation("instances") as model:
            model.ksp_instances = entries

    def get_auth_token_hosts(self) -> set[str]:
        with self._lock:
            return set(self._model.auth_tokens)

    def try_get_auth_token(self, host: str) -> tuple[bool, str]:
        with self._lock:
            token = self._model.auth_tokens.get(host)
        if token is None:
            return False, ""
        return True, token

    def set_auth_token(self, host: str, token: str) -> None:
        with self._mutation("auth_tokens") as model:
            model.auth_tokens = {**model.auth_tokens, host: token}

    def snapshot(self) -> ConfigurationModel:
        """Return a deep copy of the whole configuration."""
        with self._lock:
            return self._model.model_copy(deep=True)


_STORE: ConfigurationStore | None = None
_STORE_LOCK = threading.Lock()


def open_store(
    path: str | os.PathLike[str] | None = None,
    *,
    legacy_source: LegacyConfigSource | None = None,
    purge_legacy_source: bool = False,
) -> ConfigurationStore:
    """Return the process-wide store for ``path``.

    The existing store is reused when it is backed by the same file;
    a different path replaces it and loads that file instead.
    """

    global _STORE
    resolved = resolve_config_file(path)
    with _STORE_LOCK:
        if _STORE is not None and _STORE.config_file == resolved:
            return _STORE
        if _STORE is not None:
            CONFIG_LOGGER.info(
                log_context(
                    "Replacing process-wide configuration store.",
                    event="config.store.replaced",
                    previous=str(_STORE.config_file),
                    path=str(resolved),
                )
            )
        _STORE = ConfigurationStore(
            resolved,
            legacy_source=legacy_source,
            purge_legacy_source=purge_legacy_source,
        )
        return _STORE


def current_store() -> ConfigurationStore | None:
    with _STORE_LOCK:
        return _STORE


def reset_store() -> None:
    """Forget the process-wide store without touching its file."""

    global _STORE
    with _STORE_LOCK:
        _STORE = None


__all__ = [
    "ConfigurationStore",
    "InstanceHandle",
    "current_store",
    "open_store",
    "reset_store",
]
