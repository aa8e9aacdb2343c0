"""One-shot copy of legacy settings into a fresh configuration model."""

from __future__ import annotations

from typing import Any, Callable

from .config_schema import (
    ConfigurationModel,
    InstanceEntry,
    normalize_auto_start_instance,
    normalize_cache_size_limit,
    normalize_download_cache_dir,
    normalize_refresh_rate,
)
from .errors import LegacyEnumerationError
from .legacy_source import LegacyConfigSource
from .logging_utils import get_logger, log_context

LOGGER = get_logger(__name__, component='Migration')

_FIELD_ERRORS = (OSError, ValueError, TypeError)


def _skip_field(label: str, exc: Exception) -> None:
    LOGGER.warning(
        log_context(
            "Skipping unreadable legacy setting.",
            event="config.migration.field_skipped",
            field=label,
            error=str(exc),
        )
    )


def _read_field(label: str, reader: Callable[[], Any], default: Any = None) -> Any:
    try:
        return reader()
    except _FIELD_ERRORS as exc:
        _skip_field(label, exc)
        return default


def _copy_field(
    model: ConfigurationModel, attribute: str, label: str, reader: Callable[[], Any]
) -> None:
    """Assign ``reader()`` to ``model``; a read or validation failure keeps the default."""

    try:
        setattr(model, attribute, reader())
    except _FIELD_ERRORS as exc:
        _skip_field(label, exc)


def migrate_from_legacy(source: LegacyConfigSource) -> tuple[ConfigurationModel, bool]:
    """Build a configuration model from ``source``.

    Always starts from a default model, so running it twice never merges or
    duplicates anything. Returns the model and whether the copy completed.
    An unreadable field keeps its default; failing to enumerate instances or
    auth token hosts aborts and yields the untouched default model.
    """

    try:
        legacy_instances = list(source.get_instances())
        legacy_hosts = list(source.get_auth_token_hosts())
    except (LegacyEnumerationError, OSError) as exc:
        LOGGER.error(
            log_context(
                "Legacy configuration could not be enumerated; migration aborted.",
                event="config.migration.aborted",
                error=str(exc),
            )
        )
        return ConfigurationModel(), False

    model = ConfigurationModel()
    _copy_field(
        model,
        "ksp_instances",
        "KspInstances",
        lambda: [InstanceEntry(name=name, path=path) for name, path in legacy_instances],
    )
    _copy_field(model, "ksp_builds", "KSPBuilds", source.get_ksp_builds)
    _copy_field(
        model,
        "auto_start_instance",
        "AutoStartInstance",
        lambda: normalize_auto_start_instance(source.auto_start_instance),
    )
    _copy_field(
        model,
        "download_cache_dir",
        "DownloadCacheDir",
        lambda: normalize_download_cache_dir(source.download_cache_dir),
    )
    _copy_field(
        model,
        "cache_size_limit",
        "CacheSizeLimit",
        lambda: normalize_cache_size_limit(source.cache_size_limit),
    )
    _copy_field(
        model,
        "refresh_rate",
        "RefreshRate",
        lambda: normalize_refresh_rate(source.refresh_rate),
    )

    for host in legacy_hosts:
        found, token = _read_field(
            f"AuthTokens[{host}]",
            lambda host=host: source.try_get_auth_token(host),
            (False, ""),
        )
        if found:
            _copy_field(
                model,
                "auth_tokens",
                f"AuthTokens[{host}]",
                lambda host=host, token=token: {**model.auth_tokens, host: token},
            )

    LOGGER.info(
        log_context(
            "Legacy configuration copied.",
            event="config.migration.copied",
            instances=len(model.ksp_instances),
            auth_hosts=len(model.auth_tokens),
        )
    )
    return model, True


__all__ = ["migrate_from_legacy"]
