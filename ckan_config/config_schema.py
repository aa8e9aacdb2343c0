"""Pydantic schema for the persisted configuration document."""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .logging_utils import get_logger, log_context
from .paths import resolve_directory

LOGGER = get_logger(__name__, component='ConfigSchema')


def normalize_auto_start_instance(value: str | None) -> str:
    return value if value is not None else ""


def normalize_download_cache_dir(value: str | os.PathLike[str] | None) -> str | None:
    """Empty input clears the override; relative paths are made absolute."""

    if value is None:
        return None
    if not os.fspath(value):
        return None
    return resolve_directory(value)


def normalize_cache_size_limit(value: int | None) -> int | None:
    """A negative limit means "no limit" and is stored as absent."""

    if value is None or value < 0:
        return None
    return int(value)


def normalize_refresh_rate(value: int | None) -> int | None:
    """A non-positive refresh rate means "disabled" and is stored as absent."""

    if value is None or value <= 0:
        return None
    return int(value)


class InstanceEntry(BaseModel):
    """A named installation and the directory it lives in."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(alias="Name")
    path: str = Field(alias="Path")

    def as_tuple(self) -> tuple[str, str]:
        return self.name, self.path


class ConfigurationModel(BaseModel):
    """The whole configuration document as stored in ``config.json``.

    Field aliases are the on-disk key names. Unknown keys are ignored so newer
    files still load, and ``null`` collections are read as empty ones.
    Assignments are validated too, so nothing is stored that would fail to load.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, validate_assignment=True)

    auto_start_instance: str | None = Field(default=None, alias="AutoStartInstance")
    download_cache_dir: str | None = Field(default=None, alias="DownloadCacheDir")
    cache_size_limit: int | None = Field(default=None, alias="CacheSizeLimit")
    refresh_rate: int | None = Field(default=None, alias="RefreshRate")
    ksp_builds: Any = Field(default=None, alias="KSPBuilds")
    ksp_instances: list[InstanceEntry] = Field(default_factory=list, alias="KspInstances")
    auth_tokens: dict[str, str] = Field(default_factory=dict, alias="AuthTokens")

    @field_validator("ksp_instances", mode="before")
    @classmethod
    def _coerce_instances(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("auth_tokens", mode="before")
    @classmethod
    def _coerce_tokens(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("ksp_instances")
    @classmethod
    def _drop_duplicate_names(cls, value: list[InstanceEntry]) -> list[InstanceEntry]:
        return unique_instances(value)

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-ready payload using the on-disk key names."""

        return self.model_dump(mode="json", by_alias=True)


def unique_instances(entries: list[InstanceEntry]) -> list[InstanceEntry]:
    """Keep the first entry for every instance name, preserving order."""

    seen: set[str] = set()
    unique: list[InstanceEntry] = []
    for entry in entries:
        if entry.name in seen:
            LOGGER.warning(
                log_context(
                    "Dropping duplicate instance entry.",
                    event="config.instances.duplicate_dropped",
                    name=entry.name,
                    path=entry.path,
                )
            )
            continue
        seen.add(entry.name)
        unique.append(entry)
    return unique


__all__ = [
    "ConfigurationModel",
    "InstanceEntry",
    "normalize_auto_start_instance",
    "normalize_cache_size_limit",
    "normalize_download_cache_dir",
    "normalize_refresh_rate",
    "unique_instances",
]
