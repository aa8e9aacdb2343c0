"""Resolution of the configuration file and default download cache locations."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_data_dir

from .app_identity import APP_NAME, CONFIG_FILE_ENV, CONFIG_FILE_NAME, DOWNLOADS_DIR_NAME


def app_data_dir() -> Path:
    """Return the per-user local application data directory for the app."""

    return Path(user_data_dir(APP_NAME, appauthor=False))


def default_config_file() -> Path:
    """Return the config file path, honouring the environment override."""

    override = os.environ.get(CONFIG_FILE_ENV)
    if override:
        return Path(override).expanduser()
    return app_data_dir() / CONFIG_FILE_NAME


def resolve_config_file(path: str | os.PathLike[str] | None = None) -> Path:
    """Return the absolute config file path for ``path`` or the default."""

    if path is None:
        return Path(os.path.abspath(default_config_file()))
    return Path(os.path.abspath(Path(path).expanduser()))


def default_download_cache_dir() -> Path:
    return app_data_dir() / DOWNLOADS_DIR_NAME


def resolve_directory(value: str | os.PathLike[str]) -> str:
    """Absolutize ``value`` against the current working directory.

    ``~`` is not expanded; a leading tilde is part of a relative name.
    """

    return os.path.abspath(os.fspath(value))
