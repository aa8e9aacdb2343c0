"""Read and write the configuration document as UTF-8 JSON."""

from __future__ import annotations

import json
import os
from pathlib import Path

from pydantic import ValidationError

from .config_schema import ConfigurationModel
from .errors import ConfigError, ConfigNotFoundError, ConfigParseError, ConfigWriteError
from .logging_utils import get_logger, log_context

LOGGER = get_logger(__name__, component='FileStore')

JSON_INDENT = 4


def load(path: str | os.PathLike[str]) -> ConfigurationModel:
    """Load the configuration stored at ``path``.

    Raises :class:`ConfigNotFoundError` when the file or its directory is
    missing and :class:`ConfigParseError` when the content is not a valid
    configuration document. Any other read failure, such as a directory or
    an unreadable file at ``path``, is raised as :class:`ConfigError`. A blank
    file or a literal ``null`` yields the default model.
    """

    config_path = Path(path)
    try:
        # utf-8-sig tolerates a BOM written by other tools
        with config_path.open("r", encoding="utf-8-sig") as handle:
            raw_text = handle.read()
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise ConfigNotFoundError(
            f"Configuration file not found: {config_path}", path=config_path
        ) from exc
    except UnicodeDecodeError as exc:
        raise ConfigParseError(
            f"Configuration file is not valid UTF-8: {config_path}", path=config_path
        ) from exc
    except OSError as exc:
        LOGGER.error(
            log_context(
                "Configuration file could not be read.",
                event="config.load.unreadable",
                path=str(config_path),
                error=str(exc),
            )
        )
        raise ConfigError(
            f"Unable to read configuration file {config_path}: {exc}", path=config_path
        ) from exc

    if not raw_text.strip():
        LOGGER.warning(
            log_context(
                "Configuration file is empty; using defaults.",
                event="config.load.empty",
                path=str(config_path),
            )
        )
        return ConfigurationModel()

    try:
        payload = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        LOGGER.error(
            log_context(
                "Error decoding configuration file.",
                event="config.load.invalid_json",
                path=str(config_path),
                error=str(exc),
            )
        )
        raise ConfigParseError(
            f"Configuration file {config_path} is not valid JSON: {exc}", path=config_path
        ) from exc

    if payload is None:
        return ConfigurationModel()
    if not isinstance(payload, dict):
        raise ConfigParseError(
            f"Configuration file {config_path} must contain a JSON object, "
            f"got {type(payload).__name__}",
            path=config_path,
        )

    try:
        model = ConfigurationModel.model_validate(payload)
    except ValidationError as exc:
        LOGGER.error(
            log_context(
                "Configuration file has an unexpected shape.",
                event="config.load.invalid_shape",
                path=str(config_path),
                errors=exc.error_count(),
            )
        )
        raise ConfigParseError(
            f"Configuration file {config_path} has an unexpected shape: {exc}", path=config_path
        ) from exc

    LOGGER.info(
        log_context(
            "Configuration loaded from disk.",
            event="config.load.success",
            path=str(config_path),
            instances=len(model.ksp_instances),
            auth_hosts=len(model.auth_tokens),
        )
    )
    return model


def save(path: str | os.PathLike[str], model: ConfigurationModel) -> None:
    """Serialize ``model`` to ``path``, replacing the file atomically.

    The parent directory is created when missing. Any failure is raised as
    :class:`ConfigWriteError` and leaves the previous file untouched.
    """

    config_path = Path(path)
    try:
        document = model.to_document()
    except (TypeError, ValueError) as exc:
        raise ConfigWriteError(
            f"Configuration cannot be serialized: {exc}", path=config_path
        ) from exc

    temp_path = config_path.with_name(config_path.name + ".tmp")
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with temp_path.open("w", encoding="utf-8") as handle:
            json.dump(document, handle, indent=JSON_INDENT, ensure_ascii=False)
        os.replace(temp_path, config_path)
    except OSError as exc:
        LOGGER.error(
            log_context(
                "Error saving configuration file.",
                event="config.save.failure",
                path=str(config_path),
                error=str(exc),
            ),
            exc_info=True,
        )
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError as cleanup_exc:  # pragma: no cover
                LOGGER.warning(
                    log_context(
                        "Failed to clean up temporary configuration file.",
                        event="config.save.cleanup_failed",
                        path=str(temp_path),
                        error=str(cleanup_exc),
                    )
                )
        raise ConfigWriteError(
            f"Unable to write configuration file {config_path}: {exc}", path=config_path
        ) from exc

    LOGGER.debug(
        log_context(
            "Configuration saved to disk.",
            event="config.save.success",
            path=str(config_path),
        )
    )


__all__ = ["JSON_INDENT", "load", "save"]
