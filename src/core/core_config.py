"""YAML configuration loading for Album BPM Updater.

The file is read with PyYAML, ``${VAR}`` / ``${VAR:-default}`` references
and ``~`` are expanded (``.env`` is honoured via python-dotenv), and the
result is validated into ``AppConfig``.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from core.models.track_models import AppConfig

ConfigValue = dict[str, Any] | list[Any] | str | int | float | bool | None

logger = logging.getLogger("config")
# Handlers are attached later by the main logger setup
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

MAX_CONFIG_SIZE = 1024 * 1024
CONFIG_SUFFIXES = (".yaml", ".yml")
_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}")


def _expand_string(value: str) -> str:
    expanded = _ENV_REFERENCE.sub(lambda m: os.getenv(m.group("name"), m.group("default") or ""), value)
    if expanded.startswith("~"):
        expanded = str(Path(expanded).expanduser())
    return expanded


def resolve_env_vars(config: ConfigValue) -> ConfigValue:
    """Expand environment references and ``~`` in every string of a parsed config.

    Unset variables without a default expand to an empty string.
    """
    if isinstance(config, dict):
        return {str(key): resolve_env_vars(value) for key, value in config.items()}
    if isinstance(config, list):
        return [resolve_env_vars(item) for item in config]
    if isinstance(config, str):
        return _expand_string(config)
    return config


def _check_config_file(config_path: str) -> Path:
    """Return the resolved config file path.

    Raises:
        FileNotFoundError: If the path is missing or not a regular file.
        ValueError: If the extension is wrong or the file is too large.

    """
    path = Path(config_path)
    if not path.is_file():
        msg = f"Config file not found at the specified path: {config_path}"
        raise FileNotFoundError(msg)
    if path.suffix.lower() not in CONFIG_SUFFIXES:
        msg = "Configuration file must have a .yaml or .yml extension"
        raise ValueError(msg)
    if path.stat().st_size > MAX_CONFIG_SIZE:
        msg = f"Config file {path} is too large (max {MAX_CONFIG_SIZE} bytes)"
        raise ValueError(msg)
    return path.resolve()


def load_config(config_path: str) -> AppConfig:
    """Load, expand and validate a YAML configuration file.

    Args:
        config_path: Path to the configuration YAML file.

    Returns:
        Validated AppConfig.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the file is rejected or fails validation.
        TypeError: If the document is not a mapping.
        yaml.YAMLError: If the YAML cannot be parsed.

    """
    if load_dotenv():
        logger.info(".env file found and loaded")

    try:
        path = _check_config_file(config_path)
        logger.info("Loading config from: %s", path)
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            msg = f"Configuration in {path} must be a mapping, got {type(raw).__name__}"
            raise TypeError(msg)
        try:
            config = AppConfig(**resolve_env_vars(raw))
        except ValidationError as e:
            msg = f"Configuration validation failed:\n{format_pydantic_errors(e)}"
            raise ValueError(msg) from e
    except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
        logger.critical("Configuration loading failed: %s", e)
        raise

    logger.info("Configuration loaded: library %s", config.library_csv_path)
    return config


def format_pydantic_errors(error: ValidationError) -> str:
    """Render validation errors one per line as ``field.path: message``."""
    lines = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"])
        if err["type"] == "missing":
            lines.append(f"{location}: Missing required field")
        else:
            lines.append(f"{location}: {err['msg']} (type: {err['type']})")
    return "\n".join(lines)
