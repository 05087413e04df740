"""Configuration file discovery for the command-line entry point."""

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

from core.core_config import load_config
from core.exceptions import ConfigurationError
from core.models.track_models import AppConfig

DEFAULT_CONFIG_FILES = ("config.yaml", "my-config.yaml")


def locate_config_file(explicit_path: str | None = None) -> str:
    """Pick the configuration file: explicit path, then CONFIG_PATH, then the default names.

    Raises:
        ConfigurationError: If nothing is found.

    """
    if explicit_path:
        return explicit_path

    load_dotenv()
    if env_path := os.getenv("CONFIG_PATH"):
        return env_path

    for candidate in DEFAULT_CONFIG_FILES:
        if Path(candidate).exists():
            return candidate

    msg = (
        f"No configuration file found. Checked CONFIG_PATH env var and files: {list(DEFAULT_CONFIG_FILES)}. "
        "Create config.yaml or pass --config."
    )
    raise ConfigurationError(msg)


class Config:
    """Lazily loaded application configuration."""

    def __init__(self, config_path: str | None = None) -> None:
        """Locate the configuration file.

        Raises:
            ConfigurationError: If no configuration file can be located.

        """
        self.config_path = locate_config_file(config_path)
        self._config: AppConfig | None = None

    @property
    def expanded_path(self) -> Path:
        """Config path with ``$VARS`` and ``~`` expanded."""
        return Path(os.path.expandvars(self.config_path)).expanduser()

    @property
    def resolved_path(self) -> str:
        """Absolute path of the configuration file."""
        return str(self.expanded_path.resolve())

    def load(self) -> AppConfig:
        """Load and validate the configuration once.

        Raises:
            ConfigurationError: If the file cannot be read or validated.

        """
        if self._config is None:
            try:
                self._config = load_config(str(self.expanded_path))
            except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
                msg = f"Failed to load configuration from '{self.expanded_path}': {e}"
                raise ConfigurationError(msg, config_path=self.config_path) from e
        return self._config
