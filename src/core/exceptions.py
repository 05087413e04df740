"""Core exceptions for configuration and host write handling.

Kept in one module so config loading, the library adapters and the
update scheduler can share them without circular imports.
"""

from __future__ import annotations


class ConfigurationError(Exception):
    """Raised when configuration loading or parsing fails."""

    def __init__(self, message: str, config_path: str | None = None) -> None:
        """Initialize the configuration error.

        Args:
            message: Error description
            config_path: Path to the config file that caused the error

        """
        super().__init__(message)
        self.config_path = config_path


class LibraryWriteError(Exception):
    """Raised when the host rejects a whole batch write."""

    def __init__(self, message: str, record_ids: list[str] | None = None) -> None:
        """Initialize the write error.

        Args:
            message: Error description
            record_ids: IDs of the records the batch targeted

        """
        super().__init__(message)
        self.record_ids = record_ids or []
