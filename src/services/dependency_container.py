"""Dependency Injection Container Module.

Builds the services an album BPM run needs from one validated config:
the track library (CSV, wrapped for dry runs), the repeating scheduler
and the ``BpmTools`` command surface. Also owns the logging listener so
shutdown can flush the file log.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from app.bpm_tools import BpmTools
from core.logger import LogFormat
from services.library import CsvTrackLibrary, DryRunTrackLibrary
from services.scheduling import AsyncioRepeatingScheduler

if TYPE_CHECKING:
    import logging

    from core.logger import SafeQueueListener
    from core.models.protocols import TrackLibraryProtocol
    from core.models.track_models import AppConfig, SelectionConfig


class DependencyContainer:
    """Dependency injection container for the application."""

    def __init__(
        self,
        config: AppConfig,
        console_logger: logging.Logger,
        error_logger: logging.Logger,
        *,
        config_path: str | None = None,
        logging_listener: SafeQueueListener | None = None,
        dry_run: bool = False,
    ) -> None:
        """Initialize the dependency container.

        Args:
            config: Validated application configuration
            console_logger: Logger for console output
            error_logger: Logger for error messages
            config_path: Resolved path of the configuration file
            logging_listener: Optional queue listener for logging
            dry_run: Whether to run in dry-run mode (no changes made)

        """
        self._config = config
        self._console_logger = console_logger
        self._error_logger = error_logger
        self._config_path = config_path
        self._listener = logging_listener
        self._dry_run = dry_run or config.dry_run

        self._library: TrackLibraryProtocol | None = None
        self._scheduler: AsyncioRepeatingScheduler | None = None
        self._bpm_tools: BpmTools | None = None

    @property
    def dry_run(self) -> bool:
        """Get the dry run status."""
        return self._dry_run

    @property
    def config(self) -> AppConfig:
        """Get the application configuration."""
        return self._config

    @property
    def config_path(self) -> Path | None:
        """Get the resolved configuration file path."""
        return Path(self._config_path) if self._config_path else None

    @property
    def console_logger(self) -> logging.Logger:
        """Get the console logger."""
        return self._console_logger

    @property
    def error_logger(self) -> logging.Logger:
        """Get the error logger."""
        return self._error_logger

    @property
    def library(self) -> TrackLibraryProtocol:
        """Get the track library."""
        if self._library is None:
            msg = "Track library not initialized"
            raise RuntimeError(msg)
        return self._library

    @property
    def scheduler(self) -> AsyncioRepeatingScheduler:
        """Get the repeating scheduler."""
        if self._scheduler is None:
            msg = "Scheduler not initialized"
            raise RuntimeError(msg)
        return self._scheduler

    @property
    def bpm_tools(self) -> BpmTools:
        """Get the BPM tools command surface."""
        if self._bpm_tools is None:
            msg = "BPM tools not initialized"
            raise RuntimeError(msg)
        return self._bpm_tools

    def _initialize_library(self, selection: SelectionConfig) -> None:
        """Create the CSV library, wrapped for dry runs."""
        real_library = CsvTrackLibrary(
            self._config.library_csv_path,
            selection=selection,
            console_logger=self._console_logger,
            error_logger=self._error_logger,
            target_field=self._config.bpm.target_field,
        )
        if self._dry_run:
            self._library = DryRunTrackLibrary(real_library, self._console_logger, self._error_logger)
            self._console_logger.info("Dry run enabled - using %s", LogFormat.entity("DryRunTrackLibrary"))
        else:
            self._library = real_library

    def initialize(self, selection: SelectionConfig | None = None) -> None:
        """Initialize all services.

        Args:
            selection: Selection overriding the config's ``selection`` section

        """
        self._console_logger.debug("Initializing services...")
        self._initialize_library(selection or self._config.selection)
        self._scheduler = AsyncioRepeatingScheduler(error_logger=self._error_logger)
        self._bpm_tools = BpmTools(
            self.library,
            self._scheduler,
            self._console_logger,
            self._error_logger,
            self._config.bpm,
            dry_run=self._dry_run,
        )
        self._console_logger.debug("All services initialized successfully")

    def close(self) -> None:
        """Cancel any timers still registered."""
        if self._scheduler is not None:
            self._scheduler.cancel_all()
        self._console_logger.debug("%s closed.", LogFormat.entity("DependencyContainer"))

    def shutdown(self) -> None:
        """Stop the logging listener."""
        if self._listener is not None:
            self._console_logger.debug("Stopping logging listener...")
            self._listener.stop()
            self._listener = None
