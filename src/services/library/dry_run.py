"""Dry run track library.

Wraps a real host so that an update pass can be rehearsed: reads go to the
real library, writes are logged but never applied.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.logger import LogFormat as LF

if TYPE_CHECKING:
    import logging
    from collections.abc import Sequence

    from core.models.protocols import TrackLibraryProtocol
    from core.models.track_models import TrackField, TrackRecord


class DryRunTrackLibrary:
    """Track library that logs write actions instead of modifying tracks."""

    def __init__(
        self,
        real_library: TrackLibraryProtocol,
        console_logger: logging.Logger,
        error_logger: logging.Logger,
    ) -> None:
        """Initialize the DryRunTrackLibrary.

        Args:
            real_library: The real library reads are delegated to
            console_logger: Logger for console output
            error_logger: Logger for error output

        """
        self._real_library = real_library
        self.console_logger = console_logger
        self.error_logger = error_logger

    def enumerate_library(self) -> Sequence[TrackRecord]:
        """Delegate to the real library."""
        return self._real_library.enumerate_library()

    def enumerate_selection(self) -> Sequence[TrackRecord]:
        """Delegate to the real library."""
        return self._real_library.enumerate_selection()

    def read_field(self, record: TrackRecord, field: TrackField | str) -> str:
        """Delegate to the real library."""
        return self._real_library.read_field(record, field)

    def write_batch(self, records: Sequence[TrackRecord], value: float) -> list[TrackRecord]:
        """Log the write without touching any track."""
        self.console_logger.info(
            "DRY-RUN: Would set album BPM %s on %s tracks",
            LF.number(value),
            LF.number(len(records)),
        )
        return []

    def flush(self) -> list[TrackRecord]:
        """Nothing to persist; the real library is never flushed."""
        return []
