"""Incremental library diagnostics.

Scans the library in fixed-size batches, one batch per ``tick()``, keeping
running tallies of BPM data quality. Tallies are readable at every step,
so a display can show the scan filling in live.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from core.logger import LogFormat as LF
from core.models.track_models import TrackField, read_field
from core.tracks.bpm_classifier import DEFAULT_BPM_CUTOFF, BpmStatus, classify_bpm, is_range_candidate
from core.tracks.grouping import build_group_key

from .track_base import BaseProcessor

if TYPE_CHECKING:
    import logging
    from collections.abc import Sequence

    from core.models.protocols import FieldReader
    from core.models.track_models import BpmConfig, TrackRecord


class DiagnosticPhase(StrEnum):
    """Lifecycle of a diagnostic scan."""

    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"
    CANCELLED = "cancelled"


@dataclass
class DiagnosticTally:
    """Running data-quality counters over every scanned record."""

    total_files: int = 0
    album_keys: set[str] = field(default_factory=set)
    missing_bpm: int = 0
    zero_bpm: int = 0
    over_cutoff_bpm: int = 0
    missing_existing_avg: int = 0
    min_bpm: float | None = None
    max_bpm: float | None = None
    album_consistency: dict[str, set[str]] = field(default_factory=dict)
    inconsistent_album_count: int = 0

    @property
    def total_albums(self) -> int:
        """Number of distinct album keys seen so far."""
        return len(self.album_keys)

    def observe(
        self,
        record: TrackRecord,
        *,
        cutoff: float = DEFAULT_BPM_CUTOFF,
        exclude_over_cutoff: bool = True,
        average_field: str = TrackField.ALBUM_AVG_BPM,
        read: FieldReader = read_field,
    ) -> None:
        """Fold one record into the counters.

        ``average_field`` is the tag the stored album average lives in.
        """
        key = build_group_key(record, read)
        self.total_files += 1
        self.album_keys.add(key)

        classification = classify_bpm(read(record, TrackField.BPM), cutoff)
        if classification.status is BpmStatus.MISSING:
            self.missing_bpm += 1
        elif classification.status is BpmStatus.ZERO:
            self.zero_bpm += 1
        elif classification.status is BpmStatus.OVER_CUTOFF:
            self.over_cutoff_bpm += 1

        if is_range_candidate(classification, exclude_over_cutoff) and classification.value is not None:
            value = classification.value
            if self.min_bpm is None or value < self.min_bpm:
                self.min_bpm = value
            if self.max_bpm is None or value > self.max_bpm:
                self.max_bpm = value

        existing = read(record, average_field)
        seen = self.album_consistency.setdefault(key, set())
        if existing:
            seen.add(existing)
        else:
            self.missing_existing_avg += 1

    def finalize(self) -> None:
        """Derive the number of albums carrying more than one stored average."""
        self.inconsistent_album_count = sum(1 for values in self.album_consistency.values() if len(values) > 1)


@dataclass
class DiagnosticState:
    """State of one diagnostic scan, owned by the scheduler that created it."""

    phase: DiagnosticPhase = DiagnosticPhase.IDLE
    records: Sequence[TrackRecord] = ()
    cursor: int = 0
    tally: DiagnosticTally = field(default_factory=DiagnosticTally)
    cancel_requested: bool = False
    message: str = ""

    @property
    def total(self) -> int:
        """Number of records in this scan."""
        return len(self.records)

    @property
    def is_active(self) -> bool:
        """True while the scan still has ticks to run."""
        return self.phase is DiagnosticPhase.RUNNING


class DiagnosticScheduler(BaseProcessor):
    """Steps through the library in batches, updating a DiagnosticTally."""

    def __init__(
        self,
        console_logger: logging.Logger,
        error_logger: logging.Logger,
        config: BpmConfig,
        read: FieldReader = read_field,
    ) -> None:
        """Initialize the diagnostic scheduler.

        Args:
            console_logger: Logger for console output
            error_logger: Logger for error messages
            config: BPM settings
            read: Field reader, usually the host's ``read_field``

        """
        super().__init__(console_logger, error_logger, config)
        self._read = read
        self._state = DiagnosticState()

    @property
    def state(self) -> DiagnosticState:
        """Current scan state."""
        return self._state

    @property
    def batch_size(self) -> int:
        """Records processed per tick."""
        return self.config.scan_batch_size

    def start(self, records: Sequence[TrackRecord]) -> bool:
        """Reset the tally and enter RUNNING.

        Returns:
            False (and no state change) if a scan is already running.

        """
        if self._state.is_active:
            self.console_logger.debug("Library scan already running; start request ignored")
            return False

        self._state = DiagnosticState(
            phase=DiagnosticPhase.RUNNING,
            records=records,
            message="Scanning library...",
        )
        self.console_logger.info("Scanning %s tracks in batches of %d", LF.number(len(records)), self.batch_size)
        return True

    def cancel(self) -> None:
        """Request the scan to stop; the partial tally is kept."""
        if self._state.is_active:
            self._state.cancel_requested = True

    def abort(self, reason: str) -> None:
        """End a running scan immediately, keeping the partial tally."""
        if self._state.is_active:
            self._state.phase = DiagnosticPhase.CANCELLED
            self._state.message = f"Library scan stopped: {reason}"

    def tick(self) -> DiagnosticState:
        """Process one batch and return the resulting state."""
        state = self._state
        if not state.is_active:
            return state

        if state.cancel_requested:
            state.phase = DiagnosticPhase.CANCELLED
            state.message = "Cancelled by user."
            self.console_logger.info("Library scan cancelled at %d / %d tracks", state.cursor, state.total)
            return state

        end = min(state.cursor + self.batch_size, state.total)
        for record in state.records[state.cursor : end]:
            state.tally.observe(
                record,
                cutoff=self.config.cutoff,
                exclude_over_cutoff=self.config.exclude_over_cutoff_from_average,
                average_field=self.config.target_field,
                read=self._read,
            )
        state.cursor = end

        if state.cursor >= state.total:
            state.tally.finalize()
            state.phase = DiagnosticPhase.FINISHED
            state.message = "Library scan completed."
            self.console_logger.info(
                "%s %d tracks, %d albums, %d inconsistent",
                LF.success("Library scan completed:"),
                state.tally.total_files,
                state.tally.total_albums,
                state.tally.inconsistent_album_count,
            )
        return state
