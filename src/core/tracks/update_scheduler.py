"""Incremental album BPM update.

An update pass aggregates the chosen records into albums up front, then
writes one album per ``tick()``. Ticks are driven by a cooperative
repeating timer, so the host stays responsive and a pass can be cancelled
between any two albums. Already written albums are never rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from core.exceptions import LibraryWriteError
from core.logger import LogFormat as LF
from core.models.track_models import AveragingMethod, LibrarySource
from core.tracks.album_aggregator import AlbumAccumulator, build_album_map
from core.tracks.average_calculator import compute_album_average

from .track_base import BaseProcessor

if TYPE_CHECKING:
    import logging
    from collections.abc import Iterable

    from core.models.protocols import TrackLibraryProtocol
    from core.models.track_models import BpmConfig, TrackRecord


class UpdatePhase(StrEnum):
    """Lifecycle of an update pass."""

    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class UpdateProgress:
    """Progress published after every tick."""

    processed: int
    total: int
    current_album: str
    current_average: float | None


@dataclass
class UpdateState:
    """State of one update pass, owned by the scheduler that created it."""

    phase: UpdatePhase = UpdatePhase.IDLE
    source: LibrarySource = LibrarySource.FULL_LIBRARY
    method: AveragingMethod = AveragingMethod.MEAN
    force_recalculate: bool = False
    albums: list[AlbumAccumulator] = field(default_factory=list)
    cursor: int = 0
    albums_written: int = 0
    skipped_albums: int = 0
    failed_albums: int = 0
    skipped_records: list[str] = field(default_factory=list)
    current_album: str = "Idle"
    current_average: float | None = None
    cancel_requested: bool = False
    message: str = ""

    @property
    def total(self) -> int:
        """Number of albums in this pass."""
        return len(self.albums)

    @property
    def processed(self) -> int:
        """Number of albums consumed so far, written or not."""
        return self.cursor

    @property
    def is_active(self) -> bool:
        """True while the pass still has ticks to run."""
        return self.phase is UpdatePhase.RUNNING

    @property
    def progress(self) -> UpdateProgress:
        """Snapshot of the published progress tuple."""
        return UpdateProgress(self.processed, self.total, self.current_album, self.current_average)


def should_skip_album(album: AlbumAccumulator, *, force_recalculate: bool, fill_missing_averages: bool) -> bool:
    """Decide whether an album keeps its stored average.

    Forced passes and inconsistent albums are always recalculated. An album
    with no stored average at all is recalculated only when
    ``fill_missing_averages`` is on; otherwise it is treated like a
    consistent one and skipped.
    """
    if force_recalculate or album.is_inconsistent:
        return False
    return not (fill_missing_averages and not album.has_existing)


class UpdateScheduler(BaseProcessor):
    """Steps through an album list, stamping one album average per tick."""

    def __init__(
        self,
        library: TrackLibraryProtocol,
        console_logger: logging.Logger,
        error_logger: logging.Logger,
        config: BpmConfig,
        dry_run: bool = False,
    ) -> None:
        """Initialize the update scheduler.

        Args:
            library: Host track store used for writes
            console_logger: Logger for console output
            error_logger: Logger for error messages
            config: BPM settings
            dry_run: Whether writes are only being simulated

        """
        super().__init__(console_logger, error_logger, config, dry_run)
        self.library = library
        self._state = UpdateState()

    @property
    def state(self) -> UpdateState:
        """Current pass state."""
        return self._state

    def start(
        self,
        records: Iterable[TrackRecord],
        *,
        force_recalculate: bool,
        method: AveragingMethod,
        source: LibrarySource = LibrarySource.FULL_LIBRARY,
    ) -> bool:
        """Build the album list and enter RUNNING.

        Returns:
            False (and no state change) if a pass is already running.

        """
        if self._state.is_active:
            self.console_logger.debug("Update already running; start request ignored")
            return False

        albums = build_album_map(
            records,
            cutoff=self.config.cutoff,
            exclude_over_cutoff=self.config.exclude_over_cutoff_from_average,
            average_field=self.config.target_field,
            read=self.library.read_field,
            logger=self.error_logger,
        )
        self._state = UpdateState(
            phase=UpdatePhase.RUNNING,
            source=LibrarySource(source),
            method=AveragingMethod(method),
            force_recalculate=force_recalculate,
            albums=list(albums.values()),
            current_album="Initializing...",
            message="Updating full library..." if source == LibrarySource.FULL_LIBRARY else "Processing selected albums...",
        )
        self.console_logger.info(
            "Starting album BPM update: %s albums (%s, method=%s, force=%s)",
            LF.number(self._state.total),
            source,
            self._state.method,
            force_recalculate,
        )
        return True

    def cancel(self) -> None:
        """Request cancellation; honoured at the top of the next tick."""
        if self._state.is_active:
            self._state.cancel_requested = True

    def abort(self, reason: str) -> None:
        """End a running pass immediately; stamped values are still persisted."""
        state = self._state
        if not state.is_active:
            return
        state.phase = UpdatePhase.CANCELLED
        state.message = f"Album BPM update stopped: {reason}"
        self._flush()

    def tick(self) -> UpdateState:
        """Run one step of the pass and return the resulting state."""
        state = self._state
        if not state.is_active:
            return state

        if state.cancel_requested:
            state.phase = UpdatePhase.CANCELLED
            state.message = "Cancelled by user."
            self._flush()
            self.console_logger.info("Album BPM update cancelled after %d / %d albums", state.processed, state.total)
            return state

        if state.cursor >= state.total:
            state.phase = UpdatePhase.FINISHED
            state.message = f"Album BPM Update Finished. Updated Albums: {state.albums_written}"
            self._flush()
            self.console_logger.info(
                "%s %d albums written, %d skipped, %d failed, %d records skipped",
                LF.success("Album BPM update finished:"),
                state.albums_written,
                state.skipped_albums,
                state.failed_albums,
                len(state.skipped_records),
            )
            return state

        album = state.albums[state.cursor]
        state.cursor += 1
        state.current_album = album.label
        state.current_average = None

        if should_skip_album(
            album,
            force_recalculate=state.force_recalculate,
            fill_missing_averages=self.config.fill_missing_averages,
        ):
            state.skipped_albums += 1
            state.message = f"Album {state.cursor} / {state.total} - {album.label} (Skipped)"
            return state

        average = compute_album_average(
            album,
            state.method,
            cutoff=self.config.cutoff,
            exclude_over_cutoff=self.config.exclude_over_cutoff_from_average,
            read=self.library.read_field,
        )
        if average is None:
            state.failed_albums += 1
            state.skipped_records.extend(record.id for record in album.members)
            state.message = f"Album {state.cursor} / {state.total} - {album.label} (No usable BPM)"
            self.console_logger.warning("No averageable BPM values for album %s; skipped", LF.entity(album.key))
            return state

        state.current_average = average
        self._write_album(album, average)
        state.message = f"Album {state.cursor} / {state.total} - {album.label} (Avg: {average})"
        return state

    def _write_album(self, album: AlbumAccumulator, average: float) -> None:
        """Stamp the average onto every member, recording failures as skipped."""
        state = self._state
        self._record_dry_run_action(
            "album_avg_bpm",
            {"album": album.key, "value": average, "tracks": len(album.members)},
        )

        try:
            failed = list(self.library.write_batch(album.members, average))
        except LibraryWriteError as e:
            self.error_logger.error("Failed to write album BPM for %s: %s", album.key, e)
            failed = list(album.members)
        except Exception:
            self.error_logger.exception("Host error writing album BPM for %s; album skipped", album.key)
            failed = list(album.members)

        if failed:
            state.skipped_records.extend(record.id for record in failed)
            self.error_logger.warning("%d of %d tracks not written for album %s", len(failed), len(album.members), album.key)

        if len(failed) < len(album.members):
            state.albums_written += 1
            self.console_logger.debug("Stamped %s on %s", LF.number(average), LF.entity(album.key))

    def _flush(self) -> None:
        """Persist held-back writes once the pass has ended."""
        state = self._state
        try:
            failed = list(self.library.flush())
        except Exception:
            self.error_logger.exception("Host error persisting album BPM values")
            return
        if failed:
            state.skipped_records.extend(record.id for record in failed)
            self.error_logger.warning("%d stamped tracks could not be persisted", len(failed))
