"""Album BPM tools command surface.

``BpmTools`` is what a host UI (or the CLI) drives: it starts and cancels
the update and diagnostic passes, holds the force/median toggles, ticks
both schedulers on a repeating timer and keeps a fresh report snapshot
after every tick.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pyperclip

from core.logger import LogFormat as LF
from core.models.track_models import AveragingMethod, LibrarySource
from core.tracks.diagnostic_scheduler import DiagnosticScheduler
from core.tracks.update_scheduler import UpdateScheduler
from metrics.report import ReportSnapshot, build_snapshot, render_report_text

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable, Sequence

    from core.models.protocols import RepeatingSchedulerProtocol, TrackLibraryProtocol
    from core.models.track_models import BpmConfig, TrackRecord

NO_SELECTION_MESSAGE = "No tracks selected."


class BpmTools:
    """Start, cancel and observe album BPM passes."""

    def __init__(
        self,
        library: TrackLibraryProtocol,
        scheduler: RepeatingSchedulerProtocol,
        console_logger: logging.Logger,
        error_logger: logging.Logger,
        config: BpmConfig,
        *,
        dry_run: bool = False,
        clipboard: Callable[[str], Any] | None = None,
        on_change: Callable[[ReportSnapshot], Any] | None = None,
    ) -> None:
        """Initialize the command surface.

        Args:
            library: Host track store
            scheduler: Cooperative repeating timer that drives the ticks
            console_logger: Logger for console output
            error_logger: Logger for error messages
            config: BPM settings; also the initial toggle values
            dry_run: Whether writes are only being simulated
            clipboard: Callable receiving the report text (pyperclip.copy by default)
            on_change: Listener notified with a fresh snapshot after every tick

        """
        self.library = library
        self.scheduler = scheduler
        self.console_logger = console_logger
        self.error_logger = error_logger
        self.config = config
        self.clipboard = clipboard or pyperclip.copy
        self.on_change = on_change

        self.force_recalculate = config.force_recalculate
        self.use_median = config.use_median

        self.update_scheduler = UpdateScheduler(library, console_logger, error_logger, config, dry_run)
        self.diagnostic_scheduler = DiagnosticScheduler(console_logger, error_logger, config, read=library.read_field)

        self._update_handle: Any = None
        self._scan_handle: Any = None
        self._message: str | None = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._snapshot = self._build_snapshot()

    # ------------------------------------------------------------------
    # Toggles
    # ------------------------------------------------------------------
    @property
    def method(self) -> AveragingMethod:
        """Averaging method selected by the median toggle."""
        return AveragingMethod.MEDIAN if self.use_median else AveragingMethod.MEAN

    def toggle_force_recalculate(self) -> bool:
        """Flip the force toggle and return the new value."""
        self.force_recalculate = not self.force_recalculate
        return self.force_recalculate

    def toggle_use_median(self) -> bool:
        """Flip the median toggle and return the new value."""
        self.use_median = not self.use_median
        return self.use_median

    @property
    def is_busy(self) -> bool:
        """True while either pass is running."""
        return self.update_scheduler.state.is_active or self.diagnostic_scheduler.state.is_active

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def start_full_update(
        self,
        force_recalculate: bool | None = None,
        method: AveragingMethod | None = None,
    ) -> bool:
        """Start an update pass over the whole library.

        Returns:
            True if a new pass started.

        """
        return self._start_update(self.library.enumerate_library(), LibrarySource.FULL_LIBRARY, force_recalculate, method)

    def start_selection_update(
        self,
        force_recalculate: bool | None = None,
        method: AveragingMethod | None = None,
    ) -> bool:
        """Start an update pass over the selected tracks only.

        An empty selection leaves every pass untouched and only posts a notice.

        Returns:
            True if a new pass started.

        """
        records = self.library.enumerate_selection()
        if not records:
            self.console_logger.warning(NO_SELECTION_MESSAGE)
            self._message = NO_SELECTION_MESSAGE
            self._refresh()
            return False
        return self._start_update(records, LibrarySource.SELECTION, force_recalculate, method)

    def start_scan(self) -> bool:
        """Start a diagnostic scan of the whole library.

        Returns:
            True if a new scan started.

        """
        if not self.diagnostic_scheduler.start(self.library.enumerate_library()):
            return False
        self._message = None
        self._scan_handle = self.scheduler.schedule_repeating(self._scan_tick, self.config.scan_interval_ms / 1000)
        self._idle.clear()
        self._refresh()
        return True

    def cancel_all(self) -> None:
        """Request cancellation of both passes; each stops on its next tick."""
        self.update_scheduler.cancel()
        self.diagnostic_scheduler.cancel()
        self.console_logger.info("Cancellation requested")

    # ------------------------------------------------------------------
    # Report
    # ------------------------------------------------------------------
    def snapshot(self) -> ReportSnapshot:
        """Return the latest report snapshot."""
        return self._snapshot

    def report_text(self) -> str:
        """Render the latest snapshot as plain text."""
        return render_report_text(self._snapshot)

    def copy_report(self) -> bool:
        """Copy the report text to the clipboard.

        Returns:
            True if the clipboard accepted the text.

        """
        try:
            self.clipboard(self.report_text())
        except pyperclip.PyperclipException as e:
            self.error_logger.warning("Could not copy report to clipboard: %s", e)
            return False
        self.console_logger.info("Report copied to clipboard")
        return True

    async def wait_idle(self) -> ReportSnapshot:
        """Wait until no pass is running and return the final snapshot."""
        await self._idle.wait()
        return self._snapshot

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _start_update(
        self,
        records: Sequence[TrackRecord],
        source: LibrarySource,
        force_recalculate: bool | None,
        method: AveragingMethod | None,
    ) -> bool:
        started = self.update_scheduler.start(
            records,
            force_recalculate=self.force_recalculate if force_recalculate is None else force_recalculate,
            method=self.method if method is None else method,
            source=source,
        )
        if not started:
            return False
        self._message = None
        self._update_handle = self.scheduler.schedule_repeating(self._update_tick, self.config.update_interval_ms / 1000)
        self._idle.clear()
        self._refresh()
        return True

    def _update_tick(self) -> None:
        try:
            state = self.update_scheduler.tick()
        except Exception as e:
            self.error_logger.exception("Album BPM update tick failed")
            self.update_scheduler.abort(str(e))
            state = self.update_scheduler.state
        if not state.is_active and self._update_handle is not None:
            self.scheduler.cancel(self._update_handle)
            self._update_handle = None
        self._message = state.message
        self._after_tick()

    def _scan_tick(self) -> None:
        try:
            state = self.diagnostic_scheduler.tick()
        except Exception as e:
            self.error_logger.exception("Library scan tick failed")
            self.diagnostic_scheduler.abort(str(e))
            state = self.diagnostic_scheduler.state
        if not state.is_active and self._scan_handle is not None:
            self.scheduler.cancel(self._scan_handle)
            self._scan_handle = None
        # An update pass in progress owns the status line
        if not self.update_scheduler.state.is_active:
            self._message = state.message
        self._after_tick()

    def _after_tick(self) -> None:
        snapshot = self._refresh()
        if not self.is_busy:
            self.console_logger.debug("All passes idle: %s", LF.entity(snapshot.message))
            self._idle.set()

    def _build_snapshot(self) -> ReportSnapshot:
        return build_snapshot(
            self.diagnostic_scheduler.state,
            self.update_scheduler.state,
            cutoff=self.config.cutoff,
            message=self._message,
        )

    def _refresh(self) -> ReportSnapshot:
        self._snapshot = self._build_snapshot()
        if self.on_change is not None:
            self.on_change(self._snapshot)
        return self._snapshot
