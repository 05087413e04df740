"""Tests for the BpmTools command surface."""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import MagicMock, patch

import allure
import pyperclip
import pytest

from app.bpm_tools import NO_SELECTION_MESSAGE, BpmTools
from core.models.track_models import AveragingMethod, BpmConfig, TrackRecord
from core.tracks.diagnostic_scheduler import DiagnosticPhase
from core.tracks.update_scheduler import UpdatePhase
from metrics.report import ReportSnapshot
from services.library.memory_library import InMemoryTrackLibrary
from services.scheduling import AsyncioRepeatingScheduler
from tests.factories import make_album
from tests.mocks.scheduler_mock import ManualScheduler


def _library() -> InMemoryTrackLibrary:
    return InMemoryTrackLibrary(
        [
            *make_album([120, 122], album="One", id_prefix="one"),
            *make_album([90, 100, 140], album="Two", id_prefix="two"),
        ]
    )


class _CrashingLibrary(InMemoryTrackLibrary):
    """Host whose every write fails with an unexpected error."""

    def write_batch(self, records: list[TrackRecord], value: float) -> list[TrackRecord]:
        msg = "host went away"
        raise RuntimeError(msg)


def _tools(
    library: InMemoryTrackLibrary,
    scheduler: ManualScheduler | AsyncioRepeatingScheduler,
    config: BpmConfig | None = None,
    **kwargs: object,
) -> BpmTools:
    return BpmTools(
        library,
        scheduler,
        MagicMock(spec=logging.Logger),
        MagicMock(spec=logging.Logger),
        config or BpmConfig(),
        **kwargs,  # type: ignore[arg-type]
    )


@allure.epic("Album BPM Updater")
@allure.feature("Command Surface")
class TestBpmToolsCommands:
    """Tests for starting, cancelling and observing passes."""

    @allure.story("Update")
    @allure.title("Full update runs on the timer with the configured interval")
    def test_full_update(self, manual_scheduler: ManualScheduler) -> None:
        """Starting registers one timer that runs the pass to completion."""
        library = _library()
        tools = _tools(library, manual_scheduler)

        assert tools.start_full_update()
        assert manual_scheduler.intervals() == [0.05]
        assert tools.is_busy

        manual_scheduler.run_until_idle()

        assert not tools.is_busy
        assert tools.update_scheduler.state.phase is UpdatePhase.FINISHED
        assert tools.snapshot().message == "Album BPM Update Finished. Updated Albums: 2"
        assert {r.album_avg_bpm for r in library.records} == {"121", "110"}

    def test_median_toggle(self, manual_scheduler: ManualScheduler) -> None:
        """The median toggle selects the averaging method."""
        library = _library()
        tools = _tools(library, manual_scheduler)

        assert tools.toggle_use_median()
        assert tools.method is AveragingMethod.MEDIAN
        tools.start_full_update()
        manual_scheduler.run_until_idle()

        assert library.get("two-1").album_avg_bpm == "100"

    def test_force_toggle(self, manual_scheduler: ManualScheduler) -> None:
        """Force recalculates albums with a consistent stored average."""
        library = InMemoryTrackLibrary(make_album([100, 110], album_avg_bpm="1"))
        tools = _tools(library, manual_scheduler)

        tools.start_full_update()
        manual_scheduler.run_until_idle()
        assert {r.album_avg_bpm for r in library.records} == {"1"}

        assert tools.toggle_force_recalculate()
        tools.start_full_update()
        manual_scheduler.run_until_idle()
        assert {r.album_avg_bpm for r in library.records} == {"105"}

    def test_explicit_arguments_override_toggles(self, manual_scheduler: ManualScheduler) -> None:
        """Arguments to start_full_update win over the toggles."""
        library = InMemoryTrackLibrary(make_album([90, 100, 140], album_avg_bpm="1"))
        tools = _tools(library, manual_scheduler)

        tools.start_full_update(force_recalculate=True, method=AveragingMethod.MEDIAN)
        manual_scheduler.run_until_idle()

        assert {r.album_avg_bpm for r in library.records} == {"100"}

    @allure.story("Selection")
    @allure.title("Empty selection posts a notice and starts nothing")
    def test_empty_selection(self, manual_scheduler: ManualScheduler) -> None:
        """No selected tracks leaves every pass untouched."""
        listener = MagicMock()
        tools = _tools(_library(), manual_scheduler, on_change=listener)

        assert not tools.start_selection_update()

        assert manual_scheduler.callbacks == {}
        assert tools.update_scheduler.state.phase is UpdatePhase.IDLE
        assert tools.snapshot().message == NO_SELECTION_MESSAGE
        tools.console_logger.warning.assert_called_once_with(NO_SELECTION_MESSAGE)
        listener.assert_called_once()

    def test_selection_update_only_touches_selected_albums(self, manual_scheduler: ManualScheduler) -> None:
        """Only albums of selected tracks are written."""
        library = _library()
        library.select(["two-1", "two-2", "two-3"])
        tools = _tools(library, manual_scheduler)

        assert tools.start_selection_update()
        manual_scheduler.run_until_idle()

        assert library.get("one-1").album_avg_bpm == ""
        assert library.get("two-3").album_avg_bpm == "110"

    def test_second_start_ignored(self, manual_scheduler: ManualScheduler) -> None:
        """Starting while running registers no second timer."""
        tools = _tools(_library(), manual_scheduler)
        assert tools.start_full_update()
        assert not tools.start_full_update()
        assert len(manual_scheduler.callbacks) == 1

    @allure.story("Scan")
    @allure.title("Scan and update run interleaved")
    def test_scan_and_update_interleave(self, manual_scheduler: ManualScheduler) -> None:
        """Both passes tick on their own timers and both finish."""
        tools = _tools(_library(), manual_scheduler, BpmConfig(scan_batch_size=2))

        assert tools.start_scan()
        assert tools.start_full_update()
        assert sorted(manual_scheduler.intervals()) == [0.01, 0.05]

        manual_scheduler.run_until_idle()

        assert tools.diagnostic_scheduler.state.phase is DiagnosticPhase.FINISHED
        assert tools.update_scheduler.state.phase is UpdatePhase.FINISHED
        snapshot = tools.snapshot()
        assert snapshot.total_files == 5
        assert snapshot.albums_written == 2

    def test_scan_message_when_alone(self, manual_scheduler: ManualScheduler) -> None:
        """A scan on its own reports its completion message."""
        tools = _tools(_library(), manual_scheduler)
        tools.start_scan()
        manual_scheduler.run_until_idle()
        assert tools.snapshot().message == "Library scan completed."

    @allure.story("Cancellation")
    @allure.title("Cancel all stops both passes on their next tick")
    def test_cancel_all(self, manual_scheduler: ManualScheduler) -> None:
        """Both passes end CANCELLED and their timers are released."""
        tools = _tools(_library(), manual_scheduler, BpmConfig(scan_batch_size=1))
        tools.start_scan()
        tools.start_full_update()
        manual_scheduler.run_once()

        tools.cancel_all()
        manual_scheduler.run_until_idle()

        assert tools.update_scheduler.state.phase is UpdatePhase.CANCELLED
        assert tools.diagnostic_scheduler.state.phase is DiagnosticPhase.CANCELLED
        assert tools.update_scheduler.state.processed == 1
        assert manual_scheduler.callbacks == {}
        assert tools.snapshot().message == "Cancelled by user."

    def test_on_change_after_every_tick(self, manual_scheduler: ManualScheduler) -> None:
        """The listener sees a snapshot per tick with growing progress."""
        snapshots: list[ReportSnapshot] = []
        tools = _tools(_library(), manual_scheduler, on_change=snapshots.append)

        tools.start_full_update()
        rounds = manual_scheduler.run_until_idle()

        assert len(snapshots) == rounds + 1
        processed = [s.albums_processed for s in snapshots]
        assert processed == sorted(processed)


@pytest.mark.unit
class TestBpmToolsReport:
    """Tests for report text and clipboard."""

    def test_copy_report(self, manual_scheduler: ManualScheduler) -> None:
        """The report text goes to the injected clipboard."""
        clipboard = MagicMock()
        tools = _tools(_library(), manual_scheduler, clipboard=clipboard)

        assert tools.copy_report()

        clipboard.assert_called_once_with(tools.report_text())
        assert tools.report_text().startswith("Library Diagnostic Report")

    def test_copy_report_without_clipboard(self, manual_scheduler: ManualScheduler) -> None:
        """A missing clipboard mechanism is logged, not raised."""
        clipboard = MagicMock(side_effect=pyperclip.PyperclipException("no clipboard"))
        tools = _tools(_library(), manual_scheduler, clipboard=clipboard)

        assert not tools.copy_report()
        tools.error_logger.warning.assert_called_once()

    def test_default_clipboard_is_pyperclip(self, manual_scheduler: ManualScheduler) -> None:
        """pyperclip.copy is used unless another callable is given."""
        assert _tools(_library(), manual_scheduler).clipboard is pyperclip.copy


@pytest.mark.unit
class TestBpmToolsAsync:
    """End-to-end runs on the asyncio scheduler."""

    @pytest.mark.asyncio
    async def test_wait_idle_after_update(self) -> None:
        """wait_idle returns the final snapshot once the pass finishes."""
        library = _library()
        tools = _tools(library, AsyncioRepeatingScheduler(), BpmConfig(update_interval_ms=0, scan_interval_ms=0))

        tools.start_scan()
        tools.start_full_update()
        snapshot = await asyncio.wait_for(tools.wait_idle(), timeout=5)

        assert snapshot.update_phase == "finished"
        assert snapshot.scan_phase == "finished"
        assert snapshot.albums_written == 2
        assert library.get("one-1").album_avg_bpm == "121"

    @pytest.mark.asyncio
    async def test_wait_idle_when_nothing_runs(self) -> None:
        """Idle tools return immediately."""
        tools = _tools(_library(), AsyncioRepeatingScheduler())
        snapshot = await asyncio.wait_for(tools.wait_idle(), timeout=1)
        assert snapshot.message == "Press Scan Library."

    @pytest.mark.asyncio
    async def test_wait_idle_when_host_write_raises(self) -> None:
        """A host error in write_batch fails the albums and the pass still finishes."""
        library = _CrashingLibrary(_library().records)
        tools = _tools(library, AsyncioRepeatingScheduler(), BpmConfig(update_interval_ms=0))

        tools.start_full_update()
        snapshot = await asyncio.wait_for(tools.wait_idle(), timeout=1.0)

        assert snapshot.update_phase == "finished"
        assert snapshot.albums_written == 0
        assert snapshot.skipped_files == 5

    @pytest.mark.asyncio
    async def test_wait_idle_when_tick_raises(self) -> None:
        """An error escaping a tick stops the pass and releases wait_idle."""
        tools = _tools(_library(), AsyncioRepeatingScheduler(), BpmConfig(update_interval_ms=0, scan_interval_ms=0))

        with (
            patch.object(tools.update_scheduler, "tick", side_effect=RuntimeError("update broke")),
            patch.object(tools.diagnostic_scheduler, "tick", side_effect=RuntimeError("scan broke")),
        ):
            tools.start_scan()
            tools.start_full_update()
            snapshot = await asyncio.wait_for(tools.wait_idle(), timeout=1.0)

        assert snapshot.update_phase == "cancelled"
        assert snapshot.scan_phase == "cancelled"
        assert snapshot.message in {"Album BPM update stopped: update broke", "Library scan stopped: scan broke"}
        assert not tools.is_busy
        assert tools.error_logger.exception.call_count == 2
