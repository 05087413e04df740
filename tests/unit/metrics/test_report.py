"""Tests for the diagnostic report."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from unittest.mock import MagicMock

import allure
import pytest
from rich.console import Console
from rich.table import Table

from core.models.track_models import AveragingMethod, BpmConfig
from core.tracks.diagnostic_scheduler import DiagnosticScheduler
from core.tracks.update_scheduler import UpdateScheduler
from metrics.report import (
    INITIAL_MESSAGE,
    ReportSnapshot,
    build_snapshot,
    render_report_table,
    render_report_text,
    save_dry_run_actions,
)
from services.library.memory_library import InMemoryTrackLibrary
from tests.factories import make_album


def _loggers() -> tuple[MagicMock, MagicMock]:
    return MagicMock(spec=logging.Logger), MagicMock(spec=logging.Logger)


@allure.epic("Album BPM Updater")
@allure.feature("Report")
class TestReport:
    """Tests for snapshot building and rendering."""

    @allure.story("Text")
    @allure.title("Initial report has every section")
    def test_initial_text(self) -> None:
        """Before any pass the report shows zeros and N/A."""
        text = render_report_text(ReportSnapshot())

        assert text.startswith("Library Diagnostic Report\n")
        for section in ("Files:", "BPM Status:", "Album Avg Status:", "Update Status:", "BPM Range:", "Message:"):
            assert f"\n{section}\n" in text
        assert "- Files with BPM > 400: 0" in text
        assert "- Lowest BPM: N/A" in text
        assert "Skipped files: 0" in text
        assert text.endswith(INITIAL_MESSAGE)

    @allure.story("Snapshot")
    @allure.title("Snapshot combines scan and update figures")
    def test_snapshot_from_states(self) -> None:
        """Figures come from both schedulers."""
        records = [*make_album([100, 120, 999], album="A"), *make_album(["", 0], album="B")]
        library = InMemoryTrackLibrary(records)

        scan = DiagnosticScheduler(*_loggers(), BpmConfig())
        scan.start(library.enumerate_library())
        scan.tick()

        update = UpdateScheduler(library, *_loggers(), BpmConfig())
        update.start(library.enumerate_library(), force_recalculate=False, method=AveragingMethod.MEAN)
        update.tick()

        snapshot = build_snapshot(scan.state, update.state, cutoff=400)

        assert snapshot.total_files == 5
        assert snapshot.total_albums == 2
        assert (snapshot.missing_bpm, snapshot.zero_bpm, snapshot.over_cutoff_bpm) == (1, 1, 1)
        assert (snapshot.min_bpm, snapshot.max_bpm) == (100.0, 120.0)
        assert (snapshot.albums_processed, snapshot.albums_total) == (1, 2)
        assert snapshot.current_album == "A"
        assert snapshot.current_average == 110.0
        assert snapshot.message == "Album 1 / 2 - A (Avg: 110.0)"

        text = render_report_text(snapshot)
        assert "- Albums processed / total: 1 / 2" in text
        assert "- Current avg BPM: 110" in text
        assert "- Highest BPM: 120" in text

    def test_explicit_message_wins(self) -> None:
        """A notice overrides state messages."""
        assert build_snapshot(None, None, message="No tracks selected.").message == "No tracks selected."
        assert build_snapshot(None, None).message == INITIAL_MESSAGE

    def test_custom_cutoff_label(self) -> None:
        """The outlier label shows the configured cutoff."""
        assert "- Files with BPM > 250.5: 0" in render_report_text(ReportSnapshot(cutoff=250.5))

    def test_table_render(self) -> None:
        """The rich table renders every metric."""
        table = render_report_table(ReportSnapshot(total_files=42, message="done"))
        assert isinstance(table, Table)

        console = Console(record=True, width=120)
        console.print(table)
        output = console.export_text()

        assert "Total files scanned" in output
        assert "42" in output
        assert "done" in output


@pytest.mark.unit
class TestSaveDryRunActions:
    """Tests for save_dry_run_actions."""

    def test_writes_csv(self, tmp_path: Path) -> None:
        """Recorded actions become CSV rows."""
        target = tmp_path / "reports" / "dry_run.csv"
        actions = [{"type": "album_avg_bpm", "details": {"album": "A|||B", "value": 120.5, "tracks": 3}}]

        save_dry_run_actions(actions, str(target), *_loggers())

        with target.open(encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
        assert rows == [{"album": "A|||B", "value": "120.5", "tracks": "3"}]
