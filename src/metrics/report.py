"""Library diagnostic report.

Combines the diagnostic tally and the update progress into one immutable
snapshot, and renders it either as the plain-text report that is copied to
the clipboard or as a rich table for the terminal.

Key functions:
- build_snapshot: Freeze the current scheduler states into a ReportSnapshot
- render_report_text: Plain-text report, section by section
- render_report_table: Rich table with the same figures
- save_dry_run_actions: Write recorded dry-run writes to CSV
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rich.table import Table

from core.tracks.bpm_classifier import DEFAULT_BPM_CUTOFF
from metrics.csv_utils import save_csv

if TYPE_CHECKING:
    import logging
    from collections.abc import Sequence

    from core.tracks.diagnostic_scheduler import DiagnosticState
    from core.tracks.update_scheduler import UpdateState

NOT_AVAILABLE = "N/A"
INITIAL_MESSAGE = "Press Scan Library."
DRY_RUN_FIELDNAMES = ["album", "value", "tracks"]


@dataclass(frozen=True, slots=True)
class ReportSnapshot:
    """Immutable view of both passes at one instant."""

    total_files: int = 0
    total_albums: int = 0
    missing_bpm: int = 0
    zero_bpm: int = 0
    over_cutoff_bpm: int = 0
    missing_existing_avg: int = 0
    inconsistent_albums: int = 0
    min_bpm: float | None = None
    max_bpm: float | None = None
    cutoff: float = DEFAULT_BPM_CUTOFF
    scan_phase: str = "idle"
    albums_processed: int = 0
    albums_total: int = 0
    albums_written: int = 0
    current_album: str = "Idle"
    current_average: float | None = None
    update_phase: str = "idle"
    skipped_files: int = 0
    message: str = INITIAL_MESSAGE


def build_snapshot(
    diagnostic: DiagnosticState | None,
    update: UpdateState | None,
    *,
    cutoff: float = DEFAULT_BPM_CUTOFF,
    message: str | None = None,
) -> ReportSnapshot:
    """Freeze the current scheduler states.

    Args:
        diagnostic: Latest diagnostic state, if a scan ever ran
        update: Latest update state, if a pass ever ran
        cutoff: BPM cutoff shown in the report labels
        message: Status line; defaults to the most relevant state message

    """
    values: dict[str, Any] = {"cutoff": cutoff}
    if diagnostic is not None:
        tally = diagnostic.tally
        values.update(
            total_files=tally.total_files,
            total_albums=tally.total_albums,
            missing_bpm=tally.missing_bpm,
            zero_bpm=tally.zero_bpm,
            over_cutoff_bpm=tally.over_cutoff_bpm,
            missing_existing_avg=tally.missing_existing_avg,
            inconsistent_albums=tally.inconsistent_album_count,
            min_bpm=tally.min_bpm,
            max_bpm=tally.max_bpm,
            scan_phase=str(diagnostic.phase),
        )
    if update is not None:
        values.update(
            albums_processed=update.processed,
            albums_total=update.total,
            albums_written=update.albums_written,
            current_album=update.current_album,
            current_average=update.current_average,
            update_phase=str(update.phase),
            skipped_files=len(update.skipped_records),
        )

    if message is None:
        message = next(
            (state.message for state in (update, diagnostic) if state is not None and state.message),
            INITIAL_MESSAGE,
        )
    values["message"] = message
    return ReportSnapshot(**values)


def _fmt(value: float | None) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"{value:g}"


def _cutoff_label(cutoff: float) -> str:
    return f"Files with BPM > {cutoff:g}"


def render_report_text(snapshot: ReportSnapshot) -> str:
    """Render the plain-text diagnostic report."""
    return "\n".join(
        [
            "Library Diagnostic Report",
            "",
            "Files:",
            f"- Total files scanned: {snapshot.total_files}",
            f"- Total albums scanned: {snapshot.total_albums}",
            "",
            "BPM Status:",
            f"- Files missing BPM tag: {snapshot.missing_bpm}",
            f"- Files with BPM = 0: {snapshot.zero_bpm}",
            f"- {_cutoff_label(snapshot.cutoff)}: {snapshot.over_cutoff_bpm}",
            "",
            "Album Avg Status:",
            f"- Files missing album_avg_bpm: {snapshot.missing_existing_avg}",
            f"- Albums with inconsistent album_avg_bpm: {snapshot.inconsistent_albums}",
            "",
            "Update Status:",
            f"- Albums processed / total: {snapshot.albums_processed} / {snapshot.albums_total}",
            f"- Current album: {snapshot.current_album}",
            f"- Current avg BPM: {_fmt(snapshot.current_average)}",
            "",
            f"Skipped files: {snapshot.skipped_files}",
            "",
            "BPM Range:",
            f"- Lowest BPM: {_fmt(snapshot.min_bpm)}",
            f"- Highest BPM: {_fmt(snapshot.max_bpm)}",
            "",
            "Message:",
            snapshot.message,
        ]
    )


def render_report_table(snapshot: ReportSnapshot) -> Table:
    """Build a rich table with the report figures, one section per block."""
    table = Table(title="Library Diagnostic Report", show_lines=False)
    table.add_column("Section", style="bold cyan")
    table.add_column("Metric", overflow="fold")
    table.add_column("Value", justify="right")

    rows: list[tuple[str, str, str]] = [
        ("Files", "Total files scanned", str(snapshot.total_files)),
        ("", "Total albums scanned", str(snapshot.total_albums)),
        ("BPM Status", "Files missing BPM tag", str(snapshot.missing_bpm)),
        ("", "Files with BPM = 0", str(snapshot.zero_bpm)),
        ("", _cutoff_label(snapshot.cutoff), str(snapshot.over_cutoff_bpm)),
        ("Album Avg Status", "Files missing album_avg_bpm", str(snapshot.missing_existing_avg)),
        ("", "Albums with inconsistent album_avg_bpm", str(snapshot.inconsistent_albums)),
        ("Update Status", "Albums processed / total", f"{snapshot.albums_processed} / {snapshot.albums_total}"),
        ("", "Albums written", str(snapshot.albums_written)),
        ("", "Current album", snapshot.current_album),
        ("", "Current avg BPM", _fmt(snapshot.current_average)),
        ("Skipped", "Skipped files", str(snapshot.skipped_files)),
        ("BPM Range", "Lowest BPM", _fmt(snapshot.min_bpm)),
        ("", "Highest BPM", _fmt(snapshot.max_bpm)),
    ]
    for index, (section, metric, value) in enumerate(rows):
        # A non-empty section name in the following row starts a new block
        last_in_section = index + 1 < len(rows) and bool(rows[index + 1][0])
        table.add_row(section, metric, value, end_section=last_in_section)
    table.caption = snapshot.message
    return table


def save_dry_run_actions(
    actions: Sequence[dict[str, Any]],
    file_path: str,
    console_logger: logging.Logger,
    error_logger: logging.Logger,
) -> None:
    """Save the album writes recorded during a dry run to CSV."""
    rows = [
        {
            "album": str(action.get("details", {}).get("album", "")),
            "value": str(action.get("details", {}).get("value", "")),
            "tracks": str(action.get("details", {}).get("tracks", "")),
        }
        for action in actions
    ]
    save_csv(rows, DRY_RUN_FIELDNAMES, file_path, console_logger, error_logger, "dry run report")
