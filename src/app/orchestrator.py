"""Main orchestrator module for Album BPM Updater.

This module handles the high-level coordination of a command: it applies
the CLI toggles, starts the requested pass, waits for it to finish and
prints the report.
"""

import argparse
from typing import TYPE_CHECKING

from core.logger import LogFormat, get_shared_console
from core.models.track_models import SelectionConfig
from metrics.report import ReportSnapshot, render_report_table, save_dry_run_actions

if TYPE_CHECKING:
    from services.dependency_container import DependencyContainer


def selection_from_args(args: argparse.Namespace, default: SelectionConfig) -> SelectionConfig:
    """Build the selection filter, letting CLI options override the config."""
    artist = getattr(args, "artist", None)
    album = getattr(args, "album", None)
    track_ids = getattr(args, "track_ids", None)
    if not (artist or album or track_ids):
        return default
    return SelectionConfig(artist=artist, album=album, track_ids=track_ids)


class Orchestrator:
    """Orchestrates one album BPM command."""

    def __init__(self, deps: "DependencyContainer") -> None:
        """Initialize the orchestrator with dependencies.

        Args:
            deps: Dependency container with all required services

        """
        self.deps = deps
        self.bpm_tools = deps.bpm_tools
        self.config = deps.config
        self.console_logger = deps.console_logger
        self.error_logger = deps.error_logger

    async def run_command(self, args: argparse.Namespace) -> ReportSnapshot:
        """Execute the appropriate command based on arguments.

        Args:
            args: Parsed command-line arguments

        Returns:
            The final report snapshot

        """
        if getattr(args, "force", False):
            self.bpm_tools.force_recalculate = True
        if getattr(args, "median", False):
            self.bpm_tools.use_median = True

        match getattr(args, "command", None):
            case "update" | "update-all":
                started = self.bpm_tools.start_full_update()
            case "update-selection" | "selection":
                started = self.bpm_tools.start_selection_update()
            case _:
                started = self.bpm_tools.start_scan()

        snapshot = await self.bpm_tools.wait_idle() if started else self.bpm_tools.snapshot()
        self._print_report(snapshot)

        if getattr(args, "copy", False):
            self.bpm_tools.copy_report()
        self._save_dry_run_actions(args)
        return snapshot

    def cancel(self) -> None:
        """Cancel every running pass."""
        self.bpm_tools.cancel_all()

    @staticmethod
    def _print_report(snapshot: ReportSnapshot) -> None:
        """Print the report table on the shared console."""
        get_shared_console().print(render_report_table(snapshot))

    def _save_dry_run_actions(self, args: argparse.Namespace) -> None:
        """Save simulated writes when requested."""
        target = getattr(args, "save_actions", None)
        if not target:
            return
        if not self.deps.dry_run:
            self.console_logger.warning("--save-actions only applies with --dry-run; ignored")
            return
        actions = self.bpm_tools.update_scheduler.get_dry_run_actions()
        save_dry_run_actions(actions, target, self.console_logger, self.error_logger)
        self.console_logger.info("Saved %s simulated album writes", LogFormat.number(len(actions)))
