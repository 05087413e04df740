"""Command-line interface for Album BPM Updater."""

import argparse
from typing import Any


def _add_scan_command(subparsers: Any) -> None:
    """Add scan command."""
    subparsers.add_parser(
        "scan",
        aliases=["report"],
        help="Scan the library and print the diagnostic report",
        description="Count missing, zero and over-cutoff BPM tags and inconsistent album averages",
    )


def _add_update_command(subparsers: Any) -> None:
    """Add full library update command."""
    subparsers.add_parser(
        "update",
        aliases=["update-all"],
        help="Write album average BPM for the whole library",
        description="Group all tracks into albums and stamp each album's average BPM onto its tracks",
    )


def _add_update_selection_command(subparsers: Any) -> None:
    """Add selection update command."""
    parser = subparsers.add_parser(
        "update-selection",
        aliases=["selection"],
        help="Write album average BPM for selected tracks only",
        description="Select tracks by artist, album or ID (overrides the config 'selection' section)",
    )
    parser.add_argument(
        "--artist",
        help="Artist or album artist to select",
    )
    parser.add_argument(
        "--album",
        help="Album title to select",
    )
    parser.add_argument(
        "--track-ids",
        help="Comma separated track IDs to select",
    )


class CLI:
    """Command-line interface handler."""

    def __init__(self) -> None:
        """Initialize CLI parser."""
        self.parser = self._create_parser()

    @staticmethod
    def _create_parser() -> argparse.ArgumentParser:
        """Create the argument parser.

        Returns:
            Configured ArgumentParser

        """
        parser = argparse.ArgumentParser(
            prog="python main.py",
            description="Album BPM Updater - Stamp album average BPM onto every track of an album",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
    # Scan the library and show the diagnostic report
    %(prog)s scan

    # Recalculate every album using the median
    %(prog)s --force --median update

    # Rehearse an update for one artist and copy the report
    %(prog)s --dry-run --copy update-selection --artist "Daft Punk"
            """,
        )

        # Global options
        parser.add_argument(
            "--force",
            action="store_true",
            help="Recalculate albums that already have a consistent average",
        )
        parser.add_argument(
            "--median",
            action="store_true",
            help="Use the median instead of the mean",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Simulate changes without applying them",
        )
        parser.add_argument(
            "--copy",
            action="store_true",
            help="Copy the final report to the clipboard",
        )
        parser.add_argument(
            "--save-actions",
            metavar="CSV",
            help="With --dry-run, save the simulated album writes to this CSV file",
        )
        parser.add_argument(
            "--verbose",
            "-v",
            action="store_true",
            help="Enable verbose logging",
        )
        parser.add_argument(
            "--config",
            type=str,
            help="Path to configuration file. If not specified, tries 'config.yaml' first, then 'my-config.yaml' as fallback.",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", title="Commands", description="Available commands", help="Use '%(prog)s COMMAND --help' for command-specific help"
        )
        _add_scan_command(subparsers)
        _add_update_command(subparsers)
        _add_update_selection_command(subparsers)

        return parser

    def parse_args(self, args: list[str] | None = None) -> argparse.Namespace:
        """Parse command-line arguments.

        Args:
            args: List of arguments (use sys.argv if None)

        Returns:
            Parsed arguments namespace

        """
        return self.parser.parse_args(args)

    def print_help(self) -> None:
        """Print help message."""
        self.parser.print_help()
