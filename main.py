#!/usr/bin/env python3
"""Album BPM Updater - Main entry point.

Scans a track library for BPM data quality issues and stamps each album's
average BPM onto its tracks.
"""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

# Add src directory to Python path BEFORE imports
sys.path.insert(0, str(Path(__file__).parent / "src"))

from app.app_config import Config
from app.cli import CLI
from app.orchestrator import Orchestrator, selection_from_args
from core.exceptions import ConfigurationError
from core.logger import LogFormat as LF
from core.logger import SafeQueueListener, get_loggers
from core.models.track_models import LogLevel
from services.dependency_container import DependencyContainer


def _setup_environment(args: argparse.Namespace) -> tuple[DependencyContainer, SafeQueueListener | None, logging.Logger, logging.Logger]:
    """Set up configuration, logging, and dependencies.

    Args:
        args: Parsed command line arguments

    Returns:
        Tuple of (deps, listener, logger_console, logger_error)

    """
    config_manager = Config(args.config if hasattr(args, "config") else None)
    config = config_manager.load()
    if getattr(args, "verbose", False):
        config.logging.levels.console = LogLevel.DEBUG

    logger_console, logger_error, listener = get_loggers(config)

    deps = DependencyContainer(
        config,
        logger_console,
        logger_error,
        config_path=config_manager.resolved_path,
        logging_listener=listener,
        dry_run=args.dry_run,
    )
    deps.initialize(selection_from_args(args, config.selection))

    return deps, listener, logger_console, logger_error


def _handle_keyboard_interrupt(logger_console: logging.Logger | None) -> None:
    """Handle keyboard interrupt gracefully."""
    if logger_console:
        logger_console.info("\nScript interrupted by user.")
    sys.exit(130)


def _handle_critical_error(error: Exception, logger_error: logging.Logger | None) -> None:
    """Handle critical errors."""
    if logger_error:
        logger_error.critical("A critical error occurred: %s", error, exc_info=True)
    else:
        print(f"A critical error occurred: {error}", file=sys.stderr)
    sys.exit(1)


def _cleanup_resources(
    deps: DependencyContainer,
    listener: SafeQueueListener | None,
    logger_console: logging.Logger | None,
    start_time: float,
) -> None:
    """Cleanup all resources and log execution time."""
    if logger_console:
        execution_time = time.time() - start_time
        logger_console.info("Total script execution time: %s", LF.duration(execution_time))

    if deps:
        deps.close()
        deps.shutdown()
    elif listener:
        listener.stop()


async def main_async() -> None:
    """Execute main async entry point."""
    cli = CLI()
    args = cli.parse_args()
    start_time = time.time()

    try:
        deps, listener, logger_console, logger_error = _setup_environment(args)
    except ConfigurationError as e:
        _handle_critical_error(e, None)
        return

    orchestrator = Orchestrator(deps)
    try:
        await orchestrator.run_command(args)

    except (KeyboardInterrupt, asyncio.CancelledError):
        orchestrator.cancel()
        _handle_keyboard_interrupt(logger_console)

    except (RuntimeError, ValueError, OSError) as e:
        _handle_critical_error(e, logger_error)

    finally:
        _cleanup_resources(deps, listener, logger_console, start_time)


def main() -> None:
    """Execute the main entry point."""
    try:
        asyncio.run(main_async())
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
