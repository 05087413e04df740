"""Base class for the album BPM processing modules.

Provides the logger pair, BPM settings and dry-run bookkeeping shared by
the update and diagnostic schedulers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import logging

    from core.models.track_models import BpmConfig


class BaseProcessor:
    """Base class for album BPM processing modules.

    Provides common initialization and dry-run functionality
    that is shared across the schedulers.
    """

    def __init__(
        self,
        console_logger: logging.Logger,
        error_logger: logging.Logger,
        config: BpmConfig,
        dry_run: bool = False,
    ) -> None:
        """Initialize the base processor.

        Args:
            console_logger: Logger for console output
            error_logger: Logger for error messages
            config: BPM settings
            dry_run: Whether writes are only being simulated

        """
        self.console_logger = console_logger
        self.error_logger = error_logger
        self.config = config
        self.dry_run = dry_run
        self._dry_run_actions: list[dict[str, Any]] = []

    def get_dry_run_actions(self) -> list[dict[str, Any]]:
        """Get the list of dry-run actions recorded.

        Returns:
            List of dry-run actions with details

        """
        return self._dry_run_actions.copy()

    def clear_dry_run_actions(self) -> None:
        """Clear the list of recorded dry-run actions."""
        self._dry_run_actions.clear()

    def _record_dry_run_action(self, action_type: str, details: dict[str, Any]) -> None:
        """Record a dry-run action for later reporting."""
        if self.dry_run:
            self._dry_run_actions.append(
                {
                    "type": action_type,
                    "details": details,
                }
            )
