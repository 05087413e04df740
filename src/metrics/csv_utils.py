"""CSV utility functions shared by the report writers."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import TYPE_CHECKING

from core.logger import ensure_directory

if TYPE_CHECKING:
    import logging
    from collections.abc import Sequence


def save_csv(
    data: Sequence[dict[str, str]],
    fieldnames: Sequence[str],
    file_path: str,
    console_logger: logging.Logger,
    error_logger: logging.Logger,
    data_type: str,
) -> bool:
    """Save rows to a CSV file through a temporary file.

    Creates the target directory when needed. Failures are logged and
    reported through the return value.

    Args:
        data: Rows to save.
        fieldnames: Column order; keys outside it are dropped.
        file_path: Path to the CSV file.
        console_logger: Logger for console output.
        error_logger: Logger for error output.
        data_type: What is being saved, for log messages (e.g. "dry run report").

    Returns:
        True if the file was written.

    """
    ensure_directory(str(Path(file_path).parent), error_logger)
    temp_file_path = Path(f"{file_path}.tmp")

    try:
        with temp_file_path.open(mode="w", newline="", encoding="utf-8") as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=list(fieldnames))
            writer.writeheader()
            for row in data:
                writer.writerow({field: row.get(field, "") for field in fieldnames})
        temp_file_path.replace(Path(file_path))
    except (OSError, UnicodeError):
        error_logger.exception("Failed to save %s", data_type)
        if temp_file_path.exists():
            try:
                temp_file_path.unlink()
            except OSError as cleanup_e:
                error_logger.warning("Failed to remove temporary file %s: %s", temp_file_path, cleanup_e)
        return False

    console_logger.info("%s saved to %s (%d entries).", data_type.capitalize(), file_path, len(data))
    return True
