"""CSV-backed track library.

Keeps the track list in a CSV file (one row per track, header row first).
Album averages are stamped in memory and written back once per pass by
``flush``, through an atomic temp-file replace, so an interrupted pass
never leaves a half-written file behind. The user
selection is emulated with the ``selection`` section of the config.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from core.logger import LogFormat as LF
from core.logger import ensure_directory
from core.models.track_models import SelectionConfig, TrackField, TrackRecord, read_field
from services.library.memory_library import format_bpm_value

if TYPE_CHECKING:
    from collections.abc import Sequence

TRACK_FIELDNAMES = [
    "id",
    "name",
    "artist",
    "album",
    "album_artist",
    "bpm",
    "album_avg_bpm",
]


def _validate_csv_header(reader: csv.DictReader[str], csv_path: str, logger: logging.Logger) -> list[str]:
    """Validate the CSV header and return the columns to keep."""
    if reader.fieldnames is None:
        logger.warning("CSV file %s is empty or has no header.", csv_path)
        return []

    fieldnames = list(reader.fieldnames)
    if "id" not in fieldnames:
        logger.warning("CSV file %s has no 'id' column; nothing loaded.", csv_path)
        return []

    missing = [field for field in TRACK_FIELDNAMES if field not in fieldnames]
    if missing:
        logger.warning("CSV header in %s lacks %s; treating them as empty.", csv_path, missing)
    return fieldnames


def load_track_records(csv_path: str, logger: logging.Logger | None = None) -> tuple[list[TrackRecord], list[str]]:
    """Load track records from a CSV file.

    Rows without an ID are dropped. Columns beyond the known tag fields are
    kept as extra record attributes so they survive a save.

    Args:
        csv_path: Path to the CSV file.
        logger: Logger for warnings (defaults to console_logger).

    Returns:
        The records in file order and the header columns that were read.

    """
    logger = logger or logging.getLogger("console_logger")
    records: list[TrackRecord] = []
    if not Path(csv_path).exists():
        logger.warning("Track list %s not found; starting with an empty library.", csv_path)
        return records, list(TRACK_FIELDNAMES)

    try:
        with Path(csv_path).open(encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            fieldnames = _validate_csv_header(reader, csv_path, logger)
            if not fieldnames:
                return records, list(TRACK_FIELDNAMES)

            for row in reader:
                track_id = (row.get("id") or "").strip()
                if not track_id:
                    continue
                data = {key: (value or "").strip() for key, value in row.items() if key is not None}
                data["id"] = track_id
                records.append(TrackRecord.model_validate(data))
    except (OSError, UnicodeError, csv.Error):
        logger.exception("Could not read track list %s", csv_path)
        return [], list(TRACK_FIELDNAMES)

    logger.info("Loaded %d tracks from %s.", len(records), LF.file(csv_path))
    return records, fieldnames


def save_track_records(records: Sequence[TrackRecord], fieldnames: Sequence[str], csv_path: str) -> None:
    """Write records to ``csv_path`` through a temporary file.

    Raises:
        OSError: If the file cannot be written; the temp file is removed.

    """
    ensure_directory(str(Path(csv_path).parent))
    temp_path = Path(f"{csv_path}.tmp")
    try:
        with temp_path.open(mode="w", newline="", encoding="utf-8") as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=list(fieldnames))
            writer.writeheader()
            for record in records:
                writer.writerow({field: record.read(field) for field in fieldnames})
        temp_path.replace(Path(csv_path))
    except (OSError, UnicodeError):
        if temp_path.exists():
            temp_path.unlink(missing_ok=True)
        raise


def matches_selection(record: TrackRecord, selection: SelectionConfig) -> bool:
    """Return True if the record satisfies every criterion set in ``selection``.

    Artist matches either the track artist or the album artist; text
    comparisons ignore case and surrounding whitespace.
    """
    if selection.is_empty:
        return False
    if selection.track_ids and record.id not in selection.track_ids:
        return False
    if selection.artist:
        wanted = selection.artist.strip().casefold()
        artists = {record.artist.strip().casefold(), record.album_artist.strip().casefold()}
        if wanted not in artists:
            return False
    return not (selection.album and record.album.strip().casefold() != selection.album.strip().casefold())


class CsvTrackLibrary:
    """TrackLibraryProtocol implementation persisted as CSV."""

    def __init__(
        self,
        csv_path: str,
        selection: SelectionConfig | None = None,
        console_logger: logging.Logger | None = None,
        error_logger: logging.Logger | None = None,
        target_field: str = TrackField.ALBUM_AVG_BPM,
    ) -> None:
        """Load the track list from ``csv_path``.

        Args:
            csv_path: CSV file holding the track list
            selection: Filter emulating the user's selection
            console_logger: Logger for console output
            error_logger: Logger for error messages
            target_field: Column that receives album averages

        """
        self.csv_path = csv_path
        self.selection = selection or SelectionConfig()
        self.console_logger = console_logger or logging.getLogger("console_logger")
        self.error_logger = error_logger or logging.getLogger("error_logger")
        self.target_field = str(target_field)
        self._records, fieldnames = load_track_records(csv_path, self.console_logger)
        self.fieldnames = list(fieldnames)
        if self.target_field not in self.fieldnames:
            self.fieldnames.append(self.target_field)
        self._pending: dict[str, tuple[TrackRecord, str]] = {}

    @property
    def dirty(self) -> bool:
        """True while stamped values are waiting for ``flush``."""
        return bool(self._pending)

    def enumerate_library(self) -> Sequence[TrackRecord]:
        """Return all rows in file order."""
        return list(self._records)

    def enumerate_selection(self) -> Sequence[TrackRecord]:
        """Return rows matching the configured selection."""
        return [record for record in self._records if matches_selection(record, self.selection)]

    def read_field(self, record: TrackRecord, field: TrackField | str) -> str:
        """Return the text value of a tag field."""
        return read_field(record, field)

    def write_batch(self, records: Sequence[TrackRecord], value: float) -> list[TrackRecord]:
        """Stamp ``value`` onto the records; the file is written by ``flush``."""
        text = format_bpm_value(value)
        for record in records:
            # Keep the value from before the first stamp of this pass
            self._pending.setdefault(record.id, (record, record.read(self.target_field)))
            setattr(record, self.target_field, text)
        return []

    def flush(self) -> list[TrackRecord]:
        """Write every stamped value to the CSV file in one atomic replace.

        Returns:
            The stamped records if the file could not be written; their
            in-memory values are restored.

        """
        if not self._pending:
            return []
        pending = list(self._pending.values())
        try:
            save_track_records(self._records, self.fieldnames, self.csv_path)
        except (OSError, UnicodeError):
            for record, old_value in pending:
                setattr(record, self.target_field, old_value)
            self._pending.clear()
            self.error_logger.exception(
                "Failed to save track list %s; %d stamped tracks reverted", self.csv_path, len(pending)
            )
            return [record for record, _ in pending]
        self._pending.clear()
        self.console_logger.info("Saved %d album averages to %s", len(pending), LF.file(self.csv_path))
        return []
