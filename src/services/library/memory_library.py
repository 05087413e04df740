"""In-memory track library.

Reference host for embedders and tests: records live in a list, the
selection is a set of track IDs, and writes stamp the album average
directly onto the stored records.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import LibraryWriteError
from core.models.track_models import TrackField, TrackRecord, read_field

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


def format_bpm_value(value: float) -> str:
    """Render an album average the way it is stored in a tag ('120' not '120.0')."""
    return f"{value:g}" if float(value).is_integer() else str(round(value, 2))


class InMemoryTrackLibrary:
    """TrackLibraryProtocol implementation backed by a Python list."""

    def __init__(
        self,
        records: Iterable[TrackRecord] = (),
        selection_ids: Iterable[str] = (),
        target_field: str = TrackField.ALBUM_AVG_BPM,
    ) -> None:
        """Initialize the library.

        Args:
            records: Initial collection, in enumeration order
            selection_ids: IDs of the currently selected tracks
            target_field: Tag that receives album averages

        """
        self._records: list[TrackRecord] = list(records)
        self.selection_ids: set[str] = set(selection_ids)
        self.target_field = str(target_field)
        # Test hooks: IDs that fail individually, or a flag that rejects whole batches
        self.failing_ids: set[str] = set()
        self.reject_batches = False
        self.write_calls: list[tuple[list[str], float]] = []

    @property
    def records(self) -> list[TrackRecord]:
        """Stored records (live objects)."""
        return self._records

    def get(self, track_id: str) -> TrackRecord | None:
        """Return the record with ``track_id``, if present."""
        return next((record for record in self._records if record.id == track_id), None)

    def select(self, track_ids: Iterable[str]) -> None:
        """Replace the current selection."""
        self.selection_ids = set(track_ids)

    def enumerate_library(self) -> Sequence[TrackRecord]:
        """Return all records in insertion order."""
        return list(self._records)

    def enumerate_selection(self) -> Sequence[TrackRecord]:
        """Return the selected records in library order."""
        return [record for record in self._records if record.id in self.selection_ids]

    def read_field(self, record: TrackRecord, field: TrackField | str) -> str:
        """Return the text value of a tag field."""
        return read_field(record, field)

    def write_batch(self, records: Sequence[TrackRecord], value: float) -> list[TrackRecord]:
        """Stamp ``value`` onto every record that is not configured to fail."""
        self.write_calls.append(([record.id for record in records], value))
        if self.reject_batches:
            msg = f"Batch of {len(records)} tracks rejected"
            raise LibraryWriteError(msg, [record.id for record in records])

        text = format_bpm_value(value)
        failed: list[TrackRecord] = []
        for record in records:
            if record.id in self.failing_ids:
                failed.append(record)
                continue
            setattr(record, self.target_field, text)
        return failed

    def flush(self) -> list[TrackRecord]:
        """Writes are applied immediately; nothing is held back."""
        return []
