"""Album grouping keys.

Tracks belong to the same album when they share the album artist (falling
back to the track artist) and the album title. Every function takes an
optional ``read`` so hosts can serve the tag values themselves.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.models.track_models import TrackField, TrackRecord, read_field

if TYPE_CHECKING:
    from core.models.protocols import FieldReader

GROUP_KEY_SEPARATOR = "|||"
NO_ARTIST = "(No Artist)"
NO_ALBUM = "(No Album)"


def grouping_artist(record: TrackRecord, read: FieldReader = read_field) -> str:
    """Return the artist an album is grouped under."""
    return read(record, TrackField.ALBUM_ARTIST) or read(record, TrackField.ARTIST) or NO_ARTIST


def album_label(record: TrackRecord, read: FieldReader = read_field) -> str:
    """Return the album title used for grouping and progress display."""
    return read(record, TrackField.ALBUM) or NO_ALBUM


def build_group_key(record: TrackRecord, read: FieldReader = read_field) -> str:
    """Build the album grouping key for a record.

    Total over arbitrary inputs; empty fields fall back to fixed placeholders.
    """
    return f"{grouping_artist(record, read)}{GROUP_KEY_SEPARATOR}{album_label(record, read)}"


def has_separator_collision(record: TrackRecord, read: FieldReader = read_field) -> bool:
    """Return True if a key component contains the separator itself.

    Such keys may merge unrelated albums; callers log them rather than
    trying to resolve them.
    """
    return GROUP_KEY_SEPARATOR in grouping_artist(record, read) or GROUP_KEY_SEPARATOR in album_label(record, read)
