"""Album aggregation.

Folds track records into per-album accumulators in a single synchronous
pass. The resulting map is the working set of one update pass and is
rebuilt from scratch for the next one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from core.models.track_models import TrackField, TrackRecord, read_field
from core.tracks.bpm_classifier import DEFAULT_BPM_CUTOFF, classify_bpm, is_averageable
from core.tracks.grouping import album_label, build_group_key, has_separator_collision

if TYPE_CHECKING:
    import logging
    from collections.abc import Iterable

    from core.models.protocols import FieldReader


@dataclass
class AlbumAccumulator:
    """Running totals and members of one album group."""

    key: str
    label: str
    members: list[TrackRecord] = field(default_factory=list)
    bpm_sum: float = 0.0
    count: int = 0
    existing_values: set[str] = field(default_factory=set)

    @property
    def is_inconsistent(self) -> bool:
        """True when members carry more than one distinct stored average."""
        return len(self.existing_values) > 1

    @property
    def has_existing(self) -> bool:
        """True when at least one member carries a stored average."""
        return bool(self.existing_values)

    def add(
        self,
        record: TrackRecord,
        *,
        cutoff: float,
        exclude_over_cutoff: bool,
        average_field: str = TrackField.ALBUM_AVG_BPM,
        read: FieldReader = read_field,
    ) -> None:
        """Append a record, updating totals for averageable BPM values.

        ``average_field`` is the tag the stored album average lives in.
        """
        self.members.append(record)

        classification = classify_bpm(read(record, TrackField.BPM), cutoff)
        if is_averageable(classification, exclude_over_cutoff) and classification.value is not None:
            self.bpm_sum += classification.value
            self.count += 1

        if existing := read(record, average_field):
            self.existing_values.add(existing)


def build_album_map(
    records: Iterable[TrackRecord],
    *,
    cutoff: float = DEFAULT_BPM_CUTOFF,
    exclude_over_cutoff: bool = True,
    average_field: str = TrackField.ALBUM_AVG_BPM,
    read: FieldReader = read_field,
    logger: logging.Logger | None = None,
) -> dict[str, AlbumAccumulator]:
    """Group records into album accumulators keyed by grouping key.

    Args:
        records: Full library or a selection, in enumeration order
        cutoff: BPM above which a value is treated as an outlier
        exclude_over_cutoff: Leave outliers out of sums and counts
        average_field: Tag holding the stored album average
        read: Field reader, usually the host's ``read_field``
        logger: Optional logger for grouping key collisions

    Returns:
        Accumulators in first-seen order

    """
    albums: dict[str, AlbumAccumulator] = {}
    collisions: set[str] = set()

    for record in records:
        key = build_group_key(record, read)
        accumulator = albums.get(key)
        if accumulator is None:
            accumulator = AlbumAccumulator(key=key, label=album_label(record, read))
            albums[key] = accumulator
        accumulator.add(
            record,
            cutoff=cutoff,
            exclude_over_cutoff=exclude_over_cutoff,
            average_field=average_field,
            read=read,
        )

        if logger is not None and key not in collisions and has_separator_collision(record, read):
            collisions.add(key)
            logger.warning("Grouping key %r contains the separator; albums may be merged", key)

    return albums
