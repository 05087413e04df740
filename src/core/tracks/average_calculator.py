"""Representative album BPM by mean or median."""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.models.track_models import AveragingMethod, TrackField, read_field
from core.tracks.bpm_classifier import DEFAULT_BPM_CUTOFF, classify_bpm, is_averageable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from core.models.protocols import FieldReader
    from core.tracks.album_aggregator import AlbumAccumulator

AVERAGE_PRECISION = 2


def median_of(values: Sequence[float]) -> float | None:
    """Return the median of ``values``, or None for an empty sequence."""
    if not values:
        return None
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def averageable_values(
    accumulator: AlbumAccumulator,
    *,
    cutoff: float = DEFAULT_BPM_CUTOFF,
    exclude_over_cutoff: bool = True,
    read: FieldReader = read_field,
) -> list[float]:
    """Re-derive the averageable BPM values of an album from its members."""
    values: list[float] = []
    for record in accumulator.members:
        classification = classify_bpm(read(record, TrackField.BPM), cutoff)
        if is_averageable(classification, exclude_over_cutoff) and classification.value is not None:
            values.append(classification.value)
    return values


def compute_album_average(
    accumulator: AlbumAccumulator,
    method: AveragingMethod = AveragingMethod.MEAN,
    *,
    cutoff: float = DEFAULT_BPM_CUTOFF,
    exclude_over_cutoff: bool = True,
    read: FieldReader = read_field,
) -> float | None:
    """Compute the album BPM rounded to two decimals.

    The mean uses the accumulator's running totals; the median is an
    independent pass over the members.

    Returns:
        The representative BPM, or None when the album has no averageable member.

    """
    if method == AveragingMethod.MEDIAN:
        values = averageable_values(accumulator, cutoff=cutoff, exclude_over_cutoff=exclude_over_cutoff, read=read)
        result = median_of(values)
    elif accumulator.count == 0:
        result = None
    else:
        result = accumulator.bpm_sum / accumulator.count

    return None if result is None else round(result, AVERAGE_PRECISION)
