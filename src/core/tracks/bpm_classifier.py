"""BPM tag parsing and classification.

Every consumer (album aggregation, median calculation, diagnostics) decides
what a BPM value means through this module, so the update path and the
scan path cannot drift apart on edge cases.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import StrEnum

DEFAULT_BPM_CUTOFF = 400.0

# Leading decimal number, optionally signed, with optional exponent
_NUMERIC_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class BpmStatus(StrEnum):
    """Quality classification of a single BPM tag."""

    MISSING = "missing"
    ZERO = "zero"
    VALID = "valid"
    OVER_CUTOFF = "over_cutoff"


@dataclass(frozen=True, slots=True)
class BpmClassification:
    """Classification result with the parsed value when there is one."""

    status: BpmStatus
    value: float | None = None


def parse_bpm(text: str | None) -> float | None:
    """Parse BPM text permissively.

    Leading whitespace is ignored and a numeric prefix is accepted
    (``"128 bpm"`` parses as 128.0). Empty, non-numeric or non-finite
    input yields None.
    """
    if not text:
        return None
    match = _NUMERIC_PREFIX.match(text.strip())
    if match is None:
        return None
    try:
        value = float(match.group(0))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def classify_bpm(text: str | None, cutoff: float = DEFAULT_BPM_CUTOFF) -> BpmClassification:
    """Classify raw BPM text against the cutoff threshold."""
    value = parse_bpm(text)
    if value is None:
        return BpmClassification(BpmStatus.MISSING)
    if value == 0:
        return BpmClassification(BpmStatus.ZERO, 0.0)
    if value > cutoff:
        return BpmClassification(BpmStatus.OVER_CUTOFF, value)
    return BpmClassification(BpmStatus.VALID, value)


def is_averageable(classification: BpmClassification, exclude_over_cutoff: bool) -> bool:
    """Return True if the value takes part in album averages.

    Zero counts toward averages; over-cutoff values only when exclusion is off.
    """
    if classification.status is BpmStatus.MISSING:
        return False
    if classification.status is BpmStatus.OVER_CUTOFF:
        return not exclude_over_cutoff
    return True


def is_range_candidate(classification: BpmClassification, exclude_over_cutoff: bool) -> bool:
    """Return True if the value may update the diagnostic min/max range."""
    if classification.value is None or classification.value <= 0:
        return False
    if classification.status is BpmStatus.VALID:
        return True
    return classification.status is BpmStatus.OVER_CUTOFF and not exclude_over_cutoff
