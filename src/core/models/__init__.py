"""Data models and protocols."""

from core.models.protocols import FieldReader, RepeatingSchedulerProtocol, TrackLibraryProtocol
from core.models.track_models import (
    AppConfig,
    AveragingMethod,
    BpmConfig,
    LibrarySource,
    TrackField,
    TrackRecord,
    read_field,
)

__all__ = [
    "AppConfig",
    "AveragingMethod",
    "BpmConfig",
    "FieldReader",
    "LibrarySource",
    "RepeatingSchedulerProtocol",
    "TrackField",
    "TrackLibraryProtocol",
    "TrackRecord",
    "read_field",
]
