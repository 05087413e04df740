"""Pydantic models for configuration and track data."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LogLevel(StrEnum):
    """Log level enumeration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
    NOTSET = "NOTSET"


class AveragingMethod(StrEnum):
    """How the representative BPM of an album is computed."""

    MEAN = "mean"
    MEDIAN = "median"


class LibrarySource(StrEnum):
    """Which records an update pass is built from."""

    FULL_LIBRARY = "full_library"
    SELECTION = "selection"


class TrackField(StrEnum):
    """Tag fields the engine reads from a track record."""

    ALBUM = "album"
    ALBUM_ARTIST = "album_artist"
    ARTIST = "artist"
    BPM = "bpm"
    ALBUM_AVG_BPM = "album_avg_bpm"


class BpmConfig(BaseModel):
    """Album BPM aggregation and scan settings."""

    cutoff: float = Field(default=400.0, gt=0)
    exclude_over_cutoff_from_average: bool = True
    fill_missing_averages: bool = True
    force_recalculate: bool = False
    use_median: bool = False
    scan_batch_size: int = Field(default=500, ge=1)
    update_interval_ms: int = Field(default=50, ge=0)
    scan_interval_ms: int = Field(default=10, ge=0)
    target_field: str = "album_avg_bpm"


class SelectionConfig(BaseModel):
    """Filter used by file-backed libraries to emulate a user selection."""

    artist: str | None = None
    album: str | None = None
    track_ids: list[str] = Field(default_factory=list)

    @field_validator("track_ids", mode="before")
    @classmethod
    def _split_track_ids(cls, v: object) -> object:
        """Accept a comma separated string as well as a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [tid.strip() for tid in v.split(",") if tid.strip()]
        return v

    @property
    def is_empty(self) -> bool:
        """Return True when no filter criterion is set."""
        return not (self.artist or self.album or self.track_ids)


class LogLevelsConfig(BaseModel):
    """Log levels configuration."""

    console: LogLevel = LogLevel.INFO
    main_file: LogLevel = LogLevel.INFO


class LoggingConfig(BaseModel):
    """Logging configuration."""

    max_runs: int = Field(default=3, ge=0)
    main_log_file: str = "main/main.log"
    levels: LogLevelsConfig = Field(default_factory=LogLevelsConfig)


class AppConfig(BaseModel):
    """Main application configuration model."""

    logs_base_dir: str
    library_csv_path: str
    dry_run: bool = False

    bpm: BpmConfig = Field(default_factory=BpmConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class TrackRecord(BaseModel):
    """One track as seen by the BPM engine.

    All tag values are kept as text exactly as the host returns them;
    parsing happens in the classifier, never here.
    """

    id: str
    name: str = ""
    artist: str = ""
    album: str = ""
    album_artist: str = ""
    bpm: str = ""
    album_avg_bpm: str = ""

    model_config = ConfigDict(extra="allow")

    @field_validator("name", "artist", "album", "album_artist", "bpm", "album_avg_bpm", mode="before")
    @classmethod
    def _none_to_empty(cls, v: object) -> object:
        """Normalize missing tag values to the empty string."""
        if v is None:
            return ""
        if isinstance(v, (int, float)):
            return str(v)
        return v

    def read(self, field: TrackField | str) -> str:
        """Return the text value of a tag field, or '' when it is absent."""
        value = getattr(self, str(field), None)
        if value is None:
            value = (self.model_extra or {}).get(str(field))
        return "" if value is None else str(value)


def read_field(record: TrackRecord, field: TrackField | str) -> str:
    """Return the text value of ``field`` for ``record``; never None."""
    return record.read(field)
