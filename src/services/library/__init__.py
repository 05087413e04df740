"""Track library hosts.

Concrete implementations of ``TrackLibraryProtocol``:
    - InMemoryTrackLibrary: list-backed reference host
    - CsvTrackLibrary: track list persisted as CSV with atomic writes
    - DryRunTrackLibrary: wrapper that records writes instead of applying them
"""

from services.library.csv_library import CsvTrackLibrary
from services.library.dry_run import DryRunTrackLibrary
from services.library.memory_library import InMemoryTrackLibrary

__all__ = [
    "CsvTrackLibrary",
    "DryRunTrackLibrary",
    "InMemoryTrackLibrary",
]
