"""Host Protocol Definitions.

The BPM engine never talks to a music player directly. Everything it needs
from the host application is expressed by the two protocols below:

- ``TrackLibraryProtocol``: enumerate records, read tag fields, stamp values, persist
- ``RepeatingSchedulerProtocol``: invoke a callback repeatedly until cancelled

Concrete hosts live in ``services.library`` and ``services.scheduling``;
tests substitute their own implementations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from core.models.track_models import TrackField, TrackRecord


class FieldReader(Protocol):
    """Callable returning the text of one tag field ('' if absent)."""

    def __call__(self, record: TrackRecord, field: TrackField | str, /) -> str: ...


# noinspection PyMissingOrEmptyDocstring
@runtime_checkable
class TrackLibraryProtocol(Protocol):
    """Protocol for the host's track store."""

    def enumerate_library(self) -> Sequence[TrackRecord]:
        """Return the full collection in a stable order."""
        ...

    def enumerate_selection(self) -> Sequence[TrackRecord]:
        """Return the user-selected subset; empty means nothing is selected."""
        ...

    def read_field(self, record: TrackRecord, field: TrackField | str) -> str:
        """Return the text value of ``field`` for ``record`` ('' if absent)."""
        ...

    def write_batch(self, records: Sequence[TrackRecord], value: float) -> list[TrackRecord]:
        """Stamp ``value`` onto every record as one logical operation.

        Returns:
            Records that could not be written (empty on full success).

        Raises:
            LibraryWriteError: If the whole batch was rejected.

        """
        ...

    def flush(self) -> list[TrackRecord]:
        """Persist stamped values held back by ``write_batch``.

        Called once when an update pass ends. Hosts that write through
        immediately return an empty list.

        Returns:
            Records whose stamped value could not be persisted.

        """
        ...


# noinspection PyMissingOrEmptyDocstring
@runtime_checkable
class RepeatingSchedulerProtocol(Protocol):
    """Protocol for a cooperative repeating timer."""

    def schedule_repeating(self, callback: Callable[[], Any], interval: float) -> Any:
        """Invoke ``callback`` every ``interval`` seconds until cancelled.

        Returns:
            Opaque handle accepted by ``cancel``.

        """
        ...

    def cancel(self, handle: Any) -> None:
        """Stop invoking the callback registered under ``handle``."""
        ...
