"""Contracts for the collaborators the topology and path services consume.

The SQLAlchemy-backed implementations live in ``subway.services``; tests may
substitute any object that satisfies these protocols.
"""

import uuid
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from subway.types.subway import LineRecord, LineSnapshot, SegmentChanges, SegmentRecord, StationRecord


@runtime_checkable
class StationDirectory(Protocol):
    """
    Responsibilities:
      • Resolve station IDs to station records.
      • Own station identity uniqueness.
    """

    async def resolve(self, station_id: uuid.UUID) -> StationRecord:
        """Return the station or raise UnknownStationError."""
        ...

    async def resolve_many(self, station_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, StationRecord]:
        """Return found stations keyed by ID; missing IDs are simply absent."""
        ...


@runtime_checkable
class LineStore(Protocol):
    """
    Responsibilities:
      • Load lines and their segments.
      • Persist a topology change set atomically (one call, one transaction).
    """

    async def load_all_lines(self) -> list[LineSnapshot]: ...
    async def load_line(self, line_id: uuid.UUID) -> LineRecord: ...
    async def load_segments(self, line_id: uuid.UUID) -> list[SegmentRecord]: ...
    async def save_segments(self, changes: SegmentChanges) -> None: ...
