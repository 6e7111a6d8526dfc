"""Value records shared by line topology, graph search and persistence.

Records are immutable and reference each other by ID only: a segment knows its
line through ``line_id``; lines never hold segment objects of their own.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from subway.helpers.errors import InvalidSegmentError


@dataclass(frozen=True)
class StationRecord:
    """A station as resolved from the station directory."""

    id: uuid.UUID
    name: str


@dataclass(frozen=True)
class LineRecord:
    """Line metadata without its segments."""

    id: uuid.UUID
    name: str
    color: str


@dataclass(frozen=True)
class SegmentRecord:
    """A directed up-station to down-station hop on one line."""

    id: uuid.UUID
    line_id: uuid.UUID
    up_station_id: uuid.UUID
    down_station_id: uuid.UUID
    distance: int

    def __post_init__(self) -> None:
        if self.distance <= 0:
            msg = f"Segment distance must be positive, got {self.distance}."
            raise InvalidSegmentError(msg)
        if self.up_station_id == self.down_station_id:
            msg = f"Segment cannot connect station {self.up_station_id} to itself."
            raise InvalidSegmentError(msg)

    @classmethod
    def new(
        cls,
        line_id: uuid.UUID,
        up_station_id: uuid.UUID,
        down_station_id: uuid.UUID,
        distance: int,
    ) -> SegmentRecord:
        """Build a segment with a freshly generated ID."""
        return cls(
            id=uuid.uuid4(),
            line_id=line_id,
            up_station_id=up_station_id,
            down_station_id=down_station_id,
            distance=distance,
        )


@dataclass(frozen=True)
class SegmentChanges:
    """Segments a topology mutation produced; the caller persists both lists atomically."""

    to_create: tuple[SegmentRecord, ...] = ()
    to_delete: tuple[SegmentRecord, ...] = ()

    @property
    def is_split(self) -> bool:
        """True when an insert replaced an existing segment with two shorter ones."""
        return len(self.to_create) == 2 and len(self.to_delete) == 1  # noqa: PLR2004

    @property
    def is_merge(self) -> bool:
        """True when a removal joined two segments into one."""
        return len(self.to_create) == 1 and len(self.to_delete) == 2  # noqa: PLR2004


@dataclass(frozen=True)
class LineSnapshot:
    """A line together with its current segments, as loaded from the line store."""

    line: LineRecord
    segments: tuple[SegmentRecord, ...]


@dataclass(frozen=True)
class PathLeg:
    """One traversed edge of a path, in travel direction."""

    line_id: uuid.UUID
    segment_id: uuid.UUID
    from_station_id: uuid.UUID
    to_station_id: uuid.UUID
    distance: int


@dataclass(frozen=True)
class SubwayPath:
    """Result of a shortest-path query."""

    stations: tuple[StationRecord, ...]
    distance: int
    legs: tuple[PathLeg, ...] = field(default=())

    @property
    def station_ids(self) -> list[uuid.UUID]:
        return [station.id for station in self.stations]
