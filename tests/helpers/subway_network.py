"""
Builders for in-memory subway networks used by the pure helper tests.

Stations are addressed by short names ("A", "B", ...) so tests read like the
line diagrams they describe; the builders translate names to UUID records.
"""

import uuid
from collections.abc import Iterable

from subway.helpers.line_topology import LineTopology
from subway.types.subway import LineRecord, LineSnapshot, SegmentRecord, StationRecord

# (up station name, down station name, distance)
Hop = tuple[str, str, int]


class StationBook:
    """Name-addressed StationRecords, created on first use."""

    def __init__(self, *names: str) -> None:
        self.by_name: dict[str, StationRecord] = {name: StationRecord(id=uuid.uuid4(), name=name) for name in names}

    def __getitem__(self, name: str) -> StationRecord:
        if name not in self.by_name:
            self.by_name[name] = StationRecord(id=uuid.uuid4(), name=name)
        return self.by_name[name]

    def ids(self, *names: str) -> list[uuid.UUID]:
        return [self[name].id for name in names]

    def names(self, station_ids: Iterable[uuid.UUID]) -> list[str]:
        """Translate station IDs back to their names."""
        by_id = {station.id: name for name, station in self.by_name.items()}
        return [by_id[station_id] for station_id in station_ids]

    @property
    def directory(self) -> dict[uuid.UUID, StationRecord]:
        """Station records keyed by ID, as StationDirectory.resolve_many() returns them."""
        return {station.id: station for station in self.by_name.values()}


def build_segments(line_id: uuid.UUID, book: StationBook, hops: Iterable[Hop]) -> list[SegmentRecord]:
    """Build raw segments without going through topology validation."""
    return [SegmentRecord.new(line_id, book[up].id, book[down].id, distance) for up, down, distance in hops]


def build_topology(book: StationBook, hops: Iterable[Hop], line_id: uuid.UUID | None = None) -> LineTopology:
    """
    Build a LineTopology from hops listed in any order.

    Args:
        book: Station book used to resolve names
        hops: (up, down, distance) tuples
        line_id: Line ID (random when omitted)

    Returns:
        LineTopology holding one segment per hop
    """
    line_id = line_id or uuid.uuid4()
    return LineTopology(line_id, build_segments(line_id, book, hops))


def build_snapshot(name: str, book: StationBook, hops: Iterable[Hop]) -> LineSnapshot:
    """Build a LineSnapshot for graph tests."""
    line = LineRecord(id=uuid.uuid4(), name=name, color="grey")
    return LineSnapshot(line=line, segments=tuple(build_segments(line.id, book, hops)))


def station_names(book: StationBook, topology: LineTopology) -> list[str]:
    """Station names along the line, head to tail."""
    return book.names(topology.ordered_station_ids())
