"""
In-memory implementations of the StationDirectory and LineStore protocols.

Used to exercise PathService without a database.
"""

import uuid
from collections.abc import Iterable

from subway.core.cache import invalidate_path_cache
from subway.helpers.errors import LineNotFoundError, UnknownStationError
from subway.types.subway import LineRecord, LineSnapshot, SegmentChanges, SegmentRecord, StationRecord


class InMemoryStationDirectory:
    """StationDirectory over a plain dict."""

    def __init__(self, stations: dict[uuid.UUID, StationRecord]) -> None:
        self.stations = stations

    async def resolve(self, station_id: uuid.UUID) -> StationRecord:
        if station_id not in self.stations:
            raise UnknownStationError(station_id)
        return self.stations[station_id]

    async def resolve_many(self, station_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, StationRecord]:
        return {station_id: self.stations[station_id] for station_id in set(station_ids) if station_id in self.stations}


class InMemoryLineStore:
    """LineStore over a list of snapshots; counts full loads."""

    def __init__(self, snapshots: list[LineSnapshot]) -> None:
        self.snapshots = snapshots
        self.load_all_calls = 0

    async def load_all_lines(self) -> list[LineSnapshot]:
        self.load_all_calls += 1
        return list(self.snapshots)

    async def load_line(self, line_id: uuid.UUID) -> LineRecord:
        for snapshot in self.snapshots:
            if snapshot.line.id == line_id:
                return snapshot.line
        raise LineNotFoundError(line_id)

    async def load_segments(self, line_id: uuid.UUID) -> list[SegmentRecord]:
        for snapshot in self.snapshots:
            if snapshot.line.id == line_id:
                return list(snapshot.segments)
        raise LineNotFoundError(line_id)

    async def save_segments(self, changes: SegmentChanges) -> None:
        deleted = {segment.id for segment in changes.to_delete}
        updated = []
        for snapshot in self.snapshots:
            segments = [segment for segment in snapshot.segments if segment.id not in deleted]
            segments.extend(segment for segment in changes.to_create if segment.line_id == snapshot.line.id)
            updated.append(LineSnapshot(line=snapshot.line, segments=tuple(segments)))
        self.snapshots = updated


class MutatedDuringLoadLineStore(InMemoryLineStore):
    """
    LineStore whose network changes right after the first full load returns.

    The first load_all_lines() hands out the original snapshots, then swaps in
    `replacement` and invalidates the path cache, the way a line mutation
    committing mid-query would.
    """

    def __init__(self, snapshots: list[LineSnapshot], replacement: list[LineSnapshot]) -> None:
        super().__init__(snapshots)
        self.replacement = replacement

    async def load_all_lines(self) -> list[LineSnapshot]:
        loaded = await super().load_all_lines()
        if self.load_all_calls == 1:
            self.snapshots = self.replacement
            await invalidate_path_cache()
        return loaded
