"""
Line topology: keeps a line's segments forming exactly one simple path.

LineTopology is a pure, in-memory model with no database access. Services load
a line's segments, wrap them in a LineTopology, call insert_section() or
remove_station(), and persist the returned SegmentChanges in one transaction.
The topology updates its own segment set as part of each mutation, so reads
after a mutation reflect the new chain without reloading.

Mutations are not safe under concurrent interleaving on the same instance;
callers serialize them per line.
"""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Iterable, Mapping

from subway.helpers.errors import (
    CorruptTopologyError,
    DisconnectedSegmentError,
    DistanceTooLargeError,
    DuplicateSegmentError,
    InvalidSegmentError,
    LastSegmentRemovalError,
    StationNotOnLineError,
    UnknownStationError,
)
from subway.types.subway import SegmentChanges, SegmentRecord, StationRecord


class LineTopology:
    """Ordered chain of segments belonging to one line."""

    def __init__(self, line_id: uuid.UUID, segments: Iterable[SegmentRecord] = ()) -> None:
        """
        Wrap a line's current segments.

        Args:
            line_id: ID of the line that owns the segments
            segments: Segments as loaded from the line store, in any order

        Raises:
            InvalidSegmentError: If a segment belongs to a different line
        """
        self.line_id = line_id
        self._segments: list[SegmentRecord] = []
        for segment in segments:
            if segment.line_id != line_id:
                msg = f"Segment {segment.id} belongs to line {segment.line_id}, not {line_id}."
                raise InvalidSegmentError(msg)
            self._segments.append(segment)

    @classmethod
    def create(
        cls,
        line_id: uuid.UUID,
        up_station: StationRecord,
        down_station: StationRecord,
        distance: int,
    ) -> tuple[LineTopology, SegmentChanges]:
        """
        Start a new line from its first segment.

        Returns:
            Tuple of (topology, changes) where changes holds the first segment
        """
        topology = cls(line_id)
        changes = topology.insert_section(up_station, down_station, distance)
        return topology, changes

    def __len__(self) -> int:
        return len(self._segments)

    def __repr__(self) -> str:
        return f"<LineTopology(line_id={self.line_id}, segments={len(self._segments)})>"

    @property
    def segments(self) -> tuple[SegmentRecord, ...]:
        """Current segments in storage order."""
        return tuple(self._segments)

    # ==================== Reads ====================

    def _next_segment(self, station_id: uuid.UUID) -> SegmentRecord | None:
        """Segment leaving station_id, if any."""
        return next((s for s in self._segments if s.up_station_id == station_id), None)

    def _previous_segment(self, station_id: uuid.UUID) -> SegmentRecord | None:
        """Segment arriving at station_id, if any."""
        return next((s for s in self._segments if s.down_station_id == station_id), None)

    def _find_head(self) -> uuid.UUID:
        head = self._segments[0].up_station_id
        visited = {head}
        while (previous := self._previous_segment(head)) is not None:
            head = previous.up_station_id
            if head in visited:
                raise CorruptTopologyError(self.line_id, "segments form a cycle")
            visited.add(head)
        return head

    def chain(self) -> list[SegmentRecord]:
        """
        Return the segments in travel order, head to tail.

        Returns:
            Segments ordered so each one's down station is the next one's up station.
            Empty list if the line has no segments.

        Raises:
            CorruptTopologyError: If walking the chain revisits a station
        """
        if not self._segments:
            return []

        ordered: list[SegmentRecord] = []
        current = self._find_head()
        visited = {current}
        while (segment := self._next_segment(current)) is not None:
            current = segment.down_station_id
            if current in visited:
                raise CorruptTopologyError(self.line_id, "segments form a cycle")
            visited.add(current)
            ordered.append(segment)
        return ordered

    def ordered_station_ids(self) -> list[uuid.UUID]:
        """
        Return station IDs along the line, head to tail.

        Examples:
            >>> # segments B->C and A->B (stored in any order)
            >>> topology.ordered_station_ids()
            [A, B, C]
        """
        ordered = self.chain()
        if not ordered:
            return []
        return [ordered[0].up_station_id, *(segment.down_station_id for segment in ordered)]

    def ordered_stations(self, stations: Mapping[uuid.UUID, StationRecord]) -> list[StationRecord]:
        """
        Return resolved stations along the line, head to tail.

        Args:
            stations: Station records keyed by ID (e.g. from StationDirectory.resolve_many)

        Raises:
            UnknownStationError: If a station on the line is missing from the mapping
        """
        ordered = []
        for station_id in self.ordered_station_ids():
            station = stations.get(station_id)
            if station is None:
                raise UnknownStationError(station_id)
            ordered.append(station)
        return ordered

    def station_ids(self) -> set[uuid.UUID]:
        """All station IDs referenced by the line's segments."""
        ids: set[uuid.UUID] = set()
        for segment in self._segments:
            ids.add(segment.up_station_id)
            ids.add(segment.down_station_id)
        return ids

    def total_distance(self) -> int:
        return sum(segment.distance for segment in self._segments)

    def terminals(self) -> tuple[uuid.UUID, uuid.UUID] | None:
        """Return (head, tail) station IDs, or None for an empty line."""
        ids = self.ordered_station_ids()
        if not ids:
            return None
        return ids[0], ids[-1]

    def check_invariants(self) -> None:
        """
        Verify the segments form exactly one simple path.

        Checks that no station has two outgoing or two incoming segments, that
        there is exactly one head, and that walking from the head reaches every
        segment.

        Raises:
            CorruptTopologyError: If any check fails (including an empty line)
        """
        if not self._segments:
            raise CorruptTopologyError(self.line_id, "line has no segments")

        up_counts = Counter(segment.up_station_id for segment in self._segments)
        down_counts = Counter(segment.down_station_id for segment in self._segments)
        if any(count > 1 for count in up_counts.values()):
            raise CorruptTopologyError(self.line_id, "a station has more than one next segment")
        if any(count > 1 for count in down_counts.values()):
            raise CorruptTopologyError(self.line_id, "a station has more than one previous segment")

        heads = set(up_counts) - set(down_counts)
        if len(heads) != 1:
            raise CorruptTopologyError(self.line_id, f"expected one head station, found {len(heads)}")

        if len(self.chain()) != len(self._segments):
            raise CorruptTopologyError(self.line_id, "segments are split into disconnected chains")

    # ==================== Mutations ====================

    def _apply(self, changes: SegmentChanges) -> None:
        deleted = {segment.id for segment in changes.to_delete}
        self._segments = [segment for segment in self._segments if segment.id not in deleted]
        self._segments.extend(changes.to_create)

    def _check_split_distance(self, existing: SegmentRecord, distance: int) -> None:
        # Equal distance would leave a zero-length remainder
        if distance >= existing.distance:
            raise DistanceTooLargeError(distance, existing.distance)

    def insert_section(
        self,
        up_station: StationRecord,
        down_station: StationRecord,
        distance: int,
    ) -> SegmentChanges:
        """
        Add a segment to the line, splitting an existing segment if needed.

        Exactly one of the two stations must already be on the line (unless the
        line is empty). When the known station already has a segment leaving it
        in the new segment's direction, that segment is split in two:

            up known:   [U -> X: d]  +  (U -> N: k)  =>  [U -> N: k, N -> X: d - k]
            down known: [X -> D: d]  +  (N -> D: k)  =>  [X -> N: d - k, N -> D: k]

        Otherwise the new segment extends the tail or prepends to the head.

        Args:
            up_station: Up-direction station of the new segment
            down_station: Down-direction station of the new segment
            distance: Positive distance of the new segment

        Returns:
            SegmentChanges with the new segment (and the rewritten segment on a
            split) to create, and the split segment to delete

        Raises:
            InvalidSegmentError: If distance <= 0 or both stations are the same
            DuplicateSegmentError: If both stations are already on the line
            DisconnectedSegmentError: If neither station is on a non-empty line
            DistanceTooLargeError: If a split distance is not shorter than the split segment
        """
        new_segment = SegmentRecord.new(self.line_id, up_station.id, down_station.id, distance)

        station_ids = self.station_ids()
        up_exists = up_station.id in station_ids
        down_exists = down_station.id in station_ids

        if up_exists and down_exists:
            raise DuplicateSegmentError(up_station.id, down_station.id)
        if self._segments and not up_exists and not down_exists:
            raise DisconnectedSegmentError(up_station.id, down_station.id)

        to_create = [new_segment]
        to_delete = []

        if up_exists and (existing := self._next_segment(up_station.id)) is not None:
            self._check_split_distance(existing, distance)
            to_delete.append(existing)
            to_create.append(
                SegmentRecord.new(
                    self.line_id,
                    down_station.id,
                    existing.down_station_id,
                    existing.distance - distance,
                )
            )
        elif down_exists and (existing := self._previous_segment(down_station.id)) is not None:
            self._check_split_distance(existing, distance)
            to_delete.append(existing)
            to_create.append(
                SegmentRecord.new(
                    self.line_id,
                    existing.up_station_id,
                    up_station.id,
                    existing.distance - distance,
                )
            )

        changes = SegmentChanges(to_create=tuple(to_create), to_delete=tuple(to_delete))
        self._apply(changes)
        return changes

    def remove_station(self, station_id: uuid.UUID) -> SegmentChanges:
        """
        Remove a station from the line.

        An internal station's two adjoining segments are merged into one whose
        distance is their sum. A terminal station's single segment is dropped.

        Args:
            station_id: Station to remove

        Returns:
            SegmentChanges listing segments to delete and the merged segment to create

        Raises:
            LastSegmentRemovalError: If the line has one segment or fewer
            StationNotOnLineError: If the station is not on the line
        """
        if len(self._segments) <= 1:
            raise LastSegmentRemovalError(self.line_id)

        segment_in = self._previous_segment(station_id)
        segment_out = self._next_segment(station_id)
        if segment_in is None and segment_out is None:
            raise StationNotOnLineError(self.line_id, station_id)

        to_create = []
        if segment_in is not None and segment_out is not None:
            to_create.append(
                SegmentRecord.new(
                    self.line_id,
                    segment_in.up_station_id,
                    segment_out.down_station_id,
                    segment_in.distance + segment_out.distance,
                )
            )

        changes = SegmentChanges(
            to_create=tuple(to_create),
            to_delete=tuple(s for s in (segment_in, segment_out) if s is not None),
        )
        self._apply(changes)
        return changes
