"""Line service: line CRUD and section insert/remove on top of LineTopology.

Every topology mutation follows the same shape:

1. take the per-line lock (and a row lock on PostgreSQL)
2. load the line's segments into a LineTopology and verify its invariants
3. run the pure mutation, which returns a SegmentChanges
4. persist the change set in one transaction and drop cached paths
"""

import asyncio
import uuid
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.cache import invalidate_path_cache
from subway.helpers.errors import DuplicateLineNameError, LineNotFoundError, SubwayError, UnknownStationError
from subway.helpers.line_topology import LineTopology
from subway.models.subway import Line, Section
from subway.services.station_service import StationService
from subway.types.ports import StationDirectory
from subway.types.subway import LineRecord, LineSnapshot, SegmentChanges, SegmentRecord, StationRecord

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LineDetail:
    """A line with its stations in travel order."""

    line: LineRecord
    stations: list[StationRecord]


class LineLocks:
    """Registry of per-line asyncio locks.

    Locks are held weakly: an entry lives only while some task holds or waits
    on it, so the registry doesn't grow with the number of lines ever touched.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock] = weakref.WeakValueDictionary()

    def lock_for(self, line_id: uuid.UUID) -> asyncio.Lock:
        lock = self._locks.get(line_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[line_id] = lock
        return lock


line_locks = LineLocks()


class SqlLineStore:
    """LineStore backed by the lines and sections tables."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def load_line(self, line_id: uuid.UUID, *, for_update: bool = False) -> LineRecord:
        """
        Load line metadata.

        Args:
            line_id: Line to load
            for_update: Take a row lock (SELECT ... FOR UPDATE) for the rest of the transaction

        Raises:
            LineNotFoundError: If the line doesn't exist
        """
        query = select(Line).where(Line.id == line_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        line = result.scalar_one_or_none()
        if line is None:
            logger.warning("line_not_found", line_id=str(line_id))
            raise LineNotFoundError(line_id)
        return line.to_record()

    async def load_segments(self, line_id: uuid.UUID) -> list[SegmentRecord]:
        result = await self.db.execute(
            select(Section).where(Section.line_id == line_id).order_by(Section.created_at, Section.id)
        )
        return [section.to_record() for section in result.scalars().all()]

    async def load_all_lines(self) -> list[LineSnapshot]:
        """
        Load every line with its segments in two queries.

        Returns:
            Snapshots ordered by line creation time (ties broken by ID)
        """
        lines_result = await self.db.execute(select(Line).order_by(Line.created_at, Line.id))
        lines = list(lines_result.scalars().all())

        sections_result = await self.db.execute(select(Section).order_by(Section.created_at, Section.id))
        segments_by_line: dict[uuid.UUID, list[SegmentRecord]] = {line.id: [] for line in lines}
        for section in sections_result.scalars().all():
            segments_by_line.setdefault(section.line_id, []).append(section.to_record())

        return [LineSnapshot(line=line.to_record(), segments=tuple(segments_by_line[line.id])) for line in lines]

    async def save_segments(self, changes: SegmentChanges) -> None:
        """
        Persist a change set atomically: deletes first, then inserts, one commit.

        Raises:
            SQLAlchemyError: Propagated unmodified after rolling back
        """
        try:
            if changes.to_delete:
                await self.db.execute(
                    delete(Section).where(Section.id.in_([segment.id for segment in changes.to_delete]))
                )
            self.db.add_all([Section.from_record(segment) for segment in changes.to_create])
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "save_segments_failed",
                created=len(changes.to_create),
                deleted=len(changes.to_delete),
                error=str(e),
                exc_info=e,
            )
            raise


class LineService:
    """Service for line management and line topology mutations."""

    def __init__(self, db: AsyncSession, stations: StationDirectory | None = None) -> None:
        """
        Initialize the line service.

        Args:
            db: Database session
            stations: Station directory (defaults to the database-backed StationService)
        """
        self.db = db
        self.store = SqlLineStore(db)
        self.stations: StationDirectory = stations or StationService(db)

    async def _resolve_pair(
        self, up_station_id: uuid.UUID, down_station_id: uuid.UUID
    ) -> tuple[StationRecord, StationRecord]:
        resolved = await self.stations.resolve_many([up_station_id, down_station_id])
        for station_id in (up_station_id, down_station_id):
            if station_id not in resolved:
                raise UnknownStationError(station_id)
        return resolved[up_station_id], resolved[down_station_id]

    async def _detail(self, line: LineRecord, topology: LineTopology) -> LineDetail:
        stations = await self.stations.resolve_many(topology.station_ids())
        return LineDetail(line=line, stations=topology.ordered_stations(stations))

    async def _ensure_name_available(self, name: str, exclude_line_id: uuid.UUID | None = None) -> None:
        query = select(Line.id).where(Line.name == name)
        if exclude_line_id is not None:
            query = query.where(Line.id != exclude_line_id)
        result = await self.db.execute(query)
        if result.scalar_one_or_none() is not None:
            logger.warning("line_name_taken", name=name)
            raise DuplicateLineNameError(name)

    @asynccontextmanager
    async def _locked_line(self, line_id: uuid.UUID) -> AsyncIterator[LineRecord]:
        """Hold the line's lock and row lock; roll back if a business rule fails inside."""
        async with line_locks.lock_for(line_id):
            try:
                yield await self.store.load_line(line_id, for_update=True)
            except SubwayError:
                # Release the row lock taken above
                await self.db.rollback()
                raise

    @asynccontextmanager
    async def _locked_topology(self, line_id: uuid.UUID) -> AsyncIterator[tuple[LineRecord, LineTopology]]:
        """Hold the line's lock while yielding its verified current topology."""
        async with self._locked_line(line_id) as line:
            topology = LineTopology(line_id, await self.store.load_segments(line_id))
            topology.check_invariants()
            yield line, topology

    # ==================== Line CRUD ====================

    async def create_line(
        self,
        name: str,
        color: str,
        up_station_id: uuid.UUID,
        down_station_id: uuid.UUID,
        distance: int,
    ) -> LineDetail:
        """
        Create a line together with its first segment.

        Raises:
            DuplicateLineNameError: If the name is taken
            UnknownStationError: If either station doesn't exist
            InvalidSegmentError: If distance <= 0 or the stations are the same
        """
        await self._ensure_name_available(name)
        up_station, down_station = await self._resolve_pair(up_station_id, down_station_id)

        line = Line(id=uuid.uuid4(), name=name, color=color)
        topology, changes = LineTopology.create(line.id, up_station, down_station, distance)

        self.db.add(line)
        try:
            # Flush the line first so the section's foreign key resolves
            await self.db.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent create of the same name
            await self.db.rollback()
            raise DuplicateLineNameError(name) from e
        await self.store.save_segments(changes)

        await invalidate_path_cache()
        logger.info("line_created", line_id=str(line.id), name=name)
        return LineDetail(
            line=line.to_record(),
            stations=topology.ordered_stations({up_station.id: up_station, down_station.id: down_station}),
        )

    async def list_lines(self) -> list[LineDetail]:
        snapshots = await self.store.load_all_lines()
        station_ids = {
            station_id
            for snapshot in snapshots
            for segment in snapshot.segments
            for station_id in (segment.up_station_id, segment.down_station_id)
        }
        stations = await self.stations.resolve_many(station_ids)
        return [
            LineDetail(
                line=snapshot.line,
                stations=LineTopology(snapshot.line.id, snapshot.segments).ordered_stations(stations),
            )
            for snapshot in snapshots
        ]

    async def get_line(self, line_id: uuid.UUID) -> LineDetail:
        line = await self.store.load_line(line_id)
        topology = LineTopology(line_id, await self.store.load_segments(line_id))
        return await self._detail(line, topology)

    async def update_line(self, line_id: uuid.UUID, name: str, color: str) -> LineRecord:
        """
        Rename or recolor a line. Topology is untouched.

        Raises:
            LineNotFoundError: If the line doesn't exist
            DuplicateLineNameError: If another line already has this name
        """
        line = await self.db.get(Line, line_id)
        if line is None:
            raise LineNotFoundError(line_id)
        await self._ensure_name_available(name, exclude_line_id=line_id)

        line.name = name
        line.color = color
        await self.db.commit()
        await self.db.refresh(line)

        logger.info("line_updated", line_id=str(line_id), name=name, color=color)
        return line.to_record()

    async def delete_line(self, line_id: uuid.UUID) -> None:
        """
        Delete a line and all of its sections.

        Raises:
            LineNotFoundError: If the line doesn't exist
        """
        async with self._locked_line(line_id):
            await self.db.execute(delete(Section).where(Section.line_id == line_id))
            await self.db.execute(delete(Line).where(Line.id == line_id))
            await self.db.commit()

        await invalidate_path_cache()
        logger.info("line_deleted", line_id=str(line_id))

    # ==================== Topology ====================

    async def get_ordered_stations(self, line_id: uuid.UUID) -> list[StationRecord]:
        return (await self.get_line(line_id)).stations

    async def insert_section(
        self,
        line_id: uuid.UUID,
        up_station_id: uuid.UUID,
        down_station_id: uuid.UUID,
        distance: int,
    ) -> SegmentChanges:
        """
        Add a section to a line, splitting an existing section when needed.

        Args:
            line_id: Line to extend
            up_station_id: Up-direction station of the new section
            down_station_id: Down-direction station of the new section
            distance: Positive distance of the new section

        Returns:
            The persisted change set

        Raises:
            LineNotFoundError: If the line doesn't exist
            UnknownStationError: If either station doesn't exist
            TopologyError: DuplicateSegment, DisconnectedSegment, DistanceTooLarge or InvalidSegment
        """
        up_station, down_station = await self._resolve_pair(up_station_id, down_station_id)

        async with self._locked_topology(line_id) as (_, topology):
            try:
                changes = topology.insert_section(up_station, down_station, distance)
            except SubwayError as e:
                logger.warning("section_insert_rejected", line_id=str(line_id), reason=str(e))
                raise
            await self.store.save_segments(changes)

        await invalidate_path_cache()
        logger.info(
            "section_inserted",
            line_id=str(line_id),
            up_station_id=str(up_station_id),
            down_station_id=str(down_station_id),
            distance=distance,
            split=changes.is_split,
        )
        return changes

    async def remove_station(self, line_id: uuid.UUID, station_id: uuid.UUID) -> SegmentChanges:
        """
        Remove a station from a line, merging its adjoining sections.

        Returns:
            The persisted change set

        Raises:
            LineNotFoundError: If the line doesn't exist
            LastSegmentRemovalError: If the line has a single section
            StationNotOnLineError: If the station is not on the line
        """
        async with self._locked_topology(line_id) as (_, topology):
            try:
                changes = topology.remove_station(station_id)
            except SubwayError as e:
                logger.warning("station_removal_rejected", line_id=str(line_id), reason=str(e))
                raise
            await self.store.save_segments(changes)

        await invalidate_path_cache()
        logger.info(
            "station_removed_from_line",
            line_id=str(line_id),
            station_id=str(station_id),
            merged=changes.is_merge,
        )
        return changes
