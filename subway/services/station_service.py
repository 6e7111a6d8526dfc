"""Station service: station CRUD and the station directory used by line and path services."""

import uuid
from collections.abc import Iterable

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.cache import invalidate_path_cache
from subway.helpers.errors import DuplicateStationNameError, StationInUseError, UnknownStationError
from subway.models.subway import Section, Station
from subway.types.subway import StationRecord

logger = structlog.get_logger(__name__)


class StationService:
    """Service for managing stations and resolving station IDs."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the station service.

        Args:
            db: Database session
        """
        self.db = db

    # ==================== Station directory ====================

    async def resolve(self, station_id: uuid.UUID) -> StationRecord:
        """
        Resolve a station ID to its record.

        Raises:
            UnknownStationError: If no station has this ID
        """
        station = await self.db.get(Station, station_id)
        if station is None:
            logger.warning("station_not_found", station_id=str(station_id))
            raise UnknownStationError(station_id)
        return station.to_record()

    async def resolve_many(self, station_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, StationRecord]:
        """
        Resolve several station IDs at once.

        Args:
            station_ids: IDs to resolve (duplicates are fine)

        Returns:
            Mapping of ID to record; IDs with no station are absent
        """
        unique_ids = set(station_ids)
        if not unique_ids:
            return {}
        result = await self.db.execute(select(Station).where(Station.id.in_(unique_ids)))
        return {station.id: station.to_record() for station in result.scalars().all()}

    # ==================== CRUD ====================

    async def create_station(self, name: str) -> StationRecord:
        """
        Create a station.

        Args:
            name: Unique station name

        Returns:
            The created station

        Raises:
            DuplicateStationNameError: If a station with this name already exists
        """
        existing = await self.db.execute(select(Station.id).where(Station.name == name))
        if existing.scalar_one_or_none() is not None:
            logger.warning("station_name_taken", name=name)
            raise DuplicateStationNameError(name)

        station = Station(name=name)
        self.db.add(station)
        try:
            await self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent create of the same name
            await self.db.rollback()
            raise DuplicateStationNameError(name) from e
        await self.db.refresh(station)

        logger.info("station_created", station_id=str(station.id), name=name)
        return station.to_record()

    async def list_stations(self) -> list[StationRecord]:
        result = await self.db.execute(select(Station).order_by(Station.created_at, Station.id))
        return [station.to_record() for station in result.scalars().all()]

    async def delete_station(self, station_id: uuid.UUID) -> None:
        """
        Delete a station that is not part of any line.

        Raises:
            UnknownStationError: If the station doesn't exist
            StationInUseError: If any line section still references the station
        """
        station = await self.db.get(Station, station_id)
        if station is None:
            raise UnknownStationError(station_id)

        in_use = await self.db.execute(
            select(Section.id)
            .where(or_(Section.up_station_id == station_id, Section.down_station_id == station_id))
            .limit(1)
        )
        if in_use.scalar_one_or_none() is not None:
            logger.warning("station_delete_rejected_in_use", station_id=str(station_id))
            raise StationInUseError(station_id)

        await self.db.delete(station)
        await self.db.commit()
        await invalidate_path_cache()

        logger.info("station_deleted", station_id=str(station_id))
