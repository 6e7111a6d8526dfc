"""API endpoints for stations."""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.database import get_db
from subway.schemas.subway import StationCreate, StationResponse
from subway.services.station_service import StationService

router = APIRouter(prefix="/stations", tags=["stations"])


@router.post("", response_model=StationResponse, status_code=status.HTTP_201_CREATED)
async def create_station(
    station_data: StationCreate,
    db: AsyncSession = Depends(get_db),
) -> StationResponse:
    """
    Create a station.

    Raises:
        HTTPException: 409 if a station with this name already exists
    """
    station = await StationService(db).create_station(station_data.name)
    return StationResponse.model_validate(station)


@router.get("", response_model=list[StationResponse])
async def list_stations(db: AsyncSession = Depends(get_db)) -> list[StationResponse]:
    """Get all stations in creation order."""
    stations = await StationService(db).list_stations()
    return [StationResponse.model_validate(station) for station in stations]


@router.get("/{station_id}", response_model=StationResponse)
async def get_station(station_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> StationResponse:
    """
    Get a station by ID.

    Raises:
        HTTPException: 404 if station not found
    """
    station = await StationService(db).resolve(station_id)
    return StationResponse.model_validate(station)


@router.delete("/{station_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_station(station_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> None:
    """
    Delete a station.

    Raises:
        HTTPException: 404 if station not found
        HTTPException: 409 if the station is still part of a line
    """
    await StationService(db).delete_station(station_id)
