"""API endpoints for lines and their sections."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.database import get_db
from subway.schemas.subway import LineCreate, LineResponse, LineUpdate, SectionCreate
from subway.services.line_service import LineService

router = APIRouter(prefix="/lines", tags=["lines"])


# ==================== Line CRUD ====================


@router.post("", response_model=LineResponse, status_code=status.HTTP_201_CREATED)
async def create_line(
    line_data: LineCreate,
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Create a line together with its first section.

    Raises:
        HTTPException: 404 if either station doesn't exist
        HTTPException: 409 if a line with this name already exists
    """
    detail = await LineService(db).create_line(
        name=line_data.name,
        color=line_data.color,
        up_station_id=line_data.up_station_id,
        down_station_id=line_data.down_station_id,
        distance=line_data.distance,
    )
    return LineResponse.from_records(detail.line, detail.stations)


@router.get("", response_model=list[LineResponse])
async def list_lines(db: AsyncSession = Depends(get_db)) -> list[LineResponse]:
    """Get all lines, each with its stations in travel order."""
    details = await LineService(db).list_lines()
    return [LineResponse.from_records(detail.line, detail.stations) for detail in details]


@router.get("/{line_id}", response_model=LineResponse)
async def get_line(line_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> LineResponse:
    """
    Get a line with its stations in travel order.

    Raises:
        HTTPException: 404 if line not found
    """
    detail = await LineService(db).get_line(line_id)
    return LineResponse.from_records(detail.line, detail.stations)


@router.put("/{line_id}", response_model=LineResponse)
async def update_line(
    line_id: uuid.UUID,
    line_data: LineUpdate,
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Rename or recolor a line.

    Raises:
        HTTPException: 404 if line not found
        HTTPException: 409 if another line already has this name
    """
    service = LineService(db)
    await service.update_line(line_id, name=line_data.name, color=line_data.color)
    detail = await service.get_line(line_id)
    return LineResponse.from_records(detail.line, detail.stations)


@router.delete("/{line_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_line(line_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> None:
    """
    Delete a line and all of its sections.

    Raises:
        HTTPException: 404 if line not found
    """
    await LineService(db).delete_line(line_id)


# ==================== Sections ====================


@router.post("/{line_id}/sections", response_model=LineResponse)
async def add_section(
    line_id: uuid.UUID,
    section_data: SectionCreate,
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Add a section to a line.

    If the known station already has a section leaving in the new section's
    direction, that section is split and the new station is inserted between.

    Returns:
        The line with its updated station order

    Raises:
        HTTPException: 400 if the section duplicates, is disconnected from the line,
            or is not shorter than the section it would split
        HTTPException: 404 if the line or a station doesn't exist
    """
    service = LineService(db)
    await service.insert_section(
        line_id,
        up_station_id=section_data.up_station_id,
        down_station_id=section_data.down_station_id,
        distance=section_data.distance,
    )
    detail = await service.get_line(line_id)
    return LineResponse.from_records(detail.line, detail.stations)


@router.delete("/{line_id}/sections", response_model=LineResponse)
async def remove_station_from_line(
    line_id: uuid.UUID,
    station_id: uuid.UUID = Query(..., description="Station to remove from the line"),
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Remove a station from a line, merging its adjoining sections.

    Raises:
        HTTPException: 400 if the line has a single section or the station is not on it
        HTTPException: 404 if line not found
    """
    service = LineService(db)
    await service.remove_station(line_id, station_id)
    detail = await service.get_line(line_id)
    return LineResponse.from_records(detail.line, detail.stations)
