"""API endpoint for shortest-path queries."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.database import get_db
from subway.schemas.subway import PathResponse
from subway.services.path_service import PathService

router = APIRouter(prefix="/paths", tags=["paths"])


@router.get("", response_model=PathResponse)
async def find_path(
    source: uuid.UUID = Query(..., description="Starting station ID"),
    target: uuid.UUID = Query(..., description="Destination station ID"),
    db: AsyncSession = Depends(get_db),
) -> PathResponse:
    """
    Find the shortest route between two stations across all lines.

    Returns:
        Stations in travel order, total distance and the line used for each hop

    Raises:
        HTTPException: 400 if source equals target or no route exists
        HTTPException: 404 if either station doesn't exist
    """
    path = await PathService(db).find_path(source, target)
    return PathResponse.from_path(path)
