"""Pydantic schemas for stations, lines, sections and paths."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from subway.types.subway import LineRecord, StationRecord, SubwayPath

# ==================== Helper Functions ====================


def _validate_not_blank(value: str) -> str:
    """
    Strip surrounding whitespace and reject empty names - reusable helper.

    Raises:
        ValueError: If the value is empty after stripping
    """
    stripped = value.strip()
    if not stripped:
        msg = "must not be blank"
        raise ValueError(msg)
    return stripped


# ==================== Station Schemas ====================


class StationCreate(BaseModel):
    """Request schema for creating a station."""

    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _validate_not_blank(v)


class StationResponse(BaseModel):
    """Response schema for a station."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str


# ==================== Line Schemas ====================


class LineCreate(BaseModel):
    """Request schema for creating a line with its first section."""

    name: str = Field(..., min_length=1, max_length=255)
    color: str = Field(..., min_length=1, max_length=50)
    up_station_id: UUID
    down_station_id: UUID
    distance: int = Field(..., gt=0, description="Distance between the two stations (positive integer)")

    @field_validator("name", "color")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return _validate_not_blank(v)

    @model_validator(mode="after")
    def validate_distinct_stations(self) -> "LineCreate":
        """Ensure the first section doesn't connect a station to itself."""
        if self.up_station_id == self.down_station_id:
            msg = "up_station_id and down_station_id must differ"
            raise ValueError(msg)
        return self


class LineUpdate(BaseModel):
    """Request schema for renaming or recoloring a line."""

    name: str = Field(..., min_length=1, max_length=255)
    color: str = Field(..., min_length=1, max_length=50)

    @field_validator("name", "color")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return _validate_not_blank(v)


class LineResponse(BaseModel):
    """Response schema for a line with its stations in travel order."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    color: str
    stations: list[StationResponse] = []

    @classmethod
    def from_records(cls, line: LineRecord, stations: list[StationRecord]) -> "LineResponse":
        return cls(
            id=line.id,
            name=line.name,
            color=line.color,
            stations=[StationResponse.model_validate(station) for station in stations],
        )


# ==================== Section Schemas ====================


class SectionCreate(BaseModel):
    """Request schema for adding a section to a line."""

    up_station_id: UUID
    down_station_id: UUID
    distance: int = Field(..., gt=0)

    @model_validator(mode="after")
    def validate_distinct_stations(self) -> "SectionCreate":
        """Ensure the section doesn't connect a station to itself."""
        if self.up_station_id == self.down_station_id:
            msg = "up_station_id and down_station_id must differ"
            raise ValueError(msg)
        return self


# ==================== Path Schemas ====================


class PathLegResponse(BaseModel):
    """One hop of a path."""

    model_config = ConfigDict(from_attributes=True)

    line_id: UUID
    from_station_id: UUID
    to_station_id: UUID
    distance: int


class PathResponse(BaseModel):
    """Response schema for a shortest-path query."""

    stations: list[StationResponse]
    distance: int
    legs: list[PathLegResponse]

    @classmethod
    def from_path(cls, path: SubwayPath) -> "PathResponse":
        return cls(
            stations=[StationResponse.model_validate(station) for station in path.stations],
            distance=path.distance,
            legs=[PathLegResponse.model_validate(leg) for leg in path.legs],
        )
