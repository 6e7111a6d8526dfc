"""Subway network data models: stations, lines and line sections."""

import uuid

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from subway.models.base import BaseModel
from subway.types.subway import LineRecord, SegmentRecord, StationRecord


class Station(BaseModel):
    """Subway station."""

    __tablename__ = "stations"

    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    def to_record(self) -> StationRecord:
        return StationRecord(id=self.id, name=self.name)

    def __repr__(self) -> str:
        """String representation of the station."""
        return f"<Station(id={self.id}, name={self.name})>"


class Line(BaseModel):
    """Subway line (e.g., Line 2, Shinbundang Line).

    A line's shape lives entirely in its sections; the line row only carries
    display metadata.
    """

    __tablename__ = "lines"

    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    color: Mapped[str] = mapped_column(
        String(50),  # CSS class or hex code, e.g. "bg-red-600"
        nullable=False,
    )

    def to_record(self) -> LineRecord:
        return LineRecord(id=self.id, name=self.name, color=self.color)

    def __repr__(self) -> str:
        """String representation of the line."""
        return f"<Line(id={self.id}, name={self.name})>"


class Section(BaseModel):
    """Directed up-station to down-station hop on a line, with its distance."""

    __tablename__ = "sections"

    line_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("lines.id", ondelete="CASCADE"),
        nullable=False,
    )
    up_station_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stations.id", ondelete="RESTRICT"),
        nullable=False,
    )
    down_station_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stations.id", ondelete="RESTRICT"),
        nullable=False,
    )
    distance: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("distance > 0", name="ck_sections_distance_positive"),
        CheckConstraint("up_station_id <> down_station_id", name="ck_sections_distinct_stations"),
        Index("ix_sections_line", "line_id"),
        Index("ix_sections_up_station", "up_station_id"),
        Index("ix_sections_down_station", "down_station_id"),
    )

    @classmethod
    def from_record(cls, record: SegmentRecord) -> "Section":
        return cls(
            id=record.id,
            line_id=record.line_id,
            up_station_id=record.up_station_id,
            down_station_id=record.down_station_id,
            distance=record.distance,
        )

    def to_record(self) -> SegmentRecord:
        return SegmentRecord(
            id=self.id,
            line_id=self.line_id,
            up_station_id=self.up_station_id,
            down_station_id=self.down_station_id,
            distance=self.distance,
        )

    def __repr__(self) -> str:
        """String representation of the section."""
        return f"<Section(id={self.id}, up={self.up_station_id}, down={self.down_station_id}, distance={self.distance})>"
