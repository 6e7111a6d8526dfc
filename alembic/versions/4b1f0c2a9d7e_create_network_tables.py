"""create_network_tables

Revision ID: 4b1f0c2a9d7e
Revises:
Create Date: 2026-10-19 09:12:31.402118

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4b1f0c2a9d7e"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema.

    Create stations, lines and sections. A line's shape is stored only as its
    sections; each section is a directed hop with a positive distance.
    """
    op.create_table(
        "stations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_stations_name", "stations", ["name"], unique=True)

    op.create_table(
        "lines",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("color", sa.String(length=50), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_lines_name", "lines", ["name"], unique=True)

    op.create_table(
        "sections",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("line_id", sa.Uuid(), nullable=False),
        sa.Column("up_station_id", sa.Uuid(), nullable=False),
        sa.Column("down_station_id", sa.Uuid(), nullable=False),
        sa.Column("distance", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("distance > 0", name="ck_sections_distance_positive"),
        sa.CheckConstraint("up_station_id <> down_station_id", name="ck_sections_distinct_stations"),
        sa.ForeignKeyConstraint(["line_id"], ["lines.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["up_station_id"], ["stations.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["down_station_id"], ["stations.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sections_line", "sections", ["line_id"])
    op.create_index("ix_sections_up_station", "sections", ["up_station_id"])
    op.create_index("ix_sections_down_station", "sections", ["down_station_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_sections_down_station", table_name="sections")
    op.drop_index("ix_sections_up_station", table_name="sections")
    op.drop_index("ix_sections_line", table_name="sections")
    op.drop_table("sections")
    op.drop_index("ix_lines_name", table_name="lines")
    op.drop_table("lines")
    op.drop_index("ix_stations_name", table_name="stations")
    op.drop_table("stations")
