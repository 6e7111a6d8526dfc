"""Database models for the subway network application."""

# Import all models to register them with SQLAlchemy metadata
from subway.models.base import Base, BaseModel
from subway.models.subway import Line, Section, Station

__all__ = [
    # Base
    "Base",
    "BaseModel",
    # Network models
    "Line",
    "Section",
    "Station",
]
