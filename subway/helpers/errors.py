"""
Domain exceptions for line topology and path queries.

Every business-rule violation raised by the helpers and services derives from
SubwayError. Each class carries the HTTP status code the API layer answers
with, so the web layer can map them with a single exception handler.
"""

from __future__ import annotations

import uuid


class SubwayError(Exception):
    """Base exception for subway network business-rule violations."""

    status_code: int = 400


# Topology errors


class TopologyError(SubwayError):
    """Base exception for line topology violations."""

    pass


class InvalidSegmentError(TopologyError):
    """Raised when a segment has a non-positive distance or connects a station to itself."""

    pass


class DuplicateSegmentError(TopologyError):
    """Raised when both endpoints of a new segment are already on the line."""

    def __init__(self, up_station_id: uuid.UUID, down_station_id: uuid.UUID) -> None:
        self.up_station_id = up_station_id
        self.down_station_id = down_station_id
        super().__init__(f"Segment already connected: stations {up_station_id} and {down_station_id} are both on the line.")


class DisconnectedSegmentError(TopologyError):
    """Raised when neither endpoint of a new segment is on a non-empty line."""

    def __init__(self, up_station_id: uuid.UUID, down_station_id: uuid.UUID) -> None:
        self.up_station_id = up_station_id
        self.down_station_id = down_station_id
        super().__init__(
            f"Segment not connected to line: neither station {up_station_id} nor {down_station_id} is on the line."
        )


class DistanceTooLargeError(TopologyError):
    """Raised when a split insert is not strictly shorter than the segment it splits."""

    def __init__(self, distance: int, existing_distance: int) -> None:
        self.distance = distance
        self.existing_distance = existing_distance
        super().__init__(
            f"Distance exceeds existing segment length: {distance} must be less than {existing_distance}."
        )


class LastSegmentRemovalError(TopologyError):
    """Raised when removing a station would leave the line without segments."""

    def __init__(self, line_id: uuid.UUID) -> None:
        self.line_id = line_id
        super().__init__(f"Cannot remove last station from line {line_id}.")


class StationNotOnLineError(TopologyError):
    """Raised when removing a station that is not part of the line."""

    def __init__(self, line_id: uuid.UUID, station_id: uuid.UUID) -> None:
        self.line_id = line_id
        self.station_id = station_id
        super().__init__(f"Station {station_id} is not on line {line_id}.")


class CorruptTopologyError(TopologyError):
    """Raised when stored segments do not form exactly one simple path."""

    status_code = 500

    def __init__(self, line_id: uuid.UUID, reason: str) -> None:
        self.line_id = line_id
        self.reason = reason
        super().__init__(f"Line {line_id} has a corrupt topology: {reason}.")


# Path errors


class PathError(SubwayError):
    """Base exception for path query failures."""

    pass


class SameSourceAndTargetError(PathError):
    """Raised when a path query uses the same station as source and target."""

    def __init__(self, station_id: uuid.UUID) -> None:
        self.station_id = station_id
        super().__init__(f"Source and target must differ (both are {station_id}).")


class NoRouteExistsError(PathError):
    """Raised when no path connects source and target in the network graph."""

    def __init__(self, source_id: uuid.UUID, target_id: uuid.UUID) -> None:
        self.source_id = source_id
        self.target_id = target_id
        super().__init__(f"No route exists from station {source_id} to station {target_id}.")


# Lookup and uniqueness errors


class UnknownStationError(SubwayError):
    """Raised when a station ID cannot be resolved."""

    status_code = 404

    def __init__(self, station_id: uuid.UUID) -> None:
        self.station_id = station_id
        super().__init__(f"Unknown station: {station_id}.")


class LineNotFoundError(SubwayError):
    """Raised when a line ID cannot be resolved."""

    status_code = 404

    def __init__(self, line_id: uuid.UUID) -> None:
        self.line_id = line_id
        super().__init__(f"Line {line_id} not found.")


class DuplicateStationNameError(SubwayError):
    """Raised when creating a station whose name is already taken."""

    status_code = 409

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Station '{name}' already exists.")


class DuplicateLineNameError(SubwayError):
    """Raised when creating or renaming a line to a name that is already taken."""

    status_code = 409

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Line '{name}' already exists.")


class StationInUseError(SubwayError):
    """Raised when deleting a station that is still referenced by a line segment."""

    status_code = 409

    def __init__(self, station_id: uuid.UUID) -> None:
        self.station_id = station_id
        super().__init__(f"Station {station_id} is still part of a line and cannot be deleted.")
