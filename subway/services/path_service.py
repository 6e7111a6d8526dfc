"""Path service: shortest-path queries across the whole network."""

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.cache import build_path_cache_key, get_path_cache, get_path_generation
from subway.core.config import settings
from subway.helpers.errors import NoRouteExistsError, SameSourceAndTargetError, UnknownStationError
from subway.helpers.network_graph import build_network_graph, find_shortest_path
from subway.services.line_service import SqlLineStore
from subway.services.station_service import StationService
from subway.types.ports import LineStore, StationDirectory
from subway.types.subway import SubwayPath

logger = structlog.get_logger(__name__)


class PathService:
    """Service for minimum-distance route queries."""

    def __init__(
        self,
        db: AsyncSession,
        stations: StationDirectory | None = None,
        lines: LineStore | None = None,
    ) -> None:
        """
        Initialize the path service.

        Args:
            db: Database session
            stations: Station directory (defaults to the database-backed StationService)
            lines: Line store (defaults to the database-backed SqlLineStore)
        """
        self.db = db
        self.stations: StationDirectory = stations or StationService(db)
        self.lines: LineStore = lines or SqlLineStore(db)

    async def find_path(self, source_id: uuid.UUID, target_id: uuid.UUID, use_cache: bool = True) -> SubwayPath:
        """
        Find the shortest route between two stations.

        The network graph is rebuilt from the current state of every line. With
        caching enabled, results are memoised until the next topology change.

        Args:
            source_id: Starting station ID
            target_id: Destination station ID
            use_cache: Whether to read and write the path cache (default: True)

        Returns:
            SubwayPath with stations in travel order and total distance

        Raises:
            SameSourceAndTargetError: If source_id == target_id
            UnknownStationError: If either station doesn't exist
            NoRouteExistsError: If the stations are not connected
        """
        if source_id == target_id:
            raise SameSourceAndTargetError(source_id)

        endpoints = await self.stations.resolve_many([source_id, target_id])
        for station_id in (source_id, target_id):
            if station_id not in endpoints:
                logger.warning("path_query_unknown_station", station_id=str(station_id))
                raise UnknownStationError(station_id)

        cache = get_path_cache() if use_cache and settings.CACHE_ENABLED else None
        # Read before loading lines so a concurrent mutation makes this key stale
        generation = await get_path_generation() if cache is not None else 0
        cache_key = build_path_cache_key(source_id, target_id, generation)
        if cache is not None:
            cached_path: SubwayPath | None = await cache.get(cache_key)
            if cached_path is not None:
                logger.debug("path_cache_hit", source_id=str(source_id), target_id=str(target_id))
                return cached_path

        snapshots = await self.lines.load_all_lines()
        station_ids = {
            station_id
            for snapshot in snapshots
            for segment in snapshot.segments
            for station_id in (segment.up_station_id, segment.down_station_id)
        }
        stations = await self.stations.resolve_many(station_ids)

        graph = build_network_graph(snapshots, stations)
        try:
            path = find_shortest_path(graph, source_id, target_id)
        except NoRouteExistsError:
            logger.warning("path_query_no_route", source_id=str(source_id), target_id=str(target_id))
            raise

        if cache is not None:
            await cache.set(cache_key, path, ttl=settings.PATH_CACHE_TTL)

        logger.info(
            "path_found",
            source_id=str(source_id),
            target_id=str(target_id),
            distance=path.distance,
            hops=len(path.legs),
            graph_stations=graph.number_of_nodes(),
            graph_edges=graph.number_of_edges(),
        )
        return path
