"""
Network graph assembly and shortest-path search.

These pure functions take line snapshots already loaded from the store and
return results without database access. The graph is rebuilt for every query;
PathService memoises query results, not the graph.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from itertools import pairwise

import networkx as nx

from subway.helpers.errors import NoRouteExistsError, SameSourceAndTargetError, UnknownStationError
from subway.helpers.line_topology import LineTopology
from subway.types.subway import LineSnapshot, PathLeg, StationRecord, SubwayPath

WEIGHT_ATTRIBUTE = "distance"


def build_network_graph(
    lines: Iterable[LineSnapshot],
    stations: Mapping[uuid.UUID, StationRecord],
) -> nx.MultiGraph:
    """
    Build an undirected weighted multigraph over all lines.

    Vertices are station IDs (deduplicated across lines) carrying the resolved
    station record under the ``station`` attribute. Each segment becomes its own
    edge keyed by segment ID, so parallel segments from different lines are all
    kept. Edges are added line by line in chain order, which fixes the graph's
    iteration order and keeps searches deterministic.

    Args:
        lines: Line snapshots in a stable order
        stations: Station records keyed by ID, covering every station on the lines

    Returns:
        networkx MultiGraph with ``distance``, ``line_id`` attributes on each edge

    Raises:
        UnknownStationError: If a segment references a station missing from stations
    """
    graph = nx.MultiGraph()
    for snapshot in lines:
        topology = LineTopology(snapshot.line.id, snapshot.segments)
        for segment in topology.chain():
            for station_id in (segment.up_station_id, segment.down_station_id):
                if station_id not in graph:
                    station = stations.get(station_id)
                    if station is None:
                        raise UnknownStationError(station_id)
                    graph.add_node(station_id, station=station)
            graph.add_edge(
                segment.up_station_id,
                segment.down_station_id,
                key=segment.id,
                distance=segment.distance,
                line_id=snapshot.line.id,
            )
    return graph


def _cheapest_edge(graph: nx.MultiGraph, u: uuid.UUID, v: uuid.UUID) -> tuple[uuid.UUID, dict]:
    # min() keeps the first of equal candidates, i.e. the earliest inserted edge
    return min(graph[u][v].items(), key=lambda item: item[1][WEIGHT_ATTRIBUTE])


def find_shortest_path(graph: nx.MultiGraph, source_id: uuid.UUID, target_id: uuid.UUID) -> SubwayPath:
    """
    Find the minimum-distance route between two stations.

    Runs Dijkstra over the multigraph (all weights are positive). The returned
    distance is summed from the edges actually chosen, one per hop.

    Args:
        graph: Graph from build_network_graph()
        source_id: Starting station ID
        target_id: Destination station ID

    Returns:
        SubwayPath with ordered stations, total distance and per-hop legs

    Raises:
        SameSourceAndTargetError: If source_id == target_id
        NoRouteExistsError: If either station is not in the graph or they are not connected
    """
    if source_id == target_id:
        raise SameSourceAndTargetError(source_id)

    try:
        node_path = nx.dijkstra_path(graph, source_id, target_id, weight=WEIGHT_ATTRIBUTE)
    except (nx.NodeNotFound, nx.NetworkXNoPath) as e:
        raise NoRouteExistsError(source_id, target_id) from e

    legs = []
    for u, v in pairwise(node_path):
        segment_id, data = _cheapest_edge(graph, u, v)
        legs.append(
            PathLeg(
                line_id=data["line_id"],
                segment_id=segment_id,
                from_station_id=u,
                to_station_id=v,
                distance=data[WEIGHT_ATTRIBUTE],
            )
        )

    return SubwayPath(
        stations=tuple(graph.nodes[node]["station"] for node in node_path),
        distance=sum(leg.distance for leg in legs),
        legs=tuple(legs),
    )
