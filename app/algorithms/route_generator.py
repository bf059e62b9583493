import logging
from collections import Counter
from typing import Callable, List, Optional, Set

from app.algorithms.distance_calculator import distance_calculator
from app.algorithms.location_connector import ConnectedGraph
from app.algorithms.path_search import (
    MAX_ITERATIONS,
    SearchPath,
    astar_graph_path,
    bidirectional_dijkstra,
)
from app.algorithms.path_strategies import (
    PATH_STRATEGIES,
    PathStrategy,
    STRATEGIES_BY_NAME,
    penalize_edges,
    penalize_lines,
)
from app.core.config import SEARCH_CONFIG, TRANSIT_SPEED
from app.models.domain import EdgeType

logger = logging.getLogger(__name__)


def path_station_set(path: SearchPath, graph) -> Set[str]:
    """transit 구간에 포함된 물리 역 id 집합"""
    stations = set()
    for node_id in path.transit_nodes:
        node = graph.get_node(node_id)
        if node is not None:
            stations.add(node.station.id)
    return stations


def jaccard(a: Set[str], b: Set[str]) -> float:
    if not a and not b:
        return 1.0
    union = a | b
    return len(a & b) / len(union)


class PathGenerator:
    """
    다중 전략 후보 경로 생성

    1. 4가지 가중치 전략으로 양방향 Dijkstra
    2. 2개 이상 경로가 공유하는 edge 가중치 x2 후 재탐색
    3. (요청 시) 이미 사용한 노선 전체에 x10 후 재탐색
    재탐색 결과는 기존 모든 경로와의 Jaccard 유사도가 기준 이하일 때만 채택
    """

    def __init__(
        self,
        strategies: Optional[List[PathStrategy]] = None,
        max_paths: int = SEARCH_CONFIG["max_paths"],
        similarity_threshold: float = SEARCH_CONFIG["path_similarity_threshold"],
        max_iterations: int = MAX_ITERATIONS,
    ):
        self.strategies = strategies or PATH_STRATEGIES
        self.max_paths = max_paths
        self.similarity_threshold = similarity_threshold
        self.max_iterations = max_iterations

    def generate(
        self, connected: ConnectedGraph, force_line_diversity: bool = False
    ) -> List[SearchPath]:
        graph = connected.graph
        origin_id = connected.origin_id
        destination_id = connected.destination_id

        paths: List[SearchPath] = []
        seen_sequences = set()

        for strategy in self.strategies:
            path = bidirectional_dijkstra(
                graph, origin_id, destination_id, strategy.weight, self.max_iterations
            )
            if not path or not path.edges:
                logger.debug(f"전략 {strategy.name}: 경로 없음")
                continue
            if path.nodes in seen_sequences:
                continue
            seen_sequences.add(path.nodes)
            paths.append(path)

        if not paths:
            return []

        heuristic = self._heuristic(connected)
        base_weight = STRATEGIES_BY_NAME["standard"].weight

        # 재사용 edge 패널티
        reused = self._reused_edges(paths)
        if reused:
            weight = penalize_edges(
                base_weight, reused, SEARCH_CONFIG["reused_edge_penalty"]
            )
            self._try_alternative(
                connected, paths, weight, heuristic, "reused-edge penalty"
            )

        # 노선 다양성 강제
        if force_line_diversity:
            used_lines = {
                edge.line_id
                for path in paths
                for edge in path.edges
                if edge.type == EdgeType.TRANSIT
            }
            if used_lines:
                weight = penalize_lines(
                    base_weight, used_lines, SEARCH_CONFIG["line_diversity_penalty"]
                )
                self._try_alternative(
                    connected, paths, weight, heuristic, "line diversity"
                )

        if len(paths) > self.max_paths:
            paths = paths[: self.max_paths]

        logger.debug(f"후보 경로 {len(paths)}개 생성")
        return paths

    def _try_alternative(
        self,
        connected: ConnectedGraph,
        paths: List[SearchPath],
        weight,
        heuristic: Callable[[str], float],
        label: str,
    ) -> bool:
        graph = connected.graph
        candidate = astar_graph_path(
            graph,
            connected.origin_id,
            connected.destination_id,
            weight,
            heuristic=heuristic,
            max_iterations=self.max_iterations,
        )
        if not candidate or not candidate.edges:
            return False

        candidate_stations = path_station_set(candidate, graph)
        for existing in paths:
            similarity = jaccard(candidate_stations, path_station_set(existing, graph))
            if similarity > self.similarity_threshold:
                logger.debug(f"대안 경로 기각 ({label}): 유사도={similarity:.2f}")
                return False

        paths.append(candidate)
        logger.debug(f"대안 경로 채택 ({label})")
        return True

    @staticmethod
    def _reused_edges(paths: List[SearchPath]) -> Set[str]:
        """2개 이상 경로가 지나는 edge (종류 무관)"""
        counts = Counter(edge.key for path in paths for edge in path.edges)
        return {key for key, count in counts.items() if count > 1}

    @staticmethod
    def _heuristic(connected: ConnectedGraph) -> Callable[[str], float]:
        """목적지까지 직선거리를 최고 속도로 이동하는 시간 (하한 추정)"""
        graph = connected.graph
        goal = connected.destination.coordinates

        def _h(node_id: str) -> float:
            node = graph.get_node(node_id)
            if node is None:
                return 0.0
            distance = distance_calculator.calculate_distance(node.station.coordinates, goal)
            return distance / TRANSIT_SPEED * 0.95

        return _h
