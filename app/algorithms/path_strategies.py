"""
경로 다양성을 위한 edge 가중치 전략

각 전략은 같은 그래프에서 서로 다른 후보 경로를 끌어내기 위한 것
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Set

from app.models.domain import EdgeType, GraphEdge

WeightFn = Callable[[GraphEdge], float]


@dataclass(frozen=True)
class PathStrategy:
    name: str
    weight: WeightFn
    description: str


def _standard(edge: GraphEdge) -> float:
    return edge.duration


def _minimize_transfers(edge: GraphEdge) -> float:
    return edge.duration * (5 if edge.type == EdgeType.TRANSFER else 1)


def _prefer_transit(edge: GraphEdge) -> float:
    return edge.duration * (2 if edge.type == EdgeType.WALKING else 1)


def _prefer_walking(edge: GraphEdge) -> float:
    return edge.duration * (0.8 if edge.type == EdgeType.WALKING else 1.5)


PATH_STRATEGIES: List[PathStrategy] = [
    PathStrategy("standard", _standard, "소요시간 기준 최단 경로"),
    PathStrategy("minimizeTransfers", _minimize_transfers, "환승 최소화 (환승 x5)"),
    PathStrategy("preferTransit", _prefer_transit, "대중교통 우선 (보행 x2)"),
    PathStrategy("preferWalking", _prefer_walking, "보행 우선 (보행 x0.8, 그 외 x1.5)"),
]

STRATEGIES_BY_NAME: Dict[str, PathStrategy] = {s.name: s for s in PATH_STRATEGIES}


def penalize_edges(base: WeightFn, edge_keys: Set[str], factor: float) -> WeightFn:
    """
    지정된 edge(key 기준)의 가중치만 factor배로 바꾼 가중치 함수

    공유 그래프를 복사하지 않고 탐색용 가중치만 바꿈
    """

    def _weight(edge: GraphEdge) -> float:
        value = base(edge)
        if edge.key in edge_keys:
            return value * factor
        return value

    return _weight


def penalize_lines(base: WeightFn, line_ids: Iterable[str], factor: float) -> WeightFn:
    """지정 노선의 transit edge 가중치를 factor배"""
    lines = set(line_ids)

    def _weight(edge: GraphEdge) -> float:
        value = base(edge)
        if edge.type == EdgeType.TRANSIT and edge.line_id in lines:
            return value * factor
        return value

    return _weight
