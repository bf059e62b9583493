"""
경로 탐색 엔진

- PriorityQueue: key 기반 decrease-key 지원 (lazy deletion)
- find_path: 범용 A* (heuristic 없으면 Dijkstra), 반복 횟수 상한으로 종료 보장
- bidirectional_dijkstra: 전방/후방 동시 탐색

경로를 찾지 못하면 빈 SearchPath 반환 (예외 없음)
"""

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Hashable,
    Iterable,
    List,
    Optional,
    Tuple,
    TypeVar,
)

from app.core.config import SEARCH_CONFIG
from app.models.domain import GraphEdge

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
E = TypeVar("E")

MAX_ITERATIONS = SEARCH_CONFIG["max_iterations"]


class PriorityQueue(Generic[K]):
    """
    최소 우선순위 큐

    같은 key로 push 시 기존 항목보다 우선순위가 낮을(작을) 때만 갱신
    """

    def __init__(self):
        self._heap: List[list] = []
        self._entries: Dict[K, list] = {}
        self._counter = itertools.count()

    def push(self, key: K, priority: float, item: Any = None) -> bool:
        existing = self._entries.get(key)
        if existing is not None:
            if existing[0] <= priority:
                return False
            existing[-1] = False  # 기존 항목 무효화

        entry = [priority, next(self._counter), key, item, True]
        self._entries[key] = entry
        heapq.heappush(self._heap, entry)
        return True

    def pop(self) -> Tuple[K, float, Any]:
        while self._heap:
            priority, _, key, item, valid = heapq.heappop(self._heap)
            if valid:
                del self._entries[key]
                return key, priority, item
        raise IndexError("pop from empty priority queue")

    def peek_priority(self) -> float:
        while self._heap and not self._heap[0][-1]:
            heapq.heappop(self._heap)
        if not self._heap:
            return float("inf")
        return self._heap[0][0]

    def priority_of(self, key: K) -> Optional[float]:
        entry = self._entries.get(key)
        return entry[0] if entry else None

    def __contains__(self, key: K) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)


@dataclass(frozen=True)
class SearchPath:
    nodes: Tuple[str, ...] = ()
    edges: Tuple[GraphEdge, ...] = ()
    cost: float = 0.0

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def transit_nodes(self) -> frozenset:
        """transit edge에 포함된 노드 (경로 유사도 비교용)"""
        nodes = set()
        for edge in self.edges:
            if edge.type == "transit":
                nodes.add(edge.source)
                nodes.add(edge.target)
        return frozenset(nodes)


@dataclass
class SearchStats:
    iterations: int = 0
    exhausted: bool = False  # 반복 상한 도달 여부
    extra: Dict[str, Any] = field(default_factory=dict)


def find_path(
    start: K,
    is_goal: Callable[[K], bool],
    neighbors: Callable[[K], Iterable[Tuple[K, E]]],
    cost: Callable[[E], float],
    heuristic: Optional[Callable[[K], float]] = None,
    heuristic_weight: float = 1.0,
    max_iterations: int = MAX_ITERATIONS,
    stats: Optional[SearchStats] = None,
) -> Tuple[List[K], List[E], float]:
    """
    범용 A* 탐색

    Args:
        start: 시작 노드
        is_goal: 도착 판정 함수
        neighbors: 노드 -> (이웃 노드, edge) 목록
        cost: edge 비용 함수
        heuristic: 남은 비용 추정치 (None => Dijkstra)
        heuristic_weight: weighted A* 가중치
        max_iterations: 확장 횟수 상한

    Returns:
        (노드 목록, edge 목록, 총 비용) => 실패 시 ([], [], inf)
    """
    h = heuristic or (lambda _node: 0.0)

    g_score: Dict[K, float] = {start: 0.0}
    came_from: Dict[K, Tuple[K, E]] = {}
    closed = set()

    open_set: PriorityQueue[K] = PriorityQueue()
    open_set.push(start, heuristic_weight * h(start))

    iterations = 0
    while open_set and iterations < max_iterations:
        iterations += 1
        current, _, _ = open_set.pop()

        if is_goal(current):
            if stats is not None:
                stats.iterations = iterations
            return _reconstruct(came_from, start, current, g_score[current])

        closed.add(current)

        for neighbor, edge in neighbors(current):
            if neighbor in closed:
                continue
            edge_cost = cost(edge)
            if edge_cost < 0:
                continue
            tentative = g_score[current] + edge_cost
            if tentative < g_score.get(neighbor, float("inf")):
                g_score[neighbor] = tentative
                came_from[neighbor] = (current, edge)
                open_set.push(neighbor, tentative + heuristic_weight * h(neighbor))

    if stats is not None:
        stats.iterations = iterations
        stats.exhausted = iterations >= max_iterations
    if iterations >= max_iterations:
        logger.warning(f"탐색 반복 상한 도달: {max_iterations}")
    return [], [], float("inf")


def dijkstra(
    start: K,
    is_goal: Callable[[K], bool],
    neighbors: Callable[[K], Iterable[Tuple[K, E]]],
    cost: Callable[[E], float],
    max_iterations: int = MAX_ITERATIONS,
) -> Tuple[List[K], List[E], float]:
    return find_path(start, is_goal, neighbors, cost, None, 1.0, max_iterations)


def _reconstruct(came_from, start, goal, total_cost):
    nodes = [goal]
    edges = []
    current = goal
    while current != start:
        prev, edge = came_from[current]
        edges.append(edge)
        nodes.append(prev)
        current = prev
    nodes.reverse()
    edges.reverse()
    return nodes, edges, total_cost


def graph_neighbors(graph) -> Callable[[str], Iterable[Tuple[str, GraphEdge]]]:
    """TransitGraph / GraphOverlay 용 neighbors 함수"""

    def _neighbors(node_id: str):
        for edge in graph.out_edges(node_id):
            yield edge.target, edge

    return _neighbors


def astar_graph_path(
    graph,
    source: str,
    target: str,
    weight: Callable[[GraphEdge], float],
    heuristic: Optional[Callable[[str], float]] = None,
    heuristic_weight: float = 1.0,
    max_iterations: int = MAX_ITERATIONS,
) -> SearchPath:
    nodes, edges, total = find_path(
        source,
        lambda node: node == target,
        graph_neighbors(graph),
        weight,
        heuristic,
        heuristic_weight,
        max_iterations,
    )
    if not nodes:
        return SearchPath()
    return SearchPath(tuple(nodes), tuple(edges), total)


def bidirectional_dijkstra(
    graph,
    source: str,
    target: str,
    weight: Callable[[GraphEdge], float],
    max_iterations: int = MAX_ITERATIONS,
) -> SearchPath:
    """
    양방향 Dijkstra

    전방은 out edge, 후방은 in edge를 따라 확장하고
    두 큐의 최소값 합이 현재 최적 비용 이상이 되면 종료
    """
    if not graph.has_node(source) or not graph.has_node(target):
        return SearchPath()
    if source == target:
        return SearchPath(nodes=(source,))

    dist_f: Dict[str, float] = {source: 0.0}
    dist_b: Dict[str, float] = {target: 0.0}
    pred_f: Dict[str, GraphEdge] = {}
    succ_b: Dict[str, GraphEdge] = {}
    settled_f = set()
    settled_b = set()

    queue_f: PriorityQueue[str] = PriorityQueue()
    queue_b: PriorityQueue[str] = PriorityQueue()
    queue_f.push(source, 0.0)
    queue_b.push(target, 0.0)

    best = float("inf")
    meeting: Optional[str] = None
    iterations = 0

    while queue_f and queue_b:
        if queue_f.peek_priority() + queue_b.peek_priority() >= best:
            break
        iterations += 1
        if iterations > max_iterations:
            logger.warning(f"양방향 탐색 반복 상한 도달: {source} -> {target}")
            return SearchPath()

        # 더 작은 큐 쪽을 확장
        if len(queue_f) <= len(queue_b):
            node, node_dist, _ = queue_f.pop()
            settled_f.add(node)
            for edge in graph.out_edges(node):
                nxt = edge.target
                if nxt in settled_f:
                    continue
                w = weight(edge)
                if w < 0:
                    continue
                candidate = node_dist + w
                if candidate < dist_f.get(nxt, float("inf")):
                    dist_f[nxt] = candidate
                    pred_f[nxt] = edge
                    queue_f.push(nxt, candidate)
                if nxt in dist_b and dist_f[nxt] + dist_b[nxt] < best:
                    best = dist_f[nxt] + dist_b[nxt]
                    meeting = nxt
        else:
            node, node_dist, _ = queue_b.pop()
            settled_b.add(node)
            for edge in graph.in_edges(node):
                prv = edge.source
                if prv in settled_b:
                    continue
                w = weight(edge)
                if w < 0:
                    continue
                candidate = node_dist + w
                if candidate < dist_b.get(prv, float("inf")):
                    dist_b[prv] = candidate
                    succ_b[prv] = edge
                    queue_b.push(prv, candidate)
                if prv in dist_f and dist_f[prv] + dist_b[prv] < best:
                    best = dist_f[prv] + dist_b[prv]
                    meeting = prv

    if meeting is None:
        return SearchPath()

    # 전방: source -> meeting
    forward_edges: List[GraphEdge] = []
    node = meeting
    while node != source:
        edge = pred_f[node]
        forward_edges.append(edge)
        node = edge.source
    forward_edges.reverse()

    # 후방: meeting -> target
    backward_edges: List[GraphEdge] = []
    node = meeting
    while node != target:
        edge = succ_b[node]
        backward_edges.append(edge)
        node = edge.target

    edges = forward_edges + backward_edges
    nodes = [source] + [edge.target for edge in edges]
    return SearchPath(tuple(nodes), tuple(edges), best)
