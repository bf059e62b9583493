"""
노선망 그래프 자료구조

- TransitGraph: 정적 노선 데이터로 한 번 만들고 요청 간 공유 (read-only)
- GraphOverlay: 요청 단위로 출발지/목적지 노드와 보행 edge를 얹는 view
  => 공유 그래프를 복사하거나 변경하지 않음
"""

from typing import Dict, Iterable, List, Optional

from app.models.domain import GraphEdge, GraphNode


class TransitGraph:
    """방향 가중 그래프 (adjacency list, 역방향 인덱스 포함)"""

    def __init__(self):
        self._nodes: Dict[str, GraphNode] = {}
        self._out_edges: Dict[str, List[GraphEdge]] = {}
        self._in_edges: Dict[str, List[GraphEdge]] = {}
        self._edge_count = 0

    def add_node(self, node: GraphNode) -> None:
        if node.id in self._nodes:
            raise ValueError(f"이미 존재하는 노드: {node.id}")
        self._nodes[node.id] = node
        self._out_edges[node.id] = []
        self._in_edges[node.id] = []

    def add_edge(self, edge: GraphEdge) -> None:
        if edge.source not in self._nodes or edge.target not in self._nodes:
            raise ValueError(f"존재하지 않는 노드 간 edge: {edge.source} -> {edge.target}")
        self._out_edges[edge.source].append(edge)
        self._in_edges[edge.target].append(edge)
        self._edge_count += 1

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        return self._nodes.get(node_id)

    def nodes(self) -> Iterable[GraphNode]:
        return self._nodes.values()

    def out_edges(self, node_id: str) -> List[GraphEdge]:
        return self._out_edges.get(node_id, [])

    def in_edges(self, node_id: str) -> List[GraphEdge]:
        return self._in_edges.get(node_id, [])

    def edges(self) -> Iterable[GraphEdge]:
        for edges in self._out_edges.values():
            yield from edges

    def has_edge_between(self, source: str, target: str) -> bool:
        return any(e.target == target for e in self.out_edges(source))

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return self._edge_count


class GraphOverlay:
    """
    공유 그래프 위에 요청 단위 노드/edge를 추가하는 view

    base 그래프와 같은 조회 인터페이스를 제공하며, 추가분은 overlay에만 저장
    """

    def __init__(self, base: TransitGraph):
        self.base = base
        self._nodes: Dict[str, GraphNode] = {}
        self._out_edges: Dict[str, List[GraphEdge]] = {}
        self._in_edges: Dict[str, List[GraphEdge]] = {}

    def add_node(self, node: GraphNode) -> None:
        if self.has_node(node.id):
            raise ValueError(f"이미 존재하는 노드: {node.id}")
        self._nodes[node.id] = node

    def add_edge(self, edge: GraphEdge) -> None:
        if not self.has_node(edge.source) or not self.has_node(edge.target):
            raise ValueError(f"존재하지 않는 노드 간 edge: {edge.source} -> {edge.target}")
        self._out_edges.setdefault(edge.source, []).append(edge)
        self._in_edges.setdefault(edge.target, []).append(edge)

    def add_bidirectional_edge(self, edge: GraphEdge) -> None:
        self.add_edge(edge)
        self.add_edge(
            GraphEdge(
                source=edge.target,
                target=edge.source,
                type=edge.type,
                duration=edge.duration,
                distance=edge.distance,
                line_id=edge.line_id,
                line_name=edge.line_name,
                line_color=edge.line_color,
                cost_multiplier=edge.cost_multiplier,
                is_shortcut=edge.is_shortcut,
                is_explicit_shortcut=edge.is_explicit_shortcut,
            )
        )

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes or self.base.has_node(node_id)

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        return self._nodes.get(node_id) or self.base.get_node(node_id)

    def out_edges(self, node_id: str) -> List[GraphEdge]:
        extra = self._out_edges.get(node_id)
        if not extra:
            return self.base.out_edges(node_id)
        return self.base.out_edges(node_id) + extra

    def in_edges(self, node_id: str) -> List[GraphEdge]:
        extra = self._in_edges.get(node_id)
        if not extra:
            return self.base.in_edges(node_id)
        return self.base.in_edges(node_id) + extra
