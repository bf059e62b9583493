"""
노선망 그래프 생성

1. 역마다 물리 노드 1개, 역을 지나는 노선마다 가상 노드 1개 (station_id + line_id)
2. 물리 <-> 가상 노드: 양방향 transfer edge (15초, 0m)
3. 같은 노선의 모든 가상 노드 쌍을 transit edge로 연결
   - 인접 역: cost multiplier 1, 건너뛰는 경우 log2(gap) + 1
4. 2개 이상 노선이 지나는 역: 가상 노드 쌍마다 환승 edge
   - 90 + 15 x (해당 역 가상 노드 수) 초
5. (선택) 노선을 공유하지 않는 가까운 역 간 보행 지름길
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from app.algorithms.distance_calculator import (
    calculate_walking_duration,
    distance_calculator,
)
from app.algorithms.station_index import StationIndex
from app.algorithms.transit_graph import TransitGraph
from app.core.config import GRAPH_CONFIG, TRANSIT_SPEED
from app.core.exceptions import GraphBuildException
from app.models.domain import (
    EdgeType,
    GraphEdge,
    GraphNode,
    Line,
    Station,
    WalkingShortcut,
)

logger = logging.getLogger(__name__)


def virtual_node_id(station_id: str, line_id: str) -> str:
    return f"{station_id}_{line_id}"


@dataclass
class TransitNetwork:
    """그래프 + 그래프 생성 시 함께 만든 조회용 인덱스"""

    graph: TransitGraph
    lines: Dict[str, Line]
    stations: Dict[str, Station]
    station_index: StationIndex
    virtual_nodes: Dict[str, List[str]] = field(default_factory=dict)  # station_id -> [virtual node id]
    station_lines: Dict[str, List[str]] = field(default_factory=dict)  # station_id -> [line_id]


class GraphBuilder:
    def __init__(
        self,
        transit_speed: float = TRANSIT_SPEED,
        auto_shortcut_distance: Optional[float] = GRAPH_CONFIG["auto_shortcut_max_distance"],
    ):
        self.transit_speed = transit_speed
        self.auto_shortcut_distance = auto_shortcut_distance

    def build(
        self,
        lines: Sequence[Line],
        shortcuts: Sequence[WalkingShortcut] = (),
    ) -> TransitNetwork:
        """
        노선 목록으로 그래프 생성

        Raises:
            GraphBuildException: 노선 데이터가 잘못된 경우 (fail fast)
        """
        self._validate(lines)

        graph = TransitGraph()
        stations: Dict[str, Station] = {}
        virtual_nodes: Dict[str, List[str]] = {}
        station_lines: Dict[str, List[str]] = {}

        try:
            # 1. 물리 노드 + 가상 노드 + 물리/가상 연결
            for line in lines:
                for station in line.stations:
                    if station.id not in stations:
                        stations[station.id] = station
                        graph.add_node(GraphNode(id=station.id, station=station))
                        virtual_nodes[station.id] = []
                        station_lines[station.id] = []

                    vid = virtual_node_id(station.id, line.id)
                    graph.add_node(
                        GraphNode(id=vid, station=station, virtual=True, line_id=line.id)
                    )
                    virtual_nodes[station.id].append(vid)
                    station_lines[station.id].append(line.id)
                    self._add_pair(
                        graph,
                        station.id,
                        vid,
                        type=EdgeType.TRANSFER,
                        duration=GRAPH_CONFIG["station_transfer_duration"],
                        distance=0,
                    )

            # 2. 노선 내 모든 역 쌍 transit edge
            for line in lines:
                self._add_line_edges(graph, line)

            # 3. 환승역 가상 노드 간 transfer edge
            for station_id, vids in virtual_nodes.items():
                if len(vids) < 2:
                    continue
                duration = (
                    GRAPH_CONFIG["interchange_base_duration"]
                    + GRAPH_CONFIG["interchange_per_line_duration"] * len(vids)
                )
                for i in range(len(vids)):
                    for j in range(i + 1, len(vids)):
                        line_a = station_lines[station_id][i]
                        line_b = station_lines[station_id][j]
                        self._add_pair(
                            graph,
                            vids[i],
                            vids[j],
                            type=EdgeType.TRANSFER,
                            duration=duration,
                            distance=0,
                            line_id=f"{line_a}-{line_b}",
                        )
        except ValueError as e:
            raise GraphBuildException(f"그래프 생성 실패: {e}") from e

        station_index = StationIndex(list(stations.values()))
        network = TransitNetwork(
            graph=graph,
            lines={line.id: line for line in lines},
            stations=stations,
            station_index=station_index,
            virtual_nodes=virtual_nodes,
            station_lines=station_lines,
        )

        # 4. 보행 지름길
        if self.auto_shortcut_distance:
            self._add_auto_shortcuts(network)
        if shortcuts:
            self._add_explicit_shortcuts(network, shortcuts)

        logger.info(
            f"그래프 생성 완료: 노선={len(lines)}, 역={len(stations)}, "
            f"노드={graph.node_count}, edge={graph.edge_count}"
        )
        return network

    def _validate(self, lines: Sequence[Line]) -> None:
        if not lines:
            raise GraphBuildException("노선 데이터가 비어 있습니다")

        seen_lines = set()
        known: Dict[str, Station] = {}
        for line in lines:
            if not line.id:
                raise GraphBuildException("노선 id가 비어 있습니다")
            if line.id in seen_lines:
                raise GraphBuildException(f"중복된 노선 id: {line.id}")
            seen_lines.add(line.id)

            if not line.stations:
                raise GraphBuildException(f"역이 없는 노선: {line.id}")

            ids_on_line = [s.id for s in line.stations]
            if len(set(ids_on_line)) != len(ids_on_line):
                raise GraphBuildException(f"노선 내 중복된 역: {line.id}")

            for station in line.stations:
                lat, lng = station.coordinates.lat, station.coordinates.lng
                if not (-90 <= lat <= 90 and -180 <= lng <= 180):
                    raise GraphBuildException(
                        f"유효하지 않은 좌표: {station.id} ({lat}, {lng})"
                    )
                previous = known.get(station.id)
                if previous is not None and previous.coordinates != station.coordinates:
                    raise GraphBuildException(
                        f"같은 역 id에 서로 다른 좌표: {station.id}"
                    )
                known[station.id] = station

    def _add_line_edges(self, graph: TransitGraph, line: Line) -> None:
        stations = line.stations
        for i in range(len(stations)):
            for j in range(i + 1, len(stations)):
                distance = distance_calculator.calculate_distance(
                    stations[i].coordinates, stations[j].coordinates
                )
                gap = j - i
                self._add_pair(
                    graph,
                    virtual_node_id(stations[i].id, line.id),
                    virtual_node_id(stations[j].id, line.id),
                    type=EdgeType.TRANSIT,
                    duration=round(distance / self.transit_speed),
                    distance=distance,
                    line_id=line.id,
                    line_name=line.name,
                    line_color=line.color,
                    cost_multiplier=1.0 if gap == 1 else math.log2(gap) + 1,
                )

    def _add_auto_shortcuts(self, network: TransitNetwork) -> None:
        """노선을 공유하지 않는 가까운 역 간 보행 edge"""
        added = 0
        for station in network.stations.values():
            nearby = network.station_index.within(
                station.coordinates, self.auto_shortcut_distance
            )
            for other, distance in nearby:
                # 한 방향에서만 생성 (id 순서)
                if other.id <= station.id:
                    continue
                if set(network.station_lines[station.id]) & set(
                    network.station_lines[other.id]
                ):
                    continue

                multiplier = self._shortcut_multiplier(distance)
                self._add_pair(
                    network.graph,
                    station.id,
                    other.id,
                    type=EdgeType.WALKING,
                    duration=round(calculate_walking_duration(distance) * multiplier),
                    distance=distance,
                    cost_multiplier=multiplier,
                    is_shortcut=True,
                )
                added += 1

        logger.debug(f"자동 보행 지름길 {added}개 추가")

    @staticmethod
    def _shortcut_multiplier(distance: float) -> float:
        if distance <= 300:
            return 0.95
        if distance <= 400:
            return 1.0
        if distance <= 500:
            return 1.2
        return 1.5 + ((distance - 500) / 100) * 0.3

    def _add_explicit_shortcuts(
        self, network: TransitNetwork, shortcuts: Sequence[WalkingShortcut]
    ) -> None:
        for shortcut in shortcuts:
            origin = network.stations.get(shortcut.from_id)
            target = network.stations.get(shortcut.to_id)
            if origin is None or target is None:
                raise GraphBuildException(
                    f"지름길이 존재하지 않는 역을 참조: {shortcut.from_id} -> {shortcut.to_id}"
                )

            distance = shortcut.distance or distance_calculator.calculate_distance(
                origin.coordinates, target.coordinates
            )
            base_duration = shortcut.duration or calculate_walking_duration(distance)
            multiplier = max(0.7, 1.0 - min(0.5, shortcut.priority / 20))

            self._add_pair(
                network.graph,
                origin.id,
                target.id,
                type=EdgeType.WALKING,
                duration=round(base_duration * multiplier),
                distance=distance,
                cost_multiplier=multiplier,
                is_shortcut=True,
                is_explicit_shortcut=True,
            )

    @staticmethod
    def _add_pair(graph: TransitGraph, a: str, b: str, **attrs) -> None:
        """양방향 edge 추가"""
        graph.add_edge(GraphEdge(source=a, target=b, **attrs))
        graph.add_edge(GraphEdge(source=b, target=a, **attrs))
