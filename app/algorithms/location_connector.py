import logging
from dataclasses import dataclass
from typing import Dict, Optional, Set

from app.algorithms.distance_calculator import (
    calculate_walking_duration,
    distance_calculator,
)
from app.algorithms.graph_builder import TransitNetwork
from app.algorithms.transit_graph import GraphOverlay
from app.core.config import TRANSIT_CONNECTION
from app.models.domain import Coordinates, EdgeType, GraphEdge, GraphNode, Station

logger = logging.getLogger(__name__)

ORIGIN_ID = "origin"
DESTINATION_ID = "destination"


@dataclass
class ConnectedGraph:
    """요청 단위 그래프 (공유 그래프 + 출발/도착 overlay)"""

    graph: GraphOverlay
    origin: Station
    destination: Station
    origin_connections: int
    destination_connections: int
    direct_distance: float

    @property
    def origin_id(self) -> str:
        return self.origin.id

    @property
    def destination_id(self) -> str:
        return self.destination.id


class LocationConnector:
    """
    출발지/목적지 좌표를 공유 그래프에 보행 edge로 연결

    모든 추가분은 GraphOverlay에만 기록되어 캐시된 그래프는 변하지 않음
    상수는 TRANSIT_CONNECTION 참고 (튜닝 대상)
    """

    def __init__(self, config: Optional[Dict] = None):
        self.config = {**TRANSIT_CONNECTION, **(config or {})}

    def connect(
        self,
        network: TransitNetwork,
        origin: Coordinates,
        destination: Coordinates,
        max_origin_walking: Optional[float] = None,
        max_destination_walking: Optional[float] = None,
    ) -> ConnectedGraph:
        origin_threshold = max_origin_walking or self.config["max_origin_walking_distance"]
        destination_threshold = (
            max_destination_walking or self.config["max_destination_walking_distance"]
        )

        overlay = GraphOverlay(network.graph)
        origin_station = Station(id=ORIGIN_ID, name="Origin", coordinates=origin)
        destination_station = Station(
            id=DESTINATION_ID, name="Destination", coordinates=destination
        )
        overlay.add_node(GraphNode(id=ORIGIN_ID, station=origin_station))
        overlay.add_node(GraphNode(id=DESTINATION_ID, station=destination_station))

        origin_connected: Set[str] = set()
        destination_connected: Set[str] = set()

        origin_count = self._connect_endpoint(
            overlay, network, ORIGIN_ID, origin, origin_threshold, origin_connected
        )
        destination_count = self._connect_endpoint(
            overlay,
            network,
            DESTINATION_ID,
            destination,
            destination_threshold,
            destination_connected,
        )

        # 한쪽만 연결이 희박하면 경로 선택이 치우치므로 보강
        if abs(origin_count - destination_count) > self.config["symmetry_max_difference"]:
            if origin_count < destination_count:
                origin_count += self._reinforce(
                    overlay, network, ORIGIN_ID, origin, origin_threshold, origin_connected
                )
            else:
                destination_count += self._reinforce(
                    overlay,
                    network,
                    DESTINATION_ID,
                    destination,
                    destination_threshold,
                    destination_connected,
                )

        # 단거리 이동을 위한 출발지 <-> 목적지 직접 보행
        direct_distance = distance_calculator.calculate_distance(origin, destination)
        overlay.add_bidirectional_edge(
            GraphEdge(
                source=ORIGIN_ID,
                target=DESTINATION_ID,
                type=EdgeType.WALKING,
                duration=calculate_walking_duration(direct_distance),
                distance=direct_distance,
            )
        )

        logger.debug(
            f"출발/도착 연결: origin={origin_count}개, destination={destination_count}개, "
            f"직선거리={direct_distance:.0f}m"
        )

        return ConnectedGraph(
            graph=overlay,
            origin=origin_station,
            destination=destination_station,
            origin_connections=origin_count,
            destination_connections=destination_count,
            direct_distance=direct_distance,
        )

    def _connect_endpoint(
        self,
        overlay: GraphOverlay,
        network: TransitNetwork,
        endpoint_id: str,
        coords: Coordinates,
        threshold: float,
        connected: Set[str],
    ) -> int:
        count = 0

        # 1. 보행 가능 거리 이내의 물리 역
        for station, distance in network.station_index.within(coords, threshold):
            self._add_walk(overlay, endpoint_id, station.id, distance)
            connected.add(station.id)
            count += 1

        # 2. 가장 가까운 역 대비 일정 거리 이내라면 노선별 가상 노드에도 직접 연결
        nearest = network.station_index.nearest(coords, 1)
        if nearest:
            closest_distance = nearest[0][1]
            virtual_radius = threshold * self.config["virtual_node_distance_multiplier"]
            closest_limit = closest_distance * self.config["closest_station_multiplier"]

            for station, distance in network.station_index.within(coords, virtual_radius):
                if distance > closest_limit:
                    continue
                for vid in network.virtual_nodes.get(station.id, []):
                    if vid in connected:
                        continue
                    self._add_walk(
                        overlay,
                        endpoint_id,
                        vid,
                        distance,
                        multiplier=self.config["duration_bonus"],
                    )
                    connected.add(vid)
                    count += 1

        # 3. 최소 연결 수 보장
        if count < self.config["min_connections"]:
            forced = network.station_index.nearest(
                coords,
                self.config["forced_connection_count"],
                max_distance=self.config["max_forced_connection_distance"],
            )
            for station, distance in forced:
                if station.id in connected:
                    continue
                self._add_walk(
                    overlay,
                    endpoint_id,
                    station.id,
                    distance,
                    multiplier=max(1.0, distance / threshold),
                )
                connected.add(station.id)
                count += 1

        return count

    def _reinforce(
        self,
        overlay: GraphOverlay,
        network: TransitNetwork,
        endpoint_id: str,
        coords: Coordinates,
        threshold: float,
        connected: Set[str],
    ) -> int:
        extended = threshold * self.config["symmetry_threshold_multiplier"]
        added = 0
        for station, distance in network.station_index.within(coords, extended):
            if station.id in connected:
                continue
            self._add_walk(overlay, endpoint_id, station.id, distance)
            connected.add(station.id)
            added += 1

        if added:
            logger.debug(f"연결 대칭 보강: {endpoint_id} +{added}")
        return added

    @staticmethod
    def _add_walk(
        overlay: GraphOverlay,
        endpoint_id: str,
        node_id: str,
        distance: float,
        multiplier: float = 1.0,
    ) -> None:
        overlay.add_bidirectional_edge(
            GraphEdge(
                source=endpoint_id,
                target=node_id,
                type=EdgeType.WALKING,
                duration=calculate_walking_duration(distance) * multiplier,
                distance=distance,
            )
        )
