import logging
import math
from typing import List, Sequence, Tuple

# NNS => KD-TREE 사용하기
from scipy.spatial import KDTree
import numpy as np

from app.algorithms.distance_calculator import distance_calculator
from app.models.domain import Coordinates, Station

logger = logging.getLogger(__name__)


class StationIndex:
    """
    역 좌표 공간 인덱스

    위경도를 도시 규모에서 거의 등거리인 평면(equirectangular)으로 투영한 뒤
    KD-Tree로 후보를 찾고, 최종 거리는 haversine으로 다시 계산
    """

    # 투영 오차 보정용 여유 반경 비율
    RADIUS_SLACK = 1.02

    def __init__(self, stations: Sequence[Station]):
        self.stations: List[Station] = list(stations)
        self._kdtree = None

        if not self.stations:
            logger.warning("빈 역 목록으로 StationIndex 생성")
            self._ref_lat = 0.0
            return

        self._ref_lat = math.radians(
            sum(s.coordinates.lat for s in self.stations) / len(self.stations)
        )
        points = np.array([self._project(s.coordinates) for s in self.stations])
        self._kdtree = KDTree(points)

    def _project(self, coords: Coordinates) -> Tuple[float, float]:
        radius = distance_calculator.EARTH_RADIUS
        x = radius * math.radians(coords.lng) * math.cos(self._ref_lat)
        y = radius * math.radians(coords.lat)
        return x, y

    def __len__(self) -> int:
        return len(self.stations)

    def nearest(
        self, coords: Coordinates, count: int = 1, max_distance: float = None
    ) -> List[Tuple[Station, float]]:
        """가까운 역 count개 (거리 오름차순, meter)"""
        if self._kdtree is None or count <= 0:
            return []

        # 투영 오차로 순서가 바뀔 수 있어 여유 있게 조회
        k = min(len(self.stations), count + 5)
        _, indices = self._kdtree.query(self._project(coords), k=k)
        indices = np.atleast_1d(indices)

        candidates = []
        for idx in indices:
            station = self.stations[int(idx)]
            distance = distance_calculator.calculate_distance(coords, station.coordinates)
            if max_distance is None or distance <= max_distance:
                candidates.append((station, distance))

        candidates.sort(key=lambda item: item[1])
        return candidates[:count]

    def within(self, coords: Coordinates, radius: float) -> List[Tuple[Station, float]]:
        """반경(meter) 이내 모든 역 (거리 오름차순)"""
        if self._kdtree is None or radius < 0:
            return []

        indices = self._kdtree.query_ball_point(
            self._project(coords), r=radius * self.RADIUS_SLACK + 1
        )

        results = []
        for idx in indices:
            station = self.stations[int(idx)]
            distance = distance_calculator.calculate_distance(coords, station.coordinates)
            if distance <= radius:
                results.append((station, distance))

        results.sort(key=lambda item: item[1])
        return results
