import math
from typing import Dict, Tuple

from app.core.config import (
    WALKING_SPEED,
    WALKING_PENALTY_TIERS,
    WALKING_PENALTY_CAP,
    WALKING_PENALTY_RAMP_DISTANCE,
    WALKING_PENALTY_RAMP_STEP,
)
from app.models.domain import Coordinates


class DistanceCalculator:
    EARTH_RADIUS = 6371000  # meters
    MAX_CACHE_SIZE = 200000

    def __init__(self):
        self.cache: Dict[Tuple[float, float, float, float], float] = {}

    def calculate_distance(self, origin: Coordinates, destination: Coordinates) -> float:
        """두 좌표 간 거리 계산(meter)"""
        return self.haversine((origin.lat, origin.lng), (destination.lat, destination.lng))

    def haversine(
        self, coord1: Tuple[float, float], coord2: Tuple[float, float]
    ) -> float:
        """하버사인 공식으로 지구의 곡률 고려하여 두 좌표 간 거리 계산"""
        lat1, lon1 = coord1
        lat2, lon2 = coord2

        # create cache key
        cache_key = (lat1, lon1, lat2, lon2)
        if cache_key in self.cache:
            return self.cache[cache_key]

        # radian convertion
        lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

        # haversine formula
        dlat = lat2 - lat1
        dlon = lon2 - lon1
        a = (
            math.sin(dlat / 2) ** 2
            + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
        )
        c = 2 * math.asin(math.sqrt(a))
        distance = self.EARTH_RADIUS * c

        # save cache
        if len(self.cache) >= self.MAX_CACHE_SIZE:
            self.cache.clear()
        self.cache[cache_key] = distance

        return distance

    def path_distance(self, points) -> float:
        """연속된 좌표 목록의 누적 거리"""
        total = 0.0
        for prev, curr in zip(points, points[1:]):
            total += self.calculate_distance(prev, curr)
        return total


def walking_penalty(distance: float) -> float:
    """보행 거리 구간별 소요시간 가중치 (마지막 구간 이후 선형 증가)"""
    for limit, multiplier in WALKING_PENALTY_TIERS:
        if distance <= limit:
            return multiplier
    last_limit, last_multiplier = WALKING_PENALTY_TIERS[-1]
    ramp = (distance - last_limit) / WALKING_PENALTY_RAMP_DISTANCE * WALKING_PENALTY_RAMP_STEP
    return min(WALKING_PENALTY_CAP, last_multiplier + ramp)


def calculate_walking_duration(distance: float) -> float:
    """
    보행 소요시간(초)

    장거리일수록 피로도를 반영해 가중치를 곱함 (최대 x3.0)
    """
    if distance <= 0:
        return 0.0
    return round(distance / WALKING_SPEED * walking_penalty(distance))


# 모듈 공용 인스턴스 (haversine memo 공유)
distance_calculator = DistanceCalculator()
