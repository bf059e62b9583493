"""
경로 점수 계산

- route score = 0.65 x 환승 점수 + 0.35 x 보행 점수 (0~100)
- comfort score = 노선별 쾌적도의 소요시간 가중 평균 (도보 전용 경로는 50)
"""

from typing import Optional

from app.algorithms.line_policy import LinePolicy
from app.core.config import (
    ROUTE_SCORE_WEIGHTS,
    TRANSFER_PENALTIES,
    WALKING_SCORE_THRESHOLDS,
)
from app.models.domain import Route

NEUTRAL_COMFORT_SCORE = 50.0


def calculate_transfer_score(transfers: int) -> float:
    index = min(max(transfers, 0), len(TRANSFER_PENALTIES) - 1)
    return 100.0 - TRANSFER_PENALTIES[index]


def calculate_walking_score(walking_distance: float) -> float:
    """구간별 선형 보간 (0m=100, 300m=90, 500m=80, 1000m=60, 2000m 이상=0)"""
    first_distance, first_score = WALKING_SCORE_THRESHOLDS[0]
    if walking_distance <= first_distance:
        return float(first_score)

    for (d0, s0), (d1, s1) in zip(WALKING_SCORE_THRESHOLDS, WALKING_SCORE_THRESHOLDS[1:]):
        if walking_distance <= d1:
            ratio = (walking_distance - d0) / (d1 - d0)
            return s0 + (s1 - s0) * ratio

    return float(WALKING_SCORE_THRESHOLDS[-1][1])


def calculate_route_score(route: Route) -> float:
    score = (
        ROUTE_SCORE_WEIGHTS["transfer"] * calculate_transfer_score(route.transfers)
        + ROUTE_SCORE_WEIGHTS["walking"] * calculate_walking_score(route.walking_distance)
    )
    return max(0.0, min(100.0, score))


def calculate_comfort_score(route: Route, policy: Optional[LinePolicy] = None) -> float:
    if not route.segments:
        return 0.0

    transit = route.transit_segments
    if not transit:
        return NEUTRAL_COMFORT_SCORE

    policy = policy or LinePolicy()
    total_duration = 0.0
    weighted = 0.0
    for segment in transit:
        total_duration += segment.duration
        weighted += segment.duration * policy.comfort(segment.line.id)

    if total_duration <= 0:
        return NEUTRAL_COMFORT_SCORE
    return weighted / total_duration
