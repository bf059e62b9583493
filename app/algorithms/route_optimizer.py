"""
경로 후처리 (품질 필터 -> 정렬 -> 다양성 -> 거리 구간별 조정)

출발-도착 직선거리로 구간 분류
- 단거리 (< 500m), 중거리 (500m ~ 2km): 도보가 대중교통과 비슷하면 도보 우선
- 장거리 (>= 2km): 간선(primary) 노선 경로를 반드시 포함, 도보는 확실히 빠를 때만
"""

import logging
from typing import Dict, List, Optional, Sequence, Set

from app.algorithms.line_policy import LinePolicy
from app.algorithms.route_generator import jaccard
from app.algorithms.route_scoring import calculate_comfort_score, calculate_route_score
from app.core.config import DISTANCE_THRESHOLDS, ROUTE_FILTER_CONFIG
from app.models.domain import Route, RoutePreferences, WalkSegment

logger = logging.getLogger(__name__)

SHORT = "short"
MEDIUM = "medium"
LONG = "long"


def classify_distance(direct_distance: float) -> str:
    if direct_distance < DISTANCE_THRESHOLDS["very_short"]:
        return SHORT
    if direct_distance < DISTANCE_THRESHOLDS["long"]:
        return MEDIUM
    return LONG


def key_stations(route: Route) -> Set[str]:
    """대중교통 구간의 승차/하차역"""
    stations: Set[str] = set()
    for segment in route.transit_segments:
        stations.add(segment.first_station.id)
        stations.add(segment.last_station.id)
    return stations


def calculate_route_similarity(a: Route, b: Route) -> float:
    """
    0.5 x 노선 Jaccard + 0.3 x 승하차역 Jaccard + 0.2 x 대중교통 구간 수 유사도

    도보 전용끼리는 0.8, 도보 전용과 대중교통은 0
    """
    if a.is_walk_only and b.is_walk_only:
        return 0.8
    if a.is_walk_only or b.is_walk_only:
        return 0.0

    line_similarity = jaccard(set(a.line_ids), set(b.line_ids))
    station_similarity = jaccard(key_stations(a), key_stations(b))

    legs_a, legs_b = len(a.transit_segments), len(b.transit_segments)
    longest = max(legs_a, legs_b, 1)
    leg_similarity = 1.0 - abs(legs_a - legs_b) / longest

    return 0.5 * line_similarity + 0.3 * station_similarity + 0.2 * leg_similarity


def uses_walking_shortcut(route: Route) -> bool:
    """역 사이 보행 지름길을 거치는 경로"""
    return any(
        isinstance(segment, WalkSegment) and segment.is_shortcut
        for segment in route.segments
    )


def _contains(routes: Sequence[Route], route: Route) -> bool:
    return any(r is route for r in routes)


class RouteOptimizer:
    def __init__(
        self,
        policy: Optional[LinePolicy] = None,
        config: Optional[Dict[str, float]] = None,
    ):
        self.policy = policy or LinePolicy()
        self.config = {**ROUTE_FILTER_CONFIG, **(config or {})}

    def comfort(self, route: Route) -> float:
        return calculate_comfort_score(route, self.policy)

    def filter_routes_by_quality(self, routes: Sequence[Route]) -> List[Route]:
        """
        최단 소요시간 x 1.4 초과, 환승 한도 초과 경로 제거

        보행 지름길 경로는 소요시간 한도를 1.1 + 0.1 x (줄인 환승 수)배로 완화
        최단/최소환승/최고 쾌적도/최선 지름길 경로는 제거되더라도 다시 포함
        """
        if not routes:
            return []

        fastest = min(routes, key=lambda r: r.total_duration)
        fewest_transfers = min(routes, key=lambda r: (r.transfers, r.total_duration))
        most_comfortable = max(routes, key=lambda r: (self.comfort(r), -r.total_duration))

        shortcut_limit = fastest.total_duration * self.config["shortcut_reference_ratio"]
        efficient_shortcuts = sorted(
            (
                r for r in routes
                if uses_walking_shortcut(r) and r.total_duration <= shortcut_limit
            ),
            key=lambda r: r.total_duration,
        )

        max_duration = fastest.total_duration * self.config["max_duration_ratio"]
        min_transfers = fewest_transfers.transfers
        extra = 1 if min_transfers >= 2 else 2
        transfer_limit = max(
            min_transfers,
            min(self.config["max_transfers"], min_transfers + extra),
        )

        filtered = [
            r
            for r in routes
            if r.total_duration <= max_duration * self.shortcut_bonus(r, min_transfers)
            and r.transfers <= transfer_limit
        ]

        references = [fastest, fewest_transfers, most_comfortable]
        if efficient_shortcuts:
            references.append(efficient_shortcuts[0])

        for reference in references:
            if not _contains(filtered, reference):
                filtered.append(reference)

        return filtered or [fastest]

    def shortcut_bonus(self, route: Route, min_transfers: int) -> float:
        if not uses_walking_shortcut(route):
            return 1.0
        saved = max(0, min_transfers - route.transfers)
        return (
            self.config["shortcut_duration_bonus"]
            + saved * self.config["shortcut_bonus_per_transfer"]
        )

    def rank_routes(
        self, routes: Sequence[Route], preferences: Optional[RoutePreferences] = None
    ) -> List[Route]:
        preferences = preferences or RoutePreferences()

        if preferences.prioritize == "duration":
            def primary_key(r: Route):
                return (r.total_duration,)
        elif preferences.prioritize == "comfort":
            def primary_key(r: Route):
                return (-self.comfort(r), r.total_duration)
        else:
            def primary_key(r: Route):
                return (-calculate_route_score(r), r.total_duration)

        if preferences.prefer_fewer_transfers:
            return sorted(routes, key=lambda r: (r.transfers, *primary_key(r)))
        return sorted(routes, key=primary_key)

    def ensure_route_diversity(
        self, routes: Sequence[Route], threshold: Optional[float] = None
    ) -> List[Route]:
        """앞 순위부터 기존 선택 경로와 모두 threshold 이하인 경로만 남김"""
        threshold = self.config["similarity_threshold"] if threshold is None else threshold

        diverse: List[Route] = []
        for route in routes:
            if all(calculate_route_similarity(route, kept) <= threshold for kept in diverse):
                diverse.append(route)
        return diverse

    def _is_diverse_against(self, route: Route, kept: Sequence[Route]) -> bool:
        threshold = self.config["similarity_threshold"]
        return all(calculate_route_similarity(route, k) <= threshold for k in kept)

    def _shape_short_or_medium(
        self, selected: List[Route], best_walk: Optional[Route]
    ) -> List[Route]:
        if best_walk is None:
            return selected
        if not selected:
            return [best_walk]

        ratio = self.config["walk_competitive_ratio_short"]
        if best_walk.total_duration < selected[0].total_duration * ratio:
            return [best_walk] + selected
        return selected + [best_walk]

    def _shape_long(
        self,
        selected: List[Route],
        ranked_transit: Sequence[Route],
        best_walk: Optional[Route],
    ) -> List[Route]:
        result = list(selected)

        # 간선 노선 경로 보장
        if not any(self.policy.uses_primary_lines(r) for r in result):
            primary = next(
                (r for r in ranked_transit if self.policy.uses_primary_lines(r)), None
            )
            if primary is not None:
                threshold = self.config["similarity_threshold"]
                result = [primary] + [
                    r for r in result
                    if calculate_route_similarity(primary, r) <= threshold
                ]

        has_primary = any(self.policy.uses_primary_lines(r) for r in result)

        if best_walk is not None:
            ratio = self.config["walk_competitive_ratio_long"]
            if not result:
                result = [best_walk]
            elif best_walk.total_duration < result[0].total_duration * ratio:
                result = [best_walk] + result
            elif not has_primary:
                result.append(best_walk)

        # 지선 노선 경로 보충
        if len(result) < self.config["max_routes_to_return"] and not any(
            self.policy.uses_secondary_lines(r) for r in result
        ):
            secondary = next(
                (
                    r for r in ranked_transit
                    if self.policy.uses_secondary_lines(r)
                    and not _contains(result, r)
                    and self._is_diverse_against(r, result)
                ),
                None,
            )
            if secondary is not None:
                result.append(secondary)

        return result

    def filter_and_rank_routes(
        self,
        routes: Sequence[Route],
        direct_distance: float,
        preferences: Optional[RoutePreferences] = None,
    ) -> List[Route]:
        if not routes:
            return []

        walk_routes = [r for r in routes if r.is_walk_only]
        transit_routes = [r for r in routes if not r.is_walk_only]
        best_walk = min(walk_routes, key=lambda r: r.total_duration) if walk_routes else None

        if transit_routes:
            filtered = self.filter_routes_by_quality(transit_routes)
            ranked = self.rank_routes(filtered, preferences)
            selected = self.ensure_route_diversity(ranked)
        else:
            ranked = []
            selected = []

        distance_class = classify_distance(direct_distance)
        if distance_class == LONG:
            ranked_all = self.rank_routes(transit_routes, preferences)
            result = self._shape_long(selected, ranked_all, best_walk)
        else:
            result = self._shape_short_or_medium(selected, best_walk)

        if not result:
            result = [min(routes, key=lambda r: r.total_duration)]

        result = result[: int(self.config["max_routes_to_return"])]

        logger.debug(
            f"경로 후처리: 입력 {len(routes)}개 -> 필터 {len(ranked)}개 -> "
            f"다양성 {len(selected)}개 -> 최종 {len(result)}개 ({distance_class})"
        )
        return result
