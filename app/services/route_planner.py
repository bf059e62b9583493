# 경로 계획 서비스

import asyncio
import json
import logging
import time
import uuid
from dataclasses import replace
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from app.algorithms.graph_builder import GraphBuilder, TransitNetwork
from app.algorithms.line_policy import LinePolicy
from app.algorithms.location_connector import ConnectedGraph, LocationConnector
from app.algorithms.path_search import SearchPath
from app.algorithms.route_generator import PathGenerator
from app.algorithms.route_optimizer import RouteOptimizer
from app.algorithms.segment_converter import SegmentConverter
from app.core.config import (
    GRAPH_CONFIG,
    LINE_CLASSIFICATION,
    MAX_WALKING_SEGMENT_DISTANCE,
    TRANSIT_SPEED,
    WALKING_SPEED,
    settings,
)
from app.core.exceptions import (
    InvalidLocationException,
    RoutePlanningTimeoutException,
    StationNotFoundException,
)
from app.db.cache import GraphCache, RouteCache
from app.db.network_repository import NetworkRepository
from app.models.domain import Coordinates, PlanningStats, Route, RoutePreferences, Station
from app.services.segment_timing import SegmentTimingCalculator, build_route
from app.services.travel_time_provider import (
    EstimatedTravelTimeProvider,
    TravelTimeProvider,
)

logger = logging.getLogger(__name__)

Location = Union[str, Coordinates]


class PlanningStage(str, Enum):
    REQUESTED = "REQUESTED"
    GRAPH_READY = "GRAPH_READY"
    CANDIDATES_GENERATED = "CANDIDATES_GENERATED"
    SEGMENTED = "SEGMENTED"
    TIMED = "TIMED"
    SCORED = "SCORED"
    FILTERED = "FILTERED"
    DIVERSIFIED = "DIVERSIFIED"
    RETURNED = "RETURNED"
    CACHED = "CACHED"
    NO_ROUTE = "NO_ROUTE"


def route_signature(route: Route) -> Tuple:
    """구간 구성이 같은 경로 판별용 (id, 시간 값 제외)"""
    signature = []
    for segment in route.segments:
        if segment.type == "transit":
            signature.append(("transit", segment.line.id, tuple(s.id for s in segment.stations)))
        else:
            signature.append(("walk", segment.from_station.id, segment.to_station.id))
    return tuple(signature)


class RoutePlannerService:
    """
    출발/도착 (역 id 또는 좌표) -> 최대 3개의 경로

    흐름: 그래프 캐시 -> 출발/도착 연결 -> 후보 경로 탐색 -> 구간 변환
    -> 구간 시간 재계산 -> 점수/필터/다양성 -> 캐시 저장
    경로 하나의 실패는 해당 경로만 제외, 살아남은 경로가 없으면 None
    """

    def __init__(
        self,
        repository: NetworkRepository,
        graph_cache: Optional[GraphCache] = None,
        route_cache: Optional[Any] = None,
        provider: Optional[TravelTimeProvider] = None,
        policy: Optional[LinePolicy] = None,
        connector: Optional[LocationConnector] = None,
        generator: Optional[PathGenerator] = None,
        timeout_seconds: float = settings.ROUTE_TIMEOUT_SECONDS,
    ):
        self.repository = repository
        self.graph_cache = graph_cache or GraphCache()
        self.route_cache = route_cache if route_cache is not None else RouteCache()
        self.provider = provider or EstimatedTravelTimeProvider()
        self.policy = policy or LinePolicy({**LINE_CLASSIFICATION, **repository.line_classes})
        self.connector = connector or LocationConnector()
        self.generator = generator or PathGenerator()
        self.optimizer = RouteOptimizer(self.policy)
        self.timing = SegmentTimingCalculator(self.provider)
        self.timeout_seconds = timeout_seconds
        logger.info("RoutePlannerService 초기화 완료")

    # 그래프

    def build_network(self) -> TransitNetwork:
        builder = GraphBuilder(
            transit_speed=TRANSIT_SPEED,
            auto_shortcut_distance=GRAPH_CONFIG["auto_shortcut_max_distance"],
        )
        return builder.build(self.repository.lines, self.repository.shortcuts)

    def get_network(self) -> TransitNetwork:
        return self.graph_cache.get_or_build(self.build_network)

    # 입력 처리

    def resolve_location(self, location: Location) -> Coordinates:
        if isinstance(location, Coordinates):
            if not (-90 <= location.lat <= 90 and -180 <= location.lng <= 180):
                raise InvalidLocationException(
                    f"유효하지 않은 좌표입니다: ({location.lat}, {location.lng})"
                )
            return location

        station = self.repository.get_station(location)
        if station is None:
            raise StationNotFoundException(f"역을 찾을 수 없습니다: {location}")
        return station.coordinates

    @staticmethod
    def walking_limit(preferences: RoutePreferences) -> Optional[float]:
        """최대 도보 시간(분) -> 거리(m)"""
        if preferences.max_walking_minutes is None:
            return None
        return preferences.max_walking_minutes * 60 * WALKING_SPEED

    # 경로 계획

    async def plan_routes(
        self,
        origin: Location,
        destination: Location,
        preferences: Optional[RoutePreferences] = None,
    ) -> Optional[List[Route]]:
        """
        경로 계획 (wall-clock timeout 포함)

        Returns:
            최대 3개의 경로, 경로가 없으면 None

        Raises:
            StationNotFoundException: 역 id를 찾을 수 없을 때
            InvalidLocationException: 좌표가 유효하지 않을 때
            RoutePlanningTimeoutException: 제한 시간 초과
        """
        preferences = preferences or RoutePreferences()
        origin_coords = self.resolve_location(origin)
        destination_coords = self.resolve_location(destination)

        try:
            return await asyncio.wait_for(
                self._plan(origin_coords, destination_coords, preferences),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"경로 계획 시간 초과 ({self.timeout_seconds}s): "
                f"{origin_coords} -> {destination_coords}"
            )
            raise RoutePlanningTimeoutException(
                f"경로 계획이 {self.timeout_seconds}초 안에 끝나지 않았습니다"
            ) from None

    async def _plan(
        self,
        origin: Coordinates,
        destination: Coordinates,
        preferences: RoutePreferences,
    ) -> Optional[List[Route]]:
        start_time = time.time()
        stats = PlanningStats()
        self._transition(PlanningStage.REQUESTED, f"{origin} -> {destination}")

        suffix = "" if preferences.is_default else preferences.cache_suffix()
        cache_key = self.route_cache.create_key(origin, destination, suffix)

        cached = self.route_cache.get(cache_key)
        if cached:
            elapsed_ms = (time.time() - start_time) * 1000
            logger.info(f"캐시에서 경로 반환: {cache_key}, 응답시간={elapsed_ms:.1f}ms")
            self._log_metrics(True, elapsed_ms, stats, cache_key)
            return cached

        if origin == destination:
            logger.info("출발지와 도착지가 같음 => 경로 없음")
            self._transition(PlanningStage.NO_ROUTE, "origin == destination")
            return None

        # 그래프 생성/탐색은 CPU 작업이므로 thread에서 수행
        stage_start = time.time()
        network = await asyncio.to_thread(self.get_network)
        self._mark(stats, "graph", stage_start)
        self._transition(PlanningStage.GRAPH_READY, f"nodes={network.graph.node_count}")

        walking_limit = self.walking_limit(preferences)
        connected = self.connector.connect(
            network,
            origin,
            destination,
            max_origin_walking=self._capped(
                self.connector.config["max_origin_walking_distance"], walking_limit
            ),
            max_destination_walking=self._capped(
                self.connector.config["max_destination_walking_distance"], walking_limit
            ),
        )

        stage_start = time.time()
        paths = await asyncio.to_thread(self.generator.generate, connected)
        self._mark(stats, "search", stage_start)
        stats.candidate_paths = len(paths)
        self._transition(PlanningStage.CANDIDATES_GENERATED, f"paths={len(paths)}")

        routes = await self._routes_from_paths(paths, connected, network, stats)

        # 모든 경로가 같은 노선 조합이면 노선 다양성 탐색을 한 번 더
        if len(routes) > 1 and len({frozenset(r.line_ids) for r in routes}) == 1:
            logger.debug("후보 경로가 모두 같은 노선 사용 => 노선 다양성 재탐색")
            extra_paths = await asyncio.to_thread(
                self.generator.generate, connected, True
            )
            seen = {p.nodes for p in paths}
            extra_paths = [p for p in extra_paths if p.nodes not in seen]
            stats.candidate_paths += len(extra_paths)
            routes = self._merge(
                routes,
                await self._routes_from_paths(extra_paths, connected, network, stats),
            )

        direct_walk = await self._direct_walk_route(connected, walking_limit)
        if direct_walk is not None:
            routes = self._merge(routes, [direct_walk])

        stats.timed_routes = len(routes)
        if not routes:
            self._transition(PlanningStage.NO_ROUTE, "유효한 경로 없음")
            self._log_metrics(False, (time.time() - start_time) * 1000, stats, cache_key)
            return None

        stage_start = time.time()
        self._transition(PlanningStage.SCORED, f"routes={len(routes)}")
        final = self.optimizer.filter_and_rank_routes(
            routes, connected.direct_distance, preferences
        )
        self._transition(PlanningStage.FILTERED, f"routes={len(final)}")
        self._mark(stats, "optimize", stage_start)

        if not final:
            final = [min(routes, key=lambda r: r.total_duration)]
        final = [self._finalize(route) for route in final]
        stats.returned_routes = len(final)
        self._transition(PlanningStage.DIVERSIFIED, f"routes={len(final)}")

        self.route_cache.set(cache_key, final)
        self._transition(PlanningStage.CACHED, cache_key)

        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(
            f"경로 계획 완료: 후보 {stats.candidate_paths}개 -> 반환 {len(final)}개, "
            f"응답시간={elapsed_ms:.1f}ms"
        )
        self._log_metrics(False, elapsed_ms, stats, cache_key)
        self._transition(PlanningStage.RETURNED, f"routes={len(final)}")
        return final

    async def _routes_from_paths(
        self,
        paths: Sequence[SearchPath],
        connected: ConnectedGraph,
        network: TransitNetwork,
        stats: PlanningStats,
    ) -> List[Route]:
        converter = SegmentConverter(network.lines)

        stage_start = time.time()
        segment_lists = []
        for path in paths:
            try:
                segments = converter.convert(path, connected.graph)
            except Exception as e:
                logger.warning(f"경로 변환 실패 (경로 제외): {e}", exc_info=True)
                continue
            if segments:
                segment_lists.append(segments)
        stats.converted_routes += len(segment_lists)
        self._mark(stats, "convert", stage_start)
        self._transition(PlanningStage.SEGMENTED, f"routes={len(segment_lists)}")

        stage_start = time.time()
        routes: List[Route] = []
        for segments in segment_lists:
            try:
                route = await self.timing.calculate_route(segments)
            except Exception as e:
                logger.warning(f"구간 시간 계산 실패 (경로 제외): {e}", exc_info=True)
                continue
            if route is not None:
                routes.append(route)
        self._mark(stats, "timing", stage_start)
        self._transition(PlanningStage.TIMED, f"routes={len(routes)}")

        return self._merge([], routes)

    async def _direct_walk_route(
        self, connected: ConnectedGraph, walking_limit: Optional[float]
    ) -> Optional[Route]:
        limit = MAX_WALKING_SEGMENT_DISTANCE
        if walking_limit is not None:
            limit = min(limit, walking_limit)
        if connected.direct_distance > limit:
            return None

        try:
            walk = await self.timing.walking_segment(connected.origin, connected.destination)
        except Exception as e:
            logger.warning(f"직접 도보 경로 계산 실패: {e}", exc_info=True)
            return None
        if walk is None:
            return None
        return build_route([walk])

    @staticmethod
    def _merge(routes: List[Route], extra: Sequence[Route]) -> List[Route]:
        seen = {route_signature(r) for r in routes}
        merged = list(routes)
        for route in extra:
            signature = route_signature(route)
            if signature in seen:
                continue
            seen.add(signature)
            merged.append(route)
        return merged

    @staticmethod
    def _capped(default: float, limit: Optional[float]) -> float:
        return default if limit is None else min(default, limit)

    def calculate_fare(self, route: Route) -> Optional[float]:
        """탑승 노선별 고정 요금 합계 (요금 정보가 하나도 없으면 None)"""
        fares = []
        for line_id in route.line_ids:
            line = self.repository.get_line(line_id)
            if line is not None and line.fare is not None:
                fares.append(line.fare)
        return sum(fares) if fares else None

    def _finalize(self, route: Route) -> Route:
        prefix = "walk" if route.is_walk_only else "transit"
        return replace(route, id=f"{prefix}-{uuid.uuid4()}", fare=self.calculate_fare(route))

    # station helpers

    def nearest_stations(
        self, location: Coordinates, count: int = 5, max_distance: Optional[float] = None
    ) -> List[Tuple[Station, float]]:
        self.resolve_location(location)
        network = self.get_network()
        return network.station_index.nearest(location, count=count, max_distance=max_distance)

    # logging

    @staticmethod
    def _mark(stats: PlanningStats, stage: str, stage_start: float) -> None:
        elapsed = (time.time() - stage_start) * 1000
        stats.stage_times_ms[stage] = round(stats.stage_times_ms.get(stage, 0.0) + elapsed, 2)

    @staticmethod
    def _transition(stage: PlanningStage, detail: str = "") -> None:
        logger.debug(f"[{stage.value}] {detail}")

    def _log_metrics(
        self,
        cache_hit: bool,
        response_time_ms: float,
        stats: PlanningStats,
        cache_key: str,
    ) -> None:
        """
        경로 계획 메트릭 로깅 => 로그 수집기에서 분석
        """
        if not settings.ENABLE_CACHE_METRICS:
            return

        metrics: Dict[str, Any] = {
            "event": "route_planning",
            "cache_hit": cache_hit,
            "response_time_ms": round(response_time_ms, 2),
            "cache_key": cache_key,
        }
        if not cache_hit:
            metrics.update(
                {
                    "candidate_paths": stats.candidate_paths,
                    "converted_routes": stats.converted_routes,
                    "timed_routes": stats.timed_routes,
                    "returned_routes": stats.returned_routes,
                    "stage_times_ms": stats.stage_times_ms,
                }
            )

        logger.info(f"METRICS: {json.dumps(metrics, ensure_ascii=False)}")

