"""
외부 거리/시간 provider

좌표 2개 -> (소요시간, 거리)
- EstimatedTravelTimeProvider: haversine 기반 추정 (API key 없을 때 기본값)
- MapsTravelTimeProvider: distance-matrix API 호출 (httpx) + 재시도 + TTL 캐시
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

import httpx

from app.algorithms.distance_calculator import (
    calculate_walking_duration,
    distance_calculator,
)
from app.core.config import MAX_WALKING_SEGMENT_DISTANCE, TRANSIT_SPEED, settings
from app.core.exceptions import ProviderException
from app.db.cache import DistanceCache
from app.models.domain import Coordinates

logger = logging.getLogger(__name__)

T = TypeVar("T")

WALKING = "walking"
TRANSIT = "transit"


@dataclass(frozen=True)
class TravelEstimate:
    duration: float  # seconds
    distance: float  # meters


@dataclass(frozen=True)
class RetryPolicy:
    """지수 backoff 재시도 정책"""

    max_attempts: int = 3
    backoff_seconds: float = 0.5
    multiplier: float = 2.0
    max_backoff_seconds: float = 8.0
    retry_on: Tuple[Type[BaseException], ...] = (httpx.HTTPError, ProviderException)

    def delay_for(self, attempt: int) -> float:
        """attempt번째(1부터) 실패 후 대기 시간"""
        return min(
            self.max_backoff_seconds,
            self.backoff_seconds * (self.multiplier ** (attempt - 1)),
        )

    async def run(self, operation: Callable[[], Awaitable[T]], description: str = "") -> T:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except self.retry_on as e:
                if attempt == self.max_attempts:
                    raise

                wait_time = self.delay_for(attempt)
                logger.warning(
                    f"{description} 실패 (attempt {attempt}/{self.max_attempts}), "
                    f"{wait_time:.2f}s 후 재시도: {e}"
                )
                await asyncio.sleep(wait_time)

        raise ProviderException(f"{description} 재시도 횟수 초과")


class TravelTimeProvider:
    """
    좌표 2개 -> TravelEstimate

    아래 경우는 구현과 관계없이 None
    - 출발/도착 좌표가 같음
    - 소요시간 또는 거리가 0 이하
    - 도보 거리가 max_walking_distance(기본 4km) 초과
    """

    SUPPORTED_MODES = (WALKING, TRANSIT)

    max_walking_distance: float = MAX_WALKING_SEGMENT_DISTANCE

    async def get_travel_estimate(
        self, origin: Coordinates, destination: Coordinates, mode: str
    ) -> Optional[TravelEstimate]:
        if mode not in self.SUPPORTED_MODES:
            raise ValueError(f"지원하지 않는 이동 수단: {mode}")
        if origin == destination:
            return None

        estimate = await self._estimate(origin, destination, mode)
        if estimate is None:
            return None
        if estimate.duration <= 0 or estimate.distance <= 0:
            logger.debug(f"유효하지 않은 추정치 제외: {mode}, {estimate}")
            return None
        if mode == WALKING and estimate.distance > self.max_walking_distance:
            logger.debug(f"도보 구간 제외 (거리 초과): {estimate.distance:.0f}m")
            return None
        return estimate

    async def _estimate(
        self, origin: Coordinates, destination: Coordinates, mode: str
    ) -> Optional[TravelEstimate]:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class EstimatedTravelTimeProvider(TravelTimeProvider):
    """직선 거리 기반 추정치"""

    def __init__(self, transit_speed: float = TRANSIT_SPEED):
        self.transit_speed = transit_speed

    async def _estimate(
        self, origin: Coordinates, destination: Coordinates, mode: str
    ) -> Optional[TravelEstimate]:
        distance = distance_calculator.calculate_distance(origin, destination)
        if mode == WALKING:
            return TravelEstimate(duration=calculate_walking_duration(distance), distance=distance)
        return TravelEstimate(duration=round(distance / self.transit_speed), distance=distance)


class MapsTravelTimeProvider(TravelTimeProvider):
    # 대중교통 구간은 차량 주행 시간으로 근사
    MODE_MAP = {WALKING: "walking", TRANSIT: "driving"}

    # 재시도해도 의미 없는 응답 상태
    FATAL_STATUSES = {"INVALID_REQUEST", "REQUEST_DENIED"}

    def __init__(
        self,
        api_key: str,
        base_url: str = settings.MAPS_API_URL,
        timeout: float = settings.PROVIDER_TIMEOUT_SECONDS,
        retry_policy: Optional[RetryPolicy] = None,
        cache: Optional[DistanceCache] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.retry_policy = retry_policy or RetryPolicy()
        self.cache = cache if cache is not None else DistanceCache()
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def _estimate(
        self, origin: Coordinates, destination: Coordinates, mode: str
    ) -> Optional[TravelEstimate]:
        cache_key = DistanceCache.create_key(origin, destination, mode)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            estimate = await self.retry_policy.run(
                lambda: self._fetch(origin, destination, mode),
                description=f"거리/시간 조회({mode})",
            )
        except (httpx.HTTPError, ProviderException) as e:
            logger.error(f"거리/시간 조회 실패: {cache_key}, 오류: {e}")
            return None

        if estimate is not None:
            self.cache.set(cache_key, estimate)
        return estimate

    async def _fetch(
        self, origin: Coordinates, destination: Coordinates, mode: str
    ) -> Optional[TravelEstimate]:
        params = {
            "origins": f"{origin.lat},{origin.lng}",
            "destinations": f"{destination.lat},{destination.lng}",
            "mode": self.MODE_MAP[mode],
            "key": self.api_key,
        }
        response = await self.client.get(self.base_url, params=params)
        response.raise_for_status()
        data = response.json()

        status = data.get("status")
        if status in self.FATAL_STATUSES:
            logger.error(f"distance matrix 요청 거부: status={status}")
            return None
        if status != "OK":
            raise ProviderException(f"distance matrix 응답 오류: status={status}")

        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError) as e:
            raise ProviderException(f"distance matrix 응답 형식 오류: {e}") from e

        if element.get("status") != "OK":
            logger.debug(f"경로 없음: element status={element.get('status')}")
            return None

        return TravelEstimate(
            duration=float(element["duration"]["value"]),
            distance=float(element["distance"]["value"]),
        )

    async def close(self) -> None:
        await self.client.aclose()


def create_travel_time_provider() -> TravelTimeProvider:
    """설정에 따라 provider 생성 (API key가 없으면 추정치 사용)"""
    config = settings.PROVIDER_CONFIG
    if not config["api_key"]:
        logger.info("MAPS_API_KEY 없음 => haversine 추정 provider 사용")
        return EstimatedTravelTimeProvider()

    return MapsTravelTimeProvider(
        api_key=config["api_key"],
        base_url=config["base_url"],
        timeout=config["timeout"],
        retry_policy=RetryPolicy(
            max_attempts=config["max_attempts"],
            backoff_seconds=config["backoff_seconds"],
        ),
    )
