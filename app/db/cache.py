"""
TTL 캐시 서비스 객체

- GraphCache: 공유 노선망 그래프 1개 (기본 1시간)
- RouteCache: 좌표 쌍별 최종 경로 목록 (기본 5분)
- DistanceCache: 외부 거리/시간 조회 결과 (기본 60분)

전역 싱글톤 대신 planner에 주입해서 사용
값은 항상 통째로 교체 (swap) => 읽는 쪽이 부분 갱신 상태를 보지 않음
"""

import logging
import time
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from app.core.config import settings
from app.models.domain import Coordinates, Route

logger = logging.getLogger(__name__)


class TTLCache:
    """
    만료 시각을 함께 저장하는 dict 캐시

    만료 항목은 조회 시 제거되고, set() 시에도 sweep 주기(기본 TTL)마다 일괄 제거
    => 다시 조회되지 않는 키가 쌓이지 않음
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: Optional[float] = None,
    ):
        self.ttl_seconds = ttl_seconds
        self.sweep_interval = ttl_seconds if sweep_interval is None else sweep_interval
        self._clock = clock
        self._lock = Lock()
        self._entries: Dict[str, Tuple[float, Any]] = {}  # key -> (만료 시각, 값)
        self._next_sweep = clock() + self.sweep_interval

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        now = self._clock()
        with self._lock:
            removed = self._sweep(now) if now >= self._next_sweep else 0
            self._entries[key] = (now + ttl, value)
        if removed:
            logger.debug(f"{type(self).__name__} 만료 항목 {removed}개 제거")

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries = {}
        logger.info(f"{type(self).__name__} 초기화됨")

    def cleanup(self) -> int:
        """만료 항목 일괄 제거"""
        now = self._clock()
        with self._lock:
            removed = self._sweep(now)
        if removed:
            logger.debug(f"{type(self).__name__} 만료 항목 {removed}개 제거")
        return removed

    def _sweep(self, now: float) -> int:
        # lock 안에서만 호출
        alive = {k: v for k, v in self._entries.items() if v[0] > now}
        removed = len(self._entries) - len(alive)
        self._entries = alive
        self._next_sweep = now + self.sweep_interval
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def coordinate_pair_key(origin: Coordinates, destination: Coordinates) -> str:
    return (
        f"{origin.lat:.5f},{origin.lng:.5f}|"
        f"{destination.lat:.5f},{destination.lng:.5f}"
    )


class RouteCache(TTLCache):
    """출발/도착 좌표(소수점 5자리) 기준 경로 캐시"""

    def __init__(self, ttl_seconds: float = settings.ROUTE_CACHE_TTL_SECONDS, **kwargs):
        super().__init__(ttl_seconds, **kwargs)

    @staticmethod
    def create_key(origin: Coordinates, destination: Coordinates, suffix: str = "") -> str:
        key = coordinate_pair_key(origin, destination)
        return f"{key}|{suffix}" if suffix else key

    def get(self, key: str) -> Optional[List[Route]]:
        routes = super().get(key)
        return list(routes) if routes is not None else None

    def set(self, key: str, routes: Sequence[Route], ttl_seconds: Optional[float] = None) -> None:
        super().set(key, tuple(routes), ttl_seconds)


class DistanceCache(TTLCache):
    def __init__(self, ttl_seconds: float = settings.DISTANCE_CACHE_TTL_SECONDS, **kwargs):
        super().__init__(ttl_seconds, **kwargs)

    @staticmethod
    def create_key(origin: Coordinates, destination: Coordinates, mode: str) -> str:
        return f"{mode}:{coordinate_pair_key(origin, destination)}"


class GraphCache:
    """
    공유 그래프 캐시 (항목 1개)

    TTL이 지나면 다음 조회 시 다시 생성
    호출자는 반환된 그래프를 읽기 전용으로 다뤄야 함
    """

    def __init__(
        self,
        ttl_seconds: float = settings.GRAPH_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = Lock()
        self._build_lock = Lock()
        self._entry: Optional[Tuple[float, Any]] = None  # (생성 시각, network)

    def get(self) -> Optional[Any]:
        with self._lock:
            entry = self._entry
        if entry is None:
            return None
        built_at, network = entry
        if self._clock() - built_at >= self.ttl_seconds:
            return None
        return network

    def set(self, network: Any) -> None:
        with self._lock:
            self._entry = (self._clock(), network)

    def clear(self) -> None:
        with self._lock:
            self._entry = None
        logger.info("그래프 캐시 초기화됨")

    def get_or_build(self, build: Callable[[], Any]) -> Any:
        network = self.get()
        if network is not None:
            return network

        # 동시에 여러 요청이 재생성하지 않도록
        with self._build_lock:
            network = self.get()
            if network is not None:
                return network
            logger.info("그래프 캐시 만료 또는 없음 => 재생성")
            network = build()
            self.set(network)
            return network

    @property
    def age_seconds(self) -> Optional[float]:
        entry = self._entry
        if entry is None:
            return None
        return self._clock() - entry[0]
