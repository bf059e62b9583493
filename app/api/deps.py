"""
의존성 주입 (lru_cache => 프로세스 단위 싱글톤)

테스트에서는 app.dependency_overrides 로 교체
"""

import logging
from functools import lru_cache

from app.core.config import settings
from app.db.cache import GraphCache, RouteCache
from app.db.network_repository import NetworkRepository
from app.db.redis_client import RedisRouteCache
from app.services.route_planner import RoutePlannerService
from app.services.travel_time_provider import TravelTimeProvider, create_travel_time_provider

logger = logging.getLogger(__name__)


@lru_cache()
def get_network_repository() -> NetworkRepository:
    return NetworkRepository.from_file(settings.NETWORK_DATA_PATH)


@lru_cache()
def get_graph_cache() -> GraphCache:
    return GraphCache(ttl_seconds=settings.GRAPH_CACHE_TTL_SECONDS)


@lru_cache()
def get_route_cache():
    """ROUTE_CACHE_BACKEND=redis 이면 worker 간 공유 캐시 사용"""
    if settings.ROUTE_CACHE_BACKEND == "redis":
        logger.info(f"경로 캐시: redis ({settings.REDIS_HOST}:{settings.REDIS_PORT})")
        return RedisRouteCache(ttl_seconds=settings.ROUTE_CACHE_TTL_SECONDS)
    return RouteCache(ttl_seconds=settings.ROUTE_CACHE_TTL_SECONDS)


@lru_cache()
def get_travel_time_provider() -> TravelTimeProvider:
    return create_travel_time_provider()


@lru_cache()
def get_route_planner() -> RoutePlannerService:
    return RoutePlannerService(
        repository=get_network_repository(),
        graph_cache=get_graph_cache(),
        route_cache=get_route_cache(),
        provider=get_travel_time_provider(),
    )
