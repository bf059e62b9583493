"""
노선 데이터 저장소 및 캐시
"""

from app.db.cache import GraphCache, RouteCache, DistanceCache
from app.db.redis_client import RedisRouteCache
from app.db.network_repository import NetworkRepository

__all__ = [
    "GraphCache",
    "RouteCache",
    "DistanceCache",
    "RedisRouteCache",
    "NetworkRepository",
]
