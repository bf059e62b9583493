"""
RedisRouteCache 테스트
"""

import json

import pytest
import redis
from unittest.mock import patch

from app.db.redis_client import RedisRouteCache


class TestRedisRouteCache:
    """RedisRouteCache 테스트 클래스"""

    @pytest.fixture
    def route_cache(self, mock_redis_client):
        """RedisRouteCache 인스턴스"""
        with patch("app.db.redis_client.redis.Redis") as mock_redis_class:
            mock_redis_class.return_value = mock_redis_client
            return RedisRouteCache(ttl_seconds=300)

    @pytest.fixture
    def sample_routes(self, make_route, transit_segment, walk_segment):
        return [
            make_route(
                walk_segment("origin", "a", duration=120, distance=150),
                transit_segment("red", ["a", "b", "c"], duration=400),
                route_id="transit-1",
            )
        ]

    def test_set_routes(self, route_cache, sample_routes, mock_redis_client):
        """경로 캐싱 테스트"""
        result = route_cache.set("33.7,73.0|33.8,73.1", sample_routes)

        assert result is True
        mock_redis_client.setex.assert_called_once()

        key, ttl, payload = mock_redis_client.setex.call_args[0]
        assert key == "route:33.7,73.0|33.8,73.1"
        assert ttl == 300

        data = json.loads(payload)
        assert data[0]["id"] == "transit-1"
        assert data[0]["segments"][1]["line"]["id"] == "red"

    def test_set_custom_ttl(self, route_cache, sample_routes, mock_redis_client):
        route_cache.set("key", sample_routes, ttl_seconds=60)

        assert mock_redis_client.setex.call_args[0][1] == 60

    def test_get_roundtrip(self, route_cache, sample_routes, mock_redis_client):
        """캐시 HIT => Route 객체로 복원"""
        route_cache.set("key", sample_routes)
        payload = mock_redis_client.setex.call_args[0][2]
        mock_redis_client.get.return_value = payload

        cached = route_cache.get("key")

        mock_redis_client.get.assert_called_with("route:key")
        assert cached == sample_routes

    def test_get_miss(self, route_cache, mock_redis_client):
        mock_redis_client.get.return_value = None

        assert route_cache.get("key") is None

    def test_get_redis_error_is_miss(self, route_cache, mock_redis_client):
        """Redis 장애 시 캐시 MISS로 처리"""
        mock_redis_client.get.side_effect = redis.ConnectionError("down")

        assert route_cache.get("key") is None

    def test_get_corrupted_data(self, route_cache, mock_redis_client):
        mock_redis_client.get.return_value = "{not json"

        assert route_cache.get("key") is None

    def test_set_redis_error(self, route_cache, sample_routes, mock_redis_client):
        mock_redis_client.setex.side_effect = redis.ConnectionError("down")

        assert route_cache.set("key", sample_routes) is False

    def test_clear(self, route_cache, mock_redis_client):
        """캐시 무효화"""
        mock_redis_client.scan_iter.return_value = iter(["route:a", "route:b"])
        mock_redis_client.delete.return_value = 2

        assert route_cache.clear() == 2
        mock_redis_client.delete.assert_called_once_with("route:a", "route:b")

    def test_clear_nothing(self, route_cache, mock_redis_client):
        mock_redis_client.scan_iter.return_value = iter([])

        assert route_cache.clear() == 0
        mock_redis_client.delete.assert_not_called()

    def test_ping(self, route_cache, mock_redis_client):
        assert route_cache.ping() is True

        mock_redis_client.ping.side_effect = redis.ConnectionError("down")
        assert route_cache.ping() is False

    def test_create_key_matches_memory_cache(self):
        from app.db.cache import RouteCache

        assert RedisRouteCache.create_key is RouteCache.create_key
