"""
Cache 모듈 테스트
"""

import pytest

from app.db.cache import DistanceCache, GraphCache, RouteCache, TTLCache
from app.models.domain import Coordinates


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestTTLCache:
    """TTLCache 테스트"""

    def test_set_and_get(self, clock):
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("key", "value")

        assert cache.get("key") == "value"
        assert len(cache) == 1

    def test_expired_entry(self, clock):
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("key", "value")

        clock.advance(60)

        assert cache.get("key") is None
        assert len(cache) == 0

    def test_custom_ttl(self, clock):
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("key", "value", ttl_seconds=5)

        clock.advance(10)

        assert cache.get("key") is None

    def test_delete_and_clear(self, clock):
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)

        assert cache.delete("a") is True
        assert cache.delete("a") is False

        cache.clear()
        assert cache.get("b") is None

    def test_cleanup(self, clock):
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("short", 1, ttl_seconds=10)
        cache.set("long", 2)

        clock.advance(30)

        assert cache.cleanup() == 1
        assert cache.get("long") == 2

    def test_set_sweeps_expired_entries(self, clock):
        """다시 조회되지 않는 만료 키도 set() 시 제거"""
        cache = RouteCache(ttl_seconds=60, clock=clock)
        for i in range(1000):
            cache.set(f"key-{i}", [])

        clock.advance(61)
        cache.set("fresh", [])

        assert len(cache) == 1
        assert cache.get("fresh") == []

    def test_sweep_waits_for_interval(self, clock):
        cache = TTLCache(ttl_seconds=60, clock=clock, sweep_interval=120)
        cache.set("old", 1, ttl_seconds=10)

        clock.advance(30)
        cache.set("new", 2)
        assert len(cache) == 2

        clock.advance(100)
        cache.set("newer", 3)
        assert len(cache) == 1


class TestRouteCache:
    """좌표 기반 경로 캐시"""

    def test_create_key_rounds_coordinates(self):
        origin = Coordinates(lat=33.7000001, lng=73.0)
        destination = Coordinates(lat=33.71, lng=73.01)

        key = RouteCache.create_key(origin, destination)

        assert key == "33.70000,73.00000|33.71000,73.01000"
        assert RouteCache.create_key(Coordinates(lat=33.7, lng=73.0), destination) == key

    def test_create_key_with_suffix(self):
        a = Coordinates(lat=33.7, lng=73.0)
        b = Coordinates(lat=33.8, lng=73.1)

        assert RouteCache.create_key(a, b, "duration").endswith("|duration")
        assert RouteCache.create_key(a, b) != RouteCache.create_key(b, a)

    def test_routes_are_stored_as_snapshot(self, clock, make_route, transit_segment):
        cache = RouteCache(ttl_seconds=300, clock=clock)
        routes = [make_route(transit_segment("red", ["a", "b"]))]

        cache.set("key", routes)
        routes.append(make_route(transit_segment("blue", ["b", "c"])))

        cached = cache.get("key")
        assert len(cached) == 1
        cached.clear()
        assert len(cache.get("key")) == 1

    def test_expiry(self, clock, make_route, transit_segment):
        cache = RouteCache(ttl_seconds=300, clock=clock)
        cache.set("key", [make_route(transit_segment("red", ["a", "b"]))])

        clock.advance(301)

        assert cache.get("key") is None


class TestDistanceCache:

    def test_key_includes_mode(self):
        a = Coordinates(lat=33.7, lng=73.0)
        b = Coordinates(lat=33.8, lng=73.1)

        assert DistanceCache.create_key(a, b, "walking") != DistanceCache.create_key(
            a, b, "transit"
        )
        assert DistanceCache.create_key(a, b, "walking").startswith("walking:")


class TestGraphCache:
    """공유 그래프 캐시"""

    def test_build_once(self, clock, mocker):
        cache = GraphCache(ttl_seconds=3600, clock=clock)
        build = mocker.Mock(return_value="network")

        assert cache.get_or_build(build) == "network"
        assert cache.get_or_build(build) == "network"
        build.assert_called_once()

    def test_rebuild_after_ttl(self, clock, mocker):
        cache = GraphCache(ttl_seconds=3600, clock=clock)
        build = mocker.Mock(side_effect=["first", "second"])

        assert cache.get_or_build(build) == "first"
        clock.advance(3600)
        assert cache.get_or_build(build) == "second"

    def test_age_seconds(self, clock):
        cache = GraphCache(ttl_seconds=3600, clock=clock)
        assert cache.age_seconds is None

        cache.set("network")
        clock.advance(42)

        assert cache.age_seconds == 42

    def test_build_failure_is_not_cached(self, clock, mocker):
        cache = GraphCache(ttl_seconds=3600, clock=clock)
        build = mocker.Mock(side_effect=[RuntimeError("boom"), "network"])

        with pytest.raises(RuntimeError):
            cache.get_or_build(build)

        assert cache.get() is None
        assert cache.get_or_build(build) == "network"

    def test_clear(self, clock):
        cache = GraphCache(clock=clock)
        cache.set("network")

        cache.clear()

        assert cache.get() is None
