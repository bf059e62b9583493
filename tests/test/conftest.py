"""
Pytest 설정 및 공통 Fixture
"""

import os
import pytest
import sys
from pathlib import Path

# 테스트 모드 환경 변수 설정 (모듈 임포트 전에 설정해야 함)
os.environ['TESTING'] = 'true'
os.environ.setdefault('MAPS_API_KEY', '')

# 프로젝트 루트를 sys.path에 추가
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.algorithms.graph_builder import GraphBuilder
from app.db.cache import GraphCache, RouteCache
from app.db.network_repository import NetworkRepository
from app.models.domain import (
    Coordinates,
    LineRef,
    Station,
    TransitSegment,
    WalkSegment,
)
from app.services.route_planner import RoutePlannerService
from app.services.segment_timing import build_route
from app.services.travel_time_provider import EstimatedTravelTimeProvider

# 위도 33.70 부근 경도 0.0108도 ~= 1000m, 위도 0.009도 ~= 1000m
BASE_LAT = 33.70
BASE_LNG = 73.00
LNG_KM = 0.0108
LAT_KM = 0.009


def _station(station_id, lat, lng):
    return {"id": station_id, "name": station_id.upper(), "lat": lat, "lng": lng}


@pytest.fixture
def network_data():
    """
    테스트용 노선망

    red : r0 ~ r7 동서 방향 1km 간격
    blue: r3에서 red와 환승, b1 ~ b3 북쪽 1km 간격
    """
    red = [_station(f"r{i}", BASE_LAT, BASE_LNG + i * LNG_KM) for i in range(8)]
    blue = [
        _station(f"b{k}", BASE_LAT + k * LAT_KM, BASE_LNG + 3 * LNG_KM)
        for k in range(1, 4)
    ]
    return {
        "stations": red + blue,
        "lines": [
            {
                "id": "red",
                "name": "Red Line",
                "color": "#E53935",
                "class": "primary",
                "fare": 30,
                "frequency_minutes": 4,
                "stations": [s["id"] for s in red],
            },
            {
                "id": "blue",
                "name": "Blue Line",
                "color": "#1E88E5",
                "class": "primary",
                "fare": 20,
                "frequency_minutes": 8,
                "stations": ["r3", "b1", "b2", "b3"],
            },
        ],
        "walking_shortcuts": [],
    }


@pytest.fixture
def isolated_network_data():
    """서로 22km 떨어진 두 노선 (연결 경로 없음)"""
    return {
        "stations": [
            _station("x0", 33.70, 73.00),
            _station("x1", 33.70, 73.0108),
            _station("y0", 33.90, 73.00),
            _station("y1", 33.90, 73.0108),
        ],
        "lines": [
            {"id": "xline", "name": "X", "color": "#000", "stations": ["x0", "x1"]},
            {"id": "yline", "name": "Y", "color": "#fff", "stations": ["y0", "y1"]},
        ],
    }


@pytest.fixture
def repository(network_data):
    return NetworkRepository.from_dict(network_data)


@pytest.fixture
def network(repository):
    """생성된 그래프 (자동 지름길 포함)"""
    return GraphBuilder().build(repository.lines, repository.shortcuts)


@pytest.fixture
def stub_provider():
    """haversine 기반 provider (외부 API 호출 없음)"""
    return EstimatedTravelTimeProvider()


@pytest.fixture
def planner(repository, stub_provider):
    return RoutePlannerService(
        repository=repository,
        graph_cache=GraphCache(ttl_seconds=3600),
        route_cache=RouteCache(ttl_seconds=300),
        provider=stub_provider,
    )


@pytest.fixture
def isolated_planner(isolated_network_data, stub_provider):
    return RoutePlannerService(
        repository=NetworkRepository.from_dict(isolated_network_data),
        graph_cache=GraphCache(),
        route_cache=RouteCache(),
        provider=stub_provider,
    )


# ============================================================
# Route 생성 helper
# ============================================================


def make_station(station_id, lat=BASE_LAT, lng=BASE_LNG):
    return Station(id=station_id, name=station_id, coordinates=Coordinates(lat=lat, lng=lng))


@pytest.fixture
def transit_segment():
    """transit_segment("red", ["a", "b", "c"], duration=300)"""

    def _make(line_id, station_ids, duration=300.0, distance=1000.0):
        stations = tuple(
            make_station(sid, lng=BASE_LNG + i * LNG_KM) for i, sid in enumerate(station_ids)
        )
        return TransitSegment(
            line=LineRef(id=line_id, name=line_id, color="#000"),
            stations=stations,
            duration=duration,
            distance=distance,
        )

    return _make


@pytest.fixture
def walk_segment():
    def _make(
        from_id="origin", to_id="destination", duration=600.0, distance=700.0, is_shortcut=False
    ):
        return WalkSegment(
            from_station=make_station(from_id),
            to_station=make_station(to_id, lat=BASE_LAT + LAT_KM),
            duration=duration,
            walking_time=duration,
            distance=distance,
            is_shortcut=is_shortcut,
        )

    return _make


@pytest.fixture
def make_route():
    def _make(*segments, route_id=None):
        return build_route(list(segments), route_id=route_id)

    return _make


@pytest.fixture
def mock_redis_client(mocker):
    """Mock Redis 클라이언트"""
    mock = mocker.MagicMock()
    mock.get.return_value = None
    mock.setex.return_value = True
    mock.delete.return_value = 1
    mock.ping.return_value = True
    return mock
