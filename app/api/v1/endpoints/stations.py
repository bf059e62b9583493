"""
역 검색 REST API 엔드포인트
"""

from fastapi import APIRouter, Query, HTTPException, Depends
import logging

from app.api.deps import get_network_repository, get_route_planner
from app.core.exceptions import MetroRouterException
from app.db.network_repository import NetworkRepository
from app.models.domain import Coordinates
from app.models.requests import NearestStationsRequest
from app.models.responses import (
    ErrorResponse,
    LinesResponse,
    NearestStationsResponse,
    StationSearchResponse,
)
from app.services.route_planner import RoutePlannerService

router = APIRouter()
logger = logging.getLogger(__name__)


def _station_info(repository: NetworkRepository, station, distance=None) -> dict:
    info = {
        "id": station.id,
        "name": station.name,
        "lat": station.coordinates.lat,
        "lng": station.coordinates.lng,
        "lines": repository.lines_for_station(station.id),
    }
    if distance is not None:
        info["distance"] = round(distance, 1)
    return info


@router.get("/search", response_model=StationSearchResponse)
async def search_stations(
    q: str = Query(..., description="검색 키워드", min_length=1, max_length=50),
    limit: int = Query(10, ge=1, le=50, description="최대 결과 수"),
    repository: NetworkRepository = Depends(get_network_repository),
):
    """
    역 검색 (자동완성용)

    - **q**: 검색 키워드 (1-50자)
    - **limit**: 최대 결과 수 (1-50, 기본값 10)

    Example:
        GET /v1/stations/search?q=parade&limit=5
    """
    logger.info(f"역 검색: keyword={q}, limit={limit}")
    results = repository.search_stations(q, limit)

    return {
        "keyword": q,
        "count": len(results),
        "results": [_station_info(repository, s) for s in results],
    }


@router.post(
    "/nearest",
    response_model=NearestStationsResponse,
    responses={400: {"model": ErrorResponse}},
)
async def nearest_stations(
    request: NearestStationsRequest,
    planner: RoutePlannerService = Depends(get_route_planner),
):
    """
    좌표 기준 가까운 역 조회

    Example:
        POST /v1/stations/nearest
        {"location": {"lat": 33.72, "lng": 73.08}, "options": {"count": 3}}
    """
    try:
        location = Coordinates(lat=request.location.lat, lng=request.location.lng)
        nearest = planner.nearest_stations(
            location,
            count=request.options.count,
            max_distance=request.options.max_distance,
        )
    except MetroRouterException as e:
        logger.error(f"가까운 역 조회 실패: {e.message}")
        raise HTTPException(
            status_code=400, detail={"message": e.message, "code": e.code}
        )

    results = [
        _station_info(planner.repository, station, distance)
        for station, distance in nearest
    ]
    return {"count": len(results), "results": results}


@router.get("/lines", response_model=LinesResponse)
async def get_all_lines(
    planner: RoutePlannerService = Depends(get_route_planner),
):
    """
    전체 노선 목록 조회 (운행 순서, 요금, 배차간격, 등급)
    """
    lines = [
        {
            "id": line.id,
            "name": line.name,
            "color": line.color,
            "fare": line.fare,
            "frequency_minutes": line.frequency_minutes,
            "line_class": planner.policy.classify(line.id).value,
            "stations": [s.id for s in line.stations],
        }
        for line in planner.repository.lines
    ]
    return {"count": len(lines), "lines": lines}
