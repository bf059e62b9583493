"""
경로 계획 REST API 엔드포인트
"""

from fastapi import APIRouter, HTTPException, Depends
import logging

from app.api.deps import get_route_planner
from app.core.exceptions import (
    MetroRouterException,
    RoutePlanningTimeoutException,
    StationNotFoundException,
)
from app.models.requests import RoutePlanRequest
from app.models.responses import ErrorResponse, RoutePlanResponse
from app.services.route_planner import RoutePlannerService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/plan",
    response_model=RoutePlanResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def plan_route(
    request: RoutePlanRequest,
    planner: RoutePlannerService = Depends(get_route_planner),
):
    """
    경로 계획

    - **origin / destination**: `{"station_id": ...}` 또는 `{"lat": ..., "lng": ...}`
    - **preferences**: prioritize (duration/comfort/balanced), max_walking_minutes,
      prefer_fewer_transfers

    Returns:
        최대 3개 경로 (경로가 없으면 빈 리스트)

    Example:
        POST /v1/routes/plan
        {
            "origin": {"station_id": "secretariat"},
            "destination": {"lat": 33.6613, "lng": 73.0828}
        }
    """
    try:
        origin = planner.resolve_location(request.origin.to_location())
        destination = planner.resolve_location(request.destination.to_location())

        logger.info(f"경로 계획 요청: {origin} -> {destination}")

        routes = await planner.plan_routes(
            origin, destination, request.preferences.to_domain()
        )
        routes = routes or []

        return {
            "origin": origin.to_dict(),
            "destination": destination.to_dict(),
            "count": len(routes),
            "routes": [route.to_dict() for route in routes],
        }

    except RoutePlanningTimeoutException as e:
        logger.error(f"경로 계획 시간 초과: {e.message}")
        raise HTTPException(
            status_code=504, detail={"message": e.message, "code": e.code}
        )
    except StationNotFoundException as e:
        logger.error(f"경로 계획 실패: {e.message}")
        raise HTTPException(
            status_code=404, detail={"message": e.message, "code": e.code}
        )
    except MetroRouterException as e:
        logger.error(f"경로 계획 실패: {e.message}")
        raise HTTPException(
            status_code=400, detail={"message": e.message, "code": e.code}
        )
