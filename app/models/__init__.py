"""
pydantic models for 요청, 응답 + 도메인 객체
"""


from app.models.requests import (
    LocationInput,
    PreferencesInput,
    RoutePlanRequest,
    NearestStationsRequest,
)
from app.models.responses import (
    RoutePlanResponse,
    StationSearchResponse,
    NearestStationsResponse,
    LinesResponse,
    ErrorResponse,
)
from app.models.domain import Station, Line, Route, RoutePreferences

__all__ = [
    "LocationInput",
    "PreferencesInput",
    "RoutePlanRequest",
    "NearestStationsRequest",
    "RoutePlanResponse",
    "StationSearchResponse",
    "NearestStationsResponse",
    "LinesResponse",
    "ErrorResponse",
    "Station",
    "Line",
    "Route",
    "RoutePreferences",
]
