"""
Core 설정 및 utilities, 커스텀 예외
"""

from app.core.config import settings

from app.core.exceptions import (
    MetroRouterException,
    StationNotFoundException,
    InvalidLocationException,
    GraphBuildException,
    ProviderException,
    RoutePlanningTimeoutException,
)

__all__ = [
    "settings",
    "MetroRouterException",
    "StationNotFoundException",
    "InvalidLocationException",
    "GraphBuildException",
    "ProviderException",
    "RoutePlanningTimeoutException",
]
