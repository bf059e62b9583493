"""
Business logic services
"""

from app.services.route_planner import RoutePlannerService
from app.services.segment_timing import SegmentTimingCalculator
from app.services.travel_time_provider import (
    TravelTimeProvider,
    EstimatedTravelTimeProvider,
    MapsTravelTimeProvider,
)

__all__ = [
    "RoutePlannerService",
    "SegmentTimingCalculator",
    "TravelTimeProvider",
    "EstimatedTravelTimeProvider",
    "MapsTravelTimeProvider",
]
