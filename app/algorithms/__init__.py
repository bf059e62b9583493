"""
그래프 생성, 경로 탐색, 경로 점수/후처리 알고리즘
"""

from app.algorithms.distance_calculator import DistanceCalculator
from app.algorithms.graph_builder import GraphBuilder, TransitNetwork
from app.algorithms.location_connector import LocationConnector
from app.algorithms.route_generator import PathGenerator
from app.algorithms.segment_converter import SegmentConverter
from app.algorithms.route_optimizer import RouteOptimizer
from app.algorithms.line_policy import LinePolicy

__all__ = [
    "DistanceCalculator",
    "GraphBuilder",
    "TransitNetwork",
    "LocationConnector",
    "PathGenerator",
    "SegmentConverter",
    "RouteOptimizer",
    "LinePolicy",
]
