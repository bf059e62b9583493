from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union
from dataclasses import dataclass, field

# domain 정의
# 경로 관련 객체는 반환 이후 변경되지 않도록 frozen 사용


class EdgeType(str, Enum):
    TRANSIT = "transit"
    WALKING = "walking"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class Station:
    id: str
    name: str
    coordinates: Coordinates

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "coordinates": self.coordinates.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Station":
        coords = data["coordinates"]
        return cls(
            id=data["id"],
            name=data["name"],
            coordinates=Coordinates(lat=coords["lat"], lng=coords["lng"]),
        )


@dataclass(frozen=True)
class Line:
    id: str
    name: str
    color: str
    stations: Tuple[Station, ...]  # 운행 순서
    fare: Optional[float] = None
    frequency_minutes: Optional[int] = None


@dataclass(frozen=True)
class WalkingShortcut:
    """역 사이 명시적 보행 연결 (registry 정의)"""

    from_id: str
    to_id: str
    priority: int = 0
    distance: Optional[float] = None
    duration: Optional[float] = None


@dataclass(frozen=True)
class GraphNode:
    id: str
    station: Station
    virtual: bool = False  # 노선별 가상 노드 여부
    line_id: Optional[str] = None


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str
    type: EdgeType
    duration: float  # seconds
    distance: float  # meters
    line_id: Optional[str] = None
    line_name: Optional[str] = None
    line_color: Optional[str] = None
    cost_multiplier: float = 1.0
    is_shortcut: bool = False
    is_explicit_shortcut: bool = False

    @property
    def key(self) -> str:
        return f"{self.source}-{self.target}-{self.line_id}"


@dataclass(frozen=True)
class LineRef:
    id: str
    name: str
    color: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "color": self.color}


@dataclass(frozen=True)
class TransitSegment:
    line: LineRef
    stations: Tuple[Station, ...]
    duration: float
    stop_wait_time: float = 0.0
    distance: float = 0.0

    type = "transit"

    @property
    def stop_count(self) -> int:
        return max(0, len(self.stations) - 1)

    @property
    def first_station(self) -> Station:
        return self.stations[0]

    @property
    def last_station(self) -> Station:
        return self.stations[-1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "line": self.line.to_dict(),
            "stations": [s.to_dict() for s in self.stations],
            "duration": self.duration,
            "stop_wait_time": self.stop_wait_time,
            "distance": self.distance,
        }


@dataclass(frozen=True)
class WalkSegment:
    from_station: Station
    to_station: Station
    duration: float
    walking_time: float
    distance: float
    is_transfer: bool = False  # 환승 보행 (자동 삽입)
    is_shortcut: bool = False

    type = "walk"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "from_station": self.from_station.to_dict(),
            "to_station": self.to_station.to_dict(),
            "duration": self.duration,
            "walking_time": self.walking_time,
            "distance": self.distance,
            "is_transfer": self.is_transfer,
            "is_shortcut": self.is_shortcut,
        }


RouteSegment = Union[TransitSegment, WalkSegment]


def segment_from_dict(data: Dict[str, Any]) -> RouteSegment:
    if data["type"] == "transit":
        return TransitSegment(
            line=LineRef(**data["line"]),
            stations=tuple(Station.from_dict(s) for s in data["stations"]),
            duration=data["duration"],
            stop_wait_time=data.get("stop_wait_time", 0.0),
            distance=data.get("distance", 0.0),
        )
    return WalkSegment(
        from_station=Station.from_dict(data["from_station"]),
        to_station=Station.from_dict(data["to_station"]),
        duration=data["duration"],
        walking_time=data["walking_time"],
        distance=data["distance"],
        is_transfer=data.get("is_transfer", False),
        is_shortcut=data.get("is_shortcut", False),
    )


@dataclass(frozen=True)
class Route:
    segments: Tuple[RouteSegment, ...]
    total_stops: int
    total_distance: float
    total_duration: float
    transfers: int
    id: Optional[str] = None
    fare: Optional[float] = None

    @property
    def transit_segments(self) -> List[TransitSegment]:
        return [s for s in self.segments if isinstance(s, TransitSegment)]

    @property
    def walk_segments(self) -> List[WalkSegment]:
        return [s for s in self.segments if isinstance(s, WalkSegment)]

    @property
    def walking_distance(self) -> float:
        return sum(s.distance for s in self.walk_segments)

    @property
    def line_ids(self) -> List[str]:
        """탑승 노선 id (탑승 순서, 중복 제거)"""
        seen: List[str] = []
        for segment in self.transit_segments:
            if segment.line.id not in seen:
                seen.append(segment.line.id)
        return seen

    @property
    def is_walk_only(self) -> bool:
        return len(self.segments) > 0 and not self.transit_segments

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "segments": [s.to_dict() for s in self.segments],
            "total_stops": self.total_stops,
            "total_distance": self.total_distance,
            "total_duration": self.total_duration,
            "transfers": self.transfers,
            "fare": self.fare,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Route":
        return cls(
            segments=tuple(segment_from_dict(s) for s in data["segments"]),
            total_stops=data["total_stops"],
            total_distance=data["total_distance"],
            total_duration=data["total_duration"],
            transfers=data["transfers"],
            id=data.get("id"),
            fare=data.get("fare"),
        )


@dataclass(frozen=True)
class RoutePreferences:
    """사용자 선호 옵션"""

    prioritize: str = "balanced"  # duration | comfort | balanced
    max_walking_minutes: Optional[float] = None
    prefer_fewer_transfers: bool = False

    @property
    def is_default(self) -> bool:
        return self == RoutePreferences()

    def cache_suffix(self) -> str:
        return (
            f"{self.prioritize}:{self.max_walking_minutes}:"
            f"{int(self.prefer_fewer_transfers)}"
        )


@dataclass
class PlanningStats:
    """요청 단위 단계별 통계 (metric logging)"""

    candidate_paths: int = 0
    converted_routes: int = 0
    timed_routes: int = 0
    returned_routes: int = 0
    stage_times_ms: Dict[str, float] = field(default_factory=dict)
