"""
정적 노선/역 데이터 저장소

JSON 문서 하나에서 역, 노선(운행 순서), 요금/배차, 보행 지름길을 읽음
잘못된 데이터는 로드 시점에 GraphBuildException으로 바로 실패
"""

import json
import logging
from typing import Any, Dict, List, Optional

from app.core.exceptions import GraphBuildException
from app.models.domain import Coordinates, Line, Station, WalkingShortcut

logger = logging.getLogger(__name__)

RESERVED_IDS = {"origin", "destination"}
LINE_CLASSES = {"primary", "secondary", "tertiary"}


class NetworkRepository:
    def __init__(
        self,
        stations: Dict[str, Station],
        lines: List[Line],
        shortcuts: Optional[List[WalkingShortcut]] = None,
        line_classes: Optional[Dict[str, str]] = None,
    ):
        self.stations = stations
        self.lines = lines
        self.shortcuts = shortcuts or []
        # 노선 등급 (primary/secondary/tertiary), 데이터에 명시된 것만
        self.line_classes = line_classes or {}

        self._lines_by_id = {line.id: line for line in lines}
        self._station_lines: Dict[str, List[str]] = {}
        for line in lines:
            for station in line.stations:
                self._station_lines.setdefault(station.id, []).append(line.id)

    @classmethod
    def from_file(cls, path: str) -> "NetworkRepository":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise GraphBuildException(f"노선 데이터 로드 실패: {path}, 오류: {e}") from e

        repository = cls.from_dict(data)
        logger.info(
            f"✓ 노선 데이터 로드 완료: 역 {len(repository.stations)}개, "
            f"노선 {len(repository.lines)}개 ({path})"
        )
        return repository

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NetworkRepository":
        stations: Dict[str, Station] = {}
        try:
            for raw in data["stations"]:
                station_id = str(raw["id"])
                if station_id in RESERVED_IDS:
                    raise GraphBuildException(f"예약된 역 id: {station_id}")
                if station_id in stations:
                    raise GraphBuildException(f"중복된 역 id: {station_id}")
                lat, lng = float(raw["lat"]), float(raw["lng"])
                if not (-90 <= lat <= 90 and -180 <= lng <= 180):
                    raise GraphBuildException(f"유효하지 않은 좌표: {station_id} ({lat}, {lng})")
                stations[station_id] = Station(
                    id=station_id,
                    name=raw.get("name", station_id),
                    coordinates=Coordinates(lat=lat, lng=lng),
                )

            lines: List[Line] = []
            line_classes: Dict[str, str] = {}
            for raw in data["lines"]:
                missing = [sid for sid in raw["stations"] if sid not in stations]
                if missing:
                    raise GraphBuildException(
                        f"노선 {raw['id']}이 존재하지 않는 역을 참조: {missing}"
                    )
                lines.append(
                    Line(
                        id=str(raw["id"]),
                        name=raw.get("name", raw["id"]),
                        color=raw.get("color", ""),
                        stations=tuple(stations[sid] for sid in raw["stations"]),
                        fare=raw.get("fare"),
                        frequency_minutes=raw.get("frequency_minutes"),
                    )
                )
                if raw.get("class"):
                    if raw["class"] not in LINE_CLASSES:
                        raise GraphBuildException(
                            f"알 수 없는 노선 등급: {raw['id']} ({raw['class']})"
                        )
                    line_classes[str(raw["id"])] = raw["class"]

            shortcuts = [
                WalkingShortcut(
                    from_id=raw["from"],
                    to_id=raw["to"],
                    priority=int(raw.get("priority", 0)),
                    distance=raw.get("distance"),
                    duration=raw.get("duration"),
                )
                for raw in data.get("walking_shortcuts", [])
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise GraphBuildException(f"노선 데이터 형식 오류: {e}") from e

        return cls(stations, lines, shortcuts, line_classes)

    def get_station(self, station_id: str) -> Optional[Station]:
        return self.stations.get(station_id)

    def get_line(self, line_id: str) -> Optional[Line]:
        return self._lines_by_id.get(line_id)

    def lines_for_station(self, station_id: str) -> List[str]:
        return self._station_lines.get(station_id, [])

    def search_stations(self, keyword: str, limit: int = 10) -> List[Station]:
        """역 이름 검색 (정확 일치 > 접두 일치 > 부분 일치)"""
        keyword = keyword.strip().lower()
        if not keyword:
            return []

        results = []
        for station in self.stations.values():
            name_lower = station.name.lower()
            if keyword in name_lower:
                if name_lower == keyword:
                    priority = 1
                elif name_lower.startswith(keyword):
                    priority = 2
                else:
                    priority = 3
                results.append((priority, len(station.name), station.name, station))

        results.sort(key=lambda x: (x[0], x[1], x[2]))
        return [r[3] for r in results[:limit]]
