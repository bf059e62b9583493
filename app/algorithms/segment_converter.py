import logging
from typing import Dict, List, Optional

from app.algorithms.path_search import SearchPath
from app.models.domain import (
    EdgeType,
    GraphEdge,
    Line,
    LineRef,
    RouteSegment,
    Station,
    TransitSegment,
    WalkSegment,
)

logger = logging.getLogger(__name__)


def find_station_sequence(line: Line, from_id: str, to_id: str) -> List[Station]:
    """노선 위 두 역 사이의 연속된 역 목록 (진행 방향 순서)"""
    ids = [s.id for s in line.stations]
    try:
        start = ids.index(from_id)
        end = ids.index(to_id)
    except ValueError:
        raise ValueError(f"노선 {line.id}에 없는 역: {from_id} / {to_id}") from None

    if start <= end:
        return list(line.stations[start : end + 1])
    return list(reversed(line.stations[end : start + 1]))


class _TransitRun:
    """같은 노선 연속 구간 누적용"""

    def __init__(self, line: LineRef, stations: List[Station], duration: float, distance: float):
        self.line = line
        self.stations = stations
        self.duration = duration
        self.distance = distance

    def to_segment(self) -> TransitSegment:
        return TransitSegment(
            line=self.line,
            stations=tuple(self.stations),
            duration=self.duration,
            distance=self.distance,
        )


class SegmentConverter:
    """
    그래프 경로 -> 도보/대중교통 구간 목록

    - 같은 노선의 연속 transit edge는 하나의 구간으로 합침
    - 노선이 바뀌거나 transit이 아닌 edge가 나오면 구간 종료
    - 같은 역 안의 transfer edge(가상 노드 모델의 부산물)는 구간으로 만들지 않음
    - 연속된 도보 구간은 하나로 합치고, 소요시간 0인 구간은 제거
    """

    def __init__(self, lines: Dict[str, Line]):
        self.lines = lines

    def convert(self, path: SearchPath, graph) -> List[RouteSegment]:
        segments: List[RouteSegment] = []
        current: Optional[_TransitRun] = None

        def flush():
            nonlocal current
            if current is not None:
                segments.append(current.to_segment())
                current = None

        for edge in path.edges:
            source = graph.get_node(edge.source)
            target = graph.get_node(edge.target)
            if source is None or target is None:
                raise ValueError(f"그래프에 없는 노드: {edge.source} -> {edge.target}")

            if edge.type == EdgeType.TRANSIT:
                sequence = self._sequence_for(edge, source.station, target.station)
                if (
                    current is not None
                    and current.line.id == edge.line_id
                    and current.stations[-1].id == sequence[0].id
                ):
                    current.stations.extend(sequence[1:])
                    current.duration += edge.duration
                    current.distance += edge.distance
                else:
                    flush()
                    current = _TransitRun(
                        line=LineRef(
                            id=edge.line_id,
                            name=edge.line_name or edge.line_id,
                            color=edge.line_color or "",
                        ),
                        stations=sequence,
                        duration=edge.duration,
                        distance=edge.distance,
                    )
                continue

            flush()

            if edge.type == EdgeType.TRANSFER and self._is_same_location(source.station, target.station):
                continue

            segments.append(self._walk_segment(edge, source.station, target.station))

        flush()

        segments = self.consolidate_walks(segments)
        return [s for s in segments if s.duration > 0]

    def _sequence_for(self, edge: GraphEdge, source: Station, target: Station) -> List[Station]:
        line = self.lines.get(edge.line_id)
        if line is None:
            raise ValueError(f"알 수 없는 노선: {edge.line_id}")
        return find_station_sequence(line, source.id, target.id)

    @staticmethod
    def _is_same_location(a: Station, b: Station) -> bool:
        return a.id == b.id or a.coordinates == b.coordinates

    @staticmethod
    def _walk_segment(edge: GraphEdge, source: Station, target: Station) -> WalkSegment:
        return WalkSegment(
            from_station=source,
            to_station=target,
            duration=edge.duration,
            walking_time=edge.duration,
            distance=edge.distance,
            is_transfer=edge.type == EdgeType.TRANSFER,
            is_shortcut=edge.is_shortcut,
        )

    @staticmethod
    def consolidate_walks(segments: List[RouteSegment]) -> List[RouteSegment]:
        """연속 도보 구간 병합 (시작은 첫 구간, 끝은 마지막 구간)"""
        merged: List[RouteSegment] = []
        for segment in segments:
            previous = merged[-1] if merged else None
            if isinstance(segment, WalkSegment) and isinstance(previous, WalkSegment):
                merged[-1] = WalkSegment(
                    from_station=previous.from_station,
                    to_station=segment.to_station,
                    duration=previous.duration + segment.duration,
                    walking_time=previous.walking_time + segment.walking_time,
                    distance=previous.distance + segment.distance,
                    is_transfer=previous.is_transfer or segment.is_transfer,
                    is_shortcut=previous.is_shortcut or segment.is_shortcut,
                )
            else:
                merged.append(segment)
        return merged
