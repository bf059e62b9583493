import asyncio
import logging
from typing import List, Optional, Sequence

from app.algorithms.distance_calculator import distance_calculator
from app.algorithms.segment_converter import SegmentConverter
from app.core.config import STOP_WAIT_TIME_SECONDS
from app.models.domain import Route, RouteSegment, Station, TransitSegment, WalkSegment
from app.services.travel_time_provider import TRANSIT, WALKING, TravelTimeProvider

logger = logging.getLogger(__name__)


def build_route(
    segments: Sequence[RouteSegment],
    route_id: Optional[str] = None,
    fare: Optional[float] = None,
) -> Route:
    """구간 목록으로 Route 생성 (합계 지표 계산)"""
    transit = [s for s in segments if isinstance(s, TransitSegment)]
    walks = [s for s in segments if isinstance(s, WalkSegment)]

    return Route(
        segments=tuple(segments),
        total_stops=sum(s.stop_count for s in transit),
        total_distance=sum(s.distance for s in transit) + sum(s.distance for s in walks),
        total_duration=sum(s.duration for s in segments),
        transfers=max(0, len(transit) - 1),
        id=route_id,
        fare=fare,
    )


class SegmentTimingCalculator:
    """
    구간별 소요시간/거리 재계산

    그래프 edge 가중치는 탐색용 근사값이므로 provider 값으로 다시 계산
    - 대중교통: provider 소요시간 + 정차 수 x 정차 대기시간
    - 인접한 대중교통 구간의 환승역이 다르면 환승 도보 구간 삽입
    - 구간 하나라도 계산 실패 시 경로 전체 제외 (None)
    """

    def __init__(
        self,
        provider: TravelTimeProvider,
        stop_wait_time: float = STOP_WAIT_TIME_SECONDS,
    ):
        self.provider = provider
        self.stop_wait_time = stop_wait_time

    async def walking_segment(
        self,
        from_station: Station,
        to_station: Station,
        is_transfer: bool = False,
        is_shortcut: bool = False,
    ) -> Optional[WalkSegment]:
        estimate = await self.provider.get_travel_estimate(
            from_station.coordinates, to_station.coordinates, WALKING
        )
        if estimate is None:
            return None

        return WalkSegment(
            from_station=from_station,
            to_station=to_station,
            duration=estimate.duration,
            walking_time=estimate.duration,
            distance=estimate.distance,
            is_transfer=is_transfer,
            is_shortcut=is_shortcut,
        )

    async def transit_segment(self, segment: TransitSegment) -> Optional[TransitSegment]:
        if len(segment.stations) < 2:
            return None

        estimate = await self.provider.get_travel_estimate(
            segment.first_station.coordinates,
            segment.last_station.coordinates,
            TRANSIT,
        )
        if estimate is None:
            return None

        stop_wait = segment.stop_count * self.stop_wait_time
        distance = distance_calculator.path_distance(
            [s.coordinates for s in segment.stations]
        )

        return TransitSegment(
            line=segment.line,
            stations=segment.stations,
            duration=estimate.duration + stop_wait,
            stop_wait_time=stop_wait,
            distance=distance,
        )

    async def complete_segment(self, segment: RouteSegment) -> Optional[RouteSegment]:
        if isinstance(segment, TransitSegment):
            return await self.transit_segment(segment)
        return await self.walking_segment(
            segment.from_station,
            segment.to_station,
            is_transfer=segment.is_transfer,
            is_shortcut=segment.is_shortcut,
        )

    async def calculate_route(self, segments: Sequence[RouteSegment]) -> Optional[Route]:
        if not segments:
            return None

        # 구간 간 의존성이 없으므로 동시에 조회
        completed = await asyncio.gather(*(self.complete_segment(s) for s in segments))
        if any(s is None for s in completed):
            logger.debug("구간 재계산 실패 => 경로 제외")
            return None

        timed: List[RouteSegment] = []
        for segment in completed:
            previous = timed[-1] if timed else None
            if isinstance(previous, TransitSegment) and isinstance(segment, TransitSegment):
                handoff_from = previous.last_station
                handoff_to = segment.first_station
                if (
                    handoff_from.id != handoff_to.id
                    and handoff_from.coordinates != handoff_to.coordinates
                ):
                    transfer_walk = await self.walking_segment(
                        handoff_from, handoff_to, is_transfer=True
                    )
                    if transfer_walk is None:
                        logger.debug(
                            f"환승 도보 계산 실패: {handoff_from.id} -> {handoff_to.id}"
                        )
                        return None
                    timed.append(transfer_walk)
            timed.append(segment)

        timed = SegmentConverter.consolidate_walks(timed)
        timed = [s for s in timed if s.duration > 0]
        if not timed:
            return None

        return build_route(timed)
