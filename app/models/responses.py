from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

# service 별 응답 구조 정의


# 경로 계획 응답 top3까지 제공
class RoutePlanResponse(BaseModel):
    origin: Dict[str, float] = Field(..., description="출발지 좌표")
    destination: Dict[str, float] = Field(..., description="목적지 좌표")
    count: int = Field(..., description="반환된 경로 수")
    routes: List[Dict[str, Any]] = Field(default_factory=list, description="경로 리스트 (최대 3개)")


class StationInfo(BaseModel):
    id: str
    name: str
    lat: float
    lng: float
    lines: List[str] = Field(default_factory=list, description="정차 노선 id")
    distance: Optional[float] = Field(None, description="기준 좌표까지 거리 (미터)")


# 역 검색 응답 (자동완성)
class StationSearchResponse(BaseModel):
    keyword: str = Field(..., description="검색 키워드")
    count: int = Field(..., description="검색 결과 수")
    results: List[StationInfo] = Field(default_factory=list, description="역 정보 리스트")


class NearestStationsResponse(BaseModel):
    count: int
    results: List[StationInfo] = Field(default_factory=list)


class LineInfo(BaseModel):
    id: str
    name: str
    color: str
    fare: Optional[float] = None
    frequency_minutes: Optional[float] = None
    line_class: str = Field(..., description="노선 등급 (primary/secondary/tertiary)")
    stations: List[str] = Field(default_factory=list, description="운행 순서 역 id")


class LinesResponse(BaseModel):
    count: int
    lines: List[LineInfo]


# 에러 응답 (HTTPException detail)
class ErrorDetail(BaseModel):
    message: str = Field(..., description="에러 메시지")
    code: Optional[str] = Field(None, description="에러 코드")


class ErrorResponse(BaseModel):
    detail: ErrorDetail
