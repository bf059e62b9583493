from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from app.models.domain import Coordinates, RoutePreferences

# service별 requests 구조 정의


# 출발지/목적지: 역 id 또는 좌표 중 하나
class LocationInput(BaseModel):
    station_id: Optional[str] = Field(None, description="역 id")
    lat: Optional[float] = Field(None, ge=-90, le=90, description="위도")
    lng: Optional[float] = Field(None, ge=-180, le=180, description="경도")

    @model_validator(mode="after")
    def check_one_of(self) -> "LocationInput":
        has_coords = self.lat is not None and self.lng is not None
        if self.station_id is None and not has_coords:
            raise ValueError("station_id 또는 lat/lng 중 하나는 필수입니다")
        if self.station_id is not None and (self.lat is not None or self.lng is not None):
            raise ValueError("station_id와 lat/lng는 함께 사용할 수 없습니다")
        return self

    def to_location(self):
        if self.station_id is not None:
            return self.station_id
        return Coordinates(lat=self.lat, lng=self.lng)


class PreferencesInput(BaseModel):
    prioritize: Literal["duration", "comfort", "balanced"] = Field(
        default="balanced", description="우선순위 (duration/comfort/balanced)"
    )
    max_walking_minutes: Optional[float] = Field(
        None, gt=0, le=120, description="최대 도보 시간 (분)"
    )
    prefer_fewer_transfers: bool = Field(default=False, description="환승 최소화 선호")

    def to_domain(self) -> RoutePreferences:
        return RoutePreferences(
            prioritize=self.prioritize,
            max_walking_minutes=self.max_walking_minutes,
            prefer_fewer_transfers=self.prefer_fewer_transfers,
        )


# 경로 계획 요청
class RoutePlanRequest(BaseModel):
    origin: LocationInput = Field(..., description="출발지")
    destination: LocationInput = Field(..., description="목적지")
    preferences: PreferencesInput = Field(default_factory=PreferencesInput)


class CoordinatesInput(BaseModel):
    lat: float = Field(..., ge=-90, le=90, description="위도")
    lng: float = Field(..., ge=-180, le=180, description="경도")


class NearestOptions(BaseModel):
    max_distance: Optional[float] = Field(None, gt=0, description="최대 거리 (미터)")
    count: int = Field(default=5, ge=1, le=50, description="반환할 역 수")


# 가까운 역 조회
class NearestStationsRequest(BaseModel):
    location: CoordinatesInput
    options: NearestOptions = Field(default_factory=NearestOptions)
