import os
from typing import Dict, Any
from dotenv import load_dotenv

load_dotenv()  # 환경변수 읽어오기


class Settings:
    PROJECT_NAME: str = "Metro Router Backend"
    VERSION: str = "1.2.0"

    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    PORT: int = int(os.getenv("PORT", 8001))

    # 정적 노선/역 데이터 (JSON)
    NETWORK_DATA_PATH: str = os.getenv(
        "NETWORK_DATA_PATH",
        os.path.join(os.path.dirname(__file__), "..", "..", "data", "network.json"),
    )

    REDIS_HOST: str = os.getenv("REDIS_HOST", "redis")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", 6379))

    # 그래프 캐시 TTL
    GRAPH_CACHE_TTL_SECONDS: int = int(os.getenv("GRAPH_CACHE_TTL_SECONDS", 3600))  # 1시간

    # 경로 캐시 TTL
    ROUTE_CACHE_TTL_SECONDS: int = int(os.getenv("ROUTE_CACHE_TTL_SECONDS", 300))  # 5분

    # 외부 거리/시간 조회 결과 캐시 TTL
    DISTANCE_CACHE_TTL_SECONDS: int = int(
        os.getenv("DISTANCE_CACHE_TTL_SECONDS", 3600)
    )

    # memory | redis
    ROUTE_CACHE_BACKEND: str = os.getenv("ROUTE_CACHE_BACKEND", "memory").lower()

    # 거리/시간 provider 설정 => key가 없으면 haversine 추정치 사용
    MAPS_API_KEY: str = os.getenv("MAPS_API_KEY", "")
    MAPS_API_URL: str = os.getenv(
        "MAPS_API_URL",
        "https://maps.googleapis.com/maps/api/distancematrix/json",
    )
    PROVIDER_TIMEOUT_SECONDS: float = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", 5))
    PROVIDER_MAX_ATTEMPTS: int = int(os.getenv("PROVIDER_MAX_ATTEMPTS", 3))
    PROVIDER_BACKOFF_SECONDS: float = float(os.getenv("PROVIDER_BACKOFF_SECONDS", 0.5))

    # 경로 탐색 전체에 대한 wall-clock 제한
    ROUTE_TIMEOUT_SECONDS: float = float(os.getenv("ROUTE_TIMEOUT_SECONDS", 10))

    # 캐시 메트릭 활성화 플래그
    ENABLE_CACHE_METRICS: bool = (
        os.getenv("ENABLE_CACHE_METRICS", "true").lower() == "true"
    )

    ENABLE_PERFORMANCE_MONITORING: bool = (
        os.getenv("ENABLE_PERFORMANCE_MONITORING", "true").lower() == "true"
    )
    SLOW_REQUEST_THRESHOLD_MS: int = int(os.getenv("SLOW_REQUEST_THRESHOLD_MS", 1000))

    # CORS 설정
    ALLOWED_ORIGINS: list[str] = os.getenv(
        "ALLOWED_ORIGINS",
        "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000",
    ).split(",")

    @property
    def PROVIDER_CONFIG(self) -> Dict[str, Any]:
        return {
            "api_key": self.MAPS_API_KEY,
            "base_url": self.MAPS_API_URL,
            "timeout": self.PROVIDER_TIMEOUT_SECONDS,
            "max_attempts": self.PROVIDER_MAX_ATTEMPTS,
            "backoff_seconds": self.PROVIDER_BACKOFF_SECONDS,
        }


settings = Settings()  # 모듈화


# 평균 보행 속도(m/s)
WALKING_SPEED = 1.4

# 평균 운행 속도(m/s) => 그래프 edge 가중치 계산용
TRANSIT_SPEED = 8

# 정차 1회당 대기 시간(초)
STOP_WAIT_TIME_SECONDS = 20

# 외부 provider가 보행 구간으로 인정하는 최대 거리(m)
MAX_WALKING_SEGMENT_DISTANCE = 4000

# 보행 거리 구간별 소요시간 가중치 (distance 이하, multiplier)
# 마지막 구간 이후는 WALKING_PENALTY_RAMP_DISTANCE마다 WALKING_PENALTY_RAMP_STEP씩
# 선형 증가, 최대 WALKING_PENALTY_CAP
WALKING_PENALTY_TIERS = [
    (500, 1.0),
    (1000, 1.1),
    (1500, 1.3),
    (2000, 1.5),
    (2500, 1.8),
]
WALKING_PENALTY_RAMP_DISTANCE = 2000
WALKING_PENALTY_RAMP_STEP = 1.2
WALKING_PENALTY_CAP = 3.0

# 그래프 구성 상수
GRAPH_CONFIG = {
    "station_transfer_duration": 15,  # 물리 노드 <-> 노선별 가상 노드
    "interchange_base_duration": 90,  # 환승역 기본 환승 시간
    "interchange_per_line_duration": 15,  # 노선 수에 비례한 추가 시간
    "auto_shortcut_max_distance": 500,  # 자동 보행 지름길 탐색 최대 거리
}

# 출발지/목적지 연결 상수 => 튜닝 대상 (계약 아님)
TRANSIT_CONNECTION = {
    "max_origin_walking_distance": 800,
    "max_destination_walking_distance": 1200,
    "virtual_node_distance_multiplier": 1.5,
    "closest_station_multiplier": 2.0,
    "duration_bonus": 0.95,
    "min_connections": 3,
    "forced_connection_count": 5,
    "max_forced_connection_distance": MAX_WALKING_SEGMENT_DISTANCE,
    "symmetry_max_difference": 2,
    "symmetry_threshold_multiplier": 1.2,
}

# 경로 탐색 상수
SEARCH_CONFIG = {
    "max_iterations": 10000,
    "max_paths": 10,  # 후보 경로 최대 개수
    "path_similarity_threshold": 0.7,
    "reused_edge_penalty": 2.0,
    "line_diversity_penalty": 10.0,
}

# 환승 횟수별 감점 (index = 환승 횟수, 마지막 값은 그 이상)
TRANSFER_PENALTIES = [0, 15, 40, 70, 100]

# 보행 거리 점수 구간 (m, 점수)
WALKING_SCORE_THRESHOLDS = [
    (0, 100),
    (300, 90),
    (500, 80),
    (1000, 60),
    (2000, 0),
]

ROUTE_SCORE_WEIGHTS = {
    "transfer": 0.65,
    "walking": 0.35,
}

# 직선 거리 기준 이동 구분 (m)
DISTANCE_THRESHOLDS = {
    "very_short": 500,
    "long": 2000,
}

ROUTE_FILTER_CONFIG = {
    "max_duration_ratio": 1.4,  # 최단 경로 대비 허용 소요시간
    "max_transfers": 3,
    "shortcut_duration_bonus": 1.1,  # 보행 지름길 경로 소요시간 한도 완화
    "shortcut_bonus_per_transfer": 0.1,  # 줄인 환승 1회당 추가 완화
    "shortcut_reference_ratio": 1.3,  # 최단 대비 이 안의 지름길 경로는 항상 포함
    "similarity_threshold": 0.5,
    "walk_competitive_ratio_short": 1.1,  # 단/중거리: 도보가 10% 이내면 우선
    "walk_competitive_ratio_long": 0.8,  # 장거리: 도보가 20% 이상 빨라야 포함
    "max_routes_to_return": 3,
}

# 노선 등급 기본값 => LinePolicy로 주입 가능
LINE_CLASSIFICATION = {
    "red": "primary",
    "orange": "primary",
    "green": "primary",
    "blue": "primary",
    "fr_1": "secondary",
    "fr_9": "secondary",
    "fr_14": "secondary",
}

# 노선 등급별 승차 쾌적도 (0-100)
LINE_COMFORT = {
    "primary": 90,
    "secondary": 70,
    "tertiary": 55,
}
