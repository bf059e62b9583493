"""
Metro Router Backend - FastAPI Application

고정 노선망(지하철/간선버스/지선) 위에서 두 지점 사이의
도보 + 대중교통 경로를 계획하고 서로 다른 대안을 최대 3개 제공
"""

import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.api.deps import (
    get_graph_cache,
    get_network_repository,
    get_route_cache,
    get_route_planner,
    get_travel_time_provider,
)
from app.api.v1.router import api_router
from app.db.redis_client import RedisRouteCache

# 성능 모니터링
from app.middleware.performance_monitoring import (
    PerformanceMonitoringMiddleware,
    RequestLoggingMiddleware,
    get_metrics_collector,
)

# 로깅 설정
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션 생명주기 관리

    서버 시작 시 실행:
    - 노선 데이터 로드 (잘못된 데이터면 바로 실패)
    - 그래프 생성 후 캐시 (첫 요청 지연 방지)

    서버 종료 시 실행:
    - 거리/시간 provider HTTP client 종료
    """
    # ========== Startup ==========
    logger.info("=" * 60)
    logger.info(f"{settings.PROJECT_NAME} 시작 중...")
    logger.info("=" * 60)

    try:
        logger.info("1/2 노선 데이터 로드 중...")
        get_network_repository()

        logger.info("2/2 그래프 생성 및 캐시 중...")
        network = get_route_planner().get_network()
        logger.info(
            f"✓ 그래프 준비 완료: 노드 {network.graph.node_count}개, "
            f"edge {network.graph.edge_count}개"
        )

    except Exception as e:
        logger.error(f"❌ 초기화 실패: {e}", exc_info=True)
        raise

    yield

    # ========== Shutdown ==========
    logger.info(f"{settings.PROJECT_NAME} 종료 중...")
    try:
        await get_travel_time_provider().close()
        logger.info("✓ 종료 완료")
    except Exception as e:
        logger.error(f"❌ 종료 중 오류: {e}", exc_info=True)


# FastAPI 애플리케이션 생성
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="""
    ## 도보 + 대중교통 경로 계획

    ### 주요 기능
    - 역 id 또는 좌표 기반 출발/도착
    - 다중 가중치 전략 탐색으로 서로 다른 경로 최대 3개
    - 선호 옵션 (소요시간/쾌적도/균형, 최대 도보 시간, 환승 최소화)
    - 역 검색 / 가까운 역 / 노선 목록
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# CORS 설정
# allow_credentials=True일 때는 allow_origins에 ["*"]를 사용할 수 없음
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 성능 모니터링 미들웨어 추가
if settings.ENABLE_PERFORMANCE_MONITORING:
    app.add_middleware(PerformanceMonitoringMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    logger.info("✓ 성능 모니터링 미들웨어 활성화")

# API 라우터 등록
app.include_router(api_router, prefix="/v1")


# ========== Health Check Endpoints ==========


@app.get("/")
async def root():
    """서비스 기본 정보"""
    return {
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "status": "running",
        "endpoints": {
            "plan_route": "POST /v1/routes/plan",
            "search_stations": "GET /v1/stations/search",
            "nearest_stations": "POST /v1/stations/nearest",
            "get_lines": "GET /v1/stations/lines",
        },
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """
    헬스 체크 엔드포인트

    - 노선 데이터 로드 여부
    - 그래프 캐시 상태 (만료 시 다음 요청에서 재생성되므로 unhealthy 아님)
    - Redis 연결 상태 (경로 캐시 backend가 redis일 때만)
    """
    try:
        repository = get_network_repository()
        data_status = "healthy"
        data_info = {"stations": len(repository.stations), "lines": len(repository.lines)}
    except Exception as e:
        logger.error(f"노선 데이터 헬스 체크 실패: {e}")
        data_status = "unhealthy"
        data_info = {"error": str(e)}

    graph_age = get_graph_cache().age_seconds
    graph_status = "warm" if graph_age is not None and graph_age < settings.GRAPH_CACHE_TTL_SECONDS else "cold"

    components = {"network_data": data_status, "graph_cache": graph_status}

    route_cache = get_route_cache()
    if isinstance(route_cache, RedisRouteCache):
        components["redis"] = "healthy" if route_cache.ping() else "unhealthy"

    unhealthy = [name for name, status in components.items() if status == "unhealthy"]
    overall_status = "unhealthy" if unhealthy else "healthy"

    response_content = {
        "status": overall_status,
        "version": settings.VERSION,
        "timestamp": time.time(),
        "components": components,
        "network": data_info,
        "graph_age_seconds": round(graph_age, 1) if graph_age is not None else None,
    }

    if settings.ENABLE_PERFORMANCE_MONITORING:
        response_content["performance"] = get_metrics_collector().get_summary()

    return JSONResponse(
        status_code=200 if overall_status == "healthy" else 503,
        content=response_content,
    )


@app.get("/v1/metrics")
async def get_metrics():
    """
    성능 메트릭 엔드포인트

    (nginx가 /metrics -> /v1/metrics로 프록시)
    """
    if not settings.ENABLE_PERFORMANCE_MONITORING:
        return {"message": "성능 모니터링이 비활성화되어 있습니다"}

    try:
        metrics = get_metrics_collector()
        return {
            "summary": metrics.get_summary(),
            "top_paths": metrics.get_path_stats(top_n=10),
            "configuration": {
                "slow_request_threshold_ms": settings.SLOW_REQUEST_THRESHOLD_MS,
                "monitoring_enabled": settings.ENABLE_PERFORMANCE_MONITORING,
            },
        }
    except Exception as e:
        logger.error(f"메트릭 조회 실패: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"메트릭 조회 실패: {str(e)}")


# ========== Exception Handlers ==========


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """전역 예외 핸들러 (예상치 못한 오류)"""
    logger.error(f"예상치 못한 오류: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "message": "서버 내부 오류가 발생했습니다",
            "detail": str(exc) if settings.DEBUG else "Internal Server Error",
        },
    )


# ========== Development Server ==========

if __name__ == "__main__":
    import uvicorn

    logger.info("개발 서버 시작...")

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
        access_log=True,
        limit_concurrency=1000,
        timeout_keep_alive=30,
    )
