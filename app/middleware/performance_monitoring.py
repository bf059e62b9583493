# 성능 모니터링 미들웨어

import time
import logging
import json
from threading import Lock
from typing import Callable, Dict, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.core.config import settings

logger = logging.getLogger(__name__)


class MetricsCollector:
    """
    메모리 메트릭 수집기 (프로세스 단위)

    /v1/metrics 에서 요약/경로별 통계 제공
    """

    def __init__(self):
        self._lock = Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self.request_count = 0
            self.total_elapsed_time_ms = 0.0
            self.slow_request_count = 0
            self.error_count = 0
            self.path_stats: Dict[str, Dict[str, float]] = {}

    def record_request(
        self,
        path: str,
        method: str,
        status_code: int,
        elapsed_time_ms: float,
        is_slow: bool = False,
    ) -> None:
        path_key = f"{method} {path}"
        is_error = status_code >= 400

        with self._lock:
            self.request_count += 1
            self.total_elapsed_time_ms += elapsed_time_ms
            self.slow_request_count += int(is_slow)
            self.error_count += int(is_error)

            stats = self.path_stats.setdefault(
                path_key,
                {"count": 0, "total_time_ms": 0.0, "max_time_ms": 0.0, "slow_count": 0, "error_count": 0},
            )
            stats["count"] += 1
            stats["total_time_ms"] += elapsed_time_ms
            stats["max_time_ms"] = max(stats["max_time_ms"], elapsed_time_ms)
            stats["slow_count"] += int(is_slow)
            stats["error_count"] += int(is_error)

    def get_summary(self) -> dict:
        with self._lock:
            count = self.request_count
            return {
                "total_requests": count,
                "average_elapsed_time_ms": (
                    round(self.total_elapsed_time_ms / count, 2) if count else 0
                ),
                "slow_requests": self.slow_request_count,
                "error_requests": self.error_count,
                "success_rate": (
                    round((count - self.error_count) / count * 100, 2) if count else 0
                ),
            }

    def get_path_stats(self, top_n: int = 10) -> list:
        """경로별 통계 (요청 수 상위 N개)"""
        with self._lock:
            items = sorted(
                self.path_stats.items(), key=lambda x: x[1]["count"], reverse=True
            )[:top_n]

            return [
                {
                    "path": path,
                    "count": stats["count"],
                    "avg_time_ms": round(stats["total_time_ms"] / stats["count"], 2),
                    "max_time_ms": round(stats["max_time_ms"], 2),
                    "slow_count": stats["slow_count"],
                    "error_count": stats["error_count"],
                }
                for path, stats in items
            ]


# 전역 메트릭 수집기 인스턴스
_metrics_collector = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    return _metrics_collector


class PerformanceMonitoringMiddleware(BaseHTTPMiddleware):
    """
    성능 모니터링 미들웨어

    모든 HTTP 요청의 응답 시간을 측정해 헤더/로그/수집기에 기록
    느린 요청(threshold 초과)은 경고로 로깅
    """

    def __init__(
        self,
        app: ASGIApp,
        collector: Optional[MetricsCollector] = None,
        slow_threshold_ms: Optional[float] = None,
    ):
        super().__init__(app)
        self.collector = collector or get_metrics_collector()
        self.slow_threshold_ms = (
            settings.SLOW_REQUEST_THRESHOLD_MS if slow_threshold_ms is None else slow_threshold_ms
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_time_ms = (time.time() - start_time) * 1000
            logger.error(
                f"요청 처리 중 예외 발생: {request.method} {request.url.path}, "
                f"소요시간={elapsed_time_ms:.2f}ms, 예외={e}",
                exc_info=True,
            )
            self.collector.record_request(
                request.url.path, request.method, 500, elapsed_time_ms,
                is_slow=elapsed_time_ms > self.slow_threshold_ms,
            )
            raise

        elapsed_time_ms = (time.time() - start_time) * 1000
        response.headers["X-Process-Time-Ms"] = f"{elapsed_time_ms:.2f}"

        is_slow = self._log_performance_metrics(request, response, elapsed_time_ms)
        self.collector.record_request(
            request.url.path, request.method, response.status_code, elapsed_time_ms, is_slow
        )
        return response

    def _log_performance_metrics(
        self, request: Request, response: Response, elapsed_time_ms: float
    ) -> bool:
        metrics = {
            "event": "http_request",
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "elapsed_time_ms": round(elapsed_time_ms, 2),
        }

        if request.query_params:
            metrics["query_params"] = dict(request.query_params)

        if request.client:
            metrics["client_host"] = request.client.host

        is_slow = elapsed_time_ms > self.slow_threshold_ms
        if is_slow:
            logger.warning(
                f"⚠️ 느린 요청 감지: {request.method} {request.url.path}, "
                f"소요시간={elapsed_time_ms:.2f}ms (기준: {self.slow_threshold_ms}ms)"
            )
        metrics["slow_request"] = is_slow

        logger.info(f"PERFORMANCE: {json.dumps(metrics, ensure_ascii=False)}")
        return is_slow


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """요청/응답 로깅 미들웨어"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        logger.info(
            f"→ {request.method} {request.url.path} "
            f"from {request.client.host if request.client else 'unknown'}"
        )

        response = await call_next(request)

        log_level = logging.INFO if response.status_code < 400 else logging.ERROR
        logger.log(
            log_level,
            f"← {request.method} {request.url.path} status={response.status_code}",
        )
        return response
