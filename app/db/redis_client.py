import redis
import json
from typing import Optional, List, Sequence
import logging

from app.core.config import settings
from app.db.cache import RouteCache
from app.models.domain import Route

logger = logging.getLogger(__name__)


class RedisRouteCache:
    """
    Redis 기반 경로 캐시 (여러 worker가 캐시를 공유할 때 사용)

    RouteCache와 같은 get/set/clear 인터페이스
    Redis 오류는 로그만 남기고 캐시 MISS로 처리 => 재계산
    """

    KEY_PREFIX = "route:"

    create_key = staticmethod(RouteCache.create_key)

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        ttl_seconds: int = settings.ROUTE_CACHE_TTL_SECONDS,
    ):
        self.redis_client = client or redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=0,
            decode_responses=True,
        )
        self.ttl_seconds = ttl_seconds

    def get(self, key: str) -> Optional[List[Route]]:
        """
        캐시된 경로 조회 => 캐시 hit/miss 로그로 기록
        """
        cache_key = self.KEY_PREFIX + key
        try:
            cached_data = self.redis_client.get(cache_key)
            if cached_data:
                logger.debug(f"캐시 HIT:{cache_key}")
                return [Route.from_dict(r) for r in json.loads(cached_data)]
            logger.debug(f"캐시 MISS: {cache_key}")
            return None
        except redis.RedisError as e:
            logger.warning(f"Redis 캐시 조회 실패 (fallback: 재계산): {e}")
            return None
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.error(f"캐시 데이터 파싱 실패: {cache_key}, 오류: {e}")
            return None

    def set(self, key: str, routes: Sequence[Route], ttl_seconds: Optional[int] = None) -> bool:
        """
        경로 계산 결과 redis에 캐싱
        """
        cache_key = self.KEY_PREFIX + key
        ttl = ttl_seconds or self.ttl_seconds
        try:
            serialized_data = json.dumps([r.to_dict() for r in routes], ensure_ascii=False)
            self.redis_client.setex(cache_key, ttl, serialized_data)
            logger.debug(f"경로 캐싱 성공: {cache_key}, TTL={ttl}")
            return True
        except redis.RedisError as e:
            logger.error(f"redis 캐싱 실패: {cache_key}, 오류: {e}")
            return False
        except (TypeError, ValueError) as e:
            logger.error(f"경로 데이터 직렬화 실패: {e}")
            return False

    def clear(self, pattern: str = "route:*") -> int:
        """
        경로 캐시 무효화, default : 모든 경로 캐시 삭제
        """
        try:
            keys = list(self.redis_client.scan_iter(match=pattern))
            if keys:
                deleted_count = self.redis_client.delete(*keys)
                logger.info(
                    f"캐시 무효화 완료: {deleted_count}개 삭제 -> 패턴: {pattern}"
                )
                return deleted_count
            logger.info(f"무효화할 캐시 없음 -> 패턴: {pattern}")
            return 0
        except redis.RedisError as e:
            logger.error(f"캐시 무효화 실패: {e}")
            return 0

    def ping(self) -> bool:
        try:
            return bool(self.redis_client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis 헬스 체크 실패: {e}")
            return False
