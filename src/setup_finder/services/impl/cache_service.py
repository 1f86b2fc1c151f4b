"""Redis 캐시 서비스 - 캐싱 로직만 담당"""
import json
from typing import Any, Optional

from redis import Redis

from setup_finder.core.config import settings
from setup_finder.core.exceptions import (
    CacheConnectionException,
    CacheSerializationException,
)
from setup_finder.core.logging import logger


class CacheService:
    """Redis 캐시 관리 서비스 (JSON 값 + TTL)"""

    def __init__(self, redis_client: Optional[Redis] = None):
        """Redis 클라이언트 초기화

        Args:
            redis_client: 주입할 클라이언트 (없으면 settings.redis_url로 생성)

        Raises:
            CacheConnectionException: 연결 실패
        """
        if redis_client is not None:
            self.redis_client = redis_client
            return

        try:
            self.redis_client = Redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            # 연결 테스트
            self.redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise CacheConnectionException(
                reason=str(e),
                error_code="CACHE_CONN_FAILED",
            )

    def get_json(self, key: str) -> Optional[Any]:
        """
        캐시된 JSON 값 조회

        Args:
            key: 캐시 키

        Returns:
            역직렬화된 값 또는 None

        Raises:
            CacheSerializationException: 저장된 값이 JSON이 아님
            CacheConnectionException: Redis 읽기 실패
        """
        try:
            cached_data = self.redis_client.get(key)
        except Exception as e:
            logger.error(f"Cache read error: {e}")
            raise CacheConnectionException(reason=str(e), error_code="CACHE_READ_FAILED")

        if not cached_data:
            logger.debug(f"Cache miss for key: {key}")
            return None

        try:
            value = json.loads(cached_data)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Failed to deserialize cache: {e}")
            raise CacheSerializationException(operation="deserialize", reason=str(e),
                                              details={"key": key})

        logger.info(f"Cache hit for key: {key}")
        return value

    def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        JSON 값 캐싱

        Args:
            key: 캐시 키
            value: 저장할 값 (JSON 직렬화 가능)
            ttl: TTL (초), 없으면 settings.cache_ttl

        Returns:
            성공 여부

        Raises:
            CacheSerializationException: 직렬화 실패
            CacheConnectionException: Redis 쓰기 실패
        """
        try:
            cached_value = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize cache data: {e}")
            raise CacheSerializationException(operation="serialize", reason=str(e),
                                              details={"key": key})

        expire = ttl if ttl and ttl > 0 else settings.cache_ttl
        try:
            self.redis_client.setex(key, expire, cached_value)
        except Exception as e:
            logger.error(f"Cache write error: {e}")
            raise CacheConnectionException(reason=str(e), error_code="CACHE_WRITE_FAILED")

        logger.info(f"Cache set for key: {key}, TTL: {expire}s")
        return True

    def delete(self, key: str) -> bool:
        """캐시 삭제"""
        try:
            result = self.redis_client.delete(key)
            logger.info(f"Cache deleted for key: {key}")
            return result > 0
        except Exception as e:
            logger.error(f"Cache delete error: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """패턴(glob)에 맞는 키 일괄 삭제

        Returns:
            삭제된 키 개수

        Raises:
            CacheConnectionException: Redis 스캔/삭제 실패
        """
        try:
            keys = list(self.redis_client.scan_iter(match=pattern, count=500))
            if not keys:
                return 0
            deleted = self.redis_client.delete(*keys)
        except Exception as e:
            logger.error(f"Cache pattern delete error: {e}")
            raise CacheConnectionException(reason=str(e), error_code="CACHE_DELETE_FAILED")

        logger.info(f"Cache cleared {deleted} keys for pattern: {pattern}")
        return int(deleted)

    def health_check(self) -> bool:
        """Redis 연결 상태 확인"""
        try:
            self.redis_client.ping()
            return True
        except Exception:
            return False
