"""Cache Adapter - 예외를 던지지 않는 비동기 캐시 인터페이스"""

from typing import Any, Dict, Optional

from setup_finder.core.config import settings
from setup_finder.core.exceptions import CacheException
from setup_finder.core.logging import logger
from setup_finder.services.impl.cache_service import CacheService


class CacheAdapter:
    """Cache 서비스 어댑터

    CacheService(동기 Redis)를 오케스트레이터/검색 게이트웨이가 기대하는
    get/set-with-TTL 인터페이스로 변환합니다.
    모든 메서드는 실패 시 로깅만 하고 None/False를 반환합니다.
    """

    def __init__(self, cache_service: Optional[CacheService] = None):
        """
        Args:
            cache_service: CacheService 인스턴스 (없으면 첫 사용 시 생성 시도)
        """
        self._cache_service = cache_service
        self._connect_failed = False

    @property
    def cache_service(self) -> Optional[CacheService]:
        """지연 생성. Redis 연결에 실패하면 캐시 없이 동작합니다."""
        if self._cache_service is None and not self._connect_failed:
            try:
                self._cache_service = CacheService()
            except CacheException as e:
                logger.warning(f"[CACHE] Redis unavailable, running without cache: {e}")
                self._connect_failed = True
        return self._cache_service

    async def get(self, key: str) -> Optional[Any]:
        """캐시 조회

        Args:
            key: 캐시 키

        Returns:
            캐시된 값 또는 None

        Raises:
            None: 모든 예외는 로깅되고 None 반환
        """
        if not key or not isinstance(key, str):
            logger.warning(f"Invalid key for cache.get: {key}")
            return None

        service = self.cache_service
        if service is None:
            return None

        try:
            return service.get_json(key)
        except CacheException as e:
            logger.warning(f"Cache get failed: {e}")
            return None
        except Exception as e:
            logger.warning(f"Cache get failed: {type(e).__name__}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """캐시 저장

        Args:
            key: 캐시 키
            value: 저장할 값 (JSON 직렬화 가능)
            ttl: TTL (초)

        Returns:
            저장 성공 여부

        Raises:
            None: 모든 예외는 로깅됨
        """
        if not key or not isinstance(key, str):
            logger.warning(f"Invalid key for cache.set: {key}")
            return False

        if value is None:
            logger.warning(f"Refusing to cache None for key: {key}")
            return False

        service = self.cache_service
        if service is None:
            return False

        try:
            return service.set_json(key, value, ttl)
        except CacheException as e:
            logger.warning(f"Cache set failed: {e}")
            return False
        except Exception as e:
            logger.warning(f"Cache set failed: {type(e).__name__}: {e}")
            return False

    async def get_build(self, key: str) -> Optional[Dict[str, Any]]:
        """빌드 결과 조회 (products 리스트가 있는 dict만 유효)"""
        cached = await self.get(key)
        if not isinstance(cached, dict) or not isinstance(cached.get("products"), list):
            if cached is not None:
                logger.warning(f"Invalid build cache payload for key: {key}")
            return None
        return cached

    async def set_build(self, key: str, payload: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        """빌드 결과 저장 (기본 TTL: settings.cache_ttl)"""
        return await self.set(key, payload, ttl or settings.cache_ttl)

    async def delete_pattern(self, pattern: str) -> int:
        """패턴 일괄 삭제. 실패 시 0"""
        service = self.cache_service
        if service is None:
            return 0
        try:
            return service.delete_pattern(pattern)
        except CacheException as e:
            logger.warning(f"Cache clear failed for {pattern}: {e}")
            return 0

    def health_check(self) -> bool:
        service = self.cache_service
        return bool(service and service.health_check())
