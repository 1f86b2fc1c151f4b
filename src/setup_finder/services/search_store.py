"""Search Result Store - searchId → 빌드 결과

요청 핸들러에 주입되는 저장소입니다. 값은 CacheAdapter(Redis)에 TTL과 함께 저장되며
Redis가 없으면 저장/조회 모두 조용히 실패합니다.
"""

import re
from typing import Optional

from setup_finder.core.config import settings
from setup_finder.core.logging import logger
from setup_finder.engine.cache_adapter import CacheAdapter
from setup_finder.engine.result import BuildResult

_SEARCH_ID_PATTERN = re.compile(r"^search_\d+_[a-z0-9]{9}$")
KEY_PREFIX = "results"


class SearchResultStore:
    """빌드 결과 저장소

    Usage:
        store = SearchResultStore(CacheAdapter())
        await store.save(result)
        cached = await store.get("search_1700000000000_abc123xyz")
    """

    def __init__(self, cache: CacheAdapter, ttl: Optional[int] = None):
        self.cache = cache
        self.ttl = ttl or settings.search_store_ttl

    @staticmethod
    def is_valid_id(search_id: str) -> bool:
        return bool(search_id) and bool(_SEARCH_ID_PATTERN.match(search_id))

    @staticmethod
    def key_for(search_id: str) -> str:
        return f"{KEY_PREFIX}:{search_id}"

    async def save(self, result: BuildResult) -> bool:
        """결과 저장 (search_id가 없으면 False)"""
        if not result.search_id:
            logger.warning("[STORE] Refusing to save result without search_id")
            return False
        return await self.cache.set(self.key_for(result.search_id), result.to_dict(), self.ttl)

    async def get(self, search_id: str) -> Optional[BuildResult]:
        """저장된 결과 조회. 형식이 잘못된 ID나 손상된 값은 None"""
        if not self.is_valid_id(search_id):
            return None

        data = await self.cache.get(self.key_for(search_id))
        if not isinstance(data, dict) or not isinstance(data.get("products"), list):
            return None

        try:
            return BuildResult.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"[STORE] Corrupt stored result for {search_id}: {e}")
            return None
