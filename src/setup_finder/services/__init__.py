"""서비스 계층 - export only.

search_store 는 engine.cache_adapter 에 의존하므로 여기서 re-export 하지 않습니다.
"""

from .impl import CacheService

__all__ = ["CacheService"]
