"""Cache Routes - 저장된 빌드 조회와 캐시 정리"""

from fastapi import APIRouter, Depends

from setup_finder.api.dependencies import get_cache_adapter, get_search_store
from setup_finder.api.errors import error_response
from setup_finder.core.exceptions import VALIDATION_ERROR
from setup_finder.core.logging import logger
from setup_finder.engine.cache_adapter import CacheAdapter
from setup_finder.schemas.build_schema import BuildResponse, CachedResultResponse, CacheClearResponse
from setup_finder.services.search_store import SearchResultStore

router = APIRouter(tags=["cache"])

# /cache/clear 가 지우는 키 패턴
CLEARABLE_PATTERNS = ("search:*", "build:*")


@router.get("/cached-results/{search_id}", response_model=CachedResultResponse)
async def get_cached_results(search_id: str, store: SearchResultStore = Depends(get_search_store)):
    """searchId로 저장된 빌드 조회 (형식 오류 400, 없거나 만료 404)"""
    if not store.is_valid_id(search_id):
        return error_response("Invalid search ID", VALIDATION_ERROR, 400)

    result = await store.get(search_id)
    if result is None:
        return error_response("Cached results not found or expired", "NOT_FOUND", 404)

    return CachedResultResponse(data=BuildResponse.from_result(result))


@router.post("/cache/clear", response_model=CacheClearResponse)
async def clear_cache(cache: CacheAdapter = Depends(get_cache_adapter)):
    """검색/빌드 캐시 삭제"""
    cleared = 0
    for pattern in CLEARABLE_PATTERNS:
        cleared += await cache.delete_pattern(pattern)

    logger.info(f"[API] Cleared {cleared} cache keys")
    return CacheClearResponse(
        success=True,
        message=f"Cleared {cleared} cache entries",
        cleared_keys=cleared,
    )
