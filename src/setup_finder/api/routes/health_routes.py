"""헬스 체크 엔드포인트"""
from datetime import datetime

from fastapi import APIRouter, Depends

from setup_finder import __version__
from setup_finder.api.dependencies import get_cache_adapter
from setup_finder.core.config import settings
from setup_finder.core.logging import logger
from setup_finder.engine.cache_adapter import CacheAdapter
from setup_finder.schemas.build_schema import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(cache: CacheAdapter = Depends(get_cache_adapter)):
    """
    헬스 체크 엔드포인트

    - Redis 연결 상태 (없어도 캐시 없이 동작하므로 degraded)
    - 외부 API 키 설정 여부
    """
    redis_ok = cache.health_check()
    providers = {
        "serpapi": bool(settings.serpapi_key),
        "gemini": bool(settings.gemini_api_key),
    }

    if not providers["serpapi"]:
        status = "error"
    elif redis_ok and providers["gemini"]:
        status = "ok"
    else:
        status = "degraded"

    if status != "ok":
        logger.warning(f"[HEALTH] status={status}, redis={redis_ok}, providers={providers}")

    return HealthResponse(
        status=status,
        timestamp=datetime.now(),
        version=__version__,
        redis=redis_ok,
        providers=providers,
    )


@router.get("/")
async def root():
    """루트 엔드포인트"""
    return {
        "service": settings.api_title,
        "version": __version__,
        "docs": "/docs",
    }
