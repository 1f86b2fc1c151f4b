"""FastAPI 앱 팩토리"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from setup_finder.api import build_router, cache_router, health_router, plan_router, search_router
from setup_finder.api.dependencies import get_cache_adapter
from setup_finder.api.errors import register_exception_handlers
from setup_finder.api.routes.build_routes import FALLBACK_PLAN_HEADER
from setup_finder.clients.http_client import shutdown_shared_http_client
from setup_finder.core.config import settings
from setup_finder.core.logging import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 생명주기

    외부 키나 Redis가 없어도 기동합니다 (빌드 시점에 설정 오류/캐시 없음으로 처리).
    """
    logger.info(f"Starting {settings.api_title} v{settings.api_version}")
    if not settings.serpapi_key:
        logger.warning("SERPAPI_KEY not configured: /build, /search and /swap will return configuration errors")
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY not configured: planner and selector will use fallbacks")
    if not get_cache_adapter().health_check():
        logger.warning("Redis unavailable: builds will run without caching")
    yield
    logger.info("Shutting down application...")
    await shutdown_shared_http_client()


def create_app() -> FastAPI:
    """
    FastAPI 앱 생성 (Factory Pattern)

    Returns:
        FastAPI 앱 인스턴스
    """
    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan,
    )

    # 브라우저 클라이언트가 폴백 헤더를 읽을 수 있도록 노출
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[FALLBACK_PLAN_HEADER],
    )

    register_exception_handlers(app)

    for router in (health_router, build_router, plan_router, search_router, cache_router):
        app.include_router(router)

    return app


# uvicorn setup_finder.app:app
app = create_app()
