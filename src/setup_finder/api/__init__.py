"""API 엔드포인트 패키지 - export only."""

from .routes import build_router, cache_router, health_router, plan_router, search_router

__all__ = ["build_router", "cache_router", "health_router", "plan_router", "search_router"]
