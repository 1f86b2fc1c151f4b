"""API routes package."""

from .build_routes import router as build_router
from .cache_routes import router as cache_router
from .health_routes import router as health_router
from .plan_routes import router as plan_router
from .search_routes import router as search_router

__all__ = ["build_router", "cache_router", "health_router", "plan_router", "search_router"]
