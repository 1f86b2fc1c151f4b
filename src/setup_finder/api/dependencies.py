"""라우트 의존성 (싱글톤 서비스)

API 키가 없는 외부 클라이언트는 None을 반환합니다.
검색 키가 없을 때의 에러 응답은 각 라우트/오케스트레이터가 결정합니다.
테스트에서는 app.dependency_overrides 로 교체합니다.
"""
from typing import Optional

from fastapi import Depends

from setup_finder.clients.gemini_client import GeminiClient
from setup_finder.clients.serpapi_client import SerpApiClient
from setup_finder.core.config import settings
from setup_finder.core.logging import logger
from setup_finder.engine.cache_adapter import CacheAdapter
from setup_finder.engine.orchestrator import BuildOrchestrator
from setup_finder.planner.planner import NeedPlanner
from setup_finder.selector.ranking import ProductRanker
from setup_finder.selector.selector import ProductSelector
from setup_finder.services.search_store import SearchResultStore

# 싱글톤 서비스
_cache_adapter: Optional[CacheAdapter] = None
_search_store: Optional[SearchResultStore] = None
_gemini_client: Optional[GeminiClient] = None
_serpapi_client: Optional[SerpApiClient] = None
_planner: Optional[NeedPlanner] = None
_selector: Optional[ProductSelector] = None
_ranker: Optional[ProductRanker] = None
_orchestrator: Optional[BuildOrchestrator] = None


def get_cache_adapter() -> CacheAdapter:
    """CacheAdapter 싱글톤 (Redis 연결은 첫 사용 시)"""
    global _cache_adapter
    if _cache_adapter is None:
        _cache_adapter = CacheAdapter()
    return _cache_adapter


def get_search_store(cache: CacheAdapter = Depends(get_cache_adapter)) -> SearchResultStore:
    global _search_store
    if _search_store is None:
        _search_store = SearchResultStore(cache)
    return _search_store


def get_gemini_client() -> Optional[GeminiClient]:
    """GeminiClient 싱글톤. 키가 없으면 None (플래너/셀렉터는 폴백으로 동작)"""
    global _gemini_client
    if _gemini_client is None and settings.gemini_api_key:
        _gemini_client = GeminiClient(api_key=settings.gemini_api_key)
        logger.info(f"[API] Gemini client ready (model={_gemini_client.model})")
    return _gemini_client


def get_serpapi_client(cache: CacheAdapter = Depends(get_cache_adapter)) -> Optional[SerpApiClient]:
    """SerpApiClient 싱글톤. 키가 없으면 None"""
    global _serpapi_client
    if _serpapi_client is None and settings.serpapi_key:
        _serpapi_client = SerpApiClient(api_key=settings.serpapi_key, cache=cache)
    return _serpapi_client


def get_planner(gemini: Optional[GeminiClient] = Depends(get_gemini_client)) -> NeedPlanner:
    global _planner
    if _planner is None:
        _planner = NeedPlanner(gemini=gemini)
    return _planner


def get_selector(gemini: Optional[GeminiClient] = Depends(get_gemini_client)) -> ProductSelector:
    global _selector
    if _selector is None:
        _selector = ProductSelector(gemini=gemini)
    return _selector


def get_ranker(gemini: Optional[GeminiClient] = Depends(get_gemini_client)) -> ProductRanker:
    global _ranker
    if _ranker is None:
        _ranker = ProductRanker(gemini=gemini)
    return _ranker


def get_orchestrator(
    planner: NeedPlanner = Depends(get_planner),
    search_client: Optional[SerpApiClient] = Depends(get_serpapi_client),
    selector: ProductSelector = Depends(get_selector),
    cache: CacheAdapter = Depends(get_cache_adapter),
    store: SearchResultStore = Depends(get_search_store),
) -> BuildOrchestrator:
    """BuildOrchestrator 싱글톤

    Engine Layer의 진입점을 제공합니다.
    """
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = BuildOrchestrator(
            planner=planner,
            search_client=search_client,
            selector=selector,
            cache=cache,
            store=store,
        )
    return _orchestrator
