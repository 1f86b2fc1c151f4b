"""Search / Swap Routes - 검색 게이트웨이 직접 호출과 대체 상품"""

from typing import Optional

from fastapi import APIRouter, Depends

from setup_finder.api.dependencies import get_cache_adapter, get_ranker, get_serpapi_client
from setup_finder.clients.serpapi_client import SerpApiClient
from setup_finder.core.exceptions import ConfigurationException
from setup_finder.core.logging import logger
from setup_finder.engine.cache_adapter import CacheAdapter
from setup_finder.schemas.build_schema import (
    ProductModel,
    RawCandidateModel,
    SearchRequest,
    SearchResponseModel,
    SwapRequest,
    SwapResponse,
)
from setup_finder.selector.ranking import ProductRanker
from setup_finder.services.swap_service import SwapService

router = APIRouter(tags=["search"])


def _require_search_client(client: Optional[SerpApiClient]) -> SerpApiClient:
    if client is None:
        raise ConfigurationException("SERPAPI_KEY", "SerpAPI key not configured")
    return client


@router.post("/search", response_model=SearchResponseModel)
async def search_products(
    request: SearchRequest,
    search_client: Optional[SerpApiClient] = Depends(get_serpapi_client),
):
    """마켓플레이스 검색 (카테고리 접두어, 예산 필터 선택)"""
    client = _require_search_client(search_client)
    response = await client.search_products(
        request.query,
        currency=request.currency,
        amazon_only=request.amazon_only,
        limit=request.limit,
        category=request.category,
        budget=request.budget,
    )
    logger.info(f"[API] Search returned {len(response.candidates)} products")

    return SearchResponseModel(
        products=[RawCandidateModel.from_candidate(c) for c in response.candidates],
        total_results=response.total_results,
        search_metadata=response.search_metadata,
    )


@router.post("/swap", response_model=SwapResponse)
async def swap_product(
    request: SwapRequest,
    search_client: Optional[SerpApiClient] = Depends(get_serpapi_client),
    ranker: ProductRanker = Depends(get_ranker),
    cache: CacheAdapter = Depends(get_cache_adapter),
):
    """한 상품의 대체 상품 최대 5개

    결과가 없으면 502 SWAP_NO_RESULTS / SWAP_NO_NEW_RESULTS.
    """
    service = SwapService(_require_search_client(search_client), ranker, cache)
    result = await service.find_alternatives(
        request.product_id,
        request.budget,
        category=request.category,
        product_title=request.product_title,
        style=request.settings.style,
        currency=request.settings.currency,
        region=request.settings.region,
        amazon_only=request.settings.amazon_only,
        exclude_ids=request.exclude_ids,
    )
    return SwapResponse(
        alternatives=[ProductModel.from_product(p) for p in result.alternatives],
        from_cache=result.from_cache,
    )
