"""대체 상품 서비스 - 한 상품의 대안 추천 (/swap)"""
from dataclasses import dataclass
from typing import Optional, Sequence

from setup_finder.clients.serpapi_client import SerpApiClient
from setup_finder.core.config import settings
from setup_finder.core.exceptions import ExternalAPIException
from setup_finder.core.logging import logger
from setup_finder.engine.cache_adapter import CacheAdapter
from setup_finder.engine.models import Product, SelectionContext
from setup_finder.selector.ranking import SWAP_WEIGHTS, ProductRanker
from setup_finder.utils.hash_utils import generate_swap_cache_key

# 제목에서 찾는 상품 유형 (앞쪽이 우선)
PRODUCT_TYPES = (
    "laptop", "computer", "pc", "desktop", "monitor", "screen", "display",
    "chair", "desk", "table", "keyboard", "mouse", "headset", "headphones",
    "mattress", "bed", "pillow", "sheets", "dresser", "nightstand",
    "sofa", "couch", "tv", "television", "coffee table", "lamp",
    "refrigerator", "fridge", "stove", "microwave", "cookware", "knife",
)

SWAP_BUDGET_MULTIPLIER = 1.2
SWAP_SEARCH_LIMIT = 15
MAX_ALTERNATIVES = 5


def swap_search_query(category: Optional[str] = None, product_title: Optional[str] = None) -> str:
    """대체 상품 검색어

    카테고리 → 제목 속 상품 유형 → 제목 앞 세 단어 → "alternative product" 순서입니다.
    """
    if category and category.strip():
        return category.strip()

    if product_title and product_title.strip():
        lowered = product_title.lower()
        for product_type in PRODUCT_TYPES:
            if product_type in lowered:
                return product_type
        return " ".join(product_title.split()[:3])

    return "alternative product"


@dataclass
class SwapResult:
    alternatives: list[Product]
    from_cache: bool = False


class SwapService:
    """
    대체 상품 서비스

    - 검색은 SerpApiClient (예산의 1.2배, 15개)
    - 제외 ID 필터 후 ProductRanker로 평점 중심 랭킹
    - 상위 5개를 30분 캐시
    """

    def __init__(self, search_client: SerpApiClient, ranker: ProductRanker, cache: Optional[CacheAdapter] = None):
        self.search_client = search_client
        self.ranker = ranker
        self.cache = cache

    async def find_alternatives(
        self,
        product_id: str,
        budget: float,
        category: Optional[str] = None,
        product_title: Optional[str] = None,
        style: str = "Casual",
        currency: str = "USD",
        region: str = "US",
        amazon_only: bool = False,
        exclude_ids: Sequence[str] = (),
    ) -> SwapResult:
        """
        대체 상품 검색

        Returns:
            SwapResult

        Raises:
            ExternalAPIException: SWAP_NO_RESULTS (검색 결과 없음),
                SWAP_NO_NEW_RESULTS (제외 후 남은 후보 없음)
        """
        excluded = set(exclude_ids)
        cache_key = generate_swap_cache_key(product_id, {
            "category": category,
            "productTitle": product_title,
            "budget": budget,
            "settings": {"style": style, "region": region, "amazonOnly": amazon_only, "currency": currency},
            "excludeIds": sorted(excluded),
        })

        if self.cache is not None:
            cached = await self.cache.get(cache_key)
            if isinstance(cached, list):
                logger.info(f"[SWAP] Cache hit for product {product_id}")
                return SwapResult(alternatives=[Product.from_dict(p) for p in cached], from_cache=True)

        query = swap_search_query(category, product_title)
        logger.info(f"[SWAP] product={product_id}, query='{query}', budget={budget}, excluded={len(excluded)}")

        response = await self.search_client.search_products(
            query,
            currency=currency,
            amazon_only=amazon_only,
            limit=SWAP_SEARCH_LIMIT,
            category=category,
            budget=budget * SWAP_BUDGET_MULTIPLIER,
        )
        if not response.candidates:
            raise ExternalAPIException("No alternative products found", "SWAP_NO_RESULTS", retryable=False)

        remaining = [c for c in response.candidates if c.id not in excluded]
        if not remaining:
            logger.warning(
                f"[SWAP] No new alternatives for {product_id} after filtering {len(response.candidates)} results"
            )
            raise ExternalAPIException(
                "No new alternatives available. Try adjusting your budget or search criteria.",
                "SWAP_NO_NEW_RESULTS",
                retryable=False,
            )

        context = SelectionContext(budget=budget, style=style, region=region, currency=currency)
        outcome = await self.ranker.rank(remaining, SWAP_WEIGHTS, context, prioritize_rating=True)
        alternatives = outcome.products[:MAX_ALTERNATIVES]

        logger.info(f"[SWAP] {len(alternatives)} alternatives for '{query}' ({outcome.source})")

        if self.cache is not None:
            await self.cache.set(cache_key, [p.to_dict() for p in alternatives], settings.swap_cache_ttl)

        return SwapResult(alternatives=alternatives)
