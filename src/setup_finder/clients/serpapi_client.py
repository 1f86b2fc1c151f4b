"""SerpAPI 검색 게이트웨이

- engine=google_shopping 으로 검색 후 CandidateNormalizer로 정규화
- URL 없는 후보는 google_product 조회로 제한적으로 해석 (쿼터 보호)
- Amazon-only 필터 결과가 비면 engine=amazon 으로 한 번 더 검색
- 원본 검색 결과는 10분 버킷 키로 캐시
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from setup_finder.clients.http_client import SharedHttpClient, get_shared_http_client
from setup_finder.core.config import settings
from setup_finder.core.exceptions import (
    ExternalAPIException,
    NetworkException,
    RateLimitException,
)
from setup_finder.core.logging import logger
from setup_finder.engine.cache_adapter import CacheAdapter
from setup_finder.engine.models import RawCandidate
from setup_finder.engine.strategy import CancellationToken, RetryPolicy
from setup_finder.normalizers.normalizer import CandidateNormalizer
from setup_finder.utils.currency import (
    amazon_domain_for_region,
    country_code_from_currency,
    region_from_currency,
)
from setup_finder.utils.edge_cases import EdgeCaseHandler
from setup_finder.utils.hash_utils import generate_search_cache_key


@dataclass
class SearchResponse:
    """검색 게이트웨이 응답

    Attributes:
        candidates: 정규화된 후보
        total_results: SerpAPI가 보고한 전체 결과 수 (없으면 후보 수)
        search_metadata: {totalResults, searchTime, currency, query}
        raw_count: 필터 전 원본 행 수
        amazon_fallback_used: Amazon 엔진 재검색을 수행했는지 여부
    """

    candidates: list[RawCandidate]
    total_results: int = 0
    search_metadata: Dict[str, Any] = field(default_factory=dict)
    raw_count: int = 0
    amazon_fallback_used: bool = False
    from_cache: bool = False

    @property
    def amazon_filter_emptied(self) -> bool:
        """Amazon-only 필터가 원본 결과를 모두 걸러낸 경우"""
        return self.raw_count > 0 and not self.candidates and self.amazon_fallback_used

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidates": [c.to_dict() for c in self.candidates],
            "total_results": self.total_results,
            "search_metadata": self.search_metadata,
            "raw_count": self.raw_count,
            "amazon_fallback_used": self.amazon_fallback_used,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchResponse":
        return cls(
            candidates=[RawCandidate.from_dict(c) for c in data.get("candidates", [])],
            total_results=int(data.get("total_results", 0)),
            search_metadata=dict(data.get("search_metadata") or {}),
            raw_count=int(data.get("raw_count", 0)),
            amazon_fallback_used=bool(data.get("amazon_fallback_used")),
            from_cache=True,
        )


class SerpApiClient:
    """SerpAPI 클라이언트

    Usage:
        client = SerpApiClient(api_key=settings.serpapi_key)
        response = await client.search_products("gaming monitor", currency="USD",
                                                amazon_only=False, limit=8)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        http_client: Optional[SharedHttpClient] = None,
        cache: Optional[CacheAdapter] = None,
        normalizer: Optional[CandidateNormalizer] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """
        Args:
            api_key: SerpAPI 키 (없으면 settings.serpapi_key)
            http_client: 공유 HTTP 클라이언트
            cache: 원본 검색 결과 캐시 (None이면 캐시 없이 동작)
            normalizer: 후보 정규화기
            retry_policy: retryable 오류 재시도 정책

        Raises:
            ExternalAPIException: API 키 누락 (MISSING_API_KEY, 재시도 불가)
        """
        self.api_key = api_key if api_key is not None else settings.serpapi_key
        if not self.api_key:
            raise ExternalAPIException("SerpAPI key is required", "MISSING_API_KEY", retryable=False)

        self.http_client = http_client or get_shared_http_client()
        self.cache = cache
        self.normalizer = normalizer or CandidateNormalizer()
        self.retry_policy = retry_policy or RetryPolicy.from_settings(retry_rate_limits=True)
        self.base_url = settings.serpapi_base_url

    async def search_products(
        self,
        query: str,
        currency: str = "USD",
        amazon_only: bool = False,
        limit: Optional[int] = None,
        category: Optional[str] = None,
        budget: Optional[float] = None,
        token: Optional[CancellationToken] = None,
        timeout_s: Optional[float] = None,
    ) -> SearchResponse:
        """상품 검색

        Args:
            query: 검색어
            currency: 요청 통화 (gl/지역 결정)
            amazon_only: Amazon 판매처만 남길지 여부
            limit: 요청할 결과 수 (num)
            category: 지정 시 "{category} {query}"로 검색
            budget: 지정 시 price > budget 후보 제거
            token: 취소 토큰
            timeout_s: 개별 HTTP 요청 타임아웃

        Returns:
            SearchResponse

        Raises:
            ExternalAPIException: SERPAPI_KEY_INVALID, SERPAPI_{status}, SERPAPI_ERROR
            RateLimitException: SERPAPI_RATE_LIMIT
            NetworkException: 전송 계층 실패
        """
        started = time.time()
        num = limit if limit and limit > 0 else settings.serpapi_default_limit
        search_query = f"{category} {query}".strip() if category else query.strip()
        request_timeout = timeout_s or settings.search_timeout_s

        cache_key = generate_search_cache_key(
            search_query, currency, amazon_only, num, category=category, budget=budget
        )
        if self.cache is not None:
            cached = await self.cache.get(cache_key)
            if isinstance(cached, dict):
                logger.info(f"[SERPAPI] Cache hit for '{search_query}'")
                return SearchResponse.from_dict(cached)

        region = region_from_currency(currency)
        gl = country_code_from_currency(currency)

        params = {
            "engine": "google_shopping",
            "q": search_query,
            "api_key": self.api_key,
            "hl": "en",
            "gl": gl,
            "num": str(num),
        }

        data = await self.retry_policy.run(
            "serpapi_search",
            lambda: self._fetch(params, request_timeout),
            token=token,
        )

        rows = EdgeCaseHandler.safe_list(data.get("shopping_results"))
        if not rows:
            logger.warning(f"[SERPAPI] shopping_results missing or empty for '{search_query}'")

        candidates = self.normalizer.normalize_rows(rows, engine="google_shopping",
                                                    currency=currency, region=region)
        candidates = await self._resolve_missing_urls(candidates, gl, request_timeout, token)

        amazon_fallback_used = False
        if amazon_only:
            candidates = self.normalizer.filter_amazon_only(candidates)
            if not candidates and rows:
                logger.warning("[SERPAPI] Amazon-only filter removed all results → Amazon engine fallback")
                amazon_fallback_used = True
                candidates = await self._search_amazon(search_query, region, currency, request_timeout)

        if budget is not None:
            candidates = [c for c in candidates if c.price is not None and c.price <= budget]

        total_results = EdgeCaseHandler.safe_int(
            (data.get("search_information") or {}).get("total_results"), default=0
        ) or len(candidates)

        response = SearchResponse(
            candidates=candidates,
            total_results=total_results,
            search_metadata={
                "totalResults": total_results,
                "searchTime": round((time.time() - started) * 1000),
                "currency": currency,
                "query": search_query,
            },
            raw_count=len(rows),
            amazon_fallback_used=amazon_fallback_used,
        )

        logger.info(
            f"[SERPAPI] '{search_query}': {len(candidates)} candidates from {len(rows)} raw rows"
        )

        if self.cache is not None and candidates:
            await self.cache.set(cache_key, response.to_dict(), settings.search_cache_ttl)

        return response

    async def _fetch(self, params: Dict[str, Any], timeout_s: float) -> Dict[str, Any]:
        """SerpAPI 호출 + 상태 코드 매핑"""
        response = await self.http_client.get_json(self.base_url, params=params, timeout_s=timeout_s)

        if response.status == 403:
            raise ExternalAPIException("SerpAPI key invalid", "SERPAPI_KEY_INVALID", retryable=False)
        if response.status == 429:
            raise RateLimitException("SerpAPI quota exceeded", "SERPAPI_RATE_LIMIT")
        if not response.ok:
            raise ExternalAPIException(
                f"SerpAPI request failed: {response.reason or response.status}",
                f"SERPAPI_{response.status}",
                retryable=response.status >= 500,
            )

        data = response.data
        if not isinstance(data, dict):
            raise ExternalAPIException("SerpAPI returned a non-JSON body", "SERPAPI_ERROR", retryable=False)
        if data.get("error"):
            raise ExternalAPIException(f"SerpAPI error: {data['error']}", "SERPAPI_ERROR", retryable=False)
        return data

    async def _resolve_missing_urls(
        self,
        candidates: list[RawCandidate],
        gl: str,
        timeout_s: float,
        token: Optional[CancellationToken],
    ) -> list[RawCandidate]:
        """URL 없는 후보를 최대 url_resolve_quota 개까지 해석하고, 해석 실패 후보는 제거"""
        quota = settings.url_resolve_quota
        resolved: list[RawCandidate] = []

        for candidate in candidates:
            if candidate.url:
                resolved.append(candidate)
                continue
            if quota <= 0 or not (candidate.serpapi_product_api or candidate.serpapi_product_id):
                continue
            if token is not None and token.is_cancelled:
                continue

            quota -= 1
            url = await self._resolve_product_link(candidate, gl, timeout_s)
            if url:
                candidate.url = url
                resolved.append(candidate)

        return resolved

    async def _resolve_product_link(self, candidate: RawCandidate, gl: str, timeout_s: float) -> Optional[str]:
        """google_product 조회로 판매처 링크 해석

        online_sellers[0].link → product_link 순서. 실패는 로깅 후 None.
        """
        try:
            if candidate.serpapi_product_api:
                response = await self.http_client.get_json(
                    candidate.serpapi_product_api,
                    params={"api_key": self.api_key},
                    timeout_s=timeout_s,
                )
            else:
                response = await self.http_client.get_json(
                    self.base_url,
                    params={
                        "engine": "google_product",
                        "product_id": candidate.serpapi_product_id,
                        "gl": gl,
                        "hl": "en",
                        "api_key": self.api_key,
                    },
                    timeout_s=timeout_s,
                )
        except NetworkException as e:
            logger.warning(f"[SERPAPI] Product link resolution failed: {e}")
            return None

        data = response.data if isinstance(response.data, dict) else {}
        sellers = EdgeCaseHandler.safe_list((data.get("sellers_results") or {}).get("online_sellers"))
        if sellers and isinstance(sellers[0], dict) and sellers[0].get("link"):
            return str(sellers[0]["link"])
        link = data.get("product_link")
        return str(link) if link else None

    async def _search_amazon(self, query: str, region: str, currency: str, timeout_s: float) -> list[RawCandidate]:
        """engine=amazon 보조 검색 (한 번만). 실패 시 빈 목록"""
        params = {
            "engine": "amazon",
            "amazon_domain": amazon_domain_for_region(region),
            "k": query,
            "api_key": self.api_key,
        }
        try:
            response = await self.http_client.get_json(self.base_url, params=params, timeout_s=timeout_s)
        except NetworkException as e:
            logger.warning(f"[SERPAPI] Amazon engine search failed: {e}")
            return []

        if not response.ok or not isinstance(response.data, dict):
            logger.warning(f"[SERPAPI] Amazon engine search returned status {response.status}")
            return []

        rows = EdgeCaseHandler.safe_list(response.data.get("organic_results"))
        candidates = self.normalizer.normalize_rows(rows, engine="amazon", currency=currency, region=region)
        candidates = [c for c in candidates if c.url]
        logger.info(f"[SERPAPI] Amazon engine fallback: {len(candidates)} candidates")
        return candidates
