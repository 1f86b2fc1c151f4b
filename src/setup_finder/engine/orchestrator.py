"""Build Orchestrator - Main Engine Entry Point

빌드 파이프라인:
1. Cache lookup (query, settings 지문)
2. Planning (AI, 타임아웃/429 시 템플릿 폴백)
3. need별 Search → Select 병렬 실행 (settle-all, 개별 실패는 "상품 없음")
4. Budget enforcement
5. Ghost tips / metadata 조립
6. Cache + search result store 저장
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional

from setup_finder.clients.serpapi_client import SearchResponse, SerpApiClient
from setup_finder.core.config import settings
from setup_finder.core.exceptions import ConfigurationException
from setup_finder.core.logging import logger
from setup_finder.engine.budget import BudgetEnforcer
from setup_finder.engine.cache_adapter import CacheAdapter
from setup_finder.engine.models import BuildOptions, Need, Plan, Product, SelectionContext
from setup_finder.engine.result import BuildResult, BuildStage
from setup_finder.engine.strategy import CancellationToken, ExecutionStrategy
from setup_finder.engine.tips import build_ghost_tips
from setup_finder.planner.planner import NeedPlanner
from setup_finder.selector.selector import ProductSelector
from setup_finder.services.search_store import SearchResultStore
from setup_finder.utils.hash_utils import generate_build_cache_key, generate_search_id


@dataclass
class NeedOutcome:
    """need 하나의 Search → Select 결과"""

    need: Need
    product: Optional[Product] = None
    search: Optional[SearchResponse] = None


class BuildOrchestrator:
    """빌드 오케스트레이터

    Plan → (need별 Search+Select 병렬) → Budget → Cache → Response 를 관리합니다.
    need 단위 실패는 삼키고, 플래닝 완전 실패와 필수 설정 누락만 요청 실패입니다.

    Usage:
        orchestrator = BuildOrchestrator(planner, search_client, selector, cache, store)
        result = await orchestrator.build("office setup", BuildOptions(budget=1000, style="Premium"))
        if result.fallback_used:
            response.headers["X-Fallback-Plan"] = "true"
    """

    def __init__(
        self,
        planner: NeedPlanner,
        search_client: Optional[SerpApiClient],
        selector: ProductSelector,
        cache: Optional[CacheAdapter] = None,
        store: Optional[SearchResultStore] = None,
        enforcer: Optional[BudgetEnforcer] = None,
        search_timeout_s: Optional[float] = None,
    ):
        """
        Args:
            planner: need 플래너
            search_client: SerpAPI 게이트웨이 (None이면 설정 누락으로 간주)
            selector: 상품 셀렉터
            cache: 빌드 캐시 (None이면 캐시 없이 동작)
            store: searchId 결과 저장소
            enforcer: 예산 적용기
            search_timeout_s: need 하나의 검색 타임아웃 (기본 settings.search_timeout_s)
        """
        if planner is None:
            raise ValueError("planner must not be None")
        if selector is None:
            raise ValueError("selector must not be None")

        self.planner = planner
        self.search_client = search_client
        self.selector = selector
        self.cache = cache
        self.store = store
        self.enforcer = enforcer or BudgetEnforcer()
        self.search_timeout_s = search_timeout_s or settings.search_timeout_s
        self.strategy = ExecutionStrategy()

    async def build(
        self,
        query: str,
        options: BuildOptions,
        use_cache: bool = True,
        token: Optional[CancellationToken] = None,
    ) -> BuildResult:
        """빌드 실행

        Args:
            query: 사용자 검색어
            options: 요청 설정
            use_cache: False면 캐시 조회를 건너뜀 (reroll)
            token: 취소 토큰 (없으면 요청 단위로 생성)

        Returns:
            BuildResult

        Raises:
            ConfigurationException: SerpAPI 키 미설정
            PlanningException: 플래닝 완전 실패
            ValidationException: 빈 쿼리 / 잘못된 예산
        """
        token = token or CancellationToken()
        started = time.time()
        cache_key = generate_build_cache_key(query, options.fingerprint_fields())
        logger.info(f"[BUILD] {BuildStage.RECEIVED.value}: query='{query}', budget={options.budget}")

        try:
            if use_cache:
                cached = await self._try_cache(cache_key)
                if cached is not None:
                    logger.info(f"[BUILD] Cache hit: query='{query}'")
                    return cached

            if self.search_client is None:
                logger.error(f"[BUILD] {BuildStage.FAILED.value}: SerpAPI key not configured")
                raise ConfigurationException("SERPAPI_KEY", "SerpAPI key not configured")

            logger.info(f"[BUILD] {BuildStage.PLANNING.value}")
            plan = await self.planner.plan(query, options.budget, options.style, options.currency, token)

            logger.info(f"[BUILD] {BuildStage.SEARCHING.value}: {len(plan.needs)} needs in parallel")
            outcomes = await self._run_needs(plan, options, token)

            logger.info(f"[BUILD] {BuildStage.BUDGET_ENFORCING.value}")
            selected = [o.product for o in outcomes if o.product is not None]
            report = self.enforcer.apply(selected, options.budget)

            result = self._assemble(query, options, plan, report.kept, started)
            result.dropped_for_budget = [p.id for p in report.dropped]

            logger.info(f"[BUILD] {BuildStage.CACHING.value}")
            await self._save_to_cache(cache_key, result)

            logger.info(
                f"[BUILD] {BuildStage.RESPONDED.value}: {len(result.products)}/{len(plan.needs)} products, "
                f"status={result.status.value}, fallback={result.fallback_used}, "
                f"elapsed={result.search_metadata.get('searchTime')}ms"
            )
            return result

        except asyncio.CancelledError:
            token.cancel("build cancelled")
            raise

    async def _try_cache(self, cache_key: str) -> Optional[BuildResult]:
        """Cache 조회 시도

        Returns:
            Optional[BuildResult]: 캐시 히트 시 결과, 미스/오류 시 None
        """
        if self.cache is None:
            return None

        cached = await self.cache.get_build(cache_key)
        if cached is None:
            return None

        try:
            return BuildResult.from_cache(cached)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"[BUILD] Invalid cached build for {cache_key}: {type(e).__name__}: {e}")
            return None

    async def _run_needs(self, plan: Plan, options: BuildOptions, token: CancellationToken) -> list[NeedOutcome]:
        """need별 Search → Select 태스크를 병렬 실행하고 모두 끝날 때까지 대기

        개별 실패는 로깅 후 "상품 없음"으로 처리합니다.
        """
        context = options.selection_context()
        selected: list[Product] = []

        tasks = [
            self._process_need(need, order, options, context, selected, token)
            for order, need in enumerate(plan.needs, start=1)
        ]
        settled = await asyncio.gather(*tasks, return_exceptions=True)

        outcomes: list[NeedOutcome] = []
        for need, outcome in zip(plan.needs, settled):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.warning(f"[BUILD] Need '{need.key}' yielded no product: {self.strategy.describe(outcome)}")
                outcomes.append(NeedOutcome(need=need))
            else:
                outcomes.append(outcome)
        return outcomes

    async def _process_need(
        self,
        need: Need,
        order: int,
        options: BuildOptions,
        context: SelectionContext,
        selected: list[Product],
        token: CancellationToken,
    ) -> NeedOutcome:
        """need 하나: Search (search_timeout_s) → Select (셀렉터 내부 AI 서브 타임아웃)

        selected는 완료된 상품이 쌓이는 공유 목록이며, 셀렉터에는 스냅샷 복사본을 넘깁니다.
        """
        query = need.search_query()
        try:
            response = await asyncio.wait_for(
                self.search_client.search_products(
                    query,
                    currency=options.currency,
                    amazon_only=options.amazon_only,
                    limit=options.candidate_limit,
                    token=token,
                ),
                timeout=self.search_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(f"[BUILD] Search timed out for '{need.key}' after {self.search_timeout_s}s")
            return NeedOutcome(need=need)

        if not response.candidates:
            logger.info(f"[BUILD] No candidates for '{need.key}' ({query})")
            return NeedOutcome(need=need, search=response)

        logger.debug(f"[BUILD] {BuildStage.SELECTING.value}: '{need.key}' from {len(response.candidates)} candidates")
        product = await self.selector.select(need, response.candidates, context, list(selected), token)
        if product is None:
            return NeedOutcome(need=need, search=response)

        if product.price > need.target_price:
            logger.warning(f"[BUILD] Discarding over-target selection for '{need.key}': {product.price}")
            return NeedOutcome(need=need, search=response)

        product.category = need.name
        product.search_rank = order
        selected.append(product)
        return NeedOutcome(need=need, product=product, search=response)

    def _assemble(
        self,
        query: str,
        options: BuildOptions,
        plan: Plan,
        products: list[Product],
        started: float,
    ) -> BuildResult:
        """응답 조립 (need 순서 유지)"""
        need_count = len(plan.needs)
        return BuildResult(
            products=products,
            budget_chart=list(plan.budget_distribution) if plan.is_setup else None,
            ghost_tips=build_ghost_tips(len(products), need_count, amazon_only=options.amazon_only),
            search_metadata={
                "totalResults": len(products),
                "searchTime": round((time.time() - started) * 1000),
                "query": query,
                "currency": options.currency,
            },
            is_setup=plan.is_setup,
            search_id=generate_search_id(),
            status=BuildResult.status_for(len(products), need_count),
            fallback_used=plan.fallback_used,
            need_count=need_count,
        )

    async def _save_to_cache(self, cache_key: str, result: BuildResult) -> None:
        """빌드 캐시 + 결과 저장소에 저장

        Raises:
            None: 저장 실패해도 무시
        """
        payload = result.to_dict()
        try:
            if self.cache is not None:
                await self.cache.set_build(cache_key, payload, settings.cache_ttl)
            if self.store is not None:
                await self.store.save(result)
        except Exception as e:
            # 캐시 저장 실패는 치명적이지 않으므로 무시
            logger.warning(f"[BUILD] Failed to save to cache: {type(e).__name__}: {e}")
