"""Product Selector - need 하나에 대해 후보 중 최적 상품 1개 선택

1. 예산 필터 (price ≤ need.target_price)
2. AI 선택 (select_timeout_s 안에서, retryable 오류는 재시도)
3. 실패/타임아웃/AI 미설정 → 휴리스틱 점수
"""

import asyncio
from typing import Optional, Sequence

from setup_finder.clients.gemini_client import GeminiClient
from setup_finder.core.config import settings
from setup_finder.core.exceptions import OperationCancelledException
from setup_finder.core.logging import logger
from setup_finder.engine.models import Need, Product, RawCandidate, SelectionContext
from setup_finder.engine.strategy import CancellationToken, ExecutionStrategy, RetryPolicy
from setup_finder.selector import heuristics


class ProductSelector:
    """AI + 휴리스틱 폴백 셀렉터

    Usage:
        selector = ProductSelector(gemini=GeminiClient())
        product = await selector.select(need, candidates, context, existing=[...])
    """

    def __init__(
        self,
        gemini: Optional[GeminiClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout_s: Optional[float] = None,
    ):
        """
        Args:
            gemini: AI 클라이언트 (None이면 항상 휴리스틱)
            retry_policy: AI 호출 재시도 정책
            timeout_s: AI 선택 서브 타임아웃 (기본 settings.select_timeout_s)
        """
        self.gemini = gemini
        self.retry_policy = retry_policy or RetryPolicy.from_settings(retry_rate_limits=False)
        self.timeout_s = timeout_s or settings.select_timeout_s

    @staticmethod
    def filter_affordable(candidates: Sequence[RawCandidate], need: Need) -> list[RawCandidate]:
        return [c for c in candidates if c.price is not None and c.price <= need.target_price]

    async def select(
        self,
        need: Need,
        candidates: Sequence[RawCandidate],
        context: SelectionContext,
        existing: Sequence[Product] = (),
        token: Optional[CancellationToken] = None,
    ) -> Optional[Product]:
        """최적 상품 선택

        Args:
            need: 대상 need
            candidates: 정규화된 후보
            context: {budget, style, region, currency}
            existing: 이미 선택된 상품 스냅샷 (호환성 보너스용)
            token: 취소 토큰

        Returns:
            Product 또는 None (예산 안 후보가 없거나 AI가 -1을 고른 경우)

        Raises:
            OperationCancelledException: 토큰이 취소된 경우
        """
        affordable = self.filter_affordable(candidates, need)
        if not affordable:
            logger.info(f"[SELECTOR] {need.key}: no candidates within {need.target_price}")
            return None

        if self.gemini is not None:
            try:
                product = await asyncio.wait_for(
                    self.retry_policy.run(
                        f"select:{need.key}",
                        lambda: self.gemini.select_best_product(need, affordable, context, existing),
                        token=token,
                    ),
                    timeout=self.timeout_s,
                )
                if product is None:
                    logger.info(f"[SELECTOR] {need.key}: AI found no suitable option")
                return product
            except OperationCancelledException:
                raise
            except asyncio.TimeoutError:
                logger.warning(f"[SELECTOR] {need.key}: AI selection timed out after {self.timeout_s}s → heuristic")
            except Exception as e:
                logger.warning(
                    f"[SELECTOR] {need.key}: AI selection failed ({ExecutionStrategy.describe(e)}) → heuristic"
                )

        if token is not None:
            token.raise_if_cancelled(f"select:{need.key}")
        return self.select_heuristic(need, affordable, existing)

    @staticmethod
    def select_heuristic(
        need: Need,
        candidates: Sequence[RawCandidate],
        existing: Sequence[Product] = (),
    ) -> Optional[Product]:
        """결정적 휴리스틱 선택 (동점이면 먼저 나온 후보)"""
        affordable = ProductSelector.filter_affordable(candidates, need)
        best = heuristics.pick_best(affordable, existing)
        if best is None:
            return None

        candidate, score = best
        return heuristics.to_product(
            candidate,
            category=need.name,
            rationale=heuristics.selection_rationale(candidate, existing),
            pros=heuristics.generate_pros(candidate, existing),
            cons=heuristics.generate_cons(candidate, existing),
            confidence=min(0.9, 0.6 + score * 0.1),
            search_rank=1,
        )
