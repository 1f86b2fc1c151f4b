"""Need Planner - 쿼리/예산/스타일 → Plan

1. 단일 상품 쿼리 → tier 플랜 (AI 호출 없음)
2. AI 플랜 (plan_timeout_s, retryable 오류만 재시도, 429는 즉시 포기)
3. 실패 → 템플릿 레지스트리 폴백 (fallback_used=True)
"""

import asyncio
from typing import Optional

from setup_finder.clients.gemini_client import GeminiClient
from setup_finder.core.config import settings
from setup_finder.core.exceptions import PlanningException, ValidationException
from setup_finder.core.logging import logger
from setup_finder.engine.models import Plan
from setup_finder.engine.strategy import CancellationToken, ExecutionStrategy, RetryPolicy
from setup_finder.planner.single_item import create_single_item_plan, is_single_item_query
from setup_finder.planner.templates import TemplateRegistry


class NeedPlanner:
    """AI + 템플릿 폴백 플래너

    Usage:
        planner = NeedPlanner(gemini=GeminiClient())
        plan = await planner.plan("office setup", budget=1000, style="Premium")
        if plan.fallback_used:
            ...
    """

    def __init__(
        self,
        gemini: Optional[GeminiClient] = None,
        templates: Optional[TemplateRegistry] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout_s: Optional[float] = None,
    ):
        """
        Args:
            gemini: AI 클라이언트 (None이면 항상 템플릿)
            templates: 도메인 템플릿 레지스트리
            retry_policy: AI 호출 재시도 정책 (rate limit은 재시도하지 않음)
            timeout_s: 플래닝 타임아웃 (기본 settings.plan_timeout_s)
        """
        self.gemini = gemini
        self.templates = templates or TemplateRegistry.default()
        self.retry_policy = retry_policy or RetryPolicy.from_settings(retry_rate_limits=False)
        self.timeout_s = timeout_s or settings.plan_timeout_s
        self.strategy = ExecutionStrategy()

    async def plan(
        self,
        query: str,
        budget: float,
        style: str = "Casual",
        currency: str = "USD",
        token: Optional[CancellationToken] = None,
    ) -> Plan:
        """Plan 생성

        Returns:
            Plan: needs는 priority 내림차순, target_price 합계 == budget

        Raises:
            ValidationException: 빈 쿼리 또는 budget <= 0
            OperationCancelledException: 토큰 취소
            PlanningException: AI와 템플릿이 모두 실패한 경우
        """
        if not query or not query.strip():
            raise ValidationException("query", "must not be empty")
        if budget is None or budget <= 0:
            raise ValidationException("budget", "must be greater than 0")

        if is_single_item_query(query):
            plan = create_single_item_plan(query, budget)
            logger.info(f"[PLANNER] '{query}': single-item plan ({len(plan.needs)} tiers)")
            return plan

        plan = await self._try_ai(query, budget, style, currency, token)
        if plan is not None:
            return plan

        return self._fallback(query, budget, style)

    async def _try_ai(
        self,
        query: str,
        budget: float,
        style: str,
        currency: str,
        token: Optional[CancellationToken],
    ) -> Optional[Plan]:
        """AI 플랜 시도

        Returns:
            Optional[Plan]: 성공 시 Plan, 폴백해야 하면 None
        """
        if self.gemini is None:
            logger.info("[PLANNER] AI planner not configured → template")
            return None

        try:
            plan = await asyncio.wait_for(
                self.retry_policy.run(
                    "generate_plan",
                    lambda: self.gemini.generate_plan(query, budget, style, currency),
                    token=token,
                ),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(f"[PLANNER] AI planning timed out after {self.timeout_s}s → template")
            return None
        except Exception as e:
            if not self.strategy.should_fall_back(e):
                raise
            logger.warning(f"[PLANNER] AI planning failed ({self.strategy.describe(e)}) → template")
            return None

        if not plan.needs:
            logger.warning("[PLANNER] AI plan was empty → template")
            return None
        return plan

    def _fallback(self, query: str, budget: float, style: str) -> Plan:
        try:
            plan = self.templates.build(query, budget, style)
        except PlanningException:
            raise
        except Exception as e:
            raise PlanningException(f"template fallback failed: {type(e).__name__}: {e}") from e

        plan.fallback_used = True
        return plan
