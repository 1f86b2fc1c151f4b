"""ProductSelector 테스트 (AI 선택 + 휴리스틱 폴백)"""

from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from setup_finder.core.exceptions import ExternalAPIException, OperationCancelledException
from setup_finder.engine.models import Product, SelectionContext
from setup_finder.selector import heuristics
from setup_finder.selector.selector import ProductSelector

from tests.fixtures.fakes import make_candidate, make_need


class FakeGemini:
    """select_best_product 동작을 지정할 수 있는 Fake"""

    def __init__(self, pick: Optional[int] = 0, error: Optional[Exception] = None, delay_s: float = 0.0):
        self.pick = pick
        self.error = error
        self.delay_s = delay_s
        self.calls = 0
        self.seen_ids: list[list[str]] = []
        self.seen_existing: list[list[str]] = []

    async def select_best_product(self, need, candidates, context, existing=()):
        self.calls += 1
        self.seen_ids.append([c.id for c in candidates])
        self.seen_existing.append([p.id for p in existing])
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        if self.pick is None:
            return None
        chosen = candidates[self.pick]
        return heuristics.to_product(chosen, need.name, "AI pick", [], [], 0.95, search_rank=self.pick + 1)


CONTEXT = SelectionContext(budget=1000)


class TestProductSelector:
    @pytest.mark.asyncio
    async def test_ai_sees_only_affordable(self, no_retry):
        """AI에는 need 예산 이하 후보만 전달"""
        gemini = FakeGemini(pick=0)
        selector = ProductSelector(gemini=gemini, retry_policy=no_retry)
        candidates = [make_candidate("over", 500), make_candidate("fits", 150), make_candidate("noprice", None)]

        product = await selector.select(make_need("monitor", 200), candidates, CONTEXT)

        assert gemini.seen_ids == [["fits"]]
        assert product.id == "fits"
        assert product.price <= 200

    @pytest.mark.asyncio
    async def test_no_affordable_candidates(self, no_retry):
        gemini = FakeGemini()
        selector = ProductSelector(gemini=gemini, retry_policy=no_retry)

        product = await selector.select(make_need("monitor", 50), [make_candidate("a", 100)], CONTEXT)

        assert product is None
        assert gemini.calls == 0

    @pytest.mark.asyncio
    async def test_ai_failure_falls_back_to_heuristic(self, no_retry):
        """AI 오류 → 휴리스틱 선택"""
        gemini = FakeGemini(error=ExternalAPIException("boom", "GEMINI_500"))
        selector = ProductSelector(gemini=gemini, retry_policy=no_retry)
        candidates = [
            make_candidate("meh", 150, rating=3.5, review_count=10),
            make_candidate("great", 140, rating=4.8, review_count=3000),
        ]

        product = await selector.select(make_need("chair", 200, name="Office Chair"), candidates, CONTEXT)

        assert gemini.calls == 1
        assert product.id == "great"
        assert product.category == "Office Chair"
        assert product.rationale.startswith("Selected based on best value for money")

    @pytest.mark.asyncio
    async def test_ai_timeout_falls_back(self, no_retry):
        gemini = FakeGemini(delay_s=1.0)
        selector = ProductSelector(gemini=gemini, retry_policy=no_retry, timeout_s=0.05)

        product = await selector.select(make_need("desk", 300), [make_candidate("d", 250)], CONTEXT)

        assert product.id == "d"
        assert product.rationale != "AI pick"

    @pytest.mark.asyncio
    async def test_ai_declines(self, no_retry):
        """AI가 -1을 고르면 None (휴리스틱으로 덮지 않음)"""
        selector = ProductSelector(gemini=FakeGemini(pick=None), retry_policy=no_retry)
        assert await selector.select(make_need(), [make_candidate("a", 100)], CONTEXT) is None

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, no_retry):
        selector = ProductSelector(gemini=FakeGemini(error=OperationCancelledException("select")),
                                   retry_policy=no_retry)
        with pytest.raises(OperationCancelledException):
            await selector.select(make_need(), [make_candidate("a", 100)], CONTEXT)

    @pytest.mark.asyncio
    async def test_existing_snapshot_passed_to_ai(self, no_retry):
        gemini = FakeGemini(pick=0)
        selector = ProductSelector(gemini=gemini, retry_policy=no_retry)
        existing = [Product(id="desk-1", title="Desk", price=300)]

        await selector.select(make_need(), [make_candidate("a", 100)], CONTEXT, existing=existing)

        assert gemini.seen_existing == [["desk-1"]]

    @pytest.mark.asyncio
    async def test_without_ai_uses_heuristic(self):
        product = await ProductSelector(gemini=None).select(make_need(), [make_candidate("a", 100)], CONTEXT)
        assert product.id == "a"


class TestSelectHeuristic:
    def test_confidence_formula(self):
        """confidence = min(0.9, 0.6 + score · 0.1)"""
        candidate = make_candidate("a", price=100, rating=4.0, review_count=99)
        product = ProductSelector.select_heuristic(make_need("x", 200), [candidate])

        expected = min(0.9, 0.6 + heuristics.base_score(candidate) * 0.1)
        assert product.confidence == pytest.approx(expected)
        assert product.search_rank == 1

    def test_never_over_target(self):
        """예산 초과 후보는 점수가 높아도 선택되지 않음"""
        candidates = [
            make_candidate("over", 201, rating=5.0, review_count=100000),
            make_candidate("ok", 199, rating=2.0, review_count=1),
        ]
        product = ProductSelector.select_heuristic(make_need("x", 200), candidates)
        assert product.id == "ok"

    def test_empty(self):
        assert ProductSelector.select_heuristic(make_need(), []) is None
