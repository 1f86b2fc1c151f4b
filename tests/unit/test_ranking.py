"""ProductRanker / 휴리스틱 랭킹 테스트"""

from __future__ import annotations

import pytest

from setup_finder.core.exceptions import OperationCancelledException, RateLimitException
from setup_finder.engine.models import Product, SelectionContext
from setup_finder.selector import heuristics
from setup_finder.selector.ranking import SWAP_WEIGHTS, ProductRanker, RankWeights, rank_products

from tests.fixtures.fakes import make_candidate


class FakeRankingGemini:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls = 0
        self.weights = None

    async def rank_products(self, candidates, weights, context, existing=()):
        self.calls += 1
        self.weights = weights
        if self.error is not None:
            raise self.error
        reversed_candidates = list(reversed(candidates))
        products = [
            heuristics.to_product(c, "", "AI", [], [], 0.9, search_rank=i)
            for i, c in enumerate(reversed_candidates, start=1)
        ]
        return products, ["AI reasoning"]


CONTEXT = SelectionContext(budget=1000)


class TestRankProducts:
    def test_better_product_ranks_first(self):
        """평점/리뷰가 좋은 후보가 앞, search_rank는 1..n"""
        candidates = [
            make_candidate("weak", 900, rating=3.0, review_count=10),
            make_candidate("strong", 500, rating=4.8, review_count=2000),
        ]
        outcome = rank_products(candidates, RankWeights(), CONTEXT)

        assert [p.id for p in outcome.products] == ["strong", "weak"]
        assert [p.search_rank for p in outcome.products] == [1, 2]
        assert outcome.source == "heuristic"
        assert outcome.reasoning[1] == "Ranked based on price, rating, and review count"

    def test_missing_price_assumed(self):
        """가격이 없으면 예산의 60%로 간주"""
        outcome = rank_products([make_candidate("a", None)], context=CONTEXT)
        assert outcome.products[0].price == 600

    def test_prioritize_rating_breaks_ties(self):
        weights = RankWeights(price=0.5, rating=0, review=0.5, relevance=0)
        candidates = [
            make_candidate("low", 300, rating=3.0, review_count=100),
            make_candidate("high", 300, rating=4.9, review_count=100),
        ]
        assert [p.id for p in rank_products(candidates, weights, CONTEXT).products] == ["low", "high"]
        assert [p.id for p in rank_products(candidates, weights, CONTEXT, prioritize_rating=True).products] == \
            ["high", "low"]

    def test_zero_weights_normalized(self):
        assert RankWeights(0, 0, 0, 0).normalized() == RankWeights()
        assert SWAP_WEIGHTS.to_dict() == {"price": 0.25, "rating": 0.35, "review": 0.25, "relevance": 0.15}

    def test_existing_products_add_compatibility(self):
        existing = [Product(id="k", title="Logitech Keyboard", price=100, merchant="Best Buy", rating=4.5)]
        outcome = rank_products([make_candidate("m", 80, title="Logitech Mouse")], context=CONTEXT,
                                existing=existing)

        assert "compatibility with existing setup" in outcome.products[0].rationale
        assert outcome.reasoning[1] == "Considered compatibility with existing products in setup"


class TestProductRanker:
    @pytest.mark.asyncio
    async def test_empty(self):
        outcome = await ProductRanker().rank([])
        assert outcome.products == []
        assert outcome.reasoning == ["No products provided for ranking"]
        assert outcome.source == "empty"

    @pytest.mark.asyncio
    async def test_ai_path(self, no_retry):
        gemini = FakeRankingGemini()
        ranker = ProductRanker(gemini=gemini, retry_policy=no_retry)

        outcome = await ranker.rank([make_candidate("a"), make_candidate("b")], SWAP_WEIGHTS, CONTEXT)

        assert outcome.source == "ai"
        assert [p.id for p in outcome.products] == ["b", "a"]
        assert gemini.weights["rating"] == 0.35

    @pytest.mark.asyncio
    async def test_ai_failure_falls_back(self, no_retry):
        """AI 실패(429 포함) → 휴리스틱"""
        gemini = FakeRankingGemini(error=RateLimitException("429"))
        ranker = ProductRanker(gemini=gemini, retry_policy=no_retry)

        outcome = await ranker.rank([make_candidate("a")], context=CONTEXT)

        assert gemini.calls == 1
        assert outcome.source == "heuristic"
        assert outcome.products[0].id == "a"

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, no_retry):
        ranker = ProductRanker(gemini=FakeRankingGemini(error=OperationCancelledException("rank")),
                               retry_policy=no_retry)
        with pytest.raises(OperationCancelledException):
            await ranker.rank([make_candidate("a")])
