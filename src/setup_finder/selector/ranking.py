"""Product Ranking - 여러 후보를 가중치 기준으로 정렬 (/rank, /swap)"""

import asyncio
import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from setup_finder.clients.gemini_client import GeminiClient
from setup_finder.core.config import settings
from setup_finder.core.logging import logger
from setup_finder.engine.models import Product, RawCandidate, SelectionContext
from setup_finder.engine.strategy import CancellationToken, ExecutionStrategy, RetryPolicy
from setup_finder.selector import heuristics

DEFAULT_RELEVANCE = 0.8
COMPATIBILITY_WEIGHT = 0.2


@dataclass(frozen=True)
class RankWeights:
    """랭킹 가중치 (합이 0이면 모두 0.25)"""

    price: float = 0.25
    rating: float = 0.25
    review: float = 0.25
    relevance: float = 0.25

    def normalized(self) -> "RankWeights":
        if self.price + self.rating + self.review + self.relevance <= 0:
            return RankWeights()
        return self

    def to_dict(self) -> Dict[str, float]:
        return {"price": self.price, "rating": self.rating, "review": self.review, "relevance": self.relevance}


# 대체 상품 추천용 가중치
SWAP_WEIGHTS = RankWeights(price=0.25, rating=0.35, review=0.25, relevance=0.15)


@dataclass
class RankOutcome:
    """랭킹 결과

    Attributes:
        products: search_rank 1..n 순서
        reasoning: 사람이 읽는 랭킹 근거
        source: "ai" | "heuristic" | "empty"
    """

    products: list[Product]
    reasoning: list[str] = field(default_factory=list)
    source: str = "heuristic"


def _score(
    candidate: RawCandidate,
    price: float,
    weights: RankWeights,
    context: SelectionContext,
    existing: Sequence[Product],
) -> tuple[float, float]:
    """(총점, 호환성 점수)"""
    price_score = heuristics.price_score(price, context.budget)
    rating_score = max(0.0, min(1.0, (candidate.rating or 0) / 5))
    review_score = max(0.0, min(1.0, (candidate.review_count or 0) / 1000))

    base = (
        price_score * weights.price
        + rating_score * weights.rating
        + review_score * weights.review
        + DEFAULT_RELEVANCE * weights.relevance
    )

    compatibility = heuristics.compatibility_score(candidate, existing, context.style)
    bonus = compatibility * COMPATIBILITY_WEIGHT if existing else 0.0
    return base + bonus, compatibility


def _rationale(score: float, compatibility: float, existing: Sequence[Product]) -> str:
    text = f"Scored {round(score * 100)}/100 based on price, rating, and reviews"
    if not existing:
        return text
    level = "excellent" if compatibility > 0.7 else "good" if compatibility > 0.5 else "moderate"
    return f"{text}. Shows {level} compatibility with existing setup ({round(compatibility * 100)}% match)"


def rank_products(
    candidates: Sequence[RawCandidate],
    weights: Optional[RankWeights] = None,
    context: Optional[SelectionContext] = None,
    existing: Sequence[Product] = (),
    prioritize_rating: bool = False,
) -> RankOutcome:
    """휴리스틱 랭킹

    가격이 없는 후보는 min(budget·0.6, budget)로 간주합니다.
    prioritize_rating이면 동점일 때 평점이 높은 쪽을 앞에 둡니다.

    Returns:
        RankOutcome (source="heuristic")
    """
    weights = (weights or RankWeights()).normalized()
    context = context or SelectionContext(budget=1000.0)

    scored = []
    for order, candidate in enumerate(candidates):
        price = candidate.price
        if price is None or not math.isfinite(price):
            price = min(context.budget * 0.6, context.budget)
        score, compatibility = _score(candidate, price, weights, context, existing)

        product = heuristics.to_product(
            candidate,
            category=candidate.category or "",
            rationale=_rationale(score, compatibility, existing),
            pros=heuristics.generate_pros(candidate, existing),
            cons=heuristics.generate_cons(candidate, existing),
            confidence=min(0.9, 0.6 + score * 0.3),
        )
        product.price = price
        tie_breaker = -(candidate.rating or 0) if prioritize_rating else 0
        scored.append((-score, tie_breaker, order, product))

    scored.sort(key=lambda item: item[:3])
    products = [item[3] for item in scored]
    for rank, product in enumerate(products, start=1):
        product.search_rank = rank

    reasoning = [
        "Enhanced ranking using compatibility-aware algorithm",
        "Considered compatibility with existing products in setup" if existing
        else "Ranked based on price, rating, and review count",
        f"Optimized for {context.style.lower()} style preferences",
    ]
    return RankOutcome(products=products, reasoning=reasoning, source="heuristic")


class ProductRanker:
    """AI 랭킹 + 휴리스틱 폴백"""

    def __init__(
        self,
        gemini: Optional[GeminiClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout_s: Optional[float] = None,
    ):
        self.gemini = gemini
        self.retry_policy = retry_policy or RetryPolicy.from_settings(retry_rate_limits=False)
        self.timeout_s = timeout_s or settings.select_timeout_s

    async def rank(
        self,
        candidates: Sequence[RawCandidate],
        weights: Optional[RankWeights] = None,
        context: Optional[SelectionContext] = None,
        existing: Sequence[Product] = (),
        prioritize_rating: bool = False,
        token: Optional[CancellationToken] = None,
    ) -> RankOutcome:
        """후보 랭킹. 빈 목록은 바로 반환"""
        if not candidates:
            return RankOutcome(products=[], reasoning=["No products provided for ranking"], source="empty")

        weights = (weights or RankWeights()).normalized()
        context = context or SelectionContext(budget=1000.0)

        if self.gemini is not None:
            try:
                products, reasoning = await asyncio.wait_for(
                    self.retry_policy.run(
                        "rank_products",
                        lambda: self.gemini.rank_products(candidates, weights.to_dict(), context, existing),
                        token=token,
                    ),
                    timeout=self.timeout_s,
                )
                return RankOutcome(products=products, reasoning=reasoning, source="ai")
            except asyncio.TimeoutError:
                logger.warning(f"[RANKER] AI ranking timed out after {self.timeout_s}s → heuristic")
            except Exception as e:
                if not ExecutionStrategy.should_fall_back(e):
                    raise
                logger.warning(f"[RANKER] AI ranking failed ({ExecutionStrategy.describe(e)}) → heuristic")

        return rank_products(candidates, weights, context, existing, prioritize_rating)
