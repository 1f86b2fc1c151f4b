"""Plan / Rank Routes - 파이프라인 단계 단독 호출"""

from fastapi import APIRouter, Depends

from setup_finder.api.dependencies import get_planner, get_ranker
from setup_finder.api.errors import error_response
from setup_finder.core.exceptions import EXTERNAL_API_ERROR, SetupFinderException
from setup_finder.core.logging import logger
from setup_finder.planner.planner import NeedPlanner
from setup_finder.schemas.build_schema import (
    PlanRequest,
    PlanResponse,
    ProductModel,
    RankRequest,
    RankResponse,
)
from setup_finder.selector.ranking import ProductRanker

router = APIRouter(tags=["plan"])


@router.post("/plan", response_model=PlanResponse)
async def create_plan(request: PlanRequest, planner: NeedPlanner = Depends(get_planner)):
    """플랜만 생성 (AI → 실패 시 템플릿 폴백)"""
    try:
        plan = await planner.plan(request.query, request.budget, request.style, request.currency)
    except SetupFinderException as e:
        logger.error(f"[API] Planning failed: {e}")
        return error_response("Planning service failed", EXTERNAL_API_ERROR, 502, code=e.error_code)

    return PlanResponse.from_plan(plan)


@router.post("/rank", response_model=RankResponse)
async def rank_products(request: RankRequest, ranker: ProductRanker = Depends(get_ranker)):
    """후보 랭킹 (빈 목록은 바로 반환)"""
    if not request.products:
        return RankResponse(ranked_products=[], reasoning=["No products provided for ranking"])

    candidates = [p.to_candidate() for p in request.products]
    preferences = request.user_preferences
    try:
        outcome = await ranker.rank(
            candidates,
            request.criteria.to_weights(),
            preferences.to_context(),
            prioritize_rating=preferences.prioritize_rating,
        )
    except SetupFinderException as e:
        logger.error(f"[API] Ranking failed: {e}")
        return error_response("Ranking service failed", EXTERNAL_API_ERROR, 502, code=e.error_code)

    return RankResponse(
        ranked_products=[ProductModel.from_product(p) for p in outcome.products],
        reasoning=outcome.reasoning,
    )
