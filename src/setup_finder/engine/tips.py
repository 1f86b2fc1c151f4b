"""Ghost Tips - 빌드 결과 품질에 맞춘 안내 문구"""

import random
from typing import Optional, Sequence

from setup_finder.utils.resource_loader import load_ghost_tips

NO_RESULT_TIPS = (
    "👻 No products found within budget - try increasing your budget",
    "Consider turning off Amazon-only to see more options",
    "Try a broader search term for better results",
)

AMAZON_ONLY_EXPLANATION = (
    "No Amazon products found for this search. Try disabling 'Amazon only' to see more results."
)

PARTIAL_RESULT_TIPS = (
    "Consider increasing budget for complete setup",
    "All selected items offer great value for money",
)

REROLL_TIPS = (
    "Fresh setup generated! 👻",
    "New products, same great style!",
    "Rerolled with your preferences in mind!",
)

LOCAL_TIP_COUNT = 2


def build_ghost_tips(
    product_count: int,
    need_count: int,
    amazon_only: bool = False,
    rng: Optional[random.Random] = None,
    local_tips: Optional[Sequence[str]] = None,
) -> list[str]:
    """선택 결과 수에 따른 Ghost Tip

    - 0개: 고정 안내 3개 (Amazon-only 빌드는 두 번째를 Amazon 설명으로 교체)
    - 일부: "👻 Found {n} of {m} items within budget" + 고정 안내 2개
    - 전부: 로컬 팁 목록에서 무작위 2개

    Args:
        product_count: 예산 적용 후 상품 수
        need_count: 플랜의 need 수
        amazon_only: Amazon-only 요청 여부
        rng: 테스트용 시드 고정 Random
        local_tips: 성공 시 사용할 팁 목록 (기본: resources/templates.yaml)
    """
    if product_count == 0:
        tips = list(NO_RESULT_TIPS)
        if amazon_only:
            tips[1] = AMAZON_ONLY_EXPLANATION
        return tips

    if product_count < need_count:
        return [f"👻 Found {product_count} of {need_count} items within budget", *PARTIAL_RESULT_TIPS]

    pool = list(local_tips if local_tips is not None else load_ghost_tips())
    if len(pool) <= LOCAL_TIP_COUNT:
        return pool
    return (rng or random).sample(pool, LOCAL_TIP_COUNT)
