"""단일 상품 쿼리 감지 및 가격대(tier) 플랜"""

import re

from setup_finder.engine.models import PLAN_APPROACH_SINGLE, Need, Plan
from setup_finder.planner.allocation import allocate, build_distribution, sort_by_priority


SETUP_KEYWORDS = (
    "setup", "room", "office", "bedroom", "kitchen", "living room",
    "workspace", "studio", "home office", "apartment",
    "desk setup", "work from home", "home workspace", "office setup",
)

# 도메인 수식어: 단독이면 셋업, 단일 상품 명사와 함께면 단일 상품 ("gaming chair")
DOMAIN_QUALIFIERS = ("gaming",)

# 이 명사가 포함되면 단어 수와 관계없이 단일 상품
SINGLE_ITEM_NOUNS = frozenset({
    "chair", "monitor", "keyboard", "mouse", "headset", "headphones", "laptop",
    "desk", "lamp", "sofa", "couch", "mattress", "tv", "television", "webcam",
    "microphone", "speaker", "speakers", "router", "tablet", "phone", "printer",
    "pillow", "blender", "microwave", "refrigerator", "fridge", "rug", "dresser",
    "nightstand", "bookshelf", "earbuds", "camera", "console", "controller",
})

STOP_WORDS = frozenset({
    "a", "an", "the", "for", "with", "and", "or", "of", "to", "in", "on",
    "best", "good", "cheap", "new", "under", "my", "me", "i", "need", "want",
})

_WORD_PATTERN = re.compile(r"[a-z0-9]+")

# (예산 상한, tier 비율) - 예산이 작을수록 tier 수를 줄임
_TIER_RULES = (
    (30, (100,)),
    (100, (70, 30)),
)
_DEFAULT_TIERS = (60, 30, 10)

_TIER_TEMPLATES = (
    ("item", "{query}", "Within budget Good quality", 10),
    ("item_alternative", "{query} alternative brand", "Alternative brand or style", 9),
    ("item_budget", "{query} budget", "Budget variant Good value", 8),
)


def meaningful_words(query: str) -> list[str]:
    return [w for w in _WORD_PATTERN.findall((query or "").lower()) if w not in STOP_WORDS]


def is_single_item_query(query: str) -> bool:
    """단일 상품 쿼리 여부

    셋업 키워드가 있으면 셋업입니다. 그 외에는 단일 상품 명사를 포함하거나,
    도메인 수식어("gaming") 없이 의미 있는 단어가 2개 이하이면 단일 상품입니다.

    Examples:
        "gaming chair" → True
        "gaming" → False
        "home office" → False
        "ergonomic chair" → True
    """
    lowered = (query or "").lower()
    if any(keyword in lowered for keyword in SETUP_KEYWORDS):
        return False

    words = meaningful_words(lowered)
    if any(word in SINGLE_ITEM_NOUNS for word in words):
        return True
    if any(qualifier in lowered for qualifier in DOMAIN_QUALIFIERS):
        return False
    return len(words) <= 2


def tier_shares(budget: float) -> tuple[int, ...]:
    for limit, shares in _TIER_RULES:
        if budget < limit:
            return shares
    return _DEFAULT_TIERS


def create_single_item_plan(query: str, budget: float) -> Plan:
    """단일 상품 tier 플랜 (AI 호출 없음)

    메인 60% / 다른 브랜드·스타일 30% / 저가형 10%.
    30 미만 예산은 1개, 100 미만은 70/30 두 개.
    """
    shares = tier_shares(budget)
    templates = _TIER_TEMPLATES[: len(shares)]
    amounts = allocate(budget, shares, [t[3] for t in templates])

    clean_query = " ".join((query or "").split())
    needs = sort_by_priority([
        Need(
            key=key,
            name=name.format(query=clean_query),
            target_price=amount,
            specs=specs,
            priority=priority,
        )
        for (key, name, specs, priority), amount in zip(templates, amounts)
    ])

    return Plan(
        needs=needs,
        approach=PLAN_APPROACH_SINGLE,
        budget_distribution=build_distribution(needs, budget),
        fallback_used=False,
        source="single_item",
    )
