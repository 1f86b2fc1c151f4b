"""휴리스틱 점수 / 근거 생성

AI 선택이 실패했을 때의 결정적 폴백이자 AI 프롬프트 평가 기준의 바탕입니다.

점수:
    base = rating · ln(reviews + 1) / max(price, 1)
    + 0.2   이미 선택된 상품과 브랜드 일치
    + 0.1   판매처 일치
    + 0.15  평균 평점과 0.5 이내
    ± 0.1   아직 없는 카테고리면 +, 이미 있으면 -
"""

import math
from typing import Optional, Sequence
from urllib.parse import quote, urlparse

from setup_finder.engine.models import Product, RawCandidate

COMMON_BRANDS = (
    "Apple", "Samsung", "Sony", "LG", "Dell", "HP", "Lenovo", "ASUS", "Acer",
    "Microsoft", "Logitech", "Razer", "Corsair", "SteelSeries", "HyperX",
    "IKEA", "Herman Miller", "Steelcase", "Amazon", "Google", "Philips",
)

# (카테고리, 제목 키워드) - 위에서부터 첫 매칭
_CATEGORY_RULES = (
    ("monitor", ("monitor", "display", "screen")),
    ("keyboard", ("keyboard",)),
    ("mouse", ("mouse",)),
    ("chair", ("chair",)),
    ("desk", ("desk",)),
    ("audio", ("headset", "headphone")),
    ("computer", ("laptop", "computer", "pc")),
    ("speaker", ("speaker",)),
    ("camera", ("webcam", "camera")),
    ("microphone", ("microphone", "mic")),
)

BRAND_MATCH_BONUS = 0.2
MERCHANT_MATCH_BONUS = 0.1
RATING_TIER_BONUS = 0.15
RATING_TIER_TOLERANCE = 0.5
CATEGORY_GAP_BONUS = 0.1

MAX_PROS = 4
MAX_CONS = 3

# 플레이스홀더 이미지 (카테고리 키워드 → 배경색, 아이콘)
_PLACEHOLDER_STYLES = (
    ("gaming", "6366f1", "🎮"),
    ("monitor", "3b82f6", "🖥️"),
    ("chair", "8b5cf6", "🪑"),
    ("desk", "10b981", "🪑"),
    ("keyboard", "f59e0b", "⌨️"),
    ("mouse", "ef4444", "🖱️"),
    ("headset", "ec4899", "🎧"),
    ("laptop", "6b7280", "💻"),
    ("office", "059669", "🏢"),
    ("storage", "7c3aed", "📦"),
    ("lighting", "f97316", "💡"),
)
_DEFAULT_PLACEHOLDER = ("6b7280", "📦")


def extract_brand(title: Optional[str]) -> Optional[str]:
    """제목에서 알려진 브랜드 추출 (대소문자 무시, 목록 순서상 첫 매칭)"""
    lowered = (title or "").lower()
    for brand in COMMON_BRANDS:
        if brand.lower() in lowered:
            return brand
    return None


def categorize_product(title: Optional[str]) -> str:
    """제목 키워드로 상품 카테고리 분류 (매칭 없으면 "other")"""
    lowered = (title or "").lower()
    for category, keywords in _CATEGORY_RULES:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "other"


def base_score(candidate: RawCandidate) -> float:
    rating = candidate.rating or 0.0
    reviews = candidate.review_count or 0
    price = candidate.price or 1.0
    return (rating * math.log(reviews + 1)) / max(price, 1.0)


def compatibility_bonus(candidate: RawCandidate, existing: Sequence[Product]) -> float:
    """이미 선택된 상품 기준 호환성 보너스 (existing이 비면 0)"""
    if not existing:
        return 0.0

    bonus = 0.0
    brand = extract_brand(candidate.title)
    if brand and brand in {extract_brand(p.title) for p in existing}:
        bonus += BRAND_MATCH_BONUS

    if candidate.merchant and candidate.merchant in {p.merchant for p in existing}:
        bonus += MERCHANT_MATCH_BONUS

    mean_rating = sum(p.rating for p in existing) / len(existing)
    if abs((candidate.rating or 0.0) - mean_rating) <= RATING_TIER_TOLERANCE:
        bonus += RATING_TIER_BONUS

    existing_categories = {categorize_product(p.title) for p in existing}
    if categorize_product(candidate.title) in existing_categories:
        bonus -= CATEGORY_GAP_BONUS
    else:
        bonus += CATEGORY_GAP_BONUS

    return bonus


def selection_score(candidate: RawCandidate, existing: Sequence[Product] = ()) -> float:
    return base_score(candidate) + compatibility_bonus(candidate, existing)


def pick_best(candidates: Sequence[RawCandidate], existing: Sequence[Product] = ()) -> Optional[tuple[RawCandidate, float]]:
    """최고 점수 후보 (동점이면 먼저 나온 후보)"""
    best: Optional[tuple[RawCandidate, float]] = None
    for candidate in candidates:
        score = selection_score(candidate, existing)
        if best is None or score > best[1]:
            best = (candidate, score)
    return best


def price_score(price: Optional[float], budget: Optional[float]) -> float:
    """예산 대비 가격 점수

    예산 초과 0, 예산의 10% 미만 0.3, 그 외 1 - 0.7·(price/budget).
    가격이 없으면 중립값 0.6.
    """
    b = budget if budget and budget > 0 and math.isfinite(budget) else 1000.0
    if price is None or not math.isfinite(price):
        return 0.6
    if price > b:
        return 0.0
    if price < b * 0.1:
        return 0.3
    return max(0.0, min(1.0, 1 - (price / b) * 0.7))


def compatibility_score(
    candidate: RawCandidate,
    existing: Sequence[Product],
    style: str = "Casual",
) -> float:
    """랭킹용 0~1 호환성 점수 (중립 0.5에서 시작)"""
    if not existing:
        return 0.8

    score = 0.5
    brand = extract_brand(candidate.title)
    if brand and brand in {extract_brand(p.title) for p in existing}:
        score += 0.2
    if candidate.merchant and candidate.merchant in {p.merchant for p in existing}:
        score += 0.1

    if style == "Premium":
        mean_price = sum(p.price for p in existing) / len(existing)
        if (candidate.price or 0) >= mean_price * 0.8:
            score += 0.15

    mean_rating = sum(p.rating for p in existing) / len(existing)
    if abs((candidate.rating or 0) - mean_rating) <= RATING_TIER_TOLERANCE:
        score += 0.15

    existing_categories = {categorize_product(p.title) for p in existing}
    if categorize_product(candidate.title) in existing_categories:
        score -= 0.1
    else:
        score += 0.1

    return max(0.0, min(1.0, score))


def generate_pros(candidate: RawCandidate, existing: Sequence[Product] = ()) -> list[str]:
    pros: list[str] = []
    rating = candidate.rating or 0
    reviews = candidate.review_count or 0

    if rating >= 4.5:
        pros.append("Excellent rating")
    elif rating >= 4.0:
        pros.append("Good rating")

    if reviews >= 1000:
        pros.append("Well-reviewed")
    elif reviews >= 100:
        pros.append("Decent review count")

    if candidate.merchant == "Amazon":
        pros.append("Fast shipping available")

    pros = pros[:3]

    if existing:
        brand = extract_brand(candidate.title)
        if brand and brand in {extract_brand(p.title) for p in existing}:
            pros.append("Brand ecosystem compatibility")
        if categorize_product(candidate.title) not in {categorize_product(p.title) for p in existing}:
            pros.append("Fills gap in current setup")
        if candidate.merchant and any(p.merchant == candidate.merchant for p in existing):
            pros.append("Consistent shopping experience")

    return pros[:MAX_PROS]


def generate_cons(candidate: RawCandidate, existing: Sequence[Product] = ()) -> list[str]:
    cons: list[str] = []
    if (candidate.rating or 0) < 3.5:
        cons.append("Lower rating")
    if (candidate.review_count or 0) < 50:
        cons.append("Limited reviews")

    if existing:
        if categorize_product(candidate.title) in {categorize_product(p.title) for p in existing}:
            cons.append("May be redundant with existing items")
        brand = extract_brand(candidate.title)
        if brand and brand not in {extract_brand(p.title) for p in existing}:
            cons.append("Different brand from existing setup")

    return cons[:MAX_CONS]


def selection_rationale(candidate: RawCandidate, existing: Sequence[Product] = ()) -> str:
    rationale = "Selected based on best value for money"

    if existing:
        brand = extract_brand(candidate.title)
        if brand and brand in {extract_brand(p.title) for p in existing}:
            rationale += f" and brand consistency with existing {brand} products"
        else:
            rationale += " and compatibility with existing setup"

    rating = candidate.rating or 0
    if rating >= 4.5:
        rationale += ". Excellent user ratings indicate high quality"
    elif rating >= 4.0:
        rationale += ". Good user ratings provide confidence"

    return rationale


def safe_image_url(url: Optional[str]) -> Optional[str]:
    """http/https URL만 통과"""
    if not url:
        return None
    try:
        scheme = urlparse(url).scheme
    except ValueError:
        return None
    return url if scheme in ("http", "https") else None


def placeholder_image(title: str, category: str) -> str:
    """카테고리별 색상/아이콘 플레이스홀더 URL"""
    lowered = (category or "").lower()
    color, icon = next(
        ((c, i) for keyword, c, i in _PLACEHOLDER_STYLES if keyword in lowered),
        _DEFAULT_PLACEHOLDER,
    )
    return f"https://via.placeholder.com/400x300/{color}/ffffff?text={quote(icon)}+{quote((title or '')[:30])}"


def image_for(candidate: RawCandidate, category: str) -> str:
    return safe_image_url(candidate.image) or placeholder_image(candidate.title, category or "Product")


def to_product(
    candidate: RawCandidate,
    category: str,
    rationale: str,
    pros: list[str],
    cons: list[str],
    confidence: float,
    search_rank: int = 1,
) -> Product:
    """선택된 후보를 Product로 변환"""
    return Product(
        id=candidate.id,
        title=candidate.title,
        price=candidate.price or 0.0,
        currency=candidate.currency or "USD",
        merchant=candidate.merchant or "Unknown",
        rating=candidate.rating or 0.0,
        review_count=candidate.review_count or 0,
        image_url=image_for(candidate, category),
        product_url=candidate.url or "#",
        rationale=rationale,
        category=category,
        pros=pros,
        cons=cons,
        confidence=confidence,
        search_rank=search_rank,
    )
