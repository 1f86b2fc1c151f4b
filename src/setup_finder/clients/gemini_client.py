"""Gemini REST 클라이언트 (플래닝 / 상품 선택 / 랭킹)

- generateContent 엔드포인트를 공유 curl_cffi 세션으로 호출
- 429 / RESOURCE_EXHAUSTED / "rate limit|quota" → RateLimitException
- 5xx, 빈 응답 → retryable ExternalAPIException
- 그 외 → 재시도 불가 GEMINI_ERROR

재시도/타임아웃/폴백은 호출자(플래너, 셀렉터, 랭커)가 결정합니다.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional, Sequence

from setup_finder.clients.http_client import SharedHttpClient, get_shared_http_client
from setup_finder.core.config import settings
from setup_finder.core.exceptions import (
    ExternalAPIException,
    PlanningException,
    RateLimitException,
)
from setup_finder.core.logging import logger
from setup_finder.engine.models import (
    PLAN_APPROACH_SETUP,
    PLAN_APPROACH_SINGLE,
    Need,
    Plan,
    Product,
    RawCandidate,
    SelectionContext,
)
from setup_finder.planner.allocation import allocate, build_distribution
from setup_finder.selector import heuristics
from setup_finder.utils.edge_cases import EdgeCaseHandler

_FENCED_OBJECT = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")
_BARE_OBJECT = re.compile(r"(\{[\s\S]*\})")
_RATE_LIMIT_TEXT = re.compile(r"429|rate limit|quota", re.IGNORECASE)
_HEX_COLOR = re.compile(r"^#[0-9A-F]{6}$", re.IGNORECASE)
_SLUG = re.compile(r"[^a-z0-9]+")

PLAN_COLORS = (
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4",
    "#FFEAA7", "#DDA0DD", "#98D8C8", "#F7DC6F",
)

MAX_SELECTION_OPTIONS = 12
MAX_RANKING_OPTIONS = 10


def extract_json_block(text: str) -> Dict[str, Any]:
    """응답 텍스트에서 JSON 객체 추출

    ```json ... ``` 펜스를 우선하고, 없으면 첫 '{'부터 마지막 '}'까지를 파싱합니다.

    Raises:
        ValueError: JSON 객체가 없거나 파싱 실패
    """
    match = _FENCED_OBJECT.search(text or "") or _BARE_OBJECT.search(text or "")
    if not match:
        raise ValueError("No JSON found in response")
    parsed = json.loads(match.group(1))
    if not isinstance(parsed, dict):
        raise ValueError("JSON root is not an object")
    return parsed


def validate_color(color: Any, index: int) -> str:
    """#RRGGBB 형식이면 대문자로, 아니면 팔레트에서 결정적으로 선택"""
    if isinstance(color, str) and _HEX_COLOR.match(color.strip()):
        return color.strip().upper()
    return PLAN_COLORS[index % len(PLAN_COLORS)]


def _slugify(name: str, index: int, used: set[str]) -> str:
    base = _SLUG.sub("_", name.lower()).strip("_") or f"need_{index + 1}"
    key = base
    if key in used:
        key = f"{base}_{index + 1}"
    used.add(key)
    return key


def _clamp_priority(value: Any) -> int:
    priority = EdgeCaseHandler.safe_int(value, default=5)
    return max(1, min(10, priority if priority is not None else 5))


def parse_plan_payload(text: str, budget: float) -> Plan:
    """플래닝 응답을 Plan으로 변환

    categories[] 형식과 needs[] 형식을 모두 받습니다.
    priority는 [1,10], 배정액은 0 이상으로 보정한 뒤 합계가 예산과 같도록 재조정합니다.

    Raises:
        PlanningException: JSON이 없거나 카테고리가 비어 있는 경우
    """
    try:
        parsed = extract_json_block(text)
    except ValueError as e:
        raise PlanningException(f"unparseable plan response: {e}") from e

    entries: list[tuple[str, int, float, str]] = []
    if isinstance(parsed.get("needs"), list):
        approach = PLAN_APPROACH_SETUP
        for raw in parsed["needs"]:
            if not isinstance(raw, dict) or not raw.get("name"):
                continue
            entries.append((
                EdgeCaseHandler.safe_str(raw.get("name"), max_length=120),
                _clamp_priority(raw.get("priority", 5)),
                EdgeCaseHandler.safe_float(raw.get("targetPrice"), default=0.0, min_val=0.0) or 0.0,
                EdgeCaseHandler.safe_str(raw.get("rationale") or raw.get("specs"), max_length=200),
            ))
    else:
        approach = PLAN_APPROACH_SINGLE if parsed.get("approach") == PLAN_APPROACH_SINGLE else PLAN_APPROACH_SETUP
        for raw in EdgeCaseHandler.safe_list(parsed.get("categories")):
            if not isinstance(raw, dict) or not raw.get("category"):
                continue
            requirements = [str(r) for r in EdgeCaseHandler.safe_list(raw.get("requirements")) if r]
            entries.append((
                EdgeCaseHandler.safe_str(raw.get("category"), max_length=120),
                _clamp_priority(raw.get("priority")),
                EdgeCaseHandler.safe_float(raw.get("budgetAllocation"), default=0.0, min_val=0.0) or 0.0,
                " ".join(requirements)[:200],
            ))

    if not entries:
        raise PlanningException("plan response contained no categories")

    colors = [
        validate_color(d.get("color") if isinstance(d, dict) else None, i)
        for i, d in enumerate(EdgeCaseHandler.safe_list(parsed.get("budgetDistribution")))
    ]
    amounts = allocate(budget, [e[2] for e in entries], [e[1] for e in entries])

    used_keys: set[str] = set()
    paired = []
    for i, ((name, priority, _, specs), amount) in enumerate(zip(entries, amounts)):
        need = Need(key=_slugify(name, i, used_keys), name=name, target_price=amount,
                    specs=specs, priority=priority)
        paired.append((need, colors[i] if i < len(colors) else validate_color(None, i)))

    paired.sort(key=lambda pair: -pair[0].priority)
    needs = [need for need, _ in paired]

    return Plan(
        needs=needs,
        approach=approach,
        budget_distribution=build_distribution(needs, budget, [color for _, color in paired]),
        fallback_used=False,
        source="ai",
    )


def parse_selection(text: str, candidates: Sequence[RawCandidate], need: Need) -> Optional[Product]:
    """선택 응답 → Product (selectedIndex -1이면 None)

    selectedIndex는 0부터 시작하는 옵션 번호입니다.

    Raises:
        ExternalAPIException: JSON 없음 / 범위 밖 인덱스 (GEMINI_INVALID_SELECTION, 재시도 불가)
    """
    try:
        parsed = extract_json_block(text)
    except ValueError as e:
        raise ExternalAPIException(f"Unparseable selection: {e}", "GEMINI_INVALID_SELECTION", retryable=False) from e

    index = EdgeCaseHandler.safe_int(parsed.get("selectedIndex"), default=None)
    if index is None:
        raise ExternalAPIException("selectedIndex missing", "GEMINI_INVALID_SELECTION", retryable=False)
    if index == -1:
        return None
    if index < 0 or index >= len(candidates):
        raise ExternalAPIException(
            f"selectedIndex {index} out of range (0..{len(candidates) - 1})",
            "GEMINI_INVALID_SELECTION",
            retryable=False,
        )

    confidence = EdgeCaseHandler.safe_float(parsed.get("confidence"), default=0.8)
    return heuristics.to_product(
        candidates[index],
        category=need.name,
        rationale=EdgeCaseHandler.safe_str(parsed.get("rationale"), max_length=600) or "AI-selected best option",
        pros=[str(p) for p in EdgeCaseHandler.safe_list(parsed.get("pros")) if p],
        cons=[str(c) for c in EdgeCaseHandler.safe_list(parsed.get("cons")) if c],
        confidence=EdgeCaseHandler.clamp(confidence if confidence is not None else 0.8),
        search_rank=index + 1,
    )


def parse_rankings(text: str, candidates: Sequence[RawCandidate]) -> tuple[list[Product], list[str]]:
    """랭킹 응답 → (score 내림차순 Product 목록, reasoning)

    Raises:
        ExternalAPIException: JSON 또는 rankings가 없는 경우 (GEMINI_INVALID_RANKING)
    """
    try:
        parsed = extract_json_block(text)
    except ValueError as e:
        raise ExternalAPIException(f"Unparseable ranking: {e}", "GEMINI_INVALID_RANKING", retryable=False) from e

    rankings = [r for r in EdgeCaseHandler.safe_list(parsed.get("rankings")) if isinstance(r, dict)]
    if not rankings:
        raise ExternalAPIException("rankings missing", "GEMINI_INVALID_RANKING", retryable=False)

    rankings.sort(key=lambda r: EdgeCaseHandler.safe_float(r.get("score"), default=0.0), reverse=True)

    products: list[Product] = []
    seen: set[int] = set()
    for ranking in rankings:
        index = EdgeCaseHandler.safe_int(ranking.get("productIndex"), default=None)
        if index is None or not 0 <= index < len(candidates) or index in seen:
            continue
        seen.add(index)
        candidate = candidates[index]
        confidence = EdgeCaseHandler.safe_float(ranking.get("confidence"), default=0.8)
        products.append(heuristics.to_product(
            candidate,
            category=candidate.category or "",
            rationale=EdgeCaseHandler.safe_str(ranking.get("rationale"), max_length=600) or "AI-powered recommendation",
            pros=[str(p) for p in EdgeCaseHandler.safe_list(ranking.get("pros")) if p],
            cons=[str(c) for c in EdgeCaseHandler.safe_list(ranking.get("cons")) if c],
            confidence=EdgeCaseHandler.clamp(confidence if confidence is not None else 0.8),
            search_rank=len(products) + 1,
        ))

    if not products:
        raise ExternalAPIException("rankings referenced no valid products", "GEMINI_INVALID_RANKING", retryable=False)

    reasoning = [str(r) for r in EdgeCaseHandler.safe_list(parsed.get("reasoning")) if r]
    return products, reasoning or ["AI-powered ranking based on multiple criteria"]


def _money(amount: Optional[float]) -> str:
    value = amount or 0
    return f"${int(value)}" if float(value).is_integer() else f"${value:.2f}"


def _existing_summary(existing: Sequence[Product]) -> str:
    return "\n".join(
        f'• {p.category or "Product"}: "{p.title}" - {_money(p.price)} - {p.rating}⭐ - {p.merchant}'
        for p in existing
    )


def _options_text(candidates: Sequence[RawCandidate], with_merchant: bool = True) -> str:
    lines = []
    for i, c in enumerate(candidates):
        line = f'{i + 1}. "{c.title}" - {_money(c.price)} - {c.rating or 0}⭐ ({c.review_count or 0} reviews)'
        if with_merchant:
            line += f" - {c.merchant or 'Unknown'}"
        lines.append(line)
    return "\n".join(lines)


def build_plan_prompt(query: str, budget: float, style: str, currency: str) -> str:
    return f"""Create a {style.lower()} product plan for "{query}" with {_money(budget)} budget (currency: {currency}).

Return JSON only:
{{
  "approach": "setup" | "single",
  "categories": [
    {{
      "category": "string",
      "priority": 1-10,
      "budgetAllocation": number,
      "searchTerms": ["term1", "term2"],
      "requirements": ["req1", "req2"]
    }}
  ],
  "budgetDistribution": [
    {{
      "category": "string",
      "amount": number,
      "percentage": number,
      "color": "#FF6B6B"
    }}
  ],
  "totalItems": number
}}

Rules:
- Setup: 3-8 categories for room/workspace queries
- Single: 1-3 variations for specific items
- Budget must total {budget}
- Use colors: {", ".join(PLAN_COLORS[:4])}"""


def build_selection_prompt(
    need: Need,
    candidates: Sequence[RawCandidate],
    context: SelectionContext,
    existing: Sequence[Product],
) -> str:
    context_section = ""
    if existing:
        context_section = f"""
EXISTING PRODUCTS IN SETUP:
{_existing_summary(existing)}

COMPATIBILITY REQUIREMENTS:
- Must complement existing products, not duplicate functionality
- Should match {context.style} aesthetic and quality level
- Consider brand ecosystem benefits (same brand = bonus points)
- Ensure technical compatibility (ports, power, space requirements)
- Maintain consistent quality tier across all products
- Fill gaps in the current setup rather than redundant items

"""

    extra_criteria = ""
    if existing:
        extra_criteria = (
            "6. Setup Compatibility: Works well with existing products\n"
            "7. Brand Consistency: Bonus for matching existing brands\n"
        )

    return f"""You are selecting the BEST {need.name} for a {context.style.lower()} setup with {_money(context.budget)} total budget.
{context_section}
TARGET: {need.name} with budget of {_money(need.target_price)}
AVAILABLE OPTIONS:
{_options_text(candidates[:MAX_SELECTION_OPTIONS])}

SELECTION CRITERIA (in priority order):
1. Budget Fit: Must be ≤ {_money(need.target_price)}
2. Value Proposition: Best price-to-quality ratio
3. Quality Indicators: High rating (4.0+) with good review count (100+)
4. Style Match: Appropriate for {context.style.lower()} aesthetic
5. Merchant Reliability: Trusted seller with good shipping
{extra_criteria}
Return JSON:
{{
  "selectedIndex": number,
  "rationale": "why this is the optimal choice for the setup",
  "pros": ["advantage 1", "compatibility benefit 2", "value proposition 3"],
  "cons": ["limitation 1", "potential concern 2"],
  "confidence": 0.0-1.0,
  "valueScore": 0.0-1.0,
  "compatibilityScore": 0.0-1.0
}}

selectedIndex is zero-based (option number minus 1).
If no product fits the budget or requirements, return: {{"selectedIndex": -1, "rationale": "No suitable products meet the criteria"}}"""


def build_ranking_prompt(
    candidates: Sequence[RawCandidate],
    weights: Dict[str, float],
    context: SelectionContext,
    existing: Sequence[Product],
) -> str:
    context_section = ""
    if existing:
        context_section = f"""
EXISTING PRODUCTS IN SETUP:
{_existing_summary(existing)}

COMPATIBILITY ANALYSIS REQUIRED:
- Consider how new products complement existing ones
- Avoid redundant functionality unless upgrading
- Ensure style/aesthetic consistency ({context.style})
- Consider brand ecosystem benefits

"""
    compatibility_line = "- Compatibility: 20% - How well it works with existing products\n" if existing else ""

    return f"""You are an expert product analyst ranking products for a {context.style.lower()} user with {_money(context.budget)} total budget.
{context_section}
PRODUCTS TO RANK:
{_options_text(candidates[:MAX_RANKING_OPTIONS])}

RANKING CRITERIA (weights):
- Price Value: {round(weights.get("price", 0) * 100)}% - Best value for money within budget
- Rating Quality: {round(weights.get("rating", 0) * 100)}% - User satisfaction and reliability
- Review Count: {round(weights.get("review", 0) * 100)}% - Product popularity and trust
- Relevance: {round(weights.get("relevance", 0) * 100)}% - Fit for user needs and style
{compatibility_line}
Return JSON (productIndex is zero-based):
{{
  "rankings": [
    {{
      "productIndex": number,
      "score": number,
      "rationale": "why this product ranks here",
      "pros": ["advantage 1", "advantage 2"],
      "cons": ["limitation 1"],
      "confidence": 0.0-1.0,
      "compatibilityScore": 0.0-1.0,
      "valueScore": 0.0-1.0
    }}
  ],
  "reasoning": ["Overall ranking strategy", "Key decision factors"]
}}"""


class GeminiClient:
    """Gemini generateContent 클라이언트

    Usage:
        client = GeminiClient()
        plan = await client.generate_plan("office setup", 1000, "Premium", "USD")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        http_client: Optional[SharedHttpClient] = None,
        model: Optional[str] = None,
    ):
        """
        Raises:
            ExternalAPIException: API 키 누락 (MISSING_API_KEY, 재시도 불가)
        """
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        if not self.api_key:
            raise ExternalAPIException("Gemini API key is required", "MISSING_API_KEY", retryable=False)

        self.http_client = http_client or get_shared_http_client()
        self.model = model or settings.gemini_text_model
        self.endpoint = f"{settings.gemini_base_url.rstrip('/')}/models/{self.model}:generateContent"

    async def generate_content(self, prompt: str, timeout_s: Optional[float] = None) -> str:
        """프롬프트 1회 호출 후 텍스트 반환

        Raises:
            RateLimitException: GEMINI_RATE_LIMIT
            ExternalAPIException: GEMINI_{status} (5xx, retryable), EMPTY_RESPONSE (retryable), GEMINI_ERROR
            NetworkException: 전송 계층 실패
        """
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": settings.gemini_temperature},
        }
        response = await self.http_client.post_json(
            self.endpoint,
            payload,
            params={"key": self.api_key},
            timeout_s=timeout_s or settings.plan_timeout_s,
        )

        error = (response.data or {}).get("error") if isinstance(response.data, dict) else None
        error = error if isinstance(error, dict) else {}
        status_code = str(error.get("status") or "")
        message = str(error.get("message") or response.reason or "")

        if (
            response.status == 429
            or status_code == "RESOURCE_EXHAUSTED"
            or (not response.ok and _RATE_LIMIT_TEXT.search(message))
        ):
            raise RateLimitException("Gemini rate limit", "GEMINI_RATE_LIMIT", {"status": response.status})
        if response.status >= 500:
            raise ExternalAPIException("Gemini server error", f"GEMINI_{response.status}", retryable=True)
        if not response.ok or error:
            raise ExternalAPIException(f"Gemini error: {message or response.status}", "GEMINI_ERROR", retryable=False)

        text = self._extract_text(response.data)
        if not text:
            raise ExternalAPIException("Empty response from Gemini", "EMPTY_RESPONSE", retryable=True)
        return text

    @staticmethod
    def _extract_text(data: Any) -> str:
        if not isinstance(data, dict):
            return ""
        candidates = EdgeCaseHandler.safe_list(data.get("candidates"))
        if not candidates or not isinstance(candidates[0], dict):
            return ""
        parts = EdgeCaseHandler.safe_list((candidates[0].get("content") or {}).get("parts"))
        return "".join(str(p.get("text", "")) for p in parts if isinstance(p, dict)).strip()

    async def generate_plan(self, query: str, budget: float, style: str, currency: str = "USD") -> Plan:
        """AI 플랜 생성

        Raises:
            RateLimitException / ExternalAPIException / NetworkException: generate_content 참고
            PlanningException: 응답 파싱 실패
        """
        text = await self.generate_content(build_plan_prompt(query, budget, style, currency),
                                           timeout_s=settings.plan_timeout_s)
        plan = parse_plan_payload(text, budget)
        logger.info(f"[GEMINI] Plan for '{query}': {len(plan.needs)} needs ({plan.approach})")
        return plan

    async def select_best_product(
        self,
        need: Need,
        candidates: Sequence[RawCandidate],
        context: SelectionContext,
        existing: Sequence[Product] = (),
    ) -> Optional[Product]:
        """need 하나에 대한 AI 선택 (candidates는 예산 필터가 끝난 목록)"""
        options = list(candidates[:MAX_SELECTION_OPTIONS])
        text = await self.generate_content(build_selection_prompt(need, options, context, existing),
                                           timeout_s=settings.select_timeout_s)
        return parse_selection(text, options, need)

    async def rank_products(
        self,
        candidates: Sequence[RawCandidate],
        weights: Dict[str, float],
        context: SelectionContext,
        existing: Sequence[Product] = (),
    ) -> tuple[list[Product], list[str]]:
        """AI 랭킹 (상위 MAX_RANKING_OPTIONS 개만 프롬프트에 포함)"""
        options = list(candidates[:MAX_RANKING_OPTIONS])
        text = await self.generate_content(build_ranking_prompt(options, weights, context, existing),
                                           timeout_s=settings.select_timeout_s)
        return parse_rankings(text, options)
