"""Domain Models - Need / RawCandidate / Product / Plan

빌드 파이프라인의 단계 사이를 오가는 도메인 레코드입니다.
HTTP 직렬화는 schemas/build_schema.py 에서 camelCase로 처리합니다.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Optional


@dataclass(frozen=True)
class Need:
    """예산이 배정된 상품 카테고리 (플랜의 한 항목)

    Attributes:
        key: 카테고리 식별자 (예: "monitor")
        name: 검색에 사용할 이름 (예: "4K Gaming Monitor 144Hz")
        target_price: 이 need에 배정된 예산 상한
        specs: 검색어/프롬프트에 붙는 사양 문자열
        priority: 1~10, 높을수록 필수
    """

    key: str
    name: str
    target_price: float
    specs: str = ""
    priority: int = 5

    def search_query(self) -> str:
        """SerpAPI 검색어

        이름 + 20자 이하의 짧은 사양 + "under {예산}" 형태입니다.
        """
        parts = [self.name]
        short_specs = self.specs.strip() if self.specs else ""
        if short_specs and len(short_specs) <= 20:
            parts.append(short_specs)
        parts.append(f"under {round(self.target_price)}")
        return " ".join(parts)


@dataclass
class RawCandidate:
    """정규화된(아직 선택되지 않은) 마켓플레이스 검색 결과"""

    id: str
    title: str
    url: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    merchant: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    image: Optional[str] = None
    category: Optional[str] = None
    ship_region: Optional[str] = None
    # URL 해석(google_product)에 필요한 SerpAPI 식별자
    serpapi_product_id: Optional[str] = None
    serpapi_product_api: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawCandidate":
        known = {k: data.get(k) for k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class Product:
    """선택되고 근거가 붙은 추천 상품

    Attributes:
        confidence: 0~1 선택 신뢰도
        search_rank: 예산 초과 시 정리 순서 (1 = 가장 필수)
    """

    id: str
    title: str
    price: float
    currency: str = "USD"
    merchant: str = "Unknown"
    rating: float = 0.0
    review_count: int = 0
    image_url: str = ""
    product_url: str = "#"
    rationale: str = ""
    category: str = ""
    pros: list[str] = field(default_factory=list)
    cons: list[str] = field(default_factory=list)
    confidence: float = 0.7
    search_rank: int = 1

    def __post_init__(self):
        """confidence 범위 보정"""
        self.confidence = max(0.0, min(1.0, float(self.confidence)))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        known = {k: data[k] for k in cls.__dataclass_fields__ if k in data}
        known["pros"] = list(known.get("pros") or [])
        known["cons"] = list(known.get("cons") or [])
        return cls(**known)


@dataclass
class BudgetSlice:
    """예산 차트의 한 조각"""

    category: str
    amount: float
    percentage: int
    color: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BudgetSlice":
        return cls(
            category=data["category"],
            amount=data["amount"],
            percentage=data["percentage"],
            color=data["color"],
        )


PLAN_APPROACH_SETUP = "setup"
PLAN_APPROACH_SINGLE = "single"


@dataclass
class Plan:
    """need 목록과 예산 분배

    needs는 priority 내림차순이며 target_price 합계는 예산과 같습니다.

    Attributes:
        approach: "setup" | "single"
        fallback_used: AI 플랜 대신 템플릿을 썼는지 여부
        source: "ai" | "template" | "single_item"
    """

    needs: list[Need]
    approach: str = PLAN_APPROACH_SETUP
    budget_distribution: list[BudgetSlice] = field(default_factory=list)
    fallback_used: bool = False
    source: str = "ai"

    @property
    def is_setup(self) -> bool:
        return self.approach == PLAN_APPROACH_SETUP and len(self.needs) > 1

    @property
    def total_target(self) -> float:
        return sum(need.target_price for need in self.needs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "needs": [asdict(need) for need in self.needs],
            "approach": self.approach,
            "budget_distribution": [s.to_dict() for s in self.budget_distribution],
            "fallback_used": self.fallback_used,
            "source": self.source,
        }


@dataclass(frozen=True)
class SelectionContext:
    """셀렉터/랭커에 전달되는 요청 컨텍스트"""

    budget: float
    style: str = "Casual"
    region: str = "US"
    currency: str = "USD"

    @property
    def is_premium(self) -> bool:
        return self.style == "Premium"


RESULTS_MODE_SINGLE = "Single"
RESULTS_MODE_MULTIPLE = "Multiple"

# need 하나당 요청할 후보 수 (Single 이 Multiple 보다 작음)
CANDIDATE_POOL_SIZES = {RESULTS_MODE_SINGLE: 10, RESULTS_MODE_MULTIPLE: 15}


@dataclass(frozen=True)
class BuildOptions:
    """빌드 요청 설정 (검증은 schemas/build_schema.py 에서 끝난 상태)"""

    budget: float
    style: str = "Casual"
    currency: str = "USD"
    results_mode: str = RESULTS_MODE_MULTIPLE
    region: str = "US"
    amazon_only: bool = False

    @property
    def candidate_limit(self) -> int:
        return CANDIDATE_POOL_SIZES.get(self.results_mode, CANDIDATE_POOL_SIZES[RESULTS_MODE_MULTIPLE])

    def selection_context(self) -> SelectionContext:
        return SelectionContext(budget=self.budget, style=self.style, region=self.region, currency=self.currency)

    def fingerprint_fields(self) -> dict[str, Any]:
        """빌드 캐시 키에 들어가는 설정 (요청 JSON과 같은 camelCase 이름)"""
        return {
            "style": self.style,
            "budget": self.budget,
            "currency": self.currency,
            "resultsMode": self.results_mode,
            "region": self.region,
            "amazonOnly": self.amazon_only,
        }
