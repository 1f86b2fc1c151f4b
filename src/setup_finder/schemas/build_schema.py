"""Pydantic 스키마 정의 (HTTP 요청/응답, camelCase)

도메인 레코드(engine.models)는 snake_case dataclass이고,
HTTP 경계에서는 alias_generator로 camelCase JSON을 주고받습니다.
"""
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from setup_finder.engine.models import (
    RESULTS_MODE_MULTIPLE,
    BuildOptions,
    BudgetSlice,
    Need,
    Plan,
    Product,
    RawCandidate,
    SelectionContext,
)
from setup_finder.engine.result import BuildResult
from setup_finder.selector.ranking import RankWeights
from setup_finder.utils.currency import SUPPORTED_CURRENCIES

MAX_QUERY_LENGTH = 200
MAX_BUDGET = 1_000_000

Style = Literal["Premium", "Casual"]
ResultsMode = Literal["Single", "Multiple"]


class CamelModel(BaseModel):
    """camelCase alias 공통 설정 (snake_case 이름으로도 생성 가능)"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _validate_query(v: str) -> str:
    if not v or not v.strip():
        raise ValueError("query must not be blank")
    return v.strip()


def _validate_currency(v: str) -> str:
    code = (v or "").upper()
    if code not in SUPPORTED_CURRENCIES:
        raise ValueError(f"unsupported currency: {v}")
    return code


# ---------------------------------------------------------------------------
# 공통 응답 모델
# ---------------------------------------------------------------------------

class ProductModel(CamelModel):
    """추천 상품"""
    id: str
    title: str
    price: float = Field(..., ge=0)
    currency: str = "USD"
    merchant: str = "Unknown"
    rating: float = Field(0.0, ge=0)
    review_count: int = Field(0, ge=0)
    image_url: str = ""
    product_url: str = "#"
    rationale: str = ""
    category: str = ""
    pros: List[str] = Field(default_factory=list)
    cons: List[str] = Field(default_factory=list)
    confidence: float = Field(0.7, ge=0, le=1)
    search_rank: int = Field(1, ge=1)

    @classmethod
    def from_product(cls, product: Product) -> "ProductModel":
        return cls(**product.to_dict())


class BudgetSliceModel(CamelModel):
    """예산 차트 조각"""
    category: str
    amount: float = Field(..., ge=0)
    percentage: int = Field(..., ge=0, le=100)
    color: str

    @classmethod
    def from_slice(cls, budget_slice: BudgetSlice) -> "BudgetSliceModel":
        return cls(**budget_slice.to_dict())


class RawCandidateModel(CamelModel):
    """정규화된 검색 후보 (/search 응답, /rank 요청)"""
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    url: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    merchant: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    review_count: Optional[int] = Field(None, ge=0)
    image: Optional[str] = None
    category: Optional[str] = None
    ship_region: Optional[str] = None

    @classmethod
    def from_candidate(cls, candidate: RawCandidate) -> "RawCandidateModel":
        data = candidate.to_dict()
        return cls(**{k: data.get(k) for k in cls.model_fields})

    def to_candidate(self) -> RawCandidate:
        return RawCandidate(**self.model_dump())


# ---------------------------------------------------------------------------
# /build, /reroll
# ---------------------------------------------------------------------------

class BuildSettings(CamelModel):
    """빌드 요청 설정"""
    style: Style = Field("Casual", description="Premium | Casual")
    budget: float = Field(..., gt=0, le=MAX_BUDGET, description="총 예산 (0 초과, 100만 이하)")
    currency: str = Field("USD", description="지원 통화 코드")
    results_mode: ResultsMode = Field(RESULTS_MODE_MULTIPLE, description="Single | Multiple")
    region: str = Field("US", max_length=8)
    amazon_only: bool = False

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return _validate_currency(v)

    def to_options(self) -> BuildOptions:
        return BuildOptions(
            budget=self.budget,
            style=self.style,
            currency=self.currency,
            results_mode=self.results_mode,
            region=self.region,
            amazon_only=self.amazon_only,
        )


class BuildRequest(CamelModel):
    """셋업 빌드 요청"""
    query: str = Field(..., min_length=1, max_length=MAX_QUERY_LENGTH, description="자연어 쇼핑 요청")
    settings: BuildSettings

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        """공백만으로 된 검색어 거부"""
        return _validate_query(v)


class RerollRequest(CamelModel):
    """같은 설정으로 새 빌드 요청 (캐시 우회)"""
    original_query: str = Field(..., min_length=1, max_length=MAX_QUERY_LENGTH)
    settings: BuildSettings
    exclude_ids: List[str] = Field(default_factory=list)

    @field_validator("original_query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        return _validate_query(v)


class BuildResponse(CamelModel):
    """빌드 응답"""
    products: List[ProductModel]
    budget_chart: Optional[List[BudgetSliceModel]] = None
    ghost_tips: List[str]
    search_metadata: dict[str, Any]
    is_setup: bool
    search_id: Optional[str] = None

    @classmethod
    def from_result(cls, result: BuildResult) -> "BuildResponse":
        chart = None
        if result.budget_chart is not None:
            chart = [BudgetSliceModel.from_slice(s) for s in result.budget_chart]
        return cls(
            products=[ProductModel.from_product(p) for p in result.products],
            budget_chart=chart,
            ghost_tips=list(result.ghost_tips),
            search_metadata=dict(result.search_metadata),
            is_setup=result.is_setup,
            search_id=result.search_id or None,
        )


# ---------------------------------------------------------------------------
# /plan
# ---------------------------------------------------------------------------

class PlanRequest(CamelModel):
    """플랜만 생성"""
    query: str = Field(..., min_length=1, max_length=MAX_QUERY_LENGTH)
    budget: float = Field(..., gt=0, le=MAX_BUDGET)
    style: Style = "Casual"
    currency: str = "USD"

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        return _validate_query(v)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return _validate_currency(v)


class NeedModel(CamelModel):
    key: str
    name: str
    target_price: float
    specs: str = ""
    priority: int = Field(5, ge=1, le=10)

    @classmethod
    def from_need(cls, need: Need) -> "NeedModel":
        return cls(key=need.key, name=need.name, target_price=need.target_price,
                   specs=need.specs, priority=need.priority)


class PlanResponse(CamelModel):
    """플랜 응답"""
    needs: List[NeedModel]
    budget_distribution: List[BudgetSliceModel]
    approach: str
    is_setup: bool
    fallback_used: bool
    source: str

    @classmethod
    def from_plan(cls, plan: Plan) -> "PlanResponse":
        return cls(
            needs=[NeedModel.from_need(n) for n in plan.needs],
            budget_distribution=[BudgetSliceModel.from_slice(s) for s in plan.budget_distribution],
            approach=plan.approach,
            is_setup=plan.is_setup,
            fallback_used=plan.fallback_used,
            source=plan.source,
        )


# ---------------------------------------------------------------------------
# /search
# ---------------------------------------------------------------------------

class SearchRequest(CamelModel):
    """검색 게이트웨이 직접 호출"""
    query: str = Field(..., min_length=1, max_length=MAX_QUERY_LENGTH)
    category: Optional[str] = Field(None, max_length=100)
    budget: Optional[float] = Field(None, gt=0)
    currency: str = "USD"
    amazon_only: bool = False
    limit: int = Field(10, ge=1, le=50)

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        return _validate_query(v)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return _validate_currency(v)


class SearchResponseModel(CamelModel):
    """검색 응답"""
    products: List[RawCandidateModel]
    total_results: int = Field(..., ge=0)
    search_metadata: dict[str, Any]


# ---------------------------------------------------------------------------
# /rank
# ---------------------------------------------------------------------------

class RankingCriteria(CamelModel):
    """랭킹 가중치 (0~1, 합이 0이면 기본값)"""
    price_weight: float = Field(0.25, ge=0, le=1)
    rating_weight: float = Field(0.25, ge=0, le=1)
    review_weight: float = Field(0.25, ge=0, le=1)
    relevance_weight: float = Field(0.25, ge=0, le=1)

    def to_weights(self) -> RankWeights:
        return RankWeights(
            price=self.price_weight,
            rating=self.rating_weight,
            review=self.review_weight,
            relevance=self.relevance_weight,
        ).normalized()


class UserPreferences(CamelModel):
    style: Style = "Casual"
    budget: float = Field(..., gt=0)
    prioritize_rating: bool = False

    def to_context(self, currency: str = "USD") -> SelectionContext:
        return SelectionContext(budget=self.budget, style=self.style, currency=currency)


class RankRequest(CamelModel):
    """후보 목록 랭킹"""
    products: List[RawCandidateModel] = Field(default_factory=list, max_length=50)
    criteria: RankingCriteria = Field(default_factory=RankingCriteria)
    user_preferences: UserPreferences


class RankResponse(CamelModel):
    ranked_products: List[ProductModel]
    reasoning: List[str]


# ---------------------------------------------------------------------------
# /swap
# ---------------------------------------------------------------------------

class SwapSettings(CamelModel):
    style: Style = "Casual"
    region: str = "US"
    amazon_only: bool = False
    currency: str = "USD"

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return _validate_currency(v)


class SwapRequest(CamelModel):
    """한 상품의 대체 상품 요청"""
    product_id: str = Field(..., min_length=1)
    category: Optional[str] = Field(None, max_length=100)
    product_title: Optional[str] = Field(None, max_length=500)
    budget: float = Field(..., gt=0, le=MAX_BUDGET)
    settings: SwapSettings = Field(default_factory=SwapSettings)
    exclude_ids: List[str] = Field(default_factory=list)


class SwapResponse(CamelModel):
    alternatives: List[ProductModel]
    from_cache: bool = False


# ---------------------------------------------------------------------------
# /cached-results, /cache/clear, /health
# ---------------------------------------------------------------------------

class CachedResultResponse(CamelModel):
    success: bool = True
    data: BuildResponse


class CacheClearResponse(CamelModel):
    success: bool
    message: str
    cleared_keys: int = Field(..., ge=0)


class HealthResponse(CamelModel):
    """헬스 체크 응답"""
    status: str
    timestamp: datetime
    version: str
    redis: bool
    providers: dict[str, bool]


class ErrorResponse(CamelModel):
    """에러 응답 (문서화용)"""
    error: str
    type: str
    code: Optional[str] = None
    details: Optional[Any] = None
