"""Build Result - 빌드 파이프라인의 표준 결과 포맷

캐시/검색 결과 저장소에는 to_dict() 형태(snake_case)로 저장하고,
HTTP 응답의 camelCase 변환은 schemas/build_schema.py 가 담당합니다.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional, Sequence

from setup_finder.engine.models import BudgetSlice, Product
from setup_finder.engine.tips import REROLL_TIPS


class BuildStage(str, Enum):
    """빌드 상태 머신

    RECEIVED → PLANNING → SEARCHING → SELECTING → BUDGET_ENFORCING → CACHING → RESPONDED
    FAILED는 PLANNING 실패 또는 필수 설정 누락에서만 도달합니다.
    """

    RECEIVED = "received"
    PLANNING = "planning"
    SEARCHING = "searching"
    SELECTING = "selecting"
    BUDGET_ENFORCING = "budget_enforcing"
    CACHING = "caching"
    RESPONDED = "responded"
    FAILED = "failed"


class BuildStatus(str, Enum):
    """빌드 결과 상태"""

    CACHE_HIT = "cache_hit"  # 캐시된 빌드 반환
    SUCCESS = "success"  # 모든 need에 상품 선택
    PARTIAL = "partial"  # 일부 need만 선택
    NO_RESULTS = "no_results"  # 선택된 상품 없음


@dataclass
class BuildResult:
    """빌드 결과

    Attributes:
        products: 예산 적용 후 상품 (need 순서)
        budget_chart: 플랜의 예산 분배 (셋업일 때)
        ghost_tips: 결과 품질에 따른 안내 문구
        search_metadata: {totalResults, searchTime, query, currency}
        is_setup: need가 2개 이상인 셋업 플랜 여부
        search_id: /cached-results 조회용 ID
        status: 빌드 결과 상태
        fallback_used: 템플릿 폴백 플랜 사용 여부 (X-Fallback-Plan 헤더)
        need_count: 플랜의 need 수
    """

    products: list[Product]
    ghost_tips: list[str]
    search_metadata: dict[str, Any]
    is_setup: bool
    search_id: str
    budget_chart: Optional[list[BudgetSlice]] = None
    status: BuildStatus = BuildStatus.SUCCESS
    fallback_used: bool = False
    need_count: int = 0
    stage: BuildStage = BuildStage.RESPONDED
    dropped_for_budget: list[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.status in (BuildStatus.CACHE_HIT, BuildStatus.SUCCESS, BuildStatus.PARTIAL)

    @property
    def total_price(self) -> float:
        return sum(p.price for p in self.products)

    @staticmethod
    def status_for(product_count: int, need_count: int) -> BuildStatus:
        """선택 결과 수로 상태 결정"""
        if product_count == 0:
            return BuildStatus.NO_RESULTS
        if product_count < need_count:
            return BuildStatus.PARTIAL
        return BuildStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "products": [p.to_dict() for p in self.products],
            "budget_chart": [s.to_dict() for s in self.budget_chart] if self.budget_chart is not None else None,
            "ghost_tips": list(self.ghost_tips),
            "search_metadata": dict(self.search_metadata),
            "is_setup": self.is_setup,
            "search_id": self.search_id,
            "status": self.status.value,
            "fallback_used": self.fallback_used,
            "need_count": self.need_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BuildResult":
        """저장된 dict 복원 (상태는 저장 당시 값)"""
        chart = data.get("budget_chart")
        return cls(
            products=[Product.from_dict(p) for p in data.get("products") or []],
            budget_chart=[BudgetSlice.from_dict(s) for s in chart] if chart is not None else None,
            ghost_tips=list(data.get("ghost_tips") or []),
            search_metadata=dict(data.get("search_metadata") or {}),
            is_setup=bool(data.get("is_setup")),
            search_id=str(data.get("search_id") or ""),
            status=BuildStatus(data.get("status") or BuildStatus.SUCCESS.value),
            fallback_used=bool(data.get("fallback_used")),
            need_count=int(data.get("need_count") or 0),
        )

    def rerolled(self, original_query: str, exclude_ids: Sequence[str] = ()) -> "BuildResult":
        """재생성 결과: 제외 ID 필터, reroll 팁 추가, 쿼리에 " (rerolled)" 접미사"""
        excluded = set(exclude_ids)
        products = [p for p in self.products if p.id not in excluded]
        metadata = dict(self.search_metadata)
        metadata["query"] = f"{original_query} (rerolled)"
        return replace(
            self,
            products=products,
            ghost_tips=[*self.ghost_tips, *REROLL_TIPS],
            search_metadata=metadata,
        )

    @classmethod
    def from_cache(cls, data: dict[str, Any]) -> "BuildResult":
        """캐시 히트 결과 생성

        Args:
            data: CacheAdapter.get_build 가 반환한 dict

        Returns:
            BuildResult: status=CACHE_HIT
        """
        result = cls.from_dict(data)
        result.status = BuildStatus.CACHE_HIT
        return result
