"""Budget Enforcer - 총 예산 하드 제약

선택된 상품의 합계가 예산을 넘으면 search_rank 오름차순(1 = 가장 필수)으로
탐욕적으로 담습니다. 맞지 않는 상품은 건너뛰고 다음 상품을 계속 검사합니다.
최적 배낭 해가 아니라 결정적이고 설명 가능한 결과를 목표로 합니다.
"""

from dataclasses import dataclass, field
from typing import Sequence

from setup_finder.core.logging import logger
from setup_finder.engine.models import Product


@dataclass
class EnforcementReport:
    """예산 적용 결과

    Attributes:
        kept: 예산 안에 남은 상품 (입력 순서 유지)
        dropped: 제외된 상품
        total: kept 합계
        budget: 적용한 예산
    """

    kept: list[Product]
    dropped: list[Product] = field(default_factory=list)
    total: float = 0.0
    budget: float = 0.0

    @property
    def trimmed(self) -> bool:
        return bool(self.dropped)

    def to_dict(self) -> dict:
        return {
            "kept": [p.id for p in self.kept],
            "dropped": [p.id for p in self.dropped],
            "total": self.total,
            "budget": self.budget,
        }


class BudgetEnforcer:
    """예산 초과 시 우선순위 기반 탐욕 정리

    Usage:
        enforcer = BudgetEnforcer()
        products = enforcer.enforce(products, budget=1000)

        # 제외 내역이 필요하면
        report = enforcer.apply(products, budget=1000)
        if report.trimmed:
            logger.info(report.to_dict())
    """

    def apply(self, products: Sequence[Product], budget: float) -> EnforcementReport:
        """예산 적용 후 리포트 반환

        Args:
            products: 선택된 상품 (need 순서)
            budget: 총 예산

        Returns:
            EnforcementReport: kept는 입력 순서를 유지한 부분 수열
        """
        items = list(products)
        total = sum(p.price for p in items)
        if total <= budget:
            return EnforcementReport(kept=items, total=total, budget=budget)

        # 안정 정렬: 같은 search_rank는 입력 순서 유지
        ordered = sorted(range(len(items)), key=lambda i: items[i].search_rank)

        running = 0.0
        keep: set[int] = set()
        for index in ordered:
            price = items[index].price
            if running + price <= budget:
                keep.add(index)
                running += price

        kept = [p for i, p in enumerate(items) if i in keep]
        dropped = [p for i, p in enumerate(items) if i not in keep]

        logger.info(
            f"[BUDGET] Total {total:.2f} exceeded budget {budget:.2f}: "
            f"kept {len(kept)}, dropped {len(dropped)} (total {running:.2f})"
        )
        return EnforcementReport(kept=kept, dropped=dropped, total=running, budget=budget)

    def enforce(self, products: Sequence[Product], budget: float) -> list[Product]:
        """예산 안에 들어오는 상품 목록"""
        return self.apply(products, budget).kept
