"""예산 분배 - 비율을 정수 금액으로 반올림하고 나머지를 최우선 need에 배정"""

import math
from typing import Optional, Sequence

from setup_finder.engine.models import BudgetSlice, Need


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def allocate(budget: float, shares: Sequence[float], priorities: Sequence[int]) -> list[float]:
    """비율 목록을 예산 금액으로 변환

    각 비율을 정수로 반올림한 뒤, 남은 차액(budget - 합계)을 priority가 가장 높은
    항목에 더해 합계가 budget과 정확히 같도록 맞춥니다.
    소수점 예산의 센트 단위도 최우선 항목에 남습니다.

    Args:
        budget: 전체 예산 (> 0)
        shares: 항목별 비율 (퍼센트, 금액 등 상대값이면 무엇이든)
        priorities: 항목별 우선순위 (shares와 같은 길이)

    Returns:
        항목별 금액 (입력 순서 유지)

    Raises:
        ValueError: 길이 불일치 또는 빈 입력
    """
    if not shares:
        raise ValueError("shares must not be empty")
    if len(shares) != len(priorities):
        raise ValueError("shares and priorities must have the same length")

    clean = [max(0.0, float(s)) for s in shares]
    total_share = sum(clean)
    if total_share <= 0:
        clean = [1.0] * len(clean)
        total_share = float(len(clean))

    amounts: list[float] = [float(round_half_up(budget * s / total_share)) for s in clean]

    # priority 내림차순 (동률이면 앞선 항목)
    order = sorted(range(len(amounts)), key=lambda i: (-priorities[i], i))

    remainder = round(budget - sum(amounts), 2)
    for index in order:
        if remainder == 0:
            break
        adjusted = round(amounts[index] + remainder, 2)
        if adjusted >= 0:
            amounts[index] = adjusted
            remainder = 0
        else:
            # 최우선 항목이 음수가 되면 다음 항목으로 넘김
            remainder = round(remainder + amounts[index], 2)
            amounts[index] = 0.0

    return amounts


def percentage_of(amount: float, budget: float) -> int:
    """차트 표시용 정수 퍼센트"""
    if budget <= 0:
        return 0
    return max(0, min(100, round_half_up(amount / budget * 100)))


# 차트 색상 (템플릿/단일 상품 플랜)
DISTRIBUTION_COLORS = (
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4",
    "#FECA57", "#FF9FF3", "#54A0FF", "#5F27CD",
)


def build_distribution(
    needs: Sequence[Need],
    budget: float,
    colors: Optional[Sequence[str]] = None,
) -> list[BudgetSlice]:
    """need 목록으로 예산 차트 생성 (colors가 없으면 기본 팔레트 순환)"""
    palette = DISTRIBUTION_COLORS
    return [
        BudgetSlice(
            category=need.name,
            amount=need.target_price,
            percentage=percentage_of(need.target_price, budget),
            color=(colors[i] if colors and i < len(colors) and colors[i] else palette[i % len(palette)]),
        )
        for i, need in enumerate(needs)
    ]


def sort_by_priority(needs: Sequence[Need]) -> list[Need]:
    """priority 내림차순 (동률이면 입력 순서 유지)"""
    return sorted(needs, key=lambda n: -n.priority)
