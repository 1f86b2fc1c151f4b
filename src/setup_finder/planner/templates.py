"""Template Registry - 결정적 폴백 셋업 플랜

AI 플래닝이 실패하면 쿼리의 키워드로 도메인 템플릿을 고릅니다.
규칙은 등록 순서대로 평가되며 첫 번째로 키워드가 포함된 도메인이 선택됩니다.
템플릿 데이터(이름/사양/비율/우선순위)는 resources/templates.yaml 에 있습니다.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from setup_finder.core.exceptions import PlanningException
from setup_finder.core.logging import logger
from setup_finder.engine.models import PLAN_APPROACH_SETUP, Need, Plan
from setup_finder.planner.allocation import allocate, build_distribution, sort_by_priority
from setup_finder.utils.resource_loader import load_setup_templates

# (budget, style) -> Plan
TemplateBuilder = Callable[[float, str], Plan]


@dataclass(frozen=True)
class TemplateRule:
    """도메인 태그 + 매칭 키워드 + 빌더"""

    tag: str
    keywords: tuple[str, ...]
    builder: TemplateBuilder

    def matches(self, query: str) -> bool:
        lowered = query.lower()
        return any(keyword in lowered for keyword in self.keywords)


def _styled(value: Any, style: str) -> str:
    """스타일별 문자열 선택 ({Premium, Casual} dict 또는 공통 문자열)"""
    if isinstance(value, dict):
        return str(value.get(style) or value.get("Casual") or next(iter(value.values()), ""))
    return str(value or "")


def yaml_template_builder(tag: str) -> TemplateBuilder:
    """templates.yaml 의 도메인 항목으로 빌더 생성

    Args:
        tag: templates.yaml 의 도메인 키 (gaming, office, ...)

    Returns:
        (budget, style) -> Plan

    Raises:
        PlanningException: 템플릿 데이터가 없거나 비어 있는 경우 (빌더 호출 시)
    """

    def build(budget: float, style: str) -> Plan:
        items = (load_setup_templates().get(tag) or {}).get("items") or []
        if not items:
            raise PlanningException(f"template '{tag}' has no items")

        amounts = allocate(
            budget,
            [float(item.get("share", 0)) for item in items],
            [int(item.get("priority", 5)) for item in items],
        )

        needs = sort_by_priority([
            Need(
                key=str(item["key"]),
                name=_styled(item.get("name"), style),
                target_price=amount,
                specs=_styled(item.get("specs"), style),
                priority=int(item.get("priority", 5)),
            )
            for item, amount in zip(items, amounts)
        ])

        return Plan(
            needs=needs,
            approach=PLAN_APPROACH_SETUP,
            budget_distribution=build_distribution(needs, budget),
            fallback_used=True,
            source="template",
        )

    return build


class TemplateRegistry:
    """도메인 태그 → 템플릿 빌더 레지스트리

    Usage:
        registry = TemplateRegistry.default()
        plan = registry.build("home office for coding", budget=1000, style="Premium")

        # 새 도메인은 분기 추가 없이 등록만 하면 됩니다
        registry.register("outdoor", ("camping", "hiking"), my_builder)
    """

    def __init__(self, default_tag: str = "gaming"):
        self._rules: list[TemplateRule] = []
        self.default_tag = default_tag

    def register(self, tag: str, keywords: Sequence[str], builder: TemplateBuilder) -> None:
        """규칙 등록 (같은 태그는 교체하되 평가 순서는 유지)"""
        rule = TemplateRule(tag=tag, keywords=tuple(k.lower() for k in keywords), builder=builder)
        for i, existing in enumerate(self._rules):
            if existing.tag == tag:
                self._rules[i] = rule
                return
        self._rules.append(rule)

    @property
    def tags(self) -> list[str]:
        return [rule.tag for rule in self._rules]

    def resolve(self, query: str) -> str:
        """쿼리에 맞는 도메인 태그 (매칭이 없으면 default_tag)"""
        for rule in self._rules:
            if rule.matches(query or ""):
                return rule.tag
        return self.default_tag

    def _rule_for(self, tag: str) -> Optional[TemplateRule]:
        return next((rule for rule in self._rules if rule.tag == tag), None)

    def build(self, query: str, budget: float, style: str = "Casual") -> Plan:
        """쿼리에 맞는 템플릿 플랜 생성

        Raises:
            PlanningException: 등록된 빌더가 없거나 빌더가 실패한 경우
        """
        tag = self.resolve(query)
        rule = self._rule_for(tag)
        if rule is None:
            raise PlanningException(f"no template registered for '{tag}'")

        plan = rule.builder(budget, style)
        logger.info(f"[TEMPLATE] '{query}' → {tag} ({len(plan.needs)} needs)")
        return plan

    @classmethod
    def default(cls) -> "TemplateRegistry":
        """gaming → office → bedroom → kitchen → living_room 순서의 기본 레지스트리"""
        registry = cls(default_tag="gaming")
        for tag, keywords in DEFAULT_RULES:
            registry.register(tag, keywords, yaml_template_builder(tag))
        return registry


DEFAULT_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("gaming", ("gaming", "game", "pc")),
    ("office", ("office", "work", "desk", "workspace")),
    ("bedroom", ("bedroom", "bed", "sleep")),
    ("kitchen", ("kitchen", "cook", "food")),
    ("living_room", ("living", "lounge", "tv")),
)

