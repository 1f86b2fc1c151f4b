"""템플릿 레지스트리 테스트"""

from __future__ import annotations

import pytest

from setup_finder.core.exceptions import PlanningException
from setup_finder.engine.models import Need, Plan
from setup_finder.planner.templates import TemplateRegistry, yaml_template_builder
from setup_finder.utils.resource_loader import load_setup_templates


class TestTemplateData:
    def test_all_domains_present(self):
        """기본 도메인 템플릿이 YAML에 있다"""
        templates = load_setup_templates()
        for tag in ("gaming", "office", "bedroom", "kitchen", "living_room"):
            assert tag in templates
            assert len(templates[tag]["items"]) >= 5

    def test_shares_sum_to_100(self):
        for tag, template in load_setup_templates().items():
            assert sum(item["share"] for item in template["items"]) == 100, tag


class TestTemplateRegistry:
    @pytest.mark.parametrize("query,tag", [
        ("gaming battlestation", "gaming"),
        ("home office for coding", "office"),
        ("cozy bedroom", "bedroom"),
        ("kitchen essentials", "kitchen"),
        ("living room makeover", "living_room"),
        ("something entirely different", "gaming"),
    ])
    def test_resolve(self, query, tag):
        """첫 번째로 매칭되는 규칙, 없으면 기본 태그"""
        assert TemplateRegistry.default().resolve(query) == tag

    def test_rule_order_wins(self):
        """등록 순서가 앞선 규칙이 우선"""
        assert TemplateRegistry.default().resolve("gaming office") == "gaming"

    def test_office_plan_sums_to_budget(self):
        """office 템플릿: 5개 이상 need, 합계 = 예산, priority 내림차순"""
        plan = TemplateRegistry.default().build("home office", 1000, "Premium")

        assert len(plan.needs) >= 5
        assert plan.total_target == pytest.approx(1000)
        priorities = [n.priority for n in plan.needs]
        assert priorities == sorted(priorities, reverse=True)
        assert plan.fallback_used is True
        assert plan.source == "template"
        assert plan.is_setup is True
        assert plan.needs[0].name == "Premium Standing Desk Large"

    def test_style_selects_names(self):
        casual = TemplateRegistry.default().build("office", 1000, "Casual")
        assert casual.needs[0].name == "Office Desk Large"

    def test_register_new_domain(self):
        """새 도메인은 등록만으로 추가된다"""
        calls = []

        def outdoor(budget: float, style: str) -> Plan:
            calls.append((budget, style))
            return Plan(needs=[Need(key="tent", name="Tent", target_price=budget, priority=10)],
                        fallback_used=True, source="template")

        registry = TemplateRegistry.default()
        registry.register("outdoor", ("camping", "hiking"), outdoor)

        plan = registry.build("weekend camping kit", 300, "Casual")
        assert registry.resolve("hiking trip") == "outdoor"
        assert plan.needs[0].key == "tent"
        assert calls == [(300, "Casual")]
        assert registry.tags[-1] == "outdoor"

    def test_register_replaces_same_tag_in_place(self):
        registry = TemplateRegistry.default()
        registry.register("office", ("cubicle",), yaml_template_builder("office"))

        assert registry.tags.index("office") == 1
        assert registry.resolve("cubicle life") == "office"
        assert registry.resolve("home office") != "office"

    def test_unregistered_default_raises(self):
        """기본 태그에 규칙이 없으면 PlanningException"""
        registry = TemplateRegistry(default_tag="missing")
        with pytest.raises(PlanningException):
            registry.build("anything", 100)

    def test_unknown_yaml_tag_raises(self):
        with pytest.raises(PlanningException):
            yaml_template_builder("no_such_domain")(100, "Casual")
