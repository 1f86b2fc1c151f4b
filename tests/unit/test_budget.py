"""BudgetEnforcer 테스트"""

from __future__ import annotations

import pytest

from setup_finder.engine.budget import BudgetEnforcer

from tests.fixtures.fakes import make_product


class TestBudgetEnforcer:
    def test_within_budget_unchanged(self):
        """합계가 예산 이하면 그대로"""
        products = [make_product("a", 300, 1), make_product("b", 200, 2)]
        report = BudgetEnforcer().apply(products, 500)

        assert report.kept == products
        assert report.dropped == []
        assert report.trimmed is False
        assert report.total == 500

    def test_greedy_by_search_rank(self):
        """search_rank 오름차순으로 담고 맞지 않으면 건너뛴 뒤 계속 검사"""
        products = [
            make_product("monitor", 400, 2),
            make_product("pc", 700, 1),
            make_product("chair", 350, 3),
            make_product("mouse", 50, 4),
        ]
        report = BudgetEnforcer().apply(products, 1000)

        # pc(700) → monitor(400) 초과 → chair(350) 초과 → mouse(50)
        assert [p.id for p in report.kept] == ["pc", "mouse"]
        assert [p.id for p in report.dropped] == ["monitor", "chair"]
        assert report.total == 750
        assert report.to_dict()["dropped"] == ["monitor", "chair"]

    def test_kept_preserves_input_order(self):
        products = [make_product("c", 100, 3), make_product("a", 100, 1), make_product("b", 500, 2)]
        kept = BudgetEnforcer().enforce(products, 250)
        assert [p.id for p in kept] == ["c", "a"]

    def test_equal_rank_is_stable(self):
        """같은 search_rank는 입력 순서대로 담음"""
        products = [make_product("first", 60, 1), make_product("second", 60, 1)]
        assert [p.id for p in BudgetEnforcer().enforce(products, 100)] == ["first"]

    def test_nothing_fits(self):
        report = BudgetEnforcer().apply([make_product("a", 200, 1)], 100)
        assert report.kept == []
        assert report.total == 0

    @pytest.mark.parametrize("budget", [100, 250, 999.99])
    def test_total_never_exceeds_budget(self, budget):
        products = [make_product(str(i), 37.5 * (i + 1), i + 1) for i in range(8)]
        kept = BudgetEnforcer().enforce(products, budget)
        assert sum(p.price for p in kept) <= budget
