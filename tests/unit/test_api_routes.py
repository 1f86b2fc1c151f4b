"""API 라우트 테스트 (TestClient + dependency_overrides, 외부 호출 없음)"""

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from setup_finder.api.dependencies import (
    get_cache_adapter,
    get_orchestrator,
    get_planner,
    get_ranker,
    get_search_store,
    get_serpapi_client,
)
from setup_finder.app import create_app
from setup_finder.core.config import settings
from setup_finder.core.exceptions import PlanningException
from setup_finder.engine.models import BudgetSlice
from setup_finder.engine.orchestrator import BuildOrchestrator
from setup_finder.engine.result import BuildResult
from setup_finder.engine.tips import REROLL_TIPS
from setup_finder.planner.planner import NeedPlanner
from setup_finder.selector.ranking import ProductRanker
from setup_finder.selector.selector import ProductSelector
from setup_finder.services.search_store import SearchResultStore

from tests.fixtures.fakes import BudgetAwareSearch, RateLimitedGemini, make_product

SEARCH_ID = "search_1700000000000_abcdefghi"

BUILD_BODY = {
    "query": "home office",
    "settings": {"style": "Casual", "budget": 1000, "currency": "USD", "resultsMode": "Multiple"},
}


def sample_result(fallback_used: bool = False) -> BuildResult:
    return BuildResult(
        products=[make_product("desk-1", 380, 1), make_product("chair-1", 300, 2)],
        ghost_tips=["👻 Found all 2 items within your budget"],
        search_metadata={"totalResults": 2, "searchTime": 42, "query": "home office", "currency": "USD"},
        is_setup=True,
        search_id=SEARCH_ID,
        budget_chart=[BudgetSlice(category="Desk", amount=500, percentage=50, color="#FF6B6B"),
                      BudgetSlice(category="Chair", amount=500, percentage=50, color="#4ECDC4")],
        fallback_used=fallback_used,
        need_count=2,
    )


class StubOrchestrator:
    """고정 결과를 반환하고 호출 인자를 기록"""

    def __init__(self, result: BuildResult):
        self.result = result
        self.calls: list[tuple] = []

    async def build(self, query, options, use_cache=True, token=None):
        self.calls.append((query, options, use_cache))
        return self.result


class FailingPlanner:
    async def plan(self, query, budget, style="Casual", currency="USD", token=None):
        raise PlanningException("templates unavailable")


@pytest.fixture
def app(cache_adapter):
    application = create_app()
    application.dependency_overrides[get_cache_adapter] = lambda: cache_adapter
    application.dependency_overrides[get_search_store] = lambda: SearchResultStore(cache_adapter)
    application.dependency_overrides[get_serpapi_client] = lambda: None
    application.dependency_overrides[get_ranker] = lambda: ProductRanker(gemini=None)
    application.dependency_overrides[get_planner] = lambda: NeedPlanner(gemini=None)
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


class TestBuildRoutes:
    def test_build_success(self, app, client):
        """camelCase 응답, 폴백이 아니면 헤더 없음"""
        orchestrator = StubOrchestrator(sample_result())
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator

        response = client.post("/build", json=BUILD_BODY)

        assert response.status_code == 200
        body = response.json()
        assert [p["id"] for p in body["products"]] == ["desk-1", "chair-1"]
        assert body["isSetup"] is True
        assert body["searchId"] == SEARCH_ID
        assert len(body["budgetChart"]) == 2
        assert "X-Fallback-Plan" not in response.headers
        query, options, use_cache = orchestrator.calls[0]
        assert query == "home office"
        assert options.budget == 1000
        assert use_cache is True

    def test_fallback_plan_header(self, app, client):
        app.dependency_overrides[get_orchestrator] = lambda: StubOrchestrator(sample_result(fallback_used=True))

        response = client.post("/build", json=BUILD_BODY)

        assert response.headers["X-Fallback-Plan"] == "true"

    def test_blank_query_is_validation_error(self, app, client):
        """빈 검색어는 400 VALIDATION_ERROR"""
        app.dependency_overrides[get_orchestrator] = lambda: StubOrchestrator(sample_result())

        response = client.post("/build", json={**BUILD_BODY, "query": "   "})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request data"
        assert body["type"] == "VALIDATION_ERROR"
        assert "query" in body["details"]

    def test_invalid_budget_is_validation_error(self, app, client):
        app.dependency_overrides[get_orchestrator] = lambda: StubOrchestrator(sample_result())
        body = {"query": "desk", "settings": {"budget": -5}}

        response = client.post("/build", json=body)

        assert response.status_code == 400
        assert response.json()["type"] == "VALIDATION_ERROR"

    def test_missing_search_key_is_configuration_error(self, app, client, cache_adapter):
        """SerpAPI 키가 없으면 500 configuration"""
        orchestrator = BuildOrchestrator(
            NeedPlanner(gemini=None),
            None,
            ProductSelector(gemini=None),
            cache_adapter,
        )
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator

        response = client.post("/build", json=BUILD_BODY)

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "SerpAPI key not configured"
        assert body["type"] == "configuration"

    def test_rate_limited_ai_uses_fallback_plan(self, app, client, cache_adapter):
        """Gemini 429 에도 200, 템플릿 플랜 + X-Fallback-Plan 헤더"""
        gemini = RateLimitedGemini()
        orchestrator = BuildOrchestrator(
            NeedPlanner(gemini=gemini),
            BudgetAwareSearch(),
            ProductSelector(gemini=gemini),
            cache_adapter,
            SearchResultStore(cache_adapter),
        )
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator

        response = client.post("/build", json=BUILD_BODY)

        assert response.status_code == 200
        assert response.headers["X-Fallback-Plan"] == "true"
        body = response.json()
        assert body["isSetup"] is True
        assert body["products"]
        assert sum(p["price"] for p in body["products"]) <= 1000
        assert gemini.calls >= 1

    def test_reroll(self, app, client):
        """캐시 우회, 제외 ID 필터, reroll 팁, 쿼리 접미사"""
        orchestrator = StubOrchestrator(sample_result())
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        body = {"originalQuery": "home office", "settings": BUILD_BODY["settings"], "excludeIds": ["desk-1"]}

        response = client.post("/reroll", json=body)

        assert response.status_code == 200
        data = response.json()
        assert [p["id"] for p in data["products"]] == ["chair-1"]
        assert data["searchMetadata"]["query"] == "home office (rerolled)"
        assert data["ghostTips"][-len(REROLL_TIPS):] == list(REROLL_TIPS)
        assert orchestrator.calls[0][2] is False


class TestPlanRoutes:
    def test_plan_with_template_fallback(self, client):
        """Gemini 없이 템플릿 플랜"""
        response = client.post("/plan", json={"query": "gaming setup", "budget": 1500, "style": "Premium"})

        assert response.status_code == 200
        body = response.json()
        assert body["fallbackUsed"] is True
        assert body["isSetup"] is True
        assert sum(n["targetPrice"] for n in body["needs"]) == pytest.approx(1500, abs=1)

    def test_plan_failure_is_502(self, app, client):
        app.dependency_overrides[get_planner] = lambda: FailingPlanner()

        response = client.post("/plan", json={"query": "desk", "budget": 300})

        assert response.status_code == 502
        assert response.json()["error"] == "Planning service failed"

    def test_rank_empty(self, client):
        """빈 목록은 바로 반환"""
        response = client.post("/rank", json={"products": [], "userPreferences": {"budget": 500}})

        assert response.status_code == 200
        assert response.json() == {"rankedProducts": [], "reasoning": ["No products provided for ranking"]}

    def test_rank_heuristic(self, client):
        products = [
            {"id": "cheap", "title": "Basic Desk", "price": 150, "rating": 3.5, "reviewCount": 20},
            {"id": "good", "title": "Great Desk", "price": 300, "rating": 4.8, "reviewCount": 900},
        ]

        response = client.post("/rank", json={"products": products, "userPreferences": {"budget": 500}})

        ranked = response.json()["rankedProducts"]
        assert [p["searchRank"] for p in ranked] == [1, 2]
        assert ranked[0]["id"] == "good"


class TestSearchRoutes:
    def test_search_without_key(self, client):
        response = client.post("/search", json={"query": "desk"})

        assert response.status_code == 500
        assert response.json()["type"] == "configuration"

    def test_swap_without_key(self, client):
        response = client.post("/swap", json={"productId": "desk-1", "budget": 400})

        assert response.status_code == 500
        assert response.json()["error"] == "SerpAPI key not configured"


class TestCacheRoutes:
    def test_invalid_search_id(self, client):
        response = client.get("/cached-results/not-an-id")

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid search ID", "type": "VALIDATION_ERROR"}

    def test_missing_search_id(self, client):
        response = client.get(f"/cached-results/{SEARCH_ID}")

        assert response.status_code == 404
        assert response.json()["type"] == "NOT_FOUND"

    def test_stored_result(self, client, cache_adapter):
        """저장된 빌드 조회"""
        asyncio.run(SearchResultStore(cache_adapter).save(sample_result()))

        response = client.get(f"/cached-results/{SEARCH_ID}")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["searchId"] == SEARCH_ID
        assert len(body["data"]["products"]) == 2

    def test_clear_cache(self, client, fake_redis):
        fake_redis.data.update({"search:a": "1", "build:b": "2", "results:c": "3"})

        response = client.post("/cache/clear")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Cleared 2 cache entries", "clearedKeys": 2}
        assert list(fake_redis.data) == ["results:c"]


class TestHealthRoutes:
    def test_root(self, client):
        body = client.get("/").json()
        assert body["docs"] == "/docs"
        assert body["service"] == settings.api_title

    def test_health_without_search_key(self, client, monkeypatch):
        monkeypatch.setattr(settings, "serpapi_key", "")

        body = client.get("/health").json()

        assert body["status"] == "error"
        assert body["redis"] is True
        assert body["providers"] == {"serpapi": False, "gemini": False}

    def test_health_ok(self, client, monkeypatch):
        monkeypatch.setattr(settings, "serpapi_key", "serp")
        monkeypatch.setattr(settings, "gemini_api_key", "gem")

        assert client.get("/health").json()["status"] == "ok"

    def test_health_degraded_without_redis(self, client, monkeypatch, fake_redis):
        monkeypatch.setattr(settings, "serpapi_key", "serp")
        monkeypatch.setattr(settings, "gemini_api_key", "gem")
        fake_redis.fail = True

        body = client.get("/health").json()

        assert body["status"] == "degraded"
        assert body["redis"] is False
