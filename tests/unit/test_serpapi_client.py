"""SerpAPI 검색 게이트웨이 테스트 (Fake HTTP)"""

from __future__ import annotations

import pytest

from setup_finder.clients.serpapi_client import SearchResponse, SerpApiClient
from setup_finder.core.exceptions import ExternalAPIException, NetworkException, RateLimitException

from tests.fixtures.fakes import FakeHttpClient, json_response
from tests.fixtures.serp_payloads import amazon_payload, shopping_payload, shopping_row


def make_client(responses, cache=None, retry=None) -> tuple[SerpApiClient, FakeHttpClient]:
    http = FakeHttpClient(responses)
    client = SerpApiClient(api_key="test-key", http_client=http, cache=cache, retry_policy=retry)
    return client, http


class TestSearchProducts:
    @pytest.mark.asyncio
    async def test_basic_search(self, no_retry):
        """google_shopping 파라미터와 정규화 결과"""
        payload = shopping_payload(shopping_row("a", 120), shopping_row("b", 80), total_results=4200)
        client, http = make_client([json_response(payload)], retry=no_retry)

        response = await client.search_products("gaming monitor", currency="GBP", limit=8)

        params = http.requests[0]["params"]
        assert params["engine"] == "google_shopping"
        assert params["q"] == "gaming monitor"
        assert params["gl"] == "gb"
        assert params["num"] == "8"
        assert params["hl"] == "en"
        assert [c.id for c in response.candidates] == ["a", "b"]
        assert response.total_results == 4200
        assert response.search_metadata["query"] == "gaming monitor"
        assert response.search_metadata["currency"] == "GBP"
        assert response.candidates[0].ship_region == "UK"

    @pytest.mark.asyncio
    async def test_category_prefix_and_budget_filter(self, no_retry):
        """category는 검색어 앞에 붙고 budget 초과 후보는 제거"""
        payload = shopping_payload(shopping_row("cheap", 50), shopping_row("pricey", 500))
        client, http = make_client([json_response(payload)], retry=no_retry)

        response = await client.search_products("keyboard", category="mechanical", budget=100)

        assert http.requests[0]["params"]["q"] == "mechanical keyboard"
        assert [c.id for c in response.candidates] == ["cheap"]
        assert response.total_results == 1

    @pytest.mark.asyncio
    async def test_empty_results(self, no_retry):
        client, _ = make_client([json_response({"shopping_results": []})], retry=no_retry)
        response = await client.search_products("unobtainium")
        assert response.candidates == []
        assert response.raw_count == 0

    @pytest.mark.asyncio
    async def test_cache_hit_skips_http(self, cache_adapter, no_retry):
        """두 번째 동일 검색은 캐시에서"""
        payload = shopping_payload(shopping_row("a", 120))
        client, http = make_client([json_response(payload)], cache=cache_adapter, retry=no_retry)

        first = await client.search_products("desk lamp", limit=8)
        second = await client.search_products("desk lamp", limit=8)

        assert http.calls == 1
        assert first.from_cache is False
        assert second.from_cache is True
        assert [c.id for c in second.candidates] == ["a"]


class TestStatusMapping:
    @pytest.mark.asyncio
    async def test_403_invalid_key(self, fast_retry):
        """403은 재시도하지 않는 SERPAPI_KEY_INVALID"""
        client, http = make_client([json_response(None, status=403)], retry=fast_retry)

        with pytest.raises(ExternalAPIException) as exc_info:
            await client.search_products("chair")

        assert exc_info.value.error_code == "SERPAPI_KEY_INVALID"
        assert http.calls == 1

    @pytest.mark.asyncio
    async def test_429_rate_limit(self, no_retry):
        client, _ = make_client([json_response(None, status=429)], retry=no_retry)
        with pytest.raises(RateLimitException) as exc_info:
            await client.search_products("chair")
        assert exc_info.value.error_code == "SERPAPI_RATE_LIMIT"

    @pytest.mark.asyncio
    async def test_5xx_retried(self, fast_retry):
        """5xx는 재시도 후 성공"""
        client, http = make_client(
            [json_response(None, status=503), json_response(shopping_payload(shopping_row("a", 10)))],
            retry=fast_retry,
        )
        response = await client.search_products("chair")
        assert http.calls == 2
        assert len(response.candidates) == 1

    @pytest.mark.asyncio
    async def test_4xx_not_retried(self, fast_retry):
        client, http = make_client([json_response(None, status=400, reason="Bad Request")], retry=fast_retry)
        with pytest.raises(ExternalAPIException) as exc_info:
            await client.search_products("chair")
        assert exc_info.value.error_code == "SERPAPI_400"
        assert exc_info.value.retryable is False
        assert http.calls == 1

    @pytest.mark.asyncio
    async def test_body_error(self, no_retry):
        client, _ = make_client([json_response({"error": "Invalid API key."})], retry=no_retry)
        with pytest.raises(ExternalAPIException) as exc_info:
            await client.search_products("chair")
        assert exc_info.value.error_code == "SERPAPI_ERROR"

    @pytest.mark.asyncio
    async def test_network_error_propagates(self, no_retry):
        client, _ = make_client([NetworkException("connection reset")], retry=no_retry)
        with pytest.raises(NetworkException):
            await client.search_products("chair")

    def test_missing_key(self):
        with pytest.raises(ExternalAPIException) as exc_info:
            SerpApiClient(api_key="", http_client=FakeHttpClient())
        assert exc_info.value.error_code == "MISSING_API_KEY"


class TestAmazonOnly:
    @pytest.mark.asyncio
    async def test_filter_keeps_amazon(self, no_retry):
        payload = shopping_payload(
            shopping_row("amz", 40, source="Amazon.com"),
            shopping_row("bb", 30, source="Best Buy"),
        )
        client, http = make_client([json_response(payload)], retry=no_retry)

        response = await client.search_products("mouse", amazon_only=True)

        assert [c.id for c in response.candidates] == ["amz"]
        assert response.amazon_fallback_used is False
        assert http.calls == 1

    @pytest.mark.asyncio
    async def test_amazon_engine_fallback_once(self, no_retry):
        """필터가 모두 걸러내면 engine=amazon 을 정확히 한 번 호출"""
        payload = shopping_payload(shopping_row("bb", 30, source="Best Buy"))
        client, http = make_client(
            [json_response(payload), json_response(amazon_payload(("B01", 25.0), ("B02", 35.0)))],
            retry=no_retry,
        )

        response = await client.search_products("mouse", amazon_only=True)

        amazon_calls = [r for r in http.requests if r["params"].get("engine") == "amazon"]
        assert len(amazon_calls) == 1
        assert amazon_calls[0]["params"]["amazon_domain"] == "amazon.com"
        assert amazon_calls[0]["params"]["k"] == "mouse"
        assert [c.id for c in response.candidates] == ["B01", "B02"]
        assert response.amazon_fallback_used is True

    @pytest.mark.asyncio
    async def test_amazon_fallback_failure_returns_empty(self, no_retry):
        payload = shopping_payload(shopping_row("bb", 30, source="Best Buy"))
        client, http = make_client([json_response(payload), json_response(None, status=500)], retry=no_retry)

        response = await client.search_products("mouse", amazon_only=True)

        assert response.candidates == []
        assert response.amazon_filter_emptied is True
        assert http.calls == 2

    @pytest.mark.asyncio
    async def test_no_fallback_when_raw_results_empty(self, no_retry):
        client, http = make_client([json_response(shopping_payload())], retry=no_retry)
        response = await client.search_products("mouse", amazon_only=True)
        assert response.candidates == []
        assert http.calls == 1


class TestUrlResolution:
    @pytest.mark.asyncio
    async def test_missing_url_resolved_via_product_api(self, no_retry):
        """URL 없는 후보는 google_product 조회로 판매처 링크를 채움"""
        row = shopping_row("p1", 60, link="", serpapi_product_api="https://serpapi.com/search.json?engine=google_product&product_id=p1")
        product = {"sellers_results": {"online_sellers": [{"link": "https://www.walmart.com/ip/p1"}]}}
        client, http = make_client([json_response(shopping_payload(row)), json_response(product)], retry=no_retry)

        response = await client.search_products("speaker")

        assert response.candidates[0].url == "https://www.walmart.com/ip/p1"
        assert http.requests[1]["url"].startswith("https://serpapi.com/search.json?engine=google_product")

    @pytest.mark.asyncio
    async def test_unresolvable_candidate_dropped(self, no_retry):
        row = shopping_row("p1", 60, link="")
        client, http = make_client([json_response(shopping_payload(row)), json_response({})], retry=no_retry)

        response = await client.search_products("speaker")

        assert response.candidates == []
        assert http.requests[1]["params"]["engine"] == "google_product"


def test_search_response_round_trip_marks_cache():
    """from_dict로 복원한 응답은 from_cache=True"""
    restored = SearchResponse.from_dict(SearchResponse(candidates=[], total_results=3).to_dict())
    assert restored.from_cache is True
    assert restored.total_results == 3
