"""테스트용 Fake 객체와 팩토리 (Redis, HTTP, 도메인 레코드)"""

from __future__ import annotations

import fnmatch
import re
from typing import Any, Optional

from setup_finder.clients.http_client import HttpResponse
from setup_finder.clients.serpapi_client import SearchResponse
from setup_finder.core.exceptions import RateLimitException
from setup_finder.engine.models import Need, Product, RawCandidate


class FakeRedis:
    """redis.Redis 의 get/setex/delete/scan_iter/ping 만 흉내내는 메모리 구현"""

    def __init__(self, fail: bool = False):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = fail
        self.calls = 0

    def _check(self) -> None:
        self.calls += 1
        if self.fail:
            raise ConnectionError("redis down")

    def ping(self) -> bool:
        self._check()
        return True

    def get(self, key: str) -> Optional[str]:
        self._check()
        return self.data.get(key)

    def setex(self, key: str, ttl: int, value: str) -> bool:
        self._check()
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    def scan_iter(self, match: str = "*", count: int = 10):
        self._check()
        return [k for k in list(self.data) if fnmatch.fnmatch(k, match)]


class FakeHttpClient:
    """SharedHttpClient 대체 (요청 기록 + 준비한 응답을 순서대로 반환)"""

    def __init__(self, responses: Optional[list[Any]] = None):
        self.responses = list(responses or [])
        self.requests: list[dict[str, Any]] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def _next(self) -> HttpResponse:
        if not self.responses:
            raise AssertionError("FakeHttpClient ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def get_json(self, url: str, *, timeout_s: float, params: Optional[dict] = None,
                       headers: Optional[dict] = None) -> HttpResponse:
        self.requests.append({"method": "GET", "url": url, "params": dict(params or {})})
        return self._next()

    async def post_json(self, url: str, payload: Any, *, timeout_s: float, params: Optional[dict] = None,
                        headers: Optional[dict] = None) -> HttpResponse:
        self.requests.append({"method": "POST", "url": url, "params": dict(params or {}), "payload": payload})
        return self._next()


def json_response(data: Any, status: int = 200, reason: str = "") -> HttpResponse:
    return HttpResponse(status=status, data=data, text="", reason=reason)


def make_candidate(
    id: str,
    price: Optional[float] = 100.0,
    title: Optional[str] = None,
    rating: Optional[float] = 4.5,
    review_count: Optional[int] = 100,
    merchant: str = "Best Buy",
    url: Optional[str] = None,
) -> RawCandidate:
    return RawCandidate(
        id=id,
        title=title or f"Product {id}",
        url=url or f"https://shop.example.com/{id}",
        price=price,
        currency="USD",
        merchant=merchant,
        rating=rating,
        review_count=review_count,
        image=None,
    )


def make_product(id: str, price: float, search_rank: int = 1, title: Optional[str] = None) -> Product:
    return Product(id=id, title=title or f"Product {id}", price=price, search_rank=search_rank)


def make_need(key: str = "monitor", target_price: float = 300.0, priority: int = 5,
              name: Optional[str] = None) -> Need:
    return Need(key=key, name=name or key.title(), target_price=target_price, priority=priority)


class BudgetAwareSearch:
    """검색어의 "under N" 을 읽어 N의 80% / 130% 가격 후보 두 개를 반환하는 SerpApiClient 대체"""

    _UNDER = re.compile(r"under (\d+)$")

    def __init__(self):
        self.queries: list[str] = []

    async def search_products(self, query, currency="USD", amazon_only=False, limit=None, token=None, **kwargs):
        self.queries.append(query)
        match = self._UNDER.search(query)
        target = float(match.group(1)) if match else 100.0
        n = len(self.queries)
        return SearchResponse(candidates=[
            make_candidate(f"fit-{n}", round(target * 0.8, 2), title=f"{query} fit"),
            make_candidate(f"over-{n}", round(target * 1.3, 2), title=f"{query} premium"),
        ])


class RateLimitedGemini:
    """모든 호출이 429 인 GeminiClient 대체"""

    def __init__(self):
        self.calls = 0

    def _fail(self):
        self.calls += 1
        raise RateLimitException("Gemini quota exceeded", "GEMINI_RATE_LIMIT")

    async def generate_plan(self, query, budget, style="Casual", currency="USD"):
        self._fail()

    async def select_best_product(self, need, candidates, context, existing=()):
        self._fail()

    async def rank_products(self, candidates, weights, context, existing=()):
        self._fail()
