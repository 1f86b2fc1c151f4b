"""SearchResultStore 테스트"""

from __future__ import annotations

import pytest

from setup_finder.engine.result import BuildResult
from setup_finder.services.search_store import SearchResultStore

from tests.fixtures.fakes import make_product

SEARCH_ID = "search_1700000000000_abc123xyz"


def make_result(search_id: str = SEARCH_ID) -> BuildResult:
    return BuildResult(
        products=[make_product("a", 100)],
        ghost_tips=["tip"],
        search_metadata={"totalResults": 1, "searchTime": 10, "query": "desk", "currency": "USD"},
        is_setup=False,
        search_id=search_id,
    )


class TestSearchResultStore:
    @pytest.mark.parametrize("search_id,valid", [
        (SEARCH_ID, True),
        ("search_1_abcdefghi", True),
        ("search_abc_abc123xyz", False),
        ("search_1700000000000_ABC123XYZ", False),
        ("search_1700000000000_abc123", False),
        ("../etc/passwd", False),
        ("", False),
    ])
    def test_is_valid_id(self, search_id, valid):
        assert SearchResultStore.is_valid_id(search_id) is valid

    @pytest.mark.asyncio
    async def test_save_and_get(self, cache_adapter, fake_redis):
        """저장 후 같은 ID로 조회, 키는 results:{id}"""
        store = SearchResultStore(cache_adapter, ttl=120)

        assert await store.save(make_result()) is True
        assert fake_redis.ttls[f"results:{SEARCH_ID}"] == 120

        restored = await store.get(SEARCH_ID)
        assert restored.products[0].id == "a"
        assert restored.search_id == SEARCH_ID

    @pytest.mark.asyncio
    async def test_missing_and_invalid(self, cache_adapter):
        store = SearchResultStore(cache_adapter)
        assert await store.get(SEARCH_ID) is None
        assert await store.get("not-an-id") is None

    @pytest.mark.asyncio
    async def test_refuses_without_id(self, cache_adapter):
        assert await SearchResultStore(cache_adapter).save(make_result(search_id="")) is False

    @pytest.mark.asyncio
    async def test_corrupt_payload(self, cache_adapter):
        await cache_adapter.set(f"results:{SEARCH_ID}", {"products": "broken"})
        assert await SearchResultStore(cache_adapter).get(SEARCH_ID) is None
