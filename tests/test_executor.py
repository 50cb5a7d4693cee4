"""
Search executor tests: strict search, fuzzy fallback and query shape.
"""

import pytest
from unittest.mock import AsyncMock

from search_sync.core.exceptions import BackendRejectionError
from search_sync.documents.models import SearchHit
from search_sync.engine.client import SearchEngineClient
from search_sync.engine.executor import SearchExecutor, build_query


FIELDS = ("title", "body")


@pytest.fixture
async def populated(es_client):
    await es_client.upsert("posts", 1, {"title": "Samsung Galaxy", "body": "Android phone"})
    await es_client.upsert("posts", 2, {"title": "Apple iPhone", "body": "iOS phone"})
    await es_client.upsert("posts", 3, {"title": "Samsung Tab", "body": "Android tablet"})
    return es_client


class TestBuildQuery:

    def test_normal_query(self):
        assert build_query("samsung galaxy", FIELDS, size=5) == {
            "size": 5,
            "query": {
                "multi_match": {
                    "query": "samsung galaxy",
                    "fields": ["title", "body"],
                    "operator": "and",
                },
            },
        }

    def test_fuzzy_query(self):
        multi_match = build_query("samsnug", FIELDS, fuzzy=True)["query"]["multi_match"]

        assert multi_match["operator"] == "and"
        assert multi_match["fuzziness"] == 1
        assert multi_match["prefix_length"] == 2
        assert multi_match["max_expansions"] == 20

    def test_default_size(self):
        assert build_query("x", FIELDS)["size"] == 10


class TestSmartSearch:

    @pytest.mark.asyncio
    async def test_strict_hits_skip_fuzzy(self, populated, fake_es):
        executor = SearchExecutor(populated)

        ids = await executor.smart_search("posts", "samsung android", FIELDS)

        assert sorted(ids) == ["1", "3"]
        assert len(fake_es.search_bodies) == 1
        assert "fuzziness" not in fake_es.search_bodies[0]["query"]["multi_match"]

    @pytest.mark.asyncio
    async def test_all_terms_must_match(self, populated):
        executor = SearchExecutor(populated)

        assert await executor.search_normal("posts", "samsung ios", FIELDS) == []

    @pytest.mark.asyncio
    async def test_falls_back_to_fuzzy(self, populated, fake_es):
        executor = SearchExecutor(populated)

        ids = await executor.smart_search("posts", "galaxi", FIELDS)

        assert ids == ["1"]
        assert len(fake_es.search_bodies) == 2
        assert fake_es.search_bodies[1]["query"]["multi_match"]["fuzziness"] == 1

    @pytest.mark.asyncio
    async def test_fuzzy_keeps_prefix_fixed(self, populated):
        executor = SearchExecutor(populated)

        # First letter typo: outside the fuzzy budget
        assert await executor.smart_search("posts", "xalaxy", FIELDS) == []

    @pytest.mark.asyncio
    async def test_no_results_is_empty_not_error(self, populated):
        executor = SearchExecutor(populated)

        assert await executor.smart_search("posts", "nokia", FIELDS) == []

    @pytest.mark.asyncio
    async def test_blank_query_makes_no_request(self, populated, fake_es):
        executor = SearchExecutor(populated)
        before = len(fake_es.requests)

        assert await executor.smart_search("posts", "   ", FIELDS) == []
        assert len(fake_es.requests) == before

    @pytest.mark.asyncio
    async def test_order_is_preserved(self, populated, fake_es):
        fake_es.search_responses.append(["3", "1", "2"])
        executor = SearchExecutor(populated)

        assert await executor.smart_search("posts", "phone", FIELDS) == ["3", "1", "2"]

    @pytest.mark.asyncio
    async def test_size_caps_results(self, populated, fake_es):
        executor = SearchExecutor(populated, default_size=1)

        hits = await executor.search_normal("posts", "phone", FIELDS)

        assert len(hits) == 1
        assert fake_es.search_bodies[-1]["size"] == 1

    @pytest.mark.asyncio
    async def test_explicit_zero_size_is_sent(self, populated, fake_es):
        executor = SearchExecutor(populated)

        assert await executor.search_normal("posts", "phone", FIELDS, size=0) == []
        assert fake_es.search_bodies[-1]["size"] == 0

    @pytest.mark.asyncio
    async def test_missing_index_is_not_an_empty_result(self, es_client, fake_es):
        executor = SearchExecutor(es_client)

        with pytest.raises(BackendRejectionError):
            await executor.smart_search("no-such-index", "anything", FIELDS)

        assert len(fake_es.search_bodies) == 1

    @pytest.mark.asyncio
    async def test_fuzzy_results_returned_when_strict_is_empty(self):
        client = AsyncMock(spec=SearchEngineClient)
        client.search.side_effect = [
            [],
            [SearchHit(id="7", score=1.2), SearchHit(id="4", score=0.8)],
        ]
        executor = SearchExecutor(client)

        assert await executor.smart_search("posts", "galxy", FIELDS, size=3) == ["7", "4"]

        strict_body = client.search.await_args_list[0].args[1]
        fuzzy_body = client.search.await_args_list[1].args[1]
        assert "fuzziness" not in strict_body["query"]["multi_match"]
        assert fuzzy_body["query"]["multi_match"]["prefix_length"] == 2
        assert fuzzy_body["size"] == 3

    @pytest.mark.asyncio
    async def test_requires_fields(self, populated):
        executor = SearchExecutor(populated)

        with pytest.raises(ValueError):
            await executor.search_normal("posts", "phone", [])
