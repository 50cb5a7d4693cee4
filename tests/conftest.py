"""
Shared fixtures: an in-memory Elasticsearch served through httpx.MockTransport
and an in-memory SQLite database for the system of record.
"""

import json
from typing import Any, Dict, List, Optional
from urllib.parse import unquote

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from search_sync.db.session import create_session_factory
from search_sync.engine.client import SearchEngineClient

from sample_models import Base


def _edit_distance(a: str, b: str) -> int:
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        cur = [i]
        for j, cb in enumerate(b, 1):
            cur.append(min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + (ca != cb)))
        prev = cur
    return prev[-1]


class FakeElasticsearch:
    """
    Just enough of the Elasticsearch REST API for the sync client.

    Search matches whitespace tokens: exact for normal queries, one edit with
    a fixed two-character prefix for fuzzy ones. ``search_responses`` can
    script the hit ids of the next searches instead.
    """

    def __init__(self) -> None:
        self.indices: Dict[str, Dict[str, Any]] = {}
        self.requests: List[httpx.Request] = []
        self.search_bodies: List[Dict[str, Any]] = []
        self.search_responses: List[List[str]] = []
        self.bulk_failures: Dict[str, Dict[str, Any]] = {}
        self.create_index_error: Optional[httpx.Response] = None
        self.status_override: Optional[int] = None
        self.raise_exc: Optional[Exception] = None

    # ------------------------------------------------------------------

    def docs(self, index: str) -> Dict[str, Dict[str, Any]]:
        return self.indices[index]["docs"]

    def count(self, method: str, suffix: str = "") -> int:
        return sum(
            1 for r in self.requests
            if r.method == method and r.url.path.endswith(suffix)
        )

    def _ensure(self, index: str) -> Dict[str, Any]:
        return self.indices.setdefault(index, {"body": {}, "docs": {}})

    @staticmethod
    def _missing_index(index: str) -> httpx.Response:
        return httpx.Response(404, json={
            "error": {"type": "index_not_found_exception", "reason": f"no such index [{index}]"},
            "status": 404,
        })

    # ------------------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.raise_exc is not None:
            raise self.raise_exc
        if self.status_override is not None:
            return httpx.Response(self.status_override, json={"error": "overridden"})

        # raw_path keeps %2F inside ids intact
        raw_path = request.url.raw_path.decode("ascii").split("?", 1)[0]
        parts = [unquote(p) for p in raw_path.split("/") if p]
        method = request.method

        if not parts:
            return httpx.Response(200, json={"version": {"number": "8.13.0"}})

        if parts == ["_bulk"]:
            return self._bulk(request)

        index = parts[0]

        if len(parts) == 1:
            return self._index_admin(method, index, request)

        action = parts[1]
        if action == "_doc":
            return self._doc(method, index, parts[2], request)
        if action == "_update":
            return self._update(index, parts[2], request)
        if action == "_search":
            return self._search(index, json.loads(request.content))
        if action == "_refresh":
            if index not in self.indices:
                return self._missing_index(index)
            return httpx.Response(200, json={"_shards": {"failed": 0}})

        return httpx.Response(400, json={"error": {"type": "illegal_argument_exception"}})

    def _index_admin(self, method: str, index: str, request: httpx.Request) -> httpx.Response:
        exists = index in self.indices

        if method == "HEAD":
            return httpx.Response(200 if exists else 404)

        if method == "PUT":
            if self.create_index_error is not None:
                return self.create_index_error
            if exists:
                return httpx.Response(400, json={
                    "error": {"type": "resource_already_exists_exception"},
                    "status": 400,
                })
            self.indices[index] = {"body": json.loads(request.content), "docs": {}}
            return httpx.Response(200, json={"acknowledged": True, "index": index})

        if method == "DELETE":
            if not exists:
                return self._missing_index(index)
            del self.indices[index]
            return httpx.Response(200, json={"acknowledged": True})

        return httpx.Response(405)

    def _doc(self, method: str, index: str, doc_id: str, request: httpx.Request) -> httpx.Response:
        if method == "PUT":
            docs = self._ensure(index)["docs"]
            result = "updated" if doc_id in docs else "created"
            docs[doc_id] = json.loads(request.content)
            return httpx.Response(201 if result == "created" else 200, json={
                "_index": index, "_id": doc_id, "result": result,
            })

        if index not in self.indices:
            return self._missing_index(index)
        docs = self.indices[index]["docs"]

        if method == "HEAD":
            return httpx.Response(200 if doc_id in docs else 404)

        if method == "DELETE":
            if doc_id not in docs:
                return httpx.Response(404, json={"_id": doc_id, "result": "not_found"})
            del docs[doc_id]
            return httpx.Response(200, json={"_id": doc_id, "result": "deleted"})

        return httpx.Response(405)

    def _update(self, index: str, doc_id: str, request: httpx.Request) -> httpx.Response:
        if index not in self.indices:
            return self._missing_index(index)
        docs = self.indices[index]["docs"]
        if doc_id not in docs:
            return httpx.Response(404, json={
                "error": {"type": "document_missing_exception", "reason": f"[{doc_id}]: document missing"},
                "status": 404,
            })
        docs[doc_id].update(json.loads(request.content)["doc"])
        return httpx.Response(200, json={"_id": doc_id, "result": "updated"})

    def _bulk(self, request: httpx.Request) -> httpx.Response:
        lines = [json.loads(line) for line in request.content.decode().splitlines() if line]
        items = []
        for action, document in zip(lines[::2], lines[1::2]):
            meta = action["index"]
            doc_id = meta["_id"]
            error = self.bulk_failures.get(doc_id)
            if error is not None:
                items.append({"index": {"_id": doc_id, "status": 400, "error": error}})
                continue
            docs = self._ensure(meta["_index"])["docs"]
            result = "updated" if doc_id in docs else "created"
            docs[doc_id] = document
            items.append({"index": {
                "_id": doc_id,
                "status": 201 if result == "created" else 200,
                "result": result,
            }})
        return httpx.Response(200, json={
            "took": 1,
            "errors": any("error" in i["index"] for i in items),
            "items": items,
        })

    def _search(self, index: str, body: Dict[str, Any]) -> httpx.Response:
        self.search_bodies.append(body)
        if index not in self.indices:
            return self._missing_index(index)

        size = body.get("size", 10)
        if self.search_responses:
            ids = self.search_responses.pop(0)[:size]
            return self._hits([(doc_id, float(len(ids) - i)) for i, doc_id in enumerate(ids)])

        multi_match = body["query"]["multi_match"]
        terms = multi_match["query"].lower().split()
        fuzzy = "fuzziness" in multi_match

        scored = []
        for doc_id, doc in self.indices[index]["docs"].items():
            tokens = [
                token
                for field in multi_match["fields"]
                for token in str(doc.get(field) or "").lower().split()
            ]
            score = 0.0
            for term in terms:
                if term in tokens:
                    score += 1.0
                elif fuzzy and any(
                    t[:2] == term[:2] and _edit_distance(t, term) <= 1 for t in tokens
                ):
                    score += 0.5
                else:
                    break
            else:
                scored.append((doc_id, score))

        scored.sort(key=lambda pair: -pair[1])
        return self._hits(scored[:size])

    @staticmethod
    def _hits(pairs) -> httpx.Response:
        return httpx.Response(200, json={
            "hits": {
                "total": {"value": len(pairs), "relation": "eq"},
                "hits": [{"_id": doc_id, "_score": score} for doc_id, score in pairs],
            },
        })


# ---------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------

@pytest.fixture
def fake_es():
    return FakeElasticsearch()


@pytest.fixture
async def es_client(fake_es):
    client = SearchEngineClient(
        "http://es.test:9200",
        transport=httpx.MockTransport(fake_es.handler),
    )
    yield client
    await client.aclose()


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)
