"""
Elasticsearch Sync Client

This module provides an async client for the Elasticsearch REST API covering
everything the sync layer needs: index administration, document writes,
existence checks and raw search.

Design Goals
------------
- One reusable httpx.AsyncClient per instance, safe for concurrent use
- Explicit lifecycle: open at startup, ``aclose()`` at shutdown
- Idempotent administration: creating an existing index or deleting a
  missing index/document is a no-op, never an error
- Every network call accepts a ``timeout`` bound
- Backend responses are mapped onto the package error taxonomy with the
  backend's own detail preserved
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import quote

import httpx
from pydantic_core import to_jsonable_python

from ..config import Settings
from ..core.exceptions import (
    BackendRejectionError,
    IndexCreationError,
    NotFoundError,
    SearchConnectionError,
)
from ..documents.models import BulkItemResult, IndexDescriptor, SearchHit

logger = logging.getLogger("search_sync.engine")

# Statuses that signal an overloaded or unreachable cluster rather than a
# problem with the request itself.
TRANSIENT_STATUSES = frozenset({429, 502, 503, 504})


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


def _error_type(detail: Any) -> Optional[str]:
    if isinstance(detail, Mapping):
        error = detail.get("error")
        if isinstance(error, Mapping):
            return error.get("type")
    return None


class SearchEngineClient:
    """
    Async Elasticsearch client for index and document synchronization.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        auth: Optional[Tuple[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Parameters
        ----------
        base_url : str
            Cluster URL, e.g. ``http://localhost:9200``.

        timeout : float
            Default per-request timeout in seconds.

        auth : Optional[Tuple[str, str]]
            Basic auth credentials.

        transport : Optional[httpx.AsyncBaseTransport]
            Custom transport (tests use ``httpx.MockTransport``).
        """
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            auth=auth,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_settings(
        cls,
        cfg: Optional[Settings] = None,
        **kwargs: Any,
    ) -> "SearchEngineClient":
        """Build a client from configuration (defaults to the global settings)."""
        if cfg is None:
            from ..config import settings as cfg

        auth = None
        if cfg.elasticsearch_username and cfg.elasticsearch_password:
            auth = (
                cfg.elasticsearch_username,
                cfg.elasticsearch_password.get_secret_value(),
            )

        return cls(
            cfg.elasticsearch_url,
            timeout=cfg.elasticsearch_timeout,
            auth=auth,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "SearchEngineClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Internal Helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """
        Send a request and map transport failures to SearchConnectionError.
        """
        try:
            resp = await self._http.request(
                method,
                path,
                json=to_jsonable_python(body) if body is not None else None,
                content=content,
                headers=headers,
                timeout=httpx.USE_CLIENT_DEFAULT if timeout is None else timeout,
            )
        except httpx.TimeoutException as exc:
            raise SearchConnectionError(
                f"Elasticsearch request timed out: {method} {path}"
            ) from exc
        except httpx.TransportError as exc:
            raise SearchConnectionError(
                f"Elasticsearch unreachable at {self.base_url}: {type(exc).__name__}"
            ) from exc

        if resp.status_code in TRANSIENT_STATUSES:
            raise SearchConnectionError(
                f"Elasticsearch unavailable ({resp.status_code}) for {method} {path}"
            )

        return resp

    @staticmethod
    def _detail(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError:
            return resp.text or None

    def _reject(
        self,
        resp: httpx.Response,
        message: str,
        error_cls: type = BackendRejectionError,
    ) -> BackendRejectionError:
        detail = self._detail(resp)
        logger.error("%s (status %s): %s", message, resp.status_code, detail)
        return error_cls(message, status_code=resp.status_code, detail=detail)

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def ping(self, timeout: Optional[float] = None) -> bool:
        """Return True if the cluster answers its root endpoint."""
        try:
            resp = await self._request("GET", "/", timeout=timeout)
        except SearchConnectionError:
            return False
        return resp.is_success

    # ------------------------------------------------------------------
    # Index Administration
    # ------------------------------------------------------------------

    async def index_exists(self, name: str, timeout: Optional[float] = None) -> bool:
        resp = await self._request("HEAD", f"/{_segment(name)}", timeout=timeout)
        if resp.status_code == 404:
            return False
        if resp.is_success:
            return True
        raise self._reject(resp, f"Failed to check index {name!r}")

    async def create_index(
        self,
        descriptor: IndexDescriptor,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Create an index unless it already exists.

        Returns
        -------
        bool
            True if the index was created, False if it already existed.

        Raises
        ------
        IndexCreationError
            If the backend rejects the settings or mappings.
        """
        if await self.index_exists(descriptor.name, timeout=timeout):
            logger.info("Index %s already exists, skipping creation", descriptor.name)
            return False

        resp = await self._request(
            "PUT",
            f"/{_segment(descriptor.name)}",
            body=descriptor.body(),
            timeout=timeout,
        )

        if resp.is_success:
            logger.info("Created index %s", descriptor.name)
            return True

        # Lost a race with another creator
        if _error_type(self._detail(resp)) == "resource_already_exists_exception":
            logger.info("Index %s was created concurrently", descriptor.name)
            return False

        raise self._reject(
            resp,
            f"Failed to create index {descriptor.name!r}",
            IndexCreationError,
        )

    async def delete_index(self, name: str, timeout: Optional[float] = None) -> bool:
        """
        Delete an index and all of its documents.

        Returns False if the index did not exist.
        """
        if not await self.index_exists(name, timeout=timeout):
            return False

        resp = await self._request("DELETE", f"/{_segment(name)}", timeout=timeout)
        if resp.status_code == 404:
            return False
        if not resp.is_success:
            raise self._reject(resp, f"Failed to delete index {name!r}")

        logger.info("Deleted index %s", name)
        return True

    async def refresh(self, name: str, timeout: Optional[float] = None) -> bool:
        """Make recent writes to ``name`` visible to search."""
        resp = await self._request("POST", f"/{_segment(name)}/_refresh", timeout=timeout)
        if resp.status_code == 404:
            return False
        if not resp.is_success:
            raise self._reject(resp, f"Failed to refresh index {name!r}")
        return True

    # ------------------------------------------------------------------
    # Document Writes
    # ------------------------------------------------------------------

    async def upsert(
        self,
        index: str,
        doc_id: Any,
        document: Mapping[str, Any],
        timeout: Optional[float] = None,
    ) -> str:
        """
        Create or fully replace a document.

        Fields stored previously but absent from ``document`` are dropped.

        Returns
        -------
        str
            The engine's result, ``created`` or ``updated``.
        """
        resp = await self._request(
            "PUT",
            f"/{_segment(index)}/_doc/{_segment(doc_id)}",
            body=dict(document),
            timeout=timeout,
        )
        if not resp.is_success:
            raise self._reject(resp, f"Failed to index document {doc_id!r} into {index!r}")

        return resp.json().get("result", "updated")

    async def partial_update(
        self,
        index: str,
        doc_id: Any,
        fields: Mapping[str, Any],
        timeout: Optional[float] = None,
    ) -> str:
        """
        Merge ``fields`` into an existing document. Other fields are untouched.

        Raises
        ------
        NotFoundError
            If the document (or its index) does not exist. A partial update
            never creates a document.
        """
        resp = await self._request(
            "POST",
            f"/{_segment(index)}/_update/{_segment(doc_id)}",
            body={"doc": dict(fields)},
            timeout=timeout,
        )
        if resp.status_code == 404:
            raise NotFoundError(index, str(doc_id), detail=self._detail(resp))
        if not resp.is_success:
            raise self._reject(resp, f"Failed to update document {doc_id!r} in {index!r}")

        return resp.json().get("result", "updated")

    async def delete(
        self,
        index: str,
        doc_id: Any,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Delete a document.

        Returns False if the index or the document did not exist.
        """
        if not await self.index_exists(index, timeout=timeout):
            return False

        resp = await self._request(
            "DELETE",
            f"/{_segment(index)}/_doc/{_segment(doc_id)}",
            timeout=timeout,
        )
        if resp.status_code == 404:
            return False
        if not resp.is_success:
            raise self._reject(resp, f"Failed to delete document {doc_id!r} from {index!r}")
        return True

    async def bulk_upsert(
        self,
        index: str,
        items: Iterable[Tuple[Any, Mapping[str, Any]]],
        timeout: Optional[float] = None,
    ) -> List[BulkItemResult]:
        """
        Create or replace many documents in one round trip.

        Parameters
        ----------
        index : str
            Target index.

        items : Iterable[Tuple[Any, Mapping[str, Any]]]
            ``(doc_id, document)`` pairs.

        Returns
        -------
        List[BulkItemResult]
            One outcome per input item, in input order. Empty input returns
            an empty list without contacting the backend.
        """
        items = list(items)
        if not items:
            return []

        lines: List[str] = []
        for doc_id, document in items:
            lines.append(json.dumps({"index": {"_index": index, "_id": str(doc_id)}}))
            lines.append(json.dumps(to_jsonable_python(dict(document))))
        payload = ("\n".join(lines) + "\n").encode("utf-8")

        resp = await self._request(
            "POST",
            "/_bulk",
            content=payload,
            headers={"Content-Type": "application/x-ndjson"},
            timeout=timeout,
        )
        if not resp.is_success:
            raise self._reject(resp, f"Bulk request into {index!r} was rejected")

        reported = resp.json().get("items", [])
        if len(reported) != len(items):
            raise BackendRejectionError(
                f"Bulk response for {index!r} has {len(reported)} items, expected {len(items)}",
                status_code=resp.status_code,
                detail=resp.json(),
            )

        results: List[BulkItemResult] = []
        for (doc_id, _), entry in zip(items, reported):
            op = entry.get("index") or next(iter(entry.values()), {})
            status = int(op.get("status", 0))
            error = op.get("error")
            results.append(BulkItemResult(
                id=str(doc_id),
                ok=200 <= status < 300 and error is None,
                status=status,
                result=op.get("result"),
                error=error if isinstance(error, dict) else ({"reason": error} if error else None),
            ))

        failed = sum(1 for r in results if not r.ok)
        if failed:
            logger.warning("Bulk upsert into %s: %d of %d items failed", index, failed, len(results))
        else:
            logger.debug("Bulk upsert into %s: %d items indexed", index, len(results))

        return results

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def document_exists(
        self,
        index: str,
        doc_id: Any,
        timeout: Optional[float] = None,
    ) -> bool:
        if not await self.index_exists(index, timeout=timeout):
            return False

        resp = await self._request(
            "HEAD",
            f"/{_segment(index)}/_doc/{_segment(doc_id)}",
            timeout=timeout,
        )
        if resp.status_code == 404:
            return False
        if resp.is_success:
            return True
        raise self._reject(resp, f"Failed to check document {doc_id!r} in {index!r}")

    async def search(
        self,
        index: str,
        body: Mapping[str, Any],
        timeout: Optional[float] = None,
    ) -> List[SearchHit]:
        """
        Run a raw search request and return hits in engine order.

        A missing index is a rejection, not an empty result.
        """
        resp = await self._request(
            "POST",
            f"/{_segment(index)}/_search",
            body=dict(body),
            timeout=timeout,
        )
        if not resp.is_success:
            raise self._reject(resp, f"Search on {index!r} was rejected")

        hits = resp.json().get("hits", {}).get("hits", [])
        return [SearchHit(id=str(h["_id"]), score=h.get("_score")) for h in hits]
