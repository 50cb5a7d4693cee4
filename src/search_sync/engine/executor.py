"""
Search Executor

Tiered full-text search over the searchable fields of one index:

1. Normal search: every query term must match (``operator: and``), no typo
   tolerance.
2. Fuzzy search: issued only when normal search finds nothing. Allows one
   edit per term, keeps the first two characters fixed and caps the number
   of term variants expanded per field.

Both return hits ordered by descending relevance. Zero hits is a valid
result, never an error.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from .client import SearchEngineClient
from ..documents.models import SearchHit

logger = logging.getLogger("search_sync.search")


DEFAULT_SIZE = 10

FUZZINESS = 1
PREFIX_LENGTH = 2
MAX_EXPANSIONS = 20


def build_query(
    query: str,
    fields: Sequence[str],
    size: int = DEFAULT_SIZE,
    fuzzy: bool = False,
) -> Dict[str, Any]:
    """Request body for a multi-field AND query."""
    multi_match: Dict[str, Any] = {
        "query": query,
        "fields": list(fields),
        "operator": "and",
    }
    if fuzzy:
        multi_match.update(
            fuzziness=FUZZINESS,
            prefix_length=PREFIX_LENGTH,
            max_expansions=MAX_EXPANSIONS,
        )

    return {"size": size, "query": {"multi_match": multi_match}}


class SearchExecutor:
    """
    Runs normal and fuzzy searches through a SearchEngineClient.
    """

    def __init__(self, client: SearchEngineClient, default_size: int = DEFAULT_SIZE) -> None:
        self._client = client
        self._default_size = default_size

    async def _run(
        self,
        index: str,
        query: str,
        fields: Sequence[str],
        size: Optional[int],
        fuzzy: bool,
        timeout: Optional[float],
    ) -> List[SearchHit]:
        if not query or not query.strip():
            return []
        if not fields:
            raise ValueError("At least one field is required to search")

        body = build_query(
            query.strip(),
            fields,
            size=self._default_size if size is None else size,
            fuzzy=fuzzy,
        )
        return await self._client.search(index, body, timeout=timeout)

    async def search_normal(
        self,
        index: str,
        query: str,
        fields: Sequence[str],
        size: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[SearchHit]:
        """Strict search: all terms must match, no typo tolerance."""
        return await self._run(index, query, fields, size, False, timeout)

    async def search_fuzzy(
        self,
        index: str,
        query: str,
        fields: Sequence[str],
        size: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[SearchHit]:
        """Typo-tolerant search: one edit per term, first two characters fixed."""
        return await self._run(index, query, fields, size, True, timeout)

    async def smart_search_hits(
        self,
        index: str,
        query: str,
        fields: Sequence[str],
        size: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[SearchHit]:
        """Normal search, falling back to fuzzy search when it finds nothing."""
        hits = await self.search_normal(index, query, fields, size, timeout)
        if hits:
            logger.debug("Normal search on %s matched %d hits", index, len(hits))
            return hits

        hits = await self.search_fuzzy(index, query, fields, size, timeout)
        logger.debug("Fuzzy fallback on %s matched %d hits", index, len(hits))
        return hits

    async def smart_search(
        self,
        index: str,
        query: str,
        fields: Sequence[str],
        size: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[str]:
        """
        Ordered document ids from ``smart_search_hits``. Possibly empty.
        """
        hits = await self.smart_search_hits(index, query, fields, size, timeout)
        return [hit.id for hit in hits]
