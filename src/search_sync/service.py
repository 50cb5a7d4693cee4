"""
Search Sync Service

Model-level entry points tying the pieces together:

    entity --mapper--> document --client--> Elasticsearch
    query --executor--> ordered ids --rehydrator--> ordered records

Callers wire these methods to their own create/update/delete hooks; this
service never watches the database for changes.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from .db.rehydrator import Rehydrator
from .documents.mapper import document_id, project, to_document
from .documents.models import AnalysisCatalog, BulkItemResult, IndexDescriptor
from .documents.schema import build_index_descriptor, load_catalog
from .documents.searchable import SearchableEntity
from .engine.client import SearchEngineClient
from .engine.executor import SearchExecutor

logger = logging.getLogger("search_sync.service")

M = TypeVar("M")


class SearchSyncService:
    """
    Keeps searchable entities in sync with their index and searches them.
    """

    def __init__(
        self,
        client: SearchEngineClient,
        executor: Optional[SearchExecutor] = None,
        catalog: Optional[AnalysisCatalog] = None,
    ) -> None:
        """
        Parameters
        ----------
        client : SearchEngineClient
            Open client; its lifecycle is owned by the caller.

        executor : Optional[SearchExecutor]
            Defaults to an executor over ``client``.

        catalog : Optional[AnalysisCatalog]
            Analyzer catalog. Defaults to the configured one, validated now.
        """
        self.client = client
        self.executor = executor or SearchExecutor(client)
        self.catalog = catalog if catalog is not None else load_catalog()

    # ------------------------------------------------------------------
    # Index Administration
    # ------------------------------------------------------------------

    def descriptor(self, entity_type: type) -> IndexDescriptor:
        return build_index_descriptor(entity_type, self.catalog)

    async def create_index(self, entity_type: type, timeout: Optional[float] = None) -> bool:
        """Create the entity type's index if missing. True if created."""
        return await self.client.create_index(self.descriptor(entity_type), timeout=timeout)

    async def delete_index(self, entity_type: type, timeout: Optional[float] = None) -> bool:
        return await self.client.delete_index(entity_type.search_index, timeout=timeout)

    async def recreate_index(self, entity_type: type, timeout: Optional[float] = None) -> bool:
        """Drop and rebuild the index, e.g. after a mapping change."""
        # Validate before deleting anything
        descriptor = self.descriptor(entity_type)
        await self.client.delete_index(descriptor.name, timeout=timeout)
        return await self.client.create_index(descriptor, timeout=timeout)

    # ------------------------------------------------------------------
    # Document Sync
    # ------------------------------------------------------------------

    async def sync(self, entity: SearchableEntity, timeout: Optional[float] = None) -> str:
        """
        Create or fully replace the entity's document.

        Any field not in the current document is removed from the index.
        """
        return await self.client.upsert(
            type(entity).search_index,
            document_id(entity),
            to_document(entity),
            timeout=timeout,
        )

    async def update(
        self,
        entity: SearchableEntity,
        fields: Mapping[str, Any],
        timeout: Optional[float] = None,
    ) -> str:
        """
        Update only ``fields`` of the entity's document.

        Fields outside the entity's allow-list are dropped. Raises
        NotFoundError if the document was never synced.
        """
        entity_type = type(entity)
        allowed = project(fields, entity_type.search_fields)
        ignored = set(fields) - set(allowed)
        if ignored:
            logger.debug(
                "Ignoring non-searchable fields %s for %s",
                sorted(ignored),
                entity_type.__name__,
            )

        return await self.client.partial_update(
            entity_type.search_index,
            document_id(entity),
            allowed,
            timeout=timeout,
        )

    async def remove(self, entity: SearchableEntity, timeout: Optional[float] = None) -> bool:
        """Delete the entity's document. False if there was nothing to delete."""
        return await self.client.delete(
            type(entity).search_index,
            document_id(entity),
            timeout=timeout,
        )

    async def is_synced(self, entity: SearchableEntity, timeout: Optional[float] = None) -> bool:
        return await self.client.document_exists(
            type(entity).search_index,
            document_id(entity),
            timeout=timeout,
        )

    async def bulk_sync(
        self,
        entities: Iterable[SearchableEntity],
        timeout: Optional[float] = None,
    ) -> List[BulkItemResult]:
        """
        Upsert many entities of one type in a single request.

        Returns per-item outcomes; an empty input makes no request.
        """
        entities = list(entities)
        if not entities:
            return []

        entity_type = type(entities[0])
        for entity in entities:
            if type(entity).search_index != entity_type.search_index:
                raise ValueError("bulk_sync requires entities sharing one index")

        return await self.client.bulk_upsert(
            entity_type.search_index,
            ((document_id(e), to_document(e)) for e in entities),
            timeout=timeout,
        )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_ids(
        self,
        entity_type: type,
        query: str,
        size: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[str]:
        """Ordered ids matching ``query`` over the entity's searchable fields."""
        return await self.executor.smart_search(
            entity_type.search_index,
            query,
            entity_type.search_fields,
            size=size,
            timeout=timeout,
        )

    async def search(
        self,
        entity_type: Type[M],
        query: str,
        session: AsyncSession,
        size: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[M]:
        """
        Search the index and load matching records in relevance order.
        """
        ids = await self.search_ids(entity_type, query, size=size, timeout=timeout)
        if not ids:
            return []
        return await Rehydrator(session).rehydrate(entity_type, ids)
