"""
Search Routes

Full-text search over a registered entity: normal search with fuzzy
fallback, results loaded from the database in relevance order.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from .dependencies import get_async_session, get_entity_type, get_sync_service
from .models import SearchResponse
from ..documents.mapper import to_document
from ..service import SearchSyncService

router = APIRouter(prefix="/search", tags=["search"])


@router.get(
    "/{entity}",
    response_model=SearchResponse,
    summary="Search an entity with fuzzy fallback",
    status_code=status.HTTP_200_OK,
)
async def search(
    entity: str,
    entity_type: Annotated[type, Depends(get_entity_type)],
    service: Annotated[SearchSyncService, Depends(get_sync_service)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    q: str = Query(..., min_length=1, max_length=512),
    size: Optional[int] = Query(None, ge=1, le=100),
) -> SearchResponse:
    """
    Search ``entity`` for ``q``.

    Returns an empty result list, not an error, when nothing matches.
    """
    records = await service.search(entity_type, q, session, size=size)

    results = [
        {"id": record.search_key(), **to_document(record)}
        for record in records
    ]
    return SearchResponse(entity=entity, query=q, count=len(results), results=results)
