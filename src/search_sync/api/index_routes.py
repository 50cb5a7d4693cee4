"""
Index Administration Routes

Create, drop and (re)populate the index of a registered entity. All routes
require the admin API key.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .dependencies import (
    get_entity_type,
    get_session_factory,
    get_sync_service,
    verify_admin,
)
from .models import IndexStatus, OperationResult
from ..documents.models import ImportReport
from ..indexer import DEFAULT_CHUNK_SIZE, import_records
from ..service import SearchSyncService

router = APIRouter(
    prefix="/indexes",
    tags=["indexes"],
    dependencies=[Depends(verify_admin)],
)


@router.get("/{entity}", response_model=IndexStatus)
async def index_status(
    entity_type: Annotated[type, Depends(get_entity_type)],
    service: Annotated[SearchSyncService, Depends(get_sync_service)],
) -> IndexStatus:
    index = entity_type.search_index
    return IndexStatus(index=index, exists=await service.client.index_exists(index))


@router.post(
    "/{entity}",
    response_model=OperationResult,
    summary="Create the entity's index if it does not exist",
)
async def create_index(
    entity_type: Annotated[type, Depends(get_entity_type)],
    service: Annotated[SearchSyncService, Depends(get_sync_service)],
) -> OperationResult:
    created = await service.create_index(entity_type)
    return OperationResult(
        status="created" if created else "ok",
        index=entity_type.search_index,
        details={
            "fields": list(entity_type.search_fields),
            "body": service.descriptor(entity_type).body(),
        },
    )


@router.delete(
    "/{entity}",
    response_model=OperationResult,
    summary="Delete the entity's index and all of its documents",
)
async def delete_index(
    entity_type: Annotated[type, Depends(get_entity_type)],
    service: Annotated[SearchSyncService, Depends(get_sync_service)],
) -> OperationResult:
    deleted = await service.delete_index(entity_type)
    return OperationResult(
        status="deleted" if deleted else "ok",
        index=entity_type.search_index,
    )


@router.post(
    "/{entity}/import",
    response_model=ImportReport,
    status_code=status.HTTP_200_OK,
    summary="Bulk index every record of the entity",
)
async def import_entity(
    entity_type: Annotated[type, Depends(get_entity_type)],
    service: Annotated[SearchSyncService, Depends(get_sync_service)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
    chunk_size: int = Query(DEFAULT_CHUNK_SIZE, ge=1, le=10000),
    recreate: bool = Query(False),
) -> ImportReport:
    if recreate:
        await service.recreate_index(entity_type)

    return await import_records(
        service,
        session_factory,
        entity_type,
        chunk_size=chunk_size,
    )
