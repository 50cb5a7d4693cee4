"""
Index and import workflow.

Creates an entity type's index if needed, then walks the table in primary
key order and bulk-indexes it chunk by chunk. Used by
``scripts/index_model.py`` and the admin import route.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .db.rehydrator import primary_key_attribute
from .documents.models import ImportReport
from .service import SearchSyncService

logger = logging.getLogger("search_sync.indexer")

DEFAULT_CHUNK_SIZE = 500


async def import_records(
    service: SearchSyncService,
    session_factory: async_sessionmaker[AsyncSession],
    entity_type: type,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    create_index: bool = True,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> ImportReport:
    """
    Bulk-index every record of ``entity_type``.

    Parameters
    ----------
    chunk_size : int
        Records per bulk request. Must be positive.

    create_index : bool
        Create the index first if it does not exist.

    on_progress : Optional[Callable[[int, int], None]]
        Called after each chunk with ``(processed, total)``.

    Returns
    -------
    ImportReport
        Counts plus the per-item failures of every chunk.
    """
    if chunk_size <= 0:
        raise ValueError("Chunk size must be a positive number.")

    index = entity_type.search_index
    report = ImportReport(index=index)

    if create_index:
        report.created = await service.create_index(entity_type)

    pk = primary_key_attribute(entity_type)

    async with session_factory() as session:
        report.total = (
            await session.execute(select(func.count()).select_from(entity_type))
        ).scalar_one()

        if report.total == 0:
            logger.warning("No %s records found. Nothing to index.", entity_type.__name__)
            return report

        logger.info(
            "Indexing %d %s records into %s in chunks of %d",
            report.total,
            entity_type.__name__,
            index,
            chunk_size,
        )

        processed = 0
        last_key = None
        while True:
            stmt = select(entity_type).order_by(pk).limit(chunk_size)
            if last_key is not None:
                stmt = stmt.where(pk > last_key)

            rows = (await session.execute(stmt)).scalars().all()
            if not rows:
                break

            outcomes = await service.bulk_sync(rows)
            report.indexed += sum(1 for o in outcomes if o.ok)
            report.failed.extend(o for o in outcomes if not o.ok)

            processed += len(rows)
            last_key = getattr(rows[-1], pk.key)
            session.expunge_all()

            if on_progress is not None:
                on_progress(processed, report.total)

    await service.client.refresh(index)

    if report.failed:
        logger.warning(
            "Indexed %d of %d %s records; %d failed",
            report.indexed,
            report.total,
            entity_type.__name__,
            report.failed_count,
        )
    else:
        logger.info("Indexed %d %s records into %s", report.indexed, entity_type.__name__, index)

    return report
