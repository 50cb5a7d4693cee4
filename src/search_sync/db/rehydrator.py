"""
Result Rehydrator

Loads the records behind an ordered list of search hit ids and returns them
in that exact order.

The database returns ``WHERE pk IN (...)`` rows in no particular order, so
records are fetched in one query and re-sorted in memory. Ids with no
matching row are skipped: the index may be ahead of the database.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import inspect as sa_inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConfigurationError

logger = logging.getLogger("search_sync.rehydrate")

M = TypeVar("M")


def primary_key_attribute(model: type) -> Any:
    """The mapped attribute of ``model``'s single primary key column."""
    mapper = sa_inspect(model)
    if len(mapper.primary_key) != 1:
        raise ConfigurationError(
            f"{model.__name__} must have exactly one primary key column to be rehydrated"
        )
    prop = mapper.get_property_by_column(mapper.primary_key[0])
    return getattr(model, prop.key)


def _key_coercer(model: type) -> Callable[[Any], Any]:
    column = sa_inspect(model).primary_key[0]
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return lambda value: value
    return python_type


class Rehydrator:
    """
    Order-preserving batch loader over an AsyncSession.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def rehydrate(self, model: Type[M], ordered_ids: Sequence[Any]) -> List[M]:
        """
        Fetch ``model`` rows for ``ordered_ids`` and return them in id order.

        Parameters
        ----------
        model : Type[M]
            Mapped model class with a single-column primary key.

        ordered_ids : Sequence[Any]
            Ids in relevance order, as returned by the search executor
            (usually strings). Duplicates are kept once per occurrence.

        Returns
        -------
        List[M]
            Records in the order of ``ordered_ids``; missing ids omitted.
        """
        if not ordered_ids:
            return []

        coerce = _key_coercer(model)
        keys: List[Optional[Any]] = []
        for raw in ordered_ids:
            try:
                keys.append(coerce(raw))
            except (TypeError, ValueError, ArithmeticError):
                # Cannot name a row of this table
                keys.append(None)

        wanted = {key for key in keys if key is not None}
        if not wanted:
            return []

        pk = primary_key_attribute(model)
        result = await self._session.execute(select(model).where(pk.in_(wanted)))
        by_key: Dict[Any, M] = {
            getattr(record, pk.key): record for record in result.scalars().all()
        }

        ordered = [by_key[key] for key in keys if key in by_key]

        missing = len(keys) - len(ordered)
        if missing:
            logger.info(
                "Rehydration of %s skipped %d of %d ids with no matching row",
                model.__name__,
                missing,
                len(keys),
            )

        return ordered
