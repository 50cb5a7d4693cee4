"""
Document Mapper

Projects a searchable entity onto the fields it allows to be indexed.

Example
-------
    attributes:    id, title, body, created_at
    search_fields: ("title",)
    document:      {"title": "Post title"}
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping

from .searchable import SearchableEntity


def project(attributes: Mapping[str, Any], allowed: Iterable[str]) -> Dict[str, Any]:
    """
    Keep only the ``allowed`` keys of ``attributes``.

    Allowed fields missing from ``attributes`` are omitted, not defaulted.
    """
    return {field: attributes[field] for field in allowed if field in attributes}


def to_document(entity: SearchableEntity) -> Dict[str, Any]:
    """Build the document sent to the search backend for ``entity``."""
    return project(entity.search_attributes(), type(entity).search_fields)


def document_id(entity: SearchableEntity) -> str:
    """Document id for ``entity``: its primary key, as the engine stores it."""
    key = entity.search_key()
    if key is None:
        raise ValueError(f"{type(entity).__name__} has no primary key yet; flush it before syncing")
    return str(key)
