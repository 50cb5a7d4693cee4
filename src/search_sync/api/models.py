"""
API Models

Pydantic models for request/response validation of the search and index
administration endpoints.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class OperationResult(BaseModel):
    """
    Standardized mutation operation result.
    ``ok`` means the call was a no-op (index already present or absent).
    Index creation reports the indexed fields and the index body in ``details``.
    """
    status: Literal["created", "deleted", "ok"]
    index: str
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="forbid")


class IndexStatus(BaseModel):
    index: str
    exists: bool


class SearchResponse(BaseModel):
    """
    Records matching a query, in relevance order.
    Each result holds the record's key plus its searchable fields.
    """
    entity: str
    query: str
    count: int = Field(..., ge=0)
    results: List[Dict[str, Any]]


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    elasticsearch: str
    elasticsearch_reachable: bool
    entities: List[str]
