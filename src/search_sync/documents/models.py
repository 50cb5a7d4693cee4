"""
Search Data Models

Canonical pydantic models exchanged between the schema builder, the sync
client and the search executor.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict


class FieldDeclaration(BaseModel):
    """
    Mapping of a single indexed field.

    Unknown keys (``fields``, ``format``, ``index`` ...) are passed through to
    the engine untouched.
    """

    type: str = Field(..., min_length=1)
    analyzer: Optional[str] = None
    search_analyzer: Optional[str] = None

    model_config = ConfigDict(extra="allow", frozen=True)

    def to_mapping(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class AnalysisCatalog(BaseModel):
    """
    Process-wide analysis settings: analyzers, tokenizers and filter chains.
    """

    analyzer: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    tokenizer: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    filter: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    char_filter: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    normalizer: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)

    def to_settings(self) -> Dict[str, Any]:
        # Empty sections are omitted; the engine rejects none of them but
        # they add noise to the stored settings.
        return {k: v for k, v in self.model_dump().items() if v}


class IndexDescriptor(BaseModel):
    """
    Complete configuration of one index. Immutable once built; changing a
    mapping means deleting and recreating the index.
    """

    name: str = Field(..., min_length=1)
    analysis: Dict[str, Any] = Field(default_factory=dict)
    properties: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)

    def body(self) -> Dict[str, Any]:
        """Request body for index creation."""
        body: Dict[str, Any] = {"mappings": {"properties": self.properties}}
        if self.analysis:
            body["settings"] = {"analysis": self.analysis}
        return body


class SearchHit(BaseModel):
    """A single ranked hit. Only the position in the hit list is authoritative."""

    id: str
    score: Optional[float] = None

    model_config = ConfigDict(frozen=True)


class BulkItemResult(BaseModel):
    """Outcome of one item in a bulk request."""

    id: str
    ok: bool
    status: int
    result: Optional[str] = None
    error: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(frozen=True)


class ImportReport(BaseModel):
    """Summary of an index-and-import run."""

    index: str
    created: bool = False
    total: int = 0
    indexed: int = 0
    failed: List[BulkItemResult] = Field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failed)
