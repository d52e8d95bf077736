"""Legal document and clause domain models."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


class LegalDocument(BaseModel):
    """Ingested legal document metadata. Immutable after creation."""

    document_id: UUID
    name: str
    document_type: Literal["PDF"] = "PDF"
    issue_date: datetime
    signee: str | None = None
    url: str | None = None
    created_at: datetime


class LegalClause(BaseModel):
    """Smallest addressable provision of a legal document."""

    clause_id: UUID
    document_id: UUID
    clause_number: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    title: str | None = None
    # Reserved for semantic search; nothing computes or queries it yet
    embedding: list[float] | None = None


class Segment(BaseModel):
    """Chapter or clause produced by segmentation (never persisted as-is)."""

    title: str
    content: str


class RankedClause(BaseModel):
    """Clause returned by retrieval with its relevance score.

    Score is None for exact clause lookups and fuzzy fallbacks, which are not ranked.
    """

    clause: LegalClause
    score: int | None = None


ClausesSource = Literal["store", "cache", "unavailable"]


class RetrievalResult(BaseModel):
    """Clauses retrieved for one question and where they came from.

    source is "unavailable" when the clause store failed; clauses is then empty
    and the answer must not claim that nothing matched.
    """

    clauses: list[RankedClause] = Field(default_factory=list)
    source: ClausesSource = "store"

    @property
    def degraded(self) -> bool:
        return self.source == "unavailable"
