"""Clause search endpoint - GET /legal-clauses/search."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from backend.app.api.deps import get_clause_store
from backend.app.db.repositories import ClauseFilter, ClauseStore, FieldMatch, MatchField
from backend.app.models.legal import LegalClause

router = APIRouter(prefix="/legal-clauses", tags=["legal-clauses"])


class ClauseSearchResponse(BaseModel):
    query: str
    count: int
    clauses: list[LegalClause]


@router.get("/search", response_model=ClauseSearchResponse)
async def search_clauses(
    clauses: Annotated[ClauseStore, Depends(get_clause_store)],
    q: Annotated[str, Query(min_length=1, max_length=200)],
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> ClauseSearchResponse:
    """Case-insensitive search over clause content and clause number."""
    clause_filter = ClauseFilter(
        any_of=[
            FieldMatch.contains(MatchField.content, q),
            FieldMatch.contains(MatchField.number, q),
        ],
        limit=limit,
    )
    found = await clauses.query(clause_filter)
    return ClauseSearchResponse(query=q, count=len(found), clauses=found)
