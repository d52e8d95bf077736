"""Clause retrieval engine - strategy dispatch, scoring and deduplication.

Strategies:
- CLAUSE_SPECIFIC: exact lookup by clause number / title, falling back to a
  fuzzy search over every term when the exact lookup finds nothing. Results
  are unscored.
- LEGAL_DOCUMENT / GENERAL: disjunctive filter over all terms, scored against
  the primary term (+10 number, +5 title, +2 content), sorted by score
  descending then natural clause number.

Retrieval never raises: store failures are logged and become an empty result
marked "unavailable", so callers can tell an outage from a genuine no-match.
"""

import logging
import math
import re
from uuid import UUID

from backend.app.cache.ttl import CacheKey, TTLCache, make_clause_key
from backend.app.config import Settings
from backend.app.db.repositories import ClauseFilter, ClauseStore, FieldMatch, MatchField
from backend.app.errors import StoreError
from backend.app.models.legal import LegalClause, RankedClause, RetrievalResult
from backend.app.models.query import ClauseReference, QueryAnalysis, SearchStrategy
from backend.app.utils.metrics import clauses_retrieved, retrieval_errors_total
from backend.app.utils.text import clause_number_sort_key

logger = logging.getLogger(__name__)

NUMBER_MATCH_SCORE = 10
TITLE_MATCH_SCORE = 5
CONTENT_MATCH_SCORE = 2


def exact_clause_filter(ref: ClauseReference) -> ClauseFilter:
    """Filter for an explicitly named clause."""
    conditions = [
        FieldMatch.equals(MatchField.number, ref.clause_number),
        FieldMatch.regex(MatchField.content, rf"điều\s+{re.escape(ref.clause_number)}\b"),
    ]
    if ref.clause_title:
        conditions.append(FieldMatch.contains(MatchField.title, ref.clause_title))
        conditions.append(FieldMatch.contains(MatchField.content, ref.clause_title))
    return ClauseFilter(any_of=conditions)


def fuzzy_clause_filter(search_terms: list[str], limit: int) -> ClauseFilter:
    """Widened filter used when an exact clause lookup finds nothing."""
    conditions: list[FieldMatch] = []
    for term in search_terms:
        conditions.append(FieldMatch.contains(MatchField.content, term))
        conditions.append(FieldMatch.contains(MatchField.title, term))
        conditions.append(FieldMatch.contains(MatchField.content, term, fold_tones=True))
    return ClauseFilter(any_of=conditions, limit=limit)


def keyword_clause_filter(search_terms: list[str]) -> ClauseFilter:
    """Disjunctive filter over every term for the scored strategies."""
    conditions: list[FieldMatch] = []
    for term in search_terms:
        conditions.append(FieldMatch.word(MatchField.content, term))
        conditions.append(FieldMatch.equals(MatchField.number, term))
        conditions.append(FieldMatch.contains(MatchField.content, term))
        conditions.append(FieldMatch.contains(MatchField.content, term, fold_tones=True))
        conditions.append(FieldMatch.contains(MatchField.title, term))
    return ClauseFilter(any_of=conditions)


def score_clause(clause: LegalClause, primary_term: str) -> int:
    """Relevance of a clause against the primary search term."""
    pattern = re.compile(re.escape(primary_term), re.IGNORECASE)
    score = 0
    if pattern.search(clause.clause_number):
        score += NUMBER_MATCH_SCORE
    if clause.title and pattern.search(clause.title):
        score += TITLE_MATCH_SCORE
    if pattern.search(clause.content):
        score += CONTENT_MATCH_SCORE
    return score


def rank_clauses(clauses: list[LegalClause], primary_term: str) -> list[RankedClause]:
    """Score clauses and sort by score descending, then clause number ascending."""
    ranked = [RankedClause(clause=c, score=score_clause(c, primary_term)) for c in clauses]
    ranked.sort(key=lambda r: (-(r.score or 0), clause_number_sort_key(r.clause.clause_number)))
    return ranked


def dedupe_clauses(ranked: list[RankedClause], limit: int) -> list[RankedClause]:
    """Keep the first occurrence of each clause identity, then cap."""
    seen: set[UUID] = set()
    unique: list[RankedClause] = []
    for item in ranked:
        if item.clause.clause_id in seen:
            continue
        seen.add(item.clause.clause_id)
        unique.append(item)
    return unique[:limit]


class ClauseRetriever:
    """Retrieves ranked clauses for an analyzed question."""

    def __init__(self, store: ClauseStore, cache: TTLCache, settings: Settings) -> None:
        """Initialize retriever.

        Args:
            store: Clause store to query
            cache: Shared TTL cache
            settings: Limits and cache TTL
        """
        self._store = store
        self._cache = cache
        self._max_clauses = settings.max_clauses_limit
        self._low_priority_ratio = settings.low_priority_limit_ratio
        self._cache_ttl = settings.clause_cache_ttl_seconds

    def limit_for(self, analysis: QueryAnalysis) -> int:
        """Result limit for the scored strategies."""
        if analysis.priority.is_high:
            return self._max_clauses
        return math.floor(self._max_clauses * self._low_priority_ratio)

    async def retrieve(self, analysis: QueryAnalysis) -> RetrievalResult:
        """Retrieve clauses for an analyzed question.

        Returns:
            RetrievalResult with deduplicated clauses, at most max_clauses_limit
            long. When the store fails the result is empty with source
            "unavailable"; nothing is cached in that case.
        """
        strategy = analysis.search_strategy.value
        key: CacheKey = make_clause_key(strategy, analysis.search_terms)

        cached = self._cache.get(key)
        if cached is not None:
            return RetrievalResult(clauses=list(cached), source="cache")

        async with self._cache.lock_for(key):
            # Another request may have filled the entry while we waited
            cached = self._cache.get(key)
            if cached is not None:
                return RetrievalResult(clauses=list(cached), source="cache")

            try:
                ranked = await self._search(analysis)
            except StoreError as e:
                logger.error(f"Clause search failed for strategy {strategy}: {e}")
                retrieval_errors_total.labels(strategy=strategy).inc()
                return RetrievalResult(source="unavailable")
            except Exception as e:
                logger.exception(
                    f"Clause search raised {type(e).__name__} for strategy {strategy}"
                )
                retrieval_errors_total.labels(strategy=strategy).inc()
                return RetrievalResult(source="unavailable")

            result = dedupe_clauses(ranked, self._max_clauses)
            self._cache.set(key, result, ttl_seconds=self._cache_ttl)

        clauses_retrieved.labels(strategy=strategy).observe(len(result))
        logger.info(
            f"Retrieved {len(result)} clauses",
            extra={
                "structured": {
                    "strategy": strategy,
                    "terms": analysis.search_terms,
                    "count": len(result),
                }
            },
        )
        return RetrievalResult(clauses=list(result), source="store")

    async def _search(self, analysis: QueryAnalysis) -> list[RankedClause]:
        if analysis.search_strategy == SearchStrategy.CLAUSE_SPECIFIC and analysis.clause_ref:
            exact = await self._store.query(exact_clause_filter(analysis.clause_ref))
            if exact:
                return [RankedClause(clause=c) for c in exact]

            logger.info(f"No exact match for clause {analysis.clause_ref.clause_number}, widening")
            fuzzy = await self._store.query(
                fuzzy_clause_filter(analysis.search_terms, self._max_clauses)
            )
            return [RankedClause(clause=c) for c in fuzzy]

        candidates = await self._store.query(keyword_clause_filter(analysis.search_terms))
        return rank_clauses(candidates, analysis.primary_term)[: self.limit_for(analysis)]
