"""Query analysis models - strategy, priority and question type."""

from enum import Enum

from pydantic import BaseModel, Field


class SearchStrategy(str, Enum):
    """Retrieval algorithm selected for a question."""

    CLAUSE_SPECIFIC = "CLAUSE_SPECIFIC"
    LEGAL_DOCUMENT = "LEGAL_DOCUMENT"
    GENERAL = "GENERAL"


class Priority(str, Enum):
    """Search priority; HIGH and VERY_HIGH get the full result limit."""

    VERY_HIGH = "VERY_HIGH"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"

    @property
    def is_high(self) -> bool:
        return self in (Priority.HIGH, Priority.VERY_HIGH)


class QuestionType(str, Enum):
    """Question category; drives prompt selection only."""

    DEFINITION = "DEFINITION"
    PROCEDURE = "PROCEDURE"
    PENALTY = "PENALTY"
    RIGHTS = "RIGHTS"
    OBLIGATIONS = "OBLIGATIONS"
    CONDITIONS = "CONDITIONS"
    GENERAL = "GENERAL"


class ClauseReference(BaseModel):
    """Clause explicitly named in a question ("Điều 5" or "Điều 5. Title")."""

    clause_number: str
    clause_title: str | None = None
    full_phrase: str


class QueryAnalysis(BaseModel):
    """Output of the query analyzer."""

    search_strategy: SearchStrategy
    search_terms: list[str] = Field(..., min_length=1)
    keywords: list[str] = Field(default_factory=list)
    question_type: QuestionType = QuestionType.GENERAL
    priority: Priority
    clause_ref: ClauseReference | None = None

    @property
    def primary_term(self) -> str:
        return self.search_terms[0]
