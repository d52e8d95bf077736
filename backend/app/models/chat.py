"""Conversation models - questions, answers, rooms and assembled chat turns."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from backend.app.models.legal import ClausesSource
from backend.app.models.query import Priority, QuestionType


class Question(BaseModel):
    """User question; one logical turn of a chat session."""

    question_id: UUID
    content: str
    account_id: str
    chat_id: str
    question_date: datetime


class Answer(BaseModel):
    """Stored answer; always references exactly one question."""

    answer_id: UUID
    content: str
    question_id: UUID
    chat_id: str
    answer_date: datetime


class ChatRoom(BaseModel):
    """Named chat session owned by one account."""

    chat_id: str
    account_id: str
    room_name: str | None = None
    created_at: datetime
    updated_at: datetime


class ChatHistoryEntry(BaseModel):
    """Question with its answer (if one was stored)."""

    question: str
    answer: str | None = None
    question_date: datetime
    answer_date: datetime | None = None
    chat_id: str


class ChatSessionSummary(BaseModel):
    """Session listing entry: latest activity and the opening question."""

    chat_id: str
    last_question_date: datetime
    first_question: str


class Explanation(BaseModel):
    """General explanation from the external model.

    source tells whether the text came from the model, the cache, or the
    fixed fallback used after every attempt failed.
    """

    text: str
    source: Literal["model", "cache", "fallback"]


class FormattedClause(BaseModel):
    """Clause as presented to the user."""

    index: int = Field(..., description="1-based position in the answer")
    label: str = Field(..., description='"Điều N", or "Mục i" when the number is unknown')
    title: str = ""
    preview: str
    document_name: str
    document_id: UUID
    clause_id: UUID
    relevance_score: int = 0


class AnswerMetadata(BaseModel):
    """Observability payload for one answered question."""

    question_type: QuestionType
    keywords_used: str
    search_terms: list[str]
    clauses_found: int
    # "unavailable" means the clause store failed, not that nothing matched
    clauses_source: ClausesSource = "store"
    documents_involved: list[str]
    processing_time_ms: int
    search_priority: Priority
    explanation_source: Literal["model", "cache", "fallback"]
    cache_entries: int = 0
    response_structure: str = "ai_general_knowledge + db_specific_clauses"


class AssembledAnswer(BaseModel):
    """Composed answer text plus its structured parts."""

    content: str
    related_clauses: list[FormattedClause]
    metadata: AnswerMetadata


class ChatTurn(BaseModel):
    """Result of handling one question end to end."""

    question: Question
    answer: Answer
    ai_general_response: str
    related_clauses: list[FormattedClause]
    chat_id: str
    metadata: AnswerMetadata
