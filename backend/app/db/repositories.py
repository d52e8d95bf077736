"""Repository protocol interfaces for data access."""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol
from uuid import UUID

from backend.app.models.chat import (
    Answer,
    ChatHistoryEntry,
    ChatRoom,
    ChatSessionSummary,
    Question,
)
from backend.app.models.legal import LegalClause, LegalDocument
from backend.app.utils.text import remove_tones


class MatchField(str, Enum):
    """Clause field a filter condition looks at."""

    number = "clause_number"
    title = "title"
    content = "content"


@dataclass(frozen=True)
class FieldMatch:
    """Case-insensitive regex condition on one clause field.

    With fold_tones the field value is accent-stripped before matching, so a
    pattern built from a toneless term also finds accented text.
    """

    field: MatchField
    pattern: re.Pattern[str]
    fold_tones: bool = False

    @classmethod
    def equals(cls, field: MatchField, value: str) -> "FieldMatch":
        return cls(field, re.compile(rf"^{re.escape(value)}$", re.IGNORECASE))

    @classmethod
    def contains(cls, field: MatchField, text: str, *, fold_tones: bool = False) -> "FieldMatch":
        term = remove_tones(text) if fold_tones else text
        return cls(field, re.compile(re.escape(term), re.IGNORECASE), fold_tones)

    @classmethod
    def word(cls, field: MatchField, text: str) -> "FieldMatch":
        return cls(field, re.compile(rf"\b{re.escape(text)}\b", re.IGNORECASE))

    @classmethod
    def regex(cls, field: MatchField, pattern: str) -> "FieldMatch":
        return cls(field, re.compile(pattern, re.IGNORECASE))

    def matches(self, clause: LegalClause) -> bool:
        value = getattr(clause, self.field.value)
        if not value:
            return False
        if self.fold_tones:
            value = remove_tones(value)
        return self.pattern.search(value) is not None


@dataclass
class ClauseFilter:
    """Disjunction of field conditions with an optional result limit."""

    any_of: list[FieldMatch] = field(default_factory=list)
    limit: int | None = None

    def matches(self, clause: LegalClause) -> bool:
        return any(condition.matches(clause) for condition in self.any_of)

    def apply(self, clauses: Iterable[LegalClause]) -> list[LegalClause]:
        """Keep matching clauses in input order, up to limit."""
        matched: list[LegalClause] = []
        for clause in clauses:
            if self.limit is not None and len(matched) >= self.limit:
                break
            if self.matches(clause):
                matched.append(clause)
        return matched


class DocumentStore(Protocol):
    """Store for legal documents."""

    async def create_document(
        self,
        *,
        name: str,
        document_type: str,
        issue_date: datetime,
        signee: str | None,
        url: str | None,
    ) -> LegalDocument:
        """Create a document record.

        Returns:
            Created document
        """
        ...

    async def get_document(self, document_id: UUID) -> LegalDocument | None:
        """Get document by ID, None if not found."""
        ...

    async def list_documents(self) -> list[LegalDocument]:
        """List all documents, newest first."""
        ...

    async def list_document_names(self, document_ids: list[UUID]) -> dict[UUID, str]:
        """Resolve display names for the given IDs (unknown IDs are omitted)."""
        ...


class ClauseStore(Protocol):
    """Store for legal clauses."""

    async def insert_clause(
        self,
        *,
        clause_number: str,
        content: str,
        document_id: UUID,
        title: str | None = None,
    ) -> LegalClause:
        """Insert a clause.

        Raises:
            NotFoundError: If the owning document does not exist
        """
        ...

    async def query(self, clause_filter: ClauseFilter) -> list[LegalClause]:
        """Return clauses matching the filter in insertion order.

        Raises:
            StoreError: If the backing store fails
        """
        ...

    async def query_by_document(self, document_id: UUID) -> list[LegalClause]:
        """Return a document's clauses ordered by clause number."""
        ...


class ConversationStore(Protocol):
    """Store for questions, answers and chat rooms."""

    async def create_question(self, *, content: str, account_id: str, chat_id: str) -> Question:
        ...

    async def create_answer(self, *, content: str, question_id: UUID, chat_id: str) -> Answer:
        ...

    async def link_answer_clauses(self, answer_id: UUID, clause_ids: list[UUID]) -> None:
        """Record which clauses backed an answer."""
        ...

    async def list_answer_clause_ids(self, answer_id: UUID) -> list[UUID]:
        """Clause IDs linked to an answer."""
        ...

    async def list_history(
        self, account_id: str, chat_id: str | None = None
    ) -> list[ChatHistoryEntry]:
        """Questions of a user (optionally one session) with answers, oldest first."""
        ...

    async def list_sessions(self, account_id: str) -> list[ChatSessionSummary]:
        """Sessions of a user, most recently active first."""
        ...

    async def create_room(
        self, *, chat_id: str, account_id: str, room_name: str | None
    ) -> ChatRoom:
        """Create a named room.

        Raises:
            DuplicateKeyError: If chat_id already exists
        """
        ...

    async def list_rooms(self, account_id: str) -> list[ChatRoom]:
        """Rooms of a user, most recently updated first."""
        ...

    async def get_room_messages(self, chat_id: str) -> list[ChatHistoryEntry]:
        """All turns of one session, oldest first."""
        ...
