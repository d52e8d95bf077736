"""In-memory implementations of repository interfaces."""

import uuid
from datetime import datetime, timezone

from backend.app.db.repositories import ClauseFilter
from backend.app.errors import DuplicateKeyError, NotFoundError
from backend.app.models.chat import (
    Answer,
    ChatHistoryEntry,
    ChatRoom,
    ChatSessionSummary,
    Question,
)
from backend.app.models.legal import LegalClause, LegalDocument
from backend.app.utils.text import clause_number_sort_key


class InMemoryDocumentStore:
    """In-memory implementation of DocumentStore."""

    def __init__(self) -> None:
        self._documents: dict[uuid.UUID, LegalDocument] = {}

    async def create_document(
        self,
        *,
        name: str,
        document_type: str,
        issue_date: datetime,
        signee: str | None,
        url: str | None,
    ) -> LegalDocument:
        """Create a document record."""
        document = LegalDocument(
            document_id=uuid.uuid4(),
            name=name,
            document_type=document_type,  # type: ignore[arg-type]
            issue_date=issue_date,
            signee=signee,
            url=url,
            created_at=datetime.now(timezone.utc),
        )
        self._documents[document.document_id] = document
        return document

    async def get_document(self, document_id: uuid.UUID) -> LegalDocument | None:
        """Get document by ID."""
        return self._documents.get(document_id)

    async def list_documents(self) -> list[LegalDocument]:
        """List all documents, newest first."""
        return sorted(self._documents.values(), key=lambda d: d.created_at, reverse=True)

    async def list_document_names(self, document_ids: list[uuid.UUID]) -> dict[uuid.UUID, str]:
        """Resolve display names for the given IDs."""
        return {
            doc_id: self._documents[doc_id].name
            for doc_id in document_ids
            if doc_id in self._documents
        }


class InMemoryClauseStore:
    """In-memory implementation of ClauseStore."""

    def __init__(self, documents: InMemoryDocumentStore | None = None) -> None:
        """Initialize store.

        Args:
            documents: Document store used to check the owning document on insert
                (optional; no check when omitted)
        """
        self._documents = documents
        self._clauses: dict[uuid.UUID, LegalClause] = {}

    async def insert_clause(
        self,
        *,
        clause_number: str,
        content: str,
        document_id: uuid.UUID,
        title: str | None = None,
    ) -> LegalClause:
        """Insert a clause."""
        if self._documents is not None and await self._documents.get_document(document_id) is None:
            raise NotFoundError(f"Legal document {document_id} not found")

        clause = LegalClause(
            clause_id=uuid.uuid4(),
            document_id=document_id,
            clause_number=clause_number,
            content=content,
            title=title,
        )
        self._clauses[clause.clause_id] = clause
        return clause

    def add(self, clause: LegalClause) -> None:
        """Store a pre-built clause as-is (useful for testing)."""
        self._clauses[clause.clause_id] = clause

    async def query(self, clause_filter: ClauseFilter) -> list[LegalClause]:
        """Return clauses matching the filter in insertion order."""
        return clause_filter.apply(self._clauses.values())

    async def query_by_document(self, document_id: uuid.UUID) -> list[LegalClause]:
        """Return a document's clauses ordered by clause number."""
        clauses = [c for c in self._clauses.values() if c.document_id == document_id]
        return sorted(clauses, key=lambda c: clause_number_sort_key(c.clause_number))


class InMemoryConversationStore:
    """In-memory implementation of ConversationStore."""

    def __init__(self) -> None:
        self._questions: dict[uuid.UUID, Question] = {}
        self._answers: dict[uuid.UUID, Answer] = {}
        self._answer_clauses: dict[uuid.UUID, list[uuid.UUID]] = {}
        self._rooms: dict[str, ChatRoom] = {}

    async def create_question(self, *, content: str, account_id: str, chat_id: str) -> Question:
        question = Question(
            question_id=uuid.uuid4(),
            content=content,
            account_id=account_id,
            chat_id=chat_id,
            question_date=datetime.now(timezone.utc),
        )
        self._questions[question.question_id] = question
        self._touch_room(chat_id)
        return question

    async def create_answer(self, *, content: str, question_id: uuid.UUID, chat_id: str) -> Answer:
        if question_id not in self._questions:
            raise NotFoundError(f"Question {question_id} not found")

        answer = Answer(
            answer_id=uuid.uuid4(),
            content=content,
            question_id=question_id,
            chat_id=chat_id,
            answer_date=datetime.now(timezone.utc),
        )
        self._answers[answer.answer_id] = answer
        return answer

    async def link_answer_clauses(self, answer_id: uuid.UUID, clause_ids: list[uuid.UUID]) -> None:
        self._answer_clauses.setdefault(answer_id, []).extend(clause_ids)

    async def list_answer_clause_ids(self, answer_id: uuid.UUID) -> list[uuid.UUID]:
        """Clause IDs linked to an answer."""
        return list(self._answer_clauses.get(answer_id, []))

    def _answer_for(self, question_id: uuid.UUID) -> Answer | None:
        for answer in self._answers.values():
            if answer.question_id == question_id:
                return answer
        return None

    def _history(self, questions: list[Question]) -> list[ChatHistoryEntry]:
        entries: list[ChatHistoryEntry] = []
        for question in sorted(questions, key=lambda q: q.question_date):
            answer = self._answer_for(question.question_id)
            entries.append(
                ChatHistoryEntry(
                    question=question.content,
                    answer=answer.content if answer else None,
                    question_date=question.question_date,
                    answer_date=answer.answer_date if answer else None,
                    chat_id=question.chat_id,
                )
            )
        return entries

    async def list_history(
        self, account_id: str, chat_id: str | None = None
    ) -> list[ChatHistoryEntry]:
        questions = [
            q
            for q in self._questions.values()
            if q.account_id == account_id and (chat_id is None or q.chat_id == chat_id)
        ]
        return self._history(questions)

    async def list_sessions(self, account_id: str) -> list[ChatSessionSummary]:
        by_chat: dict[str, list[Question]] = {}
        for question in sorted(self._questions.values(), key=lambda q: q.question_date):
            if question.account_id == account_id:
                by_chat.setdefault(question.chat_id, []).append(question)

        sessions = [
            ChatSessionSummary(
                chat_id=chat_id,
                last_question_date=questions[-1].question_date,
                first_question=questions[0].content,
            )
            for chat_id, questions in by_chat.items()
        ]
        sessions.sort(key=lambda s: s.last_question_date, reverse=True)
        return sessions

    async def create_room(
        self, *, chat_id: str, account_id: str, room_name: str | None
    ) -> ChatRoom:
        if chat_id in self._rooms:
            raise DuplicateKeyError(f"Chat room {chat_id} already exists")

        now = datetime.now(timezone.utc)
        room = ChatRoom(
            chat_id=chat_id,
            account_id=account_id,
            room_name=room_name,
            created_at=now,
            updated_at=now,
        )
        self._rooms[chat_id] = room
        return room

    def _touch_room(self, chat_id: str) -> None:
        room = self._rooms.get(chat_id)
        if room is not None:
            self._rooms[chat_id] = room.model_copy(
                update={"updated_at": datetime.now(timezone.utc)}
            )

    async def list_rooms(self, account_id: str) -> list[ChatRoom]:
        rooms = [r for r in self._rooms.values() if r.account_id == account_id]
        return sorted(rooms, key=lambda r: r.updated_at, reverse=True)

    async def get_room_messages(self, chat_id: str) -> list[ChatHistoryEntry]:
        return self._history([q for q in self._questions.values() if q.chat_id == chat_id])
