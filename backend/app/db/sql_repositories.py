"""SQL implementations of repository interfaces.

Every operation opens its own session from the factory, so stores are safe to
call from concurrently gathered tasks.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import ColumnElement, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.db.models import Answer, AnswerClause, ChatRoom, LegalClause, LegalDocument, Question
from backend.app.db.repositories import ClauseFilter
from backend.app.errors import DuplicateKeyError, NotFoundError, StoreError
from backend.app.models import chat as chat_models
from backend.app.models import legal as legal_models
from backend.app.utils.text import clause_number_sort_key

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Timestamp columns are timezone-aware; naive input is taken as UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _to_document(row: LegalDocument) -> legal_models.LegalDocument:
    return legal_models.LegalDocument(
        document_id=row.document_id,
        name=row.document_name,
        document_type="PDF",
        issue_date=row.document_date_issue,
        signee=row.document_signee,
        url=row.document_url,
        created_at=row.created_at,
    )


def _to_clause(row: LegalClause) -> legal_models.LegalClause:
    return legal_models.LegalClause(
        clause_id=row.clause_id,
        document_id=row.document_id,
        clause_number=row.clause_number,
        content=row.clause_content,
        title=row.clause_title,
        embedding=row.embedding,
    )


def _to_room(row: ChatRoom) -> chat_models.ChatRoom:
    return chat_models.ChatRoom(
        chat_id=row.chat_id,
        account_id=row.account_id,
        room_name=row.room_name,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlDocumentStore:
    """SQL implementation of DocumentStore."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_document(
        self,
        *,
        name: str,
        document_type: str,
        issue_date: datetime,
        signee: str | None,
        url: str | None,
    ) -> legal_models.LegalDocument:
        """Create a document record."""
        row = LegalDocument(
            document_id=uuid.uuid4(),
            document_name=name,
            document_type=document_type,
            document_date_issue=_as_utc(issue_date),
            document_signee=signee,
            document_url=url,
            created_at=_utc_now(),
        )

        async with self._session_factory() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                raise DuplicateKeyError(f"Legal document {name!r} already exists") from e

        return _to_document(row)

    async def get_document(self, document_id: uuid.UUID) -> legal_models.LegalDocument | None:
        """Get document by ID."""
        async with self._session_factory() as session:
            row = await session.get(LegalDocument, document_id)
        return _to_document(row) if row is not None else None

    async def list_documents(self) -> list[legal_models.LegalDocument]:
        """List all documents, newest first."""
        async with self._session_factory() as session:
            result = await session.scalars(
                select(LegalDocument).order_by(LegalDocument.created_at.desc())
            )
            return [_to_document(row) for row in result]

    async def list_document_names(self, document_ids: list[uuid.UUID]) -> dict[uuid.UUID, str]:
        """Resolve display names for the given IDs."""
        if not document_ids:
            return {}

        async with self._session_factory() as session:
            result = await session.execute(
                select(LegalDocument.document_id, LegalDocument.document_name).where(
                    LegalDocument.document_id.in_(set(document_ids))
                )
            )
            return {doc_id: name for doc_id, name in result.all()}


class SqlClauseStore:
    """SQL implementation of ClauseStore."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert_clause(
        self,
        *,
        clause_number: str,
        content: str,
        document_id: uuid.UUID,
        title: str | None = None,
    ) -> legal_models.LegalClause:
        """Insert a clause after the document's existing clauses."""
        async with self._session_factory() as session:
            if await session.get(LegalDocument, document_id) is None:
                raise NotFoundError(f"Legal document {document_id} not found")

            position = await session.scalar(
                select(func.count())
                .select_from(LegalClause)
                .where(LegalClause.document_id == document_id)
            )
            row = LegalClause(
                clause_id=uuid.uuid4(),
                document_id=document_id,
                position=position or 0,
                clause_number=clause_number,
                clause_content=content,
                clause_title=title,
            )
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                raise DuplicateKeyError(f"Clause {clause_number} could not be stored") from e

        return _to_clause(row)

    async def query(self, clause_filter: ClauseFilter) -> list[legal_models.LegalClause]:
        """Return clauses matching the filter in insertion order.

        Candidates are loaded with one SELECT and filtered in Python.
        """
        try:
            async with self._session_factory() as session:
                result = await session.scalars(
                    select(LegalClause)
                    .join(LegalDocument, LegalClause.document_id == LegalDocument.document_id)
                    .order_by(LegalDocument.created_at, LegalClause.position)
                )
                candidates = [_to_clause(row) for row in result]
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Clause query failed: {type(e).__name__}")
            raise StoreError(str(e)) from e

        return clause_filter.apply(candidates)

    async def query_by_document(self, document_id: uuid.UUID) -> list[legal_models.LegalClause]:
        """Return a document's clauses ordered by clause number."""
        async with self._session_factory() as session:
            result = await session.scalars(
                select(LegalClause).where(LegalClause.document_id == document_id)
            )
            clauses = [_to_clause(row) for row in result]

        return sorted(clauses, key=lambda c: clause_number_sort_key(c.clause_number))


class SqlConversationStore:
    """SQL implementation of ConversationStore."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_question(
        self, *, content: str, account_id: str, chat_id: str
    ) -> chat_models.Question:
        now = _utc_now()
        row = Question(
            question_id=uuid.uuid4(),
            question_content=content,
            account_id=account_id,
            chat_id=chat_id,
            question_date=now,
        )

        async with self._session_factory() as session:
            session.add(row)
            await session.execute(
                update(ChatRoom).where(ChatRoom.chat_id == chat_id).values(updated_at=now)
            )
            await session.commit()

        return chat_models.Question(
            question_id=row.question_id,
            content=row.question_content,
            account_id=row.account_id,
            chat_id=row.chat_id,
            question_date=row.question_date,
        )

    async def create_answer(
        self, *, content: str, question_id: uuid.UUID, chat_id: str
    ) -> chat_models.Answer:
        row = Answer(
            answer_id=uuid.uuid4(),
            answer_content=content,
            question_id=question_id,
            chat_id=chat_id,
            answer_date=_utc_now(),
        )

        async with self._session_factory() as session:
            if await session.get(Question, question_id) is None:
                raise NotFoundError(f"Question {question_id} not found")
            session.add(row)
            await session.commit()

        return chat_models.Answer(
            answer_id=row.answer_id,
            content=row.answer_content,
            question_id=row.question_id,
            chat_id=row.chat_id,
            answer_date=row.answer_date,
        )

    async def link_answer_clauses(self, answer_id: uuid.UUID, clause_ids: list[uuid.UUID]) -> None:
        if not clause_ids:
            return

        async with self._session_factory() as session:
            session.add_all(
                AnswerClause(answer_id=answer_id, clause_id=clause_id)
                for clause_id in dict.fromkeys(clause_ids)
            )
            await session.commit()

    async def list_answer_clause_ids(self, answer_id: uuid.UUID) -> list[uuid.UUID]:
        """Clause IDs linked to an answer."""
        async with self._session_factory() as session:
            result = await session.scalars(
                select(AnswerClause.clause_id).where(AnswerClause.answer_id == answer_id)
            )
            return list(result)

    async def _history(
        self, *conditions: ColumnElement[bool]
    ) -> list[chat_models.ChatHistoryEntry]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Question, Answer)
                .outerjoin(Answer, Answer.question_id == Question.question_id)
                .where(*conditions)
                .order_by(Question.question_date)
            )
            rows = result.all()

        entries: list[chat_models.ChatHistoryEntry] = []
        seen: set[uuid.UUID] = set()
        for question, answer in rows:
            # One entry per question even if several answers were stored
            if question.question_id in seen:
                continue
            seen.add(question.question_id)
            entries.append(
                chat_models.ChatHistoryEntry(
                    question=question.question_content,
                    answer=answer.answer_content if answer else None,
                    question_date=question.question_date,
                    answer_date=answer.answer_date if answer else None,
                    chat_id=question.chat_id,
                )
            )
        return entries

    async def list_history(
        self, account_id: str, chat_id: str | None = None
    ) -> list[chat_models.ChatHistoryEntry]:
        conditions = [Question.account_id == account_id]
        if chat_id is not None:
            conditions.append(Question.chat_id == chat_id)
        return await self._history(*conditions)

    async def list_sessions(self, account_id: str) -> list[chat_models.ChatSessionSummary]:
        async with self._session_factory() as session:
            result = await session.scalars(
                select(Question)
                .where(Question.account_id == account_id)
                .order_by(Question.question_date)
            )
            questions = list(result)

        by_chat: dict[str, list[Question]] = {}
        for question in questions:
            by_chat.setdefault(question.chat_id, []).append(question)

        sessions = [
            chat_models.ChatSessionSummary(
                chat_id=chat_id,
                last_question_date=rows[-1].question_date,
                first_question=rows[0].question_content,
            )
            for chat_id, rows in by_chat.items()
        ]
        sessions.sort(key=lambda s: s.last_question_date, reverse=True)
        return sessions

    async def create_room(
        self, *, chat_id: str, account_id: str, room_name: str | None
    ) -> chat_models.ChatRoom:
        now = _utc_now()
        row = ChatRoom(
            chat_id=chat_id,
            account_id=account_id,
            room_name=room_name,
            created_at=now,
            updated_at=now,
        )

        async with self._session_factory() as session:
            if await session.get(ChatRoom, chat_id) is not None:
                raise DuplicateKeyError(f"Chat room {chat_id} already exists")
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                raise DuplicateKeyError(f"Chat room {chat_id} already exists") from e

        return _to_room(row)

    async def list_rooms(self, account_id: str) -> list[chat_models.ChatRoom]:
        async with self._session_factory() as session:
            result = await session.scalars(
                select(ChatRoom)
                .where(ChatRoom.account_id == account_id)
                .order_by(ChatRoom.updated_at.desc())
            )
            return [_to_room(row) for row in result]

    async def get_room_messages(self, chat_id: str) -> list[chat_models.ChatHistoryEntry]:
        return await self._history(Question.chat_id == chat_id)
