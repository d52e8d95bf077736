"""Chat service - one question in, one assembled answer out.

Per question:
1. persist the question and analyze it (concurrently)
2. explain and retrieve (concurrently)
3. resolve document names, assemble, persist the answer

There is no transaction across steps: a question stored before the answer
write fails stays stored.
"""

import asyncio
import logging
import secrets
import string
import time
from uuid import UUID

from backend.app.answers.assembler import assemble_answer
from backend.app.cache.ttl import TTLCache, make_document_names_key
from backend.app.config import Settings
from backend.app.db.repositories import ConversationStore, DocumentStore
from backend.app.errors import ValidationError
from backend.app.llm.client import ExplainerClient
from backend.app.models.chat import ChatHistoryEntry, ChatRoom, ChatSessionSummary, ChatTurn
from backend.app.models.legal import RankedClause
from backend.app.models.query import QueryAnalysis
from backend.app.notifications import ANSWER_CREATED, LoggingNotifier, Notifier, publish_safely
from backend.app.query.analyzer import analyze_question
from backend.app.retrieval.engine import ClauseRetriever

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def generate_chat_id() -> str:
    """New session id: '<epoch ms>-<8 random base36 chars>'."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(8))
    return f"{int(time.time() * 1000)}-{suffix}"


class ChatService:
    """Answers questions and exposes conversation history."""

    def __init__(
        self,
        *,
        conversations: ConversationStore,
        documents: DocumentStore,
        retriever: ClauseRetriever,
        explainer: ExplainerClient,
        cache: TTLCache,
        settings: Settings,
        notifier: Notifier | None = None,
    ) -> None:
        self._conversations = conversations
        self._documents = documents
        self._retriever = retriever
        self._explainer = explainer
        self._cache = cache
        self._preview_length = settings.clause_preview_length
        self._names_ttl = settings.cache_ttl_seconds
        self._notifier = notifier or LoggingNotifier()

    async def send_message(
        self, content: str, account_id: str, chat_id: str | None = None
    ) -> ChatTurn:
        """Answer one question.

        Args:
            content: Question text
            account_id: Asking user
            chat_id: Existing session id; a new one is generated when omitted

        Returns:
            ChatTurn with stored question and answer, clauses and metadata

        Raises:
            ValidationError: Empty content or missing account (nothing is stored)
        """
        if not content or not content.strip():
            raise ValidationError("Question content is required")
        if not account_id or not account_id.strip():
            raise ValidationError("Account id is required")

        start = time.perf_counter()
        session_id = chat_id or generate_chat_id()
        question_text = content.strip()

        question, analysis = await asyncio.gather(
            self._conversations.create_question(
                content=question_text, account_id=account_id, chat_id=session_id
            ),
            self._analyze(question_text),
        )
        logger.info(
            f"Analyzed question {question.question_id}",
            extra={
                "structured": {
                    "strategy": analysis.search_strategy.value,
                    "question_type": analysis.question_type.value,
                    "priority": analysis.priority.value,
                }
            },
        )

        explanation, retrieval = await asyncio.gather(
            self._explainer.explain(question_text, analysis.question_type),
            self._retriever.retrieve(analysis),
        )
        clauses = retrieval.clauses

        document_names = await self._document_names(clauses)
        processing_time_ms = int((time.perf_counter() - start) * 1000)

        assembled = assemble_answer(
            explanation=explanation,
            clauses=clauses,
            document_names=document_names,
            analysis=analysis,
            processing_time_ms=processing_time_ms,
            preview_length=self._preview_length,
            cache_entries=len(self._cache),
            clauses_source=retrieval.source,
        )

        answer = await self._conversations.create_answer(
            content=assembled.content, question_id=question.question_id, chat_id=session_id
        )
        await self._conversations.link_answer_clauses(
            answer.answer_id, [item.clause.clause_id for item in clauses]
        )

        await publish_safely(
            self._notifier,
            ANSWER_CREATED,
            {
                "chat_id": session_id,
                "question_id": str(question.question_id),
                "answer_id": str(answer.answer_id),
                "clauses_found": assembled.metadata.clauses_found,
            },
        )

        return ChatTurn(
            question=question,
            answer=answer,
            ai_general_response=explanation.text,
            related_clauses=assembled.related_clauses,
            chat_id=session_id,
            metadata=assembled.metadata,
        )

    async def _analyze(self, question: str) -> QueryAnalysis:
        return analyze_question(question)

    async def _document_names(self, clauses: list[RankedClause]) -> dict[UUID, str]:
        """Resolve owning-document names; failures degrade to an empty mapping."""
        document_ids = list(dict.fromkeys(item.clause.document_id for item in clauses))
        if not document_ids:
            return {}

        key = make_document_names_key([str(doc_id) for doc_id in document_ids])
        cached = self._cache.get(key)
        if cached is not None:
            return dict(cached)

        try:
            names = await self._documents.list_document_names(document_ids)
        except Exception as e:
            logger.error(f"Document name lookup failed: {type(e).__name__}: {e}")
            return {}

        self._cache.set(key, names, ttl_seconds=self._names_ttl)
        return names

    async def create_room(
        self, *, account_id: str, room_name: str | None = None, chat_id: str | None = None
    ) -> ChatRoom:
        """Create a named session.

        Raises:
            ValidationError: Missing account
            DuplicateKeyError: chat_id already exists
        """
        if not account_id or not account_id.strip():
            raise ValidationError("Account id is required")
        return await self._conversations.create_room(
            chat_id=chat_id or generate_chat_id(), account_id=account_id, room_name=room_name
        )

    async def list_rooms(self, account_id: str) -> list[ChatRoom]:
        return await self._conversations.list_rooms(account_id)

    async def get_room_messages(self, chat_id: str) -> list[ChatHistoryEntry]:
        return await self._conversations.get_room_messages(chat_id)

    async def list_sessions(self, account_id: str) -> list[ChatSessionSummary]:
        if not account_id:
            raise ValidationError("user_id is required")
        return await self._conversations.list_sessions(account_id)

    async def list_history(
        self, account_id: str, chat_id: str | None = None
    ) -> list[ChatHistoryEntry]:
        if not account_id:
            raise ValidationError("user_id is required")
        return await self._conversations.list_history(account_id, chat_id)
