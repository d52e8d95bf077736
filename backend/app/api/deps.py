"""Service wiring and FastAPI dependency getters.

One Services container is built per application (in the lifespan, or by tests)
and stored on app.state; route dependencies read from it.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Annotated, Any

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.cache.ttl import TTLCache
from backend.app.chat.service import ChatService
from backend.app.config import Settings
from backend.app.db.inmemory import (
    InMemoryClauseStore,
    InMemoryConversationStore,
    InMemoryDocumentStore,
)
from backend.app.db.repositories import ClauseStore, ConversationStore, DocumentStore
from backend.app.db.sql_repositories import SqlClauseStore, SqlConversationStore, SqlDocumentStore
from backend.app.docs.ingest import IngestionService
from backend.app.llm.client import ExplainerClient, TextGenerator, get_text_generator
from backend.app.notifications import LoggingNotifier, Notifier
from backend.app.retrieval.engine import ClauseRetriever


@dataclass
class Services:
    """Everything a request handler may need."""

    settings: Settings
    cache: TTLCache
    documents: DocumentStore
    clauses: ClauseStore
    conversations: ConversationStore
    notifier: Notifier
    retriever: ClauseRetriever
    explainer: ExplainerClient
    chat: ChatService
    ingestion: IngestionService
    session_factory: async_sessionmaker[AsyncSession] | None = None


def build_services(
    settings: Settings,
    *,
    documents: DocumentStore,
    clauses: ClauseStore,
    conversations: ConversationStore,
    generator: TextGenerator | None = None,
    notifier: Notifier | None = None,
    cache: TTLCache | None = None,
    sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> Services:
    """Wire retrieval, explainer and services around the given stores."""
    cache = cache or TTLCache(default_ttl_seconds=settings.cache_ttl_seconds)
    notifier = notifier or LoggingNotifier()
    retriever = ClauseRetriever(clauses, cache, settings)
    explainer = ExplainerClient(
        generator or get_text_generator(settings), cache, settings, sleep_fn=sleep_fn
    )

    return Services(
        settings=settings,
        cache=cache,
        documents=documents,
        clauses=clauses,
        conversations=conversations,
        notifier=notifier,
        retriever=retriever,
        explainer=explainer,
        chat=ChatService(
            conversations=conversations,
            documents=documents,
            retriever=retriever,
            explainer=explainer,
            cache=cache,
            settings=settings,
            notifier=notifier,
        ),
        ingestion=IngestionService(
            documents,
            clauses,
            notifier,
            min_document_length=settings.min_document_length,
        ),
        session_factory=session_factory,
    )


def build_sql_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    **kwargs: Any,
) -> Services:
    """Services backed by the SQL stores."""
    return build_services(
        settings,
        documents=SqlDocumentStore(session_factory),
        clauses=SqlClauseStore(session_factory),
        conversations=SqlConversationStore(session_factory),
        session_factory=session_factory,
        **kwargs,
    )


def build_inmemory_services(settings: Settings, **kwargs: Any) -> Services:
    """Services backed by in-memory stores (no database configured, or tests)."""
    documents = InMemoryDocumentStore()
    return build_services(
        settings,
        documents=documents,
        clauses=InMemoryClauseStore(documents),
        conversations=InMemoryConversationStore(),
        **kwargs,
    )


def get_services(request: Request) -> Services:
    """FastAPI dependency for the application's services."""
    return request.app.state.services  # type: ignore[no-any-return]


ServicesDep = Annotated[Services, Depends(get_services)]


def get_chat_service(services: ServicesDep) -> ChatService:
    return services.chat


def get_ingestion_service(services: ServicesDep) -> IngestionService:
    return services.ingestion


def get_document_store(services: ServicesDep) -> DocumentStore:
    return services.documents


def get_clause_store(services: ServicesDep) -> ClauseStore:
    return services.clauses


def get_settings_dep(services: ServicesDep) -> Settings:
    return services.settings
