"""End-to-end tests for the chat service over in-memory and SQLite stores."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.answers.assembler import (
    CLAUSES_HEADER,
    CLAUSES_UNAVAILABLE_NOTICE,
    NOT_FOUND_NOTICE,
)
from backend.app.api.deps import (
    Services,
    build_inmemory_services,
    build_services,
    build_sql_services,
)
from backend.app.chat.service import generate_chat_id
from backend.app.config import Settings
from backend.app.db.inmemory import InMemoryConversationStore, InMemoryDocumentStore
from backend.app.errors import DuplicateKeyError, ValidationError
from backend.app.llm.client import EXPLAINER_FALLBACK_TEXT, GeneratorError
from backend.app.notifications import ANSWER_CREATED, LEGAL_DOC_UPLOADED, InMemoryNotifier
from tests.fakes import DEFAULT_EXPLANATION, FailingClauseStore, FakeGenerator, FakeSleep

LAW_TEXT = """LUẬT DOANH NGHIỆP
Chương I
NHỮNG QUY ĐỊNH CHUNG
Điều 1. Phạm vi điều chỉnh
Luật này quy định về thành lập, tổ chức quản lý doanh nghiệp.
Điều 2. Đối tượng áp dụng
Doanh nghiệp và cơ quan, tổ chức, cá nhân có liên quan.
Chương II
THÀNH LẬP DOANH NGHIỆP
Điều 17. Quyền thành lập doanh nghiệp
Tổ chức, cá nhân có quyền thành lập doanh nghiệp tại Việt Nam.
"""


@pytest.fixture
def notifier() -> InMemoryNotifier:
    return InMemoryNotifier()


@pytest.fixture
def services(settings: Settings, notifier: InMemoryNotifier) -> Services:
    return build_inmemory_services(
        settings, generator=FakeGenerator(), notifier=notifier, sleep_fn=FakeSleep()
    )


def test_generated_chat_id_shape() -> None:
    chat_id = generate_chat_id()
    millis, suffix = chat_id.split("-")

    assert millis.isdigit()
    assert len(suffix) == 8
    assert suffix.isalnum() and suffix == suffix.lower()
    assert generate_chat_id() != chat_id


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_specific_clause_question(
        self, services: Services, notifier: InMemoryNotifier
    ) -> None:
        await services.ingestion.ingest_text(name="Luật Doanh nghiệp", text=LAW_TEXT)

        turn = await services.chat.send_message("Điều 1. Phạm vi điều chỉnh", "user-1")

        assert turn.metadata.clauses_found == 1
        assert turn.metadata.search_terms[0] == "điều 1"
        assert turn.metadata.documents_involved == ["Luật Doanh nghiệp"]
        assert turn.ai_general_response == DEFAULT_EXPLANATION
        assert "Luật này quy định về thành lập" in turn.answer.content
        assert turn.answer.content.index(DEFAULT_EXPLANATION) < turn.answer.content.index(
            CLAUSES_HEADER
        )
        assert turn.related_clauses[0].label == "Điều 1"
        assert [event for event, _ in notifier.events] == [LEGAL_DOC_UPLOADED, ANSWER_CREATED]

        linked = await services.conversations.list_answer_clause_ids(turn.answer.answer_id)
        assert linked == [turn.related_clauses[0].clause_id]

    @pytest.mark.asyncio
    async def test_greeting_on_empty_store(self, services: Services) -> None:
        turn = await services.chat.send_message("xin chào", "user-1")

        assert turn.metadata.clauses_found == 0
        assert turn.answer.content.endswith(NOT_FOUND_NOTICE)
        assert turn.related_clauses == []

        history = await services.chat.list_history("user-1")
        assert [(h.question, h.answer) for h in history] == [("xin chào", turn.answer.content)]

    @pytest.mark.asyncio
    async def test_chat_id_is_generated_or_kept(self, services: Services) -> None:
        generated = await services.chat.send_message("thuế", "user-1")
        kept = await services.chat.send_message("thuế", "user-1", chat_id=generated.chat_id)

        assert kept.chat_id == generated.chat_id
        assert kept.question.chat_id == generated.chat_id
        sessions = await services.chat.list_sessions("user-1")
        assert [s.chat_id for s in sessions] == [generated.chat_id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("content", "account_id"), [("", "user-1"), ("   ", "user-1"), ("thuế", "")]
    )
    async def test_invalid_input_has_no_side_effects(
        self, services: Services, notifier: InMemoryNotifier, content: str, account_id: str
    ) -> None:
        with pytest.raises(ValidationError):
            await services.chat.send_message(content, account_id)

        assert await services.chat.list_history("user-1") == []
        assert notifier.events == []

    @pytest.mark.asyncio
    async def test_explainer_failure_still_answers_with_clauses(self, settings: Settings) -> None:
        failing = FakeGenerator(default=GeneratorError("http_status", "HTTP 500"))
        sleep = FakeSleep()
        services = build_inmemory_services(settings, generator=failing, sleep_fn=sleep)
        await services.ingestion.ingest_text(name="Luật Doanh nghiệp", text=LAW_TEXT)

        turn = await services.chat.send_message("Luật doanh nghiệp", "user-1")

        assert turn.ai_general_response == EXPLAINER_FALLBACK_TEXT
        assert turn.metadata.explanation_source == "fallback"
        assert turn.metadata.search_priority.is_high
        assert turn.metadata.clauses_found > 0
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_analysis_is_reported(self, services: Services) -> None:
        turn = await services.chat.send_message("Thủ tục thành lập doanh nghiệp", "user-1")

        assert turn.metadata.question_type.value == "PROCEDURE"
        assert turn.metadata.keywords_used == "thủ, tục, thành, lập, doanh, nghiệp"

    @pytest.mark.asyncio
    async def test_clause_specific_strategy(self, services: Services) -> None:
        await services.ingestion.ingest_text(name="Luật Doanh nghiệp", text=LAW_TEXT)

        turn = await services.chat.send_message("Cho tôi biết điều 2", "user-1")

        assert turn.metadata.search_terms == ["điều 2", "2"]
        assert [c.label for c in turn.related_clauses] == ["Điều 2"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error", [ConnectionRefusedError(111, "Connection refused"), RuntimeError("pool closed")]
    )
    async def test_clause_store_outage_is_reported(
        self, settings: Settings, services: Services, error: Exception
    ) -> None:
        outage = build_services(
            settings,
            documents=InMemoryDocumentStore(),
            clauses=FailingClauseStore(error),  # type: ignore[arg-type]
            conversations=InMemoryConversationStore(),
            generator=FakeGenerator(),
            sleep_fn=FakeSleep(),
        )

        degraded = await outage.chat.send_message("thuế thu nhập", "user-1")
        no_match = await services.chat.send_message("thuế thu nhập", "user-1")

        assert degraded.metadata.clauses_found == 0
        assert degraded.metadata.clauses_source == "unavailable"
        assert degraded.answer.content.endswith(CLAUSES_UNAVAILABLE_NOTICE)
        assert NOT_FOUND_NOTICE not in degraded.answer.content
        assert degraded.ai_general_response == DEFAULT_EXPLANATION

        assert no_match.metadata.clauses_source == "store"
        assert no_match.answer.content.endswith(NOT_FOUND_NOTICE)


class TestRooms:
    @pytest.mark.asyncio
    async def test_create_and_list_rooms(self, services: Services) -> None:
        room = await services.chat.create_room(account_id="user-1", room_name="Thuế")
        await services.chat.send_message("thuế", "user-1", chat_id=room.chat_id)

        rooms = await services.chat.list_rooms("user-1")
        messages = await services.chat.get_room_messages(room.chat_id)

        assert [r.chat_id for r in rooms] == [room.chat_id]
        assert rooms[0].updated_at >= room.updated_at
        assert [m.question for m in messages] == ["thuế"]

    @pytest.mark.asyncio
    async def test_duplicate_room_id(self, services: Services) -> None:
        await services.chat.create_room(account_id="user-1", chat_id="fixed")

        with pytest.raises(DuplicateKeyError):
            await services.chat.create_room(account_id="user-2", chat_id="fixed")

    @pytest.mark.asyncio
    async def test_room_requires_account(self, services: Services) -> None:
        with pytest.raises(ValidationError):
            await services.chat.create_room(account_id=" ")

    @pytest.mark.asyncio
    async def test_history_requires_user(self, services: Services) -> None:
        with pytest.raises(ValidationError):
            await services.chat.list_history("")
        with pytest.raises(ValidationError):
            await services.chat.list_sessions("")


class TestSqlBackedChat:
    @pytest.mark.asyncio
    async def test_question_to_answer_on_sqlite(
        self, settings: Settings, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        services = build_sql_services(
            settings, session_factory, generator=FakeGenerator(), sleep_fn=FakeSleep()
        )
        await services.ingestion.ingest_text(name="Luật Doanh nghiệp", text=LAW_TEXT)

        turn = await services.chat.send_message("Điều 17", "user-1")
        general = await services.chat.send_message("quyền thành lập", "user-1", chat_id=turn.chat_id)

        assert [c.label for c in turn.related_clauses] == ["Điều 17"]
        assert turn.metadata.search_terms == ["điều 17", "17"]
        assert general.metadata.clauses_found >= 1
        history = await services.chat.list_history("user-1", turn.chat_id)
        assert [h.question for h in history] == ["Điều 17", "quyền thành lập"]
        assert all(h.answer for h in history)
