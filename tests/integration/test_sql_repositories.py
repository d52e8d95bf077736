"""Integration tests for the SQL stores on a file-backed SQLite database."""

import uuid
from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from backend.app.db.repositories import ClauseFilter, FieldMatch, MatchField
from backend.app.db.sql_repositories import SqlClauseStore, SqlConversationStore, SqlDocumentStore
from backend.app.errors import DuplicateKeyError, NotFoundError, StoreError


async def _make_document(store: SqlDocumentStore, name: str = "Luật Doanh nghiệp"):
    return await store.create_document(
        name=name,
        document_type="PDF",
        issue_date=datetime(2020, 6, 17),
        signee="Quốc hội",
        url=None,
    )


class TestSqlDocumentStore:
    @pytest.mark.asyncio
    async def test_create_and_get(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        store = SqlDocumentStore(session_factory)

        document = await _make_document(store)
        fetched = await store.get_document(document.document_id)

        assert fetched is not None
        assert fetched.name == "Luật Doanh nghiệp"
        assert fetched.signee == "Quốc hội"
        assert fetched.document_type == "PDF"

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        assert await SqlDocumentStore(session_factory).get_document(uuid.uuid4()) is None

    @pytest.mark.asyncio
    async def test_list_newest_first_and_names(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        store = SqlDocumentStore(session_factory)
        older = await _make_document(store, "Luật A")
        newer = await _make_document(store, "Luật B")

        listed = await store.list_documents()
        names = await store.list_document_names([older.document_id, uuid.uuid4()])

        assert [d.name for d in listed] == ["Luật B", "Luật A"]
        assert names == {older.document_id: "Luật A"}
        assert newer.document_id not in names


class TestSqlClauseStore:
    @pytest.mark.asyncio
    async def test_query_preserves_insertion_order(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        documents = SqlDocumentStore(session_factory)
        clauses = SqlClauseStore(session_factory)
        document = await _make_document(documents)

        for number in ["10", "2", "1"]:
            await clauses.insert_clause(
                clause_number=number,
                content=f"quy định về thuế {number}",
                document_id=document.document_id,
            )

        found = await clauses.query(
            ClauseFilter(any_of=[FieldMatch.contains(MatchField.content, "thuế")])
        )
        by_document = await clauses.query_by_document(document.document_id)

        assert [c.clause_number for c in found] == ["10", "2", "1"]
        assert [c.clause_number for c in by_document] == ["1", "2", "10"]

    @pytest.mark.asyncio
    async def test_query_applies_limit_and_tone_folding(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        documents = SqlDocumentStore(session_factory)
        clauses = SqlClauseStore(session_factory)
        document = await _make_document(documents)
        for i in range(5):
            await clauses.insert_clause(
                clause_number=str(i + 1),
                content="Phạm vi điều chỉnh",
                document_id=document.document_id,
                title="Phạm vi",
            )

        found = await clauses.query(
            ClauseFilter(
                any_of=[FieldMatch.contains(MatchField.content, "pham vi", fold_tones=True)],
                limit=3,
            )
        )

        assert len(found) == 3
        assert found[0].title == "Phạm vi"

    @pytest.mark.asyncio
    async def test_insert_for_missing_document_raises(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        with pytest.raises(NotFoundError):
            await SqlClauseStore(session_factory).insert_clause(
                clause_number="1", content="nội dung", document_id=uuid.uuid4()
            )

    @pytest.mark.asyncio
    async def test_query_failure_becomes_store_error(self, sqlite_engine: AsyncEngine) -> None:
        session_factory = async_sessionmaker(bind=sqlite_engine, expire_on_commit=False)
        async with sqlite_engine.begin() as conn:
            await conn.exec_driver_sql("DROP TABLE legal_clause")

        with pytest.raises(StoreError):
            await SqlClauseStore(session_factory).query(ClauseFilter())

    @pytest.mark.asyncio
    async def test_connection_refused_becomes_store_error(self) -> None:
        class UnreachableSession:
            async def __aenter__(self) -> AsyncSession:
                raise ConnectionRefusedError(111, "Connection refused")

            async def __aexit__(self, *exc_info: object) -> None:
                return None

        store = SqlClauseStore(UnreachableSession)  # type: ignore[arg-type]

        with pytest.raises(StoreError) as exc_info:
            await store.query(ClauseFilter())

        assert isinstance(exc_info.value.__cause__, ConnectionRefusedError)


class TestSqlConversationStore:
    @pytest.mark.asyncio
    async def test_history_pairs_questions_with_answers(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        store = SqlConversationStore(session_factory)

        first = await store.create_question(content="Câu hỏi 1", account_id="u1", chat_id="c1")
        await store.create_answer(content="Trả lời 1", question_id=first.question_id, chat_id="c1")
        await store.create_question(content="Câu hỏi 2", account_id="u1", chat_id="c2")
        await store.create_question(content="Của người khác", account_id="u2", chat_id="c3")

        history = await store.list_history("u1")
        one_session = await store.list_history("u1", "c1")

        assert [(h.question, h.answer) for h in history] == [
            ("Câu hỏi 1", "Trả lời 1"),
            ("Câu hỏi 2", None),
        ]
        assert [h.chat_id for h in one_session] == ["c1"]

    @pytest.mark.asyncio
    async def test_answer_requires_question(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        with pytest.raises(NotFoundError):
            await SqlConversationStore(session_factory).create_answer(
                content="x", question_id=uuid.uuid4(), chat_id="c1"
            )

    @pytest.mark.asyncio
    async def test_sessions_newest_activity_first(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        store = SqlConversationStore(session_factory)
        await store.create_question(content="Mở đầu A", account_id="u1", chat_id="a")
        await store.create_question(content="Mở đầu B", account_id="u1", chat_id="b")
        await store.create_question(content="Tiếp A", account_id="u1", chat_id="a")

        sessions = await store.list_sessions("u1")

        assert [s.chat_id for s in sessions] == ["a", "b"]
        assert sessions[0].first_question == "Mở đầu A"

    @pytest.mark.asyncio
    async def test_answer_clause_links(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        documents = SqlDocumentStore(session_factory)
        clauses = SqlClauseStore(session_factory)
        store = SqlConversationStore(session_factory)
        document = await _make_document(documents)
        clause = await clauses.insert_clause(
            clause_number="1", content="nội dung", document_id=document.document_id
        )
        question = await store.create_question(content="Điều 1", account_id="u1", chat_id="c1")
        answer = await store.create_answer(
            content="...", question_id=question.question_id, chat_id="c1"
        )

        await store.link_answer_clauses(answer.answer_id, [clause.clause_id, clause.clause_id])

        assert await store.list_answer_clause_ids(answer.answer_id) == [clause.clause_id]

    @pytest.mark.asyncio
    async def test_rooms(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        store = SqlConversationStore(session_factory)

        room = await store.create_room(chat_id="room-1", account_id="u1", room_name="Thuế")
        await store.create_room(chat_id="room-2", account_id="u1", room_name=None)
        await store.create_question(content="Hỏi trong phòng 1", account_id="u1", chat_id="room-1")

        with pytest.raises(DuplicateKeyError):
            await store.create_room(chat_id="room-1", account_id="u2", room_name=None)

        rooms = await store.list_rooms("u1")
        messages = await store.get_room_messages("room-1")

        assert room.room_name == "Thuế"
        assert [r.chat_id for r in rooms] == ["room-1", "room-2"]
        assert [m.question for m in messages] == ["Hỏi trong phòng 1"]
