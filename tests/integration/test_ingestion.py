"""Integration tests for document ingestion and PDF extraction."""

from datetime import timedelta

import fitz
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.db.inmemory import InMemoryClauseStore, InMemoryDocumentStore
from backend.app.db.sql_repositories import SqlClauseStore, SqlDocumentStore
from backend.app.docs.ingest import DEFAULT_SIGNEE, IngestionService
from backend.app.docs.pdf import extract_pdf_text
from backend.app.errors import InvalidDocumentError, NoClausesExtractedError
from backend.app.notifications import LEGAL_DOC_UPLOADED, InMemoryNotifier

LAW_TEXT = """NGHỊ ĐỊNH
Chương I
QUY ĐỊNH CHUNG
Điều 1. Phạm vi điều chỉnh
Nghị định này quy định chi tiết một số điều của Luật.
Điều 2.
Chương II
ĐIỀU KHOẢN THI HÀNH
Điều 3. Hiệu lực thi hành
Nghị định này có hiệu lực kể từ ngày ký.
"""


def make_pdf(text: str) -> bytes:
    document = fitz.open()
    page = document.new_page()
    page.insert_text((72, 72), text)
    data = document.tobytes()
    document.close()
    return data


class TestIngestionService:
    @pytest.mark.asyncio
    async def test_ingest_in_memory(
        self, document_store: InMemoryDocumentStore, clause_store: InMemoryClauseStore
    ) -> None:
        notifier = InMemoryNotifier()
        service = IngestionService(document_store, clause_store, notifier)

        report = await service.ingest_text(name="Nghị định 01", text=LAW_TEXT, url="s3://bucket/nd01.pdf")

        assert report.chapter_count == 2
        assert report.chapters == ["Chương I", "Chương II"]
        assert report.clause_count == 3
        assert [c.clause_number for c in report.clauses] == ["1", "2", "3"]
        assert [c.title for c in report.clauses] == ["Phạm vi điều chỉnh", None, "Hiệu lực thi hành"]
        assert report.document.signee == DEFAULT_SIGNEE
        assert report.document.url == "s3://bucket/nd01.pdf"
        assert report.document.issue_date.utcoffset() == timedelta(0)
        assert "2 chương" in report.message and "3 điều khoản" in report.message

        event, payload = notifier.events[0]
        assert event == LEGAL_DOC_UPLOADED
        assert payload["document"]["name"] == "Nghị định 01"

    @pytest.mark.asyncio
    async def test_clause_without_body_keeps_heading_as_content(
        self, document_store: InMemoryDocumentStore, clause_store: InMemoryClauseStore
    ) -> None:
        service = IngestionService(document_store, clause_store)

        report = await service.ingest_text(name="Nghị định 01", text=LAW_TEXT)

        # "Điều 2." is followed only by the next chapter heading
        assert report.clauses[1].content.startswith("Chương II")

        only_heading = await service.ingest_text(
            name="Nghị định 02", text="Văn bản thử nghiệm dài\nĐiều 9. Điều khoản cuối"
        )
        assert only_heading.clauses[0].content == "Điều 9. Điều khoản cuối"

    @pytest.mark.asyncio
    async def test_invalid_text_stores_nothing(
        self, document_store: InMemoryDocumentStore, clause_store: InMemoryClauseStore
    ) -> None:
        service = IngestionService(document_store, clause_store)

        with pytest.raises(InvalidDocumentError):
            await service.ingest_text(name="bad", text="short")

        assert await document_store.list_documents() == []

    @pytest.mark.asyncio
    async def test_no_clauses_stores_nothing(
        self, document_store: InMemoryDocumentStore, clause_store: InMemoryClauseStore
    ) -> None:
        notifier = InMemoryNotifier()
        service = IngestionService(document_store, clause_store, notifier)

        with pytest.raises(NoClausesExtractedError):
            await service.ingest_text(
                name="empty", text="Văn bản này hợp lệ nhưng không có điều khoản nào cả."
            )

        assert await document_store.list_documents() == []
        assert notifier.events == []

    @pytest.mark.asyncio
    async def test_ingest_sql(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        documents = SqlDocumentStore(session_factory)
        clauses = SqlClauseStore(session_factory)
        service = IngestionService(documents, clauses)

        report = await service.ingest_text(name="Nghị định 01", text=LAW_TEXT)

        stored = await clauses.query_by_document(report.document.document_id)
        assert [c.clause_number for c in stored] == ["1", "2", "3"]
        assert [d.name for d in await documents.list_documents()] == ["Nghị định 01"]


class TestPdfExtraction:
    def test_extracts_page_text(self) -> None:
        text = extract_pdf_text(make_pdf("Article 1. Scope"))

        assert "Article 1. Scope" in text

    @pytest.mark.parametrize("data", [b"", b"not a pdf at all"])
    def test_unreadable_bytes(self, data: bytes) -> None:
        with pytest.raises(InvalidDocumentError):
            extract_pdf_text(data)
