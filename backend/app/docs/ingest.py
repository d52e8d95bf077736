"""Document ingestion - segment text and persist the document and its clauses."""

import logging
from datetime import datetime, timezone

from pydantic import BaseModel

from backend.app.db.repositories import ClauseStore, DocumentStore
from backend.app.docs.segmenter import (
    SegmentationOutcome,
    extract_clause_number,
    extract_clause_title,
    segment_document,
)
from backend.app.errors import InvalidDocumentError, NoClausesExtractedError
from backend.app.models.legal import LegalClause, LegalDocument
from backend.app.notifications import LEGAL_DOC_UPLOADED, LoggingNotifier, Notifier, publish_safely

logger = logging.getLogger(__name__)

DEFAULT_SIGNEE = "System Upload"


class IngestionReport(BaseModel):
    """Outcome of ingesting one document."""

    document: LegalDocument
    chapter_count: int
    chapters: list[str]
    clause_count: int
    clauses: list[LegalClause]

    @property
    def message(self) -> str:
        return (
            f"✅ Đã upload, nhận diện {self.chapter_count} chương, trích xuất và lưu "
            f"{self.clause_count} điều khoản vào database."
        )


class IngestionService:
    """Segments legal documents and stores their clauses."""

    def __init__(
        self,
        documents: DocumentStore,
        clauses: ClauseStore,
        notifier: Notifier | None = None,
        *,
        min_document_length: int = 20,
    ) -> None:
        self._documents = documents
        self._clauses = clauses
        self._notifier = notifier or LoggingNotifier()
        self._min_length = min_document_length

    async def ingest_text(
        self,
        *,
        name: str,
        text: str,
        url: str | None = None,
        signee: str | None = DEFAULT_SIGNEE,
        issue_date: datetime | None = None,
    ) -> IngestionReport:
        """Ingest a document: segment it and persist document plus clauses.

        Nothing is written unless segmentation succeeds. Clause inserts are not
        transactional with the document insert; a failure part way leaves the
        document with the clauses stored so far.

        Args:
            name: Display name of the document
            text: Extracted document text
            url: Where the original file is stored
            signee: Signing authority
            issue_date: Issue date (default: now)

        Returns:
            IngestionReport with chapter titles and saved clauses

        Raises:
            InvalidDocumentError: Text too short or lacking Vietnamese script
            NoClausesExtractedError: Text is valid but has no clause markers
        """
        result = segment_document(text, min_length=self._min_length)

        if result.outcome == SegmentationOutcome.invalid_text:
            logger.warning(f"Rejected document {name!r}: extracted text is invalid")
            raise InvalidDocumentError()
        if result.outcome == SegmentationOutcome.no_clauses:
            logger.warning(f"Rejected document {name!r}: no clauses found")
            raise NoClausesExtractedError()

        document = await self._documents.create_document(
            name=name,
            document_type="PDF",
            issue_date=issue_date or datetime.now(timezone.utc),
            signee=signee,
            url=url,
        )

        saved: list[LegalClause] = []
        for segment in result.clauses:
            saved.append(
                await self._clauses.insert_clause(
                    clause_number=extract_clause_number(segment.title),
                    content=segment.content or segment.title,
                    document_id=document.document_id,
                    title=extract_clause_title(segment.title),
                )
            )

        logger.info(
            f"Ingested document {document.document_id}",
            extra={
                "structured": {
                    "document_id": str(document.document_id),
                    "chapters": len(result.chapters),
                    "clauses": len(saved),
                }
            },
        )

        await publish_safely(
            self._notifier,
            LEGAL_DOC_UPLOADED,
            {
                "document": {
                    "id": str(document.document_id),
                    "name": document.name,
                    "url": document.url,
                    "date": document.issue_date.isoformat(),
                },
                "message": "Văn bản pháp luật mới đã được upload!",
            },
        )

        return IngestionReport(
            document=document,
            chapter_count=len(result.chapters),
            chapters=[chapter.title for chapter in result.chapters],
            clause_count=len(saved),
            clauses=saved,
        )
