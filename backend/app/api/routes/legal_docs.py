"""Legal document endpoints - ingest text or PDF, list documents and clauses."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile, status
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from backend.app.api.deps import (
    get_clause_store,
    get_document_store,
    get_ingestion_service,
    get_settings_dep,
)
from backend.app.config import Settings
from backend.app.db.repositories import ClauseStore, DocumentStore
from backend.app.docs.ingest import IngestionReport, IngestionService
from backend.app.docs.pdf import extract_pdf_text
from backend.app.errors import NotFoundError, ValidationError
from backend.app.models.legal import LegalClause, LegalDocument

router = APIRouter(prefix="/legal-docs", tags=["legal-docs"])


class IngestTextRequest(BaseModel):
    """Request body for POST /legal-docs."""

    name: str = Field(..., min_length=1, max_length=500, description="Document display name")
    text: str = Field(..., min_length=1, description="Extracted document text")
    url: str | None = Field(None, description="Where the original file is stored")
    signee: str | None = Field("System Upload", description="Signing authority")
    issue_date: datetime | None = None


class IngestionResponse(BaseModel):
    """Response for document ingestion."""

    success: bool = True
    chapter_count: int
    chapters: list[str]
    clause_count: int
    document: LegalDocument
    clauses: list[LegalClause]
    message: str


class DocumentListResponse(BaseModel):
    documents: list[LegalDocument]


class ClauseListResponse(BaseModel):
    success: bool = True
    count: int
    clauses: list[LegalClause]


def _to_response(report: IngestionReport) -> IngestionResponse:
    return IngestionResponse(
        chapter_count=report.chapter_count,
        chapters=report.chapters,
        clause_count=report.clause_count,
        document=report.document,
        clauses=report.clauses,
        message=report.message,
    )


@router.post("", response_model=IngestionResponse, status_code=status.HTTP_201_CREATED)
async def ingest_text(
    request: IngestTextRequest,
    ingestion: Annotated[IngestionService, Depends(get_ingestion_service)],
) -> IngestionResponse:
    """Segment already-extracted text and store its clauses."""
    report = await ingestion.ingest_text(
        name=request.name,
        text=request.text,
        url=request.url,
        signee=request.signee,
        issue_date=request.issue_date,
    )
    return _to_response(report)


@router.post("/upload", response_model=IngestionResponse, status_code=status.HTTP_201_CREATED)
async def upload_pdf(
    ingestion: Annotated[IngestionService, Depends(get_ingestion_service)],
    settings: Annotated[Settings, Depends(get_settings_dep)],
    file: Annotated[UploadFile, File(description="PDF file")],
) -> IngestionResponse:
    """Extract text from an uploaded PDF and ingest it."""
    filename = file.filename or ""
    if not filename.lower().endswith(".pdf"):
        raise ValidationError("File phải có đuôi .pdf")

    data = await file.read()
    if len(data) > settings.max_upload_bytes:
        raise ValidationError("File quá lớn. Vui lòng upload file dưới 10MB")

    # PyMuPDF parsing is synchronous and CPU-bound
    text = await run_in_threadpool(extract_pdf_text, data)
    report = await ingestion.ingest_text(name=filename[: -len(".pdf")], text=text)
    return _to_response(report)


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    documents: Annotated[DocumentStore, Depends(get_document_store)],
) -> DocumentListResponse:
    """List documents, newest first."""
    return DocumentListResponse(documents=await documents.list_documents())


@router.get("/{document_id}/clauses", response_model=ClauseListResponse)
async def list_document_clauses(
    document_id: UUID,
    documents: Annotated[DocumentStore, Depends(get_document_store)],
    clauses: Annotated[ClauseStore, Depends(get_clause_store)],
) -> ClauseListResponse:
    """All clauses of one document in clause-number order."""
    if await documents.get_document(document_id) is None:
        raise NotFoundError(f"Legal document {document_id} not found")

    found = await clauses.query_by_document(document_id)
    return ClauseListResponse(count=len(found), clauses=found)
