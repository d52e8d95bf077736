"""Answer assembler - merge the general explanation with retrieved clauses."""

from uuid import UUID

from backend.app.docs.segmenter import UNKNOWN_CLAUSE_NUMBER
from backend.app.models.chat import AnswerMetadata, AssembledAnswer, Explanation, FormattedClause
from backend.app.models.legal import ClausesSource, RankedClause
from backend.app.models.query import QueryAnalysis

UNKNOWN_DOCUMENT_NAME = "Không xác định"

EXPLANATION_HEADER = "**💡 Giải đáp:**"
CLAUSES_HEADER = "**📋 Điều khoản pháp lý liên quan:**"
CLAUSE_DIVIDER = "\n---\n"
ADVISORY_NOTE = (
    "💡 *Lưu ý: Vui lòng tham khảo toàn văn các điều khoản để có thông tin "
    "đầy đủ và chính xác nhất.*"
)
NOT_FOUND_NOTICE = (
    "❌ **Không tìm thấy điều khoản cụ thể trong hệ thống.**\n"
    "Khuyến nghị liên hệ chuyên gia pháp lý để được tư vấn chi tiết về các văn bản "
    "pháp luật liên quan."
)
CLAUSES_UNAVAILABLE_NOTICE = (
    "⚠️ **Hiện không thể tra cứu điều khoản pháp lý trong hệ thống.**\n"
    "Vui lòng thử lại sau để xem các điều khoản liên quan."
)


def truncate_preview(content: str, preview_length: int) -> str:
    """Cut content to preview_length characters, marking the cut with '...'."""
    if len(content) <= preview_length:
        return content
    return content[:preview_length] + "..."


def clause_label(clause_number: str, index: int) -> str:
    """'Điều N', or 'Mục i' when the clause number is unknown."""
    if clause_number and clause_number != UNKNOWN_CLAUSE_NUMBER:
        return f"Điều {clause_number}"
    return f"Mục {index}"


def format_clauses(
    clauses: list[RankedClause],
    document_names: dict[UUID, str],
    preview_length: int,
) -> list[FormattedClause]:
    formatted: list[FormattedClause] = []
    for index, ranked in enumerate(clauses, start=1):
        clause = ranked.clause
        formatted.append(
            FormattedClause(
                index=index,
                label=clause_label(clause.clause_number, index),
                title=clause.title or "",
                preview=truncate_preview(clause.content, preview_length),
                document_name=document_names.get(clause.document_id, UNKNOWN_DOCUMENT_NAME),
                document_id=clause.document_id,
                clause_id=clause.clause_id,
                relevance_score=ranked.score or 0,
            )
        )
    return formatted


def render_answer(
    explanation: str, formatted: list[FormattedClause], *, clauses_unavailable: bool = False
) -> str:
    """Render the user-facing answer text."""
    content = f"{EXPLANATION_HEADER}\n{explanation}"

    if not formatted:
        notice = CLAUSES_UNAVAILABLE_NOTICE if clauses_unavailable else NOT_FOUND_NOTICE
        return content + f"\n\n{notice}"

    entries: list[str] = []
    for clause in formatted:
        heading = f"{clause.label} - {clause.title}" if clause.title else clause.label
        entries.append(f"\n**{heading}** ({clause.document_name}):\n{clause.preview}\n")

    content += f"\n\n{CLAUSES_HEADER}\n"
    content += CLAUSE_DIVIDER.join(entries)
    content += f"\n{ADVISORY_NOTE}"
    return content


def assemble_answer(
    *,
    explanation: Explanation,
    clauses: list[RankedClause],
    document_names: dict[UUID, str],
    analysis: QueryAnalysis,
    processing_time_ms: int,
    preview_length: int = 250,
    cache_entries: int = 0,
    clauses_source: ClausesSource = "store",
) -> AssembledAnswer:
    """Compose the final answer and its metadata.

    The explanation always comes first. Clauses (if any) follow in retrieval
    order; otherwise a fixed notice closes the answer. That notice says the
    lookup is unavailable when clauses_source is "unavailable", and "not
    found" otherwise.

    Args:
        explanation: General explanation (model, cache or fallback)
        clauses: Ranked clauses from retrieval
        document_names: Display names keyed by document ID
        analysis: Query analysis the clauses were retrieved for
        processing_time_ms: Elapsed handling time
        preview_length: Maximum characters of clause content to show
        cache_entries: Current cache size, reported for observability
        clauses_source: Where retrieval got the clauses ("store", "cache",
            or "unavailable" when the clause store failed)

    Returns:
        AssembledAnswer with content, formatted clauses and metadata
    """
    formatted = format_clauses(clauses, document_names, preview_length)

    # Only names that resolved; the display placeholder is not a document
    documents_involved = list(
        dict.fromkeys(
            document_names[item.clause.document_id]
            for item in clauses
            if document_names.get(item.clause.document_id)
        )
    )

    metadata = AnswerMetadata(
        question_type=analysis.question_type,
        keywords_used=", ".join(analysis.keywords),
        search_terms=analysis.search_terms,
        clauses_found=len(formatted),
        clauses_source=clauses_source,
        documents_involved=documents_involved,
        processing_time_ms=processing_time_ms,
        search_priority=analysis.priority,
        explanation_source=explanation.source,
        cache_entries=cache_entries,
    )

    return AssembledAnswer(
        content=render_answer(
            explanation.text, formatted, clauses_unavailable=clauses_source == "unavailable"
        ),
        related_clauses=formatted,
        metadata=metadata,
    )
