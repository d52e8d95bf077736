"""Models package - re-exports for convenience."""

from backend.app.models.chat import (
    Answer,
    AnswerMetadata,
    AssembledAnswer,
    ChatHistoryEntry,
    ChatRoom,
    ChatSessionSummary,
    ChatTurn,
    Explanation,
    FormattedClause,
    Question,
)
from backend.app.models.legal import LegalClause, LegalDocument, RankedClause, Segment
from backend.app.models.query import (
    ClauseReference,
    Priority,
    QueryAnalysis,
    QuestionType,
    SearchStrategy,
)
