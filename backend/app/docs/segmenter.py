"""Legal document segmenter - deterministic chapter/clause splitting.

Pure functions with no I/O. Boundaries are purely lexical: a chapter starts at
a line beginning with "Chương <numeral>" and a clause at a line beginning with
"Điều <number>." or "Điều <number>:". Nothing checks legal correctness, so
malformed text yields fewer (or zero) segments rather than an error; callers
inspect SegmentationResult.outcome to tell those cases apart.
"""

import re
import unicodedata
from enum import Enum

from pydantic import BaseModel, Field

from backend.app.models.legal import Segment

# Sentinel for clause titles that carry no parseable number. Distinct from any
# real clause number, including "0".
UNKNOWN_CLAUSE_NUMBER = "?"

_VIETNAMESE_CHARS = re.compile(
    r"[àáạảãâầấậẩẫăằắặẳẵèéẹẻẽêềếệểễìíịỉĩòóọỏõôồốộổỗơờớợởỡùúụủũưừứựửữỳýỵỷỹđ]",
    re.IGNORECASE,
)

_CHAPTER_BOUNDARY = re.compile(
    r"^(?=[ \t]*(?i:chương)[ \t]+(?:[IVXLCDM]+|\d+)[ \t]*(?:[.:]|$))",
    re.MULTILINE,
)
_CLAUSE_BOUNDARY = re.compile(r"^(?=[ \t]*Điều[ \t]+\d+[ \t]*[.:])", re.MULTILINE)

_CLAUSE_NUMBER = re.compile(r"Điều\s+(\d+|[IVXLCDM]+)\b")
_CLAUSE_HEADING = re.compile(r"^\s*Điều\s+(?:\d+|[IVXLCDM]+)\b\s*[.:]?\s*(.*)$")


class SegmentationOutcome(str, Enum):
    """How segmentation of one document ended."""

    ok = "ok"
    invalid_text = "invalid_text"
    no_clauses = "no_clauses"


class SegmentationResult(BaseModel):
    """Chapters and clauses of one document plus an explicit outcome."""

    outcome: SegmentationOutcome
    chapters: list[Segment] = Field(default_factory=list)
    clauses: list[Segment] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome == SegmentationOutcome.ok


def normalize_text(text: str) -> str:
    """Normalize line endings and compose Vietnamese diacritics (NFC)."""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    return unicodedata.normalize("NFC", normalized)


def has_vietnamese(text: str) -> bool:
    """Check whether text contains at least one Vietnamese diacritic character."""
    return _VIETNAMESE_CHARS.search(text) is not None


def validate_extracted_text(text: str, *, min_length: int = 20) -> bool:
    """Reject text that signals a failed extraction (too short or no Vietnamese script)."""
    if not text or len(text.strip()) < min_length:
        return False
    return has_vietnamese(normalize_text(text))


def _to_segment(chunk: str) -> Segment | None:
    lines = [line.strip() for line in chunk.split("\n") if line.strip()]
    if not lines:
        return None
    return Segment(title=lines[0], content="\n".join(lines[1:]).strip())


def _split_at(boundary: re.Pattern[str], text: str) -> list[Segment]:
    """Split text at every boundary match; text before the first match is dropped."""
    normalized = normalize_text(text)
    starts = [match.start() for match in boundary.finditer(normalized)]
    ends = starts[1:] + [len(normalized)]

    segments: list[Segment] = []
    for start, end in zip(starts, ends):
        segment = _to_segment(normalized[start:end])
        if segment is not None:
            segments.append(segment)
    return segments


def split_chapters(text: str) -> list[Segment]:
    """Split document text into chapters in document order.

    Args:
        text: Raw extracted document text

    Returns:
        List of Segment where title is the chapter heading line and content
        is everything up to the next chapter heading
    """
    return _split_at(_CHAPTER_BOUNDARY, text)


def split_clauses(text: str) -> list[Segment]:
    """Split document text into clauses in document order.

    Args:
        text: Raw extracted document text

    Returns:
        List of Segment where title is the "Điều N. ..." line and content the
        clause body
    """
    return _split_at(_CLAUSE_BOUNDARY, text)


def extract_clause_number(title: str) -> str:
    """Extract the clause number from a clause heading.

    Returns:
        The numeral after "Điều" ("7" for "Điều 7. Phạm vi"), or
        UNKNOWN_CLAUSE_NUMBER when the heading has none
    """
    match = _CLAUSE_NUMBER.search(normalize_text(title))
    return match.group(1) if match else UNKNOWN_CLAUSE_NUMBER


def extract_clause_title(title: str) -> str | None:
    """Extract the clause title that follows "Điều N." in a heading."""
    match = _CLAUSE_HEADING.match(normalize_text(title))
    if not match:
        return None
    clause_title = match.group(1).strip()
    return clause_title or None


def segment_document(text: str, *, min_length: int = 20) -> SegmentationResult:
    """Validate and segment a document.

    Args:
        text: Raw extracted document text
        min_length: Minimum plausible text length

    Returns:
        SegmentationResult with outcome invalid_text, no_clauses or ok
    """
    if not validate_extracted_text(text, min_length=min_length):
        return SegmentationResult(outcome=SegmentationOutcome.invalid_text)

    chapters = split_chapters(text)
    clauses = split_clauses(text)

    if not clauses:
        return SegmentationResult(outcome=SegmentationOutcome.no_clauses, chapters=chapters)

    return SegmentationResult(
        outcome=SegmentationOutcome.ok,
        chapters=chapters,
        clauses=clauses,
    )
