"""Query analyzer - classify a question and derive ranked search terms.

Precedence (first hit wins):
1. Explicit clause reference ("Điều 5. Tiêu đề" or "Điều 5") -> CLAUSE_SPECIFIC
2. Legal reference phrases (luật, nghị định, thông tư, khoản, chương, ...) -> LEGAL_DOCUMENT
3. Stop-word filtered keywords -> GENERAL

Question type is classified independently and only selects the prompt template.
"""

import logging
import re
import string
import unicodedata

from backend.app.models.query import (
    ClauseReference,
    Priority,
    QueryAnalysis,
    QuestionType,
    SearchStrategy,
)

logger = logging.getLogger(__name__)

CLAUSE_MARKER = "điều"

_CLAUSE_WITH_TITLE = re.compile(r"(?i:điều)\s+(\d+|[IVXLCDM]+)\b\.\s*([^.?!\n]+)")
_CLAUSE_ONLY = re.compile(r"(?i:điều)\s+(\d+|[IVXLCDM]+)\b")

# Letter-only words; "số" is excluded so an optional "số x/y" suffix can match
_NAME_WORDS = r"(?:(?!số\b)[^\W\d_]+)(?:[ \t]+(?!số\b)[^\W\d_]+)*"
_DOC_NUMBER = r"\d+(?:/[\w\-]+)*"

LEGAL_PATTERNS: list[re.Pattern[str]] = [
    re.compile(rf"\b(?:bộ luật|luật)\s+{_NAME_WORDS}(?:\s+số\s+{_DOC_NUMBER})?", re.IGNORECASE),
    re.compile(rf"\b(?:nghị định|quy định)\s+số\s+{_DOC_NUMBER}", re.IGNORECASE),
    re.compile(rf"\b(?:thông tư|quyết định)\s+số\s+{_DOC_NUMBER}", re.IGNORECASE),
    re.compile(rf"\b(?:pháp luật|văn bản)\s+{_NAME_WORDS}", re.IGNORECASE),
    re.compile(r"\bkhoản\s+\d+", re.IGNORECASE),
    re.compile(r"\b(?i:chương)\s+(?:[IVXLCDM]+|\d+)\b"),
]

_CATEGORY_PREFIX = re.compile(
    r"^(?:bộ luật|luật|nghị định|quy định|pháp luật|văn bản|thông tư|quyết định)\s*",
    re.IGNORECASE,
)

# Checked in declaration order; first match wins
QUESTION_TYPE_PATTERNS: list[tuple[QuestionType, re.Pattern[str]]] = [
    (QuestionType.DEFINITION, re.compile(r"^(định nghĩa|khái niệm|là gì|nghĩa là)", re.I)),
    (QuestionType.PROCEDURE, re.compile(r"^(thủ tục|quy trình|cách thức|làm thế nào)", re.I)),
    (QuestionType.PENALTY, re.compile(r"^(xử phạt|vi phạm|phạt|hình phạt)", re.I)),
    (QuestionType.RIGHTS, re.compile(r"^(quyền|quyền lợi|được phép)", re.I)),
    (QuestionType.OBLIGATIONS, re.compile(r"^(nghĩa vụ|phải|bắt buộc)", re.I)),
    (QuestionType.CONDITIONS, re.compile(r"^(điều kiện|yêu cầu|tiêu chuẩn)", re.I)),
]

STOPWORDS: frozenset[str] = frozenset(
    {
        "tôi", "muốn", "biết", "về", "của", "là", "cái", "gì", "xin", "cho", "hỏi",
        "được", "cần", "như", "thế", "nào", "ai", "ở", "khi", "bao", "nhiêu", "vì",
        "sao", "có", "không", "phải", "hay", "và", "hoặc", "với", "trong", "ra",
        "đến", "tới", "để", "bằng", "theo", "nên", "nếu", "thì", "mà", "nhưng",
        "cũng", "đã", "đang", "sẽ", "vẫn", "chỉ", "rất", "hơn", "ít", "nhiều",
        "một", "hai", "ba", "bốn", "năm", "sáu", "bảy", "tám", "chín", "mười",
        "từ", "đây", "đó", "này", "kia", "đâu", "cuộc", "việc", "lần", "ngày",
        # greetings and particles
        "chào", "bạn", "ạ", "nhé", "nhỉ", "vậy", "ơi", "giúp", "mình",
    }
)

_PUNCTUATION = string.punctuation + "“”‘’…«»"


def _unique(terms: list[str]) -> list[str]:
    """Drop empty and repeated terms, keeping first-seen order."""
    return list(dict.fromkeys(term.strip() for term in terms if term and term.strip()))


def detect_question_type(text: str) -> QuestionType:
    """Classify question by its leading phrase."""
    trimmed = text.strip()
    for question_type, pattern in QUESTION_TYPE_PATTERNS:
        if pattern.match(trimmed):
            return question_type
    return QuestionType.GENERAL


def extract_clause_reference(text: str) -> tuple[ClauseReference, Priority] | None:
    """Find an explicit clause reference ("Điều N. Title" before "Điều N")."""
    with_title = _CLAUSE_WITH_TITLE.search(text)
    if with_title:
        title = with_title.group(2).strip()
        if title:
            return (
                ClauseReference(
                    clause_number=with_title.group(1),
                    clause_title=title,
                    full_phrase=with_title.group(0).strip(),
                ),
                Priority.VERY_HIGH,
            )

    clause_only = _CLAUSE_ONLY.search(text)
    if clause_only:
        return (
            ClauseReference(
                clause_number=clause_only.group(1),
                full_phrase=clause_only.group(0).strip(),
            ),
            Priority.HIGH,
        )

    return None


def clause_search_terms(ref: ClauseReference) -> list[str]:
    """Search terms for an explicit clause reference."""
    marker_number = f"{CLAUSE_MARKER} {ref.clause_number}"
    if ref.clause_title:
        return _unique(
            [
                marker_number,
                ref.clause_title,
                f"{marker_number} {ref.clause_title}",
                ref.full_phrase,
            ]
        )
    return _unique([marker_number, ref.clause_number])


def extract_legal_phrases(text: str) -> list[str]:
    """First match of every legal-reference pattern, in pattern order."""
    phrases: list[str] = []
    for pattern in LEGAL_PATTERNS:
        match = pattern.search(text)
        if match:
            phrases.append(match.group(0).strip())
    return _unique(phrases)


def strip_category_word(phrase: str) -> str:
    """Drop the leading category word ("luật doanh nghiệp" -> "doanh nghiệp")."""
    return _CATEGORY_PREFIX.sub("", phrase, count=1).strip()


def extract_keywords(text: str) -> list[str]:
    """Lowercase, drop stop-words and tokens of 2 characters or fewer."""
    keywords: list[str] = []
    for raw in text.lower().split():
        token = raw.strip(_PUNCTUATION)
        if len(token) > 2 and token not in STOPWORDS:
            keywords.append(token)
    return _unique(keywords)


def analyze_question(question: str) -> QueryAnalysis:
    """Classify a user question into a search strategy with ranked search terms.

    Args:
        question: Raw question text

    Returns:
        QueryAnalysis with strategy, terms, keywords, question type and priority
    """
    text = unicodedata.normalize("NFC", question).strip()
    question_type = detect_question_type(text)

    clause = extract_clause_reference(text)
    if clause is not None:
        ref, priority = clause
        terms = clause_search_terms(ref)
        logger.info(f"Detected specific clause query: number={ref.clause_number}")
        return QueryAnalysis(
            search_strategy=SearchStrategy.CLAUSE_SPECIFIC,
            search_terms=terms,
            keywords=terms,
            question_type=question_type,
            priority=priority,
            clause_ref=ref,
        )

    phrases = extract_legal_phrases(text)
    if phrases:
        stripped = [strip_category_word(phrase) for phrase in phrases]
        return QueryAnalysis(
            search_strategy=SearchStrategy.LEGAL_DOCUMENT,
            search_terms=_unique(phrases + stripped),
            keywords=_unique(stripped),
            question_type=question_type,
            priority=Priority.HIGH,
        )

    keywords = extract_keywords(text)
    return QueryAnalysis(
        search_strategy=SearchStrategy.GENERAL,
        search_terms=keywords if keywords else [text],
        keywords=keywords,
        question_type=question_type,
        priority=Priority.MEDIUM,
    )
