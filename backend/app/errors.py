"""Error taxonomy shared by services and the HTTP layer."""


class LegalQAError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class ValidationError(LegalQAError):
    """Request rejected before any side effect (missing content, missing identity)."""

    status_code = 400
    public_message = "Invalid input data"


class InvalidDocumentError(LegalQAError):
    """Extracted document text is unreadable, too short or lacks Vietnamese script."""

    status_code = 400
    public_message = "File PDF không hợp lệ hoặc quá ngắn."


class NoClausesExtractedError(LegalQAError):
    """Segmentation produced no clauses for an otherwise valid document."""

    status_code = 400
    public_message = "Không trích xuất được điều khoản nào từ file PDF."


class NotFoundError(LegalQAError):
    """Requested record does not exist."""

    status_code = 404
    public_message = "Not found"


class DuplicateKeyError(LegalQAError):
    """Persistence rejected a write because of a unique constraint."""

    status_code = 409
    public_message = "Duplicate entry"


class StoreError(Exception):
    """Clause/document store failed to answer a query."""
