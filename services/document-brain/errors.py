"""Error taxonomy for the extraction pipeline.

Every error carries a ``kind`` tag so the HTTP layer (and any other caller)
can branch on the failure class instead of matching message strings.
"""


class DocumentBrainError(Exception):
    """Base exception for the document brain."""

    kind = "internal_error"


class FetchError(DocumentBrainError):
    """The source document could not be downloaded."""

    kind = "fetch_error"

    def __init__(self, ref: str, cause: str):
        self.ref = ref
        self.cause = cause
        super().__init__(f"Download failed for {ref}: {cause}")


class ExtractionFailure(DocumentBrainError):
    """No usable text could be recovered from the document (non-fatal)."""

    kind = "extraction_failure"


class SchemaError(DocumentBrainError):
    """The generation service returned no content or unparseable JSON."""

    kind = "schema_error"


class GenerationError(DocumentBrainError):
    """The generation service returned a non-retryable error (400, 401, 500)."""

    kind = "generation_error"

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class GenerationUnavailable(GenerationError):
    """Generation service temporarily unavailable (429, 503, connection error)."""

    kind = "generation_unavailable"


class PersistError(DocumentBrainError):
    """Writing the result back to the external store failed."""

    kind = "persist_error"

    def __init__(self, document_id: str, cause: str):
        self.document_id = document_id
        self.cause = cause
        super().__init__(f"Failed to persist result for {document_id}: {cause}")
