"""
Application exceptions.

Every error raised on purpose by the conversation and ingestion pipelines
derives from AppException, so the HTTP layer can map it to a status code
with a single handler.
"""


class AppException(Exception):
    """Base application exception."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None, details: str | None = None):
        """
        Args:
            message (str): User-facing error message.
            status_code (int | None): HTTP status override.
            details (str | None): Optional internal/debug details, never sent to clients.
        """
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert the exception to the API error body."""
        return {"error": self.message}


class NotFoundError(AppException):
    """Bot missing or not owned by the caller."""

    status_code = 404


class ValidationError(AppException):
    """Request is missing required fields or carries an unsupported value."""

    status_code = 400


class InternalError(AppException):
    """Persistence failure. The only error that aborts a chat turn."""

    status_code = 500


class ConfigurationError(AppException):
    """A remote client needed by the pipeline is not configured."""


class ExtractionError(AppException):
    """Document is empty or unreadable."""


class EmbeddingServiceError(AppException):
    """Embedding call failed at transport or auth level."""


class IndexWriteError(AppException):
    """Vector index upsert or delete failed. The whole batch counts as failed."""


class IndexQueryError(AppException):
    """Vector index query failed."""


class CompletionServiceError(AppException):
    """Chat completion call failed."""
