"""
Error taxonomy for summary generation.
"""
from typing import Optional


class DigestError(Exception):
    """Base class for all errors raised by the summarization core."""


class NoContentError(DigestError):
    def __init__(self, message: str = "No content available to summarize"):
        super().__init__(message)


class PayloadValidationError(DigestError):
    """Malformed request shape, detected locally before sending."""


class AuthorizationError(DigestError):
    """Credential missing, invalid or expired. Never retried."""


class RequestTimeoutError(DigestError):
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Request timed out after {int(timeout * 1000)}ms")


class ApiError(DigestError):
    """Non-2xx response from the remote endpoint."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"API Error ({status}): {body}")


class InvalidResponseError(DigestError):
    """Unparseable or structurally empty success response."""


class PersistenceError(DigestError):
    """Summary record could not be created or updated."""


class RetryExhaustedError(DigestError):
    def __init__(self, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed after {attempts} attempts: {last_error}")


class SummaryGenerationError(DigestError):
    def __init__(self, cause: Exception, record_id: Optional[int] = None):
        self.record_id = record_id
        super().__init__(f"Summary generation failed: {cause}")


class ProviderError(DigestError):
    """The upstream LLM provider rejected or failed the request."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"Provider API error: {status} {body[:100]}")
