"""Error taxonomy shared by the analysis pipeline and the HTTP layer.

Every error carries the HTTP status code and a user-facing ``suggestion`` so the
routers can render an actionable message without inspecting error text.
"""

from typing import Optional


class MapMyGapError(Exception):
    """Base class for all request-scoped MapMyGap errors."""

    status_code: int = 500
    error: str = "Server error"
    suggestion: str = "Please try again later or contact support"

    def __init__(self, details: str = "", *, suggestion: Optional[str] = None) -> None:
        super().__init__(details or self.error)
        self.details = details or self.error
        if suggestion is not None:
            self.suggestion = suggestion

    def to_dict(self) -> dict:
        return {
            "error": self.error,
            "details": self.details,
            "suggestion": self.suggestion,
        }


# ---------------------------------------------------------------------------
# Request / input errors
# ---------------------------------------------------------------------------


class ValidationError(MapMyGapError):
    """Missing or malformed request fields. Never retried."""

    status_code = 400
    error = "Invalid request"
    suggestion = "Check the request fields and try again"


class UnsupportedFrameworkError(ValidationError):
    """Framework identifier is not in the catalog."""

    error = "Unsupported framework"
    suggestion = "Choose one of the supported frameworks"

    def __init__(self, framework: str, available: Optional[list[str]] = None) -> None:
        details = f"Framework {framework!r} is not supported"
        if available:
            details += f". Available frameworks: {', '.join(available)}"
        super().__init__(details)
        self.framework = framework


class DocumentExtractionError(ValidationError):
    """Uploaded file could not be turned into text."""

    error = "Document extraction failed"
    suggestion = "Upload a valid .txt, .docx, .pdf, .xlsx or .xls file"


# ---------------------------------------------------------------------------
# Model response errors
# ---------------------------------------------------------------------------


class ResponseParseError(MapMyGapError):
    """Base for errors raised while normalizing a model response."""

    status_code = 502
    error = "AI response could not be parsed"
    suggestion = "Try running the analysis again"


class MalformedResponseError(ResponseParseError):
    """Model returned no JSON, or JSON that does not parse."""


class UnrecognizedStructureError(ResponseParseError):
    """Model returned JSON in a shape we do not recognize."""

    error = "AI response structure is not recognized"


# ---------------------------------------------------------------------------
# AI provider errors
# ---------------------------------------------------------------------------


class AIInvocationError(MapMyGapError):
    """Base for classified AI provider failures."""


class AIInvocationTimeout(AIInvocationError):
    status_code = 408
    error = "AI generation timed out"
    suggestion = "Try again with a shorter document or a different control"


class AuthenticationFailed(AIInvocationError):
    status_code = 401
    error = "AI provider authentication failed"
    suggestion = "Check the configured API key or workload identity settings"


class RateLimitExceeded(AIInvocationError):
    status_code = 429
    error = "API rate limit exceeded"
    suggestion = "Wait a few minutes before trying again"


class ServiceUnavailable(AIInvocationError):
    status_code = 503
    error = "Service temporarily unavailable"
    suggestion = "The AI service is overloaded or unreachable. Try again later"


class ContentBlocked(AIInvocationError):
    status_code = 400
    error = "Content blocked by AI provider"
    suggestion = "Remove sensitive or unrelated content from the document and retry"


class GenericServerError(AIInvocationError):
    status_code = 500
    error = "AI service error"
    suggestion = "Please try again later or contact support"


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class PersistenceError(MapMyGapError):
    """History store read/write failure."""

    status_code = 503
    error = "History service unavailable"
    suggestion = "Your analysis is unaffected; try reloading history later"
