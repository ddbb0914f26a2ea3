"""
AI invocation layer.

Wraps the Anthropic SDK client behind a single ``invoke`` call that:
- races each model attempt against a deadline (``asyncio.wait_for``)
- tries the primary model, then exactly one fallback model
- classifies failures by SDK exception type into an ``AIFailureKind``
- never raises to the caller; the outcome is an ``AIInvocationResult``

The client is built once at startup by ``create_ai_client`` and injected into
request handlers, so tests can substitute a fake.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import anthropic
from google.auth import exceptions as google_auth_exceptions
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from mapmygap.config import Settings
from mapmygap.errors import (
    AIInvocationError,
    AIInvocationTimeout,
    AuthenticationFailed,
    ContentBlocked,
    GenericServerError,
    RateLimitExceeded,
    ServiceUnavailable,
)

logger = logging.getLogger(__name__)

# Status codes the provider uses for "overloaded" / "temporarily unavailable"
_UNAVAILABLE_STATUS_CODES = {503, 529}

_CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class AIFailureKind(str, Enum):
    TIMEOUT = "timeout"
    AUTHENTICATION_FAILED = "authentication_failed"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    SERVICE_UNAVAILABLE = "service_unavailable"
    CONTENT_BLOCKED = "content_blocked"
    SERVER_ERROR = "server_error"
    NOT_CONFIGURED = "not_configured"


FAILURE_ERRORS: dict[AIFailureKind, type[AIInvocationError]] = {
    AIFailureKind.TIMEOUT: AIInvocationTimeout,
    AIFailureKind.AUTHENTICATION_FAILED: AuthenticationFailed,
    AIFailureKind.RATE_LIMIT_EXCEEDED: RateLimitExceeded,
    AIFailureKind.SERVICE_UNAVAILABLE: ServiceUnavailable,
    AIFailureKind.CONTENT_BLOCKED: ContentBlocked,
    AIFailureKind.SERVER_ERROR: GenericServerError,
    AIFailureKind.NOT_CONFIGURED: ServiceUnavailable,
}


@dataclass(frozen=True)
class AIInvocationResult:
    """Outcome of one ``AIClient.invoke`` call."""

    text: Optional[str] = None
    failure: Optional[AIFailureKind] = None
    details: str = ""
    model: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, text: str, model: str) -> "AIInvocationResult":
        return cls(text=text, model=model)

    @classmethod
    def failed(
        cls, kind: AIFailureKind, details: str = "", model: Optional[str] = None
    ) -> "AIInvocationResult":
        return cls(failure=kind, details=details, model=model)

    def to_error(self) -> AIInvocationError:
        """Map a failed result onto the HTTP error taxonomy."""
        if self.failure is None:
            raise ValueError("Successful invocation has no error")
        return FAILURE_ERRORS[self.failure](self.details)


class _AttemptFailed(Exception):
    """One model attempt failed; carries the classified kind."""

    def __init__(self, kind: AIFailureKind, details: str, model: str) -> None:
        super().__init__(f"{model}: {kind.value}: {details}")
        self.kind = kind
        self.details = details
        self.model = model


def classify_exception(exc: BaseException) -> AIFailureKind:
    """Classify a provider exception by its type."""
    if isinstance(
        exc, (asyncio.TimeoutError, TimeoutError, anthropic.APITimeoutError)
    ):
        return AIFailureKind.TIMEOUT
    if isinstance(
        exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)
    ):
        return AIFailureKind.AUTHENTICATION_FAILED
    if isinstance(exc, google_auth_exceptions.GoogleAuthError):
        return AIFailureKind.AUTHENTICATION_FAILED
    if isinstance(exc, anthropic.RateLimitError):
        return AIFailureKind.RATE_LIMIT_EXCEEDED
    if isinstance(exc, anthropic.APIConnectionError):
        return AIFailureKind.SERVICE_UNAVAILABLE
    if isinstance(exc, anthropic.APIStatusError):
        if exc.status_code in _UNAVAILABLE_STATUS_CODES:
            return AIFailureKind.SERVICE_UNAVAILABLE
    return AIFailureKind.SERVER_ERROR


def _response_text(response: Any) -> str:
    # Only text blocks carry a str ``text``
    parts = [getattr(block, "text", None) for block in response.content]
    return "".join(p for p in parts if isinstance(p, str)).strip()


class AIClient:
    """Provider-agnostic front for the Anthropic messages API."""

    def __init__(
        self,
        client: Any = None,
        models: Optional[list[str]] = None,
        provider: str = "none",
    ) -> None:
        self._client = client
        self.models = [m for m in (models or []) if m]
        self.provider = provider

    @property
    def is_configured(self) -> bool:
        return self._client is not None and bool(self.models)

    async def invoke(
        self,
        prompt: str,
        *,
        timeout: float,
        max_tokens: int,
        system: Optional[str] = None,
    ) -> AIInvocationResult:
        """Run ``prompt`` against the primary model, then the fallback model.

        Each attempt gets its own ``timeout``, so the worst case is
        ``len(models) * timeout``.
        """
        if not self.is_configured:
            return AIInvocationResult.failed(
                AIFailureKind.NOT_CONFIGURED, "No AI provider is configured"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(len(self.models)),
            retry=retry_if_exception_type(_AttemptFailed),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    model = self.models[attempt.retry_state.attempt_number - 1]
                    text = await self._attempt(
                        model, prompt, system=system, timeout=timeout,
                        max_tokens=max_tokens,
                    )
        except _AttemptFailed as e:
            logger.error(f"All models failed ({self.provider}): {e}")
            return AIInvocationResult.failed(e.kind, e.details, model=e.model)

        return AIInvocationResult.success(text, model)

    async def _attempt(
        self,
        model: str,
        prompt: str,
        *,
        system: Optional[str],
        timeout: float,
        max_tokens: int,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        try:
            response = await asyncio.wait_for(
                self._client.messages.create(**kwargs), timeout=timeout
            )
        except asyncio.TimeoutError:
            raise _AttemptFailed(
                AIFailureKind.TIMEOUT,
                f"No response within {timeout:g} seconds",
                model,
            ) from None
        except Exception as e:
            kind = classify_exception(e)
            logger.warning(f"Model {model} failed with {type(e).__name__} ({kind.value})")
            raise _AttemptFailed(kind, str(e), model) from e

        if getattr(response, "stop_reason", None) == "refusal":
            raise _AttemptFailed(
                AIFailureKind.CONTENT_BLOCKED,
                "The provider declined to process this content",
                model,
            )

        text = _response_text(response)
        logger.info(
            f"Model {model} responded: stop_reason={response.stop_reason}, "
            f"chars={len(text)}"
        )
        return text


def _workload_identity_credentials(settings: Settings):
    """Build Google identity-pool credentials from the OIDC token file."""
    from google.auth import identity_pool

    audience = (
        f"//iam.googleapis.com/projects/{settings.gcp_project_number}"
        f"/locations/global/workloadIdentityPools/"
        f"{settings.gcp_workload_identity_pool_id}"
        f"/providers/{settings.gcp_workload_identity_pool_provider_id}"
    )
    info = {
        "type": "external_account",
        "audience": audience,
        "subject_token_type": "urn:ietf:params:oauth:token-type:jwt",
        "token_url": "https://sts.googleapis.com/v1/token",
        "credential_source": {"file": settings.gcp_oidc_token_file},
    }
    return identity_pool.Credentials.from_info(info, scopes=[_CLOUD_PLATFORM_SCOPE])


def create_ai_client(settings: Settings) -> AIClient:
    """Build the process-wide AI client from settings.

    The API-key path wins when both credentials are configured. SDK retries
    are disabled; the primary/fallback loop in ``AIClient.invoke`` is the
    only retry.
    """
    if settings.anthropic_api_key:
        client = anthropic.AsyncAnthropic(
            api_key=settings.anthropic_api_key, max_retries=0
        )
        logger.info(f"AI client: Anthropic API ({settings.claude_model})")
        return AIClient(
            client,
            [settings.claude_model, settings.claude_fallback_model],
            provider="anthropic",
        )

    if settings.workload_identity_configured:
        client = anthropic.AsyncAnthropicVertex(
            project_id=settings.gcp_project_id,
            region=settings.gcp_location,
            credentials=_workload_identity_credentials(settings),
            timeout=settings.workload_identity_timeout_seconds,
            max_retries=0,
        )
        logger.info(
            f"AI client: Vertex AI workload identity "
            f"({settings.gcp_location}, {settings.vertex_model})"
        )
        return AIClient(
            client,
            [settings.vertex_model, settings.vertex_fallback_model],
            provider="vertex",
        )

    logger.warning("No AI credentials configured, analysis will use the fallback")
    return AIClient()
