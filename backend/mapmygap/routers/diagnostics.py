"""AI connectivity diagnostics."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from mapmygap.config import Settings, get_settings
from mapmygap.dependencies import get_ai_client
from mapmygap.services.ai_client import AIClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["diagnostics"])

PING_PROMPT = "Say 'Hello, this is a test' and nothing else."
PING_MAX_TOKENS = 32


def _credential_report(settings: Settings) -> dict[str, bool]:
    """Which credential variables are set. Values are never reported."""
    return {
        "api_key": bool(settings.anthropic_api_key),
        "gcp_project_id": bool(settings.gcp_project_id),
        "gcp_project_number": bool(settings.gcp_project_number),
        "gcp_workload_identity_pool_id": bool(settings.gcp_workload_identity_pool_id),
        "gcp_workload_identity_pool_provider_id": bool(
            settings.gcp_workload_identity_pool_provider_id
        ),
        "gcp_oidc_token_file": bool(settings.gcp_oidc_token_file),
        "workload_identity_configured": settings.workload_identity_configured,
    }


@router.get("/test-google-ai")
@router.get("/test-ai")
async def test_ai_connection(
    ai_client: AIClient = Depends(get_ai_client),
    settings: Settings = Depends(get_settings),
):
    """Round-trip a minimal prompt through the AI layer."""
    report = {
        "provider": ai_client.provider,
        "models": ai_client.models,
        "credentials": _credential_report(settings),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    result = await ai_client.invoke(
        PING_PROMPT,
        timeout=settings.control_text_timeout_seconds,
        max_tokens=PING_MAX_TOKENS,
    )
    if result.ok:
        logger.info(f"AI connection test succeeded with {result.model}")
        return {
            "success": True,
            "message": "AI connection test successful",
            "model": result.model,
            "response": result.text,
            **report,
        }

    error = result.to_error()
    logger.warning(f"AI connection test failed: {result.failure.value}")
    return JSONResponse(
        status_code=error.status_code,
        content={
            "success": False,
            **error.to_dict(),
            "failure": result.failure.value,
            **report,
        },
    )
