"""Control-text generation router."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from mapmygap.dependencies import get_control_text_generator
from mapmygap.models.analysis import (
    ControlTextResponse,
    ErrorResponse,
    GenerateControlTextRequest,
)
from mapmygap.services.ai_client import FAILURE_ERRORS, AIFailureKind
from mapmygap.services.control_text_generator import ControlTextGenerator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["control-text"])


@router.post(
    "/generate-control-text",
    response_model=ControlTextResponse,
    responses={
        code: {"model": ErrorResponse}
        for code in (400, 401, 408, 429, 500, 503)
    },
)
async def generate_control_text(
    body: GenerateControlTextRequest,
    generator: ControlTextGenerator = Depends(get_control_text_generator),
):
    """
    Draft policy text for one control in the style of the original document.

    With no AI provider configured the template text is returned with
    ``fallbackUsed: true``. When a configured provider fails, the typed error
    is returned and the template is included as ``fallbackText``.
    """
    outcome = await generator.generate(
        body.original_document,
        body.target_control,
        body.framework,
        control_id=body.control_id,
        status=body.status,
        details=body.details,
    )

    if outcome.fallback_used and outcome.failure != AIFailureKind.NOT_CONFIGURED:
        error = FAILURE_ERRORS[outcome.failure](outcome.details)
        logger.warning(
            f"Control text generation failed: {error.status_code} {error.error}"
        )
        return JSONResponse(
            status_code=error.status_code,
            content={**error.to_dict(), "fallbackText": outcome.text},
        )

    return ControlTextResponse(
        generated_text=outcome.text, fallback_used=outcome.fallback_used
    )
