"""
Control-text generation.

Drafts policy text for one control in the voice of the uploaded document.
When the AI call fails, a deterministic template is produced by local
string interpolation so the caller always has text to show.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from mapmygap.config import Settings, get_settings
from mapmygap.errors import ValidationError
from mapmygap.services.ai_client import AIClient, AIFailureKind
from mapmygap.services.framework_catalog import FrameworkCatalog
from mapmygap.services.prompt_builder import (
    CONTROL_TEXT_SYSTEM_PROMPT,
    build_control_text_prompt,
)
from mapmygap.services.response_normalizer import strip_code_fences

logger = logging.getLogger(__name__)

TEMPLATE_EXCERPT_CHARS = 1200

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class ControlTextOutcome:
    """Generated text plus how it was produced."""

    text: str
    fallback_used: bool = False
    failure: Optional[AIFailureKind] = None
    details: str = ""


def document_excerpt(document_text: str, max_chars: int = TEMPLATE_EXCERPT_CHARS) -> str:
    """Whitespace-collapsed excerpt of at most ``max_chars`` characters."""
    collapsed = _WHITESPACE_RE.sub(" ", document_text).strip()
    if len(collapsed) <= max_chars:
        return collapsed
    return collapsed[: max_chars - 3].rstrip() + "..."


def build_template_text(
    document_text: str,
    target_control: str,
    framework_name: str,
    control_id: Optional[str] = None,
) -> str:
    """Deterministic Purpose / Scope / Standard / Procedures draft."""
    heading = f"{control_id} - {target_control}" if control_id else target_control
    excerpt = document_excerpt(document_text)
    return (
        f"{heading}\n\n"
        f"Purpose\n"
        f"This section establishes the organization's requirements for the "
        f"following {framework_name} control: {target_control}\n\n"
        f"Scope\n"
        f"This standard applies to all personnel, systems and third parties "
        f"covered by the existing policy.\n\n"
        f"Standard\n"
        f"The organization shall implement, document and maintain measures that "
        f"satisfy the control above, consistent with the existing policy.\n\n"
        f"Procedures\n"
        f"1. Assign an owner responsible for implementing this control.\n"
        f"2. Document the supporting procedures and keep them current.\n"
        f"3. Review the control's effectiveness at least annually.\n\n"
        f"Existing policy context:\n{excerpt}"
    )


class ControlTextGenerator:
    """Generates policy text for a single control."""

    def __init__(
        self,
        catalog: FrameworkCatalog,
        ai_client: AIClient,
        settings: Optional[Settings] = None,
    ) -> None:
        self.catalog = catalog
        self.ai_client = ai_client
        self.settings = settings or get_settings()

    def _framework_name(self, framework: str) -> str:
        if framework in self.catalog:
            return self.catalog.get(framework).name
        return framework

    async def generate(
        self,
        original_document: Optional[str],
        target_control: Optional[str],
        framework: Optional[str],
        *,
        control_id: Optional[str] = None,
        status: Optional[str] = None,
        details: Optional[str] = None,
    ) -> ControlTextOutcome:
        """
        Draft text for ``target_control``.

        Returns:
            ControlTextOutcome. On AI failure the template text is returned
            with ``fallback_used=True`` and the failure kind set.

        Raises:
            ValidationError: A required field is missing or empty
        """
        missing = [
            name
            for name, value in (
                ("originalDocument", original_document),
                ("targetControl", target_control),
                ("framework", framework),
            )
            if not value or not value.strip()
        ]
        if missing:
            raise ValidationError(
                f"Missing required parameters: {', '.join(missing)}"
            )

        framework_name = self._framework_name(framework)
        prompt = build_control_text_prompt(
            original_document,
            target_control,
            framework_name,
            control_id=control_id,
            status=status,
            details=details,
            max_chars=self.settings.control_text_max_chars,
        )
        invocation = await self.ai_client.invoke(
            prompt,
            system=CONTROL_TEXT_SYSTEM_PROMPT,
            timeout=self.settings.control_text_timeout_seconds,
            max_tokens=self.settings.control_text_max_tokens,
        )

        if invocation.ok:
            text = strip_code_fences(invocation.text or "")
            if text:
                logger.info(
                    f"Generated {len(text)} chars of control text for "
                    f"{control_id or 'control'} with {invocation.model}"
                )
                return ControlTextOutcome(text=text)
            failure = AIFailureKind.SERVER_ERROR
            failure_details = "AI service returned an empty response"
        else:
            failure = invocation.failure
            failure_details = invocation.details

        logger.warning(
            f"Control text for {control_id or 'control'} fell back to template "
            f"({failure.value})"
        )
        return ControlTextOutcome(
            text=build_template_text(
                original_document, target_control, framework_name, control_id
            ),
            fallback_used=True,
            failure=failure,
            details=failure_details,
        )
