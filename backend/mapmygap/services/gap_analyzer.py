"""
Gap analysis pipeline.

document text + framework id
    -> prompt (prompt_builder)
    -> AI invocation with primary/fallback model (ai_client)
    -> normalized categories (response_normalizer), or the catalog fallback
    -> summary and score (scoring)

AI and parse failures never surface to the caller: the fallback analysis
is returned with ``fallback_used=True``.
"""

import hashlib
import logging
from typing import Optional

from mapmygap.config import Settings, get_settings
from mapmygap.errors import ResponseParseError, ValidationError
from mapmygap.models.analysis import AnalysisResult
from mapmygap.services.ai_client import AIClient
from mapmygap.services.fallback import build_fallback_categories
from mapmygap.services.framework_catalog import FrameworkCatalog
from mapmygap.services.prompt_builder import (
    ANALYSIS_SYSTEM_PROMPT,
    build_analysis_prompt,
)
from mapmygap.services.response_normalizer import normalize_response
from mapmygap.services.scoring import compute_summary

logger = logging.getLogger(__name__)

DOCUMENT_HASH_PREFIX_CHARS = 100


def document_hash(document_text: str, framework: str) -> str:
    """Short fingerprint of a document/framework pair for caching and logs."""
    seed = document_text[:DOCUMENT_HASH_PREFIX_CHARS] + framework
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()[:16]


class GapAnalyzer:
    """Runs one document through the analysis pipeline."""

    def __init__(
        self,
        catalog: FrameworkCatalog,
        ai_client: AIClient,
        settings: Optional[Settings] = None,
    ) -> None:
        self.catalog = catalog
        self.ai_client = ai_client
        self.settings = settings or get_settings()

    async def analyze(
        self,
        document_text: Optional[str],
        framework_id: Optional[str],
        selected_categories: Optional[list[str]] = None,
    ) -> AnalysisResult:
        """
        Analyze a document against a framework.

        Args:
            document_text: Raw policy document text
            framework_id: One of the catalog framework identifiers
            selected_categories: Optional category scope

        Returns:
            AnalysisResult with a freshly computed summary

        Raises:
            ValidationError: Empty document or missing framework
            UnsupportedFrameworkError: Unknown framework (before any AI call)
        """
        if not document_text or not document_text.strip():
            raise ValidationError("fileContent is required and must not be empty")
        if not framework_id:
            raise ValidationError("framework is required")

        framework = self.catalog.get(framework_id)
        categories = self.catalog.select_categories(framework_id, selected_categories)
        doc_hash = document_hash(document_text, framework.id.value)

        logger.info(
            f"Analyzing document {doc_hash} ({len(document_text)} chars) against "
            f"{framework.id.value}, {len(categories)} categories"
        )

        prompt = build_analysis_prompt(
            document_text,
            framework,
            categories,
            max_chars=self.settings.analysis_max_chars,
        )
        invocation = await self.ai_client.invoke(
            prompt,
            system=ANALYSIS_SYSTEM_PROMPT,
            timeout=self.settings.analysis_timeout_seconds,
            max_tokens=self.settings.analysis_max_tokens,
        )

        results = None
        if invocation.ok:
            try:
                results = normalize_response(invocation.text or "")
            except ResponseParseError as e:
                logger.warning(f"Document {doc_hash}: {e.details}")
            else:
                if not any(c.results for c in results):
                    logger.warning(f"Document {doc_hash}: AI returned no control results")
                    results = None
        else:
            logger.warning(
                f"Document {doc_hash}: AI invocation failed "
                f"({invocation.failure.value}), using fallback analysis"
            )

        fallback_used = results is None
        if fallback_used:
            results = build_fallback_categories(framework, categories)

        summary = compute_summary(results)
        logger.info(
            f"Document {doc_hash}: score={summary.score} "
            f"({summary.covered}/{summary.partial}/{summary.gaps}), "
            f"fallback={fallback_used}"
        )
        return AnalysisResult(
            framework=framework.id,
            categories=results,
            summary=summary,
            fallback_used=fallback_used,
        )
