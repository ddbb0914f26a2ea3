"""Deterministic gap analysis used when the AI assessment is unavailable."""

import logging
from typing import Optional

from mapmygap.models.analysis import CategoryResult, ControlResult, ControlStatus
from mapmygap.models.framework import Category, Framework

logger = logging.getLogger(__name__)

FALLBACK_DETAILS = "AI analysis failed. Default status assigned. Please review manually."


def build_fallback_categories(
    framework: Framework, categories: Optional[tuple[Category, ...]] = None
) -> list[CategoryResult]:
    """Mark every catalog control as a gap.

    Uses the scoped ``categories`` when given, the whole framework otherwise.
    Recommendations are the catalog defaults.
    """
    categories = categories if categories is not None else framework.categories
    results = [
        CategoryResult(
            name=category.name,
            description=category.description,
            results=[
                ControlResult(
                    id=control.id,
                    control=control.control,
                    status=ControlStatus.GAP,
                    details=FALLBACK_DETAILS,
                    recommendation=control.recommendation,
                )
                for control in category.controls
            ],
        )
        for category in categories
    ]
    logger.info(
        f"Built fallback analysis for {framework.id.value}: "
        f"{sum(len(c.results) for c in results)} controls"
    )
    return results
