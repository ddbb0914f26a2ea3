"""Compliance score computation."""

import math
from typing import Iterable

from mapmygap.models.analysis import AnalysisSummary, CategoryResult, ControlStatus


def compute_score(covered: int, partial: int, gaps: int) -> int:
    """Score = round((covered + 0.5 * partial) / total * 100), 0 when empty.

    Rounds half up, so 62.5 scores 63.
    """
    total = covered + partial + gaps
    if total == 0:
        return 0
    raw = (covered + 0.5 * partial) / total * 100
    return min(100, max(0, int(math.floor(raw + 0.5))))


def compute_summary(categories: Iterable[CategoryResult]) -> AnalysisSummary:
    """Derive counts and score from scratch from the control results."""
    covered = partial = gaps = 0
    for category in categories:
        for result in category.results:
            if result.status == ControlStatus.COVERED:
                covered += 1
            elif result.status == ControlStatus.PARTIAL:
                partial += 1
            else:
                gaps += 1

    return AnalysisSummary(
        total=covered + partial + gaps,
        covered=covered,
        partial=partial,
        gaps=gaps,
        score=compute_score(covered, partial, gaps),
    )
