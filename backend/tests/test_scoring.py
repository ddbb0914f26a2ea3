"""Tests for mapmygap.services.scoring."""

import pytest

from mapmygap.models.analysis import CategoryResult, ControlResult, ControlStatus
from mapmygap.services.scoring import compute_score, compute_summary


def _category(*statuses: str) -> CategoryResult:
    return CategoryResult(
        name="Access Control (AC)",
        results=[
            ControlResult(id=f"AC-{i}", status=status)
            for i, status in enumerate(statuses, start=1)
        ],
    )


class TestComputeScore:
    def test_four_two_four_scores_fifty(self):
        assert compute_score(covered=4, partial=2, gaps=4) == 50

    def test_empty_scores_zero(self):
        assert compute_score(0, 0, 0) == 0

    def test_all_covered_scores_hundred(self):
        assert compute_score(7, 0, 0) == 100

    def test_all_gaps_scores_zero(self):
        assert compute_score(0, 0, 12) == 0

    def test_rounds_half_up(self):
        # (2 + 0.5 * 1) / 4 * 100 = 62.5
        assert compute_score(2, 1, 1) == 63

    def test_rounds_down_below_half(self):
        # 1/3 * 100 = 33.33
        assert compute_score(1, 0, 2) == 33

    @pytest.mark.parametrize("covered,partial,gaps", [(3, 2, 5), (0, 4, 1), (1, 1, 1)])
    def test_promoting_a_control_never_lowers_score(self, covered, partial, gaps):
        base = compute_score(covered, partial, gaps)
        if gaps:
            assert compute_score(covered, partial + 1, gaps - 1) >= base
        if partial:
            assert compute_score(covered + 1, partial - 1, gaps) >= base


class TestComputeSummary:
    def test_counts_match_results(self):
        summary = compute_summary(
            [
                _category("covered", "covered", "partial"),
                _category("gap", "covered", "covered", "partial", "gap", "gap", "gap"),
            ]
        )
        assert summary.covered == 4
        assert summary.partial == 2
        assert summary.gaps == 4
        assert summary.total == 10
        assert summary.total == summary.covered + summary.partial + summary.gaps
        assert summary.score == 50

    def test_empty_categories(self):
        summary = compute_summary([])
        assert summary.total == 0
        assert summary.score == 0

    def test_recomputed_from_statuses(self):
        category = _category("covered", "gap")
        assert compute_summary([category]).score == 50
        assert category.results[0].status == ControlStatus.COVERED
