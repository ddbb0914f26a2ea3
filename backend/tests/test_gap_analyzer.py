"""Tests for mapmygap.services.gap_analyzer."""

import json

import pytest

from mapmygap.errors import UnsupportedFrameworkError, ValidationError
from mapmygap.models.analysis import ControlStatus
from mapmygap.models.framework import FrameworkId
from mapmygap.services.fallback import FALLBACK_DETAILS
from mapmygap.services.gap_analyzer import GapAnalyzer, document_hash


def _ai_categories(statuses: list[str]) -> str:
    return json.dumps(
        {
            "categories": [
                {
                    "name": "Access Control (AC)",
                    "description": "Limit system access",
                    "results": [
                        {"id": f"AC-{i}", "control": "c", "status": s}
                        for i, s in enumerate(statuses, start=1)
                    ],
                }
            ]
        }
    )


class TestDocumentHash:
    def test_sixteen_hex_chars(self):
        digest = document_hash("policy text", "NIST_CSF")
        assert len(digest) == 16
        int(digest, 16)

    def test_only_first_hundred_chars_count(self):
        base = "a" * 100
        assert document_hash(base + "tail one", "SOC_2") == document_hash(
            base + "tail two", "SOC_2"
        )

    def test_framework_changes_hash(self):
        assert document_hash("policy", "SOC_2") != document_hash("policy", "PCI_DSS")


@pytest.mark.asyncio
class TestGapAnalyzer:
    async def test_ai_result_is_normalized_and_scored(self, catalog, fake_ai, settings):
        ai = fake_ai(
            "```json\n"
            + _ai_categories(["covered"] * 4 + ["partial"] * 2 + ["gap"] * 4)
            + "\n```"
        )
        result = await GapAnalyzer(catalog, ai, settings).analyze(
            "Our access control policy", "NIST_800_53"
        )

        assert result.framework == FrameworkId.NIST_800_53
        assert not result.fallback_used
        assert result.summary.total == 10
        assert result.summary.score == 50

    async def test_summary_counts_only_valid_controls(self, catalog, fake_ai, settings):
        data = json.loads(_ai_categories(["covered", "partial", "gap"]))
        data["categories"][0]["results"] += [
            {"id": "AC-9", "status": "not_implemented"},
            {"control": "no id", "status": "covered"},
            "junk",
        ]
        ai = fake_ai("Analysis for [NIST_800_53]:\n" + json.dumps(data))
        result = await GapAnalyzer(catalog, ai, settings).analyze("Policy", "NIST_800_53")

        valid = [r for c in result.categories for r in c.results]
        summary = result.summary
        assert not result.fallback_used
        assert summary.total == len(valid) == 3
        assert summary.covered + summary.partial + summary.gaps == summary.total
        assert summary.score == 50

    async def test_malformed_response_uses_fallback(self, catalog, fake_ai, settings):
        ai = fake_ai("Sure! {categories: [}")
        result = await GapAnalyzer(catalog, ai, settings).analyze(
            "Some policy", "NIST_CSF"
        )

        framework = catalog.get("NIST_CSF")
        assert result.fallback_used
        assert result.summary.score == 0
        assert result.summary.total == framework.control_count
        assert result.summary.gaps == framework.control_count
        assert all(
            r.status == ControlStatus.GAP and r.details == FALLBACK_DETAILS
            for c in result.categories
            for r in c.results
        )

    async def test_wrapped_category_object(self, catalog, fake_ai, settings):
        single = json.loads(_ai_categories(["covered", "gap"]))["categories"][0]
        ai = fake_ai(json.dumps({"categories": single}))
        result = await GapAnalyzer(catalog, ai, settings).analyze("Policy", "NIST_800_53")

        assert not result.fallback_used
        assert len(result.categories) == 1
        assert result.summary.score == 50

    async def test_ai_failure_uses_fallback(self, catalog, fake_ai, settings):
        ai = fake_ai(RuntimeError("down"), RuntimeError("down"))
        result = await GapAnalyzer(catalog, ai, settings).analyze("Policy", "SOC_2")
        assert result.fallback_used
        assert result.summary.total == catalog.get("SOC_2").control_count

    async def test_empty_results_use_fallback(self, catalog, fake_ai, settings):
        ai = fake_ai('{"categories": []}')
        result = await GapAnalyzer(catalog, ai, settings).analyze("Policy", "PCI_DSS")
        assert result.fallback_used

    async def test_not_configured_uses_fallback(self, catalog, unconfigured_ai, settings):
        result = await GapAnalyzer(catalog, unconfigured_ai, settings).analyze(
            "Policy", "ISO_27001"
        )
        assert result.fallback_used

    async def test_scoped_fallback(self, catalog, unconfigured_ai, settings):
        result = await GapAnalyzer(catalog, unconfigured_ai, settings).analyze(
            "Policy", "NIST_CSF", ["PR"]
        )
        assert [c.name for c in result.categories] == ["PROTECT (PR)"]

    @pytest.mark.parametrize("document", [None, "", "   \n\t"])
    async def test_empty_document_rejected_before_ai(
        self, catalog, fake_ai, settings, document
    ):
        ai = fake_ai("unused")
        with pytest.raises(ValidationError):
            await GapAnalyzer(catalog, ai, settings).analyze(document, "NIST_CSF")
        ai._client.messages.create.assert_not_called()

    async def test_missing_framework_rejected(self, catalog, fake_ai, settings):
        ai = fake_ai("unused")
        with pytest.raises(ValidationError):
            await GapAnalyzer(catalog, ai, settings).analyze("Policy", None)

    async def test_unknown_framework_rejected_before_ai(self, catalog, fake_ai, settings):
        ai = fake_ai("unused")
        with pytest.raises(UnsupportedFrameworkError):
            await GapAnalyzer(catalog, ai, settings).analyze("Policy", "HIPAA")
        ai._client.messages.create.assert_not_called()

    async def test_prompt_is_bounded(self, catalog, fake_ai, settings):
        ai = fake_ai(_ai_categories(["covered"]))
        await GapAnalyzer(catalog, ai, settings).analyze("§" * 50000, "SOC_2")
        prompt = ai._client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert prompt.count("§") == settings.analysis_max_chars
