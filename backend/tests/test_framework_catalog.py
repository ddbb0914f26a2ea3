"""Tests for mapmygap.services.framework_catalog."""

import pytest

from mapmygap.errors import UnsupportedFrameworkError, ValidationError
from mapmygap.models.framework import FrameworkId
from mapmygap.services.framework_catalog import parse_framework_markdown

SAMPLE = """# Sample Framework

A framework used in tests.

## Access Control (AC)

Limit system access.

| ID | Control | Recommendation |
|----|---------|----------------|
| AC-1 | Access Control Policy | Write an access control policy |
| AC-2 | Account Management | Review accounts quarterly |

## Audit (AU)

Keep records.

| ID | Control | Recommendation |
|----|---------|----------------|
| AU-1 | Audit Policy | Write an audit policy |
"""


class TestParseFrameworkMarkdown:
    def test_parses_title_description_and_categories(self):
        framework = parse_framework_markdown(FrameworkId.NIST_800_53, SAMPLE)
        assert framework.name == "Sample Framework"
        assert framework.description == "A framework used in tests."
        assert framework.category_names == ["Access Control (AC)", "Audit (AU)"]
        assert framework.categories[0].description == "Limit system access."
        assert framework.control_count == 3

    def test_header_and_separator_rows_are_skipped(self):
        framework = parse_framework_markdown(FrameworkId.NIST_800_53, SAMPLE)
        ids = [c.id for cat in framework.categories for c in cat.controls]
        assert ids == ["AC-1", "AC-2", "AU-1"]

    def test_control_fields(self):
        framework = parse_framework_markdown(FrameworkId.NIST_800_53, SAMPLE)
        control = framework.categories[0].controls[1]
        assert control.control == "Account Management"
        assert control.recommendation == "Review accounts quarterly"

    def test_abbreviation(self):
        framework = parse_framework_markdown(FrameworkId.NIST_800_53, SAMPLE)
        assert framework.categories[1].abbreviation == "AU"


class TestBundledCatalog:
    def test_all_frameworks_loaded(self, catalog):
        assert sorted(catalog.ids) == sorted(f.value for f in FrameworkId)

    @pytest.mark.parametrize("framework_id", [f.value for f in FrameworkId])
    def test_every_framework_has_controls(self, catalog, framework_id):
        framework = catalog.get(framework_id)
        assert framework.categories
        assert all(category.controls for category in framework.categories)

    @pytest.mark.parametrize("framework_id", [f.value for f in FrameworkId])
    def test_control_ids_unique_within_category(self, catalog, framework_id):
        for category in catalog.get(framework_id).categories:
            ids = [c.id for c in category.controls]
            assert len(ids) == len(set(ids))

    def test_nist_csf_functions(self, catalog):
        names = catalog.get("NIST_CSF").category_names
        assert "PROTECT (PR)" in names
        assert len(names) == 5

    def test_unknown_framework_raises(self, catalog):
        with pytest.raises(UnsupportedFrameworkError) as exc_info:
            catalog.get("HIPAA")
        assert isinstance(exc_info.value, ValidationError)
        assert exc_info.value.status_code == 400
        assert "NIST_CSF" in exc_info.value.details

    def test_contains(self, catalog):
        assert "SOC_2" in catalog
        assert "soc2" not in catalog


class TestSelectCategories:
    def test_no_selection_returns_all(self, catalog):
        framework = catalog.get("NIST_CSF")
        assert catalog.select_categories("NIST_CSF", None) == framework.categories
        assert catalog.select_categories("NIST_CSF", []) == framework.categories

    def test_match_by_abbreviation(self, catalog):
        selected = catalog.select_categories("NIST_CSF", ["pr"])
        assert [c.name for c in selected] == ["PROTECT (PR)"]

    def test_match_by_name_substring(self, catalog):
        selected = catalog.select_categories("NIST_CSF", ["detect", "Respond"])
        assert [c.name for c in selected] == ["DETECT (DE)", "RESPOND (RS)"]

    def test_match_by_control_id_prefix(self, catalog):
        selected = catalog.select_categories("NIST_CSF", ["RC"])
        assert all(c.id.startswith("RC.") for c in selected[0].controls)

    def test_no_match_falls_back_to_full_framework(self, catalog):
        framework = catalog.get("ISO_27001")
        assert catalog.select_categories("ISO_27001", ["Quantum"]) == framework.categories
