"""
Unit tests for the metadata validator.

Tests cover:
- Valid example forms produce no issues
- Duplicate IDs and names, unknown types
- Missing and duplicate options
- Dangling condition references
- Cycle detection (direct, self, through groups) vs acyclic chains
- check_metadata raising MetadataError / CircularReferenceError
- Every issue collected in one pass
"""

import pytest

from formcompiler.core import metadata_validator
from formcompiler.core.errors import CircularReferenceError, MetadataError
from formcompiler.core.metadata_validator import check_metadata, find_cycles, validate_metadata
from formcompiler.core.schema import FormMetadata


def text_field(field_id: str, condition: dict | None = None, **extra) -> dict:
    field = {"id": field_id, "name": field_id, "type": "text", "label": field_id.title()}
    if condition is not None:
        field["condition"] = condition
    field.update(extra)
    return field


def depends_on(field_id: str) -> dict:
    return {"fieldId": field_id, "operator": "equals", "value": "yes"}


def make_metadata(fields: list[dict], version: str = "1.0.0") -> FormMetadata:
    return FormMetadata.model_validate({"version": version, "fields": fields})


def codes(issues) -> list[str]:
    return [issue.code for issue in issues]


# =============================================================
# Test: Valid metadata
# =============================================================


class TestValidMetadata:
    """Tests that well-formed metadata passes."""

    def test_contact_form(self, contact_form):
        assert validate_metadata(FormMetadata.model_validate(contact_form)) == []

    def test_event_form(self, event_form):
        assert validate_metadata(FormMetadata.model_validate(event_form)) == []

    def test_empty_field_list(self):
        assert validate_metadata(make_metadata([])) == []

    def test_reference_to_later_field(self):
        metadata = make_metadata([text_field("a", depends_on("b")), text_field("b")])
        assert validate_metadata(metadata) == []

    def test_check_metadata_returns_none(self, contact_metadata):
        assert check_metadata(contact_metadata) is None


# =============================================================
# Test: Structural issues
# =============================================================


class TestStructuralIssues:
    """Tests for uniqueness, types and options."""

    def test_blank_version(self):
        issues = validate_metadata(make_metadata([], version="  "))
        assert codes(issues) == ["INVALID_VERSION"]
        assert issues[0].field == "version"

    def test_duplicate_id(self):
        metadata = make_metadata([text_field("a"), text_field("a", name="other")])
        issues = validate_metadata(metadata)
        assert codes(issues) == ["DUPLICATE_ID"]
        assert issues[0].field == "fields[1].id"

    def test_duplicate_name(self):
        metadata = make_metadata([text_field("a"), text_field("b", name="a")])
        issues = validate_metadata(metadata)
        assert codes(issues) == ["DUPLICATE_NAME"]
        assert issues[0].field == "fields[1].name"

    def test_unknown_type(self):
        metadata = make_metadata([text_field("a", type="signature")])
        issues = validate_metadata(metadata)
        assert codes(issues) == ["UNKNOWN_TYPE"]
        assert "signature" in issues[0].message

    def test_select_without_options(self):
        metadata = make_metadata([text_field("a", type="select")])
        assert codes(validate_metadata(metadata)) == ["MISSING_OPTIONS"]

    def test_select_with_empty_options(self):
        metadata = make_metadata([text_field("a", type="select", options=[])])
        assert codes(validate_metadata(metadata)) == ["MISSING_OPTIONS"]

    def test_single_checkbox_needs_no_options(self):
        metadata = make_metadata([text_field("a", type="checkbox")])
        assert validate_metadata(metadata) == []

    def test_duplicate_option_values(self):
        metadata = make_metadata([text_field("a", type="select", options=[
            {"label": "One", "value": "x"},
            {"label": "Two", "value": "x"},
        ])])
        assert codes(validate_metadata(metadata)) == ["DUPLICATE_OPTION"]

    def test_option_values_of_different_types_are_distinct(self):
        metadata = make_metadata([text_field("a", type="select", options=[
            {"label": "One", "value": 1},
            {"label": "One (text)", "value": "1"},
            {"label": "Yes", "value": True},
        ])])
        assert validate_metadata(metadata) == []


# =============================================================
# Test: References and cycles
# =============================================================


class TestReferences:
    """Tests for dangling references and circular dependencies."""

    def test_dangling_reference(self):
        metadata = make_metadata([text_field("a", depends_on("ghost"))])
        issues = validate_metadata(metadata)
        assert codes(issues) == ["DANGLING_REFERENCE"]
        assert issues[0].field == "fields[0].condition"
        assert "ghost" in issues[0].message

    def test_dangling_reference_inside_group(self):
        condition = {"op": "and", "children": [depends_on("b"), depends_on("ghost")]}
        metadata = make_metadata([text_field("a", condition), text_field("b")])
        assert codes(validate_metadata(metadata)) == ["DANGLING_REFERENCE"]

    def test_two_field_cycle_rejected(self):
        metadata = make_metadata([text_field("a", depends_on("b")), text_field("b", depends_on("a"))])

        with pytest.raises(CircularReferenceError) as exc_info:
            check_metadata(metadata)

        assert exc_info.value.cycle == ["a", "b", "a"]
        assert codes(exc_info.value.issues) == ["CIRCULAR_REFERENCE"]
        assert exc_info.value.issues[0].field == "fields[0].condition"
        assert "a -> b -> a" in str(exc_info.value)

    def test_self_reference(self):
        metadata = make_metadata([text_field("a", depends_on("a"))])
        assert find_cycles(metadata.fields) == [["a", "a"]]

    def test_three_field_cycle(self):
        metadata = make_metadata([
            text_field("a", depends_on("b")),
            text_field("b", depends_on("c")),
            text_field("c", depends_on("a")),
        ])
        assert find_cycles(metadata.fields) == [["a", "b", "c", "a"]]

    def test_cycle_through_group(self):
        condition = {"op": "or", "children": [depends_on("c"), depends_on("b")]}
        metadata = make_metadata([
            text_field("a", condition),
            text_field("b", depends_on("a")),
            text_field("c"),
        ])
        assert find_cycles(metadata.fields) == [["a", "b", "a"]]

    def test_acyclic_chain_passes(self):
        metadata = make_metadata([
            text_field("a", depends_on("b")),
            text_field("b", depends_on("c")),
            text_field("c"),
        ])
        assert find_cycles(metadata.fields) == []
        check_metadata(metadata)

    def test_diamond_is_not_a_cycle(self):
        condition = {"op": "and", "children": [depends_on("b"), depends_on("c")]}
        metadata = make_metadata([
            text_field("a", condition),
            text_field("b", depends_on("d")),
            text_field("c", depends_on("d")),
            text_field("d"),
        ])
        assert find_cycles(metadata.fields) == []

    def test_circular_error_is_a_metadata_error(self):
        metadata = make_metadata([text_field("a", depends_on("b")), text_field("b", depends_on("a"))])
        with pytest.raises(MetadataError):
            check_metadata(metadata)


# =============================================================
# Test: Issue collection
# =============================================================


class TestIssueCollection:
    """Tests that every problem is reported at once."""

    def test_all_issues_collected(self):
        metadata = make_metadata([
            text_field("a"),
            text_field("a", name="a2"),
            text_field("b", type="color"),
            text_field("c", depends_on("ghost")),
        ])
        issues = validate_metadata(metadata)
        assert codes(issues) == ["DUPLICATE_ID", "UNKNOWN_TYPE", "DANGLING_REFERENCE"]

    def test_check_metadata_raises_with_every_issue(self):
        metadata = make_metadata([text_field("a"), text_field("a"), text_field("b", type="color")])

        with pytest.raises(MetadataError) as exc_info:
            check_metadata(metadata)

        assert not isinstance(exc_info.value, CircularReferenceError)
        assert codes(exc_info.value.issues) == ["DUPLICATE_ID", "DUPLICATE_NAME", "UNKNOWN_TYPE"]

    def test_cycle_reported_with_other_issues(self):
        metadata = make_metadata([
            text_field("a", depends_on("b")),
            text_field("b", depends_on("a")),
            text_field("c", type="color"),
        ])

        with pytest.raises(CircularReferenceError) as exc_info:
            check_metadata(metadata)

        assert codes(exc_info.value.issues) == ["UNKNOWN_TYPE", "CIRCULAR_REFERENCE"]

    def test_cycle_issue_points_at_first_field_in_cycle(self):
        metadata = make_metadata([
            text_field("x"),
            text_field("b", depends_on("c")),
            text_field("c", depends_on("b")),
        ])
        issues = validate_metadata(metadata)
        assert codes(issues) == ["CIRCULAR_REFERENCE"]
        assert issues[0].field == "fields[1].condition"

    def test_check_metadata_searches_cycles_once(self, monkeypatch):
        calls = []
        original = metadata_validator.find_cycles

        def counting_find_cycles(fields):
            calls.append(fields)
            return original(fields)

        monkeypatch.setattr(metadata_validator, "find_cycles", counting_find_cycles)
        metadata = make_metadata([text_field("a", depends_on("b")), text_field("b", depends_on("a"))])

        with pytest.raises(CircularReferenceError):
            check_metadata(metadata)
        assert len(calls) == 1
