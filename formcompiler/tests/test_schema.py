"""
Unit tests for the form metadata models.

Tests cover:
- Parsing of the example forms
- camelCase aliases and snake_case attribute names
- Condition leaves vs groups (tagged union)
- Derived properties: field_type, has_default, multi-value variants
- Content hashing: stable across key order, sensitive to changes
"""

import pytest
from pydantic import ValidationError

from formcompiler.core.schema import (
    CombinatorOp,
    ConditionGroup,
    ConditionLeaf,
    ConditionOperator,
    FieldType,
    FormField,
    FormMetadata,
)


def make_metadata(fields: list[dict], version: str = "1.0.0") -> FormMetadata:
    return FormMetadata.model_validate({"version": version, "fields": fields})


# =============================================================
# Test: Parsing
# =============================================================


class TestParsing:
    """Tests that JSON-like metadata parses into the models."""

    def test_contact_form_parses(self, contact_form):
        metadata = FormMetadata.model_validate(contact_form)
        assert metadata.version == "1.0.0"
        assert [f.id for f in metadata.fields][:3] == ["full_name", "email", "age"]
        assert metadata.fields[0].required is True
        assert metadata.fields[2].required is False

    def test_camel_case_aliases(self):
        field = FormField.model_validate({
            "id": "a",
            "name": "a",
            "type": "text",
            "label": "A",
            "defaultValue": "x",
            "condition": {"fieldId": "b", "operator": "isEmpty"},
        })
        assert field.default_value == "x"
        assert field.condition.field_id == "b"

    def test_snake_case_names_accepted(self):
        field = FormField(id="a", name="a", type="text", label="A", default_value="x")
        assert field.default_value == "x"

    def test_unknown_type_is_kept_for_the_validator(self):
        field = FormField(id="a", name="a", type="signature", label="A")
        assert field.type == "signature"
        with pytest.raises(ValueError):
            field.field_type

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValidationError):
            FormField.model_validate({
                "id": "a", "name": "a", "type": "text", "label": "A",
                "condition": {"fieldId": "b", "operator": "matches"},
            })

    def test_missing_version_rejected(self):
        with pytest.raises(ValidationError):
            FormMetadata.model_validate({"fields": []})

    def test_metadata_is_frozen(self, contact_metadata):
        with pytest.raises(ValidationError):
            contact_metadata.version = "2.0.0"


# =============================================================
# Test: Conditions
# =============================================================


class TestConditions:
    """Tests for the condition tagged union."""

    def test_leaf(self, event_form):
        metadata = FormMetadata.model_validate(event_form)
        condition = metadata.get_field("arrival").condition
        assert isinstance(condition, ConditionLeaf)
        assert condition.operator == ConditionOperator.EQUALS
        assert condition.value is True

    def test_group(self, event_form):
        metadata = FormMetadata.model_validate(event_form)
        condition = metadata.get_field("meals").condition
        assert isinstance(condition, ConditionGroup)
        assert condition.op == CombinatorOp.AND
        assert len(condition.children) == 2

    def test_nested_groups(self):
        field = FormField.model_validate({
            "id": "x", "name": "x", "type": "text", "label": "X",
            "condition": {"op": "or", "children": [
                {"fieldId": "a", "operator": "isNotEmpty"},
                {"op": "and", "children": [
                    {"fieldId": "b", "operator": "equals", "value": 1},
                    {"fieldId": "c", "operator": "lessThan", "value": 5},
                ]},
            ]},
        })
        assert field.referenced_field_ids() == ["a", "b", "c"]

    def test_no_condition_has_no_references(self):
        field = FormField(id="a", name="a", type="text", label="A")
        assert field.referenced_field_ids() == []


# =============================================================
# Test: Derived properties
# =============================================================


class TestDerivedProperties:
    """Tests for field_type, has_default and multi-value detection."""

    def test_field_type(self):
        field = FormField(id="a", name="a", type="number", label="A")
        assert field.field_type == FieldType.NUMBER

    def test_has_default_false_when_absent(self):
        field = FormField(id="a", name="a", type="text", label="A")
        assert field.has_default is False

    def test_has_default_true_for_explicit_null(self):
        field = FormField.model_validate(
            {"id": "a", "name": "a", "type": "text", "label": "A", "defaultValue": None}
        )
        assert field.has_default is True

    def test_checkbox_group_needs_more_than_one_option(self):
        single = FormField.model_validate({
            "id": "a", "name": "a", "type": "checkbox", "label": "A",
            "options": [{"label": "Yes", "value": "yes"}],
        })
        group = FormField.model_validate({
            "id": "b", "name": "b", "type": "checkbox", "label": "B",
            "options": [{"label": "X", "value": "x"}, {"label": "Y", "value": "y"}],
        })
        assert single.is_checkbox_group is False
        assert group.is_checkbox_group is True
        assert group.is_multi_value is True

    def test_multi_select(self):
        field = FormField.model_validate({
            "id": "a", "name": "a", "type": "select", "label": "A", "multiple": True,
            "options": [{"label": "X", "value": "x"}],
        })
        assert field.is_multi_value is True
        assert field.option_values == ["x"]


# =============================================================
# Test: Content hash
# =============================================================


class TestContentHash:
    """Tests for FormMetadata.content_hash."""

    def test_equal_metadata_hashes_equal(self, contact_form):
        first = FormMetadata.model_validate(contact_form)
        second = FormMetadata.model_validate(contact_form)
        assert first is not second
        assert first.content_hash() == second.content_hash()

    def test_key_order_does_not_matter(self):
        a = make_metadata([{"id": "a", "name": "a", "type": "text", "label": "A"}])
        b = make_metadata([{"label": "A", "type": "text", "name": "a", "id": "a"}])
        assert a.content_hash() == b.content_hash()

    def test_explicit_defaults_match_omitted_ones(self):
        a = make_metadata([{"id": "a", "name": "a", "type": "text", "label": "A"}])
        b = make_metadata([{"id": "a", "name": "a", "type": "text", "label": "A", "required": False}])
        assert a.content_hash() == b.content_hash()

    def test_version_changes_hash(self):
        fields = [{"id": "a", "name": "a", "type": "text", "label": "A"}]
        assert make_metadata(fields, "1").content_hash() != make_metadata(fields, "2").content_hash()

    def test_field_order_changes_hash(self):
        a = {"id": "a", "name": "a", "type": "text", "label": "A"}
        b = {"id": "b", "name": "b", "type": "text", "label": "B"}
        assert make_metadata([a, b]).content_hash() != make_metadata([b, a]).content_hash()

    def test_null_default_differs_from_no_default(self):
        a = make_metadata([{"id": "a", "name": "a", "type": "text", "label": "A"}])
        b = make_metadata([{"id": "a", "name": "a", "type": "text", "label": "A", "defaultValue": None}])
        assert a.content_hash() != b.content_hash()
