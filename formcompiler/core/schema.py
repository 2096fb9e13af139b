"""
Form metadata definition models.

These Pydantic models describe the declarative form a user composes in
the builder: a versioned list of fields, each with a type, presentation
hints, options and an optional visibility condition. They are the input
of the schema compiler and are treated as immutable once parsed.
"""

import hashlib
import json
from enum import Enum
from typing import Annotated, Any, Iterator

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag


# --- Enums ---


class FieldType(str, Enum):
    """Supported form field types.

    The set is closed: adding a type means extending the builder's
    dispatch in ``builder.py``.
    """

    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    DATE = "date"
    CHECKBOX = "checkbox"
    TEXTAREA = "textarea"


class ConditionOperator(str, Enum):
    """Operators available on a condition leaf."""

    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"


class CombinatorOp(str, Enum):
    """Boolean combinators for condition groups."""

    AND = "and"
    OR = "or"


# --- Options ---


class FieldOption(BaseModel):
    """A single choice of a select or checkbox-group field."""

    model_config = ConfigDict(frozen=True)

    label: str
    value: Any


# --- Conditions ---


class ConditionLeaf(BaseModel):
    """Compares another field's current value against a static value."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    field_id: str = Field(
        ...,
        alias="fieldId",
        min_length=1,
        description="The field ID whose value is tested",
    )
    operator: ConditionOperator
    value: Any = Field(
        default=None,
        description="Comparison value (unused by isEmpty / isNotEmpty)",
    )


class ConditionGroup(BaseModel):
    """Combines child conditions with AND / OR logic."""

    model_config = ConfigDict(frozen=True)

    op: CombinatorOp
    children: list["FieldCondition"] = Field(default_factory=list)


def _condition_kind(value: Any) -> str:
    if isinstance(value, dict):
        return "group" if "op" in value else "leaf"
    return "group" if isinstance(value, ConditionGroup) else "leaf"


FieldCondition = Annotated[
    Annotated[ConditionLeaf, Tag("leaf")] | Annotated[ConditionGroup, Tag("group")],
    Discriminator(_condition_kind),
]

ConditionGroup.model_rebuild()


def iter_condition_leaves(condition: "ConditionLeaf | ConditionGroup") -> Iterator[ConditionLeaf]:
    """Yield every leaf of a condition tree, left to right."""
    if isinstance(condition, ConditionLeaf):
        yield condition
        return
    for child in condition.children:
        yield from iter_condition_leaves(child)


# --- Form Field ---


class FormField(BaseModel):
    """Definition of a single form field.

    ``type`` is kept as the raw string so that an unknown type is reported
    by the metadata validator alongside every other problem, rather than
    rejected by the parser on its own.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Unique field identifier")
    name: str = Field(..., min_length=1, description="Key of the value in a submission")
    type: str = Field(..., description="One of the FieldType values")
    label: str = Field(..., description="Human readable label")
    required: bool = False
    placeholder: str | None = None
    options: list[FieldOption] | None = Field(
        default=None,
        description="Available choices (select and checkbox groups)",
    )
    condition: FieldCondition | None = Field(
        default=None,
        description="Visibility condition (field is always visible if absent)",
    )
    default_value: Any = Field(default=None, alias="defaultValue")
    multiple: bool = Field(
        default=False,
        description="Select only: accept a list of option values",
    )

    @property
    def field_type(self) -> FieldType:
        """The FieldType member. Raises ValueError for unknown types."""
        return FieldType(self.type)

    @property
    def has_default(self) -> bool:
        """True when ``defaultValue`` was given explicitly, even as null."""
        return "default_value" in self.model_fields_set

    @property
    def option_values(self) -> list[Any]:
        return [option.value for option in self.options or []]

    @property
    def is_checkbox_group(self) -> bool:
        return self.type == FieldType.CHECKBOX.value and len(self.options or []) > 1

    @property
    def is_multi_value(self) -> bool:
        """Checkbox groups and multi-selects collect a list of option values."""
        if self.type == FieldType.SELECT.value:
            return self.multiple
        return self.is_checkbox_group

    def referenced_field_ids(self) -> list[str]:
        """Field IDs this field's condition depends on, in condition order."""
        if self.condition is None:
            return []
        return [leaf.field_id for leaf in iter_condition_leaves(self.condition)]

    def canonical_dict(self) -> dict[str, Any]:
        """Normalized JSON form used for content hashing."""
        payload = self.model_dump(mode="json", by_alias=True)
        if not self.has_default:
            payload.pop("defaultValue", None)
        return payload


# --- Top-Level Metadata ---


class FormMetadata(BaseModel):
    """Versioned description of a form.

    Only structural typing happens here; semantic checks (uniqueness,
    known types, references, cycles) live in ``metadata_validator``.
    """

    model_config = ConfigDict(frozen=True)

    version: str
    fields: list[FormField] = Field(default_factory=list)

    def content_hash(self) -> str:
        """Stable SHA-256 over the version and the ordered field definitions."""
        canonical = {
            "version": self.version,
            "fields": [field.canonical_dict() for field in self.fields],
        }
        encoded = json.dumps(
            canonical,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            default=str,
        )
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()

    def get_field(self, field_id: str) -> FormField | None:
        """Look up a field by its ID."""
        for field in self.fields:
            if field.id == field_id:
                return field
        return None
