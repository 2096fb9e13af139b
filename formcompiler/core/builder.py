"""
Compiles form metadata into a submission validator.

Each field becomes a FieldNode: a presence rule, a coercion step and a
list of checks, picked by an exhaustive match on the field type. The
nodes are composed into a CompiledSchema whose ``validate`` reports every
violated field in one pass and never raises for bad data.
"""

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import AnyUrl, BaseModel, Field, TypeAdapter, ValidationError

from formcompiler.core.coercion import coerce_boolean, coerce_date, coerce_number
from formcompiler.core.errors import CoercionError, FieldValidationError
from formcompiler.core.messages import DEFAULT_LOCALE, render_message
from formcompiler.core.schema import FieldType, FormField, FormMetadata
from formcompiler.core.utils import MISSING, strict_equals

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^[+]?[\d\s\-()]+$")

_URL_ADAPTER = TypeAdapter(AnyUrl)

Check = Callable[[Any], None]


# --- Validation result models ---


class ValidationIssue(BaseModel):
    """A field-level problem with a submission."""

    field: str
    message: str
    code: str


class ValidationResult(BaseModel):
    """Outcome of validating a submission against a compiled schema."""

    success: bool
    data: dict[str, Any] | None = None
    errors: list[ValidationIssue] = Field(default_factory=list)


# --- Field nodes ---


@dataclass(frozen=True)
class FieldNode:
    """Validator for the value of one field.

    ``parse`` turns a present raw value into the canonical value and may
    raise FieldValidationError; ``checks`` then run on the parsed value.
    ``fallback`` is returned for an absent optional value (MISSING means
    "omit from the output").
    """

    field: FormField
    parse: Callable[[Any], Any]
    checks: tuple[Check, ...] = ()
    fallback: Any = MISSING
    null_is_absent: bool = True
    blank_is_absent: bool = True

    @property
    def key(self) -> str:
        return self.field.name

    def validate(self, raw: Any) -> Any:
        if raw is MISSING and self.field.has_default:
            return self.field.default_value

        if self._is_absent(raw):
            if self.field.required:
                raise FieldValidationError("required")
            return self.fallback

        value = self.parse(raw)
        for check in self.checks:
            check(value)
        return value

    def _is_absent(self, raw: Any) -> bool:
        if raw is MISSING:
            return True
        if raw is None:
            return self.null_is_absent
        if self.blank_is_absent and isinstance(raw, str) and not raw.strip():
            return True
        return False


class CompiledSchema:
    """Validator artifact produced from one FormMetadata.

    Shared read-only between callers once stored in the compilation cache.
    """

    def __init__(self, metadata_hash: str, nodes: list[FieldNode]):
        self.metadata_hash = metadata_hash
        self._nodes = tuple(nodes)

    @property
    def field_names(self) -> list[str]:
        return [node.key for node in self._nodes]

    def validate(self, data: Any, *, locale: str | None = DEFAULT_LOCALE) -> ValidationResult:
        """Validate a submission, collecting one error per violated field.

        Args:
            data: The submitted values keyed by field name.
            locale: Locale for the error messages.

        Returns:
            A ValidationResult with the coerced data or the field errors.
        """
        if not isinstance(data, Mapping):
            return ValidationResult(
                success=False,
                errors=[ValidationIssue(
                    field="_root",
                    message=render_message("invalid_payload", locale),
                    code="invalid_payload",
                )],
            )

        validated: dict[str, Any] = {}
        errors: list[ValidationIssue] = []

        for node in self._nodes:
            raw = data[node.key] if node.key in data else MISSING
            try:
                value = node.validate(raw)
            except FieldValidationError as e:
                errors.append(ValidationIssue(
                    field=node.key,
                    message=render_message(e.code, locale, label=_label_of(node.field), **e.params),
                    code=e.code,
                ))
                continue

            if value is not MISSING:
                validated[node.key] = value

        if errors:
            return ValidationResult(success=False, errors=errors)
        return ValidationResult(success=True, data=validated)

    def __repr__(self) -> str:
        return f"CompiledSchema(hash={self.metadata_hash[:12]}, fields={len(self._nodes)})"


# --- Builder ---


class SchemaBuilder:
    """Builds CompiledSchema instances. Holds no state between calls.

    Metadata is expected to have passed the metadata validator already.
    """

    def build(self, metadata: FormMetadata, metadata_hash: str | None = None) -> CompiledSchema:
        nodes = [self.build_field(field) for field in metadata.fields]
        schema = CompiledSchema(metadata_hash or metadata.content_hash(), nodes)
        logger.debug("Built %r", schema)
        return schema

    def build_field(self, field: FormField) -> FieldNode:
        """Construct the validator node for a single field."""
        match field.field_type:
            case FieldType.TEXT | FieldType.TEXTAREA:
                return FieldNode(field, parse=_parse_text, checks=_text_checks(field))
            case FieldType.NUMBER:
                return FieldNode(field, parse=coerce_number, checks=_number_checks(field))
            case FieldType.DATE:
                return FieldNode(field, parse=coerce_date)
            case FieldType.SELECT:
                if field.is_multi_value:
                    return _multi_choice_node(field)
                return FieldNode(field, parse=_choice_parser(field))
            case FieldType.CHECKBOX:
                if field.is_checkbox_group:
                    return _multi_choice_node(field)
                return FieldNode(
                    field,
                    parse=coerce_boolean,
                    fallback=False,
                    null_is_absent=False,
                    blank_is_absent=False,
                )


# --- Parsers ---


def _parse_text(value: Any) -> str:
    if not isinstance(value, str):
        raise FieldValidationError("invalid_type", expected="text")
    return value


def _choice_parser(field: FormField) -> Callable[[Any], Any]:
    allowed = field.option_values

    def parse(value: Any) -> Any:
        for option in allowed:
            if strict_equals(value, option):
                return option
        raise FieldValidationError("invalid_option", allowed=_format_options(allowed))

    return parse


def _multi_choice_node(field: FormField) -> FieldNode:
    parse_one = _choice_parser(field)

    def parse(value: Any) -> list[Any]:
        if not isinstance(value, (list, tuple)):
            raise CoercionError("invalid_type", expected="a list of options")

        selected: list[Any] = []
        for item in value:
            option = parse_one(item)
            if any(strict_equals(option, seen) for seen in selected):
                raise FieldValidationError("duplicate_selection", value=option)
            selected.append(option)
        return selected

    def non_empty(value: list[Any]) -> None:
        if field.required and not value:
            raise FieldValidationError("empty_selection")

    return FieldNode(field, parse=parse, checks=(non_empty,))


# --- Checks inferred from field names and labels ---


def _tokens(field: FormField) -> set[str]:
    """Lowercase word tokens of the field name and label (camelCase split)."""
    text = f"{field.name} {field.label}"
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", text).lower()
    return {token for token in re.split(r"[^a-z0-9]+", text) if token}


def text_formats(field: FormField) -> set[str]:
    """Formats ("email", "url", "phone") implied by a text field's name or label."""
    tokens = _tokens(field)
    formats = set()
    if tokens & {"email", "mail"}:
        formats.add("email")
    if tokens & {"url", "website", "homepage"}:
        formats.add("url")
    if tokens & {"phone", "tel", "telephone", "mobile"}:
        formats.add("phone")
    return formats


def _text_checks(field: FormField) -> tuple[Check, ...]:
    formats = text_formats(field)
    checks: list[Check] = []
    if "email" in formats:
        checks.append(_check_email)
    if "url" in formats:
        checks.append(_check_url)
    if "phone" in formats:
        checks.append(_check_phone)
    return tuple(checks)


def _number_checks(field: FormField) -> tuple[Check, ...]:
    tokens = _tokens(field)
    label = field.label

    if "age" in tokens or "年龄" in label:
        return (_minimum(0), _maximum(150))
    if tokens & {"quantity", "count", "price", "amount"} or any(
        word in label for word in ("数量", "计数", "价格", "金额")
    ):
        return (_minimum(0),)
    return ()


def _check_email(value: str) -> None:
    if not EMAIL_PATTERN.match(value):
        raise FieldValidationError("invalid_email")


def _check_url(value: str) -> None:
    try:
        _URL_ADAPTER.validate_python(value)
    except ValidationError:
        raise FieldValidationError("invalid_url")


def _check_phone(value: str) -> None:
    if not PHONE_PATTERN.match(value):
        raise FieldValidationError("invalid_phone")


def _minimum(bound: int | float) -> Check:
    def check(value: int | float) -> None:
        if value < bound:
            raise FieldValidationError("too_small", minimum=bound)
    return check


def _maximum(bound: int | float) -> Check:
    def check(value: int | float) -> None:
        if value > bound:
            raise FieldValidationError("too_big", maximum=bound)
    return check


# --- Helpers ---


def _label_of(field: FormField) -> str:
    return field.label or field.name


def _format_options(values: list[Any]) -> str:
    return ", ".join(str(value) for value in values)
