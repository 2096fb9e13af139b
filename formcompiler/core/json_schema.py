"""
JSON Schema (draft-07) export of form metadata.

Describes the submission payload a compiled schema accepts, for API
documentation and client-side tooling. Coercion rules (boolean-like
strings, numeric strings) are not expressible here; the exported schema
describes the canonical value types.
"""

from typing import Any

from formcompiler.core.builder import text_formats
from formcompiler.core.schema import FieldType, FormField, FormMetadata

JSON_SCHEMA_DRAFT = "http://json-schema.org/draft-07/schema#"


def to_json_schema(
    metadata: FormMetadata,
    *,
    title: str | None = None,
    strict: bool = False,
) -> dict[str, Any]:
    """Convert form metadata to a JSON Schema object.

    Args:
        metadata: Validated form metadata.
        title: Schema title, defaults to one derived from the version.
        strict: Disallow properties that are not form fields.

    Returns:
        The JSON Schema as a dict.
    """
    properties: dict[str, Any] = {}
    required: list[str] = []

    for field in metadata.fields:
        properties[field.name] = _field_schema(field)
        if field.required:
            required.append(field.name)

    schema: dict[str, Any] = {
        "$schema": JSON_SCHEMA_DRAFT,
        "$id": f"#/schemas/form/{metadata.version.replace('.', '-')}",
        "title": title or f"Form Schema - {metadata.version}",
        "type": "object",
        "properties": properties,
        "additionalProperties": not strict,
    }
    if required:
        schema["required"] = required
    return schema


def _field_schema(field: FormField) -> dict[str, Any]:
    schema: dict[str, Any] = {"title": field.label}

    if field.is_multi_value:
        schema.update({
            "type": "array",
            "items": {"enum": field.option_values},
            "uniqueItems": True,
        })
        if field.required:
            schema["minItems"] = 1
    else:
        match field.field_type:
            case FieldType.TEXT | FieldType.TEXTAREA:
                schema["type"] = "string"
                if field.required:
                    schema["minLength"] = 1
                text_format = _text_format(field)
                if text_format:
                    schema["format"] = text_format
                if field.placeholder:
                    schema["examples"] = [field.placeholder]
            case FieldType.NUMBER:
                schema["type"] = "number"
            case FieldType.DATE:
                schema["type"] = "string"
                schema["format"] = "date-time"
            case FieldType.CHECKBOX:
                schema["type"] = "boolean"
            case FieldType.SELECT:
                schema["enum"] = field.option_values

    if field.has_default:
        schema["default"] = field.default_value
    return schema


def _text_format(field: FormField) -> str | None:
    formats = text_formats(field)
    if "email" in formats:
        return "email"
    if "url" in formats:
        return "uri"
    return None
