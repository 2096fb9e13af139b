"""
Shared test fixtures for the schema compiler test suite.
"""

import json
from pathlib import Path

import pytest

from formcompiler.core.compiler import SchemaCompiler
from formcompiler.core.config import CompilerOptions
from formcompiler.core.schema import FormMetadata

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"


def load_schema_json(filename: str) -> dict:
    """Load one of the example forms as a dict."""
    with open(SCHEMAS_DIR / filename, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def contact_form() -> dict:
    return load_schema_json("contact_form.json")


@pytest.fixture
def event_form() -> dict:
    return load_schema_json("event_registration.json")


@pytest.fixture
def contact_metadata(contact_form) -> FormMetadata:
    return FormMetadata.model_validate(contact_form)


@pytest.fixture
def compiler() -> SchemaCompiler:
    """A compiler with its own cache and metrics."""
    return SchemaCompiler(CompilerOptions(cache_max_size=10))
