"""
Error types raised by the schema compiler.

Problems with the metadata itself are exceptions: they are bugs in the
authored form and must surface loudly. Problems with submitted data are
never raised to callers; field validators raise ``FieldValidationError``
internally and ``CompiledSchema.validate`` folds them into its result.
"""

from typing import Any

from pydantic import BaseModel


class MetadataIssue(BaseModel):
    """One problem found in a FormMetadata value."""

    field: str
    code: str
    message: str


class MetadataError(Exception):
    """Raised when form metadata fails validation.

    Carries every issue found, not just the first one.
    """

    def __init__(self, issues: list[MetadataIssue]):
        self.issues = list(issues)
        super().__init__("; ".join(f"{issue.field}: {issue.message}" for issue in self.issues))


class CircularReferenceError(MetadataError):
    """Raised when field conditions depend on each other in a loop."""

    def __init__(self, cycle: list[str], issues: list[MetadataIssue]):
        self.cycle = list(cycle)
        super().__init__(issues)


class FieldValidationError(Exception):
    """A submitted value violates its field's rules.

    ``code`` selects the message template; ``params`` fill it in.
    """

    def __init__(self, code: str, **params: Any):
        self.code = code
        self.params = params
        super().__init__(code)


class CoercionError(FieldValidationError):
    """A submitted value cannot be coerced to the field's type."""
