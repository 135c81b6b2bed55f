"""Schema-driven dynamic forms: field kinds, validation, file values, labels."""

from flowform.forms.codec import FilePayload, reconcile_file_fields
from flowform.forms.field_types import FieldType
from flowform.forms.validation import build_validator, resolve_defaults

__all__ = [
    "FieldType",
    "FilePayload",
    "build_validator",
    "reconcile_file_fields",
    "resolve_defaults",
]
