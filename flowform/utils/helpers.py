"""Shared helpers for reading request payloads in the service layer.

JSON bodies arrive untyped; a number or list where text is expected is a
422 on that key, not an AttributeError deep in a service.
"""

from flowform.core.exceptions import ValidationError


def require_text_types(data: dict, *keys: str) -> None:
    """Raise ValidationError for any of ``keys`` holding a non-string value.

    Absent and null values pass.
    """
    for key in keys:
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{key} must be a string", details={key: "type"})


def clean_text(data: dict, key: str) -> str:
    """``data[key]`` stripped of surrounding whitespace; "" when absent or null."""
    require_text_types(data, key)
    return (data.get(key) or "").strip()


def optional_text(data: dict, key: str) -> str | None:
    return clean_text(data, key) or None
