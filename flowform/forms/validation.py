"""
Validation Schema Builder.

Builds a form validator at runtime from stored field definitions:

    validator = build_validator(table_fields)
    result = validator.validate(request_values, existing=entry.data)
    result.raise_for_errors()          # FormValidationError on failure
    persist(result.values)

Each field kind is handled by one ``FieldRule`` subclass registered for
its ``FieldType``. A rule coerces the submitted value to the kind's value
shape, applies the configured validation rules and the required check,
and knows the kind's default value.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email

from flowform.core.exceptions import FormValidationError, ValidationError
from flowform.forms.codec import FilePayload
from flowform.forms.field_types import FieldType

logger = logging.getLogger(__name__)

_PHONE_RE = re.compile(r"^\+?[0-9][0-9 ().\-]{5,22}[0-9]$")
_TRUE_STRINGS = frozenset({"true", "on", "1", "yes"})
_FALSE_STRINGS = frozenset({"false", "off", "0", "no", ""})


# ═════════════════════════════════════════════════════════════════════════════
# Results
# ═════════════════════════════════════════════════════════════════════════════

@dataclass
class FieldError:
    """Single field-level validation failure."""
    field: str
    code: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "code": self.code, "message": self.message}


@dataclass
class ValidationResult:
    """Coerced value map, or the errors that prevented producing one."""
    values: dict = field(default_factory=dict)
    errors: list[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> dict:
        if self.errors:
            raise FormValidationError([e.to_dict() for e in self.errors])
        return self.values

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "values": self.values,
            "errors": [e.to_dict() for e in self.errors],
        }


class _Invalid(Exception):
    def __init__(self, code: str, message: str) -> None:
        self.code = code
        super().__init__(message)


def _field_attr(f, attr: str, key: str | None = None, default=None):
    """Read a definition attribute from a model instance or an API-shaped dict."""
    if isinstance(f, dict):
        return f.get(key or attr, default)
    return getattr(f, attr, default)


# ═════════════════════════════════════════════════════════════════════════════
# Field rules
# ═════════════════════════════════════════════════════════════════════════════

_RULES: dict[FieldType, type["FieldRule"]] = {}


def register_rule(*kinds: FieldType):
    """Class decorator binding a FieldRule subclass to one or more kinds."""

    def decorator(cls):
        for kind in kinds:
            _RULES[kind] = cls
        return cls

    return decorator


class FieldRule:
    """Validation behaviour for one field definition."""

    empty_default: Any = ""

    def __init__(self, definition) -> None:
        self.name: str = _field_attr(definition, "name")
        self.label: str = _field_attr(definition, "label") or self.name
        self.kind = FieldType.parse(_field_attr(definition, "field_type", "type"))
        self.required = bool(_field_attr(definition, "is_required", default=False))
        self.rules: dict = dict(_field_attr(definition, "validation_rules") or {})
        self.options: list = list(_field_attr(definition, "options") or [])
        self.configured_default = _field_attr(definition, "default_value")

    # ── hooks ────────────────────────────────────────────────────────────
    def coerce(self, raw):
        raise NotImplementedError

    def is_empty(self, value) -> bool:
        return value is None

    def check(self, value) -> None:
        """Apply configured rules to a non-empty coerced value."""

    # ── shared behaviour ─────────────────────────────────────────────────
    def default_value(self):
        """The value used when nothing was submitted for this field."""
        if self.configured_default is None:
            return self.empty_default
        try:
            value = self.coerce(self.configured_default)
        except _Invalid:
            logger.warning("Ignoring unusable default for field=%s", self.name)
            return self.empty_default
        return self.empty_default if value is None else value

    def validate(self, raw):
        value = self.coerce(raw)
        if self.is_empty(value):
            if self.required:
                raise _Invalid("required", f"{self.label} is required")
            return value
        self.check(value)
        return value

    @property
    def option_values(self) -> list[str]:
        values = []
        for opt in self.options:
            values.append(str(opt.get("value")) if isinstance(opt, dict) else str(opt))
        return values


@register_rule(FieldType.TEXT_INPUT, FieldType.TEXT_AREA)
class TextRule(FieldRule):
    def coerce(self, raw):
        if raw is None:
            return None
        if isinstance(raw, bool):
            raise _Invalid("type", f"{self.label} must be text")
        if isinstance(raw, (int, float)):
            return str(raw)
        if not isinstance(raw, str):
            raise _Invalid("type", f"{self.label} must be text")
        return raw

    def is_empty(self, value) -> bool:
        return value is None or value == ""

    def check(self, value) -> None:
        rules = self.rules
        if rules.get("email"):
            try:
                validate_email(value, check_deliverability=False)
            except EmailNotValidError:
                raise _Invalid("email", f"{self.label} must be a valid email address") from None
        if rules.get("url"):
            parsed = urlparse(value)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise _Invalid("url", f"{self.label} must be a valid URL")
        if rules.get("phoneNumber") and not _PHONE_RE.match(value.strip()):
            raise _Invalid("phoneNumber", f"{self.label} must be a valid phone number")
        min_length = rules.get("minLength")
        if min_length is not None and len(value) < int(min_length):
            raise _Invalid("minLength", f"{self.label} must be at least {min_length} characters")
        max_length = rules.get("maxLength")
        if max_length is not None and len(value) > int(max_length):
            raise _Invalid("maxLength", f"{self.label} must be at most {max_length} characters")
        pattern = rules.get("regex")
        if pattern:
            try:
                matched = re.fullmatch(pattern, value)
            except re.error:
                logger.warning("Invalid regex on field=%s: %r", self.name, pattern)
                matched = True
            if not matched:
                raise _Invalid("regex", f"{self.label} has an invalid format")


@register_rule(FieldType.DROPDOWN_LIST, FieldType.RADIO_BUTTON_GROUP)
class SingleChoiceRule(TextRule):
    def check(self, value) -> None:
        super().check(value)
        if self.options and value not in self.option_values:
            raise _Invalid("choice", f"{self.label} must be one of the listed options")


@register_rule(FieldType.NUMBER)
class NumberRule(FieldRule):
    empty_default = None

    def coerce(self, raw):
        if raw is None:
            return None
        if isinstance(raw, bool):
            raise _Invalid("type", f"{self.label} must be a number")
        if isinstance(raw, (int, float)):
            return raw
        if isinstance(raw, str):
            text = raw.strip()
            if text == "":
                return None
            try:
                return int(text)
            except ValueError:
                pass
            try:
                number = float(text)
            except ValueError:
                raise _Invalid("type", f"{self.label} must be a number") from None
            if number != number or number in (float("inf"), float("-inf")):
                raise _Invalid("type", f"{self.label} must be a number")
            return number
        raise _Invalid("type", f"{self.label} must be a number")

    def check(self, value) -> None:
        minimum = self.rules.get("min")
        if minimum is not None and value < float(minimum):
            raise _Invalid("min", f"{self.label} must be at least {minimum}")
        maximum = self.rules.get("max")
        if maximum is not None and value > float(maximum):
            raise _Invalid("max", f"{self.label} must be at most {maximum}")


@register_rule(FieldType.DATE, FieldType.TIME, FieldType.DATETIME)
class TemporalRule(FieldRule):
    """Date/time values stay caller-formatted strings."""

    def coerce(self, raw):
        if raw is None:
            return None
        if isinstance(raw, (date, datetime, time)):
            return raw.isoformat()
        if not isinstance(raw, str):
            raise _Invalid("type", f"{self.label} must be a date/time string")
        return raw

    def is_empty(self, value) -> bool:
        return value is None or value == ""


@register_rule(FieldType.CHECKBOX_GROUP)
class CheckboxGroupRule(FieldRule):
    empty_default: Any = ()

    def default_value(self):
        return list(super().default_value())

    def coerce(self, raw):
        if raw is None:
            return []
        if isinstance(raw, str):
            raw = [raw] if raw else []
        if not isinstance(raw, (list, tuple)):
            raise _Invalid("type", f"{self.label} must be a list of options")
        values = []
        for item in raw:
            if isinstance(item, bool) or not isinstance(item, (str, int, float)):
                raise _Invalid("type", f"{self.label} must be a list of options")
            values.append(str(item))
        return values

    def is_empty(self, value) -> bool:
        return not value

    def check(self, value) -> None:
        if self.options:
            allowed = set(self.option_values)
            unknown = [v for v in value if v not in allowed]
            if unknown:
                raise _Invalid("choice", f"{self.label} has unknown options: {', '.join(unknown)}")


@register_rule(FieldType.BOOLEAN_TOGGLE)
class BooleanRule(FieldRule):
    """Always has a value; the required flag has no effect."""

    empty_default = False

    def coerce(self, raw):
        if raw is None:
            return False
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, (int, float)) and raw in (0, 1):
            return bool(raw)
        if isinstance(raw, str):
            text = raw.strip().lower()
            if text in _TRUE_STRINGS:
                return True
            if text in _FALSE_STRINGS:
                return False
        raise _Invalid("type", f"{self.label} must be true or false")

    def is_empty(self, value) -> bool:
        return False


@register_rule(FieldType.DOCUMENT_UPLOAD)
class DocumentRule(FieldRule):
    """Accepts a pending FilePayload, an existing storage path, or nothing."""

    empty_default = None

    def default_value(self):
        return None

    def coerce(self, raw):
        if raw is None or isinstance(raw, (FilePayload, str)):
            return raw
        raise _Invalid("type", f"{self.label} must be a file")

    def is_empty(self, value) -> bool:
        return value is None or value == ""


# ═════════════════════════════════════════════════════════════════════════════
# Validator
# ═════════════════════════════════════════════════════════════════════════════

class FormValidator:
    """Ordered set of field rules built from one schema."""

    def __init__(self, rules: list[FieldRule]) -> None:
        self.rules = rules

    def defaults(self) -> dict:
        """Initial values for an empty form."""
        return {r.name: r.default_value() for r in self.rules}

    def validate(self, values: dict | None, existing: dict | None = None) -> ValidationResult:
        """Validate and coerce ``values``.

        A field missing from ``values`` takes its stored value from
        ``existing`` when present, otherwise its default. Missing document
        fields are left out so the codec preserves the stored path. Keys
        that are not schema fields are dropped.
        """
        values = values or {}
        existing = existing or {}
        result = ValidationResult()

        for rule in self.rules:
            name = rule.name
            if name in values:
                raw = values[name]
            elif rule.kind is FieldType.DOCUMENT_UPLOAD:
                if rule.required and not existing.get(name):
                    result.errors.append(FieldError(name, "required", f"{rule.label} is required"))
                continue
            elif name in existing:
                raw = existing[name]
            else:
                raw = rule.default_value()

            try:
                result.values[name] = rule.validate(raw)
            except _Invalid as exc:
                result.errors.append(FieldError(name, exc.code, str(exc)))

        if result.errors:
            logger.debug("Form validation failed fields=%s", [e.field for e in result.errors])
        return result


def build_validator(fields) -> FormValidator:
    """Build a validator from an ordered list of field definitions.

    ``fields`` may hold DynamicField instances or their ``to_dict()`` form.

    Raises:
        ValidationError: A definition has an unknown field type.
    """
    rules = []
    for definition in fields:
        raw_type = _field_attr(definition, "field_type", "type")
        try:
            kind = FieldType.parse(raw_type)
        except ValueError:
            raise ValidationError(
                f"Unknown field type {raw_type!r}",
                details={"field": _field_attr(definition, "name")},
            ) from None
        rules.append(_RULES[kind](definition))
    return FormValidator(rules)


def resolve_defaults(fields) -> dict:
    """Default value map for an empty form over ``fields``."""
    return build_validator(fields).defaults()
