"""
Dynamic Field service layer.

Owns every query and mutation on DynamicField. Fields are archived,
never deleted: archiving hides a field from the "available for new
table" listing but leaves every table's field_ids and every stored
entry untouched.
"""

import logging
import re

from flowform.core.exceptions import ConflictError, NotFoundError, ValidationError
from flowform.forms.field_types import CHOICE_TYPES, VALIDATION_RULE_KEYS, FieldType
from flowform.forms.validation import build_validator
from flowform.models import db
from flowform.models.dynamic import DynamicField
from flowform.utils.helpers import clean_text, optional_text

logger = logging.getLogger(__name__)

NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")

_UPDATABLE = ("name", "label", "type", "category", "is_required", "default_value",
              "options", "validation_rules")


# ──────────────────────────────────────────────────────────────────────────────
# Definition checks
# ──────────────────────────────────────────────────────────────────────────────

def _clean_options(options) -> list[dict]:
    if options is None:
        return []
    if not isinstance(options, list):
        raise ValidationError("options must be a list", details={"options": "invalid"})
    cleaned = []
    for idx, opt in enumerate(options):
        if isinstance(opt, str):
            opt = {"value": opt, "label": opt}
        if not isinstance(opt, dict):
            raise ValidationError("Each option needs a value and a label",
                                  details={f"options[{idx}]": "invalid"})
        value = str(opt.get("value") or "").strip()
        label = str(opt.get("label") or "").strip()
        if not value or not label:
            raise ValidationError("Each option needs a value and a label",
                                  details={f"options[{idx}]": "required"})
        cleaned.append({"value": value, "label": label})
    return cleaned


def _clean_rules(rules) -> dict:
    if not rules:
        return {}
    if not isinstance(rules, dict):
        raise ValidationError("validation_rules must be an object",
                              details={"validation_rules": "invalid"})
    cleaned = {k: v for k, v in rules.items() if k in VALIDATION_RULE_KEYS and v not in (None, "")}
    for key in ("minLength", "maxLength", "min", "max"):
        if key in cleaned:
            try:
                cleaned[key] = float(cleaned[key]) if key in ("min", "max") else int(cleaned[key])
            except (TypeError, ValueError):
                raise ValidationError(f"{key} must be a number",
                                      details={f"validation_rules.{key}": "invalid"}) from None
    if "regex" in cleaned:
        try:
            re.compile(cleaned["regex"])
        except re.error:
            raise ValidationError("regex is not a valid pattern",
                                  details={"validation_rules.regex": "invalid"}) from None
    return cleaned


def _normalise_definition(data: dict) -> dict:
    """Validate a full field definition and return column values.

    Raises:
        ValidationError: Bad name, missing label, unknown type, or a
            choice type without options.
    """
    name = clean_text(data, "name")
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    if not NAME_RE.match(name):
        raise ValidationError(
            "name can only contain letters, numbers, and underscores",
            details={"name": "invalid"},
        )
    label = clean_text(data, "label")
    if not label:
        raise ValidationError("label is required", details={"label": "required"})
    try:
        kind = FieldType.parse(data.get("type") or FieldType.TEXT_INPUT.value)
    except ValueError:
        raise ValidationError(f"Unknown field type {data.get('type')!r}",
                              details={"type": "invalid"}) from None

    options = _clean_options(data.get("options"))
    if kind in CHOICE_TYPES and not options:
        raise ValidationError("At least one option is required for this field type",
                              details={"options": "required"})
    if kind not in CHOICE_TYPES:
        options = []

    values = {
        "name": name,
        "label": label,
        "field_type": kind.value,
        "category": optional_text(data, "category"),
        "is_required": bool(data.get("is_required", False)),
        "default_value": data.get("default_value"),
        "options": options,
        "validation_rules": _clean_rules(data.get("validation_rules")),
    }
    if values["default_value"] == "":
        values["default_value"] = None
    if kind is FieldType.DOCUMENT_UPLOAD:
        values["default_value"] = None
    elif values["default_value"] is not None:
        probe = build_validator([{**values, "type": kind.value, "is_required": False}])
        result = probe.validate({name: values["default_value"]})
        if not result.ok:
            raise ValidationError("default_value does not fit the field type",
                                  details={"default_value": result.errors[0].message})
        values["default_value"] = result.values[name]
    return values


def _ensure_unique_name(name: str, exclude_id: str | None = None) -> None:
    q = DynamicField.query.filter(DynamicField.name == name)
    if exclude_id:
        q = q.filter(DynamicField.id != exclude_id)
    if q.first():
        raise ConflictError("DynamicField", "name", name)


# ──────────────────────────────────────────────────────────────────────────────
# Queries
# ──────────────────────────────────────────────────────────────────────────────

def list_fields(include_archived: bool = True, archived_only: bool = False,
                category: str | None = None) -> list[dict]:
    """Fields ordered by label."""
    if archived_only:
        q = DynamicField.query_archived()
    elif include_archived:
        q = DynamicField.query
    else:
        q = DynamicField.query_active()
    if category:
        q = q.filter(DynamicField.category == category)
    return [f.to_dict() for f in q.order_by(DynamicField.label.asc()).all()]


def list_available_fields() -> list[dict]:
    """Active fields offered when composing a new table."""
    return list_fields(include_archived=False)


def get_field_model(field_id: str) -> DynamicField:
    field = db.session.get(DynamicField, field_id)
    if not field:
        raise NotFoundError("DynamicField", field_id)
    return field


def get_field(field_id: str) -> dict:
    return get_field_model(field_id).to_dict()


def get_fields_by_ids(field_ids: list[str], include_archived: bool = True) -> list[DynamicField]:
    """Fields for ``field_ids`` in that order; unknown ids are skipped."""
    if not field_ids:
        return []
    q = DynamicField.query.filter(DynamicField.id.in_(list(field_ids)))
    by_id = {f.id: f for f in q.all()}
    ordered = [by_id[fid] for fid in field_ids if fid in by_id]
    if not include_archived:
        ordered = [f for f in ordered if not f.is_archived]
    return ordered


# ──────────────────────────────────────────────────────────────────────────────
# Mutations
# ──────────────────────────────────────────────────────────────────────────────

def create_field(data: dict) -> dict:
    """Create a field definition.

    Raises:
        ValidationError: The definition is malformed.
        ConflictError: Another field already uses the name.
    """
    values = _normalise_definition(data)
    _ensure_unique_name(values["name"])
    field = DynamicField(**values)
    db.session.add(field)
    db.session.commit()
    logger.info("DynamicField created id=%s name=%s type=%s", field.id, field.name, field.field_type)
    return field.to_dict()


def update_field(field_id: str, data: dict) -> dict:
    """Partial update; the merged definition is re-validated as a whole."""
    field = get_field_model(field_id)
    merged = field.to_dict()
    merged.update({k: v for k, v in data.items() if k in _UPDATABLE})
    values = _normalise_definition(merged)
    _ensure_unique_name(values["name"], exclude_id=field.id)
    for key, value in values.items():
        setattr(field, key, value)
    db.session.commit()
    logger.info("DynamicField updated id=%s", field.id)
    return field.to_dict()


def set_field_archived(field_id: str, archived: bool) -> dict:
    """Flip the archive flag; tables and entries are not touched."""
    field = get_field_model(field_id)
    field.set_archived(archived)
    db.session.commit()
    logger.info("DynamicField %s id=%s", "archived" if archived else "unarchived", field.id)
    return field.to_dict()
