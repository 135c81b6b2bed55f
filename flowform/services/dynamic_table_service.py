"""
Dynamic Table service layer — table definitions and their entries.

Table definitions are an ordered list of field ids; entries store a
``field name -> value`` map validated against the table's fields.
Document-upload values are uploaded through the blob store before the
entry row is written, under
``dynamicTableEntries/{table_id}/{entry_id}/{field_name}/{filename}``.

Every committed change to a table definition is pushed to the
subscribers registered with ``subscribe_to_dynamic_tables``.
"""

import logging
import re

from flowform.core.exceptions import ConflictError, NotFoundError, ValidationError
from flowform.forms.codec import entry_path_prefix, reconcile_file_fields
from flowform.forms.display import display_value_for_row
from flowform.forms.validation import build_validator
from flowform.models import _uuid, db
from flowform.models.dynamic import DynamicField, DynamicTable, DynamicTableEntry
from flowform.services.dynamic_field_service import get_fields_by_ids
from flowform.services.subscriptions import SubscriptionRegistry
from flowform.storage import get_blob_store
from flowform.utils.helpers import clean_text, optional_text

logger = logging.getLogger(__name__)

NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")

table_subscriptions = SubscriptionRegistry("dynamic_tables")


# ──────────────────────────────────────────────────────────────────────────────
# Table definitions
# ──────────────────────────────────────────────────────────────────────────────

def _normalise_table(data: dict) -> dict:
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

    field_ids = data.get("field_ids") or []
    if not isinstance(field_ids, list) or not field_ids:
        raise ValidationError("At least one field is required", details={"field_ids": "required"})
    field_ids = list(dict.fromkeys(str(fid) for fid in field_ids))
    known = {f.id for f in DynamicField.query.filter(DynamicField.id.in_(field_ids)).all()}
    missing = [fid for fid in field_ids if fid not in known]
    if missing:
        raise ValidationError("Unknown field ids", details={"field_ids": missing})

    return {
        "name": name,
        "label": label,
        "description": optional_text(data, "description"),
        "field_ids": field_ids,
    }


def _ensure_unique_name(name: str, exclude_id: str | None = None) -> None:
    q = DynamicTable.query.filter(DynamicTable.name == name)
    if exclude_id:
        q = q.filter(DynamicTable.id != exclude_id)
    if q.first():
        raise ConflictError("DynamicTable", "name", name)


def list_tables(include_archived: bool = True, archived_only: bool = False) -> list[dict]:
    """Table definitions ordered by label."""
    if archived_only:
        q = DynamicTable.query_archived()
    elif include_archived:
        q = DynamicTable.query
    else:
        q = DynamicTable.query_active()
    return [t.to_dict() for t in q.order_by(DynamicTable.label.asc()).all()]


def get_table_model(table_id: str) -> DynamicTable:
    table = db.session.get(DynamicTable, table_id)
    if not table:
        raise NotFoundError("DynamicTable", table_id)
    return table


def get_table(table_id: str, include_fields: bool = False) -> dict:
    table = get_table_model(table_id)
    d = table.to_dict()
    if include_fields:
        d["fields"] = [f.to_dict() for f in get_table_fields(table)]
    return d


def get_table_fields(table: DynamicTable, include_archived: bool = True) -> list[DynamicField]:
    """The table's fields in display order."""
    return get_fields_by_ids(table.field_ids or [], include_archived=include_archived)


def _publish_tables() -> None:
    if len(table_subscriptions):
        table_subscriptions.publish(list_tables())


def create_table(data: dict) -> dict:
    """Create a table definition.

    Raises:
        ValidationError: Bad name/label, no fields, or unknown field ids.
        ConflictError: Another table already uses the name.
    """
    values = _normalise_table(data)
    _ensure_unique_name(values["name"])
    table = DynamicTable(**values)
    db.session.add(table)
    db.session.commit()
    logger.info("DynamicTable created id=%s name=%s fields=%d", table.id, table.name, len(table.field_ids))
    _publish_tables()
    return table.to_dict()


def update_table(table_id: str, data: dict) -> dict:
    table = get_table_model(table_id)
    merged = table.to_dict()
    merged.update({k: v for k, v in data.items() if k in ("name", "label", "description", "field_ids")})
    values = _normalise_table(merged)
    _ensure_unique_name(values["name"], exclude_id=table.id)
    for key, value in values.items():
        setattr(table, key, value)
    db.session.commit()
    logger.info("DynamicTable updated id=%s", table.id)
    _publish_tables()
    return table.to_dict()


def set_table_archived(table_id: str, archived: bool) -> dict:
    """Flip the archive flag on the definition only; entries are untouched."""
    table = get_table_model(table_id)
    table.set_archived(archived)
    db.session.commit()
    logger.info("DynamicTable %s id=%s", "archived" if archived else "unarchived", table.id)
    _publish_tables()
    return table.to_dict()


def subscribe_to_dynamic_tables(on_update, on_error=None):
    """Receive the label-ordered table list now and after every change.

    Returns:
        A zero-argument function that cancels the subscription.
    """
    unsubscribe = table_subscriptions.subscribe(on_update, on_error)
    table_subscriptions.deliver(on_update, on_error, list_tables())
    return unsubscribe


# ──────────────────────────────────────────────────────────────────────────────
# Entries
# ──────────────────────────────────────────────────────────────────────────────

def list_entries(table_id: str, include_archived: bool = True,
                 archived_only: bool = False) -> list[dict]:
    """Entries of a table, newest first."""
    get_table_model(table_id)
    q = DynamicTableEntry.query.filter_by(table_id=table_id)
    if archived_only:
        q = q.filter(DynamicTableEntry.is_archived.is_(True))
    elif not include_archived:
        q = q.filter(DynamicTableEntry.is_archived.is_(False))
    return [e.to_dict() for e in q.order_by(DynamicTableEntry.created_at.desc()).all()]


def list_entry_choices(table_id: str) -> list[dict]:
    """Active entries with a short label, for association pickers."""
    table = get_table_model(table_id)
    fields = get_table_fields(table)
    entries = (
        DynamicTableEntry.query
        .filter_by(table_id=table_id, is_archived=False)
        .order_by(DynamicTableEntry.created_at.desc())
        .all()
    )
    return [
        {"id": e.id, "label": display_value_for_row(e.data or {}, fields, e.id)}
        for e in entries
    ]


def get_entry_model(table_id: str, entry_id: str) -> DynamicTableEntry:
    entry = db.session.get(DynamicTableEntry, entry_id)
    if not entry or entry.table_id != table_id:
        raise NotFoundError("DynamicTableEntry", entry_id)
    return entry


def get_entry(table_id: str, entry_id: str) -> dict:
    return get_entry_model(table_id, entry_id).to_dict()


def new_entry_defaults(table_id: str) -> dict:
    """Initial form values for a new entry of the table."""
    table = get_table_model(table_id)
    return build_validator(get_table_fields(table)).defaults()


def add_entry(table_id: str, values: dict, store=None) -> dict:
    """Validate ``values``, upload any files, then write the entry.

    Raises:
        NotFoundError: Unknown table.
        FormValidationError: Values fail the table's schema.
        StorageError: A file upload failed; no entry is written.
    """
    table = get_table_model(table_id)
    fields = get_table_fields(table)
    coerced = build_validator(fields).validate(values).raise_for_errors()

    entry_id = _uuid()
    data, operations = reconcile_file_fields(
        coerced, None, fields, store or get_blob_store(), entry_path_prefix(table.id, entry_id),
    )
    entry = DynamicTableEntry(id=entry_id, table_id=table.id, data=data)
    db.session.add(entry)
    db.session.commit()
    logger.info("DynamicTableEntry created id=%s table=%s files=%d", entry.id, table.id, len(operations))
    return entry.to_dict()


def update_entry(table_id: str, entry_id: str, values: dict, store=None) -> dict:
    """Merge ``values`` into the stored entry, replacing or removing files as needed.

    Values missing from ``values`` keep their stored value.
    """
    table = get_table_model(table_id)
    entry = get_entry_model(table_id, entry_id)
    fields = get_table_fields(table)
    current = dict(entry.data or {})

    coerced = build_validator(fields).validate(values, existing=current).raise_for_errors()
    data, operations = reconcile_file_fields(
        coerced, current, fields, store or get_blob_store(), entry_path_prefix(table.id, entry.id),
    )
    entry.data = {**current, **data}
    db.session.commit()
    logger.info("DynamicTableEntry updated id=%s files=%d", entry.id, len(operations))
    return entry.to_dict()


def set_entry_archived(table_id: str, entry_id: str, archived: bool) -> dict:
    """Flip the archive flag; stored files are kept."""
    entry = get_entry_model(table_id, entry_id)
    entry.set_archived(archived)
    db.session.commit()
    logger.info("DynamicTableEntry %s id=%s", "archived" if archived else "unarchived", entry.id)
    return entry.to_dict()
