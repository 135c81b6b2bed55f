"""Dynamic schema models — fields, tables and table entries."""

from flowform.forms.field_types import FieldType
from flowform.models import _utcnow, _uuid, db, isoformat
from flowform.models.archive import ArchivableMixin


# ── Dynamic Field ────────────────────────────────────────────────

class DynamicField(ArchivableMixin, db.Model):
    """Reusable typed form-field definition."""

    __tablename__ = "dynamic_fields"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(100), nullable=False, unique=True)
    label = db.Column(db.String(200), nullable=False)
    field_type = db.Column(db.String(30), nullable=False, default=FieldType.TEXT_INPUT.value)
    category = db.Column(db.String(100))
    validation_rules = db.Column(db.JSON, default=dict)
    is_required = db.Column(db.Boolean, nullable=False, default=False)
    default_value = db.Column(db.JSON)  # str | number | bool | list[str]
    options = db.Column(db.JSON, default=list)  # [{"value": "v", "label": "l"}, ...]
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    @property
    def kind(self) -> FieldType:
        return FieldType.parse(self.field_type)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "label": self.label,
            "type": self.field_type,
            "category": self.category,
            "validation_rules": self.validation_rules or {},
            "is_required": bool(self.is_required),
            "default_value": self.default_value,
            "options": self.options or [],
            "is_archived": bool(self.is_archived),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<DynamicField {self.name} ({self.field_type})>"


# ── Dynamic Table ────────────────────────────────────────────────

class DynamicTable(ArchivableMixin, db.Model):
    """Named, ordered composition of dynamic fields."""

    __tablename__ = "dynamic_tables"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(100), nullable=False, unique=True)
    label = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    field_ids = db.Column(db.JSON, nullable=False, default=list)  # display/form order
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    entries = db.relationship(
        "DynamicTableEntry",
        backref="table",
        lazy="dynamic",
        order_by="DynamicTableEntry.created_at.desc()",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "label": self.label,
            "description": self.description,
            "field_ids": list(self.field_ids or []),
            "is_archived": bool(self.is_archived),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<DynamicTable {self.name}>"


# ── Dynamic Table Entry ──────────────────────────────────────────

class DynamicTableEntry(ArchivableMixin, db.Model):
    """One row of a dynamic table: ``data`` maps field name to value."""

    __tablename__ = "dynamic_table_entries"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    table_id = db.Column(
        db.String(36),
        db.ForeignKey("dynamic_tables.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    data = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "table_id": self.table_id,
            "data": dict(self.data or {}),
            "is_archived": bool(self.is_archived),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<DynamicTableEntry {self.id} of {self.table_id}>"
