"""
Archive Mixin — soft delete by flag.

Archivable entities are never physically removed. Archiving hides a row
from "available for new use" listings while keeping it resolvable by id,
so references held by other rows stay valid.

Usage:
    class MyModel(ArchivableMixin, db.Model):
        ...

    obj.archive()
    db.session.commit()

    MyModel.query_active().all()     # excludes archived
    MyModel.query_archived().all()   # archived only
    MyModel.query.all()              # everything
"""

from flowform.models import _utcnow, db


class ArchivableMixin:
    """Mixin that adds an ``is_archived`` flag to any SQLAlchemy model."""

    is_archived = db.Column(db.Boolean, nullable=False, default=False, index=True)

    def archive(self):
        """Mark this record as archived."""
        self.is_archived = True
        self.updated_at = _utcnow()

    def unarchive(self):
        """Return an archived record to active use."""
        self.is_archived = False
        self.updated_at = _utcnow()

    def set_archived(self, archived: bool):
        if archived:
            self.archive()
        else:
            self.unarchive()

    @classmethod
    def query_active(cls):
        """Return a query that excludes archived records."""
        return cls.query.filter(cls.is_archived.is_(False))

    @classmethod
    def query_archived(cls):
        """Return only archived records."""
        return cls.query.filter(cls.is_archived.is_(True))
