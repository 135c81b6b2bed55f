"""
FlowForm — SQLAlchemy models.

The shared ``db`` handle plus the small helpers every model module uses
for ids and timestamps. Model modules import ``db`` from here:

    from flowform.models import db
"""

import uuid
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """Return ``value`` as an aware UTC datetime (SQLite hands back naive ones)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value):
    """Serialize a datetime column for API responses."""
    value = as_utc(value)
    return value.isoformat() if value else None
