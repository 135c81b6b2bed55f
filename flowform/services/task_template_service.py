"""
Task Template service layer.

A task template may point at a dynamic table; tasks materialized from it
collect their data through that table's fields.
"""

import logging

from flowform.core.exceptions import NotFoundError, ValidationError
from flowform.models import db
from flowform.models.auth import ROLES
from flowform.models.dynamic import DynamicTable
from flowform.models.workflow import TaskTemplate
from flowform.utils.helpers import clean_text, optional_text

logger = logging.getLogger(__name__)

_UPDATABLE = ("name", "description", "category", "assigned_role_type",
              "due_date_offset_days", "dynamic_table_id")


def _normalise(data: dict) -> dict:
    name = clean_text(data, "name")
    if not name:
        raise ValidationError("name is required", details={"name": "required"})

    role = optional_text(data, "assigned_role_type")
    if role is not None and role not in ROLES:
        raise ValidationError(
            f"assigned_role_type must be one of {', '.join(sorted(ROLES))}",
            details={"assigned_role_type": "invalid"},
        )

    offset = data.get("due_date_offset_days")
    if offset in ("", None):
        offset = None
    else:
        try:
            offset = int(offset)
        except (TypeError, ValueError):
            raise ValidationError("due_date_offset_days must be a whole number",
                                  details={"due_date_offset_days": "invalid"}) from None
        if offset < 0:
            raise ValidationError("due_date_offset_days cannot be negative",
                                  details={"due_date_offset_days": "invalid"})

    table_id = optional_text(data, "dynamic_table_id")
    if table_id and not db.session.get(DynamicTable, table_id):
        raise ValidationError("Unknown dynamic table", details={"dynamic_table_id": table_id})

    return {
        "name": name,
        "description": optional_text(data, "description"),
        "category": optional_text(data, "category"),
        "assigned_role_type": role,
        "due_date_offset_days": offset,
        "dynamic_table_id": table_id,
    }


def list_task_templates(include_archived: bool = True, archived_only: bool = False) -> list[dict]:
    """Task templates ordered by name."""
    if archived_only:
        q = TaskTemplate.query_archived()
    elif include_archived:
        q = TaskTemplate.query
    else:
        q = TaskTemplate.query_active()
    return [t.to_dict() for t in q.order_by(TaskTemplate.name.asc()).all()]


def get_task_template_model(template_id: str) -> TaskTemplate:
    template = db.session.get(TaskTemplate, template_id)
    if not template:
        raise NotFoundError("TaskTemplate", template_id)
    return template


def get_task_template(template_id: str) -> dict:
    return get_task_template_model(template_id).to_dict()


def create_task_template(data: dict) -> dict:
    """Create a task template.

    Raises:
        ValidationError: Missing name, bad role, bad offset or unknown table.
    """
    template = TaskTemplate(**_normalise(data))
    db.session.add(template)
    db.session.commit()
    logger.info("TaskTemplate created id=%s name=%s", template.id, template.name)
    return template.to_dict()


def update_task_template(template_id: str, data: dict) -> dict:
    template = get_task_template_model(template_id)
    merged = template.to_dict()
    merged.update({k: v for k, v in data.items() if k in _UPDATABLE})
    for key, value in _normalise(merged).items():
        setattr(template, key, value)
    db.session.commit()
    logger.info("TaskTemplate updated id=%s", template.id)
    return template.to_dict()


def set_task_template_archived(template_id: str, archived: bool) -> dict:
    template = get_task_template_model(template_id)
    template.set_archived(archived)
    db.session.commit()
    logger.info("TaskTemplate %s id=%s", "archived" if archived else "unarchived", template.id)
    return template.to_dict()
