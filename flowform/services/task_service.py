"""
Task service layer — data capture and completion.

Lifecycle:
    Pending ──first data save──▶ In Progress ──complete──▶ Completed
    Pending ─────────────────────complete──────────────────▶ Completed

Completed is terminal. Overdue is never stored; it is derived when a
task is read (see ``Task.effective_status``).

Completing the last open task of an Active instance completes the
instance in the same commit.
"""

import logging
from datetime import datetime, timezone

from flowform.core.exceptions import NotFoundError, ValidationError
from flowform.forms.codec import reconcile_file_fields, task_path_prefix
from flowform.forms.validation import build_validator
from flowform.models import db
from flowform.models.dynamic import DynamicTable
from flowform.models.workflow import (
    TASK_COMPLETED,
    TASK_IN_PROGRESS,
    TASK_STATUSES,
    Task,
    WorkflowInstance,
    validate_task_transition,
)
from flowform.services.dynamic_field_service import get_fields_by_ids
from flowform.services.workflow_instance_service import complete_if_all_tasks_done
from flowform.storage import get_blob_store

logger = logging.getLogger(__name__)


def list_tasks(assigned_to_user_id: str | None = None, workflow_instance_id: str | None = None,
               status: str | None = None, include_archived: bool = False) -> list[dict]:
    """Tasks in creation order.

    ``status`` matches the effective status, so ``"Overdue"`` is a valid
    filter. Tasks of archived instances are left out unless
    ``include_archived`` is set.
    """
    if status and status not in TASK_STATUSES:
        raise ValidationError(
            f"status must be one of {', '.join(sorted(TASK_STATUSES))}",
            details={"status": "invalid"},
        )
    q = Task.query.join(WorkflowInstance, Task.workflow_instance_id == WorkflowInstance.id)
    if not include_archived:
        q = q.filter(WorkflowInstance.is_archived.is_(False))
    if assigned_to_user_id:
        q = q.filter(Task.assigned_to_user_id == assigned_to_user_id)
    if workflow_instance_id:
        q = q.filter(Task.workflow_instance_id == workflow_instance_id)

    now = datetime.now(timezone.utc)
    tasks = q.order_by(Task.created_at.asc()).all()
    if status:
        tasks = [t for t in tasks if t.effective_status(now) == status]
    return [t.to_dict() for t in tasks]


def get_task_model(task_id: str) -> Task:
    task = db.session.get(Task, task_id)
    if not task:
        raise NotFoundError("Task", task_id)
    return task


def _form_fields(task: Task) -> list:
    """Active fields of the task's table, in table order; none when the table is archived or gone."""
    if not task.dynamic_table_id:
        return []
    table = db.session.get(DynamicTable, task.dynamic_table_id)
    if table is None or table.is_archived:
        return []
    return get_fields_by_ids(table.field_ids or [], include_archived=False)


def get_task(task_id: str, include_form: bool = False) -> dict:
    """Task dict; ``include_form`` adds its template and data-entry fields."""
    task = get_task_model(task_id)
    d = task.to_dict()
    if include_form:
        d["task_template"] = task.task_template.to_dict() if task.task_template else None
        d["fields"] = [f.to_dict() for f in _form_fields(task)]
    return d


def save_task_data(task_id: str, values: dict, store=None) -> dict:
    """Validate and store the task's form data.

    Files are written under ``taskAttachments/{instance_id}/{task_id}/``.
    The first save of a Pending task moves it to In Progress.

    Raises:
        NotFoundError: Unknown task.
        ValidationError: The task is Completed or has no data table.
        FormValidationError: Values fail the table's schema.
        StorageError: A file upload failed; nothing is saved.
    """
    task = get_task_model(task_id)
    if not validate_task_transition(task.status, TASK_IN_PROGRESS):
        raise ValidationError(
            f"Cannot save data on a {task.status} task", details={"status": task.status},
        )
    fields = _form_fields(task)
    if not fields:
        raise ValidationError("Task has no data table", details={"dynamic_table_id": "missing"})

    current = dict(task.dynamic_table_data or {})
    coerced = build_validator(fields).validate(values, existing=current).raise_for_errors()
    data, operations = reconcile_file_fields(
        coerced, current, fields, store or get_blob_store(),
        task_path_prefix(task.workflow_instance_id, task.id),
    )
    task.dynamic_table_data = {**current, **data}

    old_status = task.status
    task.status = TASK_IN_PROGRESS
    if task.start_datetime is None:
        task.start_datetime = datetime.now(timezone.utc)
    db.session.commit()
    logger.info("Task data saved id=%s %s -> %s files=%d",
                task.id, old_status, task.status, len(operations))
    return task.to_dict()


def complete_task(task_id: str, notes: str | None = None) -> dict:
    """Mark a task Completed and complete its instance when it was the last one.

    Raises:
        NotFoundError: Unknown task.
        ValidationError: The task is already Completed, or notes is not text.
    """
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("notes must be a string", details={"notes": "type"})
    task = get_task_model(task_id)
    if not validate_task_transition(task.status, TASK_COMPLETED):
        raise ValidationError(
            f"Cannot complete a {task.status} task", details={"status": task.status},
        )
    now = datetime.now(timezone.utc)
    task.status = TASK_COMPLETED
    task.finish_datetime = now
    if task.start_datetime is None:
        task.start_datetime = now
    if notes is not None:
        task.notes = notes.strip() or None

    db.session.flush()
    instance_completed = complete_if_all_tasks_done(task.workflow_instance, now)
    db.session.commit()
    logger.info("Task completed id=%s instance=%s instance_completed=%s",
                task.id, task.workflow_instance_id, instance_completed)
    return task.to_dict()
