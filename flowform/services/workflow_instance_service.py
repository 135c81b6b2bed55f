"""
Workflow Instance service layer.

Starting an instance materializes one Task per active task template of
the workflow template, all inside a single transaction:

    instance = create_workflow_instance(
        template_id, "Onboard ACME",
        associated_data={table_id: entry_id},
        task_assignments={task_template_id: user_id},
        started_by_user_id=identity["id"],
    )

A task whose template is bound to a dynamic table starts with a copy of
the associated entry's data, provided that entry exists, belongs to the
table and is not archived. Anything else counts as "no association".
"""

import logging
from datetime import datetime, timedelta, timezone

from flowform.core.exceptions import FormValidationError, NotFoundError, ValidationError
from flowform.forms.validation import FieldError, ValidationResult
from flowform.models import db
from flowform.models.dynamic import DynamicTable, DynamicTableEntry
from flowform.models.workflow import (
    INSTANCE_ACTIVE,
    INSTANCE_COMPLETED,
    INSTANCE_STATUSES,
    TASK_COMPLETED,
    TASK_PENDING,
    Task,
    WorkflowInstance,
    validate_instance_transition,
)
from flowform.services.workflow_template_service import (
    get_task_templates_for,
    get_workflow_template_model,
)

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# Request validation
# ──────────────────────────────────────────────────────────────────────────────

def _text_value(payload: dict, key: str, errors: list) -> str | None:
    """Stripped string at ``key``; None (with a type error) when it is not text."""
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        errors.append(FieldError(key, "type", f"{key} must be a string"))
        return None
    return value.strip()


def _mapping_value(payload: dict, key: str, errors: list) -> dict:
    value = payload.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        errors.append(FieldError(key, "type", f"{key} must be an object"))
        return {}
    return value


def _selection_pairs(payload: dict, errors: list):
    """Yield (table_id, is_selected, entry_id) from either request shape."""
    for table_id, selection in _mapping_value(payload, "table_selections", errors).items():
        selection = selection or {}
        if not isinstance(selection, dict):
            errors.append(FieldError(
                f"table_selections.{table_id}", "type", "Table selection must be an object"))
            continue
        entry_id = selection.get("entry_id") or ""
        if not isinstance(entry_id, str):
            errors.append(FieldError(
                f"table_selections.{table_id}.entry_id", "type", "entry_id must be a string"))
            continue
        yield table_id, bool(selection.get("is_selected")), entry_id
    for table_id, entry_id in _mapping_value(payload, "associated_data", errors).items():
        entry_id = entry_id or ""
        if not isinstance(entry_id, str):
            errors.append(FieldError(
                f"associated_data.{table_id}", "type", "Entry id must be a string"))
            continue
        yield table_id, True, entry_id


def build_instance_request_validator(table_lookup):
    """Build the validator for a "start workflow" request.

    Args:
        table_lookup: ``table_id -> table dict or None``; used to label
            error messages and to drop associations with unknown tables.

    Returns:
        ``validate(payload) -> ValidationResult`` whose values are
        ``workflow_template_id``, ``name``, ``associated_data`` and
        ``task_assignments``.
    """

    def validate(payload: dict | None) -> ValidationResult:
        payload = payload or {}
        result = ValidationResult()
        if not isinstance(payload, dict):
            result.errors.append(FieldError("", "type", "Request body must be a JSON object"))
            return result

        template_id = _text_value(payload, "workflow_template_id", result.errors)
        if template_id == "":
            result.errors.append(FieldError(
                "workflow_template_id", "required", "Please select a workflow template"))
        name = _text_value(payload, "name", result.errors)
        if name == "":
            result.errors.append(FieldError("name", "required", "Instance name is required"))

        associated = {}
        for table_id, is_selected, entry_id in _selection_pairs(payload, result.errors):
            if not is_selected:
                continue
            table = table_lookup(table_id)
            if not entry_id:
                label = table["label"] if table else table_id
                result.errors.append(FieldError(
                    f"table_selections.{table_id}.entry_id", "required",
                    f"A row must be selected for table: {label}."))
                continue
            if table is None:
                logger.info("Ignoring association with unknown table id=%s", table_id)
                continue
            associated[table_id] = entry_id

        assignments = {}
        for task_template_id, user_id in _mapping_value(payload, "task_assignments", result.errors).items():
            if user_id and not isinstance(user_id, str):
                result.errors.append(FieldError(
                    f"task_assignments.{task_template_id}", "type", "User id must be a string"))
            elif user_id:
                assignments[str(task_template_id)] = user_id

        result.values = {
            "workflow_template_id": template_id or "",
            "name": name or "",
            "associated_data": associated,
            "task_assignments": assignments,
        }
        return result

    return validate


def _lookup_table(table_id: str):
    table = db.session.get(DynamicTable, table_id)
    return table.to_dict() if table else None


def start_workflow_instance(payload: dict, started_by_user_id: str | None = None) -> dict:
    """Validate a start request and create the instance.

    Every active task template of the chosen workflow template needs an
    assignee.

    Raises:
        FormValidationError: The request is incomplete.
        NotFoundError: Unknown workflow template.
    """
    values = build_instance_request_validator(_lookup_table)(payload).raise_for_errors()

    template = get_workflow_template_model(values["workflow_template_id"])
    missing = [
        FieldError(f"task_assignments.{tt.id}", "required", "User assignment is required.")
        for tt in get_task_templates_for(template, include_archived=False)
        if not values["task_assignments"].get(tt.id)
    ]
    if missing:
        raise FormValidationError([e.to_dict() for e in missing])

    return create_workflow_instance(
        template.id,
        values["name"],
        associated_data=values["associated_data"],
        task_assignments=values["task_assignments"],
        started_by_user_id=started_by_user_id,
    )


# ──────────────────────────────────────────────────────────────────────────────
# Creation
# ──────────────────────────────────────────────────────────────────────────────

def _seed_task_data(task_template, associated_data: dict) -> dict:
    table_id = task_template.dynamic_table_id
    if not table_id or not associated_data.get(table_id):
        return {}
    entry = db.session.get(DynamicTableEntry, associated_data[table_id])
    if entry is None or entry.table_id != table_id or entry.is_archived:
        return {}
    return dict(entry.data or {})


def _materialize_task(instance: WorkflowInstance, task_template, associated_data: dict,
                      task_assignments: dict, position: int = 0) -> Task:
    due_date = None
    if task_template.due_date_offset_days:
        due_date = instance.start_datetime + timedelta(days=task_template.due_date_offset_days)
    task = Task(
        task_template_id=task_template.id,
        workflow_instance_id=instance.id,
        assigned_to_user_id=task_assignments.get(task_template.id) or None,
        status=TASK_PENDING,
        due_date=due_date,
        dynamic_table_id=task_template.dynamic_table_id,
        dynamic_table_data=_seed_task_data(task_template, associated_data),
        # listings sort by created_at; keep template order within one instance
        created_at=instance.start_datetime + timedelta(microseconds=position),
    )
    db.session.add(task)
    return task


def create_workflow_instance(workflow_template_id: str, name: str,
                             associated_data: dict | None = None,
                             task_assignments: dict | None = None,
                             started_by_user_id: str | None = None) -> dict:
    """Create an Active instance and its Pending tasks in one transaction.

    Archived task templates are skipped. A failure at any step rolls back
    the instance together with every task created so far.

    Raises:
        NotFoundError: Unknown workflow template.
        ValidationError: Empty name.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    template = get_workflow_template_model(workflow_template_id)
    associated_data = dict(associated_data or {})
    task_assignments = dict(task_assignments or {})

    try:
        instance = WorkflowInstance(
            workflow_template_id=template.id,
            name=name,
            status=INSTANCE_ACTIVE,
            started_by_user_id=started_by_user_id,
            start_datetime=datetime.now(timezone.utc),
            associated_data=associated_data,
        )
        db.session.add(instance)
        db.session.flush()

        tasks = [
            _materialize_task(instance, tt, associated_data, task_assignments, position)
            for position, tt in enumerate(get_task_templates_for(template, include_archived=False))
        ]
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("WorkflowInstance creation rolled back template=%s", template.id)
        raise

    logger.info("WorkflowInstance created id=%s template=%s tasks=%d",
                instance.id, template.id, len(tasks))
    return instance.to_dict(include_tasks=True)


# ──────────────────────────────────────────────────────────────────────────────
# Queries
# ──────────────────────────────────────────────────────────────────────────────

def list_instances(include_archived: bool = True, archived_only: bool = False,
                   status: str | None = None, workflow_template_id: str | None = None) -> list[dict]:
    """Instances, most recently started first."""
    if archived_only:
        q = WorkflowInstance.query_archived()
    elif include_archived:
        q = WorkflowInstance.query
    else:
        q = WorkflowInstance.query_active()
    if status:
        q = q.filter(WorkflowInstance.status == status)
    if workflow_template_id:
        q = q.filter(WorkflowInstance.workflow_template_id == workflow_template_id)
    return [i.to_dict() for i in q.order_by(WorkflowInstance.start_datetime.desc()).all()]


def get_instance_model(instance_id: str) -> WorkflowInstance:
    instance = db.session.get(WorkflowInstance, instance_id)
    if not instance:
        raise NotFoundError("WorkflowInstance", instance_id)
    return instance


def get_instance(instance_id: str, include_tasks: bool = True) -> dict:
    return get_instance_model(instance_id).to_dict(include_tasks=include_tasks)


# ──────────────────────────────────────────────────────────────────────────────
# Status
# ──────────────────────────────────────────────────────────────────────────────

def update_instance_status(instance_id: str, status: str) -> dict:
    """Move the instance to ``status``; Completed stamps finish_datetime.

    Raises:
        ValidationError: Unknown status or a transition the lifecycle forbids.
    """
    if not isinstance(status, str) or status not in INSTANCE_STATUSES:
        raise ValidationError(
            f"status must be one of {', '.join(sorted(INSTANCE_STATUSES))}",
            details={"status": "invalid"},
        )
    instance = get_instance_model(instance_id)
    if instance.status == status:
        return instance.to_dict()
    if not validate_instance_transition(instance.status, status):
        raise ValidationError(
            f"Cannot move workflow from {instance.status} to {status}",
            details={"status": "invalid_transition"},
        )
    old_status = instance.status
    instance.status = status
    if status == INSTANCE_COMPLETED:
        instance.finish_datetime = datetime.now(timezone.utc)
    db.session.commit()
    logger.info("WorkflowInstance status id=%s %s -> %s", instance.id, old_status, status)
    return instance.to_dict()


def complete_if_all_tasks_done(instance: WorkflowInstance, now: datetime | None = None) -> bool:
    """Mark an Active instance Completed when every task is Completed.

    Does not commit; the caller owns the transaction.
    """
    if instance.status != INSTANCE_ACTIVE:
        return False
    statuses = [t.status for t in instance.tasks.all()]
    if not statuses or any(s != TASK_COMPLETED for s in statuses):
        return False
    instance.status = INSTANCE_COMPLETED
    instance.finish_datetime = now or datetime.now(timezone.utc)
    logger.info("WorkflowInstance auto-completed id=%s", instance.id)
    return True


def refresh_instance_completion(instance_id: str) -> dict:
    """Re-evaluate auto-completion for one instance and persist the outcome."""
    instance = get_instance_model(instance_id)
    if complete_if_all_tasks_done(instance):
        db.session.commit()
    return instance.to_dict()


# ──────────────────────────────────────────────────────────────────────────────
# Archive
# ──────────────────────────────────────────────────────────────────────────────

def set_instance_archived(instance_id: str, archived: bool) -> dict:
    """Flip the archive flag; the instance's tasks follow it in listings."""
    instance = get_instance_model(instance_id)
    instance.set_archived(archived)
    db.session.commit()
    logger.info("WorkflowInstance %s id=%s", "archived" if archived else "unarchived", instance.id)
    return instance.to_dict()


def archive_instance(instance_id: str) -> dict:
    return set_instance_archived(instance_id, True)


def unarchive_instance(instance_id: str) -> dict:
    return set_instance_archived(instance_id, False)
