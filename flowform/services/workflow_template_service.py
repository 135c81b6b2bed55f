"""
Workflow Template service layer.

A workflow template is an ordered list of task template ids; that order
is the order tasks are materialized in when an instance starts.
"""

import logging

from flowform.core.exceptions import NotFoundError, ValidationError
from flowform.models import db
from flowform.models.workflow import TaskTemplate, WorkflowTemplate
from flowform.utils.helpers import clean_text, optional_text

logger = logging.getLogger(__name__)


def _normalise(data: dict) -> dict:
    name = clean_text(data, "name")
    if not name:
        raise ValidationError("name is required", details={"name": "required"})

    ids = data.get("task_template_ids") or []
    if not isinstance(ids, list) or not ids:
        raise ValidationError("At least one task template is required",
                              details={"task_template_ids": "required"})
    ids = [str(i) for i in ids]
    known = {t.id for t in TaskTemplate.query.filter(TaskTemplate.id.in_(ids)).all()}
    missing = [i for i in ids if i not in known]
    if missing:
        raise ValidationError("Unknown task template ids", details={"task_template_ids": missing})

    return {
        "name": name,
        "description": optional_text(data, "description"),
        "task_template_ids": ids,
    }


def list_workflow_templates(include_archived: bool = True, archived_only: bool = False) -> list[dict]:
    """Workflow templates ordered by name."""
    if archived_only:
        q = WorkflowTemplate.query_archived()
    elif include_archived:
        q = WorkflowTemplate.query
    else:
        q = WorkflowTemplate.query_active()
    return [t.to_dict() for t in q.order_by(WorkflowTemplate.name.asc()).all()]


def get_workflow_template_model(template_id: str) -> WorkflowTemplate:
    template = db.session.get(WorkflowTemplate, template_id)
    if not template:
        raise NotFoundError("WorkflowTemplate", template_id)
    return template


def get_workflow_template(template_id: str, include_tasks: bool = False) -> dict:
    template = get_workflow_template_model(template_id)
    d = template.to_dict()
    if include_tasks:
        d["task_templates"] = [t.to_dict() for t in get_task_templates_for(template)]
    return d


def get_task_templates_for(template: WorkflowTemplate, include_archived: bool = True) -> list[TaskTemplate]:
    """The template's task templates in execution order; missing ids are skipped."""
    ids = list(template.task_template_ids or [])
    if not ids:
        return []
    by_id = {t.id: t for t in TaskTemplate.query.filter(TaskTemplate.id.in_(ids)).all()}
    ordered = [by_id[i] for i in ids if i in by_id]
    if not include_archived:
        ordered = [t for t in ordered if not t.is_archived]
    return ordered


def create_workflow_template(data: dict) -> dict:
    """Create a workflow template.

    Raises:
        ValidationError: Missing name, empty or unknown task template ids.
    """
    template = WorkflowTemplate(**_normalise(data))
    db.session.add(template)
    db.session.commit()
    logger.info("WorkflowTemplate created id=%s tasks=%d", template.id, len(template.task_template_ids))
    return template.to_dict()


def update_workflow_template(template_id: str, data: dict) -> dict:
    template = get_workflow_template_model(template_id)
    merged = template.to_dict()
    merged.update({k: v for k, v in data.items() if k in ("name", "description", "task_template_ids")})
    for key, value in _normalise(merged).items():
        setattr(template, key, value)
    db.session.commit()
    logger.info("WorkflowTemplate updated id=%s", template.id)
    return template.to_dict()


def set_workflow_template_archived(template_id: str, archived: bool) -> dict:
    template = get_workflow_template_model(template_id)
    template.set_archived(archived)
    db.session.commit()
    logger.info("WorkflowTemplate %s id=%s", "archived" if archived else "unarchived", template.id)
    return template.to_dict()
