"""
Dashboard Service — workflow and task summaries.

Only non-archived instances (and their tasks) are counted. Overdue is
derived from due dates at read time, so the numbers are always current
without any background job.
"""

import logging
from collections import Counter
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import func

from flowform.models import as_utc, db
from flowform.models.workflow import (
    INSTANCE_ACTIVE,
    INSTANCE_CANCELLED,
    INSTANCE_COMPLETED,
    TASK_COMPLETED,
    TASK_IN_PROGRESS,
    TASK_OVERDUE,
    TASK_PENDING,
    Task,
    WorkflowInstance,
    WorkflowTemplate,
)

logger = logging.getLogger(__name__)

ACTIVITY_DAYS = 7


def get_workflow_summary():
    """Instance counts by status and by (active) template."""
    rows = (
        db.session.query(WorkflowInstance.status, func.count(WorkflowInstance.id))
        .filter(WorkflowInstance.is_archived.is_(False))
        .group_by(WorkflowInstance.status)
        .all()
    )
    by_status = dict(rows)

    per_template = dict(
        db.session.query(WorkflowInstance.workflow_template_id, func.count(WorkflowInstance.id))
        .filter(WorkflowInstance.is_archived.is_(False))
        .group_by(WorkflowInstance.workflow_template_id)
        .all()
    )
    templates = WorkflowTemplate.query_active().order_by(WorkflowTemplate.name.asc()).all()

    return {
        "total_active": by_status.get(INSTANCE_ACTIVE, 0),
        "total_completed": by_status.get(INSTANCE_COMPLETED, 0),
        "total_cancelled": by_status.get(INSTANCE_CANCELLED, 0),
        "by_template": [
            {"template_id": t.id, "template_name": t.name, "count": per_template.get(t.id, 0)}
            for t in templates
        ],
    }


def _visible_tasks():
    return (
        Task.query
        .join(WorkflowInstance, Task.workflow_instance_id == WorkflowInstance.id)
        .filter(WorkflowInstance.is_archived.is_(False))
        .all()
    )


def get_task_summary(now=None):
    """Task counts bucketed by effective status."""
    now = now or datetime.now(timezone.utc)
    tasks = _visible_tasks()
    counts = Counter(t.effective_status(now) for t in tasks)
    return {
        "total_tasks": len(tasks),
        "pending": counts.get(TASK_PENDING, 0),
        "in_progress": counts.get(TASK_IN_PROGRESS, 0),
        "completed": counts.get(TASK_COMPLETED, 0),
        "overdue": counts.get(TASK_OVERDUE, 0),
    }


def _day(value) -> date | None:
    value = as_utc(value)
    return value.date() if value else None


def get_task_activity(days=ACTIVITY_DAYS, today=None):
    """Per-day completed and newly overdue task counts, oldest day first.

    A task becomes overdue on its due day unless it was completed on or
    before that day.
    """
    today = today or datetime.now(timezone.utc).date()
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    completed = Counter()
    overdue = Counter()

    for task in _visible_tasks():
        finished_on = _day(task.finish_datetime) if task.status == TASK_COMPLETED else None
        if finished_on:
            completed[finished_on] += 1
        due_on = _day(task.due_date)
        if due_on and (finished_on is None or finished_on > due_on):
            overdue[due_on] += 1

    series = [
        {"date": day.isoformat(), "completed": completed.get(day, 0), "overdue": overdue.get(day, 0)}
        for day in window
    ]
    logger.debug("Task activity computed from=%s to=%s", window[0], window[-1])
    return series


def get_dashboard(now=None):
    """Everything the dashboard page shows, in one payload."""
    now = now or datetime.now(timezone.utc)
    return {
        "workflows": get_workflow_summary(),
        "tasks": get_task_summary(now),
        "activity": get_task_activity(today=now.date()),
        "generated_at": now.isoformat(),
    }
