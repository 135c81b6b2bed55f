"""
Workflow models — templates, running instances and their tasks.

    TaskTemplate      reusable unit of work, optionally bound to a dynamic table
    WorkflowTemplate  ordered list of task template ids
    WorkflowInstance  one execution of a workflow template
    Task              one materialized unit of work inside an instance
"""

from datetime import datetime, timezone

from flowform.models import _utcnow, _uuid, as_utc, db, isoformat
from flowform.models.archive import ArchivableMixin

# ── Status Constants ─────────────────────────────────────────────────────────

INSTANCE_ACTIVE = "Active"
INSTANCE_COMPLETED = "Completed"
INSTANCE_CANCELLED = "Cancelled"

INSTANCE_STATUSES = {INSTANCE_ACTIVE, INSTANCE_COMPLETED, INSTANCE_CANCELLED}

TASK_PENDING = "Pending"
TASK_IN_PROGRESS = "In Progress"
TASK_COMPLETED = "Completed"
TASK_OVERDUE = "Overdue"
TASK_SKIPPED = "Skipped"

TASK_STATUSES = {TASK_PENDING, TASK_IN_PROGRESS, TASK_COMPLETED, TASK_OVERDUE, TASK_SKIPPED}

# Statuses that end a task; a due date no longer matters once reached.
TASK_CLOSED_STATUSES = {TASK_COMPLETED, TASK_SKIPPED}


# ── Lifecycle Transition Guards ──────────────────────────────────────────────

TASK_TRANSITIONS = {
    TASK_PENDING:     [TASK_IN_PROGRESS, TASK_COMPLETED],
    TASK_IN_PROGRESS: [TASK_IN_PROGRESS, TASK_COMPLETED],
    TASK_OVERDUE:     [TASK_IN_PROGRESS, TASK_COMPLETED],
    TASK_COMPLETED:   [],
    TASK_SKIPPED:     [],
}

INSTANCE_TRANSITIONS = {
    INSTANCE_ACTIVE:    [INSTANCE_COMPLETED, INSTANCE_CANCELLED],
    INSTANCE_COMPLETED: [INSTANCE_ACTIVE],
    INSTANCE_CANCELLED: [INSTANCE_ACTIVE],
}


def validate_task_transition(old_status, new_status):
    """Return True if Task status transition is valid."""
    return new_status in TASK_TRANSITIONS.get(old_status, [])


def validate_instance_transition(old_status, new_status):
    """Return True if WorkflowInstance status transition is valid."""
    return new_status in INSTANCE_TRANSITIONS.get(old_status, [])


# ── Task Template ────────────────────────────────────────────────────────────

class TaskTemplate(ArchivableMixin, db.Model):
    __tablename__ = "task_templates"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(100))
    assigned_role_type = db.Column(db.String(50))
    due_date_offset_days = db.Column(db.Integer)
    dynamic_table_id = db.Column(
        db.String(36), db.ForeignKey("dynamic_tables.id", ondelete="SET NULL"), nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    dynamic_table = db.relationship("DynamicTable")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "assigned_role_type": self.assigned_role_type,
            "due_date_offset_days": self.due_date_offset_days,
            "dynamic_table_id": self.dynamic_table_id,
            "is_archived": bool(self.is_archived),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<TaskTemplate {self.name}>"


# ── Workflow Template ────────────────────────────────────────────────────────

class WorkflowTemplate(ArchivableMixin, db.Model):
    __tablename__ = "workflow_templates"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    task_template_ids = db.Column(db.JSON, nullable=False, default=list)  # execution order
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "task_template_ids": list(self.task_template_ids or []),
            "is_archived": bool(self.is_archived),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<WorkflowTemplate {self.name}>"


# ── Workflow Instance ────────────────────────────────────────────────────────

class WorkflowInstance(ArchivableMixin, db.Model):
    __tablename__ = "workflow_instances"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    workflow_template_id = db.Column(
        db.String(36), db.ForeignKey("workflow_templates.id"), nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=INSTANCE_ACTIVE, index=True)
    started_by_user_id = db.Column(db.String(36), nullable=True)
    start_datetime = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    finish_datetime = db.Column(db.DateTime(timezone=True), nullable=True)
    associated_data = db.Column(db.JSON, default=dict)  # dynamic_table_id -> entry id
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    workflow_template = db.relationship("WorkflowTemplate")
    tasks = db.relationship(
        "Task",
        backref="workflow_instance",
        lazy="dynamic",
        order_by="Task.created_at",
    )

    def to_dict(self, include_tasks=False):
        d = {
            "id": self.id,
            "workflow_template_id": self.workflow_template_id,
            "name": self.name,
            "status": self.status,
            "started_by_user_id": self.started_by_user_id,
            "start_datetime": isoformat(self.start_datetime),
            "finish_datetime": isoformat(self.finish_datetime),
            "associated_data": dict(self.associated_data or {}),
            "is_archived": bool(self.is_archived),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if include_tasks:
            d["tasks"] = [t.to_dict() for t in self.tasks.all()]
        return d

    def __repr__(self):
        return f"<WorkflowInstance {self.name} [{self.status}]>"


# ── Task ─────────────────────────────────────────────────────────────────────

class Task(db.Model):
    """Archiving follows the owning instance; tasks carry no flag of their own."""

    __tablename__ = "tasks"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    task_template_id = db.Column(
        db.String(36), db.ForeignKey("task_templates.id"), nullable=False,
    )
    workflow_instance_id = db.Column(
        db.String(36),
        db.ForeignKey("workflow_instances.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assigned_to_user_id = db.Column(db.String(36), nullable=True, index=True)
    status = db.Column(db.String(20), nullable=False, default=TASK_PENDING, index=True)
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    start_datetime = db.Column(db.DateTime(timezone=True), nullable=True)
    finish_datetime = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text)
    dynamic_table_id = db.Column(db.String(36), nullable=True)
    dynamic_table_data = db.Column(db.JSON, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    task_template = db.relationship("TaskTemplate")

    def is_overdue(self, now=None):
        if not self.due_date or self.status in TASK_CLOSED_STATUSES:
            return False
        now = now or datetime.now(timezone.utc)
        return as_utc(self.due_date) < now

    def effective_status(self, now=None):
        """Stored status, or Overdue when the due date has passed unfinished."""
        if self.is_overdue(now):
            return TASK_OVERDUE
        return self.status

    def to_dict(self):
        return {
            "id": self.id,
            "task_template_id": self.task_template_id,
            "workflow_instance_id": self.workflow_instance_id,
            "assigned_to_user_id": self.assigned_to_user_id,
            "status": self.status,
            "effective_status": self.effective_status(),
            "due_date": isoformat(self.due_date),
            "start_datetime": isoformat(self.start_datetime),
            "finish_datetime": isoformat(self.finish_datetime),
            "notes": self.notes,
            "dynamic_table_id": self.dynamic_table_id,
            "dynamic_table_data": dict(self.dynamic_table_data or {}),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Task {self.id} [{self.status}]>"
