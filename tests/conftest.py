"""
Shared pytest fixtures for the FlowForm test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - blob_store: Recording in-memory blob store installed on the app (autouse)
    - client: Flask test client (function-scoped)
    - admin / member: signed-in accounts with Administrator / StandardUser profiles
    - admin_headers / member_headers: bearer auth headers for them
"""

import pytest

from flowform import create_app
from flowform.core.exceptions import StorageError
from flowform.models import db as _db
from flowform.models.auth import ROLE_ADMINISTRATOR, ROLE_STANDARD_USER, User
from flowform.services import auth_service
from flowform.services.dynamic_table_service import table_subscriptions
from flowform.storage import init_blob_store
from flowform.storage.memory import MemoryBlobStore

TEST_PASSWORD = "correct-horse-battery"


class RecordingBlobStore(MemoryBlobStore):
    """MemoryBlobStore that logs every upload/delete in call order."""

    def __init__(self):
        super().__init__()
        self.calls = []
        self.fail_uploads = False
        self.fail_paths = set()

    def upload(self, content, path, content_type=None):
        self.calls.append(("upload", path))
        if self.fail_uploads or path in self.fail_paths:
            raise StorageError("Simulated upload failure", path=path)
        return super().upload(content, path, content_type=content_type)

    def delete(self, path):
        self.calls.append(("delete", path))
        return super().delete(path)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        table_subscriptions.clear()
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture(autouse=True)
def blob_store(app):
    """Fresh recording blob store for every test."""
    store = RecordingBlobStore()
    init_blob_store(app, store)
    return store


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Accounts ─────────────────────────────────────────────────────────────


def make_account(email, role=ROLE_STANDARD_USER, password=TEST_PASSWORD, display_name=None):
    """Sign up an account, set its profile role and sign it in.

    Returns (identity, access_token).
    """
    identity = auth_service.sign_up(email, password, display_name)
    if role != ROLE_STANDARD_USER:
        profile = _db.session.get(User, identity["id"])
        profile.role = role
        _db.session.commit()
    token = auth_service.sign_in(email, password)["access_token"]
    return identity, token


@pytest.fixture()
def admin():
    identity, token = make_account("admin@example.com", ROLE_ADMINISTRATOR, display_name="Admin")
    return {**identity, "token": token}


@pytest.fixture()
def member():
    identity, token = make_account("member@example.com", display_name="Member")
    return {**identity, "token": token}


@pytest.fixture()
def admin_headers(admin):
    return {"Authorization": f"Bearer {admin['token']}"}


@pytest.fixture()
def member_headers(member):
    return {"Authorization": f"Bearer {member['token']}"}


# ── Workflow scaffold ────────────────────────────────────────────────────


@pytest.fixture()
def scaffold():
    """A customers table with one entry and a three-step onboarding workflow.

    Steps: "Collect details" (customers table, due in 2 days),
    "Review" (no table, no due date), "Sign off" (no table, due in 5 days).
    """
    from flowform.services import (
        dynamic_field_service,
        dynamic_table_service,
        task_template_service,
        workflow_template_service,
    )

    title = dynamic_field_service.create_field(
        {"name": "title", "label": "Title", "type": "Text Input", "is_required": True})
    contract = dynamic_field_service.create_field(
        {"name": "contract", "label": "Contract", "type": "Document Upload"})
    table = dynamic_table_service.create_table(
        {"name": "customers", "label": "Customers", "field_ids": [title["id"], contract["id"]]})
    entry = dynamic_table_service.add_entry(table["id"], {"title": "ACME"})

    collect = task_template_service.create_task_template({
        "name": "Collect details", "dynamic_table_id": table["id"], "due_date_offset_days": 2,
    })
    review = task_template_service.create_task_template({"name": "Review"})
    sign_off = task_template_service.create_task_template(
        {"name": "Sign off", "due_date_offset_days": 5})
    workflow = workflow_template_service.create_workflow_template({
        "name": "Onboarding",
        "task_template_ids": [collect["id"], review["id"], sign_off["id"]],
    })
    return {
        "fields": {"title": title, "contract": contract},
        "table": table,
        "entry": entry,
        "task_templates": [collect, review, sign_off],
        "workflow": workflow,
    }


def start_instance(scaffold, assignee_id, name="Onboard ACME", with_entry=True):
    """Start the scaffold workflow with every step assigned to ``assignee_id``."""
    from flowform.services import workflow_instance_service

    associated = {scaffold["table"]["id"]: scaffold["entry"]["id"]} if with_entry else {}
    return workflow_instance_service.create_workflow_instance(
        scaffold["workflow"]["id"],
        name,
        associated_data=associated,
        task_assignments={tt["id"]: assignee_id for tt in scaffold["task_templates"]},
        started_by_user_id=assignee_id,
    )
