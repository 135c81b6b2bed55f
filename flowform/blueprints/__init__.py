"""
FlowForm
Blueprint registry and shared request helpers.
"""

import json

from flask import request

from flowform.core.exceptions import ValidationError
from flowform.forms.codec import FilePayload


def archive_filter():
    """Parse ``?archived=`` into (include_archived, archived_only).

    ``include`` lists everything, ``only`` lists archived records, and
    anything else (the default) hides archived records.
    """
    mode = (request.args.get("archived") or "").strip().lower()
    if mode == "only":
        return True, True
    if mode in ("include", "all", "true", "1"):
        return True, False
    return False, False


def arg_flag(name, default=False):
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def json_body():
    """The JSON request body as a dict; ``{}`` when absent or unparsable.

    Raises:
        ValidationError: The body is JSON but not an object.
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", details={"body": "invalid"})
    return data


def form_values():
    """Submitted form values from a JSON or multipart/form-data body.

    Multipart bodies may carry a JSON object in a ``data`` part; other
    text parts are merged on top (repeated keys become lists) and every
    file part becomes a ``FilePayload`` under its field name.
    """
    if not request.mimetype or not request.mimetype.startswith("multipart/"):
        return json_body()

    values = {}
    raw = request.form.get("data")
    if raw:
        try:
            values = json.loads(raw)
        except ValueError:
            raise ValidationError("data part must be a JSON object", details={"data": "invalid"}) from None
        if not isinstance(values, dict):
            raise ValidationError("data part must be a JSON object", details={"data": "invalid"})

    for key in request.form.keys():
        if key == "data":
            continue
        items = request.form.getlist(key)
        values[key] = items if len(items) > 1 else items[0]

    for key, storage in request.files.items(multi=False):
        if storage and storage.filename:
            values[key] = FilePayload.from_storage(storage)
    return values


def register_blueprints(app):
    from flowform.blueprints.auth_bp import auth_bp
    from flowform.blueprints.dashboard_bp import dashboard_bp
    from flowform.blueprints.fields_bp import fields_bp
    from flowform.blueprints.files_bp import files_bp
    from flowform.blueprints.health_bp import health_bp
    from flowform.blueprints.tables_bp import tables_bp
    from flowform.blueprints.tasks_bp import tasks_bp
    from flowform.blueprints.templates_bp import templates_bp
    from flowform.blueprints.users_bp import users_bp
    from flowform.blueprints.workflows_bp import workflows_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(fields_bp)
    app.register_blueprint(tables_bp)
    app.register_blueprint(templates_bp)
    app.register_blueprint(workflows_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(files_bp)
    app.register_blueprint(dashboard_bp)
