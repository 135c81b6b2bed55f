"""
Templates Blueprint — task templates and workflow templates.

  Task templates:
    GET  /api/v1/task-templates                        — List by name (?archived=include|only)
    GET  /api/v1/task-templates/<id>
    POST /api/v1/task-templates                        — Create         [Administrator]
    PUT  /api/v1/task-templates/<id>                   — Update         [Administrator]
    POST /api/v1/task-templates/<id>/archive|unarchive                  [Administrator]

  Workflow templates:
    GET  /api/v1/workflow-templates                    — List by name (?archived=include|only)
    GET  /api/v1/workflow-templates/<id>               — Single (?include_tasks=1)
    POST /api/v1/workflow-templates                    — Create         [Administrator]
    PUT  /api/v1/workflow-templates/<id>               — Update         [Administrator]
    POST /api/v1/workflow-templates/<id>/archive|unarchive              [Administrator]
"""

from flask import Blueprint, jsonify

from flowform.auth import require_auth, require_role
from flowform.blueprints import archive_filter, arg_flag, json_body
from flowform.models.auth import ROLE_ADMINISTRATOR
from flowform.services import task_template_service, workflow_template_service

templates_bp = Blueprint("templates", __name__, url_prefix="/api/v1")


# ------------------------------------------------------------------
#  Task templates
# ------------------------------------------------------------------

@templates_bp.route("/task-templates", methods=["GET"])
@require_auth
def list_task_templates():
    include_archived, archived_only = archive_filter()
    return jsonify(task_template_service.list_task_templates(include_archived, archived_only)), 200


@templates_bp.route("/task-templates/<template_id>", methods=["GET"])
@require_auth
def get_task_template(template_id):
    return jsonify(task_template_service.get_task_template(template_id)), 200


@templates_bp.route("/task-templates", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def create_task_template():
    return jsonify(task_template_service.create_task_template(json_body())), 201


@templates_bp.route("/task-templates/<template_id>", methods=["PUT"])
@require_role(ROLE_ADMINISTRATOR)
def update_task_template(template_id):
    return jsonify(task_template_service.update_task_template(template_id, json_body())), 200


@templates_bp.route("/task-templates/<template_id>/archive", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def archive_task_template(template_id):
    return jsonify(task_template_service.set_task_template_archived(template_id, True)), 200


@templates_bp.route("/task-templates/<template_id>/unarchive", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def unarchive_task_template(template_id):
    return jsonify(task_template_service.set_task_template_archived(template_id, False)), 200


# ------------------------------------------------------------------
#  Workflow templates
# ------------------------------------------------------------------

@templates_bp.route("/workflow-templates", methods=["GET"])
@require_auth
def list_workflow_templates():
    include_archived, archived_only = archive_filter()
    return jsonify(workflow_template_service.list_workflow_templates(include_archived, archived_only)), 200


@templates_bp.route("/workflow-templates/<template_id>", methods=["GET"])
@require_auth
def get_workflow_template(template_id):
    return jsonify(workflow_template_service.get_workflow_template(
        template_id, include_tasks=arg_flag("include_tasks"),
    )), 200


@templates_bp.route("/workflow-templates", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def create_workflow_template():
    return jsonify(workflow_template_service.create_workflow_template(json_body())), 201


@templates_bp.route("/workflow-templates/<template_id>", methods=["PUT"])
@require_role(ROLE_ADMINISTRATOR)
def update_workflow_template(template_id):
    return jsonify(workflow_template_service.update_workflow_template(template_id, json_body())), 200


@templates_bp.route("/workflow-templates/<template_id>/archive", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def archive_workflow_template(template_id):
    return jsonify(workflow_template_service.set_workflow_template_archived(template_id, True)), 200


@templates_bp.route("/workflow-templates/<template_id>/unarchive", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def unarchive_workflow_template(template_id):
    return jsonify(workflow_template_service.set_workflow_template_archived(template_id, False)), 200
