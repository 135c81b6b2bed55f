"""
Workflows Blueprint — workflow instances.

  GET  /api/v1/workflows                          — List, newest start first
                                                    (?archived=include|only, ?status=, ?template_id=)
  POST /api/v1/workflows                          — Start an instance
  GET  /api/v1/workflows/<id>                     — Instance with its tasks
  PUT  /api/v1/workflows/<id>/status              — { "status": "Active|Completed|Cancelled" }
  POST /api/v1/workflows/<id>/refresh-completion  — Re-check auto-completion
  POST /api/v1/workflows/<id>/archive|unarchive   — Archive flag

Start body:
  {
    "workflow_template_id": "...",
    "name": "...",
    "table_selections": {"<table id>": {"is_selected": true, "entry_id": "..."}},
    "task_assignments": {"<task template id>": "<user id>"}
  }
"""

from flask import Blueprint, jsonify, request

from flowform.auth import current_identity, require_auth
from flowform.blueprints import archive_filter, json_body
from flowform.services import workflow_instance_service
from flowform.utils.errors import E, api_error

workflows_bp = Blueprint("workflows", __name__, url_prefix="/api/v1")


@workflows_bp.route("/workflows", methods=["GET"])
@require_auth
def list_workflows():
    include_archived, archived_only = archive_filter()
    return jsonify(workflow_instance_service.list_instances(
        include_archived,
        archived_only,
        status=request.args.get("status"),
        workflow_template_id=request.args.get("template_id"),
    )), 200


@workflows_bp.route("/workflows", methods=["POST"])
@require_auth
def start_workflow():
    instance = workflow_instance_service.start_workflow_instance(
        json_body(), started_by_user_id=current_identity()["id"],
    )
    return jsonify(instance), 201


@workflows_bp.route("/workflows/<instance_id>", methods=["GET"])
@require_auth
def get_workflow(instance_id):
    return jsonify(workflow_instance_service.get_instance(instance_id)), 200


@workflows_bp.route("/workflows/<instance_id>/status", methods=["PUT"])
@require_auth
def update_workflow_status(instance_id):
    status = json_body().get("status")
    if not status:
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    return jsonify(workflow_instance_service.update_instance_status(instance_id, status)), 200


@workflows_bp.route("/workflows/<instance_id>/refresh-completion", methods=["POST"])
@require_auth
def refresh_workflow_completion(instance_id):
    return jsonify(workflow_instance_service.refresh_instance_completion(instance_id)), 200


@workflows_bp.route("/workflows/<instance_id>/archive", methods=["POST"])
@require_auth
def archive_workflow(instance_id):
    return jsonify(workflow_instance_service.archive_instance(instance_id)), 200


@workflows_bp.route("/workflows/<instance_id>/unarchive", methods=["POST"])
@require_auth
def unarchive_workflow(instance_id):
    return jsonify(workflow_instance_service.unarchive_instance(instance_id)), 200
