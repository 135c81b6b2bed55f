"""
Tasks Blueprint

  GET  /api/v1/tasks                   — List in creation order
                                         (?assigned_to=me|<user id>, ?workflow_id=, ?status=,
                                          ?archived=include)
  GET  /api/v1/tasks/<id>              — Task with its template and form fields
  PUT  /api/v1/tasks/<id>/data         — Save form data (JSON or multipart/form-data)
  POST /api/v1/tasks/<id>/complete     — { "notes"? }
"""

from flask import Blueprint, jsonify, request

from flowform.auth import current_identity, require_auth
from flowform.blueprints import archive_filter, form_values, json_body
from flowform.services import task_service

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/v1")


@tasks_bp.route("/tasks", methods=["GET"])
@require_auth
def list_tasks():
    assigned_to = request.args.get("assigned_to")
    if assigned_to == "me":
        assigned_to = current_identity()["id"]
    include_archived, _ = archive_filter()
    return jsonify(task_service.list_tasks(
        assigned_to_user_id=assigned_to,
        workflow_instance_id=request.args.get("workflow_id"),
        status=request.args.get("status"),
        include_archived=include_archived,
    )), 200


@tasks_bp.route("/tasks/<task_id>", methods=["GET"])
@require_auth
def get_task(task_id):
    return jsonify(task_service.get_task(task_id, include_form=True)), 200


@tasks_bp.route("/tasks/<task_id>/data", methods=["PUT"])
@require_auth
def save_task_data(task_id):
    return jsonify(task_service.save_task_data(task_id, form_values())), 200


@tasks_bp.route("/tasks/<task_id>/complete", methods=["POST"])
@require_auth
def complete_task(task_id):
    return jsonify(task_service.complete_task(task_id, notes=json_body().get("notes"))), 200
