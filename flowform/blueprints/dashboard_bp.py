"""
Dashboard Blueprint

  GET /api/v1/dashboard             — Everything below in one payload
  GET /api/v1/dashboard/workflows   — Instance counts
  GET /api/v1/dashboard/tasks       — Task counts by effective status
  GET /api/v1/dashboard/activity    — Last 7 days: completed / newly overdue
"""

from flask import Blueprint, jsonify

from flowform.auth import require_auth
from flowform.services import dashboard_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1/dashboard")


@dashboard_bp.route("", methods=["GET"])
@require_auth
def overview():
    return jsonify(dashboard_service.get_dashboard()), 200


@dashboard_bp.route("/workflows", methods=["GET"])
@require_auth
def workflow_summary():
    return jsonify(dashboard_service.get_workflow_summary()), 200


@dashboard_bp.route("/tasks", methods=["GET"])
@require_auth
def task_summary():
    return jsonify(dashboard_service.get_task_summary()), 200


@dashboard_bp.route("/activity", methods=["GET"])
@require_auth
def task_activity():
    return jsonify(dashboard_service.get_task_activity()), 200
