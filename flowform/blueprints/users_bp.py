"""
Users Blueprint — role-bearing user profiles.

  GET  /api/v1/users                     — List (?archived=include|only)
  GET  /api/v1/users/<id>                — Single profile
  POST /api/v1/users                     — Create / overwrite a profile   [Administrator]
  PUT  /api/v1/users/<id>                — Partial update                 [Administrator]
  POST /api/v1/users/<id>/archive        — Archive                        [Administrator]
  POST /api/v1/users/<id>/unarchive      — Unarchive                      [Administrator]
"""

from flask import Blueprint, jsonify

from flowform.auth import current_identity, require_auth, require_role
from flowform.blueprints import archive_filter, json_body
from flowform.models.auth import ROLE_ADMINISTRATOR
from flowform.services import user_service

users_bp = Blueprint("users", __name__, url_prefix="/api/v1")


@users_bp.route("/users", methods=["GET"])
@require_auth
def list_users():
    include_archived, archived_only = archive_filter()
    return jsonify(user_service.list_users(include_archived, archived_only)), 200


@users_bp.route("/users/<user_id>", methods=["GET"])
@require_auth
def get_user(user_id):
    return jsonify(user_service.get_user(user_id)), 200


@users_bp.route("/users", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def add_user():
    return jsonify(user_service.add_user(json_body(), current_identity())), 201


@users_bp.route("/users/<user_id>", methods=["PUT"])
@require_role(ROLE_ADMINISTRATOR)
def update_user(user_id):
    return jsonify(user_service.update_user(user_id, json_body())), 200


@users_bp.route("/users/<user_id>/archive", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def archive_user(user_id):
    return jsonify(user_service.set_user_archived(user_id, True)), 200


@users_bp.route("/users/<user_id>/unarchive", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def unarchive_user(user_id):
    return jsonify(user_service.set_user_archived(user_id, False)), 200
