"""
Dynamic Fields Blueprint

  GET  /api/v1/fields                    — List (?archived=include|only, ?category=)
  GET  /api/v1/fields/available          — Active fields for composing a table
  GET  /api/v1/fields/types              — Supported field type labels
  GET  /api/v1/fields/<id>               — Single field
  POST /api/v1/fields                    — Create                 [Administrator]
  PUT  /api/v1/fields/<id>               — Partial update         [Administrator]
  POST /api/v1/fields/<id>/archive       — Archive                [Administrator]
  POST /api/v1/fields/<id>/unarchive     — Unarchive              [Administrator]
"""

from flask import Blueprint, jsonify, request

from flowform.auth import require_auth, require_role
from flowform.blueprints import archive_filter, json_body
from flowform.forms.field_types import FIELD_TYPE_LABELS
from flowform.models.auth import ROLE_ADMINISTRATOR
from flowform.services import dynamic_field_service

fields_bp = Blueprint("fields", __name__, url_prefix="/api/v1")


@fields_bp.route("/fields", methods=["GET"])
@require_auth
def list_fields():
    include_archived, archived_only = archive_filter()
    return jsonify(dynamic_field_service.list_fields(
        include_archived, archived_only, category=request.args.get("category"),
    )), 200


@fields_bp.route("/fields/available", methods=["GET"])
@require_auth
def list_available_fields():
    return jsonify(dynamic_field_service.list_available_fields()), 200


@fields_bp.route("/fields/types", methods=["GET"])
@require_auth
def list_field_types():
    return jsonify(list(FIELD_TYPE_LABELS)), 200


@fields_bp.route("/fields/<field_id>", methods=["GET"])
@require_auth
def get_field(field_id):
    return jsonify(dynamic_field_service.get_field(field_id)), 200


@fields_bp.route("/fields", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def create_field():
    return jsonify(dynamic_field_service.create_field(json_body())), 201


@fields_bp.route("/fields/<field_id>", methods=["PUT"])
@require_role(ROLE_ADMINISTRATOR)
def update_field(field_id):
    return jsonify(dynamic_field_service.update_field(field_id, json_body())), 200


@fields_bp.route("/fields/<field_id>/archive", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def archive_field(field_id):
    return jsonify(dynamic_field_service.set_field_archived(field_id, True)), 200


@fields_bp.route("/fields/<field_id>/unarchive", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def unarchive_field(field_id):
    return jsonify(dynamic_field_service.set_field_archived(field_id, False)), 200
