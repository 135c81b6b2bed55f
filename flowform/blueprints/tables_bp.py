"""
Dynamic Tables Blueprint — table definitions and their entries.

  Tables:
    GET  /api/v1/tables                               — List (?archived=include|only)
    GET  /api/v1/tables/<tid>                         — Single (?include_fields=1)
    POST /api/v1/tables                               — Create          [Administrator]
    PUT  /api/v1/tables/<tid>                         — Update          [Administrator]
    POST /api/v1/tables/<tid>/archive|unarchive       — Archive flag    [Administrator]

  Entries (JSON or multipart/form-data with files for document fields):
    GET  /api/v1/tables/<tid>/entries                 — Newest first (?archived=include|only)
    GET  /api/v1/tables/<tid>/entries/choices         — Active entries with display labels
    GET  /api/v1/tables/<tid>/entries/defaults        — Initial values for a new entry
    GET  /api/v1/tables/<tid>/entries/<eid>           — Single entry
    POST /api/v1/tables/<tid>/entries                 — Create          [Administrator]
    PUT  /api/v1/tables/<tid>/entries/<eid>           — Update          [Administrator]
    POST /api/v1/tables/<tid>/entries/<eid>/archive|unarchive          [Administrator]
"""

from flask import Blueprint, jsonify

from flowform.auth import require_auth, require_role
from flowform.blueprints import archive_filter, arg_flag, form_values, json_body
from flowform.models.auth import ROLE_ADMINISTRATOR
from flowform.services import dynamic_table_service

tables_bp = Blueprint("tables", __name__, url_prefix="/api/v1")


# ------------------------------------------------------------------
#  Table definitions
# ------------------------------------------------------------------

@tables_bp.route("/tables", methods=["GET"])
@require_auth
def list_tables():
    include_archived, archived_only = archive_filter()
    return jsonify(dynamic_table_service.list_tables(include_archived, archived_only)), 200


@tables_bp.route("/tables/<table_id>", methods=["GET"])
@require_auth
def get_table(table_id):
    return jsonify(dynamic_table_service.get_table(
        table_id, include_fields=arg_flag("include_fields"),
    )), 200


@tables_bp.route("/tables", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def create_table():
    return jsonify(dynamic_table_service.create_table(json_body())), 201


@tables_bp.route("/tables/<table_id>", methods=["PUT"])
@require_role(ROLE_ADMINISTRATOR)
def update_table(table_id):
    return jsonify(dynamic_table_service.update_table(table_id, json_body())), 200


@tables_bp.route("/tables/<table_id>/archive", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def archive_table(table_id):
    return jsonify(dynamic_table_service.set_table_archived(table_id, True)), 200


@tables_bp.route("/tables/<table_id>/unarchive", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def unarchive_table(table_id):
    return jsonify(dynamic_table_service.set_table_archived(table_id, False)), 200


# ------------------------------------------------------------------
#  Entries
# ------------------------------------------------------------------

@tables_bp.route("/tables/<table_id>/entries", methods=["GET"])
@require_auth
def list_entries(table_id):
    include_archived, archived_only = archive_filter()
    return jsonify(dynamic_table_service.list_entries(table_id, include_archived, archived_only)), 200


@tables_bp.route("/tables/<table_id>/entries/choices", methods=["GET"])
@require_auth
def list_entry_choices(table_id):
    return jsonify(dynamic_table_service.list_entry_choices(table_id)), 200


@tables_bp.route("/tables/<table_id>/entries/defaults", methods=["GET"])
@require_auth
def new_entry_defaults(table_id):
    return jsonify(dynamic_table_service.new_entry_defaults(table_id)), 200


@tables_bp.route("/tables/<table_id>/entries/<entry_id>", methods=["GET"])
@require_auth
def get_entry(table_id, entry_id):
    return jsonify(dynamic_table_service.get_entry(table_id, entry_id)), 200


@tables_bp.route("/tables/<table_id>/entries", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def add_entry(table_id):
    return jsonify(dynamic_table_service.add_entry(table_id, form_values())), 201


@tables_bp.route("/tables/<table_id>/entries/<entry_id>", methods=["PUT"])
@require_role(ROLE_ADMINISTRATOR)
def update_entry(table_id, entry_id):
    return jsonify(dynamic_table_service.update_entry(table_id, entry_id, form_values())), 200


@tables_bp.route("/tables/<table_id>/entries/<entry_id>/archive", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def archive_entry(table_id, entry_id):
    return jsonify(dynamic_table_service.set_entry_archived(table_id, entry_id, True)), 200


@tables_bp.route("/tables/<table_id>/entries/<entry_id>/unarchive", methods=["POST"])
@require_role(ROLE_ADMINISTRATOR)
def unarchive_entry(table_id, entry_id):
    return jsonify(dynamic_table_service.set_entry_archived(table_id, entry_id, False)), 200
