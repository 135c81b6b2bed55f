"""
Auth Blueprint — credential endpoints.

  POST /api/v1/auth/sign-up                  — Email + password → new identity
  POST /api/v1/auth/sign-in                  — Email + password → bearer token
  POST /api/v1/auth/sign-out                 — Revoke the current token
  POST /api/v1/auth/password-reset           — Email a reset token
  POST /api/v1/auth/password-reset/confirm   — Token + new password
  GET  /api/v1/auth/me                       — Current identity and profile
"""

import logging

from flask import Blueprint, g, jsonify

from flowform.auth import current_identity, require_auth
from flowform.blueprints import json_body
from flowform.services import auth_service, user_service
from flowform.utils.helpers import require_text_types
from flowform.utils.errors import E, api_error

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


@auth_bp.route("/sign-up", methods=["POST"])
def sign_up():
    """Body: { "email", "password", "display_name"? }"""
    data = json_body()
    require_text_types(data, "email", "password", "display_name")
    if not data.get("email") or not data.get("password"):
        return api_error(E.VALIDATION_REQUIRED, "Email and password are required")
    identity = auth_service.sign_up(data["email"], data["password"], data.get("display_name"))
    return jsonify(identity), 201


@auth_bp.route("/sign-in", methods=["POST"])
def sign_in():
    """Body: { "email", "password" }"""
    data = json_body()
    require_text_types(data, "email", "password")
    if not data.get("email") or not data.get("password"):
        return api_error(E.VALIDATION_REQUIRED, "Email and password are required")
    return jsonify(auth_service.sign_in(data["email"], data["password"])), 200


@auth_bp.route("/sign-out", methods=["POST"])
@require_auth
def sign_out():
    auth_service.sign_out(g.access_token)
    return jsonify({"message": "Signed out"}), 200


@auth_bp.route("/password-reset", methods=["POST"])
def request_password_reset():
    """Always 202 so the response does not reveal whether the email exists."""
    data = json_body()
    require_text_types(data, "email")
    if not data.get("email"):
        return api_error(E.VALIDATION_REQUIRED, "Email is required")
    auth_service.request_password_reset(data["email"])
    return jsonify({"message": "If the account exists, a reset email has been sent"}), 202


@auth_bp.route("/password-reset/confirm", methods=["POST"])
def confirm_password_reset():
    """Body: { "token", "password" }"""
    data = json_body()
    require_text_types(data, "token", "password")
    if not data.get("token") or not data.get("password"):
        return api_error(E.VALIDATION_REQUIRED, "Token and password are required")
    identity = auth_service.reset_password(data["token"], data["password"])
    return jsonify(identity), 200


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    identity = current_identity()
    profile = user_service.get_profile_or_none(identity["id"])
    return jsonify({
        **identity,
        "profile": profile.to_dict() if profile else None,
    }), 200
