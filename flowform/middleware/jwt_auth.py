"""
JWT Auth Middleware — parses the bearer token and sets g.current_identity.

The hook never rejects a request by itself; protected views use
``flowform.auth.require_auth`` / ``require_role`` to enforce it.

    g.current_identity   {"id", "email", "display_name"} or None
    g.current_user_id    identity id or None
    g.access_token       raw bearer token (for sign-out) or None
"""

import logging

import jwt as pyjwt
from flask import g, request

from flowform.services.jwt_service import decode_access_token, hash_token

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/sign-in",
    "/api/v1/auth/sign-up",
    "/api/v1/auth/password-reset",
    "/api/v1/health",
    "/api/v1/files/download",
)


def _identity_for_token(token: str):
    from flowform.models.auth import AuthSession

    payload = decode_access_token(token)
    session = AuthSession.query.filter_by(
        account_id=payload.get("sub"), token_hash=hash_token(token), is_active=True,
    ).first()
    if session is None or session.is_expired:
        return None
    account = session.account
    if account is None or account.is_disabled:
        return None
    return account.to_identity()


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_identity = None
        g.current_user_id = None
        g.access_token = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]  # Strip "Bearer "

        try:
            identity = _identity_for_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.debug("Expired access token on %s", path)
            return
        except pyjwt.InvalidTokenError:
            logger.debug("Invalid access token on %s", path)
            return

        if identity is not None:
            g.current_identity = identity
            g.current_user_id = identity["id"]
            g.access_token = token
