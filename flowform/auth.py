"""
FlowForm
Authorization decorators.

Provides:
    - require_auth: the request must carry a valid signed-in identity
    - require_role: the identity's User profile must hold the given role

The only role check in the system gates the administration routes
(field/table/template/user management) behind ``Administrator``.
"""

import functools
import logging

from flask import g

from flowform.core.exceptions import AuthError

logger = logging.getLogger(__name__)


def current_identity():
    """Identity dict set by the JWT middleware, or None."""
    return getattr(g, "current_identity", None)


def require_auth(fn):
    """Reject the request with 401 unless a valid identity is present."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        if current_identity() is None:
            raise AuthError("Authentication required")
        return fn(*args, **kwargs)

    return wrapper


def require_role(*roles):
    """Reject with 403 unless the caller's active profile holds one of ``roles``.

    Usage:
        @fields_bp.route("/fields", methods=["POST"])
        @require_role("Administrator")
        def create_field(): ...
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            from flowform.services.user_service import get_profile_or_none

            identity = current_identity()
            if identity is None:
                raise AuthError("Authentication required")
            profile = get_profile_or_none(identity["id"])
            if profile is None or profile.is_archived or profile.role not in roles:
                logger.warning(
                    "Role check failed user=%s required=%s", identity["id"], ",".join(roles),
                )
                raise AuthError("Insufficient role", status=403)
            g.current_profile = profile
            return fn(*args, **kwargs)

        return wrapper

    return decorator
