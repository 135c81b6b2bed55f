"""
User Service — role-bearing user profiles.

A profile shares its id with the credential account it describes.
Profiles are archived, never deleted.
"""

import logging

from flowform.core.exceptions import NotFoundError, ValidationError
from flowform.models import db
from flowform.models.auth import ROLE_ADMINISTRATOR, ROLE_STANDARD_USER, ROLES, AuthAccount, User
from flowform.utils.helpers import require_text_types

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3


def _default_username(email: str) -> str:
    return email.split("@")[0] or "user"


def _validate_role(role: str) -> str:
    if not isinstance(role, str) or role not in ROLES:
        raise ValidationError(
            f"role must be one of {', '.join(sorted(ROLES))}", details={"role": "invalid"},
        )
    return role


def _validate_username(username: str) -> str:
    if not isinstance(username, str):
        raise ValidationError("username must be a string", details={"username": "type"})
    username = username.strip()
    if len(username) < MIN_USERNAME_LENGTH:
        raise ValidationError(
            f"username must be at least {MIN_USERNAME_LENGTH} characters",
            details={"username": "too_short"},
        )
    return username


def build_profile(user_id: str, email: str, role: str = ROLE_STANDARD_USER,
                  username: str | None = None) -> User:
    """Unsaved User profile for an account id."""
    return User(
        id=user_id,
        email=email,
        role=_validate_role(role),
        username=(username or "").strip() or _default_username(email),
    )


def list_users(include_archived: bool = True, archived_only: bool = False) -> list[dict]:
    """Users, newest first."""
    q = User.query_archived() if archived_only else (User.query if include_archived else User.query_active())
    return [u.to_dict() for u in q.order_by(User.created_at.desc()).all()]


def get_profile_or_none(user_id: str) -> User | None:
    return db.session.get(User, user_id) if user_id else None


def get_user(user_id: str) -> dict:
    user = get_profile_or_none(user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return user.to_dict()


def add_user(data: dict, current_identity: dict | None = None) -> dict:
    """Create or overwrite a profile.

    The profile id is ``data["id"]`` when given, else the id of the
    credential account registered under ``data["email"]``, else the
    current identity's id.

    Raises:
        ValidationError: Missing email, bad role or no id can be resolved.
    """
    from flowform.services.auth_service import normalize_email

    require_text_types(data, "id", "email", "username", "role")

    email = normalize_email(data.get("email", ""))
    user_id = data.get("id")
    if not user_id:
        account = AuthAccount.query.filter_by(email=email).first()
        user_id = account.id if account else None
    if not user_id and current_identity:
        user_id = current_identity["id"]
    if not user_id:
        raise ValidationError("User id is required to create a profile", details={"id": "required"})

    username = data.get("username")
    if username is not None:
        username = _validate_username(username)

    existing = db.session.get(User, user_id)
    if existing:
        existing.email = email
        existing.role = _validate_role(data.get("role") or ROLE_STANDARD_USER)
        existing.username = username or _default_username(email)
        existing.is_archived = False
        user = existing
    else:
        user = build_profile(user_id, email, data.get("role") or ROLE_STANDARD_USER, username)
        db.session.add(user)
    db.session.commit()
    logger.info("User profile saved id=%s role=%s", user.id, user.role)
    return user.to_dict()


def update_user(user_id: str, data: dict) -> dict:
    """Partial update of username / email / role."""
    from flowform.services.auth_service import normalize_email

    require_text_types(data, "email", "username", "role")

    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)

    if "username" in data:
        user.username = _validate_username(data["username"])
    if "email" in data:
        user.email = normalize_email(data["email"])
    if "role" in data:
        user.role = _validate_role(data["role"])
    db.session.commit()
    logger.info("User updated id=%s", user.id)
    return user.to_dict()


def set_user_archived(user_id: str, archived: bool) -> dict:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    user.set_archived(archived)
    db.session.commit()
    logger.info("User %s id=%s", "archived" if archived else "unarchived", user.id)
    return user.to_dict()


def ensure_administrator(email: str, password: str | None = None,
                         display_name: str | None = None) -> dict:
    """Give the account registered under ``email`` the Administrator role.

    Registers the account first when it does not exist and ``password`` is
    given. An archived profile is restored.

    Raises:
        ValidationError: Bad email, or no account and no password to create one.
    """
    from flowform.services import auth_service

    email = auth_service.normalize_email(email)
    account = auth_service.get_account_by_email(email)
    if account is None:
        if not password:
            raise ValidationError(
                f"No account registered for {email}; a password is needed to create one",
                details={"password": "required"},
            )
        account_id = auth_service.sign_up(email, password, display_name)["id"]
    else:
        account_id = account.id

    user = db.session.get(User, account_id)
    if user is None:
        user = build_profile(account_id, email, role=ROLE_ADMINISTRATOR)
        db.session.add(user)
    else:
        user.role = ROLE_ADMINISTRATOR
        user.is_archived = False
    db.session.commit()
    logger.info("Administrator granted id=%s", user.id)
    return user.to_dict()
