"""
Auth Service — credential accounts, sessions and password resets.

The identity exposed to the rest of the system is
``{"id", "email", "display_name"}``; the role-bearing User profile is a
separate record keyed by the same id (see user_service).

Every db.session.commit() for auth tables happens in this module.
"""

import logging
from datetime import datetime, timedelta, timezone

from email_validator import EmailNotValidError, validate_email
from flask import current_app, g

from flowform.core.exceptions import AuthError, ConflictError, ValidationError
from flowform.models import db
from flowform.models.auth import ROLE_STANDARD_USER, AuthAccount, AuthSession, PasswordResetToken
from flowform.services.email_service import EmailService
from flowform.services.jwt_service import generate_access_token, hash_token
from flowform.utils.crypto import (
    MIN_PASSWORD_LENGTH,
    generate_reset_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Validate and normalise an email address.

    Raises:
        ValidationError: The address is malformed.
    """
    try:
        info = validate_email((email or "").strip(), check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError("A valid email is required", details={"email": str(exc)}) from None
    return info.normalized.lower()


def _check_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            details={"password": "too_short"},
        )


def get_account_by_email(email: str) -> AuthAccount | None:
    return AuthAccount.query.filter_by(email=email.strip().lower()).first()


# ═══════════════════════════════════════════════════════════════
# Sign-up / sign-in / sign-out
# ═══════════════════════════════════════════════════════════════
def sign_up(email: str, password: str, display_name: str | None = None) -> dict:
    """Create a credential account plus a StandardUser profile.

    Returns:
        The new identity dict.

    Raises:
        ValidationError: Bad email or short password.
        ConflictError: The email is already registered.
    """
    from flowform.services.user_service import build_profile

    email = normalize_email(email)
    _check_password(password)
    if get_account_by_email(email):
        raise ConflictError("AuthAccount", "email", email)

    account = AuthAccount(
        email=email,
        password_hash=hash_password(password),
        display_name=(display_name or "").strip() or None,
    )
    db.session.add(account)
    db.session.flush()
    db.session.add(build_profile(account.id, email, role=ROLE_STANDARD_USER))
    db.session.commit()
    logger.info("AuthAccount created id=%s", account.id)
    return account.to_identity()


def sign_in(email: str, password: str) -> dict:
    """Verify credentials and open a session.

    Returns:
        {"access_token", "token_type", "expires_in", "expires_at", "user"}

    Raises:
        AuthError: Unknown email, wrong password or disabled account.
    """
    account = get_account_by_email(email or "")
    if not account or not verify_password(password or "", account.password_hash):
        logger.info("Sign-in rejected email=%s", (email or "").strip().lower())
        raise AuthError("Invalid email or password")
    if account.is_disabled:
        raise AuthError("Account is disabled", status=403)

    token, expires_at = generate_access_token(account.id, account.email)
    db.session.add(AuthSession(
        account_id=account.id,
        token_hash=hash_token(token),
        expires_at=expires_at,
    ))
    account.last_sign_in_at = datetime.now(timezone.utc)
    db.session.commit()
    logger.info("Signed in account=%s", account.id)

    return {
        "access_token": token,
        "token_type": "Bearer",
        "expires_in": current_app.config.get("JWT_ACCESS_EXPIRES"),
        "expires_at": expires_at.isoformat(),
        "user": account.to_identity(),
    }


def sign_out(token: str) -> bool:
    """Deactivate the session for ``token``. Returns False if none was active."""
    session = AuthSession.query.filter_by(token_hash=hash_token(token), is_active=True).first()
    if not session:
        return False
    session.is_active = False
    db.session.commit()
    logger.info("Signed out account=%s", session.account_id)
    return True


def current_user() -> dict | None:
    """The signed-in identity for this request, if any."""
    return getattr(g, "current_identity", None)


# ═══════════════════════════════════════════════════════════════
# Password reset
# ═══════════════════════════════════════════════════════════════
def request_password_reset(email: str) -> str | None:
    """Issue a reset token and email it.

    Unknown addresses are accepted silently so callers cannot probe for
    accounts. Returns the raw token (None when no account matched).
    """
    account = get_account_by_email(email or "")
    if not account:
        logger.info("Password reset requested for unknown email")
        return None

    expires_in = current_app.config.get("PASSWORD_RESET_EXPIRES", 3600)
    raw_token = generate_reset_token()
    db.session.add(PasswordResetToken(
        account_id=account.id,
        token_hash=hash_token(raw_token),
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    ))
    db.session.commit()

    EmailService.send_from_template(
        to_email=account.email,
        template_name="password_reset",
        context={"email": account.email, "token": raw_token, "expires_minutes": expires_in // 60},
    )
    logger.info("Password reset issued account=%s", account.id)
    return raw_token


def reset_password(token: str, new_password: str) -> dict:
    """Set a new password with a reset token and revoke every open session.

    Raises:
        ValidationError: Token unknown, used or expired; password too short.
    """
    _check_password(new_password)
    reset = PasswordResetToken.query.filter_by(token_hash=hash_token(token or "")).first()
    if not reset or not reset.is_usable:
        raise ValidationError("Reset token is invalid or expired", details={"token": "invalid"})

    account = db.session.get(AuthAccount, reset.account_id)
    account.password_hash = hash_password(new_password)
    reset.used_at = datetime.now(timezone.utc)
    AuthSession.query.filter_by(account_id=account.id, is_active=True).update({"is_active": False})
    db.session.commit()
    logger.info("Password reset completed account=%s", account.id)
    return account.to_identity()
