"""
Auth Models — identity accounts, sessions, password resets and user profiles.

AuthAccount is the identity record (what the sign-in form checks).
User is the application profile (username + role) keyed by the same id;
it is fetched separately after authentication and drives role checks.
"""

from datetime import datetime, timezone

from flowform.models import _utcnow, _uuid, as_utc, db, isoformat
from flowform.models.archive import ArchivableMixin

ROLE_ADMINISTRATOR = "Administrator"
ROLE_TASK_EXECUTOR = "TaskExecutor"
ROLE_STANDARD_USER = "StandardUser"

ROLES = {ROLE_ADMINISTRATOR, ROLE_TASK_EXECUTOR, ROLE_STANDARD_USER}


# ═══════════════════════════════════════════════════════════════
# 1. IDENTITY ACCOUNTS
# ═══════════════════════════════════════════════════════════════
class AuthAccount(db.Model):
    __tablename__ = "auth_accounts"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    email = db.Column(db.String(200), nullable=False, unique=True)
    password_hash = db.Column(db.String(256), nullable=False)
    display_name = db.Column(db.String(200))
    is_disabled = db.Column(db.Boolean, nullable=False, default=False)
    last_sign_in_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    sessions = db.relationship(
        "AuthSession", back_populates="account", lazy="dynamic", cascade="all, delete-orphan",
    )

    def to_identity(self):
        """The identity exposed to the rest of the system."""
        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
        }

    def __repr__(self):
        return f"<AuthAccount {self.email}>"


# ═══════════════════════════════════════════════════════════════
# 2. SESSIONS
# ═══════════════════════════════════════════════════════════════
class AuthSession(db.Model):
    __tablename__ = "auth_sessions"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    account_id = db.Column(
        db.String(36), db.ForeignKey("auth_accounts.id", ondelete="CASCADE"), nullable=False,
    )
    token_hash = db.Column(db.String(64), nullable=False, index=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    account = db.relationship("AuthAccount", back_populates="sessions")

    @property
    def is_expired(self):
        return as_utc(self.expires_at) < datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════
# 3. PASSWORD RESET TOKENS
# ═══════════════════════════════════════════════════════════════
class PasswordResetToken(db.Model):
    __tablename__ = "password_reset_tokens"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    account_id = db.Column(
        db.String(36), db.ForeignKey("auth_accounts.id", ondelete="CASCADE"), nullable=False,
    )
    token_hash = db.Column(db.String(64), nullable=False, unique=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    used_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    @property
    def is_usable(self):
        return self.used_at is None and as_utc(self.expires_at) > datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════
# 4. USER PROFILES
# ═══════════════════════════════════════════════════════════════
class User(ArchivableMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    username = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(200), nullable=False, index=True)
    role = db.Column(db.String(30), nullable=False, default=ROLE_STANDARD_USER)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    @property
    def is_admin(self):
        return self.role == ROLE_ADMINISTRATOR

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "is_archived": bool(self.is_archived),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"
