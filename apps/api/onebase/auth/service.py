from __future__ import annotations

import logging
import secrets
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import bcrypt
from sqlalchemy.orm import Session as DbSession

from onebase.auth.models import User
from onebase.auth.repository import OrganizationRepository, SessionRepository, UserRepository
from onebase.auth.schemas import UserRead
from onebase.core.database import unit_of_work, utcnow
from onebase.core.errors import ErrorCode, UnauthorizedError
from onebase.metrics import observe_login


logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72
SESSION_TOKEN_BYTES = 32


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(slots=True)
class IssuedSession:
    token: str
    expires_at: datetime
    user: UserRead


@dataclass(slots=True)
class AuthService:
    organizations: OrganizationRepository = field(default_factory=OrganizationRepository)
    users: UserRepository = field(default_factory=UserRepository)
    sessions: SessionRepository = field(default_factory=SessionRepository)
    clock: Callable[[], datetime] = utcnow

    def create_user(
        self,
        db: DbSession,
        *,
        org_id: uuid.UUID,
        email: str,
        password: str,
        role: str = "member",
        bcrypt_rounds: int = 10,
    ) -> UserRead:
        with unit_of_work(db):
            user = self.users.add(
                db,
                org_id=org_id,
                email=email,
                password_hash=hash_password(password, bcrypt_rounds),
                role=role,
            )
        return UserRead.model_validate(user)

    def login(self, db: DbSession, email: str, password: str, *, ttl: timedelta) -> IssuedSession:
        user = self.users.get_by_email(db, email)
        if user is None or not user.is_active or not verify_password(password, user.password_hash):
            observe_login("failure")
            logger.info("auth.login_failed")
            raise UnauthorizedError("Invalid email or password", code=ErrorCode.AUTH_INVALID)

        token = secrets.token_hex(SESSION_TOKEN_BYTES)
        expires_at = self.clock() + ttl
        with unit_of_work(db):
            self.sessions.add(db, user_id=user.id, token=token, expires_at=expires_at)
        observe_login("success")
        logger.info("auth.login", extra={"org_id": str(user.org_id), "user_id": str(user.id)})
        return IssuedSession(token=token, expires_at=expires_at, user=UserRead.model_validate(user))

    def logout(self, db: DbSession, token: str) -> None:
        with unit_of_work(db):
            self.sessions.delete_by_token(db, token)

    def resolve_user(self, db: DbSession, token: str) -> User | None:
        """Return the active user behind a session token, or None.

        Expired sessions are removed on sight and never resolve.
        """
        session = self.sessions.get_by_token(db, token)
        if session is None:
            return None

        if _as_utc(session.expires_at) <= self.clock():
            with unit_of_work(db):
                self.sessions.delete_by_token(db, token)
            return None

        user = self.users.get(db, session.user_id)
        if user is None or not user.is_active:
            return None
        return user

    def purge_expired_sessions(self, db: DbSession) -> int:
        with unit_of_work(db):
            removed = self.sessions.delete_expired(db, self.clock())
        return removed


auth_service = AuthService()
