from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import Session as DbSession

from onebase.auth.models import Organization, Session, User


class OrganizationRepository:
    def add(self, db: DbSession, name: str) -> Organization:
        organization = Organization(name=name)
        db.add(organization)
        db.flush()
        return organization

    def any_exists(self, db: DbSession) -> bool:
        return db.scalar(select(Organization.id).limit(1)) is not None


class UserRepository:
    def get(self, db: DbSession, user_id: uuid.UUID) -> User | None:
        return db.get(User, user_id)

    def get_by_email(self, db: DbSession, email: str) -> User | None:
        return db.scalar(select(User).where(User.email == email.strip().lower()))

    def add(self, db: DbSession, *, org_id: uuid.UUID, email: str, password_hash: str, role: str) -> User:
        user = User(org_id=org_id, email=email.strip().lower(), password_hash=password_hash, role=role)
        db.add(user)
        db.flush()
        return user


class SessionRepository:
    def add(self, db: DbSession, *, user_id: uuid.UUID, token: str, expires_at: datetime) -> Session:
        session = Session(user_id=user_id, token=token, expires_at=expires_at)
        db.add(session)
        db.flush()
        return session

    def get_by_token(self, db: DbSession, token: str) -> Session | None:
        return db.scalar(select(Session).where(Session.token == token))

    def delete_by_token(self, db: DbSession, token: str) -> None:
        db.execute(delete(Session).where(Session.token == token))

    def delete_expired(self, db: DbSession, now: datetime) -> int:
        result = db.execute(delete(Session).where(Session.expires_at <= now))
        return result.rowcount
