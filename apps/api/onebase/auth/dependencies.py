from __future__ import annotations

import uuid
from dataclasses import dataclass

from fastapi import Depends
from sqlalchemy.orm import Session
from starlette.requests import Request

from onebase.auth.service import auth_service
from onebase.core.config import Settings, get_app_settings
from onebase.core.database import get_db
from onebase.core.errors import UnauthorizedError


@dataclass(slots=True)
class CurrentUser:
    id: uuid.UUID
    org_id: uuid.UUID
    email: str
    role: str


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> CurrentUser:
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise UnauthorizedError("Authentication required")

    user = auth_service.resolve_user(db, token)
    if user is None:
        raise UnauthorizedError("Invalid or expired session")
    return CurrentUser(id=user.id, org_id=user.org_id, email=user.email, role=user.role)
