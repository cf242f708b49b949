from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import EmailStr, Field

from onebase.core.schemas import CamelModel


UserRole = Literal["admin", "member"]


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserRead(CamelModel):
    id: UUID
    org_id: UUID
    email: str
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime


class AuthUserPayload(CamelModel):
    user: UserRead


class LogoutPayload(CamelModel):
    success: bool
