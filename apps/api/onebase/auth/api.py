from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from sqlalchemy.orm import Session
from starlette.requests import Request

from onebase.auth.dependencies import CurrentUser, get_current_user
from onebase.auth.schemas import AuthUserPayload, LoginRequest, LogoutPayload, UserRead
from onebase.auth.service import auth_service
from onebase.core.config import Settings, get_app_settings
from onebase.core.database import get_db
from onebase.core.errors import UnauthorizedError
from onebase.core.schemas import DataResponse


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=DataResponse[AuthUserPayload])
def login(
    dto: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> DataResponse[AuthUserPayload]:
    ttl = timedelta(days=settings.session_ttl_days)
    issued = auth_service.login(db, dto.email, dto.password, ttl=ttl)
    response.set_cookie(
        settings.session_cookie_name,
        issued.token,
        max_age=int(ttl.total_seconds()),
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return DataResponse(data=AuthUserPayload(user=issued.user))


@router.post("/logout", response_model=DataResponse[LogoutPayload])
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> DataResponse[LogoutPayload]:
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        auth_service.logout(db, token)
    response.delete_cookie(settings.session_cookie_name, path="/")
    return DataResponse(data=LogoutPayload(success=True))


@router.get("/me", response_model=DataResponse[AuthUserPayload], status_code=status.HTTP_200_OK)
def me(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> DataResponse[AuthUserPayload]:
    row = auth_service.users.get(db, user.id)
    if row is None:
        raise UnauthorizedError("Invalid or expired session")
    return DataResponse(data=AuthUserPayload(user=UserRead.model_validate(row)))
