from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from onebase.auth.api import router as auth_router
from onebase.business.billing.api import customers_router, invoices_router
from onebase.core.config import Settings, get_app_settings
from onebase.core.errors import NotFoundError
from onebase.core.schemas import CamelModel, DataResponse
from onebase.crm.api import accounts_router, activities_router, contacts_router, deals_router
from onebase.metrics import generate_metrics_payload, metrics_content_type


class HealthPayload(CamelModel):
    ok: bool
    timestamp: datetime


router = APIRouter()
router.include_router(auth_router)
router.include_router(accounts_router)
router.include_router(contacts_router)
router.include_router(deals_router)
router.include_router(activities_router)
router.include_router(customers_router)
router.include_router(invoices_router)


@router.get("/health", tags=["system"], response_model=DataResponse[HealthPayload])
def health() -> DataResponse[HealthPayload]:
    return DataResponse(data=HealthPayload(ok=True, timestamp=datetime.now(timezone.utc)))


system_router = APIRouter(tags=["system"])


@system_router.get("/metrics")
def metrics(settings: Settings = Depends(get_app_settings)) -> Response:
    if not settings.metrics_enabled:
        raise NotFoundError("Not found")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
