from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from rivr_api.core.database import get_db
from rivr_api.core.roles import RouteClass
from rivr_api.deps import AuthContext, require_route
from rivr_api.services.business_settings import (
    get_business_settings,
    serialize_business_settings,
    upsert_business_settings,
)

router = APIRouter(prefix="/api/admin", tags=["admin-business-settings"])


class BusinessSettingsPayload(BaseModel):
    custom_logo: Optional[str] = None
    custom_branding: Optional[dict[str, Any]] = None
    email_settings: Optional[dict[str, Any]] = None
    notification_settings: Optional[dict[str, Any]] = None


def _business_id(context: AuthContext) -> int:
    if context.tenant is not None:
        return context.tenant.business_id
    return int(context.session.business_id)


@router.get("/business-settings")
def read_business_settings(
    db: Session = Depends(get_db),
    context: AuthContext = Depends(require_route(RouteClass.business_admin)),
):
    business_id = _business_id(context)
    return serialize_business_settings(get_business_settings(db, business_id), business_id)


@router.put("/business-settings")
def update_business_settings(
    payload: BusinessSettingsPayload,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(require_route(RouteClass.business_admin)),
):
    business_id = _business_id(context)
    settings = upsert_business_settings(db, business_id, payload.model_dump(exclude_unset=True))
    return serialize_business_settings(settings, business_id)
