from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rivr_api.core.database import get_db
from rivr_api.deps import get_tenant_directory
from rivr_api.models.business import Business
from rivr_api.services.business_settings import get_business_settings
from rivr_api.services.tenant_directory import TenantDirectory

router = APIRouter(prefix="/api/public", tags=["public"])


@router.get("/business-settings/{subdomain}")
def public_business_settings(
    subdomain: str,
    db: Session = Depends(get_db),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    """Branding a login page needs before anyone is signed in."""
    tenant = directory.resolve(db, subdomain)
    business = db.query(Business).filter(Business.id == tenant.business_id).first()
    settings = get_business_settings(db, tenant.business_id)
    return {
        "business_id": tenant.business_id,
        "business_name": business.business_name if business else None,
        "subdomain": tenant.subdomain,
        "custom_logo": settings.custom_logo if settings else None,
        "custom_branding": settings.custom_branding if settings else None,
    }
