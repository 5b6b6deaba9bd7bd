from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rivr_api.models.business_settings import BusinessSettings

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = ("custom_logo", "custom_branding", "email_settings", "notification_settings")


def get_business_settings(db: Session, business_id: int) -> BusinessSettings | None:
    return db.query(BusinessSettings).filter(BusinessSettings.business_id == int(business_id)).first()


def serialize_business_settings(settings: BusinessSettings | None, business_id: int) -> dict[str, Any]:
    if settings is None:
        return {"business_id": int(business_id), **{name: None for name in SETTINGS_FIELDS}}
    return {
        "business_id": int(settings.business_id),
        "custom_logo": settings.custom_logo,
        "custom_branding": settings.custom_branding,
        "email_settings": settings.email_settings,
        "notification_settings": settings.notification_settings,
        "updated_at": settings.updated_at.isoformat() if settings.updated_at else None,
    }


def upsert_business_settings(db: Session, business_id: int, changes: dict[str, Any]) -> BusinessSettings:
    """Merge ``changes`` into the business's single settings row, creating it on first write.

    Only keys present in ``changes`` are touched; absent fields keep their value.
    When two first writes race, the loser merges into the winner's row.
    """
    settings = get_business_settings(db, business_id)
    created = settings is None
    if created:
        settings = BusinessSettings(business_id=int(business_id))
        db.add(settings)
    _apply_changes(settings, changes)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        settings = get_business_settings(db, business_id)
        if not created or settings is None:
            raise
        logger.info("Business settings created concurrently business_id=%s", business_id)
        created = False
        _apply_changes(settings, changes)
        db.commit()

    db.refresh(settings)
    logger.info(
        "Business settings %s business_id=%s fields=%s",
        "created" if created else "updated",
        business_id,
        ",".join(sorted(name for name in changes if name in SETTINGS_FIELDS)) or "-",
    )
    return settings


def _apply_changes(settings: BusinessSettings, changes: dict[str, Any]) -> None:
    for name in SETTINGS_FIELDS:
        if name in changes:
            setattr(settings, name, changes[name])
