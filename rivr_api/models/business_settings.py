from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, Text, func

from rivr_api.core.database import Base


class BusinessSettings(Base):
    __tablename__ = "business_settings"
    __table_args__ = (
        Index("business_settings_business_id_idx", "business_id", unique=True),
    )

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    custom_logo = Column(Text, nullable=True)
    custom_branding = Column(JSON, nullable=True)
    email_settings = Column(JSON, nullable=True)
    notification_settings = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
