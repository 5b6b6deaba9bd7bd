from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from rivr_api.core.database import Base


class PasswordResetRequest(Base):
    __tablename__ = "password_reset_requests"

    id = Column(Integer, primary_key=True)
    email = Column(String, nullable=False, index=True)
    role = Column(String, nullable=False)
    # Business id for driver/employee resets, null for platform-level accounts.
    tenant_id = Column(Integer, nullable=True)
    user_id = Column(Integer, nullable=True)
    used = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
