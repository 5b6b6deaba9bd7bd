from sqlalchemy import Column, DateTime, Integer, String, func

from rivr_api.core.database import Base


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True)
    business_name = Column(String, nullable=False)
    owner_first_name = Column(String, nullable=True)
    owner_last_name = Column(String, nullable=True)
    owner_email = Column(String, unique=True, index=True, nullable=True)
    owner_password_hash = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)

    # Tenant identity: both values are immutable once assigned.
    subdomain = Column(String, unique=True, index=True, nullable=True)
    custom_domain = Column(String, nullable=True)
    database_schema = Column(String, unique=True, nullable=True)

    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
