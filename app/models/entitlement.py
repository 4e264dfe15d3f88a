"""
Entitlement model: a user's granted access to an app (purchase, subscription
or manual grant).

Entitlements outlive the account. The deletion sweep never updates or
deletes these rows, so user_id is deliberately not a foreign key.
"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func
from sqlalchemy.dialects.postgresql import UUID
from app.core.database import Base


class Entitlement(Base):
    __tablename__ = "entitlements"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    app_id = Column(String, nullable=False, index=True)
    active = Column(Boolean, nullable=False, default=True)
    grant_type = Column(String(32), nullable=False, default="purchase")  # purchase | subscription | manual
    granted_by = Column(UUID(as_uuid=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Entitlement(user_id={self.user_id}, app_id='{self.app_id}', active={self.active})>"
