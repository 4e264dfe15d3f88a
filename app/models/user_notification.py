"""
In-app notification model.

Notifications are shown in the account notification center. Account
lifecycle events (deletion scheduled / cancelled) create rows here.
"""

from sqlalchemy import Column, Integer, String, Boolean, Text, DateTime, func
from sqlalchemy.dialects.postgresql import UUID
from app.core.database import Base


class UserNotification(Base):
    __tablename__ = "user_notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    type = Column(String(32), nullable=False)  # e.g. "account", "security", "billing"
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String, nullable=True)
    icon = Column(String(16), nullable=True)
    read = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<UserNotification(user_id={self.user_id}, type='{self.type}', read={self.read})>"
