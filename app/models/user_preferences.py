from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.dialects.postgresql import UUID
from app.core.database import Base


class UserPreferences(Base):
    """Per-user settings. The language drives transactional email localization."""
    __tablename__ = "user_preferences"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=False, unique=True, index=True)

    language = Column(String(8), nullable=False, default="en")
    theme = Column(String(16), nullable=False, default="light")
    email_notifications = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<UserPreferences(user_id={self.user_id}, language='{self.language}')>"
