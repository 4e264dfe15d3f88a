"""
CRUD operations over the per-user data tables (preferences, notifications,
activity, sessions, profile, 2FA).
"""

import uuid
from datetime import datetime
from typing import Dict, Optional
from sqlalchemy.orm import Session

from app.models.login_activity import LoginActivity
from app.models.two_factor import TwoFactorCredential
from app.models.user_notification import UserNotification
from app.models.user_preferences import UserPreferences
from app.models.user_profile import UserProfile
from app.models.user_session import UserSession

DEFAULT_LANGUAGE = "en"

# Tables stamped with deleted_at when an account is erased, in processing order.
# The entitlements table is intentionally absent: access a user paid for
# survives the deletion of their account.
SOFT_DELETE_TARGETS = (
    ("user_preferences", UserPreferences, UserPreferences.user_id),
    ("user_notifications", UserNotification, UserNotification.user_id),
    ("login_activity", LoginActivity, LoginActivity.user_id),
    ("user_2fa", TwoFactorCredential, TwoFactorCredential.user_id),
    ("user_sessions", UserSession, UserSession.user_id),
    ("user_profiles", UserProfile, UserProfile.id),
)


def get_language(db: Session, user_id: uuid.UUID) -> str:
    """Preferred language of a user, defaulting to English."""
    preferences = db.query(UserPreferences).filter(UserPreferences.user_id == user_id).first()
    if preferences and preferences.language:
        return preferences.language
    return DEFAULT_LANGUAGE


def soft_delete_user_data(db: Session, user_id: uuid.UUID, deleted_at: datetime) -> Dict[str, int]:
    """
    Stamp deleted_at on every row the user owns in SOFT_DELETE_TARGETS.

    Each table is updated and committed independently. Rows already stamped
    keep their original timestamp, so re-running after a partial failure is
    a no-op for the tables that were done.

    Returns:
        Dict[str, int]: rows stamped per table
    """
    counts = {}
    for table_name, model, user_column in SOFT_DELETE_TARGETS:
        counts[table_name] = db.query(model).filter(
            user_column == user_id,
            model.deleted_at.is_(None)
        ).update({"deleted_at": deleted_at}, synchronize_session=False)
        db.commit()
    return counts


def create_notification(
    db: Session,
    user_id: uuid.UUID,
    title: str,
    message: str,
    notification_type: str = "account",
    link: Optional[str] = None,
    icon: Optional[str] = None
) -> UserNotification:
    """Create an in-app notification for the notification center."""
    notification = UserNotification(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        link=link,
        icon=icon,
        read=False
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification
