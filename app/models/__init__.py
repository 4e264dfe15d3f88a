"""
Database models package.
"""

from app.models.user import User
from app.models.user_profile import UserProfile
from app.models.user_preferences import UserPreferences
from app.models.user_notification import UserNotification
from app.models.login_activity import LoginActivity
from app.models.user_session import UserSession
from app.models.two_factor import TwoFactorCredential, TwoFactorBackupCode, TwoFactorAttempt, TwoFactorType
from app.models.account_deletion import AccountDeletionRequest, DeletionStatus
from app.models.entitlement import Entitlement

__all__ = [
    "User",
    "UserProfile",
    "UserPreferences",
    "UserNotification",
    "LoginActivity",
    "UserSession",
    "TwoFactorCredential",
    "TwoFactorBackupCode",
    "TwoFactorAttempt",
    "TwoFactorType",
    "AccountDeletionRequest",
    "DeletionStatus",
    "Entitlement",
]
