"""
Identity service: admin operations on the identity record (users table).

The account deletion sweep talks to the identity store only through this
service, so provider failures surface as ExternalServiceError.
"""

import logging
import uuid
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ExternalServiceError
from app.models.user import User

logger = logging.getLogger(__name__)


class IdentityService:
    """Admin access to user identity records."""

    def get_user(self, db: Session, user_id: uuid.UUID) -> Optional[User]:
        """
        Fetch a user by id.

        Raises:
            ExternalServiceError: If the identity store cannot be read
        """
        try:
            return db.query(User).filter(User.id == user_id).first()
        except SQLAlchemyError as e:
            raise ExternalServiceError(f"Failed to load user {user_id}: {e}") from e

    def delete_user(self, db: Session, user_id: uuid.UUID) -> bool:
        """
        Hard-delete the identity record.

        Rows that reference users.id with ON DELETE CASCADE are removed by the
        database. A user that no longer exists counts as deleted.

        Returns:
            bool: True if a row was removed, False if it was already gone

        Raises:
            ExternalServiceError: If the delete fails
        """
        try:
            deleted = db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise ExternalServiceError(f"Failed to delete user {user_id}: {e}") from e

        if not deleted:
            logger.warning(f"Identity record for user {user_id} was already deleted")
        return deleted == 1


# Singleton instance
identity_service = IdentityService()
