"""
FastAPI dependencies for authentication and authorization.

These dependencies are used to protect endpoints and extract user context.
"""

import logging
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.core.database import get_db
from app.core.exceptions import AuthorizationError
from app.core.security import decode_token, is_service_role_authorization
from app.models.user import User

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme (Authorization: Bearer <token>)
security = HTTPBearer()


def _user_from_token(token: str, db: Session) -> Optional[User]:
    try:
        payload = decode_token(token)
    except JWTError:
        return None

    user_id = payload.get("sub")
    if user_id is None:
        return None

    try:
        user_uuid = UUID(user_id)
    except (TypeError, ValueError):
        return None

    return db.query(User).filter(User.id == user_uuid).first()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Extract and validate the current user from JWT token.

    This dependency:
    1. Extracts the Bearer token from Authorization header
    2. Decodes and validates the JWT
    3. Fetches the user from the database
    4. Ensures the user is active

    Raises:
        HTTPException 401: If token is invalid or user not found
        HTTPException 403: If the account is inactive
    """
    user = _user_from_token(credentials.credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(HTTPBearer(auto_error=False)),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Extract user from JWT token if provided, otherwise return None.

    Used by endpoints that accept either a bearer token or another proof of
    identity (e.g. the deletion cancellation token from an email link).
    """
    if not credentials:
        return None

    user = _user_from_token(credentials.credentials, db)
    return user if user and user.is_active else None


def require_service_role(authorization: Optional[str] = Header(None)) -> None:
    """
    Ensure the caller presents the service-role key.

    Used by scheduler-invoked endpoints. Rejection happens before any
    work is done.

    Raises:
        AuthorizationError: Header missing or key mismatch
    """
    if not is_service_role_authorization(authorization):
        logger.warning("Rejected request without service-role credential")
        raise AuthorizationError("Unauthorized: Service role required")
