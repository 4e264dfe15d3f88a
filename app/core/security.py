"""
Security utilities: JWT access tokens, backup-code hashing and the
service-role credential check.
"""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from jose import jwt
from app.core.config import settings

BACKUP_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
BACKUP_CODE_GROUPS = 3
BACKUP_CODE_GROUP_LENGTH = 4


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary containing claims to encode (typically {"sub": user_id})
        expires_delta: Optional expiration time delta (default: ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded JWT token as a string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Decode and validate a JWT token.

    Raises:
        JWTError: If token is invalid or expired
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def generate_backup_codes(count: int = 10) -> List[str]:
    """
    Generate single-use backup codes in the XXXX-XXXX-XXXX format.

    Uses the secrets module; ambiguous characters (0/O, 1/I) are excluded.
    """
    codes = []
    for _ in range(count):
        groups = [
            ''.join(secrets.choice(BACKUP_CODE_ALPHABET) for _ in range(BACKUP_CODE_GROUP_LENGTH))
            for _ in range(BACKUP_CODE_GROUPS)
        ]
        codes.append('-'.join(groups))
    return codes


def hash_backup_code(code: str) -> str:
    """Deterministic encoding of a backup code as stored in the database."""
    return hashlib.sha256(code.strip().upper().encode('utf-8')).hexdigest()


def is_service_role_authorization(authorization: Optional[str]) -> bool:
    """
    Check that an Authorization header carries the service-role key.

    The key may be sent bare or with a scheme prefix ("Bearer <key>"), so the
    check is a substring match. An unconfigured key never matches.
    """
    expected = settings.SERVICE_ROLE_KEY
    if not expected or not authorization:
        return False
    if hmac.compare_digest(authorization, expected):
        return True
    return expected in authorization
