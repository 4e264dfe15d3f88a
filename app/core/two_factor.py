"""
Core two-factor verification logic.

Checks a submitted TOTP or backup code against the user's stored credential
and records the outcome in the attempt log.
"""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple
import pyotp
from sqlalchemy.orm import Session

from app.core.exceptions import InputValidationError, NotFoundError
from app.core.security import hash_backup_code
from app.crud import two_factor as two_factor_crud
from app.models.two_factor import TwoFactorType

logger = logging.getLogger(__name__)

TOTP_DIGITS = 6
TOTP_INTERVAL = 30
TOTP_VALID_WINDOW = 1  # One step either side of the current one

TOTP_CODE_PATTERN = re.compile(r'[0-9]{6}')
BACKUP_CODE_PATTERN = re.compile(r'[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}')

MESSAGE_VERIFIED = "Code verified successfully"
MESSAGE_INVALID = "Invalid code"
MESSAGE_NO_SETUP = "No 2FA setup found"


def validate_verification_request(
    user_id: Optional[str],
    code: Optional[str],
    code_type: Optional[str] = None
) -> Tuple[uuid.UUID, str, TwoFactorType]:
    """
    Check the shape of a verification request.

    Runs before any database access; a rejected request leaves no trace in
    the attempt log.

    Returns:
        Tuple[uuid.UUID, str, TwoFactorType]: parsed user id, code, code type

    Raises:
        InputValidationError: Missing field, unknown type or malformed code
    """
    if not user_id or not code:
        raise InputValidationError("userId and code are required")

    try:
        parsed_type = TwoFactorType(code_type or TwoFactorType.TOTP.value)
    except ValueError:
        raise InputValidationError("type must be 'totp' or 'backup'")

    try:
        parsed_user_id = uuid.UUID(str(user_id))
    except ValueError:
        raise InputValidationError("userId must be a valid UUID")

    if parsed_type == TwoFactorType.TOTP:
        if not TOTP_CODE_PATTERN.fullmatch(code):
            raise InputValidationError("TOTP code must be 6 digits")
    elif not BACKUP_CODE_PATTERN.fullmatch(code):
        raise InputValidationError("Invalid backup code format")

    return parsed_user_id, code, parsed_type


def verify_totp(secret_key: str, code: str, now: datetime) -> bool:
    """Check a 6-digit code against the secret, tolerating one step of clock skew."""
    totp = pyotp.TOTP(secret_key, digits=TOTP_DIGITS, interval=TOTP_INTERVAL)
    return totp.verify(code, for_time=now, valid_window=TOTP_VALID_WINDOW)


def verify_two_factor_code(
    db: Session,
    user_id: Optional[str],
    code: Optional[str],
    code_type: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None
) -> Tuple[bool, str]:
    """
    Verify a TOTP or backup code for a user.

    Flow:
    1. Validate input (no attempt row on rejection)
    2. Load the live credential; log the attempt and raise if there is none
    3. Backup codes are redeemed by deleting their row; TOTP codes are
       checked against the current time window
    4. Stamp last_verified_at on success and log the attempt, all in one
       transaction

    Args:
        db: Database session
        user_id: User id as submitted by the caller
        code: The code typed by the user
        code_type: "totp" (default) or "backup"
        ip_address: Client address recorded on the attempt
        user_agent: Client user agent recorded on the attempt
        now: Verification time (defaults to the current UTC time)

    Returns:
        Tuple[bool, str]: (success, message)

    Raises:
        InputValidationError: Malformed request
        NotFoundError: The user has no 2FA setup
    """
    parsed_user_id, code, parsed_type = validate_verification_request(user_id, code, code_type)
    now = now or datetime.now(timezone.utc)

    credential = two_factor_crud.get_active_credential(db, parsed_user_id)
    if credential is None:
        two_factor_crud.record_attempt(
            db,
            user_id=parsed_user_id,
            attempt_type=parsed_type,
            success=False,
            failure_reason=MESSAGE_NO_SETUP,
            ip_address=ip_address,
            user_agent=user_agent
        )
        db.commit()
        logger.info(f"2FA verification for user {parsed_user_id} without a setup")
        raise NotFoundError(MESSAGE_NO_SETUP)

    if parsed_type == TwoFactorType.BACKUP:
        verified = two_factor_crud.consume_backup_code(db, credential.id, hash_backup_code(code))
    else:
        verified = verify_totp(credential.secret_key, code, now)

    if verified:
        two_factor_crud.mark_verified(db, credential.id, now)

    two_factor_crud.record_attempt(
        db,
        user_id=parsed_user_id,
        attempt_type=parsed_type,
        success=verified,
        failure_reason=MESSAGE_INVALID,
        ip_address=ip_address,
        user_agent=user_agent
    )
    db.commit()

    if not verified:
        logger.info(f"Invalid {parsed_type.value} code for user {parsed_user_id}")
        return False, MESSAGE_INVALID

    logger.info(f"{parsed_type.value} code verified for user {parsed_user_id}")
    return True, MESSAGE_VERIFIED
