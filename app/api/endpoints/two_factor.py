"""
Two-factor code verification endpoint.

Called by the login flow after the password step to check the code the user
typed (from an authenticator app, or one of their backup codes).
"""

import logging
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.rate_limiter import check_verify_2fa_limit, get_client_ip
from app.core.two_factor import verify_two_factor_code
from app.schemas.two_factor import VerifyTwoFactorRequest, VerifyTwoFactorResponse

router = APIRouter(prefix="/auth/2fa", tags=["Two-Factor Authentication"])
logger = logging.getLogger(__name__)


@router.post("/verify", response_model=VerifyTwoFactorResponse)
def verify_code(
    payload: VerifyTwoFactorRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Verify a TOTP or backup code.

    Rate limit: 20 per minute and 200 per hour per client IP.

    Returns:
        200: {success, message, error_code} for both valid and invalid codes

    Raises:
        InputValidationError 400: Missing or malformed fields
        NotFoundError 404: The user has no 2FA setup
        RateLimitExceededError 429: Too many attempts from this address
    """
    ip_address = get_client_ip(request)
    check_verify_2fa_limit(ip_address)

    success, message = verify_two_factor_code(
        db,
        user_id=payload.user_id,
        code=payload.code,
        code_type=payload.type,
        ip_address=ip_address,
        user_agent=request.headers.get("User-Agent")
    )

    return VerifyTwoFactorResponse(
        success=success,
        message=message,
        error_code=None if success else "invalid_code"
    )
