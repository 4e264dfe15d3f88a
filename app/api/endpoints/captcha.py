"""
CAPTCHA verification endpoint (Cloudflare Turnstile).
"""

import logging
from fastapi import APIRouter, Request

from app.core.exceptions import InputValidationError
from app.core.rate_limiter import get_client_ip
from app.schemas.captcha import CaptchaVerifyRequest, CaptchaVerifyResponse
from app.services.captcha_service import captcha_service

router = APIRouter(prefix="/captcha", tags=["CAPTCHA"])
logger = logging.getLogger(__name__)


@router.post("/verify", response_model=CaptchaVerifyResponse)
def verify_captcha(payload: CaptchaVerifyRequest, request: Request):
    """
    Check a Turnstile token produced by the browser widget.

    Raises:
        InputValidationError 400: Token missing
        ExternalServiceError 500: Secret not configured or Turnstile unreachable
    """
    if not payload.token:
        raise InputValidationError("CAPTCHA token is required")

    result = captcha_service.verify_token(payload.token, remote_ip=get_client_ip(request))
    return CaptchaVerifyResponse(success=result["success"], error_codes=result["errorCodes"])
