"""
Cloudflare Turnstile CAPTCHA verification.
"""

import logging
from typing import Any, Dict, Optional
import httpx

from app.core.config import settings
from app.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class CaptchaService:
    """Verifies Turnstile widget tokens against Cloudflare's siteverify API."""

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    def verify_token(self, token: str, remote_ip: Optional[str] = None) -> Dict[str, Any]:
        """
        Verify a Turnstile token.

        Args:
            token: Token produced by the client-side widget
            remote_ip: Optional visitor IP forwarded to Cloudflare

        Returns:
            dict: {"success": bool, "errorCodes": list}

        Raises:
            ExternalServiceError: Secret not configured or Cloudflare unreachable
        """
        if not settings.TURNSTILE_SECRET:
            logger.error("TURNSTILE_SECRET is not set")
            raise ExternalServiceError("Server configuration error")

        form = {"secret": settings.TURNSTILE_SECRET, "response": token}
        if remote_ip:
            form["remoteip"] = remote_ip

        try:
            response = httpx.post(settings.TURNSTILE_VERIFY_URL, data=form, timeout=self.timeout)
            response.raise_for_status()
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Turnstile verification request failed: {e}")
            raise ExternalServiceError("CAPTCHA verification unavailable") from e

        success = bool(result.get("success"))
        error_codes = result.get("error-codes", [])

        logger.info(f"CAPTCHA verification result: success={success} error_codes={error_codes}")

        return {"success": success, "errorCodes": error_codes}


# Singleton instance
captcha_service = CaptchaService()
