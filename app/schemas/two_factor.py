"""
Pydantic schemas for 2FA code verification.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class VerifyTwoFactorRequest(BaseModel):
    """
    Request to verify a TOTP or backup code.

    Every field is optional here so that missing values reach the verifier
    and are reported with its own validation messages.
    """
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    code: Optional[str] = None
    type: Optional[str] = Field(None, description="'totp' (default) or 'backup'")


class VerifyTwoFactorResponse(BaseModel):
    """Outcome of a verification that reached the credential check"""
    success: bool
    message: str
    error_code: Optional[str] = None
