"""
Pydantic schemas for CAPTCHA verification.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class CaptchaVerifyRequest(BaseModel):
    token: Optional[str] = None


class CaptchaVerifyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    error_codes: List[str] = Field(default_factory=list, alias="errorCodes")
