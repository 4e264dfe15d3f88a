"""
Pydantic schemas for account deletion endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class ScheduleDeletionRequest(BaseModel):
    """Request to schedule the deletion of the current account"""
    reason: Optional[str] = Field(None, max_length=1000)


class CancelDeletionRequest(BaseModel):
    """Cancel by the token from the email link, or by bearer token if omitted"""
    token: Optional[str] = None


class DeletionRequestInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    status: str
    requested_at: str = Field(..., alias="requestedAt")
    scheduled_for: str = Field(..., alias="scheduledFor")
    days_remaining: int = Field(..., alias="daysRemaining")
    cancellation_token: Optional[str] = Field(None, alias="cancellationToken")


class ScheduleDeletionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    deletion_request: DeletionRequestInfo = Field(..., alias="deletionRequest")


class CancelDeletionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    cancelled_at: str = Field(..., alias="cancelledAt")


class DeletionStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scheduled: bool
    deletion_request: Optional[DeletionRequestInfo] = Field(None, alias="deletionRequest")


class DeletionResult(BaseModel):
    """Outcome of one request in a sweep"""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    success: bool
    deleted_at: Optional[str] = Field(None, alias="deletedAt")
    error: Optional[str] = None


class ProcessDeletionsResponse(BaseModel):
    """Sweep summary returned to the scheduler"""
    success: bool
    message: str
    processed: int
    failed: int
    results: List[DeletionResult] = []
