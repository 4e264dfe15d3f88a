"""
Account deletion endpoints.

Users schedule and cancel the deletion of their account here; the internal
endpoint runs the sweep that erases accounts whose grace period is over.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.account_deletion import cancel_deletion, get_deletion_status, process_due_deletions, schedule_deletion
from app.core.database import get_db
from app.core.deps import get_current_user, get_optional_user, require_service_role
from app.core.rate_limiter import get_client_ip
from app.models.user import User
from app.schemas.account_deletion import (
    CancelDeletionRequest,
    CancelDeletionResponse,
    DeletionStatusResponse,
    ProcessDeletionsResponse,
    ScheduleDeletionRequest,
    ScheduleDeletionResponse
)

router = APIRouter(tags=["Account Deletion"])
logger = logging.getLogger(__name__)


@router.post("/account/deletion", response_model=ScheduleDeletionResponse)
def schedule_account_deletion(
    request: Request,
    payload: Optional[ScheduleDeletionRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Schedule deletion of the current account after the grace period.

    Raises:
        ConflictError 400: A deletion is already scheduled
    """
    deletion_request = schedule_deletion(
        db,
        current_user,
        reason=payload.reason if payload else None,
        request_ip=get_client_ip(request)
    )

    return ScheduleDeletionResponse(
        message="Account deletion scheduled successfully",
        deletion_request=deletion_request
    )


@router.get("/account/deletion", response_model=DeletionStatusResponse)
def account_deletion_status(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Pending deletion of the current account, if any."""
    return get_deletion_status(db, current_user)


@router.post("/account/deletion/cancel", response_model=CancelDeletionResponse)
def cancel_account_deletion(
    payload: Optional[CancelDeletionRequest] = None,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """
    Cancel a scheduled deletion.

    Accepts the cancellation token from the confirmation email (no login
    needed) or a bearer token for the account.

    Raises:
        AuthorizationError 401: Neither token supplied
        NotFoundError 404: No scheduled deletion found
    """
    result = cancel_deletion(
        db,
        cancellation_token=payload.token if payload else None,
        user=current_user
    )

    return CancelDeletionResponse(
        message="Account deletion cancelled successfully",
        cancelled_at=result["cancelledAt"]
    )


@router.post(
    "/internal/process-account-deletions",
    response_model=ProcessDeletionsResponse,
    dependencies=[Depends(require_service_role)]
)
def process_account_deletions(db: Session = Depends(get_db)):
    """
    Erase every account whose deletion is due.

    Called daily by the scheduler with the service-role key. Returns 200 with
    a per-account summary even when some accounts failed.
    """
    summary = process_due_deletions(db)
    if summary["failed"]:
        logger.warning(f"Deletion sweep: {summary['failed']} account(s) failed and were rescheduled")
    return summary
