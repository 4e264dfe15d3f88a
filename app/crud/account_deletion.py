"""
CRUD operations for AccountDeletionRequest.

Status transitions used by the sweep are conditional UPDATEs so that two
overlapping sweeps cannot both claim the same request.
"""

import secrets
import uuid
from datetime import datetime
from typing import List, Optional
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from app.models.account_deletion import AccountDeletionRequest, DeletionStatus

ACTIVE_STATUSES = (DeletionStatus.SCHEDULED, DeletionStatus.PROCESSING)
FINISHED_STATUSES = (DeletionStatus.CANCELLED, DeletionStatus.COMPLETED)


def _claimable(stale_before: datetime):
    """Scheduled, or stuck in PROCESSING since before `stale_before`."""
    return or_(
        AccountDeletionRequest.status == DeletionStatus.SCHEDULED,
        and_(
            AccountDeletionRequest.status == DeletionStatus.PROCESSING,
            AccountDeletionRequest.processing_started_at < stale_before
        )
    )


def get_active_for_user(db: Session, user_id: uuid.UUID) -> Optional[AccountDeletionRequest]:
    """Request that is still pending (scheduled or being processed)."""
    return db.query(AccountDeletionRequest).filter(
        AccountDeletionRequest.user_id == user_id,
        AccountDeletionRequest.status.in_(ACTIVE_STATUSES)
    ).first()


def get_scheduled_by_token(db: Session, cancellation_token: str) -> Optional[AccountDeletionRequest]:
    return db.query(AccountDeletionRequest).filter(
        AccountDeletionRequest.cancellation_token == cancellation_token,
        AccountDeletionRequest.status == DeletionStatus.SCHEDULED
    ).first()


def get_scheduled_for_user(db: Session, user_id: uuid.UUID) -> Optional[AccountDeletionRequest]:
    return db.query(AccountDeletionRequest).filter(
        AccountDeletionRequest.user_id == user_id,
        AccountDeletionRequest.status == DeletionStatus.SCHEDULED
    ).first()


def delete_finished_for_user(db: Session, user_id: uuid.UUID) -> int:
    """
    Remove old cancelled/completed requests so a new one can be created.

    Returns:
        int: Number of rows removed
    """
    deleted = db.query(AccountDeletionRequest).filter(
        AccountDeletionRequest.user_id == user_id,
        AccountDeletionRequest.status.in_(FINISHED_STATUSES)
    ).delete(synchronize_session=False)
    db.commit()
    return deleted


def create(
    db: Session,
    user_id: uuid.UUID,
    requested_at: datetime,
    scheduled_for: datetime,
    reason: Optional[str] = None,
    requested_from_ip: Optional[str] = None
) -> AccountDeletionRequest:
    """
    Create a scheduled deletion request with a fresh cancellation token.

    Returns:
        The persisted request
    """
    deletion_request = AccountDeletionRequest(
        id=uuid.uuid4(),
        user_id=user_id,
        status=DeletionStatus.SCHEDULED,
        requested_at=requested_at,
        scheduled_for=scheduled_for,
        cancellation_token=secrets.token_urlsafe(32),
        reason=reason,
        requested_from_ip=requested_from_ip
    )

    db.add(deletion_request)
    db.commit()
    db.refresh(deletion_request)
    return deletion_request


def get_due(db: Session, now: datetime, stale_before: datetime) -> List[AccountDeletionRequest]:
    """
    Requests whose grace period has elapsed, oldest first.

    Includes requests stuck in PROCESSING since before `stale_before`
    (left behind by a sweep that died mid-item).
    """
    return db.query(AccountDeletionRequest).filter(
        AccountDeletionRequest.scheduled_for < now,
        _claimable(stale_before)
    ).order_by(AccountDeletionRequest.scheduled_for.asc()).all()


def claim(db: Session, request_id: uuid.UUID, now: datetime, stale_before: datetime) -> bool:
    """
    Move a due request to PROCESSING unless another sweep holds a live claim.

    The status check and the update are one statement, so of two sweeps
    racing for the same request only one gets a row back.

    Returns:
        bool: True if this caller now owns the request
    """
    updated = db.query(AccountDeletionRequest).filter(
        AccountDeletionRequest.id == request_id,
        AccountDeletionRequest.scheduled_for < now,
        _claimable(stale_before)
    ).update(
        {"status": DeletionStatus.PROCESSING, "processing_started_at": now},
        synchronize_session=False
    )
    db.commit()
    return updated == 1


def mark_completed(db: Session, request_id: uuid.UUID, processed_at: datetime) -> None:
    db.query(AccountDeletionRequest).filter(
        AccountDeletionRequest.id == request_id
    ).update(
        {"status": DeletionStatus.COMPLETED, "processed_at": processed_at, "notes": None},
        synchronize_session=False
    )
    db.commit()


def mark_rescheduled(db: Session, request_id: uuid.UUID, notes: str) -> None:
    """Send a failed request back to SCHEDULED so the next sweep retries it."""
    db.query(AccountDeletionRequest).filter(
        AccountDeletionRequest.id == request_id
    ).update(
        {"status": DeletionStatus.SCHEDULED, "processing_started_at": None, "notes": notes},
        synchronize_session=False
    )
    db.commit()


def mark_cancelled(db: Session, request_id: uuid.UUID, cancelled_at: datetime) -> bool:
    """
    Cancel a request that is still SCHEDULED.

    Returns:
        bool: False if a sweep claimed the request first
    """
    updated = db.query(AccountDeletionRequest).filter(
        AccountDeletionRequest.id == request_id,
        AccountDeletionRequest.status == DeletionStatus.SCHEDULED
    ).update(
        {"status": DeletionStatus.CANCELLED, "cancelled_at": cancelled_at},
        synchronize_session=False
    )
    db.commit()
    return updated == 1
