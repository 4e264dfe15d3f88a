"""
Core account deletion logic.

A user schedules the deletion of their account, which is carried out after a
grace period by a daily sweep. Until then the request can be cancelled from
the account page or from the link in the confirmation email.

The sweep erases an account in this order:
1. Claim the request (scheduled -> processing)
2. Snapshot the email address and language for the confirmation email
3. Soft-delete the user's data rows, one table at a time
4. Hard-delete the identity record
5. Mark the request completed
6. Queue the confirmation email

Entitlements are never touched.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Optional
from sqlalchemy.orm import Session

from app.core.celery_utils import queue_task_safely
from app.core.config import settings
from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError
from app.crud import account_deletion as deletion_crud
from app.crud import user_data as user_data_crud
from app.models.account_deletion import AccountDeletionRequest
from app.models.user import User
from app.services.email_service import format_date
from app.services.identity_service import identity_service
from app.tasks.email_tasks import send_deletion_email_task

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """Attach UTC to timestamps read back without tzinfo (SQLite)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_remaining(scheduled_for: datetime, now: datetime) -> int:
    """Whole days left before the deletion, rounded up."""
    seconds = (_as_utc(scheduled_for) - now).total_seconds()
    return max(0, math.ceil(seconds / 86400))


def build_cancel_url(cancellation_token: str) -> str:
    return f"{settings.FRONTEND_URL}/account?action=cancel-deletion&token={cancellation_token}"


def _queue_deletion_email(to_email: Optional[str], email_type: str, **kwargs) -> bool:
    """Queue a deletion email; failures are logged and never raised."""
    if not to_email:
        logger.warning(f"No email address for {email_type} email, skipping")
        return False

    queued = queue_task_safely(send_deletion_email_task, to_email=to_email, email_type=email_type, **kwargs)
    if not queued:
        logger.warning(f"{email_type} email for {to_email} was not queued")
    return queued


def serialize_request(deletion_request: AccountDeletionRequest, now: datetime) -> dict:
    return {
        "id": str(deletion_request.id),
        "status": deletion_request.status.value,
        "requestedAt": _as_utc(deletion_request.requested_at).isoformat(),
        "scheduledFor": _as_utc(deletion_request.scheduled_for).isoformat(),
        "daysRemaining": days_remaining(deletion_request.scheduled_for, now),
    }


def schedule_deletion(
    db: Session,
    user: User,
    reason: Optional[str] = None,
    request_ip: Optional[str] = None,
    now: Optional[datetime] = None
) -> dict:
    """
    Schedule the deletion of a user's account after the grace period.

    Args:
        db: Database session
        user: The account to delete
        reason: Optional free-text reason given by the user
        request_ip: Client address recorded on the request
        now: Request time (defaults to the current UTC time)

    Returns:
        dict: The new request, including its cancellation token

    Raises:
        ConflictError: A deletion is already pending for this user
    """
    now = now or datetime.now(timezone.utc)

    existing = deletion_crud.get_active_for_user(db, user.id)
    if existing:
        raise ConflictError(
            "Deletion already scheduled",
            error_code="deletion_already_scheduled",
            data={
                "scheduledFor": _as_utc(existing.scheduled_for).isoformat(),
                "daysRemaining": days_remaining(existing.scheduled_for, now),
            }
        )

    # One request row per user: clear out finished ones first
    removed = deletion_crud.delete_finished_for_user(db, user.id)
    if removed:
        logger.info(f"Removed {removed} finished deletion request(s) for user {user.id}")

    scheduled_for = now + timedelta(days=settings.DELETION_GRACE_PERIOD_DAYS)
    deletion_request = deletion_crud.create(
        db,
        user_id=user.id,
        requested_at=now,
        scheduled_for=scheduled_for,
        reason=reason,
        requested_from_ip=request_ip
    )
    logger.info(f"Account deletion scheduled for user {user.id} on {scheduled_for.isoformat()}")

    language = user_data_crud.get_language(db, user.id)
    scheduled_date = format_date(scheduled_for, language)
    cancel_url = build_cancel_url(deletion_request.cancellation_token)

    user_data_crud.create_notification(
        db,
        user_id=user.id,
        title="Account Deletion Scheduled",
        message=f"Your account will be deleted on {scheduled_date}. You can cancel anytime before then.",
        link="/account?section=delete",
        icon="🗑️"
    )
    _queue_deletion_email(
        user.email,
        "deletion_scheduled",
        language=language,
        scheduled_date=scheduled_date,
        cancel_url=cancel_url
    )

    result = serialize_request(deletion_request, now)
    result["cancellationToken"] = deletion_request.cancellation_token
    return result


def cancel_deletion(
    db: Session,
    cancellation_token: Optional[str] = None,
    user: Optional[User] = None,
    now: Optional[datetime] = None
) -> dict:
    """
    Cancel a pending deletion.

    The request is found by the token from the email link, or else by the
    authenticated user.

    Raises:
        AuthorizationError: Neither a token nor an authenticated user
        NotFoundError: No scheduled deletion matches
        ConflictError: The scheduled date has already passed
    """
    now = now or datetime.now(timezone.utc)

    if cancellation_token:
        deletion_request = deletion_crud.get_scheduled_by_token(db, cancellation_token)
    elif user is not None:
        deletion_request = deletion_crud.get_scheduled_for_user(db, user.id)
    else:
        raise AuthorizationError("Missing authorization or cancellation token")

    if deletion_request is None:
        raise NotFoundError("No pending deletion request found")

    if _as_utc(deletion_request.scheduled_for) < now:
        raise ConflictError("Deletion request has already been processed", error_code="deletion_already_due")

    user_id = deletion_request.user_id
    if not deletion_crud.mark_cancelled(db, deletion_request.id, now):
        raise NotFoundError("No pending deletion request found")
    logger.info(f"Account deletion cancelled for user {user_id}")

    user_data_crud.create_notification(
        db,
        user_id=user_id,
        title="Account Deletion Cancelled",
        message="Your account deletion has been cancelled. Your account remains active.",
        link="/account",
        icon="✅"
    )

    owner = user if user is not None and user.id == user_id else identity_service.get_user(db, user_id)
    _queue_deletion_email(
        owner.email if owner else None,
        "deletion_cancelled",
        language=user_data_crud.get_language(db, user_id)
    )

    return {"cancelledAt": now.isoformat()}


def get_deletion_status(db: Session, user: User, now: Optional[datetime] = None) -> dict:
    """Pending deletion of the user, or {"scheduled": False}."""
    now = now or datetime.now(timezone.utc)

    deletion_request = deletion_crud.get_active_for_user(db, user.id)
    if deletion_request is None:
        return {"scheduled": False}

    return {"scheduled": True, "deletionRequest": serialize_request(deletion_request, now)}


def _release_failed_claim(db: Session, request_id, notes: str) -> None:
    """
    Send a failed request back to scheduled.

    If the write itself fails the request stays in processing and is picked
    up again once its claim goes stale.
    """
    try:
        deletion_crud.mark_rescheduled(db, request_id, notes)
    except Exception:
        logger.exception(f"Could not reschedule deletion request {request_id}")
        db.rollback()


def process_due_deletions(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Erase every account whose grace period has elapsed.

    Requests are processed one at a time, oldest first. A failure on one
    request rolls it back to scheduled (with the error in its notes) and the
    sweep moves on to the next one.

    Args:
        db: Database session
        now: Sweep time (defaults to the current UTC time)

    Returns:
        dict: {success, message, processed, failed, results}
    """
    now = now or datetime.now(timezone.utc)
    stale_before = now - timedelta(minutes=settings.DELETION_PROCESSING_STALE_MINUTES)

    due = [(r.id, r.user_id) for r in deletion_crud.get_due(db, now, stale_before)]
    if not due:
        logger.info("No account deletions due")
        return {"success": True, "message": "No deletions to process", "processed": 0, "failed": 0, "results": []}

    logger.info(f"Found {len(due)} account deletion(s) to process")

    results = []
    processed = 0
    failed = 0

    for request_id, user_id in due:
        claimed = False
        try:
            claimed = deletion_crud.claim(db, request_id, now, stale_before)
            if not claimed:
                logger.info(f"Deletion request {request_id} was claimed by another sweep, skipping")
                continue

            user = identity_service.get_user(db, user_id)
            email = user.email if user else None
            language = user_data_crud.get_language(db, user_id)

            counts = user_data_crud.soft_delete_user_data(db, user_id, now)
            logger.info(f"Soft-deleted data for user {user_id}: {counts}")

            identity_service.delete_user(db, user_id)
            deletion_crud.mark_completed(db, request_id, now)

        except Exception as e:
            logger.exception(f"Account deletion failed for user {user_id}")
            db.rollback()
            # An unclaimed request was never changed; leave it for the next run
            if claimed:
                _release_failed_claim(db, request_id, f"Processing failed: {e}")
            failed += 1
            results.append({"userId": str(user_id), "success": False, "error": str(e)})
            continue

        processed += 1
        results.append({"userId": str(user_id), "success": True, "deletedAt": now.isoformat()})
        logger.info(f"Account {user_id} deleted")

        _queue_deletion_email(email, "deletion_completed", language=language)

    return {
        "success": True,
        "message": "Deletion processing complete",
        "processed": processed,
        "failed": failed,
        "results": results,
    }
