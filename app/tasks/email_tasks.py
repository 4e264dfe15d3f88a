"""
Celery tasks for email operations.

Handles asynchronous email sending with retry logic.
"""

import logging
from typing import Optional
from celery import shared_task
from app.services.email_service import email_service

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    name="send_deletion_email_task",
    max_retries=3,
    default_retry_delay=60,  # Retry after 60 seconds
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=600,  # Max 10 minutes between retries
    retry_jitter=True
)
def send_deletion_email_task(
    self,
    to_email: str,
    email_type: str,
    language: Optional[str] = None,
    scheduled_date: Optional[str] = None,
    cancel_url: Optional[str] = None
):
    """
    Celery task to send an account deletion email asynchronously.

    Features:
    - Automatic retry on failure (up to 3 attempts)
    - Exponential backoff with jitter

    Args:
        to_email: Recipient email address
        email_type: deletion_scheduled | deletion_cancelled | deletion_completed
        language: User's preferred language
        scheduled_date: Formatted deletion date (deletion_scheduled only)
        cancel_url: Cancellation link (deletion_scheduled only)

    Raises:
        Exception: If email sending fails after all retries
    """
    try:
        logger.info(f"Sending {email_type} email to {to_email} (attempt {self.request.retries + 1})")

        success = email_service.send_deletion_email(
            to_email=to_email,
            email_type=email_type,
            language=language,
            scheduled_date=scheduled_date,
            cancel_url=cancel_url
        )

        if not success:
            raise Exception(f"Failed to send {email_type} email to {to_email}")

        return {"status": "success", "email": to_email, "type": email_type}

    except Exception as e:
        logger.error(f"Error sending {email_type} email to {to_email}: {str(e)}")

        if self.request.retries >= self.max_retries:
            logger.error(f"All retry attempts exhausted for {to_email}")

        raise  # Re-raise to trigger Celery retry
