"""
Celery tasks for the account lifecycle.

The deletion sweep runs daily from Celery Beat (see app.core.celery_app).
"""

import logging
from app.core.celery_app import celery_app
from app.core.exceptions import PartialBatchFailure

logger = logging.getLogger(__name__)


@celery_app.task(name="process_account_deletions")
def process_account_deletions_task():
    """
    Erase every account whose deletion grace period has elapsed.

    Returns the sweep summary. When some items failed the task raises
    PartialBatchFailure so the run shows up as failed in the worker; the
    failed requests were put back to scheduled and the next run retries them.
    """
    from app.core.database import SessionLocal
    from app.core.account_deletion import process_due_deletions

    db = SessionLocal()
    try:
        summary = process_due_deletions(db)
    finally:
        db.close()

    logger.info(f"Deletion sweep finished: {summary['processed']} processed, {summary['failed']} failed")

    if summary["failed"]:
        raise PartialBatchFailure(
            f"{summary['failed']} of {summary['processed'] + summary['failed']} account deletions failed",
            summary
        )

    return summary
