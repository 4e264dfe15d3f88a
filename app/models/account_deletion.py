"""
Account deletion request model.

Lifecycle of a request:

    SCHEDULED --(grace period elapses, sweep claims it)--> PROCESSING --> COMPLETED
        ^                                                      |
        +---------------- (any step fails) -------------------+

    SCHEDULED --(user cancels)--> CANCELLED

A failed request goes back to SCHEDULED with the error in `notes` so that the
next sweep retries it.
"""

import enum
import uuid
from sqlalchemy import Column, String, Text, DateTime, Enum, Index, func
from sqlalchemy.dialects.postgresql import UUID
from app.core.database import Base


class DeletionStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AccountDeletionRequest(Base):
    """
    A user's request to erase their account after the grace period.

    user_id is unique (one request row per user). Old cancelled/completed
    rows are removed before a new request is created.
    """
    __tablename__ = "account_deletion_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=False, unique=True, index=True)

    status = Column(
        Enum(DeletionStatus, values_callable=lambda x: [e.value for e in x]),
        default=DeletionStatus.SCHEDULED,
        nullable=False,
        index=True
    )

    requested_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    scheduled_for = Column(DateTime(timezone=True), nullable=False)  # End of the grace period
    processing_started_at = Column(DateTime(timezone=True), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    cancellation_token = Column(String(64), nullable=False, unique=True)
    reason = Column(Text, nullable=True)
    requested_from_ip = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)  # Last processing failure

    __table_args__ = (
        Index('ix_account_deletion_requests_status_scheduled_for', 'status', 'scheduled_for'),
    )

    def __repr__(self):
        return f"<AccountDeletionRequest(user_id={self.user_id}, status={self.status.value}, scheduled_for={self.scheduled_for})>"
