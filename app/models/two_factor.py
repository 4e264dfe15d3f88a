"""
Two-factor authentication models.

- TwoFactorCredential: one per user, holds the TOTP shared secret
- TwoFactorBackupCode: the credential's set of single-use backup codes,
  one row per code so that redeeming a code is a single-row DELETE
- TwoFactorAttempt: append-only log of every verification call that got
  past input validation
"""

import enum
import uuid
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey, Index, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.core.database import Base


class TwoFactorType(str, enum.Enum):
    """Kind of code submitted for verification."""
    TOTP = "totp"
    BACKUP = "backup"


class TwoFactorCredential(Base):
    """
    TOTP secret and status for a user.

    Mutated by the verifier only to stamp last_verified_at. Setup and
    disable flows create and remove rows.
    """
    __tablename__ = "user_2fa"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=False, unique=True, index=True)

    secret_key = Column(String(64), nullable=False)  # Base32 TOTP secret
    is_enabled = Column(Boolean, nullable=False, default=False)
    last_verified_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    backup_codes = relationship(
        "TwoFactorBackupCode",
        back_populates="credential",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    def __repr__(self):
        return f"<TwoFactorCredential(user_id={self.user_id}, is_enabled={self.is_enabled})>"


class TwoFactorBackupCode(Base):
    """A single unused backup code. The row is deleted when the code is redeemed."""
    __tablename__ = "user_2fa_backup_codes"

    id = Column(Integer, primary_key=True, index=True)
    credential_id = Column(UUID(as_uuid=True), ForeignKey("user_2fa.id", ondelete="CASCADE"), nullable=False, index=True)
    code_hash = Column(String(64), nullable=False)  # SHA-256 hex of the upper-cased code

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    credential = relationship("TwoFactorCredential", back_populates="backup_codes")

    __table_args__ = (
        UniqueConstraint('credential_id', 'code_hash', name='uq_user_2fa_backup_codes_credential_code'),
    )


class TwoFactorAttempt(Base):
    """
    Verification attempt log entry. Never updated or deleted by the application.

    user_id is not a foreign key: attempts against accounts without a 2FA
    setup (or without an account at all) are logged too.
    """
    __tablename__ = "user_2fa_attempts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    success = Column(Boolean, nullable=False)
    failure_reason = Column(String, nullable=True)
    attempt_type = Column(Enum(TwoFactorType, values_callable=lambda x: [e.value for e in x]), nullable=False)

    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('ix_user_2fa_attempts_user_created', 'user_id', 'created_at'),
    )

    def __repr__(self):
        return f"<TwoFactorAttempt(user_id={self.user_id}, type={self.attempt_type.value}, success={self.success})>"
