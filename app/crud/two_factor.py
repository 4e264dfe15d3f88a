"""
CRUD operations for two-factor credentials, backup codes and attempts.

Functions that mutate state do not commit: the verifier groups the code
consumption, the last_verified_at stamp and the attempt row into a single
transaction.
"""

import uuid
from datetime import datetime
from typing import Iterable, Optional
from sqlalchemy.orm import Session

from app.core.security import hash_backup_code
from app.models.two_factor import TwoFactorCredential, TwoFactorBackupCode, TwoFactorAttempt, TwoFactorType


def get_active_credential(db: Session, user_id: uuid.UUID) -> Optional[TwoFactorCredential]:
    """
    Retrieve the user's 2FA credential, ignoring soft-deleted rows.

    Returns:
        TwoFactorCredential if the user has a live setup, None otherwise
    """
    return db.query(TwoFactorCredential).filter(
        TwoFactorCredential.user_id == user_id,
        TwoFactorCredential.deleted_at.is_(None)
    ).first()


def create_credential(
    db: Session,
    user_id: uuid.UUID,
    secret_key: str,
    backup_codes: Iterable[str] = (),
    is_enabled: bool = True
) -> TwoFactorCredential:
    """
    Create a 2FA credential with its backup codes (hashed before storage).

    Args:
        db: Database session
        user_id: Owner of the credential
        secret_key: Base32 TOTP secret
        backup_codes: Plain backup codes as shown to the user once
        is_enabled: Whether setup has been confirmed

    Returns:
        The persisted credential
    """
    credential = TwoFactorCredential(
        id=uuid.uuid4(),
        user_id=user_id,
        secret_key=secret_key,
        is_enabled=is_enabled
    )
    credential.backup_codes = [
        TwoFactorBackupCode(code_hash=code_hash)
        for code_hash in {hash_backup_code(code) for code in backup_codes}
    ]

    db.add(credential)
    db.commit()
    db.refresh(credential)
    return credential


def consume_backup_code(db: Session, credential_id: uuid.UUID, code_hash: str) -> bool:
    """
    Redeem a backup code by deleting its row.

    The removal is one conditional DELETE executed by the database, so two
    concurrent redemptions of the same code cannot both succeed: the second
    one finds no row to delete.

    Returns:
        bool: True if this call removed the code
    """
    deleted = db.query(TwoFactorBackupCode).filter(
        TwoFactorBackupCode.credential_id == credential_id,
        TwoFactorBackupCode.code_hash == code_hash
    ).delete(synchronize_session=False)
    return deleted == 1


def count_backup_codes(db: Session, credential_id: uuid.UUID) -> int:
    """Number of unused backup codes left on a credential."""
    return db.query(TwoFactorBackupCode).filter(
        TwoFactorBackupCode.credential_id == credential_id
    ).count()


def mark_verified(db: Session, credential_id: uuid.UUID, verified_at: datetime) -> None:
    """Stamp the last successful verification time."""
    db.query(TwoFactorCredential).filter(
        TwoFactorCredential.id == credential_id
    ).update({"last_verified_at": verified_at}, synchronize_session=False)


def record_attempt(
    db: Session,
    user_id: uuid.UUID,
    attempt_type: TwoFactorType,
    success: bool,
    failure_reason: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None
) -> TwoFactorAttempt:
    """Append a verification attempt to the log."""
    attempt = TwoFactorAttempt(
        user_id=user_id,
        attempt_type=attempt_type,
        success=success,
        failure_reason=None if success else failure_reason,
        ip_address=ip_address,
        user_agent=user_agent
    )
    db.add(attempt)
    return attempt
