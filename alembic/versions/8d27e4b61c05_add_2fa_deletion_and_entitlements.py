"""add_2fa_deletion_and_entitlements

Revision ID: 8d27e4b61c05
Revises: 3f1a9c2e7b40
Create Date: 2026-03-09 16:41:03.087215

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8d27e4b61c05'
down_revision: Union[str, Sequence[str], None] = '3f1a9c2e7b40'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

two_factor_type = sa.Enum('totp', 'backup', name='twofactortype')
deletion_status = sa.Enum('scheduled', 'processing', 'completed', 'cancelled', name='deletionstatus')


def upgrade() -> None:
    """
    Add 2FA credentials, backup codes and the attempt log, account deletion
    requests, and app entitlements.
    """
    op.create_table(
        'user_2fa',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('secret_key', sa.String(length=64), nullable=False),
        sa.Column('is_enabled', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('last_verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_user_2fa_id'), 'user_2fa', ['id'], unique=False)
    op.create_index(op.f('ix_user_2fa_user_id'), 'user_2fa', ['user_id'], unique=True)

    # One row per unused code; redeeming a code deletes its row
    op.create_table(
        'user_2fa_backup_codes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('credential_id', sa.UUID(), nullable=False),
        sa.Column('code_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['credential_id'], ['user_2fa.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('credential_id', 'code_hash', name='uq_user_2fa_backup_codes_credential_code'),
    )
    op.create_index(op.f('ix_user_2fa_backup_codes_id'), 'user_2fa_backup_codes', ['id'], unique=False)
    op.create_index(op.f('ix_user_2fa_backup_codes_credential_id'), 'user_2fa_backup_codes', ['credential_id'], unique=False)

    op.create_table(
        'user_2fa_attempts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('failure_reason', sa.String(), nullable=True),
        sa.Column('attempt_type', two_factor_type, nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_user_2fa_attempts_id'), 'user_2fa_attempts', ['id'], unique=False)
    op.create_index(op.f('ix_user_2fa_attempts_user_id'), 'user_2fa_attempts', ['user_id'], unique=False)
    op.create_index('ix_user_2fa_attempts_user_created', 'user_2fa_attempts', ['user_id', 'created_at'], unique=False)

    op.create_table(
        'account_deletion_requests',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('status', deletion_status, server_default='scheduled', nullable=False),
        sa.Column('requested_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=False),
        sa.Column('processing_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_token', sa.String(length=64), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('requested_from_ip', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cancellation_token'),
    )
    op.create_index(op.f('ix_account_deletion_requests_id'), 'account_deletion_requests', ['id'], unique=False)
    op.create_index(op.f('ix_account_deletion_requests_user_id'), 'account_deletion_requests', ['user_id'], unique=True)
    op.create_index(op.f('ix_account_deletion_requests_status'), 'account_deletion_requests', ['status'], unique=False)
    op.create_index(
        'ix_account_deletion_requests_status_scheduled_for',
        'account_deletion_requests',
        ['status', 'scheduled_for'],
        unique=False
    )

    op.create_table(
        'entitlements',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('app_id', sa.String(), nullable=False),
        sa.Column('active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('grant_type', sa.String(length=32), server_default='purchase', nullable=False),
        sa.Column('granted_by', sa.UUID(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_entitlements_id'), 'entitlements', ['id'], unique=False)
    op.create_index(op.f('ix_entitlements_user_id'), 'entitlements', ['user_id'], unique=False)
    op.create_index(op.f('ix_entitlements_app_id'), 'entitlements', ['app_id'], unique=False)


def downgrade() -> None:
    op.drop_table('entitlements')
    op.drop_index('ix_account_deletion_requests_status_scheduled_for', table_name='account_deletion_requests')
    op.drop_table('account_deletion_requests')
    op.drop_index('ix_user_2fa_attempts_user_created', table_name='user_2fa_attempts')
    op.drop_table('user_2fa_attempts')
    op.drop_table('user_2fa_backup_codes')
    op.drop_table('user_2fa')

    deletion_status.drop(op.get_bind(), checkfirst=True)
    two_factor_type.drop(op.get_bind(), checkfirst=True)
