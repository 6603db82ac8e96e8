"""create_bill_reminder_tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1b2c3d4e5f6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('users',
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email_reminders_enabled', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('id', sa.UUID(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table('recurring_bills',
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), server_default='', nullable=False),
        sa.Column('amount', sa.Numeric(precision=18, scale=2), nullable=True),
        sa.Column('currency', sa.String(length=10), server_default='INR', nullable=False),
        sa.Column('category', sa.String(length=50), server_default='other', nullable=False),
        sa.Column('bill_cycle', sa.String(length=20), server_default='monthly', nullable=False),
        sa.Column('due_day', sa.Integer(), server_default=sa.text('1'), nullable=False),
        sa.Column('custom_interval_days', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('timezone', sa.String(length=64), server_default='Asia/Kolkata', nullable=False),
        sa.Column('reminder_offsets', sa.JSON(), server_default=sa.text("'[3, 1]'"), nullable=False),
        sa.Column('reminders_sent', sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.Column('marked_paid_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='active', nullable=False),
        sa.Column('is_auto_pay', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('notes', sa.Text(), server_default='', nullable=False),
        sa.Column('id', sa.UUID(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('due_day BETWEEN 0 AND 31', name='ck_recurring_bills_due_day'),
        sa.CheckConstraint(
            "(bill_cycle <> 'weekly' OR due_day BETWEEN 0 AND 6) AND "
            "(bill_cycle NOT IN ('monthly', 'quarterly', 'yearly') OR due_day BETWEEN 1 AND 31)",
            name='ck_recurring_bills_due_day_per_cycle',
        ),
        sa.CheckConstraint(
            'custom_interval_days IS NULL OR custom_interval_days BETWEEN 1 AND 365',
            name='ck_recurring_bills_custom_interval',
        ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_recurring_bills_user_id'), 'recurring_bills', ['user_id'], unique=False)
    op.create_index(op.f('ix_recurring_bills_status'), 'recurring_bills', ['status'], unique=False)
    op.create_index('ix_recurring_bills_user_status', 'recurring_bills', ['user_id', 'status'], unique=False)
    op.create_index('ix_recurring_bills_status_start', 'recurring_bills', ['status', 'start_date'], unique=False)

    op.create_table('notifications',
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.String(length=1000), nullable=False),
        sa.Column('source_type', sa.String(length=50), server_default='other', nullable=False),
        sa.Column('source_id', sa.UUID(), nullable=True),
        sa.Column('details', sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.Column('action_url', sa.String(length=255), nullable=True),
        sa.Column('action_label', sa.String(length=50), nullable=True),
        sa.Column('is_read', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_dismissed', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('dismissed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('idempotency_key', sa.String(length=255), nullable=False),
        sa.Column('priority', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('channel_in_app', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('channel_email', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('email_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('id', sa.UUID(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key')
    )
    op.create_index(op.f('ix_notifications_user_id'), 'notifications', ['user_id'], unique=False)
    op.create_index(op.f('ix_notifications_type'), 'notifications', ['type'], unique=False)
    op.create_index(op.f('ix_notifications_source_id'), 'notifications', ['source_id'], unique=False)
    op.create_index(op.f('ix_notifications_expires_at'), 'notifications', ['expires_at'], unique=False)
    op.create_index('ix_notifications_user_read_created', 'notifications', ['user_id', 'is_read', 'created_at'], unique=False)
    op.create_index('ix_notifications_user_dismissed_created', 'notifications', ['user_id', 'is_dismissed', 'created_at'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_notifications_user_dismissed_created', table_name='notifications')
    op.drop_index('ix_notifications_user_read_created', table_name='notifications')
    op.drop_index(op.f('ix_notifications_expires_at'), table_name='notifications')
    op.drop_index(op.f('ix_notifications_source_id'), table_name='notifications')
    op.drop_index(op.f('ix_notifications_type'), table_name='notifications')
    op.drop_index(op.f('ix_notifications_user_id'), table_name='notifications')
    op.drop_table('notifications')

    op.drop_index('ix_recurring_bills_status_start', table_name='recurring_bills')
    op.drop_index('ix_recurring_bills_user_status', table_name='recurring_bills')
    op.drop_index(op.f('ix_recurring_bills_status'), table_name='recurring_bills')
    op.drop_index(op.f('ix_recurring_bills_user_id'), table_name='recurring_bills')
    op.drop_table('recurring_bills')

    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
