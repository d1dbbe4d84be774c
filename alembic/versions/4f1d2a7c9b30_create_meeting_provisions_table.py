"""create meeting_provisions table

Revision ID: 4f1d2a7c9b30
Revises:
Create Date: 2025-03-01 12:00:00.000000

Provisioning ledger for the create-meet function.

One row per appointment, recording the latest attempt:
1. The unique appointment_id serializes concurrent invocations
2. event_id / meeting_url are written as soon as the calendar event exists
3. Rows left in event_created are the orphans listed for reconciliation
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f1d2a7c9b30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the meeting_provisions table."""
    op.create_table(
        'meeting_provisions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('appointment_id', sa.String(length=255), nullable=False),

        # Attempt state
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('request_id', sa.String(length=64), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),

        # External event, once created
        sa.Column('calendar_id', sa.String(length=255), nullable=True),
        sa.Column('event_id', sa.String(length=255), nullable=True),
        sa.Column('meeting_url', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=True),

        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),

        sa.PrimaryKeyConstraint('id'),
    )

    # One ledger row per appointment
    op.create_index(
        op.f('ix_meeting_provisions_appointment_id'),
        'meeting_provisions',
        ['appointment_id'],
        unique=True
    )

    # Reconciliation scans by status
    op.create_index(
        op.f('ix_meeting_provisions_status'),
        'meeting_provisions',
        ['status'],
        unique=False
    )


def downgrade() -> None:
    """Drop the meeting_provisions table."""
    op.drop_index(op.f('ix_meeting_provisions_status'), table_name='meeting_provisions')
    op.drop_index(op.f('ix_meeting_provisions_appointment_id'), table_name='meeting_provisions')
    op.drop_table('meeting_provisions')
