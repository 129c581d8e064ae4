"""Create update_tickets, ticket_messages and ticket_message_reads tables

Revision ID: 20261018_0003
Revises: 20261018_0002
Create Date: 2026-10-18 00:03:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '20261018_0003'
down_revision: str | None = '20261018_0002'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create support ticket tables."""
    op.create_table(
        'update_tickets',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=False),
        sa.Column('priority', sa.String(20), nullable=False, server_default='normal'),
        sa.Column('status', sa.String(20), nullable=False, server_default='open'),
        sa.Column('file_urls', sa.JSON, nullable=True),
        sa.Column('admin_notes', sa.Text, nullable=True),
        sa.Column('assigned_to', UUID(as_uuid=True), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_message_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('open', 'pending', 'in_progress', 'completed', 'closed')",
            name='update_tickets_status_check',
        ),
        sa.CheckConstraint(
            "priority IN ('urgent', 'high', 'normal', 'low')",
            name='update_tickets_priority_check',
        ),
    )
    op.create_index('ix_update_tickets_user_id', 'update_tickets', ['user_id'])

    op.create_table(
        'ticket_messages',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('ticket_id', UUID(as_uuid=True), sa.ForeignKey('update_tickets.id'), nullable=False),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('is_admin', sa.Boolean, nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_ticket_messages', 'ticket_messages', ['ticket_id', 'created_at'])

    op.create_table(
        'ticket_message_reads',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('ticket_id', UUID(as_uuid=True), sa.ForeignKey('update_tickets.id'), nullable=False),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('last_read_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('last_read_message_id', UUID(as_uuid=True), sa.ForeignKey('ticket_messages.id'), nullable=True),
        sa.UniqueConstraint('ticket_id', 'user_id', name='ticket_message_reads_ticket_user_key'),
    )


def downgrade() -> None:
    """Drop support ticket tables."""
    op.drop_table('ticket_message_reads')
    op.drop_index('idx_ticket_messages', table_name='ticket_messages')
    op.drop_table('ticket_messages')
    op.drop_index('ix_update_tickets_user_id', table_name='update_tickets')
    op.drop_table('update_tickets')
