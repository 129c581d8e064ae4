"""Create notifications table

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18 00:02:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '20261018_0002'
down_revision: str | None = '20261018_0001'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create notifications table."""
    op.create_table(
        'notifications',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text, nullable=True),
        sa.Column('link', sa.Text, nullable=True),
        sa.Column('read', sa.Boolean, nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_index('idx_user_notifications', 'notifications', ['user_id', 'created_at'])
    op.create_index('idx_user_unread', 'notifications', ['user_id', 'read'])


def downgrade() -> None:
    """Drop notifications table."""
    op.drop_index('idx_user_unread', table_name='notifications')
    op.drop_index('idx_user_notifications', table_name='notifications')
    op.drop_table('notifications')
