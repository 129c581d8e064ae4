"""Create processed_webhook_events table

Revision ID: 20261018_0006
Revises: 20261018_0005
Create Date: 2026-10-18 00:06:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '20261018_0006'
down_revision: str | None = '20261018_0005'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create processed_webhook_events table."""
    op.create_table(
        'processed_webhook_events',
        sa.Column('event_id', sa.String(255), primary_key=True),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('customer_id', sa.String(255), nullable=True),
        sa.Column('outcome', sa.String(20), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_index('idx_webhook_customer', 'processed_webhook_events', ['customer_id', 'processed_at'])


def downgrade() -> None:
    """Drop processed_webhook_events table."""
    op.drop_index('idx_webhook_customer', table_name='processed_webhook_events')
    op.drop_table('processed_webhook_events')
