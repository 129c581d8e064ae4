"""Create form_submissions table

Revision ID: 20261018_0005
Revises: 20261018_0004
Create Date: 2026-10-18 00:05:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '20261018_0005'
down_revision: str | None = '20261018_0004'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create form_submissions table."""
    op.create_table(
        'form_submissions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('site_id', UUID(as_uuid=True), sa.ForeignKey('sites.id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='new'),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status IN ('new', 'read', 'contacted')", name='form_submissions_status_check'),
    )

    op.create_index('idx_site_submissions', 'form_submissions', ['site_id', 'submitted_at'])


def downgrade() -> None:
    """Drop form_submissions table."""
    op.drop_index('idx_site_submissions', table_name='form_submissions')
    op.drop_table('form_submissions')
