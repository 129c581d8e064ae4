"""Create social_media_connections and social_media_posts tables

Revision ID: 20261018_0004
Revises: 20261018_0003
Create Date: 2026-10-18 00:04:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '20261018_0004'
down_revision: str | None = '20261018_0003'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create social media tables."""
    op.create_table(
        'social_media_connections',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('platform', sa.String(20), nullable=False),
        sa.Column('access_token', sa.Text, nullable=False),
        sa.Column('page_id', sa.String(100), nullable=True),
        sa.Column('page_name', sa.String(255), nullable=True),
        sa.Column('instagram_account_id', sa.String(100), nullable=True),
        sa.Column('instagram_username', sa.String(255), nullable=True),
        sa.Column('token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_social_media_connections_user_id', 'social_media_connections', ['user_id'])

    op.create_table(
        'social_media_posts',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('site_id', UUID(as_uuid=True), sa.ForeignKey('sites.id'), nullable=True),
        sa.Column('post_text', sa.Text, nullable=False),
        sa.Column('headline', sa.String(255), nullable=True),
        sa.Column('image_url', sa.Text, nullable=True),
        sa.Column('platforms', sa.JSON, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('facebook_post_id', sa.String(100), nullable=True),
        sa.Column('facebook_post_url', sa.Text, nullable=True),
        sa.Column('instagram_post_id', sa.String(100), nullable=True),
        sa.Column('instagram_post_url', sa.Text, nullable=True),
        sa.Column('error_message', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('draft', 'scheduled', 'published', 'failed')",
            name='social_media_posts_status_check',
        ),
    )

    # Scheduler scans by status and due time
    op.create_index('idx_due_posts', 'social_media_posts', ['status', 'scheduled_at'])
    op.create_index('idx_user_posts', 'social_media_posts', ['user_id', 'scheduled_at'])


def downgrade() -> None:
    """Drop social media tables."""
    op.drop_index('idx_user_posts', table_name='social_media_posts')
    op.drop_index('idx_due_posts', table_name='social_media_posts')
    op.drop_table('social_media_posts')
    op.drop_index('ix_social_media_connections_user_id', table_name='social_media_connections')
    op.drop_table('social_media_connections')
