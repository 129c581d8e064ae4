"""Create users, user_roles, sites and website_assets tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:01:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '20261018_0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create tenant account tables."""
    op.create_table(
        'users',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('business_name', sa.String(255), nullable=True),
        sa.Column('plan', sa.String(20), nullable=False, server_default='starter'),
        sa.Column('stripe_customer_id', sa.String(255), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(255), nullable=True),
        sa.Column('subscription_status', sa.String(20), nullable=True),
        sa.Column('subscription_start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('subscription_end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('tickets_used_this_period', sa.Integer, nullable=False, server_default='0'),
        sa.Column('billing_period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('freepik_downloads_used', sa.Integer, nullable=False, server_default='0'),
        sa.Column('freepik_period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('onboarding_complete', sa.Boolean, nullable=False, server_default='false'),
        sa.Column('onboarding_step', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("plan IN ('starter', 'professional', 'premium')", name='users_plan_check'),
    )
    op.create_index('ix_users_stripe_customer_id', 'users', ['stripe_customer_id'])

    op.create_table(
        'user_roles',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.UniqueConstraint('user_id', 'role', name='user_roles_user_role_key'),
        sa.CheckConstraint("role IN ('admin', 'user')", name='user_roles_role_check'),
    )

    op.create_table(
        'sites',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('site_name', sa.String(255), nullable=False),
        sa.Column('site_url', sa.Text, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='building'),
        sa.Column('launched_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_sites_user_id', 'sites', ['user_id'])

    op.create_table(
        'website_assets',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_path', sa.Text, nullable=False),
        sa.Column('asset_type', sa.String(50), nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=True),
        sa.Column('file_size', sa.Integer, nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default='true'),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_user_assets', 'website_assets', ['user_id', 'uploaded_at'])


def downgrade() -> None:
    """Drop tenant account tables."""
    op.drop_index('idx_user_assets', table_name='website_assets')
    op.drop_table('website_assets')
    op.drop_index('ix_sites_user_id', table_name='sites')
    op.drop_table('sites')
    op.drop_table('user_roles')
    op.drop_index('ix_users_stripe_customer_id', table_name='users')
    op.drop_table('users')
