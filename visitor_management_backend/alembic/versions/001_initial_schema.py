"""Initial schema: visitors, slideshow items, layout configs, system settings

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table(
        'visitors',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('company', sa.String(), nullable=True),
        sa.Column('purpose', sa.String(), nullable=True),
        sa.Column('host', sa.String(), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('badge_number', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        # checked-out visits carry an end time, active ones do not
        sa.CheckConstraint('(end_time IS NULL) = is_active', name='ck_visitors_end_time_active'),
    )
    op.create_index('ix_visitors_start_time', 'visitors', ['start_time'])
    op.create_index('ix_visitors_is_active', 'visitors', ['is_active'])

    op.create_table(
        'slideshow_items',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('display_time', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('order', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('background_color', sa.String(7), nullable=False, server_default='#1e40af'),
        sa.Column('text_color', sa.String(7), nullable=False, server_default='#ffffff'),
        *_timestamps(),
    )

    op.create_table(
        'layout_configs',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('header_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('header_text', sa.String(), nullable=False, server_default=''),
        sa.Column('header_color', sa.String(7), nullable=False),
        sa.Column('header_text_color', sa.String(7), nullable=False),
        sa.Column('footer_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('footer_text', sa.String(), nullable=False, server_default=''),
        sa.Column('footer_color', sa.String(7), nullable=False),
        sa.Column('footer_text_color', sa.String(7), nullable=False),
        sa.Column('background_color', sa.String(7), nullable=False),
        sa.Column('background_image_url', sa.String(), nullable=True),
        sa.Column('primary_color', sa.String(7), nullable=False),
        sa.Column('secondary_color', sa.String(7), nullable=False),
        sa.Column('text_color', sa.String(7), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_layout_configs_is_active', 'layout_configs', ['is_active'])

    op.create_table(
        'system_settings',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('site_name', sa.String(), nullable=False),
        sa.Column('logo_url', sa.String(), nullable=True),
        sa.Column('company_name', sa.String(), nullable=False),
        sa.Column('language', sa.String(5), nullable=False, server_default='de'),
        sa.Column('timezone', sa.String(), nullable=False, server_default='Europe/Berlin'),
        sa.Column('slideshow_interval', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('auto_checkout_time', sa.Integer(), nullable=False, server_default='18'),
        sa.Column('max_upload_size', sa.Integer(), nullable=False, server_default='20'),
        sa.Column('tablet_display_mode', sa.String(), nullable=False, server_default='auto'),
        sa.Column('visitor_display_limit', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('enable_notifications', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('enable_auto_checkout', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )


def downgrade():
    op.drop_table('system_settings')
    op.drop_index('ix_layout_configs_is_active', table_name='layout_configs')
    op.drop_table('layout_configs')
    op.drop_table('slideshow_items')
    op.drop_index('ix_visitors_is_active', table_name='visitors')
    op.drop_index('ix_visitors_start_time', table_name='visitors')
    op.drop_table('visitors')
