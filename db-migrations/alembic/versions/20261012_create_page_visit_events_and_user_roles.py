"""
Create page_visit_events and user_roles tables

Revision ID: 20261012
Revises:
Create Date: 2026-10-12 10:00:00.000000

"""
revision = '20261012'  # create_page_visit_events_and_user_roles
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def upgrade():
    op.create_table(
        'page_visit_events',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('page_path', sa.String(512), nullable=False),
        sa.Column('visitor_id', sa.String(64), nullable=True),
        sa.Column('referrer', sa.String(1024), nullable=True),
        sa.Column('user_agent', sa.String(512), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    # Summaries read the log newest first and group by page
    op.create_index('idx_page_visit_events_created_at', 'page_visit_events', ['created_at'])
    op.create_index('idx_page_visit_events_page_path', 'page_visit_events', ['page_path'])

    op.create_table(
        'user_roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('role', sa.String(16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'role', name='uq_user_roles_user_id_role'),
        sa.CheckConstraint("role IN ('admin', 'user')", name='ck_user_roles_role'),
    )
    op.create_index('ix_user_roles_user_id', 'user_roles', ['user_id'])


def downgrade():
    op.drop_index('ix_user_roles_user_id', 'user_roles')
    op.drop_table('user_roles')

    op.drop_index('idx_page_visit_events_page_path', 'page_visit_events')
    op.drop_index('idx_page_visit_events_created_at', 'page_visit_events')
    op.drop_table('page_visit_events')
