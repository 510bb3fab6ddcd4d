"""initial registry schema

Revision ID: 0001a7c3e9d2
Revises:
Create Date: 2026-10-18

Users, sessions, packages with their maintainers and versions, and the jobs
table used to track GitHub sync requests. Favorites live in Redis and have no
table here.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '0001a7c3e9d2'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('username', sa.String(length=191), nullable=False),
        sa.Column('email', sa.String(length=191), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('roles', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('github_id', sa.String(length=255), nullable=True),
        sa.Column('github_token', sa.String(), nullable=True),
        sa.Column('github_scope', sa.String(length=255), nullable=True),
        sa.Column('failure_notifications', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('api_token', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_sessions_user_id', 'sessions', ['user_id'])

    op.create_table(
        'packages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=191), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('readme', sa.Text(), nullable=True),
        sa.Column('abandoned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('replacement_package', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('indexed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('dumped_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_packages_name', 'packages', ['name'], unique=True)

    op.create_table(
        'maintainers_packages',
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('package_id', sa.Integer(), sa.ForeignKey('packages.id'), primary_key=True),
    )
    op.create_index('ix_maintainers_packages_package_id', 'maintainers_packages', ['package_id'])

    op.create_table(
        'versions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('package_id', sa.Integer(), sa.ForeignKey('packages.id'), nullable=False),
        sa.Column('version', sa.String(length=191), nullable=False),
        sa.Column('normalized_version', sa.String(length=191), nullable=False),
        sa.Column('released_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('package_id', 'normalized_version', name='uq_versions_package_normalized'),
    )
    op.create_index('ix_versions_package_id', 'versions', ['package_id'])

    op.create_table(
        'jobs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='queued'),
        sa.Column('payload', sa.JSON(), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('executed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_jobs_type', 'jobs', ['type'])
    op.create_index('ix_jobs_user_id', 'jobs', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_jobs_user_id', table_name='jobs')
    op.drop_index('ix_jobs_type', table_name='jobs')
    op.drop_table('jobs')
    op.drop_index('ix_versions_package_id', table_name='versions')
    op.drop_table('versions')
    op.drop_index('ix_maintainers_packages_package_id', table_name='maintainers_packages')
    op.drop_table('maintainers_packages')
    op.drop_index('ix_packages_name', table_name='packages')
    op.drop_table('packages')
    op.drop_index('ix_sessions_user_id', table_name='sessions')
    op.drop_table('sessions')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
