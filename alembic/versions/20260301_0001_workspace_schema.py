"""Workspace schema

Revision ID: 0001
Revises:
Create Date: 2026-03-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users seen through the identity provider
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('username', sa.String(100), nullable=True),
        sa.Column('avatar_url', sa.String(500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, default=True),
        sa.Column('last_signin_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Encrypted GitHub credential and workspace repository
    op.create_table(
        'user_repos',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False, index=True),
        sa.Column('repo_url', sa.String(500), nullable=True),
        sa.Column('repo_owner', sa.String(100), nullable=False),
        sa.Column('repo_name', sa.String(100), nullable=True),
        sa.Column('github_token_encrypted', sa.Text(), nullable=False),
        sa.Column('default_branch', sa.String(100), nullable=False, default='main'),
        sa.Column('is_template_forked', sa.Boolean(), nullable=False, default=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'workspace_settings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False, index=True),
        sa.Column('workspace_name', sa.String(255), nullable=False),
        sa.Column('repo_visibility', sa.String(20), nullable=False, default='public'),
        sa.Column('setup_completed', sa.Boolean(), nullable=False, default=False),
        sa.Column('allow_readers', sa.Boolean(), nullable=False, default=True),
        sa.Column('reader_signup_enabled', sa.Boolean(), nullable=False, default=False),
        sa.Column('readers_can_suggest', sa.Boolean(), nullable=False, default=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'workspace_members',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False, index=True),
        sa.Column('workspace_owner_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, default='reader'),
        sa.Column('is_expert', sa.Boolean(), nullable=False, default=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'safety_acknowledgments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('safety_code', sa.String(100), nullable=False),
        sa.Column('protocol_version', sa.String(20), nullable=False, default='1'),
        sa.Column('signed_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'safety_code', name='uq_safety_ack_user_code'),
    )

    # Event log (append-only)
    op.create_table(
        'event_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_event_logs_entity_time', 'event_logs', ['entity_type', 'entity_id', 'created_at'])
    op.create_index('ix_event_logs_type_user', 'event_logs', ['event_type', 'user_id'])


def downgrade() -> None:
    op.drop_table('event_logs')
    op.drop_table('safety_acknowledgments')
    op.drop_table('workspace_members')
    op.drop_table('workspace_settings')
    op.drop_table('user_repos')
    op.drop_table('users')
