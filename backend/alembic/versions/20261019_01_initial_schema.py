"""initial orchestrator schema

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from typing import Sequence, Union

revision: str = '20261019_01'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id():
    return sa.Column('id', sa.UUID(), primary_key=True)


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), nullable=True)


def upgrade() -> None:
    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('name', sa.String()),
        sa.Column('role', sa.String(), nullable=False, server_default='employee'),
        sa.Column('designation', sa.String()),
        sa.Column('avatar_url', sa.String()),
        _created_at(),
    )
    op.create_table(
        'teams',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('lead_id', sa.UUID(), sa.ForeignKey('users.id')),
        sa.Column('color', sa.String()),
        _created_at(),
    )
    op.create_table(
        'user_teams',
        _id(),
        sa.Column('user_id', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('team_id', sa.UUID(), sa.ForeignKey('teams.id'), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True)),
        sa.UniqueConstraint('user_id', 'team_id', name='uq_user_team'),
    )
    op.create_table(
        'brands',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('color', sa.String()),
        sa.Column('created_by', sa.UUID(), sa.ForeignKey('users.id')),
        _created_at(),
    )
    op.create_table(
        'brand_managers',
        _id(),
        sa.Column('brand_id', sa.UUID(), sa.ForeignKey('brands.id'), nullable=False),
        sa.Column('manager_id', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        sa.UniqueConstraint('brand_id', 'manager_id', name='uq_brand_manager'),
    )
    op.create_table(
        'briefs',
        _id(),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('status', sa.String(), nullable=False, server_default='draft'),
        sa.Column('assigned_manager_id', sa.UUID(), sa.ForeignKey('users.id')),
        sa.Column('created_by', sa.UUID(), sa.ForeignKey('users.id')),
        sa.Column('brand_id', sa.UUID(), sa.ForeignKey('brands.id')),
        sa.Column('global_priority', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('deadline', sa.DateTime(timezone=True)),
        sa.Column('archived_at', sa.DateTime(timezone=True)),
        sa.Column('archived_by', sa.UUID(), sa.ForeignKey('users.id')),
        _created_at(),
    )
    op.create_table(
        'brief_teams',
        _id(),
        sa.Column('brief_id', sa.UUID(), sa.ForeignKey('briefs.id'), nullable=False),
        sa.Column('team_id', sa.UUID(), sa.ForeignKey('teams.id'), nullable=False),
    )
    op.create_table(
        'tasks',
        _id(),
        sa.Column('brief_id', sa.UUID(), sa.ForeignKey('briefs.id'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('assignee_id', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('assigned_by', sa.UUID(), sa.ForeignKey('users.id')),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='1000'),
        sa.Column('duration', sa.String()),
        sa.Column('duration_minutes', sa.Integer()),
        sa.Column('deadline', sa.DateTime(timezone=True)),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
        sa.Column('blocked_by', sa.JSON()),
        _created_at(),
    )
    op.create_index('ix_tasks_assignee_sort', 'tasks', ['assignee_id', 'sort_order'])
    op.create_table(
        'deliverables',
        _id(),
        sa.Column('task_id', sa.UUID(), sa.ForeignKey('tasks.id'), nullable=False),
        sa.Column('submitted_by', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('link', sa.String()),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('reviewed_by', sa.UUID(), sa.ForeignKey('users.id')),
        sa.Column('review_note', sa.Text()),
        sa.Column('reviewed_at', sa.DateTime(timezone=True)),
        sa.Column('submitted_at', sa.DateTime(timezone=True)),
    )
    op.create_table(
        'comments',
        _id(),
        sa.Column('parent_type', sa.String(), nullable=False),
        sa.Column('parent_id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('mentions', sa.JSON()),
        sa.Column('is_pinned', sa.Boolean(), server_default=sa.false()),
        sa.Column('pinned_by', sa.UUID(), sa.ForeignKey('users.id')),
        _created_at(),
    )
    op.create_index('ix_comments_parent', 'comments', ['parent_type', 'parent_id'])
    op.create_table(
        'comment_reactions',
        _id(),
        sa.Column('comment_id', sa.UUID(), sa.ForeignKey('comments.id'), nullable=False),
        sa.Column('user_id', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('emoji', sa.String(), nullable=False),
    )
    op.create_table(
        'comment_read_receipts',
        _id(),
        sa.Column('user_id', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('brief_id', sa.UUID(), sa.ForeignKey('briefs.id'), nullable=False),
        sa.Column('last_read_at', sa.DateTime(timezone=True)),
        sa.UniqueConstraint('user_id', 'brief_id', name='uq_read_receipt'),
    )
    op.create_table(
        'attachments',
        _id(),
        sa.Column('parent_type', sa.String(), nullable=False),
        sa.Column('parent_id', sa.UUID(), nullable=False),
        sa.Column('file_name', sa.String(), nullable=False),
        sa.Column('file_type', sa.String()),
        sa.Column('file_size', sa.Integer()),
        sa.Column('storage_path', sa.String(), nullable=False),
        sa.Column('uploaded_by', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        _created_at(),
    )
    op.create_table(
        'time_entries',
        _id(),
        sa.Column('task_id', sa.UUID(), sa.ForeignKey('tasks.id'), nullable=False),
        sa.Column('user_id', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True)),
        sa.Column('stopped_at', sa.DateTime(timezone=True)),
        sa.Column('duration_minutes', sa.Integer()),
        sa.Column('is_manual', sa.Boolean(), server_default=sa.false()),
        sa.Column('is_running', sa.Boolean(), server_default=sa.false()),
    )
    op.create_table(
        'brief_templates',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('tasks', sa.JSON()),
        sa.Column('created_by', sa.UUID(), sa.ForeignKey('users.id')),
        _created_at(),
    )
    op.create_table(
        'notifications',
        _id(),
        sa.Column('recipient_id', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('brief_id', sa.UUID(), sa.ForeignKey('briefs.id')),
        sa.Column('task_id', sa.UUID(), sa.ForeignKey('tasks.id')),
        sa.Column('triggered_by', sa.UUID(), sa.ForeignKey('users.id')),
        sa.Column('is_read', sa.Boolean(), server_default=sa.false()),
        _created_at(),
    )
    op.create_index('ix_notifications_recipient', 'notifications', ['recipient_id', 'is_read'])
    op.create_table(
        'activity_log',
        _id(),
        sa.Column('brief_id', sa.UUID(), sa.ForeignKey('briefs.id'), nullable=False),
        sa.Column('task_id', sa.UUID()),
        sa.Column('user_id', sa.UUID(), sa.ForeignKey('users.id')),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('details', sa.JSON()),
        _created_at(),
    )
    op.create_table(
        'invites',
        _id(),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False, server_default='employee'),
        sa.Column('designation', sa.String()),
        sa.Column('team_id', sa.UUID(), sa.ForeignKey('teams.id')),
        sa.Column('token', sa.String(), nullable=False, unique=True),
        sa.Column('created_by', sa.UUID(), sa.ForeignKey('users.id')),
        sa.Column('used', sa.Boolean(), server_default=sa.false()),
        _created_at(),
    )
    op.create_table(
        'jsr_links',
        _id(),
        sa.Column('brand_id', sa.UUID(), sa.ForeignKey('brands.id'), nullable=False),
        sa.Column('token', sa.String(), nullable=False, unique=True),
        sa.Column('label', sa.String()),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_by', sa.UUID(), sa.ForeignKey('users.id')),
        _created_at(),
    )
    op.create_table(
        'jsr_client_tasks',
        _id(),
        sa.Column('jsr_link_id', sa.UUID(), sa.ForeignKey('jsr_links.id'), nullable=False),
        sa.Column('brand_id', sa.UUID(), sa.ForeignKey('brands.id'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('client_name', sa.String()),
        sa.Column('proposed_deadline', sa.DateTime(timezone=True)),
        sa.Column('final_deadline', sa.DateTime(timezone=True)),
        sa.Column('status', sa.String(), nullable=False, server_default='pending_review'),
        sa.Column('linked_task_id', sa.UUID(), sa.ForeignKey('tasks.id')),
        _created_at(),
    )
    op.create_table(
        'direct_messages',
        _id(),
        sa.Column('sender_id', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('recipient_id', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), server_default=sa.false()),
        _created_at(),
    )


def downgrade() -> None:
    op.drop_table('direct_messages')
    op.drop_table('jsr_client_tasks')
    op.drop_table('jsr_links')
    op.drop_table('invites')
    op.drop_table('activity_log')
    op.drop_index('ix_notifications_recipient', table_name='notifications')
    op.drop_table('notifications')
    op.drop_table('brief_templates')
    op.drop_table('time_entries')
    op.drop_table('attachments')
    op.drop_table('comment_read_receipts')
    op.drop_table('comment_reactions')
    op.drop_index('ix_comments_parent', table_name='comments')
    op.drop_table('comments')
    op.drop_table('deliverables')
    op.drop_index('ix_tasks_assignee_sort', table_name='tasks')
    op.drop_table('tasks')
    op.drop_table('brief_teams')
    op.drop_table('briefs')
    op.drop_table('brand_managers')
    op.drop_table('brands')
    op.drop_table('user_teams')
    op.drop_table('teams')
    op.drop_table('users')
