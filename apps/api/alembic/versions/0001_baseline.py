"""Baseline migration - churches, pathways, members, tasks, forms, academy

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Portable across PostgreSQL and SQLite: generic Uuid/JSON types, no
server-side extensions.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column('id', sa.Uuid(), primary_key=True)


def _church_fk() -> sa.Column:
    return sa.Column(
        'church_id', sa.Uuid(), sa.ForeignKey('churches.id', ondelete='CASCADE'), nullable=False
    )


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Tenancy and staff
    # ==========================================================================
    op.create_table(
        'churches',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        sa.Column('website', sa.String(255)),
        sa.Column('address', sa.Text()),
        sa.Column('timezone', sa.String(50), nullable=False),
        sa.Column('auto_welcome', sa.Boolean(), nullable=False),
        _ts('created_at'),
    )
    op.create_table(
        'users',
        _id(),
        _church_fk(),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(50)),
        sa.Column('role', sa.String(30), nullable=False),
        sa.Column('password_hash', sa.String(255)),
        sa.Column('token_version', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _ts('created_at'),
    )
    op.create_index('idx_users_church', 'users', ['church_id'])

    # ==========================================================================
    # Pathways
    # ==========================================================================
    op.create_table(
        'stages',
        _id(),
        _church_fk(),
        sa.Column('pathway', sa.String(30), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('auto_advance_type', sa.String(30)),
        sa.Column('auto_advance_value', sa.String(255)),
    )
    op.create_index('idx_stages_church_pathway', 'stages', ['church_id', 'pathway', 'order'])

    op.create_table(
        'automation_rules',
        _id(),
        _church_fk(),
        sa.Column(
            'stage_id', sa.Uuid(), sa.ForeignKey('stages.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('task_description', sa.Text(), nullable=False),
        sa.Column('days_due', sa.Integer(), nullable=False),
        sa.Column('priority', sa.String(10), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False),
    )
    op.create_index('idx_automation_rules_stage', 'automation_rules', ['church_id', 'stage_id'])

    # ==========================================================================
    # Members and history
    # ==========================================================================
    op.create_table(
        'members',
        _id(),
        _church_fk(),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        sa.Column('photo_url', sa.Text()),
        sa.Column('pathway', sa.String(30), nullable=False),
        sa.Column('current_stage_id', sa.Uuid(), sa.ForeignKey('stages.id'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('joined_date', sa.Date(), nullable=False),
        _ts('last_stage_change_date', nullable=True),
        sa.Column('assigned_to_id', sa.Uuid()),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('date_of_birth', sa.Date()),
        sa.Column('gender', sa.String(20)),
        sa.Column('marital_status', sa.String(20)),
        sa.Column('address', sa.Text()),
        sa.Column('city', sa.String(100)),
        sa.Column('state', sa.String(50)),
        sa.Column('zip_code', sa.String(20)),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_index('idx_members_church_pathway', 'members', ['church_id', 'pathway', 'status'])
    op.create_index('idx_members_church_email', 'members', ['church_id', 'email'])
    op.create_index('idx_members_assigned', 'members', ['church_id', 'assigned_to_id'])

    member_fk = lambda: sa.Column(  # noqa: E731
        'member_id', sa.Uuid(), sa.ForeignKey('members.id', ondelete='CASCADE'), nullable=False
    )
    op.create_table(
        'member_notes',
        _id(),
        member_fk(),
        _ts('timestamp'),
        sa.Column('author_id', sa.Uuid()),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('kind', sa.String(10), nullable=False),
    )
    op.create_index('idx_member_notes_member', 'member_notes', ['member_id', 'timestamp'])
    op.create_table(
        'message_logs',
        _id(),
        member_fk(),
        sa.Column('channel', sa.String(10), nullable=False),
        sa.Column('direction', sa.String(10), nullable=False),
        _ts('timestamp'),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('sent_by', sa.String(255), nullable=False),
    )
    op.create_index('idx_message_logs_member', 'message_logs', ['member_id', 'timestamp'])
    op.create_table(
        'member_resources',
        _id(),
        member_fk(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('type', sa.String(10), nullable=False),
        _ts('date_added'),
    )

    # ==========================================================================
    # Tasks
    # ==========================================================================
    op.create_table(
        'tasks',
        _id(),
        _church_fk(),
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False),
        _ts('completed_at', nullable=True),
        sa.Column('priority', sa.String(10), nullable=False),
        sa.Column('assigned_to_id', sa.Uuid()),
        _ts('created_at'),
    )
    op.create_index(
        'idx_tasks_church_assignee', 'tasks', ['church_id', 'assigned_to_id', 'completed']
    )
    op.create_index('idx_tasks_member', 'tasks', ['member_id'])
    op.create_index('idx_tasks_due', 'tasks', ['church_id', 'due_date'])

    # ==========================================================================
    # Intake: sheet integrations and forms
    # ==========================================================================
    op.create_table(
        'integration_configs',
        _id(),
        _church_fk(),
        sa.Column('source_name', sa.String(255), nullable=False),
        sa.Column('sheet_url', sa.Text(), nullable=False),
        sa.Column('target_pathway', sa.String(30), nullable=False),
        sa.Column('target_stage_id', sa.Uuid(), sa.ForeignKey('stages.id'), nullable=False),
        sa.Column('auto_create_task', sa.Boolean(), nullable=False),
        sa.Column('task_description', sa.Text(), nullable=False),
        sa.Column('auto_welcome', sa.Boolean(), nullable=False),
        _ts('last_sync', nullable=True),
        sa.Column('status', sa.String(10), nullable=False),
        sa.Column('last_error', sa.Text()),
        _ts('created_at'),
    )
    op.create_index('idx_integrations_church', 'integration_configs', ['church_id'])

    op.create_table(
        'forms',
        _id(),
        _church_fk(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('slug', sa.String(50), nullable=False, unique=True),
        sa.Column('fields', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('target_pathway', sa.String(30)),
        sa.Column('target_stage_id', sa.Uuid(), sa.ForeignKey('stages.id')),
        _ts('created_at'),
    )
    op.create_index('idx_forms_church', 'forms', ['church_id'])
    op.create_table(
        'form_submissions',
        _id(),
        sa.Column(
            'form_id', sa.Uuid(), sa.ForeignKey('forms.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('member_id', sa.Uuid()),
        _ts('submitted_at'),
    )
    op.create_index('idx_form_submissions_form', 'form_submissions', ['form_id', 'submitted_at'])

    # ==========================================================================
    # Academy
    # ==========================================================================
    op.create_table(
        'academy_tracks',
        _id(),
        _church_fk(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False),
        _ts('created_at'),
    )
    op.create_index('idx_academy_tracks_church', 'academy_tracks', ['church_id', 'order'])
    op.create_table(
        'academy_modules',
        _id(),
        sa.Column(
            'track_id',
            sa.Uuid(),
            sa.ForeignKey('academy_tracks.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('video_url', sa.Text()),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(10), nullable=False),
        sa.Column('required_module_id', sa.Uuid()),
    )
    op.create_table(
        'academy_quizzes',
        _id(),
        sa.Column(
            'module_id',
            sa.Uuid(),
            sa.ForeignKey('academy_modules.id', ondelete='CASCADE'),
            nullable=False,
            unique=True,
        ),
        sa.Column('passing_score', sa.Integer(), nullable=False),
    )
    op.create_table(
        'academy_quiz_questions',
        _id(),
        sa.Column(
            'quiz_id',
            sa.Uuid(),
            sa.ForeignKey('academy_quizzes.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('options', sa.JSON(), nullable=False),
        sa.Column('correct_option_id', sa.String(50), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
    )
    op.create_table(
        'academy_enrollments',
        _id(),
        sa.Column(
            'user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column(
            'track_id',
            sa.Uuid(),
            sa.ForeignKey('academy_tracks.id', ondelete='CASCADE'),
            nullable=False,
        ),
        _ts('enrolled_at'),
        _ts('completed_at', nullable=True),
        sa.UniqueConstraint('user_id', 'track_id', name='uq_enrollment_user_track'),
    )
    op.create_table(
        'academy_module_progress',
        _id(),
        sa.Column(
            'user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column(
            'module_id',
            sa.Uuid(),
            sa.ForeignKey('academy_modules.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('status', sa.String(10), nullable=False),
        sa.Column('video_watched', sa.Boolean(), nullable=False),
        sa.Column('quiz_score', sa.Integer()),
        sa.Column('quiz_passed', sa.Boolean(), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False),
        _ts('started_at', nullable=True),
        _ts('completed_at', nullable=True),
        sa.UniqueConstraint('user_id', 'module_id', name='uq_progress_user_module'),
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    for table in (
        'academy_module_progress',
        'academy_enrollments',
        'academy_quiz_questions',
        'academy_quizzes',
        'academy_modules',
        'academy_tracks',
        'form_submissions',
        'forms',
        'integration_configs',
        'tasks',
        'member_resources',
        'message_logs',
        'member_notes',
        'members',
        'automation_rules',
        'stages',
        'users',
        'churches',
    ):
        op.drop_table(table)
