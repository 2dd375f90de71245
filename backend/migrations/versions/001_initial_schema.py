"""Initial schema: users, projects, analysis runs and code issues

Revision ID: 001_initial
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # Create users table
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('uuid_generate_v4()')),
        sa.Column('github_id', sa.BigInteger(), nullable=True, unique=True),
        sa.Column('github_login', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('github_access_token', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create projects table
    op.create_table(
        'projects',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('uuid_generate_v4()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('github_repo_id', sa.BigInteger(), nullable=False),
        sa.Column('github_owner', sa.String(length=255), nullable=False),
        sa.Column('github_repo_name', sa.String(length=255), nullable=False),
        sa.Column('default_branch', sa.String(length=100), server_default='main'),
        sa.Column('webhook_id', sa.BigInteger(), nullable=True),
        sa.Column('webhook_secret', sa.String(length=128), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='active'),
        sa.Column('custom_rules', sa.JSON(), server_default='[]'),
        sa.Column('owner_email', sa.String(length=255), nullable=True),
        sa.Column('notification_prefs', sa.JSON(), server_default='{}'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), onupdate=sa.func.now()),
    )
    op.create_check_constraint('ck_projects_status', 'projects', "status IN ('active', 'paused', 'stopped')")
    op.create_index('idx_projects_user', 'projects', ['user_id'])
    op.create_index('idx_projects_github_repo', 'projects', ['github_repo_id'])

    # Create analysis_runs table
    op.create_table(
        'analysis_runs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('uuid_generate_v4()')),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('commit_sha', sa.String(length=255), nullable=False),
        sa.Column('branch', sa.String(length=255), nullable=False),
        sa.Column('trigger_type', sa.String(length=20), nullable=False),
        sa.Column('pr_number', sa.Integer(), nullable=True),
        sa.Column('author', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='running'),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('issue_counts', sa.JSON(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('email_status', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_check_constraint('ck_runs_status', 'analysis_runs', "status IN ('running', 'completed', 'failed')")
    op.create_check_constraint('ck_runs_trigger_type', 'analysis_runs', "trigger_type IN ('push', 'pull_request')")
    op.create_check_constraint('ck_runs_email_status', 'analysis_runs', "email_status IS NULL OR email_status IN ('sent', 'failed')")
    op.create_index('idx_runs_project', 'analysis_runs', ['project_id'])
    op.create_index('idx_runs_project_created', 'analysis_runs', ['project_id', 'created_at'])

    # Create code_issues table
    op.create_table(
        'code_issues',
        sa.Column('id', sa.String(length=80), primary_key=True),
        sa.Column('run_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('analysis_runs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('file_path', sa.String(length=1000), nullable=False),
        sa.Column('line', sa.Integer(), nullable=False),
        sa.Column('end_line', sa.Integer(), nullable=True),
        sa.Column('severity', sa.String(length=20), nullable=False),
        sa.Column('category', sa.String(length=30), nullable=False),
        sa.Column('rule_id', sa.String(length=50), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('explanation', sa.Text(), server_default=''),
        sa.Column('suggested_fix', sa.Text(), nullable=True),
        sa.Column('code_snippet', sa.Text(), nullable=True),
        sa.Column('is_muted', sa.Boolean(), server_default='false'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_check_constraint('ck_issues_severity', 'code_issues', "severity IN ('critical', 'high', 'medium', 'low', 'info')")
    op.create_check_constraint('ck_issues_category', 'code_issues', "category IN ('security', 'performance', 'readability', 'bug', 'test', 'style')")
    op.create_index('idx_issues_run', 'code_issues', ['run_id'])
    op.create_index('idx_issues_project_severity', 'code_issues', ['project_id', 'severity'])


def downgrade() -> None:
    op.drop_table('code_issues')
    op.drop_table('analysis_runs')
    op.drop_table('projects')
    op.drop_table('users')
    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')
