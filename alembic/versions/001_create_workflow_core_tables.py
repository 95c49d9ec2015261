"""Create workflow instance and approval tables

Revision ID: 001_create_workflow_core_tables
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_create_workflow_core_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create instance, history, approval, approver and decision tables."""
    op.create_table(
        'workflow_instances',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('definition_id', sa.String(), nullable=False),
        sa.Column('definition_version', sa.String(), nullable=True),
        sa.Column('definition_snapshot', sa.JSON(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('current_step_id', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('context', sa.JSON(), nullable=True),
        sa.Column('priority', sa.String(), nullable=False, server_default='normal'),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('started_by', sa.String(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_workflow_instances_definition_id', 'workflow_instances', ['definition_id'])
    op.create_index('ix_workflow_instances_status', 'workflow_instances', ['status'])

    op.create_table(
        'workflow_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column('instance_id', sa.Uuid(), sa.ForeignKey('workflow_instances.id'), nullable=False),
        sa.Column('step_id', sa.String(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('payload_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('performed_by', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_workflow_history_instance_id', 'workflow_history', ['instance_id'])
    op.create_index('ix_workflow_history_instance_created', 'workflow_history', ['instance_id', 'created_at'])

    op.create_table(
        'approval_requests',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('workflow_instance_id', sa.Uuid(), nullable=True),
        sa.Column('entity_type', sa.String(), nullable=True),
        sa.Column('entity_id', sa.String(), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.String(), nullable=False),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_approval_requests_type', 'approval_requests', ['type'])
    op.create_index('ix_approval_requests_status', 'approval_requests', ['status'])
    op.create_index('ix_approval_requests_created_by', 'approval_requests', ['created_by'])
    op.create_index('ix_approval_requests_workflow_instance_id', 'approval_requests', ['workflow_instance_id'])

    op.create_table(
        'approval_approvers',
        sa.Column('id', sa.Uuid(), primary_key=True, nullable=False),
        sa.Column('request_id', sa.Uuid(), sa.ForeignKey('approval_requests.id'), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('required', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('decided_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('request_id', 'user_id', name='uq_approval_approvers_request_user'),
    )
    op.create_index('ix_approval_approvers_request_id', 'approval_approvers', ['request_id'])
    op.create_index('ix_approval_approvers_user_id', 'approval_approvers', ['user_id'])

    op.create_table(
        'approval_decisions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column('request_id', sa.Uuid(), sa.ForeignKey('approval_requests.id'), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('decision', sa.String(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_approval_decisions_request_id', 'approval_decisions', ['request_id'])
    op.create_index('ix_approval_decisions_user_id', 'approval_decisions', ['user_id'])


def downgrade() -> None:
    """Drop the workflow core tables."""
    op.drop_table('approval_decisions')
    op.drop_table('approval_approvers')
    op.drop_table('approval_requests')
    op.drop_table('workflow_history')
    op.drop_table('workflow_instances')
