"""Initial report tables

Revision ID: 4c1d9e0b7a21
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '4c1d9e0b7a21'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create nodes table (last apply report FK is added once reports exists)
    op.create_table(
        'nodes',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('reported_at', sa.DateTime),
        sa.Column('last_apply_report_id', sa.Integer),
        sa.Column('status', sa.String(20), server_default='unchanged', nullable=False),
        sa.UniqueConstraint('name', name='uq_nodes_name'),
    )
    op.create_index('ix_nodes_reported_at', 'nodes', ['reported_at'])

    # Create reports table
    op.create_table(
        'reports',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('node_id', sa.Integer, sa.ForeignKey('nodes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('host', sa.String(255), nullable=False),
        sa.Column('kind', sa.String(20), server_default='apply', nullable=False),
        sa.Column('time', sa.DateTime, nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('report_format', sa.Integer, nullable=False),
        sa.Column('configuration_version', sa.String(255)),
        sa.Column('puppet_version', sa.String(255)),
        sa.Column('baseline', sa.Boolean, server_default=sa.false(), nullable=False),
        sa.UniqueConstraint('host', 'time', name='uq_reports_host_time'),
    )
    op.create_index('ix_reports_node_id', 'reports', ['node_id'])
    op.create_index('ix_reports_kind', 'reports', ['kind'])
    op.create_index('ix_reports_host_kind_time', 'reports', ['host', 'kind', 'time'])

    with op.batch_alter_table('nodes') as batch_op:
        batch_op.create_foreign_key(
            'fk_nodes_last_apply_report_id', 'reports',
            ['last_apply_report_id'], ['id'], ondelete='SET NULL',
        )

    # Create metrics table
    op.create_table(
        'metrics',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('report_id', sa.Integer, sa.ForeignKey('reports.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('value', sa.Float, nullable=False),
        sa.UniqueConstraint('report_id', 'category', 'name', name='uq_metrics_report_category_name'),
    )

    # Create resource_statuses table
    op.create_table(
        'resource_statuses',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('report_id', sa.Integer, sa.ForeignKey('reports.id', ondelete='CASCADE'), nullable=False),
        sa.Column('resource_type', sa.String(255), nullable=False),
        sa.Column('title', sa.Text, nullable=False),
        sa.Column('evaluation_time', sa.Float),
        sa.Column('file', sa.Text),
        sa.Column('line', sa.Integer),
        sa.Column('source_description', sa.Text),
        sa.Column('tags', sa.JSON),
        sa.Column('time', sa.DateTime),
        sa.Column('change_count', sa.Integer, server_default='0', nullable=False),
        sa.Column('out_of_sync_count', sa.Integer),
    )
    op.create_index('ix_resource_statuses_report_id', 'resource_statuses', ['report_id'])

    # Create resource_events table
    op.create_table(
        'resource_events',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('resource_status_id', sa.Integer, sa.ForeignKey('resource_statuses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('property', sa.String(255)),
        sa.Column('previous_value', sa.JSON),
        sa.Column('desired_value', sa.JSON),
        sa.Column('historical_value', sa.JSON),
        sa.Column('message', sa.Text),
        sa.Column('name', sa.String(255)),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('audited', sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column('time', sa.DateTime),
    )
    op.create_index('ix_resource_events_resource_status_id', 'resource_events', ['resource_status_id'])
    op.create_index('ix_resource_events_status', 'resource_events', ['status'])

    # Create report_logs table
    op.create_table(
        'report_logs',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('report_id', sa.Integer, sa.ForeignKey('reports.id', ondelete='CASCADE'), nullable=False),
        sa.Column('level', sa.String(20)),
        sa.Column('message', sa.Text),
        sa.Column('source', sa.Text),
        sa.Column('tags', sa.JSON),
        sa.Column('time', sa.DateTime),
        sa.Column('file', sa.Text),
        sa.Column('line', sa.Integer),
    )
    op.create_index('ix_report_logs_report_id', 'report_logs', ['report_id'])


def downgrade() -> None:
    # Drop tables in reverse order
    op.drop_table('report_logs')
    op.drop_table('resource_events')
    op.drop_table('resource_statuses')
    op.drop_table('metrics')
    with op.batch_alter_table('nodes') as batch_op:
        batch_op.drop_constraint('fk_nodes_last_apply_report_id', type_='foreignkey')
    op.drop_table('reports')
    op.drop_table('nodes')
