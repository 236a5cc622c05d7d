"""scan_jobs_and_pages

Revision ID: 001
Revises: 
Create Date: 2026-10-16 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

scan_job_status = sa.Enum('pending', 'running', 'completed', 'failed', name='scanjobstatus')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'scan_jobs',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('url', sa.String(2048), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('status', scan_job_status, nullable=False),
        sa.Column('pages_scanned', sa.Integer(), nullable=False),
        sa.Column('pages_found', sa.Integer(), nullable=False),
        sa.Column('total_issues', sa.Integer(), nullable=False),
        sa.Column('critical_issues_count', sa.Integer(), nullable=False),
        sa.Column('warning_issues_count', sa.Integer(), nullable=False),
        sa.Column('info_issues_count', sa.Integer(), nullable=False),
        sa.Column('accessibility_score', sa.Integer(), nullable=True),
        sa.Column('deep_scan_threshold', sa.Integer(), nullable=False),
        sa.Column('deep_scan_triggered', sa.Boolean(), nullable=False),
        sa.Column('report_urls', sa.JSON(), nullable=True),
        sa.Column('send_copy_to_admin', sa.Boolean(), nullable=False),
        sa.Column('admin_email', sa.String(255), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('queued_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_scan_jobs_id'), 'scan_jobs', ['id'], unique=False)
    op.create_index(op.f('ix_scan_jobs_status'), 'scan_jobs', ['status'], unique=False)
    op.create_index('idx_scan_jobs_status_queued', 'scan_jobs', ['status', 'queued_at'], unique=False)

    op.create_table(
        'scan_pages',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('scan_job_id', sa.String(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('page_url', sa.String(2048), nullable=False),
        sa.Column('http_status', sa.Integer(), nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('total_issues', sa.Integer(), nullable=False),
        sa.Column('critical_issues_count', sa.Integer(), nullable=False),
        sa.Column('warning_issues_count', sa.Integer(), nullable=False),
        sa.Column('info_issues_count', sa.Integer(), nullable=False),
        sa.Column('violations', sa.JSON(), nullable=False),
        sa.Column('links', sa.JSON(), nullable=False),
        sa.Column('scanned_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['scan_job_id'], ['scan_jobs.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_scan_pages_id'), 'scan_pages', ['id'], unique=False)
    op.create_index(op.f('ix_scan_pages_scan_job_id'), 'scan_pages', ['scan_job_id'], unique=False)
    op.create_index('idx_scan_pages_job_position', 'scan_pages', ['scan_job_id', 'position'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_scan_pages_job_position', table_name='scan_pages')
    op.drop_index(op.f('ix_scan_pages_scan_job_id'), table_name='scan_pages')
    op.drop_index(op.f('ix_scan_pages_id'), table_name='scan_pages')
    op.drop_table('scan_pages')
    op.drop_index('idx_scan_jobs_status_queued', table_name='scan_jobs')
    op.drop_index(op.f('ix_scan_jobs_status'), table_name='scan_jobs')
    op.drop_index(op.f('ix_scan_jobs_id'), table_name='scan_jobs')
    op.drop_table('scan_jobs')
    scan_job_status.drop(op.get_bind(), checkfirst=True)
