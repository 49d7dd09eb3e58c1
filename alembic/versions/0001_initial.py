"""Initial schema - users, beneficiaries, cases, services and audit trail

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

Generic column types only (UUID, JSON) so the same migration runs on
PostgreSQL and SQLite.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Users
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('organization', sa.String(100), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('token_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )

    # ==========================================================================
    # Beneficiaries
    # ==========================================================================
    op.create_table(
        'beneficiaries',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('gender', sa.String(20), nullable=True),
        sa.Column('nationality', sa.String(100), nullable=True),
        sa.Column('id_number', sa.String(50), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('address', sa.String(500), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(100), nullable=True),
        sa.Column('postcode', sa.String(10), nullable=True),
        sa.Column('emergency_name', sa.String(100), nullable=True),
        sa.Column('emergency_phone', sa.String(20), nullable=True),
        sa.Column('emergency_relation', sa.String(50), nullable=True),
        sa.Column('category', sa.String(30), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('priority', sa.String(10), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('source', sa.String(100), nullable=True),
        sa.Column('created_by_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column(
            'assigned_to_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('id_number', name='uq_beneficiaries_id_number'),
    )
    op.create_index('idx_beneficiaries_created_by', 'beneficiaries', ['created_by_id'])
    op.create_index('idx_beneficiaries_assigned_to', 'beneficiaries', ['assigned_to_id'])
    op.create_index('idx_beneficiaries_status_category', 'beneficiaries', ['status', 'category'])
    op.create_index('idx_beneficiaries_created_at', 'beneficiaries', ['created_at'])

    # ==========================================================================
    # Cases
    # ==========================================================================
    op.create_table(
        'cases',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'beneficiary_id', sa.Uuid(),
            sa.ForeignKey('beneficiaries.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('priority', sa.String(10), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('created_by_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_cases_beneficiary', 'cases', ['beneficiary_id'])
    op.create_index('idx_cases_created_by', 'cases', ['created_by_id'])
    op.create_index('idx_cases_status_type', 'cases', ['status', 'type'])
    op.create_index('idx_cases_created_at', 'cases', ['created_at'])

    op.create_table(
        'case_assignees',
        sa.Column(
            'case_id', sa.Uuid(),
            sa.ForeignKey('cases.id', ondelete='CASCADE'), primary_key=True,
        ),
        sa.Column(
            'user_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True,
        ),
    )
    op.create_index('idx_case_assignees_user', 'case_assignees', ['user_id'])

    # ==========================================================================
    # Services
    # ==========================================================================
    op.create_table(
        'services',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=True),
        sa.Column('cost', sa.Numeric(12, 2), nullable=True),
        sa.Column(
            'beneficiary_id', sa.Uuid(),
            sa.ForeignKey('beneficiaries.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'case_id', sa.Uuid(),
            sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=True,
        ),
        sa.Column('provided_by_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('location', sa.String(200), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_services_beneficiary', 'services', ['beneficiary_id'])
    op.create_index('idx_services_case', 'services', ['case_id'])
    op.create_index('idx_services_provided_by', 'services', ['provided_by_id'])
    op.create_index('idx_services_date', 'services', ['date'])

    # ==========================================================================
    # Audit trail (append-only, hash-chained)
    # ==========================================================================
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('target_type', sa.String(20), nullable=False),
        sa.Column('target_id', sa.Uuid(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('prev_hash', sa.String(64), nullable=True),
        sa.Column('entry_hash', sa.String(64), nullable=False),
    )
    op.create_index('idx_audit_action_timestamp', 'audit_logs', ['action', 'timestamp'])
    op.create_index('idx_audit_user_timestamp', 'audit_logs', ['user_id', 'timestamp'])
    op.create_index('idx_audit_target', 'audit_logs', ['target_type', 'target_id'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('audit_logs')
    op.drop_table('services')
    op.drop_table('case_assignees')
    op.drop_table('cases')
    op.drop_table('beneficiaries')
    op.drop_table('users')
