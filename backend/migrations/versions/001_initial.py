"""Initial migration - create all tables

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

Creates all database tables for SchoolTalk:
- accounts: Teacher identities with hashed secret verifiers
- students: Per-account student rosters

The unique constraint on (account_id, code_key) is what guarantees that a
code appears at most once per roster, whatever the letter case.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Accounts Table ────────────────────────────────────────
    op.create_table(
        'accounts',
        sa.Column('identifier', sa.String(254), primary_key=True),
        sa.Column('secret_verifier', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )

    # ── Students Table ────────────────────────────────────────
    op.create_table(
        'students',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('account_id', sa.String(254),
                  sa.ForeignKey('accounts.identifier'), nullable=False),
        sa.Column('code', sa.Text(), nullable=False),
        sa.Column('code_key', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('parent_contact', sa.Text(), nullable=False),
        sa.Column('homework', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('quizzes', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('attendance', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('account_id', 'code_key', name='uq_students_account_code'),
    )

    # Roster reads always filter by owner
    op.create_index('ix_students_account_id', 'students', ['account_id'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index('ix_students_account_id', table_name='students')
    op.drop_table('students')
    op.drop_table('accounts')
