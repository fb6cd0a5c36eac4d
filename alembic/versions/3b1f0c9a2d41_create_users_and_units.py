"""create_users_and_units

Revision ID: 3b1f0c9a2d41
Revises:
Create Date: 2026-10-19

Creates the tables of the unit inventory:
- users: Operators who sign in to the dashboard
- units: Sellable lots, unique per (block_number, unit_number)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3b1f0c9a2d41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # === USERS TABLE ===
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(50), server_default='employee'),
        sa.Column('department', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean, server_default='true'),
        sa.Column('created_at', sa.DateTime, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # === UNITS TABLE ===
    op.create_table(
        'units',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('unit_number', sa.Integer, nullable=False),
        sa.Column('block_number', sa.Integer, nullable=False),
        sa.Column('area_m2', sa.Numeric(10, 2), nullable=False),
        sa.Column('price', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='available'),
        sa.Column('buyer_name', sa.String(255), nullable=True),
        sa.Column('buyer_phone', sa.String(50), nullable=True),
        sa.Column('sales_employee', sa.String(255), nullable=True),
        sa.Column('accountant_name', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('reservation_expires_at', sa.DateTime, nullable=True),
        sa.Column('is_residential', sa.Boolean, nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, server_default=sa.text('NOW()')),
        sa.UniqueConstraint('block_number', 'unit_number', name='uq_unit_block_number'),
        sa.CheckConstraint('block_number >= 1', name='ck_unit_block_range'),
        sa.CheckConstraint('area_m2 > 0', name='ck_unit_area_positive'),
        sa.CheckConstraint('price >= 0', name='ck_unit_price_non_negative'),
        sa.CheckConstraint("status IN ('available', 'reserved', 'sold')", name='ck_unit_status'),
    )
    op.create_index('ix_units_status', 'units', ['status'])
    op.create_index('ix_units_block', 'units', ['block_number'])
    op.create_index('ix_units_unit_number', 'units', ['unit_number'])


def downgrade() -> None:
    op.drop_index('ix_units_unit_number', table_name='units')
    op.drop_index('ix_units_block', table_name='units')
    op.drop_index('ix_units_status', table_name='units')
    op.drop_table('units')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
