"""initial schema

Revision ID: 3f1a9c2b7d10
Revises:
Create Date: 2026-10-17 09:12:31.402118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel

# revision identifiers, used by Alembic.
revision: str = '3f1a9c2b7d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('account',
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('email', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('phone', sqlmodel.sql.sqltypes.AutoString(length=32), nullable=False),
        sa.Column('password_hash', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_account_email'), 'account', ['email'], unique=True)

    op.create_table('address',
        sa.Column('street', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('neighborhood', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('state', sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column('country', sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['account.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_address_account_id'), 'address', ['account_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_address_account_id'), table_name='address')
    op.drop_table('address')
    op.drop_index(op.f('ix_account_email'), table_name='account')
    op.drop_table('account')
