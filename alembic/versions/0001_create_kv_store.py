"""create kv_store table

Revision ID: 0001_create_kv_store
Revises: 
Create Date: 2026-10-18 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_create_kv_store'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'kv_store',
        sa.Column('key', sa.String(length=255), primary_key=True),
        sa.Column('value', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )


def downgrade():
    op.drop_table('kv_store')
