"""Initial migration

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Products table, keyed by the feed's product-card id
    op.create_table(
        'products',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('discounted_price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('brand', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('categories', sa.JSON(), nullable=False),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='TRY'),
        sa.Column('url', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('stock >= 0', name='ck_product_stock_non_negative'),
        sa.CheckConstraint("currency IN ('TRY', 'USD', 'EUR')", name='ck_product_currency'),
    )

    op.create_index('ix_products_brand', 'products', ['brand'])
    op.create_index('ix_products_updated_at', 'products', ['updated_at'])


def downgrade() -> None:
    op.drop_index('ix_products_updated_at', table_name='products')
    op.drop_index('ix_products_brand', table_name='products')
    op.drop_table('products')
