"""initial stock schema

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete stockflow schema:
- products / locations: catalog and stock-holding locations
- location_stock / variant_stock: per-location balances (versioned rows)
- stock_transactions (+ variants): append-only movement ledger
- sales, shrinkage (+ variants): reversible sale and loss records
- expenses: realized consumption cost
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c1d2e3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # products: catalog rows carry no stock
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('section', sa.String(length=64), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('cost_cents', sa.Integer(), nullable=False),
        sa.Column('has_variants', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_name', 'products', ['name'])

    # ============================================================================
    # locations: warehouse, kitchen, counter, sellers
    # ============================================================================
    op.create_table(
        'locations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_locations_code', 'locations', ['code'], unique=True)
    op.create_index('ix_locations_kind', 'locations', ['kind'])

    # ============================================================================
    # location_stock / variant_stock: balances, compare-on-write via version_id
    # ============================================================================
    op.create_table(
        'location_stock',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'location_id', name='uq_location_stock_product_location'),
        sa.CheckConstraint('quantity >= 0', name='ck_location_stock_quantity_non_negative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_location_stock_product_id', 'location_stock', ['product_id'])
    op.create_index('ix_location_stock_location_id', 'location_stock', ['location_id'])

    op.create_table(
        'variant_stock',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('location_stock_id', sa.Integer(), nullable=False),
        sa.Column('variant_name', sa.String(length=128), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['location_stock_id'], ['location_stock.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('location_stock_id', 'variant_name', name='uq_variant_stock_name'),
        sa.CheckConstraint('quantity >= 0', name='ck_variant_stock_quantity_non_negative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_variant_stock_location_stock_id', 'variant_stock', ['location_stock_id'])

    # ============================================================================
    # stock_transactions: append-only ledger (Baja / Entrega legs)
    # ============================================================================
    op.create_table(
        'stock_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('kind', sa.Enum('Baja', 'Entrega', name='movement_kind', native_enum=False), nullable=False),
        sa.Column('source', sa.String(length=32), nullable=False),
        sa.Column('destination', sa.String(length=32), nullable=False),
        sa.Column('operation_id', sa.String(length=36), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_transactions_product_id', 'stock_transactions', ['product_id'])
    op.create_index('ix_stock_transactions_kind', 'stock_transactions', ['kind'])
    op.create_index('ix_stock_transactions_operation_id', 'stock_transactions', ['operation_id'])
    op.create_index('ix_stock_transactions_occurred_at', 'stock_transactions', ['occurred_at'])
    op.create_index('ix_stock_tx_product_occurred', 'stock_transactions', ['product_id', 'occurred_at'])
    op.create_index('ix_stock_tx_source', 'stock_transactions', ['source'])
    op.create_index('ix_stock_tx_destination', 'stock_transactions', ['destination'])

    op.create_table(
        'stock_transaction_variants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('variant_name', sa.String(length=128), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['transaction_id'], ['stock_transactions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_transaction_variants_transaction_id', 'stock_transaction_variants', ['transaction_id'])

    # ============================================================================
    # sales: parallel ledger, reversible
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('sold_at', sa.DateTime(timezone=True), nullable=False),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_product_id', 'sales', ['product_id'])
    op.create_index('ix_sales_location_id', 'sales', ['location_id'])
    op.create_index('ix_sales_sold_at', 'sales', ['sold_at'])
    op.create_index('ix_sales_location_sold', 'sales', ['location_id', 'sold_at'])

    op.create_table(
        'sale_variants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('variant_name', sa.String(length=128), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_variants_sale_id', 'sale_variants', ['sale_id'])

    # ============================================================================
    # shrinkage: write-offs to MERMA, reversible
    # ============================================================================
    op.create_table(
        'shrinkage',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('attributed_to', sa.String(length=64), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.ForeignKeyConstraint(['transaction_id'], ['stock_transactions.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shrinkage_product_id', 'shrinkage', ['product_id'])
    op.create_index('ix_shrinkage_location_id', 'shrinkage', ['location_id'])
    op.create_index('ix_shrinkage_occurred_at', 'shrinkage', ['occurred_at'])

    op.create_table(
        'shrinkage_variants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shrinkage_id', sa.Integer(), nullable=False),
        sa.Column('variant_name', sa.String(length=128), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['shrinkage_id'], ['shrinkage.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shrinkage_variants_shrinkage_id', 'shrinkage_variants', ['shrinkage_id'])

    # ============================================================================
    # expenses
    # ============================================================================
    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('location_id', sa.Integer(), nullable=True),
        sa.Column('operation_id', sa.String(length=36), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_expenses_product_id', 'expenses', ['product_id'])
    op.create_index('ix_expenses_location_id', 'expenses', ['location_id'])
    op.create_index('ix_expenses_operation_id', 'expenses', ['operation_id'])
    op.create_index('ix_expenses_occurred_at', 'expenses', ['occurred_at'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('expenses')
    op.drop_table('shrinkage_variants')
    op.drop_table('shrinkage')
    op.drop_table('sale_variants')
    op.drop_table('sales')
    op.drop_table('stock_transaction_variants')
    op.drop_table('stock_transactions')
    op.drop_table('variant_stock')
    op.drop_table('location_stock')
    op.drop_table('locations')
    op.drop_table('products')
