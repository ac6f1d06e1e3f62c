"""Initial schema: catalog, customers, sales, payments, company profile

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration creates:
1. categories (one optional parent level)
2. products (simple / variant / pack; variants and pack_items as JSON)
3. customers (prepaid balance)
4. company_profiles (per-namespace singleton holding the invoice counter)
5. sales (unique invoice_id per namespace)
6. payments (append-only ledger against credit sales)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. CATEGORIES
    # ==========================================================================
    op.create_table('categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('namespace', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['parent_id'], ['categories.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('categories', schema=None) as batch_op:
        batch_op.create_index('ix_categories_namespace', ['namespace'], unique=False)
        batch_op.create_index('ix_categories_parent_id', ['parent_id'], unique=False)
        batch_op.create_index('ix_categories_namespace_name', ['namespace', 'name'], unique=False)

    # ==========================================================================
    # 2. PRODUCTS
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('namespace', sa.String(length=64), nullable=False),
        sa.Column('product_type', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.Column('price', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=True),
        sa.Column('reorder_threshold', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('base_price', sa.Integer(), nullable=True),
        sa.Column('variants', sa.JSON(), nullable=True),
        sa.Column('pack_items', sa.JSON(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_namespace', ['namespace'], unique=False)
        batch_op.create_index('ix_products_category_id', ['category_id'], unique=False)
        batch_op.create_index('ix_products_namespace_name', ['namespace', 'name'], unique=False)
        batch_op.create_index('ix_products_namespace_type', ['namespace', 'product_type'], unique=False)

    # ==========================================================================
    # 3. CUSTOMERS
    # ==========================================================================
    op.create_table('customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('namespace', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('nickname', sa.String(length=128), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('customers', schema=None) as batch_op:
        batch_op.create_index('ix_customers_namespace', ['namespace'], unique=False)
        batch_op.create_index('ix_customers_namespace_name', ['namespace', 'name'], unique=False)

    # ==========================================================================
    # 4. COMPANY PROFILES
    # ==========================================================================
    op.create_table('company_profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('namespace', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('logo', sa.String(length=512), nullable=True),
        sa.Column('invoice_prefix', sa.String(length=16), nullable=False, server_default='FAC-'),
        sa.Column('refund_prefix', sa.String(length=16), nullable=False, server_default='REM-'),
        sa.Column('deposit_prefix', sa.String(length=16), nullable=False, server_default='DEP-'),
        sa.Column('invoice_footer_message', sa.String(length=255), nullable=True),
        sa.Column('last_invoice_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('namespace', name='uq_company_profiles_namespace'),
        sqlite_autoincrement=True
    )

    # ==========================================================================
    # 5. SALES
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('namespace', sa.String(length=64), nullable=False),
        sa.Column('invoice_id', sa.String(length=64), nullable=False),
        sa.Column('invoice_number', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('payment_type', sa.String(length=32), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('total_price', sa.Integer(), nullable=False),
        sa.Column('discount_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('vat_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('paid_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sale_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=True),
        sa.Column('user_pseudo', sa.String(length=128), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('namespace', 'invoice_id', name='uq_sales_namespace_invoice'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index('ix_sales_namespace', ['namespace'], unique=False)
        batch_op.create_index('ix_sales_payment_type', ['payment_type'], unique=False)
        batch_op.create_index('ix_sales_customer', ['customer_id'], unique=False)
        batch_op.create_index('ix_sales_namespace_status_date', ['namespace', 'status', 'sale_date'], unique=False)

    # ==========================================================================
    # 6. PAYMENTS
    # ==========================================================================
    op.create_table('payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('namespace', sa.String(length=64), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.String(length=64), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('payment_type', sa.String(length=32), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('payments', schema=None) as batch_op:
        batch_op.create_index('ix_payments_namespace', ['namespace'], unique=False)
        batch_op.create_index('ix_payments_sale_id', ['sale_id'], unique=False)
        batch_op.create_index('ix_payments_payment_type', ['payment_type'], unique=False)
        batch_op.create_index('ix_payments_payment_date', ['payment_date'], unique=False)
        batch_op.create_index('ix_payments_sale_date', ['sale_id', 'payment_date'], unique=False)


def downgrade():
    op.drop_table('payments')
    op.drop_table('sales')
    op.drop_table('company_profiles')
    op.drop_table('customers')
    op.drop_table('products')
    op.drop_table('categories')
