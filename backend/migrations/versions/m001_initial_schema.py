"""initial schema

Revision ID: m001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the ModernPOS schema:
- businesses: tenant records keyed by the owner's identity id
- employees: staff provisioned per business (email unique per business)
- products: catalog with versioned stock counts
- business_settings: per-business key/value settings
- sales / sale_lines: immutable finalized sales and their line snapshots
- session_state: durable per-session state (cart, local history)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'm001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'businesses',
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('business_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone_number', sa.String(length=64), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='owner'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_businesses_email', 'businesses', ['email'])

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.String(length=128), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('role', sa.String(length=64), nullable=False, server_default='Cashier'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='Active'),
        sa.Column('created_by_id', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'email', name='uq_employees_business_email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_employees_business_id', 'employees', ['business_id'])
    op.create_index('ix_employees_email', 'employees', ['email'])

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.String(length=128), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=120), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('image', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('created_by_id', sa.String(length=128), nullable=True),
        sa.Column('created_by_email', sa.String(length=255), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        sa.CheckConstraint('price_cents >= 0', name='ck_products_price_non_negative'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_business_id', 'products', ['business_id'])
    op.create_index('ix_products_business_name', 'products', ['business_id', 'name'])
    op.create_index('ix_products_barcode', 'products', ['barcode'])

    op.create_table(
        'business_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.String(length=128), nullable=False),
        sa.Column('key', sa.String(length=128), nullable=False),
        sa.Column('value', sa.JSON(), nullable=True),
        sa.Column('updated_by_id', sa.String(length=128), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'key', name='uq_business_settings_key'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_business_settings_business_id', 'business_settings', ['business_id'])

    op.create_table(
        'sales',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('business_id', sa.String(length=128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('tax_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('tax_rate', sa.String(length=16), nullable=False),
        sa.Column('payment_type', sa.String(length=16), nullable=False),
        sa.Column('amount_tendered_cents', sa.Integer(), nullable=True),
        sa.Column('change_due_cents', sa.Integer(), nullable=True),
        sa.Column('operator_id', sa.String(length=128), nullable=False),
        sa.Column('operator_email', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sales_business_id', 'sales', ['business_id'])
    op.create_index('ix_sales_payment_type', 'sales', ['payment_type'])
    op.create_index('ix_sales_business_created', 'sales', ['business_id', 'created_at'])

    op.create_table(
        'sale_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.String(length=64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=120), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_lines_sale_id', 'sale_lines', ['sale_id'])
    op.create_index('ix_sale_lines_product_id', 'sale_lines', ['product_id'])

    op.create_table(
        'session_state',
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('value', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('key'),
    )


def downgrade():
    op.drop_table('session_state')
    op.drop_index('ix_sale_lines_product_id', table_name='sale_lines')
    op.drop_index('ix_sale_lines_sale_id', table_name='sale_lines')
    op.drop_table('sale_lines')
    op.drop_index('ix_sales_business_created', table_name='sales')
    op.drop_index('ix_sales_payment_type', table_name='sales')
    op.drop_index('ix_sales_business_id', table_name='sales')
    op.drop_table('sales')
    op.drop_index('ix_business_settings_business_id', table_name='business_settings')
    op.drop_table('business_settings')
    op.drop_index('ix_products_barcode', table_name='products')
    op.drop_index('ix_products_business_name', table_name='products')
    op.drop_index('ix_products_business_id', table_name='products')
    op.drop_table('products')
    op.drop_index('ix_employees_email', table_name='employees')
    op.drop_index('ix_employees_business_id', table_name='employees')
    op.drop_table('employees')
    op.drop_index('ix_businesses_email', table_name='businesses')
    op.drop_table('businesses')
