"""Initial ledger schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration adds:
1. StockItem and AuditRecord (inventory store + append-only history)
2. Settings (exchange rate table as JSON)
3. Cart, CartLine, PendingPayment (sale-in-progress)
4. SavedCart (parked cart snapshots)
5. Transaction and TransactionLine (ledger of committed sales)
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
    # 1. INVENTORY
    # ==========================================================================
    op.create_table('stock_items',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('barcode', sa.String(length=128), nullable=False),
        sa.Column('buying_price_cents', sa.Integer(), nullable=False),
        sa.Column('selling_price_cents', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=18, scale=3), nullable=False),
        sa.Column('unit', sa.String(length=16), nullable=False),
        sa.Column('includes_tax', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=8), nullable=False),
        sa.Column('discount_percent', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('quantity >= 0', name='ck_stock_items_quantity_non_negative'),
        sa.CheckConstraint('discount_percent >= 0 AND discount_percent <= 100', name='ck_stock_items_discount_range'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('stock_items', schema=None) as batch_op:
        batch_op.create_index('ix_stock_items_name', ['name'], unique=False)
        batch_op.create_index('ix_stock_items_barcode', ['barcode'], unique=False)

    op.create_table('audit_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(length=32), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('action', sa.String(length=16), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('user', sa.String(length=128), nullable=False),
        sa.Column('previous_quantity', sa.Numeric(precision=18, scale=3), nullable=True),
        sa.Column('new_quantity', sa.Numeric(precision=18, scale=3), nullable=True),
        sa.CheckConstraint(
            '(previous_quantity IS NULL AND new_quantity IS NULL) OR '
            '(previous_quantity IS NOT NULL AND new_quantity IS NOT NULL)',
            name='ck_audit_records_quantity_pair',
        ),
        sa.ForeignKeyConstraint(['item_id'], ['stock_items.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('audit_records', schema=None) as batch_op:
        batch_op.create_index('ix_audit_records_item_id', ['item_id'], unique=False)
        batch_op.create_index('ix_audit_records_item_occurred', ['item_id', 'occurred_at'], unique=False)

    # ==========================================================================
    # 2. SETTINGS
    # ==========================================================================
    op.create_table('settings',
        sa.Column('key', sa.String(length=128), nullable=False),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('updated_by', sa.String(length=128), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('key'),
    )

    # ==========================================================================
    # 3. CARTS
    # ==========================================================================
    op.create_table('carts',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_by', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('cart_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cart_id', sa.String(length=32), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('item_id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('barcode', sa.String(length=128), nullable=False),
        sa.Column('unit', sa.String(length=16), nullable=False),
        sa.Column('selling_price_cents', sa.Integer(), nullable=False),
        sa.Column('discount_percent', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('includes_tax', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('requested_quantity', sa.Numeric(precision=18, scale=3), nullable=False),
        sa.Column('apply_discount', sa.Boolean(), nullable=False, server_default='0'),
        sa.CheckConstraint('requested_quantity > 0', name='ck_cart_lines_quantity_positive'),
        sa.ForeignKeyConstraint(['cart_id'], ['carts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cart_id', 'item_id', name='uq_cart_lines_cart_item'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('cart_lines', schema=None) as batch_op:
        batch_op.create_index('ix_cart_lines_cart_id', ['cart_id'], unique=False)

    op.create_table('pending_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cart_id', sa.String(length=32), nullable=False),
        sa.Column('method', sa.String(length=64), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('amount_cents > 0', name='ck_pending_payments_amount_positive'),
        sa.ForeignKeyConstraint(['cart_id'], ['carts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('pending_payments', schema=None) as batch_op:
        batch_op.create_index('ix_pending_payments_cart_id', ['cart_id'], unique=False)

    # ==========================================================================
    # 4. SAVED CARTS
    # ==========================================================================
    op.create_table('saved_carts',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('saved_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('payments', sa.JSON(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.PrimaryKeyConstraint('id'),
    )

    # ==========================================================================
    # 5. TRANSACTION LEDGER
    # ==========================================================================
    op.create_table('transactions',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('tax_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('payments', sa.JSON(), nullable=False),
        sa.Column('amount_paid_cents', sa.Integer(), nullable=False),
        sa.Column('change_due_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('transactions', schema=None) as batch_op:
        batch_op.create_index('ix_transactions_occurred_at', ['occurred_at'], unique=False)
        batch_op.create_index('ix_transactions_user_occurred', ['user_id', 'occurred_at'], unique=False)

    op.create_table('transaction_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.String(length=32), nullable=False),
        sa.Column('item_id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=18, scale=3), nullable=False),
        sa.Column('quantity_returned', sa.Numeric(precision=18, scale=3), nullable=False, server_default='0'),
        sa.Column('discount_applied', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('discount_percent', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('includes_tax', sa.Boolean(), nullable=False, server_default='0'),
        sa.CheckConstraint(
            'quantity_returned >= 0 AND quantity_returned <= quantity',
            name='ck_transaction_lines_returned_bounds',
        ),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('transaction_lines', schema=None) as batch_op:
        batch_op.create_index('ix_transaction_lines_transaction_id', ['transaction_id'], unique=False)
        batch_op.create_index('ix_transaction_lines_item_id', ['item_id'], unique=False)


def downgrade():
    op.drop_table('transaction_lines')
    op.drop_table('transactions')
    op.drop_table('saved_carts')
    op.drop_table('pending_payments')
    op.drop_table('cart_lines')
    op.drop_table('carts')
    op.drop_table('settings')
    op.drop_table('audit_records')
    op.drop_table('stock_items')
