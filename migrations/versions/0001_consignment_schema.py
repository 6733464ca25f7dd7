"""Consignment platform schema: shops, accounts, inventory, sales, payouts, statements"""

from alembic import op
import sqlalchemy as sa

revision = '0001_consignment_schema'
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(12, 2)
PERCENT = sa.Numeric(5, 2)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    ]


def _org_fk(nullable=False):
    return sa.Column(
        'organization_id',
        sa.Integer,
        sa.ForeignKey('organizations.id', ondelete='CASCADE'),
        nullable=nullable,
    )


def upgrade():
    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        sa.Column('address', sa.Text),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('store_code', sa.String(10)),
        sa.Column('store_code_enabled', sa.Boolean, nullable=False, server_default=sa.sql.expression.true()),
        sa.Column('auto_approve_consignors', sa.Boolean, nullable=False, server_default=sa.sql.expression.false()),
        sa.Column('default_split_percentage', PERCENT, nullable=False, server_default='60'),
        sa.Column('tax_rate', sa.Numeric(6, 4), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        *_timestamps(),
        sa.UniqueConstraint('slug', name='uq_organizations_slug'),
        sa.UniqueConstraint('store_code', name='uq_organizations_store_code'),
    )

    op.create_table(
        'app_users',
        sa.Column('id', sa.Integer, primary_key=True),
        _org_fk(nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.Text, nullable=False),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('phone', sa.String(50)),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('approval_status', sa.String(20), nullable=False, server_default='Pending'),
        sa.Column('approved_by', sa.Integer),
        sa.Column('approved_at', sa.DateTime(timezone=True)),
        sa.Column('rejected_reason', sa.Text),
        sa.Column('store_code_used', sa.String(10)),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.sql.expression.true()),
        sa.Column('last_login_at', sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.UniqueConstraint('email', name='uq_app_users_email'),
    )
    op.create_index('idx_app_users_org_approval', 'app_users', ['organization_id', 'approval_status'])

    op.create_table(
        'consignors',
        sa.Column('id', sa.Integer, primary_key=True),
        _org_fk(),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('app_users.id', ondelete='SET NULL')),
        sa.Column('consignor_number', sa.String(20), nullable=False),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        sa.Column('address', sa.Text),
        sa.Column('commission_rate', PERCENT, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='Active'),
        sa.Column('notes', sa.Text),
        *_timestamps(),
        sa.UniqueConstraint('organization_id', 'consignor_number', name='uq_consignors_org_number'),
    )

    op.create_table(
        'categories',
        sa.Column('id', sa.Integer, primary_key=True),
        _org_fk(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('display_order', sa.Integer, nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.sql.expression.true()),
        *_timestamps(),
    )

    op.create_table(
        'items',
        sa.Column('id', sa.Integer, primary_key=True),
        _org_fk(),
        sa.Column('consignor_id', sa.Integer, sa.ForeignKey('consignors.id'), nullable=False),
        sa.Column('category_id', sa.Integer, sa.ForeignKey('categories.id')),
        sa.Column('sku', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('brand', sa.String(100)),
        sa.Column('size', sa.String(50)),
        sa.Column('condition', sa.String(30)),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('original_price', MONEY),
        sa.Column('split_percentage', PERCENT),
        sa.Column('status', sa.String(20), nullable=False, server_default='Available'),
        sa.Column('received_date', sa.Date, nullable=False),
        sa.Column('sold_date', sa.Date),
        sa.Column('notes', sa.Text),
        *_timestamps(),
        sa.UniqueConstraint('organization_id', 'sku', name='uq_items_org_sku'),
    )
    op.create_index('idx_items_org_status', 'items', ['organization_id', 'status'])

    op.create_table(
        'payouts',
        sa.Column('id', sa.Integer, primary_key=True),
        _org_fk(),
        sa.Column('consignor_id', sa.Integer, sa.ForeignKey('consignors.id'), nullable=False),
        sa.Column('payout_number', sa.String(30), nullable=False),
        sa.Column('payout_date', sa.Date, nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='Paid'),
        sa.Column('payment_method', sa.String(50), nullable=False),
        sa.Column('payment_reference', sa.String(100)),
        sa.Column('period_start', sa.Date, nullable=False),
        sa.Column('period_end', sa.Date, nullable=False),
        sa.Column('transaction_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('notes', sa.Text),
        *_timestamps(),
        sa.UniqueConstraint('organization_id', 'payout_number', name='uq_payouts_org_number'),
    )

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer, primary_key=True),
        _org_fk(),
        sa.Column('item_id', sa.Integer, sa.ForeignKey('items.id'), nullable=False),
        sa.Column('consignor_id', sa.Integer, sa.ForeignKey('consignors.id'), nullable=False),
        sa.Column('sale_date', sa.Date, nullable=False),
        sa.Column('sale_price', MONEY, nullable=False),
        sa.Column('split_percentage', PERCENT, nullable=False),
        sa.Column('consignor_amount', MONEY, nullable=False),
        sa.Column('shop_amount', MONEY, nullable=False),
        sa.Column('sales_tax_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('payment_method', sa.String(50), nullable=False),
        sa.Column('notes', sa.Text),
        sa.Column('status', sa.String(20), nullable=False, server_default='Completed'),
        sa.Column('payout_status', sa.String(20), nullable=False, server_default='Pending'),
        sa.Column('payout_id', sa.Integer, sa.ForeignKey('payouts.id', ondelete='SET NULL')),
        sa.Column('consignor_paid_out', sa.Boolean, nullable=False, server_default=sa.sql.expression.false()),
        sa.Column('paid_out_date', sa.Date),
        sa.Column('payout_method', sa.String(50)),
        *_timestamps(),
        sa.UniqueConstraint('item_id', name='uq_transactions_item'),
    )
    op.create_index(
        'idx_transactions_org_payout', 'transactions', ['organization_id', 'consignor_id', 'payout_status']
    )
    op.create_index('idx_transactions_org_sale_date', 'transactions', ['organization_id', 'sale_date'])

    op.create_table(
        'statements',
        sa.Column('id', sa.Integer, primary_key=True),
        _org_fk(),
        sa.Column('consignor_id', sa.Integer, sa.ForeignKey('consignors.id'), nullable=False),
        sa.Column('statement_number', sa.String(40), nullable=False),
        sa.Column('period_start', sa.Date, nullable=False),
        sa.Column('period_end', sa.Date, nullable=False),
        sa.Column('opening_balance', MONEY, nullable=False),
        sa.Column('total_sales', MONEY, nullable=False),
        sa.Column('total_earnings', MONEY, nullable=False),
        sa.Column('total_payouts', MONEY, nullable=False),
        sa.Column('closing_balance', MONEY, nullable=False),
        sa.Column('items_sold', sa.Integer, nullable=False),
        sa.Column('payout_count', sa.Integer, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='Generated'),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('viewed_at', sa.DateTime(timezone=True)),
        sa.UniqueConstraint(
            'organization_id', 'consignor_id', 'period_start', name='uq_statements_org_consignor_period'
        ),
    )

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer, primary_key=True),
        _org_fk(nullable=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('app_users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(40), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('is_read', sa.Boolean, nullable=False, server_default=sa.sql.expression.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index('idx_notifications_user_read', 'notifications', ['user_id', 'is_read'])


def downgrade():
    op.drop_index('idx_notifications_user_read', table_name='notifications')
    op.drop_table('notifications')
    op.drop_table('statements')
    op.drop_index('idx_transactions_org_sale_date', table_name='transactions')
    op.drop_index('idx_transactions_org_payout', table_name='transactions')
    op.drop_table('transactions')
    op.drop_table('payouts')
    op.drop_index('idx_items_org_status', table_name='items')
    op.drop_table('items')
    op.drop_table('categories')
    op.drop_table('consignors')
    op.drop_index('idx_app_users_org_approval', table_name='app_users')
    op.drop_table('app_users')
    op.drop_table('organizations')
