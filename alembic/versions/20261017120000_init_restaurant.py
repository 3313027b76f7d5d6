
from alembic import op
import sqlalchemy as sa

revision = "20261017120000"
down_revision = None

ORDER_STATUSES = ('pending', 'payment_pending', 'processing', 'shipped', 'completed', 'cancelled')
PAYMENT_STATUSES = ('pending', 'initiated', 'paid', 'failed', 'discrepancy', 'reversed')

def _utc_now():
    return sa.text("(now() at time zone 'utc')")

def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True, index=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=32), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='user'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_utc_now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=_utc_now()),
    )
    op.create_table(
        'user_addresses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('street_address', sa.String(length=255), nullable=False),
        sa.Column('city', sa.String(length=120), nullable=False),
        sa.Column('state', sa.String(length=120), nullable=True),
        sa.Column('postal_code', sa.String(length=32), nullable=True),
        sa.Column('country', sa.String(length=120), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_utc_now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=_utc_now()),
    )
    # at most one default address per user
    op.create_index(
        'uq_user_addresses_one_default', 'user_addresses', ['user_id'],
        unique=True, postgresql_where=sa.text('is_default'),
    )
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(length=1024), nullable=True),
    )
    op.create_table(
        'menu_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('name', sa.String(length=240), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('image_url', sa.String(length=1024), nullable=True),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_utc_now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=_utc_now()),
        sa.CheckConstraint('price > 0', name='ck_menu_items_price_positive'),
    )
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('address_id', sa.Integer(), sa.ForeignKey('user_addresses.id'), nullable=True),
        sa.Column('delivery_notes', sa.Text(), nullable=True),
        sa.Column('is_pickup', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('delivery_fee', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('payment_status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('payment_reference', sa.String(length=128), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_utc_now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=_utc_now()),
        sa.CheckConstraint('subtotal >= 0', name='ck_orders_subtotal_non_negative'),
        sa.CheckConstraint('delivery_fee >= 0', name='ck_orders_delivery_fee_non_negative'),
        sa.CheckConstraint('total_amount = subtotal + delivery_fee', name='ck_orders_total_matches'),
        sa.CheckConstraint('is_pickup OR address_id IS NOT NULL', name='ck_orders_address_unless_pickup'),
        sa.CheckConstraint(f"status IN {ORDER_STATUSES}", name='ck_orders_status'),
        sa.CheckConstraint(f"payment_status IN {PAYMENT_STATUSES}", name='ck_orders_payment_status'),
    )
    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('menu_item_id', sa.Integer(), sa.ForeignKey('menu_items.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_at_order', sa.Numeric(12, 2), nullable=False),
        sa.Column('special_instructions', sa.Text(), nullable=True),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),
    )

def downgrade():
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('menu_items')
    op.drop_table('categories')
    op.drop_index('uq_user_addresses_one_default', table_name='user_addresses')
    op.drop_table('user_addresses')
    op.drop_table('users')
