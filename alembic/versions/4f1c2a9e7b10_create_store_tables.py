"""Create store tables

Revision ID: 4f1c2a9e7b10
Revises:
Create Date: 2026-10-19 10:12:31.204417

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4f1c2a9e7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('member_level', sa.String(length=4), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_account', 'users', ['account'], unique=True)

    op.create_table(
        'vinyl',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('artist', sa.String(length=255), nullable=True),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('main_category_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='ck_vinyl_stock_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_vinyl_main_category_id', 'vinyl', ['main_category_id'])

    op.create_table(
        'coupons',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('validity_days', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=10), nullable=False),
        sa.Column('total_quantity', sa.Integer(), nullable=False),
        sa.Column('usage_limit', sa.Integer(), nullable=False),
        sa.Column('min_spend', sa.Integer(), nullable=False),
        sa.Column('min_items', sa.Integer(), nullable=False),
        sa.Column('discount_type', sa.String(length=20), nullable=False),
        sa.Column('discount_value', sa.Integer(), nullable=False),
        sa.Column('target_type', sa.String(length=10), nullable=False),
        sa.Column('target_value', sa.String(length=20), nullable=True),
        sa.Column('is_valid', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_coupons_code', 'coupons', ['code'], unique=True)

    op.create_table(
        'carts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_carts_id', 'carts', ['id'])
    op.create_index('ix_carts_user_id', 'carts', ['user_id'], unique=True)

    op.create_table(
        'cart_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cart_id', sa.Integer(), nullable=False),
        sa.Column('vinyl_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=True),
        sa.Column('is_checked', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['cart_id'], ['carts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['vinyl_id'], ['vinyl.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cart_id', 'vinyl_id', name='uq_cart_items_cart_vinyl'),
    )
    op.create_index('ix_cart_items_id', 'cart_items', ['id'])

    op.create_table(
        'user_coupons',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('coupon_code', sa.String(length=50), nullable=False),
        sa.Column('remaining_uses', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_valid', sa.Boolean(), nullable=False),
        sa.Column('claimed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['coupon_code'], ['coupons.code']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'coupon_code', name='uq_user_coupons_user_code'),
    )
    op.create_index('ix_user_coupons_user_id', 'user_coupons', ['user_id'])
    op.create_index('ix_user_coupons_coupon_code', 'user_coupons', ['coupon_code'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('total_price', sa.Integer(), nullable=False),
        sa.Column('discount_amount', sa.Integer(), nullable=False),
        sa.Column('shipping_fee', sa.Integer(), nullable=False),
        sa.Column('shipping_discount', sa.Integer(), nullable=False),
        sa.Column('points_used', sa.Integer(), nullable=False),
        sa.Column('points_got', sa.Integer(), nullable=False),
        sa.Column('amount_due', sa.Integer(), nullable=False),
        sa.Column('coupon_id', sa.Integer(), nullable=True),
        sa.Column('payment_status', sa.String(length=20), nullable=False),
        sa.Column('shipping_status', sa.String(length=20), nullable=False),
        sa.Column('recipient_name', sa.String(length=100), nullable=False),
        sa.Column('recipient_phone', sa.String(length=30), nullable=False),
        sa.Column('recipient_email', sa.String(length=255), nullable=True),
        sa.Column('shipping_address', sa.String(length=500), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['coupon_id'], ['coupons.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_payment_status', 'orders', ['payment_status'])
    op.create_index('ix_orders_shipping_status', 'orders', ['shipping_status'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('vinyl_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['vinyl_id'], ['vinyl.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'payment_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=20), nullable=False),
        sa.Column('merchant_trade_no', sa.String(length=20), nullable=True),
        sa.Column('gateway_trade_no', sa.String(length=50), nullable=True),
        sa.Column('payment_status', sa.String(length=20), nullable=False),
        sa.Column('trade_amount', sa.Integer(), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payment_records_order_id', 'payment_records', ['order_id'], unique=True)
    op.create_index('ix_payment_records_merchant_trade_no', 'payment_records', ['merchant_trade_no'])
    op.create_index('ix_payment_records_order_id_status', 'payment_records', ['order_id', 'payment_status'])

    op.create_table(
        'logistics_info',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=10), nullable=False),
        sa.Column('store_id', sa.String(length=20), nullable=True),
        sa.Column('store_name', sa.String(length=100), nullable=True),
        sa.Column('store_telephone', sa.String(length=30), nullable=True),
        sa.Column('tracking_number', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_logistics_info_order_id', 'logistics_info', ['order_id'], unique=True)

    op.create_table(
        'checkout_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('idempotency_key', sa.String(length=100), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'idempotency_key', name='uq_checkout_requests_user_key'),
    )
    op.create_index('ix_checkout_requests_user_id', 'checkout_requests', ['user_id'])

    op.create_table(
        'coupon_usages',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('coupon_code', sa.String(length=50), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['coupon_code'], ['coupons.code']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_coupon_usages_coupon_code', 'coupon_usages', ['coupon_code'])
    op.create_index('ix_coupon_usages_user_id', 'coupon_usages', ['user_id'])
    op.create_index('ix_coupon_usages_order_id', 'coupon_usages', ['order_id'])

    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('vinyl_id', sa.Integer(), nullable=False),
        sa.Column('is_stock_in', sa.Boolean(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=20), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['vinyl_id'], ['vinyl.id']),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_stock_movements_vinyl_id', 'stock_movements', ['vinyl_id'])
    op.create_index('ix_stock_movements_order_id', 'stock_movements', ['order_id'])

    op.create_table(
        'users_points',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=10), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_points_id', 'users_points', ['id'])
    op.create_index('ix_users_points_user_id', 'users_points', ['user_id'])
    op.create_index('ix_users_points_order_id', 'users_points', ['order_id'])

    op.create_table(
        'verification_codes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=False),
        sa.Column('purpose', sa.String(length=30), nullable=False),
        sa.Column('code_hash', sa.String(length=255), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False),
        sa.Column('max_attempts', sa.Integer(), nullable=False),
        sa.Column('consumed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_verification_codes_id', 'verification_codes', ['id'])
    op.create_index('ix_verification_codes_subject_purpose', 'verification_codes', ['subject', 'purpose'])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'verification_codes', 'users_points', 'stock_movements', 'coupon_usages',
        'checkout_requests', 'logistics_info', 'payment_records', 'order_items',
        'orders', 'user_coupons', 'cart_items', 'carts', 'coupons', 'vinyl', 'users',
    ):
        op.drop_table(table)
