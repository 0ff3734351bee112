"""add_store_orders_and_payments

Revision ID: 3f9c2a7d4b10
Revises:
Create Date: 2026-10-19 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9c2a7d4b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


payment_method_enum = postgresql.ENUM(
    'gateway', 'cod', name='store_payment_method_enum', create_type=False
)
payment_status_enum = postgresql.ENUM(
    'awaiting_payment', 'cod_pending', 'paid',
    name='store_payment_status_enum', create_type=False,
)
order_status_enum = postgresql.ENUM(
    'pending', 'confirmed', 'shipped', 'delivered', 'cancelled',
    name='store_order_status_enum', create_type=False,
)
ledger_status_enum = postgresql.ENUM(
    'pending', 'completed', 'failed', 'refunded',
    name='store_ledger_status_enum', create_type=False,
)


def upgrade() -> None:
    """Upgrade schema - Add store orders and payment ledger tables."""
    bind = op.get_bind()
    for enum_type in (
        payment_method_enum,
        payment_status_enum,
        order_status_enum,
        ledger_status_enum,
    ):
        enum_type.create(bind, checkfirst=True)

    # Create store_orders table
    op.create_table(
        'store_orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('payment_order_id', sa.String(length=100), nullable=False),
        sa.Column('items', postgresql.JSONB(), nullable=False),
        sa.Column('shipping_address', postgresql.JSONB(), nullable=False),
        sa.Column('billing_address', postgresql.JSONB(), nullable=True),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax', sa.Numeric(12, 2), nullable=False),
        sa.Column('shipping_fee', sa.Numeric(12, 2), server_default='0', nullable=True),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(length=8), nullable=False),
        sa.Column('gst', postgresql.JSONB(), nullable=True),
        sa.Column('payment_method', payment_method_enum, nullable=False),
        sa.Column('payment_status', payment_status_enum, nullable=False),
        sa.Column('order_status', order_status_enum, nullable=False),
        sa.Column('status', order_status_enum, nullable=False),
        sa.Column('tracking_number', sa.String(length=100), nullable=True),
        sa.Column('carrier_name', sa.String(length=100), nullable=True),
        sa.Column('tracking_url', sa.String(length=500), nullable=True),
        sa.Column('shipping_package', postgresql.JSONB(), nullable=True),
        sa.Column('shipping_payment', postgresql.JSONB(), nullable=True),
        sa.Column('customer_notes', sa.Text(), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('shipped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_store_orders_order_number'), 'store_orders', ['order_number'], unique=True
    )
    op.create_index(
        op.f('ix_store_orders_payment_order_id'), 'store_orders', ['payment_order_id'], unique=True
    )
    op.create_index(op.f('ix_store_orders_user_id'), 'store_orders', ['user_id'], unique=False)
    op.create_index(
        'ix_store_orders_user_id_created_at', 'store_orders', ['user_id', 'created_at'], unique=False
    )

    # Create store_payments table
    op.create_table(
        'store_payments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('transaction_id', sa.String(length=100), nullable=False),
        sa.Column('order_id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('user_name', sa.String(length=255), nullable=False),
        sa.Column('user_email', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('payment_method', payment_method_enum, nullable=False),
        sa.Column('status', ledger_status_enum, nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_id'),
    )
    op.create_index(op.f('ix_store_payments_order_id'), 'store_payments', ['order_id'], unique=False)
    op.create_index(
        'ix_store_payments_user_id_status', 'store_payments', ['user_id', 'status'], unique=False
    )
    op.create_index(
        'ix_store_payments_status_payment_date', 'store_payments', ['status', 'payment_date'], unique=False
    )


def downgrade() -> None:
    """Downgrade schema - Drop store orders and payment ledger tables."""
    op.drop_index('ix_store_payments_status_payment_date', table_name='store_payments')
    op.drop_index('ix_store_payments_user_id_status', table_name='store_payments')
    op.drop_index(op.f('ix_store_payments_order_id'), table_name='store_payments')
    op.drop_table('store_payments')

    op.drop_index('ix_store_orders_user_id_created_at', table_name='store_orders')
    op.drop_index(op.f('ix_store_orders_user_id'), table_name='store_orders')
    op.drop_index(op.f('ix_store_orders_payment_order_id'), table_name='store_orders')
    op.drop_index(op.f('ix_store_orders_order_number'), table_name='store_orders')
    op.drop_table('store_orders')

    bind = op.get_bind()
    for enum_type in (
        ledger_status_enum,
        order_status_enum,
        payment_status_enum,
        payment_method_enum,
    ):
        enum_type.drop(bind, checkfirst=True)
