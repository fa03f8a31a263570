"""initial_procurement_schema

Revision ID: 4c2a9e1f7b30
Revises:
Create Date: 2026-10-19 10:12:41.502311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c2a9e1f7b30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade():
    op.create_table(
        'suppliers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False, unique=True),
        sa.Column('contact_note', sa.Text(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_suppliers_id', 'suppliers', ['id'])

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False, unique=True),
        sa.Column('unit', sa.String(length=50), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_products_id', 'products', ['id'])

    op.create_table(
        'product_suppliers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('product_id', 'supplier_id', name='uq_product_suppliers_pair'),
    )
    op.create_index('ix_product_suppliers_id', 'product_suppliers', ['id'])
    op.create_index('ix_product_suppliers_product_id', 'product_suppliers', ['product_id'])
    op.create_index('ix_product_suppliers_supplier_id', 'product_suppliers', ['supplier_id'])

    op.create_table(
        'requisitions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.Enum('CREATED', 'PROCESSED', name='requisitionstatus'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_requisitions_id', 'requisitions', ['id'])
    op.create_index('ix_requisitions_user_id', 'requisitions', ['user_id'])

    op.create_table(
        'requisition_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('requisition_id', sa.Integer(), sa.ForeignKey('requisitions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('qty_requested', sa.Float(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_requisition_items_id', 'requisition_items', ['id'])
    op.create_index('ix_requisition_items_requisition_id', 'requisition_items', ['requisition_id'])
    op.create_index('ix_requisition_items_product_id', 'requisition_items', ['product_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('requisition_id', sa.Integer(), sa.ForeignKey('requisitions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'DELIVERED', name='orderstatus'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('requisition_id', 'supplier_id', name='uq_orders_requisition_supplier'),
    )
    op.create_index('ix_orders_id', 'orders', ['id'])
    op.create_index('ix_orders_requisition_id', 'orders', ['requisition_id'])
    op.create_index('ix_orders_supplier_id', 'orders', ['supplier_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('qty_requested', sa.Float(), nullable=False),
        sa.Column('qty_final', sa.Float(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_order_items_id', 'order_items', ['id'])
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])

    op.create_table(
        'notification_queue',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('notification_type', sa.String(length=50), nullable=False),
        sa.Column('recipient_id', sa.String(length=64), nullable=True),
        sa.Column('subject', sa.String(length=500), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False),
        sa.Column('max_retries', sa.Integer(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('reference_type', sa.String(length=50), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_notification_queue_id', 'notification_queue', ['id'])

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('entity', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('payload_json', sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_audit_log_id', 'audit_log', ['id'])


def downgrade():
    op.drop_table('audit_log')
    op.drop_table('notification_queue')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('requisition_items')
    op.drop_table('requisitions')
    op.drop_table('product_suppliers')
    op.drop_table('products')
    op.drop_table('suppliers')
    sa.Enum(name='orderstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='requisitionstatus').drop(op.get_bind(), checkfirst=True)
