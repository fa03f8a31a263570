import logging
from typing import Dict, List, Optional, Set
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_
from fastapi import HTTPException, status
from app.core.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.models.catalog.product import Product
from app.models.catalog.supplier import Supplier
from app.models.requisition.order import Order
from app.models.requisition.order_item import OrderItem
from app.models.requisition.requisition import Requisition
from app.models.shared.enums import ActiveOrdersScope, AuditAction, OrderStatus
from app.schemas.requisition.order_schema import OrderItemAdjust
from app.services.system.audit_service import AuditService

logger = logging.getLogger(__name__)


class OrderService:
    """Pending/delivered lifecycle of supplier orders"""

    def __init__(self, session: AsyncSession, scope: Optional[str] = None):
        self.session = session
        self.scope = ActiveOrdersScope(scope or settings.ACTIVE_ORDERS_SCOPE)
        self.audit = AuditService(session)

    def _apply_scope(self, query, user_id: Optional[str]):
        """Restrict to the principal's own requisitions when the view is per submitter"""
        if self.scope == ActiveOrdersScope.SUBMITTER and user_id is not None:
            query = query.join(Requisition, Requisition.id == Order.requisition_id).where(
                Requisition.user_id == user_id
            )
        return query

    async def pending_product_ids(self, user_id: Optional[str] = None) -> Set[int]:
        """Products that currently sit on a pending order"""
        query = (
            select(OrderItem.product_id)
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.status == OrderStatus.PENDING)
            .distinct()
        )
        result = await self.session.execute(self._apply_scope(query, user_id))
        return set(result.scalars().all())

    async def list_active_orders(self, user_id: Optional[str] = None) -> List[Dict]:
        """
        Pending order lines grouped by supplier.

        Quantities of the same product across several pending orders of one
        supplier are summed, using the reconciled qty_final.
        """
        query = (
            select(
                Supplier.id,
                Supplier.name,
                Product.id,
                Product.name,
                Product.unit,
                OrderItem.qty_final,
            )
            .select_from(OrderItem)
            .join(Order, Order.id == OrderItem.order_id)
            .join(Supplier, Supplier.id == Order.supplier_id)
            .join(Product, Product.id == OrderItem.product_id)
            .where(Order.status == OrderStatus.PENDING)
        )
        query = self._apply_scope(query, user_id).order_by(Supplier.name, Product.name)
        result = await self.session.execute(query)

        groups: Dict[int, Dict] = {}
        for supplier_id, supplier_name, product_id, product_name, unit, qty in result.all():
            group = groups.get(supplier_id)
            if group is None:
                group = groups[supplier_id] = {
                    "supplier_id": supplier_id,
                    "supplier_name": supplier_name,
                    "items": {},
                }
            line = group["items"].get(product_id)
            if line is None:
                group["items"][product_id] = {
                    "product_id": product_id,
                    "name": product_name,
                    "unit": unit,
                    "qty": qty,
                }
            else:
                line["qty"] += qty

        return [
            {**group, "items": list(group["items"].values())}
            for group in groups.values()
        ]

    async def mark_delivered(self, supplier_id: int, user_id: Optional[str] = None) -> int:
        """
        Move every pending order of a supplier to delivered.

        Applies across requisitions; calling it again with nothing pending
        updates zero rows.
        """
        try:
            supplier = await self.session.execute(select(Supplier.id).where(Supplier.id == supplier_id))
            if supplier.scalar_one_or_none() is None:
                raise NotFoundError("Supplier not found")

            result = await self.session.execute(
                update(Order)
                .where(and_(Order.supplier_id == supplier_id, Order.status == OrderStatus.PENDING))
                .values(status=OrderStatus.DELIVERED)
                .execution_options(synchronize_session=False)
            )
            updated = result.rowcount or 0

            if updated:
                self.audit.record("supplier", supplier_id, AuditAction.DELIVER, user_id, {"orders": updated})
            await self.session.commit()

            logger.info(f"{updated} pending order(s) of supplier {supplier_id} marked delivered by user {user_id}")
            return updated

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error marking orders of supplier {supplier_id} delivered: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to mark orders delivered"
            )

    async def adjust_order_item(
        self,
        order_item_id: int,
        adjust_data: OrderItemAdjust,
        user_id: Optional[str] = None
    ) -> OrderItem:
        """Reconcile the final quantity or note of a line on a pending order"""
        try:
            result = await self.session.execute(
                select(OrderItem, Order.status)
                .join(Order, Order.id == OrderItem.order_id)
                .where(OrderItem.id == order_item_id)
            )
            row = result.one_or_none()
            if row is None:
                raise NotFoundError("Order item not found")

            order_item, order_status = row
            if order_status == OrderStatus.DELIVERED:
                raise ValidationError("Delivered orders cannot be adjusted")

            changes = adjust_data.model_dump(exclude_unset=True)
            if changes.get("qty_final") is not None:
                order_item.qty_final = changes["qty_final"]
            if "note" in changes:
                order_item.note = changes["note"]

            self.audit.record("order_item", order_item_id, AuditAction.ADJUST, user_id, changes)
            await self.session.commit()

            logger.info(f"Order item {order_item_id} adjusted by user {user_id}")
            return order_item

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error adjusting order item {order_item_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to adjust order item"
            )
