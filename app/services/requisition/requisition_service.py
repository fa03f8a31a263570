import logging
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc
from fastapi import HTTPException, status
from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.catalog.product import Product
from app.models.catalog.supplier import Supplier
from app.models.requisition.order import Order
from app.models.requisition.order_item import OrderItem
from app.models.requisition.requisition import Requisition
from app.models.requisition.requisition_item import RequisitionItem
from app.models.shared.enums import AuditAction, OrderStatus, RequisitionStatus
from app.schemas.requisition.requisition_schema import RequisitionCreate
from app.services.catalog.supplier_resolver import SupplierRanking, SupplierResolver
from app.services.notification.notification_service import NotificationDispatcher, NotificationService
from app.services.requisition.order_service import OrderService
from app.services.system.audit_service import AuditService

logger = logging.getLogger(__name__)


class RequisitionService:
    def __init__(
        self,
        db: AsyncSession,
        dispatcher: Optional[NotificationDispatcher] = None,
        reject_pending_reorder: Optional[bool] = None,
        scope: Optional[str] = None,
    ):
        self.db = db
        self.orders = OrderService(db, scope=scope)
        self.notifications = NotificationService(db, dispatcher=dispatcher)
        self.audit = AuditService(db)
        self.reject_pending_reorder = (
            settings.REJECT_PENDING_REORDER if reject_pending_reorder is None else reject_pending_reorder
        )

    async def _load_products(self, product_ids: List[int]) -> Dict[int, Product]:
        result = await self.db.execute(select(Product).where(Product.id.in_(product_ids)))
        return {product.id: product for product in result.scalars().all()}

    async def submit_requisition(self, user_id: str, requisition_data: RequisitionCreate) -> Requisition:
        """
        Record a requisition and split it into one order per resolved supplier.

        Every line is kept as a requisition item; the same line goes to the order
        of its product's primary active supplier, creating that order the first
        time the supplier shows up. Everything commits together or not at all.
        """
        try:
            product_ids = [item.product_id for item in requisition_data.items]
            products = await self._load_products(product_ids)

            # The insert takes the write lock, so the pending check below sees
            # every submission committed before this one
            requisition = Requisition(user_id=user_id, status=RequisitionStatus.CREATED)
            self.db.add(requisition)
            await self.db.flush()  # Get the ID

            if self.reject_pending_reorder:
                pending = await self.orders.pending_product_ids(user_id)
                already_ordered = sorted({pid for pid in product_ids if pid in pending})
                if already_ordered:
                    raise ConflictError(f"Products already on a pending order: {already_ordered}")

            orders_by_supplier: Dict[int, Order] = {}
            order_lines: Dict[int, List[Dict[str, Any]]] = {}

            for item in requisition_data.items:
                product = products.get(item.product_id)
                if product is None:
                    raise NotFoundError(f"Product {item.product_id} not found")
                if not product.active:
                    raise ValidationError(f"Product {item.product_id} is not active")

                self.db.add(RequisitionItem(
                    requisition_id=requisition.id,
                    product_id=product.id,
                    qty_requested=item.qty,
                ))

                supplier_id = SupplierResolver.resolve_for(product)

                order = orders_by_supplier.get(supplier_id)
                if order is None:
                    order = Order(
                        requisition_id=requisition.id,
                        supplier_id=supplier_id,
                        status=OrderStatus.PENDING,
                    )
                    self.db.add(order)
                    await self.db.flush()
                    orders_by_supplier[supplier_id] = order
                    order_lines[supplier_id] = []

                self.db.add(OrderItem(
                    order_id=order.id,
                    product_id=product.id,
                    qty_requested=item.qty,
                    qty_final=item.qty,
                ))
                order_lines[supplier_id].append({
                    "product_id": product.id,
                    "name": product.name,
                    "unit": product.unit,
                    "qty": item.qty,
                })

            requisition.status = RequisitionStatus.PROCESSED

            supplier_names = {
                supplier_id: SupplierRanking(products[lines[0]["product_id"]]).find(supplier_id).supplier.name
                for supplier_id, lines in order_lines.items()
            }
            notification = self.notifications.stage_requisition_submitted(
                requisition,
                [
                    {
                        "order_id": orders_by_supplier[supplier_id].id,
                        "supplier_id": supplier_id,
                        "supplier_name": supplier_names[supplier_id],
                        "items": lines,
                    }
                    for supplier_id, lines in order_lines.items()
                ],
            )
            self.audit.record(
                "requisition", requisition.id, AuditAction.SUBMIT, user_id,
                {"items": len(requisition_data.items), "orders": len(orders_by_supplier)}
            )
            await self.db.flush()
            notification_id = notification.id if notification is not None else None

            await self.db.commit()

        except HTTPException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error submitting requisition for user {user_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to submit requisition"
            )

        logger.info(
            f"Requisition {requisition.id} created by user {user_id} "
            f"with {len(orders_by_supplier)} order(s)"
        )
        self.notifications.dispatch_after_commit(notification_id)
        requisition.order_count = len(orders_by_supplier)
        return requisition

    async def get_requisitions(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Latest requisitions first, with the number of derived orders"""
        order_count = (
            select(func.count(Order.id))
            .where(Order.requisition_id == Requisition.id)
            .correlate(Requisition)
            .scalar_subquery()
        )
        result = await self.db.execute(
            select(Requisition, order_count.label("order_count"))
            .order_by(desc(Requisition.id))
            .limit(limit or settings.REQUISITION_LIST_LIMIT)
        )
        return [
            {
                "id": requisition.id,
                "user_id": requisition.user_id,
                "status": requisition.status,
                "created_at": requisition.created_at,
                "order_count": count,
            }
            for requisition, count in result.all()
        ]

    async def get_requisition_detail(self, requisition_id: int) -> Dict[str, Any]:
        """Orders of one requisition by supplier name, each line with its alternative suppliers"""
        result = await self.db.execute(select(Requisition).where(Requisition.id == requisition_id))
        requisition = result.scalar_one_or_none()
        if not requisition:
            raise NotFoundError("Requisition not found")

        orders_result = await self.db.execute(
            select(Order, Supplier)
            .join(Supplier, Supplier.id == Order.supplier_id)
            .where(Order.requisition_id == requisition_id)
            .order_by(Supplier.name)
        )
        orders = orders_result.all()

        items_by_order: Dict[int, List] = {order.id: [] for order, _ in orders}
        if items_by_order:
            items_result = await self.db.execute(
                select(OrderItem, Product)
                .join(Product, Product.id == OrderItem.product_id)
                .where(OrderItem.order_id.in_(list(items_by_order)))
                .order_by(Product.name)
            )
            for order_item, product in items_result.all():
                items_by_order[order_item.order_id].append((order_item, product))

        detail_orders = []
        for order, supplier in orders:
            lines = []
            for order_item, product in items_by_order[order.id]:
                alternatives = SupplierRanking(product).alternatives(exclude_supplier_id=supplier.id)
                lines.append({
                    "order_item_id": order_item.id,
                    "product_id": product.id,
                    "product_name": product.name,
                    "unit": product.unit,
                    "qty_requested": order_item.qty_requested,
                    "qty_final": order_item.qty_final,
                    "note": order_item.note,
                    "alternatives": [
                        {"id": link.supplier_id, "name": link.supplier.name, "active": link.supplier.active}
                        for link in alternatives
                    ],
                })
            detail_orders.append({
                "order_id": order.id,
                "status": order.status,
                "supplier": {"id": supplier.id, "name": supplier.name, "active": supplier.active},
                "items": lines,
            })

        return {
            "id": requisition.id,
            "user_id": requisition.user_id,
            "status": requisition.status,
            "created_at": requisition.created_at,
            "orders": detail_orders,
        }
