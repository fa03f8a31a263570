from app.models.catalog.supplier import Supplier
from app.models.catalog.product import Product
from app.models.catalog.product_supplier import ProductSupplier
from app.models.requisition.requisition import Requisition
from app.models.requisition.requisition_item import RequisitionItem
from app.models.requisition.order import Order
from app.models.requisition.order_item import OrderItem
from app.models.alerts.notification_queue import NotificationQueue
from app.models.system.audit_log import AuditLog


__all__ = [
    "Supplier",
    "Product",
    "ProductSupplier",
    "Requisition",
    "RequisitionItem",
    "Order",
    "OrderItem",
    "NotificationQueue",
    "AuditLog",
]
