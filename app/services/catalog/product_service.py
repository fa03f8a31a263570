import logging
from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, and_
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from fastapi import HTTPException, status
from app.core.config import settings
from app.core.exceptions import NotFoundError, ConflictError, ValidationError
from app.models.catalog.product import Product
from app.models.catalog.product_supplier import ProductSupplier
from app.models.requisition.order import Order
from app.models.requisition.order_item import OrderItem
from app.models.requisition.requisition_item import RequisitionItem
from app.models.shared.enums import AuditAction
from app.schemas.catalog.product_schema import ProductCreate, ProductUpdate
from app.services.catalog.supplier_resolver import SupplierRanking, SupplierResolver
from app.services.requisition.order_service import OrderService
from app.services.system.audit_service import AuditService

logger = logging.getLogger(__name__)

class ProductService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.resolver = SupplierResolver(session)
        self.audit = AuditService(session)

    @staticmethod
    def to_response(product: Product) -> Dict[str, Any]:
        """Product fields plus its current primary supplier"""
        primary = SupplierRanking(product).primary(active_only=False)
        return {
            "id": product.id,
            "name": product.name,
            "unit": product.unit,
            "category": product.category,
            "active": product.active,
            "supplier_id": primary.supplier_id if primary else None,
            "supplier_name": primary.supplier.name if primary else None,
            "supplier_count": len(product.supplier_links),
            "created_at": product.created_at,
            "updated_at": product.updated_at,
        }

    async def _ensure_unique_name(self, name: str, exclude_id: Optional[int] = None):
        query = select(Product.id).where(Product.name == name)
        if exclude_id is not None:
            query = query.where(Product.id != exclude_id)
        existing = await self.session.execute(query)
        if existing.scalar_one_or_none():
            raise ConflictError(f"Product '{name}' already exists")

    async def create_product(self, product_data: ProductCreate, user_id: Optional[str] = None) -> Product:
        """Create a product, optionally attaching its primary supplier"""
        try:
            await self._ensure_unique_name(product_data.name)

            product = Product(
                name=product_data.name,
                unit=product_data.unit,
                category=product_data.category or settings.DEFAULT_PRODUCT_CATEGORY,
                active=product_data.active,
                supplier_links=[],
            )
            self.session.add(product)

            if product_data.supplier_id is not None:
                link = await self.resolver.attach_supplier(product, product_data.supplier_id)
                if not link.supplier.active:
                    raise ValidationError("Supplier is deactivated")

            await self.session.flush()
            self.audit.record(
                "product", product.id, AuditAction.CREATE, user_id,
                {"name": product.name, "supplier_id": product_data.supplier_id}
            )
            await self.session.commit()

            logger.info(f"Product created: {product.id} by user {user_id}")
            return product

        except HTTPException:
            await self.session.rollback()
            raise
        except DBIntegrityError:
            await self.session.rollback()
            raise ConflictError(f"Product '{product_data.name}' already exists")
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating product: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create product"
            )

    async def get_product(self, product_id: int) -> Optional[Product]:
        result = await self.session.execute(select(Product).where(Product.id == product_id))
        return result.scalar_one_or_none()

    async def get_products(self, is_active: Optional[bool] = None) -> List[Product]:
        """Admin listing, active first then by name; inactive products stay visible"""
        query = select(Product)
        if is_active is not None:
            query = query.where(Product.active == is_active)
        result = await self.session.execute(query.order_by(Product.active.desc(), Product.name))
        return list(result.scalars().all())

    async def update_product(
        self,
        product_id: int,
        product_data: ProductUpdate,
        user_id: Optional[str] = None
    ) -> Product:
        try:
            product = await self.get_product(product_id)
            if not product:
                raise NotFoundError("Product not found")

            changes = {
                field: value
                for field, value in product_data.model_dump(exclude_unset=True).items()
                if value is not None
            }
            if "category" in changes and not changes["category"]:
                changes["category"] = settings.DEFAULT_PRODUCT_CATEGORY

            if "name" in changes and changes["name"] != product.name:
                await self._ensure_unique_name(changes["name"], exclude_id=product_id)

            for field, value in changes.items():
                setattr(product, field, value)

            self.audit.record("product", product_id, AuditAction.UPDATE, user_id, changes)
            await self.session.commit()

            logger.info(f"Product updated: {product_id} by user {user_id}")
            return product

        except HTTPException:
            await self.session.rollback()
            raise
        except DBIntegrityError:
            await self.session.rollback()
            raise ConflictError("Product name already exists")
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating product {product_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update product"
            )

    async def delete_product(self, product_id: int, user_id: Optional[str] = None) -> bool:
        """Hard delete a product with its links, order items and requisition items"""
        try:
            product = await self.get_product(product_id)
            if not product:
                raise NotFoundError("Product not found")

            touched = await self.session.execute(
                select(OrderItem.order_id).where(OrderItem.product_id == product_id).distinct()
            )
            touched_order_ids = list(touched.scalars().all())

            await self.session.execute(
                delete(OrderItem).where(OrderItem.product_id == product_id).execution_options(synchronize_session=False)
            )
            await self.session.execute(
                delete(RequisitionItem).where(RequisitionItem.product_id == product_id).execution_options(synchronize_session=False)
            )
            await self.session.execute(
                delete(ProductSupplier).where(ProductSupplier.product_id == product_id).execution_options(synchronize_session=False)
            )
            if touched_order_ids:
                # Drop orders left without any line
                await self.session.execute(
                    delete(Order)
                    .where(and_(Order.id.in_(touched_order_ids), ~Order.id.in_(select(OrderItem.order_id))))
                    .execution_options(synchronize_session=False)
                )
            await self.session.execute(
                delete(Product).where(Product.id == product_id).execution_options(synchronize_session=False)
            )

            self.audit.record("product", product_id, AuditAction.DELETE, user_id, {"name": product.name})
            await self.session.commit()
            self.session.expunge_all()

            logger.info(f"Product deleted: {product_id} by user {user_id}")
            return True

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deleting product {product_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to delete product"
            )

    async def list_staff_products(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Orderable catalog for staff.

        Only active products that resolve to an active supplier are listed; each
        carries an on_order flag when it already sits on a pending order.
        """
        result = await self.session.execute(
            select(Product).where(Product.active == True).order_by(Product.name)
        )
        on_order = await OrderService(self.session).pending_product_ids(user_id)

        products = []
        for product in result.scalars().all():
            primary = SupplierRanking(product).primary()
            if primary is None:
                continue
            products.append({
                "id": product.id,
                "name": product.name,
                "unit": product.unit,
                "category": product.category,
                "supplier_id": primary.supplier_id,
                "supplier_name": primary.supplier.name,
                "on_order": product.id in on_order,
            })
        return products
