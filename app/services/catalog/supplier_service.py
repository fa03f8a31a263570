import logging
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, and_, func
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from fastapi import HTTPException, status
from app.models.catalog.supplier import Supplier
from app.models.catalog.product import Product
from app.models.catalog.product_supplier import ProductSupplier
from app.models.requisition.order import Order
from app.models.requisition.order_item import OrderItem
from app.models.requisition.requisition_item import RequisitionItem
from app.models.shared.enums import AuditAction
from app.schemas.catalog.supplier_schema import SupplierCreate, SupplierUpdate
from app.core.exceptions import NotFoundError, ConflictError
from app.services.catalog.supplier_resolver import SupplierRanking
from app.services.system.audit_service import AuditService

logger = logging.getLogger(__name__)

class SupplierService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit = AuditService(session)

    async def _ensure_unique_name(self, name: str, exclude_id: Optional[int] = None):
        query = select(Supplier.id).where(Supplier.name == name)
        if exclude_id is not None:
            query = query.where(Supplier.id != exclude_id)
        existing = await self.session.execute(query)
        if existing.scalar_one_or_none():
            raise ConflictError(f"Supplier '{name}' already exists")

    async def create_supplier(self, supplier_data: SupplierCreate, user_id: Optional[str] = None) -> Supplier:
        """Create a new supplier"""
        try:
            await self._ensure_unique_name(supplier_data.name)

            supplier = Supplier(**supplier_data.model_dump())
            self.session.add(supplier)
            await self.session.flush()
            self.audit.record("supplier", supplier.id, AuditAction.CREATE, user_id, {"name": supplier.name})
            await self.session.commit()

            logger.info(f"Supplier created: {supplier.id} by user {user_id}")
            return supplier

        except HTTPException:
            await self.session.rollback()
            raise
        except DBIntegrityError:
            await self.session.rollback()
            raise ConflictError(f"Supplier '{supplier_data.name}' already exists")
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating supplier: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create supplier"
            )

    async def get_supplier(self, supplier_id: int) -> Optional[Supplier]:
        """Get supplier by ID"""
        result = await self.session.execute(
            select(Supplier).where(Supplier.id == supplier_id)
        )
        return result.scalar_one_or_none()

    async def get_suppliers(self, is_active: Optional[bool] = None) -> List[Supplier]:
        """Admin listing: active suppliers first, then by name"""
        query = select(Supplier)
        if is_active is not None:
            query = query.where(Supplier.active == is_active)

        result = await self.session.execute(query.order_by(Supplier.active.desc(), Supplier.name))
        return list(result.scalars().all())

    async def update_supplier(
        self,
        supplier_id: int,
        supplier_data: SupplierUpdate,
        user_id: Optional[str] = None
    ) -> Supplier:
        """Update supplier"""
        try:
            supplier = await self.get_supplier(supplier_id)
            if not supplier:
                raise NotFoundError("Supplier not found")

            changes = supplier_data.model_dump(exclude_unset=True)
            if changes.get("name") is None:
                changes.pop("name", None)
            if "active" in changes and changes["active"] is None:
                changes.pop("active")

            if "name" in changes and changes["name"] != supplier.name:
                await self._ensure_unique_name(changes["name"], exclude_id=supplier_id)

            for field, value in changes.items():
                setattr(supplier, field, value)

            self.audit.record("supplier", supplier_id, AuditAction.UPDATE, user_id, changes)
            await self.session.commit()

            logger.info(f"Supplier updated: {supplier_id} by user {user_id}")
            return supplier

        except HTTPException:
            await self.session.rollback()
            raise
        except DBIntegrityError:
            await self.session.rollback()
            raise ConflictError("Supplier name already exists")
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating supplier {supplier_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update supplier"
            )

    async def delete_supplier(self, supplier_id: int, user_id: Optional[str] = None) -> bool:
        """
        Hard delete a supplier in one transaction.

        Removes the supplier's links and its orders (with their items). Products
        whose only link was this supplier are deleted together with their order
        and requisition items; products with other suppliers keep them, renumbered.
        """
        try:
            supplier = await self.get_supplier(supplier_id)
            if not supplier:
                raise NotFoundError("Supplier not found")

            linked_result = await self.session.execute(
                select(ProductSupplier.product_id).where(ProductSupplier.supplier_id == supplier_id)
            )
            linked_ids = list(linked_result.scalars().all())

            exclusive_ids: List[int] = []
            if linked_ids:
                exclusive_result = await self.session.execute(
                    select(ProductSupplier.product_id)
                    .where(ProductSupplier.product_id.in_(linked_ids))
                    .group_by(ProductSupplier.product_id)
                    .having(func.count(ProductSupplier.id) == 1)
                )
                exclusive_ids = list(exclusive_result.scalars().all())
            shared_ids = [pid for pid in linked_ids if pid not in exclusive_ids]

            touched_order_ids: List[int] = []
            if exclusive_ids:
                touched_result = await self.session.execute(
                    select(OrderItem.order_id).where(OrderItem.product_id.in_(exclusive_ids)).distinct()
                )
                touched_order_ids = list(touched_result.scalars().all())

                await self.session.execute(
                    delete(OrderItem).where(OrderItem.product_id.in_(exclusive_ids)).execution_options(synchronize_session=False)
                )
                await self.session.execute(
                    delete(RequisitionItem).where(RequisitionItem.product_id.in_(exclusive_ids)).execution_options(synchronize_session=False)
                )
                await self.session.execute(
                    delete(ProductSupplier).where(ProductSupplier.product_id.in_(exclusive_ids)).execution_options(synchronize_session=False)
                )
                await self.session.execute(
                    delete(Product).where(Product.id.in_(exclusive_ids)).execution_options(synchronize_session=False)
                )

            order_ids = select(Order.id).where(Order.supplier_id == supplier_id)
            await self.session.execute(
                delete(OrderItem).where(OrderItem.order_id.in_(order_ids)).execution_options(synchronize_session=False)
            )
            await self.session.execute(
                delete(Order).where(Order.supplier_id == supplier_id).execution_options(synchronize_session=False)
            )
            await self.session.execute(
                delete(ProductSupplier).where(ProductSupplier.supplier_id == supplier_id).execution_options(synchronize_session=False)
            )
            if touched_order_ids:
                # Orders of other suppliers that only carried the removed products
                await self.session.execute(
                    delete(Order)
                    .where(and_(Order.id.in_(touched_order_ids), ~Order.id.in_(select(OrderItem.order_id))))
                    .execution_options(synchronize_session=False)
                )
            await self.session.execute(
                delete(Supplier).where(Supplier.id == supplier_id).execution_options(synchronize_session=False)
            )

            if shared_ids:
                products = await self.session.execute(
                    select(Product)
                    .where(Product.id.in_(shared_ids))
                    .execution_options(populate_existing=True)
                )
                for product in products.scalars().all():
                    SupplierRanking(product).renumber()

            self.audit.record(
                "supplier", supplier_id, AuditAction.DELETE, user_id,
                {"deleted_products": exclusive_ids, "relinked_products": shared_ids}
            )
            await self.session.commit()
            self.session.expunge_all()

            logger.info(
                f"Supplier deleted: {supplier_id} by user {user_id} "
                f"({len(exclusive_ids)} exclusive product(s) removed)"
            )
            return True

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deleting supplier {supplier_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to delete supplier"
            )
