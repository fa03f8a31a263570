import logging
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from fastapi import HTTPException, status
from app.models.catalog.product import Product
from app.models.catalog.product_supplier import ProductSupplier
from app.models.catalog.supplier import Supplier
from app.models.shared.enums import AuditAction
from app.core.exceptions import NotFoundError, IntegrityError
from app.services.system.audit_service import AuditService

logger = logging.getLogger(__name__)


class SupplierRanking:
    """
    Ranked supplier list of one product.

    Position 1 is the primary supplier, everything after it is an alternative.
    sort_order is kept dense (1..N) by every mutation, so removing the primary
    promotes the next supplier without further bookkeeping.
    """

    def __init__(self, product: Product):
        self.product = product

    @property
    def links(self) -> List[ProductSupplier]:
        return sorted(self.product.supplier_links, key=lambda link: link.sort_order)

    def __len__(self) -> int:
        return len(self.product.supplier_links)

    def find(self, supplier_id: int) -> Optional[ProductSupplier]:
        for link in self.product.supplier_links:
            if link.supplier_id == supplier_id:
                return link
        return None

    def primary(self, active_only: bool = True) -> Optional[ProductSupplier]:
        """First ranked link; inactive suppliers are skipped unless asked otherwise"""
        for link in self.links:
            if not active_only or link.supplier.active:
                return link
        return None

    def alternatives(self, exclude_supplier_id: Optional[int] = None) -> List[ProductSupplier]:
        primary = self.primary()
        skip = exclude_supplier_id if exclude_supplier_id is not None else (primary.supplier_id if primary else None)
        return [link for link in self.links if link.supplier_id != skip]

    def append(self, supplier: Supplier) -> ProductSupplier:
        existing = self.find(supplier.id)
        if existing:
            return existing

        ordered = self.links
        link = ProductSupplier(supplier_id=supplier.id, sort_order=len(ordered) + 1)
        link.supplier = supplier
        self.product.supplier_links.append(link)
        self.renumber(ordered + [link])
        return link

    def remove(self, supplier_id: int) -> Optional[ProductSupplier]:
        link = self.find(supplier_id)
        if link is None:
            return None

        self.product.supplier_links.remove(link)
        self.renumber()
        return link

    def promote(self, supplier_id: int) -> Optional[ProductSupplier]:
        link = self.find(supplier_id)
        if link is None:
            return None

        self.renumber([link] + [other for other in self.links if other is not link])
        return link

    def renumber(self, ordered: Optional[Iterable[ProductSupplier]] = None):
        for position, link in enumerate(ordered if ordered is not None else self.links, start=1):
            link.sort_order = position


class SupplierResolver:
    """Primary/alternative supplier lookups and ranking mutations for products"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit = AuditService(session)

    async def _get_product(self, product_id: int) -> Product:
        result = await self.session.execute(select(Product).where(Product.id == product_id))
        product = result.scalar_one_or_none()
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    async def _get_supplier(self, supplier_id: int) -> Supplier:
        result = await self.session.execute(select(Supplier).where(Supplier.id == supplier_id))
        supplier = result.scalar_one_or_none()
        if not supplier:
            raise NotFoundError(f"Supplier {supplier_id} not found")
        return supplier

    @staticmethod
    def resolve_for(product: Product) -> int:
        """Supplier id an order line for this product is routed to"""
        link = SupplierRanking(product).primary()
        if link is None:
            raise IntegrityError(f"Product {product.id} ({product.name}) has no active supplier")
        return link.supplier_id

    async def resolve_primary_supplier(self, product_id: int) -> int:
        product = await self._get_product(product_id)
        link = SupplierRanking(product).primary()
        if link is None:
            raise NotFoundError(f"Product {product_id} has no active supplier")
        return link.supplier_id

    async def list_suppliers(self, product_id: int) -> List[ProductSupplier]:
        """All linked suppliers in rank order, primary first"""
        product = await self._get_product(product_id)
        return SupplierRanking(product).links

    async def attach_supplier(self, product: Product, supplier_id: int) -> ProductSupplier:
        """Append a supplier to the product's ranking without committing"""
        supplier = await self._get_supplier(supplier_id)
        return SupplierRanking(product).append(supplier)

    async def attach(self, product_id: int, supplier_id: int, user_id: Optional[str] = None) -> List[ProductSupplier]:
        """Append a supplier at the end of the ranking; attaching twice is a no-op"""
        try:
            product = await self._get_product(product_id)
            ranking = SupplierRanking(product)
            already_attached = ranking.find(supplier_id) is not None
            await self.attach_supplier(product, supplier_id)

            if not already_attached:
                self.audit.record("product", product_id, AuditAction.ATTACH, user_id, {"supplier_id": supplier_id})
                await self.session.commit()
                logger.info(f"Supplier {supplier_id} attached to product {product_id} by user {user_id}")
            return ranking.links

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error attaching supplier {supplier_id} to product {product_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to attach supplier"
            )

    async def detach(self, product_id: int, supplier_id: int, user_id: Optional[str] = None) -> List[ProductSupplier]:
        """Remove one link and close the gap; unknown links are ignored"""
        try:
            product = await self._get_product(product_id)
            ranking = SupplierRanking(product)
            link = ranking.remove(supplier_id)

            if link is not None:
                await self.session.delete(link)
                self.audit.record("product", product_id, AuditAction.DETACH, user_id, {"supplier_id": supplier_id})
                await self.session.commit()
                logger.info(f"Supplier {supplier_id} detached from product {product_id} by user {user_id}")
            return ranking.links

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error detaching supplier {supplier_id} from product {product_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to detach supplier"
            )

    async def set_primary(self, product_id: int, supplier_id: int, user_id: Optional[str] = None) -> List[ProductSupplier]:
        """Move a linked supplier to rank 1, shifting the others down"""
        try:
            product = await self._get_product(product_id)
            ranking = SupplierRanking(product)
            if ranking.promote(supplier_id) is None:
                raise NotFoundError(f"Supplier {supplier_id} is not linked to product {product_id}")

            self.audit.record("product", product_id, AuditAction.SET_PRIMARY, user_id, {"supplier_id": supplier_id})
            await self.session.commit()

            logger.info(f"Supplier {supplier_id} set as primary for product {product_id} by user {user_id}")
            return ranking.links

        except HTTPException:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error setting primary supplier for product {product_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to set primary supplier"
            )
