import pytest
from sqlalchemy import select
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import AuditLog, Order, OrderItem, Product, ProductSupplier, RequisitionItem, Supplier
from app.schemas.catalog.product_schema import ProductCreate, ProductUpdate
from app.schemas.catalog.supplier_schema import SupplierCreate, SupplierUpdate
from app.schemas.requisition.requisition_schema import RequisitionCreate
from app.services.catalog.product_service import ProductService
from app.services.catalog.supplier_resolver import SupplierResolver
from app.services.catalog.supplier_service import SupplierService
from app.services.requisition.requisition_service import RequisitionService


async def ranking(session, product_id):
    """[(supplier_id, sort_order), ...] as stored"""
    result = await session.execute(
        select(ProductSupplier.supplier_id, ProductSupplier.sort_order)
        .where(ProductSupplier.product_id == product_id)
        .order_by(ProductSupplier.sort_order)
    )
    return [tuple(row) for row in result.all()]


@pytest.mark.asyncio
class TestSupplierAdmin:
    async def test_create_supplier_trims_name(self, session):
        supplier = await SupplierService(session).create_supplier(
            SupplierCreate(name="  Green Valley  ", contact_note="+1 555 0100"), "900001"
        )

        assert supplier.name == "Green Valley"
        assert supplier.active is True

        audit = (await session.execute(select(AuditLog.entity, AuditLog.action))).all()
        assert [tuple(row) for row in audit] == [("supplier", "CREATE")]

    async def test_duplicate_supplier_name_conflicts(self, session, make_supplier):
        await make_supplier("Green Valley")

        with pytest.raises(ConflictError):
            await SupplierService(session).create_supplier(SupplierCreate(name="Green Valley"))

    async def test_short_supplier_name_is_rejected(self):
        with pytest.raises(ValueError):
            SupplierCreate(name=" x ")

    async def test_update_supplier(self, session, make_supplier):
        supplier_id = (await make_supplier("Green Valley")).id

        supplier = await SupplierService(session).update_supplier(
            supplier_id, SupplierUpdate(contact_note="call before 9", active=False)
        )

        assert supplier.name == "Green Valley"
        assert supplier.contact_note == "call before 9"
        assert supplier.active is False

    async def test_update_unknown_supplier(self, session):
        with pytest.raises(NotFoundError):
            await SupplierService(session).update_supplier(9999, SupplierUpdate(name="Nobody"))

    async def test_admin_listing_shows_inactive_last(self, session, make_supplier):
        await make_supplier("Zeta Foods")
        await make_supplier("Alpha Foods", active=False)
        await make_supplier("Beta Foods")

        suppliers = await SupplierService(session).get_suppliers()

        assert [supplier.name for supplier in suppliers] == ["Beta Foods", "Zeta Foods", "Alpha Foods"]


@pytest.mark.asyncio
class TestProductAdmin:
    async def test_blank_category_falls_back_to_default(self, session):
        product = await ProductService(session).create_product(
            ProductCreate(name="Sugar", unit="kg", category="   ")
        )

        assert product.category == "General"

    async def test_create_product_with_primary_supplier(self, session, make_supplier):
        supplier = await make_supplier("Sweet Co")

        product = await ProductService(session).create_product(
            ProductCreate(name="Sugar", unit="kg", supplier_id=supplier.id)
        )
        response = ProductService.to_response(product)

        assert response["supplier_id"] == supplier.id
        assert response["supplier_name"] == "Sweet Co"
        assert await ranking(session, product.id) == [(supplier.id, 1)]

    async def test_create_product_with_inactive_supplier(self, session, make_supplier, count_rows):
        supplier_id = (await make_supplier("Sweet Co", active=False)).id

        with pytest.raises(ValidationError):
            await ProductService(session).create_product(
                ProductCreate(name="Sugar", unit="kg", supplier_id=supplier_id)
            )
        assert await count_rows(Product) == 0

    async def test_create_product_with_unknown_supplier(self, session, count_rows):
        with pytest.raises(NotFoundError):
            await ProductService(session).create_product(
                ProductCreate(name="Sugar", unit="kg", supplier_id=9999)
            )
        assert await count_rows(Product) == 0

    async def test_duplicate_product_name_conflicts(self, session, make_product):
        await make_product("Sugar")

        with pytest.raises(ConflictError):
            await ProductService(session).create_product(ProductCreate(name="Sugar", unit="kg"))

    async def test_unit_is_required(self):
        with pytest.raises(ValueError):
            ProductCreate(name="Sugar", unit="  ")

    async def test_update_product(self, session, make_product):
        product_id = (await make_product("Sugar")).id

        product = await ProductService(session).update_product(
            product_id, ProductUpdate(unit="g", active=False)
        )

        assert product.name == "Sugar"
        assert product.unit == "g"
        assert product.active is False


@pytest.mark.asyncio
class TestSupplierRankingPersistence:
    """Attach, detach and promote through the resolver"""

    async def test_attach_then_detach_primary_promotes_next(self, session, make_supplier, make_product):
        a = await make_supplier("Supplier A")
        b = await make_supplier("Supplier B")
        product = await make_product("Coffee")
        resolver = SupplierResolver(session)

        await resolver.attach(product.id, a.id)
        await resolver.attach(product.id, b.id)
        assert await resolver.resolve_primary_supplier(product.id) == a.id

        await resolver.detach(product.id, a.id)

        assert await resolver.resolve_primary_supplier(product.id) == b.id
        assert await ranking(session, product.id) == [(b.id, 1)]

    async def test_detach_keeps_order_dense(self, session, make_supplier, make_product):
        a = await make_supplier("Supplier A")
        b = await make_supplier("Supplier B")
        c = await make_supplier("Supplier C")
        product = await make_product("Coffee")
        resolver = SupplierResolver(session)

        for supplier in (a, b, c):
            await resolver.attach(product.id, supplier.id)
        await resolver.detach(product.id, b.id)

        assert await ranking(session, product.id) == [(a.id, 1), (c.id, 2)]

    async def test_attach_is_idempotent(self, session, make_supplier, make_product):
        a = await make_supplier("Supplier A")
        product = await make_product("Coffee", suppliers=[a])

        links = await SupplierResolver(session).attach(product.id, a.id)

        assert [(link.supplier_id, link.sort_order) for link in links] == [(a.id, 1)]
        assert await ranking(session, product.id) == [(a.id, 1)]

    async def test_attach_unknown_supplier(self, session, make_product):
        product_id = (await make_product("Coffee")).id

        with pytest.raises(NotFoundError):
            await SupplierResolver(session).attach(product_id, 9999)

    async def test_detach_unknown_link_is_noop(self, session, make_supplier, make_product):
        a = await make_supplier("Supplier A")
        b = await make_supplier("Supplier B")
        product = await make_product("Coffee", suppliers=[a])

        links = await SupplierResolver(session).detach(product.id, b.id)

        assert [link.supplier_id for link in links] == [a.id]

    async def test_set_primary(self, session, make_supplier, make_product):
        a = await make_supplier("Supplier A")
        b = await make_supplier("Supplier B")
        c = await make_supplier("Supplier C")
        product = await make_product("Coffee", suppliers=[a, b, c])

        await SupplierResolver(session).set_primary(product.id, c.id)

        assert await ranking(session, product.id) == [(c.id, 1), (a.id, 2), (b.id, 3)]

    async def test_set_primary_requires_existing_link(self, session, make_supplier, make_product):
        a = await make_supplier("Supplier A")
        b_id = (await make_supplier("Supplier B")).id
        product_id = (await make_product("Coffee", suppliers=[a])).id

        with pytest.raises(NotFoundError):
            await SupplierResolver(session).set_primary(product_id, b_id)

    async def test_resolve_primary_of_unknown_product(self, session):
        with pytest.raises(NotFoundError):
            await SupplierResolver(session).resolve_primary_supplier(9999)


@pytest.mark.asyncio
class TestCascadingDeletes:
    async def submit(self, session, dispatched, *lines):
        service = RequisitionService(session, dispatcher=dispatched, reject_pending_reorder=False)
        return await service.submit_requisition(
            "100001",
            RequisitionCreate(items=[{"product_id": product_id, "qty": qty} for product_id, qty in lines]),
        )

    async def ids(self, session, column):
        return set((await session.execute(select(column))).scalars().all())

    async def test_delete_supplier(self, session, dispatched, make_supplier, make_product):
        a = await make_supplier("Supplier A")
        b = await make_supplier("Supplier B")
        c = await make_supplier("Supplier C")
        exclusive = await make_product("Exclusive", suppliers=[a])
        shared = await make_product("Shared", suppliers=[a, c, b])
        other = await make_product("Other", suppliers=[b])
        ids = {"a": a.id, "b": b.id, "c": c.id, "exclusive": exclusive.id, "shared": shared.id, "other": other.id}

        await self.submit(session, dispatched, (ids["exclusive"], 1), (ids["shared"], 2), (ids["other"], 3))
        b_first = await make_product("B First", suppliers=[b, a])
        ids["b_first"] = b_first.id
        await self.submit(session, dispatched, (ids["b_first"], 1))

        await SupplierService(session).delete_supplier(ids["a"], "900001")

        assert await self.ids(session, Supplier.id) == {ids["b"], ids["c"]}
        assert await self.ids(session, Product.id) == {ids["shared"], ids["other"], ids["b_first"]}
        assert await ranking(session, ids["shared"]) == [(ids["c"], 1), (ids["b"], 2)]
        assert await ranking(session, ids["b_first"]) == [(ids["b"], 1)]
        assert await self.ids(session, Order.supplier_id) == {ids["b"]}
        assert await self.ids(session, OrderItem.product_id) == {ids["other"], ids["b_first"]}
        assert ids["exclusive"] not in await self.ids(session, RequisitionItem.product_id)

    async def test_delete_supplier_removes_emptied_orders(self, session, dispatched, make_supplier, make_product, count_rows):
        a = await make_supplier("Supplier A")
        b = await make_supplier("Supplier B")
        a_id, b_id = a.id, b.id
        moved_id = (await make_product("Moved", suppliers=[a, b])).id
        await self.submit(session, dispatched, (moved_id, 1))

        # Only B is left for the product, but its pending line sits on the order of A
        await SupplierResolver(session).detach(moved_id, a_id)
        await SupplierService(session).delete_supplier(b_id)

        assert await count_rows(Product) == 0
        assert await count_rows(Order) == 0
        assert await count_rows(RequisitionItem) == 0
        assert await self.ids(session, Supplier.id) == {a_id}

    async def test_delete_unknown_supplier(self, session):
        with pytest.raises(NotFoundError):
            await SupplierService(session).delete_supplier(9999)

    async def test_delete_product(self, session, dispatched, make_supplier, make_product, count_rows):
        a = await make_supplier("Supplier A")
        b = await make_supplier("Supplier B")
        doomed = await make_product("Doomed", suppliers=[a, b])
        kept = await make_product("Kept", suppliers=[b])
        doomed_id, kept_id = doomed.id, kept.id
        await self.submit(session, dispatched, (doomed_id, 1), (kept_id, 1))

        await ProductService(session).delete_product(doomed_id, "900001")

        assert await self.ids(session, Product.id) == {kept_id}
        assert await self.ids(session, OrderItem.product_id) == {kept_id}
        assert await self.ids(session, RequisitionItem.product_id) == {kept_id}
        assert await count_rows(ProductSupplier) == 1
        # The order of supplier A only carried the deleted product
        assert await count_rows(Order) == 1
        assert await count_rows(Supplier) == 2

    async def test_delete_unknown_product(self, session):
        with pytest.raises(NotFoundError):
            await ProductService(session).delete_product(9999)
