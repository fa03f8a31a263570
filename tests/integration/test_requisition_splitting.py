import asyncio
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from app.core.config import settings
from app.core.database import build_engine, init_db
from app.core.exceptions import ConflictError, IntegrityError, NotFoundError, ValidationError
from app.models import NotificationQueue, Order, OrderItem, Product, Requisition, RequisitionItem, Supplier
from app.models.shared.enums import OrderStatus, RequisitionStatus
from app.schemas.requisition.requisition_schema import RequisitionCreate
from app.services.catalog.supplier_resolver import SupplierRanking
from app.services.requisition.order_service import OrderService
from app.services.requisition.requisition_service import RequisitionService


def requisition(*lines):
    return RequisitionCreate(items=[{"product_id": product_id, "qty": qty} for product_id, qty in lines])


async def order_lines(session, requisition_id):
    """{supplier_id: [(product_id, qty_requested, qty_final), ...]} for one requisition"""
    result = await session.execute(
        select(Order.supplier_id, OrderItem.product_id, OrderItem.qty_requested, OrderItem.qty_final)
        .join(OrderItem, OrderItem.order_id == Order.id)
        .where(Order.requisition_id == requisition_id)
        .order_by(OrderItem.id)
    )
    lines = {}
    for supplier_id, product_id, qty_requested, qty_final in result.all():
        lines.setdefault(supplier_id, []).append((product_id, qty_requested, qty_final))
    return lines


@pytest.mark.asyncio
class TestRequisitionSplitting:
    """Splitting a requisition into per-supplier orders"""

    async def test_two_products_two_suppliers(self, session, dispatched, make_supplier, make_product):
        s1 = await make_supplier("Supplier One")
        s2 = await make_supplier("Supplier Two")
        p1 = await make_product("Potatoes", unit="kg", suppliers=[s1])
        p2 = await make_product("Buns", unit="pcs", suppliers=[s2])

        service = RequisitionService(session, dispatcher=dispatched)
        created = await service.submit_requisition("100001", requisition((p1.id, 5), (p2.id, 3)))

        assert created.order_count == 2
        assert await order_lines(session, created.id) == {
            s1.id: [(p1.id, 5, 5)],
            s2.id: [(p2.id, 3, 3)],
        }

    async def test_one_order_per_distinct_supplier(self, session, dispatched, make_supplier, make_product):
        s1 = await make_supplier("Dairy Farm")
        s2 = await make_supplier("Bakery")
        s3 = await make_supplier("Greengrocer")
        milk = await make_product("Milk", unit="l", suppliers=[s1])
        cheese = await make_product("Cheese", suppliers=[s1])
        bread = await make_product("Bread", unit="pcs", suppliers=[s2])
        apples = await make_product("Apples", suppliers=[s3])

        service = RequisitionService(session, dispatcher=dispatched)
        created = await service.submit_requisition(
            "100001",
            requisition((milk.id, 10), (bread.id, 20), (cheese.id, 2.5), (apples.id, 4)),
        )

        lines = await order_lines(session, created.id)
        assert created.order_count == 3
        assert lines[s1.id] == [(milk.id, 10, 10), (cheese.id, 2.5, 2.5)]
        assert lines[s2.id] == [(bread.id, 20, 20)]
        assert lines[s3.id] == [(apples.id, 4, 4)]

    async def test_same_supplier_items_share_one_order(self, session, dispatched, make_supplier, make_product, count_rows):
        supplier = await make_supplier("Butcher")
        beef = await make_product("Beef", suppliers=[supplier])
        pork = await make_product("Pork", suppliers=[supplier])

        service = RequisitionService(session, dispatcher=dispatched)
        created = await service.submit_requisition("100001", requisition((beef.id, 1), (pork.id, 2)))

        assert created.order_count == 1
        assert await count_rows(Order) == 1
        assert await count_rows(OrderItem) == 2

    async def test_requisition_items_and_status_recorded(self, session, dispatched, make_supplier, make_product):
        supplier = await make_supplier("Fishmonger")
        salmon = await make_product("Salmon", suppliers=[supplier])

        service = RequisitionService(session, dispatcher=dispatched)
        created = await service.submit_requisition("100001", requisition((salmon.id, 1.5)))

        row = (await session.execute(
            select(Requisition.user_id, Requisition.status, Requisition.created_at)
            .where(Requisition.id == created.id)
        )).one()
        assert row.user_id == "100001"
        assert row.status == RequisitionStatus.PROCESSED
        assert row.created_at is not None

        items = (await session.execute(
            select(RequisitionItem.product_id, RequisitionItem.qty_requested)
            .where(RequisitionItem.requisition_id == created.id)
        )).all()
        assert [tuple(item) for item in items] == [(salmon.id, 1.5)]

        statuses = (await session.execute(select(Order.status))).scalars().all()
        assert statuses == [OrderStatus.PENDING]

    async def test_duplicate_lines_in_one_submission_are_kept(self, session, dispatched, make_supplier, make_product, count_rows):
        supplier = await make_supplier("Grocer")
        rice = await make_product("Rice", suppliers=[supplier])

        service = RequisitionService(session, dispatcher=dispatched)
        await service.submit_requisition("100001", requisition((rice.id, 1), (rice.id, 2)))

        assert await count_rows(RequisitionItem) == 2
        assert await count_rows(OrderItem) == 2
        assert await count_rows(Order) == 1


@pytest.mark.asyncio
class TestRequisitionAtomicity:
    """A failing line leaves nothing behind"""

    async def assert_nothing_persisted(self, count_rows):
        for model in (Requisition, RequisitionItem, Order, OrderItem, NotificationQueue):
            assert await count_rows(model) == 0

    async def test_product_without_supplier_rolls_back(self, session, dispatched, make_supplier, make_product, count_rows):
        supplier = await make_supplier("Supplier One")
        ok_id = (await make_product("Onions", suppliers=[supplier])).id
        orphan_id = (await make_product("Saffron")).id

        service = RequisitionService(session, dispatcher=dispatched)
        with pytest.raises(IntegrityError):
            await service.submit_requisition("100001", requisition((ok_id, 1), (orphan_id, 1)))

        await self.assert_nothing_persisted(count_rows)
        assert dispatched.calls == []

    async def test_missing_product_rolls_back(self, session, dispatched, make_supplier, make_product, count_rows):
        supplier = await make_supplier("Supplier One")
        ok_id = (await make_product("Onions", suppliers=[supplier])).id

        service = RequisitionService(session, dispatcher=dispatched)
        with pytest.raises(NotFoundError):
            await service.submit_requisition("100001", requisition((ok_id, 1), (9999, 1)))

        await self.assert_nothing_persisted(count_rows)

    async def test_inactive_product_is_rejected(self, session, dispatched, make_supplier, make_product, count_rows):
        supplier = await make_supplier("Supplier One")
        retired_id = (await make_product("Old Sauce", suppliers=[supplier], active=False)).id

        service = RequisitionService(session, dispatcher=dispatched)
        with pytest.raises(ValidationError):
            await service.submit_requisition("100001", requisition((retired_id, 1)))

        await self.assert_nothing_persisted(count_rows)


@pytest.mark.asyncio
class TestInactiveSupplierResolution:
    async def test_falls_back_to_next_active_alternate(self, session, dispatched, make_supplier, make_product):
        primary = await make_supplier("Primary Farm")
        backup = await make_supplier("Backup Farm")
        eggs = await make_product("Eggs", unit="pcs", suppliers=[primary, backup])
        primary.active = False
        await session.commit()

        service = RequisitionService(session, dispatcher=dispatched)
        created = await service.submit_requisition("100001", requisition((eggs.id, 30)))

        assert list((await order_lines(session, created.id)).keys()) == [backup.id]

    async def test_no_active_supplier_fails(self, session, dispatched, make_supplier, make_product, count_rows):
        primary = await make_supplier("Primary Farm")
        eggs_id = (await make_product("Eggs", unit="pcs", suppliers=[primary])).id
        primary.active = False
        await session.commit()

        service = RequisitionService(session, dispatcher=dispatched)
        with pytest.raises(IntegrityError):
            await service.submit_requisition("100001", requisition((eggs_id, 30)))

        assert await count_rows(Requisition) == 0


@pytest.mark.asyncio
class TestPendingReorder:
    """Products already on a pending order"""

    async def test_reorder_of_pending_product_is_rejected(self, session, dispatched, make_supplier, make_product, count_rows):
        supplier = await make_supplier("Supplier One")
        supplier_id = supplier.id
        tomato_id = (await make_product("Tomatoes", suppliers=[supplier])).id

        service = RequisitionService(session, dispatcher=dispatched)
        await service.submit_requisition("100001", requisition((tomato_id, 2)))

        with pytest.raises(ConflictError):
            await service.submit_requisition("100002", requisition((tomato_id, 1)))
        assert await count_rows(Requisition) == 1

        await OrderService(session).mark_delivered(supplier_id)
        await service.submit_requisition("100002", requisition((tomato_id, 1)))
        assert await count_rows(Requisition) == 2

    async def test_reorder_allowed_when_check_disabled(self, session, dispatched, make_supplier, make_product, count_rows):
        supplier = await make_supplier("Supplier One")
        tomato = await make_product("Tomatoes", suppliers=[supplier])

        service = RequisitionService(session, dispatcher=dispatched, reject_pending_reorder=False)
        await service.submit_requisition("100001", requisition((tomato.id, 2)))
        await service.submit_requisition("100001", requisition((tomato.id, 1)))

        assert await count_rows(Order) == 2

    async def test_submitter_scope_only_checks_own_orders(self, session, dispatched, make_supplier, make_product, count_rows):
        supplier = await make_supplier("Supplier One")
        tomato = await make_product("Tomatoes", suppliers=[supplier])

        service = RequisitionService(session, dispatcher=dispatched, scope="submitter")
        await service.submit_requisition("100001", requisition((tomato.id, 2)))
        await service.submit_requisition("100002", requisition((tomato.id, 1)))

        with pytest.raises(ConflictError):
            await service.submit_requisition("100001", requisition((tomato.id, 1)))
        assert await count_rows(Requisition) == 2


@pytest.mark.asyncio
class TestSubmissionNotification:
    """Outbox row staged with the requisition, dispatched after commit"""

    async def test_outbox_row_dispatched_after_commit(self, session, dispatched, make_supplier, make_product):
        supplier = await make_supplier("Supplier One")
        potatoes = await make_product("Potatoes", suppliers=[supplier])

        service = RequisitionService(session, dispatcher=dispatched)
        created = await service.submit_requisition("100001", requisition((potatoes.id, 5)))

        notification = (await session.execute(select(NotificationQueue))).scalar_one()
        assert dispatched.calls == [notification.id]
        assert notification.status == "PENDING"
        assert notification.reference_id == created.id
        assert notification.payload["requisition_id"] == created.id
        assert notification.payload["orders"] == [{
            "order_id": notification.payload["orders"][0]["order_id"],
            "supplier_id": supplier.id,
            "supplier_name": "Supplier One",
            "items": [{"product_id": potatoes.id, "name": "Potatoes", "unit": "kg", "qty": 5}],
        }]

    async def test_dispatch_failure_keeps_requisition(self, session, make_supplier, make_product, count_rows):
        def broken_dispatcher(notification_id):
            raise ConnectionError("broker unavailable")

        supplier = await make_supplier("Supplier One")
        potatoes = await make_product("Potatoes", suppliers=[supplier])

        service = RequisitionService(session, dispatcher=broken_dispatcher)
        created = await service.submit_requisition("100001", requisition((potatoes.id, 5)))

        assert created.id is not None
        assert await count_rows(Requisition) == 1
        assert await count_rows(NotificationQueue) == 1

    async def test_disabled_notifications_stage_nothing(self, session, dispatched, make_supplier, make_product, count_rows, monkeypatch):
        monkeypatch.setattr(settings, "NOTIFICATIONS_ENABLED", False)
        supplier = await make_supplier("Supplier One")
        potatoes = await make_product("Potatoes", suppliers=[supplier])

        service = RequisitionService(session, dispatcher=dispatched)
        await service.submit_requisition("100001", requisition((potatoes.id, 5)))

        assert await count_rows(NotificationQueue) == 0
        assert dispatched.calls == []


@pytest.fixture
async def file_session_maker(tmp_path):
    """Separate connections to one on-disk database, so submissions really overlap"""
    file_engine = build_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'procurement.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    await init_db(file_engine)
    yield async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)
    await file_engine.dispose()


@pytest.mark.asyncio
class TestConcurrentSubmission:
    async def test_only_one_concurrent_reorder_wins(self, file_session_maker, dispatched):
        async with file_session_maker() as db:
            supplier = Supplier(name="Supplier One")
            db.add(supplier)
            await db.flush()
            product = Product(name="Tomatoes", unit="kg", category="General", supplier_links=[])
            SupplierRanking(product).append(supplier)
            db.add(product)
            await db.commit()
            tomato_id = product.id

        async def submit(user_id):
            async with file_session_maker() as db:
                service = RequisitionService(db, dispatcher=dispatched, reject_pending_reorder=True)
                await service.submit_requisition(user_id, requisition((tomato_id, 1)))
                return "ok"

        results = await asyncio.gather(
            *(submit(f"10000{n}") for n in range(6)), return_exceptions=True
        )

        assert results.count("ok") == 1
        assert all(isinstance(r, ConflictError) for r in results if r != "ok")
        async with file_session_maker() as db:
            pending = await db.execute(
                select(func.count()).select_from(OrderItem)
                .join(Order, Order.id == OrderItem.order_id)
                .where(Order.status == OrderStatus.PENDING)
            )
            assert pending.scalar_one() == 1
