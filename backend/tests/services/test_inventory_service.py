"""
库存服务测试
"""
import pytest
from datetime import date, timedelta
from decimal import Decimal

from hotelpms.models.ontology import (
    Branch, InventoryItem, SupplyCategory, Order, OrderItem, OrderStatus
)
from hotelpms.models.schemas import InventoryItemCreate, InventoryItemUpdate
from hotelpms.models.events import EventType
from hotelpms.services.inventory_service import InventoryService, item_to_dict


@pytest.fixture
def other_branch(db_session):
    branch = Branch(name="Hotel Paraíso Cusco", code="CUS")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture
def supplies(db_session, sample_branch, other_branch):
    items = [
        InventoryItem(branch_id=sample_branch.id, name="Detergente", sku="LIM-002",
                      category=SupplyCategory.LIMPIEZA, supplier="Distribuidora Lima",
                      current_stock=25, min_stock=10, max_stock=50, unit_cost=Decimal("6.50")),
        InventoryItem(branch_id=sample_branch.id, name="Shampoo", sku="AME-002",
                      category=SupplyCategory.AMENITIES, supplier="Amenities Perú",
                      current_stock=8, min_stock=10, max_stock=100, unit_cost=Decimal("1.00")),
        InventoryItem(branch_id=other_branch.id, name="Leche", sku="LAC-001",
                      category=SupplyCategory.LACTEOS, supplier="Gloria",
                      current_stock=0, min_stock=5, max_stock=40, unit_cost=Decimal("4.00")),
    ]
    db_session.add_all(items)
    db_session.commit()
    return items


@pytest.fixture
def service(db_session, sample_branch, published_events):
    return InventoryService(db_session, sample_branch.id, event_publisher=published_events.append)


class TestItemToDict:

    def test_derived_fields(self):
        item = InventoryItem(name="Leche", current_stock=0, min_stock=5, max_stock=40,
                             expiry_date=date(2026, 3, 20), category=SupplyCategory.LACTEOS)
        data = item_to_dict(item, today=date(2026, 3, 15))

        assert data["is_low_stock"] is True
        assert data["is_out_of_stock"] is True
        assert data["is_expiring"] is True
        assert data["stock_level"] == 0

    def test_stock_level_percentage(self):
        item = InventoryItem(name="Jabón", current_stock=25, min_stock=5, max_stock=200,
                             category=SupplyCategory.AMENITIES)
        data = item_to_dict(item, today=date(2026, 3, 15))

        assert data["stock_level"] == 12.5
        assert data["is_expiring"] is False


class TestQueries:

    def test_scoped_to_branch(self, service, supplies):
        names = [i.name for i in service.get_items()]
        assert names == ["Detergente", "Shampoo"]
        assert service.get_item(supplies[2].id) is None

    def test_unscoped(self, db_session, supplies):
        assert len(InventoryService(db_session).get_items()) == 3

    def test_filters(self, service, supplies):
        assert [i.name for i in service.get_items(low_stock=True)] == ["Shampoo"]
        assert [i.name for i in service.get_items(category=SupplyCategory.LIMPIEZA)] == ["Detergente"]
        assert [i.name for i in service.get_items(search="ame-")] == ["Shampoo"]
        assert [i.name for i in service.get_items(supplier="Distribuidora Lima")] == ["Detergente"]

    def test_categories_and_suppliers(self, service, supplies):
        assert service.get_categories() == ["amenities", "limpieza"]
        assert service.get_suppliers() == ["Amenities Perú", "Distribuidora Lima"]


class TestMaintenance:

    def test_create_defaults_to_service_branch(self, service, sample_branch, manager_staff):
        item = service.create_item(
            InventoryItemCreate(name="Focos LED", category=SupplyCategory.MANTENIMIENTO, current_stock=18),
            manager_staff
        )
        assert item.branch_id == sample_branch.id

    def test_create_requires_permission(self, service, reception_staff):
        with pytest.raises(PermissionError, match="无权管理库存"):
            service.create_item(InventoryItemCreate(name="X", category=SupplyCategory.SNACKS), reception_staff)

    def test_update_and_delete(self, service, db_session, supplies, manager_staff):
        item = service.update_item(supplies[0].id, InventoryItemUpdate(location="Almacén 2"), manager_staff)
        assert item.location == "Almacén 2"

        assert service.delete_item(supplies[0].id, manager_staff) is True
        assert db_session.query(InventoryItem).count() == 2

    def test_update_other_branch_item(self, service, supplies, manager_staff):
        with pytest.raises(ValueError, match="物资不存在"):
            service.update_item(supplies[2].id, InventoryItemUpdate(location="x"), manager_staff)


class TestAdjustStock:

    def test_adjust(self, service, supplies, manager_staff, published_events):
        item = service.adjust_stock(supplies[0].id, -5, manager_staff, "consumo")
        assert item.current_stock == 20
        assert published_events == []

    def test_negative_rejected(self, service, db_session, supplies, manager_staff):
        with pytest.raises(ValueError, match="库存不足"):
            service.adjust_stock(supplies[1].id, -9, manager_staff)

        db_session.refresh(supplies[1])
        assert supplies[1].current_stock == 8

    def test_low_stock_event(self, service, supplies, manager_staff, published_events):
        service.adjust_stock(supplies[0].id, -15, manager_staff)

        assert len(published_events) == 1
        assert published_events[0].event_type == EventType.STOCK_LOW
        assert published_events[0].data["source"] == "inventory"

    def test_housekeeping_cannot_adjust(self, service, supplies, housekeeping_staff):
        with pytest.raises(PermissionError):
            service.adjust_stock(supplies[0].id, 1, housekeeping_staff)


class TestStats:

    def _completed_order(self, db_session, sample_services, day, quantity):
        agua = sample_services[0]
        order = Order(room_number="101", status=OrderStatus.COMPLETED,
                      check_in_date=day - timedelta(days=1), check_out_date=day)
        order.items.append(OrderItem(service_id=agua.id, service_name=agua.name, quantity=quantity,
                                     unit_price=agua.price, total_price=agua.price * quantity))
        db_session.add(order)
        db_session.commit()

    def test_stats(self, service, db_session, supplies, sample_services):
        today = date(2026, 3, 15)
        self._completed_order(db_session, sample_services, date(2026, 3, 10), 4)
        self._completed_order(db_session, sample_services, date(2026, 2, 10), 9)

        stats = service.get_stats(today)

        assert stats["total_supplies"] == 2
        assert stats["low_stock"] == 1
        assert stats["out_of_stock"] == 0
        assert stats["total_value"] == 170.5
        assert stats["monthly_consumption"] == 4
        assert stats["categories_count"] == 2

    def test_consumption_history(self, service, db_session, sample_services):
        today = date(2026, 3, 15)
        self._completed_order(db_session, sample_services, date(2026, 3, 14), 3)

        history = service.get_consumption_history(days=3, today=today)

        assert [h["date"] for h in history] == ["2026-03-13", "2026-03-14", "2026-03-15"]
        assert [h["quantity"] for h in history] == [0, 3, 0]

    def test_category_consumption(self, service, db_session, sample_services):
        self._completed_order(db_session, sample_services, date(2026, 3, 14), 3)
        self._completed_order(db_session, sample_services, date(2026, 3, 15), 2)

        result = service.get_category_consumption(date(2026, 3, 1), date(2026, 3, 31))
        assert result == {"bebidas": 5}
