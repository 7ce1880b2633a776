"""
库存服务
分店物资的查询、维护、出入库调整和消耗统计
"""
from datetime import date, datetime, timedelta
from typing import List, Optional, Callable, Dict, Any
import logging

from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from hotelpms.models.ontology import (
    InventoryItem, SupplyStatus, SupplyCategory, Order, OrderItem, OrderStatus, Service, Staff
)
from hotelpms.models.schemas import InventoryItemCreate, InventoryItemUpdate
from hotelpms.models.events import EventType, StockLowData
from hotelpms.security import permissions as perms
from hotelpms.services.event_bus import event_bus, Event

logger = logging.getLogger(__name__)

EXPIRY_WARNING_DAYS = 7


def item_to_dict(item: InventoryItem, today: date = None) -> Dict[str, Any]:
    """物资记录附带派生字段"""
    today = today or date.today()
    current = item.current_stock or 0
    max_stock = item.max_stock or 0
    return {
        "id": item.id,
        "branch_id": item.branch_id,
        "name": item.name,
        "sku": item.sku,
        "description": item.description,
        "category": item.category,
        "supplier": item.supplier,
        "unit": item.unit,
        "current_stock": current,
        "min_stock": item.min_stock or 0,
        "max_stock": max_stock,
        "unit_cost": float(item.unit_cost or 0),
        "location": item.location,
        "expiry_date": item.expiry_date,
        "status": item.status,
        "is_low_stock": current <= (item.min_stock or 0),
        "is_out_of_stock": current == 0,
        "is_expiring": bool(
            item.expiry_date and item.expiry_date <= today + timedelta(days=EXPIRY_WARNING_DAYS)
        ),
        "stock_level": round(current / max_stock * 100, 1) if max_stock else 0,
    }


class InventoryService:
    """库存服务，所有查询按分店隔离"""

    def __init__(self, db: Session, branch_id: Optional[int] = None,
                 event_publisher: Callable[[Event], None] = None):
        self.db = db
        self.branch_id = branch_id
        self._publish_event = event_publisher or event_bus.publish

    def _scoped(self):
        query = self.db.query(InventoryItem)
        if self.branch_id is not None:
            query = query.filter(InventoryItem.branch_id == self.branch_id)
        return query

    # ============== 查询 ==============

    def get_items(self, category: Optional[SupplyCategory] = None,
                  status: Optional[SupplyStatus] = None, low_stock: bool = False,
                  search: Optional[str] = None, supplier: Optional[str] = None) -> List[InventoryItem]:
        query = self._scoped()
        if category is not None:
            query = query.filter(InventoryItem.category == category)
        if status is not None:
            query = query.filter(InventoryItem.status == status)
        if low_stock:
            query = query.filter(InventoryItem.current_stock <= InventoryItem.min_stock)
        if supplier:
            query = query.filter(InventoryItem.supplier == supplier)
        if search:
            like = f"%{search.strip()}%"
            query = query.filter(or_(
                InventoryItem.name.ilike(like),
                InventoryItem.sku.ilike(like),
                InventoryItem.description.ilike(like),
            ))
        return query.order_by(InventoryItem.name).all()

    def get_item(self, item_id: int) -> Optional[InventoryItem]:
        return self._scoped().filter(InventoryItem.id == item_id).first()

    def get_categories(self) -> List[str]:
        rows = self._scoped().with_entities(InventoryItem.category).distinct().all()
        return sorted(category.value for (category,) in rows if category)

    def get_suppliers(self) -> List[str]:
        rows = self._scoped().with_entities(InventoryItem.supplier) \
            .filter(InventoryItem.supplier.isnot(None)).distinct().all()
        return sorted(supplier for (supplier,) in rows if supplier)

    # ============== 维护 ==============

    def create_item(self, data: InventoryItemCreate, operator: Staff) -> InventoryItem:
        perms.ensure_permission(operator, perms.MANAGE_INVENTORY, "无权管理库存")

        values = data.model_dump()
        if values.get("branch_id") is None:
            values["branch_id"] = self.branch_id
        item = InventoryItem(**values, status=SupplyStatus.ACTIVE)
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        logger.info(f"Inventory item {item.id} ({item.name}) created by {operator.username}")
        return item

    def update_item(self, item_id: int, data: InventoryItemUpdate, operator: Staff) -> InventoryItem:
        perms.ensure_permission(operator, perms.MANAGE_INVENTORY, "无权管理库存")
        item = self.get_item(item_id)
        if not item:
            raise ValueError("物资不存在")

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(item, key, value)

        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_item(self, item_id: int, operator: Staff) -> bool:
        perms.ensure_permission(operator, perms.MANAGE_INVENTORY, "无权管理库存")
        item = self.get_item(item_id)
        if not item:
            raise ValueError("物资不存在")
        self.db.delete(item)
        self.db.commit()
        return True

    def adjust_stock(self, item_id: int, delta: int, operator: Staff,
                     reason: Optional[str] = None) -> InventoryItem:
        """出入库调整，结果库存不能为负"""
        perms.ensure_permission(operator, perms.MANAGE_INVENTORY, "无权调整库存")
        item = self.get_item(item_id)
        if not item:
            raise ValueError("物资不存在")

        new_stock = (item.current_stock or 0) + delta
        if new_stock < 0:
            raise ValueError(
                f"库存不足：{item.name} 当前库存 {item.current_stock}，需要 {-delta}"
            )
        item.current_stock = new_stock
        self.db.commit()
        self.db.refresh(item)

        logger.info(
            f"Inventory item {item.id} adjusted by {delta} -> {new_stock}"
            f" ({reason or 'no reason'}) by {operator.username}"
        )
        if delta < 0 and new_stock <= (item.min_stock or 0):
            self._publish_event(Event(
                event_type=EventType.STOCK_LOW,
                timestamp=datetime.now(),
                data=StockLowData(
                    item_id=item.id,
                    name=item.name,
                    source="inventory",
                    current_stock=new_stock,
                    min_stock=item.min_stock or 0,
                ).to_dict(),
                source="inventory_service"
            ))
        return item

    # ============== 统计 ==============

    def _consumed_lines(self, since: date):
        return self.db.query(OrderItem, Order.check_out_date) \
            .join(Order, OrderItem.order_id == Order.id) \
            .filter(Order.status == OrderStatus.COMPLETED, Order.check_out_date >= since) \
            .all()

    def get_stats(self, today: date = None) -> Dict[str, Any]:
        today = today or date.today()
        items = self._scoped().all()
        month_consumption = sum(line.quantity or 0 for line, _ in self._consumed_lines(today.replace(day=1)))

        return {
            "total_supplies": len(items),
            "low_stock": sum(1 for i in items if (i.current_stock or 0) <= (i.min_stock or 0)),
            "out_of_stock": sum(1 for i in items if (i.current_stock or 0) == 0),
            "total_value": round(sum((i.current_stock or 0) * float(i.unit_cost or 0) for i in items), 2),
            "monthly_consumption": month_consumption,
            "categories_count": len({i.category for i in items if i.category}),
            "suppliers_count": len({i.supplier for i in items if i.supplier}),
        }

    def get_consumption_history(self, days: int = 30, today: date = None) -> List[Dict[str, Any]]:
        """近 N 天每日消耗量（已结账订单的消费明细）"""
        today = today or date.today()
        since = today - timedelta(days=days - 1)

        per_day: Dict[date, int] = {since + timedelta(days=i): 0 for i in range(days)}
        for line, day in self._consumed_lines(since):
            if day in per_day:
                per_day[day] += line.quantity or 0

        return [{"date": day.isoformat(), "quantity": qty} for day, qty in sorted(per_day.items())]

    def get_category_consumption(self, start: date, end: date) -> Dict[str, int]:
        """按商品分类汇总的消耗量"""
        rows = self.db.query(OrderItem.service_id, func.sum(OrderItem.quantity)) \
            .join(Order, OrderItem.order_id == Order.id) \
            .filter(Order.status == OrderStatus.COMPLETED,
                    Order.check_out_date >= start, Order.check_out_date <= end) \
            .group_by(OrderItem.service_id).all()

        categories: Dict[str, int] = {}
        for service_id, quantity in rows:
            service = self.db.query(Service).filter(Service.id == service_id).first()
            key = service.category if service and service.category else "otros"
            categories[key] = categories.get(key, 0) + int(quantity or 0)
        return categories
