"""
入住流程服务
房态总览 → 选房点单入住 → 结账 → 清洁完成恢复空闲

房态流转：available → occupied（创建订单） → checkout（完成付款） → cleaning → available
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Callable, Dict, Any
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hotelpms.config import settings
from hotelpms.models.ontology import (
    Room, RoomStatus, CleaningStatus, Guest, Order, OrderItem, OrderStatus,
    PaymentMethod, PaymentStatus, Service, ServiceType
)
from hotelpms.models.schemas import OrderCreate, SnackLine
from hotelpms.models.events import EventType, OrderCreatedData, OrderCompletedData, StockLowData
from hotelpms.services.event_bus import event_bus, Event
from hotelpms.services.pending_events import publish_after_commit
from hotelpms.services.fallbacks import (
    FALLBACK_FLOOR_PRICES, FALLBACK_SERVICE_TYPES, FALLBACK_SNACK_ITEMS, fallback_floor_rooms
)
from hotelpms.services.room_service import RoomService

logger = logging.getLogger(__name__)

STOCK_LOW = "LOW"
STOCK_MEDIUM = "MEDIUM"
STOCK_HIGH = "HIGH"


def stock_level(stock: int, min_stock: int) -> str:
    """库存水位：不高于下限为 LOW，不高于下限 1.5 倍为 MEDIUM"""
    min_stock = min_stock or 0
    if stock <= min_stock:
        return STOCK_LOW
    if stock <= min_stock * 1.5:
        return STOCK_MEDIUM
    return STOCK_HIGH


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


class CheckInService:
    """入住流程服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish
        self.rooms = RoomService(db, self._publish_event)

    # ============== 房态与商品 ==============

    def get_floor_rooms(self) -> Dict[str, Any]:
        """
        按楼层分组的房态

        Returns:
            {"floors": {楼层: [房间...]}, "prices": {楼层: 该层首间房价}, "fallback": bool}
        """
        try:
            rooms = self.db.query(Room).order_by(Room.floor, Room.number).all()
        except SQLAlchemyError as e:
            logger.error(f"Error loading rooms: {e}")
            self.db.rollback()
            rooms = []

        if not rooms:
            if not settings.USE_FALLBACK_DATA:
                return {"floors": {}, "prices": {}, "fallback": False}
            return {"floors": fallback_floor_rooms(), "prices": dict(FALLBACK_FLOOR_PRICES), "fallback": True}

        floors: Dict[int, List[Dict[str, Any]]] = {}
        prices: Dict[int, float] = {}
        for room in rooms:
            floors.setdefault(room.floor, []).append({
                "id": room.id,
                "number": room.number,
                "status": room.status.value,
                "cleaning_status": room.cleaning_status.value if room.cleaning_status else None,
                "price": float(room.price or 0),
                "room_type": room.room_type,
            })
            prices.setdefault(room.floor, float(room.price or 0))

        return {"floors": floors, "prices": prices, "fallback": False}

    def get_service_types(self) -> List[Dict[str, Any]]:
        """启用中的服务类型"""
        try:
            types = self.db.query(ServiceType).filter(ServiceType.is_active == True) \
                .order_by(ServiceType.name).all()
        except SQLAlchemyError as e:
            logger.error(f"Error loading service types: {e}")
            self.db.rollback()
            types = []

        if not types and settings.USE_FALLBACK_DATA:
            return [dict(t) for t in FALLBACK_SERVICE_TYPES]
        return [
            {"id": t.id, "name": t.name, "description": t.description or t.name, "icon": t.icon}
            for t in types
        ]

    def get_snack_items(self) -> Dict[str, List[Dict[str, Any]]]:
        """有库存的可售商品，按服务类型（无类型时按分类）分组"""
        try:
            services = self.db.query(Service).filter(
                Service.is_available == True,
                Service.stock > 0
            ).order_by(Service.category, Service.name).all()
        except SQLAlchemyError as e:
            logger.error(f"Error loading services: {e}")
            self.db.rollback()
            services = []

        if not services and settings.USE_FALLBACK_DATA:
            return {key: [dict(item) for item in items] for key, items in FALLBACK_SNACK_ITEMS.items()}

        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for service in services:
            if service.service_type is not None:
                key = service.service_type.name.lower()
            else:
                key = service.category or "otros"
            grouped.setdefault(key, []).append(self._service_to_dict(service))
        return grouped

    @staticmethod
    def _service_to_dict(service: Service) -> Dict[str, Any]:
        return {
            "id": service.id,
            "name": service.name,
            "price": float(service.price or 0),
            "cost": float(service.cost or 0),
            "stock": service.stock,
            "min_stock": service.min_stock or 0,
            "category": service.category,
            "type_id": service.type_id,
            "stock_level": stock_level(service.stock, service.min_stock),
        }

    def get_low_stock_items(self) -> List[Dict[str, Any]]:
        """库存水位为 LOW 的商品"""
        services = self.db.query(Service).order_by(Service.stock).all()
        return [
            self._service_to_dict(s) for s in services
            if stock_level(s.stock, s.min_stock) == STOCK_LOW
        ]

    # ============== 库存 ==============

    def get_service(self, service_id: int) -> Optional[Service]:
        return self.db.query(Service).filter(Service.id == service_id).first()

    def check_stock_availability(self, service_id: int, quantity: int) -> Dict[str, Any]:
        service = self.get_service(service_id)
        if not service:
            raise ValueError("商品不存在")
        current = service.stock or 0
        return {
            "available": current >= quantity,
            "current_stock": current,
            "requested": quantity,
            "shortfall": max(quantity - current, 0),
            "name": service.name,
        }

    def _apply_stock_delta(self, service: Service, delta: int) -> Service:
        new_stock = (service.stock or 0) + delta
        if new_stock < 0:
            raise ValueError(
                f"库存不足：{service.name} 当前库存 {service.stock}，需要 {-delta}"
            )
        service.stock = new_stock
        if delta < 0 and stock_level(new_stock, service.min_stock) == STOCK_LOW:
            publish_after_commit(self.db, self._publish_event, Event(
                event_type=EventType.STOCK_LOW,
                timestamp=datetime.now(),
                data=StockLowData(
                    item_id=service.id,
                    name=service.name,
                    source="services",
                    current_stock=new_stock,
                    min_stock=service.min_stock or 0,
                ).to_dict(),
                source="checkin_service"
            ))
        return service

    def update_service_stock(self, service_id: int, delta: int) -> Service:
        """调整商品库存，结果不能为负"""
        service = self.get_service(service_id)
        if not service:
            raise ValueError("商品不存在")
        self._apply_stock_delta(service, delta)
        self.db.commit()
        self.db.refresh(service)
        return service

    # ============== 订单 ==============

    def get_active_order(self, room_number: str) -> Optional[Order]:
        return self.db.query(Order).filter(
            Order.room_number == str(room_number),
            Order.status == OrderStatus.ACTIVE
        ).order_by(Order.id.desc()).first()

    def get_active_orders(self) -> Dict[str, Dict[str, Any]]:
        """以房间号为键的在住订单"""
        orders = self.db.query(Order).filter(Order.status == OrderStatus.ACTIVE) \
            .order_by(Order.id).all()
        return {order.room_number: self.order_summary(order) for order in orders}

    @staticmethod
    def order_summary(order: Order) -> Dict[str, Any]:
        return {
            "order_id": order.id,
            "room": {"number": order.room_number, "status": RoomStatus.OCCUPIED.value},
            "room_price": float(order.room_price or 0),
            "snacks": [
                {
                    "service_id": item.service_id,
                    "name": item.service_name,
                    "quantity": item.quantity,
                    "unit_price": float(item.unit_price or 0),
                    "total_price": float(item.total_price or 0),
                }
                for item in order.items
            ],
            "total": float(order.total or 0),
            "check_in_date": order.check_in_date.isoformat() if order.check_in_date else None,
            "guest_name": order.guest_name,
        }

    def _order_lines(self, snacks: List[SnackLine]) -> List[tuple]:
        """校验所有商品与库存，返回 (商品, 数量) 列表"""
        requested: Dict[int, int] = {}
        for line in snacks:
            requested[line.service_id] = requested.get(line.service_id, 0) + line.quantity

        lines = []
        for service_id, quantity in requested.items():
            service = self.get_service(service_id)
            if not service or not service.is_available:
                raise ValueError(f"商品 {service_id} 不存在或已下架")
            if (service.stock or 0) < quantity:
                raise ValueError(
                    f"库存不足：{service.name} 当前库存 {service.stock}，需要 {quantity}"
                )
            lines.append((service, quantity))
        return lines

    def create_order(self, data: OrderCreate) -> Order:
        """
        入住下单

        创建 active 订单与消费明细、扣减库存、房间转为入住中。
        同一房间已有在住订单时拒绝（无行锁，仅做检查）。
        """
        room = self.rooms.get_room_by_number(data.room_number)
        if not room:
            raise ValueError(f"房间 {data.room_number} 不存在")
        if room.status != RoomStatus.AVAILABLE:
            raise ValueError(f"房间 {room.number} 当前状态为 {room.status.value}，无法入住")
        if self.get_active_order(room.number):
            raise ValueError(f"房间 {room.number} 已有在住订单")

        lines = self._order_lines(data.snacks)
        room_price = _money(data.room_price if data.room_price is not None else room.price)

        guest = self.db.query(Guest).filter(Guest.full_name == data.guest_name.strip()).first()

        now = datetime.now()
        order = Order(
            room_number=room.number,
            guest_name=data.guest_name.strip(),
            guest_id=guest.id if guest else None,
            room_price=room_price,
            check_in_date=now.date(),
            check_in_time=now.time().replace(microsecond=0),
            status=OrderStatus.ACTIVE,
            payment_status=PaymentStatus.PENDING,
        )

        services_total = Decimal("0.00")
        for service, quantity in lines:
            unit_price = _money(service.price)
            line_total = unit_price * quantity
            order.items.append(OrderItem(
                service_id=service.id,
                service_name=service.name,
                quantity=quantity,
                unit_price=unit_price,
                total_price=line_total,
            ))
            services_total += line_total
            self._apply_stock_delta(service, -quantity)

        order.services_total = services_total
        order.total = room_price + services_total
        self.db.add(order)

        self.rooms.set_status(room, RoomStatus.OCCUPIED, "order_created")
        self.db.commit()
        self.db.refresh(order)

        logger.info(f"Order {order.id} created for room {room.number}, total {order.total}")
        self._publish_event(Event(
            event_type=EventType.ORDER_CREATED,
            timestamp=now,
            data=OrderCreatedData(
                order_id=order.id,
                room_number=room.number,
                guest_name=order.guest_name,
                room_price=float(order.room_price),
                services_total=float(order.services_total),
                total=float(order.total),
            ).to_dict(),
            source="checkin_service"
        ))
        return order

    def complete_order(self, order: Order, payment_method: PaymentMethod,
                       extra_charges: Decimal = Decimal("0")) -> Order:
        """结清订单（由调用方提交事务）"""
        now = datetime.now()
        order.total = _money(order.total) + _money(extra_charges)
        order.status = OrderStatus.COMPLETED
        order.check_out_date = now.date()
        order.check_out_time = now.time().replace(microsecond=0)
        order.payment_method = payment_method
        order.payment_status = PaymentStatus.PAID
        return order

    def publish_order_completed(self, order: Order) -> None:
        self._publish_event(Event(
            event_type=EventType.ORDER_COMPLETED,
            timestamp=datetime.now(),
            data=OrderCompletedData(
                order_id=order.id,
                room_number=order.room_number,
                total=float(order.total or 0),
                payment_method=order.payment_method.value if order.payment_method else "",
            ).to_dict(),
            source="checkin_service"
        ))

    def complete_checkout(self, room_number: str,
                          payment_method: PaymentMethod = PaymentMethod.CASH) -> Order:
        """结账：订单完成并记为已付，房间转为待清洁"""
        order = self.get_active_order(room_number)
        if not order:
            raise ValueError(f"房间 {room_number} 没有在住订单")

        self.complete_order(order, payment_method)
        room = self.rooms.get_room_by_number(room_number)
        if room:
            self.rooms.set_status(room, RoomStatus.CHECKOUT, "checkout")

        self.db.commit()
        self.db.refresh(order)
        logger.info(f"Order {order.id} checked out ({payment_method.value}), total {order.total}")
        self.publish_order_completed(order)
        return order

    def mark_room_cleaned(self, room_number: str) -> Room:
        """清洁中 / 待清洁的房间标记为已清洁，恢复空闲"""
        room = self.rooms.get_room_by_number(room_number)
        if not room:
            raise ValueError(f"房间 {room_number} 不存在")
        if room.status not in (RoomStatus.CLEANING, RoomStatus.CHECKOUT):
            raise ValueError(f"房间 {room.number} 当前状态为 {room.status.value}，无需清洁")

        self.rooms.set_status(room, RoomStatus.AVAILABLE, "cleaned")
        room.cleaning_status = CleaningStatus.CLEAN
        self.db.commit()
        self.db.refresh(room)
        return room
