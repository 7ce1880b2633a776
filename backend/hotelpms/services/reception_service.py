"""
前台服务
当日到离店、按预订办理入住/退房、房态调整、排房、房间历史、每日动态
"""
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Callable, Dict, Any
import logging

from sqlalchemy.orm import Session

from hotelpms.models.ontology import (
    Room, RoomStatus, Reservation, ReservationStatus, PaymentStatus,
    Order, OrderStatus, PaymentMethod, CleaningType, TaskPriority
)
from hotelpms.services.event_bus import event_bus, Event
from hotelpms.services.checkin_service import CheckInService, _money
from hotelpms.services.reservation_service import ReservationService, reservation_to_dict
from hotelpms.services.room_service import RoomService
from hotelpms.services.rpc import rpc_registry

logger = logging.getLogger(__name__)

ARRIVAL_STATUSES = (ReservationStatus.CONFIRMED, ReservationStatus.PENDING)


class ReceptionService:
    """前台服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish
        self.rooms = RoomService(db, self._publish_event)
        self.reservations = ReservationService(db, self._publish_event)
        self.checkin = CheckInService(db, self._publish_event)

    # ============== 到离店 ==============

    def get_arrivals(self, day: date = None) -> List[Reservation]:
        """当日待入住的预订"""
        day = day or date.today()
        return self.db.query(Reservation).filter(
            Reservation.check_in_date == day,
            Reservation.status.in_(ARRIVAL_STATUSES)
        ).order_by(Reservation.id).all()

    def get_departures(self, day: date = None) -> List[Reservation]:
        """当日应退房的在住预订"""
        day = day or date.today()
        return self.db.query(Reservation).filter(
            Reservation.check_out_date == day,
            Reservation.status == ReservationStatus.CHECKED_IN
        ).order_by(Reservation.id).all()

    def get_in_house(self) -> List[Order]:
        return self.db.query(Order).filter(Order.status == OrderStatus.ACTIVE) \
            .order_by(Order.room_number).all()

    def get_revenue_stats(self, day: date = None) -> Dict[str, float]:
        """当日到店预订的应收/已收/待收"""
        day = day or date.today()
        reservations = self.db.query(Reservation).filter(Reservation.check_in_date == day).all()
        expected = sum(float(r.total_amount or 0) for r in reservations)
        collected = sum(float(r.paid_amount or 0) for r in reservations)
        return {
            "expected_revenue": round(expected, 2),
            "collected_revenue": round(collected, 2),
            "pending_revenue": round(expected - collected, 2),
        }

    def get_overview(self, day: date = None) -> Dict[str, Any]:
        """前台工作台数据"""
        day = day or date.today()
        return {
            "date": day.isoformat(),
            "rooms": [
                {
                    "id": r.id,
                    "number": r.number,
                    "floor": r.floor,
                    "room_type": r.room_type,
                    "price": float(r.price or 0),
                    "status": r.status.value,
                }
                for r in self.rooms.get_rooms()
            ],
            "arrivals": [reservation_to_dict(r) for r in self.get_arrivals(day)],
            "departures": [reservation_to_dict(r) for r in self.get_departures(day)],
            "active_orders": [CheckInService.order_summary(o) for o in self.get_in_house()],
            "occupancy": self.rooms.get_room_stats(),
            "revenue": self.get_revenue_stats(day),
        }

    # ============== 入住 / 退房 ==============

    def _get_reservation(self, reservation_id: int) -> Reservation:
        reservation = self.reservations.get_reservation(reservation_id)
        if not reservation:
            raise ValueError("预订不存在")
        return reservation

    def check_in(self, reservation_id: int, room_number: Optional[str] = None) -> Order:
        """
        按预订办理入住

        预订转为已入住、房间转为入住中，并以预订金额创建在住订单。
        """
        reservation = self._get_reservation(reservation_id)
        if reservation.status not in ARRIVAL_STATUSES:
            raise ValueError(f"预订状态为 {reservation.status.value}，无法办理入住")

        if room_number:
            room = self.rooms.get_room_by_number(room_number)
            if not room:
                raise ValueError(f"房间 {room_number} 不存在")
            if room.id != reservation.room_id:
                if not self.reservations.is_room_free(room.id, reservation.check_in_date,
                                                      reservation.check_out_date, exclude_id=reservation.id):
                    raise ValueError(f"房间 {room.number} 在所选日期已被预订")
                reservation.room_id = room.id
        elif reservation.room_id:
            room = self.rooms.get_room(reservation.room_id)
        else:
            raise ValueError("预订尚未排房")

        if room.status != RoomStatus.AVAILABLE:
            raise ValueError(f"房间 {room.number} 当前状态为 {room.status.value}，无法入住")
        if self.checkin.get_active_order(room.number):
            raise ValueError(f"房间 {room.number} 已有在住订单")

        self.reservations.set_status(reservation, ReservationStatus.CHECKED_IN)
        self.rooms.set_status(room, RoomStatus.OCCUPIED, "reservation_check_in")

        # 在住订单的房费为整段住宿金额
        room_charge = _money(reservation.total_amount or room.price)
        order = Order(
            reservation_id=reservation.id,
            room_number=room.number,
            guest_name=reservation.guest.full_name,
            guest_id=reservation.guest_id,
            room_price=room_charge,
            services_total=Decimal("0.00"),
            total=room_charge,
            check_in_date=reservation.check_in_date,
            check_in_time=datetime.now().time().replace(microsecond=0),
            status=OrderStatus.ACTIVE,
            payment_status=PaymentStatus.PENDING,
        )
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)

        logger.info(f"Reservation {reservation.confirmation_code} checked in to room {room.number}")
        return order

    def check_out(self, reservation_id: int, additional_charges: Decimal = Decimal("0"),
                  payment_method: PaymentMethod = PaymentMethod.CASH) -> Order:
        """
        按预订办理退房

        预订转为已退房并结清，房间转为待清洁，订单完成，生成高优先级退房清洁任务。
        """
        reservation = self._get_reservation(reservation_id)
        if reservation.status != ReservationStatus.CHECKED_IN:
            raise ValueError("只有已入住的预订才能退房")

        order = self.db.query(Order).filter(
            Order.reservation_id == reservation.id,
            Order.status == OrderStatus.ACTIVE
        ).first()
        if not order:
            raise ValueError("未找到该预订的在住订单")
        room = self.rooms.get_room_by_number(order.room_number)

        additional = _money(additional_charges)
        order.services_total = _money(order.services_total) + additional
        self.checkin.complete_order(order, payment_method, additional)

        self.reservations.set_status(reservation, ReservationStatus.CHECKED_OUT)
        reservation.paid_amount = reservation.total_amount
        reservation.payment_status = PaymentStatus.PAID

        if room:
            self.rooms.set_status(room, RoomStatus.CHECKOUT, "reservation_check_out")
            self.rooms.add_cleaning_task(room, CleaningType.CHECKOUT, TaskPriority.HIGH)

        self.db.commit()
        self.db.refresh(order)
        self.checkin.publish_order_completed(order)
        logger.info(f"Reservation {reservation.confirmation_code} checked out, total {order.total}")
        return order

    def update_room_status(self, room_number: str, status: RoomStatus, notes: str = "") -> Room:
        """调整房态；转为清洁中时自动生成维护清洁任务"""
        room = self.rooms.get_room_by_number(room_number)
        if not room:
            raise ValueError(f"房间 {room_number} 不存在")

        self.rooms.set_status(room, status, notes or "reception")
        if status == RoomStatus.CLEANING:
            self.rooms.add_cleaning_task(room, CleaningType.MAINTENANCE, TaskPriority.MEDIUM, notes=notes)

        self.db.commit()
        self.db.refresh(room)
        return room

    def assign_room(self, reservation_id: int, room_number: str) -> Reservation:
        """为预订排房"""
        reservation = self._get_reservation(reservation_id)
        if reservation.status in (ReservationStatus.CHECKED_OUT, ReservationStatus.CANCELLED):
            raise ValueError("该预订已结束，无法排房")
        room = self.rooms.get_room_by_number(room_number)
        if not room:
            raise ValueError(f"房间 {room_number} 不存在")
        if not self.reservations.is_room_free(room.id, reservation.check_in_date,
                                              reservation.check_out_date, exclude_id=reservation.id):
            raise ValueError(f"房间 {room.number} 在所选日期已被预订")

        reservation.room_id = room.id
        self.db.commit()
        self.db.refresh(reservation)
        return reservation

    # ============== 查询 ==============

    def get_room_history(self, room_number: str, days: int = 30) -> List[Reservation]:
        """房间近 N 天的预订记录（按入住日期倒序）"""
        room = self.rooms.get_room_by_number(room_number)
        if not room:
            raise ValueError(f"房间 {room_number} 不存在")
        since = date.today() - timedelta(days=days)
        return self.db.query(Reservation).filter(
            Reservation.room_id == room.id,
            Reservation.check_in_date >= since
        ).order_by(Reservation.check_in_date.desc()).all()

    def get_occupancy_stats(self, start_date: date, end_date: date) -> Dict[str, Any]:
        return rpc_registry.call("get_occupancy_stats", self.db, start_date=start_date, end_date=end_date)

    def get_daily_movements(self, day: date = None) -> Dict[str, Any]:
        """某日到店、离店和在住情况"""
        day = day or date.today()
        arrivals = self.db.query(Reservation).filter(
            Reservation.check_in_date == day,
            Reservation.status.in_([ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_IN])
        ).all()
        departures = self.db.query(Reservation).filter(
            Reservation.check_out_date == day,
            Reservation.status.in_([ReservationStatus.CHECKED_IN, ReservationStatus.CHECKED_OUT])
        ).all()
        in_house = self.db.query(Reservation).filter(
            Reservation.status == ReservationStatus.CHECKED_IN,
            Reservation.check_in_date <= day,
            Reservation.check_out_date > day,
        ).all()
        return {
            "date": day.isoformat(),
            "arrivals": [reservation_to_dict(r) for r in arrivals],
            "departures": [reservation_to_dict(r) for r in departures],
            "in_house": [reservation_to_dict(r) for r in in_house],
            "summary": {
                "total_arrivals": len(arrivals),
                "total_departures": len(departures),
                "in_house": len(in_house),
            },
        }
