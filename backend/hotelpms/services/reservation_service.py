"""
预订服务
预订增删改查、状态变更、可订房间、统计、筛选分页
"""
from datetime import date, datetime, timedelta
from decimal import Decimal
from math import ceil
from typing import List, Optional, Callable, Dict, Any
import calendar
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from hotelpms.models.ontology import (
    Reservation, ReservationStatus, PaymentStatus, Room, RoomStatus, Guest
)
from hotelpms.models.schemas import ReservationCreate, ReservationUpdate
from hotelpms.models.events import EventType, ReservationCreatedData, ReservationStatusChangedData
from hotelpms.services.event_bus import event_bus, Event
from hotelpms.services.pending_events import publish_after_commit
from hotelpms.services.rpc import rpc_registry, random_confirmation_code

logger = logging.getLogger(__name__)

# 不再占用房间的预订状态
RELEASED_STATUSES = (ReservationStatus.CANCELLED, ReservationStatus.CHECKED_OUT)

# 手动变更状态时允许的流转；已退房为终态
STATUS_TRANSITIONS = {
    ReservationStatus.PENDING: {ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_IN,
                                ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW},
    ReservationStatus.CONFIRMED: {ReservationStatus.PENDING, ReservationStatus.CHECKED_IN,
                                  ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW},
    ReservationStatus.CHECKED_IN: {ReservationStatus.CHECKED_OUT},
    ReservationStatus.CHECKED_OUT: set(),
    ReservationStatus.CANCELLED: {ReservationStatus.PENDING, ReservationStatus.CONFIRMED},
    ReservationStatus.NO_SHOW: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED},
}

# 不可为空的字段，显式传入 null 时视为未提供
NON_NULLABLE_UPDATE_FIELDS = (
    "check_in_date", "check_out_date", "adults", "children", "rate",
    "total_amount", "paid_amount", "payment_status", "booking_source",
)

DATE_RANGES = ("today", "tomorrow", "this_week", "next_week", "this_month")


def date_range_bounds(name: str, today: date = None) -> Optional[tuple]:
    """日期快捷筛选对应的 [开始, 结束] 日期（均包含）"""
    today = today or date.today()
    if name == "today":
        return today, today
    if name == "tomorrow":
        tomorrow = today + timedelta(days=1)
        return tomorrow, tomorrow
    if name == "this_week":
        return today, today + timedelta(days=7)
    if name == "next_week":
        start = today + timedelta(days=7)
        return start, start + timedelta(days=7)
    if name == "this_month":
        last_day = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last_day)
    return None


def derive_payment_status(total: Decimal, paid: Decimal) -> PaymentStatus:
    total = Decimal(str(total or 0))
    paid = Decimal(str(paid or 0))
    if paid <= 0:
        return PaymentStatus.PENDING
    if paid >= total:
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL


class ReservationService:
    """预订服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    def get_reservation(self, reservation_id: int) -> Optional[Reservation]:
        return self.db.query(Reservation).filter(Reservation.id == reservation_id).first()

    def get_by_confirmation_code(self, code: str) -> Optional[Reservation]:
        return self.db.query(Reservation).filter(Reservation.confirmation_code == code).first()

    def generate_confirmation_code(self) -> str:
        """通过存储过程生成确认码，失败时本地随机生成"""
        try:
            return rpc_registry.call("generate_confirmation_code", self.db)
        except Exception as e:
            logger.error(f"Error generating confirmation code: {e}")
            return random_confirmation_code()

    # ============== 可订房间 ==============

    def _conflicting_room_ids(self, check_in: date, check_out: date,
                              exclude_id: Optional[int] = None) -> set:
        """与 [check_in, check_out) 重叠且仍占房的预订所用房间"""
        query = self.db.query(Reservation.room_id).filter(
            Reservation.room_id.isnot(None),
            Reservation.status.notin_(RELEASED_STATUSES),
            Reservation.check_in_date < check_out,
            Reservation.check_out_date > check_in,
        )
        if exclude_id is not None:
            query = query.filter(Reservation.id != exclude_id)
        return {row[0] for row in query.all()}

    def get_available_rooms(self, check_in: date, check_out: date,
                            exclude_id: Optional[int] = None) -> List[Room]:
        """空闲且日期不冲突的房间"""
        if check_out <= check_in:
            raise ValueError("退房日期必须晚于入住日期")
        busy = self._conflicting_room_ids(check_in, check_out, exclude_id)
        rooms = self.db.query(Room).filter(Room.status == RoomStatus.AVAILABLE) \
            .order_by(Room.floor, Room.number).all()
        return [room for room in rooms if room.id not in busy]

    def is_room_free(self, room_id: int, check_in: date, check_out: date,
                     exclude_id: Optional[int] = None) -> bool:
        return room_id not in self._conflicting_room_ids(check_in, check_out, exclude_id)

    # ============== 增删改 ==============

    def create_reservation(self, data: ReservationCreate, created_by: Optional[int] = None) -> Reservation:
        """创建预订，默认状态为已确认"""
        guest = self.db.query(Guest).filter(Guest.id == data.guest_id).first()
        if not guest:
            raise ValueError("客人不存在")
        if guest.blacklisted:
            raise ValueError(f"客人 {guest.full_name} 在黑名单中")

        room = None
        if data.room_id is not None:
            room = self.db.query(Room).filter(Room.id == data.room_id).first()
            if not room:
                raise ValueError("房间不存在")
            if not self.is_room_free(room.id, data.check_in_date, data.check_out_date):
                raise ValueError(f"房间 {room.number} 在所选日期已被预订")

        rate = data.rate if data.rate else (room.price if room else Decimal("0"))
        nights = (data.check_out_date - data.check_in_date).days
        total = data.total_amount if data.total_amount is not None else Decimal(str(rate)) * nights

        reservation = Reservation(
            confirmation_code=self.generate_confirmation_code(),
            guest_id=guest.id,
            room_id=data.room_id,
            branch_id=data.branch_id if data.branch_id is not None else (room.branch_id if room else None),
            check_in_date=data.check_in_date,
            check_out_date=data.check_out_date,
            adults=data.adults,
            children=data.children,
            rate=rate,
            total_amount=total,
            paid_amount=data.paid_amount,
            status=ReservationStatus.CONFIRMED,
            payment_status=derive_payment_status(total, data.paid_amount),
            booking_source=data.booking_source or "direct",
            special_requests=data.special_requests,
            created_by=created_by,
        )
        self.db.add(reservation)
        self.db.commit()
        self.db.refresh(reservation)

        logger.info(f"Reservation {reservation.confirmation_code} created for guest {guest.id}")
        self._publish_event(Event(
            event_type=EventType.RESERVATION_CREATED,
            timestamp=datetime.now(),
            data=ReservationCreatedData(
                reservation_id=reservation.id,
                confirmation_code=reservation.confirmation_code,
                guest_id=guest.id,
                room_id=reservation.room_id,
                check_in_date=reservation.check_in_date.isoformat(),
                check_out_date=reservation.check_out_date.isoformat(),
            ).to_dict(),
            source="reservation_service"
        ))
        return reservation

    def update_reservation(self, reservation_id: int, data: ReservationUpdate) -> Reservation:
        """部分更新，只写入提供的字段"""
        reservation = self.get_reservation(reservation_id)
        if not reservation:
            raise ValueError("预订不存在")

        update_data = {
            key: value for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key not in NON_NULLABLE_UPDATE_FIELDS
        }
        check_in = update_data.get("check_in_date", reservation.check_in_date)
        check_out = update_data.get("check_out_date", reservation.check_out_date)
        if check_out <= check_in:
            raise ValueError("退房日期必须晚于入住日期")

        room_id = update_data.get("room_id", reservation.room_id)
        if room_id is not None and {"room_id", "check_in_date", "check_out_date"} & update_data.keys():
            if not self.db.query(Room).filter(Room.id == room_id).first():
                raise ValueError("房间不存在")
            if not self.is_room_free(room_id, check_in, check_out, exclude_id=reservation.id):
                raise ValueError("所选房间在该日期已被预订")

        for key, value in update_data.items():
            setattr(reservation, key, value)

        if "paid_amount" in update_data or "total_amount" in update_data:
            if "payment_status" not in update_data:
                reservation.payment_status = derive_payment_status(
                    reservation.total_amount, reservation.paid_amount
                )

        self.db.commit()
        self.db.refresh(reservation)
        return reservation

    def delete_reservation(self, reservation_id: int) -> bool:
        reservation = self.get_reservation(reservation_id)
        if not reservation:
            raise ValueError("预订不存在")
        if reservation.status == ReservationStatus.CHECKED_IN:
            raise ValueError("在住预订不能删除")
        self.db.delete(reservation)
        self.db.commit()
        return True

    def set_status(self, reservation: Reservation, status: ReservationStatus) -> Reservation:
        """变更状态，事件在调用方提交事务后发布"""
        old_status = reservation.status
        reservation.status = status
        if old_status != status:
            publish_after_commit(self.db, self._publish_event, Event(
                event_type=EventType.RESERVATION_STATUS_CHANGED,
                timestamp=datetime.now(),
                data=ReservationStatusChangedData(
                    reservation_id=reservation.id,
                    confirmation_code=reservation.confirmation_code,
                    old_status=old_status.value if old_status else "",
                    new_status=status.value,
                ).to_dict(),
                source="reservation_service"
            ))
        return reservation

    def change_status(self, reservation_id: int, status: ReservationStatus) -> Reservation:
        """
        手动变更预订状态

        只允许 STATUS_TRANSITIONS 中的流转；从已取消恢复时重新检查房间是否已被他人预订。
        """
        reservation = self.get_reservation(reservation_id)
        if not reservation:
            raise ValueError("预订不存在")
        old_status = reservation.status
        if status != old_status and status not in STATUS_TRANSITIONS.get(old_status, set()):
            raise ValueError(f"预订状态不能从 {old_status.value} 变更为 {status.value}")
        if old_status in RELEASED_STATUSES and status not in RELEASED_STATUSES and reservation.room_id:
            if not self.is_room_free(reservation.room_id, reservation.check_in_date,
                                     reservation.check_out_date, exclude_id=reservation.id):
                raise ValueError("所选房间在该日期已被预订")
        self.set_status(reservation, status)
        self.db.commit()
        self.db.refresh(reservation)
        return reservation

    # ============== 查询 ==============

    def _filtered_query(self, status: Optional[ReservationStatus] = None,
                        payment_status: Optional[PaymentStatus] = None,
                        search: Optional[str] = None, source: Optional[str] = None,
                        date_range: Optional[str] = None, branch_id: Optional[int] = None):
        query = self.db.query(Reservation).join(Guest, Guest.id == Reservation.guest_id) \
            .outerjoin(Room, Room.id == Reservation.room_id)

        if status is not None:
            query = query.filter(Reservation.status == status)
        if payment_status is not None:
            query = query.filter(Reservation.payment_status == payment_status)
        if source:
            query = query.filter(Reservation.booking_source == source)
        if branch_id is not None:
            query = query.filter(Reservation.branch_id == branch_id)
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                Guest.full_name.ilike(term),
                Reservation.confirmation_code.ilike(term),
                Guest.email.ilike(term),
                Room.number.ilike(term),
                Guest.dni.ilike(term),
            ))
        if date_range:
            bounds = date_range_bounds(date_range)
            if bounds is None:
                raise ValueError(f"不支持的日期范围: {date_range}")
            query = query.filter(
                Reservation.check_in_date >= bounds[0],
                Reservation.check_in_date <= bounds[1],
            )
        return query

    def list_reservations(self, page: int = 1, limit: int = 10, **filters) -> Dict[str, Any]:
        """筛选 + 分页，按入住日期倒序"""
        page = max(page, 1)
        limit = max(limit, 1)
        query = self._filtered_query(**filters)
        total = query.count()
        items = query.order_by(Reservation.check_in_date.desc(), Reservation.id.desc()) \
            .offset((page - 1) * limit).limit(limit).all()
        return {
            "items": items,
            "total": total,
            "page": page,
            "limit": limit,
            "pages": ceil(total / limit) if total else 0,
        }

    def get_by_date(self, day: date) -> List[Reservation]:
        """某日到店的预订"""
        return self.db.query(Reservation).filter(Reservation.check_in_date == day) \
            .order_by(Reservation.id).all()

    def get_stats(self) -> Dict[str, Any]:
        """各状态数量与收款情况（已取消的不计入营收）"""
        reservations = self.db.query(Reservation).all()
        stats: Dict[str, Any] = {s.value: 0 for s in ReservationStatus}
        revenue = Decimal("0")
        paid = Decimal("0")
        for r in reservations:
            stats[r.status.value] += 1
            if r.status != ReservationStatus.CANCELLED:
                revenue += Decimal(str(r.total_amount or 0))
                paid += Decimal(str(r.paid_amount or 0))

        stats.update({
            "total": len(reservations),
            "total_revenue": float(revenue),
            "paid_amount": float(paid),
            "pending_payments": float(revenue - paid),
        })
        return stats


def reservation_to_dict(reservation: Reservation) -> Dict[str, Any]:
    """预订附带客人姓名与房间号"""
    return {
        "id": reservation.id,
        "confirmation_code": reservation.confirmation_code,
        "guest_id": reservation.guest_id,
        "guest_name": reservation.guest.full_name if reservation.guest else None,
        "room_id": reservation.room_id,
        "room_number": reservation.room.number if reservation.room else None,
        "branch_id": reservation.branch_id,
        "check_in_date": reservation.check_in_date,
        "check_out_date": reservation.check_out_date,
        "adults": reservation.adults,
        "children": reservation.children,
        "rate": reservation.rate or 0,
        "total_amount": reservation.total_amount or 0,
        "paid_amount": reservation.paid_amount or 0,
        "status": reservation.status,
        "payment_status": reservation.payment_status,
        "booking_source": reservation.booking_source,
        "special_requests": reservation.special_requests,
        "created_at": reservation.created_at,
    }
