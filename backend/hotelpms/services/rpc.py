"""
存储过程层
按名称调用的聚合/生成函数，供服务层和 /rpc 接口使用
"""
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Any, List
import logging
import secrets
import string

from sqlalchemy import func
from sqlalchemy.orm import Session

from hotelpms.config import settings
from hotelpms.models.ontology import (
    Room, RoomStatus, Reservation, ReservationStatus, Order, OrderStatus
)

logger = logging.getLogger(__name__)

_CODE_ALPHABET = string.ascii_uppercase + string.digits

# 占用房间的预订状态
OCCUPYING_STATUSES = (ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_IN, ReservationStatus.PENDING)


class ProcedureNotFound(LookupError):
    pass


class RpcRegistry:
    """存储过程注册表"""

    def __init__(self):
        self._procedures: Dict[str, Callable[..., Any]] = {}

    def register(self, name: str):
        def decorator(func_):
            self._procedures[name] = func_
            return func_
        return decorator

    def names(self) -> List[str]:
        return sorted(self._procedures)

    def call(self, name: str, db: Session, **params) -> Any:
        procedure = self._procedures.get(name)
        if procedure is None:
            raise ProcedureNotFound(f"存储过程 {name} 不存在")
        logger.debug(f"rpc {name} params={params}")
        try:
            return procedure(db, **params)
        except TypeError as e:
            raise ValueError(f"存储过程 {name} 参数错误: {e}")


rpc_registry = RpcRegistry()


def as_date(value) -> date:
    """将 ISO 字符串 / datetime 统一为 date"""
    if value is None:
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValueError(f"无效的日期: {value}")


def random_confirmation_code(prefix: str = None, year: int = None) -> str:
    prefix = prefix or settings.DEFAULT_BRANCH_CODE
    year = year or date.today().year
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(6))
    return f"{prefix}-{year}-{suffix}"


@rpc_registry.register("generate_confirmation_code")
def generate_confirmation_code(db: Session, prefix: str = None) -> str:
    """生成不与现有预订重复的确认码，如 HTP-2026-4K7Q2Z"""
    for _ in range(10):
        code = random_confirmation_code(prefix)
        exists = db.query(Reservation.id).filter(Reservation.confirmation_code == code).first()
        if not exists:
            return code
    raise ValueError("无法生成唯一确认码")


def _occupied_room_ids(db: Session, day: date, branch_id: int = None) -> set:
    query = db.query(Reservation.room_id).filter(
        Reservation.room_id.isnot(None),
        Reservation.status.in_(OCCUPYING_STATUSES),
        Reservation.check_in_date <= day,
        Reservation.check_out_date > day,
    )
    if branch_id is not None:
        query = query.join(Room, Room.id == Reservation.room_id).filter(Room.branch_id == branch_id)
    return {row[0] for row in query.all()}


def _room_query(db: Session, branch_id: int = None):
    query = db.query(Room)
    if branch_id is not None:
        query = query.filter(Room.branch_id == branch_id)
    return query


@rpc_registry.register("get_occupancy_stats")
def get_occupancy_stats(db: Session, start_date=None, end_date=None) -> Dict[str, Any]:
    """区间内每日入住率（按预订占用计算）"""
    start = as_date(start_date)
    end = as_date(end_date or start)
    if end < start:
        raise ValueError("结束日期不能早于开始日期")

    total_rooms = db.query(func.count(Room.id)).scalar() or 0
    days = []
    day = start
    while day <= end:
        occupied = len(_occupied_room_ids(db, day))
        rate = round(occupied / total_rooms * 100, 1) if total_rooms else 0
        days.append({"date": day.isoformat(), "occupied": occupied, "occupancy_rate": rate})
        day += timedelta(days=1)

    average = round(sum(d["occupancy_rate"] for d in days) / len(days), 1) if days else 0
    return {"total_rooms": total_rooms, "days": days, "average_occupancy": average}


@rpc_registry.register("get_branch_occupancy_stats")
def get_branch_occupancy_stats(db: Session, p_branch_id: int = None, p_date=None) -> Dict[str, Any]:
    """分店某日房态统计"""
    day = as_date(p_date)
    rows = _room_query(db, p_branch_id).with_entities(Room.status, func.count(Room.id)) \
        .group_by(Room.status).all()
    counts = {status.value if isinstance(status, RoomStatus) else status: count for status, count in rows}
    total = sum(counts.values())
    occupied = counts.get(RoomStatus.OCCUPIED.value, 0)
    return {
        "date": day.isoformat(),
        "total_rooms": total,
        "occupied_rooms": occupied,
        "available_rooms": counts.get(RoomStatus.AVAILABLE.value, 0),
        "cleaning_rooms": counts.get(RoomStatus.CLEANING.value, 0) + counts.get(RoomStatus.CHECKOUT.value, 0),
        "maintenance_rooms": counts.get(RoomStatus.MAINTENANCE.value, 0) + counts.get(RoomStatus.OUT_OF_ORDER.value, 0),
        "reserved_rooms": len(_occupied_room_ids(db, day, p_branch_id)),
        "occupancy_rate": round(occupied / total * 100, 1) if total else 0,
    }


@rpc_registry.register("get_branch_revenue_stats")
def get_branch_revenue_stats(db: Session, p_branch_id: int = None,
                             p_start_date=None, p_end_date=None) -> Dict[str, Any]:
    """分店区间营收统计（已结账订单按退房日期计入）"""
    start = as_date(p_start_date)
    end = as_date(p_end_date or start)

    query = db.query(Order)
    if p_branch_id is not None:
        query = query.join(Room, Room.number == Order.room_number).filter(Room.branch_id == p_branch_id)

    completed = query.filter(
        Order.status == OrderStatus.COMPLETED,
        Order.check_out_date >= start,
        Order.check_out_date <= end,
    ).all()
    active = query.filter(Order.status == OrderStatus.ACTIVE).all()

    room_revenue = sum(float(o.room_price or 0) for o in completed)
    service_revenue = sum(float(o.total or 0) - float(o.room_price or 0) for o in completed)
    return {
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "total_revenue": round(room_revenue + service_revenue, 2),
        "room_revenue": round(room_revenue, 2),
        "service_revenue": round(service_revenue, 2),
        "pending_revenue": round(sum(float(o.total or 0) for o in active), 2),
        "orders_count": len(completed),
    }
