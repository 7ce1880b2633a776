"""
分店服务
分店列表/维护、分店切换权限、分店当日经营统计
"""
from datetime import date
from typing import List, Optional, Dict, Any
import logging

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hotelpms.config import settings
from hotelpms.models.ontology import Branch, Room, RoomStatus, Reservation, ReservationStatus, Staff
from hotelpms.models.schemas import BranchCreate, BranchUpdate
from hotelpms.security import permissions as perms
from hotelpms.services.fallbacks import DEFAULT_BRANCH
from hotelpms.services.rpc import rpc_registry, as_date

logger = logging.getLogger(__name__)


def display_name(branch) -> str:
    """分店显示名，如 "Hotel Paraíso Principal (HTP)" """
    if branch is None:
        return "未选择分店"
    if isinstance(branch, dict):
        return f"{branch['name']} ({branch['code']})"
    return f"{branch.name} ({branch.code})"


def empty_branch_stats() -> Dict[str, Any]:
    return {
        "rooms": {"total": 0, "available": 0, "occupied": 0, "checkout": 0,
                  "cleaning": 0, "maintenance": 0, "out_of_order": 0},
        "reservations": {"check_ins_today": 0, "check_outs_today": 0, "total_reservations": 0},
        "revenue": {"total": 0, "rooms": 0, "services": 0, "pending": 0},
        "occupancy": {"rate": 0, "occupied_rooms": 0, "available_rooms": 0},
        "source": "empty",
    }


class BranchService:
    """分店服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_branches(self, include_inactive: bool = False) -> List[Any]:
        """分店列表；数据源异常或为空时返回默认分店"""
        try:
            query = self.db.query(Branch)
            if not include_inactive:
                query = query.filter(Branch.is_active == True)
            branches = query.order_by(Branch.name).all()
        except SQLAlchemyError as e:
            logger.error(f"Error loading branches: {e}")
            branches = []

        if not branches and settings.USE_FALLBACK_DATA:
            return [dict(DEFAULT_BRANCH)]
        return branches

    def get_branch(self, branch_id: int) -> Optional[Branch]:
        return self.db.query(Branch).filter(Branch.id == branch_id).first()

    def can_change_branch(self, staff: Staff) -> bool:
        """管理员或拥有分店管理权限的员工可以切换分店；只有一家分店时不受限"""
        if perms.can_change_branch(staff):
            return True
        return self.db.query(Branch).filter(Branch.is_active == True).count() <= 1

    def get_available_branches(self, staff: Staff) -> List[Any]:
        """员工可见的分店：管理员全部，其余仅本分店"""
        branches = self.get_branches()
        if perms.has_permission(staff, perms.MANAGE_BRANCHES):
            return branches
        return [b for b in branches if _branch_id(b) == staff.branch_id]

    def select_branch(self, branch_id: int, staff: Staff) -> Branch:
        """校验员工能否切换到指定分店"""
        if branch_id != staff.branch_id and not self.can_change_branch(staff):
            raise PermissionError("没有切换分店的权限")
        branch = self.get_branch(branch_id)
        if not branch or not branch.is_active:
            raise ValueError("分店不存在")
        logger.info(f"Staff {staff.username} switched to branch {branch.code}")
        return branch

    def create_branch(self, data: BranchCreate, operator: Staff) -> Branch:
        perms.ensure_permission(operator, perms.MANAGE_BRANCHES, "没有创建分店的权限")
        if self.db.query(Branch).filter(Branch.code == data.code).first():
            raise ValueError(f"分店编码 '{data.code}' 已存在")

        branch = Branch(**data.model_dump(), is_active=True)
        self.db.add(branch)
        self.db.commit()
        self.db.refresh(branch)
        return branch

    def update_branch(self, branch_id: int, data: BranchUpdate, operator: Staff) -> Branch:
        perms.ensure_permission(operator, perms.MANAGE_BRANCHES, "没有修改分店的权限")
        branch = self.get_branch(branch_id)
        if not branch:
            raise ValueError("分店不存在")

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(branch, key, value)

        self.db.commit()
        self.db.refresh(branch)
        return branch

    # ============== 统计 ==============

    def get_branch_stats(self, branch_id: int, day: date = None) -> Dict[str, Any]:
        """
        分店某日统计

        优先使用存储过程；存储过程失败时退回基础查询并估算营收；全部失败返回零值。
        """
        day = as_date(day)
        try:
            try:
                return self._stats_from_procedures(branch_id, day)
            except (SQLAlchemyError, ValueError) as e:
                logger.warning(f"Branch stats procedures failed, falling back to basic queries: {e}")
                self.db.rollback()
                return self._stats_from_queries(branch_id, day)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching branch stats: {e}")
            self.db.rollback()
            return empty_branch_stats()

    def _arrivals_departures(self, branch_id: int, day: date):
        arrivals = self.db.query(Reservation).filter(
            Reservation.branch_id == branch_id,
            Reservation.check_in_date == day,
            Reservation.status.in_([ReservationStatus.CONFIRMED, ReservationStatus.PENDING,
                                    ReservationStatus.CHECKED_IN])
        ).count()
        departures = self.db.query(Reservation).filter(
            Reservation.branch_id == branch_id,
            Reservation.check_out_date == day,
            Reservation.status.in_([ReservationStatus.CHECKED_IN, ReservationStatus.CHECKED_OUT])
        ).count()
        return arrivals, departures

    def _stats_from_procedures(self, branch_id: int, day: date) -> Dict[str, Any]:
        occupancy = rpc_registry.call("get_branch_occupancy_stats", self.db,
                                      p_branch_id=branch_id, p_date=day)
        revenue = rpc_registry.call("get_branch_revenue_stats", self.db,
                                    p_branch_id=branch_id, p_start_date=day, p_end_date=day)
        arrivals, departures = self._arrivals_departures(branch_id, day)
        checkout = self.db.query(Room).filter(Room.branch_id == branch_id, Room.status == RoomStatus.CHECKOUT).count()

        return {
            "rooms": {
                "total": occupancy["total_rooms"],
                "available": occupancy["available_rooms"],
                "occupied": occupancy["occupied_rooms"],
                "checkout": checkout,
                "cleaning": occupancy["cleaning_rooms"] - checkout,
                "maintenance": occupancy["maintenance_rooms"],
                "out_of_order": 0,
            },
            "reservations": {
                "check_ins_today": arrivals,
                "check_outs_today": departures,
                "total_reservations": arrivals + departures,
            },
            "revenue": {
                "total": revenue["total_revenue"],
                "rooms": revenue["room_revenue"],
                "services": revenue["service_revenue"],
                "pending": revenue["pending_revenue"],
            },
            "occupancy": {
                "rate": occupancy["occupancy_rate"],
                "occupied_rooms": occupancy["occupied_rooms"],
                "available_rooms": occupancy["available_rooms"],
            },
            "source": "procedures",
        }

    def _stats_from_queries(self, branch_id: int, day: date) -> Dict[str, Any]:
        rooms = self.db.query(Room.status).filter(Room.branch_id == branch_id).all()
        room_stats: Dict[str, int] = {}
        for (status,) in rooms:
            key = getattr(status, "value", status)
            room_stats[key] = room_stats.get(key, 0) + 1

        reservations = self.db.query(Reservation).filter(
            Reservation.branch_id == branch_id,
            or_(Reservation.check_in_date == day, Reservation.check_out_date == day)
        ).all()
        arrivals = [r for r in reservations if r.check_in_date == day]
        departures = [r for r in reservations if r.check_out_date == day]
        total_revenue = sum(float(r.total_amount or 0) for r in reservations)

        occupied = room_stats.get("occupied", 0)
        return {
            "rooms": {
                "total": len(rooms),
                "available": room_stats.get("available", 0),
                "occupied": occupied,
                "checkout": room_stats.get("checkout", 0),
                "cleaning": room_stats.get("cleaning", 0),
                "maintenance": room_stats.get("maintenance", 0),
                "out_of_order": room_stats.get("out_of_order", 0),
            },
            "reservations": {
                "check_ins_today": len(arrivals),
                "check_outs_today": len(departures),
                "total_reservations": len(reservations),
            },
            # 基础查询拿不到分项营收，按经验比例估算
            "revenue": {
                "total": round(total_revenue, 2),
                "rooms": round(total_revenue * 0.8, 2),
                "services": round(total_revenue * 0.2, 2),
                "pending": round(total_revenue * 0.3, 2),
            },
            "occupancy": {
                "rate": round(occupied / (len(rooms) or 1) * 100) if occupied else 0,
                "occupied_rooms": occupied,
                "available_rooms": room_stats.get("available", 0),
            },
            "source": "queries",
        }


def _branch_id(branch) -> Optional[int]:
    return branch["id"] if isinstance(branch, dict) else branch.id
