"""
仪表盘服务
汇总房态、营收、订单、库存、客人、清洁和最近动态
"""
from datetime import date, datetime, timedelta
from typing import List, Dict, Any
import logging

from sqlalchemy.orm import Session

from hotelpms.models.ontology import (
    Room, RoomStatus, Order, OrderStatus, Service, Guest, RoomCleaning, CleaningTaskStatus
)

logger = logging.getLogger(__name__)


def month_bounds(day: date):
    """当月首日和下月首日"""
    start = day.replace(day=1)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def growth_rate(current: float, previous: float) -> float:
    if not previous:
        return 100.0 if current else 0.0
    return round((current - previous) / previous * 100, 1)


def occupancy_trend(rate: float) -> str:
    if rate > 75:
        return "up"
    if rate < 50:
        return "down"
    return "stable"


class DashboardService:
    """仪表盘服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_room_stats(self) -> Dict[str, Any]:
        """房态统计；未知状态计为空闲"""
        stats = {status.value: 0 for status in RoomStatus}
        rooms = self.db.query(Room.status).all()
        for (status,) in rooms:
            key = status.value if isinstance(status, RoomStatus) else str(status)
            if key not in stats:
                key = RoomStatus.AVAILABLE.value
            stats[key] += 1

        total = len(rooms)
        stats["total"] = total
        stats["occupancy_rate"] = round(stats[RoomStatus.OCCUPIED.value] / total * 100) if total else 0
        return stats

    def _revenue_between(self, start: date, end: date) -> float:
        """[start, end) 内结账订单的营收"""
        orders = self.db.query(Order.total).filter(
            Order.status == OrderStatus.COMPLETED,
            Order.check_out_date >= start,
            Order.check_out_date < end
        ).all()
        return round(sum(float(total or 0) for (total,) in orders), 2)

    def get_revenue_stats(self, today: date = None) -> Dict[str, Any]:
        today = today or date.today()
        week_start = today - timedelta(days=today.weekday())
        month_start, next_month = month_bounds(today)
        last_month_start, _ = month_bounds(month_start - timedelta(days=1))

        this_month = self._revenue_between(month_start, next_month)
        last_month = self._revenue_between(last_month_start, month_start)
        return {
            "today": self._revenue_between(today, today + timedelta(days=1)),
            "week": self._revenue_between(week_start, today + timedelta(days=1)),
            "month": this_month,
            "last_month": last_month,
            "growth": growth_rate(this_month, last_month),
        }

    def get_order_stats(self, today: date = None) -> Dict[str, Any]:
        today = today or date.today()
        active = self.db.query(Order).filter(Order.status == OrderStatus.ACTIVE).count()
        completed_today = self.db.query(Order).filter(
            Order.status == OrderStatus.COMPLETED,
            Order.check_out_date == today
        ).count()
        total_today = self.db.query(Order).filter(Order.check_in_date == today).count()
        return {"active": active, "completed_today": completed_today, "total_today": total_today}

    def get_inventory_stats(self) -> Dict[str, Any]:
        services = self.db.query(Service).all()
        return {
            "total_items": len(services),
            "total_value": round(sum((s.stock or 0) * float(s.cost or 0) for s in services), 2),
            "out_of_stock": sum(1 for s in services if (s.stock or 0) == 0),
            "low_stock": sum(1 for s in services if 0 < (s.stock or 0) <= (s.min_stock or 0)),
        }

    def get_guest_stats(self, today: date = None) -> Dict[str, Any]:
        today = today or date.today()
        return {
            "total": self.db.query(Guest).count(),
            "vip": self.db.query(Guest).filter(Guest.vip_status == True).count(),
            "checked_in_today": self.db.query(Order).filter(Order.check_in_date == today).count(),
        }

    def get_cleaning_stats(self, today: date = None) -> Dict[str, Any]:
        today = today or date.today()
        start = datetime.combine(today, datetime.min.time())
        query = self.db.query(RoomCleaning)
        return {
            "pending": query.filter(RoomCleaning.status == CleaningTaskStatus.PENDING).count(),
            "in_progress": query.filter(RoomCleaning.status == CleaningTaskStatus.IN_PROGRESS).count(),
            "completed_today": query.filter(
                RoomCleaning.status == CleaningTaskStatus.COMPLETED,
                RoomCleaning.completed_at >= start,
                RoomCleaning.completed_at < start + timedelta(days=1)
            ).count(),
        }

    def get_recent_activity(self, limit: int = 10) -> List[Dict[str, Any]]:
        """最近 5 笔订单和 5 条清洁任务，按时间倒序"""
        activity = []
        for order in self.db.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(5):
            completed = order.status == OrderStatus.COMPLETED
            activity.append({
                "type": "checkout" if completed else "checkin",
                "message": f"房间 {order.room_number} {'已结账' if completed else '已入住'}：{order.guest_name or ''}",
                "timestamp": order.created_at,
                "amount": float(order.total or 0),
            })
        for task in self.db.query(RoomCleaning).order_by(RoomCleaning.created_at.desc(), RoomCleaning.id.desc()).limit(5):
            activity.append({
                "type": "cleaning",
                "message": f"房间 {task.room.number if task.room else ''} 清洁任务 {task.status.value}",
                "timestamp": task.completed_at or task.created_at,
                "amount": None,
            })

        activity.sort(key=lambda a: a["timestamp"] or datetime.min, reverse=True)
        return activity[:limit]

    def get_low_stock_items(self, limit: int = 10) -> List[Dict[str, Any]]:
        """0 < 库存 <= 下限的商品"""
        services = self.db.query(Service).filter(
            Service.stock > 0,
            Service.stock <= Service.min_stock
        ).order_by(Service.stock).limit(limit).all()
        return [
            {"id": s.id, "name": s.name, "stock": s.stock, "min_stock": s.min_stock, "category": s.category}
            for s in services
        ]

    def get_dashboard(self, today: date = None) -> Dict[str, Any]:
        today = today or date.today()
        rooms = self.get_room_stats()
        revenue = self.get_revenue_stats(today)
        return {
            "rooms": rooms,
            "revenue": revenue,
            "orders": self.get_order_stats(today),
            "inventory": self.get_inventory_stats(),
            "guests": self.get_guest_stats(today),
            "cleaning": self.get_cleaning_stats(today),
            "recent_activity": self.get_recent_activity(),
            "low_stock_items": self.get_low_stock_items(),
            "trends": {
                "occupancy": occupancy_trend(rooms["occupancy_rate"]),
                "revenue": "up" if revenue["growth"] > 0 else "down" if revenue["growth"] < 0 else "stable",
            },
        }
