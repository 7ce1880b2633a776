"""
报表服务
按统计周期汇总营收、入住率、客源、房间、物资消耗和清洁
"""
from datetime import date, datetime, timedelta
from typing import List, Optional, Dict, Any, Tuple
import logging

from sqlalchemy.orm import Session

from hotelpms.models.ontology import (
    Room, RoomStatus, Order, OrderItem, OrderStatus, Service, RoomCleaning, CleaningTaskStatus
)
from hotelpms.services.dashboard_service import month_bounds
from hotelpms.services.guest_service import stay_nights
from hotelpms.services.inventory_service import InventoryService

logger = logging.getLogger(__name__)

PERIODS = ("today", "yesterday", "this_week", "last_week", "this_month",
           "last_month", "this_year", "custom")


def period_range(period: str, today: date = None, start: Optional[date] = None,
                 end: Optional[date] = None) -> Tuple[date, date]:
    """统计周期对应的起止日期（含两端）"""
    today = today or date.today()
    if period == "today":
        return today, today
    if period == "yesterday":
        day = today - timedelta(days=1)
        return day, day
    if period == "this_week":
        return today - timedelta(days=today.weekday()), today
    if period == "last_week":
        this_monday = today - timedelta(days=today.weekday())
        return this_monday - timedelta(days=7), this_monday - timedelta(days=1)
    if period == "this_month":
        return today.replace(day=1), today
    if period == "last_month":
        month_start, _ = month_bounds(today)
        last_start, _ = month_bounds(month_start - timedelta(days=1))
        return last_start, month_start - timedelta(days=1)
    if period == "this_year":
        return today.replace(month=1, day=1), today
    if period == "custom":
        if not start or not end:
            raise ValueError("自定义周期需要提供开始和结束日期")
        if start > end:
            raise ValueError("开始日期不能晚于结束日期")
        return start, end
    raise ValueError(f"未知的统计周期: {period}")


def _days(start: date, end: date) -> List[date]:
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


class ReportService:
    """报表服务"""

    def __init__(self, db: Session):
        self.db = db

    def _completed_orders(self, start: date, end: date) -> List[Order]:
        return self.db.query(Order).filter(
            Order.status == OrderStatus.COMPLETED,
            Order.check_out_date >= start,
            Order.check_out_date <= end
        ).all()

    def _occupied_on(self, day: date) -> int:
        """当日在住订单数（入住日 <= day，且未退房或退房日晚于 day）"""
        orders = self.db.query(Order).filter(Order.check_in_date <= day).all()
        return sum(
            1 for o in orders
            if (o.check_out_date is None and o.status == OrderStatus.ACTIVE)
            or (o.check_out_date is not None and o.check_out_date > day)
        )

    def get_occupancy_series(self, start: date, end: date) -> List[Dict[str, Any]]:
        total_rooms = self.db.query(Room).count()
        series = []
        for day in _days(start, end):
            occupied = self._occupied_on(day)
            series.append({
                "date": day.isoformat(),
                "occupied": occupied,
                "total_rooms": total_rooms,
                "occupancy_rate": round(occupied / total_rooms * 100, 1) if total_rooms else 0,
            })
        return series

    def get_overview(self, start: date, end: date) -> Dict[str, Any]:
        orders = self._completed_orders(start, end)
        total_revenue = sum(float(o.total or 0) for o in orders)
        series = self.get_occupancy_series(start, end)
        guests = {o.guest_id or o.guest_name for o in orders if o.guest_id or o.guest_name}

        return {
            "total_revenue": round(total_revenue, 2),
            "total_orders": len(orders),
            "avg_order_value": round(total_revenue / len(orders), 2) if orders else 0,
            "occupancy_rate": (
                round(sum(d["occupancy_rate"] for d in series) / len(series), 1) if series else 0
            ),
            "unique_guests": len(guests),
            "avg_stay": round(sum(stay_nights(o) for o in orders) / len(orders), 1) if orders else 0,
        }

    def get_revenue_by_category(self, start: date, end: date) -> List[Dict[str, Any]]:
        """房费加各商品分类的营收及占比"""
        orders = self._completed_orders(start, end)
        categories: Dict[str, float] = {"rooms": sum(float(o.room_price or 0) for o in orders)}

        order_ids = [o.id for o in orders]
        if order_ids:
            lines = self.db.query(OrderItem, Service.category) \
                .outerjoin(Service, OrderItem.service_id == Service.id) \
                .filter(OrderItem.order_id.in_(order_ids)).all()
            for line, category in lines:
                key = category or "otros"
                categories[key] = categories.get(key, 0) + float(line.total_price or 0)

        total = sum(categories.values())
        return [
            {
                "category": key,
                "amount": round(amount, 2),
                "percentage": round(amount / total * 100, 1) if total else 0,
            }
            for key, amount in sorted(categories.items(), key=lambda kv: kv[1], reverse=True)
        ]

    def get_guest_demographics(self, start: date, end: date) -> Dict[str, Any]:
        orders = self._completed_orders(start, end)
        guests = {o.guest.id: o.guest for o in orders if o.guest is not None}
        countries: Dict[str, int] = {}
        for guest in guests.values():
            key = guest.nationality or "未知"
            countries[key] = countries.get(key, 0) + 1
        top = sorted(countries.items(), key=lambda kv: kv[1], reverse=True)[:5]
        return {
            "total_guests": len(guests),
            "nationalities": [{"nationality": n, "count": c} for n, c in top],
        }

    def get_rooms_report(self) -> Dict[str, Any]:
        rooms = self.db.query(Room).all()
        by_type: Dict[str, Dict[str, Any]] = {}
        for room in rooms:
            entry = by_type.setdefault(room.room_type or "standard",
                                       {"total": 0, "occupied": 0, "price_sum": 0.0})
            entry["total"] += 1
            entry["price_sum"] += float(room.price or 0)
            if room.status == RoomStatus.OCCUPIED:
                entry["occupied"] += 1

        return {
            "by_type": [
                {
                    "room_type": room_type,
                    "total": e["total"],
                    "occupied": e["occupied"],
                    "average_price": round(e["price_sum"] / e["total"], 2),
                }
                for room_type, e in sorted(by_type.items())
            ],
            "maintenance": {
                "maintenance": sum(1 for r in rooms if r.status == RoomStatus.MAINTENANCE),
                "out_of_order": sum(1 for r in rooms if r.status == RoomStatus.OUT_OF_ORDER),
                "rooms": [r.number for r in rooms
                          if r.status in (RoomStatus.MAINTENANCE, RoomStatus.OUT_OF_ORDER)],
            },
        }

    def get_supplies_consumption(self, start: date, end: date) -> List[Dict[str, Any]]:
        categories = InventoryService(self.db).get_category_consumption(start, end)
        return [
            {"category": key, "quantity": qty}
            for key, qty in sorted(categories.items(), key=lambda kv: kv[1], reverse=True)
        ]

    def get_cleaning_stats(self, start: date, end: date) -> Dict[str, Any]:
        tasks = self.db.query(RoomCleaning).filter(
            RoomCleaning.created_at >= datetime.combine(start, datetime.min.time()),
            RoomCleaning.created_at < datetime.combine(end + timedelta(days=1), datetime.min.time())
        ).all()
        completed = [t for t in tasks if t.status == CleaningTaskStatus.COMPLETED]
        durations = [t.actual_duration for t in completed if t.actual_duration is not None]
        scores = [t.quality_score for t in completed if t.quality_score is not None]
        return {
            "total_tasks": len(tasks),
            "completed": len(completed),
            "pending": sum(1 for t in tasks if t.status == CleaningTaskStatus.PENDING),
            "average_duration": round(sum(durations) / len(durations), 1) if durations else 0,
            "average_quality": round(sum(scores) / len(scores), 1) if scores else 0,
        }

    def get_report(self, period: str = "this_month", start: Optional[date] = None,
                   end: Optional[date] = None, today: date = None) -> Dict[str, Any]:
        """完整报表"""
        start, end = period_range(period, today, start, end)
        logger.info(f"Building {period} report for {start} ~ {end}")
        return {
            "period": period,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "overview": self.get_overview(start, end),
            "occupancy": self.get_occupancy_series(start, end),
            "revenue_by_category": self.get_revenue_by_category(start, end),
            "guest_demographics": self.get_guest_demographics(start, end),
            "rooms": self.get_rooms_report(),
            "supplies_consumption": self.get_supplies_consumption(start, end),
            "cleaning": self.get_cleaning_stats(start, end),
        }
