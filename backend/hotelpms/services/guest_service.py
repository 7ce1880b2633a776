"""
客人服务
客人档案维护、搜索、VIP/常客/生日、单客统计与历史、整体统计
"""
from datetime import date
from typing import List, Optional, Dict, Any
import logging

from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from hotelpms.models.ontology import Guest, Order, OrderStatus, Reservation
from hotelpms.models.schemas import GuestCreate, GuestUpdate

logger = logging.getLogger(__name__)

FREQUENT_GUEST_VISITS = 3

AGE_GROUPS = (
    ("18-25", 18, 25),
    ("26-35", 26, 35),
    ("36-50", 36, 50),
    ("51-65", 51, 65),
    ("65+", 66, 200),
)


def age_on(birth_date: date, today: date) -> int:
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def stay_nights(order: Order) -> int:
    """订单入住晚数，至少 1 晚"""
    if not order.check_in_date or not order.check_out_date:
        return 1
    return max((order.check_out_date - order.check_in_date).days, 1)


class GuestService:
    """客人服务"""

    def __init__(self, db: Session):
        self.db = db

    # ============== 档案 ==============

    def get_guests(self, search: Optional[str] = None, vip_only: bool = False,
                   limit: int = 100) -> List[Guest]:
        query = self.db.query(Guest)
        if search:
            query = query.filter(self._search_clause(search))
        if vip_only:
            query = query.filter(Guest.vip_status == True)
        return query.order_by(Guest.full_name).limit(limit).all()

    def get_guest(self, guest_id: int) -> Optional[Guest]:
        return self.db.query(Guest).filter(Guest.id == guest_id).first()

    def create_guest(self, data: GuestCreate) -> Guest:
        guest = Guest(**data.model_dump())
        guest.full_name = guest.full_name.strip()
        self.db.add(guest)
        self.db.commit()
        self.db.refresh(guest)
        logger.info(f"Guest {guest.id} created: {guest.full_name}")
        return guest

    def update_guest(self, guest_id: int, data: GuestUpdate) -> Guest:
        guest = self.get_guest(guest_id)
        if not guest:
            raise ValueError("客人不存在")

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(guest, key, value)

        self.db.commit()
        self.db.refresh(guest)
        return guest

    def delete_guest(self, guest_id: int) -> bool:
        """删除客人；有预订或订单记录时拒绝"""
        guest = self.get_guest(guest_id)
        if not guest:
            raise ValueError("客人不存在")

        has_reservations = self.db.query(Reservation).filter(Reservation.guest_id == guest_id).count()
        has_orders = self.db.query(Order).filter(Order.guest_id == guest_id).count()
        if has_reservations or has_orders:
            raise ValueError("客人有预订或消费记录，无法删除")

        self.db.delete(guest)
        self.db.commit()
        return True

    # ============== 查询 ==============

    @staticmethod
    def _search_clause(term: str):
        like = f"%{term.strip()}%"
        return or_(
            Guest.full_name.ilike(like),
            Guest.email.ilike(like),
            Guest.phone.ilike(like),
            Guest.dni.ilike(like),
            Guest.passport.ilike(like),
            Guest.nationality.ilike(like),
        )

    def search(self, term: str) -> List[Guest]:
        """按姓名/邮箱/电话/证件/护照/国籍搜索"""
        if not term or not term.strip():
            return []
        return self.db.query(Guest).filter(self._search_clause(term)) \
            .order_by(Guest.full_name).all()

    def get_vip_guests(self) -> List[Guest]:
        return self.db.query(Guest).filter(Guest.vip_status == True) \
            .order_by(Guest.full_name).all()

    def get_frequent_guests(self, min_visits: int = FREQUENT_GUEST_VISITS) -> List[Dict[str, Any]]:
        """订单数不少于 min_visits 的客人，按到访次数倒序"""
        rows = self.db.query(Guest, func.count(Order.id).label("visits")) \
            .join(Order, Order.guest_id == Guest.id) \
            .group_by(Guest.id) \
            .having(func.count(Order.id) >= min_visits) \
            .order_by(func.count(Order.id).desc()) \
            .all()
        return [{"guest": guest, "total_visits": visits} for guest, visits in rows]

    def get_birthdays_this_month(self, today: date = None) -> List[Guest]:
        today = today or date.today()
        guests = self.db.query(Guest).filter(Guest.birth_date.isnot(None)).all()
        result = [g for g in guests if g.birth_date.month == today.month]
        return sorted(result, key=lambda g: g.birth_date.day)

    def get_active_guests(self) -> List[Guest]:
        """持有在住订单的客人"""
        return self.db.query(Guest).join(Order, Order.guest_id == Guest.id) \
            .filter(Order.status == OrderStatus.ACTIVE) \
            .distinct().order_by(Guest.full_name).all()

    def get_guest_stats(self, guest_id: int) -> Dict[str, Any]:
        guest = self.get_guest(guest_id)
        if not guest:
            raise ValueError("客人不存在")

        orders = self.db.query(Order).filter(Order.guest_id == guest_id).all()
        completed = [o for o in orders if o.status == OrderStatus.COMPLETED]
        reservations_count = self.db.query(Reservation).filter(Reservation.guest_id == guest_id).count()

        total_spent = sum(float(o.total or 0) for o in completed)
        average_stay = (
            round(sum(stay_nights(o) for o in completed) / len(completed), 1) if completed else 0
        )
        visit_dates = [o.check_in_date for o in orders if o.check_in_date]

        return {
            "guest_id": guest_id,
            "total_visits": len(orders),
            "total_spent": round(total_spent, 2),
            "average_stay": average_stay,
            "last_visit": max(visit_dates).isoformat() if visit_dates else None,
            "reservations_count": reservations_count,
            "active_orders": len(orders) - len(completed),
        }

    def get_guest_history(self, guest_id: int) -> List[Dict[str, Any]]:
        """预订与订单合并，按日期倒序"""
        if not self.get_guest(guest_id):
            raise ValueError("客人不存在")

        history = []
        for r in self.db.query(Reservation).filter(Reservation.guest_id == guest_id).all():
            history.append({
                "type": "reservation",
                "id": r.id,
                "date": r.check_in_date,
                "reference": r.confirmation_code,
                "room_number": r.room.number if r.room else None,
                "amount": float(r.total_amount or 0),
                "status": r.status.value,
            })
        for o in self.db.query(Order).filter(Order.guest_id == guest_id).all():
            history.append({
                "type": "order",
                "id": o.id,
                "date": o.check_in_date,
                "reference": f"#{o.id}",
                "room_number": o.room_number,
                "amount": float(o.total or 0),
                "status": o.status.value,
            })

        history.sort(key=lambda h: h["date"] or date.min, reverse=True)
        return history

    def get_overall_stats(self, today: date = None) -> Dict[str, Any]:
        """客人整体统计"""
        today = today or date.today()
        guests = self.db.query(Guest).all()
        total = len(guests)

        visits = dict(
            self.db.query(Order.guest_id, func.count(Order.id))
            .filter(Order.guest_id.isnot(None))
            .group_by(Order.guest_id).all()
        )
        completed = self.db.query(Order).filter(Order.status == OrderStatus.COMPLETED).all()
        month_start = today.replace(day=1)

        countries: Dict[str, int] = {}
        age_groups = {label: 0 for label, _, _ in AGE_GROUPS}
        new_this_month = 0
        for guest in guests:
            if guest.nationality:
                countries[guest.nationality] = countries.get(guest.nationality, 0) + 1
            if guest.birth_date:
                age = age_on(guest.birth_date, today)
                for label, low, high in AGE_GROUPS:
                    if low <= age <= high:
                        age_groups[label] += 1
                        break
            if guest.created_at and guest.created_at.date() >= month_start:
                new_this_month += 1

        returning = sum(1 for count in visits.values() if count > 1)
        top_countries = sorted(countries.items(), key=lambda kv: kv[1], reverse=True)[:5]

        return {
            "total": total,
            "vip": sum(1 for g in guests if g.vip_status),
            "frequent": sum(1 for count in visits.values() if count >= FREQUENT_GUEST_VISITS),
            "new_this_month": new_this_month,
            "total_revenue": round(sum(float(o.total or 0) for o in completed), 2),
            "average_stay": (
                round(sum(stay_nights(o) for o in completed) / len(completed), 1) if completed else 0
            ),
            "repeat_rate": round(returning / total * 100, 1) if total else 0,
            "top_countries": [{"country": c, "count": n} for c, n in top_countries],
            "age_groups": age_groups,
        }
