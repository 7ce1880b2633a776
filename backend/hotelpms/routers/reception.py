"""
前台路由
到离店、按预订入住/退房、房态调整、排房、每日动态
"""
from datetime import date, timedelta
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from hotelpms.database import get_db
from hotelpms.models.ontology import Staff, RoomStatus
from hotelpms.models.schemas import (
    ReceptionCheckIn, ReceptionCheckOut, RoomAssign, RoomStatusUpdate,
    OrderResponse, ReservationResponse, RoomResponse
)
from hotelpms.services.reception_service import ReceptionService
from hotelpms.services.reservation_service import reservation_to_dict
from hotelpms.security import permissions as perms
from hotelpms.security.auth import require_permission

router = APIRouter(prefix="/reception", tags=["前台"])


@router.get("")
def get_reception_overview(
    day: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_RESERVATIONS))
):
    """前台工作台：房态、到离店、在住订单、收款"""
    return ReceptionService(db).get_overview(day)


@router.get("/arrivals", response_model=List[ReservationResponse])
def get_arrivals(
    day: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_RESERVATIONS))
):
    return [reservation_to_dict(r) for r in ReceptionService(db).get_arrivals(day)]


@router.get("/departures", response_model=List[ReservationResponse])
def get_departures(
    day: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_RESERVATIONS))
):
    return [reservation_to_dict(r) for r in ReceptionService(db).get_departures(day)]


@router.get("/movements")
def get_daily_movements(
    day: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_RESERVATIONS))
):
    """某日到店、离店、在住"""
    return ReceptionService(db).get_daily_movements(day)


@router.get("/revenue")
def get_revenue_stats(
    day: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_RESERVATIONS))
):
    return ReceptionService(db).get_revenue_stats(day)


@router.get("/occupancy")
def get_occupancy_stats(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_RESERVATIONS, perms.VIEW_REPORTS))
):
    """区间入住率（默认近 7 天）"""
    end_date = end_date or date.today()
    start_date = start_date or end_date - timedelta(days=6)
    try:
        return ReceptionService(db).get_occupancy_stats(start_date, end_date)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/reservations/{reservation_id}/check-in", response_model=OrderResponse)
def check_in(
    reservation_id: int,
    data: ReceptionCheckIn,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.EDIT_RESERVATIONS))
):
    """按预订办理入住"""
    service = ReceptionService(db)
    try:
        return service.check_in(reservation_id, data.room_number)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/reservations/{reservation_id}/check-out", response_model=OrderResponse)
def check_out(
    reservation_id: int,
    data: ReceptionCheckOut,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.EDIT_RESERVATIONS))
):
    """按预订办理退房"""
    service = ReceptionService(db)
    try:
        return service.check_out(reservation_id, data.additional_charges, data.payment_method)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/reservations/{reservation_id}/assign-room", response_model=ReservationResponse)
def assign_room(
    reservation_id: int,
    data: RoomAssign,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.EDIT_RESERVATIONS))
):
    """为预订排房"""
    service = ReceptionService(db)
    try:
        return reservation_to_dict(service.assign_room(reservation_id, data.room_number))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.patch("/rooms/{room_number}/status", response_model=RoomResponse)
def update_room_status(
    room_number: str,
    data: RoomStatusUpdate,
    notes: str = "",
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.EDIT_ROOM_STATUS))
):
    """调整房态；转为清洁中时生成清洁任务"""
    service = ReceptionService(db)
    try:
        return service.update_room_status(room_number, data.status, notes)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/rooms/{room_number}/history", response_model=List[ReservationResponse])
def get_room_history(
    room_number: str,
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_RESERVATIONS))
):
    service = ReceptionService(db)
    try:
        return [reservation_to_dict(r) for r in service.get_room_history(room_number, days)]
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
