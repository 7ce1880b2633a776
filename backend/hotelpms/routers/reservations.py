"""
预订管理路由
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from hotelpms.database import get_db
from hotelpms.models.ontology import Staff, ReservationStatus, PaymentStatus
from hotelpms.models.schemas import (
    ReservationCreate, ReservationUpdate, ReservationStatusUpdate,
    ReservationResponse, ReservationPage, RoomResponse
)
from hotelpms.services.reservation_service import ReservationService, reservation_to_dict
from hotelpms.security import permissions as perms
from hotelpms.security.auth import require_permission, get_current_branch_id

router = APIRouter(prefix="/reservations", tags=["预订管理"])


@router.get("", response_model=ReservationPage)
def list_reservations(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    reservation_status: Optional[ReservationStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = None,
    search: Optional[str] = None,
    source: Optional[str] = None,
    date_range: Optional[str] = None,
    branch_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_RESERVATIONS))
):
    """预订列表（筛选 + 分页）"""
    service = ReservationService(db)
    try:
        result = service.list_reservations(
            page=page, limit=limit, status=reservation_status, payment_status=payment_status,
            search=search, source=source, date_range=date_range, branch_id=branch_id
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    result["items"] = [reservation_to_dict(r) for r in result["items"]]
    return result


@router.get("/stats")
def get_reservation_stats(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_RESERVATIONS))
):
    return ReservationService(db).get_stats()


@router.get("/available-rooms", response_model=List[RoomResponse])
def get_available_rooms(
    check_in_date: date,
    check_out_date: date,
    exclude_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_RESERVATIONS))
):
    """日期范围内可预订的房间"""
    if check_out_date <= check_in_date:
        raise HTTPException(status_code=400, detail="退房日期必须晚于入住日期")
    return ReservationService(db).get_available_rooms(check_in_date, check_out_date, exclude_id)


@router.get("/by-date/{day}", response_model=List[ReservationResponse])
def get_reservations_by_date(
    day: date,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_RESERVATIONS))
):
    """某日到店的预订"""
    return [reservation_to_dict(r) for r in ReservationService(db).get_by_date(day)]


@router.get("/code/{code}", response_model=ReservationResponse)
def get_reservation_by_code(
    code: str,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_RESERVATIONS))
):
    reservation = ReservationService(db).get_by_confirmation_code(code)
    if not reservation:
        raise HTTPException(status_code=404, detail="预订不存在")
    return reservation_to_dict(reservation)


@router.get("/{reservation_id}", response_model=ReservationResponse)
def get_reservation(
    reservation_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_RESERVATIONS))
):
    reservation = ReservationService(db).get_reservation(reservation_id)
    if not reservation:
        raise HTTPException(status_code=404, detail="预订不存在")
    return reservation_to_dict(reservation)


@router.post("", response_model=ReservationResponse)
def create_reservation(
    data: ReservationCreate,
    db: Session = Depends(get_db),
    branch_id: Optional[int] = Depends(get_current_branch_id),
    current_user: Staff = Depends(require_permission(perms.CREATE_RESERVATIONS))
):
    """创建预订"""
    if data.branch_id is None:
        data.branch_id = branch_id
    service = ReservationService(db)
    try:
        return reservation_to_dict(service.create_reservation(data, created_by=current_user.id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{reservation_id}", response_model=ReservationResponse)
def update_reservation(
    reservation_id: int,
    data: ReservationUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.EDIT_RESERVATIONS))
):
    service = ReservationService(db)
    try:
        return reservation_to_dict(service.update_reservation(reservation_id, data))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.patch("/{reservation_id}/status", response_model=ReservationResponse)
def change_reservation_status(
    reservation_id: int,
    data: ReservationStatusUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.EDIT_RESERVATIONS))
):
    service = ReservationService(db)
    try:
        return reservation_to_dict(service.change_status(reservation_id, data.status))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{reservation_id}")
def delete_reservation(
    reservation_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.DELETE_RESERVATIONS))
):
    service = ReservationService(db)
    try:
        service.delete_reservation(reservation_id)
        return {"message": "预订已删除"}
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
