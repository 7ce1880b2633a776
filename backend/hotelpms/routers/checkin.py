"""
入住流程路由
楼层房态、可售商品、下单入住、结账、库存
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from hotelpms.database import get_db
from hotelpms.models.ontology import Staff
from hotelpms.models.schemas import OrderCreate, OrderResponse, CheckoutRequest, StockUpdate, RoomResponse
from hotelpms.services.checkin_service import CheckInService
from hotelpms.security import permissions as perms
from hotelpms.security.auth import require_permission

router = APIRouter(prefix="/checkin", tags=["入住流程"])


@router.get("/floors")
def get_floor_rooms(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_ROOMS))
):
    """按楼层分组的房态与楼层价格"""
    return CheckInService(db).get_floor_rooms()


@router.get("/service-types")
def get_service_types(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_ORDERS))
):
    return CheckInService(db).get_service_types()


@router.get("/snacks")
def get_snack_items(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_ORDERS))
):
    """按类型分组的可售商品"""
    return CheckInService(db).get_snack_items()


@router.get("/snacks/low-stock")
def get_low_stock_items(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_ORDERS, perms.VIEW_INVENTORY))
):
    return CheckInService(db).get_low_stock_items()


@router.get("/orders")
def get_active_orders(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_ORDERS))
):
    """以房间号为键的在住订单"""
    return CheckInService(db).get_active_orders()


@router.post("/orders", response_model=OrderResponse)
def create_order(
    data: OrderCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.CREATE_ORDERS))
):
    """选房下单入住"""
    service = CheckInService(db)
    try:
        return service.create_order(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/checkout", response_model=OrderResponse)
def complete_checkout(
    data: CheckoutRequest,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.EDIT_ORDERS))
):
    """结账：订单完成，房间转为待清洁"""
    service = CheckInService(db)
    try:
        return service.complete_checkout(data.room_number, data.payment_method)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/rooms/{room_number}/cleaned", response_model=RoomResponse)
def mark_room_cleaned(
    room_number: str,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.EDIT_ROOM_STATUS))
):
    service = CheckInService(db)
    try:
        return service.mark_room_cleaned(room_number)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/stock/{service_id}")
def check_stock_availability(
    service_id: int,
    quantity: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_ORDERS))
):
    service = CheckInService(db)
    try:
        return service.check_stock_availability(service_id, quantity)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch("/stock/{service_id}")
def update_service_stock(
    service_id: int,
    data: StockUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.MANAGE_SERVICES, perms.MANAGE_INVENTORY))
):
    """调整商品库存"""
    service = CheckInService(db)
    try:
        item = service.update_service_stock(service_id, data.delta)
        return {"id": item.id, "name": item.name, "stock": item.stock}
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
