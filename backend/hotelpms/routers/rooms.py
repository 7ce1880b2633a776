"""
房间管理与清洁任务路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from hotelpms.database import get_db
from hotelpms.models.ontology import Staff, RoomStatus, CleaningTaskStatus
from hotelpms.models.schemas import (
    RoomCreate, RoomUpdate, RoomResponse, RoomStatusUpdate,
    CleaningTaskCreate, CleaningAssign, CleaningComplete, CleaningTaskResponse
)
from hotelpms.services.room_service import RoomService, cleaning_task_to_dict
from hotelpms.security import permissions as perms
from hotelpms.security.auth import get_current_user, require_permission

router = APIRouter(prefix="/rooms", tags=["房间管理"])


# ============== 清洁任务 ==============

@router.get("/cleaning", response_model=List[CleaningTaskResponse])
def list_cleaning_tasks(
    task_status: Optional[CleaningTaskStatus] = Query(None, alias="status"),
    staff_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_CLEANING))
):
    """清洁任务列表"""
    service = RoomService(db)
    return [cleaning_task_to_dict(t) for t in service.get_cleaning_tasks(task_status, staff_id)]


@router.post("/cleaning", response_model=CleaningTaskResponse)
def create_cleaning_task(
    data: CleaningTaskCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.MANAGE_CLEANING))
):
    """创建清洁任务"""
    service = RoomService(db)
    try:
        return cleaning_task_to_dict(service.create_cleaning_task(data))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/cleaning/assign")
def assign_cleaning(
    data: CleaningAssign,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.MANAGE_CLEANING))
):
    """批量分配清洁任务"""
    service = RoomService(db)
    return service.assign_cleaning(data.room_numbers, data.staff_id)


@router.post("/cleaning/{task_id}/start", response_model=CleaningTaskResponse)
def start_cleaning_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_CLEANING))
):
    service = RoomService(db)
    try:
        return cleaning_task_to_dict(service.start_cleaning_task(task_id, current_user.id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/cleaning/{task_id}/complete", response_model=CleaningTaskResponse)
def complete_cleaning_task(
    task_id: int,
    data: CleaningComplete,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_CLEANING))
):
    """完成清洁任务，房间恢复空闲"""
    service = RoomService(db)
    try:
        return cleaning_task_to_dict(service.complete_cleaning_task(task_id, data.quality_score))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# ============== 房间 ==============

@router.get("", response_model=List[RoomResponse])
def list_rooms(
    room_status: Optional[RoomStatus] = Query(None, alias="status"),
    floor: Optional[int] = None,
    room_type: Optional[str] = None,
    search: Optional[str] = None,
    branch_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_ROOMS))
):
    """房间列表"""
    service = RoomService(db)
    return service.get_rooms(room_status, floor, room_type, search, branch_id)


@router.get("/stats")
def get_room_stats(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_ROOMS))
):
    """房态统计"""
    return RoomService(db).get_room_stats()


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(
    room_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_ROOMS))
):
    room = RoomService(db).get_room(room_id)
    if not room:
        raise HTTPException(status_code=404, detail="房间不存在")
    return room


@router.post("", response_model=RoomResponse)
def create_room(
    data: RoomCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.MANAGE_ROOMS))
):
    service = RoomService(db)
    try:
        return service.create_room(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: int,
    data: RoomUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.MANAGE_ROOMS))
):
    service = RoomService(db)
    try:
        return service.update_room(room_id, data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{room_id}")
def delete_room(
    room_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.MANAGE_ROOMS))
):
    service = RoomService(db)
    try:
        service.delete_room(room_id)
        return {"message": "房间已删除"}
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.patch("/{room_id}/status", response_model=RoomResponse)
def update_room_status(
    room_id: int,
    data: RoomStatusUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.EDIT_ROOM_STATUS))
):
    """修改房态"""
    service = RoomService(db)
    try:
        return service.update_room_status(room_id, data.status)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.patch("/number/{number}/status", response_model=RoomResponse)
def update_room_status_by_number(
    number: str,
    data: RoomStatusUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.EDIT_ROOM_STATUS))
):
    """按房间号修改房态"""
    service = RoomService(db)
    try:
        return service.update_room_status_by_number(number, data.status)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
