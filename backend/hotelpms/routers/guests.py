"""
客人管理路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from hotelpms.database import get_db
from hotelpms.models.ontology import Staff
from hotelpms.models.schemas import GuestCreate, GuestUpdate, GuestResponse
from hotelpms.services.guest_service import GuestService
from hotelpms.security import permissions as perms
from hotelpms.security.auth import require_permission

router = APIRouter(prefix="/guests", tags=["客人管理"])


@router.get("", response_model=List[GuestResponse])
def list_guests(
    search: Optional[str] = None,
    vip_only: bool = False,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_GUESTS))
):
    """客人列表"""
    return GuestService(db).get_guests(search, vip_only, limit)


@router.get("/search", response_model=List[GuestResponse])
def search_guests(
    q: str,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_GUESTS))
):
    return GuestService(db).search(q)


@router.get("/vip", response_model=List[GuestResponse])
def get_vip_guests(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_GUESTS))
):
    return GuestService(db).get_vip_guests()


@router.get("/frequent")
def get_frequent_guests(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_GUESTS))
):
    """常客（订单数不少于 3）"""
    return [
        {**GuestResponse.model_validate(row["guest"]).model_dump(), "total_visits": row["total_visits"]}
        for row in GuestService(db).get_frequent_guests()
    ]


@router.get("/birthdays", response_model=List[GuestResponse])
def get_birthdays_this_month(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_GUESTS))
):
    return GuestService(db).get_birthdays_this_month()


@router.get("/active", response_model=List[GuestResponse])
def get_active_guests(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_GUESTS))
):
    """在住客人"""
    return GuestService(db).get_active_guests()


@router.get("/stats")
def get_overall_stats(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_GUESTS))
):
    return GuestService(db).get_overall_stats()


@router.get("/{guest_id}", response_model=GuestResponse)
def get_guest(
    guest_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_GUESTS))
):
    guest = GuestService(db).get_guest(guest_id)
    if not guest:
        raise HTTPException(status_code=404, detail="客人不存在")
    return guest


@router.get("/{guest_id}/stats")
def get_guest_stats(
    guest_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_GUEST_HISTORY))
):
    try:
        return GuestService(db).get_guest_stats(guest_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{guest_id}/history")
def get_guest_history(
    guest_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_GUEST_HISTORY))
):
    """预订与订单历史（按日期倒序）"""
    try:
        return GuestService(db).get_guest_history(guest_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("", response_model=GuestResponse)
def create_guest(
    data: GuestCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.EDIT_GUESTS))
):
    return GuestService(db).create_guest(data)


@router.put("/{guest_id}", response_model=GuestResponse)
def update_guest(
    guest_id: int,
    data: GuestUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.EDIT_GUESTS))
):
    try:
        return GuestService(db).update_guest(guest_id, data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/{guest_id}")
def delete_guest(
    guest_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.EDIT_GUESTS))
):
    """删除客人（有历史记录时拒绝）"""
    try:
        GuestService(db).delete_guest(guest_id)
        return {"message": "客人已删除"}
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
