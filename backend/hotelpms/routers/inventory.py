"""
库存路由（按当前分店隔离）
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from hotelpms.database import get_db
from hotelpms.models.ontology import Staff, SupplyCategory, SupplyStatus
from hotelpms.models.schemas import (
    InventoryItemCreate, InventoryItemUpdate, InventoryItemResponse, StockAdjustment
)
from hotelpms.services.inventory_service import InventoryService, item_to_dict
from hotelpms.security import permissions as perms
from hotelpms.security.auth import require_permission, get_current_branch_id

router = APIRouter(prefix="/inventory", tags=["库存管理"])


def get_inventory_service(
    db: Session = Depends(get_db),
    branch_id: Optional[int] = Depends(get_current_branch_id),
) -> InventoryService:
    return InventoryService(db, branch_id)


@router.get("", response_model=List[InventoryItemResponse])
def list_items(
    category: Optional[SupplyCategory] = None,
    item_status: Optional[SupplyStatus] = Query(None, alias="status"),
    low_stock: bool = False,
    search: Optional[str] = None,
    supplier: Optional[str] = None,
    service: InventoryService = Depends(get_inventory_service),
    current_user: Staff = Depends(require_permission(perms.VIEW_INVENTORY))
):
    """物资列表"""
    items = service.get_items(category, item_status, low_stock, search, supplier)
    return [item_to_dict(i) for i in items]


@router.get("/stats")
def get_stats(
    service: InventoryService = Depends(get_inventory_service),
    current_user: Staff = Depends(require_permission(perms.VIEW_INVENTORY))
):
    return service.get_stats()


@router.get("/consumption")
def get_consumption_history(
    days: int = Query(30, ge=1, le=365),
    service: InventoryService = Depends(get_inventory_service),
    current_user: Staff = Depends(require_permission(perms.VIEW_INVENTORY))
):
    """近 N 天每日消耗"""
    return service.get_consumption_history(days)


@router.get("/categories", response_model=List[str])
def get_categories(
    service: InventoryService = Depends(get_inventory_service),
    current_user: Staff = Depends(require_permission(perms.VIEW_INVENTORY))
):
    return service.get_categories()


@router.get("/suppliers", response_model=List[str])
def get_suppliers(
    service: InventoryService = Depends(get_inventory_service),
    current_user: Staff = Depends(require_permission(perms.VIEW_INVENTORY))
):
    return service.get_suppliers()


@router.get("/{item_id}", response_model=InventoryItemResponse)
def get_item(
    item_id: int,
    service: InventoryService = Depends(get_inventory_service),
    current_user: Staff = Depends(require_permission(perms.VIEW_INVENTORY))
):
    item = service.get_item(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="物资不存在")
    return item_to_dict(item)


@router.post("", response_model=InventoryItemResponse)
def create_item(
    data: InventoryItemCreate,
    service: InventoryService = Depends(get_inventory_service),
    current_user: Staff = Depends(require_permission(perms.VIEW_INVENTORY))
):
    try:
        return item_to_dict(service.create_item(data, current_user))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.put("/{item_id}", response_model=InventoryItemResponse)
def update_item(
    item_id: int,
    data: InventoryItemUpdate,
    service: InventoryService = Depends(get_inventory_service),
    current_user: Staff = Depends(require_permission(perms.VIEW_INVENTORY))
):
    try:
        return item_to_dict(service.update_item(item_id, data, current_user))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/{item_id}")
def delete_item(
    item_id: int,
    service: InventoryService = Depends(get_inventory_service),
    current_user: Staff = Depends(require_permission(perms.VIEW_INVENTORY))
):
    try:
        service.delete_item(item_id, current_user)
        return {"message": "物资已删除"}
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{item_id}/adjust", response_model=InventoryItemResponse)
def adjust_stock(
    item_id: int,
    data: StockAdjustment,
    service: InventoryService = Depends(get_inventory_service),
    current_user: Staff = Depends(require_permission(perms.VIEW_INVENTORY))
):
    """出入库调整（库存不能为负）"""
    try:
        return item_to_dict(service.adjust_stock(item_id, data.delta, current_user, data.reason))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
