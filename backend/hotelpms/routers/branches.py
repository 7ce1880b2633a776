"""
分店路由
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from hotelpms.database import get_db
from hotelpms.models.ontology import Staff
from hotelpms.models.schemas import BranchCreate, BranchUpdate, BranchResponse
from hotelpms.services.branch_service import BranchService, display_name
from hotelpms.security.auth import get_current_user

router = APIRouter(prefix="/branches", tags=["分店管理"])


def _to_response(branch) -> BranchResponse:
    if isinstance(branch, dict):
        return BranchResponse(**branch)
    response = BranchResponse.model_validate(branch)
    response.display_name = display_name(branch)
    return response


@router.get("", response_model=List[BranchResponse])
def list_branches(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """分店列表（无数据时返回默认分店）"""
    service = BranchService(db)
    return [_to_response(b) for b in service.get_branches(include_inactive)]


@router.get("/available", response_model=List[BranchResponse])
def list_available_branches(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """当前员工可切换的分店"""
    service = BranchService(db)
    return [_to_response(b) for b in service.get_available_branches(current_user)]


@router.post("", response_model=BranchResponse)
def create_branch(
    data: BranchCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    service = BranchService(db)
    try:
        return _to_response(service.create_branch(data, current_user))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{branch_id}", response_model=BranchResponse)
def update_branch(
    branch_id: int,
    data: BranchUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    service = BranchService(db)
    try:
        return _to_response(service.update_branch(branch_id, data, current_user))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{branch_id}/select", response_model=BranchResponse)
def select_branch(
    branch_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """切换当前分店（校验权限，客户端随后以 X-Branch-Id 携带）"""
    service = BranchService(db)
    try:
        return _to_response(service.select_branch(branch_id, current_user))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{branch_id}/stats")
def get_branch_stats(
    branch_id: int,
    day: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """分店当日经营统计"""
    service = BranchService(db)
    return service.get_branch_stats(branch_id, day)
