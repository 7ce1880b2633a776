"""
认证与员工路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from hotelpms.database import get_db
from hotelpms.models.ontology import Staff, StaffRole
from hotelpms.models.schemas import (
    LoginRequest, Token, StaffCreate, StaffUpdate, StaffResponse, PasswordChange
)
from hotelpms.services.auth_service import AuthService, AuthenticationError
from hotelpms.security.auth import get_current_user

router = APIRouter(prefix="/auth", tags=["认证"])


@router.post("/login", response_model=Token)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    """员工登录"""
    service = AuthService(db)
    try:
        return service.login(data.username, data.password)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))


@router.get("/me", response_model=StaffResponse)
def get_me(current_user: Staff = Depends(get_current_user)):
    """当前登录员工"""
    return current_user


@router.get("/me/permissions", response_model=List[str])
def get_my_permissions(current_user: Staff = Depends(get_current_user)):
    return AuthService.get_effective_permissions(current_user)


@router.post("/password")
def change_password(
    data: PasswordChange,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """修改本人密码"""
    service = AuthService(db)
    try:
        service.change_password(current_user.id, data)
        return {"message": "密码已修改"}
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# ============== 员工管理 ==============

@router.get("/staff", response_model=List[StaffResponse])
def list_staff(
    role: Optional[StaffRole] = None,
    department: Optional[str] = None,
    staff_status: Optional[str] = None,
    branch_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """员工列表"""
    service = AuthService(db)
    try:
        return service.get_staff_list(current_user, role, department, staff_status, branch_id)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.post("/staff", response_model=StaffResponse)
def register_staff(
    data: StaffCreate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """注册员工"""
    service = AuthService(db)
    try:
        return service.register_staff(data, current_user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/staff/{staff_id}", response_model=StaffResponse)
def update_staff(
    staff_id: int,
    data: StaffUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    service = AuthService(db)
    try:
        return service.update_staff_profile(staff_id, data, current_user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/staff/{staff_id}/deactivate", response_model=StaffResponse)
def deactivate_staff(
    staff_id: int,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """停用员工"""
    service = AuthService(db)
    try:
        return service.deactivate_staff(staff_id, current_user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
