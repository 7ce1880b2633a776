"""
系统设置路由
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from hotelpms.database import get_db
from hotelpms.models.ontology import Staff
from hotelpms.models.schemas import SettingUpdate, SettingsBulkUpdate, SettingsImport
from hotelpms.services.settings_service import SettingsService
from hotelpms.security.auth import get_current_user

router = APIRouter(prefix="/settings", tags=["系统设置"])


@router.get("")
def get_all_settings(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """所有设置（默认值 + 已保存值）"""
    return SettingsService(db).get_all()


@router.get("/export")
def export_settings(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return SettingsService(db).export_settings()


@router.post("/import")
def import_settings(
    data: SettingsImport,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    service = SettingsService(db)
    try:
        return service.import_settings(data.model_dump(), current_user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/reset")
def reset_settings(
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """恢复默认值"""
    service = SettingsService(db)
    try:
        return service.reset_to_defaults(current_user, category)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("")
def update_settings(
    data: SettingsBulkUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """批量更新"""
    service = SettingsService(db)
    try:
        return service.update_many(data.settings, current_user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/category/{category}")
def get_settings_by_category(
    category: str,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    try:
        return SettingsService(db).get_by_category(category)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{key}")
def update_setting(
    key: str,
    data: SettingUpdate,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    service = SettingsService(db)
    try:
        return service.update_setting(key, data.value, current_user, data.category)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
