"""
仪表盘路由
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from hotelpms.database import get_db
from hotelpms.models.ontology import Staff
from hotelpms.services.dashboard_service import DashboardService
from hotelpms.security.auth import get_current_user

router = APIRouter(prefix="/dashboard", tags=["仪表盘"])


@router.get("")
def get_dashboard(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """仪表盘汇总数据"""
    return DashboardService(db).get_dashboard()


@router.get("/rooms")
def get_room_stats(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return DashboardService(db).get_room_stats()


@router.get("/activity")
def get_recent_activity(
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    return DashboardService(db).get_recent_activity()
