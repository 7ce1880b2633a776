"""
报表路由
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from hotelpms.database import get_db
from hotelpms.models.ontology import Staff
from hotelpms.services.report_service import ReportService, period_range
from hotelpms.security import permissions as perms
from hotelpms.security.auth import require_permission

router = APIRouter(prefix="/reports", tags=["统计报表"])


@router.get("")
def get_report(
    period: str = "this_month",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_REPORTS))
):
    """完整报表"""
    try:
        return ReportService(db).get_report(period, start_date, end_date)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/overview")
def get_overview(
    period: str = "this_month",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.VIEW_REPORTS))
):
    try:
        start, end = period_range(period, start=start_date, end=end_date)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ReportService(db).get_overview(start, end)


@router.get("/revenue")
def get_revenue_by_category(
    period: str = "this_month",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: Staff = Depends(require_permission(perms.ADVANCED_REPORTS))
):
    """按分类的营收构成"""
    try:
        start, end = period_range(period, start=start_date, end=end_date)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ReportService(db).get_revenue_by_category(start, end)
