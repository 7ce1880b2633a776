"""
实时变更路由
客户端按序号轮询数据表变更和领域事件
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from hotelpms.models.ontology import Staff
from hotelpms.services.change_feed import get_changes, WATCHED_TABLES
from hotelpms.services.event_bus import event_bus
from hotelpms.services.event_handlers import event_handlers
from hotelpms.security.auth import get_current_user

router = APIRouter(prefix="/realtime", tags=["实时变更"])


@router.get("/changes")
def list_changes(
    table: Optional[str] = None,
    since_id: Optional[int] = None,
    limit: int = Query(50, ge=1, le=500),
    current_user: Staff = Depends(get_current_user)
):
    """数据表变更记录（最新的在前）"""
    if table is not None and table not in WATCHED_TABLES:
        raise HTTPException(status_code=404, detail=f"数据表 {table} 未开启变更订阅")
    return get_changes(table, since_id, limit)


@router.get("/events")
def list_events(
    event_type: Optional[str] = None,
    since_id: Optional[int] = None,
    limit: int = Query(50, ge=1, le=500),
    current_user: Staff = Depends(get_current_user)
):
    """领域事件历史"""
    return [e.to_dict() for e in event_bus.get_history(event_type, limit, since_id)]


@router.get("/alerts")
def list_alerts(current_user: Staff = Depends(get_current_user)):
    """待跟进提醒（低库存、房间停用）"""
    return list(reversed(event_handlers.alerts))
