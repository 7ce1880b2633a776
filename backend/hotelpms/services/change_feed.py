"""
实时变更流
监听 ORM 的插入/更新/删除，在事务提交后以 table.changed 事件发布到事件总线
"""
from datetime import datetime
from typing import Callable, Dict, Any, List
import logging

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from hotelpms.config import settings
from hotelpms.models.events import EventType, ChangeOperation, TableChangedData, serialize_value
from hotelpms.models.ontology import (
    Branch, Room, RoomCleaning, Guest, Reservation, Order, Service, InventoryItem, SystemSetting
)
from hotelpms.services.event_bus import event_bus, Event

logger = logging.getLogger(__name__)

# 对外提供变更流的数据表
WATCHED_MODELS = [Room, Order, Service, Guest, Reservation, RoomCleaning, Branch, InventoryItem, SystemSetting]
WATCHED_TABLES = [model.__tablename__ for model in WATCHED_MODELS]

_PENDING_KEY = "pending_table_changes"

_publisher: Callable[[Event], None] = event_bus.publish


def _snapshot(target) -> Dict[str, Any]:
    """读取已加载的列值，不触发延迟加载"""
    state = inspect(target)
    record = {}
    for attr in state.mapper.column_attrs:
        if attr.key in state.dict:
            record[attr.key] = serialize_value(state.dict[attr.key])
    if state.identity:
        for column, value in zip(state.mapper.primary_key, state.identity):
            record.setdefault(column.key, serialize_value(value))
    return record


def _changed_fields(target) -> List[str]:
    state = inspect(target)
    return [
        attr.key for attr in state.mapper.column_attrs
        if state.attrs[attr.key].history.has_changes()
    ]


def _queue(target, operation: ChangeOperation, changed_fields: List[str] = None):
    session = Session.object_session(target)
    if session is None:
        return
    data = TableChangedData(
        table=target.__tablename__,
        operation=operation.value,
        record=_snapshot(target),
        changed_fields=changed_fields or [],
    )
    session.info.setdefault(_PENDING_KEY, []).append(data)


def _after_insert(mapper, connection, target):
    _queue(target, ChangeOperation.INSERT)


def _after_update(mapper, connection, target):
    fields = _changed_fields(target)
    if fields:
        _queue(target, ChangeOperation.UPDATE, fields)


def _after_delete(mapper, connection, target):
    _queue(target, ChangeOperation.DELETE)


def _after_commit(session):
    changes = session.info.pop(_PENDING_KEY, [])
    for data in changes:
        _publisher(Event(
            event_type=EventType.TABLE_CHANGED.value,
            timestamp=datetime.now(),
            data=data.to_dict(),
            source="change_feed",
        ))


def _after_rollback(session, previous_transaction):
    session.info.pop(_PENDING_KEY, None)


def register_change_feed(publisher: Callable[[Event], None] = None) -> None:
    """注册 ORM 监听器（重复调用只会替换发布器）"""
    global _publisher
    _publisher = publisher or event_bus.publish

    if event.contains(Session, "after_commit", _after_commit):
        return

    for model in WATCHED_MODELS:
        event.listen(model, "after_insert", _after_insert)
        event.listen(model, "after_update", _after_update)
        event.listen(model, "after_delete", _after_delete)
    event.listen(Session, "after_commit", _after_commit)
    event.listen(Session, "after_soft_rollback", _after_rollback)
    logger.info(f"Change feed registered for tables: {', '.join(WATCHED_TABLES)}")


def get_changes(table: str = None, since: int = None, limit: int = 50) -> List[Dict[str, Any]]:
    """从事件历史读取变更记录（最新的在前）"""
    history = event_bus.get_history(EventType.TABLE_CHANGED.value, limit=settings.EVENT_HISTORY_SIZE, since=since)
    changes = [e.to_dict() for e in history if table is None or e.data.get("table") == table]
    return changes[:limit]
