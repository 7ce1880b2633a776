"""
事务内业务事件暂存
房态、清洁任务、库存告警等事件随数据一起提交：会话提交成功后按登记顺序发布，
事务回滚或未提交即结束时丢弃
"""
import logging
from typing import Callable

from sqlalchemy import event
from sqlalchemy.orm import Session

from hotelpms.services.event_bus import Event

logger = logging.getLogger(__name__)

_PENDING_KEY = "pending_domain_events"


def publish_after_commit(db: Session, publisher: Callable[[Event], None], evt: Event) -> None:
    """登记事件，db 下一次提交成功后发布"""
    db.info.setdefault(_PENDING_KEY, []).append((publisher, evt))


def _after_commit(session: Session) -> None:
    for publisher, evt in session.info.pop(_PENDING_KEY, []):
        publisher(evt)


def _after_transaction_end(session: Session, transaction) -> None:
    # 提交时已在 after_commit 中发布；走到这里仍有剩余说明事务没有提交
    if transaction.parent is not None:
        return
    dropped = session.info.pop(_PENDING_KEY, [])
    if dropped:
        logger.debug(f"Discarded {len(dropped)} domain events from uncommitted transaction")


event.listen(Session, "after_commit", _after_commit)
event.listen(Session, "after_transaction_end", _after_transaction_end)
