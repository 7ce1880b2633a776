"""
事件总线 - 内存级发布/订阅
业务事件和数据表变更都经由这里分发，实时接口从历史中读取变更
"""
from typing import Callable, Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime
from collections import deque
import itertools
import logging
import threading

from hotelpms.config import settings

logger = logging.getLogger(__name__)


@dataclass
class Event:
    """事件"""
    event_type: str
    timestamp: datetime
    data: Dict[str, Any]
    source: str  # 触发来源（服务名）
    event_id: str = field(default_factory=lambda: datetime.now().strftime("%Y%m%d%H%M%S%f"))
    sequence: int = 0  # 发布时由总线分配，单调递增

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "sequence": self.sequence,
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
            "data": self.data,
        }


class EventBus:
    """
    内存级事件总线（线程安全单例）

    使用方式：
    1. 订阅事件：event_bus.subscribe("room.status_changed", handler_func)
    2. 发布事件：event_bus.publish(Event(...))
    3. 取消订阅：event_bus.unsubscribe("room.status_changed", handler_func)
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._subscribers: Dict[str, List[Callable]] = {}
        self._event_history: deque = deque(maxlen=settings.EVENT_HISTORY_SIZE)
        self._subscriber_lock = threading.Lock()
        self._sequence = itertools.count(1)
        self._initialized = True
        logger.info("EventBus initialized")

    def subscribe(self, event_type: str, handler: Callable) -> None:
        """
        订阅事件

        Args:
            event_type: 事件类型（如 "room.status_changed"）
            handler: 处理函数，接收 Event 对象作为参数
        """
        with self._subscriber_lock:
            handlers = self._subscribers.setdefault(event_type, [])
            if handler not in handlers:
                handlers.append(handler)
                logger.info(f"Handler {handler.__name__} subscribed to {event_type}")

    def unsubscribe(self, event_type: str, handler: Callable) -> None:
        """取消订阅"""
        with self._subscriber_lock:
            if handler in self._subscribers.get(event_type, []):
                self._subscribers[event_type].remove(handler)
                logger.info(f"Handler {handler.__name__} unsubscribed from {event_type}")

    def publish(self, event: Event) -> None:
        """
        发布事件（同步执行所有处理器）

        处理器异常不会影响其他处理器的执行
        """
        with self._subscriber_lock:
            event.sequence = next(self._sequence)
            self._event_history.append(event)
            handlers = self._subscribers.get(event.event_type, []).copy()

        if handlers:
            logger.debug(f"Publishing {event.event_type} to {len(handlers)} handlers")

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Event handler {handler.__name__} error for {event.event_type}: {e}",
                    exc_info=True
                )

    def publish_many(self, events: List[Event]) -> None:
        """批量发布事件"""
        for event in events:
            self.publish(event)

    def get_history(self, event_type: Optional[str] = None, limit: int = 50,
                    since: Optional[int] = None) -> List[Event]:
        """
        获取事件历史

        Args:
            event_type: 可选，筛选特定类型的事件
            limit: 返回数量限制
            since: 可选，只返回序号大于该值的事件

        Returns:
            事件列表（最新的在前）
        """
        history = list(self._event_history)
        if event_type:
            history = [e for e in history if e.event_type == event_type]
        if since is not None:
            history = [e for e in history if e.sequence > since]
        return list(reversed(history))[:limit]

    def get_subscribers(self, event_type: Optional[str] = None) -> Dict[str, List[str]]:
        """获取订阅者信息（事件类型 -> 处理器名称列表）"""
        with self._subscriber_lock:
            if event_type:
                handlers = self._subscribers.get(event_type, [])
                return {event_type: [h.__name__ for h in handlers]}
            return {
                et: [h.__name__ for h in handlers]
                for et, handlers in self._subscribers.items()
            }

    def clear_subscribers(self) -> None:
        """清空所有订阅（用于测试）"""
        with self._subscriber_lock:
            self._subscribers.clear()
        logger.info("All subscribers cleared")

    def clear_history(self) -> None:
        """清空事件历史"""
        self._event_history.clear()


# 全局事件总线实例
event_bus = EventBus()
