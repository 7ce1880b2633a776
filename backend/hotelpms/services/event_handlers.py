"""
事件处理器
订阅领域事件并记录需要人工跟进的情况（低库存、房间停用）
"""
from typing import Dict, List
import logging

from hotelpms.models.events import EventType
from hotelpms.models.ontology import RoomStatus
from hotelpms.services.event_bus import event_bus, Event

logger = logging.getLogger(__name__)

ATTENTION_ROOM_STATUSES = (RoomStatus.MAINTENANCE.value, RoomStatus.OUT_OF_ORDER.value)


class EventHandlers:
    """事件处理器集合，收集待跟进提醒"""

    def __init__(self, max_alerts: int = 50):
        self._registered = False
        self._max_alerts = max_alerts
        self.alerts: List[Dict[str, str]] = []

    def _alert(self, kind: str, message: str) -> None:
        self.alerts.append({"kind": kind, "message": message})
        del self.alerts[:-self._max_alerts]

    def handle_stock_low(self, event: Event) -> None:
        data = event.data
        message = (
            f"{data.get('name')} 库存不足：当前 {data.get('current_stock')}，"
            f"下限 {data.get('min_stock')}（{data.get('source')}）"
        )
        logger.warning(message)
        self._alert("stock", message)

    def handle_room_status_changed(self, event: Event) -> None:
        data = event.data
        if data.get("new_status") not in ATTENTION_ROOM_STATUSES:
            return
        message = f"房间 {data.get('room_number')} 已转为 {data.get('new_status')}"
        logger.info(message)
        self._alert("room", message)

    def register_handlers(self, event_bus_instance=None) -> None:
        """注册所有事件处理器"""
        if self._registered:
            return

        bus = event_bus_instance or event_bus
        bus.subscribe(EventType.STOCK_LOW, self.handle_stock_low)
        bus.subscribe(EventType.ROOM_STATUS_CHANGED, self.handle_room_status_changed)

        self._registered = True
        logger.info("Event handlers registered successfully")

    def unregister_handlers(self, event_bus_instance=None) -> None:
        """取消注册所有事件处理器（用于测试）"""
        bus = event_bus_instance or event_bus
        bus.unsubscribe(EventType.STOCK_LOW, self.handle_stock_low)
        bus.unsubscribe(EventType.ROOM_STATUS_CHANGED, self.handle_room_status_changed)
        self._registered = False


# 全局事件处理器实例
event_handlers = EventHandlers()


def register_event_handlers():
    """注册所有事件处理器（应用启动时调用）"""
    event_handlers.register_handlers()
