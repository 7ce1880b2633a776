"""
事件处理器测试
"""
import pytest
from datetime import datetime

from hotelpms.models.events import EventType
from hotelpms.services.event_bus import EventBus, Event
from hotelpms.services.event_handlers import EventHandlers


@pytest.fixture
def bus():
    bus = EventBus()
    bus.clear_history()
    return bus


@pytest.fixture
def handlers(bus):
    handlers = EventHandlers(max_alerts=3)
    handlers.register_handlers(bus)
    yield handlers
    handlers.unregister_handlers(bus)


def _room_event(number, status):
    return Event(
        event_type=EventType.ROOM_STATUS_CHANGED,
        timestamp=datetime.now(),
        data={"room_number": number, "old_status": "available", "new_status": status},
        source="test"
    )


class TestEventHandlers:

    def test_stock_low_alert(self, bus, handlers):
        bus.publish(Event(
            event_type=EventType.STOCK_LOW,
            timestamp=datetime.now(),
            data={"name": "Coca Cola", "current_stock": 2, "min_stock": 5, "source": "services"},
            source="test"
        ))

        assert handlers.alerts[-1]["kind"] == "stock"
        assert "Coca Cola" in handlers.alerts[-1]["message"]

    def test_room_attention_statuses(self, bus, handlers):
        bus.publish(_room_event("101", "occupied"))
        assert handlers.alerts == []

        bus.publish(_room_event("101", "out_of_order"))
        assert handlers.alerts == [{"kind": "room", "message": "房间 101 已转为 out_of_order"}]

    def test_alerts_are_bounded(self, bus, handlers):
        for number in ("101", "102", "103", "104"):
            bus.publish(_room_event(number, "maintenance"))

        assert len(handlers.alerts) == 3
        assert "101" not in handlers.alerts[0]["message"]

    def test_register_once(self, bus, handlers):
        handlers.register_handlers(bus)

        subscribers = bus.get_subscribers(EventType.STOCK_LOW)
        assert subscribers[EventType.STOCK_LOW].count("handle_stock_low") >= 1
        assert handlers._registered is True

    def test_unregister(self, bus):
        handlers = EventHandlers()
        handlers.register_handlers(bus)
        handlers.unregister_handlers(bus)

        bus.publish(_room_event("101", "maintenance"))
        assert handlers.alerts == []
