"""
事件定义
业务事件与数据表变更事件（实时变更流）
"""
from enum import Enum
from dataclasses import dataclass, field, asdict
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, Dict, Any, List


class EventType(str, Enum):
    """事件类型枚举"""
    # 房间相关
    ROOM_STATUS_CHANGED = "room.status_changed"

    # 订单相关
    ORDER_CREATED = "order.created"
    ORDER_COMPLETED = "order.completed"

    # 预订相关
    RESERVATION_CREATED = "reservation.created"
    RESERVATION_STATUS_CHANGED = "reservation.status_changed"

    # 清洁相关
    CLEANING_TASK_CREATED = "cleaning.task_created"
    CLEANING_TASK_COMPLETED = "cleaning.task_completed"

    # 库存相关
    STOCK_LOW = "stock.low"

    # 数据表变更（INSERT / UPDATE / DELETE）
    TABLE_CHANGED = "table.changed"


class ChangeOperation(str, Enum):
    """数据表变更类型"""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


def serialize_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass
class BaseEventData:
    """事件数据基类"""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {key: serialize_value(value) for key, value in asdict(self).items()}


@dataclass
class RoomStatusChangedData(BaseEventData):
    """房间状态变更事件数据"""
    room_id: int = 0
    room_number: str = ""
    old_status: str = ""
    new_status: str = ""
    reason: str = ""


@dataclass
class OrderCreatedData(BaseEventData):
    """入住订单创建事件数据"""
    order_id: int = 0
    room_number: str = ""
    guest_name: str = ""
    room_price: float = 0.0
    services_total: float = 0.0
    total: float = 0.0


@dataclass
class OrderCompletedData(BaseEventData):
    """结账事件数据"""
    order_id: int = 0
    room_number: str = ""
    total: float = 0.0
    payment_method: str = ""


@dataclass
class ReservationCreatedData(BaseEventData):
    """预订创建事件数据"""
    reservation_id: int = 0
    confirmation_code: str = ""
    guest_id: int = 0
    room_id: Optional[int] = None
    check_in_date: str = ""
    check_out_date: str = ""


@dataclass
class ReservationStatusChangedData(BaseEventData):
    """预订状态变更事件数据"""
    reservation_id: int = 0
    confirmation_code: str = ""
    old_status: str = ""
    new_status: str = ""


@dataclass
class CleaningTaskData(BaseEventData):
    """清洁任务事件数据"""
    task_id: int = 0
    room_id: int = 0
    room_number: str = ""
    cleaning_type: str = ""
    priority: str = ""
    quality_score: Optional[int] = None


@dataclass
class StockLowData(BaseEventData):
    """库存不足事件数据"""
    item_id: int = 0
    name: str = ""
    source: str = ""            # services / inventory
    current_stock: int = 0
    min_stock: int = 0


@dataclass
class TableChangedData(BaseEventData):
    """数据表变更事件数据"""
    table: str = ""
    operation: str = ""
    record: Dict[str, Any] = field(default_factory=dict)
    changed_fields: List[str] = field(default_factory=list)
