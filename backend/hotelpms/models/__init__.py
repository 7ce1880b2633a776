# Models
from hotelpms.models.ontology import (
    Branch, Staff, Room, RoomCleaning, Guest, Reservation,
    Order, OrderItem, ServiceType, Service, InventoryItem, SystemSetting
)

__all__ = [
    'Branch', 'Staff', 'Room', 'RoomCleaning', 'Guest', 'Reservation',
    'Order', 'OrderItem', 'ServiceType', 'Service', 'InventoryItem', 'SystemSetting'
]
