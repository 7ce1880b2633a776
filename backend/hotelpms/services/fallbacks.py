"""
演示数据
数据库不可用或尚未初始化时，读接口返回这些数据以保证前端可用
"""
from typing import Dict, List, Any

FALLBACK_FLOOR_PRICES = {1: 80.0, 2: 95.0, 3: 110.0}

# 每层 12 间房；下标命中的房间为入住中 / 待清洁
_FALLBACK_OCCUPIED = {1: (2,), 2: (1, 8), 3: (3,)}
_FALLBACK_CHECKOUT = {1: (6,), 2: (4,), 3: (5,)}

FALLBACK_SERVICE_TYPES = [
    {"id": "frutas", "name": "FRUTAS", "description": "新鲜水果"},
    {"id": "bebidas", "name": "BEBIDAS", "description": "冷热饮品"},
    {"id": "snacks", "name": "SNACKS", "description": "小食零嘴"},
    {"id": "postres", "name": "POSTRES", "description": "甜点"},
]

FALLBACK_SNACK_ITEMS = {
    "frutas": [
        {"id": 1, "name": "Manzana", "price": 2.5, "stock": 50, "min_stock": 0, "stock_level": "HIGH"},
        {"id": 2, "name": "Plátano", "price": 1.5, "stock": 30, "min_stock": 0, "stock_level": "HIGH"},
    ],
    "bebidas": [
        {"id": 6, "name": "Agua", "price": 1.0, "stock": 100, "min_stock": 0, "stock_level": "HIGH"},
        {"id": 7, "name": "Coca Cola", "price": 2.5, "stock": 80, "min_stock": 0, "stock_level": "HIGH"},
    ],
    "snacks": [
        {"id": 11, "name": "Papas fritas", "price": 3.5, "stock": 40, "min_stock": 0, "stock_level": "HIGH"},
    ],
    "postres": [
        {"id": 16, "name": "Helado", "price": 4.0, "stock": 30, "min_stock": 0, "stock_level": "HIGH"},
    ],
}

DEFAULT_BRANCH = {
    "id": 1,
    "name": "Hotel Paraíso Principal",
    "code": "HTP",
    "address": None,
    "city": "Lima",
    "country": "Peru",
    "phone": None,
    "email": None,
    "total_rooms": 36,
    "is_active": True,
    "display_name": "Hotel Paraíso Principal (HTP)",
}


def _fallback_status(floor: int, index: int) -> str:
    if index in _FALLBACK_OCCUPIED[floor]:
        return "occupied"
    if index in _FALLBACK_CHECKOUT[floor]:
        return "checkout"
    return "available"


def fallback_floor_rooms() -> Dict[int, List[Dict[str, Any]]]:
    """三层、每层 12 间房的演示房态"""
    return {
        floor: [
            {
                "number": str(floor * 100 + 1 + i),
                "status": _fallback_status(floor, i),
                "price": FALLBACK_FLOOR_PRICES[floor],
                "room_type": "standard",
            }
            for i in range(12)
        ]
        for floor in (1, 2, 3)
    }
