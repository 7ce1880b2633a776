"""
集中定义所有权限码常量及角色-权限映射
"""
from typing import Iterable, List

from hotelpms.models.ontology import StaffRole

# 预订
VIEW_RESERVATIONS = "view_reservations"
CREATE_RESERVATIONS = "create_reservations"
EDIT_RESERVATIONS = "edit_reservations"
DELETE_RESERVATIONS = "delete_reservations"

# 房间
VIEW_ROOMS = "view_rooms"
EDIT_ROOM_STATUS = "edit_room_status"
MANAGE_ROOMS = "manage_rooms"

# 客人
VIEW_GUESTS = "view_guests"
EDIT_GUESTS = "edit_guests"
VIEW_GUEST_HISTORY = "view_guest_history"

# 订单与服务
VIEW_ORDERS = "view_orders"
CREATE_ORDERS = "create_orders"
EDIT_ORDERS = "edit_orders"
MANAGE_SERVICES = "manage_services"

# 清洁
VIEW_CLEANING = "view_cleaning"
MANAGE_CLEANING = "manage_cleaning"

# 库存
VIEW_INVENTORY = "view_inventory"
MANAGE_INVENTORY = "manage_inventory"

# 员工
VIEW_STAFF = "view_staff"
MANAGE_STAFF = "manage_staff"

# 报表
VIEW_REPORTS = "view_reports"
ADVANCED_REPORTS = "advanced_reports"

# 系统
SYSTEM_SETTINGS = "system_settings"
MANAGE_BRANCHES = "manage_branches"

ALL_PERMISSIONS: List[str] = [
    VIEW_RESERVATIONS, CREATE_RESERVATIONS, EDIT_RESERVATIONS, DELETE_RESERVATIONS,
    VIEW_ROOMS, EDIT_ROOM_STATUS, MANAGE_ROOMS,
    VIEW_GUESTS, EDIT_GUESTS, VIEW_GUEST_HISTORY,
    VIEW_ORDERS, CREATE_ORDERS, EDIT_ORDERS, MANAGE_SERVICES,
    VIEW_CLEANING, MANAGE_CLEANING,
    VIEW_INVENTORY, MANAGE_INVENTORY,
    VIEW_STAFF, MANAGE_STAFF,
    VIEW_REPORTS, ADVANCED_REPORTS,
    SYSTEM_SETTINGS, MANAGE_BRANCHES,
]

ROLE_PERMISSIONS = {
    StaffRole.ADMIN: list(ALL_PERMISSIONS),
    StaffRole.MANAGER: [
        VIEW_RESERVATIONS, CREATE_RESERVATIONS, EDIT_RESERVATIONS,
        VIEW_ROOMS, EDIT_ROOM_STATUS, MANAGE_ROOMS,
        VIEW_GUESTS, EDIT_GUESTS, VIEW_GUEST_HISTORY,
        VIEW_ORDERS, CREATE_ORDERS, EDIT_ORDERS, MANAGE_SERVICES,
        VIEW_CLEANING, MANAGE_CLEANING,
        VIEW_INVENTORY, MANAGE_INVENTORY,
        VIEW_STAFF,
        VIEW_REPORTS, ADVANCED_REPORTS,
    ],
    StaffRole.RECEPTION: [
        VIEW_RESERVATIONS, CREATE_RESERVATIONS, EDIT_RESERVATIONS,
        VIEW_ROOMS, EDIT_ROOM_STATUS,
        VIEW_GUESTS, EDIT_GUESTS, VIEW_GUEST_HISTORY,
        VIEW_ORDERS, CREATE_ORDERS, EDIT_ORDERS,
        VIEW_CLEANING,
        VIEW_REPORTS,
    ],
    StaffRole.HOUSEKEEPING: [
        VIEW_ROOMS, EDIT_ROOM_STATUS,
        VIEW_CLEANING, MANAGE_CLEANING,
        VIEW_INVENTORY,
    ],
    StaffRole.MAINTENANCE: [
        VIEW_ROOMS, EDIT_ROOM_STATUS,
        VIEW_INVENTORY, MANAGE_INVENTORY,
    ],
    StaffRole.RESTAURANT: [
        VIEW_ORDERS, CREATE_ORDERS, EDIT_ORDERS, MANAGE_SERVICES,
        VIEW_INVENTORY,
    ],
}


def get_role_permissions(role) -> List[str]:
    """角色的默认权限列表"""
    try:
        role = StaffRole(role)
    except ValueError:
        return []
    return ROLE_PERMISSIONS.get(role, [])


def has_permission(staff, permission: str) -> bool:
    """
    检查员工是否拥有权限

    顺序：管理员全部通过 → 角色默认权限 → 个人额外授权（值为 true 的标记）
    """
    if staff is None or not getattr(staff, "is_active", True):
        return False
    if staff.role == StaffRole.ADMIN:
        return True
    if permission in get_role_permissions(staff.role):
        return True
    custom = staff.permissions or {}
    if not isinstance(custom, dict):
        return False
    return custom.get(permission) is True


def has_any_permission(staff, permissions: Iterable[str]) -> bool:
    return any(has_permission(staff, p) for p in permissions)


def has_all_permissions(staff, permissions: Iterable[str]) -> bool:
    return all(has_permission(staff, p) for p in permissions)


def ensure_permission(staff, permission: str, message: str = None) -> None:
    """服务层权限校验，不满足时抛出 PermissionError"""
    if not has_permission(staff, permission):
        raise PermissionError(message or f"缺少权限: {permission}")


def can_change_branch(staff) -> bool:
    """管理员或拥有分店管理权限的员工可以切换分店"""
    return has_permission(staff, MANAGE_BRANCHES)
