"""
初始化数据脚本
创建：默认分店、员工、房间、服务类型与商品、库存物资、系统设置

默认账号（密码均为 123456）：
  admin          系统管理员
  manager        经理
  reception1     前台
  housekeeping1  客房清洁
  maintenance1   工程维修
  restaurant1    餐饮
"""
import sys
sys.path.insert(0, '.')

import json
from datetime import date, timedelta
from decimal import Decimal

from hotelpms.database import SessionLocal, init_db
from hotelpms.models.ontology import (
    Branch, Staff, StaffRole, Room, RoomStatus, CleaningStatus, ServiceType, Service,
    InventoryItem, SupplyCategory, SupplyStatus, SystemSetting
)
from hotelpms.security.auth import get_password_hash
from hotelpms.services.fallbacks import DEFAULT_BRANCH, FALLBACK_FLOOR_PRICES
from hotelpms.services.settings_service import DEFAULT_SETTINGS, SETTING_DESCRIPTIONS

DEFAULT_PASSWORD = "123456"

ROOM_TYPES_BY_INDEX = ["standard"] * 8 + ["double"] * 3 + ["suite"]


def init_branch(db):
    """默认分店"""
    branch = db.query(Branch).filter(Branch.code == DEFAULT_BRANCH["code"]).first()
    if not branch:
        branch = Branch(
            name=DEFAULT_BRANCH["name"],
            code=DEFAULT_BRANCH["code"],
            city=DEFAULT_BRANCH["city"],
            country=DEFAULT_BRANCH["country"],
            total_rooms=DEFAULT_BRANCH["total_rooms"],
            is_active=True,
        )
        db.add(branch)
        db.commit()
        db.refresh(branch)
    print(f"分店初始化完成: {branch.name} ({branch.code})")
    return branch


def init_staff(db, branch):
    """管理员 + 每个角色一名员工"""
    staff_defs = [
        ("admin", "系统管理员", StaffRole.ADMIN, "administración"),
        ("manager", "Gerente General", StaffRole.MANAGER, "gerencia"),
        ("reception1", "Recepcionista", StaffRole.RECEPTION, "recepción"),
        ("housekeeping1", "Camarera", StaffRole.HOUSEKEEPING, "limpieza"),
        ("maintenance1", "Técnico", StaffRole.MAINTENANCE, "mantenimiento"),
        ("restaurant1", "Mesero", StaffRole.RESTAURANT, "restaurante"),
    ]
    password_hash = get_password_hash(DEFAULT_PASSWORD)

    created = 0
    for index, (username, full_name, role, department) in enumerate(staff_defs, start=1):
        if db.query(Staff).filter(Staff.username == username).first():
            continue
        db.add(Staff(
            employee_id=f"EMP{index:03d}",
            username=username,
            password_hash=password_hash,
            full_name=full_name,
            role=role,
            department=department,
            branch_id=branch.id,
            permissions={},
            is_active=True,
        ))
        created += 1

    db.commit()
    print(f"员工初始化完成: 新增 {created} 人，共 {db.query(Staff).count()} 人")


def init_rooms(db, branch):
    """1-3 层，每层 12 间（101-112、201-212、301-312）"""
    created = 0
    for floor, price in FALLBACK_FLOOR_PRICES.items():
        for i, room_type in enumerate(ROOM_TYPES_BY_INDEX):
            number = str(floor * 100 + 1 + i)
            if db.query(Room).filter(Room.number == number).first():
                continue
            db.add(Room(
                number=number,
                floor=floor,
                room_type=room_type,
                price=Decimal(str(price)) + (Decimal("30") if room_type == "suite" else Decimal("0")),
                capacity=4 if room_type == "suite" else 2,
                amenities=["wifi", "tv", "aire acondicionado"],
                status=RoomStatus.AVAILABLE,
                cleaning_status=CleaningStatus.CLEAN,
                branch_id=branch.id,
            ))
            created += 1

    db.commit()
    print(f"房间初始化完成: 新增 {created} 间，共 {db.query(Room).count()} 间")


def init_services(db):
    """服务类型与可售商品"""
    catalog = {
        ("FRUTAS", "新鲜水果", "🍎"): [
            ("Manzana", "2.50", "1.00", 50), ("Plátano", "1.50", "0.60", 30), ("Naranja", "2.00", "0.80", 40),
        ],
        ("BEBIDAS", "冷热饮品", "🥤"): [
            ("Agua", "1.00", "0.30", 100), ("Coca Cola", "2.50", "1.20", 80), ("Inca Kola", "2.50", "1.20", 80),
        ],
        ("SNACKS", "小食零嘴", "🍿"): [
            ("Papas fritas", "3.50", "1.50", 40), ("Galletas", "2.00", "0.90", 60),
        ],
        ("POSTRES", "甜点", "🍰"): [
            ("Helado", "4.00", "1.80", 30), ("Alfajor", "3.00", "1.20", 25),
        ],
    }

    created = 0
    for (type_name, description, icon), items in catalog.items():
        service_type = db.query(ServiceType).filter(ServiceType.name == type_name).first()
        if not service_type:
            service_type = ServiceType(name=type_name, description=description, icon=icon, is_active=True)
            db.add(service_type)
            db.flush()
        for name, price, cost, stock in items:
            if db.query(Service).filter(Service.name == name).first():
                continue
            db.add(Service(
                name=name,
                type_id=service_type.id,
                category=type_name.lower(),
                price=Decimal(price),
                cost=Decimal(cost),
                stock=stock,
                min_stock=5,
                is_available=True,
            ))
            created += 1

    db.commit()
    print(f"商品初始化完成: 新增 {created} 个，共 {db.query(Service).count()} 个")


def init_inventory(db, branch):
    """库存物资"""
    today = date.today()
    supplies = [
        ("Papel higiénico", "LIM-001", SupplyCategory.LIMPIEZA, "Distribuidora Lima", "rollo", 120, 40, 300, "0.80", None),
        ("Detergente", "LIM-002", SupplyCategory.LIMPIEZA, "Distribuidora Lima", "litro", 25, 10, 60, "6.50", None),
        ("Jabón de tocador", "AME-001", SupplyCategory.AMENITIES, "Amenities Perú", "unidad", 200, 50, 400, "0.60", None),
        ("Shampoo", "AME-002", SupplyCategory.AMENITIES, "Amenities Perú", "unidad", 45, 50, 400, "0.90", None),
        ("Focos LED", "MAN-001", SupplyCategory.MANTENIMIENTO, "Ferretería Central", "unidad", 18, 10, 50, "4.20", None),
        ("Leche", "LAC-001", SupplyCategory.LACTEOS, "Gloria", "litro", 12, 10, 40, "4.00", today + timedelta(days=5)),
    ]

    created = 0
    for name, sku, category, supplier, unit, stock, min_stock, max_stock, cost, expiry in supplies:
        if db.query(InventoryItem).filter(InventoryItem.sku == sku).first():
            continue
        db.add(InventoryItem(
            branch_id=branch.id,
            name=name,
            sku=sku,
            category=category,
            supplier=supplier,
            unit=unit,
            current_stock=stock,
            min_stock=min_stock,
            max_stock=max_stock,
            unit_cost=Decimal(cost),
            location="Almacén principal",
            expiry_date=expiry,
            status=SupplyStatus.ACTIVE,
        ))
        created += 1

    db.commit()
    print(f"库存物资初始化完成: 新增 {created} 项")


def init_settings(db):
    """系统设置默认值"""
    created = 0
    for category, values in DEFAULT_SETTINGS.items():
        for key, value in values.items():
            if db.query(SystemSetting).filter(SystemSetting.key == key).first():
                continue
            db.add(SystemSetting(
                key=key,
                value=json.dumps(value, ensure_ascii=False),
                category=category,
                description=SETTING_DESCRIPTIONS.get(key, ""),
            ))
            created += 1

    db.commit()
    print(f"系统设置初始化完成: 新增 {created} 项")


def main():
    """主函数"""
    print("=" * 50)
    print("HotelPMS 初始化数据")
    print("=" * 50)

    init_db()
    print("数据库表创建完成")

    db = SessionLocal()
    try:
        branch = init_branch(db)
        init_staff(db, branch)
        init_rooms(db, branch)
        init_services(db)
        init_inventory(db, branch)
        init_settings(db)

        print("=" * 50)
        print("初始化完成！")
        print()
        print(f"默认账号（密码均为 {DEFAULT_PASSWORD}）：")
        print("  admin / manager / reception1 / housekeeping1 / maintenance1 / restaurant1")
        print("=" * 50)
    finally:
        db.close()


if __name__ == '__main__':
    main()
