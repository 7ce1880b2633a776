"""
Pytest 配置和共享 fixtures
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from decimal import Decimal
from datetime import date, timedelta

from hotelpms.database import Base, get_db
from hotelpms.models import ontology  # noqa
from hotelpms.models.ontology import (
    Branch, Staff, StaffRole, Room, RoomStatus, Guest, ServiceType, Service,
    Reservation, ReservationStatus
)
from hotelpms.security.auth import get_password_hash, create_access_token
from hotelpms.main import app


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """创建测试客户端"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def published_events():
    """收集服务发布的事件，替代全局事件总线"""
    events = []
    return events


# ============== 认证相关 Fixtures ==============

@pytest.fixture
def sample_branch(db_session):
    """创建测试分店"""
    branch = Branch(name="Hotel Paraíso", code="HTP", city="Lima", country="Perú", total_rooms=10)
    db_session.add(branch)
    db_session.commit()
    db_session.refresh(branch)
    return branch


def _create_staff(db_session, username, role, branch=None, full_name=None, permissions=None):
    staff = Staff(
        employee_id=f"T-{username}",
        username=username,
        password_hash=get_password_hash("123456"),
        full_name=full_name or username,
        role=role,
        branch_id=branch.id if branch else None,
        permissions=permissions or {},
        is_active=True
    )
    db_session.add(staff)
    db_session.commit()
    db_session.refresh(staff)
    return staff


@pytest.fixture
def admin_staff(db_session, sample_branch):
    return _create_staff(db_session, "admin", StaffRole.ADMIN, sample_branch, "系统管理员")


@pytest.fixture
def manager_staff(db_session, sample_branch):
    return _create_staff(db_session, "manager", StaffRole.MANAGER, sample_branch, "经理")


@pytest.fixture
def reception_staff(db_session, sample_branch):
    return _create_staff(db_session, "reception1", StaffRole.RECEPTION, sample_branch, "前台小王")


@pytest.fixture
def housekeeping_staff(db_session, sample_branch):
    return _create_staff(db_session, "housekeeping1", StaffRole.HOUSEKEEPING, sample_branch, "清洁员小李")


@pytest.fixture
def admin_token(admin_staff):
    return create_access_token(admin_staff.id, admin_staff.role, admin_staff.branch_id)


@pytest.fixture
def manager_token(manager_staff):
    return create_access_token(manager_staff.id, manager_staff.role, manager_staff.branch_id)


@pytest.fixture
def reception_token(reception_staff):
    return create_access_token(reception_staff.id, reception_staff.role, reception_staff.branch_id)


@pytest.fixture
def housekeeping_token(housekeeping_staff):
    return create_access_token(housekeeping_staff.id, housekeeping_staff.role, housekeeping_staff.branch_id)


@pytest.fixture
def admin_auth_headers(admin_token):
    """返回管理员认证的请求头"""
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def manager_auth_headers(manager_token):
    """返回经理认证的请求头"""
    return {"Authorization": f"Bearer {manager_token}"}


@pytest.fixture
def reception_auth_headers(reception_token):
    """返回前台认证的请求头"""
    return {"Authorization": f"Bearer {reception_token}"}


@pytest.fixture
def housekeeping_auth_headers(housekeeping_token):
    """返回清洁员认证的请求头"""
    return {"Authorization": f"Bearer {housekeeping_token}"}


# ============== 实体相关 Fixtures ==============

@pytest.fixture
def sample_room(db_session, sample_branch):
    """创建测试房间 101"""
    room = Room(
        number="101",
        floor=1,
        room_type="standard",
        price=Decimal("80.00"),
        status=RoomStatus.AVAILABLE,
        branch_id=sample_branch.id
    )
    db_session.add(room)
    db_session.commit()
    db_session.refresh(room)
    return room


@pytest.fixture
def multiple_rooms(db_session, sample_branch):
    """101-103、201-202 五间房"""
    rooms = []
    for number, floor, price in [("101", 1, "80"), ("102", 1, "80"), ("103", 1, "80"),
                                 ("201", 2, "120"), ("202", 2, "120")]:
        room = Room(
            number=number,
            floor=floor,
            price=Decimal(price),
            status=RoomStatus.AVAILABLE,
            branch_id=sample_branch.id
        )
        db_session.add(room)
        rooms.append(room)
    db_session.commit()
    for room in rooms:
        db_session.refresh(room)
    return rooms


@pytest.fixture
def sample_services(db_session):
    """饮品类两个商品：Agua（库存 10）、Coca Cola（库存 6，下限 5）"""
    drinks = ServiceType(name="BEBIDAS", description="冷热饮品", icon="🥤", is_active=True)
    db_session.add(drinks)
    db_session.flush()
    agua = Service(name="Agua", type_id=drinks.id, category="bebidas",
                   price=Decimal("1.00"), cost=Decimal("0.30"), stock=10, min_stock=2)
    cola = Service(name="Coca Cola", type_id=drinks.id, category="bebidas",
                   price=Decimal("2.50"), cost=Decimal("1.20"), stock=6, min_stock=5)
    db_session.add_all([agua, cola])
    db_session.commit()
    db_session.refresh(agua)
    db_session.refresh(cola)
    return agua, cola


@pytest.fixture
def sample_guest(db_session):
    """创建测试客人"""
    guest = Guest(
        full_name="María García",
        dni="45678912",
        email="maria@example.com",
        phone="987654321",
        nationality="Perú"
    )
    db_session.add(guest)
    db_session.commit()
    db_session.refresh(guest)
    return guest


@pytest.fixture
def sample_reservation(db_session, sample_guest, sample_room, sample_branch):
    """今天入住、两晚、已排 101 房的已确认预订"""
    reservation = Reservation(
        confirmation_code="HTP-2026-TEST01",
        guest_id=sample_guest.id,
        room_id=sample_room.id,
        branch_id=sample_branch.id,
        check_in_date=date.today(),
        check_out_date=date.today() + timedelta(days=2),
        rate=Decimal("80.00"),
        total_amount=Decimal("160.00"),
        status=ReservationStatus.CONFIRMED
    )
    db_session.add(reservation)
    db_session.commit()
    db_session.refresh(reservation)
    return reservation
