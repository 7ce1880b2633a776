"""
业务对象定义
酒店管理的核心实体：分店、员工、房间、清洁任务、客人、预订、订单、服务、库存、系统设置
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Time, JSON,
    ForeignKey, Text, Enum as SQLEnum, Boolean, Numeric
)
from sqlalchemy.orm import relationship
from hotelpms.database import Base


# ============== 枚举定义 ==============

class RoomStatus(str, Enum):
    """房间状态枚举"""
    AVAILABLE = "available"        # 空闲
    OCCUPIED = "occupied"          # 入住中
    CHECKOUT = "checkout"          # 已结账待清洁
    CLEANING = "cleaning"          # 清洁中
    MAINTENANCE = "maintenance"    # 维护中
    OUT_OF_ORDER = "out_of_order"  # 停用


class CleaningStatus(str, Enum):
    """房间清洁状态"""
    CLEAN = "clean"
    DIRTY = "dirty"
    IN_PROGRESS = "in_progress"
    INSPECTION = "inspection"


class CleaningTaskStatus(str, Enum):
    """清洁任务状态"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CleaningType(str, Enum):
    """清洁类型"""
    CHECKOUT = "checkout"          # 退房清洁
    MAINTENANCE = "maintenance"    # 日常维护
    DEEP = "deep"                  # 深度清洁


class TaskPriority(str, Enum):
    """任务优先级"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class OrderStatus(str, Enum):
    """订单状态"""
    ACTIVE = "active"          # 在住
    COMPLETED = "completed"    # 已结账


class PaymentMethod(str, Enum):
    """支付方式"""
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"


class ReservationStatus(str, Enum):
    """预订状态枚举"""
    PENDING = "pending"          # 待确认
    CONFIRMED = "confirmed"      # 已确认
    CHECKED_IN = "checked_in"    # 已入住
    CHECKED_OUT = "checked_out"  # 已退房
    CANCELLED = "cancelled"      # 已取消
    NO_SHOW = "no_show"          # 未到店


class PaymentStatus(str, Enum):
    """付款状态"""
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"


class StaffRole(str, Enum):
    """员工角色"""
    ADMIN = "admin"                # 管理员
    MANAGER = "manager"            # 经理
    RECEPTION = "reception"        # 前台
    HOUSEKEEPING = "housekeeping"  # 客房
    MAINTENANCE = "maintenance"    # 工程
    RESTAURANT = "restaurant"      # 餐饮


class SupplyStatus(str, Enum):
    """物资状态"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"


class SupplyCategory(str, Enum):
    """物资分类"""
    FRUTAS = "frutas"
    BEBIDAS = "bebidas"
    SNACKS = "snacks"
    POSTRES = "postres"
    DULCES = "dulces"
    LACTEOS = "lacteos"
    LIMPIEZA = "limpieza"
    AMENITIES = "amenities"
    MANTENIMIENTO = "mantenimiento"


# ============== 对象定义 ==============

class Branch(Base):
    """分店对象"""
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    code = Column(String(20), unique=True, nullable=False)   # 分店编码，用于确认码前缀
    address = Column(String(200))
    city = Column(String(50))
    country = Column(String(50))
    phone = Column(String(30))
    email = Column(String(100))
    total_rooms = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.now)

    staff = relationship("Staff", back_populates="branch")
    rooms = relationship("Room", back_populates="branch")


class Staff(Base):
    """
    员工对象
    permissions 存放个人额外授权，如 {"manage_inventory": true}
    """
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(String(20), unique=True)
    username = Column(String(50), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=False)
    email = Column(String(100))
    phone = Column(String(30))
    role = Column(SQLEnum(StaffRole), nullable=False, default=StaffRole.RECEPTION)
    department = Column(String(50))
    branch_id = Column(Integer, ForeignKey("branches.id"))
    permissions = Column(JSON, default=dict)
    is_active = Column(Boolean, default=True)
    last_login = Column(DateTime)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    branch = relationship("Branch", back_populates="staff")
    cleaning_tasks = relationship("RoomCleaning", back_populates="staff")


class Room(Base):
    """房间对象 - 入住流程的核心实体"""
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    number = Column(String(10), unique=True, nullable=False)   # 房间号
    floor = Column(Integer, nullable=False)                    # 楼层
    room_type = Column(String(50), default="standard")         # 房型
    price = Column(Numeric(10, 2), nullable=False, default=0)  # 房价/晚
    capacity = Column(Integer, default=2)
    description = Column(Text)
    amenities = Column(JSON, default=list)
    status = Column(SQLEnum(RoomStatus), default=RoomStatus.AVAILABLE)
    cleaning_status = Column(SQLEnum(CleaningStatus), default=CleaningStatus.CLEAN)
    branch_id = Column(Integer, ForeignKey("branches.id"))
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    branch = relationship("Branch", back_populates="rooms")
    cleaning_tasks = relationship("RoomCleaning", back_populates="room", cascade="all, delete-orphan")
    reservations = relationship("Reservation", back_populates="room")


class RoomCleaning(Base):
    """清洁任务"""
    __tablename__ = "room_cleaning"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    staff_id = Column(Integer, ForeignKey("staff.id"))
    status = Column(SQLEnum(CleaningTaskStatus), default=CleaningTaskStatus.PENDING)
    cleaning_type = Column(SQLEnum(CleaningType), default=CleaningType.CHECKOUT)
    priority = Column(SQLEnum(TaskPriority), default=TaskPriority.MEDIUM)
    estimated_duration = Column(Integer, default=30)   # 分钟
    actual_duration = Column(Integer)                  # 分钟
    quality_score = Column(Integer)                    # 1-10
    notes = Column(Text)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.now)

    room = relationship("Room", back_populates="cleaning_tasks")
    staff = relationship("Staff", back_populates="cleaning_tasks")


class Guest(Base):
    """客人对象"""
    __tablename__ = "guests"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(100), nullable=False)
    dni = Column(String(30))                 # 身份证件号
    passport = Column(String(30))
    email = Column(String(100))
    phone = Column(String(30))
    nationality = Column(String(50))
    birth_date = Column(Date)
    address = Column(String(200))
    emergency_contact = Column(String(100))
    preferences = Column(Text)
    vip_status = Column(Boolean, default=False)
    blacklisted = Column(Boolean, default=False)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    reservations = relationship("Reservation", back_populates="guest")
    orders = relationship("Order", back_populates="guest")


class Reservation(Base):
    """预订对象"""
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    confirmation_code = Column(String(20), unique=True, nullable=False)
    guest_id = Column(Integer, ForeignKey("guests.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"))
    branch_id = Column(Integer, ForeignKey("branches.id"))
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    adults = Column(Integer, default=1)
    children = Column(Integer, default=0)
    rate = Column(Numeric(10, 2), default=0)            # 每晚房价
    total_amount = Column(Numeric(10, 2), default=0)
    paid_amount = Column(Numeric(10, 2), default=0)
    status = Column(SQLEnum(ReservationStatus), default=ReservationStatus.CONFIRMED)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING)
    booking_source = Column(String(30), default="direct")
    special_requests = Column(Text)
    created_by = Column(Integer, ForeignKey("staff.id"))
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    guest = relationship("Guest", back_populates="reservations")
    room = relationship("Room", back_populates="reservations")

    @property
    def nights(self) -> int:
        return max((self.check_out_date - self.check_in_date).days, 1)


class Order(Base):
    """
    入住订单 - 房费加消费的在住记录
    同一房间同一时间只应有一张 active 订单
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String(10), nullable=False, index=True)
    guest_name = Column(String(100))
    guest_id = Column(Integer, ForeignKey("guests.id"))
    reservation_id = Column(Integer, ForeignKey("reservations.id"))
    room_price = Column(Numeric(10, 2), default=0)
    services_total = Column(Numeric(10, 2), default=0)
    total = Column(Numeric(10, 2), default=0)
    check_in_date = Column(Date)
    check_in_time = Column(Time)
    check_out_date = Column(Date)
    check_out_time = Column(Time)
    status = Column(SQLEnum(OrderStatus), default=OrderStatus.ACTIVE)
    payment_method = Column(SQLEnum(PaymentMethod))
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING)
    created_at = Column(DateTime, default=datetime.now)

    guest = relationship("Guest", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    """订单消费明细"""
    __tablename__ = "order_services"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"))
    service_name = Column(String(100))
    quantity = Column(Integer, default=1)
    unit_price = Column(Numeric(10, 2), default=0)
    total_price = Column(Numeric(10, 2), default=0)

    order = relationship("Order", back_populates="items")
    service = relationship("Service")


class ServiceType(Base):
    """服务类型（水果、饮料、零食、甜点）"""
    __tablename__ = "service_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    description = Column(String(200))
    icon = Column(String(20))
    is_active = Column(Boolean, default=True)

    services = relationship("Service", back_populates="service_type")


class Service(Base):
    """可售卖的房内消费品"""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    type_id = Column(Integer, ForeignKey("service_types.id"))
    category = Column(String(50))
    price = Column(Numeric(10, 2), default=0)
    cost = Column(Numeric(10, 2), default=0)
    stock = Column(Integer, default=0)
    min_stock = Column(Integer, default=5)
    is_available = Column(Boolean, default=True)

    service_type = relationship("ServiceType", back_populates="services")


class InventoryItem(Base):
    """分店物资库存"""
    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"))
    name = Column(String(100), nullable=False)
    sku = Column(String(50))
    description = Column(Text)
    category = Column(SQLEnum(SupplyCategory), nullable=False)
    supplier = Column(String(100))
    unit = Column(String(20), default="unidad")
    current_stock = Column(Integer, default=0)
    min_stock = Column(Integer, default=0)
    max_stock = Column(Integer, default=100)
    unit_cost = Column(Numeric(10, 2), default=0)
    location = Column(String(100))
    expiry_date = Column(Date)
    status = Column(SQLEnum(SupplyStatus), default=SupplyStatus.ACTIVE)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class SystemSetting(Base):
    """系统设置，value 以 JSON 字符串存储"""
    __tablename__ = "system_settings"

    key = Column(String(50), primary_key=True)
    value = Column(Text)
    category = Column(String(30), default="general")
    description = Column(String(200))
    updated_by = Column(Integer, ForeignKey("staff.id"))
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
