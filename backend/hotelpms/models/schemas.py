"""
Pydantic 模式定义
用于 API 请求/响应验证
"""
from datetime import datetime, date, time
from decimal import Decimal
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from hotelpms.models.ontology import (
    RoomStatus, CleaningStatus, CleaningTaskStatus, CleaningType, TaskPriority,
    OrderStatus, PaymentMethod, ReservationStatus, PaymentStatus,
    StaffRole, SupplyStatus, SupplyCategory
)


# ============== 认证 / 员工 Schemas ==============

class LoginRequest(BaseModel):
    username: str
    password: str


class StaffBase(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    full_name: str = Field(..., max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = None
    role: StaffRole = StaffRole.RECEPTION
    department: Optional[str] = None
    branch_id: Optional[int] = None
    employee_id: Optional[str] = None


class StaffCreate(StaffBase):
    password: str = Field(..., min_length=6)
    permissions: Dict[str, bool] = Field(default_factory=dict)


class StaffUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[StaffRole] = None
    department: Optional[str] = None
    branch_id: Optional[int] = None
    permissions: Optional[Dict[str, bool]] = None


class StaffResponse(StaffBase):
    id: int
    is_active: bool
    permissions: Optional[Dict[str, Any]] = None
    last_login: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class PasswordChange(BaseModel):
    old_password: str
    new_password: str = Field(..., min_length=6)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    staff: StaffResponse
    permissions: List[str] = []


# ============== 分店 Schemas ==============

class BranchBase(BaseModel):
    name: str = Field(..., max_length=100)
    code: str = Field(..., max_length=20)
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    total_rooms: int = Field(default=0, ge=0)


class BranchCreate(BranchBase):
    pass


class BranchUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    total_rooms: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class BranchResponse(BranchBase):
    id: int
    is_active: bool = True
    display_name: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


# ============== 房间 Schemas ==============

class RoomBase(BaseModel):
    number: str = Field(..., max_length=10)
    floor: int = Field(..., ge=0)
    room_type: str = "standard"
    price: Decimal = Field(..., ge=0)
    capacity: int = Field(default=2, ge=1)
    description: Optional[str] = None
    amenities: List[str] = Field(default_factory=list)
    branch_id: Optional[int] = None


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    number: Optional[str] = Field(None, max_length=10)
    floor: Optional[int] = Field(None, ge=0)
    room_type: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    capacity: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None
    amenities: Optional[List[str]] = None


class RoomResponse(BaseModel):
    id: int
    number: str
    floor: int
    room_type: Optional[str] = None
    price: float
    capacity: Optional[int] = None
    description: Optional[str] = None
    amenities: Optional[List[str]] = None
    status: RoomStatus
    cleaning_status: Optional[CleaningStatus] = None
    branch_id: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)


class RoomStatusUpdate(BaseModel):
    status: RoomStatus


# ============== 清洁任务 Schemas ==============

class CleaningTaskCreate(BaseModel):
    room_number: str
    staff_id: Optional[int] = None
    cleaning_type: CleaningType = CleaningType.CHECKOUT
    priority: TaskPriority = TaskPriority.MEDIUM
    estimated_duration: int = Field(default=30, ge=1)
    notes: Optional[str] = None


class CleaningAssign(BaseModel):
    room_numbers: List[str] = Field(..., min_length=1)
    staff_id: int


class CleaningComplete(BaseModel):
    quality_score: Optional[int] = Field(None, ge=1, le=10)


class CleaningTaskResponse(BaseModel):
    id: int
    room_id: int
    room_number: Optional[str] = None
    staff_id: Optional[int] = None
    assigned_cleaner: Optional[str] = None
    status: CleaningTaskStatus
    cleaning_type: CleaningType
    priority: TaskPriority
    estimated_duration: Optional[int] = None
    actual_duration: Optional[int] = None
    quality_score: Optional[int] = None
    notes: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# ============== 入住订单 Schemas ==============

class SnackLine(BaseModel):
    service_id: int
    quantity: int = Field(default=1, ge=1)


class OrderCreate(BaseModel):
    room_number: str
    guest_name: str = Field(..., min_length=1, max_length=100)
    room_price: Optional[Decimal] = Field(None, ge=0)
    snacks: List[SnackLine] = Field(default_factory=list)


class OrderItemResponse(BaseModel):
    id: int
    service_id: Optional[int] = None
    service_name: Optional[str] = None
    quantity: int
    unit_price: float
    total_price: float
    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    id: int
    room_number: str
    guest_name: Optional[str] = None
    guest_id: Optional[int] = None
    reservation_id: Optional[int] = None
    room_price: float
    services_total: float
    total: float
    check_in_date: Optional[date] = None
    check_in_time: Optional[time] = None
    check_out_date: Optional[date] = None
    check_out_time: Optional[time] = None
    status: OrderStatus
    payment_method: Optional[PaymentMethod] = None
    payment_status: Optional[PaymentStatus] = None
    items: List[OrderItemResponse] = []
    model_config = ConfigDict(from_attributes=True)


class CheckoutRequest(BaseModel):
    room_number: str
    payment_method: PaymentMethod = PaymentMethod.CASH


class StockUpdate(BaseModel):
    delta: int


# ============== 预订 Schemas ==============

class ReservationBase(BaseModel):
    guest_id: int
    room_id: Optional[int] = None
    branch_id: Optional[int] = None
    check_in_date: date
    check_out_date: date
    adults: int = Field(default=1, ge=1)
    children: int = Field(default=0, ge=0)
    rate: Decimal = Field(default=Decimal("0"), ge=0)
    total_amount: Optional[Decimal] = Field(None, ge=0)
    paid_amount: Decimal = Field(default=Decimal("0"), ge=0)
    booking_source: str = "direct"
    special_requests: Optional[str] = None


class ReservationCreate(ReservationBase):

    @model_validator(mode="after")
    def check_dates(self):
        if self.check_out_date <= self.check_in_date:
            raise ValueError("退房日期必须晚于入住日期")
        return self


class ReservationUpdate(BaseModel):
    room_id: Optional[int] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    adults: Optional[int] = Field(None, ge=1)
    children: Optional[int] = Field(None, ge=0)
    rate: Optional[Decimal] = Field(None, ge=0)
    total_amount: Optional[Decimal] = Field(None, ge=0)
    paid_amount: Optional[Decimal] = Field(None, ge=0)
    payment_status: Optional[PaymentStatus] = None
    booking_source: Optional[str] = None
    special_requests: Optional[str] = None


class ReservationStatusUpdate(BaseModel):
    status: ReservationStatus


class ReservationResponse(BaseModel):
    id: int
    confirmation_code: str
    guest_id: int
    guest_name: Optional[str] = None
    room_id: Optional[int] = None
    room_number: Optional[str] = None
    branch_id: Optional[int] = None
    check_in_date: date
    check_out_date: date
    adults: int
    children: int
    rate: float
    total_amount: float
    paid_amount: float
    status: ReservationStatus
    payment_status: PaymentStatus
    booking_source: Optional[str] = None
    special_requests: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ReservationPage(BaseModel):
    items: List[ReservationResponse]
    total: int
    page: int
    limit: int
    pages: int


# ============== 前台 Schemas ==============

class ReceptionCheckIn(BaseModel):
    room_number: Optional[str] = None


class ReceptionCheckOut(BaseModel):
    additional_charges: Decimal = Field(default=Decimal("0"), ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH


class RoomAssign(BaseModel):
    room_number: str


# ============== 客人 Schemas ==============

class GuestBase(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    dni: Optional[str] = None
    passport: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    nationality: Optional[str] = None
    birth_date: Optional[date] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    preferences: Optional[str] = None
    vip_status: bool = False
    blacklisted: bool = False
    notes: Optional[str] = None


class GuestCreate(GuestBase):
    pass


class GuestUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    dni: Optional[str] = None
    passport: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    nationality: Optional[str] = None
    birth_date: Optional[date] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    preferences: Optional[str] = None
    vip_status: Optional[bool] = None
    blacklisted: Optional[bool] = None
    notes: Optional[str] = None


class GuestResponse(GuestBase):
    id: int
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# ============== 库存 Schemas ==============

class InventoryItemBase(BaseModel):
    name: str = Field(..., max_length=100)
    sku: Optional[str] = None
    description: Optional[str] = None
    category: SupplyCategory
    supplier: Optional[str] = None
    unit: str = "unidad"
    current_stock: int = Field(default=0, ge=0)
    min_stock: int = Field(default=0, ge=0)
    max_stock: int = Field(default=100, ge=1)
    unit_cost: Decimal = Field(default=Decimal("0"), ge=0)
    location: Optional[str] = None
    expiry_date: Optional[date] = None
    branch_id: Optional[int] = None


class InventoryItemCreate(InventoryItemBase):
    pass


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    sku: Optional[str] = None
    description: Optional[str] = None
    category: Optional[SupplyCategory] = None
    supplier: Optional[str] = None
    unit: Optional[str] = None
    min_stock: Optional[int] = Field(None, ge=0)
    max_stock: Optional[int] = Field(None, ge=1)
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    location: Optional[str] = None
    expiry_date: Optional[date] = None
    status: Optional[SupplyStatus] = None


class InventoryItemResponse(BaseModel):
    id: int
    branch_id: Optional[int] = None
    name: str
    sku: Optional[str] = None
    description: Optional[str] = None
    category: SupplyCategory
    supplier: Optional[str] = None
    unit: Optional[str] = None
    current_stock: int
    min_stock: int
    max_stock: int
    unit_cost: float
    location: Optional[str] = None
    expiry_date: Optional[date] = None
    status: SupplyStatus
    is_low_stock: bool = False
    is_out_of_stock: bool = False
    is_expiring: bool = False
    stock_level: float = 0
    model_config = ConfigDict(from_attributes=True)


class StockAdjustment(BaseModel):
    delta: int
    reason: Optional[str] = None


# ============== 设置 Schemas ==============

class SettingUpdate(BaseModel):
    value: Any
    category: Optional[str] = None


class SettingsBulkUpdate(BaseModel):
    settings: Dict[str, Any]


class SettingsImport(BaseModel):
    settings: Dict[str, Any]
    export_date: Optional[str] = None
    hotel_name: Optional[str] = None

    @field_validator("settings")
    @classmethod
    def check_entries(cls, value):
        for key, entry in value.items():
            if not isinstance(entry, dict) or "value" not in entry:
                raise ValueError(f"配置项 {key} 格式无效")
        return value
