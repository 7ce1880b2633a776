"""
员工与认证服务
登录、员工注册/资料维护、密码修改、员工列表、停用
"""
from datetime import datetime
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from hotelpms.models.ontology import Staff, StaffRole
from hotelpms.models.schemas import StaffCreate, StaffUpdate, PasswordChange
from hotelpms.security import permissions as perms
from hotelpms.security.auth import get_password_hash, verify_password, create_access_token

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid login credentials"
USER_NOT_FOUND = "User not found"
USER_INACTIVE = "User inactive"
USER_EXISTS = "User already registered"

AUTH_ERROR_MESSAGES = {
    INVALID_CREDENTIALS: "用户名或密码错误",
    "Email not confirmed": "邮箱未验证",
    "Too many requests": "尝试次数过多，请稍后再试",
    USER_NOT_FOUND: "用户不存在",
    USER_INACTIVE: "账号已停用",
    USER_EXISTS: "该用户已注册",
    "Invalid email": "邮箱格式无效",
    "Password should be at least 6 characters": "密码至少需要 6 位",
}


def auth_error_message(message: Optional[str]) -> Optional[str]:
    """将认证错误转换为提示文案，未知错误原样返回"""
    if not message:
        return None
    return AUTH_ERROR_MESSAGES.get(message, message)


class AuthenticationError(Exception):
    """登录失败"""

    def __init__(self, code: str):
        self.code = code
        super().__init__(auth_error_message(code))


class AuthService:
    """员工与认证服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_staff(self, staff_id: int) -> Optional[Staff]:
        return self.db.query(Staff).filter(Staff.id == staff_id).first()

    def get_staff_by_username(self, username: str) -> Optional[Staff]:
        return self.db.query(Staff).filter(Staff.username == username).first()

    def login(self, username: str, password: str) -> dict:
        """校验凭证并签发令牌"""
        staff = self.get_staff_by_username(username)
        if not staff or not verify_password(password, staff.password_hash):
            logger.info(f"Login failed for {username}")
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not staff.is_active:
            raise AuthenticationError(USER_INACTIVE)

        staff.last_login = datetime.now()
        self.db.commit()
        self.db.refresh(staff)

        token = create_access_token(staff.id, staff.role, staff.branch_id)
        return {
            "access_token": token,
            "token_type": "bearer",
            "staff": staff,
            "permissions": self.get_effective_permissions(staff),
        }

    @staticmethod
    def get_effective_permissions(staff: Staff) -> List[str]:
        """角色权限与个人授权合并后的权限列表"""
        return [p for p in perms.ALL_PERMISSIONS if perms.has_permission(staff, p)]

    def register_staff(self, data: StaffCreate, operator: Staff) -> Staff:
        """注册员工（需要员工管理权限）"""
        perms.ensure_permission(operator, perms.MANAGE_STAFF, "没有注册员工的权限")
        if self.get_staff_by_username(data.username):
            raise ValueError(f"用户名 '{data.username}' 已存在")

        staff = Staff(
            username=data.username,
            password_hash=get_password_hash(data.password),
            full_name=data.full_name,
            email=data.email,
            phone=data.phone,
            role=data.role,
            department=data.department,
            branch_id=data.branch_id if data.branch_id is not None else operator.branch_id,
            employee_id=data.employee_id,
            permissions=data.permissions or {},
            is_active=True,
        )
        self.db.add(staff)
        self.db.commit()
        self.db.refresh(staff)
        logger.info(f"Staff {staff.username} registered by {operator.username}")
        return staff

    def update_staff_profile(self, staff_id: int, data: StaffUpdate, operator: Staff) -> Staff:
        """更新员工资料；本人可改基本信息，角色/分店/授权需要员工管理权限"""
        staff = self.get_staff(staff_id)
        if not staff:
            raise ValueError("员工不存在")

        update_data = data.model_dump(exclude_unset=True)
        privileged = {"role", "branch_id", "permissions", "department"}
        if operator.id != staff_id or privileged & update_data.keys():
            perms.ensure_permission(operator, perms.MANAGE_STAFF, "没有修改该员工资料的权限")

        if update_data.get("role") and update_data["role"] != StaffRole.ADMIN and staff.role == StaffRole.ADMIN:
            self._ensure_not_last_admin(staff)

        for key, value in update_data.items():
            setattr(staff, key, value)

        self.db.commit()
        self.db.refresh(staff)
        return staff

    def change_password(self, staff_id: int, data: PasswordChange) -> bool:
        """修改密码（本人操作）"""
        staff = self.get_staff(staff_id)
        if not staff:
            raise ValueError("员工不存在")

        if not verify_password(data.old_password, staff.password_hash):
            raise ValueError("原密码错误")

        staff.password_hash = get_password_hash(data.new_password)
        self.db.commit()
        return True

    def get_staff_list(self, operator: Staff, role: Optional[StaffRole] = None,
                       department: Optional[str] = None, status: Optional[str] = None,
                       branch_id: Optional[int] = None) -> List[Staff]:
        """员工列表，status 取 active / inactive"""
        perms.ensure_permission(operator, perms.VIEW_STAFF, "没有查看员工列表的权限")
        query = self.db.query(Staff)

        if role:
            query = query.filter(Staff.role == role)
        if department:
            query = query.filter(Staff.department == department)
        if status == "active":
            query = query.filter(Staff.is_active == True)
        elif status == "inactive":
            query = query.filter(Staff.is_active == False)
        if branch_id is not None:
            query = query.filter(Staff.branch_id == branch_id)

        return query.order_by(Staff.full_name).all()

    def deactivate_staff(self, staff_id: int, operator: Staff) -> Staff:
        """停用员工"""
        perms.ensure_permission(operator, perms.MANAGE_STAFF, "没有停用员工的权限")
        staff = self.get_staff(staff_id)
        if not staff:
            raise ValueError("员工不存在")
        if staff.id == operator.id:
            raise ValueError("不能停用自己的账号")
        if staff.role == StaffRole.ADMIN:
            self._ensure_not_last_admin(staff)

        staff.is_active = False
        self.db.commit()
        self.db.refresh(staff)
        logger.info(f"Staff {staff.username} deactivated by {operator.username}")
        return staff

    def _ensure_not_last_admin(self, staff: Staff) -> None:
        admin_count = self.db.query(Staff).filter(
            Staff.role == StaffRole.ADMIN,
            Staff.is_active == True
        ).count()
        if admin_count <= 1:
            raise ValueError("系统需至少保留一个管理员账号")
