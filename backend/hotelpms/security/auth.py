"""
认证与授权模块
bcrypt 密码哈希 + JWT 令牌，权限基于角色默认权限和个人额外授权
"""
import bcrypt
import logging
from datetime import datetime, timedelta, UTC
from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session
from hotelpms.config import settings
from hotelpms.database import get_db
from hotelpms.models.ontology import Staff, StaffRole
from hotelpms.security.permissions import has_permission, can_change_branch

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_password_hash(password: str) -> str:
    """密码哈希"""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """验证密码"""
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


def create_access_token(staff_id: int, role: StaffRole,
                        branch_id: Optional[int] = None) -> str:
    """创建 JWT token"""
    expire = datetime.now(UTC) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {
        "sub": str(staff_id),
        "role": role.value if isinstance(role, StaffRole) else str(role),
        "exp": expire
    }
    if branch_id is not None:
        to_encode["branch_id"] = branch_id
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    """解码 JWT token"""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="无效的认证凭证"
        )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Staff:
    """获取当前登录员工"""
    payload = decode_token(credentials.credentials)

    staff_id = int(payload.get("sub"))
    staff = db.query(Staff).filter(Staff.id == staff_id).first()

    if not staff:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="用户不存在"
        )

    if not staff.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="账号已停用"
        )

    return staff


def require_permission(*permission_codes: str):
    """权限检查依赖，支持多个权限码（OR 逻辑）"""
    async def permission_checker(current_user: Staff = Depends(get_current_user)):
        for code in permission_codes:
            if has_permission(current_user, code):
                return current_user

        logger.warning(f"Staff {current_user.username} denied: {', '.join(permission_codes)}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"缺少权限: {', '.join(permission_codes)}"
        )
    return permission_checker


async def get_current_branch_id(
    request: Request,
    current_user: Staff = Depends(get_current_user),
) -> Optional[int]:
    """当前操作分店

    可切换分店的员工可用 X-Branch-Id header 覆盖，其余员工固定为所属分店。
    """
    branch_id = current_user.branch_id
    header_branch = request.headers.get("X-Branch-Id")
    if header_branch and can_change_branch(current_user):
        try:
            branch_id = int(header_branch)
        except (ValueError, TypeError):
            pass
    return branch_id
