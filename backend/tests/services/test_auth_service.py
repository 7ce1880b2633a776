"""
认证服务测试
错误文案映射、登录与员工注册
"""
import pytest

from hotelpms.models.ontology import StaffRole
from hotelpms.models.schemas import StaffCreate
from hotelpms.services.auth_service import (
    AuthService, AuthenticationError, auth_error_message,
    INVALID_CREDENTIALS, USER_EXISTS, USER_INACTIVE
)


@pytest.fixture
def service(db_session):
    return AuthService(db_session)


class TestAuthErrorMessage:

    def test_known_messages(self):
        assert auth_error_message(INVALID_CREDENTIALS) == "用户名或密码错误"
        assert auth_error_message("Email not confirmed") == "邮箱未验证"
        assert auth_error_message(USER_EXISTS) == "该用户已注册"
        assert auth_error_message("Password should be at least 6 characters") == "密码至少需要 6 位"
        assert auth_error_message("Too many requests") == "尝试次数过多，请稍后再试"

    def test_unknown_passthrough(self):
        assert auth_error_message("Network unreachable") == "Network unreachable"
        assert auth_error_message(None) is None
        assert auth_error_message("") is None


class TestLogin:

    def test_wrong_password(self, service, reception_staff):
        with pytest.raises(AuthenticationError) as exc_info:
            service.login("reception1", "wrong")

        assert exc_info.value.code == INVALID_CREDENTIALS
        assert str(exc_info.value) == "用户名或密码错误"

    def test_inactive(self, service, db_session, reception_staff):
        reception_staff.is_active = False
        db_session.commit()

        with pytest.raises(AuthenticationError) as exc_info:
            service.login("reception1", "123456")
        assert exc_info.value.code == USER_INACTIVE


class TestRegisterStaff:

    def test_duplicate_username(self, service, admin_staff, reception_staff):
        with pytest.raises(ValueError, match="已存在"):
            service.register_staff(StaffCreate(
                username="reception1", password="123456", full_name="Otra", role=StaffRole.RECEPTION
            ), admin_staff)
