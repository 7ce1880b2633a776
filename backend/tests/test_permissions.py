"""
权限模块测试
"""
import pytest

from hotelpms.models.ontology import Staff, StaffRole
from hotelpms.security import permissions as perms
from hotelpms.security.auth import (
    get_password_hash, verify_password, create_access_token, decode_token
)
from fastapi import HTTPException


def _staff(role, permissions=None, is_active=True):
    return Staff(username="u", full_name="U", password_hash="x", role=role,
                 permissions=permissions or {}, is_active=is_active)


class TestHasPermission:

    def test_admin_has_everything(self):
        admin = _staff(StaffRole.ADMIN)
        assert all(perms.has_permission(admin, p) for p in perms.ALL_PERMISSIONS)

    def test_role_defaults(self):
        reception = _staff(StaffRole.RECEPTION)
        assert perms.has_permission(reception, perms.CREATE_RESERVATIONS)
        assert not perms.has_permission(reception, perms.MANAGE_INVENTORY)

        housekeeping = _staff(StaffRole.HOUSEKEEPING)
        assert perms.has_permission(housekeeping, perms.MANAGE_CLEANING)
        assert not perms.has_permission(housekeeping, perms.VIEW_RESERVATIONS)

    def test_custom_grants(self):
        reception = _staff(StaffRole.RECEPTION, {perms.MANAGE_INVENTORY: True, perms.VIEW_STAFF: False})
        assert perms.has_permission(reception, perms.MANAGE_INVENTORY)
        assert not perms.has_permission(reception, perms.VIEW_STAFF)

    def test_inactive_staff_has_nothing(self):
        admin = _staff(StaffRole.ADMIN, is_active=False)
        assert not perms.has_permission(admin, perms.VIEW_ROOMS)
        assert not perms.has_permission(None, perms.VIEW_ROOMS)

    def test_any_and_all(self):
        manager = _staff(StaffRole.MANAGER)
        assert perms.has_any_permission(manager, [perms.SYSTEM_SETTINGS, perms.VIEW_REPORTS])
        assert not perms.has_all_permissions(manager, [perms.SYSTEM_SETTINGS, perms.VIEW_REPORTS])

    def test_ensure_permission(self):
        with pytest.raises(PermissionError, match="无权"):
            perms.ensure_permission(_staff(StaffRole.RESTAURANT), perms.SYSTEM_SETTINGS, "无权修改系统设置")

    def test_can_change_branch(self):
        assert perms.can_change_branch(_staff(StaffRole.ADMIN))
        assert not perms.can_change_branch(_staff(StaffRole.MANAGER))
        assert perms.can_change_branch(_staff(StaffRole.MANAGER, {perms.MANAGE_BRANCHES: True}))

    def test_unknown_role(self):
        assert perms.get_role_permissions("ghost") == []


class TestTokens:

    def test_password_hash(self):
        hashed = get_password_hash("123456")
        assert hashed != "123456"
        assert verify_password("123456", hashed)
        assert not verify_password("654321", hashed)

    def test_token_round_trip(self):
        token = create_access_token(7, StaffRole.RECEPTION, branch_id=2)
        payload = decode_token(token)

        assert payload["sub"] == "7"
        assert payload["role"] == "reception"
        assert payload["branch_id"] == 2

    def test_invalid_token(self):
        with pytest.raises(HTTPException) as exc:
            decode_token("not-a-token")
        assert exc.value.status_code == 401
