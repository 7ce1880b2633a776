"""
认证与员工管理 API 测试
"""
from fastapi.testclient import TestClient

from hotelpms.models.ontology import StaffRole
from hotelpms.security import permissions as perms


class TestLogin:

    def test_login_success(self, client: TestClient, reception_staff):
        response = client.post("/auth/login", json={"username": "reception1", "password": "123456"})

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["staff"]["username"] == "reception1"
        assert perms.CREATE_ORDERS in data["permissions"]
        assert perms.MANAGE_INVENTORY not in data["permissions"]

    def test_login_wrong_password(self, client: TestClient, reception_staff):
        response = client.post("/auth/login", json={"username": "reception1", "password": "wrong"})

        assert response.status_code == 401
        assert response.json()["detail"]

    def test_login_unknown_user(self, client: TestClient):
        response = client.post("/auth/login", json={"username": "ghost", "password": "123456"})
        assert response.status_code == 401

    def test_login_inactive(self, client: TestClient, db_session, reception_staff):
        reception_staff.is_active = False
        db_session.commit()

        response = client.post("/auth/login", json={"username": "reception1", "password": "123456"})

        assert response.status_code == 401
        assert response.json()["detail"] == "账号已停用"


class TestCurrentUser:

    def test_me(self, client: TestClient, manager_auth_headers):
        response = client.get("/auth/me", headers=manager_auth_headers)

        assert response.status_code == 200
        assert response.json()["role"] == "manager"

    def test_me_requires_token(self, client: TestClient):
        response = client.get("/auth/me")
        assert response.status_code in (401, 403)

    def test_me_invalid_token(self, client: TestClient):
        response = client.get("/auth/me", headers={"Authorization": "Bearer invalid"})
        assert response.status_code == 401

    def test_my_permissions(self, client: TestClient, housekeeping_auth_headers):
        response = client.get("/auth/me/permissions", headers=housekeeping_auth_headers)

        assert response.status_code == 200
        assert set(response.json()) == set(perms.ROLE_PERMISSIONS[StaffRole.HOUSEKEEPING])

    def test_change_password(self, client: TestClient, reception_auth_headers):
        response = client.post("/auth/password", headers=reception_auth_headers, json={
            "old_password": "123456", "new_password": "abcdef"
        })
        assert response.status_code == 200

        login = client.post("/auth/login", json={"username": "reception1", "password": "abcdef"})
        assert login.status_code == 200

    def test_change_password_wrong_old(self, client: TestClient, reception_auth_headers):
        response = client.post("/auth/password", headers=reception_auth_headers, json={
            "old_password": "nope", "new_password": "abcdef"
        })

        assert response.status_code == 400
        assert response.json()["detail"] == "原密码错误"


class TestStaffManagement:

    def test_register_staff(self, client: TestClient, admin_auth_headers, sample_branch):
        response = client.post("/auth/staff", headers=admin_auth_headers, json={
            "username": "reception2",
            "full_name": "前台小张",
            "password": "123456",
            "role": "reception"
        })

        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "reception2"
        assert data["branch_id"] == sample_branch.id

    def test_register_duplicate(self, client: TestClient, admin_auth_headers, reception_staff):
        response = client.post("/auth/staff", headers=admin_auth_headers, json={
            "username": "reception1", "full_name": "Dup", "password": "123456"
        })

        assert response.status_code == 400
        assert "已存在" in response.json()["detail"]

    def test_register_forbidden(self, client: TestClient, reception_auth_headers):
        response = client.post("/auth/staff", headers=reception_auth_headers, json={
            "username": "intruder", "full_name": "X", "password": "123456"
        })
        assert response.status_code == 403

    def test_list_staff(self, client: TestClient, admin_auth_headers, reception_staff):
        response = client.get("/auth/staff", headers=admin_auth_headers, params={"role": "reception"})

        assert response.status_code == 200
        assert [s["username"] for s in response.json()] == ["reception1"]

    def test_deactivate_self(self, client: TestClient, admin_auth_headers, admin_staff):
        response = client.post(f"/auth/staff/{admin_staff.id}/deactivate", headers=admin_auth_headers)

        assert response.status_code == 400

    def test_deactivate_staff(self, client: TestClient, admin_auth_headers, reception_staff):
        response = client.post(f"/auth/staff/{reception_staff.id}/deactivate", headers=admin_auth_headers)

        assert response.status_code == 200
        assert response.json()["is_active"] is False
