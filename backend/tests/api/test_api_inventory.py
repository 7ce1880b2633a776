"""
库存 API 测试
"""
import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from hotelpms.models.ontology import Branch, InventoryItem, SupplyCategory


@pytest.fixture
def other_branch(db_session):
    branch = Branch(name="Hotel Paraíso Cusco", code="CUS")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture
def supplies(db_session, sample_branch, other_branch):
    items = [
        InventoryItem(branch_id=sample_branch.id, name="Detergente", category=SupplyCategory.LIMPIEZA,
                      current_stock=25, min_stock=10, max_stock=50, unit_cost=Decimal("6.50")),
        InventoryItem(branch_id=other_branch.id, name="Leche", category=SupplyCategory.LACTEOS,
                      current_stock=3, min_stock=5, max_stock=40, unit_cost=Decimal("4.00")),
    ]
    db_session.add_all(items)
    db_session.commit()
    return items


class TestInventoryScope:

    def test_list_own_branch(self, client: TestClient, manager_auth_headers, supplies):
        response = client.get("/inventory", headers=manager_auth_headers)

        assert response.status_code == 200
        assert [i["name"] for i in response.json()] == ["Detergente"]

    def test_header_ignored_without_branch_permission(self, client: TestClient, manager_auth_headers,
                                                      supplies, other_branch):
        headers = {**manager_auth_headers, "X-Branch-Id": str(other_branch.id)}
        response = client.get("/inventory", headers=headers)

        assert [i["name"] for i in response.json()] == ["Detergente"]

    def test_admin_switches_branch(self, client: TestClient, admin_auth_headers, supplies, other_branch):
        headers = {**admin_auth_headers, "X-Branch-Id": str(other_branch.id)}
        response = client.get("/inventory", headers=headers)

        data = response.json()
        assert [i["name"] for i in data] == ["Leche"]
        assert data[0]["is_low_stock"] is True

    def test_item_from_other_branch(self, client: TestClient, manager_auth_headers, supplies):
        response = client.get(f"/inventory/{supplies[1].id}", headers=manager_auth_headers)
        assert response.status_code == 404


class TestInventoryWrites:

    def test_create(self, client: TestClient, manager_auth_headers, sample_branch):
        response = client.post("/inventory", headers=manager_auth_headers, json={
            "name": "Papel higiénico",
            "category": "amenities",
            "current_stock": 40,
            "min_stock": 20,
            "unit_cost": "0.80"
        })

        assert response.status_code == 200
        data = response.json()
        assert data["branch_id"] == sample_branch.id
        assert data["status"] == "active"
        assert data["stock_level"] == 40.0

    def test_create_forbidden(self, client: TestClient, reception_auth_headers, housekeeping_auth_headers):
        payload = {"name": "Jabón", "category": "amenities"}

        assert client.post("/inventory", headers=reception_auth_headers, json=payload).status_code == 403
        response = client.post("/inventory", headers=housekeeping_auth_headers, json=payload)
        assert response.status_code == 403
        assert response.json()["detail"] == "无权管理库存"

    def test_adjust(self, client: TestClient, manager_auth_headers, supplies):
        response = client.post(f"/inventory/{supplies[0].id}/adjust", headers=manager_auth_headers,
                               json={"delta": -20, "reason": "limpieza general"})

        assert response.status_code == 200
        assert response.json()["current_stock"] == 5
        assert response.json()["is_low_stock"] is True

    def test_adjust_below_zero(self, client: TestClient, manager_auth_headers, supplies):
        response = client.post(f"/inventory/{supplies[0].id}/adjust", headers=manager_auth_headers,
                               json={"delta": -30})

        assert response.status_code == 400
        assert "库存不足" in response.json()["detail"]

    def test_update_and_delete(self, client: TestClient, manager_auth_headers, supplies):
        item_id = supplies[0].id
        response = client.put(f"/inventory/{item_id}", headers=manager_auth_headers,
                              json={"supplier": "Distribuidora Lima"})
        assert response.json()["supplier"] == "Distribuidora Lima"

        assert client.delete(f"/inventory/{item_id}", headers=manager_auth_headers).status_code == 200
        assert client.delete(f"/inventory/{item_id}", headers=manager_auth_headers).status_code == 404

    def test_stats(self, client: TestClient, manager_auth_headers, supplies):
        response = client.get("/inventory/stats", headers=manager_auth_headers)

        assert response.status_code == 200
        assert response.json()["total_supplies"] == 1
