"""
客人管理 API 测试
"""
from fastapi.testclient import TestClient


class TestGuestsApi:

    def test_create_and_get(self, client: TestClient, reception_auth_headers):
        response = client.post("/guests", headers=reception_auth_headers, json={
            "full_name": "Jorge Quispe", "dni": "70112233", "nationality": "Perú", "vip_status": True
        })

        assert response.status_code == 200
        guest_id = response.json()["id"]

        response = client.get(f"/guests/{guest_id}", headers=reception_auth_headers)
        assert response.json()["full_name"] == "Jorge Quispe"

        vip = client.get("/guests/vip", headers=reception_auth_headers).json()
        assert [g["id"] for g in vip] == [guest_id]

    def test_create_requires_name(self, client: TestClient, reception_auth_headers):
        response = client.post("/guests", headers=reception_auth_headers, json={"full_name": ""})
        assert response.status_code == 422

    def test_search(self, client: TestClient, reception_auth_headers, sample_guest):
        response = client.get("/guests/search", headers=reception_auth_headers, params={"q": "45678"})

        assert response.status_code == 200
        assert [g["id"] for g in response.json()] == [sample_guest.id]

    def test_update(self, client: TestClient, reception_auth_headers, sample_guest):
        response = client.put(f"/guests/{sample_guest.id}", headers=reception_auth_headers,
                              json={"phone": "999888777"})

        assert response.status_code == 200
        assert response.json()["phone"] == "999888777"
        assert client.put("/guests/999", headers=reception_auth_headers, json={}).status_code == 404

    def test_delete_with_history(self, client: TestClient, reception_auth_headers, sample_reservation):
        response = client.delete(f"/guests/{sample_reservation.guest_id}", headers=reception_auth_headers)

        assert response.status_code == 400
        assert "无法删除" in response.json()["detail"]

    def test_delete(self, client: TestClient, reception_auth_headers, sample_guest):
        response = client.delete(f"/guests/{sample_guest.id}", headers=reception_auth_headers)

        assert response.status_code == 200
        assert client.get(f"/guests/{sample_guest.id}", headers=reception_auth_headers).status_code == 404

    def test_history_and_stats(self, client: TestClient, reception_auth_headers, sample_reservation):
        guest_id = sample_reservation.guest_id

        history = client.get(f"/guests/{guest_id}/history", headers=reception_auth_headers).json()
        assert history[0]["type"] == "reservation"
        assert history[0]["reference"] == "HTP-2026-TEST01"

        stats = client.get(f"/guests/{guest_id}/stats", headers=reception_auth_headers).json()
        assert stats["reservations_count"] == 1
        assert stats["total_visits"] == 0

        assert client.get("/guests/999/history", headers=reception_auth_headers).status_code == 404

    def test_housekeeping_forbidden(self, client: TestClient, housekeeping_auth_headers):
        assert client.get("/guests", headers=housekeeping_auth_headers).status_code == 403
