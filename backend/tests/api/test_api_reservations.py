"""
预订管理 API 测试
"""
from datetime import date, timedelta
from fastapi.testclient import TestClient


def _payload(guest, room=None, days_ahead=5, nights=2, **extra):
    check_in = date.today() + timedelta(days=days_ahead)
    payload = {
        "guest_id": guest.id,
        "check_in_date": check_in.isoformat(),
        "check_out_date": (check_in + timedelta(days=nights)).isoformat(),
    }
    if room is not None:
        payload["room_id"] = room.id
    payload.update(extra)
    return payload


class TestCreateReservation:

    def test_create(self, client: TestClient, reception_auth_headers, sample_guest, sample_room, sample_branch):
        response = client.post("/reservations", headers=reception_auth_headers,
                               json=_payload(sample_guest, sample_room))

        assert response.status_code == 200
        data = response.json()
        assert data["confirmation_code"].startswith(f"HTP-{date.today().year}-")
        assert data["status"] == "confirmed"
        assert data["total_amount"] == 160.0
        assert data["payment_status"] == "pending"
        assert data["room_number"] == "101"
        assert data["guest_name"] == "María García"
        assert data["branch_id"] == sample_branch.id

    def test_create_overlapping(self, client: TestClient, reception_auth_headers, sample_reservation,
                                sample_guest, sample_room):
        response = client.post("/reservations", headers=reception_auth_headers,
                               json=_payload(sample_guest, sample_room, days_ahead=1))

        assert response.status_code == 400
        assert "已被预订" in response.json()["detail"]

    def test_create_invalid_dates(self, client: TestClient, reception_auth_headers, sample_guest):
        response = client.post("/reservations", headers=reception_auth_headers,
                               json=_payload(sample_guest, nights=0))
        assert response.status_code == 422

    def test_create_unknown_guest(self, client: TestClient, reception_auth_headers, sample_guest):
        payload = _payload(sample_guest)
        payload["guest_id"] = 999

        response = client.post("/reservations", headers=reception_auth_headers, json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == "客人不存在"

    def test_create_forbidden(self, client: TestClient, housekeeping_auth_headers, sample_guest):
        response = client.post("/reservations", headers=housekeeping_auth_headers,
                               json=_payload(sample_guest))

        assert response.status_code == 403
        assert "缺少权限" in response.json()["detail"]


class TestQueryReservations:

    def test_list(self, client: TestClient, reception_auth_headers, sample_reservation):
        response = client.get("/reservations", headers=reception_auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["pages"] == 1
        assert data["items"][0]["confirmation_code"] == "HTP-2026-TEST01"

    def test_list_filters(self, client: TestClient, reception_auth_headers, sample_reservation):
        response = client.get("/reservations", headers=reception_auth_headers,
                              params={"status": "cancelled"})
        assert response.json()["total"] == 0

        response = client.get("/reservations", headers=reception_auth_headers, params={"search": "maría"})
        assert response.json()["total"] == 1

    def test_list_unknown_date_range(self, client: TestClient, reception_auth_headers):
        response = client.get("/reservations", headers=reception_auth_headers,
                              params={"date_range": "next_century"})
        assert response.status_code == 400

    def test_get_by_id_and_code(self, client: TestClient, reception_auth_headers, sample_reservation):
        by_id = client.get(f"/reservations/{sample_reservation.id}", headers=reception_auth_headers)
        by_code = client.get("/reservations/code/HTP-2026-TEST01", headers=reception_auth_headers)

        assert by_id.status_code == 200
        assert by_code.json()["id"] == sample_reservation.id

    def test_not_found(self, client: TestClient, reception_auth_headers):
        assert client.get("/reservations/999", headers=reception_auth_headers).status_code == 404
        assert client.get("/reservations/code/NOPE", headers=reception_auth_headers).status_code == 404

    def test_by_date(self, client: TestClient, reception_auth_headers, sample_reservation):
        response = client.get(f"/reservations/by-date/{date.today().isoformat()}",
                              headers=reception_auth_headers)

        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_available_rooms(self, client: TestClient, reception_auth_headers, sample_reservation):
        tomorrow = date.today() + timedelta(days=1)
        response = client.get("/reservations/available-rooms", headers=reception_auth_headers, params={
            "check_in_date": tomorrow.isoformat(),
            "check_out_date": (tomorrow + timedelta(days=1)).isoformat(),
        })
        assert response.status_code == 200
        assert response.json() == []

        response = client.get("/reservations/available-rooms", headers=reception_auth_headers, params={
            "check_in_date": tomorrow.isoformat(),
            "check_out_date": tomorrow.isoformat(),
        })
        assert response.status_code == 400

    def test_stats(self, client: TestClient, reception_auth_headers, sample_reservation):
        response = client.get("/reservations/stats", headers=reception_auth_headers)

        data = response.json()
        assert data["total"] == 1
        assert data["confirmed"] == 1
        assert data["pending_payments"] == 160.0


class TestModifyReservation:

    def test_update(self, client: TestClient, reception_auth_headers, sample_reservation):
        response = client.put(f"/reservations/{sample_reservation.id}", headers=reception_auth_headers,
                              json={"paid_amount": "160.00", "special_requests": "高层"})

        assert response.status_code == 200
        data = response.json()
        assert data["payment_status"] == "paid"
        assert data["special_requests"] == "高层"

    def test_change_status(self, client: TestClient, reception_auth_headers, sample_reservation):
        response = client.patch(f"/reservations/{sample_reservation.id}/status",
                                headers=reception_auth_headers, json={"status": "cancelled"})

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    def test_update_with_null_dates(self, client: TestClient, reception_auth_headers, sample_reservation):
        response = client.put(f"/reservations/{sample_reservation.id}", headers=reception_auth_headers,
                              json={"check_in_date": None, "check_out_date": None})

        assert response.status_code == 200
        assert response.json()["check_in_date"] == date.today().isoformat()

    def test_invalid_status_transition(self, client: TestClient, reception_auth_headers, sample_reservation):
        client.patch(f"/reservations/{sample_reservation.id}/status",
                     headers=reception_auth_headers, json={"status": "checked_in"})
        client.patch(f"/reservations/{sample_reservation.id}/status",
                     headers=reception_auth_headers, json={"status": "checked_out"})

        response = client.patch(f"/reservations/{sample_reservation.id}/status",
                                headers=reception_auth_headers, json={"status": "confirmed"})
        assert response.status_code == 400

    def test_delete_requires_permission(self, client: TestClient, reception_auth_headers, sample_reservation):
        response = client.delete(f"/reservations/{sample_reservation.id}", headers=reception_auth_headers)
        assert response.status_code == 403

    def test_delete(self, client: TestClient, admin_auth_headers, sample_reservation):
        response = client.delete(f"/reservations/{sample_reservation.id}", headers=admin_auth_headers)

        assert response.status_code == 200
        assert client.get(f"/reservations/{sample_reservation.id}",
                          headers=admin_auth_headers).status_code == 404
