"""
前台 API 测试
"""
from datetime import date
from fastapi.testclient import TestClient


class TestReceptionCheckInOut:

    def test_check_in(self, client: TestClient, reception_auth_headers, sample_reservation):
        response = client.post(f"/reception/reservations/{sample_reservation.id}/check-in",
                               headers=reception_auth_headers, json={})

        assert response.status_code == 200
        data = response.json()
        assert data["room_number"] == "101"
        assert data["reservation_id"] == sample_reservation.id
        assert data["room_price"] == 160.0

        reservation = client.get(f"/reservations/{sample_reservation.id}", headers=reception_auth_headers)
        assert reservation.json()["status"] == "checked_in"

    def test_check_in_twice(self, client: TestClient, reception_auth_headers, sample_reservation):
        url = f"/reception/reservations/{sample_reservation.id}/check-in"
        client.post(url, headers=reception_auth_headers, json={})

        response = client.post(url, headers=reception_auth_headers, json={})
        assert response.status_code == 400

    def test_check_out(self, client: TestClient, reception_auth_headers, sample_reservation):
        client.post(f"/reception/reservations/{sample_reservation.id}/check-in",
                    headers=reception_auth_headers, json={})

        response = client.post(f"/reception/reservations/{sample_reservation.id}/check-out",
                               headers=reception_auth_headers,
                               json={"additional_charges": "25.50", "payment_method": "transfer"})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["total"] == 185.5
        assert data["payment_status"] == "paid"

    def test_check_out_without_check_in(self, client: TestClient, reception_auth_headers, sample_reservation):
        response = client.post(f"/reception/reservations/{sample_reservation.id}/check-out",
                               headers=reception_auth_headers, json={})
        assert response.status_code == 400

    def test_unknown_reservation(self, client: TestClient, reception_auth_headers):
        response = client.post("/reception/reservations/999/check-in", headers=reception_auth_headers, json={})
        assert response.status_code == 400

    def test_housekeeping_forbidden(self, client: TestClient, housekeeping_auth_headers, sample_reservation):
        response = client.post(f"/reception/reservations/{sample_reservation.id}/check-in",
                               headers=housekeeping_auth_headers, json={})
        assert response.status_code == 403


class TestReceptionBoard:

    def test_overview(self, client: TestClient, reception_auth_headers, sample_reservation):
        response = client.get("/reception", headers=reception_auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data["arrivals"]) == 1

    def test_arrivals_and_departures(self, client: TestClient, reception_auth_headers, sample_reservation):
        arrivals = client.get("/reception/arrivals", headers=reception_auth_headers)
        departures = client.get("/reception/departures", headers=reception_auth_headers)

        assert [r["confirmation_code"] for r in arrivals.json()] == ["HTP-2026-TEST01"]
        assert departures.json() == []

    def test_room_status(self, client: TestClient, reception_auth_headers, sample_room):
        response = client.patch("/reception/rooms/101/status", headers=reception_auth_headers,
                                json={"status": "maintenance"})

        assert response.status_code == 200
        assert response.json()["status"] == "maintenance"

    def test_room_history_unknown(self, client: TestClient, reception_auth_headers):
        response = client.get("/reception/rooms/999/history", headers=reception_auth_headers)
        assert response.status_code == 404

    def test_occupancy_invalid_range(self, client: TestClient, reception_auth_headers):
        response = client.get("/reception/occupancy", headers=reception_auth_headers, params={
            "start_date": date(2026, 3, 10).isoformat(), "end_date": date(2026, 3, 1).isoformat()
        })
        assert response.status_code == 400
