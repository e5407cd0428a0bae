from fastapi.testclient import TestClient

from tests.conftest import register

# Wednesday
DAY = "2026-11-04"


def book(client: TestClient, headers, field_id, start, duration=2):
    return client.post(
        "/api/reservations",
        json={"field_id": field_id, "start_at": f"{DAY}T{start}:00", "duration_hours": duration},
        headers=headers,
    )


def test_booking_starts_pending_and_is_priced(client: TestClient, player, complex_with_field):
    field_id = complex_with_field["field"]["id"]

    response = book(client, player["headers"], field_id, "18:00", 1.5)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending_payment"
    assert body["user_id"] == player["user"]["id"]
    assert body["start_at"] == f"{DAY}T18:00:00"
    assert body["end_at"] == f"{DAY}T19:30:00"
    assert body["total_price"] == 15000


def test_booking_price_follows_rules_per_half_hour(client: TestClient, admin, player, complex_with_field):
    field_id = complex_with_field["field"]["id"]
    client.put(
        f"/api/fields/{field_id}/pricing",
        json={"hourly_price": 10000,
              "rules": [{"day_of_week": 3, "start_time": "19:00", "end_time": "23:00", "price": 16000}]},
        headers=admin["headers"],
    )

    # 18:00-19:00 at base, 19:00-20:00 at peak
    response = book(client, player["headers"], field_id, "18:00", 2)

    assert response.json()["total_price"] == 26000


def test_overlapping_booking_is_rejected(client: TestClient, player, complex_with_field):
    field_id = complex_with_field["field"]["id"]
    assert book(client, player["headers"], field_id, "18:00").status_code == 201

    other = register(client, "other@example.com")
    overlap = book(client, other["headers"], field_id, "19:00")
    touching = book(client, other["headers"], field_id, "20:00")

    assert overlap.status_code == 409
    assert touching.status_code == 201


def test_booking_outside_operating_hours(client: TestClient, player, complex_with_field):
    field_id = complex_with_field["field"]["id"]

    assert book(client, player["headers"], field_id, "07:00", 1).status_code == 422
    assert book(client, player["headers"], field_id, "22:30", 1).status_code == 422
    assert book(client, player["headers"], field_id, "22:00", 1).status_code == 201


def test_booking_validation(client: TestClient, player, complex_with_field):
    field_id = complex_with_field["field"]["id"]

    assert book(client, player["headers"], field_id, "18:00", 4).status_code == 422
    assert book(client, player["headers"], 999, "18:00").status_code == 404
    assert client.post("/api/reservations", json={"field_id": field_id, "start_at": f"{DAY}T18:00:00"}).status_code == 401


def test_confirm_and_complete_are_owner_only(client: TestClient, admin, player, complex_with_field):
    reservation_id = book(client, player["headers"], complex_with_field["field"]["id"], "18:00").json()["id"]

    assert client.post(f"/api/reservations/{reservation_id}/confirm", headers=player["headers"]).status_code == 403

    confirmed = client.post(f"/api/reservations/{reservation_id}/confirm", headers=admin["headers"])
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"

    assert client.post(f"/api/reservations/{reservation_id}/complete", headers=player["headers"]).status_code == 403
    completed = client.post(f"/api/reservations/{reservation_id}/complete", headers=admin["headers"])
    assert completed.json()["status"] == "completed"

    # Terminal
    assert client.post(f"/api/reservations/{reservation_id}/cancel", headers=player["headers"]).status_code == 409


def test_pending_cannot_be_completed(client: TestClient, admin, player, complex_with_field):
    reservation_id = book(client, player["headers"], complex_with_field["field"]["id"], "18:00").json()["id"]

    response = client.post(f"/api/reservations/{reservation_id}/complete", headers=admin["headers"])

    assert response.status_code == 409


def test_canceling_frees_the_slot(client: TestClient, player, complex_with_field):
    field_id = complex_with_field["field"]["id"]
    reservation_id = book(client, player["headers"], field_id, "18:00").json()["id"]

    canceled = client.post(f"/api/reservations/{reservation_id}/cancel", headers=player["headers"])
    assert canceled.json()["status"] == "canceled"

    assert book(client, player["headers"], field_id, "18:00").status_code == 201


def test_reservation_visibility(client: TestClient, admin, player, complex_with_field):
    reservation_id = book(client, player["headers"], complex_with_field["field"]["id"], "18:00").json()["id"]
    stranger = register(client, "stranger@example.com")

    assert client.get(f"/api/reservations/{reservation_id}", headers=player["headers"]).status_code == 200
    assert client.get(f"/api/reservations/{reservation_id}", headers=admin["headers"]).status_code == 200
    assert client.get(f"/api/reservations/{reservation_id}", headers=stranger["headers"]).status_code == 403
    assert client.post(f"/api/reservations/{reservation_id}/cancel", headers=stranger["headers"]).status_code == 403
    assert client.get("/api/reservations/999", headers=player["headers"]).status_code == 404


def test_my_reservations_newest_start_first(client: TestClient, player, complex_with_field):
    field_id = complex_with_field["field"]["id"]
    book(client, player["headers"], field_id, "10:00")
    book(client, player["headers"], field_id, "18:00")

    mine = client.get("/api/reservations/mine", headers=player["headers"]).json()

    assert [r["start_at"][11:16] for r in mine] == ["18:00", "10:00"]
