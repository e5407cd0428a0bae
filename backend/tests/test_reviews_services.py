from fastapi.testclient import TestClient


def test_service_catalog(client: TestClient, admin, player):
    assert client.post("/api/services", json={"name": "Parking"}, headers=player["headers"]).status_code == 403

    created = client.post("/api/services", json={"name": " Parking ", "icon": "car"}, headers=admin["headers"])
    assert created.status_code == 201
    assert created.json()["name"] == "Parking"

    duplicate = client.post("/api/services", json={"name": "Parking"}, headers=admin["headers"])
    assert duplicate.status_code == 409

    client.post("/api/services", json={"name": "Bar"}, headers=admin["headers"])
    assert [s["name"] for s in client.get("/api/services").json()] == ["Bar", "Parking"]


def test_reviews(client: TestClient, player, complex_with_field):
    complex_id = complex_with_field["complex"]["id"]

    assert client.post(f"/api/complexes/{complex_id}/reviews", json={"rating": 5}).status_code == 401
    assert client.post(f"/api/complexes/{complex_id}/reviews", json={"rating": 6},
                       headers=player["headers"]).status_code == 422
    assert client.post("/api/complexes/999/reviews", json={"rating": 3},
                       headers=player["headers"]).status_code == 404

    created = client.post(
        f"/api/complexes/{complex_id}/reviews",
        json={"rating": 4, "comment": "Buen césped"},
        headers=player["headers"],
    )
    assert created.status_code == 201
    assert created.json()["user_id"] == player["user"]["id"]

    listed = client.get(f"/api/complexes/{complex_id}/reviews").json()
    assert [(r["rating"], r["comment"]) for r in listed] == [(4, "Buen césped")]
