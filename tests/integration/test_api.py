"""Integration tests for API endpoints"""

import json
import pytest
from fastapi.testclient import TestClient

COMPLETION = {
    "photos": ["https://cdn.example.com/pickups/p1.jpg"],
    "total_weight_kg": 10,
    "materials": [{"type": "plastic", "qty_kg": 10}],
    "container_count": 2,
    "observations": "Clean sorted plastic bottles",
}


@pytest.fixture
def user_id(client: TestClient) -> str:
    response = client.post("/v1/users", json={"name": "Ana", "email": "ana@example.com"})
    assert response.status_code == 201
    return response.json()["user_id"]


@pytest.fixture
def recycler_id(client: TestClient) -> str:
    response = client.post("/v1/recyclers", json={"name": "Green Pickup Co"})
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
def appointment_id(client: TestClient, user_id: str, recycler_id: str) -> str:
    response = client.post(
        "/v1/appointments",
        json={
            "client_id": user_id,
            "scheduled_at": "2030-01-15T10:00:00Z",
            "address": "1 Elm St",
            "materials": ["plastic"],
        },
    )
    assert response.status_code == 201
    appointment = response.json()
    assert appointment["status"] == "pending"

    response = client.post(
        f"/v1/appointments/{appointment['id']}/review",
        json={"decision": "approve", "recycler_id": recycler_id},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    return appointment["id"]


def create_coupon(client: TestClient, credit_cost: int, **extra) -> str:
    body = {"title": "Coffee", "credit_cost": credit_cost, "category": "food", "issuer": "Corner Cafe"}
    body.update(extra)
    response = client.post("/v1/coupons", json=body)
    assert response.status_code == 201
    return response.json()["id"]


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert client.get("/health").headers["X-Request-ID"]


def test_complete_appointment(client: TestClient, user_id: str, appointment_id: str):
    """Test POST /v1/appointments/{id}/complete settles credits"""
    response = client.post(f"/v1/appointments/{appointment_id}/complete", json=COMPLETION)

    assert response.status_code == 200
    data = response.json()
    assert data["credits_awarded"] == 100
    assert data["new_balance"] == 100
    assert data["completion"]["appointment_id"] == appointment_id
    assert data["completion"]["materials"] == [{"type": "plastic", "qty_kg": 10.0}]

    assert client.get(f"/v1/users/{user_id}/credits").json()["credits"] == 100
    assert client.get(f"/v1/appointments/{appointment_id}").json()["status"] == "completed"

    history = client.get(f"/v1/users/{user_id}/credit-history").json()
    assert history["total_earned"] == 100
    assert history["transactions"][0]["kind"] == "earned"
    assert history["transactions"][0]["reference_id"] == appointment_id


def test_double_completion_conflict(client: TestClient, user_id: str, appointment_id: str):
    assert client.post(f"/v1/appointments/{appointment_id}/complete", json=COMPLETION).status_code == 200

    response = client.post(f"/v1/appointments/{appointment_id}/complete", json=COMPLETION)

    assert response.status_code == 409
    assert response.json()["error"] == "AlreadyCompletedError"
    assert client.get(f"/v1/users/{user_id}/credits").json()["credits"] == 100


def test_completion_validation_error(client: TestClient, appointment_id: str):
    payload = dict(COMPLETION, total_weight_kg=100, photos=["not a url"])

    response = client.post(f"/v1/appointments/{appointment_id}/complete", json=payload)

    assert response.status_code == 400
    details = response.json()["details"]
    assert any("valid URL" in d for d in details)
    assert any("total weight" in d for d in details)


def test_completion_non_finite_quantity(client: TestClient, user_id: str, appointment_id: str):
    """A bare NaN in the JSON body is a validation error, not a server error"""
    payload = dict(COMPLETION, materials=[{"type": "plastic", "qty_kg": float("nan")}])

    response = client.post(
        f"/v1/appointments/{appointment_id}/complete",
        content=json.dumps(payload),
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert any("finite number" in d for d in response.json()["details"])
    assert client.get(f"/v1/users/{user_id}/credits").json()["credits"] == 0


def test_completion_malformed_body(client: TestClient, appointment_id: str):
    response = client.post(f"/v1/appointments/{appointment_id}/complete", json={"photos": []})
    assert response.status_code == 422


def test_complete_unknown_appointment(client: TestClient):
    response = client.post("/v1/appointments/missing/complete", json=COMPLETION)
    assert response.status_code == 404
    assert response.json()["resource"] == "Appointment"


def test_completion_queries(client: TestClient, appointment_id: str):
    assert client.get(f"/v1/appointments/{appointment_id}/can-complete").json()["can_complete"] is True
    assert client.get(f"/v1/appointments/{appointment_id}/completion").status_code == 404

    client.post(f"/v1/appointments/{appointment_id}/complete", json=COMPLETION)

    completion = client.get(f"/v1/appointments/{appointment_id}/completion").json()
    assert completion["credits_awarded"] == 100

    stats = client.get(f"/v1/appointments/{appointment_id}/completion/stats").json()
    assert stats["breakdown"]["base_credits"] == 100
    assert stats["material_type_count"] == 1

    blocked = client.get(f"/v1/appointments/{appointment_id}/can-complete").json()
    assert blocked["can_complete"] is False
    assert blocked["appointment"]["status"] == "completed"


def test_review_rules(client: TestClient, user_id: str, appointment_id: str):
    response = client.post(f"/v1/appointments/{appointment_id}/review", json={"decision": "reject"})
    assert response.status_code == 400

    response = client.post(
        f"/v1/appointments/{appointment_id}/review",
        json={"decision": "reject", "rejection_reason": "Out of area"},
    )
    assert response.status_code == 409

    response = client.post(f"/v1/appointments/{appointment_id}/review", json={"decision": "maybe"})
    assert response.status_code == 422


def test_cancel_then_complete(client: TestClient, appointment_id: str):
    response = client.post(f"/v1/appointments/{appointment_id}/cancel")
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    response = client.post(f"/v1/appointments/{appointment_id}/complete", json=COMPLETION)
    assert response.status_code == 409
    assert response.json()["error"] == "AppointmentCancelledError"


def test_list_user_appointments(client: TestClient, user_id: str, appointment_id: str):
    response = client.get(f"/v1/users/{user_id}/appointments")
    assert response.status_code == 200
    assert [a["id"] for a in response.json()] == [appointment_id]

    assert client.get("/v1/users/missing/appointments").status_code == 404


def test_claim_coupon_flow(client: TestClient, user_id: str, appointment_id: str):
    """Earn 100 credits, spend 80 of them"""
    client.post(f"/v1/appointments/{appointment_id}/complete", json=COMPLETION)
    coupon_id = create_coupon(client, 80, available_units=2)

    assert client.get(f"/v1/users/{user_id}/can-claim/{coupon_id}").json()["can_claim"] is True

    response = client.post(f"/v1/users/{user_id}/claim-coupon", json={"coupon_id": coupon_id})

    assert response.status_code == 200
    data = response.json()
    assert data["remaining_balance"] == 20
    assert data["claim"]["coupon_id"] == coupon_id
    assert data["claim"]["status"] == "active"
    assert data["redemption_code"] == data["claim"]["redemption_code"]

    assert client.get(f"/v1/coupons/{coupon_id}").json()["available_units"] == 1
    claimed = client.get(f"/v1/users/{user_id}/claimed-coupons").json()
    assert [c["id"] for c in claimed] == [data["claim"]["id"]]

    history = client.get(f"/v1/users/{user_id}/credit-history").json()
    assert history["total_spent"] == 80
    assert history["current_credits"] == 20


def test_claim_insufficient_credits(client: TestClient, user_id: str):
    coupon_id = create_coupon(client, 150)

    response = client.post(f"/v1/users/{user_id}/claim-coupon", json={"coupon_id": coupon_id})

    assert response.status_code == 400
    data = response.json()
    assert data["required"] == 150
    assert data["available"] == 0


def test_claim_twice_conflict(client: TestClient, user_id: str, appointment_id: str):
    client.post(f"/v1/appointments/{appointment_id}/complete", json=COMPLETION)
    coupon_id = create_coupon(client, 10)

    assert client.post(f"/v1/users/{user_id}/claim-coupon", json={"coupon_id": coupon_id}).status_code == 200
    response = client.post(f"/v1/users/{user_id}/claim-coupon", json={"coupon_id": coupon_id})

    assert response.status_code == 409
    assert response.json()["error"] == "AlreadyClaimedError"
    assert client.get(f"/v1/users/{user_id}/credits").json()["credits"] == 90


def test_claim_unknown_coupon(client: TestClient, user_id: str):
    response = client.post(f"/v1/users/{user_id}/claim-coupon", json={"coupon_id": "missing"})
    assert response.status_code == 404
    assert response.json()["resource"] == "Coupon"


def test_coupon_catalogue(client: TestClient):
    create_coupon(client, 300, category="Travel", issuer="SkyAir")
    create_coupon(client, 50)
    create_coupon(client, 20, active=False)

    listing = client.get("/v1/coupons").json()
    assert listing["count"] == 2
    assert [c["credit_cost"] for c in listing["coupons"]] == [50, 300]

    travel = client.get("/v1/coupons", params={"category": "travel"}).json()
    assert [c["issuer"] for c in travel["coupons"]] == ["SkyAir"]

    assert client.get("/v1/coupons/missing").status_code == 404


def test_coupon_creation_validation(client: TestClient):
    response = client.post(
        "/v1/coupons",
        json={"title": "Deal", "credit_cost": 10, "category": "food", "issuer": "Cafe",
              "discount_value": 5, "discount_percentage": 10},
    )
    assert response.status_code == 400


def test_unknown_user_credits(client: TestClient):
    assert client.get("/v1/users/missing/credits").status_code == 404


def test_metrics_endpoint(client: TestClient, appointment_id: str):
    """Test Prometheus metrics endpoint"""
    client.post(f"/v1/appointments/{appointment_id}/complete", json=COMPLETION)

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "recycle_completion_total" in response.text
    assert "http_request_duration_seconds" in response.text
