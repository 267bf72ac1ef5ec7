#!/usr/bin/env python3
"""
API Testing for the Hotel Booking API
Exercises the HTTP layer end to end against a fresh in-memory store
"""

import pytest
from fastapi.testclient import TestClient
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4
from unittest.mock import AsyncMock

from main import create_app, get_payment_service
from application.notifications import ConfirmationNotifier
from application.payments import PaymentService
from domain.errors import ReservationUpdateFailedError
from infrastructure.repositories.in_memory_repositories import InMemoryStore


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def app():
    return create_app(store=InMemoryStore())


@pytest.fixture
def client(app):
    """FastAPI test client; the lifespan seeds the demo catalog"""
    with TestClient(app) as test_client:
        yield test_client


def _login(client, username, password):
    response = client.post("/token", data={"username": username, "password": password})
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def guest_headers(client):
    return _login(client, "guest", "guest123")


@pytest.fixture
def other_headers(client):
    return _login(client, "guest2", "guest123")


@pytest.fixture
def admin_headers(client):
    return _login(client, "admin", "admin123")


@pytest.fixture
def reception_headers(client):
    return _login(client, "reception", "reception123")


@pytest.fixture
def rooms(client, guest_headers):
    response = client.get("/api/v1/rooms", headers=guest_headers)
    return {r["code"]: r for r in response.json()}


@pytest.fixture
def stay():
    check_in = date.today() + timedelta(days=10)
    return {"check_in": str(check_in), "check_out": str(check_in + timedelta(days=3))}


def _reserve(client, headers, room_id, stay, **extra):
    payload = {"room_id": room_id, "guests": 1, **stay, **extra}
    return client.post("/api/v1/reservations", json=payload, headers=headers)


@pytest.fixture
def reservation(client, guest_headers, rooms, stay):
    response = _reserve(client, guest_headers, rooms["101"]["room_id"], stay)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def payment(client, guest_headers, reservation):
    response = client.post(
        "/api/v1/payments/initiate",
        json={"reservation_id": reservation["reservation_id"], "method": "yape"},
        headers=guest_headers
    )
    assert response.status_code == 201
    return response.json()


# ============================================================================
# HEALTH & AUTH
# ============================================================================

class TestAuthAPI:
    """Test health and authentication endpoints"""

    @pytest.mark.api
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.api
    @pytest.mark.security
    def test_login_wrong_password(self, client):
        response = client.post("/token", data={"username": "guest", "password": "nope"})
        assert response.status_code == 401

    @pytest.mark.api
    @pytest.mark.security
    def test_users_me(self, client, reception_headers):
        response = client.get("/users/me", headers=reception_headers)
        assert response.status_code == 200
        assert response.json()["role"] == "receptionist"

    @pytest.mark.api
    @pytest.mark.security
    def test_disabled_user(self, client):
        headers = _login(client, "blocked", "blocked123")
        response = client.get("/users/me", headers=headers)
        assert response.status_code == 400

    @pytest.mark.api
    @pytest.mark.security
    def test_routes_require_token(self, client):
        assert client.get("/api/v1/rooms").status_code == 401
        assert client.get("/api/v1/rooms", headers={"Authorization": "Bearer garbage"}).status_code == 401


# ============================================================================
# ROOMS, SERVICES & DISCOUNTS
# ============================================================================

class TestCatalogAPI:
    """Test room, service and discount endpoints"""

    @pytest.mark.api
    def test_rooms_cheapest_first(self, client, guest_headers):
        response = client.get("/api/v1/rooms", headers=guest_headers)
        prices = [Decimal(r["price_per_night"]) for r in response.json()]
        assert prices == sorted(prices)
        assert len(prices) == 3

    @pytest.mark.api
    def test_room_filters(self, client, guest_headers):
        response = client.get("/api/v1/rooms", params={"type": "suite"}, headers=guest_headers)
        assert [r["code"] for r in response.json()] == ["201"]
        response = client.get("/api/v1/rooms", params={"services": "wifi,jacuzzi"}, headers=guest_headers)
        assert [r["code"] for r in response.json()] == ["201"]

    @pytest.mark.api
    def test_room_not_found(self, client, guest_headers):
        response = client.get(f"/api/v1/rooms/{uuid4()}", headers=guest_headers)
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "ROOM_NOT_FOUND"

    @pytest.mark.api
    def test_availability(self, client, guest_headers, rooms, reservation, stay):
        room_id = rooms["101"]["room_id"]
        response = client.get(f"/api/v1/rooms/{room_id}/availability", params=stay, headers=guest_headers)
        assert response.json()["available"] is False
        later = {"check_in": stay["check_out"], "check_out": str(date.fromisoformat(stay["check_out"]) + timedelta(days=1))}
        response = client.get(f"/api/v1/rooms/{room_id}/availability", params=later, headers=guest_headers)
        assert response.json()["available"] is True

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_availability_bad_range(self, client, guest_headers, rooms, stay):
        room_id = rooms["101"]["room_id"]
        params = {"check_in": stay["check_out"], "check_out": stay["check_in"]}
        response = client.get(f"/api/v1/rooms/{room_id}/availability", params=params, headers=guest_headers)
        assert response.status_code == 400

    @pytest.mark.api
    def test_services(self, client, guest_headers):
        response = client.get("/api/v1/services", headers=guest_headers)
        assert {s["name"] for s in response.json()} == {"Airport transfer", "Breakfast", "Parking"}

    @pytest.mark.api
    def test_applicable_discounts_for_new_guest(self, client, guest_headers):
        response = client.get("/api/v1/discounts/applicable", params={"nights": 1}, headers=guest_headers)
        body = response.json()
        assert body["is_first_reservation"] is True
        assert [d["code"] for d in body["discounts"]] == ["PRIMERAVEZ"]

    @pytest.mark.api
    def test_first_reservation_discount_disappears(self, client, guest_headers, reservation):
        response = client.get("/api/v1/discounts/applicable", params={"nights": 1}, headers=guest_headers)
        body = response.json()
        assert body["is_first_reservation"] is False
        assert body["discounts"] == []

    @pytest.mark.api
    def test_calculate_discount(self, client, guest_headers):
        discounts = client.get("/api/v1/discounts/applicable", headers=guest_headers).json()["discounts"]
        response = client.post(
            "/api/v1/discounts/calculate",
            json={"discount_id": discounts[0]["discount_id"], "subtotal": "300"},
            headers=guest_headers
        )
        body = response.json()
        assert Decimal(body["discount_amount"]) == Decimal("30")
        assert Decimal(body["total"]) == Decimal("270")

    @pytest.mark.api
    def test_calculate_unknown_discount(self, client, guest_headers):
        response = client.post(
            "/api/v1/discounts/calculate",
            json={"discount_id": str(uuid4()), "subtotal": "300"},
            headers=guest_headers
        )
        assert response.status_code == 404


# ============================================================================
# RESERVATIONS
# ============================================================================

class TestReservationAPI:
    """Test reservation endpoints"""

    @pytest.mark.api
    def test_create_reservation(self, reservation, rooms):
        assert reservation["status"] == "pending_payment"
        assert reservation["locked_until"] is not None
        assert reservation["nights"] == 3
        assert Decimal(reservation["total_amount"]) == Decimal(rooms["101"]["price_per_night"]) * 3
        assert reservation["currency"] == "PEN"

    @pytest.mark.api
    def test_create_accepts_timestamps(self, client, guest_headers, rooms, stay):
        timestamps = {"check_in": stay["check_in"] + "T22:00:00-05:00", "check_out": stay["check_out"] + "T08:00:00Z"}
        response = _reserve(client, guest_headers, rooms["102"]["room_id"], timestamps)
        assert response.status_code == 201
        assert response.json()["check_in"] == stay["check_in"]
        assert response.json()["nights"] == 3

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_double_booking_rejected(self, client, other_headers, rooms, reservation, stay):
        response = _reserve(client, other_headers, rooms["101"]["room_id"], stay)
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "ROOM_UNAVAILABLE"

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_invalid_dates(self, client, guest_headers, rooms, stay):
        swapped = {"check_in": stay["check_out"], "check_out": stay["check_in"]}
        response = _reserve(client, guest_headers, rooms["101"]["room_id"], swapped)
        assert response.status_code == 400

    @pytest.mark.api
    def test_create_with_services_and_discount(self, client, guest_headers, rooms, stay):
        breakfast = next(
            s for s in client.get("/api/v1/services", headers=guest_headers).json() if s["name"] == "Breakfast"
        )
        discount = client.get("/api/v1/discounts/applicable", headers=guest_headers).json()["discounts"][0]
        response = _reserve(
            client, guest_headers, rooms["101"]["room_id"], stay,
            services=[{"service_id": breakfast["service_id"], "quantity": 2}],
            discount_id=discount["discount_id"]
        )
        assert response.status_code == 201
        reservation = response.json()
        # (3 * 120 + 2 * 25) less 10%
        assert Decimal(reservation["total_amount"]) == Decimal("369.00")

        rid = reservation["reservation_id"]
        lines = client.get(f"/api/v1/reservations/{rid}/services", headers=guest_headers).json()
        assert [(l["service_id"], l["quantity"]) for l in lines] == [(breakfast["service_id"], 2)]
        applied = client.get(f"/api/v1/reservations/{rid}/discounts", headers=guest_headers).json()
        assert Decimal(applied[0]["discount_amount"]) == Decimal("41.00")

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_unknown_service(self, client, guest_headers, rooms, stay):
        response = _reserve(
            client, guest_headers, rooms["101"]["room_id"], stay,
            services=[{"service_id": str(uuid4()), "quantity": 1}]
        )
        assert response.status_code == 404

    @pytest.mark.api
    def test_list_my_reservations(self, client, guest_headers, other_headers, reservation):
        mine = client.get("/api/v1/reservations", headers=guest_headers).json()
        assert [r["reservation_id"] for r in mine] == [reservation["reservation_id"]]
        assert client.get("/api/v1/reservations", headers=other_headers).json() == []

    @pytest.mark.api
    @pytest.mark.security
    def test_other_guest_forbidden(self, client, other_headers, reservation):
        rid = reservation["reservation_id"]
        assert client.get(f"/api/v1/reservations/{rid}", headers=other_headers).status_code == 403
        assert client.post(f"/api/v1/reservations/{rid}/cancel", headers=other_headers).status_code == 403

    @pytest.mark.api
    def test_staff_can_read(self, client, reception_headers, reservation):
        rid = reservation["reservation_id"]
        assert client.get(f"/api/v1/reservations/{rid}", headers=reception_headers).status_code == 200

    @pytest.mark.api
    def test_cancel_twice(self, client, guest_headers, reservation):
        rid = reservation["reservation_id"]
        response = client.post(f"/api/v1/reservations/{rid}/cancel", json={"reason": "plans changed"}, headers=guest_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["cancellation_reason"] == "plans changed"
        assert response.json()["locked_until"] is None

        response = client.post(f"/api/v1/reservations/{rid}/cancel", headers=guest_headers)
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "ALREADY_TERMINAL"

    @pytest.mark.api
    def test_not_found(self, client, guest_headers):
        response = client.get(f"/api/v1/reservations/{uuid4()}", headers=guest_headers)
        assert response.status_code == 404


# ============================================================================
# PAYMENTS
# ============================================================================

class TestPaymentAPI:
    """Test the payment flow"""

    @pytest.mark.api
    def test_initiate_is_idempotent(self, client, guest_headers, reservation, payment):
        response = client.post(
            "/api/v1/payments/initiate",
            json={"reservation_id": reservation["reservation_id"], "method": "yape"},
            headers=guest_headers
        )
        assert response.json()["payment_id"] == payment["payment_id"]
        assert response.json()["transaction_ref"] == payment["transaction_ref"]
        assert response.json()["reused"] is True

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_card_requires_card_data(self, client, guest_headers, reservation):
        response = client.post(
            "/api/v1/payments/initiate",
            json={"reservation_id": reservation["reservation_id"], "method": "card"},
            headers=guest_headers
        )
        assert response.status_code == 422

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_missing_method(self, client, guest_headers, reservation):
        response = client.post(
            "/api/v1/payments/initiate",
            json={"reservation_id": reservation["reservation_id"]},
            headers=guest_headers
        )
        assert response.status_code == 422

    @pytest.mark.api
    @pytest.mark.security
    def test_initiate_not_owner(self, client, other_headers, reservation):
        response = client.post(
            "/api/v1/payments/initiate",
            json={"reservation_id": reservation["reservation_id"], "method": "yape"},
            headers=other_headers
        )
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "RESERVATION_NOT_OWNED"

    @pytest.mark.api
    def test_simulated_success_confirms_and_notifies(self, app, client, guest_headers, reservation, payment):
        pid = payment["payment_id"]
        response = client.post(f"/api/v1/payments/simulate/yape/{pid}", headers=guest_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "success"
        assert body["authorization_code"].startswith("YAPE")

        rid = reservation["reservation_id"]
        confirmed = client.get(f"/api/v1/reservations/{rid}", headers=guest_headers).json()
        assert confirmed["status"] == "confirmed"
        assert confirmed["locked_until"] is None
        assert [r["reservation_id"] for r in app.state.notifier.sent] == [rid]

        status_view = client.get(f"/api/v1/payments/{pid}", headers=guest_headers).json()
        assert status_view["payment"]["status"] == "success"
        assert status_view["reservation"]["status"] == "confirmed"

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_second_settlement_conflicts(self, client, guest_headers, payment):
        pid = payment["payment_id"]
        client.post(f"/api/v1/payments/simulate/yape/{pid}", headers=guest_headers)
        response = client.post(f"/api/v1/payments/simulate/yape/{pid}", params={"force": "failed"}, headers=guest_headers)
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "PAYMENT_ALREADY_PROCESSED"

    @pytest.mark.api
    def test_simulated_decline(self, app, client, guest_headers, reservation, payment):
        pid = payment["payment_id"]
        response = client.post(f"/api/v1/payments/simulate/yape/{pid}", params={"force": "failed"}, headers=guest_headers)
        body = response.json()
        assert response.status_code == 200
        assert body["success"] is False
        assert body["status"] == "failed"
        assert body["error"] == "PAYMENT_DECLINED"
        assert body["message"] == "Payment rejected by the user in Yape"

        rid = reservation["reservation_id"]
        assert client.get(f"/api/v1/reservations/{rid}", headers=guest_headers).json()["status"] == "pending_payment"
        assert len(app.state.notifier.sent) == 0

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_simulate_wrong_method(self, client, guest_headers, payment):
        response = client.post(f"/api/v1/payments/simulate/card/{payment['payment_id']}", headers=guest_headers)
        assert response.status_code == 400

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_switch_to_card_within_window(self, client, guest_headers, reservation, payment):
        response = client.post(
            "/api/v1/payments/initiate",
            json={
                "reservation_id": reservation["reservation_id"],
                "method": "card",
                "card_data": {"masked_pan": "**** 4242", "expiry": "12/29"},
            },
            headers=guest_headers
        )
        assert response.status_code == 201
        card_payment = response.json()
        assert card_payment["payment_id"] != payment["payment_id"]
        assert card_payment["reused"] is False

        settled = client.post(f"/api/v1/payments/simulate/card/{card_payment['payment_id']}", headers=guest_headers)
        assert settled.status_code == 200
        assert settled.json()["authorization_code"].startswith("AUTH")

    @pytest.mark.api
    def test_pay_confirmed_reservation(self, client, guest_headers, reservation, payment):
        client.post(f"/api/v1/payments/simulate/yape/{payment['payment_id']}", headers=guest_headers)
        response = client.post(
            "/api/v1/payments/initiate",
            json={"reservation_id": reservation["reservation_id"], "method": "yape"},
            headers=guest_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_STATUS"

    @pytest.mark.api
    def test_eligibility(self, client, guest_headers, reservation, payment):
        rid = reservation["reservation_id"]
        assert client.get(f"/api/v1/payments/check-eligibility/{rid}", headers=guest_headers).json()["eligible"] is True
        client.post(f"/api/v1/payments/simulate/yape/{payment['payment_id']}", headers=guest_headers)
        body = client.get(f"/api/v1/payments/check-eligibility/{rid}", headers=guest_headers).json()
        assert body["eligible"] is False
        assert body["reason"] == "ALREADY_PAID"

    @pytest.mark.api
    def test_history(self, client, guest_headers, other_headers, reservation, payment):
        rid = reservation["reservation_id"]
        client.post(f"/api/v1/payments/simulate/yape/{payment['payment_id']}", params={"force": "failed"}, headers=guest_headers)
        retry = client.post(
            "/api/v1/payments/initiate",
            json={"reservation_id": rid, "method": "card", "card_data": {"masked_pan": "**** 4242", "expiry": "12/29"}},
            headers=guest_headers
        ).json()
        history = client.get(f"/api/v1/payments/history/{rid}", headers=guest_headers).json()
        assert [p["payment_id"] for p in history] == [retry["payment_id"], payment["payment_id"]]
        assert history[1]["error_message"] == "Payment rejected by the user in Yape"
        assert client.get(f"/api/v1/payments/history/{rid}", headers=other_headers).status_code == 403

    @pytest.mark.api
    @pytest.mark.security
    def test_settlement_callback_staff_only(self, client, guest_headers, reception_headers, reservation, payment):
        pid = payment["payment_id"]
        outcome = {"success": True, "authorization_code": "AUTH123456"}
        assert client.post(f"/api/v1/payments/{pid}/settlement", json=outcome, headers=guest_headers).status_code == 403

        response = client.post(f"/api/v1/payments/{pid}/settlement", json=outcome, headers=reception_headers)
        assert response.status_code == 200
        assert response.json()["authorization_code"] == "AUTH123456"

    @pytest.mark.api
    @pytest.mark.security
    def test_other_guest_cannot_simulate(self, client, other_headers, payment):
        response = client.post(f"/api/v1/payments/simulate/yape/{payment['payment_id']}", headers=other_headers)
        assert response.status_code == 403

    @pytest.mark.api
    def test_payment_not_found(self, client, guest_headers):
        response = client.get(f"/api/v1/payments/{uuid4()}", headers=guest_headers)
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "PAYMENT_NOT_FOUND"


class BrokenNotifier(ConfirmationNotifier):
    async def send_reservation_confirmation(self, reservation_id):
        raise RuntimeError("mail server down")


class TestPaymentAPIFailures:
    """Test failure paths that should never leak into payment outcomes"""

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_notifier_failure_does_not_affect_payment(self, stay):
        app = create_app(store=InMemoryStore(), notifier=BrokenNotifier())
        with TestClient(app) as client:
            headers = _login(client, "guest", "guest123")
            room_id = client.get("/api/v1/rooms", headers=headers).json()[0]["room_id"]
            rid = _reserve(client, headers, room_id, stay).json()["reservation_id"]
            pid = client.post(
                "/api/v1/payments/initiate", json={"reservation_id": rid, "method": "yape"}, headers=headers
            ).json()["payment_id"]

            response = client.post(f"/api/v1/payments/simulate/yape/{pid}", headers=headers)

            assert response.status_code == 200
            assert response.json()["success"] is True
            assert client.get(f"/api/v1/reservations/{rid}", headers=headers).json()["status"] == "confirmed"

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_compensation_maps_to_bad_gateway(self, app, client, reception_headers):
        mock_service = AsyncMock(spec=PaymentService)
        mock_service.process.side_effect = ReservationUpdateFailedError()
        app.dependency_overrides[get_payment_service] = lambda: mock_service
        try:
            response = client.post(
                f"/api/v1/payments/{uuid4()}/settlement",
                json={"success": True, "authorization_code": "AUTH000000"},
                headers=reception_headers
            )
        finally:
            app.dependency_overrides = {}
        assert response.status_code == 502
        assert response.json()["detail"]["code"] == "RESERVATION_UPDATE_FAILED"


# ============================================================================
# ADMIN
# ============================================================================

class TestAdminAPI:
    """Test staff endpoints"""

    @pytest.mark.api
    @pytest.mark.security
    def test_guest_denied(self, client, guest_headers):
        assert client.get("/api/v1/admin/stats", headers=guest_headers).status_code == 403

    @pytest.mark.api
    def test_stats(self, client, admin_headers, reservation):
        body = client.get("/api/v1/admin/stats", headers=admin_headers).json()
        assert body["total_reservations"] == 1
        assert body["pending_payments"] == 1
        assert body["total_rooms"] == 3
        assert body["available_rooms"] == 3

    @pytest.mark.api
    def test_reservations_filter(self, client, reception_headers, reservation):
        pending = client.get("/api/v1/admin/reservations", params={"status": "pending_payment"}, headers=reception_headers)
        assert [r["reservation_id"] for r in pending.json()] == [reservation["reservation_id"]]
        confirmed = client.get("/api/v1/admin/reservations", params={"status": "confirmed"}, headers=reception_headers)
        assert confirmed.json() == []

    @pytest.mark.api
    def test_room_crud(self, client, admin_headers):
        payload = {"code": "301", "type": "doble", "capacity": 2, "price_per_night": "200.00"}
        created = client.post("/api/v1/admin/rooms", json=payload, headers=admin_headers)
        assert created.status_code == 201
        room_id = created.json()["room_id"]

        assert client.post("/api/v1/admin/rooms", json=payload, headers=admin_headers).status_code == 409

        updated = client.put(f"/api/v1/admin/rooms/{room_id}", json={"price_per_night": "220.00"}, headers=admin_headers)
        assert Decimal(updated.json()["price_per_night"]) == Decimal("220")

        status = client.patch(f"/api/v1/admin/rooms/{room_id}/status", json={"status": "maintenance"}, headers=admin_headers)
        assert status.json()["status"] == "maintenance"

        codes = [r["code"] for r in client.get("/api/v1/admin/rooms", headers=admin_headers).json()]
        assert codes == ["101", "102", "201", "301"]

        assert client.delete(f"/api/v1/admin/rooms/{room_id}", headers=admin_headers).status_code == 204
        assert client.delete(f"/api/v1/admin/rooms/{room_id}", headers=admin_headers).status_code == 404

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_invalid_room_status(self, client, admin_headers, rooms):
        room_id = rooms["101"]["room_id"]
        response = client.patch(f"/api/v1/admin/rooms/{room_id}/status", json={"status": "flooded"}, headers=admin_headers)
        assert response.status_code == 422

    @pytest.mark.api
    def test_complete_then_cancel(self, client, admin_headers, guest_headers, reservation):
        rid = reservation["reservation_id"]
        response = client.post(f"/api/v1/admin/reservations/{rid}/complete", headers=admin_headers)
        assert response.json()["status"] == "completed"

        response = client.post(f"/api/v1/reservations/{rid}/cancel", headers=guest_headers)
        assert response.status_code == 409
        assert client.get(f"/api/v1/reservations/{rid}", headers=guest_headers).json()["status"] == "completed"

    @pytest.mark.api
    def test_expire_holds(self, client, admin_headers, reservation):
        response = client.post("/api/v1/admin/holds/expire", headers=admin_headers)
        assert response.json()["released"] == 0
