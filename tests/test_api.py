"""HTTP surface of the cart sessions, wired to in-memory collaborators."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from main import app
from salesdesk.routers.cart.cart_router import get_orchestrator, get_registry
from salesdesk.core.exceptions import NetworkError
from salesdesk.services.cart.orchestrator import Orchestrator
from salesdesk.services.cart.session_registry import SessionRegistry
from salesdesk.utils.get_user import get_current_user

from conftest import FakeCatalog, FakeQuotations

SALES = SimpleNamespace(id=2, username="sam.sales", role="sales", is_active=True)
ADMIN = SimpleNamespace(id=1, username="ada.admin", role="admin", is_active=True)


@pytest.fixture
def client():
    sessions = SessionRegistry()
    quotations = FakeQuotations()
    orchestrator = Orchestrator(FakeCatalog(), quotations, transition_timeout=1, catalog_timeout=1)

    app.dependency_overrides[get_registry] = lambda: sessions
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_current_user] = lambda: SALES

    # no context manager: lifespan (table creation, scheduler) stays off
    test_client = TestClient(app)
    test_client.quotations = quotations
    test_client.sessions = sessions
    yield test_client

    app.dependency_overrides.clear()


def act_as(user):
    app.dependency_overrides[get_current_user] = lambda: user


def open_session(client, **body):
    res = client.post("/cart/sessions", json=body)
    assert res.status_code == 200, res.text
    return res.json()["data"]


def test_health(client):
    res = client.get("/")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_missing_user_header():
    client = TestClient(app)
    res = client.post("/cart/sessions", json={})

    assert res.status_code == 401
    body = res.json()
    assert body["success"] is False
    assert body["error_code"] == "UNAUTHORIZED"


def test_open_session_view(client):
    view = open_session(client)

    assert view["currency"] == "USD"
    assert len(view["items"]) == 20
    assert view["pagination"]["total_pages"] == 2
    assert view["pagination"]["visible"] is True
    assert view["allowed_actions"] == ["edit_cart", "edit_discount", "submit"]


def test_select_adjust_and_price(client):
    sid = open_session(client)["session_id"]

    client.post(f"/cart/sessions/{sid}/items/1")
    client.patch(f"/cart/sessions/{sid}/items/1", json={"delta": 2})
    client.post(f"/cart/sessions/{sid}/items/2")
    res = client.put(f"/cart/sessions/{sid}/discount", json={"type": "percentage", "value": "10"})

    pricing = res.json()["data"]["pricing"]
    assert pricing["subtotal"] == "350.00"
    assert pricing["discount_amount"] == "35.00"
    assert pricing["final_total"] == "315.00"


def test_currency_change_prompts_then_blocks(client):
    sid = open_session(client)["session_id"]
    client.post(f"/cart/sessions/{sid}/items/1")

    res = client.put(f"/cart/sessions/{sid}/currency", json={"currency": "AED"})
    body = res.json()
    assert body["meta"] == {"requires_confirmation": True}
    assert body["data"]["pending_change"]["proposed_currency"] == "AED"
    assert body["data"]["currency"] == "USD"

    res = client.post(f"/cart/sessions/{sid}/items/2")
    assert res.status_code == 409
    assert res.json()["error_code"] == "STALE_CURRENCY_STATE"
    assert res.json()["details"]["pending_change"]["previous_currency"] == "USD"

    res = client.post(f"/cart/sessions/{sid}/pending/cancel")
    data = res.json()["data"]
    assert data["pending_change"] is None
    assert [ln["item_id"] for ln in data["selected"]] == [1]


def test_confirmed_currency_change_clears_cart(client):
    sid = open_session(client)["session_id"]
    client.post(f"/cart/sessions/{sid}/items/1")
    client.put(f"/cart/sessions/{sid}/currency", json={"currency": "AED"})

    data = client.post(f"/cart/sessions/{sid}/pending/confirm").json()["data"]

    assert data["currency"] == "AED"
    assert data["selected"] == []
    assert data["pricing"]["subtotal"] == "0.00"


def test_hidden_selection_flag(client):
    sid = open_session(client)["session_id"]
    client.post(f"/cart/sessions/{sid}/items/1")

    data = client.put(f"/cart/sessions/{sid}/filters", json={"category": "Tables"}).json()["data"]

    assert data["filters"] == {"category": "Tables"}
    assert data["selected"][0]["hidden"] is True


def test_dependent_filter_without_category(client):
    sid = open_session(client)["session_id"]
    res = client.put(f"/cart/sessions/{sid}/filters", json={"brand": "Aero"})
    assert res.status_code == 400
    assert res.json()["error_code"] == "VALIDATION_ERROR"


def test_submit_and_move(client):
    sid = open_session(client)["session_id"]
    client.post(f"/cart/sessions/{sid}/items/1")

    res = client.post(f"/cart/sessions/{sid}/submit", json={"customer_id": 1})
    assert res.status_code == 200
    assert res.json()["data"]["quotation"]["status"] == "draft"

    res = client.post(f"/cart/sessions/{sid}/transitions", json={"target": "accepted"})
    body = res.json()
    assert body["meta"]["to_status"] == "accepted"
    assert body["data"]["quotation"]["status_display"] == "Customer Accepted"


def test_unknown_session(client):
    res = client.get("/cart/sessions/does-not-exist")
    assert res.status_code == 404
    assert res.json()["error_code"] == "SESSION_NOT_FOUND"


def test_other_users_session(client):
    sid = open_session(client)["session_id"]
    act_as(ADMIN)

    res = client.get(f"/cart/sessions/{sid}")

    assert res.status_code == 403
    assert res.json()["error_code"] == "PERMISSION_DENIED"


def test_request_validation(client):
    sid = open_session(client)["session_id"]
    res = client.patch(f"/cart/sessions/{sid}/items/1", json={})
    assert res.status_code == 422
    assert res.json()["success"] is False


def test_collaborator_failure_is_retryable(client):
    sid = open_session(client)["session_id"]
    client.post(f"/cart/sessions/{sid}/items/1")
    client.post(f"/cart/sessions/{sid}/submit", json={"customer_id": 1})

    client.quotations.fail_with = NetworkError()
    res = client.post(f"/cart/sessions/{sid}/transitions", json={"target": "accepted"})

    assert res.status_code == 502
    assert res.headers["retry-after"] == "2"
    assert res.json()["details"] == {"retryable": True}

    view = client.get(f"/cart/sessions/{sid}").json()["data"]
    assert view["quotation"]["status"] == "draft"


def test_oversized_quantity_delta(client):
    sid = open_session(client)["session_id"]
    client.post(f"/cart/sessions/{sid}/items/1")

    res = client.patch(f"/cart/sessions/{sid}/items/1", json={"delta": 10**27})
    assert res.status_code == 422

    res = client.get(f"/cart/sessions/{sid}")
    assert res.status_code == 200
    assert res.json()["data"]["selected"][0]["quantity"] == 1


def test_viewing_keeps_session_alive(client):
    sid = open_session(client)["session_id"]
    session = client.sessions.get(sid, SALES)
    session.last_activity = datetime.now(timezone.utc) - timedelta(hours=2)

    assert client.get(f"/cart/sessions/{sid}").status_code == 200

    assert client.sessions.sweep_idle(max_idle_minutes=60) == 0
    assert client.get(f"/cart/sessions/{sid}").status_code == 200
