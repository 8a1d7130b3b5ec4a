"""Tests for API endpoints"""
import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from api.index import app
from conftest import PLAN_ID, SESSION_ID, UPSELL_PLAN_ID
from plancart.cart import PriceReconciler
from plancart.errors import CheckoutError, ERROR_CART_EMPTY, ERROR_CHECKOUT_UNAVAILABLE
from plancart.routers.deps import (
    get_cart_storage,
    get_catalog,
    get_checkout_service,
    get_lead_service,
    get_reconciler,
    get_return_url,
)
from plancart.services.leads import LeadCaptureService
from plancart.services.models import ProductRecord

HEADERS = {"X-Cart-Session": SESSION_ID}

CONTACT = {"name": "Ana Souza", "email": "ana@example.com", "phone": "+55 11 99999-0000"}


class FakeCatalog:
    def __init__(self):
        self.records = {}
        self.fetch_started = threading.Event()
        self.release = threading.Event()
        self.release.set()

    async def fetch_products_by_ids(self, ids):
        self.fetch_started.set()
        while not self.release.is_set():
            await asyncio.sleep(0.01)
        return [self.records[i] for i in ids if i in self.records]

    async def get_by_id(self, product_id):
        return self.records.get(product_id)


class FakePayments:
    def __init__(self):
        self.error = None
        self.calls = []

    async def create_checkout_session(self, lines, customer_email, return_url):
        self.calls.append((lines, customer_email, return_url))
        if self.error:
            raise self.error
        return "https://pay.test/session/1"


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def client(storage, catalog, payments, fake_supabase):
    """Test client with in-memory collaborators"""
    reconciler = PriceReconciler(catalog)
    leads = LeadCaptureService(client=fake_supabase)

    app.dependency_overrides[get_cart_storage] = lambda: storage
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_reconciler] = lambda: reconciler
    app.dependency_overrides[get_checkout_service] = lambda: payments
    app.dependency_overrides[get_lead_service] = lambda: leads
    app.dependency_overrides[get_return_url] = lambda: "https://shop.test/account/orders"
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _line_payload(**overrides):
    payload = {
        "id": PLAN_ID,
        "title": "Sobrado Moderno",
        "base_price": 1000,
        "image_url": "https://cdn.test/sobrado.jpg",
        "code": "COD. 200",
        "addons": [],
        "available_addons": [
            {"id": "electrical", "label": "Electrical Project", "price": 200},
            {"id": "hydraulic", "label": "Hydraulic Project", "price": 150},
        ],
    }
    payload.update(overrides)
    return payload


def test_health_check(client):
    """Test health check endpoint"""
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_missing_session_header(client):
    response = client.get("/api/cart")
    assert response.status_code == 400


def test_invalid_session_header(client):
    response = client.get("/api/cart", headers={"X-Cart-Session": "bad token"})
    assert response.status_code == 400


def test_get_empty_cart(client):
    response = client.get("/api/cart", headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["items"] == []
    assert data["total"] == 0
    assert data["formatted_total"] == "R$ 0,00"


def test_add_line_and_addons(client):
    """Test add-on scenario through the API"""
    response = client.post("/api/cart/lines", json=_line_payload(), headers=HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1000.0
    assert data["events"][0]["kind"] == "added"

    response = client.post(f"/api/cart/lines/{PLAN_ID}/addons/electrical", headers=HEADERS)
    data = response.json()
    assert data["items"][0]["price"] == 1200.0
    assert data["items"][0]["formatted_price"] == "R$ 1.200,00"
    assert data["events"][0]["message"] == "Electrical Project included!"

    response = client.delete(f"/api/cart/lines/{PLAN_ID}/addons/electrical", headers=HEADERS)
    assert response.json()["total"] == 1000.0


def test_unknown_addon_not_offered(client):
    payload = _line_payload(
        addons=["pool"],
        available_addons=[{"id": "pool", "label": "Pool", "price": 5000}],
    )
    response = client.post("/api/cart/lines", json=payload, headers=HEADERS)

    item = response.json()["items"][0]
    assert item["available_addons"] == []
    assert item["price"] == 1000.0


def test_negative_price_rejected(client):
    response = client.post("/api/cart/lines", json=_line_payload(base_price=-1), headers=HEADERS)
    assert response.status_code == 422


@pytest.mark.parametrize("price", [-200, 0])
def test_non_positive_addon_price_rejected(client, price):
    """Test an add-on can never pull the line below its base price"""
    payload = _line_payload(
        addons=["electrical"],
        available_addons=[{"id": "electrical", "label": "Electrical Project", "price": price}],
    )
    response = client.post("/api/cart/lines", json=payload, headers=HEADERS)

    assert response.status_code == 422
    assert client.get("/api/cart", headers=HEADERS).json()["items"] == []


def test_remove_and_clear(client):
    client.post("/api/cart/lines", json=_line_payload(), headers=HEADERS)
    client.post("/api/cart/lines", json=_line_payload(id="P2", title="Casa"), headers=HEADERS)

    response = client.delete(f"/api/cart/lines/{PLAN_ID}", headers=HEADERS)
    assert [item["id"] for item in response.json()["items"]] == ["P2"]

    response = client.delete("/api/cart", headers=HEADERS)
    data = response.json()
    assert data["items"] == []
    assert data["events"][0]["kind"] == "cleared"


def test_get_cart_reconciles_prices(client, catalog):
    client.post("/api/cart/lines", json=_line_payload(addons=["electrical", "hydraulic"]), headers=HEADERS)
    catalog.records[PLAN_ID] = ProductRecord(
        id=PLAN_ID,
        title="Sobrado Moderno",
        base_price=Decimal("1100"),
        code="COD. 200",
        addon_prices={"electrical": Decimal("200")},
    )

    response = client.get("/api/cart", headers=HEADERS)

    data = response.json()
    assert data["items"][0]["addons"] == ["electrical"]
    assert data["total"] == 1300.0
    assert [event["kind"] for event in data["events"]] == ["prices_updated"]

    response = client.get("/api/cart", headers=HEADERS)
    assert response.json()["events"] == []


def test_selection_during_price_refresh_kept(client, catalog):
    """An add-on picked while GET /cart waits on the catalog survives the refresh"""
    client.post("/api/cart/lines", json=_line_payload(), headers=HEADERS)
    catalog.records[PLAN_ID] = ProductRecord(
        id=PLAN_ID,
        title="Sobrado Moderno",
        base_price=Decimal("1100"),
        code="COD. 200",
        addon_prices={"electrical": Decimal("200"), "hydraulic": Decimal("150")},
    )
    catalog.release.clear()

    with ThreadPoolExecutor(max_workers=1) as pool:
        pending = pool.submit(client.get, "/api/cart", headers=HEADERS)
        try:
            assert catalog.fetch_started.wait(timeout=5)
            response = client.post(f"/api/cart/lines/{PLAN_ID}/addons/electrical", headers=HEADERS)
            assert response.json()["items"][0]["addons"] == ["electrical"]
        finally:
            catalog.release.set()
        refreshed = pending.result(timeout=5).json()

    assert refreshed["items"][0]["addons"] == ["electrical"]
    assert refreshed["total"] == 1300.0

    final = client.get("/api/cart", headers=HEADERS).json()
    assert final["items"][0]["addons"] == ["electrical"]
    assert final["total"] == 1300.0


def test_add_upsell(client, catalog):
    client.post("/api/cart/lines", json=_line_payload(order_bump_id=UPSELL_PLAN_ID), headers=HEADERS)
    assert client.get("/api/cart", headers=HEADERS).json()["upsell_ids"] == [UPSELL_PLAN_ID]

    catalog.records[UPSELL_PLAN_ID] = ProductRecord(
        id=UPSELL_PLAN_ID,
        title="Garagem",
        base_price=Decimal("300"),
    )
    response = client.post(f"/api/cart/upsell/{UPSELL_PLAN_ID}", headers=HEADERS)

    data = response.json()
    assert [item["id"] for item in data["items"]] == [PLAN_ID, UPSELL_PLAN_ID]
    assert data["total"] == 1300.0
    assert data["upsell_ids"] == []


def test_add_upsell_not_found(client):
    response = client.post(f"/api/cart/upsell/{UPSELL_PLAN_ID}", headers=HEADERS)
    assert response.status_code == 404


def test_add_upsell_invalid_id(client):
    response = client.post("/api/cart/upsell/not-a-plan", headers=HEADERS)
    assert response.status_code == 400


def test_checkout_success(client, payments, fake_supabase):
    client.post("/api/cart/lines", json=_line_payload(addons=["electrical"]), headers=HEADERS)

    response = client.post("/api/cart/checkout", json=CONTACT, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["url"] == "https://pay.test/session/1"
    assert payments.calls[0][1] == "ana@example.com"
    assert client.get("/api/cart", headers=HEADERS).json()["items"] == []
    assert fake_supabase.tables["leads"].inserted[0]["email"] == "ana@example.com"


def test_checkout_empty_cart(client):
    response = client.post("/api/cart/checkout", json=CONTACT, headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["detail"] == ERROR_CART_EMPTY


def test_checkout_failure_keeps_cart(client, payments):
    client.post("/api/cart/lines", json=_line_payload(), headers=HEADERS)
    payments.error = CheckoutError(ERROR_CHECKOUT_UNAVAILABLE)

    response = client.post("/api/cart/checkout", json=CONTACT, headers=HEADERS)

    assert response.status_code == 502
    assert response.json()["detail"] == ERROR_CHECKOUT_UNAVAILABLE
    assert len(client.get("/api/cart", headers=HEADERS).json()["items"]) == 1


def test_checkout_invalid_contact(client):
    client.post("/api/cart/lines", json=_line_payload(), headers=HEADERS)

    response = client.post("/api/cart/checkout", json=dict(CONTACT, email="nope"), headers=HEADERS)

    assert response.status_code == 422


def test_bundle_quote(client):
    response = client.post(
        "/api/bundle/quote",
        json={
            "prices": {"architectural": 1000, "electrical": 200, "hydraulic": 150, "sanitary": 120},
            "selected": ["electrical", "hydraulic", "sanitary"],
        },
    )

    data = response.json()
    assert data["is_complete_bundle"] is True
    assert data["discount"] == 220.5
    assert data["total"] == 1249.5


def test_add_upsell_catalog_down(client, catalog):
    catalog.get_by_id = AsyncMock(side_effect=ConnectionError("offline"))

    response = client.post(f"/api/cart/upsell/{UPSELL_PLAN_ID}", headers=HEADERS)

    assert response.status_code == 503
    assert client.get("/api/cart", headers=HEADERS).json()["items"] == []
