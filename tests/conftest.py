"""Pytest configuration and fixtures"""
import os
from decimal import Decimal

import pytest
import pytest_asyncio

# Set test environment variables
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test_key")
os.environ.setdefault("SUPABASE_ANON_KEY", "test_anon_key")
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")
os.environ.setdefault("CART_STORAGE", "memory")

from plancart.cart import Addon, CartLine, CartStore, MemoryCartStorage  # noqa: E402
from plancart.services.models import ProductRecord  # noqa: E402

PLAN_ID = "3f0c7a52-9a51-4d0e-8d1c-2a8f7f6f1a01"
OTHER_PLAN_ID = "b1d2c3e4-5f60-4a7b-8c9d-0e1f2a3b4c5d"
UPSELL_PLAN_ID = "9e8d7c6b-5a49-4382-b1a0-fedcba987654"
SESSION_ID = "session-0123456789abcdef"


class _Result:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Minimal postgrest query builder over in-memory rows."""

    def __init__(self, table: "FakeTable"):
        self.table = table
        self._ids = None
        self._insert = None

    def select(self, *_):
        return self

    def in_(self, field: str, values):
        assert field == "id"
        self._ids = list(values)
        return self

    def is_(self, *_):
        return self

    def insert(self, data):
        self._insert = data
        return self

    async def execute(self):
        if self.table.error:
            raise self.table.error
        if self._insert is not None:
            self.table.inserted.append(self._insert)
            return _Result([self._insert])
        self.table.queried_ids.append(self._ids)
        rows = [row for row in self.table.rows if self._ids is None or row["id"] in self._ids]
        return _Result(rows)


class FakeTable:
    def __init__(self, rows=None):
        self.rows = rows or []
        self.inserted = []
        self.queried_ids = []
        self.error = None


class FakeSupabase:
    """Async Supabase client double: ``client.table(name)...execute()``."""

    def __init__(self):
        self.tables: dict[str, FakeTable] = {}

    def table(self, name: str):
        table = self.tables.setdefault(name, FakeTable())
        return FakeQuery(table)


class FakeRedis:
    """Async Upstash Redis double."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.expiry: dict[str, int] = {}
        self.fail_writes = False
        self.fail_reads = False

    async def get(self, key):
        if self.fail_reads:
            raise ConnectionError("redis down")
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        if self.fail_writes:
            raise ConnectionError("redis down")
        self.data[key] = value
        self.expiry[key] = ex
        return "OK"

    async def delete(self, key):
        self.data.pop(key, None)
        return 1


@pytest.fixture
def storage():
    return MemoryCartStorage()


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def sample_line():
    """Plan with two add-ons offered, none selected"""
    return CartLine(
        id="P1",
        title="Casa Térrea 3 Quartos",
        base_price=Decimal("1000"),
        display_image="https://cdn.test/p1.jpg",
        product_code="COD. 123",
        available_addons=(
            Addon("electrical", "Electrical Project", Decimal("200")),
            Addon("hydraulic", "Hydraulic Project", Decimal("150")),
        ),
    )


@pytest.fixture
def catalog_line():
    """Line keyed by a real catalog id, electrical and hydraulic selected"""
    return CartLine(
        id=PLAN_ID,
        title="Sobrado Moderno",
        base_price=Decimal("1000"),
        product_code="COD. 200",
        selected_addon_ids=("electrical", "hydraulic"),
        available_addons=(
            Addon("electrical", "Electrical Project", Decimal("200")),
            Addon("hydraulic", "Hydraulic Project", Decimal("150")),
        ),
    )


@pytest.fixture
def sample_project_row():
    """Sample ``projects`` row"""
    return {
        "id": PLAN_ID,
        "title": "Sobrado Moderno",
        "code": "COD. 200",
        "price": 1100.0,
        "price_electrical": 250.0,
        "price_hydraulic": None,
        "price_sanitary": 0,
        "price_structural": 300.0,
        "order_bump_id": UPSELL_PLAN_ID,
        "project_images": [{"image_url": "https://cdn.test/sobrado.jpg"}],
    }


@pytest.fixture
def sample_record(sample_project_row):
    return ProductRecord.from_row(sample_project_row)


@pytest_asyncio.fixture
async def store(storage):
    """Empty hydrated store collecting its events"""
    events = []
    cart_store = await CartStore.open(SESSION_ID, storage, notifier=events.append)
    cart_store.collected_events = events
    return cart_store
