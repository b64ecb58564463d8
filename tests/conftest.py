import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import warmindo_order.config as config_mod
import warmindo_order.deps as deps
from warmindo_order.app_factory import create_app
from warmindo_order.chat_bridge import create_bridge_app
from warmindo_order.client_store import (
    CartLine,
    CartRepository,
    InMemoryStore,
    PreOrder,
    PreOrderRepository,
)
from warmindo_order.errors import BackendError, RELATION_NOT_FOUND
from warmindo_order.gateway import Backend, SqlBackend, TERMINAL_STATUSES
from warmindo_order.models import Base, DiningTable, Menu, MenuCategory
from warmindo_order.rate_limit import limiter
from warmindo_order.realtime import ChangeFeed
from warmindo_order.services.recommendation import LlmRecommender, TimeOfDayRecommender
from warmindo_order.storage import ObjectStorage

DEVICE_ID = "device-test-1"
SESSION_ID = "session-test-1"

CATEGORIES = [
    {"id": "cat-mie", "name": "Mie"},
    {"id": "cat-minum", "name": "Minuman"},
]

MENUS = [
    {"id": "m-goreng", "name": "Indomie Goreng", "description": "Indomie goreng telur",
     "price": 12000, "is_active": True, "category_id": "cat-mie", "photo_url": None},
    {"id": "m-rebus", "name": "Indomie Rebus", "description": None,
     "price": 11000, "is_active": True, "category_id": "cat-mie", "photo_url": "https://img.test/rebus.jpg"},
    {"id": "m-esteh", "name": "Es Teh", "description": "Teh manis dingin",
     "price": 5000, "is_active": True, "category_id": "cat-minum", "photo_url": None},
    {"id": "m-kopi", "name": "Kopi Susu", "description": None,
     "price": 8000, "is_active": True, "category_id": "cat-minum", "photo_url": "kopi.jpg"},
    {"id": "m-lama", "name": "Menu Lama", "description": None,
     "price": 1000, "is_active": False, "category_id": "cat-mie", "photo_url": None},
]


class FakeBackend(Backend):
    """In-memory backend with PostgREST-shaped rows.

    ``fail`` maps a method name to a BackendError (raised on every call) or a
    list of errors (raised on successive calls until exhausted).
    """

    def __init__(self):
        self.storage = ObjectStorage(base_url="https://storage.test", api_key="test-key")
        self.storage.upload = MagicMock(side_effect=lambda bucket, name, data, content_type: f"{bucket}/{name}")
        self.changes = ChangeFeed()
        self.categories: List[Dict[str, Any]] = [dict(c) for c in CATEGORIES]
        self.menus: List[Dict[str, Any]] = [dict(m) for m in MENUS]
        self.tables: List[Dict[str, Any]] = []
        self.free_tables: List[Dict[str, Any]] = []
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.order_items: List[Dict[str, Any]] = []
        self.settings: List[Dict[str, Any]] = []
        self.queue_view: Optional[List[Dict[str, Any]]] = None
        self.fail: Dict[str, Any] = {}
        self.calls: List[str] = []

    def _call(self, name: str) -> None:
        self.calls.append(name)
        failure = self.fail.get(name)
        if isinstance(failure, list):
            if failure:
                raise failure.pop(0)
        elif failure is not None:
            raise failure

    def call_count(self, name: str) -> int:
        return self.calls.count(name)

    # --- catalog ---

    def _category_name(self, category_id):
        return next((c["name"] for c in self.categories if c["id"] == category_id), None)

    def list_active_menus(self):
        self._call("list_active_menus")
        return sorted((dict(m) for m in self.menus if m["is_active"]), key=lambda m: m["name"])

    def list_categories(self):
        self._call("list_categories")
        return sorted((dict(c) for c in self.categories), key=lambda c: c["name"])

    def menu_catalog(self, limit, only_active=True):
        self._call("menu_catalog")
        rows = [m for m in self.menus if m["is_active"] or not only_active]
        return [
            {
                "id": m["id"], "name": m["name"], "description": m["description"],
                "price": m["price"], "category_name": self._category_name(m["category_id"]),
                "is_active": m["is_active"],
            }
            for m in sorted(rows, key=lambda m: m["name"])[:limit]
        ]

    def menu_catalog_join(self, limit):
        self._call("menu_catalog_join")
        return [
            {**m, "menu_categories": {"name": self._category_name(m["category_id"])}}
            for m in self.menus if m["is_active"]
        ][:limit]

    # --- tables ---

    def list_empty_tables(self):
        self._call("list_empty_tables")
        return sorted((dict(t) for t in self.tables if t["status"] == "empty"), key=lambda t: t["label"])

    def get_free_tables(self, limit):
        self._call("get_free_tables")
        return [dict(t) for t in self.free_tables][:limit]

    # --- orders ---

    def insert_order(self, data):
        self._call("insert_order")
        now = datetime.now().astimezone()
        order = {
            "id": str(uuid.uuid4()),
            "payment_code": f"PAY{len(self.orders) + 1:03d}",
            "queue_no": len(self.orders) + 1,
            "proof_url": None,
            "created_at": now,
            "updated_at": now,
            **data,
        }
        self.orders[order["id"]] = order
        self.changes.publish("orders", "INSERT", order)
        return dict(order)

    def insert_order_items(self, rows):
        self._call("insert_order_items")
        self.order_items.extend(dict(r) for r in rows)

    def get_order(self, order_id):
        self._call("get_order")
        order = self.orders.get(order_id)
        return dict(order) if order else None

    def find_order_by_code(self, payment_code):
        self._call("find_order_by_code")
        order = next((o for o in self.orders.values() if o["payment_code"] == payment_code), None)
        return dict(order) if order else None

    def get_order_items(self, order_id):
        self._call("get_order_items")
        rows = []
        for item in self.order_items:
            if item["order_id"] != order_id:
                continue
            menu = next((m for m in self.menus if m["id"] == item["menu_id"]), None)
            rows.append({**item, "menus": {"name": menu["name"]} if menu else None})
        return rows

    def update_order_proof_url(self, payment_code, proof_url):
        self._call("update_order_proof_url")
        for order in self.orders.values():
            if order["payment_code"] == payment_code:
                order["proof_url"] = proof_url
        record = {"payment_code": payment_code, "proof_url": proof_url}
        self.changes.publish("orders", "UPDATE", record)
        self.changes.publish("payments", "INSERT", record)
        return True

    # --- settings ---

    def get_settings(self, keys: Iterable[str]):
        self._call("get_settings")
        wanted = set(keys)
        return [dict(s) for s in self.settings if s["key"] in wanted]

    # --- queue ---

    def queue_today(self):
        self._call("queue_today")
        if self.queue_view is None:
            raise BackendError("Could not find the table 'public.vw_queue_today'", code=RELATION_NOT_FOUND)
        return [dict(r) for r in self.queue_view]

    def open_orders_since(self, since):
        self._call("open_orders_since")
        rows = [
            o for o in self.orders.values()
            if o["created_at"] >= since and o["status"] not in TERMINAL_STATUSES
        ]
        return sorted((dict(o) for o in rows), key=lambda o: (o["queue_no"] or 0, o["created_at"]))

    # --- helpers for tests ---

    def add_order(self, **fields):
        now = datetime.now().astimezone()
        order = {
            "id": str(uuid.uuid4()),
            "source": "web",
            "service_type": "takeaway",
            "table_no": None,
            "status": "placed",
            "guest_name": "Budi",
            "contact": None,
            "payment_method": "cash",
            "payment_code": f"CODE{len(self.orders) + 1:02d}",
            "queue_no": len(self.orders) + 1,
            "total_amount": 17000,
            "proof_url": None,
            "created_at": now,
            "updated_at": now,
            "active": True,
        }
        order.update(fields)
        self.orders[order["id"]] = order
        return dict(order)


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    """No real sleeping in rate-limit retries; no rate limiting of test requests."""
    monkeypatch.setattr(config_mod, "RATE_LIMIT_RETRY_DELAY", 0.0)
    monkeypatch.setattr(limiter, "enabled", False)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def cart_store():
    return InMemoryStore()


@pytest.fixture
def session_store():
    return InMemoryStore()


@pytest.fixture
def carts(cart_store):
    return CartRepository(cart_store)


@pytest.fixture
def pre_orders(session_store):
    return PreOrderRepository(session_store)


@pytest.fixture
def saved_pre_order(pre_orders):
    pre_order = PreOrder(guest_name="Sari", contact="0812", service_type="dine_in", table_no="A1")
    pre_orders.save(pre_order)
    return pre_order


@pytest.fixture
def filled_cart(carts):
    lines = [
        CartLine(menu_id="m-goreng", name="Indomie Goreng", price=12000, quantity=2),
        CartLine(menu_id="m-esteh", name="Es Teh", price=5000, quantity=1),
    ]
    carts.save(lines)
    return lines


@pytest.fixture
def fixed_provider():
    """Rule-based recommender pinned to 19:00."""
    return TimeOfDayRecommender(clock=lambda: datetime(2026, 10, 19, 19, 0))


@pytest.fixture
def app(backend, fixed_provider):
    bridge_llm = LlmRecommender(complete=MagicMock(return_value="1. Es Teh - Rp5.000 (Minuman)"))
    bridge = create_bridge_app(backend_factory=lambda: backend, provider=bridge_llm)
    application = create_app(bridge=bridge)
    application.dependency_overrides[deps.get_backend] = lambda: backend
    application.dependency_overrides[deps.get_recommendation_provider] = lambda: fixed_provider
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Storefront TestClient identifying as one device and one session."""
    deps.STORES.clear()
    with TestClient(app) as test_client:
        test_client.headers.update({"X-Device-Id": DEVICE_ID, "X-Session-Id": SESSION_ID})
        yield test_client
    deps.STORES.clear()


@pytest.fixture
def sql_backend():
    """SqlBackend over an in-memory SQLite DB.

    Uses StaticPool so all connections share the same in-memory database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    session.add_all([MenuCategory(id=c["id"], name=c["name"]) for c in CATEGORIES])
    session.add_all([Menu(**m) for m in MENUS])
    session.add_all([
        DiningTable(label="B2", status="empty", capacity=2),
        DiningTable(label="A1", status="empty", capacity=4),
        DiningTable(label="C3", status="occupied", capacity=6),
    ])
    session.commit()
    session.close()

    storage = ObjectStorage(base_url="https://storage.test", api_key="test-key")
    sql = SqlBackend(TestingSessionLocal, storage=storage)
    sql.engine = engine
    yield sql
    engine.dispose()
