"""
Tests for client-side storage: the key-value stores and the cart and
pre-order repositories.
"""
from warmindo_order.client_store import (
    CART_KEY,
    CartLine,
    CartRepository,
    InMemoryStore,
    PreOrder,
    PreOrderRepository,
    StoreRegistry,
    cart_count,
    cart_total,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestInMemoryStore:
    def test_get_set_delete(self):
        store = InMemoryStore()
        assert store.get("k") is None
        store.set("k", "v")
        assert store.get("k") == "v"
        store.delete("k")
        assert store.get("k") is None

    def test_entries_expire_after_ttl(self):
        clock = FakeClock()
        store = InMemoryStore(ttl_seconds=60, clock=clock)
        store.set("k", "v")

        clock.now += 59
        assert store.get("k") == "v"

        clock.now += 120
        assert store.get("k") is None

    def test_delete_missing_key_is_noop(self):
        InMemoryStore().delete("missing")


class TestStoreRegistry:
    def test_same_device_gets_same_store(self):
        registry = StoreRegistry(session_ttl_seconds=60)
        registry.durable("d1").set("cart", "[]")
        assert registry.durable("d1").get("cart") == "[]"
        assert registry.durable("d2").get("cart") is None

    def test_sessions_are_separate_from_devices(self):
        registry = StoreRegistry(session_ttl_seconds=60)
        registry.session("s1").set("pre_order", "{}")
        assert registry.durable("s1").get("pre_order") is None
        assert registry.session("s1").get("pre_order") == "{}"

    def test_clear_drops_everything(self):
        registry = StoreRegistry(session_ttl_seconds=60)
        registry.durable("d1").set("cart", "[]")
        registry.clear()
        assert registry.durable("d1").get("cart") is None

    def test_expired_sessions_are_cleaned_up(self):
        now = [1000.0]
        registry = StoreRegistry(session_ttl_seconds=60, clock=lambda: now[0])
        registry.session("s1").set("pre_order", "{}")
        registry.session("s2")
        now[0] += 30
        registry.session("s2")
        now[0] += 45

        assert registry.cleanup_expired() == 1
        assert "s1" not in registry._sessions
        assert "s2" in registry._sessions

    def test_idle_session_starts_over(self):
        now = [1000.0]
        registry = StoreRegistry(session_ttl_seconds=60, clock=lambda: now[0])
        registry.session("s1").set("pre_order", "{}")
        first = registry.session_attachment("s1", "sequencer", object)
        now[0] += 61

        assert registry.session("s1").get("pre_order") is None
        assert registry.session_attachment("s1", "sequencer", object) is not first

    def test_attachment_is_shared_within_a_session(self):
        registry = StoreRegistry(session_ttl_seconds=60)
        first = registry.session_attachment("s1", "sequencer", object)
        assert registry.session_attachment("s1", "sequencer", object) is first
        assert registry.session_attachment("s2", "sequencer", object) is not first

    def test_session_count_is_bounded(self):
        registry = StoreRegistry(session_ttl_seconds=3600, max_sessions=100)
        for i in range(5001):
            registry.session(f"s{i}")
        assert len(registry._sessions) <= 100
        assert "s5000" in registry._sessions

    def test_least_recently_used_device_is_evicted(self):
        now = [0.0]
        registry = StoreRegistry(session_ttl_seconds=60, max_devices=10, clock=lambda: now[0])
        for i in range(10):
            now[0] += 1
            registry.durable(f"d{i}").set("cart", "[]")
        now[0] += 1
        registry.durable("d0")
        now[0] += 1
        registry.durable("d10")

        assert "d0" in registry._durable
        assert "d1" not in registry._durable
        assert len(registry._durable) == 10


class TestCartRepository:
    def test_empty_store_loads_empty_cart(self):
        assert CartRepository(InMemoryStore()).load() == []

    def test_save_and_load(self):
        repo = CartRepository(InMemoryStore())
        lines = [CartLine(menu_id="m1", name="Indomie", price=12000, quantity=2)]
        repo.save(lines)
        assert repo.load() == lines

    def test_unreadable_blob_is_discarded(self):
        store = InMemoryStore()
        store.set(CART_KEY, "not json")
        repo = CartRepository(store)
        assert repo.load() == []
        assert store.get(CART_KEY) is None

    def test_clear(self):
        repo = CartRepository(InMemoryStore())
        repo.save([CartLine(menu_id="m1", name="Indomie", price=12000)])
        repo.clear()
        assert repo.load() == []


class TestPreOrderRepository:
    def test_round_trip(self):
        repo = PreOrderRepository(InMemoryStore())
        pre_order = PreOrder(guest_name="Sari", contact="", service_type="takeaway")
        repo.save(pre_order)
        assert repo.load() == pre_order

    def test_missing_service_type_is_discarded(self):
        store = InMemoryStore()
        store.set("pre_order", '{"guest_name": "Sari"}')
        assert PreOrderRepository(store).load() is None
        assert store.get("pre_order") is None


def test_cart_total_is_sum_of_price_times_quantity():
    lines = [
        CartLine(menu_id="a", name="A", price=12000, quantity=2),
        CartLine(menu_id="b", name="B", price=5000, quantity=3),
    ]
    assert cart_total(lines) == 12000 * 2 + 5000 * 3
    assert cart_count(lines) == 5
    assert cart_total([]) == 0
