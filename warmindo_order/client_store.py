"""
Client-Local State for Warmindo Order
=====================================

The cart and the pre-order are the customer's own state: they never reach
the database until checkout. They are kept as plain JSON blobs in a
key-value store, the way a browser keeps them in local/session storage:

- **Durable storage** (one per device id) holds the cart under ``cart``.
- **Session storage** (one per session id, expires when idle) holds the
  pre-order under ``pre_order`` and the cached payment settings.

Screen controllers receive repositories over these stores instead of
reaching for globals, which keeps every controller testable with a plain
``InMemoryStore``.

Thread Safety:
--------------
``InMemoryStore`` and ``StoreRegistry`` guard their dicts with a
threading.Lock; FastAPI runs sync endpoints in a thread pool.
"""

import json
import logging
import random
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from . import config

logger = logging.getLogger(__name__)

CART_KEY = "cart"
PRE_ORDER_KEY = "pre_order"
PAYMENT_SETTINGS_KEY = "payment_settings"

SERVICE_TYPES = ("dine_in", "takeaway")


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class InMemoryStore(KeyValueStore):
    """
    Dict-backed store. With ``ttl_seconds`` set, an entry not written or read
    within that window disappears (session storage semantics).
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock=time.monotonic):
        self._data: Dict[str, Any] = {}
        self._touched: Dict[str, float] = {}
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()

    def _expired(self, key: str) -> bool:
        if self._ttl is None:
            return False
        return self._clock() - self._touched.get(key, 0) > self._ttl

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            if key not in self._data:
                return None
            if self._expired(key):
                del self._data[key]
                del self._touched[key]
                return None
            self._touched[key] = self._clock()
            return self._data[key]

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
            self._touched[key] = self._clock()

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)
            self._touched.pop(key, None)


class _Slot:
    __slots__ = ("store", "last_access", "attachments")

    def __init__(self, store: InMemoryStore, now: float):
        self.store = store
        self.last_access = now
        self.attachments: Dict[str, Any] = {}


class StoreRegistry:
    """
    Hands out one durable store per device and one session store per session.

    Both maps are bounded the way a cache is. A session not touched within the
    session TTL is swept (checked on roughly 1% of lookups, or on demand via
    ``cleanup_expired``). When a map is full, the least recently used tenth
    is evicted before a new store is added. Objects attached to a session go
    away with it.
    """

    def __init__(
        self,
        session_ttl_seconds: Optional[float] = None,
        max_sessions: Optional[int] = None,
        max_devices: Optional[int] = None,
        clock=time.monotonic,
    ):
        self._session_ttl = session_ttl_seconds or config.SESSION_TTL_SECONDS
        self._max_sessions = max_sessions or config.SESSION_MAX_CACHE_SIZE
        self._max_devices = max_devices or config.DEVICE_MAX_CACHE_SIZE
        self._clock = clock
        self._durable: Dict[str, _Slot] = {}
        self._sessions: Dict[str, _Slot] = {}
        self._lock = threading.Lock()

    def _evict_oldest(self, slots: Dict[str, _Slot], count: int) -> None:
        """Drop the ``count`` least recently used slots. Caller holds the lock."""
        oldest = sorted(slots.items(), key=lambda item: item[1].last_access)[:count]
        for key, _ in oldest:
            del slots[key]
        logger.debug("Evicted %d least recently used stores", len(oldest))

    def _slot(self, slots: Dict[str, _Slot], key: str, max_size: int, factory) -> _Slot:
        now = self._clock()
        with self._lock:
            slot = slots.get(key)
            if slot is None:
                if len(slots) >= max_size:
                    self._evict_oldest(slots, max(1, max_size // 10))
                slot = slots[key] = _Slot(factory(), now)
            slot.last_access = now
            return slot

    def _session_slot(self, session_id: str) -> _Slot:
        if random.randint(1, 100) == 1:
            self.cleanup_expired()
        with self._lock:
            slot = self._sessions.get(session_id)
            if slot is not None and self._clock() - slot.last_access > self._session_ttl:
                del self._sessions[session_id]
        return self._slot(
            self._sessions,
            session_id,
            self._max_sessions,
            lambda: InMemoryStore(ttl_seconds=self._session_ttl, clock=self._clock),
        )

    def durable(self, device_id: str) -> KeyValueStore:
        return self._slot(self._durable, device_id, self._max_devices, InMemoryStore).store

    def session(self, session_id: str) -> KeyValueStore:
        return self._session_slot(session_id).store

    def session_attachment(self, session_id: str, name: str, factory):
        """Return the object stored under ``name`` for this session, creating it with ``factory``."""
        slot = self._session_slot(session_id)
        with self._lock:
            if name not in slot.attachments:
                slot.attachments[name] = factory()
            return slot.attachments[name]

    def cleanup_expired(self) -> int:
        """Remove idle sessions. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [
                sid for sid, slot in self._sessions.items()
                if now - slot.last_access > self._session_ttl
            ]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.debug("Cleaned up %d expired session stores", len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._durable.clear()
            self._sessions.clear()


# =============================================================================
# Records
# =============================================================================

@dataclass
class CartLine:
    """One cart line; name and price are a snapshot taken when first added."""
    menu_id: str
    name: str
    price: int
    quantity: int = 1
    note: Optional[str] = None

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity


@dataclass
class PreOrder:
    guest_name: str
    contact: str
    service_type: str
    table_no: str = ""


def cart_total(lines: List[CartLine]) -> int:
    return sum(line.price * line.quantity for line in lines)


def cart_count(lines: List[CartLine]) -> int:
    """Number shown on the cart badge."""
    return sum(line.quantity for line in lines)


# =============================================================================
# Repositories
# =============================================================================

class CartRepository:
    def __init__(self, store: KeyValueStore):
        self._store = store

    def load(self) -> List[CartLine]:
        raw = self._store.get(CART_KEY)
        if not raw:
            return []
        try:
            return [
                CartLine(
                    menu_id=str(item["menu_id"]),
                    name=item.get("name", ""),
                    price=int(item.get("price", 0)),
                    quantity=int(item.get("quantity", 1)),
                    note=item.get("note"),
                )
                for item in json.loads(raw)
            ]
        except (ValueError, TypeError, KeyError):
            logger.warning("Discarding unreadable cart blob")
            self._store.delete(CART_KEY)
            return []

    def save(self, lines: List[CartLine]) -> None:
        self._store.set(CART_KEY, json.dumps([asdict(line) for line in lines]))

    def clear(self) -> None:
        self._store.delete(CART_KEY)


class PreOrderRepository:
    def __init__(self, store: KeyValueStore):
        self._store = store

    def load(self) -> Optional[PreOrder]:
        raw = self._store.get(PRE_ORDER_KEY)
        if not raw:
            return None
        try:
            data = json.loads(raw)
            return PreOrder(
                guest_name=data.get("guest_name") or "",
                contact=data.get("contact") or "",
                service_type=data["service_type"],
                table_no=data.get("table_no") or "",
            )
        except (ValueError, TypeError, KeyError):
            logger.warning("Discarding unreadable pre-order blob")
            self._store.delete(PRE_ORDER_KEY)
            return None

    def save(self, pre_order: PreOrder) -> None:
        self._store.set(PRE_ORDER_KEY, json.dumps(asdict(pre_order)))

    def clear(self) -> None:
        self._store.delete(PRE_ORDER_KEY)
