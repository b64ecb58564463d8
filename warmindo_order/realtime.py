"""
In-process change feed.

The gateway publishes an event whenever it writes an order or attaches a
payment proof; the live queue subscribes and reloads. Subscribers are keyed
by table name ("orders", "payments") and receive the event dict:

    {"table": "orders", "type": "INSERT", "record": {...}}
"""

import itertools
import logging
import threading
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

Callback = Callable[[Dict[str, Any]], None]


class Subscription:
    """Handle returned by ChangeFeed.subscribe; call unsubscribe() on teardown."""

    def __init__(self, feed: "ChangeFeed", sub_id: int, table: str):
        self._feed = feed
        self.id = sub_id
        self.table = table
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._feed._remove(self)
            self.active = False


class ChangeFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._subscribers: Dict[str, Dict[int, Callback]] = {}

    def subscribe(self, table: str, callback: Callback) -> Subscription:
        with self._lock:
            sub_id = next(self._ids)
            self._subscribers.setdefault(table, {})[sub_id] = callback
        logger.debug("Subscribed #%d to %s changes", sub_id, table)
        return Subscription(self, sub_id, table)

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscribers.get(subscription.table, {}).pop(subscription.id, None)
        logger.debug("Released subscription #%d on %s", subscription.id, subscription.table)

    def subscriber_count(self, table: Optional[str] = None) -> int:
        with self._lock:
            if table is not None:
                return len(self._subscribers.get(table, {}))
            return sum(len(subs) for subs in self._subscribers.values())

    def publish(self, table: str, event_type: str, record: Optional[Dict[str, Any]] = None) -> None:
        event = {"table": table, "type": event_type, "record": record or {}}
        with self._lock:
            callbacks = list(self._subscribers.get(table, {}).values())
        for callback in callbacks:
            # One broken subscriber must not stop delivery to the rest
            try:
                callback(event)
            except Exception:
                logger.exception("Change subscriber failed for %s %s", table, event_type)
