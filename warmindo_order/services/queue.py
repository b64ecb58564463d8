"""
Live Queue Service
==================

Today's queue, read from the ``vw_queue_today`` view ordered by queue number.

Fallback:
---------
When the view is missing (``RELATION_NOT_FOUND``), today's open orders are
read from ``orders`` directly: created at or after local midnight, status
not completed or canceled, ordered by queue number then creation time.
``is_paid`` is derived from the status. Any other backend error propagates.

Live Updates:
-------------
``QueueWatcher`` reloads the whole queue whenever an ``orders`` or
``payments`` change is published, and also every ``QUEUE_POLL_SECONDS`` as a
backstop for missed notifications. Both triggers only wake one worker
thread, so a burst of changes costs one reload. Results carry a sequence
number and only the newest is handed to the listener. ``close()`` drops
both subscriptions and stops the worker.
"""

import asyncio
import json
import logging
import threading
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

from .. import config
from ..errors import BackendError, with_rate_limit_retry
from ..formatting import format_time, service_type_label, status_label
from ..gateway import Backend
from ..models import start_of_local_day
from ..schemas.queue import QueueOut, QueueRowOut, QueueSummary
from .helpers import RequestSequencer

logger = logging.getLogger(__name__)

# Statuses the fallback query treats as paid
FALLBACK_PAID_STATUSES = ("paid", "processing", "completed", "confirmed")

WATCHED_TABLES = ("orders", "payments")

LOAD_FAILED = "Gagal memuat antrian"


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def fallback_row(order: Dict[str, Any]) -> Dict[str, Any]:
    """Shape an ``orders`` row like a ``vw_queue_today`` row."""
    return {
        "id": order["id"],
        "queue_no": order.get("queue_no"),
        "guest_name": order.get("guest_name"),
        "contact": order.get("contact"),
        "service_type": order.get("service_type"),
        "table_no": order.get("table_no"),
        "order_status": order.get("status"),
        "is_paid": order.get("status") in FALLBACK_PAID_STATUSES,
        "created_at": order.get("created_at"),
    }


def load_queue(backend: Backend, now: Optional[datetime] = None) -> Tuple[List[Dict[str, Any]], str]:
    """
    Return today's queue rows and where they came from (``view`` or ``fallback``).

    Raises:
        BackendError: any failure other than the view being missing
    """
    try:
        return with_rate_limit_retry(backend.queue_today), "view"
    except BackendError as exc:
        if not exc.is_missing_relation:
            raise
        logger.warning("Queue view unavailable (%s); reading orders directly", exc.code)

    orders = with_rate_limit_retry(backend.open_orders_since, start_of_local_day(now))
    return [fallback_row(o) for o in orders], "fallback"


def queue_row_out(row: Dict[str, Any]) -> QueueRowOut:
    status = row.get("order_status") or row.get("status")
    created_at = _as_datetime(row.get("created_at"))
    return QueueRowOut(
        id=str(row["id"]),
        queue_no=row.get("queue_no"),
        guest_name=row.get("guest_name") or "Tamu",
        contact=row.get("contact"),
        service_type=row.get("service_type"),
        service_label=service_type_label(row.get("service_type")),
        table_no=row.get("table_no"),
        status=status,
        status_label=status_label(status),
        is_paid=bool(row.get("is_paid")) or status == "confirmed",
        created_at=created_at,
        time_display=format_time(created_at),
    )


def summarize(rows: List[QueueRowOut]) -> QueueSummary:
    total = len(rows)
    paid = sum(1 for row in rows if row.is_paid)
    return QueueSummary(total=total, paid=paid, unpaid=total - paid)


class QueueController:
    def __init__(self, backend: Backend):
        self.backend = backend

    def load(self) -> QueueOut:
        rows, source = load_queue(self.backend)
        out_rows = [queue_row_out(r) for r in rows]
        return QueueOut(rows=out_rows, summary=summarize(out_rows), source=source)


class QueueWatcher:
    """
    Keeps a listener supplied with the current queue.

    Args:
        backend: storefront backend (its change feed is subscribed to)
        on_update: called with each new QueueOut, from the watcher's thread
        poll_seconds: backstop reload interval
    """

    def __init__(
        self,
        backend: Backend,
        on_update: Callable[[QueueOut], None],
        poll_seconds: Optional[float] = None,
    ):
        self.backend = backend
        self.controller = QueueController(backend)
        self.on_update = on_update
        self.poll_seconds = config.QUEUE_POLL_SECONDS if poll_seconds is None else poll_seconds
        self.sequencer = RequestSequencer()
        self._subscriptions = []
        self._wake = threading.Event()
        self._closed = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> "QueueWatcher":
        for table in WATCHED_TABLES:
            self._subscriptions.append(self.backend.changes.subscribe(table, self._on_change))
        self._thread = threading.Thread(target=self._run, name="queue-watcher", daemon=True)
        self._thread.start()
        logger.debug("Queue watcher started (poll every %ss)", self.poll_seconds)
        return self

    def _on_change(self, event: Dict[str, Any]) -> None:
        logger.debug("Queue change on %s (%s)", event.get("table"), event.get("type"))
        self._wake.set()

    def _run(self) -> None:
        self.refresh()
        while not self._closed.is_set():
            self._wake.wait(timeout=self.poll_seconds)
            self._wake.clear()
            if self._closed.is_set():
                break
            self.refresh()

    def refresh(self) -> None:
        """Reload the queue and publish it unless a newer reload started meanwhile."""
        token = self.sequencer.next()
        try:
            result = self.controller.load()
        except BackendError as exc:
            logger.error("Queue reload failed: %s", exc.message)
            result = QueueOut()
            result.notify("error", LOAD_FAILED)
        if self.sequencer.is_latest(token) and not self._closed.is_set():
            self.on_update(result)

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        self._wake.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=5)
        logger.debug("Queue watcher closed")

    def __enter__(self) -> "QueueWatcher":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.close()


async def queue_event_stream(
    backend: Backend,
    keepalive_seconds: float = 15.0,
    max_events: Optional[int] = None,
    poll_seconds: Optional[float] = None,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """
    Server-sent events carrying the queue, one ``data:`` frame per update.

    Waiting happens on the event loop, so an idle client holds no worker
    thread. The watcher is closed when the client disconnects (checked before
    every frame via ``is_disconnected``), when the generator is closed or
    cancelled, or after ``max_events`` updates.
    """
    loop = asyncio.get_running_loop()
    updates: "asyncio.Queue[QueueOut]" = asyncio.Queue()

    def deliver(result: QueueOut) -> None:
        if not loop.is_closed():
            loop.call_soon_threadsafe(updates.put_nowait, result)

    watcher = QueueWatcher(backend, deliver, poll_seconds=poll_seconds)
    sent = 0
    try:
        watcher.start()
        while max_events is None or sent < max_events:
            if is_disconnected is not None and await is_disconnected():
                logger.debug("Queue stream client disconnected")
                break
            try:
                update = await asyncio.wait_for(updates.get(), timeout=keepalive_seconds)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield f"data: {json.dumps(update.model_dump(mode='json'))}\n\n"
            sent += 1
    finally:
        watcher.close()
