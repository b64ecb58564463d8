"""
Tests for the in-process change feed.
"""
from warmindo_order.realtime import ChangeFeed


def test_subscribers_receive_events_for_their_table():
    feed = ChangeFeed()
    orders, payments = [], []
    feed.subscribe("orders", orders.append)
    feed.subscribe("payments", payments.append)

    feed.publish("orders", "INSERT", {"id": "o1"})

    assert orders == [{"table": "orders", "type": "INSERT", "record": {"id": "o1"}}]
    assert payments == []


def test_unsubscribe_stops_delivery():
    feed = ChangeFeed()
    received = []
    subscription = feed.subscribe("orders", received.append)
    assert feed.subscriber_count("orders") == 1

    subscription.unsubscribe()
    subscription.unsubscribe()
    feed.publish("orders", "UPDATE")

    assert received == []
    assert feed.subscriber_count() == 0


def test_failing_subscriber_does_not_block_others():
    feed = ChangeFeed()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    feed.subscribe("orders", broken)
    feed.subscribe("orders", received.append)
    feed.publish("orders", "INSERT")

    assert len(received) == 1
