"""Tests for EventBus: validation, durable push, listeners."""

import json

import pytest
from redis.exceptions import ConnectionError

from storefront_events import (
    Event,
    EventBus,
    EventType,
    ProductEvent,
    SearchEvent,
    create_event,
    track_order,
    track_search,
)
from storefront_queue import QueueKeys


def _event(**overrides) -> Event:
    fields = {
        "id": "evt-1",
        "type": EventType.PRODUCT_VIEWED,
        "timestamp": 1_700_000_000_000,
        "session_id": "s1",
        "product_id": 123,
    }
    fields.update(overrides)
    return ProductEvent(**fields)


class TestEmit:
    def test_valid_event_is_queued_once(self, bus, store) -> None:
        bus.emit(_event())

        items = store.scan_all(QueueKeys.EVENTS)
        assert len(items) == 1
        raw = json.loads(items[0])
        assert raw["id"] == "evt-1"
        assert raw["type"] == "product.viewed"
        assert raw["productId"] == 123
        assert raw["sessionId"] == "s1"

    @pytest.mark.parametrize(
        "overrides",
        [{"id": ""}, {"type": ""}, {"timestamp": 0}],
        ids=["missing-id", "missing-type", "zero-timestamp"],
    )
    def test_invalid_event_is_dropped(self, bus, store, overrides) -> None:
        bus.emit(_event(**overrides))
        assert store.length(QueueKeys.EVENTS) == 0

    def test_non_event_is_dropped(self, bus, store) -> None:
        bus.emit({"id": "x", "type": "product.viewed", "timestamp": 1})
        assert store.length(QueueKeys.EVENTS) == 0

    def test_store_failure_does_not_raise(self, bus, store, monkeypatch) -> None:
        called = []

        def broken_push(queue, item):
            raise ConnectionError("redis down")

        monkeypatch.setattr(store, "push", broken_push)
        bus.on(EventType.PRODUCT_VIEWED, called.append)

        bus.emit(_event())

        assert called == []

    def test_publish_reports_outcome(self, bus, store, monkeypatch) -> None:
        assert bus.publish(_event()) is True
        assert bus.publish(_event(id="")) is False

        def broken_push(queue, item):
            raise ConnectionError("redis down")

        monkeypatch.setattr(store, "push", broken_push)

        assert bus.publish(_event(id="evt-2")) is False
        assert store.length(QueueKeys.EVENTS) == 1


class TestListeners:
    def test_listener_runs_after_push(self, bus, store) -> None:
        seen = []
        bus.on(EventType.PRODUCT_VIEWED, lambda e: seen.append(store.length(QueueKeys.EVENTS)))

        bus.emit(_event())

        assert seen == [1]

    def test_listener_keyed_by_type(self, bus) -> None:
        seen = []
        bus.on(EventType.SEARCH_PERFORMED, seen.append)

        bus.emit(_event())

        assert seen == []

    def test_failing_listener_does_not_block_others(self, bus, store) -> None:
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        bus.on(EventType.PRODUCT_VIEWED, broken)
        bus.on(EventType.PRODUCT_VIEWED, seen.append)

        bus.emit(_event())

        assert len(seen) == 1
        assert store.length(QueueKeys.EVENTS) == 1

    def test_off_removes_one_registration(self, bus) -> None:
        seen = []
        bus.on(EventType.PRODUCT_VIEWED, seen.append)
        bus.on(EventType.PRODUCT_VIEWED, seen.append)

        bus.off(EventType.PRODUCT_VIEWED, seen.append)
        bus.emit(_event())

        assert len(seen) == 1
        assert bus.listener_count(EventType.PRODUCT_VIEWED) == 1

    def test_off_unknown_listener_is_noop(self, bus) -> None:
        bus.off("never.registered", print)
        assert bus.listener_count("never.registered") == 0

    def test_string_and_enum_share_registry(self, bus) -> None:
        seen = []
        bus.on("product.viewed", seen.append)

        bus.emit(_event())

        assert len(seen) == 1


class TestEventHelpers:
    def test_create_event_picks_variant(self) -> None:
        event = create_event(
            EventType.SEARCH_PERFORMED, {"source": "header"}, "u1", "s1", query="rice"
        )

        assert isinstance(event, SearchEvent)
        assert event.type == "search.performed"
        assert event.id.startswith("search.performed_")
        assert event.timestamp > 0
        assert event.query == "rice"

    def test_create_event_generates_session(self) -> None:
        event = create_event(EventType.USER_LOGIN, {})
        assert event.session_id.startswith("session_")

    def test_track_search_emits(self, bus, store) -> None:
        event = track_search(bus, "turmeric", 0, session_id="s1")

        raw = json.loads(store.scan_all(QueueKeys.EVENTS)[0])
        assert raw["id"] == event.id
        assert raw["resultsCount"] == 0
        assert raw["query"] == "turmeric"

    def test_track_order_folds_details_into_metadata(self, bus, store) -> None:
        items = [{"productId": 1, "quantity": 2, "price": 9.5}]
        track_order(bus, "o-1", 19.0, items, session_id="s1", payment_method="card")

        raw = json.loads(store.scan_all(QueueKeys.EVENTS)[0])
        assert raw["orderId"] == "o-1"
        assert raw["orderTotal"] == 19.0
        assert raw["items"] == items
        assert raw["metadata"]["itemCount"] == 1
        assert raw["metadata"]["paymentMethod"] == "card"

    def test_decode_keeps_unknown_fields(self) -> None:
        event = Event.from_json(
            '{"id": "e", "type": "product.viewed", "timestamp": 5, "sessionId": "s",'
            ' "metadata": {}, "productId": 7, "campaign": "spring"}'
        )

        assert isinstance(event, ProductEvent)
        assert event.product_id == 7
        assert event.to_dict()["campaign"] == "spring"
