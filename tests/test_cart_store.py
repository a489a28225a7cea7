"""
Unit tests for LocalCartStore over the in-memory storage port.
"""
import json
import random
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from app.models.cart import CartItemCreate, ItemType
from app.services.cart import LocalCartStore, item_from_record
from app.services.events import CartEventBus
from app.services.storage import MemoryStorage
from tests.conftest import course, product


class TestReadingTheCart:

    def test_absent_storage_reads_as_empty(self, store):
        assert store.get_cart() == []
        assert store.item_count() == 0

    @pytest.mark.parametrize("payload", [
        "not json at all",
        '{"item_id": 1}',
        '[{"item_id": "abc", "title": "x", "price": 1}]',
        '[{"item_id": 1, "title": "x", "price": -5}]',
        "[1, 2, 3]",
    ], ids=["garbage", "object", "bad-id", "negative-price", "scalars"])
    def test_corrupt_payload_reads_as_empty(self, payload):
        storage = MemoryStorage({"edusphere_cart": payload})
        store = LocalCartStore(storage)

        assert store.get_cart() == []
        # Reading never repairs or rewrites storage
        assert storage.data["edusphere_cart"] == payload

    def test_legacy_course_records_are_read(self):
        legacy = [{
            "course_id": 3,
            "course_title": "Intro to Python",
            "course_price": 49.0,
            "course_cover": "https://cdn.example.com/3.png",
            "added_at": "2025-01-02T10:00:00+00:00",
        }]
        store = LocalCartStore(MemoryStorage({"edusphere_cart": json.dumps(legacy)}))

        cart = store.get_cart()

        assert len(cart) == 1
        assert cart[0].key == (ItemType.COURSE, 3)
        assert cart[0].title == "Intro to Python"
        assert cart[0].cover_url == "https://cdn.example.com/3.png"

    def test_item_from_record_rejects_non_objects(self):
        with pytest.raises(ValueError):
            item_from_record(["course", 1])


class TestAddingItems:

    def test_add_sets_added_at_from_clock(self):
        added_at = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)
        store = LocalCartStore(MemoryStorage(), clock=lambda: added_at)

        assert store.add_item(course(1)) is True

        cart = store.get_cart()
        assert [item.key for item in cart] == [(ItemType.COURSE, 1)]
        assert cart[0].added_at == added_at

    def test_duplicate_add_returns_false_and_leaves_storage_unchanged(self, store, memory_storage):
        store.add_item(course(1))
        before = memory_storage.data["edusphere_cart"]

        assert store.add_item(course(1, title="Renamed", price=99)) is False

        assert memory_storage.data["edusphere_cart"] == before

    def test_course_and_product_share_numeric_id(self, store):
        assert store.add_item(course(5)) is True
        assert store.add_item(product(5)) is True

        assert store.item_count() == 2
        assert store.is_in_cart(5, ItemType.COURSE)
        assert store.is_in_cart(5, ItemType.PRODUCT)

    def test_negative_price_is_rejected_before_storage(self):
        with pytest.raises(ValidationError):
            CartItemCreate(item_id=1, title="Broken", price=-1)

    def test_total_sums_snapshot_prices(self, store):
        store.add_item(course(1, price=10.5))
        store.add_item(product(2, price=4.5))

        assert store.total() == 15.0


class TestRemovingAndClearing:

    def test_remove_is_idempotent(self, store):
        store.add_item(course(1))
        store.add_item(course(2))

        store.remove_item(1)
        store.remove_item(1)
        store.remove_item(42)

        assert [item.item_id for item in store.get_cart()] == [2]

    def test_remove_only_touches_the_given_type(self, store):
        store.add_item(course(5))
        store.add_item(product(5))

        store.remove_item(5, ItemType.PRODUCT)

        assert [item.key for item in store.get_cart()] == [(ItemType.COURSE, 5)]

    def test_clear_then_get_cart_is_empty(self, store, memory_storage):
        store.add_item(course(1))
        store.mark_synced()

        store.clear()

        assert store.get_cart() == []
        assert "edusphere_cart" not in memory_storage.data
        assert store.is_synced() is False

    def test_item_count_matches_distinct_keys_over_random_operations(self, store):
        rng = random.Random(7)
        expected = set()
        for _ in range(200):
            item_type = rng.choice(list(ItemType))
            item_id = rng.randint(1, 6)
            if rng.random() < 0.6:
                item = course(item_id) if item_type == ItemType.COURSE else product(item_id)
                added = store.add_item(item)
                assert added is ((item_type, item_id) not in expected)
                expected.add((item_type, item_id))
            else:
                store.remove_item(item_id, item_type)
                expected.discard((item_type, item_id))

            assert store.item_count() == len(expected)


class TestSyncMarker:

    def test_mutations_clear_the_sync_marker(self, store):
        store.mark_synced()
        store.add_item(course(1))
        assert store.is_synced() is False

        store.mark_synced()
        store.remove_item(1)
        assert store.is_synced() is False

    def test_replace_keeps_the_sync_marker(self, store):
        store.mark_synced()

        store.replace([])

        assert store.is_synced() is True


class TestChangeNotifications:

    def test_every_mutation_publishes_the_new_count(self):
        events = CartEventBus()
        store = LocalCartStore(MemoryStorage(), events=events)
        counts = []
        events.subscribe(lambda event: counts.append(event.item_count))

        store.add_item(course(1))
        store.add_item(product(1))
        store.add_item(course(1))  # duplicate: no write, no event
        store.remove_item(1, ItemType.PRODUCT)
        store.clear()

        assert counts == [1, 2, 1, 0]

    def test_reads_do_not_publish(self, store):
        received = []
        store.events.subscribe(received.append)

        store.get_cart()
        store.item_count()
        store.is_in_cart(1)

        assert received == []
