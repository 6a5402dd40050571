"""Tests for the in-memory backend and local store used in development."""

import pytest
from checkout.backend.fake_adapter import FakeBackend, MemoryLocalStore
from checkout.exceptions import CollaboratorError, SubmissionError


@pytest.fixture
def backend():
    fake = FakeBackend()
    fake.add_cart("store-1", "Grocer", [{"id": "i-1", "name": "Rice", "price": "1000", "quantity": 1}])
    fake.add_cart("store-2", "Bakery", [{"id": "i-2", "name": "Bread", "price": "500", "quantity": 2}])
    return fake


def _payload(*store_ids):
    return {"stores": [{"store_id": store_id, "delivery_fee": "1000", "service_fee": "50"} for store_id in store_ids]}


class TestOrderCreation:
    def test_repeated_key_does_not_duplicate_orders(self, backend):
        first = backend.create_combined_order(_payload("store-1", "store-2"), "key-1")
        second = backend.create_combined_order(_payload("store-1", "store-2"), "key-1")

        assert first == second
        assert len(backend.calls_to("create_combined_order")) == 2

    def test_new_key_creates_new_orders(self, backend):
        first = backend.create_combined_order(_payload("store-1"), "key-1")
        second = backend.create_combined_order(_payload("store-1"), "key-2")
        assert first.order_ids != second.order_ids

    def test_single_order_dedupes(self, backend):
        assert backend.create_order({"store_id": "store-1"}, "key-1") == backend.create_order(
            {"store_id": "store-1"}, "key-1"
        )

    def test_configured_failure(self, backend):
        backend.configure(should_succeed=False, failure_reason="Insufficient wallet balance")
        with pytest.raises(SubmissionError) as exc:
            backend.create_combined_order(_payload("store-1"), "key-1")
        assert exc.value.message == "Insufficient wallet balance"

    def test_failed_store_is_missing_from_result(self, backend):
        backend.failed_store_ids = {"store-2"}
        result = backend.create_combined_order(_payload("store-1", "store-2"), "key-1")
        assert result.succeeded_store_ids() == {"store-1"}


class TestReads:
    def test_failing_read(self, backend):
        backend.fail_reads("list_carts")
        with pytest.raises(CollaboratorError) as exc:
            backend.list_carts()
        assert exc.value.operation == "list_carts"

    def test_unknown_store(self, backend):
        with pytest.raises(CollaboratorError):
            backend.store_details("store-9")

    def test_created_address_is_listed(self, backend):
        address_id = backend.create_address("KG 11 Ave", "Kigali", "-1.97", "30.10", "")
        assert backend.list_addresses()[-1]["id"] == address_id


class TestMemoryLocalStore:
    def test_values_are_copied(self):
        store = MemoryLocalStore()
        value = {"street": "KG 11 Ave"}
        store.set("delivery_address", value)
        value["street"] = "changed"
        assert store.get("delivery_address") == {"street": "KG 11 Ave"}

    def test_remove(self):
        store = MemoryLocalStore({"storeCheckoutData": {"storeId": "1"}})
        store.remove("storeCheckoutData")
        assert "storeCheckoutData" not in store
        assert store.get("storeCheckoutData") is None
