"""Configurable in-memory backend for development and testing.

Seeded with carts, addresses, payment methods, a wallet balance and store
locations; every call is recorded in ``calls``. Reads and order creation can
be switched to fail at runtime. Order creation is deduplicated on the
idempotency key, the way the platform API is expected to behave.
"""

import copy
from uuid import uuid4

from checkout.backend.port import (
    CartRecord,
    CheckoutBackend,
    ItemRecord,
    LocalStore,
    StoredInstrument,
    StoreLocation,
)
from checkout.exceptions import CollaboratorError, SubmissionError
from checkout.orchestration.requests import CheckoutResult, OrderOutcome


class FakeBackend(CheckoutBackend):
    """In-memory checkout collaborator."""

    def __init__(self) -> None:
        self.carts: list[CartRecord] = []
        self.items: dict[str, list[ItemRecord]] = {}
        self.addresses: list[dict] = []
        self.payment_methods: list[StoredInstrument] = []
        self.balance: str = "0"
        self.stores: dict[str, StoreLocation] = {}

        self.failing_reads: set[str] = set()
        self.should_succeed: bool = True
        self.failure_reason: str = "Failed to create order"
        self.failed_store_ids: set[str] = set()

        self.calls: list[dict] = []
        self._orders_by_key: dict[str, object] = {}

    # -------------------------------------------------------------------
    # Seeding / configuration
    # -------------------------------------------------------------------
    def add_cart(self, store_id, name, items, latitude=None, longitude=None, image=None) -> None:
        self.carts.append(CartRecord(store_id=store_id, name=name, image=image))
        self.items[store_id] = [
            item if isinstance(item, ItemRecord) else ItemRecord(**item) for item in items
        ]
        self.stores[store_id] = StoreLocation(
            store_id=store_id,
            latitude=latitude,
            longitude=longitude,
            name=name,
            image=image,
        )

    def configure(self, should_succeed: bool, failure_reason: str = "Failed to create order") -> None:
        """Configure order-creation behaviour at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def fail_reads(self, *operations: str) -> None:
        self.failing_reads.update(operations)

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def _read(self, operation: str, **kwargs) -> None:
        self.calls.append({"method": operation, **kwargs})
        if operation in self.failing_reads:
            raise CollaboratorError(operation, f"{operation} is unavailable")

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def list_carts(self) -> list[CartRecord]:
        self._read("list_carts")
        return list(self.carts)

    def list_cart_items(self, store_id: str) -> list[ItemRecord]:
        self._read("list_cart_items", store_id=store_id)
        return list(self.items.get(store_id, []))

    def list_addresses(self) -> list[dict]:
        self._read("list_addresses")
        return copy.deepcopy(self.addresses)

    def list_payment_methods(self) -> list[StoredInstrument]:
        self._read("list_payment_methods")
        return list(self.payment_methods)

    def refund_balance(self) -> str:
        self._read("refund_balance")
        return self.balance

    def store_details(self, store_id: str) -> StoreLocation:
        self._read("store_details", store_id=store_id)
        if store_id not in self.stores:
            raise CollaboratorError("store_details", f"Store {store_id} not found")
        return self.stores[store_id]

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def create_address(self, street, city, latitude, longitude, postal_code) -> str:
        self.calls.append(
            {
                "method": "create_address",
                "street": street,
                "city": city,
                "latitude": latitude,
                "longitude": longitude,
                "postal_code": postal_code,
            }
        )
        if "create_address" in self.failing_reads:
            raise SubmissionError("Failed to create delivery address", status_code=500)
        address_id = f"addr-{uuid4().hex[:8]}"
        self.addresses.append(
            {
                "id": address_id,
                "street": street,
                "city": city,
                "postal_code": postal_code,
                "latitude": latitude,
                "longitude": longitude,
            }
        )
        return address_id

    def create_order(self, payload: dict, idempotency_key: str) -> str:
        self.calls.append({"method": "create_order", "payload": payload, "idempotency_key": idempotency_key})
        if idempotency_key in self._orders_by_key:
            return self._orders_by_key[idempotency_key]
        if not self.should_succeed:
            raise SubmissionError(self.failure_reason, status_code=500)

        order_id = f"ord-{uuid4().hex[:8]}"
        self._orders_by_key[idempotency_key] = order_id
        return order_id

    def create_combined_order(self, payload: dict, idempotency_key: str) -> CheckoutResult:
        self.calls.append(
            {"method": "create_combined_order", "payload": payload, "idempotency_key": idempotency_key}
        )
        if idempotency_key in self._orders_by_key:
            return self._orders_by_key[idempotency_key]
        if not self.should_succeed:
            raise SubmissionError(self.failure_reason, status_code=500)

        orders = []
        for store in payload["stores"]:
            if store["store_id"] in self.failed_store_ids:
                continue
            orders.append(OrderOutcome(order_id=f"ord-{uuid4().hex[:8]}", store_id=store["store_id"]))

        result = CheckoutResult(orders=tuple(orders), combined_order_id=str(uuid4()))
        self._orders_by_key[idempotency_key] = result
        return result


class MemoryLocalStore(LocalStore):
    """Dict-backed stand-in for browser storage."""

    def __init__(self, initial: dict | None = None) -> None:
        self._data: dict = copy.deepcopy(initial or {})

    def get(self, key: str):
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value) -> None:
        self._data[key] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data
