"""Collaborator ports (abstract interfaces) consumed by the checkout engine.

The engine never talks to storage or remote services directly. Carts,
addresses, payment methods, wallet balance, store locations and order
creation are all reached through ``CheckoutBackend``; client-side persisted
state (last chosen address, pending single-store checkout) goes through
``LocalStore``. Adapters: ``FakeBackend``/``MemoryLocalStore`` for development
and tests, ``HttpBackend`` for the platform API.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from checkout.orchestration.requests import CheckoutResult

DELIVERY_ADDRESS_KEY = "delivery_address"
PENDING_CHECKOUT_KEY = "storeCheckoutData"


@dataclass(frozen=True)
class CartRecord:
    """An active cart, one per store."""

    store_id: str
    name: str
    image: str | None = None


@dataclass(frozen=True)
class ItemRecord:
    id: str
    name: str
    price: str
    quantity: int
    image: str | None = None
    size: str | None = None


@dataclass(frozen=True)
class StoredInstrument:
    """A saved card or mobile-money account."""

    id: str
    method: str
    number: str
    is_default: bool = False


@dataclass(frozen=True)
class StoreLocation:
    store_id: str
    latitude: str | float | None = None
    longitude: str | float | None = None
    name: str | None = None
    image: str | None = None

    @property
    def coordinates(self) -> tuple:
        return (self.latitude, self.longitude)


class CheckoutBackend(ABC):
    """Everything the checkout engine reads from or writes to the platform."""

    @abstractmethod
    def list_carts(self) -> list[CartRecord]:
        """Active carts of the current shopper."""
        ...

    @abstractmethod
    def list_cart_items(self, store_id: str) -> list[ItemRecord]:
        """Items in the shopper's cart for one store."""
        ...

    @abstractmethod
    def list_addresses(self) -> list[dict]:
        """Saved addresses: ``{id, street, city, postal_code, latitude, longitude}``."""
        ...

    @abstractmethod
    def create_address(
        self,
        street: str,
        city: str,
        latitude: str,
        longitude: str,
        postal_code: str,
    ) -> str:
        """Persist an address and return its id."""
        ...

    @abstractmethod
    def list_payment_methods(self) -> list[StoredInstrument]:
        ...

    @abstractmethod
    def refund_balance(self) -> str:
        """Wallet/refund balance as a decimal string."""
        ...

    @abstractmethod
    def store_details(self, store_id: str) -> StoreLocation:
        ...

    @abstractmethod
    def create_order(self, payload: dict, idempotency_key: str) -> str:
        """Create a single-store order and return its id.

        Raises ``SubmissionError`` with the collaborator's message on failure.
        """
        ...

    @abstractmethod
    def create_combined_order(self, payload: dict, idempotency_key: str) -> CheckoutResult:
        """Create one order per store atomically under one combined order id.

        Raises ``SubmissionError`` with the collaborator's message on failure.
        """
        ...


class LocalStore(ABC):
    """Client-persisted key/value state (JSON-serialisable values)."""

    @abstractmethod
    def get(self, key: str):
        ...

    @abstractmethod
    def set(self, key: str, value) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...
