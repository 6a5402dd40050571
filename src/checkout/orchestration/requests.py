"""Checkout request and result types exchanged with the order collaborator."""

from dataclasses import dataclass, field
from enum import Enum
from uuid import uuid4


class CheckoutMode(Enum):
    SINGLE_STORE = "single_store"
    COMBINED = "combined"


class OrderStatus(Enum):
    PENDING = "PENDING"
    FAILED = "FAILED"


@dataclass(frozen=True)
class StoreOrder:
    """Per-store line of a combined checkout: fees are sent as strings."""

    store_id: str
    delivery_fee: str
    service_fee: str

    def to_payload(self) -> dict:
        return {
            "store_id": self.store_id,
            "delivery_fee": self.delivery_fee,
            "service_fee": self.service_fee,
        }


@dataclass(frozen=True)
class CheckoutRequest:
    """Everything one submission sends downstream, built once per submit."""

    store_orders: tuple[StoreOrder, ...]
    delivery_address_id: str
    payment_method: str
    payment_method_id: str | None
    delivery_time: str
    notes: str | None = None
    idempotency_key: str = field(default_factory=lambda: str(uuid4()))

    def combined_payload(self) -> dict:
        return {
            "stores": [order.to_payload() for order in self.store_orders],
            "delivery_address_id": self.delivery_address_id,
            "delivery_time": self.delivery_time,
            "delivery_notes": self.notes or None,
            "payment_method": self.payment_method,
            "payment_method_id": self.payment_method_id,
            "idempotency_key": self.idempotency_key,
        }


@dataclass(frozen=True)
class OrderOutcome:
    order_id: str | None
    store_id: str
    status: str = OrderStatus.PENDING.value

    @property
    def succeeded(self) -> bool:
        return bool(self.order_id) and self.status != OrderStatus.FAILED.value


@dataclass(frozen=True)
class CheckoutResult:
    orders: tuple[OrderOutcome, ...] = ()
    combined_order_id: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "CheckoutResult":
        """Parse a combined-order response (``{combined_order_id, orders}``)."""
        orders = tuple(
            OrderOutcome(
                order_id=str(order["id"]) if order.get("id") else None,
                store_id=str(order.get("shop_id") or order.get("store_id") or ""),
                status=str(order.get("status") or OrderStatus.PENDING.value),
            )
            for order in payload.get("orders") or []
        )
        return cls(orders=orders, combined_order_id=payload.get("combined_order_id"))

    @property
    def order_ids(self) -> list[str]:
        return [order.order_id for order in self.orders if order.succeeded]

    def succeeded_store_ids(self) -> set[str]:
        return {order.store_id for order in self.orders if order.succeeded}
