"""Cart aggregation: raw cart/item records to priced ``StoreCart`` views.

All functions here are pure reducers: they take the current list of store
carts plus their inputs and return a new list. Nothing performs I/O, so
``recompute_fees`` may be re-run whenever the address or cart contents change.
"""

from decimal import Decimal

from protean.exceptions import ValidationError

from checkout.backend.port import CartRecord, ItemRecord, StoreLocation
from checkout.cart.store_cart import CartLine, StoreCart
from checkout.exceptions import NothingToCheckout
from checkout.pricing.eta import DEFAULT_ESTIMATOR, DeliveryEstimator
from checkout.pricing.fees import DEFAULT_SCHEDULE, FeeSchedule


def build_store_carts(
    carts: list[CartRecord],
    items_by_cart: dict[str, list[ItemRecord]],
    schedule: FeeSchedule | None = None,
) -> list[StoreCart]:
    """Price each cart with the provisional (distance-unknown) fee.

    Carts without items are left out; every remaining cart starts selected.
    """
    schedule = schedule or DEFAULT_SCHEDULE
    store_carts = []
    for cart in carts:
        lines = tuple(CartLine.from_item(item) for item in items_by_cart.get(cart.store_id, []))
        if not lines:
            continue

        subtotal = sum((line.line_total for line in lines), Decimal("0"))
        store_carts.append(
            StoreCart(
                store_id=cart.store_id,
                store_name=cart.name,
                image=cart.image,
                items=lines,
                subtotal=subtotal,
                transportation_fee=schedule.base_fee,
                service_fee=schedule.service_fee(subtotal),
                selected=True,
            )
        )
    return store_carts


def recompute_fees(
    store_carts: list[StoreCart],
    delivery_address,
    store_locations: dict[str, StoreLocation],
    estimator: DeliveryEstimator | None = None,
    schedule: FeeSchedule | None = None,
) -> list[StoreCart]:
    """Re-derive transportation fee, distance and ETA for every cart.

    Carts whose store or shopper location is unknown get the provisional flat
    fee back. The output depends only on the inputs, never on fees already
    present on ``store_carts``.
    """
    estimator = estimator or DEFAULT_ESTIMATOR
    schedule = schedule or DEFAULT_SCHEDULE
    origin = delivery_address.coordinates if delivery_address is not None else None

    recomputed = []
    for cart in store_carts:
        location = store_locations.get(cart.store_id)
        destination = location.coordinates if location is not None else None
        fee_quote = schedule.quote_between(origin, destination, cart.subtotal)
        eta = estimator.estimate(fee_quote.distance_km) if not fee_quote.degraded else None
        recomputed.append(cart.with_fees(fee_quote.transportation_fee, fee_quote.distance_km, eta))
    return recomputed


def toggle_selection(store_carts: list[StoreCart], store_id: str) -> list[StoreCart]:
    """Flip ``selected`` on exactly one cart."""
    if not any(cart.store_id == store_id for cart in store_carts):
        raise ValidationError({"store_id": [f"No cart for store {store_id}"]})
    return [cart.toggled() if cart.store_id == store_id else cart for cart in store_carts]


def selected_carts(store_carts: list[StoreCart]) -> list[StoreCart]:
    return [cart for cart in store_carts if cart.selected]


def grand_total(store_carts: list[StoreCart]) -> Decimal:
    return sum((cart.total for cart in selected_carts(store_carts)), Decimal("0"))


def total_items(store_carts: list[StoreCart]) -> int:
    return sum(cart.item_count for cart in selected_carts(store_carts))


def ensure_checkout_possible(store_carts: list[StoreCart]) -> None:
    if not any(not cart.is_empty for cart in store_carts):
        raise NothingToCheckout()
    if not selected_carts(store_carts):
        raise ValidationError({"carts": ["Please select at least one cart to checkout"]})
