"""FastAPI routes for the Checkout domain — fee quotes and cart pricing.

Pricing is stateless: callers send the carts and address they hold and get
the priced views back. Order submission stays with the orchestrator, which
owns the shopper's session state.
"""

from fastapi import APIRouter
from protean.utils.globals import current_domain

from checkout.api.schemas import (
    CartLineResponse,
    PriceCartsRequest,
    PriceCartsResponse,
    QuoteRequest,
    QuoteResponse,
    StoreCartResponse,
)
from checkout.backend.port import CartRecord, ItemRecord, StoreLocation
from checkout.cart.aggregation import build_store_carts, grand_total, recompute_fees, total_items
from checkout.cart.store_cart import StoreCart
from checkout.pricing.eta import DEFAULT_ESTIMATOR
from checkout.pricing.fees import FeeSchedule
from checkout.pricing.geo import format_distance
from checkout.shared.address import DeliveryAddress

pricing_router = APIRouter(prefix="/pricing", tags=["pricing"])


def _schedule() -> FeeSchedule:
    return FeeSchedule.from_config(current_domain.config.get("custom"))


def _coordinates(schema):
    if schema is None:
        return None
    return (schema.latitude, schema.longitude)


def _store_cart_response(cart: StoreCart) -> StoreCartResponse:
    return StoreCartResponse(
        store_id=cart.store_id,
        store_name=cart.store_name,
        image=cart.image,
        items=[
            CartLineResponse(
                id=line.item_id,
                name=line.name,
                unit_price=line.unit_price,
                quantity=line.quantity,
                unit=line.unit,
                image=line.image,
            )
            for line in cart.items
        ],
        subtotal=cart.subtotal,
        transportation_fee=cart.transportation_fee,
        service_fee=cart.service_fee,
        total=cart.total,
        selected=cart.selected,
        distance=format_distance(cart.distance_km),
        eta=cart.eta,
    )


@pricing_router.post("/quote", response_model=QuoteResponse)
async def quote_fees(body: QuoteRequest) -> QuoteResponse:
    """Fees for one cart, from an explicit distance or from two coordinates."""
    if body.distance_km is not None:
        fee_quote = _schedule().quote(body.distance_km, body.subtotal)
    else:
        fee_quote = _schedule().quote_between(
            _coordinates(body.origin),
            _coordinates(body.destination),
            body.subtotal,
        )

    return QuoteResponse(
        transportation_fee=fee_quote.transportation_fee,
        service_fee=fee_quote.service_fee,
        total=body.subtotal + fee_quote.fees_total,
        distance_km=fee_quote.distance_km,
        distance=format_distance(fee_quote.distance_km),
        eta=DEFAULT_ESTIMATOR.estimate(fee_quote.distance_km),
        degraded=fee_quote.degraded,
    )


@pricing_router.post("/carts", response_model=PriceCartsResponse)
async def price_carts(body: PriceCartsRequest) -> PriceCartsResponse:
    carts = [CartRecord(store_id=cart.store_id, name=cart.name, image=cart.image) for cart in body.carts]
    items_by_cart = {
        cart.store_id: [ItemRecord(**item.model_dump()) for item in cart.items] for cart in body.carts
    }
    locations = {
        cart.store_id: StoreLocation(
            store_id=cart.store_id,
            latitude=cart.latitude,
            longitude=cart.longitude,
            name=cart.name,
            image=cart.image,
        )
        for cart in body.carts
    }
    address = (
        DeliveryAddress.from_record(body.delivery_address.model_dump())
        if body.delivery_address is not None
        else None
    )

    schedule = _schedule()
    store_carts = recompute_fees(
        build_store_carts(carts, items_by_cart, schedule),
        address,
        locations,
        schedule=schedule,
    )

    deselected = {cart.store_id for cart in body.carts if not cart.selected}
    store_carts = [cart.toggled() if cart.store_id in deselected else cart for cart in store_carts]

    return PriceCartsResponse(
        store_carts=[_store_cart_response(cart) for cart in store_carts],
        grand_total=grand_total(store_carts),
        total_items=total_items(store_carts),
    )
