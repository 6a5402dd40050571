"""Pydantic request/response schemas for the Checkout pricing API.

These are external contracts (anti-corruption layer) — separate from the
internal StoreCart views and Protean value objects.
"""

from decimal import Decimal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CoordinatesSchema(BaseModel):
    latitude: str | float | None = None
    longitude: str | float | None = None


class AddressSchema(CoordinatesSchema):
    id: str | None = None
    street: str | None = None
    city: str | None = None
    postal_code: str | None = None


class CartItemSchema(BaseModel):
    id: str
    name: str
    price: str
    quantity: int = Field(ge=0)
    image: str | None = None
    size: str | None = None


class StoreCartInputSchema(CoordinatesSchema):
    store_id: str
    name: str
    image: str | None = None
    items: list[CartItemSchema] = []
    selected: bool = True


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class QuoteRequest(BaseModel):
    subtotal: Decimal = Field(ge=0)
    distance_km: float | None = Field(default=None, ge=0)
    origin: CoordinatesSchema | None = None
    destination: CoordinatesSchema | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "subtotal": "10000",
                    "origin": {"latitude": "-1.9441", "longitude": "30.0619"},
                    "destination": {"latitude": "-1.9706", "longitude": "30.1044"},
                }
            ]
        }
    }


class PriceCartsRequest(BaseModel):
    carts: list[StoreCartInputSchema]
    delivery_address: AddressSchema | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class QuoteResponse(BaseModel):
    transportation_fee: int
    service_fee: int
    total: Decimal
    distance_km: float | None = None
    distance: str
    eta: str
    degraded: bool


class CartLineResponse(BaseModel):
    id: str
    name: str
    unit_price: Decimal
    quantity: int
    unit: str
    image: str | None = None


class StoreCartResponse(BaseModel):
    store_id: str
    store_name: str
    image: str | None = None
    items: list[CartLineResponse]
    subtotal: Decimal
    transportation_fee: int
    service_fee: int
    total: Decimal
    selected: bool
    distance: str
    eta: str | None = None


class PriceCartsResponse(BaseModel):
    store_carts: list[StoreCartResponse]
    grand_total: Decimal
    total_items: int
