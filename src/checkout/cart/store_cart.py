"""Priced per-store cart views.

``StoreCart`` is a derived view: it is rebuilt from collaborator records and
the current delivery address whenever either changes, and replaced wholesale
rather than mutated. The cart collaborator stays the source of truth.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal

from checkout.backend.port import ItemRecord
from checkout.pricing.fees import to_money


@dataclass(frozen=True)
class CartLine:
    """One item in a store cart, priced at the time it was read."""

    item_id: str
    name: str
    unit_price: Decimal
    quantity: int
    unit: str = "unit"
    image: str | None = None

    @classmethod
    def from_item(cls, item: ItemRecord) -> "CartLine":
        return cls(
            item_id=str(item.id),
            name=item.name or "",
            unit_price=to_money(item.price),
            quantity=int(item.quantity or 0),
            unit=item.size or "unit",
            image=item.image,
        )

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class StoreCart:
    store_id: str
    store_name: str
    items: tuple[CartLine, ...] = field(default_factory=tuple)
    subtotal: Decimal = Decimal("0")
    transportation_fee: int = 0
    service_fee: int = 0
    selected: bool = True
    image: str | None = None
    distance_km: float | None = None
    eta: str | None = None

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.transportation_fee + self.service_fee

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def with_fees(self, transportation_fee: int, distance_km: float | None, eta: str | None) -> "StoreCart":
        return replace(self, transportation_fee=transportation_fee, distance_km=distance_km, eta=eta)

    def toggled(self) -> "StoreCart":
        return replace(self, selected=not self.selected)
