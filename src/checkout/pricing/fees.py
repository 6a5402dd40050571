"""Fee schedule for the delivery (transportation) fee and platform service fee.

Two-tier transportation pricing: a flat fee inside the base radius, then a
linear per-kilometre charge beyond it. The service fee is a percentage of the
cart subtotal. Every rounding step is ``ceil``.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from checkout.pricing.geo import distance_km, has_location, parse_coordinate

BASE_TRANSPORTATION_FEE = 1000
BASE_RADIUS_KM = 3
PER_KM_RATE = 300
SERVICE_FEE_RATE = Decimal("0.05")


def to_money(value) -> Decimal:
    """Coerce a price (number or decimal string) to ``Decimal``; invalid, NaN or infinite -> 0."""
    if value is None or value == "":
        return Decimal("0")
    try:
        parsed = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return parsed if parsed.is_finite() else Decimal("0")


@dataclass(frozen=True)
class FeeQuote:
    """Fees for one store cart.

    ``distance_km`` is ``None`` when either end had no coordinates; the quote
    then carries the flat base fee and ``degraded`` is true.
    """

    transportation_fee: int
    service_fee: int
    distance_km: float | None = None

    @property
    def degraded(self) -> bool:
        return self.distance_km is None

    @property
    def fees_total(self) -> int:
        return self.transportation_fee + self.service_fee


@dataclass(frozen=True)
class FeeSchedule:
    base_fee: int = BASE_TRANSPORTATION_FEE
    base_radius_km: float = BASE_RADIUS_KM
    per_km_rate: int = PER_KM_RATE
    service_rate: Decimal = SERVICE_FEE_RATE

    @classmethod
    def from_config(cls, custom: dict | None) -> "FeeSchedule":
        """Build a schedule from the domain's ``[custom]`` configuration table."""
        custom = custom or {}
        return cls(
            base_fee=int(custom.get("BASE_TRANSPORTATION_FEE", BASE_TRANSPORTATION_FEE)),
            base_radius_km=float(custom.get("BASE_RADIUS_KM", BASE_RADIUS_KM)),
            per_km_rate=int(custom.get("PER_KM_RATE", PER_KM_RATE)),
            service_rate=to_money(custom.get("SERVICE_FEE_RATE", SERVICE_FEE_RATE)),
        )

    def service_fee(self, subtotal) -> int:
        return max(0, math.ceil(to_money(subtotal) * self.service_rate))

    def transportation_fee(self, km: float | None) -> int:
        if km is None or km <= self.base_radius_km:
            return self.base_fee
        return self.base_fee + math.ceil((km - self.base_radius_km) * self.per_km_rate)

    def quote(self, km: float | None, subtotal) -> FeeQuote:
        return FeeQuote(
            transportation_fee=self.transportation_fee(km),
            service_fee=self.service_fee(subtotal),
            distance_km=km,
        )

    def quote_between(self, origin, destination, subtotal) -> FeeQuote:
        """Quote between two ``(latitude, longitude)`` pairs.

        Falls back to the flat base fee when either pair has no location.
        """
        if origin is None or destination is None:
            return self.quote(None, subtotal)
        if not (has_location(*origin) and has_location(*destination)):
            return self.quote(None, subtotal)

        km = distance_km(
            parse_coordinate(origin[0]),
            parse_coordinate(origin[1]),
            parse_coordinate(destination[0]),
            parse_coordinate(destination[1]),
        )
        return self.quote(km, subtotal)


DEFAULT_SCHEDULE = FeeSchedule()


def service_fee(subtotal) -> int:
    return DEFAULT_SCHEDULE.service_fee(subtotal)


def transportation_fee(km: float | None) -> int:
    return DEFAULT_SCHEDULE.transportation_fee(km)


def quote(km: float | None, subtotal) -> FeeQuote:
    return DEFAULT_SCHEDULE.quote(km, subtotal)


def quote_between(origin, destination, subtotal) -> FeeQuote:
    return DEFAULT_SCHEDULE.quote_between(origin, destination, subtotal)
