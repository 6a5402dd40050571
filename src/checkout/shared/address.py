"""DeliveryAddress value object: where a checkout is delivered to."""

from protean.fields import Float, String

from checkout.domain import checkout
from checkout.pricing.geo import has_location, parse_coordinate

CURRENT_LOCATION = "Current Location"


@checkout.value_object
class DeliveryAddress:
    """A delivery destination chosen at checkout.

    ``address_id`` is empty until the address has been saved through the
    address collaborator. Coordinates of ``0.0`` mean "no location"; pricing
    falls back to the flat fee for such addresses.
    """

    address_id: String(max_length=255)
    street: String(max_length=255, default="")
    city: String(max_length=100, default="")
    postal_code: String(max_length=20, default="")
    latitude: Float(default=0.0)
    longitude: Float(default=0.0)

    @classmethod
    def from_record(cls, record: dict) -> "DeliveryAddress":
        """Build from a collaborator/cached record with lenient coordinate parsing."""
        return cls(
            address_id=str(record["id"]) if record.get("id") else None,
            street=record.get("street") or "",
            city=record.get("city") or "",
            postal_code=record.get("postal_code") or "",
            latitude=parse_coordinate(record.get("latitude")),
            longitude=parse_coordinate(record.get("longitude")),
        )

    def to_record(self) -> dict:
        record = {
            "street": self.street or "",
            "city": self.city or "",
            "postal_code": self.postal_code or "",
            "latitude": str(self.latitude or 0.0),
            "longitude": str(self.longitude or 0.0),
        }
        if self.address_id:
            record["id"] = self.address_id
        return record

    def with_id(self, address_id: str) -> "DeliveryAddress":
        return DeliveryAddress(
            address_id=str(address_id),
            street=self.street,
            city=self.city,
            postal_code=self.postal_code,
            latitude=self.latitude,
            longitude=self.longitude,
        )

    @property
    def is_persisted(self) -> bool:
        return bool(self.address_id)

    @property
    def has_location(self) -> bool:
        return has_location(self.latitude, self.longitude)

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.latitude or 0.0, self.longitude or 0.0)

    @property
    def is_resolvable(self) -> bool:
        """Either already saved, or carries enough to be created."""
        return self.is_persisted or bool(self.street and self.city) or self.has_location

    @property
    def label(self) -> str:
        if self.street and self.city:
            return f"{self.street}, {self.city}"
        if self.has_location:
            return CURRENT_LOCATION
        return ""
