"""Tests for the DeliveryAddress value object."""

from checkout.shared.address import CURRENT_LOCATION, DeliveryAddress


class TestFromRecord:
    def test_parses_string_coordinates(self):
        address = DeliveryAddress.from_record(
            {"id": 42, "street": "KG 11 Ave", "city": "Kigali", "latitude": "-1.97", "longitude": "30.10"}
        )
        assert address.address_id == "42"
        assert address.latitude == -1.97
        assert address.longitude == 30.10
        assert address.is_persisted

    def test_garbage_coordinates_mean_no_location(self):
        address = DeliveryAddress.from_record({"street": "KG 11 Ave", "city": "Kigali", "latitude": "x"})
        assert address.latitude == 0.0
        assert not address.has_location

    def test_missing_id_is_not_persisted(self):
        assert not DeliveryAddress.from_record({"street": "A", "city": "B"}).is_persisted


class TestToRecord:
    def test_unsaved_address_has_no_id(self):
        record = DeliveryAddress(street="A", city="B", latitude=-1.5, longitude=30.0).to_record()
        assert "id" not in record
        assert record["latitude"] == "-1.5"

    def test_saved_address_round_trips_id(self):
        address = DeliveryAddress(street="A", city="B").with_id("addr-1")
        assert DeliveryAddress.from_record(address.to_record()) == address


class TestResolvable:
    def test_street_and_city(self):
        assert DeliveryAddress(street="A", city="B").is_resolvable

    def test_coordinates_only(self):
        address = DeliveryAddress(latitude=-1.9, longitude=30.1)
        assert address.is_resolvable
        assert address.label == CURRENT_LOCATION

    def test_empty_address(self):
        address = DeliveryAddress()
        assert not address.is_resolvable
        assert address.label == ""

    def test_label(self):
        assert DeliveryAddress(street="KG 11 Ave", city="Kigali").label == "KG 11 Ave, Kigali"
