from datetime import UTC, datetime

import pytest
from checkout.backend.fake_adapter import FakeBackend, MemoryLocalStore
from checkout.backend.port import DELIVERY_ADDRESS_KEY, StoredInstrument

KIGALI_CBD = ("-1.9441", "30.0619")
REMERA = {
    "id": "addr-1",
    "street": "KG 11 Ave",
    "city": "Kigali",
    "postal_code": "",
    "latitude": "-1.9706",
    "longitude": "30.1044",
}
VISA = StoredInstrument(id="pm-visa", method="Visa", number="4242424242424242", is_default=True)
MOMO = StoredInstrument(id="pm-momo", method="MTN MoMo", number="250788123456")


def _fixed_clock():
    return datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def backend():
    fake = FakeBackend()
    fake.add_cart(
        "store-1",
        "Kimironko Grocer",
        [{"id": "i-1", "name": "Rice", "price": "2000", "quantity": 1, "size": "kg"}],
        *KIGALI_CBD,
    )
    fake.add_cart(
        "store-2",
        "Remera Bakery",
        [{"id": "i-2", "name": "Bread", "price": "1500", "quantity": 2}],
        *KIGALI_CBD,
    )
    fake.addresses = [dict(REMERA)]
    fake.payment_methods = [MOMO, VISA]
    fake.balance = "5000"
    return fake


@pytest.fixture
def local_store():
    return MemoryLocalStore({DELIVERY_ADDRESS_KEY: dict(REMERA)})


@pytest.fixture
def clock():
    return _fixed_clock
