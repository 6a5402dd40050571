"""End-to-end checkout over the HTTP adapter when the platform returns malformed bodies."""

import httpx
import pytest
from checkout.backend.fake_adapter import MemoryLocalStore
from checkout.backend.http_adapter import HttpBackend
from checkout.backend.port import DELIVERY_ADDRESS_KEY
from checkout.exceptions import CollaboratorError, SubmissionError
from checkout.orchestration.orchestrator import CheckoutOrchestrator
from checkout.orchestration.session import CheckoutSession, CheckoutState
from protean.utils.globals import current_domain

REMERA = {
    "id": "addr-1",
    "street": "KG 11 Ave",
    "city": "Kigali",
    "postal_code": "",
    "latitude": "-1.9706",
    "longitude": "30.1044",
}

_READS = {
    "/api/carts": {"carts": [{"id": "store-1", "name": "Kimironko Grocer"}]},
    "/api/cart-items": {"items": [{"id": "i-1", "name": "Rice", "price": "2000", "quantity": 1}]},
    "/api/queries/addresses": {"addresses": [REMERA]},
    "/api/queries/payment-methods": {
        "paymentMethods": [{"id": "pm-visa", "method": "Visa", "number": "4242424242424242", "is_default": True}]
    },
    "/api/queries/refunds": {"totalAmount": "0"},
    "/api/queries/store-details": {
        "store": {"latitude": "-1.9441", "longitude": "30.0619", "name": "Kimironko Grocer"}
    },
}


class PlatformStub:
    """Serves valid read bodies; individual paths can be overridden with response factories."""

    def __init__(self):
        self.overrides = {}
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        path = request.url.path
        if path in self.overrides:
            return self.overrides[path]()
        if path in _READS:
            return httpx.Response(200, json=_READS[path])
        if path == "/api/mutations/create-combined-orders":
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "combined_order_id": "comb-1",
                    "orders": [{"id": "ord-1", "shop_id": "store-1", "status": "PENDING"}],
                },
            )
        return httpx.Response(404, json={"error": "Not found"})

    def posts_to(self, path):
        return [r for r in self.requests if r.method == "POST" and r.url.path == path]


@pytest.fixture
def platform():
    return PlatformStub()


@pytest.fixture
def orchestrator(platform):
    backend = HttpBackend("https://api.example.com/api", transport=httpx.MockTransport(platform))
    yield CheckoutOrchestrator(backend, MemoryLocalStore({DELIVERY_ADDRESS_KEY: dict(REMERA)}))
    backend.close()


class TestMalformedReads:
    def test_non_json_addresses_do_not_block_checkout(self, platform, orchestrator):
        platform.overrides["/api/queries/addresses"] = lambda: httpx.Response(200, text="not json")

        orchestrator.load()

        assert orchestrator.state == CheckoutState.READY
        assert orchestrator.saved_addresses == []
        assert [cart.store_id for cart in orchestrator.store_carts] == ["store-1"]

    def test_non_json_carts_return_to_idle(self, platform, orchestrator):
        platform.overrides["/api/carts"] = lambda: httpx.Response(200, text="<html>maintenance</html>")

        with pytest.raises(CollaboratorError):
            orchestrator.load()
        assert orchestrator.state == CheckoutState.IDLE

        del platform.overrides["/api/carts"]
        orchestrator.load()
        assert orchestrator.state == CheckoutState.READY


class TestMalformedSubmission:
    def test_html_ok_body_fails_checkout_and_allows_retry(self, platform, orchestrator):
        orchestrator.load()
        platform.overrides["/api/mutations/create-combined-orders"] = lambda: httpx.Response(
            200, text="<html>OK</html>"
        )

        with pytest.raises(SubmissionError) as exc:
            orchestrator.submit()

        assert exc.value.message == "Failed to place combined orders"
        assert orchestrator.state == CheckoutState.FAILED
        assert not orchestrator.is_busy
        assert len(orchestrator.store_carts) == 1
        stored = current_domain.repository_for(CheckoutSession).get(orchestrator.session.id)
        assert stored.status == CheckoutState.FAILED.value

        del platform.overrides["/api/mutations/create-combined-orders"]
        result = orchestrator.submit()

        assert result.combined_order_id == "comb-1"
        assert orchestrator.state == CheckoutState.SUCCEEDED
        posts = platform.posts_to("/api/mutations/create-combined-orders")
        assert len(posts) == 2
        assert posts[0].headers["Idempotency-Key"] == posts[1].headers["Idempotency-Key"]

    def test_order_body_without_orders_list(self, platform, orchestrator):
        orchestrator.load()
        platform.overrides["/api/mutations/create-combined-orders"] = lambda: httpx.Response(
            200, json={"success": True, "orders": ["ord-1"]}
        )

        with pytest.raises(SubmissionError):
            orchestrator.submit()
        assert orchestrator.state == CheckoutState.FAILED

        with pytest.raises(SubmissionError):
            orchestrator.submit()
        assert orchestrator.state == CheckoutState.FAILED
