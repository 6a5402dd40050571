"""Integration tests for the HTTP backend adapter against a mocked transport."""

import json

import httpx
import pytest
from checkout.backend.http_adapter import UNEXPECTED_RESPONSE, HttpBackend
from checkout.exceptions import CollaboratorError, SubmissionError


def _backend(handler, **kwargs):
    return HttpBackend(
        "https://api.example.com/api",
        api_token=kwargs.pop("api_token", "secret-token"),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestReads:
    def test_list_carts_and_items(self):
        seen = []

        def handler(request):
            seen.append(request)
            if request.url.path == "/api/carts":
                return httpx.Response(200, json={"carts": [{"id": 7, "name": "Grocer", "logo": "logo.png"}]})
            assert request.url.params["shop_id"] == "7"
            return httpx.Response(
                200,
                json={"items": [{"id": 1, "name": "Rice", "price": "1500.00", "quantity": 2, "size": "kg"}]},
            )

        with _backend(handler) as backend:
            carts = backend.list_carts()
            items = backend.list_cart_items(carts[0].store_id)

        assert carts[0].store_id == "7"
        assert carts[0].image == "logo.png"
        assert items[0].price == "1500.00"
        assert items[0].size == "kg"
        assert seen[0].headers["Authorization"] == "Bearer secret-token"

    def test_no_token_no_auth_header(self):
        def handler(request):
            assert "Authorization" not in request.headers
            return httpx.Response(200, json={"addresses": []})

        assert _backend(handler, api_token=None).list_addresses() == []

    def test_payment_methods_and_balance(self):
        def handler(request):
            if request.url.path.endswith("/payment-methods"):
                return httpx.Response(
                    200,
                    json={"paymentMethods": [{"id": 3, "method": "MTN MoMo", "number": "250788123456"}]},
                )
            return httpx.Response(200, json={"totalAmount": "2500.00"})

        backend = _backend(handler)
        instruments = backend.list_payment_methods()
        assert instruments[0].id == "3"
        assert instruments[0].is_default is False
        assert backend.refund_balance() == "2500.00"

    def test_store_details(self):
        def handler(request):
            assert request.url.params["id"] == "7"
            return httpx.Response(200, json={"store": {"latitude": "-1.94", "longitude": "30.06", "name": "Grocer"}})

        location = _backend(handler).store_details("7")
        assert location.coordinates == ("-1.94", "30.06")

    def test_missing_store(self):
        backend = _backend(lambda request: httpx.Response(200, json={}))
        with pytest.raises(CollaboratorError):
            backend.store_details("7")

    def test_http_error_is_collaborator_error(self):
        backend = _backend(lambda request: httpx.Response(503, json={"message": "Maintenance"}))
        with pytest.raises(CollaboratorError) as exc:
            backend.list_carts()
        assert exc.value.operation == "list_carts"
        assert exc.value.message == "Maintenance"

    def test_transport_error_is_collaborator_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(CollaboratorError):
            _backend(handler).list_carts()

    def test_non_json_ok_body_is_collaborator_error(self):
        backend = _backend(lambda request: httpx.Response(200, text="not json"))
        with pytest.raises(CollaboratorError) as exc:
            backend.list_addresses()
        assert exc.value.operation == "list_addresses"
        assert exc.value.message == UNEXPECTED_RESPONSE

    def test_wrongly_shaped_body_is_collaborator_error(self):
        backend = _backend(lambda request: httpx.Response(200, json={"carts": [{"name": "No id"}]}))
        with pytest.raises(CollaboratorError):
            backend.list_carts()

    def test_json_array_body_is_collaborator_error(self):
        backend = _backend(lambda request: httpx.Response(200, json=[1, 2]))
        with pytest.raises(CollaboratorError):
            backend.list_payment_methods()


class TestWrites:
    def test_create_address(self):
        def handler(request):
            assert json.loads(request.content)["street"] == "Current Location"
            return httpx.Response(200, json={"address": {"id": 99}})

        address_id = _backend(handler).create_address("Current Location", "", "-1.97", "30.10", "")
        assert address_id == "99"

    def test_create_order_sends_idempotency_key(self):
        def handler(request):
            assert request.url.path == "/api/mutations/create-business-product-order"
            assert request.headers["Idempotency-Key"] == "key-1"
            return httpx.Response(200, json={"success": True, "orderId": "ord-1"})

        assert _backend(handler).create_order({"store_id": "7"}, "key-1") == "ord-1"

    def test_create_combined_order(self):
        def handler(request):
            payload = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "combined_order_id": "comb-1",
                    "orders": [
                        {"id": f"ord-{store['store_id']}", "shop_id": store["store_id"], "status": "PENDING"}
                        for store in payload["stores"]
                    ],
                },
            )

        result = _backend(handler).create_combined_order(
            {"stores": [{"store_id": "1"}, {"store_id": "2"}]}, "key-1"
        )
        assert result.combined_order_id == "comb-1"
        assert result.succeeded_store_ids() == {"1", "2"}

    def test_error_message_is_passed_through(self):
        backend = _backend(lambda request: httpx.Response(400, json={"error": "Insufficient wallet balance"}))
        with pytest.raises(SubmissionError) as exc:
            backend.create_combined_order({"stores": []}, "key-1")
        assert exc.value.message == "Insufficient wallet balance"
        assert exc.value.status_code == 400

    def test_error_in_ok_body(self):
        backend = _backend(lambda request: httpx.Response(200, json={"error": "Store is closed"}))
        with pytest.raises(SubmissionError) as exc:
            backend.create_order({"store_id": "7"}, "key-1")
        assert exc.value.message == "Store is closed"

    def test_non_json_error_uses_default(self):
        backend = _backend(lambda request: httpx.Response(502, text="Bad gateway"))
        with pytest.raises(SubmissionError) as exc:
            backend.create_order({"store_id": "7"}, "key-1")
        assert exc.value.message == "Failed to place order"

    def test_non_json_ok_body_is_submission_error(self):
        backend = _backend(lambda request: httpx.Response(200, text="<html>OK</html>"))
        with pytest.raises(SubmissionError) as exc:
            backend.create_combined_order({"stores": []}, "key-1")
        assert exc.value.message == "Failed to place combined orders"

    def test_order_response_without_id(self):
        backend = _backend(lambda request: httpx.Response(200, json={"success": True}))
        with pytest.raises(SubmissionError) as exc:
            backend.create_order({"store_id": "7"}, "key-1")
        assert exc.value.message == "Failed to place order"

    def test_address_response_without_address(self):
        def handler(request):
            assert "Idempotency-Key" not in request.headers
            return httpx.Response(200, json={})

        with pytest.raises(SubmissionError) as exc:
            _backend(handler).create_address("KG 11 Ave", "Kigali", "-1.97", "30.10", "")
        assert exc.value.message == "Failed to create delivery address"
