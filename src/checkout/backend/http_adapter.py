"""HTTP adapter for the platform's REST API.

One ``httpx.Client`` per adapter instance. The base URL and bearer token are
passed in at construction (see ``checkout.backend.build_backend``); nothing
here reads credentials from the environment.

Response bodies are parsed inside the adapter: a body that is not JSON, or
lacks the expected fields, becomes a ``CollaboratorError`` for reads and a
``SubmissionError`` for writes, never a bare parsing exception.
"""

import httpx
import structlog

from checkout.backend.port import (
    CartRecord,
    CheckoutBackend,
    ItemRecord,
    StoredInstrument,
    StoreLocation,
)
from checkout.exceptions import CollaboratorError, SubmissionError
from checkout.orchestration.requests import CheckoutResult

logger = structlog.get_logger(__name__)

UNEXPECTED_RESPONSE = "Unexpected response from the platform API"

# Raised by response.json() on a non-JSON body (JSONDecodeError) and by
# parsers on missing keys or wrongly-typed values.
_PARSE_ERRORS = (ValueError, KeyError, TypeError, AttributeError)


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if not isinstance(body, dict):
        return default
    return body.get("message") or body.get("error") or default


def _json_object(response: httpx.Response) -> dict:
    body = response.json()
    if not isinstance(body, dict):
        raise TypeError(f"Expected a JSON object, got {type(body).__name__}")
    return body


# ---------------------------------------------------------------------------
# Response parsers
# ---------------------------------------------------------------------------
def _carts(body: dict) -> list[CartRecord]:
    return [
        CartRecord(store_id=str(cart["id"]), name=cart.get("name") or "", image=cart.get("logo"))
        for cart in body.get("carts") or []
    ]


def _items(body: dict) -> list[ItemRecord]:
    return [
        ItemRecord(
            id=str(item["id"]),
            name=item.get("name") or "",
            price=str(item.get("price") or "0"),
            quantity=int(item.get("quantity") or 0),
            image=item.get("image"),
            size=item.get("size"),
        )
        for item in body.get("items") or []
    ]


def _addresses(body: dict) -> list[dict]:
    return [dict(address) for address in body.get("addresses") or []]


def _instruments(body: dict) -> list[StoredInstrument]:
    return [
        StoredInstrument(
            id=str(method["id"]),
            method=method.get("method") or "",
            number=str(method.get("number") or ""),
            is_default=bool(method.get("is_default")),
        )
        for method in body.get("paymentMethods") or []
    ]


def _order_id(body: dict) -> str:
    order_id = body.get("orderId") or body.get("order_id") or (body.get("order") or {}).get("id")
    if not order_id:
        raise KeyError("orderId")
    return str(order_id)


class HttpBackend(CheckoutBackend):
    def __init__(
        self,
        base_url: str,
        api_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"

        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpBackend":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -------------------------------------------------------------------
    # Transport helpers
    # -------------------------------------------------------------------
    def _get(self, operation: str, path: str, parse, **params):
        try:
            response = self._client.get(path, params=params or None)
        except httpx.HTTPError as exc:
            raise CollaboratorError(operation, str(exc)) from exc

        if response.is_error:
            raise CollaboratorError(operation, _error_message(response, f"HTTP {response.status_code}"))

        try:
            return parse(_json_object(response))
        except _PARSE_ERRORS as exc:
            logger.warning("Malformed collaborator response", operation=operation, error=str(exc))
            raise CollaboratorError(operation, UNEXPECTED_RESPONSE) from exc

    def _submit(self, path: str, payload: dict, default_error: str, parse, idempotency_key: str | None = None):
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        try:
            response = self._client.post(path, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise SubmissionError(str(exc)) from exc

        if response.is_error:
            raise SubmissionError(
                _error_message(response, default_error),
                status_code=response.status_code,
            )

        try:
            body = _json_object(response)
        except _PARSE_ERRORS as exc:
            logger.warning("Malformed collaborator response", path=path, error=str(exc))
            raise SubmissionError(default_error, status_code=response.status_code) from exc

        if body.get("error") and not body.get("success", False):
            raise SubmissionError(body.get("message") or str(body["error"]), status_code=response.status_code)

        try:
            return parse(body)
        except _PARSE_ERRORS as exc:
            logger.warning("Malformed collaborator response", path=path, error=str(exc))
            raise SubmissionError(default_error, status_code=response.status_code) from exc

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def list_carts(self) -> list[CartRecord]:
        return self._get("list_carts", "/carts", _carts)

    def list_cart_items(self, store_id: str) -> list[ItemRecord]:
        return self._get("list_cart_items", "/cart-items", _items, shop_id=store_id)

    def list_addresses(self) -> list[dict]:
        return self._get("list_addresses", "/queries/addresses", _addresses)

    def list_payment_methods(self) -> list[StoredInstrument]:
        return self._get("list_payment_methods", "/queries/payment-methods", _instruments)

    def refund_balance(self) -> str:
        return self._get("refund_balance", "/queries/refunds", lambda body: str(body.get("totalAmount") or "0"))

    def store_details(self, store_id: str) -> StoreLocation:
        store = self._get("store_details", "/queries/store-details", lambda body: body.get("store"), id=store_id)
        if not store:
            raise CollaboratorError("store_details", f"Store {store_id} not found")
        return StoreLocation(
            store_id=store_id,
            latitude=store.get("latitude"),
            longitude=store.get("longitude"),
            name=store.get("name"),
            image=store.get("image"),
        )

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def create_address(self, street, city, latitude, longitude, postal_code) -> str:
        return self._submit(
            "/mutations/create-address",
            {
                "street": street,
                "city": city,
                "latitude": latitude,
                "longitude": longitude,
                "postal_code": postal_code,
            },
            "Failed to create delivery address",
            lambda body: str(body["address"]["id"]),
        )

    def create_order(self, payload: dict, idempotency_key: str) -> str:
        order_id = self._submit(
            "/mutations/create-business-product-order",
            payload,
            "Failed to place order",
            _order_id,
            idempotency_key=idempotency_key,
        )
        logger.info("Order created", order_id=order_id, store_id=payload.get("store_id"))
        return order_id

    def create_combined_order(self, payload: dict, idempotency_key: str) -> CheckoutResult:
        result = self._submit(
            "/mutations/create-combined-orders",
            payload,
            "Failed to place combined orders",
            CheckoutResult.from_payload,
            idempotency_key=idempotency_key,
        )
        logger.info(
            "Combined order created",
            combined_order_id=result.combined_order_id,
            order_count=len(result.orders),
        )
        return result
