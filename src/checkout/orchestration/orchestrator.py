"""Checkout orchestrator — from loaded carts to one submitted order request.

Coordinates the collaborators for a single shopper session:

    1. load(): carts, delivery address and payment data are read
       concurrently; all three must finish before the session is READY.
    2. select_address() / toggle_store() / choose_*(): each change re-runs
       the pure fee reducer and re-validates the payment choice.
    3. submit(): validates preconditions, creates the delivery address if it
       has no id yet, then issues exactly one order-creation call, either a
       single-store order or one combined order for all selected stores.

Atomicity across stores belongs to the combined-order collaborator; this
class never splits a combined checkout into per-store calls. Failed
submissions are not retried here.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from checkout.backend import build_backend
from checkout.backend.port import (
    DELIVERY_ADDRESS_KEY,
    PENDING_CHECKOUT_KEY,
    CartRecord,
    CheckoutBackend,
    ItemRecord,
    LocalStore,
    StoreLocation,
)
from checkout.cart.aggregation import (
    build_store_carts,
    ensure_checkout_possible,
    grand_total,
    recompute_fees,
    selected_carts,
    toggle_selection,
    total_items,
)
from checkout.cart.store_cart import StoreCart
from checkout.exceptions import CheckoutBusy, CollaboratorError, NothingToCheckout, SubmissionError
from checkout.orchestration.requests import (
    CheckoutMode,
    CheckoutRequest,
    CheckoutResult,
    OrderOutcome,
    StoreOrder,
)
from checkout.orchestration.session import CheckoutSession, CheckoutState
from checkout.payment.methods import PaymentMethodRef
from checkout.payment.resolver import PaymentResolver
from checkout.pricing.eta import DeliveryEstimator
from checkout.pricing.fees import FeeSchedule
from checkout.shared.address import CURRENT_LOCATION, DeliveryAddress
from checkout.utils.logging import add_context, clear_context

logger = structlog.get_logger(__name__)

# Combined orders are promised one hour out, whatever the per-store ETA says.
COMBINED_DELIVERY_WINDOW = timedelta(minutes=60)

_EDITABLE_STATES = {
    CheckoutState.READY,
    CheckoutState.FAILED,
    CheckoutState.PARTIALLY_FAILED,
}


class CheckoutOrchestrator:
    def __init__(
        self,
        backend: CheckoutBackend,
        local_store: LocalStore,
        mode: CheckoutMode = CheckoutMode.COMBINED,
        estimator: DeliveryEstimator | None = None,
        schedule: FeeSchedule | None = None,
        clock=None,
        max_workers: int = 3,
    ) -> None:
        self.backend = backend
        self.local_store = local_store
        self.mode = mode
        self.estimator = estimator
        self.schedule = schedule
        self.max_workers = max_workers
        self._clock = clock or (lambda: datetime.now(UTC))

        self.session = CheckoutSession.create(mode)
        self.store_carts: list[StoreCart] = []
        self.store_locations: dict[str, StoreLocation] = {}
        self.saved_addresses: list[dict] = []
        self.delivery_address: DeliveryAddress | None = None
        self.payments = PaymentResolver()
        self.result: CheckoutResult | None = None
        self.last_error: str | None = None

        self._pending_products: list[dict] = []
        self._failed_request: tuple | None = None

    def _save(self) -> None:
        current_domain.repository_for(CheckoutSession).add(self.session)

    # -------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------
    @property
    def state(self) -> CheckoutState:
        return self.session.checkout_state

    @property
    def is_busy(self) -> bool:
        return self.session.is_busy

    @property
    def selected_carts(self) -> list[StoreCart]:
        return selected_carts(self.store_carts)

    @property
    def grand_total(self):
        return grand_total(self.store_carts)

    @property
    def total_items(self) -> int:
        return total_items(self.store_carts)

    @property
    def payment_method(self) -> PaymentMethodRef | None:
        return self.payments.resolve(self.grand_total)

    # -------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------
    def load(self) -> list[StoreCart]:
        """Read carts, address and payment data, then price everything."""
        self.session.start_loading()

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            carts_future = pool.submit(self._read_carts)
            address_future = pool.submit(self._read_address)
            payment_future = pool.submit(self._read_payment)

        try:
            store_carts, locations = carts_future.result()
            cached_address, saved_addresses = address_future.result()
            instruments, balance = payment_future.result()
        except Exception as exc:
            logger.warning("Checkout could not be loaded", session_id=str(self.session.id), error=str(exc))
            self.session.abort_loading()
            self._save()
            raise

        self.saved_addresses = saved_addresses
        self.store_locations = locations
        self.delivery_address = DeliveryAddress.from_record(cached_address) if cached_address else None
        self.payments = PaymentResolver(instruments, balance)
        self.store_carts = store_carts
        self._recompute()

        self.session.mark_ready(cart_count=len(self.store_carts))
        self._save()
        logger.info(
            "Checkout ready",
            session_id=str(self.session.id),
            mode=self.mode.value,
            carts=len(self.store_carts),
        )
        return self.store_carts

    def _read_carts(self) -> tuple[list[StoreCart], dict[str, StoreLocation]]:
        if self.mode == CheckoutMode.SINGLE_STORE:
            carts, items_by_cart = self._read_pending_checkout()
        else:
            carts = self.backend.list_carts()
            items_by_cart = {cart.store_id: self.backend.list_cart_items(cart.store_id) for cart in carts}

        store_carts = build_store_carts(carts, items_by_cart, self.schedule)
        if not store_carts:
            raise NothingToCheckout()

        locations = {}
        for cart in store_carts:
            try:
                locations[cart.store_id] = self.backend.store_details(cart.store_id)
            except CollaboratorError as exc:
                logger.warning("Store location unavailable", store_id=cart.store_id, error=exc.message)
        return store_carts, locations

    def _read_pending_checkout(self) -> tuple[list[CartRecord], dict[str, list[ItemRecord]]]:
        pending = self.local_store.get(PENDING_CHECKOUT_KEY)
        if not pending or not pending.get("products"):
            raise NothingToCheckout()

        store_id = str(pending["storeId"])
        self._pending_products = list(pending["products"])
        items = [
            ItemRecord(
                id=str(product["id"]),
                name=product.get("name") or "",
                price=str(product.get("price") or "0"),
                quantity=int(product.get("quantity") or 0),
                image=product.get("image"),
                size=product.get("unit"),
            )
            for product in self._pending_products
        ]
        cart = CartRecord(store_id=store_id, name=pending.get("storeName") or "")
        return [cart], {store_id: items}

    def _read_address(self) -> tuple[dict | None, list[dict]]:
        cached = self.local_store.get(DELIVERY_ADDRESS_KEY)
        try:
            saved = self.backend.list_addresses()
        except CollaboratorError as exc:
            logger.warning("Saved addresses unavailable", error=exc.message)
            saved = []
        return cached, saved

    def _read_payment(self) -> tuple[list, str]:
        try:
            instruments = self.backend.list_payment_methods()
        except CollaboratorError as exc:
            logger.warning("Payment methods unavailable", error=exc.message)
            instruments = []
        try:
            balance = self.backend.refund_balance()
        except CollaboratorError as exc:
            logger.warning("Wallet balance unavailable", error=exc.message)
            balance = "0"
        return instruments, balance

    # -------------------------------------------------------------------
    # Shopper edits
    # -------------------------------------------------------------------
    def _ensure_editable(self) -> None:
        if self.session.is_busy:
            raise CheckoutBusy("A checkout submission is already in progress")
        if self.state not in _EDITABLE_STATES:
            raise ValidationError({"status": [f"Checkout cannot be changed while {self.state.value}"]})
        if self.state != CheckoutState.READY:
            self.session.reopen()
            self._save()

    def _recompute(self) -> None:
        self.store_carts = recompute_fees(
            self.store_carts,
            self.delivery_address,
            self.store_locations,
            estimator=self.estimator,
            schedule=self.schedule,
        )
        self.payments.revalidate(self.grand_total)

    def select_address(self, address) -> DeliveryAddress:
        """Use ``address`` for delivery, remember it, and re-price."""
        self._ensure_editable()
        if isinstance(address, dict):
            address = DeliveryAddress.from_record(address)

        self.delivery_address = address
        self.local_store.set(DELIVERY_ADDRESS_KEY, address.to_record())
        self._recompute()
        return address

    def toggle_store(self, store_id: str) -> list[StoreCart]:
        self._ensure_editable()
        self.store_carts = toggle_selection(self.store_carts, store_id)
        self.payments.revalidate(self.grand_total)
        return self.store_carts

    def choose_wallet(self) -> PaymentMethodRef:
        self._ensure_editable()
        return self.payments.choose_wallet(self.grand_total)

    def choose_instrument(self, instrument_id: str) -> PaymentMethodRef:
        self._ensure_editable()
        return self.payments.choose_instrument(instrument_id)

    # -------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------
    def _check_preconditions(self) -> PaymentMethodRef:
        ensure_checkout_possible(self.store_carts)
        if self.delivery_address is None or not self.delivery_address.is_resolvable:
            raise ValidationError({"delivery_address": ["Please set your delivery address"]})
        return self.payments.require(self.grand_total)

    def _ensure_address_id(self) -> str:
        """Persist an unsaved delivery address first; orders need its id."""
        address = self.delivery_address
        if address.is_persisted:
            return address.address_id

        record = address.to_record()
        address_id = self.backend.create_address(
            street=address.street or CURRENT_LOCATION,
            city=address.city or "",
            latitude=record["latitude"],
            longitude=record["longitude"],
            postal_code=address.postal_code or "",
        )
        self.delivery_address = address.with_id(address_id)
        self.local_store.set(DELIVERY_ADDRESS_KEY, self.delivery_address.to_record())
        logger.info("Delivery address created", address_id=address_id)
        return address_id

    def _single_store_payload(
        self,
        request: CheckoutRequest,
        cart: StoreCart,
        delivered_time: str = "",
        time_range: str = "",
    ) -> dict:
        products_by_id = {str(product["id"]): product for product in self._pending_products}
        all_products = []
        for line in cart.items:
            product = products_by_id.get(line.item_id, {})
            all_products.append(
                {
                    "id": line.item_id,
                    "name": line.name,
                    "price_per_item": float(line.unit_price),
                    "quantity": line.quantity,
                    "unit": line.unit,
                    "measurement_type": product.get("measurement_unit") or line.unit,
                    "image": line.image or None,
                }
            )

        address = self.delivery_address
        return {
            "store_id": cart.store_id,
            "allProducts": all_products,
            "total": str(cart.total),
            "transportation_fee": str(cart.transportation_fee),
            "service_fee": str(cart.service_fee),
            "units": str(cart.item_count),
            "delivery_address_id": request.delivery_address_id,
            "latitude": str(address.latitude or ""),
            "longitude": str(address.longitude or ""),
            "deliveryAddress": address.label or CURRENT_LOCATION,
            "comment": request.notes or "",
            "estimated_delivery": cart.eta or "",
            "delivered_time": delivered_time or "",
            "timeRange": time_range or "",
            "payment_method": request.payment_method,
            "payment_method_id": request.payment_method_id,
            "idempotency_key": request.idempotency_key,
        }

    def _fingerprint(self, payment: PaymentMethodRef, notes: str, delivered_time: str, time_range: str) -> tuple:
        location = {key: value for key, value in self.delivery_address.to_record().items() if key != "id"}
        return (
            tuple((cart.store_id, cart.transportation_fee, cart.service_fee) for cart in self.selected_carts),
            location,
            payment.submission_value,
            payment.instrument_id,
            notes or None,
            delivered_time or None,
            time_range or None,
        )

    def _idempotency_key(self, fingerprint: tuple) -> str:
        # An unchanged resubmission after a failure reuses the failed request's key.
        if self._failed_request is not None and self._failed_request[0] == fingerprint:
            return self._failed_request[1]
        return str(uuid4())

    def submit(self, notes: str = "", delivered_time: str = "", time_range: str = "") -> CheckoutResult:
        """Submit the selected carts as one order request.

        ``delivered_time`` and ``time_range`` carry the shopper's preferred
        delivery slot on single-store orders; both are sent as "" when unset.

        Raises ``ValidationError`` before anything is sent when a precondition
        is missing, and ``SubmissionError`` (message verbatim) when the address
        or order collaborator fails. Either way the carts are left as they were.
        """
        if self.session.is_busy:
            raise CheckoutBusy("A checkout submission is already in progress")
        if self.state not in _EDITABLE_STATES:
            raise ValidationError({"status": [f"Checkout cannot be submitted while {self.state.value}"]})
        if self.state == CheckoutState.PARTIALLY_FAILED:
            self.session.reopen()
            self._save()

        payment = self._check_preconditions()
        selected = self.selected_carts
        total = self.grand_total
        fingerprint = self._fingerprint(payment, notes, delivered_time, time_range)
        idempotency_key = self._idempotency_key(fingerprint)

        self.session.begin_submission(
            idempotency_key=idempotency_key,
            store_ids=[cart.store_id for cart in selected],
            grand_total=total,
            payment_method=payment.submission_value,
        )
        self._save()
        logger.info(
            "Submitting checkout",
            session_id=str(self.session.id),
            mode=self.mode.value,
            stores=len(selected),
            grand_total=str(total),
            payment_method=payment.submission_value,
        )

        add_context(checkout_session_id=str(self.session.id), idempotency_key=idempotency_key)
        try:
            address_id = self._ensure_address_id()
            self.session.delivery_address_id = address_id
            request = CheckoutRequest(
                store_orders=tuple(
                    StoreOrder(
                        store_id=cart.store_id,
                        delivery_fee=str(cart.transportation_fee),
                        service_fee=str(cart.service_fee),
                    )
                    for cart in selected
                ),
                delivery_address_id=address_id,
                payment_method=payment.submission_value,
                payment_method_id=payment.instrument_id,
                delivery_time=(self._clock() + COMBINED_DELIVERY_WINDOW).isoformat(),
                notes=notes or None,
                idempotency_key=idempotency_key,
            )

            if self.mode == CheckoutMode.SINGLE_STORE:
                cart = selected[0]
                order_id = self.backend.create_order(
                    self._single_store_payload(request, cart, delivered_time, time_range),
                    idempotency_key,
                )
                result = CheckoutResult(orders=(OrderOutcome(order_id=order_id, store_id=cart.store_id),))
            else:
                result = self.backend.create_combined_order(request.combined_payload(), idempotency_key)
        except SubmissionError as exc:
            self._record_failure(fingerprint, idempotency_key, exc.message)
            raise
        except Exception:
            logger.exception("Checkout submission raised unexpectedly", session_id=str(self.session.id))
            self._record_failure(fingerprint, idempotency_key, "Checkout could not be completed")
            raise
        else:
            return self._interpret(fingerprint, idempotency_key, selected, result)
        finally:
            clear_context()

    def _record_failure(self, fingerprint: tuple, idempotency_key: str, message: str) -> None:
        self.last_error = message
        self._failed_request = (fingerprint, idempotency_key)
        self.session.record_failure(message)
        self._save()
        logger.warning(
            "Checkout submission failed",
            session_id=str(self.session.id),
            idempotency_key=idempotency_key,
            reason=message,
        )

    def _interpret(
        self,
        fingerprint: tuple,
        idempotency_key: str,
        selected: list[StoreCart],
        result: CheckoutResult,
    ) -> CheckoutResult:
        selected_ids = {cart.store_id for cart in selected}
        succeeded_ids = result.succeeded_store_ids() & selected_ids

        if not succeeded_ids:
            message = "No orders were created"
            self._record_failure(fingerprint, idempotency_key, message)
            raise SubmissionError(message)

        self.result = result
        self.last_error = None
        self._failed_request = None
        self.store_carts = [cart for cart in self.store_carts if cart.store_id not in succeeded_ids]

        if succeeded_ids == selected_ids:
            self.session.record_success(result.order_ids, combined_order_id=result.combined_order_id)
            self._save()
            if self.mode == CheckoutMode.SINGLE_STORE:
                self.local_store.remove(PENDING_CHECKOUT_KEY)
            logger.info(
                "Checkout succeeded",
                session_id=str(self.session.id),
                combined_order_id=result.combined_order_id,
                orders=len(result.order_ids),
            )
        else:
            failed_ids = selected_ids - succeeded_ids
            self.last_error = f"No order was created for {len(failed_ids)} store(s)"
            self.session.record_partial_failure(
                result.order_ids,
                failed_ids,
                combined_order_id=result.combined_order_id,
            )
            self._save()
            logger.warning(
                "Checkout partially failed",
                session_id=str(self.session.id),
                combined_order_id=result.combined_order_id,
                failed_store_ids=sorted(failed_ids),
            )
        return result


def build_orchestrator(
    local_store: LocalStore,
    mode: CheckoutMode = CheckoutMode.COMBINED,
    backend: CheckoutBackend | None = None,
) -> CheckoutOrchestrator:
    """Wire an orchestrator from the active domain's ``[custom]`` settings."""
    custom = current_domain.config.get("custom") or {}
    return CheckoutOrchestrator(
        backend or build_backend(custom),
        local_store,
        mode=mode,
        schedule=FeeSchedule.from_config(custom),
    )
