"""CheckoutSession aggregate — the lifecycle of one shopper's checkout.

State Machine:
    IDLE → LOADING → READY → SUBMITTING → SUCCEEDED
                                        → PARTIALLY_FAILED → READY
                                        → FAILED → READY | SUBMITTING
    LOADING → IDLE (critical read failed)

SUBMITTING doubles as the busy flag: a second submission is refused while
one is in flight.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text

from checkout.domain import checkout
from checkout.orchestration.events import (
    CheckoutFailed,
    CheckoutPartiallyFailed,
    CheckoutReady,
    CheckoutSubmitted,
    CheckoutSucceeded,
)
from checkout.orchestration.requests import CheckoutMode


class CheckoutState(Enum):
    IDLE = "Idle"
    LOADING = "Loading"
    READY = "Ready"
    SUBMITTING = "Submitting"
    SUCCEEDED = "Succeeded"
    PARTIALLY_FAILED = "PartiallyFailed"
    FAILED = "Failed"


_VALID_TRANSITIONS = {
    CheckoutState.IDLE: {CheckoutState.LOADING},
    CheckoutState.LOADING: {CheckoutState.READY, CheckoutState.IDLE},
    CheckoutState.READY: {CheckoutState.SUBMITTING, CheckoutState.LOADING},
    CheckoutState.SUBMITTING: {
        CheckoutState.SUCCEEDED,
        CheckoutState.PARTIALLY_FAILED,
        CheckoutState.FAILED,
    },
    CheckoutState.PARTIALLY_FAILED: {CheckoutState.READY},
    CheckoutState.FAILED: {CheckoutState.READY, CheckoutState.SUBMITTING},
    CheckoutState.SUCCEEDED: set(),  # Terminal
}


@checkout.aggregate
class CheckoutSession:
    mode = String(choices=CheckoutMode, default=CheckoutMode.COMBINED.value)
    status = String(choices=CheckoutState, default=CheckoutState.IDLE.value)
    idempotency_key = String(max_length=64)
    combined_order_id = String(max_length=255)
    order_ids = Text()  # JSON list
    failure_reason = String(max_length=1000)
    delivery_address_id = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, mode: CheckoutMode = CheckoutMode.COMBINED):
        now = datetime.now(UTC)
        return cls(
            mode=mode.value,
            status=CheckoutState.IDLE.value,
            order_ids=json.dumps([]),
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    @property
    def checkout_state(self) -> CheckoutState:
        return CheckoutState(self.status)

    @property
    def is_busy(self) -> bool:
        return self.checkout_state == CheckoutState.SUBMITTING

    def can_transition(self, target_status: CheckoutState) -> bool:
        return target_status in _VALID_TRANSITIONS.get(self.checkout_state, set())

    def _transition(self, target_status: CheckoutState) -> datetime:
        if not self.can_transition(target_status):
            raise ValidationError(
                {"status": [f"Cannot transition from {self.checkout_state.value} to {target_status.value}"]}
            )
        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now
        return now

    # -------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------
    def start_loading(self):
        self._transition(CheckoutState.LOADING)

    def abort_loading(self):
        self._transition(CheckoutState.IDLE)

    def mark_ready(self, cart_count: int):
        self._transition(CheckoutState.READY)
        self.raise_(
            CheckoutReady(
                session_id=str(self.id),
                mode=self.mode,
                cart_count=cart_count,
            )
        )

    def reopen(self):
        """Return to READY after a failure so the shopper can correct and retry."""
        if self.checkout_state == CheckoutState.READY:
            return
        self._transition(CheckoutState.READY)

    # -------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------
    def begin_submission(self, idempotency_key, store_ids, grand_total, payment_method):
        now = self._transition(CheckoutState.SUBMITTING)
        self.idempotency_key = idempotency_key
        self.failure_reason = None

        self.raise_(
            CheckoutSubmitted(
                session_id=str(self.id),
                mode=self.mode,
                idempotency_key=idempotency_key,
                store_ids=json.dumps(list(store_ids)),
                grand_total=float(grand_total),
                payment_method=payment_method,
                submitted_at=now,
            )
        )

    def record_success(self, order_ids, combined_order_id=None):
        now = self._transition(CheckoutState.SUCCEEDED)
        self.order_ids = json.dumps(list(order_ids))
        self.combined_order_id = combined_order_id

        self.raise_(
            CheckoutSucceeded(
                session_id=str(self.id),
                combined_order_id=combined_order_id,
                order_ids=self.order_ids,
                completed_at=now,
            )
        )

    def record_partial_failure(self, order_ids, failed_store_ids, combined_order_id=None):
        now = self._transition(CheckoutState.PARTIALLY_FAILED)
        self.order_ids = json.dumps(list(order_ids))
        self.combined_order_id = combined_order_id
        self.failure_reason = f"No order was created for {len(failed_store_ids)} store(s)"

        self.raise_(
            CheckoutPartiallyFailed(
                session_id=str(self.id),
                combined_order_id=combined_order_id,
                order_ids=self.order_ids,
                failed_store_ids=json.dumps(sorted(failed_store_ids)),
                completed_at=now,
            )
        )

    def record_failure(self, reason: str):
        now = self._transition(CheckoutState.FAILED)
        reason = (reason or "Checkout failed")[:1000]
        self.failure_reason = reason

        self.raise_(
            CheckoutFailed(
                session_id=str(self.id),
                reason=reason,
                failed_at=now,
            )
        )
