"""Payment resolution for a checkout attempt.

Priority:
    1. An explicit choice made in this session.
    2. The stored instrument flagged as default.
    3. Nothing, and submission stays blocked.

The wallet is only eligible while the refund balance covers the payable
total. The check is advisory: balance and instruments are a snapshot taken
at load time, and the order collaborator re-validates on submission.
"""

from decimal import Decimal

import structlog
from protean.exceptions import ValidationError

from checkout.backend.port import StoredInstrument
from checkout.exceptions import PaymentUnresolved
from checkout.payment.methods import PaymentMethodRef
from checkout.pricing.fees import to_money

logger = structlog.get_logger(__name__)


def parse_balance(total_amount) -> Decimal:
    """Wallet balance from the collaborator's decimal string; invalid -> 0."""
    balance = to_money(total_amount)
    return balance if balance > 0 else Decimal("0")


class PaymentResolver:
    def __init__(self, instruments: list[StoredInstrument] | None = None, refund_balance=Decimal("0")) -> None:
        self.instruments = list(instruments or [])
        self.refund_balance = parse_balance(refund_balance)
        self._choice: PaymentMethodRef | None = None

    @property
    def choice(self) -> PaymentMethodRef | None:
        return self._choice

    @property
    def default_instrument(self) -> StoredInstrument | None:
        return next((instrument for instrument in self.instruments if instrument.is_default), None)

    def can_use_wallet(self, payable_total) -> bool:
        return self.refund_balance >= to_money(payable_total)

    # -------------------------------------------------------------------
    # Explicit choices
    # -------------------------------------------------------------------
    def choose_wallet(self, payable_total) -> PaymentMethodRef:
        if not self.can_use_wallet(payable_total):
            raise ValidationError({"payment_method": ["Insufficient wallet balance for this order"]})
        self._choice = PaymentMethodRef.wallet()
        return self._choice

    def choose_instrument(self, instrument_id: str) -> PaymentMethodRef:
        instrument = next((i for i in self.instruments if str(i.id) == str(instrument_id)), None)
        if instrument is None:
            raise ValidationError({"payment_method": [f"Unknown payment method {instrument_id}"]})
        self._choice = PaymentMethodRef.for_instrument(instrument)
        return self._choice

    def clear_choice(self) -> None:
        self._choice = None

    # -------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------
    def revalidate(self, payable_total) -> bool:
        """Drop a wallet choice the balance no longer covers. Returns True if dropped."""
        if self._choice is not None and self._choice.is_wallet and not self.can_use_wallet(payable_total):
            logger.info(
                "Wallet selection invalidated",
                refund_balance=str(self.refund_balance),
                payable_total=str(payable_total),
            )
            self._choice = None
            return True
        return False

    def resolve(self, payable_total) -> PaymentMethodRef | None:
        self.revalidate(payable_total)
        if self._choice is not None:
            return self._choice

        instrument = self.default_instrument
        if instrument is not None:
            return PaymentMethodRef.for_instrument(instrument)
        return None

    def require(self, payable_total) -> PaymentMethodRef:
        resolved = self.resolve(payable_total)
        if resolved is None:
            raise PaymentUnresolved()
        return resolved
