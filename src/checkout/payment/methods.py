"""Payment method references and stored-instrument classification."""

from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import String

from checkout.backend.port import StoredInstrument
from checkout.domain import checkout

MOBILE_MONEY_METHOD_NAMES = frozenset({"mtn momo"})


class PaymentType(Enum):
    WALLET = "wallet"
    CARD = "card"
    MOBILE_MONEY = "mobileMoney"


# Values the order collaborator expects in ``payment_method``
SUBMISSION_VALUES = {
    PaymentType.WALLET: "wallet",
    PaymentType.MOBILE_MONEY: "mobile_money",
    PaymentType.CARD: "card",
}


def classify_instrument(method_name: str | None) -> PaymentType:
    """``"MTN MoMo"`` and friends are mobile money; every other method is a card."""
    if (method_name or "").strip().lower() in MOBILE_MONEY_METHOD_NAMES:
        return PaymentType.MOBILE_MONEY
    return PaymentType.CARD


def last_digits(payment_type: PaymentType, number: str | None) -> str:
    """Masked tail shown to the shopper: 3 digits for mobile money, 4 for cards."""
    count = 3 if payment_type == PaymentType.MOBILE_MONEY else 4
    return (number or "")[-count:]


@checkout.value_object
class PaymentMethodRef:
    """The payment reference attached to one checkout attempt.

    Wallet references carry no instrument; card and mobile-money references
    point at a stored instrument.
    """

    method_type: String(required=True, choices=PaymentType)
    instrument_id: String(max_length=255)
    last_digits: String(max_length=4)

    @invariant.post
    def instrument_matches_type(self):
        if self.method_type == PaymentType.WALLET.value:
            if self.instrument_id:
                raise ValidationError({"instrument_id": ["Wallet payments do not use a stored instrument"]})
        elif not self.instrument_id:
            raise ValidationError({"instrument_id": ["A stored instrument is required"]})

    @classmethod
    def wallet(cls) -> "PaymentMethodRef":
        return cls(method_type=PaymentType.WALLET.value)

    @classmethod
    def for_instrument(cls, instrument: StoredInstrument) -> "PaymentMethodRef":
        payment_type = classify_instrument(instrument.method)
        return cls(
            method_type=payment_type.value,
            instrument_id=instrument.id,
            last_digits=last_digits(payment_type, instrument.number) or None,
        )

    @property
    def payment_type(self) -> PaymentType:
        return PaymentType(self.method_type)

    @property
    def is_wallet(self) -> bool:
        return self.payment_type == PaymentType.WALLET

    @property
    def submission_value(self) -> str:
        return SUBMISSION_VALUES[self.payment_type]
