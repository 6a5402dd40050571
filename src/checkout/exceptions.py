"""Checkout error taxonomy.

Pre-submission problems are Protean ``ValidationError``s (field -> messages)
and are never sent downstream. Collaborator failures are split by impact:
``CollaboratorError`` for background reads, ``SubmissionError`` for the order
creation call itself.
"""

from protean.exceptions import ValidationError


class NothingToCheckout(ValidationError):
    """No store cart holds any item."""

    def __init__(self, messages=None):
        super().__init__(messages or {"carts": ["There is nothing to check out"]})


class PaymentUnresolved(ValidationError):
    """No payment instrument could be resolved for the payable total."""

    def __init__(self, messages=None):
        super().__init__(messages or {"payment_method": ["Please select a payment method"]})


class CheckoutBusy(Exception):
    """A submission is already in flight for this checkout session."""


class CollaboratorError(Exception):
    """A read from an external collaborator failed."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: {message}")


class SubmissionError(Exception):
    """The order-creation collaborator rejected or failed a submission.

    ``message`` is the collaborator's own text, surfaced to the shopper verbatim.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)
