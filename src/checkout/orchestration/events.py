"""Domain events for the CheckoutSession aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from checkout.domain import checkout


@checkout.event(part_of="CheckoutSession")
class CheckoutReady:
    """Carts, address and payment were loaded; the shopper can submit."""

    __version__ = 1

    session_id = Identifier(required=True)
    mode = String(required=True)
    cart_count = Integer(required=True)


@checkout.event(part_of="CheckoutSession")
class CheckoutSubmitted:
    """A checkout request was handed to the order collaborator."""

    __version__ = 1

    session_id = Identifier(required=True)
    mode = String(required=True)
    idempotency_key = String(required=True)
    store_ids = Text(required=True)  # JSON list
    grand_total = Float(required=True)
    payment_method = String(required=True)
    submitted_at = DateTime(required=True)


@checkout.event(part_of="CheckoutSession")
class CheckoutSucceeded:
    """Every selected store produced an order."""

    __version__ = 1

    session_id = Identifier(required=True)
    combined_order_id = String()
    order_ids = Text(required=True)  # JSON list
    completed_at = DateTime(required=True)


@checkout.event(part_of="CheckoutSession")
class CheckoutPartiallyFailed:
    """The collaborator created orders for only some of the selected stores."""

    __version__ = 1

    session_id = Identifier(required=True)
    combined_order_id = String()
    order_ids = Text(required=True)  # JSON list
    failed_store_ids = Text(required=True)  # JSON list
    completed_at = DateTime(required=True)


@checkout.event(part_of="CheckoutSession")
class CheckoutFailed:
    """The order collaborator rejected the submission."""

    __version__ = 1

    session_id = Identifier(required=True)
    reason = String(required=True, max_length=1000)
    failed_at = DateTime(required=True)
