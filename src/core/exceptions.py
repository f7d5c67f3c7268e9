"""Domain errors raised by the ledger and order services.

Every class derives from ``ValueError`` so callers that only care about
"the operation was rejected" can keep catching ``ValueError``.  The
``http_status`` attribute is what the API layer answers with.
"""


class LedgerError(ValueError):
    """Base class for every rejected ledger/order operation."""

    http_status = 400
    code = "rejected"


class OrderValidationError(LedgerError):
    """Malformed or missing input detected before any mutation."""

    code = "invalid"


class PaymentMismatchError(OrderValidationError):
    """The payment instruments do not add up to the order total."""

    code = "payment_mismatch"

    def __init__(self, order_total, payment_total):
        self.order_total = order_total
        self.payment_total = payment_total
        super().__init__(
            f"Payment amount does not match the order total "
            f"(order total: {order_total}, payment total: {payment_total})."
        )


class InsufficientStockError(LedgerError):
    code = "insufficient_stock"

    def __init__(self, product, available, requested):
        self.product = product
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for '{product}' "
            f"(available: {available}, requested: {requested})."
        )


class InsufficientBalanceError(LedgerError):
    """A wallet or point balance cannot cover the requested deduction."""

    code = "insufficient_balance"

    def __init__(self, instrument, available, requested):
        self.instrument = instrument
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient {instrument} balance "
            f"(available: {available}, requested: {requested})."
        )


class NotFoundError(LedgerError):
    http_status = 404
    code = "not_found"


class OrderFinalizedError(LedgerError):
    """The order is already cancelled or refunded."""

    code = "already_finalized"


class InvalidStatusTransitionError(LedgerError):
    code = "invalid_transition"


class PaymentGatewayError(LedgerError):
    """The external card gateway was unreachable or declined the charge."""

    http_status = 502
    code = "gateway_error"

    def __init__(self, message, error_code=""):
        self.error_code = error_code
        super().__init__(message)
