"""
Domain exceptions for payment services.

Exception Hierarchy:
    PaymentServiceError (base)
    ├── OrderNotFoundError
    ├── ProductNotFoundError
    ├── MalformedPayloadError
    ├── PersistenceFailureError
    └── CheckoutError

Gateway failures have their own hierarchy in ``apps.payments.gateway``;
status polling absorbs them and checkout re-raises them as CheckoutError.
"""


class PaymentServiceError(Exception):
    """Base exception for payment service errors."""
    pass


class OrderNotFoundError(PaymentServiceError):
    """Order does not exist."""

    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class ProductNotFoundError(PaymentServiceError):
    """Product does not exist or is no longer sold."""
    pass


class MalformedPayloadError(PaymentServiceError):
    """Webhook payload lacks a usable order reference."""
    pass


class PersistenceFailureError(PaymentServiceError):
    """Writing order or payment state to the database failed."""
    pass


class CheckoutError(PaymentServiceError):
    """Payment could not be started with the provider."""

    def __init__(self, message, order_id=None, code=None):
        super().__init__(message)
        self.order_id = order_id
        self.code = code
