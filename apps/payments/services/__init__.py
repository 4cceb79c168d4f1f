"""
Payments services - Business logic layer.

This package contains the payment operations of the shop:
- Reconciling order status with PayPay or Stripe (poll, webhook, manual override)
- Checkout (PayPay QR, Stripe card and cash on delivery)
"""

# Reconciliation
from .reconciliation import (
    ReconciliationResult,
    ResultSource,
    observe_by_poll,
    observe_by_webhook,
    observe_card_event,
    force_complete,
    reset_api_errors,
)

# Checkout
from .checkout import (
    CheckoutResult,
    create_paypay_checkout,
    create_card_checkout,
    create_cod_checkout,
    render_payment_qr,
)

# Exceptions
from .exceptions import (
    PaymentServiceError,
    OrderNotFoundError,
    ProductNotFoundError,
    MalformedPayloadError,
    PersistenceFailureError,
    CheckoutError,
)

__all__ = [
    'ReconciliationResult',
    'ResultSource',
    'observe_by_poll',
    'observe_by_webhook',
    'observe_card_event',
    'force_complete',
    'reset_api_errors',
    'CheckoutResult',
    'create_paypay_checkout',
    'create_card_checkout',
    'create_cod_checkout',
    'render_payment_qr',
    'PaymentServiceError',
    'OrderNotFoundError',
    'ProductNotFoundError',
    'MalformedPayloadError',
    'PersistenceFailureError',
    'CheckoutError',
]
