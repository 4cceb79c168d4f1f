"""
Translation of provider payment states into order settlement statuses.

Both the webhook handler and status polling go through
:func:`map_gateway_status`, so a given PayPay state always lands on the same
order status no matter which path observed it.
"""

from apps.orders.models import OrderStatus


GATEWAY_STATUS_MAP = {
    'COMPLETED': OrderStatus.COMPLETED,
    'FAILED': OrderStatus.FAILED,
    'CANCELED': OrderStatus.FAILED,
    'AUTHORIZED': OrderStatus.AUTHORIZED,
    'CREATED': OrderStatus.PENDING,
    'PENDING': OrderStatus.PENDING,
}


def map_gateway_status(code):
    """
    Map a PayPay status code to an :class:`OrderStatus`.

    Unknown or missing codes (``EXPIRED``, ``REFUNDED``, ``None``...) map to
    ``pending`` so an unexpected value never settles an order.

    Example:
        >>> map_gateway_status('CANCELED')
        <OrderStatus.FAILED: 'failed'>
        >>> map_gateway_status('SOMETHING_NEW')
        <OrderStatus.PENDING: 'pending'>
    """
    if not isinstance(code, str):
        return OrderStatus.PENDING
    return GATEWAY_STATUS_MAP.get(code.strip().upper(), OrderStatus.PENDING)


# Stripe PaymentIntent statuses; anything not listed is still in progress
CARD_STATUS_MAP = {
    'succeeded': OrderStatus.COMPLETED,
    'canceled': OrderStatus.FAILED,
    'requires_capture': OrderStatus.AUTHORIZED,
}

# Stripe webhook event types that carry a settlement outcome
CARD_EVENT_STATUS = {
    'payment_intent.succeeded': 'succeeded',
    # A failed attempt leaves the intent open for another payment method
    'payment_intent.payment_failed': 'requires_payment_method',
    'payment_intent.canceled': 'canceled',
    'checkout.session.completed': 'succeeded',
    'checkout.session.expired': 'canceled',
}


def map_card_status(code):
    """
    Map a Stripe PaymentIntent status to an :class:`OrderStatus`.

    ``requires_payment_method``, ``processing`` and unknown values map to
    ``pending``.
    """
    if not isinstance(code, str):
        return OrderStatus.PENDING
    return CARD_STATUS_MAP.get(code.strip().lower(), OrderStatus.PENDING)


def map_provider_status(payment_method, code):
    """Map a provider status code using the table for the payment method."""
    if payment_method == 'stripe':
        return map_card_status(code)
    return map_gateway_status(code)
