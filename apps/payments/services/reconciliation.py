"""
Order payment reconciliation.

Keeps an order's settlement status in line with what the payment provider
reports. Three triggers feed it:

- :func:`observe_by_poll` - the checkout page polls while the customer pays;
  the provider (PayPay or Stripe) is queried unless the order is already
  settled or polling has failed too often for this payment.
- :func:`observe_by_webhook` / :func:`observe_card_event` - PayPay or Stripe
  pushes a status notification.
- :func:`force_complete` - an operator settles the order by hand.

Every write of a new status updates the order first and then its first
payment record, inside one transaction with the order row locked, so polling
and a webhook for the same order cannot interleave their writes.
"""

import logging
from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.orders.models import Order, OrderStatus
from ..card_gateway import StripeClient, get_card_gateway
from ..gateway import GatewayUnavailable, PayPayClient, get_gateway
from ..models import PaymentMethod, PaymentRecord
from ..status_mapping import CARD_EVENT_STATUS, map_card_status, map_gateway_status, map_provider_status
from .exceptions import (
    MalformedPayloadError,
    OrderNotFoundError,
    PersistenceFailureError,
)

logger = logging.getLogger(__name__)

# Upper bound of the integer amount columns
MAX_AMOUNT = 2147483647


class ResultSource:
    DATABASE = 'database'
    DATABASE_ONLY = 'database_only'
    GATEWAY = 'paypay_api'
    CARD_GATEWAY = 'stripe_api'
    DATABASE_FALLBACK = 'database_fallback'
    WEBHOOK = 'webhook'
    CARD_WEBHOOK = 'stripe_webhook'
    MANUAL = 'manual_force_complete'


STATUS_MESSAGES = {
    OrderStatus.COMPLETED: 'Payment completed successfully',
    OrderStatus.FAILED: 'Payment failed or was canceled',
    OrderStatus.AUTHORIZED: 'Payment authorized (preauth) - waiting for completion',
    OrderStatus.PENDING: 'Payment is still pending. Please complete payment in PayPay app.',
    OrderStatus.PENDING_COD: 'Cash on delivery - payment will be collected upon delivery',
}

PROVIDER_NAMES = {
    PaymentMethod.PAYPAY: 'PayPay',
    PaymentMethod.STRIPE: 'Stripe',
}


@dataclass
class ReconciliationResult:
    """Outcome of one reconciliation attempt, as reported to the caller."""

    status: str
    order_id: int
    message: str
    source: str
    payment_method: str = ''
    consecutive_errors: Optional[int] = None
    gateway_status: Optional[str] = None
    last_error: Optional[str] = None
    completed_at: Optional[datetime] = None
    degraded: bool = False

    def as_response(self):
        data = {
            'status': self.status,
            'orderId': self.order_id,
            'message': self.message,
            'source': self.source,
        }
        if self.payment_method:
            data['paymentMethod'] = self.payment_method
        if self.consecutive_errors is not None:
            data['consecutiveErrors'] = self.consecutive_errors
        if self.gateway_status:
            if self.payment_method == PaymentMethod.STRIPE:
                data['stripeStatus'] = self.gateway_status
            else:
                data['payPayStatus'] = self.gateway_status
        if self.last_error:
            data['lastError'] = self.last_error
        if self.completed_at:
            data['completedAt'] = self.completed_at.isoformat()
        if self.degraded:
            data['degraded'] = True
        return data


def _result(order, source, message=None, **extra):
    return ReconciliationResult(
        status=order.payment_status,
        order_id=order.pk,
        message=message or STATUS_MESSAGES.get(order.payment_status, ''),
        source=source,
        payment_method=order.payment_method,
        completed_at=order.payment_completed_at,
        **extra,
    )


@contextmanager
def _persisting(action):
    """Run a block of writes atomically, reporting database errors as PersistenceFailureError."""
    try:
        with transaction.atomic():
            yield
    except DatabaseError as e:
        logger.exception("Failed to %s", action)
        raise PersistenceFailureError(f"Failed to {action}") from e


def _get_order(order_id, for_update=False):
    if for_update:
        queryset = Order.objects.select_for_update()
    else:
        queryset = Order.objects.all()
    try:
        return queryset.get(pk=order_id)
    except Order.DoesNotExist:
        raise OrderNotFoundError(order_id)


def _first_payment_for_update(order):
    return (
        PaymentRecord.objects.select_for_update()
        .filter(order=order)
        .order_by('created_at', 'id')
        .first()
    )


def _set_order_status(order, status, **fields):
    """Save a new status on the order, stamping the completion time once."""
    order.payment_status = status
    update_fields = ['payment_status', 'updated_at']
    for name, value in fields.items():
        setattr(order, name, value)
        update_fields.append(name)
    if status == OrderStatus.COMPLETED and order.payment_completed_at is None:
        order.payment_completed_at = timezone.now()
        update_fields.append('payment_completed_at')
    order.save(update_fields=update_fields)


def _provider_name(payment_method):
    return PROVIDER_NAMES.get(payment_method, 'PayPay')


# =============================================================================
# Polling
# =============================================================================

def observe_by_poll(
    order_id: int,
    gateway: Optional[PayPayClient] = None,
    card_gateway: Optional[StripeClient] = None,
) -> ReconciliationResult:
    """
    Report an order's settlement status, asking the provider when it may have moved.

    The provider is picked from the order's first payment record: Stripe
    PaymentIntents are looked up with the card gateway, everything else with
    PayPay. Gateway failures never reach the caller: they bump the payment
    record's error counter and the last stored status is returned with source
    ``database_fallback``. Once the counter reaches
    ``PAYMENT_API_ERROR_THRESHOLD`` the provider is no longer queried for this
    payment and the stored status is returned with source ``database_only``
    until a webhook or an operator settles the order.

    Args:
        order_id (int): The order to check.
        gateway (PayPayClient, optional): PayPay client to query. Defaults to
            one built from settings.
        card_gateway (StripeClient, optional): Stripe client to query.
            Defaults to one built from settings.

    Returns:
        ReconciliationResult

    Raises:
        OrderNotFoundError: If the order does not exist.
        PersistenceFailureError: If saving the outcome fails.
    """
    order = _get_order(order_id)

    if order.is_terminal:
        return _result(order, ResultSource.DATABASE)

    payment = order.first_payment()
    if payment is None or not payment.payment_provider_id:
        return _result(order, ResultSource.DATABASE)

    provider = _provider_name(payment.payment_method)

    if payment.is_circuit_open:
        logger.warning(
            "Skipping %s status query for order %s after %s consecutive errors",
            provider, order.pk, payment.consecutive_api_errors,
        )
        return _result(
            order,
            ResultSource.DATABASE_ONLY,
            message=(
                f'Payment {order.payment_status} - degraded: webhook-only '
                f'({provider} API errors detected)'
            ),
            consecutive_errors=payment.consecutive_api_errors,
            last_error=payment.last_api_error or None,
            degraded=True,
        )

    if payment.payment_method == PaymentMethod.STRIPE:
        client = card_gateway or get_card_gateway()
        source = ResultSource.CARD_GATEWAY
    else:
        client = gateway or get_gateway()
        source = ResultSource.GATEWAY

    try:
        remote = client.get_payment_status(payment.payment_provider_id)
    except GatewayUnavailable as e:
        error_code = e.code or 'NETWORK_ERROR'
        logger.warning("%s status query for order %s failed: %s", provider, order.pk, e)
        errors = _record_gateway_failure(payment.pk, error_code)
        return _result(
            order,
            ResultSource.DATABASE_FALLBACK,
            consecutive_errors=errors,
            last_error=error_code,
        )

    mapped = map_provider_status(payment.payment_method, remote.status)
    return _apply_gateway_status(order.pk, payment.pk, remote.status, mapped, source)


def _record_gateway_failure(payment_id, error_code):
    with _persisting('record payment API error'):
        payment = PaymentRecord.objects.select_for_update().get(pk=payment_id)
        payment.save(update_fields=payment.record_api_failure(error_code))
    return payment.consecutive_api_errors


def _apply_gateway_status(order_id, payment_id, gateway_status, mapped, source):
    with _persisting('save polled payment status'):
        order = _get_order(order_id, for_update=True)
        payment = PaymentRecord.objects.select_for_update().get(pk=payment_id)
        payment_fields = payment.record_api_success(gateway_status)

        if order.is_terminal:
            # Settled by a webhook or an operator while the provider was being queried
            logger.info("Order %s settled concurrently as %s", order.pk, order.payment_status)
        elif mapped != order.payment_status:
            logger.info(
                "Order %s: %s -> %s (provider status %s)",
                order.pk, order.payment_status, mapped, gateway_status,
            )
            _set_order_status(order, mapped)
            payment.status = mapped
            payment_fields.append('status')

        payment.save(update_fields=payment_fields)

    return _result(
        order,
        source,
        consecutive_errors=0,
        gateway_status=gateway_status,
    )


# =============================================================================
# Webhooks
# =============================================================================

def _parse_amount(value):
    """Return a storable positive amount, or None for anything else."""
    try:
        amount = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if 0 < amount <= MAX_AMOUNT:
        return amount
    return None


def _parse_order_reference(reference, field_name):
    if reference is None or str(reference).strip() == '':
        raise MalformedPayloadError(f'Missing {field_name}')
    try:
        return int(str(reference).strip())
    except ValueError:
        raise MalformedPayloadError(f'Invalid {field_name} format')


def _apply_pushed_status(order_id, gateway_status, mapped, *, payment_id, amount,
                         payment_method, webhook_data, source):
    """
    Write a provider-pushed status to an order and its first payment record.

    Settled orders keep their status and cash-on-delivery orders are never
    moved by a provider notification; the notification is still stored on
    the payment record for audit.
    """
    with _persisting('save webhook payment status'):
        order = _get_order(order_id, for_update=True)

        if order.payment_method == PaymentMethod.COD or order.payment_status == OrderStatus.PENDING_COD:
            logger.warning(
                "Ignoring %s notification (%s) for cash-on-delivery order %s",
                payment_method, gateway_status, order.pk,
            )
            status = order.payment_status
        else:
            status = mapped
            if order.is_terminal and mapped != order.payment_status:
                logger.warning(
                    "Ignoring webhook state %s for settled order %s (%s)",
                    gateway_status, order.pk, order.payment_status,
                )
                status = order.payment_status

            _set_order_status(
                order,
                status,
                payment_method=order.payment_method or payment_method,
                payment_id=str(payment_id)[:100],
                payment_amount=_parse_amount(amount) or order.total_amount,
            )

        payment = _first_payment_for_update(order)
        if payment is not None:
            payment.status = status
            payment.provider_response = {
                **(payment.provider_response or {}),
                'webhook_data': webhook_data,
                'webhook_received_at': timezone.now().isoformat(),
            }
            update_fields = ['status', 'provider_response', 'updated_at']
            if not payment.payment_provider_id and payment.payment_method != PaymentMethod.COD:
                payment.payment_provider_id = str(order_id)
                update_fields.append('payment_provider_id')
            payment.save(update_fields=update_fields)

    return _result(order, source, gateway_status=gateway_status)


def observe_by_webhook(payload: Mapping[str, Any]) -> ReconciliationResult:
    """
    Apply a PayPay webhook notification to its order.

    The order is identified by ``merchant_order_id``, which is the order's own
    id (it is the merchant payment id sent to PayPay at checkout). The PayPay
    state comes from ``state``. The notification is trusted as is and stored
    on the payment record for audit; replaying it leaves the order unchanged.
    An order already ``completed`` or ``failed`` keeps its status, and so
    does a cash-on-delivery order.

    An ``order_amount`` that is not a positive integer within range is
    ignored and the order total is recorded instead.

    Raises:
        MalformedPayloadError: If the order reference is missing or invalid.
        OrderNotFoundError: If no order matches the reference.
        PersistenceFailureError: If saving fails.
    """
    if not isinstance(payload, Mapping):
        raise MalformedPayloadError('Webhook payload must be a JSON object')

    reference = payload.get('merchant_order_id')
    order_id = _parse_order_reference(reference, 'merchant_order_id')

    gateway_status = payload.get('state')
    logger.info("PayPay webhook for order %s: state=%s", order_id, gateway_status)

    return _apply_pushed_status(
        order_id,
        gateway_status,
        map_gateway_status(gateway_status),
        payment_id=payload.get('order_id') or reference,
        amount=payload.get('order_amount'),
        payment_method=PaymentMethod.PAYPAY,
        webhook_data=dict(payload),
        source=ResultSource.WEBHOOK,
    )


def observe_card_event(event: Mapping[str, Any]) -> Optional[ReconciliationResult]:
    """
    Apply a verified Stripe webhook event to its order.

    Only PaymentIntent and Checkout Session outcome events are handled (see
    ``CARD_EVENT_STATUS``); any other event type returns None. The order is
    found through the object's ``metadata.orderId``.

    Raises:
        MalformedPayloadError: If the event or its order reference is malformed.
        OrderNotFoundError: If no order matches the reference.
        PersistenceFailureError: If saving fails.
    """
    if not isinstance(event, Mapping):
        raise MalformedPayloadError('Webhook payload must be a JSON object')

    event_type = event.get('type')
    card_status = CARD_EVENT_STATUS.get(event_type)
    if card_status is None:
        logger.info("Unhandled Stripe event type: %s", event_type)
        return None

    obj = (event.get('data') or {}).get('object')
    if not isinstance(obj, Mapping):
        raise MalformedPayloadError('Stripe event has no data object')
    metadata = obj.get('metadata') or {}
    order_id = _parse_order_reference(metadata.get('orderId'), 'metadata.orderId')

    logger.info("Stripe %s for order %s", event_type, order_id)

    return _apply_pushed_status(
        order_id,
        card_status,
        map_card_status(card_status),
        payment_id=obj.get('payment_intent') or obj.get('id') or order_id,
        amount=obj.get('amount_received') or obj.get('amount_total') or obj.get('amount'),
        payment_method=PaymentMethod.STRIPE,
        webhook_data={
            'id': event.get('id'),
            'type': event_type,
            'object_id': obj.get('id'),
            'status': obj.get('status'),
        },
        source=ResultSource.CARD_WEBHOOK,
    )


# =============================================================================
# Operator actions
# =============================================================================

def force_complete(order_id: int) -> ReconciliationResult:
    """
    Mark an order and its payment completed regardless of the provider.

    For support staff when the provider is unreachable or disagrees with
    reality. The payment record is tagged with a manual override marker.
    """
    with _persisting('force complete order'):
        order = _get_order(order_id, for_update=True)
        logger.warning("Force completing order %s (was %s)", order.pk, order.payment_status)

        _set_order_status(
            order,
            OrderStatus.COMPLETED,
            payment_method=order.payment_method or 'paypay',
        )

        payment = _first_payment_for_update(order)
        if payment is not None:
            payment.status = OrderStatus.COMPLETED
            payment.provider_response = {
                **(payment.provider_response or {}),
                'manual_force_complete': True,
                'force_completed_at': timezone.now().isoformat(),
                'source': ResultSource.MANUAL,
            }
            payment.save(update_fields=['status', 'provider_response', 'updated_at'])

    return _result(order, ResultSource.MANUAL, message='Payment manually completed')


def reset_api_errors(order_id: int) -> ReconciliationResult:
    """Clear the polling error state so status checks query the provider again."""
    with _persisting('reset payment API errors'):
        order = _get_order(order_id, for_update=True)
        payment = _first_payment_for_update(order)
        if payment is not None:
            payment.consecutive_api_errors = 0
            payment.last_api_error = ''
            payment.last_api_error_at = None
            payment.save(update_fields=[
                'consecutive_api_errors',
                'last_api_error',
                'last_api_error_at',
                'updated_at',
            ])

    return _result(
        order,
        ResultSource.DATABASE,
        message='Payment API error counter reset',
        consecutive_errors=0,
    )
