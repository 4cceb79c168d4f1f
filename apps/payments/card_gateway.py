"""
Stripe card payment client.

Card checkout creates a PaymentIntent that the storefront confirms with
Stripe.js using the returned client secret. The order id travels in the
intent's ``metadata.orderId`` so that webhook events can find the order.
Failures are raised with the same :class:`GatewayUnavailable` hierarchy as
the PayPay client, so reconciliation treats both providers alike.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import stripe
from django.conf import settings

from .gateway import GatewayError, GatewayPaymentStatus, GatewayUnavailable

logger = logging.getLogger(__name__)


class WebhookSignatureError(GatewayError):
    """Webhook payload could not be verified against the signing secret."""
    pass


@dataclass
class CardPayment:
    intent_id: str
    client_secret: str
    status: str
    raw: Dict[str, Any] = field(default_factory=dict)


class StripeClient:
    """
    Client for Stripe PaymentIntents and webhook verification.

    Args:
        secret_key (str): Stripe secret API key.
        webhook_secret (str): Signing secret of the webhook endpoint.
    """

    def __init__(self, secret_key: str, webhook_secret: str = ''):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret

    def create_payment_intent(self, reference: str, amount: int, currency: str,
                              description: str, metadata: Optional[Dict[str, str]] = None,
                              receipt_email: str = '') -> CardPayment:
        """
        Create a PaymentIntent for an order.

        Args:
            reference (str): Order id, stored as ``metadata.orderId``.
            amount (int): Amount in the smallest currency unit (yen).
            currency (str): ISO currency code.
            description (str): Shown on the Stripe dashboard and receipt.
            metadata (dict, optional): Extra metadata for the intent.
            receipt_email (str, optional): Where Stripe sends the receipt.

        Raises:
            GatewayUnavailable: If Stripe rejects the request or is unreachable.
        """
        params = {
            'amount': amount,
            'currency': currency.lower(),
            'automatic_payment_methods': {'enabled': True},
            'metadata': {**(metadata or {}), 'orderId': reference},
            'description': description,
        }
        if receipt_email:
            params['receipt_email'] = receipt_email

        logger.info("Creating Stripe PaymentIntent for order %s amount=%s %s",
                    reference, amount, currency)
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.secret_key,
                idempotency_key=f'order-{reference}',
                **params
            )
        except stripe.StripeError as e:
            raise self._unavailable('create PaymentIntent', e) from e

        return CardPayment(
            intent_id=intent['id'],
            client_secret=intent['client_secret'] or '',
            status=intent['status'],
            raw=self._as_dict(intent),
        )

    def get_payment_status(self, reference: str) -> GatewayPaymentStatus:
        """
        Fetch the status of a PaymentIntent.

        Raises:
            GatewayUnavailable: If Stripe cannot be queried.
        """
        try:
            intent = stripe.PaymentIntent.retrieve(reference, api_key=self.secret_key)
        except stripe.StripeError as e:
            raise self._unavailable('retrieve PaymentIntent', e) from e

        status = intent['status']
        if not status:
            raise GatewayUnavailable(
                'Stripe response has no payment status',
                code='INVALID_RESPONSE',
            )
        logger.info("Stripe status for %s: %s", reference, status)
        return GatewayPaymentStatus(status=status, raw=self._as_dict(intent))

    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify a webhook delivery and return the event as a plain dict.

        Raises:
            WebhookSignatureError: Missing secret, bad signature or bad JSON.
        """
        if not self.webhook_secret:
            raise WebhookSignatureError('Stripe webhook secret not configured')
        try:
            stripe.Webhook.construct_event(payload, signature or '', self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning("Stripe webhook signature verification failed: %s", e)
            raise WebhookSignatureError('Webhook signature verification failed') from e
        except ValueError as e:
            raise WebhookSignatureError('Invalid webhook payload') from e

        if isinstance(payload, bytes):
            payload = payload.decode('utf-8')
        return json.loads(payload)

    @staticmethod
    def _unavailable(action, error):
        code = getattr(error, 'code', None) or type(error).__name__
        logger.warning("Stripe %s failed: %s", action, error)
        return GatewayUnavailable(f'Stripe {action} failed: {error}', code=code)

    @staticmethod
    def _as_dict(obj):
        to_dict = getattr(obj, 'to_dict_recursive', None) or getattr(obj, 'to_dict', None)
        if to_dict is not None:
            return to_dict()
        return dict(obj)


def get_card_gateway() -> StripeClient:
    """Build a Stripe client from Django settings."""
    return StripeClient(
        secret_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
    )
