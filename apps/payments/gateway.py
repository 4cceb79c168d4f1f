"""
PayPay Open Payment API client.

Wraps the official ``paypayopa`` SDK for the calls the shop makes: create a
dynamic ORDER_QR code and look up a payment's status. The SDK signs every
request with the ``hmac OPA-Auth`` scheme. Each call is one bounded HTTP
round trip; failures are raised as :class:`GatewayUnavailable` and it is up to
the caller whether to absorb them.

Example:
    Query a payment's status::

        from apps.payments.gateway import get_gateway

        result = get_gateway().get_payment_status('102')
        print(result.status)  # 'COMPLETED'
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

import paypayopa
import requests
from django.conf import settings

logger = logging.getLogger(__name__)

RESULT_SUCCESS = 'SUCCESS'
RESULT_QR_PAYMENT_NOT_FOUND = 'DYNAMIC_QR_PAYMENT_NOT_FOUND'

DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (iPhone; CPU iPhone OS 10_3 like Mac OS X) AppleWebKit/602.1.50 '
    '(KHTML, like Gecko) CriOS/56.0.2924.75 Mobile/14E5239e Safari/602.1'
)


class GatewayError(Exception):
    """Base exception for payment gateway errors."""

    def __init__(self, message, code=None, payload=None):
        super().__init__(message)
        self.code = code
        self.payload = payload or {}


class GatewayUnavailable(GatewayError):
    """Network error, timeout, malformed response or non-SUCCESS result."""
    pass


class GatewayReferenceNotFound(GatewayUnavailable):
    """The provider does not know the payment reference (yet)."""
    pass


@dataclass
class CreatedPayment:
    payment_id: str
    payment_url: str
    deeplink: str
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GatewayPaymentStatus:
    status: str
    raw: Dict[str, Any] = field(default_factory=dict)


class TimeoutSession(requests.Session):
    """requests session that applies a default timeout to every call."""

    def __init__(self, timeout):
        super().__init__()
        self.timeout = timeout

    def request(self, method, url, **kwargs):
        kwargs.setdefault('timeout', self.timeout)
        return super().request(method, url, **kwargs)


class PayPayClient:
    """
    Client for the PayPay Open Payment API.

    Args:
        api_key (str): PayPay API key.
        api_secret (str): PayPay API secret.
        merchant_id (str): Merchant id sent as ``X-ASSUME-MERCHANT``.
        production (bool, optional): Use the production host instead of the
            sandbox. Defaults to False.
        timeout (int | float, optional): Per-request timeout in seconds.
            Defaults to 10.
        sdk (paypayopa.Client, optional): Preconfigured SDK client.
    """

    def __init__(self, api_key, api_secret, merchant_id, production=False,
                 timeout=10, sdk=None):
        self.merchant_id = merchant_id
        self.timeout = timeout
        if sdk is None:
            sdk = paypayopa.Client(
                session=TimeoutSession(timeout),
                auth=(api_key, api_secret),
                production_mode=production,
            )
            sdk.set_assume_merchant(merchant_id)
        self.sdk = sdk

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create_payment(self, reference, amount, currency, description,
                       redirect_url, webhook_url=None, user_agent=None):
        """
        Create a dynamic ORDER_QR code for a merchant payment id.

        Returns:
            CreatedPayment: PayPay's payment id and the URL/deeplink the
            customer opens to pay.

        Raises:
            GatewayUnavailable: If PayPay is unreachable or rejects the request.
        """
        request = {
            'merchantPaymentId': reference,
            'amount': {'amount': amount, 'currency': currency},
            'codeType': 'ORDER_QR',
            'orderDescription': description,
            'isAuthorization': False,
            'redirectUrl': redirect_url,
            'redirectType': 'WEB_LINK',
            'userAgent': user_agent or DEFAULT_USER_AGENT,
        }
        if webhook_url:
            request['webhookUrl'] = webhook_url

        logger.info("Creating PayPay QR code for merchantPaymentId=%s amount=%s %s",
                    reference, amount, currency)
        body = self._call('create QR code', self.sdk.Code.create_qr_code, request)
        self._raise_for_result(body)

        data = body.get('data') or {}
        return CreatedPayment(
            payment_id=data.get('paymentId') or data.get('codeId') or '',
            payment_url=data.get('url') or data.get('webPaymentUrl') or '',
            deeplink=data.get('deeplink') or '',
            raw=body,
        )

    def get_payment_status(self, reference):
        """
        Fetch the current PayPay status for a merchant payment id.

        The QR code lookup is tried first; once the customer has paid PayPay
        answers ``DYNAMIC_QR_PAYMENT_NOT_FOUND`` there and the payment lookup
        is used instead.

        Raises:
            GatewayReferenceNotFound: Neither lookup knows the reference.
            GatewayUnavailable: Any other failure.
        """
        body = self._call('get QR payment', self.sdk.Code.get_payment_details, reference)
        code = self._result_code(body)

        if code == RESULT_QR_PAYMENT_NOT_FOUND:
            logger.info("QR code lookup missed for %s, trying payment details", reference)
            body = self._call('get payment', self.sdk.Payment.get_payment_details, reference)
            code = self._result_code(body)
            if code.endswith('NOT_FOUND'):
                raise GatewayReferenceNotFound(
                    f"PayPay has no payment for {reference}",
                    code=RESULT_QR_PAYMENT_NOT_FOUND,
                    payload=body,
                )

        self._raise_for_result(body)

        data = body.get('data') or {}
        status = data.get('status')
        if not status:
            raise GatewayUnavailable(
                'PayPay response has no payment status',
                code='INVALID_RESPONSE',
                payload=body,
            )
        logger.info("PayPay status for %s: %s", reference, status)
        return GatewayPaymentStatus(status=status, raw=body)

    @staticmethod
    def webhook_configuration(base_url):
        """Describe what has to be registered in PayPay for webhooks to arrive."""
        webhook_url = f"{base_url.rstrip('/')}/api/paypay-webhook/"
        return {
            'webhookUrl': webhook_url,
            'webhookEvents': [
                'PAYMENT_STATUS',
                'PAYMENT_COMPLETED',
                'TRANSACTION',
            ],
            'webhookFormat': {
                'notification_type': 'Transaction',
                'merchant_order_id': '{{order_id}}',
                'state': '{{payment_status}}',
                'order_amount': '{{amount}}',
                'paid_at': '{{timestamp}}',
            },
            'instructions': [
                '1. Open the PayPay developer panel',
                '2. Navigate to Settings -> Webhooks',
                f'3. Add webhook URL: {webhook_url}',
                '4. Select events: Payment Status, Payment Completed, Transaction',
                '5. Save configuration',
            ],
        }

    # ------------------------------------------------------------------
    # SDK calls
    # ------------------------------------------------------------------

    def _call(self, action, method, *args):
        try:
            body = method(*args)
        except requests.RequestException as e:
            logger.warning("PayPay %s failed: %s", action, e)
            raise GatewayUnavailable(f'PayPay request failed: {e}', code='NETWORK_ERROR') from e
        except Exception as e:
            # The SDK raises its own error types and ValueError for bad JSON
            logger.warning("PayPay %s failed: %s", action, e)
            raise GatewayUnavailable(f'PayPay {action} failed: {e}', code='INVALID_RESPONSE') from e

        if not isinstance(body, dict) or not isinstance(body.get('resultInfo'), dict):
            raise GatewayUnavailable(
                'Invalid PayPay response format',
                code='INVALID_RESPONSE',
                payload=body if isinstance(body, dict) else {},
            )
        return body

    @staticmethod
    def _result_code(body):
        return str((body.get('resultInfo') or {}).get('code') or '')

    def _raise_for_result(self, body):
        info = body.get('resultInfo') or {}
        code = info.get('code')
        if code != RESULT_SUCCESS:
            raise GatewayUnavailable(
                f"PayPay API error: {info.get('message')} (Code: {code})",
                code=code,
                payload=body,
            )


def get_gateway() -> PayPayClient:
    """Build a PayPay client from Django settings."""
    return PayPayClient(
        api_key=settings.PAYPAY_API_KEY,
        api_secret=settings.PAYPAY_SECRET,
        merchant_id=settings.PAYPAY_MERCHANT_ID,
        production=settings.PAYPAY_PRODUCTION_MODE,
        timeout=settings.PAYPAY_TIMEOUT_SECONDS,
    )
