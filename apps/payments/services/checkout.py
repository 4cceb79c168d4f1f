"""
Checkout: turning a product selection into an order awaiting payment.

PayPay checkout creates the order and its payment record first, then asks
PayPay for a QR code whose merchant payment id is the order id. That id is
what webhooks and status polling use to find the order again. Card checkout
does the same with a Stripe PaymentIntent carrying the order id in its
metadata.
"""

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

import qrcode
from django.conf import settings
from django.db import transaction

from apps.catalog.models import Product
from apps.orders.models import Order, OrderStatus
from ..card_gateway import StripeClient, get_card_gateway
from ..gateway import GatewayError, PayPayClient, get_gateway
from ..models import PaymentMethod, PaymentRecord
from .exceptions import CheckoutError, ProductNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class CheckoutResult:
    order: Order
    payment: PaymentRecord

    def as_response(self):
        data = {
            'success': True,
            'orderId': self.order.pk,
            'paymentRecordId': self.payment.pk,
            'status': self.order.payment_status,
            'totalAmount': self.order.total_amount,
        }
        if self.payment.payment_method == PaymentMethod.PAYPAY:
            data.update({
                'paymentId': self.payment.provider_response.get('paymentId', ''),
                'merchantPaymentId': self.payment.payment_provider_id,
                'webPaymentUrl': self.payment.payment_url,
                'deeplink': self.payment.deeplink,
                'qrCodeUrl': f'/api/orders/{self.order.pk}/qr-code/',
            })
        elif self.payment.payment_method == PaymentMethod.STRIPE:
            data.update({
                'paymentIntentId': self.payment.payment_provider_id,
                'clientSecret': self.payment.provider_response.get('client_secret', ''),
                'publishableKey': settings.STRIPE_PUBLISHABLE_KEY,
            })
        return data


def _get_product(product_id):
    try:
        return Product.objects.get(pk=product_id, is_active=True)
    except Product.DoesNotExist:
        raise ProductNotFoundError(f"Product {product_id} not found")


def _public_url(path):
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}{path}"


def _create_pending_order(product, quantity, payment_method, customer_email):
    total = product.total_for(quantity)
    with transaction.atomic():
        order = Order.objects.create(
            product=product,
            quantity=quantity,
            total_amount=total,
            payment_method=payment_method,
            customer_email=customer_email or '',
        )
        payment = PaymentRecord.objects.create(
            order=order,
            payment_method=payment_method,
            payment_provider_id=str(order.pk) if payment_method == PaymentMethod.PAYPAY else '',
            amount=total,
            currency=order.payment_currency,
        )
    return order, payment


def _mark_payment_failed(payment, provider_response):
    payment.status = OrderStatus.FAILED
    payment.provider_response = provider_response
    payment.save(update_fields=['status', 'provider_response', 'updated_at'])


def create_paypay_checkout(
    *,
    product_id: int,
    quantity: int = 1,
    customer_email: str = '',
    gateway: Optional[PayPayClient] = None,
) -> CheckoutResult:
    """
    Create an order and start a PayPay QR payment for it.

    After paying, PayPay sends the customer to ``/api/payment-callback/``,
    which reconciles the order and answers with the storefront page to show.

    Args:
        product_id (int): Product being bought.
        quantity (int, optional): Units. Defaults to 1.
        customer_email (str, optional): Contact address for the order.
        gateway (PayPayClient, optional): Client to use. Defaults to one
            built from settings.

    Returns:
        CheckoutResult: The pending order and its payment record, which now
        carries PayPay's payment URL and deeplink.

    Raises:
        ProductNotFoundError: If the product does not exist or is inactive.
        CheckoutError: If PayPay rejects the request or is unreachable. The
            order stays ``pending`` and its payment record is marked
            ``failed``.
    """
    if quantity < 1:
        raise CheckoutError('Quantity must be at least 1')

    product = _get_product(product_id)
    order, payment = _create_pending_order(product, quantity, PaymentMethod.PAYPAY, customer_email)

    gateway = gateway or get_gateway()
    try:
        created = gateway.create_payment(
            reference=payment.payment_provider_id,
            amount=order.total_amount,
            currency=payment.currency,
            description=f'{product.name} x {quantity}',
            redirect_url=_public_url(f'/api/payment-callback/?orderId={order.pk}'),
            webhook_url=_public_url('/api/paypay-webhook/'),
        )
    except GatewayError as e:
        logger.error("PayPay checkout for order %s failed: %s", order.pk, e)
        _mark_payment_failed(payment, {'error': str(e), 'code': e.code, 'response': e.payload})
        raise CheckoutError(str(e), order_id=order.pk, code=e.code) from e

    if not created.payment_url:
        _mark_payment_failed(payment, created.raw)
        raise CheckoutError('PayPay did not return a payment URL', order_id=order.pk)

    payment.payment_url = created.payment_url
    payment.deeplink = created.deeplink
    payment.provider_response = {**created.raw, 'paymentId': created.payment_id}
    payment.save(update_fields=['payment_url', 'deeplink', 'provider_response', 'updated_at'])

    logger.info("Started PayPay payment for order %s (¥%s)", order.pk, order.total_amount)
    return CheckoutResult(order=order, payment=payment)


def create_card_checkout(
    *,
    product_id: int,
    quantity: int = 1,
    customer_email: str = '',
    gateway: Optional[StripeClient] = None,
) -> CheckoutResult:
    """
    Create an order and a Stripe PaymentIntent for it.

    The storefront confirms the intent with Stripe.js using the returned
    client secret. The intent id becomes the payment record's provider id,
    so status polling looks the intent up directly.

    Raises:
        ProductNotFoundError: If the product does not exist or is inactive.
        CheckoutError: If Stripe rejects the request or is unreachable. The
            order stays ``pending`` and its payment record is marked
            ``failed``.
    """
    if quantity < 1:
        raise CheckoutError('Quantity must be at least 1')

    product = _get_product(product_id)
    order, payment = _create_pending_order(product, quantity, PaymentMethod.STRIPE, customer_email)

    gateway = gateway or get_card_gateway()
    try:
        intent = gateway.create_payment_intent(
            reference=str(order.pk),
            amount=order.total_amount,
            currency=payment.currency,
            description=f'Beer Shop Order #{order.pk} - {product.name} x {quantity}',
            metadata={
                'productId': str(product.pk),
                'quantity': str(quantity),
                'paymentRecordId': str(payment.pk),
            },
            receipt_email=order.customer_email,
        )
    except GatewayError as e:
        logger.error("Stripe checkout for order %s failed: %s", order.pk, e)
        _mark_payment_failed(payment, {'error': str(e), 'code': e.code})
        raise CheckoutError(str(e), order_id=order.pk, code=e.code) from e

    payment.payment_provider_id = intent.intent_id
    payment.provider_response = {**intent.raw, 'client_secret': intent.client_secret}
    payment.save(update_fields=['payment_provider_id', 'provider_response', 'updated_at'])

    logger.info("Started Stripe payment %s for order %s (¥%s)",
                intent.intent_id, order.pk, order.total_amount)
    return CheckoutResult(order=order, payment=payment)


@transaction.atomic
def create_cod_checkout(
    *,
    product_id: int,
    quantity: int,
    customer_name: str,
    customer_phone: str,
    shipping_address: str,
    customer_email: str = '',
) -> CheckoutResult:
    """Create a cash-on-delivery order. Nothing is sent to a payment provider."""
    if quantity < 1:
        raise CheckoutError('Quantity must be at least 1')

    product = _get_product(product_id)
    total = product.total_for(quantity)

    order = Order.objects.create(
        product=product,
        quantity=quantity,
        total_amount=total,
        payment_status=OrderStatus.PENDING_COD,
        payment_method=PaymentMethod.COD,
        customer_email=customer_email or '',
        customer_name=customer_name,
        customer_phone=customer_phone,
        shipping_address=shipping_address,
    )
    payment = PaymentRecord.objects.create(
        order=order,
        payment_method=PaymentMethod.COD,
        amount=total,
        currency=order.payment_currency,
        status=OrderStatus.PENDING_COD,
        provider_response={
            'payment_type': 'cash_on_delivery',
            'delivery_note': 'Payment will be collected upon delivery',
        },
    )

    logger.info("Created cash-on-delivery order %s (¥%s)", order.pk, total)
    return CheckoutResult(order=order, payment=payment)


def render_payment_qr(payment_url: str) -> bytes:
    """
    Render a PayPay payment URL as a QR code PNG.

    Returns:
        bytes: PNG image data.
    """
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(payment_url)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format='PNG')
    return buffer.getvalue()
