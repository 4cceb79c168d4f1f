import pytest
from apps.catalog.models import Product
from apps.orders.models import Order, OrderStatus
from apps.payments.gateway import GatewayUnavailable
from apps.payments.models import PaymentMethod
from apps.payments.services import (
    create_paypay_checkout,
    create_card_checkout,
    create_cod_checkout,
    render_payment_qr,
    CheckoutError,
    ProductNotFoundError,
)


@pytest.mark.django_db
class TestPayPayCheckout:
    """Tests for create_paypay_checkout()"""

    def test_creates_order_and_starts_payment(self, product, gateway, settings):
        settings.PUBLIC_BASE_URL = 'https://shop.example.com'

        checkout = create_paypay_checkout(
            product_id=product.pk,
            quantity=2,
            customer_email='buyer@example.com',
            gateway=gateway,
        )

        order = checkout.order
        assert order.payment_status == OrderStatus.PENDING
        assert order.total_amount == 600
        assert order.customer_email == 'buyer@example.com'

        payment = checkout.payment
        assert payment.payment_provider_id == str(order.pk)
        assert payment.payment_url == 'https://qr-stg.sandbox.paypay.ne.jp/28180104abc'
        assert payment.deeplink == 'paypay://payment?link_key=abc'

        kwargs = gateway.create_payment.call_args.kwargs
        assert kwargs['reference'] == str(order.pk)
        assert kwargs['amount'] == 600
        assert kwargs['currency'] == 'JPY'
        assert kwargs['redirect_url'] == f'https://shop.example.com/api/payment-callback/?orderId={order.pk}'
        assert kwargs['webhook_url'] == 'https://shop.example.com/api/paypay-webhook/'

    def test_response_shape(self, product, gateway):
        data = create_paypay_checkout(product_id=product.pk, gateway=gateway).as_response()

        assert data['success'] is True
        assert data['paymentId'] == '04016897497012256768'
        assert data['merchantPaymentId'] == str(data['orderId'])
        assert data['qrCodeUrl'] == f"/api/orders/{data['orderId']}/qr-code/"

    def test_gateway_failure_marks_payment_failed(self, product, gateway):
        gateway.create_payment.side_effect = GatewayUnavailable(
            'PayPay API error: Unauthorized (Code: UNAUTHORIZED)',
            code='UNAUTHORIZED',
        )

        with pytest.raises(CheckoutError) as exc_info:
            create_paypay_checkout(product_id=product.pk, gateway=gateway)

        order = Order.objects.get(pk=exc_info.value.order_id)
        assert exc_info.value.code == 'UNAUTHORIZED'
        assert order.payment_status == OrderStatus.PENDING
        payment = order.first_payment()
        assert payment.status == OrderStatus.FAILED
        assert payment.provider_response['code'] == 'UNAUTHORIZED'

    def test_missing_payment_url(self, product, gateway):
        gateway.create_payment.return_value.payment_url = ''

        with pytest.raises(CheckoutError):
            create_paypay_checkout(product_id=product.pk, gateway=gateway)

    def test_inactive_product(self, product, gateway):
        Product.objects.filter(pk=product.pk).update(is_active=False)

        with pytest.raises(ProductNotFoundError):
            create_paypay_checkout(product_id=product.pk, gateway=gateway)

        gateway.create_payment.assert_not_called()
        assert not Order.objects.exists()

    def test_invalid_quantity(self, product, gateway):
        with pytest.raises(CheckoutError):
            create_paypay_checkout(product_id=product.pk, quantity=0, gateway=gateway)


@pytest.mark.django_db
class TestCardCheckout:
    """Tests for create_card_checkout()"""

    def test_creates_order_and_payment_intent(self, product, card_gateway, settings):
        settings.STRIPE_PUBLISHABLE_KEY = 'pk_test_123'

        checkout = create_card_checkout(
            product_id=product.pk,
            quantity=2,
            customer_email='buyer@example.com',
            gateway=card_gateway,
        )

        order = checkout.order
        assert order.payment_status == OrderStatus.PENDING
        assert order.payment_method == PaymentMethod.STRIPE
        assert order.total_amount == 600

        payment = checkout.payment
        assert payment.payment_method == PaymentMethod.STRIPE
        assert payment.payment_provider_id == 'pi_3abc'

        kwargs = card_gateway.create_payment_intent.call_args.kwargs
        assert kwargs['reference'] == str(order.pk)
        assert kwargs['amount'] == 600
        assert kwargs['currency'] == 'JPY'
        assert kwargs['receipt_email'] == 'buyer@example.com'
        assert kwargs['metadata']['paymentRecordId'] == str(payment.pk)

        data = checkout.as_response()
        assert data['paymentIntentId'] == 'pi_3abc'
        assert data['clientSecret'] == 'pi_3abc_secret_xyz'
        assert data['publishableKey'] == 'pk_test_123'
        assert 'webPaymentUrl' not in data

    def test_stripe_failure_marks_payment_failed(self, product, card_gateway):
        card_gateway.create_payment_intent.side_effect = GatewayUnavailable(
            'Stripe create PaymentIntent failed', code='card_declined',
        )

        with pytest.raises(CheckoutError) as exc_info:
            create_card_checkout(product_id=product.pk, gateway=card_gateway)

        order = Order.objects.get(pk=exc_info.value.order_id)
        assert order.payment_status == OrderStatus.PENDING
        assert order.first_payment().status == OrderStatus.FAILED
        assert exc_info.value.code == 'card_declined'

    def test_invalid_quantity(self, product, card_gateway):
        with pytest.raises(CheckoutError):
            create_card_checkout(product_id=product.pk, quantity=0, gateway=card_gateway)

        card_gateway.create_payment_intent.assert_not_called()


@pytest.mark.django_db
class TestCODCheckout:
    """Tests for create_cod_checkout()"""

    def test_creates_pending_cod_order(self, product):
        checkout = create_cod_checkout(
            product_id=product.pk,
            quantity=3,
            customer_name='Taro Yamada',
            customer_phone='090-0000-0000',
            shipping_address='1-1 Chiyoda, Tokyo',
        )

        assert checkout.order.payment_status == OrderStatus.PENDING_COD
        assert checkout.order.payment_method == PaymentMethod.COD
        assert checkout.order.total_amount == 900
        assert checkout.payment.status == OrderStatus.PENDING_COD
        assert checkout.payment.payment_provider_id == ''
        assert 'webPaymentUrl' not in checkout.as_response()

    def test_unknown_product(self, db):
        with pytest.raises(ProductNotFoundError):
            create_cod_checkout(
                product_id=999,
                quantity=1,
                customer_name='Taro',
                customer_phone='090',
                shipping_address='Tokyo',
            )


def test_render_payment_qr_returns_png():
    png = render_payment_qr('https://qr-stg.sandbox.paypay.ne.jp/28180104abc')

    assert png.startswith(b'\x89PNG')
