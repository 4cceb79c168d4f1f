import pytest
from unittest.mock import Mock, patch
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.catalog.models import Product
from apps.orders.models import Order, OrderStatus
from apps.payments.card_gateway import CardPayment, StripeClient
from apps.payments.gateway import CreatedPayment, GatewayPaymentStatus, PayPayClient
from apps.payments.models import PaymentMethod, PaymentRecord

User = get_user_model()


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def staff_user(db):
    """Create and return a shop operator."""
    return User.objects.create_user(
        username='operator',
        email='operator@example.com',
        password='TestPass123!',
        is_staff=True,
    )


@pytest.fixture
def customer_user(db):
    """Create and return a non-staff user."""
    return User.objects.create_user(
        username='customer',
        email='customer@example.com',
        password='TestPass123!',
    )


@pytest.fixture
def staff_client(api_client, staff_user):
    """Return API client authenticated as staff."""
    refresh = RefreshToken.for_user(staff_user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client


@pytest.fixture
def customer_client(api_client, customer_user):
    """Return API client authenticated as a non-staff user."""
    refresh = RefreshToken.for_user(customer_user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client


@pytest.fixture
def product(db):
    """Create and return an active product."""
    return Product.objects.create(
        name='Kirin Ichiban',
        price=300,
        description='Test lager',
    )


@pytest.fixture
def make_order(product):
    """Factory for orders with a PayPay payment record."""

    def _make_order(pk=None, status=OrderStatus.PENDING, provider_id=True, with_payment=True,
                    consecutive_api_errors=0):
        order = Order.objects.create(
            pk=pk,
            product=product,
            quantity=2,
            total_amount=600,
            payment_status=status,
            payment_method=PaymentMethod.PAYPAY,
        )
        if with_payment:
            PaymentRecord.objects.create(
                order=order,
                payment_method=PaymentMethod.PAYPAY,
                payment_provider_id=str(order.pk) if provider_id else '',
                amount=600,
                status=status,
                payment_url='https://qr-stg.sandbox.paypay.ne.jp/28180104abc',
                consecutive_api_errors=consecutive_api_errors,
            )
        return order

    return _make_order


@pytest.fixture
def pending_order(make_order):
    """Pending PayPay order 102 with its payment record."""
    return make_order(pk=102)


@pytest.fixture
def gateway():
    """Mocked PayPay client; status queries answer PENDING by default."""
    client = Mock(spec=PayPayClient)
    client.get_payment_status.return_value = GatewayPaymentStatus(status='PENDING')
    client.create_payment.return_value = CreatedPayment(
        payment_id='04016897497012256768',
        payment_url='https://qr-stg.sandbox.paypay.ne.jp/28180104abc',
        deeplink='paypay://payment?link_key=abc',
        raw={'resultInfo': {'code': 'SUCCESS'}},
    )
    return client


@pytest.fixture
def patched_gateway(gateway):
    """Make the services build the mocked client instead of a real one."""
    with patch('apps.payments.services.reconciliation.get_gateway', return_value=gateway), \
            patch('apps.payments.services.checkout.get_gateway', return_value=gateway):
        yield gateway


@pytest.fixture
def stripe_order(product):
    """Pending card order 103 with its PaymentIntent."""
    order = Order.objects.create(
        pk=103,
        product=product,
        quantity=2,
        total_amount=600,
        payment_method=PaymentMethod.STRIPE,
    )
    PaymentRecord.objects.create(
        order=order,
        payment_method=PaymentMethod.STRIPE,
        payment_provider_id='pi_3abc',
        amount=600,
    )
    return order


@pytest.fixture
def card_gateway():
    """Mocked Stripe client; status queries answer requires_payment_method by default."""
    client = Mock(spec=StripeClient)
    client.get_payment_status.return_value = GatewayPaymentStatus(status='requires_payment_method')
    client.create_payment_intent.return_value = CardPayment(
        intent_id='pi_3abc',
        client_secret='pi_3abc_secret_xyz',
        status='requires_payment_method',
        raw={'id': 'pi_3abc', 'object': 'payment_intent', 'amount': 600},
    )
    return client


@pytest.fixture
def patched_card_gateway(card_gateway):
    """Make the services and views build the mocked Stripe client."""
    with patch('apps.payments.services.reconciliation.get_card_gateway', return_value=card_gateway), \
            patch('apps.payments.services.checkout.get_card_gateway', return_value=card_gateway), \
            patch('apps.payments.views.get_card_gateway', return_value=card_gateway):
        yield card_gateway
