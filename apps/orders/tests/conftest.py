import pytest
from rest_framework.test import APIClient
from apps.catalog.models import Product
from apps.orders.models import Order, OrderStatus
from apps.payments.models import PaymentMethod, PaymentRecord


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def product(db):
    """Create and return an active product."""
    return Product.objects.create(name='Kirin Honkirin Beer', price=350)


@pytest.fixture
def paypay_order(product):
    """Pending PayPay order with a payment URL."""
    order = Order.objects.create(
        product=product,
        quantity=2,
        total_amount=700,
        payment_method=PaymentMethod.PAYPAY,
        customer_email='buyer@example.com',
        shipping_address='1-1 Chiyoda, Tokyo',
    )
    PaymentRecord.objects.create(
        order=order,
        payment_method=PaymentMethod.PAYPAY,
        payment_provider_id=str(order.pk),
        amount=700,
        payment_url='https://qr-stg.sandbox.paypay.ne.jp/28180104abc',
    )
    return order


@pytest.fixture
def cod_order(product):
    """Cash-on-delivery order; no payment URL."""
    order = Order.objects.create(
        product=product,
        quantity=1,
        total_amount=350,
        payment_status=OrderStatus.PENDING_COD,
        payment_method=PaymentMethod.COD,
    )
    PaymentRecord.objects.create(
        order=order,
        payment_method=PaymentMethod.COD,
        amount=350,
        status=OrderStatus.PENDING_COD,
    )
    return order
