# ==========================================
# apps/payments/models.py
# ==========================================

from django.conf import settings
from django.db import models
from django.utils import timezone

from apps.orders.models import OrderStatus


class PaymentMethod(models.TextChoices):
    PAYPAY = 'paypay', 'PayPay'
    STRIPE = 'stripe', 'Card (Stripe)'
    COD = 'cod', 'Cash on delivery'


class PaymentRecord(models.Model):
    """
    One settlement attempt against an order.

    Reconciliation counters are first-class columns; ``provider_response``
    only holds raw provider payloads, webhook audit data and override markers.
    """

    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.CASCADE,
        related_name='payments'
    )
    payment_method = models.CharField(
        max_length=30,
        choices=PaymentMethod.choices,
        default=PaymentMethod.PAYPAY
    )
    # Merchant payment id known to the provider (str(order.id) for PayPay,
    # the PaymentIntent id for Stripe)
    payment_provider_id = models.CharField(max_length=100, blank=True, db_index=True)
    amount = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default='JPY')
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING
    )

    # Where the customer pays (PayPay web payment URL / app deeplink)
    payment_url = models.URLField(max_length=500, blank=True)
    deeplink = models.CharField(max_length=500, blank=True)

    # Status polling health
    consecutive_api_errors = models.PositiveIntegerField(default=0)
    last_api_check = models.DateTimeField(null=True, blank=True)
    last_api_error = models.CharField(max_length=100, blank=True)
    last_api_error_at = models.DateTimeField(null=True, blank=True)
    last_gateway_status = models.CharField(max_length=30, blank=True)

    provider_response = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'payments'
        indexes = [
            models.Index(fields=['order', 'created_at'], name='payments_order_created_idx'),
        ]
        ordering = ['created_at']

    def __str__(self):
        return f"Payment #{self.pk} for order #{self.order_id} ({self.payment_method}, {self.status})"

    @property
    def is_circuit_open(self):
        """True once polling has failed often enough to stop calling the gateway."""
        return self.consecutive_api_errors >= settings.PAYMENT_API_ERROR_THRESHOLD

    def record_api_success(self, gateway_status):
        now = timezone.now()
        self.consecutive_api_errors = 0
        self.last_api_check = now
        self.last_gateway_status = gateway_status or ''
        return ['consecutive_api_errors', 'last_api_check', 'last_gateway_status', 'updated_at']

    def record_api_failure(self, error_code):
        now = timezone.now()
        self.consecutive_api_errors += 1
        self.last_api_check = now
        self.last_api_error = (error_code or '')[:100]
        self.last_api_error_at = now
        return [
            'consecutive_api_errors',
            'last_api_check',
            'last_api_error',
            'last_api_error_at',
            'updated_at',
        ]
