# ==========================================
# apps/orders/models.py
# ==========================================

from django.db import models
from django.core.validators import MinValueValidator


class OrderStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'
    AUTHORIZED = 'authorized', 'Authorized'
    PENDING_COD = 'pending_cod', 'Pending (cash on delivery)'


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.FAILED})


class Order(models.Model):
    """Customer order for a single product line, settled by one payment."""

    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.PROTECT,
        related_name='orders'
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    total_amount = models.PositiveIntegerField()

    # Settlement
    payment_status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True
    )
    payment_method = models.CharField(max_length=30, blank=True)
    payment_id = models.CharField(max_length=100, blank=True)
    payment_amount = models.PositiveIntegerField(null=True, blank=True)
    payment_currency = models.CharField(max_length=3, default='JPY')
    payment_completed_at = models.DateTimeField(null=True, blank=True)

    # Customer contact
    customer_email = models.EmailField(blank=True)
    customer_name = models.CharField(max_length=200, blank=True)
    customer_phone = models.CharField(max_length=50, blank=True)
    shipping_address = models.TextField(blank=True)
    order_notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'orders'
        indexes = [
            models.Index(fields=['payment_status', 'created_at'], name='orders_status_created_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"Order #{self.pk} - {self.product.name} x {self.quantity} ({self.payment_status})"

    @property
    def is_terminal(self):
        return self.payment_status in TERMINAL_STATUSES

    def first_payment(self):
        """Return the payment record reconciliation works against, or None."""
        return self.payments.order_by('created_at', 'id').first()
