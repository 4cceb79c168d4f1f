# ==========================================
# apps/orders/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html
from .models import Order, OrderStatus
from apps.payments.models import PaymentRecord
from apps.payments.services import force_complete, PaymentServiceError


STATUS_COLORS = {
    OrderStatus.PENDING: ('#E5C49A', '#2C1810'),
    OrderStatus.PENDING_COD: ('#E5C49A', '#2C1810'),
    OrderStatus.AUTHORIZED: ('#A47449', 'white'),
    OrderStatus.COMPLETED: ('#6B8E5E', 'white'),
    OrderStatus.FAILED: ('#B85C5C', 'white'),
}


def status_badge_html(value, label):
    """Render a payment status as a colored badge."""
    bg, fg = STATUS_COLORS.get(value, ('#ccc', '#666'))
    return format_html(
        '<span style="background: {}; color: {}; padding: 3px 8px; '
        'border-radius: 10px; font-size: 11px;">{}</span>',
        bg, fg, label
    )


class PaymentRecordInline(admin.TabularInline):
    """Inline admin for payment records within an order."""
    model = PaymentRecord
    extra = 0
    fields = [
        'payment_method',
        'payment_provider_id',
        'amount',
        'status',
        'consecutive_api_errors',
        'last_gateway_status',
        'created_at',
    ]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        """Payment records are created by checkout."""
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin interface for Orders.

    Provides order management including:
    - Order listing with payment status
    - Inline payment records
    - Manual completion when the provider cannot be reconciled
    """

    list_display = [
        'id',
        'product',
        'quantity',
        'total_amount',
        'payment_method',
        'payment_status_badge',
        'customer_email',
        'created_at',
    ]

    list_filter = [
        'payment_status',
        'payment_method',
        'created_at',
    ]

    search_fields = [
        'id',
        'customer_email',
        'customer_name',
        'payment_id',
        'product__name',
    ]

    # Status changes go through the reconciler (force-complete action)
    readonly_fields = [
        'payment_status',
        'payment_method',
        'payment_currency',
        'payment_id',
        'payment_amount',
        'payment_completed_at',
        'created_at',
        'updated_at',
    ]

    inlines = [PaymentRecordInline]
    date_hierarchy = 'created_at'
    actions = ['force_complete_payment']

    fieldsets = (
        ('Order', {
            'fields': (
                'product',
                'quantity',
                'total_amount',
            )
        }),
        ('Payment', {
            'fields': (
                'payment_status',
                'payment_method',
                'payment_id',
                'payment_amount',
                'payment_currency',
                'payment_completed_at',
            )
        }),
        ('Customer', {
            'fields': (
                'customer_email',
                'customer_name',
                'customer_phone',
                'shipping_address',
                'order_notes',
            )
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def payment_status_badge(self, obj):
        return status_badge_html(obj.payment_status, obj.get_payment_status_display())
    payment_status_badge.short_description = 'Payment Status'

    @admin.action(description='Force complete selected orders')
    def force_complete_payment(self, request, queryset):
        """Mark selected orders paid without asking the provider."""
        count = 0
        for order in queryset:
            try:
                force_complete(order.pk)
            except PaymentServiceError as e:
                self.message_user(request, f'Order #{order.pk}: {e}', level='error')
                continue
            count += 1
        self.message_user(request, f'Force completed {count} order(s).')

    def get_queryset(self, request):
        """Optimize query with select_related."""
        qs = super().get_queryset(request)
        return qs.select_related('product')
