# ==========================================
# apps/payments/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html
from .models import PaymentRecord
from apps.orders.admin import status_badge_html


@admin.register(PaymentRecord)
class PaymentRecordAdmin(admin.ModelAdmin):
    """
    Admin interface for Payment Records.

    Shows the polling health of each payment so support can see when status
    checks have stopped querying PayPay.
    """

    list_display = [
        'id',
        'order',
        'payment_method',
        'amount',
        'status_badge',
        'polling_health',
        'last_gateway_status',
        'created_at',
    ]

    list_filter = [
        'payment_method',
        'status',
        'created_at',
    ]

    search_fields = [
        'payment_provider_id',
        'order__customer_email',
        'order__id',
    ]

    readonly_fields = [
        'consecutive_api_errors',
        'last_api_check',
        'last_api_error',
        'last_api_error_at',
        'last_gateway_status',
        'provider_response',
        'created_at',
        'updated_at',
    ]

    actions = ['reset_api_errors']

    fieldsets = (
        ('Payment', {
            'fields': (
                'order',
                'payment_method',
                'payment_provider_id',
                'amount',
                'currency',
                'status',
            )
        }),
        ('PayPay', {
            'fields': (
                'payment_url',
                'deeplink',
                'provider_response',
            )
        }),
        ('Status Polling', {
            'fields': (
                'consecutive_api_errors',
                'last_api_check',
                'last_api_error',
                'last_api_error_at',
                'last_gateway_status',
            )
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def status_badge(self, obj):
        return status_badge_html(obj.status, obj.get_status_display())
    status_badge.short_description = 'Status'

    def polling_health(self, obj):
        """Show whether status polling still queries PayPay."""
        if obj.is_circuit_open:
            return format_html(
                '<span style="color: #B85C5C; font-weight: bold;">webhook only ({} errors)</span>',
                obj.consecutive_api_errors
            )
        if obj.consecutive_api_errors:
            return format_html(
                '<span style="color: #A47449;">{} errors</span>',
                obj.consecutive_api_errors
            )
        return format_html('<span style="color: #6B8E5E;">{}</span>', 'OK')
    polling_health.short_description = 'Polling'

    @admin.action(description='Reset payment API error counter')
    def reset_api_errors(self, request, queryset):
        count = queryset.update(consecutive_api_errors=0, last_api_error='', last_api_error_at=None)
        self.message_user(request, f'{count} payment(s) will query the provider again.')
