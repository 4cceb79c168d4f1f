from rest_framework import serializers
from .models import PaymentRecord


# =============================================================================
# Input Serializers
# =============================================================================
# Field names follow the storefront's camelCase JSON.

class PaymentStatusQuerySerializer(serializers.Serializer):
    """
    Validate query parameters for a status poll.

    Query Parameters:
        orderId (int): Order to check
    """

    orderId = serializers.IntegerField(min_value=1)


class ManualActionSerializer(serializers.Serializer):
    """
    Validate an operator action on an order's payment.

    Fields:
        orderId (int): Order to act on
        action (str): ``force_complete`` or ``reset_api_errors``
    """

    ACTIONS = ['force_complete', 'reset_api_errors']

    orderId = serializers.IntegerField(min_value=1)
    action = serializers.ChoiceField(choices=ACTIONS)


class CreatePaymentSerializer(serializers.Serializer):
    """
    Validate input for starting a PayPay payment.

    Fields:
        productId (int): Product to buy
        quantity (int): Units, at least 1
        customerEmail (str): Optional contact address
    """

    productId = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1, default=1)
    customerEmail = serializers.EmailField(required=False, allow_blank=True, default='')


class CreateCODPaymentSerializer(CreatePaymentSerializer):
    """Validate input for a cash-on-delivery order."""

    customerName = serializers.CharField(max_length=200)
    customerPhone = serializers.CharField(max_length=50)
    shippingAddress = serializers.CharField()


# =============================================================================
# Output Serializers
# =============================================================================


class PaymentRecordSerializer(serializers.ModelSerializer):
    """Payment record as shown in order details."""

    class Meta:
        model = PaymentRecord
        fields = [
            'id',
            'payment_method',
            'payment_provider_id',
            'amount',
            'currency',
            'status',
            'payment_url',
            'deeplink',
            'consecutive_api_errors',
            'last_api_check',
            'last_api_error',
            'last_gateway_status',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ReconciliationResponseSerializer(serializers.Serializer):
    """Shape of a reconciliation response, for API documentation."""

    status = serializers.CharField()
    orderId = serializers.IntegerField()
    message = serializers.CharField()
    source = serializers.CharField()
    paymentMethod = serializers.CharField(required=False)
    consecutiveErrors = serializers.IntegerField(required=False)
    payPayStatus = serializers.CharField(required=False)
    stripeStatus = serializers.CharField(required=False)
    lastError = serializers.CharField(required=False)
    completedAt = serializers.DateTimeField(required=False)
    degraded = serializers.BooleanField(required=False)


class CallbackResponseSerializer(serializers.Serializer):
    """Shape of a payment callback response, for API documentation."""

    success = serializers.BooleanField()
    status = serializers.CharField(required=False)
    orderId = serializers.IntegerField(required=False)
    source = serializers.CharField(required=False)
    error = serializers.CharField(required=False)
    redirectUrl = serializers.CharField()
