from rest_framework import serializers
from .models import Order
from apps.catalog.serializers import ProductSerializer
from apps.payments.serializers import PaymentRecordSerializer


class OrderDetailSerializer(serializers.ModelSerializer):
    """
    Order with its product and payment records.

    Customer contact details stay out; order ids are sequential and the
    endpoint is public for the payment callback page.
    """

    product = ProductSerializer(read_only=True)
    payments = PaymentRecordSerializer(many=True, read_only=True)
    is_terminal = serializers.BooleanField(read_only=True)

    class Meta:
        model = Order
        fields = [
            'id',
            'product',
            'quantity',
            'total_amount',
            'payment_status',
            'is_terminal',
            'payment_method',
            'payment_id',
            'payment_amount',
            'payment_currency',
            'payment_completed_at',
            'payments',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields
