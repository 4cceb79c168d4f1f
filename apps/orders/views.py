from django.http import Http404, HttpResponse
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from .models import Order
from .serializers import OrderDetailSerializer
from apps.payments.services import render_payment_qr


class OrderViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Order details for the storefront.

    retrieve: Get an order with its payment records
    qr_code: PNG QR code for the order's PayPay payment URL
    """

    queryset = Order.objects.select_related('product').prefetch_related('payments')
    serializer_class = OrderDetailSerializer
    permission_classes = [AllowAny]

    @extend_schema(
        responses={200: OpenApiTypes.OBJECT},
        description="Order details with product and payment records.",
        tags=['orders'],
    )
    def retrieve(self, request, *args, **kwargs):
        """
        GET /api/orders/{id}/
        """
        try:
            order = self.get_object()
        except Http404:
            return Response(
                {'error': 'Order not found', 'orderId': kwargs.get('pk')},
                status=status.HTTP_404_NOT_FOUND
            )

        return Response({'success': True, 'order': self.get_serializer(order).data})

    @extend_schema(
        responses={(200, 'image/png'): OpenApiTypes.BINARY},
        description="QR code image for the order's PayPay payment URL.",
        tags=['orders'],
    )
    @action(detail=True, methods=['get'], url_path='qr-code')
    def qr_code(self, request, pk=None):
        """
        GET /api/orders/{id}/qr-code/
        """
        order = self.get_object()
        payment = order.first_payment()

        if payment is None or not payment.payment_url:
            return Response(
                {'error': 'No PayPay payment URL for this order'},
                status=status.HTTP_404_NOT_FOUND
            )

        return HttpResponse(render_payment_qr(payment.payment_url), content_type='image/png')
