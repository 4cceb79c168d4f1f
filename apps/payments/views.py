import logging

from django.conf import settings
from django.utils.http import urlencode
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.orders.models import OrderStatus
from .card_gateway import WebhookSignatureError, get_card_gateway
from .gateway import PayPayClient
from .serializers import (
    PaymentStatusQuerySerializer,
    ManualActionSerializer,
    CreatePaymentSerializer,
    CreateCODPaymentSerializer,
    CallbackResponseSerializer,
    ReconciliationResponseSerializer,
)
from .services import (
    observe_by_poll,
    observe_by_webhook,
    observe_card_event,
    force_complete,
    reset_api_errors,
    create_paypay_checkout,
    create_card_checkout,
    create_cod_checkout,
    OrderNotFoundError,
    ProductNotFoundError,
    MalformedPayloadError,
    PersistenceFailureError,
    CheckoutError,
)

logger = logging.getLogger(__name__)

MANUAL_ACTIONS = {
    'force_complete': force_complete,
    'reset_api_errors': reset_api_errors,
}


def _not_found(e):
    return Response(
        {'status': 'not_found', 'message': str(e)},
        status=status.HTTP_404_NOT_FOUND
    )


def _server_error(e):
    return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


class PaymentStatusView(APIView):
    """
    Order settlement status.

    GET  /api/payment-status/?orderId=<id>  - Poll status (public)
    POST /api/payment-status/               - Operator action (staff only)
         Body: {"orderId": 102, "action": "force_complete"}
    """

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAdminUser()]
        return [AllowAny()]

    @extend_schema(
        parameters=[PaymentStatusQuerySerializer],
        responses={200: ReconciliationResponseSerializer},
        description="Report an order's payment status, querying PayPay when it may have changed.",
        tags=['payments'],
    )
    def get(self, request):
        query = PaymentStatusQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        try:
            result = observe_by_poll(query.validated_data['orderId'])
        except OrderNotFoundError as e:
            return _not_found(e)
        except PersistenceFailureError as e:
            return _server_error(e)

        return Response(result.as_response())

    @extend_schema(
        request=ManualActionSerializer,
        responses={200: ReconciliationResponseSerializer},
        description="Force-complete an order or reset its PayPay polling error counter.",
        tags=['payments'],
    )
    def post(self, request):
        serializer = ManualActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order_id = serializer.validated_data['orderId']
        handler = MANUAL_ACTIONS[serializer.validated_data['action']]
        logger.info("%s requested %s for order %s",
                    request.user, serializer.validated_data['action'], order_id)

        try:
            result = handler(order_id)
        except OrderNotFoundError as e:
            return _not_found(e)
        except PersistenceFailureError as e:
            return _server_error(e)

        return Response({'success': True, **result.as_response()})


@extend_schema(
    request=None,
    description="Receive a PayPay payment status notification.",
    tags=['payments'],
)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def paypay_webhook(request):
    """
    PayPay webhook receiver.

    POST /api/paypay-webhook/
    Body: {"merchant_order_id": "102", "state": "COMPLETED", ...}
    """
    try:
        result = observe_by_webhook(request.data)
    except MalformedPayloadError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except OrderNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except PersistenceFailureError as e:
        return _server_error(e)

    return Response({
        'success': True,
        'message': 'Webhook processed successfully',
        'orderId': result.order_id,
        'status': result.status,
    })


@extend_schema(
    responses={200: OpenApiTypes.OBJECT},
    description="Show the webhook URL and events to register in PayPay.",
    tags=['payments'],
)
@api_view(['GET'])
@permission_classes([AllowAny])
def paypay_webhook_config(request):
    return Response(PayPayClient.webhook_configuration(settings.PUBLIC_BASE_URL))


@extend_schema(
    request=CreatePaymentSerializer,
    description="Create an order and a PayPay QR payment for it.",
    tags=['payments'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def create_payment(request):
    """
    Start a PayPay payment.

    POST /api/create-payment/
    Body: {"productId": 1, "quantity": 2, "customerEmail": "a@example.com"}
    """
    serializer = CreatePaymentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        checkout = create_paypay_checkout(
            product_id=data['productId'],
            quantity=data['quantity'],
            customer_email=data['customerEmail'],
        )
    except ProductNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except CheckoutError as e:
        body = {'error': 'Failed to create PayPay payment', 'details': str(e)}
        if e.order_id:
            body['orderId'] = e.order_id
        return Response(body, status=status.HTTP_400_BAD_REQUEST)

    return Response(checkout.as_response(), status=status.HTTP_201_CREATED)


@extend_schema(
    request=CreateCODPaymentSerializer,
    description="Create a cash-on-delivery order.",
    tags=['payments'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def create_cod_payment(request):
    """
    POST /api/create-cod-payment/
    """
    serializer = CreateCODPaymentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        checkout = create_cod_checkout(
            product_id=data['productId'],
            quantity=data['quantity'],
            customer_name=data['customerName'],
            customer_phone=data['customerPhone'],
            shipping_address=data['shippingAddress'],
            customer_email=data['customerEmail'],
        )
    except ProductNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except CheckoutError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(
        {**checkout.as_response(), 'message': 'Cash on delivery order created successfully'},
        status=status.HTTP_201_CREATED
    )


# =============================================================================
# Customer return from the payment provider
# =============================================================================

def _redirect_path(page, **params):
    return f'/payment/{page}?{urlencode(params)}'


def _callback_response(request, method):
    """
    Reconcile the order the customer returned for and name the page to show.

    Completed orders go to the success page, failed ones to the failure page
    and anything still open to the pending page, which keeps polling.
    """
    query = PaymentStatusQuerySerializer(data=request.query_params)
    if not query.is_valid():
        return Response({
            'success': False,
            'error': 'Missing payment parameters',
            'redirectUrl': _redirect_path('failed', error='missing_parameters'),
        }, status=status.HTTP_400_BAD_REQUEST)

    order_id = query.validated_data['orderId']
    try:
        result = observe_by_poll(order_id)
    except OrderNotFoundError as e:
        return Response({
            'success': False,
            'error': str(e),
            'redirectUrl': _redirect_path('failed', error='order_not_found'),
        }, status=status.HTTP_404_NOT_FOUND)
    except PersistenceFailureError as e:
        return Response({
            'success': False,
            'error': str(e),
            'redirectUrl': _redirect_path('failed', orderId=order_id, error='database_error'),
        }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if result.status == OrderStatus.COMPLETED:
        redirect_url = _redirect_path('success', orderId=order_id, method=method)
    elif result.status == OrderStatus.FAILED:
        redirect_url = _redirect_path('failed', orderId=order_id, reason='failed', method=method)
    else:
        redirect_url = _redirect_path('pending', orderId=order_id, method=method)

    logger.info("Customer returned from %s for order %s (%s)", method, order_id, result.status)
    return Response({
        'success': result.status == OrderStatus.COMPLETED,
        'status': result.status,
        'orderId': order_id,
        'source': result.source,
        'redirectUrl': redirect_url,
    })


@extend_schema(
    parameters=[PaymentStatusQuerySerializer],
    responses={200: CallbackResponseSerializer},
    description="Return point after paying in PayPay; reconciles the order and names the page to show.",
    tags=['payments'],
)
@api_view(['GET'])
@permission_classes([AllowAny])
def payment_callback(request):
    """
    GET /api/payment-callback/?orderId=<id>
    """
    return _callback_response(request, 'paypay')


@extend_schema(
    parameters=[PaymentStatusQuerySerializer],
    responses={200: CallbackResponseSerializer},
    description="Return point after a Stripe card payment; asks Stripe for the PaymentIntent status.",
    tags=['payments'],
)
@api_view(['GET'])
@permission_classes([AllowAny])
def verify_stripe_payment(request):
    """
    GET /api/verify-stripe-payment/?orderId=<id>&payment_intent=<pi_...>
    """
    return _callback_response(request, 'stripe')


# =============================================================================
# Stripe card payments
# =============================================================================

@extend_schema(
    request=CreatePaymentSerializer,
    description="Create an order and a Stripe PaymentIntent for it.",
    tags=['payments'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def create_stripe_payment(request):
    """
    Start a card payment.

    POST /api/create-stripe-payment/
    Body: {"productId": 1, "quantity": 2, "customerEmail": "a@example.com"}
    """
    serializer = CreatePaymentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        checkout = create_card_checkout(
            product_id=data['productId'],
            quantity=data['quantity'],
            customer_email=data['customerEmail'],
        )
    except ProductNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except CheckoutError as e:
        body = {'error': 'Failed to create card payment', 'details': str(e)}
        if e.order_id:
            body['orderId'] = e.order_id
        return Response(body, status=status.HTTP_400_BAD_REQUEST)

    return Response(checkout.as_response(), status=status.HTTP_201_CREATED)


@extend_schema(
    request=None,
    description="Receive a signed Stripe webhook event.",
    tags=['payments'],
)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def stripe_webhook(request):
    """
    Stripe webhook receiver.

    POST /api/stripe-webhook/
    The raw body is verified against the ``Stripe-Signature`` header.
    """
    try:
        event = get_card_gateway().construct_event(
            request.body,
            request.META.get('HTTP_STRIPE_SIGNATURE', ''),
        )
    except WebhookSignatureError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = observe_card_event(event)
    except MalformedPayloadError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except OrderNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except PersistenceFailureError as e:
        return _server_error(e)

    body = {'received': True}
    if result is not None:
        body.update({'orderId': result.order_id, 'status': result.status})
    return Response(body)
