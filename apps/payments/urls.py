from django.urls import re_path
from . import views

app_name = 'payments'

# Payment routes are called by the providers and the storefront both with and
# without a trailing slash.
urlpatterns = [
    # GET  /api/payment-status/?orderId=<id> - Poll payment status
    # POST /api/payment-status/              - force_complete / reset_api_errors (staff)
    re_path(r'^payment-status/?$', views.PaymentStatusView.as_view(), name='payment-status'),

    # GET /api/payment-callback/?orderId=<id> - Customer returns from PayPay
    re_path(r'^payment-callback/?$', views.payment_callback, name='payment-callback'),

    # POST /api/paypay-webhook/ - PayPay notifications
    re_path(r'^paypay-webhook/?$', views.paypay_webhook, name='paypay-webhook'),
    re_path(r'^paypay-webhook-config/?$', views.paypay_webhook_config, name='paypay-webhook-config'),

    # Checkout
    re_path(r'^create-payment/?$', views.create_payment, name='create-payment'),
    re_path(r'^create-cod-payment/?$', views.create_cod_payment, name='create-cod-payment'),

    # Stripe card payments
    re_path(r'^create-stripe-payment/?$', views.create_stripe_payment, name='create-stripe-payment'),
    re_path(r'^stripe-webhook/?$', views.stripe_webhook, name='stripe-webhook'),
    re_path(r'^verify-stripe-payment/?$', views.verify_stripe_payment, name='verify-stripe-payment'),
]
