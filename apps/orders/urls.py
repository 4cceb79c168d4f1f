from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'orders'

router = DefaultRouter()
router.register(r'', views.OrderViewSet, basename='order')

urlpatterns = [
    # GET /api/orders/{id}/         - Order details
    # GET /api/orders/{id}/qr-code/ - Payment QR code (PNG)
    path('', include(router.urls)),
]
