from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'catalog'

router = DefaultRouter()
router.register(r'', views.ProductViewSet, basename='product')

urlpatterns = [
    # GET    /api/products/        - List active products
    # GET    /api/products/{id}/   - Get product details
    path('', include(router.urls)),
]
