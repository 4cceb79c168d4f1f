import pytest
from rest_framework.test import APIClient
from apps.catalog.models import Product


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def product(db):
    """Create and return an active product."""
    return Product.objects.create(
        name='Asahi Super Dry',
        price=320,
        image='/images/asahi.webp',
        description='Premium Japanese lager',
    )


@pytest.fixture
def inactive_product(db):
    """Create and return a product no longer sold."""
    return Product.objects.create(
        name='Seasonal Ale',
        price=400,
        is_active=False,
    )
