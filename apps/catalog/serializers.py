from rest_framework import serializers
from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    """Read-only product representation for the storefront."""

    class Meta:
        model = Product
        fields = [
            'id',
            'name',
            'price',
            'image',
            'description',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields
