# ==========================================
# apps/catalog/models.py
# ==========================================

from django.db import models
from django.core.validators import MinValueValidator


class Product(models.Model):
    """Beverage sold in the shop. Prices are whole yen."""

    name = models.CharField(max_length=200, db_index=True)
    price = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    image = models.CharField(max_length=300, blank=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'products'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.name} (¥{self.price})"

    def total_for(self, quantity):
        """Order total in yen for the given quantity."""
        return self.price * quantity
