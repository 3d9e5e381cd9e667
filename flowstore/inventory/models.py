from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from decimal import Decimal


class StockLevel(models.Model):
    """
    On-hand quantity of a variant in a storage, in base units.

    Only changed by confirmed stock-moving transactions, inside the same
    database transaction that writes them.
    """
    variant = models.ForeignKey('catalog.ProductVariant', on_delete=models.PROTECT, related_name='stock_levels')
    storage = models.ForeignKey('locations.Storage', on_delete=models.PROTECT, related_name='stock_levels')
    quantity = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0.000'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def clean(self):
        if self.quantity < 0 and not getattr(settings, 'INVENTORY_ALLOW_NEGATIVE_STOCK', False):
            raise ValidationError({'quantity': 'Stock cannot be negative'})

    def __str__(self):
        return f"{self.variant.sku} @ {self.storage.name}: {self.quantity}"

    class Meta:
        db_table = 'stock_levels'
        unique_together = ['variant', 'storage']
        indexes = [
            models.Index(fields=['storage', 'variant'], name='stock_levels_storage_idx'),
        ]
