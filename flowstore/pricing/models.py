from django.db import models
from decimal import Decimal

from flowstore.core.models import SoftDeleteQuerySet
from flowstore.catalog.models import Product, ProductVariant, Tax


class PriceList(models.Model):
    """Named, prioritized, time-bounded set of prices; one live list is the default"""
    TYPE_CHOICES = [
        ('RETAIL', 'Retail'),
        ('WHOLESALE', 'Wholesale'),
        ('VIP', 'VIP'),
        ('PROMOTIONAL', 'Promotional'),
    ]

    name = models.CharField(max_length=255)
    code = models.CharField(max_length=50, blank=True, null=True)
    price_list_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='RETAIL')
    currency = models.CharField(max_length=3, default='CLP')
    valid_from = models.DateField(null=True, blank=True)
    valid_until = models.DateField(null=True, blank=True)
    priority = models.IntegerField(default=0)
    is_default = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    def __str__(self):
        return self.name

    def is_valid_on(self, day):
        if self.valid_from and day < self.valid_from:
            return False
        if self.valid_until and day > self.valid_until:
            return False
        return True

    class Meta:
        db_table = 'price_lists'
        ordering = ['-priority', 'name']


class PriceListItem(models.Model):
    """Price of a product (or one of its variants) within a price list"""
    price_list = models.ForeignKey(PriceList, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='price_list_items')
    variant = models.ForeignKey(ProductVariant, on_delete=models.CASCADE, null=True, blank=True, related_name='price_list_items')
    net_price = models.DecimalField(max_digits=15, decimal_places=2)
    gross_price = models.DecimalField(max_digits=15, decimal_places=2)
    min_price = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    taxes = models.ManyToManyField(Tax, blank=True, related_name='price_list_items')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    def __str__(self):
        return f"{self.price_list.name} - {self.product.name}: {self.gross_price}"

    class Meta:
        db_table = 'price_list_items'
