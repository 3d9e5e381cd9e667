from django.db import models
from decimal import Decimal

from flowstore.core.models import SoftDeleteQuerySet


class Category(models.Model):
    """Product categories"""
    name = models.CharField(max_length=200, db_index=True)
    parent = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='children')
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'


class Unit(models.Model):
    """Units of measure; conversion_factor converts one unit into the base unit"""
    name = models.CharField(max_length=100)
    symbol = models.CharField(max_length=20, unique=True)
    conversion_factor = models.DecimalField(max_digits=15, decimal_places=6, default=Decimal('1'))
    is_base = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.symbol

    class Meta:
        db_table = 'units'


class Tax(models.Model):
    """Tax rates (e.g. IVA 19%)"""
    name = models.CharField(max_length=100)
    code = models.CharField(max_length=30, unique=True)
    rate = models.DecimalField(max_digits=5, decimal_places=2)  # e.g., 19.00 for 19%
    is_default = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.rate}%)"

    class Meta:
        db_table = 'taxes'
        verbose_name_plural = 'taxes'


class Product(models.Model):
    """Product master"""
    PRODUCT_TYPE_CHOICES = [
        ('PHYSICAL', 'Physical'),
        ('SERVICE', 'Service'),
    ]

    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True)
    brand = models.CharField(max_length=200, blank=True)
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    product_type = models.CharField(max_length=20, choices=PRODUCT_TYPE_CHOICES, default='PHYSICAL')
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'products'


class ProductVariant(models.Model):
    """Sellable/stockable unit of a product (size, color, presentation)"""
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='variants')
    sku = models.CharField(max_length=100, unique=True)
    barcode = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    attribute_values = models.JSONField(default=dict, blank=True)  # e.g., {"color": "red", "size": "L"}
    unit = models.ForeignKey(Unit, on_delete=models.SET_NULL, null=True, blank=True, related_name='variants')
    base_cost = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    base_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    # Weighted-average purchase cost, updated by confirmed purchases
    pmp = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    track_inventory = models.BooleanField(default=True)
    minimum_stock = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0.000'))
    maximum_stock = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0.000'))
    reorder_point = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0.000'))
    taxes = models.ManyToManyField(Tax, blank=True, related_name='variants')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    def __str__(self):
        return f"{self.product.name} ({self.sku})"

    @property
    def display_name(self):
        """Attribute values joined for display, e.g. 'Rojo / L'"""
        if not self.attribute_values:
            return ''
        return ' / '.join(str(value) for value in self.attribute_values.values())

    @property
    def unit_cost(self):
        """Cost used to value stock: PMP once known, otherwise the base cost"""
        return self.pmp if self.pmp and self.pmp > 0 else self.base_cost

    class Meta:
        db_table = 'product_variants'
