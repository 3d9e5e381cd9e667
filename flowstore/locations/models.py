from django.db import models
from flowstore.core.models import Company, SoftDeleteQuerySet


class Branch(models.Model):
    """Physical company location; exactly one live branch is the headquarters"""
    company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name='branches')
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=50, blank=True, null=True)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=30, blank=True)
    email = models.EmailField(blank=True)
    latitude = models.DecimalField(max_digits=10, decimal_places=7, null=True, blank=True)
    longitude = models.DecimalField(max_digits=10, decimal_places=7, null=True, blank=True)
    is_headquarters = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'branches'
        ordering = ['-is_headquarters', 'name']
        verbose_name_plural = 'branches'


class Storage(models.Model):
    """Stock-holding location (warehouse, store floor, cold room, transit)"""
    TYPE_CHOICES = [
        ('WAREHOUSE', 'Warehouse'),
        ('STORE', 'Store'),
        ('COLD_ROOM', 'Cold Room'),
        ('TRANSIT', 'Transit'),
    ]
    CATEGORY_IN_BRANCH = 'IN_BRANCH'
    CATEGORY_CHOICES = [
        (CATEGORY_IN_BRANCH, 'In Branch'),
        ('CENTRAL', 'Central'),
        ('EXTERNAL', 'External'),
    ]

    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, null=True, blank=True, related_name='storages')
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=50, blank=True, null=True)
    storage_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='WAREHOUSE')
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default=CATEGORY_IN_BRANCH)
    capacity = models.PositiveIntegerField(null=True, blank=True)
    location = models.CharField(max_length=500, blank=True)
    is_default = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'storages'
        ordering = ['-is_default', 'name']


class PointOfSale(models.Model):
    """Cash register/device tied to a branch and a default price list"""
    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, related_name='points_of_sale')
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=50, blank=True, null=True)
    device_id = models.CharField(max_length=255, blank=True)
    default_price_list = models.ForeignKey(
        'pricing.PriceList', on_delete=models.SET_NULL, null=True, blank=True, related_name='points_of_sale'
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    def __str__(self):
        return f"{self.name} ({self.branch.name})"

    class Meta:
        db_table = 'points_of_sale'
        ordering = ['name']
        verbose_name_plural = 'points of sale'
