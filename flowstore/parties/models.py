from django.db import models
from decimal import Decimal

from flowstore.core.models import SoftDeleteQuerySet


class PartyProfile(models.Model):
    """Person or company data shared by customers and suppliers"""
    PERSON_TYPE_CHOICES = [
        ('NATURAL', 'Natural Person'),
        ('COMPANY', 'Company'),
    ]
    DOCUMENT_TYPE_CHOICES = [
        ('RUT', 'RUT'),
        ('PASSPORT', 'Passport'),
        ('OTHER', 'Other'),
    ]

    person_type = models.CharField(max_length=20, choices=PERSON_TYPE_CHOICES, default='NATURAL')
    first_name = models.CharField(max_length=150)
    last_name = models.CharField(max_length=150, blank=True)
    business_name = models.CharField(max_length=255, blank=True)
    document_type = models.CharField(max_length=20, choices=DOCUMENT_TYPE_CHOICES, default='RUT')
    document_number = models.CharField(max_length=50, blank=True, null=True, db_index=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=30, blank=True)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    credit_limit = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    current_balance = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    default_payment_term_days = models.PositiveIntegerField(default=0)
    notes = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    @property
    def display_name(self):
        if self.person_type == 'COMPANY' and self.business_name:
            return self.business_name
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return self.display_name

    class Meta:
        abstract = True


class Customer(PartyProfile):
    """Customers"""

    class Meta:
        db_table = 'customers'
        ordering = ['first_name', 'last_name']


class Supplier(PartyProfile):
    """Suppliers"""
    SUPPLIER_TYPE_CHOICES = [
        ('MANUFACTURER', 'Manufacturer'),
        ('DISTRIBUTOR', 'Distributor'),
        ('WHOLESALER', 'Wholesaler'),
        ('LOCAL', 'Local'),
    ]

    supplier_type = models.CharField(max_length=20, choices=SUPPLIER_TYPE_CHOICES, default='LOCAL')
    contact_person = models.CharField(max_length=200, blank=True)
    bank_name = models.CharField(max_length=100, blank=True)
    bank_account_type = models.CharField(max_length=50, blank=True)
    bank_account_number = models.CharField(max_length=50, blank=True)

    class Meta:
        db_table = 'suppliers'
        ordering = ['business_name', 'first_name']
