from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with additional fields"""
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


class Company(models.Model):
    """The company operating this installation (single row)"""
    name = models.CharField(max_length=255)
    tax_id = models.CharField(max_length=50, blank=True)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=30, blank=True)
    email = models.EmailField(blank=True)
    default_currency = models.CharField(max_length=3, default='CLP')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'companies'
        verbose_name_plural = 'companies'


def get_company():
    """Return the company row, creating a placeholder on first access"""
    company = Company.objects.order_by('id').first()
    if company is None:
        company = Company.objects.create(
            name='Mi Empresa',
            default_currency=getattr(settings, 'DEFAULT_CURRENCY', 'CLP'),
        )
    return company


def lock_company():
    """
    Lock the company row for the rest of the transaction.

    Serializes writers of company-wide flags (headquarters branch, default
    price list) even when no row carries the flag yet.
    """
    company = get_company()
    return Company.objects.select_for_update().get(pk=company.pk)


class Setting(models.Model):
    """System settings"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'settings'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('stock_adjust', 'Stock Adjustment'),
        ('stock_transfer', 'Stock Transfer'),
        ('stock_sync', 'Stock Resynchronized'),
        ('price_change', 'Price Change'),
        ('transaction_create', 'Transaction Created'),
        ('transaction_cancel', 'Transaction Cancelled'),
        ('reception_create', 'Reception Created'),
        ('reception_cancel', 'Reception Cancelled'),
        ('purchase_order_cancel', 'Purchase Order Cancelled'),
        ('expense_create', 'Operating Expense Recorded'),
        ('period_status_change', 'Accounting Period Status Changed'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., branch name, document number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., document number of the related transaction)")
    sku = models.CharField(max_length=1000, blank=True, null=True, help_text="SKU(s) involved, comma-separated")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_idx'),
            models.Index(fields=['action'], name='audit_logs_action_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_idx'),
            models.Index(fields=['sku'], name='audit_logs_sku_idx'),
            models.Index(fields=['object_reference'], name='audit_logs_reference_idx'),
        ]


class SoftDeleteQuerySet(models.QuerySet):
    """Rows with deleted_at set are kept for history but hidden from normal use"""

    def alive(self):
        return self.filter(deleted_at__isnull=True)

    def active(self):
        return self.filter(deleted_at__isnull=True, is_active=True)
