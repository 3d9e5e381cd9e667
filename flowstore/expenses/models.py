from django.db import models

from flowstore.core.models import SoftDeleteQuerySet


class ExpenseCategory(models.Model):
    """Classification of operating expenses (rent, utilities, salaries...)"""
    code = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    def __str__(self):
        return f"{self.code} - {self.name}"

    class Meta:
        db_table = 'expense_categories'
        ordering = ['code']
        verbose_name_plural = 'expense categories'


class CostCenter(models.Model):
    code = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=200)
    branch = models.ForeignKey('locations.Branch', on_delete=models.PROTECT, null=True, blank=True, related_name='cost_centers')
    parent = models.ForeignKey('self', on_delete=models.PROTECT, null=True, blank=True, related_name='children')
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    def __str__(self):
        return f"{self.code} - {self.name}"

    class Meta:
        db_table = 'cost_centers'
        ordering = ['code']
