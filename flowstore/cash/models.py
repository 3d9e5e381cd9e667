from django.db import models
from decimal import Decimal

from flowstore.core.models import User


class CashSessionStatus(models.TextChoices):
    OPEN = 'OPEN', 'Open'
    CLOSED = 'CLOSED', 'Closed'
    RECONCILED = 'RECONCILED', 'Reconciled'


class CashSession(models.Model):
    """
    Shift of a point of sale's cash drawer.

    expected_amount and difference are fixed when the session is closed:
    difference = closing_amount - expected_amount.
    """
    point_of_sale = models.ForeignKey('locations.PointOfSale', on_delete=models.PROTECT, related_name='cash_sessions')
    status = models.CharField(max_length=20, choices=CashSessionStatus.choices, default=CashSessionStatus.OPEN, db_index=True)
    opened_by = models.ForeignKey(User, on_delete=models.PROTECT, null=True, blank=True, related_name='opened_cash_sessions')
    closed_by = models.ForeignKey(User, on_delete=models.PROTECT, null=True, blank=True, related_name='closed_cash_sessions')
    reconciled_by = models.ForeignKey(User, on_delete=models.PROTECT, null=True, blank=True, related_name='reconciled_cash_sessions')
    opening_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    closing_amount = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    expected_amount = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    difference = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    opened_at = models.DateTimeField(auto_now_add=True, db_index=True)
    closed_at = models.DateTimeField(null=True, blank=True)
    reconciled_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.point_of_sale.name} {self.opened_at:%Y-%m-%d %H:%M} ({self.status})"

    class Meta:
        db_table = 'cash_sessions'
        ordering = ['-opened_at', '-id']
        indexes = [
            models.Index(fields=['point_of_sale', 'status'], name='cash_sessions_pos_status_idx'),
        ]
