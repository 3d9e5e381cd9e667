from django.db import models
from decimal import Decimal

from flowstore.core.exceptions import ImmutableTransactionError
from flowstore.core.models import User


class TransactionType(models.TextChoices):
    SALE = 'SALE', 'Sale'
    PURCHASE = 'PURCHASE', 'Purchase'
    PURCHASE_ORDER = 'PURCHASE_ORDER', 'Purchase Order'
    SALE_RETURN = 'SALE_RETURN', 'Sale Return'
    PURCHASE_RETURN = 'PURCHASE_RETURN', 'Purchase Return'
    TRANSFER_OUT = 'TRANSFER_OUT', 'Transfer Out'
    TRANSFER_IN = 'TRANSFER_IN', 'Transfer In'
    ADJUSTMENT_IN = 'ADJUSTMENT_IN', 'Adjustment In'
    ADJUSTMENT_OUT = 'ADJUSTMENT_OUT', 'Adjustment Out'
    PAYMENT_IN = 'PAYMENT_IN', 'Payment In'
    PAYMENT_OUT = 'PAYMENT_OUT', 'Payment Out'
    OPERATING_EXPENSE = 'OPERATING_EXPENSE', 'Operating Expense'


class TransactionStatus(models.TextChoices):
    DRAFT = 'DRAFT', 'Draft'
    CONFIRMED = 'CONFIRMED', 'Confirmed'
    PARTIALLY_RECEIVED = 'PARTIALLY_RECEIVED', 'Partially Received'
    RECEIVED = 'RECEIVED', 'Received'
    CANCELLED = 'CANCELLED', 'Cancelled'


class PaymentMethod(models.TextChoices):
    CASH = 'CASH', 'Cash'
    CREDIT_CARD = 'CREDIT_CARD', 'Credit Card'
    DEBIT_CARD = 'DEBIT_CARD', 'Debit Card'
    TRANSFER = 'TRANSFER', 'Bank Transfer'
    CHECK = 'CHECK', 'Check'
    CREDIT = 'CREDIT', 'Credit'
    MIXED = 'MIXED', 'Mixed'


class DocumentSequence(models.Model):
    """Last document number issued per transaction type"""
    transaction_type = models.CharField(max_length=30, choices=TransactionType.choices, unique=True)
    last_number = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"{self.transaction_type}: {self.last_number}"

    class Meta:
        db_table = 'document_sequences'


class Transaction(models.Model):
    """
    Ledger document. Once written only status and metadata change, and only
    through the service layer (cancellations, reception progress).
    """
    MUTABLE_FIELDS = {'status', 'metadata', 'updated_at'}

    document_number = models.CharField(max_length=50, unique=True)
    transaction_type = models.CharField(max_length=30, choices=TransactionType.choices, db_index=True)
    status = models.CharField(max_length=30, choices=TransactionStatus.choices, default=TransactionStatus.CONFIRMED, db_index=True)
    branch = models.ForeignKey('locations.Branch', on_delete=models.PROTECT, null=True, blank=True, related_name='transactions')
    point_of_sale = models.ForeignKey('locations.PointOfSale', on_delete=models.PROTECT, null=True, blank=True, related_name='transactions')
    cash_session = models.ForeignKey('cash.CashSession', on_delete=models.PROTECT, null=True, blank=True, related_name='transactions')
    storage = models.ForeignKey('locations.Storage', on_delete=models.PROTECT, null=True, blank=True, related_name='transactions')
    target_storage = models.ForeignKey('locations.Storage', on_delete=models.PROTECT, null=True, blank=True, related_name='incoming_transactions')
    customer = models.ForeignKey('parties.Customer', on_delete=models.PROTECT, null=True, blank=True, related_name='transactions')
    supplier = models.ForeignKey('parties.Supplier', on_delete=models.PROTECT, null=True, blank=True, related_name='transactions')
    expense_category = models.ForeignKey('expenses.ExpenseCategory', on_delete=models.PROTECT, null=True, blank=True, related_name='transactions')
    cost_center = models.ForeignKey('expenses.CostCenter', on_delete=models.PROTECT, null=True, blank=True, related_name='transactions')
    user = models.ForeignKey(User, on_delete=models.PROTECT, null=True, blank=True, related_name='transactions')
    subtotal = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices, null=True, blank=True)
    amount_paid = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    change_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    payment_due_date = models.DateField(null=True, blank=True)
    related_transaction = models.ForeignKey('self', on_delete=models.PROTECT, null=True, blank=True, related_name='related_transactions')
    external_reference = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.document_number

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            update_fields = kwargs.get('update_fields')
            if update_fields is None or not set(update_fields) <= self.MUTABLE_FIELDS:
                raise ImmutableTransactionError(
                    f'Transaction {self.document_number} is immutable; only status and metadata can change'
                )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableTransactionError(f'Transaction {self.document_number} cannot be deleted; cancel it instead')

    class Meta:
        db_table = 'transactions'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['transaction_type', 'status'], name='transactions_type_status_idx'),
            models.Index(fields=['branch', 'created_at'], name='transactions_branch_date_idx'),
        ]


class TransactionLine(models.Model):
    """Line of a transaction; product, sku and variant names are snapshots"""
    transaction = models.ForeignKey(Transaction, on_delete=models.PROTECT, related_name='lines')
    line_number = models.PositiveIntegerField()
    product = models.ForeignKey('catalog.Product', on_delete=models.PROTECT, null=True, blank=True, related_name='transaction_lines')
    variant = models.ForeignKey('catalog.ProductVariant', on_delete=models.PROTECT, null=True, blank=True, related_name='transaction_lines')
    tax = models.ForeignKey('catalog.Tax', on_delete=models.PROTECT, null=True, blank=True, related_name='transaction_lines')
    product_name = models.CharField(max_length=255)
    product_sku = models.CharField(max_length=100, blank=True)
    variant_name = models.CharField(max_length=255, blank=True)
    quantity = models.DecimalField(max_digits=15, decimal_places=3)
    quantity_in_base = models.DecimalField(max_digits=15, decimal_places=3)
    unit_of_measure = models.CharField(max_length=20, blank=True)
    unit_conversion_factor = models.DecimalField(max_digits=15, decimal_places=6, default=Decimal('1'))
    unit_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    unit_cost = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    subtotal = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)

    def __str__(self):
        return f"{self.transaction.document_number} #{self.line_number}"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ImmutableTransactionError('Transaction lines cannot be modified')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableTransactionError('Transaction lines cannot be deleted')

    class Meta:
        db_table = 'transaction_lines'
        ordering = ['transaction', 'line_number']
        unique_together = ['transaction', 'line_number']
