from django.db import models

from flowstore.core.models import Company
from flowstore.transactions.models import TransactionType, PaymentMethod


class AccountType(models.TextChoices):
    ASSET = 'ASSET', 'Asset'
    LIABILITY = 'LIABILITY', 'Liability'
    EQUITY = 'EQUITY', 'Equity'
    INCOME = 'INCOME', 'Income'
    EXPENSE = 'EXPENSE', 'Expense'


class RuleScope(models.TextChoices):
    TRANSACTION = 'TRANSACTION', 'Transaction'
    TRANSACTION_LINE = 'TRANSACTION_LINE', 'Transaction line'


class PeriodStatus(models.TextChoices):
    OPEN = 'OPEN', 'Open'
    CLOSED = 'CLOSED', 'Closed'
    LOCKED = 'LOCKED', 'Locked'


class AccountingAccount(models.Model):
    """Chart of accounts entry"""
    company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name='accounting_accounts')
    code = models.CharField(max_length=30)
    name = models.CharField(max_length=200)
    account_type = models.CharField(max_length=20, choices=AccountType.choices)
    parent = models.ForeignKey('self', on_delete=models.PROTECT, null=True, blank=True, related_name='children')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.code} {self.name}"

    class Meta:
        db_table = 'accounting_accounts'
        ordering = ['code']
        unique_together = ['company', 'code']


class AccountingRule(models.Model):
    """
    Maps confirmed transactions to a debit/credit pair.

    TRANSACTION rules post the document amount; TRANSACTION_LINE rules post the
    sum of the matching line amounts. Optional filters only apply when set.
    """
    company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name='accounting_rules')
    name = models.CharField(max_length=200, blank=True)
    applies_to = models.CharField(max_length=20, choices=RuleScope.choices, default=RuleScope.TRANSACTION)
    transaction_type = models.CharField(max_length=30, choices=TransactionType.choices)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices, null=True, blank=True)
    tax = models.ForeignKey('catalog.Tax', on_delete=models.SET_NULL, null=True, blank=True, related_name='accounting_rules')
    expense_category = models.ForeignKey('expenses.ExpenseCategory', on_delete=models.SET_NULL, null=True, blank=True,
                                         related_name='accounting_rules')
    debit_account = models.ForeignKey(AccountingAccount, on_delete=models.PROTECT, related_name='debit_rules')
    credit_account = models.ForeignKey(AccountingAccount, on_delete=models.PROTECT, related_name='credit_rules')
    priority = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name or f"{self.transaction_type} ({self.applies_to})"

    class Meta:
        db_table = 'accounting_rules'
        ordering = ['priority', 'id']


class AccountingPeriod(models.Model):
    company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name='accounting_periods')
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(max_length=10, choices=PeriodStatus.choices, default=PeriodStatus.OPEN)
    closed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.start_date} - {self.end_date} ({self.status})"

    class Meta:
        db_table = 'accounting_periods'
        ordering = ['-start_date']
