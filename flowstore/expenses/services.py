import logging
from decimal import Decimal

from django.db import transaction as db_transaction

from flowstore.core.exceptions import ServiceError
from flowstore.core.utils import create_audit_log, round_money, to_decimal
from flowstore.parties.models import Supplier
from flowstore.transactions.models import Transaction, TransactionStatus, TransactionType
from flowstore.transactions.services import create_transaction
from .models import ExpenseCategory, CostCenter

logger = logging.getLogger('flowstore.expenses')


def create_operating_expense(category_id, cost_center_id, amount, tax_amount=0, payment_method=None,
                             notes='', external_reference='', supplier_id=None, payment_due_date=None,
                             user=None, request=None):
    """
    Record an operating expense as a confirmed OPERATING_EXPENSE document.

    amount is the gross amount; subtotal = amount - tax_amount.
    """
    amount = to_decimal(amount)
    tax_amount = to_decimal(tax_amount, Decimal('0'))
    if amount is None or amount <= 0:
        raise ServiceError('The amount must be greater than zero')
    if tax_amount is None or tax_amount < 0 or tax_amount > amount:
        raise ServiceError('The tax amount must be between zero and the amount')

    category = ExpenseCategory.objects.alive().filter(pk=category_id).first() if category_id else None
    if category is None:
        raise ServiceError('An expense category is required')
    cost_center = CostCenter.objects.alive().select_related('branch').filter(pk=cost_center_id).first() if cost_center_id else None
    if cost_center is None:
        raise ServiceError('A cost center is required')
    supplier = None
    if supplier_id:
        supplier = Supplier.objects.alive().filter(pk=supplier_id).first()
        if supplier is None:
            raise ServiceError('Supplier not found')

    with db_transaction.atomic():
        expense = create_transaction({
            'transaction_type': TransactionType.OPERATING_EXPENSE,
            'status': TransactionStatus.CONFIRMED,
            'branch': cost_center.branch,
            'expense_category': category,
            'cost_center': cost_center,
            'supplier': supplier,
            'payment_method': payment_method,
            'payment_due_date': payment_due_date,
            'subtotal': round_money(amount - tax_amount),
            'tax_amount': round_money(tax_amount),
            'total': round_money(amount),
            'external_reference': external_reference,
            'notes': notes,
            'metadata': {'expenseCategoryCode': category.code, 'costCenterCode': cost_center.code},
        }, user=user, request=request, audit=False)

        create_audit_log(request=request, user=user, action='expense_create', model_name='Transaction',
                         object_id=expense.id, object_name=expense.document_number,
                         object_reference=category.name,
                         changes={'amount': str(amount), 'tax_amount': str(tax_amount),
                                  'cost_center': cost_center.code})

    logger.info(f"Operating expense {expense.document_number} for {amount} ({category.code}/{cost_center.code})")
    return expense


def list_operating_expenses(date_from=None, date_to=None, category_id=None, cost_center_id=None):
    expenses = (
        Transaction.objects
        .filter(transaction_type=TransactionType.OPERATING_EXPENSE)
        .select_related('expense_category', 'cost_center', 'branch', 'supplier', 'user')
    )
    if date_from:
        expenses = expenses.filter(created_at__date__gte=date_from)
    if date_to:
        expenses = expenses.filter(created_at__date__lte=date_to)
    if category_id:
        expenses = expenses.filter(expense_category_id=category_id)
    if cost_center_id:
        expenses = expenses.filter(cost_center_id=cost_center_id)
    return expenses
