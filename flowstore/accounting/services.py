import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction as db_transaction
from django.utils import timezone

from flowstore.core.exceptions import ServiceError, NotFoundError
from flowstore.core.models import get_company
from flowstore.core.utils import create_audit_log
from .engine import build_ledger, normalize_balance
from .models import AccountingPeriod, AccountType, PeriodStatus

logger = logging.getLogger('flowstore.accounting')

MONTH_ABBREVIATIONS = ['ene', 'feb', 'mar', 'abr', 'may', 'jun', 'jul', 'ago', 'sept', 'oct', 'nov', 'dic']


def _round(value):
    return int(Decimal(value).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def get_accounting_hierarchy(company=None):
    """
    Chart of accounts as a tree with presented balances.

    A parent's balance is its own balance plus the balances of its children.
    """
    company = company or get_company()
    ledger = build_ledger(company)

    nodes = {}
    for account in ledger.accounts:
        nodes[account.id] = {
            'id': account.id,
            'code': account.code,
            'name': account.name,
            'type': account.account_type,
            'parentId': account.parent_id,
            'balance': normalize_balance(account.account_type, ledger.balance_by_account.get(account.id, Decimal('0'))),
            'children': [],
        }

    roots = []
    for node in nodes.values():
        parent = nodes.get(node['parentId'])
        if parent is not None:
            parent['children'].append(node)
        else:
            roots.append(node)

    def aggregate(branch):
        total = Decimal('0')
        for node in branch:
            if node['children']:
                node['children'].sort(key=lambda child: child['code'])
                node['balance'] += aggregate(node['children'])
            total += node['balance']
        return total

    aggregate(roots)
    roots.sort(key=lambda node: node['code'])
    return roots


def get_ledger_preview(date_from=None, date_to=None, company=None):
    """Postings in date order with a running balance per account"""
    company = company or get_company()
    ledger = build_ledger(company, date_from=date_from, date_to=date_to)

    running = {}
    entries = []
    for posting in ledger.postings:
        balance = running.get(posting.account_id, Decimal('0')) + posting.debit - posting.credit
        running[posting.account_id] = balance
        entries.append({
            'id': posting.id,
            'transactionId': posting.transaction_id,
            'accountId': posting.account_id,
            'accountCode': posting.account_code,
            'accountName': posting.account_name,
            'date': posting.date,
            'reference': posting.reference,
            'description': posting.description,
            'debit': posting.debit,
            'credit': posting.credit,
            'balance': balance,
            'costCenter': None,
        })
    return entries


def get_financial_report_summary(company=None):
    company = company or get_company()
    ledger = build_ledger(company)

    totals = {account_type: Decimal('0') for account_type in AccountType.values}
    for account in ledger.accounts:
        balance = ledger.balance_by_account.get(account.id, Decimal('0'))
        totals[account.account_type] += normalize_balance(account.account_type, balance)

    income = totals[AccountType.INCOME]
    expense = totals[AccountType.EXPENSE]
    return {
        'balanceSheet': [
            {'group': 'Activo', 'amount': _round(totals[AccountType.ASSET])},
            {'group': 'Pasivo', 'amount': _round(totals[AccountType.LIABILITY])},
            {'group': 'Patrimonio', 'amount': _round(totals[AccountType.EQUITY])},
        ],
        'incomeStatement': {
            'ingresos': _round(income),
            'egresos': _round(expense),
            'resultado': _round(income - expense),
        },
    }


def period_name(period):
    """e.g. '01 ene - 31 ene'"""
    def short(day):
        return f"{day.day:02d} {MONTH_ABBREVIATIONS[day.month - 1]}"
    return f"{short(period.start_date)} - {short(period.end_date)}"


def serialize_period(period):
    return {
        'id': period.id,
        'name': period_name(period),
        'startDate': period.start_date.isoformat(),
        'endDate': period.end_date.isoformat(),
        'status': period.status,
        'closedAt': period.closed_at.isoformat() if period.closed_at else None,
        'locked': period.status == PeriodStatus.LOCKED,
    }


def get_accounting_periods(company=None):
    company = company or get_company()
    periods = AccountingPeriod.objects.filter(company=company).order_by('-start_date')
    return [serialize_period(period) for period in periods]


def create_accounting_period(start_date, end_date, company=None, request=None):
    if not start_date or not end_date:
        raise ServiceError('Start and end dates are required')
    if end_date < start_date:
        raise ServiceError('The period end cannot be before its start')
    company = company or get_company()

    with db_transaction.atomic():
        overlapping = AccountingPeriod.objects.select_for_update().filter(
            company=company, start_date__lte=end_date, end_date__gte=start_date
        )
        if overlapping.exists():
            raise ServiceError('The period overlaps an existing period')
        period = AccountingPeriod.objects.create(company=company, start_date=start_date, end_date=end_date)
        create_audit_log(request=request, action='create', model_name='AccountingPeriod', object_id=period.id,
                         object_name=period_name(period))
    logger.info(f"Accounting period {period_name(period)} created")
    return period


def _change_period_status(period_id, allowed_from, new_status, request=None):
    with db_transaction.atomic():
        period = AccountingPeriod.objects.select_for_update().filter(pk=period_id).first()
        if period is None:
            raise NotFoundError('Accounting period not found')
        if period.status not in allowed_from:
            raise ServiceError(f'A {period.get_status_display().lower()} period cannot become {new_status.lower()}')
        old_status = period.status
        period.status = new_status
        if new_status == PeriodStatus.CLOSED:
            period.closed_at = timezone.now()
        elif new_status == PeriodStatus.OPEN:
            period.closed_at = None
        period.save(update_fields=['status', 'closed_at', 'updated_at'])
        create_audit_log(request=request, action='period_status_change', model_name='AccountingPeriod',
                         object_id=period.id, object_name=period_name(period),
                         changes={'status': {'old': old_status, 'new': new_status}})
    logger.info(f"Accounting period {period_name(period)}: {old_status} -> {new_status}")
    return period


def close_accounting_period(period_id, request=None):
    return _change_period_status(period_id, [PeriodStatus.OPEN], PeriodStatus.CLOSED, request=request)


def lock_accounting_period(period_id, request=None):
    return _change_period_status(period_id, [PeriodStatus.CLOSED], PeriodStatus.LOCKED, request=request)


def reopen_accounting_period(period_id, request=None):
    return _change_period_status(period_id, [PeriodStatus.CLOSED], PeriodStatus.OPEN, request=request)
