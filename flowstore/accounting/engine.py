"""
Ledger computation.

Postings are derived on the fly from confirmed transactions and the active
accounting rules; nothing is stored. Amounts are Decimals.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from django.db.models import Q

from flowstore.transactions.models import Transaction, TransactionLine, TransactionStatus, TransactionType
from .models import AccountingAccount, AccountingRule, AccountType, RuleScope

ZERO = Decimal('0')

# Sales post their net amount, everything else the document total
SUBTOTAL_BASE_TYPES = {TransactionType.SALE, TransactionType.SALE_RETURN}
INVERTED_TYPES = {TransactionType.SALE_RETURN, TransactionType.PURCHASE_RETURN}
# Cancelled sales and purchases still post; their return documents post the reversal
REVERSED_TYPES = [TransactionType.SALE, TransactionType.PURCHASE]
# Credit-nature accounts are presented with the sign flipped
CREDIT_NATURE_TYPES = {AccountType.LIABILITY, AccountType.EQUITY, AccountType.INCOME}


@dataclass
class LedgerPosting:
    id: str
    transaction_id: int
    rule_id: int
    scope: str
    account_id: int
    account_code: str
    account_name: str
    date: str
    reference: str
    description: str
    debit: Decimal
    credit: Decimal


@dataclass
class LedgerResult:
    accounts: List[AccountingAccount]
    postings: List[LedgerPosting] = field(default_factory=list)
    balance_by_account: Dict[int, Decimal] = field(default_factory=dict)


def normalize_balance(account_type, balance):
    """Debit-minus-credit balance as shown to users"""
    return -balance if account_type in CREDIT_NATURE_TYPES else balance


def _metadata_value(transaction, *keys):
    metadata = transaction.metadata if isinstance(transaction.metadata, dict) else {}
    for key in keys:
        value = metadata.get(key)
        if value is not None:
            return value
    return None


def matches_transaction_rule(rule, transaction):
    if rule.transaction_type != transaction.transaction_type:
        return False
    if rule.payment_method and rule.payment_method != transaction.payment_method:
        return False
    if rule.tax_id:
        tax_id = _metadata_value(transaction, 'taxId', 'tax_id')
        if tax_id is None or str(tax_id) != str(rule.tax_id):
            return False
    if rule.expense_category_id:
        category_id = transaction.expense_category_id
        if category_id is None:
            category_id = _metadata_value(transaction, 'expenseCategoryId', 'expense_category_id')
            if category_id is None:
                nested = _metadata_value(transaction, 'expenseCategory')
                category_id = nested.get('id') if isinstance(nested, dict) else None
        if category_id is None or str(category_id) != str(rule.expense_category_id):
            return False
    return True


def matches_line_rule(rule, line):
    if rule.tax_id and line.tax_id != rule.tax_id:
        return False
    return True


def transaction_amount(transaction):
    base = transaction.subtotal if transaction.transaction_type in SUBTOTAL_BASE_TYPES else transaction.total
    base = base or ZERO
    return -base if transaction.transaction_type in INVERTED_TYPES else base


def line_amount(transaction, line):
    amount = line.tax_amount or ZERO
    if amount == 0:
        amount = line.subtotal or ZERO
    return -amount if transaction.transaction_type in INVERTED_TYPES else amount


def _post(amount, debit_account, credit_account, transaction, rule, reference, description, postings):
    if not amount:
        return
    magnitude = abs(amount)
    positive = amount > 0
    date = transaction.created_at.isoformat()

    def posting(account, suffix, debit, credit):
        return LedgerPosting(
            id=f"{transaction.id}:{rule.id}:{account.id}:{suffix}",
            transaction_id=transaction.id,
            rule_id=rule.id,
            scope=rule.applies_to,
            account_id=account.id,
            account_code=account.code,
            account_name=account.name,
            date=date,
            reference=reference,
            description=description,
            debit=debit,
            credit=credit,
        )

    postings.append(posting(debit_account, 'D' if positive else 'CR',
                            magnitude if positive else ZERO, ZERO if positive else magnitude))
    postings.append(posting(credit_account, 'C' if positive else 'DR',
                            ZERO if positive else magnitude, magnitude if positive else ZERO))


def build_ledger(company, date_from=None, date_to=None, limit_transactions: Optional[int] = None) -> LedgerResult:
    """
    Derive the ledger of a company.

    Confirmed transactions (and cancelled sales and purchases) of the types
    covered by an active rule are used.
    Transaction rules run before line rules, both in ascending priority.
    """
    accounts = list(AccountingAccount.objects.filter(company=company).order_by('code'))
    result = LedgerResult(accounts=accounts, balance_by_account={account.id: ZERO for account in accounts})
    if not accounts:
        return result
    accounts_by_id = {account.id: account for account in accounts}

    rules = [rule for rule in AccountingRule.objects.filter(company=company).order_by('priority', 'id') if rule.is_active]
    transaction_rules = [rule for rule in rules if rule.applies_to == RuleScope.TRANSACTION]
    line_rules = [rule for rule in rules if rule.applies_to == RuleScope.TRANSACTION_LINE]
    if not rules:
        return result

    transactions = (
        Transaction.objects
        .filter(transaction_type__in={rule.transaction_type for rule in rules})
        .filter(Q(status=TransactionStatus.CONFIRMED) |
                Q(status=TransactionStatus.CANCELLED, transaction_type__in=REVERSED_TYPES))
        .filter(Q(branch__company=company) | Q(branch__isnull=True))
        .order_by('created_at', 'id')
    )
    if date_from:
        transactions = transactions.filter(created_at__date__gte=date_from)
    if date_to:
        transactions = transactions.filter(created_at__date__lte=date_to)
    if limit_transactions and limit_transactions > 0:
        transactions = transactions[:limit_transactions]
    transactions = list(transactions)
    if not transactions:
        return result

    lines_by_transaction = {}
    if line_rules:
        for line in TransactionLine.objects.filter(transaction_id__in=[tx.id for tx in transactions]):
            lines_by_transaction.setdefault(line.transaction_id, []).append(line)

    postings = []
    for transaction in transactions:
        reference = transaction.document_number or transaction.external_reference or str(transaction.id)
        description = transaction.notes or transaction.transaction_type

        for rule in transaction_rules:
            if not matches_transaction_rule(rule, transaction):
                continue
            debit_account = accounts_by_id.get(rule.debit_account_id)
            credit_account = accounts_by_id.get(rule.credit_account_id)
            if debit_account is None or credit_account is None:
                continue
            _post(transaction_amount(transaction), debit_account, credit_account,
                  transaction, rule, reference, description, postings)

        lines = lines_by_transaction.get(transaction.id)
        if not lines:
            continue
        for rule in line_rules:
            if rule.transaction_type != transaction.transaction_type:
                continue
            debit_account = accounts_by_id.get(rule.debit_account_id)
            credit_account = accounts_by_id.get(rule.credit_account_id)
            if debit_account is None or credit_account is None:
                continue
            amount = sum((line_amount(transaction, line) for line in lines if matches_line_rule(rule, line)), ZERO)
            _post(amount, debit_account, credit_account, transaction, rule, reference, description, postings)

    postings.sort(key=lambda posting: (posting.date, posting.id))
    for posting in postings:
        result.balance_by_account[posting.account_id] += posting.debit - posting.credit
    result.postings = postings
    return result
