"""
Django management command to create a basic chart of accounts and the accounting rules
that map the transaction types onto it. Safe to run more than once.
"""
from django.core.management.base import BaseCommand
from django.db import transaction as db_transaction

from flowstore.accounting.models import AccountingAccount, AccountingRule, AccountType, RuleScope
from flowstore.catalog.models import Tax
from flowstore.core.models import get_company
from flowstore.transactions.models import TransactionType

# code, name, type, parent code
ACCOUNTS = [
    ('1', 'Activo', AccountType.ASSET, None),
    ('1.1', 'Caja y bancos', AccountType.ASSET, '1'),
    ('1.2', 'Clientes', AccountType.ASSET, '1'),
    ('1.3', 'Inventario', AccountType.ASSET, '1'),
    ('2', 'Pasivo', AccountType.LIABILITY, None),
    ('2.1', 'Proveedores', AccountType.LIABILITY, '2'),
    ('2.2', 'IVA débito fiscal', AccountType.LIABILITY, '2'),
    ('3', 'Patrimonio', AccountType.EQUITY, None),
    ('3.1', 'Capital', AccountType.EQUITY, '3'),
    ('4', 'Ingresos', AccountType.INCOME, None),
    ('4.1', 'Ventas', AccountType.INCOME, '4'),
    ('5', 'Egresos', AccountType.EXPENSE, None),
    ('5.1', 'Gastos operacionales', AccountType.EXPENSE, '5'),
]

# name, scope, transaction type, debit code, credit code, priority
RULES = [
    ('Ventas', RuleScope.TRANSACTION, TransactionType.SALE, '1.1', '4.1', 10),
    ('Devoluciones de venta', RuleScope.TRANSACTION, TransactionType.SALE_RETURN, '1.1', '4.1', 10),
    ('Compras', RuleScope.TRANSACTION, TransactionType.PURCHASE, '1.3', '2.1', 20),
    ('Devoluciones de compra', RuleScope.TRANSACTION, TransactionType.PURCHASE_RETURN, '1.3', '2.1', 20),
    ('Cobros', RuleScope.TRANSACTION, TransactionType.PAYMENT_IN, '1.1', '1.2', 30),
    ('Pagos a proveedores', RuleScope.TRANSACTION, TransactionType.PAYMENT_OUT, '2.1', '1.1', 30),
    ('Gastos operacionales', RuleScope.TRANSACTION, TransactionType.OPERATING_EXPENSE, '5.1', '1.1', 40),
]


class Command(BaseCommand):
    help = 'Create a basic chart of accounts and accounting rules for the company'

    def handle(self, *args, **options):
        company = get_company()
        created_accounts = 0
        created_rules = 0

        with db_transaction.atomic():
            accounts = {}
            for code, name, account_type, parent_code in ACCOUNTS:
                account, created = AccountingAccount.objects.get_or_create(
                    company=company, code=code,
                    defaults={'name': name, 'account_type': account_type, 'parent': accounts.get(parent_code)},
                )
                accounts[code] = account
                created_accounts += int(created)

            for name, scope, transaction_type, debit_code, credit_code, priority in RULES:
                _, created = AccountingRule.objects.get_or_create(
                    company=company, name=name,
                    defaults={
                        'applies_to': scope,
                        'transaction_type': transaction_type,
                        'debit_account': accounts[debit_code],
                        'credit_account': accounts[credit_code],
                        'priority': priority,
                    },
                )
                created_rules += int(created)

            # Sales tax goes to its own liability account through a line rule
            sales_tax = Tax.objects.filter(is_active=True, is_default=True).first()
            if sales_tax is not None:
                _, created = AccountingRule.objects.get_or_create(
                    company=company, name=f'{sales_tax.name} en ventas',
                    defaults={
                        'applies_to': RuleScope.TRANSACTION_LINE,
                        'transaction_type': TransactionType.SALE,
                        'tax': sales_tax,
                        'debit_account': accounts['1.1'],
                        'credit_account': accounts['2.2'],
                        'priority': 50,
                    },
                )
                created_rules += int(created)

        self.stdout.write(self.style.SUCCESS(
            f"✓ Chart of accounts ready for {company.name}: "
            f"{created_accounts} accounts and {created_rules} rules created"
        ))
