"""
Test suite for Accounting module
Tests: ledger derivation from rules, hierarchy balances, financial summary, periods and the API
"""
from datetime import date
from decimal import Decimal
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from flowstore.accounting.engine import build_ledger, matches_transaction_rule, transaction_amount
from flowstore.accounting.models import AccountingAccount, AccountingRule, AccountType, PeriodStatus, RuleScope
from flowstore.accounting.services import (
    get_accounting_hierarchy, get_ledger_preview, get_financial_report_summary,
    create_accounting_period, close_accounting_period, lock_accounting_period, reopen_accounting_period,
    period_name,
)
from flowstore.core.exceptions import ServiceError
from flowstore.core.models import get_company
from flowstore.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from flowstore.expenses.services import create_operating_expense
from flowstore.transactions.models import TransactionType
from flowstore.transactions.services import create_transaction, cancel_transaction


class AccountingTestMixin:

    def seed(self):
        call_command('seed_chart_of_accounts', stdout=StringIO())
        self.company = get_company()
        self.accounts = {account.code: account for account in AccountingAccount.objects.filter(company=self.company)}

    def make_sale(self, price='1000', tax=None, payment_method='CASH'):
        return create_transaction({
            'transaction_type': TransactionType.SALE,
            'branch': self.storage.branch,
            'storage': self.storage,
            'payment_method': payment_method,
            'lines': [{'variant': self.variant, 'quantity': Decimal('1'), 'unit_price': Decimal(price), 'tax': tax}],
        })

    def balance(self, ledger, code):
        return ledger.balance_by_account[self.accounts[code].id]


class SeedChartOfAccountsTests(TestCase):

    def test_seed_is_idempotent(self):
        call_command('seed_chart_of_accounts', stdout=StringIO())
        accounts = AccountingAccount.objects.count()
        rules = AccountingRule.objects.count()
        call_command('seed_chart_of_accounts', stdout=StringIO())
        self.assertEqual(AccountingAccount.objects.count(), accounts)
        self.assertEqual(AccountingRule.objects.count(), rules)
        self.assertEqual(AccountingAccount.objects.get(code='1.1').parent.code, '1')

    def test_seed_adds_tax_line_rule(self):
        TestDataFactory.create_tax(name='IVA', rate=Decimal('19.00'), is_default=True)
        call_command('seed_chart_of_accounts', stdout=StringIO())
        rule = AccountingRule.objects.get(applies_to=RuleScope.TRANSACTION_LINE)
        self.assertEqual(rule.credit_account.code, '2.2')


class LedgerTests(AccountingTestMixin, TestCase):
    """Test build_ledger and the read models built on it"""

    def setUp(self):
        cache.clear()
        self.storage = TestDataFactory.create_storage()
        self.variant = TestDataFactory.create_variant()
        TestDataFactory.stock_variant(self.variant, self.storage, 10)

    def test_empty_chart_gives_empty_ledger(self):
        ledger = build_ledger(get_company())
        self.assertEqual(ledger.accounts, [])
        self.assertEqual(ledger.postings, [])

    def test_sale_posts_to_cash_and_sales(self):
        self.seed()
        sale = self.make_sale()
        ledger = build_ledger(self.company)
        self.assertEqual(len(ledger.postings), 2)
        self.assertEqual(self.balance(ledger, '1.1'), Decimal('1000.00'))
        self.assertEqual(self.balance(ledger, '4.1'), Decimal('-1000.00'))
        debit = next(posting for posting in ledger.postings if posting.debit)
        self.assertEqual(debit.reference, sale.document_number)
        self.assertTrue(debit.id.endswith(':D'))

    def test_tax_line_rule(self):
        tax = TestDataFactory.create_tax(name='IVA', rate=Decimal('19.00'), is_default=True)
        self.seed()
        self.make_sale(tax=tax)
        ledger = build_ledger(self.company)
        self.assertEqual(self.balance(ledger, '1.1'), Decimal('1190.00'))
        self.assertEqual(self.balance(ledger, '2.2'), Decimal('-190.00'))

    def test_cancelled_sale_nets_to_zero(self):
        self.seed()
        sale = self.make_sale()
        cancel_transaction(sale.id)
        ledger = build_ledger(self.company)
        self.assertEqual(self.balance(ledger, '1.1'), Decimal('0.00'))
        self.assertEqual(self.balance(ledger, '4.1'), Decimal('0.00'))
        self.assertTrue(any(posting.id.endswith(':CR') for posting in ledger.postings))

    def test_payment_method_filter(self):
        self.seed()
        card_account = TestDataFactory.create_account('1.4', AccountType.ASSET, parent=self.accounts['1'])
        self.accounts['1.4'] = card_account
        TestDataFactory.create_rule(TransactionType.SALE, card_account, self.accounts['4.1'],
                                    payment_method='CREDIT_CARD', priority=5)
        self.make_sale(payment_method='CREDIT_CARD')
        ledger = build_ledger(self.company)
        self.assertEqual(self.balance(ledger, '1.4'), Decimal('1000.00'))
        # The generic sales rule matches too
        self.assertEqual(self.balance(ledger, '4.1'), Decimal('-2000.00'))

    def test_inactive_rules_are_ignored(self):
        self.seed()
        AccountingRule.objects.update(is_active=False)
        self.make_sale()
        self.assertEqual(build_ledger(self.company).postings, [])

    def test_expense_category_filter(self):
        self.seed()
        rent = TestDataFactory.create_expense_category(code='ARR')
        other = TestDataFactory.create_expense_category(code='OTR')
        center = TestDataFactory.create_cost_center()
        rent_account = TestDataFactory.create_account('5.2', AccountType.EXPENSE, parent=self.accounts['5'])
        rule = TestDataFactory.create_rule(TransactionType.OPERATING_EXPENSE, rent_account, self.accounts['1.1'],
                                           expense_category=rent)
        rent_expense = create_operating_expense(rent.id, center.id, Decimal('300'))
        other_expense = create_operating_expense(other.id, center.id, Decimal('200'))
        self.assertTrue(matches_transaction_rule(rule, rent_expense))
        self.assertFalse(matches_transaction_rule(rule, other_expense))

    def test_return_amount_is_negative(self):
        self.seed()
        sale = self.make_sale()
        reversal = cancel_transaction(sale.id)
        self.assertEqual(transaction_amount(reversal), Decimal('-1000.00'))

    def test_hierarchy_aggregates_children(self):
        self.seed()
        self.make_sale()
        tree = get_accounting_hierarchy()
        codes = [node['code'] for node in tree]
        self.assertEqual(codes, ['1', '2', '3', '4', '5'])
        assets = tree[0]
        self.assertEqual(assets['balance'], Decimal('1000.00'))
        self.assertEqual([child['code'] for child in assets['children']], ['1.1', '1.2', '1.3'])
        income = tree[3]
        self.assertEqual(income['balance'], Decimal('1000.00'))

    def test_ledger_preview_running_balance(self):
        self.seed()
        self.make_sale()
        self.make_sale(price='500')
        entries = [entry for entry in get_ledger_preview() if entry['accountCode'] == '1.1']
        self.assertEqual([entry['balance'] for entry in entries], [Decimal('1000.00'), Decimal('1500.00')])

    def test_ledger_preview_date_filter(self):
        self.seed()
        self.make_sale()
        self.assertEqual(get_ledger_preview(date_to=date(2000, 1, 1)), [])

    def test_financial_summary(self):
        self.seed()
        self.make_sale()
        category = TestDataFactory.create_expense_category()
        center = TestDataFactory.create_cost_center()
        create_operating_expense(category.id, center.id, Decimal('400.40'))
        summary = get_financial_report_summary()
        groups = {row['group']: row['amount'] for row in summary['balanceSheet']}
        self.assertEqual(groups['Activo'], 600)
        self.assertEqual(groups['Pasivo'], 0)
        self.assertEqual(summary['incomeStatement'], {'ingresos': 1000, 'egresos': 400, 'resultado': 600})


class AccountingPeriodTests(TestCase):
    """Test accounting period lifecycle"""

    def setUp(self):
        self.period = create_accounting_period(date(2026, 1, 1), date(2026, 1, 31))

    def test_period_name(self):
        self.assertEqual(period_name(self.period), '01 ene - 31 ene')

    def test_overlapping_period_is_rejected(self):
        with self.assertRaises(ServiceError):
            create_accounting_period(date(2026, 1, 15), date(2026, 2, 15))

    def test_end_before_start_is_rejected(self):
        with self.assertRaises(ServiceError):
            create_accounting_period(date(2026, 3, 31), date(2026, 3, 1))

    def test_close_lock_cycle(self):
        period = close_accounting_period(self.period.id)
        self.assertEqual(period.status, PeriodStatus.CLOSED)
        self.assertIsNotNone(period.closed_at)

        period = reopen_accounting_period(self.period.id)
        self.assertEqual(period.status, PeriodStatus.OPEN)
        self.assertIsNone(period.closed_at)

        close_accounting_period(self.period.id)
        period = lock_accounting_period(self.period.id)
        self.assertEqual(period.status, PeriodStatus.LOCKED)

    def test_open_period_cannot_be_locked(self):
        with self.assertRaises(ServiceError):
            lock_accounting_period(self.period.id)

    def test_locked_period_cannot_be_reopened(self):
        close_accounting_period(self.period.id)
        lock_accounting_period(self.period.id)
        with self.assertRaises(ServiceError):
            reopen_accounting_period(self.period.id)

    def test_missing_period(self):
        with self.assertRaises(ServiceError) as ctx:
            close_accounting_period(999999)
        self.assertEqual(ctx.exception.status_code, 404)


class AccountingAPITests(TestCase):
    """Test accounting API endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_accounts_require_admin(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/accounting/accounts/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_account(self):
        data = {'code': '1', 'name': 'Activo', 'account_type': 'ASSET'}
        response = self.client.post('/api/v1/accounting/accounts/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.post('/api/v1/accounting/accounts/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_account_with_children_cannot_be_deleted(self):
        parent = TestDataFactory.create_account('1', AccountType.ASSET)
        TestDataFactory.create_account('1.1', AccountType.ASSET, parent=parent)
        response = self.client.delete(f'/api/v1/accounting/accounts/{parent.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(AccountingAccount.objects.filter(pk=parent.pk).exists())

    def test_rule_needs_two_accounts(self):
        account = TestDataFactory.create_account('1', AccountType.ASSET)
        data = {'transaction_type': 'SALE', 'debit_account': account.id, 'credit_account': account.id}
        response = self.client.post('/api/v1/accounting/rules/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_rule(self):
        cash = TestDataFactory.create_account('1.1', AccountType.ASSET)
        sales = TestDataFactory.create_account('4.1', AccountType.INCOME)
        data = {'name': 'Ventas', 'transaction_type': 'SALE', 'debit_account': cash.id, 'credit_account': sales.id}
        response = self.client.post('/api/v1/accounting/rules/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['debit_account_code'], '1.1')

    def test_read_models(self):
        call_command('seed_chart_of_accounts', stdout=StringIO())
        self.client.authenticate_user(self.user)
        self.assertEqual(self.client.get('/api/v1/accounting/hierarchy/').status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/v1/accounting/ledger/', {'date_from': '2026-01-01'}).status_code,
                         status.HTTP_200_OK)
        response = self.client.get('/api/v1/accounting/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['balanceSheet']), 3)

    def test_periods(self):
        response = self.client.post('/api/v1/accounting/periods/',
                                    {'start_date': '2026-02-01', 'end_date': '2026-02-28'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        period_id = response.data['period']['id']
        self.assertEqual(response.data['period']['name'], '01 feb - 28 feb')

        response = self.client.post(f'/api/v1/accounting/periods/{period_id}/close/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['period']['status'], 'CLOSED')

        response = self.client.post(f'/api/v1/accounting/periods/{period_id}/archive/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.get('/api/v1/accounting/periods/')
        self.assertEqual(len(response.data), 1)

    def test_periods_require_staff_to_create(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/accounting/periods/',
                                    {'start_date': '2026-02-01', 'end_date': '2026-02-28'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
