"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from flowstore.core.models import Company, get_company
from flowstore.locations.models import Branch, Storage, PointOfSale
from flowstore.cash.models import CashSession
from flowstore.catalog.models import Category, Unit, Tax, Product, ProductVariant
from flowstore.parties.models import Customer, Supplier
from flowstore.pricing.models import PriceList, PriceListItem
from flowstore.expenses.models import ExpenseCategory, CostCenter
from flowstore.accounting.models import AccountingAccount, AccountingRule, AccountingPeriod
from flowstore.inventory.models import StockLevel
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_admin(username=None):
        return TestDataFactory.create_user(username=username, is_staff=True, is_superuser=True)

    @staticmethod
    def get_company():
        return get_company()

    @staticmethod
    def create_branch(name=None, code=None, is_headquarters=False, company=None):
        """Create a test branch (bypasses the headquarters rules in the service layer)"""
        if not name:
            name = f'Branch_{TestDataFactory.random_string(6)}'
        return Branch.objects.create(
            company=company or get_company(),
            name=name,
            code=code or f'BR_{TestDataFactory.random_string(6).upper()}',
            address=f'Test Address {name}',
            is_headquarters=is_headquarters,
        )

    @staticmethod
    def create_storage(branch=None, name=None, code=None, category=Storage.CATEGORY_IN_BRANCH, is_default=False):
        """Create a test storage; IN_BRANCH storages get a branch when none is given"""
        if not name:
            name = f'Storage_{TestDataFactory.random_string(6)}'
        if branch is None and category == Storage.CATEGORY_IN_BRANCH:
            branch = TestDataFactory.create_branch()
        return Storage.objects.create(
            branch=branch,
            name=name,
            code=code or f'ST_{TestDataFactory.random_string(6).upper()}',
            category=category,
            is_default=is_default,
        )

    @staticmethod
    def create_point_of_sale(branch=None, name=None, price_list=None):
        if branch is None:
            branch = TestDataFactory.create_branch()
        return PointOfSale.objects.create(
            branch=branch,
            name=name or f'POS_{TestDataFactory.random_string(6)}',
            code=f'POS_{TestDataFactory.random_string(6).upper()}',
            default_price_list=price_list,
        )

    @staticmethod
    def create_cash_session(point_of_sale=None, opening_amount=Decimal('0.00'), user=None):
        if point_of_sale is None:
            point_of_sale = TestDataFactory.create_point_of_sale()
        return CashSession.objects.create(point_of_sale=point_of_sale, opening_amount=opening_amount, opened_by=user)

    @staticmethod
    def create_category(name=None, parent=None):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(name=name, parent=parent, description=f'Test category {name}')

    @staticmethod
    def create_unit(symbol=None, conversion_factor=Decimal('1')):
        if not symbol:
            symbol = f'U{TestDataFactory.random_string(4).upper()}'
        return Unit.objects.create(name=f'Unit {symbol}', symbol=symbol, conversion_factor=conversion_factor)

    @staticmethod
    def create_tax(name=None, code=None, rate=None, is_default=False):
        """Create a test tax"""
        if not name:
            name = f'Tax_{TestDataFactory.random_string(6)}'
        if rate is None:
            rate = Decimal('19.00')
        return Tax.objects.create(
            name=name,
            code=code or f'TX_{TestDataFactory.random_string(6).upper()}',
            rate=rate,
            is_default=is_default,
        )

    @staticmethod
    def create_product(name=None, category=None, brand='', product_type='PHYSICAL'):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        return Product.objects.create(
            name=name,
            brand=brand,
            category=category,
            product_type=product_type,
        )

    @staticmethod
    def create_variant(product=None, sku=None, base_cost=Decimal('100.00'), base_price=Decimal('150.00'),
                       track_inventory=True, minimum_stock=Decimal('0'), reorder_point=Decimal('0'),
                       taxes=None, unit=None):
        """Create a test product variant (and its product when none is given)"""
        if product is None:
            product = TestDataFactory.create_product()
        if not sku:
            sku = f'SKU_{TestDataFactory.random_string(8)}'
        variant = ProductVariant.objects.create(
            product=product,
            sku=sku,
            base_cost=base_cost,
            base_price=base_price,
            track_inventory=track_inventory,
            minimum_stock=minimum_stock,
            reorder_point=reorder_point,
            unit=unit,
        )
        if taxes:
            variant.taxes.set(taxes)
        return variant

    @staticmethod
    def create_customer(first_name=None, document_number=None, **kwargs):
        """Create a test customer"""
        if not first_name:
            first_name = f'Customer_{TestDataFactory.random_string(6)}'
        return Customer.objects.create(
            first_name=first_name,
            document_number=document_number or f'{random.randint(10000000, 99999999)}-{random.randint(0, 9)}',
            email=f'{first_name.lower()}@test.com',
            **kwargs
        )

    @staticmethod
    def create_supplier(first_name=None, document_number=None, default_payment_term_days=30, **kwargs):
        """Create a test supplier"""
        if not first_name:
            first_name = f'Supplier_{TestDataFactory.random_string(6)}'
        return Supplier.objects.create(
            first_name=first_name,
            document_number=document_number or f'{random.randint(10000000, 99999999)}-{random.randint(0, 9)}',
            email=f'{first_name.lower()}@test.com',
            default_payment_term_days=default_payment_term_days,
            **kwargs
        )

    @staticmethod
    def create_price_list(name=None, is_default=False, priority=0, **kwargs):
        if not name:
            name = f'PriceList_{TestDataFactory.random_string(6)}'
        return PriceList.objects.create(name=name, is_default=is_default, priority=priority, **kwargs)

    @staticmethod
    def create_price_list_item(price_list, product, variant=None, net_price=Decimal('1000.00'),
                               gross_price=Decimal('1190.00')):
        return PriceListItem.objects.create(
            price_list=price_list,
            product=product,
            variant=variant,
            net_price=net_price,
            gross_price=gross_price,
        )

    @staticmethod
    def create_expense_category(code=None, name=None):
        code = code or f'EC_{TestDataFactory.random_string(6).upper()}'
        return ExpenseCategory.objects.create(code=code, name=name or f'Expense {code}')

    @staticmethod
    def create_cost_center(code=None, name=None, branch=None):
        code = code or f'CC_{TestDataFactory.random_string(6).upper()}'
        return CostCenter.objects.create(code=code, name=name or f'Cost center {code}', branch=branch)

    @staticmethod
    def create_account(code, account_type, name=None, parent=None, company=None):
        return AccountingAccount.objects.create(
            company=company or get_company(),
            code=code,
            name=name or f'Account {code}',
            account_type=account_type,
            parent=parent,
        )

    @staticmethod
    def create_rule(transaction_type, debit_account, credit_account, applies_to='TRANSACTION', priority=0,
                    company=None, **kwargs):
        return AccountingRule.objects.create(
            company=company or get_company(),
            name=f'Rule {transaction_type} {TestDataFactory.random_string(4)}',
            applies_to=applies_to,
            transaction_type=transaction_type,
            debit_account=debit_account,
            credit_account=credit_account,
            priority=priority,
            **kwargs
        )

    @staticmethod
    def create_period(start_date, end_date, status='OPEN', company=None):
        return AccountingPeriod.objects.create(
            company=company or get_company(), start_date=start_date, end_date=end_date, status=status
        )

    @staticmethod
    def stock_variant(variant, storage, quantity, user=None):
        """Bring a variant to a quantity in a storage through a ledger adjustment"""
        from flowstore.inventory.services import adjust_variant_stock_level
        adjust_variant_stock_level(variant.id, storage.id, Decimal(str(quantity)), note='test stock', user=user)
        return StockLevel.objects.get(variant=variant, storage=storage)

    @staticmethod
    def stock_quantity(variant, storage):
        level = StockLevel.objects.filter(variant=variant, storage=storage).first()
        return level.quantity if level else Decimal('0')


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
