import logging
from collections import defaultdict
from decimal import Decimal

from django.db.models import Count, Sum

from flowstore.core.cache_utils import cached_query, REPORTS_CACHE_TTL, REPORTS_PREFIX
from flowstore.core.utils import round_money
from flowstore.inventory.models import StockLevel
from flowstore.transactions.models import Transaction, TransactionStatus, TransactionType

logger = logging.getLogger('flowstore.reports')


def get_sales_summary(branch_id=None, date_from=None, date_to=None):
    """Totals of confirmed sales, overall and per payment method"""
    sales = Transaction.objects.filter(transaction_type=TransactionType.SALE, status=TransactionStatus.CONFIRMED)
    if branch_id:
        sales = sales.filter(branch_id=branch_id)
    if date_from:
        sales = sales.filter(created_at__date__gte=date_from)
    if date_to:
        sales = sales.filter(created_at__date__lte=date_to)

    totals = sales.aggregate(total=Sum('total'), count=Count('id'))
    total_sales = totals['total'] or Decimal('0.00')
    count = totals['count'] or 0

    by_payment_method = {}
    for row in sales.values('payment_method').annotate(count=Count('id'), total=Sum('total')).order_by('payment_method'):
        by_payment_method[row['payment_method'] or 'UNSPECIFIED'] = {
            'count': row['count'],
            'total': row['total'] or Decimal('0.00'),
        }

    return {
        'totalSales': total_sales,
        'totalTransactions': count,
        'averageTicket': round_money(total_sales / count) if count else Decimal('0.00'),
        'byPaymentMethod': by_payment_method,
    }


@cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix=REPORTS_PREFIX)
def get_inventory_valuation(branch_id=None):
    """Stock valued at PMP (or base cost when no purchase has set one), per storage"""
    levels = StockLevel.objects.filter(storage__deleted_at__isnull=True).exclude(quantity=0).select_related(
        'storage__branch', 'variant'
    )
    if branch_id:
        levels = levels.filter(storage__branch_id=branch_id)

    storages = {}
    totals = defaultdict(Decimal)
    for level in levels:
        storage = level.storage
        storages.setdefault(storage.id, {
            'storageId': storage.id,
            'storageName': storage.name,
            'branchId': storage.branch_id,
            'branchName': storage.branch.name if storage.branch else None,
        })
        totals[storage.id] += level.quantity * level.variant.unit_cost

    rows = []
    for storage_id, info in storages.items():
        rows.append({**info, 'value': round_money(totals[storage_id])})
    rows.sort(key=lambda row: row['storageName'])
    return {
        'storages': rows,
        'totalValue': round_money(sum(totals.values(), Decimal('0'))),
    }
