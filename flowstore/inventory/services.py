"""
Inventory operations and the inventory stock read model.

Transfers and adjustments are written as ledger documents through
create_transaction; the stock rows move inside the same database transaction.
"""
import logging
from collections import defaultdict
from decimal import Decimal

from django.db import transaction as db_transaction
from django.db.models import Q, Sum

from flowstore.catalog.models import ProductVariant
from flowstore.core.cache_utils import (
    cached_query,
    INVENTORY_STOCK_CACHE_TTL, INVENTORY_STOCK_PREFIX,
    INVENTORY_FILTERS_CACHE_TTL, INVENTORY_FILTERS_PREFIX,
)
from flowstore.core.exceptions import ServiceError, NotFoundError, InsufficientStockError
from flowstore.core.utils import create_audit_log, to_decimal, QUANTITY_TOLERANCE
from flowstore.locations.models import Branch, Storage
from flowstore.transactions.models import TransactionLine, TransactionStatus, TransactionType
from flowstore.transactions.services import create_transaction
from .models import StockLevel
from .stock import lock_stock_levels, movement_direction, STOCK_MOVING_TYPES

logger = logging.getLogger('flowstore.inventory')

DEFAULT_LIMIT = 100
MAX_LIMIT = 200
MOVEMENTS_PER_ROW = 25

# Purchase orders still waiting for goods
OPEN_ORDER_STATUSES = [TransactionStatus.DRAFT]


def _get_stock_variant(variant_id):
    variant = ProductVariant.objects.alive().select_related('product').filter(pk=variant_id).first()
    if variant is None:
        raise NotFoundError('Product variant not found')
    if not variant.track_inventory:
        raise ServiceError(f'{variant.sku} does not track inventory')
    return variant


def _get_storage(storage_id, label='Storage'):
    storage = Storage.objects.active().select_related('branch').filter(pk=storage_id).first()
    if storage is None:
        raise NotFoundError(f'{label} not found or inactive')
    return storage


def transfer_variant_stock(variant_id, source_storage_id, target_storage_id, quantity, note='', user=None, request=None):
    """
    Move stock of a variant between two storages.

    Writes a TRANSFER_OUT in the source and a TRANSFER_IN in the target, both
    costed at the variant's PMP (or base cost). Returns {'documentNumbers': [out, in], ...}.
    """
    quantity = to_decimal(quantity)
    if quantity is None or quantity <= 0:
        raise ServiceError('Quantity must be greater than zero')
    if not target_storage_id:
        raise ServiceError('A target storage is required')
    if str(source_storage_id) == str(target_storage_id):
        raise ServiceError('Source and target storages must be different')

    with db_transaction.atomic():
        variant = _get_stock_variant(variant_id)
        source = _get_storage(source_storage_id, 'Source storage')
        target = _get_storage(target_storage_id, 'Target storage')

        levels = lock_stock_levels(variant, [source, target])
        available = levels[source.pk].quantity
        if quantity > available + QUANTITY_TOLERANCE:
            raise InsufficientStockError(
                f'Cannot transfer {quantity} of {variant.sku}: only {available} available in {source.name}'
            )
        quantity = min(quantity, available)

        unit_cost = variant.unit_cost
        # Stock quantities are in base units
        line = {'variant': variant, 'quantity': quantity, 'unit_conversion_factor': 1,
                'unit_price': unit_cost, 'unit_cost': unit_cost, 'notes': note}
        transfer_meta = {'transfer': {'sourceStorageId': source.pk, 'targetStorageId': target.pk}}

        transfer_out = create_transaction({
            'transaction_type': TransactionType.TRANSFER_OUT,
            'status': TransactionStatus.CONFIRMED,
            'branch': source.branch,
            'storage': source,
            'target_storage': target,
            'notes': note,
            'metadata': transfer_meta,
            'lines': [line],
        }, user=user, request=request, audit=False)
        transfer_in = create_transaction({
            'transaction_type': TransactionType.TRANSFER_IN,
            'status': TransactionStatus.CONFIRMED,
            'branch': target.branch,
            'storage': target,
            'target_storage': source,
            'related_transaction': transfer_out,
            'notes': note,
            'metadata': transfer_meta,
            'lines': [line],
        }, user=user, request=request, audit=False)

        create_audit_log(request=request, user=user, action='stock_transfer', model_name='StockLevel',
                         object_id=variant.id, object_name=variant.product.name,
                         object_reference=f"{transfer_out.document_number} / {transfer_in.document_number}",
                         sku=variant.sku,
                         changes={'quantity': str(quantity), 'from': source.name, 'to': target.name, 'note': note})

    logger.info(f"Transferred {quantity} of {variant.sku} from {source.name} to {target.name} "
                f"({transfer_out.document_number}, {transfer_in.document_number})")
    return {
        'message': f'Transferred {quantity} of {variant.sku} from {source.name} to {target.name}',
        'documentNumbers': [transfer_out.document_number, transfer_in.document_number],
    }


def adjust_variant_stock_level(variant_id, storage_id, target_quantity, current_quantity=None, note='',
                               user=None, request=None):
    """
    Set the on-hand quantity of a variant in a storage.

    current_quantity is the quantity the caller saw; when it no longer matches the
    stored row the adjustment is rejected instead of overwriting a concurrent change.
    """
    target = to_decimal(target_quantity)
    if target is None or target < 0:
        raise ServiceError('Target quantity must be zero or greater')

    with db_transaction.atomic():
        variant = _get_stock_variant(variant_id)
        storage = _get_storage(storage_id)
        level = lock_stock_levels(variant, [storage])[storage.pk]
        on_hand = level.quantity

        expected = to_decimal(current_quantity)
        if expected is not None and abs(expected - on_hand) > QUANTITY_TOLERANCE:
            raise ServiceError(f'The stock changed since it was read (now {on_hand}); reload and try again')

        delta = target - on_hand
        if abs(delta) <= QUANTITY_TOLERANCE:
            return {'message': 'No changes: the stock already matches the target quantity', 'documentNumbers': []}

        transaction_type = TransactionType.ADJUSTMENT_IN if delta > 0 else TransactionType.ADJUSTMENT_OUT
        unit_cost = variant.unit_cost
        adjustment = create_transaction({
            'transaction_type': transaction_type,
            'status': TransactionStatus.CONFIRMED,
            'branch': storage.branch,
            'storage': storage,
            'notes': note,
            'metadata': {'adjustment': {
                'previousQuantity': str(on_hand),
                'targetQuantity': str(target),
                'delta': str(delta),
            }},
            'lines': [{'variant': variant, 'quantity': abs(delta), 'unit_conversion_factor': 1, 'unit_price': unit_cost,
                       'unit_cost': unit_cost, 'notes': note}],
        }, user=user, request=request, audit=False)

        create_audit_log(request=request, user=user, action='stock_adjust', model_name='StockLevel',
                         object_id=level.id, object_name=variant.product.name,
                         object_reference=adjustment.document_number, sku=variant.sku,
                         changes={'storage': storage.name, 'old_quantity': str(on_hand),
                                  'new_quantity': str(target), 'note': note})

    logger.info(f"Adjusted {variant.sku} in {storage.name} from {on_hand} to {target} ({adjustment.document_number})")
    return {
        'message': f'Stock of {variant.sku} adjusted from {on_hand} to {target}',
        'documentNumbers': [adjustment.document_number],
    }


def _scoped_storages(storage_id=None, branch_id=None):
    storages = Storage.objects.alive()
    if storage_id:
        storages = storages.filter(pk=storage_id)
    if branch_id:
        storages = storages.filter(branch_id=branch_id)
    return storages


def _movement_row(line):
    transaction = line.transaction
    return {
        'transactionId': transaction.id,
        'documentNumber': transaction.document_number,
        'transactionType': transaction.transaction_type,
        'direction': movement_direction(transaction.transaction_type),
        'quantity': float(line.quantity_in_base),
        'storageId': transaction.storage_id,
        'storageName': transaction.storage.name if transaction.storage else None,
        'targetStorageId': transaction.target_storage_id,
        'targetStorageName': transaction.target_storage.name if transaction.target_storage else None,
        'createdAt': transaction.created_at.isoformat(),
        'notes': transaction.notes,
    }


@cached_query(cache_ttl=INVENTORY_STOCK_CACHE_TTL, key_prefix=INVENTORY_STOCK_PREFIX)
def get_inventory_stock(search=None, storage_id=None, branch_id=None, include_zero=None, limit=DEFAULT_LIMIT):
    """
    One row per variant with stock totals, storage breakdown and recent movements.

    Rows below minimum come first, then rows at or below the reorder point,
    then by product name and sku.
    """
    try:
        limit = min(max(int(limit or DEFAULT_LIMIT), 1), MAX_LIMIT)
    except (TypeError, ValueError):
        limit = DEFAULT_LIMIT
    search = (search or '').strip()
    if include_zero is None:
        include_zero = bool(search)

    variants = (
        ProductVariant.objects.alive()
        .filter(product__deleted_at__isnull=True, track_inventory=True)
        .select_related('product', 'unit')
        .order_by('product__name', 'sku')
    )
    if search:
        variants = variants.filter(
            Q(product__name__icontains=search) |
            Q(product__brand__icontains=search) |
            Q(sku__icontains=search) |
            Q(barcode__icontains=search)
        )
    variants = list(variants)
    variant_ids = [variant.id for variant in variants]
    storages = _scoped_storages(storage_id, branch_id)

    levels_by_variant = defaultdict(list)
    levels = StockLevel.objects.filter(variant_id__in=variant_ids, storage__in=storages).select_related('storage__branch')
    for level in levels:
        levels_by_variant[level.variant_id].append(level)

    movements_by_variant = defaultdict(list)
    lines = (
        TransactionLine.objects
        .filter(variant_id__in=variant_ids,
                transaction__status=TransactionStatus.CONFIRMED,
                transaction__transaction_type__in=STOCK_MOVING_TYPES,
                transaction__storage__in=storages)
        .select_related('transaction__storage', 'transaction__target_storage')
        .order_by('-transaction__created_at', '-id')
    )
    for line in lines.iterator():
        bucket = movements_by_variant[line.variant_id]
        if len(bucket) < MOVEMENTS_PER_ROW:
            bucket.append(_movement_row(line))

    incoming_orders = TransactionLine.objects.filter(
        variant_id__in=variant_ids,
        transaction__transaction_type=TransactionType.PURCHASE_ORDER,
        transaction__status__in=OPEN_ORDER_STATUSES,
    )
    if storage_id or branch_id:
        incoming_orders = incoming_orders.filter(transaction__storage__in=storages)
    incoming_by_variant = {
        row['variant_id']: row['total'] or Decimal('0')
        for row in incoming_orders.values('variant_id').annotate(total=Sum('quantity_in_base'))
    }

    rows = []
    for variant in variants:
        breakdown = [
            {
                'storageId': level.storage_id,
                'storageName': level.storage.name,
                'branchId': level.storage.branch_id,
                'branchName': level.storage.branch.name if level.storage.branch else None,
                'quantity': float(level.quantity),
            }
            for level in levels_by_variant.get(variant.id, [])
            if level.quantity != 0
        ]
        breakdown.sort(key=lambda entry: abs(entry['quantity']), reverse=True)
        total = sum((level.quantity for level in levels_by_variant.get(variant.id, [])), Decimal('0'))
        movements = movements_by_variant.get(variant.id, [])

        if not include_zero and total == 0 and not movements:
            continue

        incoming = incoming_by_variant.get(variant.id, Decimal('0'))
        committed = Decimal('0')
        minimum = variant.minimum_stock
        reorder = variant.reorder_point
        last = movements[0] if movements else None
        rows.append({
            'id': variant.id,
            'productId': variant.product_id,
            'productName': variant.product.name,
            'productBrand': variant.product.brand,
            'variantName': variant.display_name,
            'attributeValues': variant.attribute_values,
            'sku': variant.sku,
            'barcode': variant.barcode,
            'unitOfMeasure': variant.unit.symbol if variant.unit else 'UN',
            'baseCost': float(variant.base_cost),
            'basePrice': float(variant.base_price),
            'pmp': float(variant.pmp),
            'trackInventory': variant.track_inventory,
            'totalStock': float(total),
            'committedStock': float(committed),
            'incomingStock': float(incoming),
            'availableStock': float(total - committed + incoming),
            'minimumStock': float(minimum),
            'maximumStock': float(variant.maximum_stock),
            'reorderPoint': float(reorder),
            'isBelowMinimum': minimum > 0 and total < minimum,
            'isBelowReorder': reorder > 0 and total <= reorder,
            'inventoryValueCost': float(total * variant.unit_cost),
            'storageBreakdown': breakdown,
            'storageCount': len(breakdown),
            'primaryStorageName': breakdown[0]['storageName'] if breakdown else None,
            'primaryStorageQuantity': breakdown[0]['quantity'] if breakdown else 0.0,
            'lastMovementAt': last['createdAt'] if last else None,
            'lastMovementType': last['transactionType'] if last else None,
            'lastMovementDirection': last['direction'] if last else None,
            'movements': movements,
        })

    rows.sort(key=lambda row: (not row['isBelowMinimum'], not row['isBelowReorder'],
                               row['productName'].lower(), row['sku']))
    return rows[:limit]


@cached_query(cache_ttl=INVENTORY_FILTERS_CACHE_TTL, key_prefix=INVENTORY_FILTERS_PREFIX)
def get_inventory_filters():
    """Branches and storages offered as filters on the inventory screen"""
    branches = Branch.objects.active().order_by('-is_headquarters', 'name')
    storages = Storage.objects.active().select_related('branch').order_by('branch__name', '-is_default', 'name')
    return {
        'branches': [
            {'id': branch.id, 'name': branch.name, 'code': branch.code, 'isHeadquarters': branch.is_headquarters}
            for branch in branches
        ],
        'storages': [
            {
                'id': storage.id,
                'name': storage.name,
                'code': storage.code,
                'category': storage.category,
                'branchId': storage.branch_id,
                'branchName': storage.branch.name if storage.branch else None,
                'isDefault': storage.is_default,
            }
            for storage in storages
        ],
    }


def list_stock_levels(variant_id=None, storage_id=None, branch_id=None):
    levels = StockLevel.objects.select_related('variant__product', 'storage__branch').order_by('storage__name', 'variant__sku')
    if variant_id:
        levels = levels.filter(variant_id=variant_id)
    if storage_id:
        levels = levels.filter(storage_id=storage_id)
    if branch_id:
        levels = levels.filter(storage__branch_id=branch_id)
    return levels
