"""
Stock movement primitives shared by every stock-moving operation.

Rows are locked with SELECT ... FOR UPDATE; callers that lock more than one
storage must go through lock_stock_levels so locks are taken in ascending
storage id order.
"""
import logging
from decimal import Decimal

from django.conf import settings

from flowstore.core.cache_utils import invalidate_after_commit, invalidate_inventory_cache
from flowstore.core.exceptions import ServiceError, InsufficientStockError
from flowstore.core.utils import QUANTITY_TOLERANCE
from flowstore.transactions.models import TransactionType, TransactionStatus
from .models import StockLevel

logger = logging.getLogger('flowstore.inventory')

IN = 'IN'
OUT = 'OUT'

MOVEMENT_DIRECTION = {
    TransactionType.PURCHASE: IN,
    TransactionType.SALE_RETURN: IN,
    TransactionType.TRANSFER_IN: IN,
    TransactionType.ADJUSTMENT_IN: IN,
    TransactionType.SALE: OUT,
    TransactionType.PURCHASE_RETURN: OUT,
    TransactionType.TRANSFER_OUT: OUT,
    TransactionType.ADJUSTMENT_OUT: OUT,
}

STOCK_MOVING_TYPES = list(MOVEMENT_DIRECTION)

# A cancelled document moved stock when it was confirmed; its return document reverses it
STOCK_EFFECTIVE_STATUSES = [TransactionStatus.CONFIRMED, TransactionStatus.CANCELLED]


def movement_direction(transaction_type):
    """IN, OUT or None for documents that do not move stock"""
    return MOVEMENT_DIRECTION.get(transaction_type)


def signed_quantity(transaction_type, quantity):
    direction = movement_direction(transaction_type)
    if direction == IN:
        return quantity
    if direction == OUT:
        return -quantity
    return Decimal('0')


def lock_stock_levels(variant, storages):
    """Lock (creating when missing) the stock rows of a variant; returns {storage_id: StockLevel}"""
    levels = {}
    for storage in sorted(storages, key=lambda s: s.pk):
        level, _ = StockLevel.objects.select_for_update().get_or_create(variant=variant, storage=storage)
        levels[storage.pk] = level
    return levels


def apply_stock_movement(transaction):
    """
    Apply the stock effect of a confirmed transaction to its storage.

    Must run inside the atomic block that created the transaction.
    Raises InsufficientStockError when an outbound line would leave negative stock.
    """
    direction = movement_direction(transaction.transaction_type)
    if direction is None or transaction.status != TransactionStatus.CONFIRMED:
        return []
    if transaction.storage_id is None:
        raise ServiceError('A storage is required to move stock')

    allow_negative = getattr(settings, 'INVENTORY_ALLOW_NEGATIVE_STOCK', False)
    changed = []
    lines = transaction.lines.select_related('variant').order_by('variant_id', 'line_number')
    for line in lines:
        variant = line.variant
        if variant is None or not variant.track_inventory:
            continue
        level = lock_stock_levels(variant, [transaction.storage])[transaction.storage_id]
        delta = signed_quantity(transaction.transaction_type, line.quantity_in_base)
        new_quantity = level.quantity + delta

        if new_quantity < 0:
            if abs(new_quantity) <= QUANTITY_TOLERANCE:
                new_quantity = Decimal('0.000')
            elif not allow_negative:
                raise InsufficientStockError(
                    f"Insufficient stock of {variant.sku} in {transaction.storage.name}: "
                    f"available {level.quantity}, requested {line.quantity_in_base}"
                )

        level.quantity = new_quantity
        level.save(update_fields=['quantity', 'updated_at'])
        changed.append(level)
        logger.debug(f"{transaction.document_number}: {variant.sku} {delta:+} in storage {transaction.storage_id} -> {new_quantity}")

    if changed:
        invalidate_after_commit(invalidate_inventory_cache)
    return changed
