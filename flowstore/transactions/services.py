"""
Transaction ledger: document numbering, creation and cancellation.

Every stock-moving change in the system is a Transaction written here; the
stock rows are updated in the same database transaction.
"""
import logging
from decimal import Decimal

from django.db import transaction as db_transaction
from django.db.models import Sum
from django.utils import timezone

from flowstore.cash.models import CashSession, CashSessionStatus
from flowstore.catalog.models import ProductVariant
from flowstore.core.exceptions import ServiceError, NotFoundError
from flowstore.core.utils import create_audit_log, round_money, round_quantity, to_decimal
from flowstore.inventory.models import StockLevel
from flowstore.inventory.stock import apply_stock_movement
from .models import DocumentSequence, Transaction, TransactionLine, TransactionStatus, TransactionType

logger = logging.getLogger('flowstore.transactions')

DOCUMENT_PREFIXES = {
    TransactionType.SALE: 'VTA-',
    TransactionType.PURCHASE: 'REC-',
    TransactionType.PURCHASE_ORDER: 'OC-',
    TransactionType.SALE_RETURN: 'DVT-',
    TransactionType.PURCHASE_RETURN: 'DCP-',
    TransactionType.ADJUSTMENT_IN: 'AJE-',
    TransactionType.ADJUSTMENT_OUT: 'AJS-',
    TransactionType.TRANSFER_IN: 'TRE-',
    TransactionType.TRANSFER_OUT: 'TRS-',
    TransactionType.PAYMENT_IN: 'PIE-',
    TransactionType.PAYMENT_OUT: 'PIS-',
    TransactionType.OPERATING_EXPENSE: 'GOP-',
}

# Documents that carry amounts but no lines
LINELESS_TYPES = {
    TransactionType.PAYMENT_IN,
    TransactionType.PAYMENT_OUT,
    TransactionType.OPERATING_EXPENSE,
}

# Cancellable type -> type of the document that reverses it
RETURN_TYPES = {
    TransactionType.SALE: TransactionType.SALE_RETURN,
    TransactionType.PURCHASE: TransactionType.PURCHASE_RETURN,
}

HEADER_FIELDS = (
    'branch', 'point_of_sale', 'storage', 'target_storage', 'customer', 'supplier',
    'expense_category', 'cost_center', 'payment_method', 'payment_due_date',
    'related_transaction',
)

# Documents that move money through a point of sale's drawer
CASH_SESSION_TYPES = {
    TransactionType.SALE,
    TransactionType.SALE_RETURN,
    TransactionType.PAYMENT_IN,
    TransactionType.PAYMENT_OUT,
    TransactionType.OPERATING_EXPENSE,
}


def next_document_number(transaction_type):
    """Issue the next number for a type, e.g. VTA-00000042. Must run inside an atomic block."""
    prefix = DOCUMENT_PREFIXES.get(transaction_type)
    if prefix is None:
        raise ServiceError(f'Unknown transaction type: {transaction_type}')
    sequence, _ = DocumentSequence.objects.select_for_update().get_or_create(transaction_type=transaction_type)
    sequence.last_number += 1
    sequence.save(update_fields=['last_number'])
    return f"{prefix}{sequence.last_number:08d}"


def resolve_line_unit(data):
    """
    Unit and conversion factor of an input line.

    An explicit factor wins; otherwise the factor of the line's unit. Lines with
    neither are in the variant's own unit, and in base units when it has none.
    """
    unit = data.get('unit')
    factor = to_decimal(data.get('unit_conversion_factor'))
    variant = data.get('variant')
    if unit is None and factor is None and variant is not None:
        unit = variant.unit
    if factor is None:
        factor = unit.conversion_factor if unit is not None else Decimal('1')
    return unit, factor


def _build_line(number, data, transaction_type):
    """Compute the amounts and snapshots of one line; returns TransactionLine kwargs"""
    variant = data.get('variant')
    product = data.get('product') or (variant.product if variant is not None else None)
    if product is None and not data.get('product_name'):
        raise ServiceError(f'Line {number}: a product or variant is required')

    quantity = to_decimal(data.get('quantity'))
    if quantity is None or quantity <= 0:
        raise ServiceError(f'Line {number}: quantity must be greater than zero')
    unit_price = to_decimal(data.get('unit_price'), Decimal('0'))
    if unit_price < 0:
        raise ServiceError(f'Line {number}: unit price cannot be negative')

    gross = quantity * unit_price
    discount_percentage = to_decimal(data.get('discount_percentage'), Decimal('0'))
    discount_amount = to_decimal(data.get('discount_amount'))
    if discount_amount is None:
        discount_amount = gross * discount_percentage / Decimal('100')
    discount_amount = round_money(discount_amount)
    if discount_amount < 0 or discount_amount > round_money(gross):
        raise ServiceError(f'Line {number}: invalid discount')
    subtotal = round_money(gross - discount_amount)

    tax = data.get('tax')
    tax_rate = to_decimal(data.get('tax_rate'))
    if tax_rate is None:
        tax_rate = tax.rate if tax is not None else Decimal('0')
    tax_amount = round_money(subtotal * tax_rate / Decimal('100'))

    unit, factor = resolve_line_unit(data)
    if factor <= 0:
        raise ServiceError(f'Line {number}: unit conversion factor must be positive')
    unit_of_measure = data.get('unit_of_measure') or (unit.symbol if unit is not None else '')

    # unit_cost is per line unit; the variant's cost is per base unit
    unit_cost = to_decimal(data.get('unit_cost'))
    if unit_cost is None:
        if transaction_type == TransactionType.PURCHASE:
            unit_cost = unit_price
        else:
            unit_cost = variant.unit_cost * factor if variant is not None else Decimal('0')

    return {
        'line_number': number,
        'product': product,
        'variant': variant,
        'tax': tax,
        'product_name': data.get('product_name') or product.name,
        'product_sku': variant.sku if variant is not None else '',
        'variant_name': variant.display_name if variant is not None else '',
        'quantity': round_quantity(quantity),
        'quantity_in_base': round_quantity(quantity * factor),
        'unit_of_measure': unit_of_measure,
        'unit_conversion_factor': factor,
        'unit_price': round_money(unit_price),
        'unit_cost': round_money(unit_cost),
        'discount_percentage': discount_percentage,
        'discount_amount': discount_amount,
        'tax_rate': tax_rate,
        'tax_amount': tax_amount,
        'subtotal': subtotal,
        'total': subtotal + tax_amount,
        'notes': data.get('notes') or '',
    }


def _resolve_cash_session(data, transaction_type):
    """
    Session a document is booked in: the one given, which must be open, else
    the open session of its point of sale. Must run inside an atomic block.
    """
    session = data.get('cash_session')
    if session is not None:
        locked = CashSession.objects.select_for_update().filter(pk=session.pk).first()
        if locked is None or locked.status != CashSessionStatus.OPEN:
            raise ServiceError(f'Cash session {session.pk} is not open')
        point_of_sale = data.get('point_of_sale')
        if point_of_sale is not None and point_of_sale.pk != locked.point_of_sale_id:
            raise ServiceError('The cash session belongs to another point of sale')
        return locked

    point_of_sale = data.get('point_of_sale')
    if point_of_sale is None or transaction_type not in CASH_SESSION_TYPES:
        return None
    return CashSession.objects.select_for_update().filter(
        point_of_sale=point_of_sale, status=CashSessionStatus.OPEN
    ).first()


def update_weighted_average_costs(transaction):
    """
    Update the PMP of every variant received by a purchase.

    pmp = (on_hand * pmp + qty * unit_cost) / (on_hand + qty), with on_hand the
    stock across all storages before the purchase is applied.
    """
    for line in transaction.lines.exclude(variant__isnull=True).order_by('variant_id', 'line_number'):
        variant = ProductVariant.objects.select_for_update().get(pk=line.variant_id)
        on_hand = StockLevel.objects.filter(variant=variant).aggregate(total=Sum('quantity'))['total'] or Decimal('0')
        on_hand = max(on_hand, Decimal('0'))
        incoming = line.quantity_in_base
        cost_per_base_unit = line.unit_cost / line.unit_conversion_factor
        if on_hand + incoming <= 0:
            continue
        new_pmp = round_money((on_hand * variant.unit_cost + incoming * cost_per_base_unit) / (on_hand + incoming))
        if new_pmp != variant.pmp:
            logger.info(f"PMP of {variant.sku}: {variant.pmp} -> {new_pmp} ({transaction.document_number})")
            variant.pmp = new_pmp
            variant.save(update_fields=['pmp', 'updated_at'])


def create_transaction(data, user=None, request=None, audit=True):
    """
    Write a transaction and its lines.

    data holds model instances for the header links (branch, storage, customer...)
    and a 'lines' list of dicts (variant, quantity, unit_price, discount, tax...).
    Confirmed stock-moving documents update stock, purchases also the PMP.
    """
    transaction_type = data.get('transaction_type')
    if transaction_type not in DOCUMENT_PREFIXES:
        raise ServiceError(f'Unknown transaction type: {transaction_type}')
    status = data.get('status') or TransactionStatus.CONFIRMED
    if status not in TransactionStatus.values:
        raise ServiceError(f'Unknown transaction status: {status}')

    raw_lines = data.get('lines') or []
    if not raw_lines and transaction_type not in LINELESS_TYPES:
        raise ServiceError('At least one line is required')

    with db_transaction.atomic():
        lines = [_build_line(number, line, transaction_type) for number, line in enumerate(raw_lines, start=1)]
        discount_amount = round_money(to_decimal(data.get('discount_amount'), Decimal('0')))
        if lines:
            subtotal = sum((line['subtotal'] for line in lines), Decimal('0.00'))
            tax_amount = sum((line['tax_amount'] for line in lines), Decimal('0.00'))
        else:
            subtotal = round_money(to_decimal(data.get('subtotal'), Decimal('0')))
            tax_amount = round_money(to_decimal(data.get('tax_amount'), Decimal('0')))
        if discount_amount < 0 or discount_amount > subtotal:
            raise ServiceError('Invalid document discount')
        total = subtotal - discount_amount + tax_amount
        if not lines and data.get('total') is not None:
            total = round_money(to_decimal(data.get('total'), total))

        amount_paid = round_money(to_decimal(data.get('amount_paid'), Decimal('0')))
        change_amount = max(amount_paid - total, Decimal('0.00')) if amount_paid else Decimal('0.00')

        if user is None and request is not None and request.user.is_authenticated:
            user = request.user

        header = {field: data.get(field) for field in HEADER_FIELDS}
        cash_session = _resolve_cash_session(data, transaction_type)
        if cash_session is not None and header['point_of_sale'] is None:
            header['point_of_sale'] = cash_session.point_of_sale
        transaction = Transaction.objects.create(
            document_number=next_document_number(transaction_type),
            transaction_type=transaction_type,
            status=status,
            cash_session=cash_session,
            user=user,
            subtotal=subtotal,
            tax_amount=tax_amount,
            discount_amount=discount_amount,
            total=total,
            amount_paid=amount_paid,
            change_amount=change_amount,
            external_reference=data.get('external_reference') or '',
            notes=data.get('notes') or '',
            metadata=data.get('metadata') or {},
            **header,
        )
        TransactionLine.objects.bulk_create([TransactionLine(transaction=transaction, **line) for line in lines])

        if status == TransactionStatus.CONFIRMED:
            if transaction_type == TransactionType.PURCHASE:
                update_weighted_average_costs(transaction)
            apply_stock_movement(transaction)

        if audit:
            create_audit_log(request=request, user=user, action='transaction_create', model_name='Transaction',
                             object_id=transaction.id, object_name=transaction.document_number,
                             object_reference=transaction.related_transaction.document_number if transaction.related_transaction else None,
                             sku=', '.join(line['product_sku'] for line in lines if line['product_sku']) or None,
                             changes={'type': transaction_type, 'status': status, 'total': str(total)})

    logger.info(f"{transaction.document_number} ({transaction_type}, {status}) created, total {total}")
    return transaction


def cancel_transaction(transaction_id, user=None, reason='', request=None):
    """
    Cancel a confirmed sale or purchase by writing its return document.

    Returns the return transaction. The original keeps its lines; only its
    status and metadata change.
    """
    with db_transaction.atomic():
        try:
            original = Transaction.objects.select_for_update().get(pk=transaction_id)
        except Transaction.DoesNotExist:
            raise NotFoundError('Transaction not found')

        if original.status == TransactionStatus.CANCELLED:
            raise ServiceError(f'{original.document_number} is already cancelled')
        return_type = RETURN_TYPES.get(original.transaction_type)
        if return_type is None:
            raise ServiceError(f'{original.get_transaction_type_display()} documents cannot be cancelled')
        if original.status != TransactionStatus.CONFIRMED:
            raise ServiceError('Only confirmed documents can be cancelled')

        if user is None and request is not None and request.user.is_authenticated:
            user = request.user

        lines = [
            {
                'variant': line.variant,
                'product': line.product,
                'product_name': line.product_name,
                'tax': line.tax,
                'tax_rate': line.tax_rate,
                'quantity': line.quantity,
                'unit_conversion_factor': line.unit_conversion_factor,
                'unit_of_measure': line.unit_of_measure,
                'unit_price': line.unit_price,
                'unit_cost': line.unit_cost,
                'discount_amount': line.discount_amount,
                'notes': line.notes,
            }
            for line in original.lines.select_related('variant', 'product', 'tax')
        ]
        reversal = create_transaction({
            'transaction_type': return_type,
            'status': TransactionStatus.CONFIRMED,
            'branch': original.branch,
            'point_of_sale': original.point_of_sale,
            # The refund leaves the original drawer while its session is open, else the current one
            'cash_session': original.cash_session if (
                original.cash_session is not None and original.cash_session.status == CashSessionStatus.OPEN
            ) else None,
            'storage': original.storage,
            'customer': original.customer,
            'supplier': original.supplier,
            'payment_method': original.payment_method,
            'discount_amount': original.discount_amount,
            'related_transaction': original,
            'notes': f"Anulación de {original.document_number}" + (f": {reason}" if reason else ''),
            'metadata': {'cancellation': {
                'originalTransactionId': original.id,
                'originalDocumentNumber': original.document_number,
                'reason': reason,
            }},
            'lines': lines,
        }, user=user, request=request, audit=False)

        original.status = TransactionStatus.CANCELLED
        original.metadata = {
            **(original.metadata or {}),
            'cancellation': {
                'reason': reason,
                'userId': user.id if user else None,
                'at': timezone.now().isoformat(),
                'returnTransactionId': reversal.id,
                'returnDocumentNumber': reversal.document_number,
            },
        }
        original.save(update_fields=['status', 'metadata', 'updated_at'])

        create_audit_log(request=request, user=user, action='transaction_cancel', model_name='Transaction',
                         object_id=original.id, object_name=original.document_number,
                         object_reference=reversal.document_number,
                         changes={'reason': reason, 'return_type': return_type})

    logger.info(f"{original.document_number} cancelled by {reversal.document_number}")
    return reversal


def get_transaction(transaction_id):
    transaction = (
        Transaction.objects
        .select_related('branch', 'storage', 'target_storage', 'customer', 'supplier', 'user', 'related_transaction')
        .prefetch_related('lines')
        .filter(pk=transaction_id)
        .first()
    )
    if transaction is None:
        raise NotFoundError('Transaction not found')
    return transaction


def list_transactions():
    return Transaction.objects.select_related('branch', 'storage', 'customer', 'supplier', 'user')
