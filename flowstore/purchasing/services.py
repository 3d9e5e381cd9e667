"""
Purchase orders and receptions.

A purchase order is a DRAFT PURCHASE_ORDER document and never moves stock.
A reception is a CONFIRMED PURCHASE (stock and PMP move) followed by a pending
PAYMENT_OUT for the supplier.
"""
import logging
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal

from django.db import transaction as db_transaction
from django.utils import timezone

from flowstore.core.cache_utils import invalidate_after_commit, invalidate_inventory_cache
from flowstore.core.exceptions import ServiceError, NotFoundError
from flowstore.core.utils import create_audit_log, to_decimal, QUANTITY_TOLERANCE
from flowstore.locations.models import Storage
from flowstore.parties.models import Supplier
from flowstore.transactions.models import Transaction, TransactionStatus, TransactionType, PaymentMethod
from flowstore.transactions.services import create_transaction, cancel_transaction, resolve_line_unit

logger = logging.getLogger('flowstore.purchasing')

RECEIVED_STATUSES = [TransactionStatus.RECEIVED, TransactionStatus.PARTIALLY_RECEIVED]

PAYMENT_PENDING = 'PENDING'
PAYMENT_PAID = 'PAID'


def _get_supplier(supplier_id):
    if not supplier_id:
        raise ServiceError('A supplier is required')
    supplier = Supplier.objects.alive().filter(pk=supplier_id).first()
    if supplier is None:
        raise NotFoundError('Supplier not found')
    return supplier


def _get_storage(storage_id):
    if not storage_id:
        raise ServiceError('A storage is required')
    storage = Storage.objects.active().select_related('branch').filter(pk=storage_id).first()
    if storage is None:
        raise NotFoundError('Storage not found or inactive')
    return storage


def _lock_document(document_id, transaction_type, label):
    document = Transaction.objects.select_for_update().filter(pk=document_id, transaction_type=transaction_type).first()
    if document is None:
        raise NotFoundError(f'{label} not found')
    return document


def _base_quantity(line):
    _, factor = resolve_line_unit(line)
    return to_decimal(line.get('quantity'), Decimal('0')) * factor


def _base_cost_price(line, variant):
    """Base cost of one line unit; base_cost is per base unit"""
    _, factor = resolve_line_unit(line)
    return variant.base_cost * factor


def _create_pending_payment(reception, supplier, user=None, request=None):
    """Supplier payment due after the supplier's payment term"""
    due_date = timezone.localdate() + timedelta(days=supplier.default_payment_term_days or 0)
    return create_transaction({
        'transaction_type': TransactionType.PAYMENT_OUT,
        'status': TransactionStatus.DRAFT,
        'branch': reception.branch,
        'supplier': supplier,
        'payment_method': PaymentMethod.CREDIT,
        'payment_due_date': due_date,
        'related_transaction': reception,
        'subtotal': reception.subtotal - reception.discount_amount,
        'tax_amount': reception.tax_amount,
        'total': reception.total,
        'notes': f"Pago pendiente {reception.document_number}",
        'metadata': {'paymentStatus': PAYMENT_PENDING, 'receptionDocumentNumber': reception.document_number},
    }, user=user, request=request, audit=False)


def compute_discrepancies(order, lines):
    """
    Per variant: received - expected, in base units.

    Only non-zero differences are returned; variants missing on either side count.
    """
    expected = defaultdict(Decimal)
    skus = {}
    for line in order.lines.all():
        if line.variant_id is None:
            continue
        expected[line.variant_id] += line.quantity_in_base
        skus[line.variant_id] = line.product_sku

    received = defaultdict(Decimal)
    for line in lines:
        variant = line.get('variant')
        if variant is None:
            continue
        received[variant.id] += _base_quantity(line)
        skus[variant.id] = variant.sku

    discrepancies = []
    for variant_id in sorted(set(expected) | set(received)):
        difference = received[variant_id] - expected[variant_id]
        if abs(difference) > QUANTITY_TOLERANCE:
            discrepancies.append({
                'variantId': variant_id,
                'sku': skus.get(variant_id),
                'expected': float(expected[variant_id]),
                'received': float(received[variant_id]),
                'difference': float(difference),
            })
    return discrepancies


def create_purchase_order(supplier_id, lines, storage_id=None, notes='', expected_date=None, user=None, request=None):
    """Write a DRAFT PURCHASE_ORDER; nothing moves until it is received"""
    supplier = _get_supplier(supplier_id)
    if not lines:
        raise ServiceError('At least one line is required')
    storage = _get_storage(storage_id) if storage_id else None

    order = create_transaction({
        'transaction_type': TransactionType.PURCHASE_ORDER,
        'status': TransactionStatus.DRAFT,
        'branch': storage.branch if storage else None,
        'storage': storage,
        'supplier': supplier,
        'notes': notes,
        'metadata': {'expectedDate': expected_date.isoformat() if expected_date else None},
        'lines': lines,
    }, user=user, request=request)
    # Open orders feed the incoming stock of the inventory view
    invalidate_after_commit(invalidate_inventory_cache)
    logger.info(f"Purchase order {order.document_number} for {supplier.display_name}, total {order.total}")
    return order


def cancel_purchase_order(order_id, user=None, reason='', request=None):
    with db_transaction.atomic():
        order = _lock_document(order_id, TransactionType.PURCHASE_ORDER, 'Purchase order')
        if order.status == TransactionStatus.CANCELLED:
            raise ServiceError(f'{order.document_number} is already cancelled')
        if order.status in RECEIVED_STATUSES:
            raise ServiceError(f'{order.document_number} has receptions and cannot be cancelled')

        if user is None and request is not None and request.user.is_authenticated:
            user = request.user
        order.status = TransactionStatus.CANCELLED
        order.metadata = {
            **(order.metadata or {}),
            'cancellation': {'reason': reason, 'userId': user.id if user else None, 'at': timezone.now().isoformat()},
        }
        order.save(update_fields=['status', 'metadata', 'updated_at'])
        invalidate_after_commit(invalidate_inventory_cache)
        create_audit_log(request=request, user=user, action='purchase_order_cancel', model_name='Transaction',
                         object_id=order.id, object_name=order.document_number, changes={'reason': reason})
    logger.info(f"Purchase order {order.document_number} cancelled")
    return order


def create_reception_from_purchase_order(purchase_order_id, lines, storage_id=None, notes='', user=None, request=None):
    """
    Receive goods against a purchase order.

    Returns (reception, payment, discrepancies). The order becomes
    PARTIALLY_RECEIVED when quantities differ from what was ordered, else RECEIVED.
    """
    if not lines:
        raise ServiceError('At least one line is required')

    with db_transaction.atomic():
        order = _lock_document(purchase_order_id, TransactionType.PURCHASE_ORDER, 'Purchase order')
        if order.status == TransactionStatus.CANCELLED:
            raise ServiceError(f'{order.document_number} is cancelled')
        if order.status == TransactionStatus.RECEIVED:
            raise ServiceError(f'{order.document_number} was already received')
        if order.supplier is None:
            raise ServiceError(f'{order.document_number} has no supplier')
        storage = _get_storage(storage_id or order.storage_id)

        # Lines received without a price take the ordered price
        ordered_prices = {line.variant_id: line.unit_price for line in order.lines.all() if line.variant_id}
        for line in lines:
            variant = line.get('variant')
            if line.get('unit_price') is None and variant is not None:
                if variant.id in ordered_prices:
                    line['unit_price'] = ordered_prices[variant.id]
                else:
                    line['unit_price'] = _base_cost_price(line, variant)

        discrepancies = compute_discrepancies(order, lines)
        reception = create_transaction({
            'transaction_type': TransactionType.PURCHASE,
            'status': TransactionStatus.CONFIRMED,
            'branch': storage.branch,
            'storage': storage,
            'supplier': order.supplier,
            'payment_method': PaymentMethod.CREDIT,
            'related_transaction': order,
            'notes': notes,
            'metadata': {
                'purchaseOrderId': order.id,
                'purchaseOrderNumber': order.document_number,
                'discrepancies': discrepancies,
            },
            'lines': lines,
        }, user=user, request=request, audit=False)
        payment = _create_pending_payment(reception, order.supplier, user=user, request=request)

        order.status = TransactionStatus.PARTIALLY_RECEIVED if discrepancies else TransactionStatus.RECEIVED
        order.metadata = {
            **(order.metadata or {}),
            'receptions': (order.metadata or {}).get('receptions', []) + [reception.document_number],
        }
        order.save(update_fields=['status', 'metadata', 'updated_at'])
        invalidate_after_commit(invalidate_inventory_cache)

        create_audit_log(request=request, user=user, action='reception_create', model_name='Transaction',
                         object_id=reception.id, object_name=reception.document_number,
                         object_reference=order.document_number,
                         sku=', '.join(line.product_sku for line in reception.lines.all() if line.product_sku) or None,
                         changes={'total': str(reception.total), 'discrepancies': len(discrepancies),
                                  'payment': payment.document_number})

    logger.info(f"Reception {reception.document_number} from {order.document_number} "
                f"({len(discrepancies)} discrepancies), order now {order.status}")
    return reception, payment, discrepancies


def create_direct_reception(supplier_id, storage_id, lines, notes='', user=None, request=None):
    """Receive goods without a purchase order; returns (reception, payment)"""
    supplier = _get_supplier(supplier_id)
    if not lines:
        raise ServiceError('At least one line is required')

    with db_transaction.atomic():
        storage = _get_storage(storage_id)
        for line in lines:
            variant = line.get('variant')
            if line.get('unit_price') is None and variant is not None:
                line['unit_price'] = _base_cost_price(line, variant)
        reception = create_transaction({
            'transaction_type': TransactionType.PURCHASE,
            'status': TransactionStatus.CONFIRMED,
            'branch': storage.branch,
            'storage': storage,
            'supplier': supplier,
            'payment_method': PaymentMethod.CREDIT,
            'notes': notes,
            'lines': lines,
        }, user=user, request=request, audit=False)
        payment = _create_pending_payment(reception, supplier, user=user, request=request)

        create_audit_log(request=request, user=user, action='reception_create', model_name='Transaction',
                         object_id=reception.id, object_name=reception.document_number,
                         sku=', '.join(line.product_sku for line in reception.lines.all() if line.product_sku) or None,
                         changes={'total': str(reception.total), 'payment': payment.document_number})

    logger.info(f"Direct reception {reception.document_number} from {supplier.display_name}")
    return reception, payment


def cancel_reception(reception_id, user=None, reason='', request=None):
    """
    Cancel a reception: its PURCHASE is reversed by a PURCHASE_RETURN, the pending
    payment is cancelled and the purchase order, if any, goes back to DRAFT.
    """
    with db_transaction.atomic():
        reception = _lock_document(reception_id, TransactionType.PURCHASE, 'Reception')
        if user is None and request is not None and request.user.is_authenticated:
            user = request.user
        reversal = cancel_transaction(reception.id, user=user, reason=reason, request=request)

        pending_payments = Transaction.objects.select_for_update().filter(
            transaction_type=TransactionType.PAYMENT_OUT,
            related_transaction=reception,
            status=TransactionStatus.DRAFT,
        )
        for payment in pending_payments:
            payment.status = TransactionStatus.CANCELLED
            payment.metadata = {
                **(payment.metadata or {}),
                'cancellation': {'reason': reason, 'receptionCancelled': reception.document_number},
            }
            payment.save(update_fields=['status', 'metadata', 'updated_at'])

        order = None
        if reception.related_transaction_id:
            order = Transaction.objects.select_for_update().filter(
                pk=reception.related_transaction_id, transaction_type=TransactionType.PURCHASE_ORDER
            ).first()
            if order is not None and order.status != TransactionStatus.CANCELLED:
                order.status = TransactionStatus.DRAFT
                order.save(update_fields=['status', 'updated_at'])
                invalidate_after_commit(invalidate_inventory_cache)

        create_audit_log(request=request, user=user, action='reception_cancel', model_name='Transaction',
                         object_id=reception.id, object_name=reception.document_number,
                         object_reference=reversal.document_number,
                         changes={'reason': reason, 'purchase_order': order.document_number if order else None})

    logger.info(f"Reception {reception.document_number} cancelled by {reversal.document_number}")
    return reversal


def list_purchase_orders():
    return Transaction.objects.filter(transaction_type=TransactionType.PURCHASE_ORDER).select_related(
        'supplier', 'storage', 'branch', 'user'
    )


def list_receptions():
    return Transaction.objects.filter(transaction_type=TransactionType.PURCHASE).select_related(
        'supplier', 'storage', 'branch', 'user', 'related_transaction'
    )


def list_supplier_payments(supplier_id=None, status=None, overdue=False, due_from=None, due_to=None,
                           include_cancelled=False):
    """
    PAYMENT_OUT documents; pending ones are DRAFT until they are paid.

    overdue keeps the pending payments due before today.
    """
    payments = Transaction.objects.filter(transaction_type=TransactionType.PAYMENT_OUT).select_related(
        'supplier', 'branch', 'user', 'related_transaction'
    )
    if not include_cancelled and status != TransactionStatus.CANCELLED:
        payments = payments.exclude(status=TransactionStatus.CANCELLED)
    if supplier_id:
        payments = payments.filter(supplier_id=supplier_id)
    if status:
        payments = payments.filter(status=status)
    if overdue:
        payments = payments.filter(status=TransactionStatus.DRAFT, payment_due_date__lt=timezone.localdate())
    if due_from:
        payments = payments.filter(payment_due_date__gte=due_from)
    if due_to:
        payments = payments.filter(payment_due_date__lte=due_to)
    return payments.order_by('payment_due_date', 'id')


def pay_supplier_payment(payment_id, payment_method, paid_on=None, reference='', user=None, request=None):
    """
    Settle a pending supplier payment: DRAFT -> CONFIRMED.

    The document stays immutable; how and when it was paid goes to its metadata.
    """
    if payment_method not in PaymentMethod.values or payment_method == PaymentMethod.CREDIT:
        raise ServiceError('A settlement payment method is required')

    with db_transaction.atomic():
        payment = _lock_document(payment_id, TransactionType.PAYMENT_OUT, 'Supplier payment')
        if payment.status == TransactionStatus.CANCELLED:
            raise ServiceError(f'{payment.document_number} is cancelled')
        if payment.status != TransactionStatus.DRAFT:
            raise ServiceError(f'{payment.document_number} is already paid')

        if user is None and request is not None and request.user.is_authenticated:
            user = request.user
        paid_on = paid_on or timezone.localdate()
        payment.status = TransactionStatus.CONFIRMED
        payment.metadata = {
            **(payment.metadata or {}),
            'paymentStatus': PAYMENT_PAID,
            'settlement': {
                'method': payment_method,
                'paidOn': paid_on.isoformat(),
                'reference': reference,
                'userId': user.id if user else None,
                'at': timezone.now().isoformat(),
            },
        }
        payment.save(update_fields=['status', 'metadata', 'updated_at'])

        create_audit_log(request=request, user=user, action='supplier_payment_pay', model_name='Transaction',
                         object_id=payment.id, object_name=payment.document_number,
                         object_reference=payment.related_transaction.document_number if payment.related_transaction else None,
                         changes={'method': payment_method, 'paid_on': paid_on.isoformat(), 'total': str(payment.total)})

    logger.info(f"Supplier payment {payment.document_number} paid by {payment_method}, total {payment.total}")
    return payment
