"""
Cash sessions of points of sale.

A point of sale has at most one OPEN session; documents written at the point of
sale while it is open are booked in it. Closing fixes the expected amount from
those documents and the difference with the counted amount.
"""
import logging
from decimal import Decimal

from django.db import transaction as db_transaction
from django.db.models import Q
from django.utils import timezone

from flowstore.core.exceptions import ServiceError, NotFoundError
from flowstore.core.utils import create_audit_log, round_money, to_decimal
from flowstore.locations.models import PointOfSale
from flowstore.transactions.models import PaymentMethod, Transaction, TransactionStatus, TransactionType
from .models import CashSession, CashSessionStatus

logger = logging.getLogger('flowstore.cash')

CASH_IN_TYPES = {TransactionType.SALE, TransactionType.PAYMENT_IN}
CASH_OUT_TYPES = {TransactionType.SALE_RETURN, TransactionType.PAYMENT_OUT, TransactionType.OPERATING_EXPENSE}


def _append_notes(current, notes, prefix=''):
    notes = (notes or '').strip()
    if not notes:
        return current
    notes = f"{prefix}{notes}"
    return f"{current}\n{notes}" if current else notes


def _lock_session(session_id):
    session = CashSession.objects.select_for_update().select_related('point_of_sale').filter(pk=session_id).first()
    if session is None:
        raise NotFoundError('Cash session not found')
    return session


def _drawer_documents(session):
    """
    Documents that moved cash in the session.

    Cancelled sales still count: the money came in, and their return is a
    separate cash out.
    """
    return (
        Transaction.objects
        .filter(cash_session=session)
        .filter(Q(payment_method=PaymentMethod.CASH) | Q(payment_method__isnull=True))
        .filter(Q(status=TransactionStatus.CONFIRMED) |
                Q(status=TransactionStatus.CANCELLED, transaction_type=TransactionType.SALE))
    )


def get_cash_session_summary(session):
    """Totals of a session; expectedBalance = opening + cash in - cash out"""
    totals = {'totalSales': Decimal('0.00'), 'totalReturns': Decimal('0.00'),
              'cashIn': Decimal('0.00'), 'cashOut': Decimal('0.00')}
    documents = list(_drawer_documents(session).only('transaction_type', 'total'))
    for document in documents:
        if document.transaction_type == TransactionType.SALE:
            totals['totalSales'] += document.total
        elif document.transaction_type == TransactionType.SALE_RETURN:
            totals['totalReturns'] += document.total
        if document.transaction_type in CASH_IN_TYPES:
            totals['cashIn'] += document.total
        elif document.transaction_type in CASH_OUT_TYPES:
            totals['cashOut'] += document.total

    return {
        'sessionId': session.id,
        'openingAmount': session.opening_amount,
        **totals,
        'expectedBalance': round_money(session.opening_amount + totals['cashIn'] - totals['cashOut']),
        'transactionCount': len(documents),
    }


def get_active_session(point_of_sale_id):
    return (
        CashSession.objects
        .select_related('point_of_sale', 'opened_by')
        .filter(point_of_sale_id=point_of_sale_id, status=CashSessionStatus.OPEN)
        .first()
    )


def get_cash_session(session_id):
    session = (
        CashSession.objects
        .select_related('point_of_sale', 'point_of_sale__branch', 'opened_by', 'closed_by', 'reconciled_by')
        .filter(pk=session_id)
        .first()
    )
    if session is None:
        raise NotFoundError('Cash session not found')
    return session


def list_cash_sessions(point_of_sale_id=None, branch_id=None, status=None, date_from=None, date_to=None):
    sessions = CashSession.objects.select_related('point_of_sale', 'point_of_sale__branch', 'opened_by', 'closed_by')
    if point_of_sale_id:
        sessions = sessions.filter(point_of_sale_id=point_of_sale_id)
    if branch_id:
        sessions = sessions.filter(point_of_sale__branch_id=branch_id)
    if status:
        sessions = sessions.filter(status=status)
    if date_from:
        sessions = sessions.filter(opened_at__date__gte=date_from)
    if date_to:
        sessions = sessions.filter(opened_at__date__lte=date_to)
    return sessions


def open_cash_session(point_of_sale_id, opening_amount=0, notes='', user=None, request=None):
    opening_amount = to_decimal(opening_amount, Decimal('0'))
    if opening_amount is None or opening_amount < 0:
        raise ServiceError('The opening amount cannot be negative')

    with db_transaction.atomic():
        # The point of sale row serializes concurrent openings
        point_of_sale = PointOfSale.objects.alive().select_for_update().filter(pk=point_of_sale_id).first()
        if point_of_sale is None:
            raise NotFoundError('Point of sale not found')
        if not point_of_sale.is_active:
            raise ServiceError(f'{point_of_sale.name} is inactive')
        if CashSession.objects.filter(point_of_sale=point_of_sale, status=CashSessionStatus.OPEN).exists():
            raise ServiceError(f'{point_of_sale.name} already has an open cash session')

        if user is None and request is not None and request.user.is_authenticated:
            user = request.user
        session = CashSession.objects.create(
            point_of_sale=point_of_sale,
            opened_by=user,
            opening_amount=round_money(opening_amount),
            notes=(notes or '').strip(),
        )
        create_audit_log(request=request, user=user, action='cash_session_open', model_name='CashSession',
                         object_id=session.id, object_name=point_of_sale.name,
                         changes={'opening_amount': str(session.opening_amount)})

    logger.info(f"Cash session {session.id} opened at {point_of_sale.name} with {session.opening_amount}")
    return session


def close_cash_session(session_id, closing_amount, notes='', user=None, request=None):
    """Close an open session; returns (session, summary)"""
    closing_amount = to_decimal(closing_amount)
    if closing_amount is None or closing_amount < 0:
        raise ServiceError('The counted amount must be zero or more')

    with db_transaction.atomic():
        session = _lock_session(session_id)
        if session.status != CashSessionStatus.OPEN:
            raise ServiceError('The cash session is already closed')

        if user is None and request is not None and request.user.is_authenticated:
            user = request.user
        summary = get_cash_session_summary(session)
        session.status = CashSessionStatus.CLOSED
        session.closed_by = user
        session.closed_at = timezone.now()
        session.closing_amount = round_money(closing_amount)
        session.expected_amount = summary['expectedBalance']
        session.difference = session.closing_amount - session.expected_amount
        session.notes = _append_notes(session.notes, notes)
        session.save()

        create_audit_log(request=request, user=user, action='cash_session_close', model_name='CashSession',
                         object_id=session.id, object_name=session.point_of_sale.name,
                         changes={'expected': str(session.expected_amount), 'counted': str(session.closing_amount),
                                  'difference': str(session.difference)})

    if session.difference:
        logger.warning(f"Cash session {session.id} closed with a difference of {session.difference}")
    else:
        logger.info(f"Cash session {session.id} closed, balanced at {session.closing_amount}")
    return session, summary


def reconcile_cash_session(session_id, adjusted_balance=None, notes='', user=None, request=None):
    """
    Sign off a closed session. An adjusted balance replaces the counted amount
    and the difference is recomputed against the expected amount.
    """
    adjusted_balance = to_decimal(adjusted_balance)
    if adjusted_balance is not None and adjusted_balance < 0:
        raise ServiceError('The adjusted balance cannot be negative')

    with db_transaction.atomic():
        session = _lock_session(session_id)
        if session.status != CashSessionStatus.CLOSED:
            raise ServiceError('Only closed cash sessions can be reconciled')

        if user is None and request is not None and request.user.is_authenticated:
            user = request.user
        changes = {'previous_difference': str(session.difference)}
        if adjusted_balance is not None:
            session.closing_amount = round_money(adjusted_balance)
            session.difference = session.closing_amount - session.expected_amount
            changes['adjusted_balance'] = str(session.closing_amount)
        session.status = CashSessionStatus.RECONCILED
        session.reconciled_by = user
        session.reconciled_at = timezone.now()
        session.notes = _append_notes(session.notes, notes, prefix='[CONCILIACIÓN] ')
        session.save()
        changes['difference'] = str(session.difference)

        create_audit_log(request=request, user=user, action='cash_session_reconcile', model_name='CashSession',
                         object_id=session.id, object_name=session.point_of_sale.name, changes=changes)

    logger.info(f"Cash session {session.id} reconciled, difference {session.difference}")
    return session
