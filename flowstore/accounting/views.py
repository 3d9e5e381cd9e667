import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from django.db.models import ProtectedError
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date

from flowstore.core.exceptions import ServiceError
from flowstore.core.models import get_company
from flowstore.core.utils import action_success, action_error, create_audit_log
from . import services
from .models import AccountingAccount, AccountingRule
from .serializers import AccountingAccountSerializer, AccountingRuleSerializer, AccountingPeriodCreateSerializer

logger = logging.getLogger('flowstore.accounting')


# Chart of accounts
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def account_list_create(request):
    company = get_company()
    if request.method == 'GET':
        accounts = AccountingAccount.objects.filter(company=company).select_related('parent')
        return Response(AccountingAccountSerializer(accounts, many=True).data)

    serializer = AccountingAccountSerializer(data=request.data, context={'company': company})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    account = serializer.save(company=company)
    create_audit_log(request=request, action='create', model_name='AccountingAccount', object_id=account.id,
                     object_name=account.name, object_reference=account.code)
    return Response(AccountingAccountSerializer(account).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def account_detail(request, pk):
    company = get_company()
    account = get_object_or_404(AccountingAccount, pk=pk, company=company)

    if request.method == 'GET':
        return Response(AccountingAccountSerializer(account).data)
    if request.method == 'DELETE':
        try:
            account.delete()
        except ProtectedError:
            return Response({'error': 'The account has child accounts or rules and cannot be deleted'},
                            status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='delete', model_name='AccountingAccount', object_id=pk,
                         object_name=account.name, object_reference=account.code)
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = AccountingAccountSerializer(account, data=request.data, partial=request.method == 'PATCH',
                                             context={'company': company})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    account = serializer.save()
    create_audit_log(request=request, action='update', model_name='AccountingAccount', object_id=account.id,
                     object_name=account.name, changes={key: str(value) for key, value in serializer.validated_data.items()})
    return Response(AccountingAccountSerializer(account).data)


# Accounting rules
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def rule_list_create(request):
    company = get_company()
    if request.method == 'GET':
        rules = AccountingRule.objects.filter(company=company).select_related('debit_account', 'credit_account')
        return Response(AccountingRuleSerializer(rules, many=True).data)

    serializer = AccountingRuleSerializer(data=request.data, context={'company': company})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    rule = serializer.save(company=company)
    create_audit_log(request=request, action='create', model_name='AccountingRule', object_id=rule.id,
                     object_name=str(rule))
    return Response(AccountingRuleSerializer(rule).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def rule_detail(request, pk):
    company = get_company()
    rule = get_object_or_404(AccountingRule, pk=pk, company=company)

    if request.method == 'GET':
        return Response(AccountingRuleSerializer(rule).data)
    if request.method == 'DELETE':
        rule.delete()
        create_audit_log(request=request, action='delete', model_name='AccountingRule', object_id=pk, object_name=str(rule))
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = AccountingRuleSerializer(rule, data=request.data, partial=request.method == 'PATCH',
                                          context={'company': company})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    rule = serializer.save()
    return Response(AccountingRuleSerializer(rule).data)


# Read models
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def accounting_hierarchy(request):
    return Response(services.get_accounting_hierarchy())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ledger_preview(request):
    """Postings with running balances; ?date_from=&date_to= (YYYY-MM-DD)"""
    date_from = parse_date(request.query_params.get('date_from') or '')
    date_to = parse_date(request.query_params.get('date_to') or '')
    return Response(services.get_ledger_preview(date_from=date_from, date_to=date_to))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def financial_summary(request):
    return Response(services.get_financial_report_summary())


# Periods
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def period_list_create(request):
    if request.method == 'GET':
        return Response(services.get_accounting_periods())

    if not request.user.is_staff:
        return Response({'success': False, 'error': 'Only administrators can manage accounting periods'},
                        status=status.HTTP_403_FORBIDDEN)
    serializer = AccountingPeriodCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        period = services.create_accounting_period(
            serializer.validated_data['start_date'], serializer.validated_data['end_date'], request=request
        )
    except ServiceError as e:
        return action_error(e)
    return action_success({'period': services.serialize_period(period)}, status_code=status.HTTP_201_CREATED)


PERIOD_ACTIONS = {
    'close': services.close_accounting_period,
    'lock': services.lock_accounting_period,
    'reopen': services.reopen_accounting_period,
}


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def period_action(request, pk, action):
    """close / lock / reopen a period"""
    handler = PERIOD_ACTIONS.get(action)
    if handler is None:
        return Response({'success': False, 'error': f'Unknown action: {action}'}, status=status.HTTP_404_NOT_FOUND)
    try:
        period = handler(pk, request=request)
    except ServiceError as e:
        return action_error(e)
    return action_success({'period': services.serialize_period(period)})
