from rest_framework import serializers
from .models import AccountingAccount, AccountingRule, AccountingPeriod


class AccountingAccountSerializer(serializers.ModelSerializer):
    parent_code = serializers.CharField(source='parent.code', read_only=True, default=None)

    class Meta:
        model = AccountingAccount
        fields = ['id', 'code', 'name', 'account_type', 'parent', 'parent_code', 'is_active', 'created_at', 'updated_at']

    def validate_parent(self, value):
        node = value
        while node is not None and self.instance is not None:
            if node.pk == self.instance.pk:
                raise serializers.ValidationError('An account cannot be its own ancestor')
            node = node.parent
        return value

    def validate_code(self, value):
        company = self.context.get('company')
        others = AccountingAccount.objects.filter(company=company, code=value)
        if self.instance is not None:
            others = others.exclude(pk=self.instance.pk)
        if others.exists():
            raise serializers.ValidationError('An account with this code already exists')
        return value


class AccountingRuleSerializer(serializers.ModelSerializer):
    debit_account_code = serializers.CharField(source='debit_account.code', read_only=True)
    credit_account_code = serializers.CharField(source='credit_account.code', read_only=True)

    class Meta:
        model = AccountingRule
        fields = ['id', 'name', 'applies_to', 'transaction_type', 'payment_method', 'tax', 'expense_category',
                  'debit_account', 'debit_account_code', 'credit_account', 'credit_account_code', 'priority',
                  'is_active', 'created_at', 'updated_at']

    def validate(self, attrs):
        company = self.context.get('company')
        for field in ('debit_account', 'credit_account'):
            account = attrs.get(field)
            if account is not None and company is not None and account.company_id != company.id:
                raise serializers.ValidationError({field: 'The account belongs to another company'})
        debit = attrs.get('debit_account', getattr(self.instance, 'debit_account', None))
        credit = attrs.get('credit_account', getattr(self.instance, 'credit_account', None))
        if debit is not None and credit is not None and debit.pk == credit.pk:
            raise serializers.ValidationError('Debit and credit accounts must be different')
        return attrs


class AccountingPeriodCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = AccountingPeriod
        fields = ['start_date', 'end_date']
