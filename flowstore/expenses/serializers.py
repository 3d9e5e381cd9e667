from rest_framework import serializers

from flowstore.transactions.models import PaymentMethod, Transaction
from .models import ExpenseCategory, CostCenter


class ExpenseCategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ExpenseCategory
        fields = ['id', 'code', 'name', 'description', 'is_active', 'created_at', 'updated_at']


class CostCenterSerializer(serializers.ModelSerializer):
    branch_name = serializers.CharField(source='branch.name', read_only=True, default=None)

    class Meta:
        model = CostCenter
        fields = ['id', 'code', 'name', 'branch', 'branch_name', 'parent', 'description', 'is_active',
                  'created_at', 'updated_at']

    def validate_parent(self, value):
        node = value
        while node is not None and self.instance is not None:
            if node.pk == self.instance.pk:
                raise serializers.ValidationError('A cost center cannot be its own ancestor')
            node = node.parent
        return value


class OperatingExpenseCreateSerializer(serializers.Serializer):
    expense_category = serializers.IntegerField()
    cost_center = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=15, decimal_places=2)
    tax_amount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=0)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, required=False, allow_null=True)
    supplier = serializers.IntegerField(required=False, allow_null=True)
    payment_due_date = serializers.DateField(required=False, allow_null=True)
    external_reference = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class OperatingExpenseSerializer(serializers.ModelSerializer):
    expense_category_name = serializers.CharField(source='expense_category.name', read_only=True, default=None)
    cost_center_name = serializers.CharField(source='cost_center.name', read_only=True, default=None)
    branch_name = serializers.CharField(source='branch.name', read_only=True, default=None)

    class Meta:
        model = Transaction
        fields = ['id', 'document_number', 'status', 'expense_category', 'expense_category_name', 'cost_center',
                  'cost_center_name', 'branch', 'branch_name', 'supplier', 'subtotal', 'tax_amount', 'total',
                  'payment_method', 'payment_due_date', 'external_reference', 'notes', 'created_at']
        read_only_fields = fields
