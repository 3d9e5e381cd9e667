from rest_framework import serializers

from .models import CashSession


class CashSessionSerializer(serializers.ModelSerializer):
    point_of_sale_name = serializers.CharField(source='point_of_sale.name', read_only=True)
    branch = serializers.IntegerField(source='point_of_sale.branch_id', read_only=True)
    opened_by_name = serializers.CharField(source='opened_by.username', read_only=True, default=None)
    closed_by_name = serializers.CharField(source='closed_by.username', read_only=True, default=None)

    class Meta:
        model = CashSession
        fields = ['id', 'point_of_sale', 'point_of_sale_name', 'branch', 'status', 'opened_by', 'opened_by_name',
                  'closed_by', 'closed_by_name', 'reconciled_by', 'opening_amount', 'closing_amount',
                  'expected_amount', 'difference', 'opened_at', 'closed_at', 'reconciled_at', 'notes']
        read_only_fields = fields


class CashSessionOpenSerializer(serializers.Serializer):
    point_of_sale = serializers.IntegerField()
    opening_amount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=0)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class CashSessionCloseSerializer(serializers.Serializer):
    closing_amount = serializers.DecimalField(max_digits=15, decimal_places=2)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class CashSessionReconcileSerializer(serializers.Serializer):
    adjusted_balance = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

