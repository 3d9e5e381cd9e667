from rest_framework import serializers
from .models import StockLevel


class StockLevelSerializer(serializers.ModelSerializer):
    sku = serializers.CharField(source='variant.sku', read_only=True)
    product_name = serializers.CharField(source='variant.product.name', read_only=True)
    storage_name = serializers.CharField(source='storage.name', read_only=True)
    branch = serializers.IntegerField(source='storage.branch_id', read_only=True)

    class Meta:
        model = StockLevel
        fields = ['id', 'variant', 'sku', 'product_name', 'storage', 'storage_name', 'branch', 'quantity', 'updated_at']
        read_only_fields = fields


class StockTransferSerializer(serializers.Serializer):
    variant = serializers.IntegerField()
    source_storage = serializers.IntegerField()
    target_storage = serializers.IntegerField(required=False, allow_null=True)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3)
    note = serializers.CharField(required=False, allow_blank=True, default='')


class StockAdjustmentSerializer(serializers.Serializer):
    variant = serializers.IntegerField()
    storage = serializers.IntegerField()
    target_quantity = serializers.DecimalField(max_digits=15, decimal_places=3)
    current_quantity = serializers.DecimalField(max_digits=15, decimal_places=3, required=False, allow_null=True)
    note = serializers.CharField(required=False, allow_blank=True, default='')
