from rest_framework import serializers
from .models import Branch, Storage, PointOfSale


class BranchSerializer(serializers.ModelSerializer):
    class Meta:
        model = Branch
        fields = ['id', 'name', 'code', 'address', 'phone', 'email', 'latitude', 'longitude',
                  'is_headquarters', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Branch name is required')
        return value


class StorageSerializer(serializers.ModelSerializer):
    branch_name = serializers.CharField(source='branch.name', read_only=True, default=None)

    class Meta:
        model = Storage
        fields = ['id', 'branch', 'branch_name', 'name', 'code', 'storage_type', 'category', 'capacity',
                  'location', 'is_default', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class PointOfSaleSerializer(serializers.ModelSerializer):
    branch_name = serializers.CharField(source='branch.name', read_only=True)
    default_price_list_name = serializers.CharField(source='default_price_list.name', read_only=True, default=None)

    class Meta:
        model = PointOfSale
        fields = ['id', 'branch', 'branch_name', 'name', 'code', 'device_id', 'default_price_list',
                  'default_price_list_name', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']
