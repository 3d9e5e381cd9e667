from rest_framework import serializers
from flowstore.catalog.models import Product, ProductVariant, Tax
from .models import PriceList, PriceListItem


class PriceListSerializer(serializers.ModelSerializer):
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = PriceList
        fields = ['id', 'name', 'code', 'price_list_type', 'currency', 'valid_from', 'valid_until', 'priority',
                  'is_default', 'is_active', 'description', 'item_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_item_count(self, obj):
        return obj.items.alive().count()

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Price list name is required')
        return value


class PriceListItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    variant_sku = serializers.CharField(source='variant.sku', read_only=True, default=None)

    class Meta:
        model = PriceListItem
        fields = ['id', 'price_list', 'product', 'product_name', 'variant', 'variant_sku', 'net_price',
                  'gross_price', 'min_price', 'discount_percentage', 'taxes', 'created_at', 'updated_at']


class PriceListItemWriteSerializer(serializers.Serializer):
    """Input for setting a price: either net_price or gross_price"""
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.alive())
    variant = serializers.PrimaryKeyRelatedField(queryset=ProductVariant.objects.alive(), required=False, allow_null=True)
    net_price = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, allow_null=True, min_value=0)
    gross_price = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, allow_null=True, min_value=0)
    min_price = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, allow_null=True, min_value=0)
    discount_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, min_value=0, max_value=100)
    taxes = serializers.PrimaryKeyRelatedField(queryset=Tax.objects.filter(is_active=True), many=True, required=False)

    def validate(self, attrs):
        if attrs.get('net_price') is None and attrs.get('gross_price') is None:
            raise serializers.ValidationError('Either net_price or gross_price is required')
        return attrs
