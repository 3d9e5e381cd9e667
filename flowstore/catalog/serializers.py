from rest_framework import serializers
from .models import Category, Unit, Tax, Product, ProductVariant


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name', 'parent', 'description', 'is_active', 'created_at', 'updated_at']

    def validate_parent(self, value):
        # Walk up from the new parent; reaching this category means a cycle
        node = value
        while node is not None and self.instance is not None:
            if node.pk == self.instance.pk:
                raise serializers.ValidationError('A category cannot be its own ancestor')
            node = node.parent
        return value


class UnitSerializer(serializers.ModelSerializer):
    class Meta:
        model = Unit
        fields = ['id', 'name', 'symbol', 'conversion_factor', 'is_base', 'is_active', 'created_at', 'updated_at']

    def validate_conversion_factor(self, value):
        if value <= 0:
            raise serializers.ValidationError('Conversion factor must be greater than zero')
        return value


class TaxSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tax
        fields = ['id', 'name', 'code', 'rate', 'is_default', 'is_active', 'created_at', 'updated_at']

    def validate_rate(self, value):
        if value < 0 or value > 100:
            raise serializers.ValidationError('Rate must be between 0 and 100')
        return value


class ProductVariantSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    unit_symbol = serializers.CharField(source='unit.symbol', read_only=True, default=None)

    class Meta:
        model = ProductVariant
        fields = ['id', 'product', 'product_name', 'sku', 'barcode', 'attribute_values', 'unit', 'unit_symbol',
                  'base_cost', 'base_price', 'pmp', 'track_inventory', 'minimum_stock', 'maximum_stock',
                  'reorder_point', 'taxes', 'is_active', 'created_at', 'updated_at']
        # PMP only moves through confirmed purchases
        read_only_fields = ['pmp', 'created_at', 'updated_at']

    def validate(self, attrs):
        for field in ('base_cost', 'base_price', 'minimum_stock', 'maximum_stock', 'reorder_point'):
            value = attrs.get(field)
            if value is not None and value < 0:
                raise serializers.ValidationError({field: 'Must not be negative'})
        minimum = attrs.get('minimum_stock', getattr(self.instance, 'minimum_stock', None))
        maximum = attrs.get('maximum_stock', getattr(self.instance, 'maximum_stock', None))
        if minimum and maximum and maximum < minimum:
            raise serializers.ValidationError({'maximum_stock': 'Maximum stock cannot be below minimum stock'})
        return attrs


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    variants = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'brand', 'category', 'category_name', 'product_type',
                  'is_active', 'variants', 'created_at', 'updated_at']

    def get_variants(self, obj):
        return ProductVariantSerializer(obj.variants.alive(), many=True).data
