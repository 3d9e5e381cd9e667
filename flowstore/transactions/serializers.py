from rest_framework import serializers

from flowstore.cash.models import CashSession
from flowstore.catalog.models import Product, ProductVariant, Tax, Unit
from flowstore.expenses.models import CostCenter, ExpenseCategory
from flowstore.locations.models import Branch, PointOfSale, Storage
from flowstore.parties.models import Customer, Supplier
from .models import Transaction, TransactionLine, TransactionType, TransactionStatus, PaymentMethod

# Types written straight through the transactions endpoint; the rest have their own operations
DIRECT_TYPES = [TransactionType.SALE, TransactionType.PAYMENT_IN, TransactionType.PAYMENT_OUT]


class TransactionLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = TransactionLine
        fields = ['id', 'line_number', 'product', 'variant', 'tax', 'product_name', 'product_sku', 'variant_name',
                  'quantity', 'quantity_in_base', 'unit_of_measure', 'unit_conversion_factor', 'unit_price',
                  'unit_cost', 'discount_percentage', 'discount_amount', 'tax_rate', 'tax_amount', 'subtotal',
                  'total', 'notes']
        read_only_fields = fields


class TransactionListSerializer(serializers.ModelSerializer):
    branch_name = serializers.CharField(source='branch.name', read_only=True, default=None)
    storage_name = serializers.CharField(source='storage.name', read_only=True, default=None)
    customer_name = serializers.CharField(source='customer.display_name', read_only=True, default=None)
    supplier_name = serializers.CharField(source='supplier.display_name', read_only=True, default=None)
    user_name = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = Transaction
        fields = ['id', 'document_number', 'transaction_type', 'status', 'branch', 'branch_name', 'storage',
                  'storage_name', 'customer', 'customer_name', 'supplier', 'supplier_name', 'subtotal',
                  'tax_amount', 'discount_amount', 'total', 'payment_method', 'user', 'user_name', 'created_at']
        read_only_fields = fields


class TransactionSerializer(TransactionListSerializer):
    """Full document with its lines"""
    lines = TransactionLineSerializer(many=True, read_only=True)
    target_storage_name = serializers.CharField(source='target_storage.name', read_only=True, default=None)
    related_document_number = serializers.CharField(source='related_transaction.document_number', read_only=True, default=None)

    class Meta(TransactionListSerializer.Meta):
        fields = TransactionListSerializer.Meta.fields + [
            'point_of_sale', 'cash_session', 'target_storage', 'target_storage_name', 'expense_category', 'cost_center',
            'amount_paid', 'change_amount', 'payment_due_date', 'related_transaction', 'related_document_number',
            'external_reference', 'notes', 'metadata', 'updated_at', 'lines',
        ]
        read_only_fields = fields


class TransactionLineInputSerializer(serializers.Serializer):
    variant = serializers.PrimaryKeyRelatedField(queryset=ProductVariant.objects.alive(), required=False, allow_null=True)
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.alive(), required=False, allow_null=True)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3)
    unit_price = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, allow_null=True, default=None)
    unit_cost = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, allow_null=True)
    discount_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, default=0)
    discount_amount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, allow_null=True)
    tax = serializers.PrimaryKeyRelatedField(queryset=Tax.objects.filter(is_active=True), required=False, allow_null=True)
    unit = serializers.PrimaryKeyRelatedField(queryset=Unit.objects.all(), required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        variant = attrs.get('variant')
        product = attrs.get('product')
        if variant is None and product is None:
            raise serializers.ValidationError('A product or variant is required')
        if variant is not None and product is not None and variant.product_id != product.id:
            raise serializers.ValidationError('The variant does not belong to the product')
        if attrs['quantity'] <= 0:
            raise serializers.ValidationError({'quantity': 'Quantity must be greater than zero'})
        if attrs.get('discount_percentage') and not 0 <= attrs['discount_percentage'] <= 100:
            raise serializers.ValidationError({'discount_percentage': 'Must be between 0 and 100'})
        return attrs


class TransactionCreateSerializer(serializers.Serializer):
    transaction_type = serializers.ChoiceField(choices=DIRECT_TYPES)
    status = serializers.ChoiceField(choices=[TransactionStatus.DRAFT, TransactionStatus.CONFIRMED],
                                     default=TransactionStatus.CONFIRMED)
    branch = serializers.PrimaryKeyRelatedField(queryset=Branch.objects.alive(), required=False, allow_null=True)
    point_of_sale = serializers.PrimaryKeyRelatedField(queryset=PointOfSale.objects.alive(), required=False, allow_null=True)
    cash_session = serializers.PrimaryKeyRelatedField(queryset=CashSession.objects.all(), required=False, allow_null=True)
    storage = serializers.PrimaryKeyRelatedField(queryset=Storage.objects.active(), required=False, allow_null=True)
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.alive(), required=False, allow_null=True)
    supplier = serializers.PrimaryKeyRelatedField(queryset=Supplier.objects.alive(), required=False, allow_null=True)
    expense_category = serializers.PrimaryKeyRelatedField(queryset=ExpenseCategory.objects.alive(), required=False, allow_null=True)
    cost_center = serializers.PrimaryKeyRelatedField(queryset=CostCenter.objects.alive(), required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, required=False, allow_null=True)
    amount_paid = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=0)
    payment_due_date = serializers.DateField(required=False, allow_null=True)
    discount_amount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=0)
    subtotal = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, allow_null=True)
    tax_amount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, allow_null=True)
    related_transaction = serializers.PrimaryKeyRelatedField(queryset=Transaction.objects.all(), required=False, allow_null=True)
    external_reference = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    metadata = serializers.JSONField(required=False, default=dict)
    lines = TransactionLineInputSerializer(many=True, required=False, default=list)

    def validate(self, attrs):
        transaction_type = attrs['transaction_type']
        if transaction_type == TransactionType.SALE:
            if not attrs.get('lines'):
                raise serializers.ValidationError({'lines': 'At least one line is required'})
            if attrs.get('storage') is None:
                raise serializers.ValidationError({'storage': 'A storage is required for sales'})
        else:
            if attrs.get('lines'):
                raise serializers.ValidationError({'lines': 'Payments do not carry lines'})
            if not attrs.get('subtotal') or attrs['subtotal'] <= 0:
                raise serializers.ValidationError({'subtotal': 'The amount must be greater than zero'})
        storage = attrs.get('storage')
        if storage is not None and attrs.get('branch') is None:
            attrs['branch'] = storage.branch
        return attrs


class TransactionCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')
