from django.utils import timezone
from rest_framework import serializers

from flowstore.transactions.models import PaymentMethod, Transaction, TransactionStatus
from flowstore.transactions.serializers import TransactionLineInputSerializer


class PurchaseLineInputSerializer(TransactionLineInputSerializer):
    """Purchase lines must name the variant that is received"""

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if attrs.get('variant') is None:
            raise serializers.ValidationError({'variant': 'A variant is required'})
        return attrs


class PurchaseOrderCreateSerializer(serializers.Serializer):
    supplier = serializers.IntegerField()
    storage = serializers.IntegerField(required=False, allow_null=True)
    expected_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    lines = PurchaseLineInputSerializer(many=True, allow_empty=False)


class ReceptionFromOrderSerializer(serializers.Serializer):
    storage = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    lines = PurchaseLineInputSerializer(many=True, allow_empty=False)


class DirectReceptionSerializer(serializers.Serializer):
    supplier = serializers.IntegerField()
    storage = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    lines = PurchaseLineInputSerializer(many=True, allow_empty=False)


class SupplierPaymentSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.display_name', read_only=True, default=None)
    reception_document_number = serializers.CharField(source='related_transaction.document_number',
                                                      read_only=True, default=None)
    payment_status = serializers.SerializerMethodField()
    is_overdue = serializers.SerializerMethodField()

    class Meta:
        model = Transaction
        fields = ['id', 'document_number', 'status', 'payment_status', 'supplier', 'supplier_name', 'branch',
                  'payment_method', 'payment_due_date', 'is_overdue', 'subtotal', 'tax_amount', 'discount_amount',
                  'total', 'related_transaction', 'reception_document_number', 'external_reference', 'notes',
                  'metadata', 'created_at']
        read_only_fields = fields

    def get_payment_status(self, obj):
        if obj.status == TransactionStatus.CANCELLED:
            return 'CANCELLED'
        return 'PENDING' if obj.status == TransactionStatus.DRAFT else 'PAID'

    def get_is_overdue(self, obj):
        return (obj.status == TransactionStatus.DRAFT and obj.payment_due_date is not None and
                obj.payment_due_date < timezone.localdate())


class SupplierPaymentPaySerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=[choice for choice in PaymentMethod.choices
                                                      if choice[0] != PaymentMethod.CREDIT])
    paid_on = serializers.DateField(required=False, allow_null=True)
    reference = serializers.CharField(required=False, allow_blank=True, default='')
