from rest_framework import serializers
from .models import Customer, Supplier

PARTY_FIELDS = [
    'id', 'person_type', 'first_name', 'last_name', 'business_name', 'display_name',
    'document_type', 'document_number', 'email', 'phone', 'address', 'city',
    'credit_limit', 'current_balance', 'default_payment_term_days', 'notes',
    'is_active', 'created_at', 'updated_at'
]


class PartySerializer(serializers.ModelSerializer):
    """Validation shared by customers and suppliers"""
    display_name = serializers.CharField(read_only=True)

    def validate_first_name(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('First name is required')
        return value

    def validate_credit_limit(self, value):
        if value < 0:
            raise serializers.ValidationError('Credit limit cannot be negative')
        return value

    def validate_document_number(self, value):
        value = (value or '').strip() or None
        if value:
            others = self.Meta.model.objects.alive().filter(document_number=value)
            if self.instance is not None:
                others = others.exclude(pk=self.instance.pk)
            if others.exists():
                raise serializers.ValidationError('Another record already uses this document number')
        return value

    def validate(self, attrs):
        person_type = attrs.get('person_type', getattr(self.instance, 'person_type', 'NATURAL'))
        business_name = attrs.get('business_name', getattr(self.instance, 'business_name', ''))
        if person_type == 'COMPANY' and not (business_name or '').strip():
            raise serializers.ValidationError({'business_name': 'Business name is required for companies'})
        return attrs


class CustomerSerializer(PartySerializer):
    class Meta:
        model = Customer
        fields = PARTY_FIELDS
        # The balance is not editable through the form
        read_only_fields = ['current_balance', 'created_at', 'updated_at']


class SupplierSerializer(PartySerializer):
    class Meta:
        model = Supplier
        fields = PARTY_FIELDS + ['supplier_type', 'contact_person', 'bank_name', 'bank_account_type', 'bank_account_number']
        read_only_fields = ['current_balance', 'created_at', 'updated_at']
