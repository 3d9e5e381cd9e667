from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, Company, Setting, AuditLog

ACCOUNTING_GROUP = 'Accounting'
ADMIN_GROUP = 'Admin'


class UserSerializer(serializers.ModelSerializer):
    groups = serializers.SlugRelatedField(slug_field='name', many=True, read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'groups',
                  'is_active', 'is_staff', 'is_superuser', 'created_at', 'updated_at']
        read_only_fields = ['is_superuser', 'created_at', 'updated_at']


class CurrentUserSerializer(UserSerializer):
    """The signed-in user plus the access flags the client builds its menus from"""
    is_admin = serializers.SerializerMethodField()
    can_access_accounting = serializers.SerializerMethodField()
    can_access_settings = serializers.SerializerMethodField()

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ['is_admin', 'can_access_accounting', 'can_access_settings']

    def _group_names(self, obj):
        return {group.name for group in obj.groups.all()}

    def get_is_admin(self, obj):
        return obj.is_superuser or obj.is_staff or ADMIN_GROUP in self._group_names(obj)

    def get_can_access_accounting(self, obj):
        return self.get_is_admin(obj) or ACCOUNTING_GROUP in self._group_names(obj)

    def get_can_access_settings(self, obj):
        return self.get_is_admin(obj)


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone']

    def validate(self, attrs):
        if attrs['password'] != attrs.pop('password_confirm'):
            raise serializers.ValidationError({'password': "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        return User.objects.create_user(**validated_data)


class CompanySerializer(serializers.ModelSerializer):
    class Meta:
        model = Company
        fields = ['id', 'name', 'tax_id', 'address', 'phone', 'email', 'default_currency', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_default_currency(self, value):
        value = value.strip().upper()
        if len(value) != 3 or not value.isalpha():
            raise serializers.ValidationError('Use a three-letter ISO currency code')
        return value


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']

    def validate_key(self, value):
        return value.strip().lower()


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'username', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'sku', 'changes', 'ip_address', 'created_at']
