from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from django.db import models
from django.utils.text import slugify
from .models import User, Organization, Membership, AuditLog
from .money import to_money


class MoneyField(serializers.DecimalField):
    """Decimal input that also accepts "1 234,56" style strings"""

    def __init__(self, **kwargs):
        self.allow_negative = kwargs.pop('allow_negative', False)
        kwargs.setdefault('max_digits', 14)
        kwargs.setdefault('decimal_places', 2)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        if data == '' and self.allow_null:
            return None
        try:
            value = to_money(data, allow_negative=self.allow_negative)
        except ValueError as e:
            raise serializers.ValidationError(str(e))
        return super().to_internal_value(value)


class ScopedModelSerializer(serializers.ModelSerializer):
    """
    Serializer for organization-owned models.

    Related fields listed in ``scoped_fields`` only accept rows of the
    organization passed in ``context['organization']``.
    """
    serializer_field_mapping = {
        **serializers.ModelSerializer.serializer_field_mapping,
        models.DecimalField: MoneyField,
    }
    scoped_fields = ()

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        organization = self.context.get('organization')
        if organization is None:
            return
        for name in self.scoped_fields:
            field = self.fields.get(name)
            if field is not None and getattr(field, 'queryset', None) is not None:
                field.queryset = field.queryset.filter(organization=organization)


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['is_active', 'created_at', 'updated_at']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone']

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        user = User.objects.create(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        return user


class OrganizationSerializer(serializers.ModelSerializer):
    slug = serializers.SlugField(required=False, max_length=100)

    class Meta:
        model = Organization
        fields = ['id', 'name', 'slug', 'inn', 'tax_regime', 'has_employees', 'currency', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['is_active', 'created_at', 'updated_at']

    def validate_inn(self, value):
        if value and (not value.isdigit() or len(value) not in (10, 12)):
            raise serializers.ValidationError("INN must contain 10 or 12 digits")
        return value

    def validate(self, attrs):
        if not attrs.get('slug') and self.instance is None:
            base = slugify(attrs.get('name', '')) or 'organization'
            slug = base
            suffix = 1
            while Organization.objects.filter(slug=slug).exists():
                suffix += 1
                slug = f"{base}-{suffix}"
            attrs['slug'] = slug
        return attrs


class MembershipSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)
    organization = OrganizationSerializer(read_only=True)

    class Meta:
        model = Membership
        fields = ['id', 'user', 'organization', 'role', 'modes', 'is_default', 'created_at']


class MembershipCreateSerializer(serializers.ModelSerializer):
    username = serializers.CharField(write_only=True)

    class Meta:
        model = Membership
        fields = ['username', 'role', 'modes']

    def validate_username(self, value):
        try:
            return User.objects.get(username=value)
        except User.DoesNotExist:
            raise serializers.ValidationError("User not found")

    def validate_modes(self, value):
        unknown = [mode for mode in value if mode not in Membership.ALL_MODES]
        if unknown:
            raise serializers.ValidationError(f"Unknown modes: {', '.join(unknown)}")
        return value

    def validate_role(self, value):
        if value == 'owner':
            raise serializers.ValidationError("An organization has a single owner")
        return value


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'organization', 'action', 'model_name', 'object_id', 'object_name',
                  'changes', 'ip_address', 'created_at']
