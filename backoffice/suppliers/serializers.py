import re

from rest_framework import serializers
from backoffice.core.serializers import ScopedModelSerializer
from .import_service import FIELDS
from .models import Supplier, SupplierImport

INN_RE = re.compile(r'^(\d{10}|\d{12})$')


class SupplierSerializer(ScopedModelSerializer):
    class Meta:
        model = Supplier
        fields = ['id', 'name', 'short_name', 'inn', 'kpp', 'phone', 'email', 'website', 'address',
                  'category', 'status', 'rating', 'tags', 'description', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_inn(self, value):
        if value and not INN_RE.match(value):
            raise serializers.ValidationError("INN must contain 10 or 12 digits")
        return value

    def validate_rating(self, value):
        if value is not None and value > 5:
            raise serializers.ValidationError("Rating must be between 0 and 5")
        return value

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
            raise serializers.ValidationError("Tags must be a list of strings")
        return [tag.strip() for tag in value if tag.strip()]

    def validate(self, attrs):
        organization = self.context.get('organization')
        inn = attrs.get('inn')
        if organization is not None and inn:
            queryset = Supplier.objects.filter(organization=organization, inn=inn, deleted_at__isnull=True)
            if self.instance is not None:
                queryset = queryset.exclude(pk=self.instance.pk)
            if queryset.exists():
                raise serializers.ValidationError({'inn': 'A supplier with this INN already exists'})
        return attrs


class SupplierImportSerializer(serializers.ModelSerializer):
    class Meta:
        model = SupplierImport
        fields = ['id', 'file_name', 'status', 'total_rows', 'created_count', 'updated_count',
                  'duplicate_count', 'error_count', 'errors', 'column_mapping', 'options',
                  'started_at', 'completed_at', 'created_at']
        read_only_fields = fields


class SupplierImportRequestSerializer(serializers.Serializer):
    content = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    file = serializers.FileField(required=False)
    file_name = serializers.CharField(required=False, max_length=255)
    column_mapping = serializers.DictField(child=serializers.CharField(), required=False)
    update_existing = serializers.BooleanField(default=False)
    skip_duplicates = serializers.BooleanField(default=True)
    default_status = serializers.ChoiceField(choices=Supplier.STATUS_CHOICES, default='active')

    def validate_column_mapping(self, value):
        unknown = sorted(set(value) - set(FIELDS))
        if unknown:
            raise serializers.ValidationError(f"Unknown fields: {', '.join(unknown)}")
        return value

    def validate(self, attrs):
        if not attrs.get('content') and not attrs.get('file'):
            raise serializers.ValidationError("Provide a CSV file or its content")
        return attrs
