import re

from rest_framework import serializers
from backoffice.core.serializers import MoneyField, ScopedModelSerializer
from .models import Counterparty, AccountingDocument, KudirEntry, TaxPayment

INN_RE = re.compile(r'^(\d{10}|\d{12})$')
MIN_YEAR = 2000
MAX_YEAR = 2100


class CounterpartySerializer(ScopedModelSerializer):
    class Meta:
        model = Counterparty
        fields = ['id', 'name', 'short_name', 'inn', 'kpp', 'address', 'phone', 'email', 'is_active',
                  'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_inn(self, value):
        if value and not INN_RE.match(value):
            raise serializers.ValidationError("INN must contain 10 or 12 digits")
        return value


class AccountingDocumentSerializer(ScopedModelSerializer):
    scoped_fields = ('counterparty', 'tender')
    counterparty_name = serializers.CharField(source='counterparty.name', read_only=True, default=None)

    class Meta:
        model = AccountingDocument
        fields = ['id', 'document_type', 'number', 'date', 'total_amount', 'vat_amount',
                  'payment_status', 'paid_amount', 'payment_date',
                  'counterparty', 'counterparty_name', 'tender', 'description', 'created_at', 'updated_at']
        read_only_fields = ['payment_status', 'paid_amount', 'payment_date', 'created_at', 'updated_at']

    def validate(self, attrs):
        instance = self.instance
        total = attrs.get('total_amount', getattr(instance, 'total_amount', None))
        vat = attrs.get('vat_amount', getattr(instance, 'vat_amount', None))
        if total is not None and vat is not None and vat > total:
            raise serializers.ValidationError({'vat_amount': 'VAT cannot exceed the document total'})
        return attrs


class DocumentPaymentSerializer(serializers.Serializer):
    amount = MoneyField(required=False, allow_null=True)
    payment_date = serializers.DateField(required=False, allow_null=True)

    def validate_amount(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero")
        return value


class KudirEntrySerializer(ScopedModelSerializer):
    scoped_fields = ('document', 'counterparty', 'tender')
    counterparty_name = serializers.CharField(source='counterparty.name', read_only=True, default=None)
    document_number = serializers.CharField(source='document.number', read_only=True, default=None)

    class Meta:
        model = KudirEntry
        fields = ['id', 'entry_number', 'entry_date', 'description', 'income', 'expense',
                  'document', 'document_number', 'counterparty', 'counterparty_name', 'tender', 'created_at']
        read_only_fields = ['entry_number', 'created_at']
        extra_kwargs = {
            'income': {'required': False},
            'expense': {'required': False},
        }


class TaxPaymentSerializer(ScopedModelSerializer):
    scoped_fields = ('document',)

    class Meta:
        model = TaxPayment
        fields = ['id', 'tax_type', 'tax_name', 'period', 'due_date', 'amount', 'paid_amount', 'paid_date',
                  'status', 'notes', 'document', 'created_at', 'updated_at']
        read_only_fields = ['paid_amount', 'paid_date', 'created_at', 'updated_at']
        extra_kwargs = {'tax_name': {'required': False}}


class TaxPaymentUpdateSerializer(ScopedModelSerializer):
    """Editable part of a tax payment; paying goes through its own endpoint"""

    class Meta:
        model = TaxPayment
        fields = ['tax_name', 'period', 'due_date', 'amount', 'status', 'notes']

    def validate_status(self, value):
        if value == 'paid':
            raise serializers.ValidationError("Use the pay endpoint to mark a payment as paid")
        return value


class TaxPayRequestSerializer(serializers.Serializer):
    paid_amount = MoneyField()
    paid_date = serializers.DateField(required=False, allow_null=True)
    document = serializers.IntegerField(required=False, allow_null=True)


class KudirSyncSerializer(serializers.Serializer):
    year = serializers.IntegerField(min_value=MIN_YEAR, max_value=MAX_YEAR, required=False)


class TaxGenerateSerializer(serializers.Serializer):
    year = serializers.IntegerField(min_value=MIN_YEAR, max_value=MAX_YEAR)
    tax_types = serializers.ListField(
        child=serializers.ChoiceField(choices=TaxPayment.TAX_TYPE_CHOICES), required=False, allow_empty=False,
    )


class SalarySerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    salary = MoneyField()


class EmployeeInsuranceSerializer(serializers.Serializer):
    employees = SalarySerializer(many=True, allow_empty=False)
