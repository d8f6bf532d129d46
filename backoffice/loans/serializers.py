from rest_framework import serializers
from backoffice.core.serializers import MoneyField, ScopedModelSerializer
from .models import Loan, LoanPayment


class LoanPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = LoanPayment
        fields = ['id', 'number', 'due_date', 'principal_part', 'interest_part', 'total',
                  'remaining_after', 'status', 'paid_on', 'transaction']
        read_only_fields = fields


class LoanSerializer(ScopedModelSerializer):
    class Meta:
        model = Loan
        fields = ['id', 'name', 'bank', 'contract_number', 'currency', 'principal_amount', 'interest_rate',
                  'payment_type', 'term_months', 'issue_date', 'end_date', 'monthly_payment',
                  'next_payment_date', 'principal_paid', 'interest_paid', 'remaining_principal',
                  'status', 'notes', 'created_at', 'updated_at']
        read_only_fields = ['monthly_payment', 'next_payment_date', 'principal_paid', 'interest_paid',
                            'remaining_principal', 'status', 'created_at', 'updated_at']

    def validate_principal_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Principal must be greater than zero")
        return value

    def validate_interest_rate(self, value):
        if value > 100:
            raise serializers.ValidationError("Annual rate must not exceed 100%")
        return value

    def validate_term_months(self, value):
        if value is not None and not 1 <= value <= 600:
            raise serializers.ValidationError("Term must be between 1 and 600 months")
        return value

    def validate(self, attrs):
        instance = self.instance
        term = attrs.get('term_months', getattr(instance, 'term_months', None))
        issue_date = attrs.get('issue_date', getattr(instance, 'issue_date', None))
        end_date = attrs.get('end_date', getattr(instance, 'end_date', None))
        if not term and not end_date:
            raise serializers.ValidationError({'term_months': 'Provide term_months or end_date'})
        if issue_date and end_date and end_date <= issue_date:
            raise serializers.ValidationError({'end_date': 'End date must be after the issue date'})
        return attrs

    def update(self, instance, validated_data):
        # A new term moves the end date and vice versa
        if 'term_months' in validated_data and 'end_date' not in validated_data:
            validated_data['end_date'] = None
        elif 'end_date' in validated_data and 'term_months' not in validated_data:
            validated_data['term_months'] = None
        return super().update(instance, validated_data)


class LoanRepaymentSerializer(serializers.Serializer):
    amount = MoneyField()
    paid_on = serializers.DateField(required=False, allow_null=True)
    account = serializers.IntegerField(required=False, allow_null=True)

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero")
        return value


class LoanCalculatorSerializer(serializers.Serializer):
    principal_amount = MoneyField()
    interest_rate = MoneyField(max_digits=6)
    term_months = serializers.IntegerField(min_value=1, max_value=600)
    payment_type = serializers.ChoiceField(choices=Loan.PAYMENT_TYPE_CHOICES, default='annuity')
    issue_date = serializers.DateField()
