from rest_framework import serializers
from backoffice.core.serializers import MoneyField, ScopedModelSerializer
from .models import InvestmentSource, Investment, InvestmentReturn


class InvestmentSourceSerializer(ScopedModelSerializer):
    class Meta:
        model = InvestmentSource
        fields = ['id', 'source_type', 'name', 'contact_person', 'phone', 'email', 'inn',
                  'default_interest_rate', 'default_period_days', 'is_active', 'notes', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class InvestmentReturnSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvestmentReturn
        fields = ['id', 'number', 'scheduled_date', 'principal_amount', 'interest_amount', 'total_amount',
                  'paid_amount', 'paid_date', 'status']
        read_only_fields = fields


class InvestmentSerializer(ScopedModelSerializer):
    scoped_fields = ('source', 'tender')
    source_name = serializers.CharField(source='source.name', read_only=True)
    number = serializers.CharField(max_length=30, required=False, allow_blank=True)

    class Meta:
        model = Investment
        fields = ['id', 'source', 'source_name', 'tender', 'number', 'investment_date', 'due_date', 'period_days',
                  'principal', 'interest_rate', 'interest_type', 'schedule_type', 'interest_amount',
                  'total_return', 'returned_principal', 'returned_interest', 'tender_total_cost',
                  'own_funds_amount', 'penalty_rate', 'status', 'purpose', 'notes', 'created_at', 'updated_at']
        read_only_fields = ['period_days', 'interest_amount', 'total_return', 'returned_principal',
                            'returned_interest', 'status', 'created_at', 'updated_at']

    def validate_principal(self, value):
        if value <= 0:
            raise serializers.ValidationError("Principal must be greater than zero")
        return value

    def validate_interest_rate(self, value):
        if value > 1000:
            raise serializers.ValidationError("Rate must not exceed 1000%")
        return value

    def validate(self, attrs):
        instance = self.instance
        investment_date = attrs.get('investment_date', getattr(instance, 'investment_date', None))
        due_date = attrs.get('due_date', getattr(instance, 'due_date', None))
        if investment_date and due_date and due_date <= investment_date:
            raise serializers.ValidationError({'due_date': 'Due date must be after the investment date'})

        if 'number' in attrs and not attrs['number'].strip():
            attrs.pop('number')

        organization = self.context.get('organization')
        number = attrs.get('number')
        if organization is not None and number:
            queryset = Investment.objects.filter(organization=organization, number=number)
            if instance is not None:
                queryset = queryset.exclude(pk=instance.pk)
            if queryset.exists():
                raise serializers.ValidationError({'number': 'An investment with this number already exists'})
        return attrs


class InvestmentReturnRequestSerializer(serializers.Serializer):
    amount = MoneyField()
    paid_on = serializers.DateField(required=False, allow_null=True)
    account = serializers.IntegerField(required=False, allow_null=True)

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero")
        return value


class InvestmentCalculatorSerializer(serializers.Serializer):
    principal = MoneyField()
    interest_rate = MoneyField(max_digits=6)
    interest_type = serializers.ChoiceField(choices=Investment.INTEREST_TYPE_CHOICES, default='annual')
    schedule_type = serializers.ChoiceField(choices=Investment.SCHEDULE_TYPE_CHOICES, default='single')
    investment_date = serializers.DateField()
    due_date = serializers.DateField()
    penalty_days = serializers.IntegerField(min_value=0, default=0)

    def validate(self, attrs):
        if attrs['due_date'] <= attrs['investment_date']:
            raise serializers.ValidationError({'due_date': 'Due date must be after the investment date'})
        return attrs
