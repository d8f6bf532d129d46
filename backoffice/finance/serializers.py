from rest_framework import serializers
from backoffice.core.serializers import MoneyField, ScopedModelSerializer
from .models import Category, Account, Stash, StashTransfer, Transaction, Budget, ScheduledPayment
from .budgets import budget_usage
from .credit_cards import minimum_payment


class CategorySerializer(ScopedModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name', 'kind', 'color', 'is_active', 'created_at']
        read_only_fields = ['created_at']

    def validate_name(self, value):
        organization = self.context.get('organization')
        queryset = Category.objects.filter(organization=organization, name__iexact=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if organization is not None and queryset.exists():
            raise serializers.ValidationError("A category with this name already exists")
        return value


class StashSerializer(ScopedModelSerializer):
    debt = serializers.SerializerMethodField()

    class Meta:
        model = Stash
        fields = ['id', 'account', 'name', 'target_amount', 'balance', 'debt', 'created_at', 'updated_at']
        read_only_fields = ['account', 'balance', 'created_at', 'updated_at']

    def get_debt(self, obj):
        return str(obj.debt)


class AccountSerializer(ScopedModelSerializer):
    debt = serializers.SerializerMethodField()
    minimum_payment = serializers.SerializerMethodField()
    stash = StashSerializer(read_only=True)

    class Meta:
        model = Account
        fields = ['id', 'name', 'account_type', 'currency', 'balance',
                  'credit_limit', 'interest_rate', 'grace_period_days', 'min_payment_percent',
                  'min_payment_amount', 'statement_day', 'payment_due_day',
                  'debt', 'minimum_payment', 'stash', 'is_archived', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_debt(self, obj):
        return str(obj.debt)

    def get_minimum_payment(self, obj):
        return str(minimum_payment(obj)) if obj.is_credit_card else None

    def validate_payment_due_day(self, value):
        if value is not None and not 1 <= value <= 31:
            raise serializers.ValidationError("Day must be between 1 and 31")
        return value

    def validate_statement_day(self, value):
        return self.validate_payment_due_day(value)

    def validate(self, attrs):
        if self.instance is not None:
            # Balance moves only through transactions once the account exists
            if 'balance' in attrs and attrs['balance'] != self.instance.balance:
                raise serializers.ValidationError({'balance': 'Balance changes through transactions only'})
            if 'account_type' in attrs and attrs['account_type'] != self.instance.account_type:
                raise serializers.ValidationError({'account_type': 'Account type cannot be changed'})
        account_type = attrs.get('account_type', getattr(self.instance, 'account_type', 'card'))
        if account_type == 'credit_card':
            limit = attrs.get('credit_limit', getattr(self.instance, 'credit_limit', None))
            if not limit or limit <= 0:
                raise serializers.ValidationError({'credit_limit': 'Credit cards need a positive credit limit'})
            if self.instance is None and 'balance' not in attrs:
                attrs['balance'] = limit
        return attrs


class TransactionSerializer(ScopedModelSerializer):
    scoped_fields = ('account', 'category')
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    account_name = serializers.CharField(source='account.name', read_only=True)

    class Meta:
        model = Transaction
        fields = ['id', 'account', 'account_name', 'category', 'category_name', 'direction', 'amount',
                  'currency', 'occurred_at', 'note', 'counterparty', 'tags', 'import_batch',
                  'created_at', 'updated_at']
        read_only_fields = ['currency', 'import_batch', 'created_at', 'updated_at']

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero")
        return value

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
            raise serializers.ValidationError("Tags must be a list of strings")
        return value


class StashTransferSerializer(serializers.ModelSerializer):
    class Meta:
        model = StashTransfer
        fields = ['id', 'stash', 'direction', 'amount', 'transaction', 'created_at']


class AddFundsSerializer(serializers.Serializer):
    amount = MoneyField()
    note = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero")
        return value


class StashUpsertSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, max_length=100)
    target_amount = MoneyField(required=False)


class StashTransferRequestSerializer(AddFundsSerializer):
    direction = serializers.ChoiceField(choices=['to_stash', 'from_stash'])


class BudgetSerializer(ScopedModelSerializer):
    scoped_fields = ('category',)
    category_name = serializers.CharField(source='category.name', read_only=True)
    usage = serializers.SerializerMethodField()

    class Meta:
        model = Budget
        fields = ['id', 'category', 'category_name', 'name', 'period_start', 'period_end',
                  'limit_amount', 'carried_over', 'rollover', 'previous', 'usage',
                  'created_at', 'updated_at']
        read_only_fields = ['carried_over', 'previous', 'created_at', 'updated_at']

    def get_usage(self, obj):
        usage = budget_usage(obj)
        return {key: str(value) if not isinstance(value, str) else value for key, value in usage.items()}

    def validate_limit_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Limit must be greater than zero")
        return value

    def validate(self, attrs):
        start = attrs.get('period_start', getattr(self.instance, 'period_start', None))
        end = attrs.get('period_end', getattr(self.instance, 'period_end', None))
        if start and end and start > end:
            raise serializers.ValidationError({'period_end': 'Period end must not be before period start'})
        return attrs


class ScheduledPaymentSerializer(serializers.ModelSerializer):
    account_name = serializers.CharField(source='account.name', read_only=True)

    class Meta:
        model = ScheduledPayment
        fields = ['id', 'account', 'account_name', 'due_date', 'principal_amount', 'interest_amount',
                  'total_amount', 'status', 'paid_at', 'transaction', 'created_at']
        read_only_fields = fields


class PayScheduledPaymentSerializer(serializers.Serializer):
    amount = MoneyField(required=False, allow_null=True)
    source_account = serializers.IntegerField(required=False, allow_null=True)
    paid_at = serializers.DateField(required=False, allow_null=True)


class TransactionImportSerializer(serializers.Serializer):
    account = serializers.IntegerField()
    content = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    file = serializers.FileField(required=False)
    category_assignments = serializers.DictField(child=serializers.IntegerField(), required=False, default=dict)
    merges = serializers.ListField(child=serializers.DictField(), required=False, default=list)
    excluded_rows = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)

    def validate(self, attrs):
        if not attrs.get('content') and not attrs.get('file'):
            raise serializers.ValidationError("Provide a CSV file or its content")
        return attrs
