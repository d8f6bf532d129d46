from rest_framework import serializers
from backoffice.core.serializers import MoneyField, ScopedModelSerializer
from .models import TenderStage, Tender
from .services import stages_for


class TenderStageSerializer(ScopedModelSerializer):
    is_system = serializers.BooleanField(read_only=True)

    class Meta:
        model = TenderStage
        fields = ['id', 'name', 'category', 'order', 'color', 'is_final', 'is_system', 'created_at']
        read_only_fields = ['created_at']


class TenderSerializer(ScopedModelSerializer):
    stage_name = serializers.CharField(source='stage.name', read_only=True, default=None)
    responsible_name = serializers.CharField(source='responsible.username', read_only=True, default=None)

    class Meta:
        model = Tender
        fields = ['id', 'purchase_number', 'subject', 'customer', 'method', 'platform', 'currency',
                  'nmck', 'our_price', 'contract_price', 'application_security', 'contract_security',
                  'purchase_cost', 'logistics_cost', 'other_costs', 'planned_profit',
                  'submission_deadline', 'auction_date', 'results_date',
                  'status', 'stage', 'stage_name', 'responsible', 'responsible_name', 'comment',
                  'created_at', 'updated_at']
        read_only_fields = ['status', 'created_at', 'updated_at']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        organization = self.context.get('organization')
        if organization is not None:
            self.fields['stage'].queryset = stages_for(organization)
            self.fields['responsible'].queryset = self.fields['responsible'].queryset.filter(
                memberships__organization=organization
            )

    def validate_purchase_number(self, value):
        organization = self.context.get('organization')
        queryset = Tender.objects.filter(organization=organization, purchase_number=value, deleted_at__isnull=True)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if organization is not None and queryset.exists():
            raise serializers.ValidationError("A tender with this purchase number already exists")
        return value

    def validate(self, attrs):
        instance = self.instance
        auction_date = attrs.get('auction_date', getattr(instance, 'auction_date', None))
        deadline = attrs.get('submission_deadline', getattr(instance, 'submission_deadline', None))
        if auction_date and deadline and auction_date < deadline:
            raise serializers.ValidationError({'auction_date': 'Auction date cannot be before the submission deadline'})
        nmck = attrs.get('nmck', getattr(instance, 'nmck', None))
        our_price = attrs.get('our_price', getattr(instance, 'our_price', None))
        if nmck and our_price is not None and our_price > nmck:
            raise serializers.ValidationError({'our_price': 'Our price cannot exceed the initial maximum price'})
        return attrs


class TenderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Tender.STATUS_CHOICES)
    contract_price = MoneyField(required=False, allow_null=True)
