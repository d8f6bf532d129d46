import django_filters
from django.db.models import Q
from .models import AccountingDocument, Counterparty


class CounterpartyFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    is_active = django_filters.BooleanFilter(field_name='is_active')

    class Meta:
        model = Counterparty
        fields = ['search', 'is_active']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(short_name__icontains=value) |
            Q(inn__startswith=value)
        )


class DocumentFilter(django_filters.FilterSet):
    """Filters for the accounting document list"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    document_type = django_filters.ChoiceFilter(choices=AccountingDocument.TYPE_CHOICES)
    payment_status = django_filters.ChoiceFilter(choices=AccountingDocument.PAYMENT_STATUS_CHOICES)
    counterparty = django_filters.NumberFilter(field_name='counterparty_id', lookup_expr='exact')
    tender = django_filters.NumberFilter(field_name='tender_id', lookup_expr='exact')
    date_from = django_filters.DateFilter(field_name='date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='date', lookup_expr='lte')

    class Meta:
        model = AccountingDocument
        fields = ['search', 'document_type', 'payment_status', 'counterparty', 'tender', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(number__icontains=value) |
            Q(description__icontains=value) |
            Q(counterparty__name__icontains=value)
        )
