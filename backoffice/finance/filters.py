import django_filters
from django.db.models import Q
from .models import Transaction


class TransactionFilter(django_filters.FilterSet):
    """Filters for the transaction list and CSV export"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    account = django_filters.NumberFilter(field_name='account_id', lookup_expr='exact')
    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    uncategorized = django_filters.BooleanFilter(field_name='category', lookup_expr='isnull')
    direction = django_filters.ChoiceFilter(choices=Transaction.DIRECTION_CHOICES)
    date_from = django_filters.DateFilter(field_name='occurred_at', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='occurred_at', lookup_expr='lte')
    min_amount = django_filters.NumberFilter(field_name='amount', lookup_expr='gte')
    max_amount = django_filters.NumberFilter(field_name='amount', lookup_expr='lte')
    import_batch = django_filters.CharFilter(field_name='import_batch', lookup_expr='exact')

    class Meta:
        model = Transaction
        fields = ['search', 'account', 'category', 'uncategorized', 'direction', 'date_from', 'date_to',
                  'min_amount', 'max_amount', 'import_batch']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(note__icontains=value) |
            Q(counterparty__icontains=value) |
            Q(category__name__icontains=value)
        )
