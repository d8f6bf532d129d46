import django_filters
from django.db.models import Q
from .models import Supplier


class SupplierFilter(django_filters.FilterSet):
    """Filters for the supplier directory"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.ChoiceFilter(choices=Supplier.STATUS_CHOICES)
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    min_rating = django_filters.NumberFilter(field_name='rating', lookup_expr='gte')

    class Meta:
        model = Supplier
        fields = ['search', 'status', 'category', 'min_rating']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(short_name__icontains=value) |
            Q(inn__startswith=value) |
            Q(email__icontains=value) |
            Q(description__icontains=value)
        )
