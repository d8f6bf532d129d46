import django_filters
from django.db.models import Q
from .models import Tender


class TenderFilter(django_filters.FilterSet):
    """Filters for the tender registry"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.ChoiceFilter(choices=Tender.STATUS_CHOICES)
    stage = django_filters.NumberFilter(field_name='stage_id', lookup_expr='exact')
    responsible = django_filters.NumberFilter(field_name='responsible_id', lookup_expr='exact')
    deadline_from = django_filters.DateFilter(field_name='submission_deadline', lookup_expr='gte')
    deadline_to = django_filters.DateFilter(field_name='submission_deadline', lookup_expr='lte')

    class Meta:
        model = Tender
        fields = ['search', 'status', 'stage', 'responsible', 'deadline_from', 'deadline_to']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(purchase_number__icontains=value) |
            Q(subject__icontains=value) |
            Q(customer__icontains=value)
        )
