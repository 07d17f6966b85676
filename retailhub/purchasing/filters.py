import django_filters
from django.db.models import Q
from .models import PurchaseInvoice
from .settlement import PAYMENT_STATUS_CHOICES


class PurchaseInvoiceFilter(django_filters.FilterSet):
    """Filters for the purchase invoice list"""
    supplier = django_filters.CharFilter(method='filter_supplier', label='Supplier ID or name')
    date_from = django_filters.DateFilter(field_name='invoice_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='invoice_date', lookup_expr='lte')
    payment_status = django_filters.ChoiceFilter(choices=PAYMENT_STATUS_CHOICES)
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = PurchaseInvoice
        fields = ['supplier', 'date_from', 'date_to', 'payment_status', 'search']

    def filter_supplier(self, queryset, name, value):
        value = value.strip()
        if value.isdigit():
            return queryset.filter(supplier_id=int(value))
        return queryset.filter(supplier_name__icontains=value)

    def filter_search(self, queryset, name, value):
        return queryset.filter(Q(invoice_number__icontains=value) | Q(supplier_name__icontains=value))
