import django_filters
from django.db.models import Q
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filter for the tenant's product list"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    active = django_filters.CharFilter(method='filter_active', label='Active')
    has_variants = django_filters.BooleanFilter(field_name='has_variants')

    class Meta:
        model = Product
        fields = ['search', 'category', 'active', 'has_variants']

    def filter_search(self, queryset, name, value):
        """Every word must appear in the name, SKU or category"""
        words = [w for w in (value or '').split() if w]
        for word in words:
            queryset = queryset.filter(
                Q(name__icontains=word) | Q(sku__icontains=word) | Q(category__icontains=word)
            )
        return queryset

    def filter_active(self, queryset, name, value):
        if value in ('true', '1'):
            return queryset.filter(is_active=True)
        if value in ('false', '0'):
            return queryset.filter(is_active=False)
        return queryset
