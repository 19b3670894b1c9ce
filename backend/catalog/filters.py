import django_filters
from django.db.models import Q
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filter for delivery products using django-filter

    Query parameters use the storefront's camelCase names
    (brandId, productLineId, categoryId).
    """

    # Basic search - name, description, brand and product line names
    search = django_filters.CharFilter(method='filter_search', label='Search')

    brandId = django_filters.NumberFilter(field_name='brand_id', lookup_expr='exact')
    productLineId = django_filters.NumberFilter(field_name='product_line_id', lookup_expr='exact')
    categoryId = django_filters.NumberFilter(method='filter_category', label='Category ID')
    enabled = django_filters.BooleanFilter(field_name='enabled')

    # Products not attached to the hierarchy
    unassigned = django_filters.BooleanFilter(method='filter_unassigned', label='Unassigned')
    on_sale = django_filters.BooleanFilter(method='filter_on_sale', label='On Sale')
    in_stock = django_filters.BooleanFilter(method='filter_in_stock', label='In Stock')

    class Meta:
        model = Product
        fields = ['search', 'brandId', 'productLineId', 'categoryId', 'enabled',
                  'unassigned', 'on_sale', 'in_stock']

    def filter_search(self, queryset, name, value):
        """Every word must appear in the name, description, brand or product line name"""
        if not value or not value.strip():
            return queryset

        for word in value.split():
            queryset = queryset.filter(
                Q(name__icontains=word) |
                Q(description__icontains=word) |
                Q(brand__name__icontains=word) |
                Q(product_line__name__icontains=word)
            )
        return queryset.distinct()

    def filter_category(self, queryset, name, value):
        """Products reachable from a category through their brand or product line"""
        if value is None:
            return queryset
        return queryset.filter(
            Q(brand__category_id=value) | Q(product_line__brand__category_id=value)
        ).distinct()

    def filter_unassigned(self, queryset, name, value):
        if value is None:
            return queryset
        unassigned = Q(brand__isnull=True) & Q(product_line__isnull=True)
        return queryset.filter(unassigned) if value else queryset.exclude(unassigned)

    def filter_on_sale(self, queryset, name, value):
        if value is None:
            return queryset
        on_sale = Q(sale_price__isnull=False)
        return queryset.filter(on_sale) if value else queryset.exclude(on_sale)

    def filter_in_stock(self, queryset, name, value):
        if value is None:
            return queryset
        return queryset.filter(stock_quantity__gt=0) if value else queryset.filter(stock_quantity__lte=0)
