from django.contrib import admin
from .models import Category, Brand, ProductLine, Product, CategoryBanner


class BrandInline(admin.TabularInline):
    model = Brand
    fields = ['name', 'slug', 'display_order', 'is_active']
    readonly_fields = ['slug']
    extra = 0
    ordering = ['display_order', 'id']


class ProductLineInline(admin.TabularInline):
    model = ProductLine
    fields = ['name', 'slug', 'display_order', 'is_active']
    readonly_fields = ['slug']
    extra = 0
    ordering = ['display_order', 'id']


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'display_order', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    list_editable = ['display_order', 'is_active']
    search_fields = ['name', 'slug']
    ordering = ['display_order', 'id']
    inlines = [BrandInline]


@admin.register(Brand)
class BrandAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'category', 'display_order', 'is_active', 'created_at']
    list_filter = ['is_active', 'category']
    search_fields = ['name', 'slug', 'category__name']
    ordering = ['category', 'display_order', 'id']
    inlines = [ProductLineInline]


@admin.register(ProductLine)
class ProductLineAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'brand', 'display_order', 'is_active', 'created_at']
    list_filter = ['is_active', 'brand__category']
    search_fields = ['name', 'slug', 'brand__name']
    ordering = ['brand', 'display_order', 'id']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'brand', 'product_line', 'price', 'sale_price', 'stock_quantity', 'enabled', 'created_at']
    list_filter = ['enabled', 'brand', 'product_line', 'created_at']
    search_fields = ['name', 'description', 'brand__name', 'product_line__name']
    ordering = ['display_order', 'id']
    readonly_fields = ['created_at', 'updated_at']
    list_select_related = ['brand', 'product_line']


@admin.register(CategoryBanner)
class CategoryBannerAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'category', 'display_order', 'is_active', 'updated_at']
    list_filter = ['is_active', 'category']
    list_editable = ['display_order', 'is_active']
    search_fields = ['title', 'subtitle', 'category__name']
    ordering = ['display_order', 'id']
