from django.db import models
from backend.core.utils import slugify_name


class CatalogNode(models.Model):
    """Common fields of the Category -> Brand -> ProductLine hierarchy"""
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    display_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    featured_product_ids = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify_name(self.name)
        super().save(*args, **kwargs)

    class Meta:
        abstract = True
        ordering = ['display_order', 'id']


class Category(CatalogNode):
    """Top level of the delivery catalog"""
    image = models.CharField(max_length=500, blank=True, null=True)

    class Meta(CatalogNode.Meta):
        db_table = 'delivery_categories'
        verbose_name_plural = 'categories'


class Brand(CatalogNode):
    """Brand, owned by exactly one category"""
    category = models.ForeignKey(Category, on_delete=models.CASCADE, related_name='brands')
    logo = models.CharField(max_length=500, blank=True, null=True)

    class Meta(CatalogNode.Meta):
        db_table = 'delivery_brands'


class ProductLine(CatalogNode):
    """Product line, owned by exactly one brand"""
    brand = models.ForeignKey(Brand, on_delete=models.CASCADE, related_name='product_lines')
    logo = models.CharField(max_length=500, blank=True, null=True)

    class Meta(CatalogNode.Meta):
        db_table = 'delivery_product_lines'


class Product(models.Model):
    """Sellable delivery product, optionally attached to a brand and/or product line"""
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True)
    image = models.CharField(max_length=500, blank=True, null=True)
    images = models.JSONField(default=list, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    sale_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    brand = models.ForeignKey(Brand, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    product_line = models.ForeignKey(ProductLine, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    badge = models.CharField(max_length=50, blank=True, null=True)
    display_order = models.IntegerField(default=0)
    stock_quantity = models.IntegerField(default=0)
    enabled = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def effective_price(self):
        """Price charged at checkout (sale price wins when set)"""
        return self.sale_price if self.sale_price is not None else self.price

    class Meta:
        db_table = 'delivery_products'
        ordering = ['display_order', 'id']
        indexes = [
            models.Index(fields=['enabled'], name='delivery_pr_enabled_3a1b7c_idx'),
            models.Index(fields=['brand', 'enabled'], name='delivery_pr_brand_i_5d2e8f_idx'),
            models.Index(fields=['product_line', 'enabled'], name='delivery_pr_product_7c4a1e_idx'),
        ]


class CategoryBanner(models.Model):
    """Promotional banner for a category on the storefront home page"""
    category = models.ForeignKey(Category, on_delete=models.CASCADE, related_name='banners')
    title = models.CharField(max_length=200, blank=True, null=True)
    subtitle = models.CharField(max_length=300, blank=True, null=True)
    image = models.CharField(max_length=500)
    button_text = models.CharField(max_length=50, blank=True, null=True, default='Shop Now')
    button_link = models.CharField(max_length=500, blank=True, null=True)
    display_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title or f'{self.category} banner'

    class Meta:
        db_table = 'delivery_category_banners'
        ordering = ['display_order', 'id']
