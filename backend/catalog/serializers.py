from rest_framework import serializers
from .models import Category, Brand, ProductLine, Product, CategoryBanner


# Read serializers (camelCase wire format)

class CategorySerializer(serializers.ModelSerializer):
    displayOrder = serializers.IntegerField(source='display_order', read_only=True)
    isActive = serializers.BooleanField(source='is_active', read_only=True)
    featuredProductIds = serializers.JSONField(source='featured_product_ids', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Category
        fields = ['id', 'name', 'slug', 'image', 'displayOrder', 'isActive',
                  'featuredProductIds', 'createdAt', 'updatedAt']


class BrandSerializer(serializers.ModelSerializer):
    categoryId = serializers.IntegerField(source='category_id', read_only=True)
    displayOrder = serializers.IntegerField(source='display_order', read_only=True)
    isActive = serializers.BooleanField(source='is_active', read_only=True)
    featuredProductIds = serializers.JSONField(source='featured_product_ids', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Brand
        fields = ['id', 'name', 'slug', 'categoryId', 'logo', 'displayOrder', 'isActive',
                  'featuredProductIds', 'createdAt', 'updatedAt']


class ProductLineSerializer(serializers.ModelSerializer):
    brandId = serializers.IntegerField(source='brand_id', read_only=True)
    displayOrder = serializers.IntegerField(source='display_order', read_only=True)
    isActive = serializers.BooleanField(source='is_active', read_only=True)
    featuredProductIds = serializers.JSONField(source='featured_product_ids', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = ProductLine
        fields = ['id', 'name', 'slug', 'brandId', 'logo', 'displayOrder', 'isActive',
                  'featuredProductIds', 'createdAt', 'updatedAt']


class ProductSerializer(serializers.ModelSerializer):
    salePrice = serializers.DecimalField(source='sale_price', max_digits=10, decimal_places=2, read_only=True)
    brandId = serializers.IntegerField(source='brand_id', read_only=True)
    productLineId = serializers.IntegerField(source='product_line_id', read_only=True)
    brandName = serializers.SerializerMethodField()
    productLineName = serializers.SerializerMethodField()
    displayOrder = serializers.IntegerField(source='display_order', read_only=True)
    stockQuantity = serializers.IntegerField(source='stock_quantity', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'image', 'images', 'price', 'salePrice',
                  'brandId', 'productLineId', 'brandName', 'productLineName', 'badge',
                  'displayOrder', 'stockQuantity', 'enabled', 'createdAt', 'updatedAt']

    def get_brandName(self, obj):
        return obj.brand.name if obj.brand_id and obj.brand else None

    def get_productLineName(self, obj):
        return obj.product_line.name if obj.product_line_id and obj.product_line else None


# Write serializers: validate camelCase input, validated_data is snake_case

class NodeWriteSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, max_length=200)
    isActive = serializers.BooleanField(required=False, source='is_active')
    displayOrder = serializers.IntegerField(required=False, source='display_order')
    featuredProductIds = serializers.ListField(
        child=serializers.IntegerField(), required=False, source='featured_product_ids'
    )


class CategoryWriteSerializer(NodeWriteSerializer):
    image = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=500)


class BrandWriteSerializer(NodeWriteSerializer):
    categoryId = serializers.IntegerField(required=False, allow_null=True, source='category_id')
    logo = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=500)


class ProductLineWriteSerializer(NodeWriteSerializer):
    brandId = serializers.IntegerField(required=False, allow_null=True, source='brand_id')
    logo = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=500)


class ProductWriteSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    image = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=500)
    images = serializers.ListField(child=serializers.CharField(max_length=500), required=False)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True)
    salePrice = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False,
                                         allow_null=True, source='sale_price')
    brandId = serializers.IntegerField(required=False, allow_null=True, source='brand_id')
    productLineId = serializers.IntegerField(required=False, allow_null=True, source='product_line_id')
    badge = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=50)
    displayOrder = serializers.IntegerField(required=False, source='display_order')
    stockQuantity = serializers.IntegerField(required=False, min_value=0, source='stock_quantity')
    enabled = serializers.BooleanField(required=False)


class ProductBulkUpdateSerializer(ProductWriteSerializer):
    """Fields that may be changed on many products at once"""
    name = None
    description = None
    image = None
    images = None


class UploadURLRequestSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    size = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    contentType = serializers.CharField(required=False, allow_blank=True, allow_null=True,
                                        max_length=100, source='content_type')


class CategoryBannerSerializer(serializers.ModelSerializer):
    categoryId = serializers.PrimaryKeyRelatedField(source='category', queryset=Category.objects.all())
    categoryName = serializers.CharField(source='category.name', read_only=True)
    categorySlug = serializers.CharField(source='category.slug', read_only=True)
    buttonText = serializers.CharField(source='button_text', required=False, allow_null=True,
                                       allow_blank=True, max_length=50)
    buttonLink = serializers.CharField(source='button_link', required=False, allow_null=True,
                                       allow_blank=True, max_length=500)
    displayOrder = serializers.IntegerField(source='display_order', required=False)
    isActive = serializers.BooleanField(source='is_active', required=False)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = CategoryBanner
        fields = ['id', 'categoryId', 'categoryName', 'categorySlug', 'title', 'subtitle', 'image',
                  'buttonText', 'buttonLink', 'displayOrder', 'isActive', 'createdAt', 'updatedAt']
        extra_kwargs = {'image': {'allow_blank': True}}

    def validate_image(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError('Banner image is required')
        return value.strip()
