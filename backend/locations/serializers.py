from rest_framework import serializers
from .models import StoreLocation


class StoreLocationSerializer(serializers.ModelSerializer):
    displayOrder = serializers.IntegerField(source='display_order', required=False)
    isActive = serializers.BooleanField(source='is_active', required=False)
    slug = serializers.SlugField(max_length=220, required=False, allow_blank=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = StoreLocation
        fields = ['id', 'name', 'slug', 'city', 'address', 'phone', 'email', 'hours', 'image',
                  'lat', 'lng', 'displayOrder', 'isActive', 'createdAt', 'updatedAt']

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError('Store name is required')
        return value.strip()
