from rest_framework import serializers
from .models import Customer


class CustomerSerializer(serializers.ModelSerializer):
    """Customer profile as returned by the delivery API"""
    userId = serializers.IntegerField(source='user_id', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)
    fullName = serializers.CharField(source='full_name', read_only=True)
    zipCode = serializers.CharField(source='zip_code', read_only=True)
    approvalStatus = serializers.CharField(source='approval_status', read_only=True)
    rejectionReason = serializers.CharField(source='rejection_reason', read_only=True)
    approvedAt = serializers.DateTimeField(source='approved_at', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Customer
        fields = ['id', 'userId', 'email', 'fullName', 'phone', 'address', 'city', 'state',
                  'zipCode', 'approvalStatus', 'rejectionReason', 'approvedAt', 'createdAt']


class CustomerWriteSerializer(serializers.Serializer):
    fullName = serializers.CharField(max_length=200, source='full_name')
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    zipCode = serializers.CharField(max_length=20, required=False, allow_blank=True, source='zip_code')

    def validate_fullName(self, value):
        if not value.strip():
            raise serializers.ValidationError('Full name is required')
        return value.strip()
