from django.db import models
from backend.core.models import User


class Customer(models.Model):
    """Delivery customer profile; orders are only accepted once approved"""
    APPROVAL_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='customer_profile')
    full_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    zip_code = models.CharField(max_length=20, blank=True)
    approval_status = models.CharField(max_length=20, choices=APPROVAL_STATUS_CHOICES, default='pending')
    rejection_reason = models.TextField(blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.full_name

    @property
    def is_approved(self):
        return self.approval_status == 'approved'

    def full_address(self):
        """Single-line delivery address"""
        parts = [self.address, self.city, self.state, self.zip_code]
        return ', '.join(part for part in parts if part)

    class Meta:
        db_table = 'delivery_customers'
        ordering = ['-created_at']
