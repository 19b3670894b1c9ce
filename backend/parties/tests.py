"""
Test suite for delivery customer profiles
Tests: profile creation, own profile, admin listing, approve / reject
"""
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, BaseAPITestCase
from backend.parties.models import Customer


class CustomerProfileTests(BaseAPITestCase):

    def test_create_profile_starts_pending(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)

        response = self.client.post('/api/delivery/customers', {
            'fullName': 'Jane Doe', 'phone': '5125550100', 'address': '1 Oak Ave',
            'city': 'Austin', 'state': 'TX', 'zipCode': '78702',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['approvalStatus'], 'pending')
        self.assertEqual(response.data['zipCode'], '78702')
        self.assertEqual(response.data['email'], user.email)
        self.assertFalse(Customer.objects.get(user=user).is_approved)

    def test_second_profile_rejected(self):
        customer = self.login_customer()
        response = self.client.post('/api/delivery/customers', {'fullName': customer.full_name}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Customer profile already exists')

    def test_blank_full_name_rejected(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/delivery/customers', {'fullName': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('fullName', response.data['details'])

    def test_me_returns_own_profile(self):
        customer = self.login_customer()
        response = self.client.get('/api/delivery/customers/me')
        self.assertEqual(response.data['id'], customer.id)
        self.assertEqual(response.data['approvalStatus'], 'approved')

    def test_me_without_profile_is_404(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/delivery/customers/me')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_me_patch_updates_address(self):
        self.login_customer()
        response = self.client.patch('/api/delivery/customers/me', {'address': '9 Elm St'}, format='json')
        self.assertEqual(response.data['address'], '9 Elm St')

    def test_requires_authentication(self):
        response = self.client.get('/api/delivery/customers/me')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class CustomerApprovalTests(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.login_admin()

    def test_list_filters_by_status(self):
        pending = TestDataFactory.create_customer(approval_status='pending')
        TestDataFactory.create_customer(approval_status='approved')

        response = self.client.get('/api/admin/delivery/customers', {'status': 'pending'})
        self.assertEqual([c['id'] for c in response.data], [pending.id])

        response = self.client.get('/api/admin/delivery/customers')
        self.assertEqual(len(response.data), 2)

    def test_invalid_status_filter(self):
        response = self.client.get('/api/admin/delivery/customers', {'status': 'maybe'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_approve(self):
        customer = TestDataFactory.create_customer(approval_status='pending')
        response = self.client.post(f'/api/admin/delivery/customers/{customer.id}/approve')
        self.assertEqual(response.data['approvalStatus'], 'approved')
        self.assertIsNotNone(response.data['approvedAt'])
        self.assertTrue(AuditLog.objects.filter(action='customer_approve', object_id=str(customer.id)).exists())

    def test_reject_with_reason(self):
        customer = TestDataFactory.create_customer(approval_status='pending')
        response = self.client.post(f'/api/admin/delivery/customers/{customer.id}/reject',
                                    {'reason': 'Outside delivery area'}, format='json')
        self.assertEqual(response.data['approvalStatus'], 'rejected')
        self.assertEqual(response.data['rejectionReason'], 'Outside delivery area')
        self.assertIsNone(response.data['approvedAt'])

    def test_unknown_customer_is_404(self):
        response = self.client.post('/api/admin/delivery/customers/99999/approve')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Customer not found'})

    def test_non_staff_forbidden(self):
        self.login_customer()
        response = self.client.get('/api/admin/delivery/customers')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
