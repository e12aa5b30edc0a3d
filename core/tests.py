"""
Tests for core app - users and session authentication.
Tests cover: Model constraints, Password policy, User API, Login/logout/profile flow.
"""
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework.test import APIClient, APITestCase
from rest_framework import status

from core.validators import (
    MinimumLengthValidator, NumberValidator, UppercaseValidator, LowercaseValidator
)
from utils.ids import is_valid_object_id

User = get_user_model()

USER_DATA = {
    'name': 'John Doe',
    'email': 'johndoe@example.com',
    'password': 'Password123',
}


# =============================================================================
# UNIT TESTS - Models
# =============================================================================

class UserModelTests(TestCase):
    """Test User model constraints and methods."""

    def test_create_user_with_email(self):
        """Test creating a user with email is successful."""
        user = User.objects.create_user(
            email='test@example.com',
            password='Testpass123',
            name='Test User'
        )

        self.assertEqual(user.email, 'test@example.com')
        self.assertTrue(user.check_password('Testpass123'))
        self.assertNotEqual(user.password, 'Testpass123')
        self.assertFalse(user.is_admin)
        self.assertTrue(user.is_active)

    def test_user_id_is_object_id(self):
        user = User.objects.create_user(email='id@example.com', password='Testpass123', name='Id')
        self.assertTrue(is_valid_object_id(user.pk))

    def test_create_user_without_name_raises_error(self):
        """Test creating user without a name raises ValueError."""
        with self.assertRaisesMessage(ValueError, 'Name is required'):
            User.objects.create_user(email='noname@example.com', password='Testpass123')

    def test_create_user_without_email_raises_error(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='Testpass123', name='Test')

    def test_email_is_unique(self):
        """Test that duplicate emails raise error."""
        User.objects.create_user(email='unique@example.com', password='Testpass123', name='First User')

        with self.assertRaises(Exception):
            User.objects.create_user(email='unique@example.com', password='Testpass123', name='Second User')

    def test_create_superuser(self):
        user = User.objects.create_superuser(
            email='admin@example.com',
            password='Admin1234',
            name='Admin'
        )

        self.assertTrue(user.is_superuser)
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_admin)

    def test_user_string_representation(self):
        user = User.objects.create_user(email='test@example.com', password='Testpass123', name='Test User')
        self.assertEqual(str(user), 'test@example.com')


# =============================================================================
# UNIT TESTS - Password policy
# =============================================================================

class PasswordPolicyTests(TestCase):
    """Test the individual password validators and their ordering."""

    def assertRejected(self, validator, password, message):
        with self.assertRaises(ValidationError) as ctx:
            validator.validate(password)
        self.assertEqual(ctx.exception.messages, [message])

    def test_minimum_length(self):
        self.assertRejected(MinimumLengthValidator(8), 'Sh0rt', 'Password must be at least 8 characters long')
        MinimumLengthValidator(8).validate('Longenough1')

    def test_number_required(self):
        self.assertRejected(NumberValidator(), 'Password', 'Password must contain at least one number')

    def test_uppercase_required(self):
        self.assertRejected(UppercaseValidator(), 'password1', 'Password must contain at least one uppercase letter')

    def test_lowercase_required(self):
        self.assertRejected(LowercaseValidator(), 'PASSWORD1', 'Password must contain at least one lowercase letter')

    def test_valid_password_passes_all_rules(self):
        validate_password('Password123')

    def test_all_failures_reported_in_policy_order(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_password('pass')

        self.assertEqual(ctx.exception.messages, [
            'Password must be at least 8 characters long',
            'Password must contain at least one number',
            'Password must contain at least one uppercase letter',
        ])


# =============================================================================
# INTEGRATION TESTS - User API
# =============================================================================

class UserCreateAPITests(APITestCase):
    """POST /users and its validation messages."""

    def post(self, **data):
        return self.client.post('/users', data, format='json')

    def test_create_user_returns_201(self):
        response = self.post(**USER_DATA)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('_id', response.data)
        self.assertEqual(response.data['name'], USER_DATA['name'])
        self.assertEqual(response.data['email'], USER_DATA['email'])
        self.assertNotIn('password', response.data)

        user = User.objects.get(pk=response.data['_id'])
        self.assertTrue(user.check_password(USER_DATA['password']))

    def test_missing_name(self):
        response = self.post(email=USER_DATA['email'], password='Password123')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Name is required')
        self.assertFalse(User.objects.exists())

    def test_missing_email(self):
        response = self.post(name='John Doe', password='password123')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['msg'], 'Please provide a valid email address')
        self.assertEqual(response.data['errors'][0]['path'], 'email')

    def test_invalid_email(self):
        response = self.post(name='John Doe', email='invalid-email', password='password123')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['msg'], 'Please provide a valid email address')

    def test_missing_password(self):
        response = self.post(name='John Doe', email='johndoe@example.com')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['msg'], 'Password must be at least 8 characters long')

    def test_password_too_short(self):
        response = self.post(name='John Doe', email='johndoe@example.com', password='short')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['msg'], 'Password must be at least 8 characters long')

    def test_password_without_number(self):
        response = self.post(name='John Doe', email='johndoe@example.com', password='password')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['msg'], 'Password must contain at least one number')

    def test_password_without_uppercase(self):
        response = self.post(name='John Doe', email='johndoe@example.com', password='password1')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['msg'], 'Password must contain at least one uppercase letter')

    def test_password_without_lowercase(self):
        response = self.post(name='John Doe', email='johndoe@example.com', password='PASSWORD123')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['msg'], 'Password must contain at least one lowercase letter')

    def test_duplicate_email(self):
        User.objects.create_user(email='johndoe@example.com', password='Password123', name='Existing')

        response = self.post(**USER_DATA)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['msg'], 'A user with this email already exists.')


class UserDetailAPITests(APITestCase):
    """GET/PUT/DELETE /users/<id> with a logged-in session."""

    def setUp(self):
        self.user = User.objects.create_user(**USER_DATA)
        self.other = User.objects.create_user(email='other@example.com', password='Password123', name='Other')
        self.client.post('/auth/login', {
            'email': USER_DATA['email'],
            'password': USER_DATA['password']
        }, format='json')

    def test_get_own_user(self):
        response = self.client.get(f'/users/{self.user.pk}')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['_id'], self.user.pk)
        self.assertEqual(response.data['name'], USER_DATA['name'])
        self.assertEqual(response.data['email'], USER_DATA['email'])

    def test_update_user(self):
        response = self.client.put(f'/users/{self.user.pk}', {'name': 'Updated Name'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('_id', response.data)
        self.assertEqual(response.data['name'], 'Updated Name')
        self.user.refresh_from_db()
        self.assertEqual(self.user.name, 'Updated Name')

    def test_update_with_blank_name(self):
        response = self.client.put(f'/users/{self.user.pk}', {'name': '  '}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Name is required')

    def test_update_with_weak_password(self):
        response = self.client.put(f'/users/{self.user.pk}', {'password': 'weakpass'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['msg'], 'Password must contain at least one number')

    def test_update_password_keeps_session(self):
        response = self.client.put(f'/users/{self.user.pk}', {'password': 'NewPassword456'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('NewPassword456'))
        self.assertEqual(self.client.get('/auth/profile').status_code, status.HTTP_200_OK)

    def test_update_with_invalid_id(self):
        response = self.client.put("/users/'invalid-id", {'name': 'Updated Name'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid ID format')

    def test_get_unknown_user(self):
        response = self.client.get('/users/000000000000000000000000')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'User not found')

    def test_cannot_read_other_user(self):
        response = self.client.get(f'/users/{self.other.pk}')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'You can only manage your own account')

    def test_delete_user(self):
        response = self.client.delete(f'/users/{self.user.pk}')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'User successfully deleted')
        self.assertFalse(User.objects.filter(pk=self.user.pk).exists())

        # Session ended with the account
        response = self.client.get('/auth/profile')
        self.assertEqual(response.status_code, status.HTTP_302_FOUND)

    def test_delete_with_invalid_id(self):
        response = self.client.delete('/users/invalid-id')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid ID format')

    def test_requires_session(self):
        self.client.get('/auth/logout')

        response = self.client.get(f'/users/{self.user.pk}')

        self.assertEqual(response.status_code, status.HTTP_302_FOUND)
        self.assertEqual(response['Location'], '/auth/login')


# =============================================================================
# INTEGRATION TESTS - Session authentication
# =============================================================================

class AuthAPITests(APITestCase):
    """Login, logout and profile."""

    def setUp(self):
        self.user = User.objects.create_user(**USER_DATA)

    def login(self, password=USER_DATA['password']):
        return self.client.post('/auth/login', {
            'email': USER_DATA['email'],
            'password': password
        }, format='json')

    def test_login_redirects_to_profile(self):
        response = self.login()

        self.assertEqual(response.status_code, status.HTTP_302_FOUND)
        self.assertEqual(response['Location'], '/auth/profile')

    def test_invalid_credentials_redirect_to_login(self):
        response = self.login(password='wrongpassword')

        self.assertEqual(response.status_code, status.HTTP_302_FOUND)
        self.assertEqual(response['Location'], '/auth/login')

    def test_login_page_message(self):
        response = self.client.get('/auth/login')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Please login with correct credentials.')

    def test_logout_redirects_to_login(self):
        self.login()

        response = self.client.get('/auth/logout')

        self.assertEqual(response.status_code, status.HTTP_302_FOUND)
        self.assertEqual(response['Location'], '/auth/login')
        self.assertEqual(self.client.get('/auth/profile').status_code, status.HTTP_302_FOUND)

    def test_logout_without_login(self):
        response = self.client.get('/auth/logout')

        self.assertEqual(response.status_code, status.HTTP_302_FOUND)
        self.assertEqual(response['Location'], '/auth/login')

    def test_profile_when_authenticated(self):
        self.login()

        response = self.client.get('/auth/profile')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {
            'id': self.user.pk,
            'name': USER_DATA['name'],
            'email': USER_DATA['email'],
        })

    def test_profile_without_session(self):
        response = self.client.get('/auth/profile')

        self.assertEqual(response.status_code, status.HTTP_302_FOUND)
        self.assertEqual(response['Location'], '/auth/login')


class CsrfEnforcingClientTests(APITestCase):
    """A client that enforces CSRF like a browser can still use the JSON API after login."""

    def setUp(self):
        self.user = User.objects.create_user(**USER_DATA)
        self.client = APIClient(enforce_csrf_checks=True)
        response = self.client.post('/auth/login', {
            'email': USER_DATA['email'],
            'password': USER_DATA['password']
        }, format='json')
        self.assertEqual(response['Location'], '/auth/profile')

    def test_update_own_account(self):
        response = self.client.put(f'/users/{self.user.pk}', {'name': 'Updated Name'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Updated Name')

    def test_delete_own_account(self):
        response = self.client.delete(f'/users/{self.user.pk}')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(User.objects.filter(pk=self.user.pk).exists())

    def test_login_again_while_logged_in(self):
        response = self.client.post('/auth/login', {
            'email': USER_DATA['email'],
            'password': USER_DATA['password']
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_302_FOUND)
        self.assertEqual(response['Location'], '/auth/profile')
