from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase

from accounts.models import Agent, CustomUser

User = get_user_model()


class CustomUserManagerTests(TestCase):
    def test_create_user_normalizes_email_and_hashes_password(self):
        user = User.objects.create_user(email='Agent@EXAMPLE.com', password='s3cret-pass', full_name='Sam Agent')

        self.assertEqual(user.email, 'Agent@example.com')
        self.assertTrue(user.check_password('s3cret-pass'))
        self.assertNotEqual(user.password, 's3cret-pass')
        self.assertEqual(user.role, CustomUser.Role.STAFF)
        self.assertFalse(user.is_staff)

    def test_create_user_requires_email(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='x')

    def test_create_superuser_sets_flags_and_admin_role(self):
        user = User.objects.create_superuser(email='root@example.com', password='x')

        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_superuser)
        self.assertEqual(user.role, CustomUser.Role.ADMIN)

    def test_create_superuser_rejects_non_staff(self):
        with self.assertRaises(ValueError):
            User.objects.create_superuser(email='root@example.com', password='x', is_staff=False)

    def test_to_dict_uses_string_id(self):
        user = User.objects.create_user(email='a@example.com', password='x', full_name='A')
        self.assertEqual(user.to_dict(), {
            'id': str(user.pk), 'email': 'a@example.com', 'full_name': 'A', 'role': 'staff',
        })

    def test_agent_to_dict(self):
        agent = Agent.objects.create(name='Layla', email='layla@example.com', phone='+971500000000')
        self.assertEqual(agent.to_dict()['name'], 'Layla')
        self.assertEqual(agent.to_dict()['id'], str(agent.pk))


class AuthViewTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email='staff@example.com', password='correct-horse', full_name='Staff')

    def test_login_with_valid_credentials_starts_session(self):
        response = self.client.post(
            '/auth/login/', {'email': 'staff@example.com', 'password': 'correct-horse'},
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['email'], 'staff@example.com')
        self.assertEqual(self.client.get('/auth/me/').json()['id'], str(self.user.pk))

    def test_login_failure_is_logged_as_security_event(self):
        with patch('accounts.views.logger') as mock_logger:
            response = self.client.post(
                '/auth/login/', {'email': 'staff@example.com', 'password': 'wrong'},
                content_type='application/json',
            )

        self.assertEqual(response.status_code, 401)
        mock_logger.security_event.assert_called_once()

    def test_login_validates_payload(self):
        response = self.client.post('/auth/login/', {'email': 'not-an-email'}, content_type='application/json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('email', response.json()['errors'])
        self.assertIn('password', response.json()['errors'])

    def test_login_rejects_get(self):
        self.assertEqual(self.client.get('/auth/login/').status_code, 405)

    def test_me_requires_authentication(self):
        self.assertEqual(self.client.get('/auth/me/').status_code, 401)

    def test_logout_ends_session(self):
        self.client.force_login(self.user)

        response = self.client.post('/auth/logout/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get('/auth/me/').status_code, 401)

    def test_csrf_endpoint_sets_cookie(self):
        response = self.client.get('/auth/csrf/')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['csrf_token'])
        self.assertIn('csrftoken', response.cookies)
