"""
Authentication API tests - registration, login with device limits, refresh rotation,
the auth gate's failure messages, password flows and admin revocation
"""
from datetime import timedelta

from django.conf import settings
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.test import APIClient, APIRequestFactory, APITestCase

from accounts.models import DeviceSession, User
from accounts.permissions import IsEmailVerified
from accounts.services.tokens import TokenService


@api_view(['GET'])
@permission_classes([IsEmailVerified])
def verified_only(request):
    return Response({'success': True})


def make_user(email='student@test.com', password='testpass123', role=User.ROLE_STUDENT, verified=True):
    user = User(email=email, name='Ana', surname='Lopez', role=role, email_verified=verified)
    user.set_password(password)
    user.save()
    return user


class AuthTestMixin:

    def login(self, email='student@test.com', password='testpass123', screen='1920x1080', **extra):
        return self.client.post('/api/auth/login/', {
            'email': email,
            'password': password,
            'deviceInfo': {'screenResolution': screen, 'timezone': 'UTC', 'colorDepth': '24'},
        }, format='json', **extra)

    def authorize(self, access_token):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access_token}')


class RegistrationTests(APITestCase):

    def setUp(self):
        self.client = APIClient()

    def test_register(self):
        """Test that registration creates an unverified student"""
        response = self.client.post('/api/auth/register/', {
            'name': 'Ana',
            'surname': 'Lopez',
            'email': 'Ana@Test.com',
            'password': 'testpass123',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data']['user']['email'], 'ana@test.com')
        self.assertNotIn('password_hash', response.data['data']['user'])

        user = User.objects.get(email='ana@test.com')
        self.assertFalse(user.email_verified)
        self.assertEqual(user.role, User.ROLE_STUDENT)
        self.assertTrue(user.check_password('testpass123'))
        self.assertIsNotNone(user.verification_token)

    def test_duplicate_email(self):
        make_user(email='ana@test.com')
        response = self.client.post('/api/auth/register/', {
            'name': 'Ana', 'email': 'ana@test.com', 'password': 'testpass123',
        }, format='json')
        self.assertEqual(response.status_code, 409)
        self.assertFalse(response.data['success'])

    def test_short_password(self):
        """Test that validation errors use the envelope"""
        response = self.client.post('/api/auth/register/', {
            'name': 'Ana', 'email': 'ana@test.com', 'password': 'short',
        }, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.data['success'])
        self.assertIn('password', response.data['errors'])

    def test_verify_email(self):
        user = make_user(verified=False)
        user.verification_token = 'a' * 64
        user.save()

        response = self.client.post('/api/auth/verify-email/', {'token': 'a' * 64}, format='json')
        self.assertEqual(response.status_code, 200)
        user.refresh_from_db()
        self.assertTrue(user.email_verified)
        self.assertIsNone(user.verification_token)

        response = self.client.post('/api/auth/verify-email/', {'token': 'a' * 64}, format='json')
        self.assertEqual(response.status_code, 400)


class LoginTests(AuthTestMixin, APITestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = make_user()

    def test_login_sets_refresh_cookie(self):
        """Test that login returns an access token and stores the refresh token in a cookie"""
        response = self.login()

        self.assertEqual(response.status_code, 200)
        self.assertIn('accessToken', response.data['data'])
        self.assertEqual(response.data['data']['user']['id'], str(self.user.id))

        cookie = response.cookies[settings.REFRESH_COOKIE_NAME]
        self.assertTrue(cookie['httponly'])
        session = DeviceSession.objects.get(user=self.user)
        self.assertEqual(cookie.value, session.refresh_token)
        self.assertEqual(str(session.id), response.data['data']['sessionId'])

    def test_malformed_forwarded_header(self):
        """Test that a garbage X-Forwarded-For falls through to the next well-formed address"""
        response = self.login(HTTP_X_FORWARDED_FOR='not-an-ip, 10.0.0.1', REMOTE_ADDR='192.168.1.20')

        self.assertEqual(response.status_code, 200)
        session = DeviceSession.objects.get(user=self.user)
        self.assertEqual(session.ip_address, '192.168.1.20')

    def test_wrong_password(self):
        response = self.login(password='wrongpass123')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['message'], 'Invalid email or password')

    def test_unknown_email(self):
        response = self.login(email='nobody@test.com')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['message'], 'Invalid email or password')

    def test_deactivated_account_cannot_login(self):
        self.user.is_active = False
        self.user.save()
        response = self.login()
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['code'], 'ACCOUNT_DEACTIVATED')

    def test_fourth_device_rejected(self):
        """Test that a fourth device is rejected with the active and maximum counts"""
        for screen in ['1920x1080', '1366x768', '390x844']:
            self.assertEqual(self.login(screen=screen).status_code, 200)

        response = self.login(screen='2560x1440')

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['code'], 'DEVICE_LIMIT_REACHED')
        self.assertEqual(response.data['activeDevices'], 3)
        self.assertEqual(response.data['maxDevices'], 3)

    def test_known_device_logs_in_at_limit(self):
        """Test that re-login from an already registered device succeeds at the limit"""
        for screen in ['1920x1080', '1366x768', '390x844']:
            self.login(screen=screen)

        response = self.login(screen='1366x768')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(DeviceSession.objects.filter(user=self.user).count(), 3)


class RefreshTests(AuthTestMixin, APITestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = make_user()
        self.login()
        self.first_refresh = self.client.cookies[settings.REFRESH_COOKIE_NAME].value

    def test_refresh_rotates_cookie(self):
        """Test that refreshing issues a new access token and a new refresh cookie"""
        response = self.client.post('/api/auth/refresh/', format='json')

        self.assertEqual(response.status_code, 200)
        self.assertIn('accessToken', response.data['data'])
        new_refresh = response.cookies[settings.REFRESH_COOKIE_NAME].value
        self.assertNotEqual(new_refresh, self.first_refresh)

    def test_replayed_refresh_token_fails(self):
        """Test that a rotated-away refresh token is refused"""
        self.client.post('/api/auth/refresh/', format='json')
        self.client.cookies.clear()

        response = self.client.post('/api/auth/refresh/', {'refreshToken': self.first_refresh}, format='json')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['message'], 'Invalid refresh token')

    def test_missing_refresh_token(self):
        self.client.cookies.clear()
        response = self.client.post('/api/auth/refresh/', format='json')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['message'], 'Refresh token not found')

    def test_inactive_user_cannot_refresh(self):
        User.objects.filter(pk=self.user.pk).update(is_active=False)
        response = self.client.post('/api/auth/refresh/', format='json')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['message'], 'User not found or inactive')

    def test_logout_deactivates_session(self):
        response = self.client.post('/api/auth/logout/', format='json')
        self.assertEqual(response.status_code, 200)
        self.assertFalse(DeviceSession.objects.get(user=self.user).is_active)

        response = self.client.post('/api/auth/refresh/', {'refreshToken': self.first_refresh}, format='json')
        self.assertEqual(response.status_code, 401)


class AuthGateTests(AuthTestMixin, APITestCase):
    """Failure messages and codes of bearer authentication"""

    def setUp(self):
        self.client = APIClient()
        self.user = make_user()
        self.tokens = TokenService()

    def test_no_token(self):
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['message'], 'No token provided')

    def test_invalid_token(self):
        self.authorize('not-a-token')
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['message'], 'Invalid token')

    def test_refresh_token_is_not_accepted_as_access(self):
        self.authorize(self.tokens.issue_refresh_token(self.user.id))
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['message'], 'Invalid token')

    def test_expired_token(self):
        """Test that an expired access token is reported with TOKEN_EXPIRED"""
        past = TokenService(clock=lambda: timezone.now() - timedelta(hours=1))
        self.authorize(past.issue_access_token(self.user.id))

        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['message'], 'Token expired')
        self.assertEqual(response.data['code'], 'TOKEN_EXPIRED')

    def test_deleted_user(self):
        self.user.deleted_at = timezone.now()
        self.user.save()
        self.authorize(self.tokens.issue_access_token(self.user.id))

        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['message'], 'User not found')

    def test_deactivated_user(self):
        """Test that a valid token for a deactivated account is refused with 403"""
        self.user.is_active = False
        self.user.save()
        self.authorize(self.tokens.issue_access_token(self.user.id))

        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['message'], 'Account is deactivated')

    def test_valid_token(self):
        self.authorize(self.tokens.issue_access_token(self.user.id))
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['user']['email'], self.user.email)

    def test_email_verification_gate(self):
        """Test that unverified users are refused with EMAIL_NOT_VERIFIED"""
        factory = APIRequestFactory()
        unverified = make_user(email='new@test.com', verified=False)

        request = factory.get('/', HTTP_AUTHORIZATION=f'Bearer {self.tokens.issue_access_token(unverified.id)}')
        response = verified_only(request)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['message'], 'Email verification required')
        self.assertEqual(response.data['code'], 'EMAIL_NOT_VERIFIED')

        request = factory.get('/', HTTP_AUTHORIZATION=f'Bearer {self.tokens.issue_access_token(self.user.id)}')
        self.assertEqual(verified_only(request).status_code, 200)


class PasswordTests(AuthTestMixin, APITestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = make_user()

    def test_change_password_signs_out_everywhere(self):
        self.login(screen='1920x1080')
        access = self.login(screen='1366x768').data['data']['accessToken']
        self.authorize(access)

        response = self.client.post('/api/auth/change-password/', {
            'currentPassword': 'testpass123',
            'newPassword': 'newpass4567',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertFalse(DeviceSession.objects.filter(user=self.user, is_active=True).exists())
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('newpass4567'))

    def test_change_password_wrong_current(self):
        self.authorize(TokenService().issue_access_token(self.user.id))
        response = self.client.post('/api/auth/change-password/', {
            'currentPassword': 'wrongpass',
            'newPassword': 'newpass4567',
        }, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['message'], 'Current password is incorrect')

    def test_forgot_and_reset_password(self):
        """Test the reset flow and that the answer does not reveal unknown emails"""
        unknown = self.client.post('/api/auth/forgot-password/', {'email': 'nobody@test.com'}, format='json')
        known = self.client.post('/api/auth/forgot-password/', {'email': 'student@test.com'}, format='json')
        self.assertEqual(unknown.data['message'], known.data['message'])

        self.user.refresh_from_db()
        token = self.user.reset_password_token
        self.assertIsNotNone(token)

        self.login()
        response = self.client.post('/api/auth/reset-password/', {
            'token': token,
            'password': 'resetpass789',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('resetpass789'))
        self.assertIsNone(self.user.reset_password_token)
        self.assertFalse(DeviceSession.objects.filter(user=self.user, is_active=True).exists())

    def test_expired_reset_token(self):
        self.user.reset_password_token = 'b' * 64
        self.user.reset_password_expires = timezone.now() - timedelta(minutes=1)
        self.user.save()

        response = self.client.post('/api/auth/reset-password/', {
            'token': 'b' * 64,
            'password': 'resetpass789',
        }, format='json')
        self.assertEqual(response.status_code, 400)


class DeviceApiTests(AuthTestMixin, APITestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = make_user()
        self.admin = make_user(email='admin@test.com', role=User.ROLE_ADMIN)

    def test_list_marks_current_device(self):
        self.login(screen='1366x768')
        self.authorize(self.login(screen='1920x1080').data['data']['accessToken'])

        response = self.client.get('/api/auth/devices/')
        self.assertEqual(response.status_code, 200)
        devices = response.data['data']['devices']
        self.assertEqual(len(devices), 2)
        self.assertEqual(sum(1 for d in devices if d['isCurrent']), 1)

    def test_rename_and_remove_device(self):
        data = self.login().data['data']
        self.authorize(data['accessToken'])
        url = f"/api/auth/devices/{data['sessionId']}/"

        response = self.client.patch(url, {'deviceName': 'Home PC'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['device']['deviceName'], 'Home PC')

        response = self.client.delete(url)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(DeviceSession.objects.filter(pk=data['sessionId']).exists())

        response = self.client.delete(url)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['code'], 'DEVICE_NOT_FOUND')

    def test_student_cannot_use_admin_routes(self):
        self.authorize(TokenService().issue_access_token(self.user.id))
        response = self.client.get(f'/api/admin/users/{self.user.id}/devices/')
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['message'], 'Admin access required')

    def test_admin_revokes_device(self):
        """Test that an admin revocation stops the session's refresh token from working"""
        session_id = self.login().data['data']['sessionId']
        refresh_token = self.client.cookies[settings.REFRESH_COOKIE_NAME].value

        admin_client = APIClient()
        admin_client.credentials(HTTP_AUTHORIZATION=f'Bearer {TokenService().issue_access_token(self.admin.id)}')

        response = admin_client.get(f'/api/admin/users/{self.user.id}/devices/')
        self.assertEqual(len(response.data['data']['devices']), 1)

        response = admin_client.delete(f'/api/admin/devices/{session_id}/')
        self.assertEqual(response.status_code, 200)

        self.client.cookies.clear()
        response = self.client.post('/api/auth/refresh/', {'refreshToken': refresh_token}, format='json')
        self.assertEqual(response.status_code, 401)

    def test_admin_deactivates_user(self):
        self.login()
        self.authorize(TokenService().issue_access_token(self.admin.id))

        response = self.client.post(f'/api/admin/users/{self.user.id}/deactivate/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['revokedSessions'], 1)
        self.user.refresh_from_db()
        self.assertFalse(self.user.is_active)

        response = self.client.post(f'/api/admin/users/{self.admin.id}/deactivate/')
        self.assertEqual(response.status_code, 400)


class HealthCheckTests(APITestCase):

    def test_health(self):
        response = self.client.get('/api/health/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], 'healthy')
