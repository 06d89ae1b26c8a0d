"""
Authentication API
Registration, login with device sessions, refresh token rotation, password flows,
device management and admin session revocation.
"""
import logging

from django.conf import settings
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from .exceptions import AccountDeactivated, InvalidCredentials, InvalidOneTimeToken, InvalidRefreshToken
from .models import User
from .permissions import IsAdmin
from .serializers import (
    ChangePasswordSerializer,
    DeviceNameSerializer,
    DeviceSessionSerializer,
    ForgotPasswordSerializer,
    LoginSerializer,
    RefreshSerializer,
    RegisterSerializer,
    ResetPasswordSerializer,
    UserSerializer,
    VerifyEmailSerializer,
)
from .services import notifications
from .services.device_sessions import DeviceSessionService
from .services.fingerprint import get_client_ip, parse_device_info
from .services.tokens import TokenService

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = 'If an account exists with this email, a password reset link has been sent.'


def _set_refresh_cookie(response, refresh_token):
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        refresh_token,
        max_age=settings.REFRESH_TOKEN_LIFETIME_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.REFRESH_COOKIE_SECURE,
        samesite='Strict',
    )


def _clear_refresh_cookie(response):
    response.delete_cookie(settings.REFRESH_COOKIE_NAME, samesite='Strict')


def _refresh_token_from(request):
    token = request.COOKIES.get(settings.REFRESH_COOKIE_NAME)
    if token:
        return token
    serializer = RefreshSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data.get('refreshToken') or None


def _active_user(**lookup):
    return User.objects.filter(deleted_at__isnull=True, **lookup).first()


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def register(request):
    """
    POST /api/auth/register
    {"name", "surname", "email", "phone"?, "password"}
    """
    serializer = RegisterSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    if User.objects.filter(email=data['email']).exists():
        return Response(
            {'success': False, 'message': 'User with this email already exists'},
            status=status.HTTP_409_CONFLICT
        )

    if data.get('phone') and User.objects.filter(phone=data['phone']).exists():
        return Response(
            {'success': False, 'message': 'User with this phone number already exists'},
            status=status.HTTP_409_CONFLICT
        )

    user = User(
        name=data['name'],
        surname=data.get('surname', ''),
        email=data['email'],
        phone=data.get('phone'),
        verification_token=TokenService.issue_opaque_token(),
        email_verified=False,
    )
    user.set_password(data['password'])
    user.save()

    logger.info(f"[REGISTER] Created user {user.id}")
    notifications.send_verification_email(user, user.verification_token)

    return Response({
        'success': True,
        'message': 'Registration successful. Please check your email to verify your account.',
        'data': {'user': UserSerializer(user).data},
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def login(request):
    """
    POST /api/auth/login
    {"email", "password", "deviceInfo"?: {"screenResolution", "timezone", "colorDepth"}}

    Returns the access token in the body and the refresh token in an HTTP-only cookie.
    A new device past the role's limit is rejected with DEVICE_LIMIT_REACHED.
    """
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    user = _active_user(email=data['email'])
    if user is None:
        raise InvalidCredentials()

    if not user.is_active:
        raise AccountDeactivated()

    if not user.check_password(data['password']):
        logger.info(f"[LOGIN] Bad password for user {user.id}")
        raise InvalidCredentials()

    device = parse_device_info(request, data.get('deviceInfo'))
    sessions = DeviceSessionService()
    session, refresh_token = sessions.create_session(
        user,
        device['fingerprint'],
        device_meta=device,
        ip_address=get_client_ip(request),
    )

    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])

    access_token = sessions.tokens.issue_access_token(user.id, user.email)
    logger.info(f"[LOGIN] User {user.id} signed in on session {session.id}")

    response = Response({
        'success': True,
        'message': 'Login successful',
        'data': {
            'accessToken': access_token,
            'user': UserSerializer(user).data,
            'sessionId': str(session.id),
        },
    }, status=status.HTTP_200_OK)
    _set_refresh_cookie(response, refresh_token)
    return response


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def refresh(request):
    """
    POST /api/auth/refresh
    Rotates the refresh token (cookie, or body "refreshToken") and issues a new access token.
    """
    refresh_token = _refresh_token_from(request)
    if not refresh_token:
        raise InvalidRefreshToken('Refresh token not found')

    sessions = DeviceSessionService()
    session = sessions.verify_refresh_token(refresh_token)
    if session is None:
        raise InvalidRefreshToken()

    user = session.user
    if not user.is_active or user.deleted_at is not None:
        raise InvalidRefreshToken('User not found or inactive')

    rotated = sessions.rotate_refresh_token(refresh_token, user.id)
    if rotated is None:
        raise InvalidRefreshToken('Failed to rotate refresh token')

    _, new_refresh_token = rotated
    access_token = sessions.tokens.issue_access_token(user.id, user.email)

    response = Response({
        'success': True,
        'message': 'Token refreshed successfully',
        'data': {'accessToken': access_token},
    }, status=status.HTTP_200_OK)
    _set_refresh_cookie(response, new_refresh_token)
    return response


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def logout(request):
    """POST /api/auth/logout"""
    refresh_token = _refresh_token_from(request)
    if refresh_token:
        DeviceSessionService().deactivate_session(refresh_token)

    response = Response({'success': True, 'message': 'Logout successful'}, status=status.HTTP_200_OK)
    _clear_refresh_cookie(response)
    return response


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def verify_email(request):
    """POST /api/auth/verify-email {"token"}"""
    serializer = VerifyEmailSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    user = _active_user(verification_token=serializer.validated_data['token'])
    if user is None:
        raise InvalidOneTimeToken('Invalid or expired verification token')

    user.email_verified = True
    user.verification_token = None
    user.save(update_fields=['email_verified', 'verification_token', 'updated_at'])

    logger.info(f"[VERIFY_EMAIL] User {user.id} verified")
    return Response({'success': True, 'message': 'Email verified successfully'}, status=status.HTTP_200_OK)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def forgot_password(request):
    """
    POST /api/auth/forgot-password {"email"}
    Same answer whether or not the account exists.
    """
    serializer = ForgotPasswordSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    user = _active_user(email=serializer.validated_data['email'], is_active=True)
    if user is not None:
        tokens = TokenService()
        user.reset_password_token = tokens.issue_opaque_token()
        user.reset_password_expires = tokens.password_reset_expiry()
        user.save(update_fields=['reset_password_token', 'reset_password_expires', 'updated_at'])
        notifications.send_password_reset_email(user, user.reset_password_token)

    return Response({'success': True, 'message': FORGOT_PASSWORD_MESSAGE}, status=status.HTTP_200_OK)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def reset_password(request):
    """
    POST /api/auth/reset-password {"token", "password"}
    Signs the user out everywhere.
    """
    serializer = ResetPasswordSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    user = _active_user(
        reset_password_token=data['token'],
        reset_password_expires__gt=timezone.now(),
    )
    if user is None:
        raise InvalidOneTimeToken('Invalid or expired reset token')

    user.set_password(data['password'])
    user.reset_password_token = None
    user.reset_password_expires = None
    user.save(update_fields=['password_hash', 'reset_password_token', 'reset_password_expires', 'updated_at'])

    DeviceSessionService().deactivate_all_sessions(user.id)
    notifications.send_password_changed_email(user)

    return Response({
        'success': True,
        'message': 'Password reset successful. Please login with your new password.',
    }, status=status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password(request):
    """POST /api/auth/change-password {"currentPassword", "newPassword"}"""
    serializer = ChangePasswordSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    user = request.user
    if not user.check_password(data['currentPassword']):
        raise ValidationError({'currentPassword': ['Current password is incorrect']})

    user.set_password(data['newPassword'])
    user.save(update_fields=['password_hash', 'updated_at'])

    DeviceSessionService().deactivate_all_sessions(user.id)
    notifications.send_password_changed_email(user)

    response = Response({
        'success': True,
        'message': 'Password changed successfully. Please login again.',
    }, status=status.HTTP_200_OK)
    _clear_refresh_cookie(response)
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    """GET /api/auth/me"""
    return Response({'success': True, 'data': {'user': UserSerializer(request.user).data}})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def devices(request):
    """GET /api/auth/devices - active sessions, most recent first"""
    sessions = DeviceSessionService().list_sessions(request.user.id)
    serializer = DeviceSessionSerializer(
        sessions,
        many=True,
        context={'refresh_token': request.COOKIES.get(settings.REFRESH_COOKIE_NAME)},
    )
    return Response({'success': True, 'data': {'devices': serializer.data}})


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def device_detail(request, session_id):
    """
    PATCH /api/auth/devices/<id> {"deviceName"}
    DELETE /api/auth/devices/<id>
    """
    sessions = DeviceSessionService()

    if request.method == 'DELETE':
        sessions.remove_session(session_id, request.user.id)
        return Response({'success': True, 'message': 'Device removed successfully'})

    serializer = DeviceNameSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    session = sessions.update_device_name(session_id, request.user.id, serializer.validated_data['deviceName'])

    return Response({
        'success': True,
        'message': 'Device name updated successfully',
        'data': {'device': DeviceSessionSerializer(session).data},
    })


# Admin endpoints

@api_view(['GET'])
@permission_classes([IsAdmin])
def admin_user_devices(request, user_id):
    """GET /api/admin/users/<id>/devices"""
    if not User.objects.filter(pk=user_id).exists():
        raise NotFound('User not found')

    sessions = DeviceSessionService().list_sessions(user_id)
    return Response({'success': True, 'data': {'devices': DeviceSessionSerializer(sessions, many=True).data}})


@api_view(['DELETE'])
@permission_classes([IsAdmin])
def admin_revoke_device(request, session_id):
    """DELETE /api/admin/devices/<id> - marks the session inactive"""
    DeviceSessionService().revoke_session(session_id)
    logger.info(f"[ADMIN] {request.user.id} revoked session {session_id}")
    return Response({'success': True, 'message': 'Device session revoked'})


@api_view(['POST'])
@permission_classes([IsAdmin])
def admin_deactivate_user(request, user_id):
    """POST /api/admin/users/<id>/deactivate"""
    user = _active_user(pk=user_id)
    if user is None:
        raise NotFound('User not found')

    if user.pk == request.user.pk:
        raise ValidationError({'userId': ['You cannot deactivate your own account']})

    user.is_active = False
    user.save(update_fields=['is_active', 'updated_at'])
    revoked = DeviceSessionService().deactivate_all_sessions(user.id)

    logger.info(f"[ADMIN] {request.user.id} deactivated user {user.id}")
    return Response({
        'success': True,
        'message': 'User deactivated',
        'data': {'revokedSessions': revoked},
    })
