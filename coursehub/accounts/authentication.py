"""
JWT bearer authentication for the API.
Resolves `Authorization: Bearer <access token>` to an accounts.User.
"""
import uuid

from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

from accounts.exceptions import AccountDeactivated
from accounts.models import User
from accounts.services.tokens import InvalidToken, TokenExpired, TokenService

TOKEN_EXPIRED_CODE = 'TOKEN_EXPIRED'


def get_bearer_token(request):
    auth_header = request.META.get('HTTP_AUTHORIZATION', '')
    if not auth_header.startswith('Bearer '):
        return None
    return auth_header[7:].strip() or None


class JWTAuthentication(BaseAuthentication):
    """
    Failure order:
        no header          -> no credentials (rendered as "No token provided")
        expired token      -> 401 "Token expired", code TOKEN_EXPIRED
        any other bad token -> 401 "Invalid token"
        unknown/deleted user -> 401 "User not found"
        inactive account   -> 403 "Account is deactivated"
    """
    keyword = 'Bearer'

    def __init__(self, tokens=None):
        self.tokens = tokens or TokenService()

    def authenticate(self, request):
        token = get_bearer_token(request)
        if token is None:
            return None

        try:
            payload = self.tokens.verify_access_token(token)
        except TokenExpired:
            raise AuthenticationFailed('Token expired', code=TOKEN_EXPIRED_CODE)
        except InvalidToken:
            raise AuthenticationFailed('Invalid token')

        try:
            user_id = uuid.UUID(str(payload['userId']))
        except ValueError:
            raise AuthenticationFailed('Invalid token')

        user = User.objects.filter(pk=user_id, deleted_at__isnull=True).first()
        if user is None:
            raise AuthenticationFailed('User not found')

        if not user.is_active:
            raise AccountDeactivated()

        return (user, token)

    def authenticate_header(self, request):
        return self.keyword
