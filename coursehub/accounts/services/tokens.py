"""
Token Service
Mints and verifies access/refresh JWTs and opaque verification/reset tokens
"""
import secrets
from datetime import timedelta

import jwt
from django.conf import settings
from django.utils import timezone

ACCESS_TOKEN_TYPE = 'access'
REFRESH_TOKEN_TYPE = 'refresh'


class InvalidToken(Exception):
    """Token failed signature, structure, or type checks."""


class TokenExpired(InvalidToken):
    """Token was well-formed and signed but its exp has passed."""


class TokenService:
    """
    Issues the token pair used by the API.

    Access tokens are short-lived and signed with JWT_SECRET; refresh tokens are
    long-lived, signed with JWT_REFRESH_SECRET, and carry a random nonce so two
    tokens minted in the same second are still distinct strings.
    """

    def __init__(self, clock=timezone.now):
        self.clock = clock

    @property
    def algorithm(self):
        return settings.JWT_ALGORITHM

    def _encode(self, payload, secret, lifetime):
        issued_at = self.clock()
        claims = dict(payload)
        claims['iat'] = int(issued_at.timestamp())
        claims['exp'] = int((issued_at + lifetime).timestamp())
        return jwt.encode(claims, secret, algorithm=self.algorithm)

    def _decode(self, token, secret, expected_type):
        if not token:
            raise InvalidToken('Empty token')
        try:
            payload = jwt.decode(token, secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired('Token expired') from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidToken('Invalid token') from exc

        if payload.get('type') != expected_type or not payload.get('userId'):
            raise InvalidToken('Invalid token')
        return payload

    def issue_access_token(self, user_id, email=None):
        payload = {'userId': str(user_id), 'type': ACCESS_TOKEN_TYPE}
        if email:
            payload['email'] = email
        return self._encode(
            payload,
            settings.JWT_SECRET,
            timedelta(minutes=settings.ACCESS_TOKEN_LIFETIME_MINUTES),
        )

    def issue_refresh_token(self, user_id, email=None):
        payload = {
            'userId': str(user_id),
            'type': REFRESH_TOKEN_TYPE,
            'nonce': secrets.token_hex(16),
        }
        if email:
            payload['email'] = email
        return self._encode(
            payload,
            settings.JWT_REFRESH_SECRET,
            timedelta(days=settings.REFRESH_TOKEN_LIFETIME_DAYS),
        )

    def verify_access_token(self, token):
        """Return the payload or raise InvalidToken / TokenExpired."""
        return self._decode(token, settings.JWT_SECRET, ACCESS_TOKEN_TYPE)

    def verify_refresh_token(self, token):
        """Return the payload or raise InvalidToken (expiry included)."""
        try:
            return self._decode(token, settings.JWT_REFRESH_SECRET, REFRESH_TOKEN_TYPE)
        except TokenExpired as exc:
            raise InvalidToken('Invalid or expired refresh token') from exc

    @staticmethod
    def issue_opaque_token():
        """256-bit random hex token for email verification and password reset."""
        return secrets.token_hex(32)

    def refresh_token_expiry(self):
        return self.clock() + timedelta(days=settings.REFRESH_TOKEN_LIFETIME_DAYS)

    def password_reset_expiry(self):
        return self.clock() + timedelta(hours=settings.PASSWORD_RESET_LIFETIME_HOURS)
