"""
Token service tests - access/refresh signing, expiry and type separation
"""
from datetime import timedelta

from django.test import SimpleTestCase
from django.utils import timezone

from accounts.services.tokens import InvalidToken, TokenExpired, TokenService


class TokenServiceTests(SimpleTestCase):
    """Access and refresh tokens"""

    def setUp(self):
        self.tokens = TokenService()
        self.user_id = '1b7c6c1e-5d3b-4a7e-9a57-0c9d3f0c2a11'

    def test_access_token_round_trip(self):
        """Test that a fresh access token verifies and carries the user id"""
        token = self.tokens.issue_access_token(self.user_id, 'ana@test.com')
        payload = self.tokens.verify_access_token(token)
        self.assertEqual(payload['userId'], self.user_id)
        self.assertEqual(payload['email'], 'ana@test.com')
        self.assertEqual(payload['type'], 'access')

    def test_refresh_token_is_not_an_access_token(self):
        """Test that refresh tokens are rejected by access verification and vice versa"""
        refresh = self.tokens.issue_refresh_token(self.user_id)
        access = self.tokens.issue_access_token(self.user_id)

        with self.assertRaises(InvalidToken):
            self.tokens.verify_access_token(refresh)
        with self.assertRaises(InvalidToken):
            self.tokens.verify_refresh_token(access)

    def test_refresh_tokens_are_distinct(self):
        """Test that two refresh tokens minted back to back differ"""
        first = self.tokens.issue_refresh_token(self.user_id)
        second = self.tokens.issue_refresh_token(self.user_id)
        self.assertNotEqual(first, second)

    def test_expired_access_token(self):
        """Test that an access token past its lifetime raises TokenExpired"""
        past = TokenService(clock=lambda: timezone.now() - timedelta(hours=1))
        token = past.issue_access_token(self.user_id)

        with self.assertRaises(TokenExpired):
            self.tokens.verify_access_token(token)

    def test_expired_refresh_token_is_invalid(self):
        """Test that refresh expiry surfaces as a plain InvalidToken"""
        past = TokenService(clock=lambda: timezone.now() - timedelta(days=60))
        token = past.issue_refresh_token(self.user_id)

        with self.assertRaises(InvalidToken) as ctx:
            self.tokens.verify_refresh_token(token)
        self.assertNotIsInstance(ctx.exception, TokenExpired)

    def test_garbage_and_empty_tokens(self):
        for token in ['', 'not-a-jwt', 'a.b.c']:
            with self.assertRaises(InvalidToken):
                self.tokens.verify_access_token(token)

    def test_opaque_tokens(self):
        """Test that opaque tokens are 64 hex chars and unique"""
        first = TokenService.issue_opaque_token()
        second = TokenService.issue_opaque_token()
        self.assertEqual(len(first), 64)
        int(first, 16)
        self.assertNotEqual(first, second)
