"""
Device Session Service
One session row per (user, device fingerprint), bounded per role, with refresh token rotation
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from accounts.exceptions import DeviceLimitError, DeviceSessionNotFound
from accounts.models import DeviceSession, User
from accounts.services.tokens import InvalidToken, TokenService

logger = logging.getLogger(__name__)


def max_devices_for_role(role):
    if role == User.ROLE_ADMIN:
        return settings.MAX_DEVICES_ADMIN
    return settings.MAX_DEVICES_STUDENT


class DeviceSessionService:
    """
    Session lifecycle:
        ACTIVE --rotate--> ACTIVE (new token)
        ACTIVE --logout | password change | admin revoke--> INACTIVE
        INACTIVE | expired --cleanup--> deleted
    Nothing moves a session from INACTIVE back to ACTIVE except a fresh login
    from the same device, which re-issues the row.
    """

    def __init__(self, tokens=None, clock=timezone.now):
        self.clock = clock
        self.tokens = tokens or TokenService(clock=clock)

    def create_session(self, user, device_fingerprint, device_meta=None, ip_address=None):
        """
        Returns (session, refresh_token).
        Raises DeviceLimitError when a new device would exceed the role's limit.
        A known fingerprint is never counted: its row is reactivated even if that
        leaves more active sessions than the role allows.
        """
        meta = device_meta or {}
        now = self.clock()

        with transaction.atomic():
            # Lock the user row so concurrent logins from new devices are counted one at a time
            User.objects.select_for_update().filter(pk=user.pk).first()

            refresh_token = self.tokens.issue_refresh_token(user.id)
            expires_at = self.tokens.refresh_token_expiry()

            existing = DeviceSession.objects.filter(
                user=user,
                device_fingerprint=device_fingerprint,
            ).first()

            if existing:
                existing.refresh_token = refresh_token
                existing.expires_at = expires_at
                existing.last_active_at = now
                existing.is_active = True
                existing.ip_address = ip_address
                existing.save(update_fields=[
                    'refresh_token', 'expires_at', 'last_active_at', 'is_active', 'ip_address',
                ])
                logger.info(f"[DEVICE_SESSION] Reused session {existing.id} for user {user.id}")
                return existing, refresh_token

            active_count = DeviceSession.objects.filter(user=user, is_active=True).count()
            max_devices = max_devices_for_role(user.role)

            if active_count >= max_devices:
                logger.warning(
                    f"[DEVICE_SESSION] Device limit reached for user {user.id}: {active_count}/{max_devices}"
                )
                raise DeviceLimitError(active_count, max_devices)

            session = DeviceSession.objects.create(
                user=user,
                device_fingerprint=device_fingerprint,
                device_name=meta.get('device_name') or 'Unknown device',
                device_type=meta.get('device_type') or 'desktop',
                browser=meta.get('browser'),
                user_agent=meta.get('user_agent') or '',
                ip_address=ip_address,
                refresh_token=refresh_token,
                expires_at=expires_at,
                last_active_at=now,
            )

        logger.info(f"[DEVICE_SESSION] Created session {session.id} for user {user.id}")
        return session, refresh_token

    def verify_refresh_token(self, refresh_token):
        """
        Return the active, unexpired session holding this token, else None.
        Bad signature, unknown token, revoked and expired all look the same to callers.
        """
        try:
            self.tokens.verify_refresh_token(refresh_token)
        except InvalidToken:
            return None

        return DeviceSession.objects.select_related('user').filter(
            refresh_token=refresh_token,
            is_active=True,
            expires_at__gt=self.clock(),
        ).first()

    def rotate_refresh_token(self, old_refresh_token, user_id):
        """
        Swap the session's refresh token for a new one.
        Returns (session, new_refresh_token) or None if the old token no longer verifies.
        """
        session = self.verify_refresh_token(old_refresh_token)
        if session is None or str(session.user_id) != str(user_id):
            return None

        new_refresh_token = self.tokens.issue_refresh_token(session.user_id)
        expires_at = self.tokens.refresh_token_expiry()

        # Compare-and-swap on the old value: a concurrent rotation of the same token loses here
        updated = DeviceSession.objects.filter(
            pk=session.pk,
            refresh_token=old_refresh_token,
            is_active=True,
        ).update(
            refresh_token=new_refresh_token,
            expires_at=expires_at,
            last_active_at=self.clock(),
        )
        if updated != 1:
            logger.warning(f"[DEVICE_SESSION] Lost rotation race for session {session.pk}")
            return None

        session.refresh_from_db()
        return session, new_refresh_token

    def list_sessions(self, user_id):
        return list(
            DeviceSession.objects.filter(user_id=user_id, is_active=True).order_by('-last_active_at')
        )

    def _owned_session(self, session_id, user_id):
        session = DeviceSession.objects.filter(pk=session_id, user_id=user_id).first()
        if session is None:
            raise DeviceSessionNotFound()
        return session

    def update_device_name(self, session_id, user_id, device_name):
        session = self._owned_session(session_id, user_id)
        session.device_name = device_name
        session.save(update_fields=['device_name'])
        return session

    def remove_session(self, session_id, user_id):
        session = self._owned_session(session_id, user_id)
        session.delete()
        logger.info(f"[DEVICE_SESSION] User {user_id} removed session {session_id}")

    def revoke_session(self, session_id):
        """Admin revocation: flag flip, the row stays until the cleanup sweep."""
        updated = DeviceSession.objects.filter(pk=session_id).update(is_active=False)
        if not updated:
            raise DeviceSessionNotFound()
        logger.info(f"[DEVICE_SESSION] Revoked session {session_id}")

    def deactivate_session(self, refresh_token):
        return DeviceSession.objects.filter(refresh_token=refresh_token).update(is_active=False)

    def deactivate_all_sessions(self, user_id):
        count = DeviceSession.objects.filter(user_id=user_id, is_active=True).update(is_active=False)
        logger.info(f"[DEVICE_SESSION] Deactivated {count} session(s) for user {user_id}")
        return count

    def cleanup(self):
        """Delete expired sessions, sessions idle past the inactivity window, and inactive ones."""
        now = self.clock()
        idle_cutoff = now - timedelta(days=settings.INACTIVE_DEVICE_DAYS)

        deleted, _ = DeviceSession.objects.filter(
            Q(expires_at__lt=now) | Q(last_active_at__lt=idle_cutoff) | Q(is_active=False)
        ).delete()

        logger.info(f"[DEVICE_SESSION] Cleanup removed {deleted} session(s)")
        return deleted
