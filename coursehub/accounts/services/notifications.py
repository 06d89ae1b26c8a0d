"""
Outbound account notifications.
Delivery happens outside this service; these hooks only record that a message is due.
Tokens are never written to the log.
"""
import logging

logger = logging.getLogger(__name__)


def send_verification_email(user, token):
    logger.info(f"[EMAIL] Verification email due for user {user.id}")


def send_password_reset_email(user, token):
    logger.info(f"[EMAIL] Password reset email due for user {user.id}")


def send_password_changed_email(user):
    logger.info(f"[EMAIL] Password changed notice due for user {user.id}")
