"""
Account models: platform users and their authenticated devices.

User is a plain model (not Django's auth user) so the API layer owns
credentials, roles, and session rotation end to end.
"""
import uuid
from django.contrib.auth.hashers import check_password, make_password
from django.db import models


class User(models.Model):
    ROLE_STUDENT = 'STUDENT'
    ROLE_ADMIN = 'ADMIN'
    ROLE_CHOICES = [
        (ROLE_STUDENT, 'Student'),
        (ROLE_ADMIN, 'Admin'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=100)
    surname = models.CharField(max_length=100, blank=True, default='')
    phone = models.CharField(max_length=32, unique=True, blank=True, null=True)
    password_hash = models.CharField(max_length=255)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_STUDENT)
    avatar = models.TextField(blank=True, null=True)
    bio = models.TextField(blank=True, null=True)

    is_active = models.BooleanField(default=True)
    email_verified = models.BooleanField(default=False)
    verification_token = models.CharField(max_length=64, blank=True, null=True, db_index=True)
    reset_password_token = models.CharField(max_length=64, blank=True, null=True, db_index=True)
    reset_password_expires = models.DateTimeField(blank=True, null=True)

    last_login = models.DateTimeField(blank=True, null=True)
    deleted_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['role']),
        ]

    def __str__(self):
        return self.full_name

    # DRF permission classes check these on request.user
    @property
    def is_authenticated(self):
        return True

    @property
    def is_anonymous(self):
        return False

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN

    @property
    def full_name(self):
        return f"{self.name} {self.surname}".strip()

    def set_password(self, raw_password):
        self.password_hash = make_password(raw_password)

    def check_password(self, raw_password):
        if not self.password_hash:
            return False
        return check_password(raw_password, self.password_hash)


class DeviceSession(models.Model):
    """
    One authenticated device for one user.
    Re-login from the same fingerprint reuses the row; rotation swaps refresh_token.
    """
    DEVICE_TYPE_CHOICES = [
        ('mobile', 'Mobile'),
        ('tablet', 'Tablet'),
        ('desktop', 'Desktop'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='device_sessions')
    device_fingerprint = models.CharField(max_length=64)
    device_name = models.CharField(max_length=255)
    device_type = models.CharField(max_length=20, choices=DEVICE_TYPE_CHOICES, default='desktop')
    browser = models.CharField(max_length=255, blank=True, null=True)
    user_agent = models.TextField(blank=True, default='')
    ip_address = models.GenericIPAddressField(blank=True, null=True)

    refresh_token = models.TextField(unique=True)
    expires_at = models.DateTimeField()
    last_active_at = models.DateTimeField()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'device_sessions'
        unique_together = ('user', 'device_fingerprint')
        indexes = [
            models.Index(fields=['user', 'is_active']),
            models.Index(fields=['expires_at']),
        ]

    def __str__(self):
        return f"{self.user.email} - {self.device_name}"
