"""
Role and verification gates layered on top of JWTAuthentication.
Both are predicate checks over request.user, no extra lookups.
"""
from rest_framework import permissions


class IsEmailVerified(permissions.BasePermission):
    """Authenticated user with a verified email"""
    message = 'Email verification required'
    code = 'EMAIL_NOT_VERIFIED'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.email_verified)


class IsAdmin(permissions.BasePermission):
    """Only admins can access"""
    message = 'Admin access required'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin)


class IsAdminOrReadOnly(permissions.BasePermission):
    """Admins can edit, other authenticated users can only read"""
    message = 'Admin access required'

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return user.is_admin
