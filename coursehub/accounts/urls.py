"""
Accounts URL configuration
Mounted at /api/auth/ (auth_urls) and /api/admin/ (admin_urls)
"""
from django.urls import path

from . import views

auth_urls = [
    path('register/', views.register, name='auth-register'),
    path('login/', views.login, name='auth-login'),
    path('refresh/', views.refresh, name='auth-refresh'),
    path('logout/', views.logout, name='auth-logout'),
    path('verify-email/', views.verify_email, name='auth-verify-email'),
    path('forgot-password/', views.forgot_password, name='auth-forgot-password'),
    path('reset-password/', views.reset_password, name='auth-reset-password'),
    path('change-password/', views.change_password, name='auth-change-password'),
    path('me/', views.me, name='auth-me'),
    path('devices/', views.devices, name='auth-devices'),
    path('devices/<uuid:session_id>/', views.device_detail, name='auth-device-detail'),
]

admin_urls = [
    path('users/<uuid:user_id>/devices/', views.admin_user_devices, name='admin-user-devices'),
    path('users/<uuid:user_id>/deactivate/', views.admin_deactivate_user, name='admin-deactivate-user'),
    path('devices/<uuid:session_id>/', views.admin_revoke_device, name='admin-revoke-device'),
]
