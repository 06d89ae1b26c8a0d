from django.contrib import admin
from .models import DeviceSession, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('id', 'email', 'name', 'surname', 'role', 'is_active', 'email_verified')
    list_filter = ('role', 'is_active', 'email_verified')
    search_fields = ('email', 'name', 'surname', 'phone')
    exclude = ('password_hash', 'verification_token', 'reset_password_token')


@admin.register(DeviceSession)
class DeviceSessionAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'device_name', 'device_type', 'is_active', 'last_active_at', 'expires_at')
    list_filter = ('is_active', 'device_type')
    search_fields = ('user__email', 'device_name', 'ip_address')
    exclude = ('refresh_token',)
