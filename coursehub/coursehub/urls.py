"""
URL configuration for the coursehub project.
"""
from django.contrib import admin
from django.urls import include, path

from accounts.urls import admin_urls, auth_urls
from quizzes.urls import certificate_urls
from .health import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/health/', health_check, name='health'),
    path('api/auth/', include(auth_urls)),
    path('api/admin/', include(admin_urls)),
    path('api/progress/', include('learning.urls')),
    path('api/quizzes/', include('quizzes.urls')),
    path('api/certificates/', include(certificate_urls)),
]
