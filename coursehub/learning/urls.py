"""
Learning URL configuration - mounted at /api/progress/
"""
from django.urls import path

from . import views

urlpatterns = [
    path('stats/', views.user_stats, name='progress-stats'),
    path('courses/<uuid:course_id>/', views.course_progress, name='progress-course'),
    path('chapters/<uuid:chapter_id>/', views.chapter_progress, name='progress-chapter'),
    path('chapters/<uuid:chapter_id>/complete/', views.mark_chapter_completed, name='progress-chapter-complete'),
    path('chapters/<uuid:chapter_id>/reset/', views.reset_chapter_progress, name='progress-chapter-reset'),
]
