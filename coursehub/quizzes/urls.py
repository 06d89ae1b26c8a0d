"""
Quizzes URL configuration
Mounted at /api/quizzes/ (urlpatterns) and /api/certificates/ (certificate_urls)
"""
from django.urls import path

from . import views

urlpatterns = [
    # Authoring
    path('', views.quiz_collection, name='quiz-collection'),
    path('<uuid:quiz_id>/', views.quiz_detail, name='quiz-detail'),
    path('<uuid:quiz_id>/questions/', views.add_question, name='quiz-add-question'),
    path('<uuid:quiz_id>/import-questions/', views.import_questions, name='quiz-import-questions'),
    path('<uuid:quiz_id>/analytics/', views.quiz_analytics, name='quiz-analytics'),
    path('questions/<uuid:question_id>/', views.question_detail, name='quiz-question-detail'),
    path('templates/<uuid:template_id>/create/', views.create_from_template, name='quiz-from-template'),

    # Taking a quiz
    path('<uuid:quiz_id>/start/', views.start_quiz, name='quiz-start'),
    path('<uuid:quiz_id>/attempts/', views.user_attempts, name='quiz-user-attempts'),
    path('attempts/<uuid:attempt_id>/answers/', views.submit_answer, name='attempt-submit-answer'),
    path('attempts/<uuid:attempt_id>/auto-save/', views.auto_save, name='attempt-auto-save'),
    path('attempts/<uuid:attempt_id>/mark-for-review/', views.mark_for_review, name='attempt-mark-for-review'),
    path('attempts/<uuid:attempt_id>/log-tab-switch/', views.log_tab_switch, name='attempt-log-tab-switch'),
    path('attempts/<uuid:attempt_id>/log-copy-paste/', views.log_copy_paste, name='attempt-log-copy-paste'),
    path('attempts/<uuid:attempt_id>/complete/', views.complete_attempt, name='attempt-complete'),
    path('attempts/<uuid:attempt_id>/expire/', views.expire_attempt, name='attempt-expire'),
    path('attempts/<uuid:attempt_id>/results/', views.attempt_results, name='attempt-results'),
    path(
        'attempts/<uuid:attempt_id>/certificate/regenerate/',
        views.regenerate_certificate,
        name='attempt-regenerate-certificate'
    ),
]

certificate_urls = [
    path('', views.certificate_list, name='certificate-list'),
    path('<str:certificate_number>/download/', views.certificate_download, name='certificate-download'),
]
