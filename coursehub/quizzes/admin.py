from django.contrib import admin
from .models import Certificate, Quiz, QuizAnalytics, QuizAnswer, QuizAttempt, QuizQuestion, QuizResponse


class QuizAnswerInline(admin.TabularInline):
    model = QuizAnswer
    extra = 0


@admin.register(Quiz)
class QuizAdmin(admin.ModelAdmin):
    list_display = ('title', 'type', 'is_template', 'passing_score', 'max_attempts', 'total_points')
    list_filter = ('type', 'is_template', 'generate_certificate')
    search_fields = ('title',)


@admin.register(QuizQuestion)
class QuizQuestionAdmin(admin.ModelAdmin):
    list_display = ('question', 'quiz', 'type', 'points', 'order')
    list_filter = ('type',)
    inlines = [QuizAnswerInline]


@admin.register(QuizAttempt)
class QuizAttemptAdmin(admin.ModelAdmin):
    list_display = ('user', 'quiz', 'attempt_number', 'status', 'score', 'passed', 'started_at')
    list_filter = ('status', 'passed')
    search_fields = ('user__email', 'quiz__title')


admin.site.register(QuizResponse)
admin.site.register(QuizAnalytics)


@admin.register(Certificate)
class CertificateAdmin(admin.ModelAdmin):
    list_display = ('certificate_number', 'student_name', 'course_name', 'score', 'completion_date')
    search_fields = ('certificate_number', 'user__email')
