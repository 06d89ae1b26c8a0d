from django.contrib import admin
from .models import Chapter, ChapterContent, Course, CourseVersion, Progress

# Catalog
admin.site.register(Course)
admin.site.register(CourseVersion)
admin.site.register(Chapter)
admin.site.register(ChapterContent)


@admin.register(Progress)
class ProgressAdmin(admin.ModelAdmin):
    list_display = ('user', 'chapter', 'watch_percentage', 'is_completed', 'can_skip_ahead', 'updated_at')
    list_filter = ('is_completed',)
    search_fields = ('user__email', 'chapter__title')
