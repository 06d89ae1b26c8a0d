"""
Course catalog shell and per-chapter learning progress.

Course -> CourseVersion (one active) -> Chapter (ordered) -> ChapterContent (ordered)
"""
import uuid
from django.db import models

from accounts.models import User


class Course(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    description = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'courses'

    def __str__(self):
        return self.title

    @property
    def active_version(self):
        return self.versions.filter(is_active=True).order_by('-version').first()


class CourseVersion(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='versions')
    version = models.PositiveIntegerField(default=1)
    title = models.CharField(max_length=255, blank=True, default='')
    is_active = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'course_versions'
        unique_together = ('course', 'version')

    def __str__(self):
        return f"{self.course.title} v{self.version}"


class Chapter(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    version = models.ForeignKey(CourseVersion, on_delete=models.CASCADE, related_name='chapters')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    order = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'chapters'
        ordering = ['order']

    def __str__(self):
        return self.title


class ChapterContent(models.Model):
    TYPE_CHOICES = [
        ('VIDEO', 'Video'),
        ('TEXT', 'Text'),
        ('QUIZ', 'Quiz'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    chapter = models.ForeignKey(Chapter, on_delete=models.CASCADE, related_name='contents')
    title = models.CharField(max_length=255)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='VIDEO')
    order = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'chapter_contents'
        ordering = ['order']

    def __str__(self):
        return self.title


class Progress(models.Model):
    """
    One row per (user, chapter).
    first_watch_completed / can_skip_ahead only ever move from False to True.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='progress')
    chapter = models.ForeignKey(Chapter, on_delete=models.CASCADE, related_name='progress')
    course_version = models.ForeignKey(CourseVersion, on_delete=models.CASCADE, related_name='progress')

    is_completed = models.BooleanField(default=False)
    watch_percentage = models.FloatField(default=0)
    last_position = models.PositiveIntegerField(default=0)
    total_watch_time = models.PositiveIntegerField(default=0)  # seconds
    first_watch_completed = models.BooleanField(default=False)
    can_skip_ahead = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'progress'
        unique_together = ('user', 'chapter')
        indexes = [
            models.Index(fields=['user', 'course_version']),
        ]

    def __str__(self):
        return f"{self.user_id} - {self.chapter_id}"
