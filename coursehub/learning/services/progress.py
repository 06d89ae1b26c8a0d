"""
Progress Service
Per-chapter watch/completion state, course overviews and learner statistics
"""
import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from learning.exceptions import ChapterNotFound, CourseNotFound, ProgressNotFound
from learning.models import Chapter, Course, Progress

logger = logging.getLogger(__name__)


class ProgressService:
    """
    The player reports progress every heartbeat. A chapter counts as watched once
    the watch percentage reaches CHAPTER_COMPLETION_THRESHOLD; the first time that
    happens the learner may skip ahead on later viewings.
    """

    def __init__(self, clock=timezone.now):
        self.clock = clock

    @staticmethod
    def get_chapter(chapter_id):
        chapter = Chapter.objects.select_related('version').filter(pk=chapter_id).first()
        if chapter is None:
            raise ChapterNotFound()
        return chapter

    def update_progress(self, user, chapter, current_position, total_duration, watch_percentage):
        reached = watch_percentage >= settings.CHAPTER_COMPLETION_THRESHOLD

        with transaction.atomic():
            progress, created = Progress.objects.select_for_update().get_or_create(
                user=user,
                chapter=chapter,
                defaults={'course_version_id': chapter.version_id},
            )

            if reached and not progress.first_watch_completed:
                progress.first_watch_completed = True
                progress.can_skip_ahead = True

            progress.last_position = int(current_position)
            progress.watch_percentage = watch_percentage
            progress.total_watch_time += settings.PROGRESS_HEARTBEAT_SECONDS
            progress.is_completed = progress.is_completed or reached
            progress.save()

        if created:
            logger.info(f"[PROGRESS] Started chapter {chapter.id} for user {user.id} ({total_duration}s)")
        return progress

    def get_progress(self, user, chapter):
        return Progress.objects.filter(user=user, chapter=chapter).first()

    def mark_completed(self, user, chapter):
        """Manual completion (non-video content): counts as a full watch."""
        with transaction.atomic():
            progress, _ = Progress.objects.update_or_create(
                user=user,
                chapter=chapter,
                defaults={
                    'course_version_id': chapter.version_id,
                    'is_completed': True,
                    'watch_percentage': 100,
                    'first_watch_completed': True,
                    'can_skip_ahead': True,
                },
            )
        return progress

    def complete_chapter(self, user, chapter):
        """Completion granted by passing the chapter's quiz; watch state is left alone."""
        with transaction.atomic():
            progress, _ = Progress.objects.update_or_create(
                user=user,
                chapter=chapter,
                defaults={
                    'course_version_id': chapter.version_id,
                    'is_completed': True,
                },
            )
        logger.info(f"[PROGRESS] Chapter {chapter.id} completed by quiz for user {user.id}")
        return progress

    def reset_progress(self, user, chapter):
        """Clears watch state. The skip-ahead flags survive a reset."""
        updated = Progress.objects.filter(user=user, chapter=chapter).update(
            last_position=0,
            watch_percentage=0,
            total_watch_time=0,
            is_completed=False,
            updated_at=self.clock(),
        )
        if not updated:
            raise ProgressNotFound()

    def all_chapters_completed(self, user, version):
        chapter_ids = list(Chapter.objects.filter(version=version).values_list('id', flat=True))
        if not chapter_ids:
            return False

        completed = Progress.objects.filter(
            user=user,
            chapter_id__in=chapter_ids,
            is_completed=True,
        ).count()
        return completed == len(chapter_ids)

    def course_progress(self, user, course_id):
        course = Course.objects.filter(pk=course_id).first()
        version = course.active_version if course else None
        if version is None:
            raise CourseNotFound()

        chapters = list(version.chapters.order_by('order'))
        progress_map = {
            p.chapter_id: p
            for p in Progress.objects.filter(user=user, chapter__in=chapters)
        }

        rows = []
        for chapter in chapters:
            progress = progress_map.get(chapter.id)
            rows.append({
                'id': str(chapter.id),
                'title': chapter.title,
                'order': chapter.order,
                'lastPosition': progress.last_position if progress else 0,
                'watchPercentage': progress.watch_percentage if progress else 0,
                'isCompleted': progress.is_completed if progress else False,
                'canSkipAhead': progress.can_skip_ahead if progress else False,
            })

        completed = sum(1 for row in rows if row['isCompleted'])
        total = len(chapters)
        overall = (completed / total) * 100 if total else 0

        return {
            'courseId': str(course.id),
            'versionId': str(version.id),
            'totalChapters': total,
            'completedChapters': completed,
            'overallProgress': round(overall),
            'chapters': rows,
        }

    def user_stats(self, user):
        progress_rows = Progress.objects.filter(user=user).select_related('chapter__version__course')

        total_chapters = 0
        completed_chapters = 0
        total_watch_time = 0
        courses = {}

        for progress in progress_rows:
            course = progress.chapter.version.course
            total_chapters += 1
            total_watch_time += progress.total_watch_time
            if progress.is_completed:
                completed_chapters += 1

            entry = courses.setdefault(course.id, {
                'courseId': str(course.id),
                'courseTitle': course.title,
                'totalChapters': 0,
                'completedChapters': 0,
                'watchTime': 0,
            })
            entry['totalChapters'] += 1
            entry['watchTime'] += progress.total_watch_time
            if progress.is_completed:
                entry['completedChapters'] += 1

        for entry in courses.values():
            entry['progress'] = round(entry['completedChapters'] / entry['totalChapters'] * 100, 1)

        return {
            'totalChapters': total_chapters,
            'completedChapters': completed_chapters,
            'totalWatchTime': total_watch_time,
            'totalWatchTimeHours': round(total_watch_time / 3600, 1),
            'overallProgress': round(completed_chapters / total_chapters * 100, 1) if total_chapters else 0,
            'courses': list(courses.values()),
        }
