"""
Quiz Analytics Service
Daily buckets per quiz, rebuilt from scratch from that day's finished attempts
"""
import logging
from datetime import datetime, time, timedelta

from django.db import transaction
from django.utils import timezone

from quizzes.models import QuizAnalytics, QuizAttempt

logger = logging.getLogger(__name__)


class QuizAnalyticsService:

    def __init__(self, clock=timezone.now):
        self.clock = clock

    def _today(self):
        return timezone.localdate(self.clock())

    @staticmethod
    def _day_bounds(day):
        start = timezone.make_aware(datetime.combine(day, time.min))
        return start, start + timedelta(days=1)

    def update_daily(self, quiz_id):
        """Re-scan today's finished attempts and upsert the (quiz, today) row."""
        today = self._today()
        start, end = self._day_bounds(today)

        attempts = list(QuizAttempt.objects.filter(
            quiz_id=quiz_id,
            status__in=QuizAttempt.FINISHED_STATUSES,
            completed_at__gte=start,
            completed_at__lt=end,
        ))
        if not attempts:
            return None

        total = len(attempts)
        completed = sum(1 for a in attempts if a.status == QuizAttempt.STATUS_COMPLETED)

        scores = [a.score for a in attempts if a.score is not None]
        average_score = sum(scores) / len(scores) if scores else 0

        passed = sum(1 for a in attempts if a.passed)
        pass_rate = passed / total * 100

        times = [a.time_spent for a in attempts if a.time_spent is not None]
        average_time = sum(times) / len(times) if times else 0

        with transaction.atomic():
            row, _ = QuizAnalytics.objects.update_or_create(
                quiz_id=quiz_id,
                date=today,
                defaults={
                    'total_attempts': total,
                    'completed_attempts': completed,
                    'average_score': average_score,
                    'pass_rate': pass_rate,
                    'average_time': average_time,
                },
            )

        logger.info(f"[QUIZ_ANALYTICS] Quiz {quiz_id} {today}: {total} attempt(s), pass rate {pass_rate:.1f}%")
        return row

    def get_analytics(self, quiz_id, days=30):
        since = self._today() - timedelta(days=days)
        return QuizAnalytics.objects.filter(quiz_id=quiz_id, date__gte=since).order_by('date')
