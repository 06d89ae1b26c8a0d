"""
Quiz Attempt Service
Attempt lifecycle, scoring and completion side effects.

    start ──> IN_PROGRESS ──complete──> COMPLETED
                   │
                   └──expire──> TIME_EXPIRED

An attempt is finalized exactly once. Every mutation locks the attempt row and
re-checks the status inside the same transaction.
"""
import logging
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.db.models import Max, Sum
from django.utils import timezone

from learning.services.progress import ProgressService
from quizzes.exceptions import (
    AttemptNotFound,
    MaxAttemptsReached,
    NotInProgress,
    QuestionNotFound,
    QuizNotFound,
)
from quizzes.models import Quiz, QuizAttempt, QuizQuestion, QuizResponse
from quizzes.services.analytics import QuizAnalyticsService
from quizzes.services.certificates import CertificateService

logger = logging.getLogger(__name__)

COPY_PASTE_ACTIONS = ('copy', 'paste')


def is_answer_correct(submitted_ids, correct_ids):
    """Exact, order-independent match. No partial credit."""
    return sorted(str(i) for i in submitted_ids) == sorted(str(i) for i in correct_ids)


def compute_score(points_earned, total_points):
    """Percentage of the total; a zero total is treated as 1."""
    return points_earned * 100 / (total_points or 1)


class QuizAttemptService:

    def __init__(self, clock=timezone.now, progress=None, analytics=None, certificates=None):
        self.clock = clock
        self.progress = progress or ProgressService(clock=clock)
        self.analytics = analytics or QuizAnalyticsService(clock=clock)
        self.certificates = certificates or CertificateService(clock=clock, progress=self.progress)

    # Lookups

    @staticmethod
    def _in_progress(user, quiz):
        return QuizAttempt.objects.filter(
            user=user,
            quiz=quiz,
            status=QuizAttempt.STATUS_IN_PROGRESS,
        ).first()

    @staticmethod
    def _locked_attempt(attempt_id, user):
        attempt = QuizAttempt.objects.select_for_update().filter(pk=attempt_id, user=user).first()
        if attempt is None:
            raise AttemptNotFound()
        return attempt

    @staticmethod
    def _require_in_progress(attempt):
        if not attempt.is_in_progress:
            raise NotInProgress()

    @staticmethod
    def _question_in_quiz(question_id, quiz_id):
        question = QuizQuestion.objects.filter(pk=question_id, quiz_id=quiz_id).first()
        if question is None:
            raise QuestionNotFound()
        return question

    # Lifecycle

    def start(self, user, quiz_id, ip_address=None, user_agent=''):
        """
        Returns the attempt to work on: the existing IN_PROGRESS one if any,
        otherwise a new attempt with the next number and a frozen points total.
        """
        quiz = Quiz.objects.filter(pk=quiz_id).first()
        if quiz is None:
            raise QuizNotFound()

        if quiz.max_attempts:
            finished = QuizAttempt.objects.filter(
                user=user,
                quiz=quiz,
                status__in=QuizAttempt.FINISHED_STATUSES,
            ).count()
            if finished >= quiz.max_attempts:
                logger.info(f"[START_QUIZ] User {user.id} hit max attempts on quiz {quiz.id}")
                raise MaxAttemptsReached()

        existing = self._in_progress(user, quiz)
        if existing:
            logger.info(f"[START_QUIZ] Resuming attempt {existing.id} for user {user.id}")
            return existing

        last_number = QuizAttempt.objects.filter(user=user, quiz=quiz).aggregate(
            last=Max('attempt_number')
        )['last'] or 0
        total_points = quiz.questions.aggregate(total=Sum('points'))['total'] or 0

        try:
            with transaction.atomic():
                attempt = QuizAttempt.objects.create(
                    user=user,
                    quiz=quiz,
                    attempt_number=last_number + 1,
                    status=QuizAttempt.STATUS_IN_PROGRESS,
                    total_points=total_points,
                    started_at=self.clock(),
                    ip_address=ip_address,
                    user_agent=user_agent or '',
                )
        except IntegrityError:
            # A concurrent start won the one-in-progress constraint; resume its attempt
            existing = self._in_progress(user, quiz)
            if existing is None:
                raise
            return existing

        logger.info(f"[START_QUIZ] Attempt {attempt.id} (#{attempt.attempt_number}) for user {user.id}")
        return attempt

    def submit_answer(self, attempt_id, user, question_id, answer_ids, time_spent=None):
        """Upserts the (attempt, question) response; resubmission overwrites."""
        with transaction.atomic():
            attempt = self._locked_attempt(attempt_id, user)
            self._require_in_progress(attempt)
            question = self._question_in_quiz(question_id, attempt.quiz_id)

            correct_ids = question.answers.filter(is_correct=True).values_list('id', flat=True)
            is_correct = is_answer_correct(answer_ids, correct_ids)

            response, _ = QuizResponse.objects.update_or_create(
                attempt=attempt,
                question=question,
                defaults={
                    'answer_ids': [str(i) for i in answer_ids],
                    'is_correct': is_correct,
                    'points_earned': question.points if is_correct else 0,
                    'time_spent': time_spent,
                },
            )

            attempt.questions_answered = attempt.responses.count()
            attempt.last_saved_at = self.clock()
            attempt.save(update_fields=['questions_answered', 'last_saved_at'])

        return response

    def auto_save(self, attempt_id, user, payload):
        with transaction.atomic():
            attempt = self._locked_attempt(attempt_id, user)
            self._require_in_progress(attempt)
            attempt.auto_save_data = payload
            attempt.last_saved_at = self.clock()
            attempt.save(update_fields=['auto_save_data', 'last_saved_at'])
        return attempt

    def toggle_mark_for_review(self, attempt_id, user, question_id):
        with transaction.atomic():
            attempt = self._locked_attempt(attempt_id, user)
            self._require_in_progress(attempt)
            question = self._question_in_quiz(question_id, attempt.quiz_id)

            key = str(question.id)
            marked = list(attempt.marked_for_review or [])
            if key in marked:
                marked.remove(key)
            else:
                marked.append(key)

            attempt.marked_for_review = marked
            attempt.save(update_fields=['marked_for_review'])
        return marked

    def _log_event(self, attempt, bucket, entry):
        activity = dict(attempt.suspicious_activity or {})
        events = list(activity.get(bucket, []))
        events.append(entry)
        activity[bucket] = events
        attempt.suspicious_activity = activity

    def log_tab_switch(self, attempt_id, user):
        with transaction.atomic():
            attempt = self._locked_attempt(attempt_id, user)
            self._require_in_progress(attempt)
            self._log_event(attempt, 'tabSwitches', {'timestamp': self.clock().isoformat()})
            attempt.tab_switch_count += 1
            attempt.save(update_fields=['tab_switch_count', 'suspicious_activity'])
        return attempt.tab_switch_count

    def log_copy_paste(self, attempt_id, user, action):
        if action not in COPY_PASTE_ACTIONS:
            raise ValueError(f"Unknown copy/paste action: {action}")

        with transaction.atomic():
            attempt = self._locked_attempt(attempt_id, user)
            self._require_in_progress(attempt)
            self._log_event(attempt, 'copyPaste', {'action': action, 'timestamp': self.clock().isoformat()})
            attempt.copy_paste_count += 1
            attempt.save(update_fields=['copy_paste_count', 'suspicious_activity'])
        return attempt.copy_paste_count

    def _finalize(self, attempt, status, time_remaining):
        now = self.clock()
        points_earned = attempt.responses.aggregate(total=Sum('points_earned'))['total'] or 0
        score = compute_score(points_earned, attempt.total_points)

        attempt.status = status
        attempt.points_earned = points_earned
        attempt.score = score
        attempt.passed = score >= attempt.quiz.passing_score
        attempt.completed_at = now
        attempt.time_spent = max(int((now - attempt.started_at).total_seconds()), 0)
        attempt.time_remaining = time_remaining
        attempt.save(update_fields=[
            'status', 'points_earned', 'score', 'passed', 'completed_at', 'time_spent', 'time_remaining',
        ])

    def complete(self, attempt_id, user, time_remaining=None):
        with transaction.atomic():
            attempt = self._locked_attempt(attempt_id, user)
            self._require_in_progress(attempt)
            self._finalize(attempt, QuizAttempt.STATUS_COMPLETED, time_remaining)

        logger.info(
            f"[COMPLETE_QUIZ] Attempt {attempt.id}: score {attempt.score:.1f}, passed={attempt.passed}"
        )
        self._after_completion(attempt)
        return attempt

    def expire(self, attempt_id, user):
        with transaction.atomic():
            attempt = self._locked_attempt(attempt_id, user)
            self._require_in_progress(attempt)
            self._finalize(attempt, QuizAttempt.STATUS_TIME_EXPIRED, 0)

        logger.info(f"[EXPIRE_QUIZ] Attempt {attempt.id} expired with score {attempt.score:.1f}")
        self._refresh_analytics(attempt)
        return attempt

    def expire_overdue(self):
        """Expire every in-progress attempt whose time limit has elapsed. Returns the count."""
        now = self.clock()
        candidates = QuizAttempt.objects.select_related('quiz', 'user').filter(
            status=QuizAttempt.STATUS_IN_PROGRESS,
            quiz__time_limit__isnull=False,
        )

        expired = 0
        for candidate in candidates:
            if candidate.started_at + timedelta(minutes=candidate.quiz.time_limit) > now:
                continue
            try:
                self.expire(candidate.id, candidate.user)
            except NotInProgress:
                # Finished by its owner since the scan
                continue
            expired += 1
        return expired

    # Side effects

    def _refresh_analytics(self, attempt):
        try:
            with transaction.atomic():
                self.analytics.update_daily(attempt.quiz_id)
        except Exception:
            logger.exception(f"[QUIZ_ANALYTICS] Failed to update analytics for quiz {attempt.quiz_id}")

    def _after_completion(self, attempt):
        """
        Runs once the COMPLETED status is persisted. Failures here are logged and
        never undo the completion; certificates can be regenerated explicitly.
        """
        self._refresh_analytics(attempt)

        if not attempt.passed:
            return

        quiz = attempt.quiz
        chapter = quiz.owning_chapter
        if chapter is not None:
            try:
                with transaction.atomic():
                    self.progress.complete_chapter(attempt.user, chapter)
            except Exception:
                logger.exception(f"[PROGRESS] Chapter completion failed for attempt {attempt.id}")

        if quiz.generate_certificate:
            try:
                self.certificates.maybe_issue(attempt)
            except Exception:
                logger.exception(f"[CERTIFICATE] Issuance failed for attempt {attempt.id}")

    # Reads

    def get_results(self, attempt_id, user):
        attempt = QuizAttempt.objects.select_related('quiz').prefetch_related(
            'responses__question__answers',
            'certificates',
        ).filter(pk=attempt_id, user=user).first()
        if attempt is None:
            raise AttemptNotFound()
        return attempt

    def list_user_attempts(self, user, quiz_id):
        if not Quiz.objects.filter(pk=quiz_id).exists():
            raise QuizNotFound()
        return QuizAttempt.objects.filter(user=user, quiz_id=quiz_id).select_related('quiz').order_by('-attempt_number')
