"""
Management command to expire in-progress attempts past their quiz time limit.
Intended to run from cron / a scheduler.
"""
from django.core.management.base import BaseCommand

from quizzes.services.attempts import QuizAttemptService


class Command(BaseCommand):
    help = 'Expire in-progress quiz attempts whose time limit has elapsed'

    def handle(self, *args, **options):
        expired = QuizAttemptService().expire_overdue()
        self.stdout.write(self.style.SUCCESS(f'Expired {expired} attempt(s)'))
