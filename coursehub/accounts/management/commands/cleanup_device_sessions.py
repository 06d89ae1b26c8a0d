"""
Management command to sweep expired, idle and inactive device sessions.
Intended to run from cron / a scheduler.
"""
from django.core.management.base import BaseCommand

from accounts.services.device_sessions import DeviceSessionService


class Command(BaseCommand):
    help = 'Delete expired, idle and inactive device sessions'

    def handle(self, *args, **options):
        removed = DeviceSessionService().cleanup()
        self.stdout.write(self.style.SUCCESS(f'Removed {removed} device session(s)'))
