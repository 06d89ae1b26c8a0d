"""
Certificate Service
Issues course certificates for passed, certificate-generating quizzes and renders them as PDF
"""
import logging
import secrets
import string
from io import BytesIO

from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.timezone import localtime
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas

from learning.services.progress import ProgressService
from quizzes.exceptions import AttemptNotFound, CertificateNotEligible, CertificateNotFound
from quizzes.models import Certificate, QuizAttempt

logger = logging.getLogger(__name__)

BASE36 = string.digits + string.ascii_uppercase


def _base36(number):
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36[remainder])
    return ''.join(reversed(digits)) or '0'


def generate_certificate_number(now):
    """CERT-<epoch millis>-<random base36>"""
    millis = int(now.timestamp() * 1000)
    suffix = _base36(secrets.randbelow(36 ** 6)).rjust(6, '0')
    return f"CERT-{millis}-{suffix}"


class CertificateService:

    def __init__(self, clock=timezone.now, progress=None):
        self.clock = clock
        self.progress = progress or ProgressService(clock=clock)

    def _snapshot(self, attempt, course):
        user = attempt.user
        return {
            'attempt': attempt,
            'quiz': attempt.quiz,
            'student_name': user.full_name,
            'course_name': course.title,
            'quiz_title': attempt.quiz.title,
            'score': attempt.score,
            'completion_date': attempt.completed_at or self.clock(),
        }

    def maybe_issue(self, attempt):
        """
        Pass-triggered issuance. Returns the (user, course) certificate when the attempt
        qualifies, creating it only if none exists yet; otherwise None.
        """
        quiz = attempt.quiz
        if not attempt.passed or not quiz.generate_certificate:
            return None

        version = quiz.owning_version
        if version is None:
            return None

        if not self.progress.all_chapters_completed(attempt.user, version):
            return None

        course = version.course
        existing = Certificate.objects.filter(user_id=attempt.user_id, course=course).first()
        if existing:
            return existing

        try:
            with transaction.atomic():
                certificate = Certificate.objects.create(
                    user_id=attempt.user_id,
                    course=course,
                    certificate_number=generate_certificate_number(self.clock()),
                    **self._snapshot(attempt, course)
                )
        except IntegrityError:
            # Concurrent issuance for the same (user, course)
            return Certificate.objects.filter(user_id=attempt.user_id, course=course).first()

        logger.info(f"[CERTIFICATE] Issued {certificate.certificate_number} to user {attempt.user_id}")
        return certificate

    def regenerate(self, attempt_id, user):
        """
        Explicit re-issue for a passed attempt. Points the user's certificate for the
        course at this attempt and refreshes its snapshot; creates it if missing.
        """
        attempt = QuizAttempt.objects.select_related(
            'quiz', 'user', 'quiz__chapter__version__course',
            'quiz__chapter_content__chapter__version__course', 'quiz__course_version__course',
        ).filter(pk=attempt_id, user=user).first()
        if attempt is None:
            raise AttemptNotFound()

        if attempt.status != QuizAttempt.STATUS_COMPLETED or not attempt.passed:
            raise CertificateNotEligible('Only a passed, completed attempt can produce a certificate')

        version = attempt.quiz.owning_version
        if version is None:
            raise CertificateNotEligible('Quiz is not part of a course')

        if not self.progress.all_chapters_completed(user, version):
            raise CertificateNotEligible('All chapters must be completed first')

        course = version.course
        with transaction.atomic():
            certificate = Certificate.objects.select_for_update().filter(user=user, course=course).first()
            if certificate is None:
                certificate = Certificate.objects.create(
                    user=user,
                    course=course,
                    certificate_number=generate_certificate_number(self.clock()),
                    **self._snapshot(attempt, course)
                )
            else:
                for field, value in self._snapshot(attempt, course).items():
                    setattr(certificate, field, value)
                certificate.save()

        logger.info(f"[CERTIFICATE] Regenerated {certificate.certificate_number} from attempt {attempt.id}")
        return certificate

    @staticmethod
    def list_for_user(user):
        return Certificate.objects.filter(user=user).select_related('course').order_by('-completion_date')

    @staticmethod
    def get_by_number(certificate_number, user):
        queryset = Certificate.objects.select_related('course').filter(certificate_number=certificate_number)
        if not user.is_admin:
            queryset = queryset.filter(user=user)
        certificate = queryset.first()
        if certificate is None:
            raise CertificateNotFound()
        return certificate

    @staticmethod
    def render_pdf(certificate):
        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=landscape(letter))
        width, height = landscape(letter)

        margin = 0.5 * inch
        c.setLineWidth(3)
        c.rect(margin, margin, width - 2 * margin, height - 2 * margin)

        c.setFont("Helvetica-Bold", 34)
        c.drawCentredString(width / 2, height - 1.35 * inch, "Certificate of Completion")

        c.setFont("Helvetica", 16)
        c.drawCentredString(width / 2, height - 1.9 * inch, "This certifies that")

        c.setFont("Helvetica-Bold", 28)
        c.drawCentredString(width / 2, height - 2.6 * inch, certificate.student_name)

        c.setFont("Helvetica", 16)
        c.drawCentredString(width / 2, height - 3.2 * inch, "has successfully completed")

        c.setFont("Helvetica-Bold", 22)
        c.drawCentredString(width / 2, height - 3.8 * inch, certificate.course_name)

        completed = localtime(certificate.completion_date).date().strftime("%B %d, %Y")
        score = f"{certificate.score:.0f}%" if certificate.score is not None else "N/A"
        c.setFont("Helvetica", 14)
        c.drawCentredString(width / 2, height - 4.5 * inch, f"Completed: {completed}    |    Score: {score}")

        c.setFont("Helvetica", 12)
        c.drawString(margin + 0.2 * inch, margin + 0.35 * inch, f"Certificate No: {certificate.certificate_number}")

        c.showPage()
        c.save()
        return buffer.getvalue()
