"""
Quiz engine errors. Raised by the services, rendered by the API envelope handler.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class QuizNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Quiz not found'
    default_code = 'QUIZ_NOT_FOUND'


class AttemptNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Attempt not found'
    default_code = 'ATTEMPT_NOT_FOUND'


class QuestionNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Question not found'
    default_code = 'QUESTION_NOT_FOUND'


class TemplateNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Template not found'
    default_code = 'TEMPLATE_NOT_FOUND'


class MaxAttemptsReached(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Maximum attempts reached'
    default_code = 'MAX_ATTEMPTS_REACHED'


class NotInProgress(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Quiz is not in progress'
    default_code = 'NOT_IN_PROGRESS'


class CertificateNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Certificate not found'
    default_code = 'CERTIFICATE_NOT_FOUND'


class CertificateNotEligible(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Attempt is not eligible for a certificate'
    default_code = 'CERTIFICATE_NOT_ELIGIBLE'
