"""
REST framework exception handler.

Every error leaves the API in the same envelope:
    {"success": false, "message": "...", "code": "...", ...extra}
"""
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return ''
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ''
    return str(detail)


def envelope_exception_handler(exc, context):
    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()

    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(f"[API_ERROR] Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}")
        return Response(
            {'success': False, 'message': 'Internal server error'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, exceptions.ValidationError):
        body = {
            'success': False,
            'message': _first_message(exc.detail) or 'Validation failed',
            'errors': exc.detail,
        }
    else:
        if isinstance(exc, exceptions.NotAuthenticated):
            message = 'No token provided'
        else:
            message = _first_message(exc.detail)

        body = {'success': False, 'message': message}

        codes = exc.get_codes()
        if isinstance(codes, str) and codes.isupper():
            body['code'] = codes

        extra = getattr(exc, 'extra', None)
        if extra:
            body.update(extra)

    response.data = body
    return response
