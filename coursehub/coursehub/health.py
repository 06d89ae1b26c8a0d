"""
Health Check View
Reports database connectivity for load balancers and uptime monitors.
"""
import logging

from django.db import DatabaseError, connection
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class HealthCheckService:
    """Checks performed by the health endpoint."""

    @staticmethod
    def check_database():
        """
        Run a trivial query against the default connection.

        Returns:
            dict: Health status with details
        """
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
            return {
                'status': 'healthy',
                'database': 'connected',
            }
        except DatabaseError as e:
            logger.error(f"Database health check failed: {e}")
            return {
                'status': 'unhealthy',
                'database': 'disconnected',
                'error': str(e),
            }


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def health_check(request):
    """GET /api/health/ - 200 when the database answers, 503 otherwise"""
    health = HealthCheckService.check_database()
    health['timestamp'] = timezone.now().isoformat()

    if health['status'] == 'healthy':
        return Response(health, status=status.HTTP_200_OK)
    return Response(health, status=status.HTTP_503_SERVICE_UNAVAILABLE)
