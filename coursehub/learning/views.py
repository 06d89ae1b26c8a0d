"""
Progress API
Video heartbeat updates, manual completion, resets and learner statistics
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .serializers import ProgressSerializer, ProgressUpdateSerializer
from .services.progress import ProgressService

EMPTY_PROGRESS = {
    'lastPosition': 0,
    'watchPercentage': 0,
    'totalWatchTime': 0,
    'isCompleted': False,
    'canSkipAhead': False,
    'firstWatchCompleted': False,
}


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def chapter_progress(request, chapter_id):
    """
    GET  /api/progress/chapters/<id>/ - current state (zeros when never watched)
    PUT  /api/progress/chapters/<id>/ - player heartbeat
         {"currentPosition", "totalDuration", "watchPercentage"}
    """
    service = ProgressService()
    chapter = service.get_chapter(chapter_id)

    if request.method == 'GET':
        progress = service.get_progress(request.user, chapter)
        data = ProgressSerializer(progress).data if progress else dict(EMPTY_PROGRESS)
        return Response({'success': True, 'data': data})

    serializer = ProgressUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    progress = service.update_progress(
        request.user,
        chapter,
        current_position=data['currentPosition'],
        total_duration=data['totalDuration'],
        watch_percentage=data['watchPercentage'],
    )
    return Response({'success': True, 'data': ProgressSerializer(progress).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_chapter_completed(request, chapter_id):
    """POST /api/progress/chapters/<id>/complete/"""
    service = ProgressService()
    chapter = service.get_chapter(chapter_id)
    progress = service.mark_completed(request.user, chapter)
    return Response({'success': True, 'data': ProgressSerializer(progress).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def reset_chapter_progress(request, chapter_id):
    """POST /api/progress/chapters/<id>/reset/"""
    service = ProgressService()
    chapter = service.get_chapter(chapter_id)
    service.reset_progress(request.user, chapter)
    return Response({'success': True, 'message': 'Progress reset successfully'}, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def course_progress(request, course_id):
    """GET /api/progress/courses/<id>/ - overview against the active version"""
    data = ProgressService().course_progress(request.user, course_id)
    return Response({'success': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_stats(request):
    """GET /api/progress/stats/"""
    return Response({'success': True, 'data': ProgressService().user_stats(request.user)})
