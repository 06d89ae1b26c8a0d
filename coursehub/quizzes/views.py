"""
Quiz API
Learner routes for taking quizzes and reading results, admin routes for authoring and analytics,
certificate listing and download.
"""
from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsAdmin, IsAdminOrReadOnly
from accounts.services.fingerprint import get_client_ip
from .serializers import (
    AttemptResultSerializer,
    AttemptSerializer,
    AutoSaveSerializer,
    CertificateSerializer,
    CompleteAttemptSerializer,
    CopyPasteSerializer,
    ImportQuestionsSerializer,
    LearnerQuizSerializer,
    MarkForReviewSerializer,
    QuestionSerializer,
    QuestionWriteSerializer,
    QuizAnalyticsSerializer,
    QuizSerializer,
    QuizWriteSerializer,
    SubmitAnswerSerializer,
)
from .services.analytics import QuizAnalyticsService
from .services.attempts import QuizAttemptService
from .services.authoring import QuizAuthoringService
from .services.certificates import CertificateService


def _validated(serializer_class, request, **kwargs):
    serializer = serializer_class(data=request.data, **kwargs)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


# Learner: taking a quiz

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def start_quiz(request, quiz_id):
    """POST /api/quizzes/<id>/start/ - new attempt, or the one already in progress"""
    attempt = QuizAttemptService().start(
        request.user,
        quiz_id,
        ip_address=get_client_ip(request),
        user_agent=request.META.get('HTTP_USER_AGENT', ''),
    )
    return Response({'success': True, 'data': {'attempt': AttemptSerializer(attempt).data}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def submit_answer(request, attempt_id):
    """POST /api/quizzes/attempts/<id>/answers/ {"questionId", "answerIds", "timeSpent"?}"""
    data = _validated(SubmitAnswerSerializer, request)
    response = QuizAttemptService().submit_answer(
        attempt_id,
        request.user,
        data['questionId'],
        data['answerIds'],
        time_spent=data.get('timeSpent'),
    )
    # Correctness stays hidden until results
    return Response({
        'success': True,
        'data': {'questionId': str(response.question_id), 'answerIds': response.answer_ids},
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def auto_save(request, attempt_id):
    """POST /api/quizzes/attempts/<id>/auto-save/ {"data"}"""
    data = _validated(AutoSaveSerializer, request)
    attempt = QuizAttemptService().auto_save(attempt_id, request.user, data['data'])
    return Response({'success': True, 'data': {'lastSavedAt': attempt.last_saved_at}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_for_review(request, attempt_id):
    """POST /api/quizzes/attempts/<id>/mark-for-review/ {"questionId"} - toggles"""
    data = _validated(MarkForReviewSerializer, request)
    marked = QuizAttemptService().toggle_mark_for_review(attempt_id, request.user, data['questionId'])
    return Response({'success': True, 'data': {'markedForReview': marked}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def log_tab_switch(request, attempt_id):
    """POST /api/quizzes/attempts/<id>/log-tab-switch/"""
    count = QuizAttemptService().log_tab_switch(attempt_id, request.user)
    return Response({'success': True, 'data': {'tabSwitchCount': count}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def log_copy_paste(request, attempt_id):
    """POST /api/quizzes/attempts/<id>/log-copy-paste/ {"action": "copy" | "paste"}"""
    data = _validated(CopyPasteSerializer, request)
    count = QuizAttemptService().log_copy_paste(attempt_id, request.user, data['action'])
    return Response({'success': True, 'data': {'copyPasteCount': count}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def complete_attempt(request, attempt_id):
    """POST /api/quizzes/attempts/<id>/complete/ {"timeRemaining"?}"""
    data = _validated(CompleteAttemptSerializer, request)
    attempt = QuizAttemptService().complete(attempt_id, request.user, time_remaining=data.get('timeRemaining'))
    return Response({
        'success': True,
        'message': 'Quiz completed',
        'data': {'attempt': AttemptSerializer(attempt).data},
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def expire_attempt(request, attempt_id):
    """
    POST /api/quizzes/attempts/<id>/expire/ - client-side timer ran out
    A timer that fires after the attempt was completed or swept gets 409 NOT_IN_PROGRESS.
    """
    attempt = QuizAttemptService().expire(attempt_id, request.user)
    return Response({
        'success': True,
        'message': 'Time expired',
        'data': {'attempt': AttemptSerializer(attempt).data},
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def attempt_results(request, attempt_id):
    """GET /api/quizzes/attempts/<id>/results/"""
    attempt = QuizAttemptService().get_results(attempt_id, request.user)
    serializer = AttemptResultSerializer(attempt, context={'is_admin': request.user.is_admin})
    return Response({'success': True, 'data': {'attempt': serializer.data}})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_attempts(request, quiz_id):
    """GET /api/quizzes/<id>/attempts/ - the caller's attempts, newest first"""
    attempts = QuizAttemptService().list_user_attempts(request.user, quiz_id)
    return Response({'success': True, 'data': {'attempts': AttemptSerializer(attempts, many=True).data}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def regenerate_certificate(request, attempt_id):
    """POST /api/quizzes/attempts/<id>/certificate/regenerate/"""
    certificate = CertificateService().regenerate(attempt_id, request.user)
    return Response({'success': True, 'data': {'certificate': CertificateSerializer(certificate).data}})


# Quiz definitions

@api_view(['GET', 'POST'])
@permission_classes([IsAdmin])
def quiz_collection(request):
    """
    GET  /api/quizzes/?type=FINAL_EXAM&includeQuestions=true
    POST /api/quizzes/
    """
    service = QuizAuthoringService()

    if request.method == 'GET':
        include_questions = request.query_params.get('includeQuestions') == 'true'
        quizzes = service.list_quizzes(
            quiz_type=request.query_params.get('type'),
            include_questions=include_questions,
        )
        serializer = QuizSerializer(quizzes, many=True, context={'include_questions': include_questions})
        return Response({'success': True, 'data': {'quizzes': serializer.data}})

    data = _validated(QuizWriteSerializer, request)
    quiz = service.create_quiz(data)
    return Response(
        {'success': True, 'data': {'quiz': QuizSerializer(quiz).data}},
        status=status.HTTP_201_CREATED
    )


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAdminOrReadOnly])
def quiz_detail(request, quiz_id):
    """
    GET    /api/quizzes/<id>/ - learners get questions without correct flags
    PUT    /api/quizzes/<id>/ (admin)
    DELETE /api/quizzes/<id>/ (admin)
    """
    service = QuizAuthoringService()

    if request.method == 'GET':
        quiz = service.get_quiz(quiz_id)
        serializer_class = QuizSerializer if request.user.is_admin else LearnerQuizSerializer
        return Response({'success': True, 'data': {'quiz': serializer_class(quiz).data}})

    if request.method == 'DELETE':
        service.delete_quiz(quiz_id)
        return Response({'success': True, 'message': 'Quiz deleted'})

    data = _validated(QuizWriteSerializer, request, partial=True)
    quiz = service.update_quiz(quiz_id, data)
    return Response({'success': True, 'data': {'quiz': QuizSerializer(quiz).data}})


@api_view(['POST'])
@permission_classes([IsAdmin])
def add_question(request, quiz_id):
    """POST /api/quizzes/<id>/questions/"""
    data = _validated(QuestionWriteSerializer, request)
    question = QuizAuthoringService().add_question(quiz_id, data)
    return Response(
        {'success': True, 'data': {'question': QuestionSerializer(question).data}},
        status=status.HTTP_201_CREATED
    )


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAdmin])
def question_detail(request, question_id):
    """
    PUT    /api/quizzes/questions/<id>/ - answers, when sent, replace the old set
    DELETE /api/quizzes/questions/<id>/
    """
    service = QuizAuthoringService()

    if request.method == 'DELETE':
        service.delete_question(question_id)
        return Response({'success': True, 'message': 'Question deleted'})

    data = _validated(QuestionWriteSerializer, request, partial=True)
    question = service.update_question(question_id, data)
    return Response({'success': True, 'data': {'question': QuestionSerializer(question).data}})


@api_view(['POST'])
@permission_classes([IsAdmin])
def import_questions(request, quiz_id):
    """POST /api/quizzes/<id>/import-questions/ {"rows": [...]} or {"csv": "..."}"""
    data = _validated(ImportQuestionsSerializer, request)
    questions = QuizAuthoringService().import_questions(quiz_id, data['rows'])
    return Response(
        {
            'success': True,
            'message': f'Imported {len(questions)} question(s)',
            'data': {'questions': QuestionSerializer(questions, many=True).data},
        },
        status=status.HTTP_201_CREATED
    )


@api_view(['POST'])
@permission_classes([IsAdmin])
def create_from_template(request, template_id):
    """POST /api/quizzes/templates/<id>/create/ - body overrides template settings"""
    overrides = _validated(QuizWriteSerializer, request, partial=True)
    quiz = QuizAuthoringService().create_from_template(template_id, overrides)
    return Response(
        {'success': True, 'data': {'quiz': QuizSerializer(quiz).data}},
        status=status.HTTP_201_CREATED
    )


@api_view(['GET'])
@permission_classes([IsAdmin])
def quiz_analytics(request, quiz_id):
    """GET /api/quizzes/<id>/analytics/?days=30"""
    try:
        days = int(request.query_params.get('days', 30))
    except ValueError:
        days = 30

    QuizAuthoringService().get_quiz(quiz_id, include_questions=False)
    rows = QuizAnalyticsService().get_analytics(quiz_id, days=days)
    return Response({'success': True, 'data': {'analytics': QuizAnalyticsSerializer(rows, many=True).data}})


# Certificates

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def certificate_list(request):
    """GET /api/certificates/"""
    certificates = CertificateService.list_for_user(request.user)
    return Response({'success': True, 'data': {'certificates': CertificateSerializer(certificates, many=True).data}})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def certificate_download(request, certificate_number):
    """GET /api/certificates/<number>/download/ - PDF"""
    certificate = CertificateService.get_by_number(certificate_number, request.user)
    pdf = CertificateService.render_pdf(certificate)

    response = HttpResponse(pdf, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{certificate.certificate_number}.pdf"'
    return response
