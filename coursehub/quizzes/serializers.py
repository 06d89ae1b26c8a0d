"""
Quiz serializers - admin authoring payloads, learner-facing views of quizzes and attempts.
Correct-answer flags only reach learners through results, and only when the quiz allows it.
"""
import csv
import io

from rest_framework import serializers

from learning.models import Chapter, ChapterContent, CourseVersion
from .models import Certificate, Quiz, QuizAnalytics, QuizAnswer, QuizAttempt, QuizQuestion

# answer1..answer4 columns of an imported row
IMPORT_ANSWER_SLOTS = ('1', '2', '3', '4')


# Authoring input

class AnswerWriteSerializer(serializers.Serializer):
    answer = serializers.CharField()
    answerImage = serializers.CharField(source='answer_image', required=False, allow_null=True, allow_blank=True)
    isCorrect = serializers.BooleanField(source='is_correct', default=False)
    order = serializers.IntegerField(min_value=0, required=False)


class QuestionWriteSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=QuizQuestion.TYPE_CHOICES, required=False)
    question = serializers.CharField()
    questionImage = serializers.CharField(source='question_image', required=False, allow_null=True, allow_blank=True)
    explanation = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    points = serializers.IntegerField(min_value=0, required=False)
    order = serializers.IntegerField(min_value=0, required=False)
    category = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    tags = serializers.ListField(child=serializers.CharField(), required=False)
    difficulty = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    answers = AnswerWriteSerializer(many=True, required=False)

    def validate_answers(self, value):
        if not any(answer.get('is_correct') for answer in value):
            raise serializers.ValidationError('At least one answer must be marked correct')
        return value

    def validate(self, attrs):
        if not self.partial and 'answers' not in attrs:
            raise serializers.ValidationError({'answers': 'A question needs answers, one of them correct'})
        return attrs


class QuizWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    type = serializers.ChoiceField(choices=Quiz.TYPE_CHOICES, required=False)
    chapterId = serializers.PrimaryKeyRelatedField(
        source='chapter', queryset=Chapter.objects.all(), required=False, allow_null=True
    )
    chapterContentId = serializers.PrimaryKeyRelatedField(
        source='chapter_content', queryset=ChapterContent.objects.all(), required=False, allow_null=True
    )
    courseVersionId = serializers.PrimaryKeyRelatedField(
        source='course_version', queryset=CourseVersion.objects.all(), required=False, allow_null=True
    )
    isTemplate = serializers.BooleanField(source='is_template', required=False)
    passingScore = serializers.IntegerField(source='passing_score', min_value=0, max_value=100, required=False)
    maxAttempts = serializers.IntegerField(source='max_attempts', min_value=1, required=False, allow_null=True)
    timeLimit = serializers.IntegerField(source='time_limit', min_value=1, required=False, allow_null=True)
    oneQuestionPerPage = serializers.BooleanField(source='one_question_per_page', required=False)
    randomizeQuestions = serializers.BooleanField(source='randomize_questions', required=False)
    randomizeAnswers = serializers.BooleanField(source='randomize_answers', required=False)
    showCorrectAnswers = serializers.BooleanField(source='show_correct_answers', required=False)
    showExplanations = serializers.BooleanField(source='show_explanations', required=False)
    preventTabSwitch = serializers.BooleanField(source='prevent_tab_switch', required=False)
    preventCopyPaste = serializers.BooleanField(source='prevent_copy_paste', required=False)
    lockUntilChaptersComplete = serializers.BooleanField(source='lock_until_chapters_complete', required=False)
    generateCertificate = serializers.BooleanField(source='generate_certificate', required=False)
    requirePassing = serializers.BooleanField(source='require_passing', required=False)

    def validate(self, attrs):
        owners = [key for key in ('chapter', 'chapter_content', 'course_version') if attrs.get(key)]
        if len(owners) > 1:
            raise serializers.ValidationError('A quiz belongs to a chapter, a content block or a course version, not several')
        return attrs


class ImportQuestionsSerializer(serializers.Serializer):
    """Either parsed rows or raw CSV text with a header line."""
    rows = serializers.ListField(child=serializers.DictField(), required=False)
    csv = serializers.CharField(required=False)

    def validate(self, attrs):
        rows = attrs.get('rows')
        if rows is None and attrs.get('csv'):
            rows = list(csv.DictReader(io.StringIO(attrs['csv'])))
        if not rows:
            raise serializers.ValidationError('No questions to import')
        for index, row in enumerate(rows):
            if not row.get('question'):
                raise serializers.ValidationError(f'Row {index + 1} has no question text')
            correct = str(row.get('correct') or '').strip()
            if correct not in IMPORT_ANSWER_SLOTS or not row.get(f'answer{correct}'):
                raise serializers.ValidationError(f'Row {index + 1} does not point "correct" at one of its answers')
        return {'rows': rows}


# Attempt input

class SubmitAnswerSerializer(serializers.Serializer):
    questionId = serializers.UUIDField()
    answerIds = serializers.ListField(child=serializers.UUIDField(), allow_empty=True)
    timeSpent = serializers.IntegerField(min_value=0, required=False, allow_null=True)


class AutoSaveSerializer(serializers.Serializer):
    data = serializers.JSONField()


class MarkForReviewSerializer(serializers.Serializer):
    questionId = serializers.UUIDField()


class CopyPasteSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['copy', 'paste'])


class CompleteAttemptSerializer(serializers.Serializer):
    timeRemaining = serializers.IntegerField(min_value=0, required=False, allow_null=True)


# Output

class AnswerSerializer(serializers.ModelSerializer):
    answerImage = serializers.CharField(source='answer_image')
    isCorrect = serializers.BooleanField(source='is_correct')

    class Meta:
        model = QuizAnswer
        fields = ['id', 'answer', 'answerImage', 'isCorrect', 'order']


class LearnerAnswerSerializer(serializers.ModelSerializer):
    answerImage = serializers.CharField(source='answer_image')

    class Meta:
        model = QuizAnswer
        fields = ['id', 'answer', 'answerImage', 'order']


class QuestionSerializer(serializers.ModelSerializer):
    questionImage = serializers.CharField(source='question_image')
    answers = AnswerSerializer(many=True, read_only=True)

    class Meta:
        model = QuizQuestion
        fields = [
            'id', 'type', 'question', 'questionImage', 'explanation', 'points', 'order',
            'category', 'tags', 'difficulty', 'answers',
        ]


class LearnerQuestionSerializer(serializers.ModelSerializer):
    questionImage = serializers.CharField(source='question_image')
    answers = LearnerAnswerSerializer(many=True, read_only=True)

    class Meta:
        model = QuizQuestion
        fields = ['id', 'type', 'question', 'questionImage', 'points', 'order', 'answers']


class QuizSerializer(serializers.ModelSerializer):
    """Admin view of a quiz, answers included"""
    chapterId = serializers.UUIDField(source='chapter_id', allow_null=True)
    chapterContentId = serializers.UUIDField(source='chapter_content_id', allow_null=True)
    courseVersionId = serializers.UUIDField(source='course_version_id', allow_null=True)
    isTemplate = serializers.BooleanField(source='is_template')
    passingScore = serializers.IntegerField(source='passing_score')
    maxAttempts = serializers.IntegerField(source='max_attempts', allow_null=True)
    timeLimit = serializers.IntegerField(source='time_limit', allow_null=True)
    oneQuestionPerPage = serializers.BooleanField(source='one_question_per_page')
    randomizeQuestions = serializers.BooleanField(source='randomize_questions')
    randomizeAnswers = serializers.BooleanField(source='randomize_answers')
    showCorrectAnswers = serializers.BooleanField(source='show_correct_answers')
    showExplanations = serializers.BooleanField(source='show_explanations')
    preventTabSwitch = serializers.BooleanField(source='prevent_tab_switch')
    preventCopyPaste = serializers.BooleanField(source='prevent_copy_paste')
    lockUntilChaptersComplete = serializers.BooleanField(source='lock_until_chapters_complete')
    generateCertificate = serializers.BooleanField(source='generate_certificate')
    requirePassing = serializers.BooleanField(source='require_passing')
    totalPoints = serializers.IntegerField(source='total_points')
    createdAt = serializers.DateTimeField(source='created_at')
    questions = serializers.SerializerMethodField()
    questionCount = serializers.SerializerMethodField()
    attemptCount = serializers.SerializerMethodField()

    question_serializer = QuestionSerializer

    class Meta:
        model = Quiz
        fields = [
            'id', 'title', 'description', 'type', 'chapterId', 'chapterContentId', 'courseVersionId',
            'isTemplate', 'passingScore', 'maxAttempts', 'timeLimit', 'oneQuestionPerPage',
            'randomizeQuestions', 'randomizeAnswers', 'showCorrectAnswers', 'showExplanations',
            'preventTabSwitch', 'preventCopyPaste', 'lockUntilChaptersComplete', 'generateCertificate',
            'requirePassing', 'totalPoints', 'createdAt', 'questions', 'questionCount', 'attemptCount',
        ]
        read_only_fields = fields

    def get_questions(self, obj):
        if not self.context.get('include_questions', True):
            return None
        return self.question_serializer(obj.questions.all(), many=True).data

    def get_questionCount(self, obj):
        count = getattr(obj, 'question_count', None)
        return count if count is not None else obj.questions.count()

    def get_attemptCount(self, obj):
        return getattr(obj, 'attempt_count', None)


class LearnerQuizSerializer(QuizSerializer):
    question_serializer = LearnerQuestionSerializer


class AttemptSerializer(serializers.ModelSerializer):
    quizId = serializers.UUIDField(source='quiz_id')
    attemptNumber = serializers.IntegerField(source='attempt_number')
    totalPoints = serializers.IntegerField(source='total_points')
    pointsEarned = serializers.IntegerField(source='points_earned')
    questionsAnswered = serializers.IntegerField(source='questions_answered')
    startedAt = serializers.DateTimeField(source='started_at')
    completedAt = serializers.DateTimeField(source='completed_at')
    lastSavedAt = serializers.DateTimeField(source='last_saved_at')
    timeSpent = serializers.IntegerField(source='time_spent')
    timeRemaining = serializers.IntegerField(source='time_remaining')
    tabSwitchCount = serializers.IntegerField(source='tab_switch_count')
    copyPasteCount = serializers.IntegerField(source='copy_paste_count')
    autoSaveData = serializers.JSONField(source='auto_save_data')
    markedForReview = serializers.JSONField(source='marked_for_review')

    class Meta:
        model = QuizAttempt
        fields = [
            'id', 'quizId', 'attemptNumber', 'status', 'totalPoints', 'pointsEarned', 'score', 'passed',
            'questionsAnswered', 'startedAt', 'completedAt', 'lastSavedAt', 'timeSpent', 'timeRemaining',
            'tabSwitchCount', 'copyPasteCount', 'autoSaveData', 'markedForReview',
        ]
        read_only_fields = fields


class ResponseSerializer(serializers.Serializer):
    questionId = serializers.UUIDField(source='question_id')
    answerIds = serializers.JSONField(source='answer_ids')
    isCorrect = serializers.BooleanField(source='is_correct')
    pointsEarned = serializers.IntegerField(source='points_earned')
    timeSpent = serializers.IntegerField(source='time_spent')


class CertificateSerializer(serializers.ModelSerializer):
    certificateNumber = serializers.CharField(source='certificate_number')
    courseId = serializers.UUIDField(source='course_id')
    quizId = serializers.UUIDField(source='quiz_id')
    attemptId = serializers.UUIDField(source='attempt_id')
    studentName = serializers.CharField(source='student_name')
    courseName = serializers.CharField(source='course_name')
    quizTitle = serializers.CharField(source='quiz_title')
    completionDate = serializers.DateTimeField(source='completion_date')

    class Meta:
        model = Certificate
        fields = [
            'id', 'certificateNumber', 'courseId', 'quizId', 'attemptId', 'studentName',
            'courseName', 'quizTitle', 'score', 'completionDate',
        ]
        read_only_fields = fields


class AttemptResultSerializer(AttemptSerializer):
    """
    Finished attempt with every question, the learner's response and, when the
    quiz shows them, the correct answers and explanations.
    """
    quiz = serializers.SerializerMethodField()
    questions = serializers.SerializerMethodField()
    certificate = serializers.SerializerMethodField()

    class Meta(AttemptSerializer.Meta):
        fields = AttemptSerializer.Meta.fields + ['quiz', 'questions', 'certificate']
        read_only_fields = fields

    def _reveal(self, obj):
        return self.context.get('is_admin') or (
            not obj.is_in_progress and obj.quiz.show_correct_answers
        )

    def get_quiz(self, obj):
        return {
            'id': str(obj.quiz_id),
            'title': obj.quiz.title,
            'passingScore': obj.quiz.passing_score,
            'showCorrectAnswers': obj.quiz.show_correct_answers,
            'showExplanations': obj.quiz.show_explanations,
        }

    def get_questions(self, obj):
        reveal = self._reveal(obj)
        explain = self.context.get('is_admin') or (not obj.is_in_progress and obj.quiz.show_explanations)
        responses = {r.question_id: r for r in obj.responses.all()}

        rows = []
        for question in obj.quiz.questions.prefetch_related('answers').order_by('order'):
            answer_serializer = AnswerSerializer if reveal else LearnerAnswerSerializer
            response = responses.get(question.id)
            rows.append({
                'id': str(question.id),
                'type': question.type,
                'question': question.question,
                'points': question.points,
                'explanation': question.explanation if explain else None,
                'answers': answer_serializer(question.answers.all(), many=True).data,
                'response': ResponseSerializer(response).data if response else None,
            })
        return rows

    def get_certificate(self, obj):
        certificate = next(iter(obj.certificates.all()), None)
        return CertificateSerializer(certificate).data if certificate else None


class QuizAnalyticsSerializer(serializers.ModelSerializer):
    totalAttempts = serializers.IntegerField(source='total_attempts')
    completedAttempts = serializers.IntegerField(source='completed_attempts')
    averageScore = serializers.FloatField(source='average_score')
    passRate = serializers.FloatField(source='pass_rate')
    averageTime = serializers.FloatField(source='average_time')

    class Meta:
        model = QuizAnalytics
        fields = ['date', 'totalAttempts', 'completedAttempts', 'averageScore', 'passRate', 'averageTime']
        read_only_fields = fields
