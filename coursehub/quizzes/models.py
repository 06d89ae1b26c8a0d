"""
Quiz engine models: quiz definitions, attempts and their responses, daily analytics, certificates.
"""
import uuid
from django.db import models
from django.db.models import Q

from accounts.models import User
from learning.models import Chapter, ChapterContent, Course, CourseVersion


class Quiz(models.Model):
    TYPE_CHAPTER_QUIZ = 'CHAPTER_QUIZ'
    TYPE_FINAL_EXAM = 'FINAL_EXAM'
    TYPE_CHOICES = [
        (TYPE_CHAPTER_QUIZ, 'Chapter quiz'),
        (TYPE_FINAL_EXAM, 'Final exam'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_CHAPTER_QUIZ)

    # Owner: at most one of these is set; none for standalone templates
    chapter = models.ForeignKey(Chapter, on_delete=models.CASCADE, null=True, blank=True, related_name='quizzes')
    chapter_content = models.OneToOneField(
        ChapterContent, on_delete=models.CASCADE, null=True, blank=True, related_name='quiz'
    )
    course_version = models.ForeignKey(
        CourseVersion, on_delete=models.CASCADE, null=True, blank=True, related_name='final_exams'
    )
    is_template = models.BooleanField(default=False)

    passing_score = models.PositiveIntegerField(default=70)
    max_attempts = models.PositiveIntegerField(null=True, blank=True)
    time_limit = models.PositiveIntegerField(null=True, blank=True)  # minutes

    one_question_per_page = models.BooleanField(default=True)
    randomize_questions = models.BooleanField(default=False)
    randomize_answers = models.BooleanField(default=False)
    show_correct_answers = models.BooleanField(default=True)
    show_explanations = models.BooleanField(default=True)
    prevent_tab_switch = models.BooleanField(default=False)
    prevent_copy_paste = models.BooleanField(default=False)
    lock_until_chapters_complete = models.BooleanField(default=False)
    generate_certificate = models.BooleanField(default=False)
    require_passing = models.BooleanField(default=False)

    # Sum of question points, recomputed on every question change
    total_points = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'quizzes'
        ordering = ['-created_at']

    def __str__(self):
        return self.title

    @property
    def owning_chapter(self):
        if self.chapter_id:
            return self.chapter
        if self.chapter_content_id:
            return self.chapter_content.chapter
        return None

    @property
    def owning_version(self):
        chapter = self.owning_chapter
        if chapter is not None:
            return chapter.version
        return self.course_version


class QuizQuestion(models.Model):
    TYPE_SINGLE_CHOICE = 'SINGLE_CHOICE'
    TYPE_MULTIPLE_CHOICE = 'MULTIPLE_CHOICE'
    TYPE_TRUE_FALSE = 'TRUE_FALSE'
    TYPE_CHOICES = [
        (TYPE_SINGLE_CHOICE, 'Single choice'),
        (TYPE_MULTIPLE_CHOICE, 'Multiple choice'),
        (TYPE_TRUE_FALSE, 'True / false'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name='questions')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_SINGLE_CHOICE)
    question = models.TextField()
    question_image = models.TextField(blank=True, null=True)
    explanation = models.TextField(blank=True, null=True)
    points = models.PositiveIntegerField(default=1)
    order = models.PositiveIntegerField(default=0)
    category = models.CharField(max_length=100, blank=True, null=True)
    tags = models.JSONField(default=list, blank=True)
    difficulty = models.CharField(max_length=20, blank=True, null=True)

    class Meta:
        db_table = 'quiz_questions'
        ordering = ['order']

    def __str__(self):
        return self.question[:60]


class QuizAnswer(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    question = models.ForeignKey(QuizQuestion, on_delete=models.CASCADE, related_name='answers')
    answer = models.TextField()
    answer_image = models.TextField(blank=True, null=True)
    is_correct = models.BooleanField(default=False)
    order = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'quiz_answers'
        ordering = ['order']

    def __str__(self):
        return self.answer[:60]


class QuizAttempt(models.Model):
    STATUS_IN_PROGRESS = 'IN_PROGRESS'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_TIME_EXPIRED = 'TIME_EXPIRED'
    STATUS_CHOICES = [
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_TIME_EXPIRED, 'Time expired'),
    ]
    FINISHED_STATUSES = [STATUS_COMPLETED, STATUS_TIME_EXPIRED]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='quiz_attempts')
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name='attempts')
    attempt_number = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_IN_PROGRESS)

    # Denominator frozen at start
    total_points = models.PositiveIntegerField(default=0)
    points_earned = models.PositiveIntegerField(default=0)
    score = models.FloatField(null=True, blank=True)
    passed = models.BooleanField(default=False)
    questions_answered = models.PositiveIntegerField(default=0)

    started_at = models.DateTimeField()
    completed_at = models.DateTimeField(null=True, blank=True)
    last_saved_at = models.DateTimeField(null=True, blank=True)
    time_spent = models.PositiveIntegerField(null=True, blank=True)  # seconds
    time_remaining = models.PositiveIntegerField(null=True, blank=True)  # seconds

    tab_switch_count = models.PositiveIntegerField(default=0)
    copy_paste_count = models.PositiveIntegerField(default=0)
    suspicious_activity = models.JSONField(default=dict, blank=True)
    auto_save_data = models.JSONField(null=True, blank=True)
    marked_for_review = models.JSONField(default=list, blank=True)

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True, default='')

    class Meta:
        db_table = 'quiz_attempts'
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'quiz', 'attempt_number'],
                name='quiz_attempt_number_unique',
            ),
            models.UniqueConstraint(
                fields=['user', 'quiz'],
                condition=Q(status='IN_PROGRESS'),
                name='quiz_attempt_one_in_progress',
            ),
        ]
        indexes = [
            models.Index(fields=['quiz', 'status', 'completed_at']),
        ]

    def __str__(self):
        return f"{self.user_id} - {self.quiz_id} #{self.attempt_number}"

    @property
    def is_in_progress(self):
        return self.status == self.STATUS_IN_PROGRESS


class QuizResponse(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    attempt = models.ForeignKey(QuizAttempt, on_delete=models.CASCADE, related_name='responses')
    question = models.ForeignKey(QuizQuestion, on_delete=models.CASCADE, related_name='responses')
    answer_ids = models.JSONField(default=list)
    is_correct = models.BooleanField(default=False)
    points_earned = models.PositiveIntegerField(default=0)
    time_spent = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'quiz_responses'
        unique_together = ('attempt', 'question')


class QuizAnalytics(models.Model):
    """One row per quiz per calendar day, rebuilt from that day's finished attempts."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name='analytics')
    date = models.DateField()
    total_attempts = models.PositiveIntegerField(default=0)
    completed_attempts = models.PositiveIntegerField(default=0)
    average_score = models.FloatField(default=0)
    pass_rate = models.FloatField(default=0)
    average_time = models.FloatField(default=0)

    class Meta:
        db_table = 'quiz_analytics'
        unique_together = ('quiz', 'date')
        ordering = ['date']


class Certificate(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='certificates')
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='certificates')
    quiz = models.ForeignKey(Quiz, on_delete=models.SET_NULL, null=True, blank=True, related_name='certificates')
    attempt = models.ForeignKey(
        QuizAttempt, on_delete=models.SET_NULL, null=True, blank=True, related_name='certificates'
    )
    certificate_number = models.CharField(max_length=64, unique=True)
    student_name = models.CharField(max_length=255)
    course_name = models.CharField(max_length=255)
    quiz_title = models.CharField(max_length=255, blank=True, default='')
    score = models.FloatField(null=True, blank=True)
    completion_date = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'certificates'
        unique_together = ('user', 'course')

    def __str__(self):
        return self.certificate_number
