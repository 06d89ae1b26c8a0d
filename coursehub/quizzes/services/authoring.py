"""
Quiz Authoring Service
Admin-side quiz definitions: quizzes, questions and answers, templates, CSV imports
"""
import logging

from django.db import transaction
from django.db.models import Count, Sum

from quizzes.exceptions import QuestionNotFound, QuizNotFound, TemplateNotFound
from quizzes.models import Quiz, QuizAnswer, QuizQuestion

logger = logging.getLogger(__name__)

# Quiz-level settings carried over when instantiating a template
TEMPLATE_SETTINGS = [
    'title', 'description', 'type', 'passing_score', 'max_attempts', 'time_limit',
    'one_question_per_page', 'randomize_questions', 'randomize_answers',
    'show_correct_answers', 'show_explanations', 'prevent_tab_switch',
    'prevent_copy_paste', 'lock_until_chapters_complete', 'generate_certificate',
    'require_passing',
]

QUESTION_FIELDS = [
    'type', 'question', 'question_image', 'explanation', 'points', 'order',
    'category', 'tags', 'difficulty',
]


class QuizAuthoringService:

    def get_quiz(self, quiz_id, include_questions=True):
        queryset = Quiz.objects.all()
        if include_questions:
            queryset = queryset.prefetch_related('questions__answers')
        quiz = queryset.filter(pk=quiz_id).first()
        if quiz is None:
            raise QuizNotFound()
        return quiz

    def list_quizzes(self, quiz_type=None, include_questions=False):
        queryset = Quiz.objects.annotate(
            question_count=Count('questions', distinct=True),
            attempt_count=Count('attempts', distinct=True),
        )
        if quiz_type:
            queryset = queryset.filter(type=quiz_type)
        if include_questions:
            queryset = queryset.prefetch_related('questions__answers')
        return queryset.order_by('-created_at')

    def create_quiz(self, data):
        quiz = Quiz.objects.create(**data)
        logger.info(f"[CREATE_QUIZ] Created quiz {quiz.id} ({quiz.type})")
        return quiz

    def update_quiz(self, quiz_id, data):
        quiz = self.get_quiz(quiz_id, include_questions=False)
        for field, value in data.items():
            setattr(quiz, field, value)
        quiz.save()
        return quiz

    def delete_quiz(self, quiz_id):
        deleted, _ = Quiz.objects.filter(pk=quiz_id).delete()
        if not deleted:
            raise QuizNotFound()
        logger.info(f"[DELETE_QUIZ] Deleted quiz {quiz_id}")

    @staticmethod
    def recompute_total_points(quiz_id):
        total = QuizQuestion.objects.filter(quiz_id=quiz_id).aggregate(total=Sum('points'))['total'] or 0
        Quiz.objects.filter(pk=quiz_id).update(total_points=total)
        return total

    @staticmethod
    def _create_answers(question, answers):
        QuizAnswer.objects.bulk_create([
            QuizAnswer(
                question=question,
                answer=answer['answer'],
                answer_image=answer.get('answer_image'),
                is_correct=answer.get('is_correct', False),
                order=answer.get('order', index),
            )
            for index, answer in enumerate(answers)
        ])

    def add_question(self, quiz_id, data):
        if not Quiz.objects.filter(pk=quiz_id).exists():
            raise QuizNotFound()

        fields = {key: data[key] for key in QUESTION_FIELDS if key in data}
        with transaction.atomic():
            question = QuizQuestion.objects.create(quiz_id=quiz_id, **fields)
            self._create_answers(question, data.get('answers', []))
            self.recompute_total_points(quiz_id)
        return question

    def update_question(self, question_id, data):
        """Answers, when supplied, replace the existing set wholesale."""
        question = QuizQuestion.objects.filter(pk=question_id).first()
        if question is None:
            raise QuestionNotFound()

        with transaction.atomic():
            for key in QUESTION_FIELDS:
                if key in data:
                    setattr(question, key, data[key])
            question.save()

            if data.get('answers') is not None:
                question.answers.all().delete()
                self._create_answers(question, data['answers'])

            self.recompute_total_points(question.quiz_id)
        return question

    def delete_question(self, question_id):
        question = QuizQuestion.objects.filter(pk=question_id).first()
        if question is None:
            raise QuestionNotFound()

        with transaction.atomic():
            quiz_id = question.quiz_id
            question.delete()
            self.recompute_total_points(quiz_id)

    def create_from_template(self, template_id, overrides=None):
        """
        New concrete quiz with the template's settings and a copy of every question
        and answer. Owner links and any overridden settings come from `overrides`.
        """
        template = Quiz.objects.prefetch_related('questions__answers').filter(pk=template_id).first()
        if template is None or not template.is_template:
            raise TemplateNotFound()

        data = {field: getattr(template, field) for field in TEMPLATE_SETTINGS}
        data.update({key: value for key, value in (overrides or {}).items() if value is not None})
        data['is_template'] = False

        with transaction.atomic():
            quiz = Quiz.objects.create(**data)
            for source in template.questions.all():
                question = QuizQuestion.objects.create(
                    quiz=quiz,
                    **{field: getattr(source, field) for field in QUESTION_FIELDS}
                )
                self._create_answers(question, [
                    {
                        'answer': answer.answer,
                        'answer_image': answer.answer_image,
                        'is_correct': answer.is_correct,
                        'order': answer.order,
                    }
                    for answer in source.answers.all()
                ])
            self.recompute_total_points(quiz.id)

        logger.info(f"[TEMPLATE] Created quiz {quiz.id} from template {template.id}")
        quiz.refresh_from_db()
        return quiz

    def import_questions(self, quiz_id, rows):
        """
        Rows as parsed from CSV:
            question, answer1..answer4, correct ('1'-'4'), points, order,
            explanation, category, tags (comma separated), difficulty, type
        """
        if not Quiz.objects.filter(pk=quiz_id).exists():
            raise QuizNotFound()

        created = []
        with transaction.atomic():
            for index, row in enumerate(rows):
                correct = str(row.get('correct') or '').strip()
                answers = [
                    {'answer': row.get(f'answer{n}'), 'is_correct': correct == str(n), 'order': n - 1}
                    for n in range(1, 5)
                    if row.get(f'answer{n}')
                ]
                tags = row.get('tags') or ''
                created.append(self.add_question(quiz_id, {
                    'type': row.get('type') or QuizQuestion.TYPE_SINGLE_CHOICE,
                    'question': row['question'],
                    'explanation': row.get('explanation') or None,
                    'points': _to_int(row.get('points'), 1),
                    'order': _to_int(row.get('order'), index),
                    'category': row.get('category') or None,
                    'tags': [tag.strip() for tag in tags.split(',') if tag.strip()],
                    'difficulty': row.get('difficulty') or None,
                    'answers': answers,
                }))

        logger.info(f"[IMPORT_QUESTIONS] Imported {len(created)} question(s) into quiz {quiz_id}")
        return created


def _to_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
