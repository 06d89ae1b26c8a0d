"""
Progress tracker tests - watch heartbeats, skip-ahead flags, completion and overviews
"""
from django.test import TestCase
from rest_framework.test import APIClient, APITestCase

from accounts.models import User
from accounts.services.tokens import TokenService
from learning.exceptions import CourseNotFound, ProgressNotFound
from learning.models import Chapter, Course, CourseVersion, Progress
from learning.services.progress import ProgressService


def make_user(email='student@test.com'):
    user = User(email=email, name='Test', surname='Student', email_verified=True)
    user.set_password('testpass123')
    user.save()
    return user


def make_course(chapters=2, slug='python-101'):
    course = Course.objects.create(title='Python 101', slug=slug)
    version = CourseVersion.objects.create(course=course, version=1, is_active=True)
    for order in range(chapters):
        Chapter.objects.create(version=version, title=f'Chapter {order + 1}', order=order)
    return course, version


class ProgressServiceTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.course, self.version = make_course()
        self.chapter, self.second_chapter = list(self.version.chapters.order_by('order'))
        self.service = ProgressService()

    def test_heartbeat_below_threshold(self):
        progress = self.service.update_progress(self.user, self.chapter, 120, 600, 20)

        self.assertEqual(progress.last_position, 120)
        self.assertEqual(progress.watch_percentage, 20)
        self.assertEqual(progress.total_watch_time, 30)
        self.assertFalse(progress.is_completed)
        self.assertFalse(progress.first_watch_completed)
        self.assertEqual(progress.course_version_id, self.version.id)

    def test_threshold_completes_and_unlocks_skip(self):
        """Test that reaching 90% completes the chapter and unlocks skipping ahead"""
        self.service.update_progress(self.user, self.chapter, 100, 600, 50)
        progress = self.service.update_progress(self.user, self.chapter, 540, 600, 90)

        self.assertTrue(progress.is_completed)
        self.assertTrue(progress.first_watch_completed)
        self.assertTrue(progress.can_skip_ahead)
        self.assertEqual(progress.total_watch_time, 60)

    def test_flags_survive_rewatching(self):
        """Test that watching from the start again never clears the skip-ahead flags"""
        self.service.update_progress(self.user, self.chapter, 580, 600, 97)
        progress = self.service.update_progress(self.user, self.chapter, 10, 600, 2)

        self.assertTrue(progress.first_watch_completed)
        self.assertTrue(progress.can_skip_ahead)
        self.assertTrue(progress.is_completed)
        self.assertEqual(progress.last_position, 10)

    def test_reset_keeps_flags(self):
        self.service.update_progress(self.user, self.chapter, 580, 600, 97)
        self.service.reset_progress(self.user, self.chapter)

        progress = Progress.objects.get(user=self.user, chapter=self.chapter)
        self.assertFalse(progress.is_completed)
        self.assertEqual(progress.watch_percentage, 0)
        self.assertEqual(progress.last_position, 0)
        self.assertTrue(progress.first_watch_completed)
        self.assertTrue(progress.can_skip_ahead)

    def test_reset_without_progress(self):
        with self.assertRaises(ProgressNotFound):
            self.service.reset_progress(self.user, self.chapter)

    def test_mark_completed(self):
        progress = self.service.mark_completed(self.user, self.chapter)
        self.assertTrue(progress.is_completed)
        self.assertEqual(progress.watch_percentage, 100)
        self.assertTrue(progress.can_skip_ahead)

    def test_complete_chapter_leaves_watch_state(self):
        self.service.update_progress(self.user, self.chapter, 60, 600, 10)
        progress = self.service.complete_chapter(self.user, self.chapter)

        self.assertTrue(progress.is_completed)
        self.assertEqual(progress.watch_percentage, 10)
        self.assertFalse(progress.first_watch_completed)

    def test_all_chapters_completed(self):
        self.assertFalse(self.service.all_chapters_completed(self.user, self.version))
        self.service.mark_completed(self.user, self.chapter)
        self.assertFalse(self.service.all_chapters_completed(self.user, self.version))
        self.service.mark_completed(self.user, self.second_chapter)
        self.assertTrue(self.service.all_chapters_completed(self.user, self.version))

        other_user = make_user(email='other@test.com')
        self.assertFalse(self.service.all_chapters_completed(other_user, self.version))

    def test_empty_version_is_never_complete(self):
        _, empty = make_course(chapters=0, slug='empty')
        self.assertFalse(self.service.all_chapters_completed(self.user, empty))

    def test_course_progress(self):
        self.service.mark_completed(self.user, self.chapter)
        data = self.service.course_progress(self.user, self.course.id)

        self.assertEqual(data['totalChapters'], 2)
        self.assertEqual(data['completedChapters'], 1)
        self.assertEqual(data['overallProgress'], 50)
        self.assertEqual([c['isCompleted'] for c in data['chapters']], [True, False])

    def test_course_without_active_version(self):
        CourseVersion.objects.filter(pk=self.version.pk).update(is_active=False)
        with self.assertRaises(CourseNotFound):
            self.service.course_progress(self.user, self.course.id)

    def test_user_stats(self):
        self.service.update_progress(self.user, self.chapter, 60, 600, 10)
        self.service.mark_completed(self.user, self.second_chapter)

        stats = self.service.user_stats(self.user)
        self.assertEqual(stats['totalChapters'], 2)
        self.assertEqual(stats['completedChapters'], 1)
        self.assertEqual(stats['totalWatchTime'], 30)
        self.assertEqual(stats['overallProgress'], 50.0)
        self.assertEqual(len(stats['courses']), 1)


class ProgressApiTests(APITestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = make_user()
        self.course, self.version = make_course()
        self.chapter = self.version.chapters.order_by('order').first()
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {TokenService().issue_access_token(self.user.id)}')

    def test_get_without_progress(self):
        response = self.client.get(f'/api/progress/chapters/{self.chapter.id}/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['watchPercentage'], 0)
        self.assertFalse(response.data['data']['isCompleted'])

    def test_heartbeat(self):
        response = self.client.put(f'/api/progress/chapters/{self.chapter.id}/', {
            'currentPosition': 550,
            'totalDuration': 600,
            'watchPercentage': 91.5,
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['data']['isCompleted'])
        self.assertTrue(response.data['data']['canSkipAhead'])

    def test_heartbeat_validation(self):
        response = self.client.put(f'/api/progress/chapters/{self.chapter.id}/', {
            'currentPosition': 10,
            'watchPercentage': 150,
        }, format='json')
        self.assertEqual(response.status_code, 400)

    def test_unknown_chapter(self):
        response = self.client.get('/api/progress/chapters/00000000-0000-0000-0000-000000000000/')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['code'], 'CHAPTER_NOT_FOUND')

    def test_complete_reset_and_overview(self):
        url = f'/api/progress/chapters/{self.chapter.id}/'
        self.assertEqual(self.client.post(url + 'complete/').status_code, 200)

        response = self.client.get(f'/api/progress/courses/{self.course.id}/')
        self.assertEqual(response.data['data']['completedChapters'], 1)

        self.assertEqual(self.client.post(url + 'reset/').status_code, 200)
        response = self.client.get('/api/progress/stats/')
        self.assertEqual(response.data['data']['completedChapters'], 0)

    def test_requires_authentication(self):
        self.client.credentials()
        response = self.client.get('/api/progress/stats/')
        self.assertEqual(response.status_code, 401)
