from rest_framework import status
from rest_framework.exceptions import APIException


class ChapterNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Chapter not found'
    default_code = 'CHAPTER_NOT_FOUND'


class CourseNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Course or active version not found'
    default_code = 'COURSE_NOT_FOUND'


class ProgressNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'No progress recorded for this chapter'
    default_code = 'PROGRESS_NOT_FOUND'
