"""Domain and storage exceptions.

Store connectivity failures (``StoreError``) are kept apart from domain
validation failures so callers can tell a broken backend from a bad request.
"""

from __future__ import annotations


class SocraticError(Exception):
    """Base class for all application errors."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DomainValidationError(SocraticError, ValueError):
    """Malformed input or state (bad score counters, unknown difficulty, ...)."""

    status_code = 422


class NotFoundError(SocraticError):
    status_code = 404


class CourseNotFoundError(NotFoundError):
    def __init__(self, course_id: str) -> None:
        super().__init__(f"Course not found: {course_id}")
        self.course_id = course_id


class LessonNotFoundError(NotFoundError):
    def __init__(self, course_id: str, lesson_id: int) -> None:
        super().__init__(f"Lesson {lesson_id} not found in course {course_id}")
        self.course_id = course_id
        self.lesson_id = lesson_id


class CourseNotStartedError(SocraticError):
    status_code = 409

    def __init__(self, course_id: str) -> None:
        super().__init__(f"Course not started: {course_id}")
        self.course_id = course_id


class SessionNotFoundError(NotFoundError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class StoreError(SocraticError):
    """Generic backend error raised by any store operation."""

    status_code = 503


class RecordNotFoundError(StoreError):
    status_code = 404


class DuplicateRecordError(StoreError):
    status_code = 409


class TutorUnavailableError(SocraticError):
    """The remote tutor endpoint failed or returned a malformed reply."""

    status_code = 502
