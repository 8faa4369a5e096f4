from typing import Tuple

from app.courses.database import Store
from app.errors import NotFoundError, PermissionDeniedError


async def get_course_or_404(store: Store, course_id: int, session=None) -> dict:
    course = await store.courses.find_one({"course_id": course_id}, session=session)
    if not course:
        raise NotFoundError("Course not found")
    return course


async def verify_course_owner(store: Store, course_id: int, instructor_id: int, session=None) -> dict:
    """
    Validates the instructor owns this course

    Raises:
        404: Course not found
        403: Not the owner
    """
    course = await get_course_or_404(store, course_id, session=session)

    if course.get("instructor_id") != instructor_id:
        raise PermissionDeniedError("You do not have permission to modify this course")

    return course


async def verify_lesson_owner(store: Store, lesson_id: int, instructor_id: int) -> Tuple[dict, dict]:
    """Returns (lesson, course) when the instructor owns the lesson's course"""
    lesson = await store.lessons.find_one({"lesson_id": lesson_id})
    if not lesson:
        raise NotFoundError("Lesson not found")

    course = await store.courses.find_one({"course_id": lesson["course_id"]})
    if not course or course.get("instructor_id") != instructor_id:
        raise PermissionDeniedError("You do not have permission to modify this lesson")

    return lesson, course


async def get_enrollment_or_404(store: Store, student_id: int, course_id: int) -> dict:
    enrollment = await store.enrollments.find_one({
        "student_id": student_id,
        "course_id": course_id
    })
    if not enrollment:
        raise NotFoundError("Not enrolled in this course")
    return enrollment
