import logging
from datetime import datetime
from typing import List

from pymongo.errors import DuplicateKeyError

from app.courses.database import Store, serialize_mongo
from app.courses.lesson_store import LessonStore
from app.courses.permissions import get_course_or_404, verify_course_owner
from app.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class EnrollmentService:
    def __init__(self, store: Store, lessons: LessonStore):
        self.store = store
        self.lessons = lessons

    async def enroll(self, student_id: int, course_id: int) -> dict:
        """
        Enroll a student in a course

        Raises:
            404: Course not found
            409: Already enrolled
        """
        await get_course_or_404(self.store, course_id)

        existing = await self.store.enrollments.find_one({
            "student_id": student_id,
            "course_id": course_id
        })
        if existing:
            raise ConflictError("Already enrolled in this course")

        enrollment = {
            "enrollment_id": await self.store.next_id("enrollments"),
            "student_id": student_id,
            "course_id": course_id,
            "enrolled_at": datetime.utcnow(),
            "completed_lesson_ids": [],
            "progress": 0,
            "completed_at": None,
            "certificate_url": None,
            "revision": 0
        }

        try:
            await self.store.enrollments.insert_one(enrollment)
        except DuplicateKeyError:
            # a concurrent request won the unique (student_id, course_id) index
            raise ConflictError("Already enrolled in this course")

        logger.info("Student %s enrolled in course %s", student_id, course_id)
        return serialize_mongo(enrollment)

    async def student_enrollments(self, student_id: int) -> List[dict]:
        enrollments = await self.store.enrollments.find(
            {"student_id": student_id}
        ).sort("enrolled_at", -1).to_list(length=None)

        results = []
        for enr in enrollments:
            course = await self.store.courses.find_one({"course_id": enr["course_id"]})
            if not course:
                continue
            instructor = await self.store.users.find_one({"user_id": course.get("instructor_id")})
            results.append({
                "id": course["course_id"],
                "title": course.get("title"),
                "description": course.get("description"),
                "thumbnail_url": course.get("thumbnail_url"),
                "difficulty": course.get("difficulty"),
                "duration": course.get("duration"),
                "instructor": instructor.get("name") if instructor else None,
                "progress": enr.get("progress", 0),
                "enrolled_at": enr.get("enrolled_at"),
                "completed_at": enr.get("completed_at"),
                "certificate_url": enr.get("certificate_url")
            })
        return results

    async def course_details(self, student_id: int, course_id: int) -> dict:
        enrollment = await self.store.enrollments.find_one({
            "student_id": student_id,
            "course_id": course_id
        })
        if not enrollment:
            raise NotFoundError("Course not found or you are not enrolled.")

        course = serialize_mongo(await get_course_or_404(self.store, course_id))
        course["lessons"] = await self.lessons.list_lessons(course_id)
        course["completed_lesson_ids"] = enrollment.get("completed_lesson_ids", [])
        course["progress"] = enrollment.get("progress", 0)
        course["completed_at"] = enrollment.get("completed_at")
        course["certificate_url"] = enrollment.get("certificate_url")
        return course

    async def enrolled_students(self, instructor_id: int, course_id: int) -> List[dict]:
        await verify_course_owner(self.store, course_id, instructor_id)

        enrollments = await self.store.enrollments.find(
            {"course_id": course_id}
        ).sort("enrolled_at", 1).to_list(length=None)

        students = []
        for enr in enrollments:
            user = await self.store.users.find_one({"user_id": enr["student_id"]})
            students.append({
                "id": enr["student_id"],
                "name": user.get("name") if user else None,
                "email": user.get("email") if user else None,
                "enrolled_at": enr.get("enrolled_at"),
                "progress": enr.get("progress", 0),
                "completed_at": enr.get("completed_at")
            })
        return students
