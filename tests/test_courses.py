"""
Tests for course management and enrollment.
"""
import unittest

from app.courses.course_service import CourseService
from app.courses.duration import DurationAggregator
from app.courses.enrollment_service import EnrollmentService
from app.courses.lesson_store import LessonStore
from app.courses.models import CourseCreate, CourseUpdate, LessonCreate
from app.courses.progress import ProgressTracker
from app.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError

from helpers import INSTRUCTOR_ID, OTHER_INSTRUCTOR_ID, STUDENT_ID, make_store


class CourseTestCase(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.store = make_store()
        await self.store.seed_categories()

        durations = DurationAggregator(self.store)
        self.lessons = LessonStore(self.store, durations)
        self.courses = CourseService(self.store, self.lessons, durations)
        self.enrollments = EnrollmentService(self.store, self.lessons)


class TestCreateCourse(CourseTestCase):

    async def test_create_with_lessons(self):
        course = await self.courses.create_course(INSTRUCTOR_ID, CourseCreate(
            title="Web Basics",
            category_id="1",
            prerequisites="HTML, CSS , ",
            lessons=[LessonCreate(title="Tags", duration="5m"), LessonCreate(title="Styles", duration="7m")]
        ))

        self.assertEqual(course["prerequisites"], ["HTML", "CSS"])
        self.assertEqual(course["category"]["name"], "Web Development")
        self.assertEqual(course["difficulty"], "Beginner")
        self.assertEqual(course["duration"], "5m + 7m")
        self.assertEqual([l["order"] for l in course["lessons"]], [1, 2])

    async def test_blank_category(self):
        course = await self.courses.create_course(INSTRUCTOR_ID, CourseCreate(title="Misc", category_id=""))
        self.assertIsNone(course["category_id"])
        self.assertIsNone(course["category"])
        self.assertEqual(course["duration"], "")

    async def test_unknown_category(self):
        with self.assertRaises(NotFoundError):
            await self.courses.create_course(INSTRUCTOR_ID, CourseCreate(title="Misc", category_id=999))

    async def test_inline_lesson_without_title(self):
        with self.assertRaises(ValidationError):
            await self.courses.create_course(INSTRUCTOR_ID, CourseCreate(
                title="Broken", lessons=[LessonCreate(content="untitled")]
            ))
        self.assertEqual(await self.store.courses.count_documents({}), 0)


class TestManageCourse(CourseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        course = await self.courses.create_course(INSTRUCTOR_ID, CourseCreate(
            title="Data Analysis",
            description="Pandas from scratch",
            thumbnail_url="/uploads/thumbnails/cover.png",
            lessons=[LessonCreate(title="Frames", video_url="/uploads/lessons/frames.mp4")]
        ))
        self.course_id = course["course_id"]

    async def test_update(self):
        course = await self.courses.update_course(
            INSTRUCTOR_ID, self.course_id, CourseUpdate(title="Data Analysis II", difficulty="Advanced")
        )
        self.assertEqual(course["title"], "Data Analysis II")
        self.assertEqual(course["difficulty"], "Advanced")
        self.assertEqual(course["description"], "Pandas from scratch")

    async def test_update_not_owner(self):
        with self.assertRaises(PermissionDeniedError):
            await self.courses.update_course(OTHER_INSTRUCTOR_ID, self.course_id, CourseUpdate(title="Mine"))

    async def test_delete_cascades(self):
        await self.enrollments.enroll(STUDENT_ID, self.course_id)
        lesson_id = (await self.lessons.list_lessons(self.course_id))[0]["lesson_id"]
        await ProgressTracker(self.store).complete_lesson(STUDENT_ID, self.course_id, lesson_id)

        media = await self.courses.delete_course(INSTRUCTOR_ID, self.course_id)
        self.assertEqual(sorted(media), ["/uploads/lessons/frames.mp4", "/uploads/thumbnails/cover.png"])

        with self.assertRaises(NotFoundError):
            await self.courses.get_course(self.course_id)
        self.assertEqual(await self.store.lessons.count_documents({"course_id": self.course_id}), 0)
        self.assertEqual(await self.store.enrollments.count_documents({"course_id": self.course_id}), 0)

    async def test_delete_not_owner(self):
        with self.assertRaises(PermissionDeniedError):
            await self.courses.delete_course(OTHER_INSTRUCTOR_ID, self.course_id)
        await self.courses.get_course(self.course_id)

    async def test_prerequisites_are_unique(self):
        await self.courses.add_prerequisite(INSTRUCTOR_ID, self.course_id, "Python")
        course = await self.courses.add_prerequisite(INSTRUCTOR_ID, self.course_id, " Python ")
        self.assertEqual(course["prerequisites"], ["Python"])

    async def test_set_thumbnail_returns_previous(self):
        course, previous = await self.courses.set_thumbnail(
            INSTRUCTOR_ID, self.course_id, "/uploads/thumbnails/new.png"
        )
        self.assertEqual(previous, "/uploads/thumbnails/cover.png")
        self.assertEqual(course["thumbnail_url"], "/uploads/thumbnails/new.png")

    async def test_search(self):
        await self.courses.create_course(INSTRUCTOR_ID, CourseCreate(title="Cooking"))
        await self.courses.create_course(OTHER_INSTRUCTOR_ID, CourseCreate(title="Data Science"))

        found = await self.courses.search_courses(INSTRUCTOR_ID, "pandas")
        self.assertEqual([c["course_id"] for c in found], [self.course_id])
        self.assertEqual(len(await self.courses.search_courses(INSTRUCTOR_ID, "DATA")), 1)
        self.assertEqual(await self.courses.search_courses(INSTRUCTOR_ID, "  "), [])

    async def test_public_listing_flags_enrollment(self):
        other = await self.courses.create_course(OTHER_INSTRUCTOR_ID, CourseCreate(title="Design"))
        await self.enrollments.enroll(STUDENT_ID, self.course_id)

        listing = {c["course_id"]: c for c in await self.courses.list_public_courses(STUDENT_ID)}
        self.assertTrue(listing[self.course_id]["enrolled"])
        self.assertFalse(listing[other["course_id"]]["enrolled"])
        self.assertEqual(listing[self.course_id]["lessons_count"], 1)

        anonymous = await self.courses.list_public_courses()
        self.assertNotIn("enrolled", anonymous[0])

    async def test_analytics(self):
        await self.enrollments.enroll(STUDENT_ID, self.course_id)
        await self.enrollments.enroll(STUDENT_ID + 1, self.course_id)
        lesson_id = (await self.lessons.list_lessons(self.course_id))[0]["lesson_id"]
        await ProgressTracker(self.store).complete_lesson(STUDENT_ID, self.course_id, lesson_id)

        stats = await self.courses.course_analytics(INSTRUCTOR_ID)
        self.assertEqual(stats, [{
            "id": self.course_id,
            "title": "Data Analysis",
            "total_enrollments": 2,
            "completion_rate": 50.0,
            "lessons_count": 1
        }])


class TestEnrollment(CourseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        course = await self.courses.create_course(INSTRUCTOR_ID, CourseCreate(
            title="Marketing 101", lessons=[LessonCreate(title="Funnels")]
        ))
        self.course_id = course["course_id"]

    async def test_enroll(self):
        enrollment = await self.enrollments.enroll(STUDENT_ID, self.course_id)
        self.assertEqual(enrollment["progress"], 0)
        self.assertEqual(enrollment["completed_lesson_ids"], [])
        self.assertIsNone(enrollment["certificate_url"])

    async def test_enroll_twice(self):
        await self.enrollments.enroll(STUDENT_ID, self.course_id)
        with self.assertRaises(ConflictError):
            await self.enrollments.enroll(STUDENT_ID, self.course_id)

    async def test_enroll_unknown_course(self):
        with self.assertRaises(NotFoundError):
            await self.enrollments.enroll(STUDENT_ID, 999)

    async def test_my_courses_and_details(self):
        await self.enrollments.enroll(STUDENT_ID, self.course_id)

        mine = await self.enrollments.student_enrollments(STUDENT_ID)
        self.assertEqual(mine[0]["id"], self.course_id)
        self.assertIsNone(mine[0]["certificate_url"])

        details = await self.enrollments.course_details(STUDENT_ID, self.course_id)
        self.assertEqual(details["lessons"][0]["title"], "Funnels")
        self.assertEqual(details["completed_lesson_ids"], [])

        with self.assertRaises(NotFoundError):
            await self.enrollments.course_details(STUDENT_ID + 1, self.course_id)

    async def test_enrolled_students_owner_only(self):
        await self.enrollments.enroll(STUDENT_ID, self.course_id)

        students = await self.enrollments.enrolled_students(INSTRUCTOR_ID, self.course_id)
        self.assertEqual([s["id"] for s in students], [STUDENT_ID])

        with self.assertRaises(PermissionDeniedError):
            await self.enrollments.enrolled_students(OTHER_INSTRUCTOR_ID, self.course_id)


if __name__ == "__main__":
    unittest.main()
