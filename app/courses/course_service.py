import logging
import re
from datetime import datetime
from typing import List, Optional, Tuple

from app.courses.database import Store, serialize_mongo, serialize_many
from app.courses.duration import DurationAggregator
from app.courses.lesson_store import LessonStore
from app.courses.models import CourseCreate, CourseUpdate
from app.courses.permissions import get_course_or_404, verify_course_owner
from app.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class CourseService:
    def __init__(self, store: Store, lessons: LessonStore, durations: DurationAggregator):
        self.store = store
        self.lessons = lessons
        self.durations = durations

    # ==================== HELPERS ====================

    async def _check_category(self, category_id: Optional[int]):
        if category_id is None:
            return
        if not await self.store.categories.find_one({"category_id": category_id}):
            raise NotFoundError("Category not found")

    async def _category(self, category_id: Optional[int]) -> Optional[dict]:
        if category_id is None:
            return None
        return serialize_mongo(await self.store.categories.find_one({"category_id": category_id}))

    async def _instructor(self, instructor_id: int) -> dict:
        user = await self.store.users.find_one({"user_id": instructor_id})
        return {
            "id": instructor_id,
            "name": user.get("name") if user else None,
            "email": user.get("email") if user else None
        }

    async def _with_relations(self, course: dict) -> dict:
        course = serialize_mongo(course)
        course["lessons"] = await self.lessons.list_lessons(course["course_id"])
        course["category"] = await self._category(course.get("category_id"))
        course["instructor"] = await self._instructor(course["instructor_id"])
        return course

    # ==================== COURSE CRUD ====================

    async def create_course(self, instructor_id: int, data: CourseCreate) -> dict:
        """Create a course, optionally with its first lessons"""
        if any(not (lesson.title and lesson.title.strip()) for lesson in data.lessons):
            raise ValidationError("Each lesson must have a title")

        await self._check_category(data.category_id)

        async with self.store.transaction() as session:
            course_id = await self.store.next_id("courses", session=session)
            now = datetime.utcnow()
            course = {
                "course_id": course_id,
                "title": data.title.strip(),
                "description": data.description,
                "instructor_id": instructor_id,
                "category_id": data.category_id,
                "difficulty": data.difficulty.value,
                "duration": "",
                "prerequisites": data.prerequisites,
                "thumbnail_url": data.thumbnail_url,
                "created_at": now,
                "updated_at": now
            }
            await self.store.courses.insert_one(course, session=session)

            for index, lesson in enumerate(data.lessons):
                await self.lessons.insert_lesson(course_id, lesson, order=lesson.order or index + 1, session=session)
            if data.lessons:
                await self.durations.recompute_duration(course_id, session=session)

        logger.info("Course %s created by instructor %s with %d lessons", course_id, instructor_id, len(data.lessons))
        return await self.get_course(course_id)

    async def get_course(self, course_id: int) -> dict:
        course = await get_course_or_404(self.store, course_id)
        return await self._with_relations(course)

    async def get_owned_course(self, instructor_id: int, course_id: int) -> dict:
        course = await verify_course_owner(self.store, course_id, instructor_id)
        return await self._with_relations(course)

    async def update_course(self, instructor_id: int, course_id: int, data: CourseUpdate) -> dict:
        await verify_course_owner(self.store, course_id, instructor_id)

        update_data = data.model_dump(exclude_none=True)
        if "category_id" in update_data:
            await self._check_category(update_data["category_id"])
        if "difficulty" in update_data:
            update_data["difficulty"] = update_data["difficulty"].value
        if "title" in update_data:
            update_data["title"] = update_data["title"].strip()

        update_data["updated_at"] = datetime.utcnow()
        await self.store.courses.update_one(
            {"course_id": course_id},
            {"$set": update_data}
        )
        return await self.get_course(course_id)

    async def delete_course(self, instructor_id: int, course_id: int) -> List[str]:
        """
        Delete a course with its lessons, enrollments and progress records.
        Returns the media URLs that are no longer referenced.
        """
        course = await verify_course_owner(self.store, course_id, instructor_id)
        lessons = await self.lessons.list_lessons(course_id)

        async with self.store.transaction() as session:
            await self.store.lessons.delete_many({"course_id": course_id}, session=session)
            await self.store.enrollments.delete_many({"course_id": course_id}, session=session)
            await self.store.progress.delete_many({"course_id": course_id}, session=session)
            await self.store.courses.delete_one({"course_id": course_id}, session=session)

        logger.info("Course %s deleted with %d lessons", course_id, len(lessons))

        media = [course.get("thumbnail_url")]
        for lesson in lessons:
            media.extend([lesson.get("video_url"), lesson.get("attachment_url")])
        return [url for url in media if url]

    async def set_thumbnail(self, instructor_id: int, course_id: int, thumbnail_url: str) -> Tuple[dict, Optional[str]]:
        """Returns (course, previous thumbnail URL)"""
        course = await verify_course_owner(self.store, course_id, instructor_id)
        await self.store.courses.update_one(
            {"course_id": course_id},
            {"$set": {"thumbnail_url": thumbnail_url, "updated_at": datetime.utcnow()}}
        )
        return await self.get_course(course_id), course.get("thumbnail_url")

    async def add_prerequisite(self, instructor_id: int, course_id: int, name: str) -> dict:
        name = name.strip()
        if not name:
            raise ValidationError("Prerequisite name is required")

        await verify_course_owner(self.store, course_id, instructor_id)
        await self.store.courses.update_one(
            {"course_id": course_id},
            {"$addToSet": {"prerequisites": name}, "$set": {"updated_at": datetime.utcnow()}}
        )
        return await self.get_course(course_id)

    # ==================== LISTINGS ====================

    async def list_public_courses(self, student_id: Optional[int] = None) -> List[dict]:
        courses = await self.store.courses.find({}).sort("created_at", -1).to_list(length=None)

        enrolled_ids = set()
        if student_id is not None:
            enrolled_ids = set(await self.store.enrollments.distinct("course_id", {"student_id": student_id}))

        results = []
        for course in courses:
            course = serialize_mongo(course)
            course["category"] = await self._category(course.get("category_id"))
            course["instructor"] = await self._instructor(course["instructor_id"])
            course["lessons_count"] = await self.store.lessons.count_documents({"course_id": course["course_id"]})
            course["enrollments_count"] = await self.store.enrollments.count_documents({"course_id": course["course_id"]})
            if student_id is not None:
                course["enrolled"] = course["course_id"] in enrolled_ids
            results.append(course)
        return results

    async def instructor_courses(self, instructor_id: int) -> List[dict]:
        courses = await self.store.courses.find(
            {"instructor_id": instructor_id}
        ).sort("created_at", -1).to_list(length=None)
        return [await self._with_relations(course) for course in courses]

    async def search_courses(self, instructor_id: int, query: str) -> List[dict]:
        if not query or not query.strip():
            return []

        pattern = {"$regex": re.escape(query.strip()), "$options": "i"}
        courses = await self.store.courses.find({
            "instructor_id": instructor_id,
            "$or": [{"title": pattern}, {"description": pattern}]
        }).sort("created_at", -1).to_list(length=None)
        return [await self._with_relations(course) for course in courses]

    async def list_categories(self) -> List[dict]:
        categories = await self.store.categories.find({}).sort("name", 1).to_list(length=None)
        return serialize_many(categories)

    async def course_analytics(self, instructor_id: int) -> List[dict]:
        courses = await self.store.courses.find({"instructor_id": instructor_id}).to_list(length=None)

        results = []
        for course in courses:
            course_id = course["course_id"]
            total = await self.store.enrollments.count_documents({"course_id": course_id})
            completed = await self.store.enrollments.count_documents(
                {"course_id": course_id, "completed_at": {"$ne": None}}
            )
            results.append({
                "id": course_id,
                "title": course["title"],
                "total_enrollments": total,
                "completion_rate": round(completed / total * 100, 2) if total else 0,
                "lessons_count": await self.store.lessons.count_documents({"course_id": course_id})
            })
        return results
