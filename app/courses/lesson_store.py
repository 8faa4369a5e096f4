import logging
from datetime import datetime
from typing import List, Optional, Tuple

from pymongo import UpdateOne

from app.courses.database import Store, serialize_mongo, serialize_many
from app.courses.duration import DurationAggregator
from app.courses.models import LessonCreate, LessonUpdate
from app.courses.permissions import verify_course_owner, verify_lesson_owner
from app.courses.progress import ProgressTracker
from app.errors import ValidationError

logger = logging.getLogger(__name__)


class LessonStore:
    """
    Ordered lessons of a course.

    Every mutation recomputes the course duration. Adding or deleting a lesson
    also recomputes the progress of every enrollment. Order values are plain
    integers; a reorder rewrites them as 1..N from the submitted sequence.
    """

    def __init__(self, store: Store, durations: DurationAggregator):
        self.store = store
        self.durations = durations
        self.progress = ProgressTracker(store)

    async def list_lessons(self, course_id: int, session=None) -> List[dict]:
        cursor = self.store.lessons.find(
            {"course_id": course_id},
            session=session
        ).sort([("order", 1), ("lesson_id", 1)])
        return serialize_many(await cursor.to_list(length=None))

    async def next_order(self, course_id: int, session=None) -> int:
        last = await self.store.lessons.find_one(
            {"course_id": course_id},
            sort=[("order", -1)],
            session=session
        )
        return (last["order"] if last else 0) + 1

    async def add_lesson(self, instructor_id: int, course_id: int, lesson: LessonCreate) -> dict:
        if not lesson.title or not lesson.title.strip():
            raise ValidationError("Lesson must have a title")

        await verify_course_owner(self.store, course_id, instructor_id)

        async with self.store.transaction() as session:
            doc = await self.insert_lesson(course_id, lesson, session=session)
            await self.durations.recompute_duration(course_id, session=session)
            await self._lessons_changed(course_id, session=session)

        logger.info("Lesson %s added to course %s at order %s", doc["lesson_id"], course_id, doc["order"])
        return doc

    async def _lessons_changed(self, course_id: int, session=None):
        """Invalidate in-flight completions of the course and recompute its enrollments"""
        await self.store.enrollments.update_many(
            {"course_id": course_id},
            {"$inc": {"revision": 1}},
            session=session
        )
        await self.progress.recompute_course(course_id, session=session)

    async def insert_lesson(self, course_id: int, lesson: LessonCreate, order: Optional[int] = None, session=None) -> dict:
        """Insert without ownership checks or duration recompute (callers do both)"""
        order = order or lesson.order or await self.next_order(course_id, session=session)
        lesson_id = await self.store.next_id("lessons", session=session)

        doc = {
            "lesson_id": lesson_id,
            "course_id": course_id,
            "title": lesson.title.strip(),
            "content": lesson.content,
            "video_url": lesson.video_url,
            "attachment_url": lesson.attachment_url,
            "duration": lesson.duration,
            "order": order,
            "created_at": datetime.utcnow()
        }
        await self.store.lessons.insert_one(doc, session=session)
        return serialize_mongo(doc)

    async def reorder_lessons(self, instructor_id: int, course_id: int, lesson_ids: List[int]) -> List[dict]:
        """Full-replace ordering: lesson_ids[i] gets order i + 1"""
        async with self.store.transaction() as session:
            # checks and writes share one snapshot
            await verify_course_owner(self.store, course_id, instructor_id, session=session)

            if len(set(lesson_ids)) != len(lesson_ids):
                raise ValidationError("Duplicate lesson IDs")

            existing = set(await self.store.lessons.distinct("lesson_id", {"course_id": course_id}, session=session))
            if not set(lesson_ids) <= existing:
                raise ValidationError("Invalid lesson IDs")
            if existing - set(lesson_ids):
                raise ValidationError("Reorder must include every lesson of the course")

            if lesson_ids:
                await self.store.lessons.bulk_write(
                    [
                        UpdateOne(
                            {"lesson_id": lesson_id, "course_id": course_id},
                            {"$set": {"order": index + 1}}
                        )
                        for index, lesson_id in enumerate(lesson_ids)
                    ],
                    ordered=True,
                    session=session
                )
            await self.durations.recompute_duration(course_id, session=session)

        logger.info("Course %s lessons reordered: %s", course_id, lesson_ids)
        return await self.list_lessons(course_id)

    async def update_lesson(self, instructor_id: int, lesson_id: int, changes: LessonUpdate) -> Tuple[dict, List[str]]:
        """
        Returns (updated lesson, superseded media URLs).
        The caller is responsible for discarding the superseded files.
        """
        lesson, course = await verify_lesson_owner(self.store, lesson_id, instructor_id)

        update_data = changes.model_dump(exclude_none=True)
        if "title" in update_data:
            if not update_data["title"].strip():
                raise ValidationError("Lesson must have a title")
            update_data["title"] = update_data["title"].strip()

        superseded = []
        for field in ("video_url", "attachment_url"):
            old = lesson.get(field)
            if field in update_data and old and old != update_data[field]:
                superseded.append(old)

        if update_data:
            update_data["updated_at"] = datetime.utcnow()
            async with self.store.transaction() as session:
                await self.store.lessons.update_one(
                    {"lesson_id": lesson_id},
                    {"$set": update_data},
                    session=session
                )
                if "duration" in update_data:
                    await self.durations.recompute_duration(course["course_id"], session=session)

        updated = await self.store.lessons.find_one({"lesson_id": lesson_id})
        return serialize_mongo(updated), superseded

    async def delete_lesson(self, instructor_id: int, lesson_id: int) -> dict:
        """Remove the lesson; returns the deleted document so its media can be discarded"""
        lesson, course = await verify_lesson_owner(self.store, lesson_id, instructor_id)
        course_id = course["course_id"]

        async with self.store.transaction() as session:
            await self.store.lessons.delete_one({"lesson_id": lesson_id}, session=session)
            await self.store.enrollments.update_many(
                {"course_id": course_id},
                {"$pull": {"completed_lesson_ids": lesson_id}, "$inc": {"revision": 1}},
                session=session
            )
            await self.durations.recompute_duration(course_id, session=session)
            await self.progress.recompute_course(course_id, session=session)

        logger.info("Lesson %s deleted from course %s", lesson_id, course_id)
        return serialize_mongo(lesson)
