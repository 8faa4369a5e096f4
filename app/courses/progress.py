"""
Course progress tracking

The enrollment document is the single source of truth:
`completed_lesson_ids`, the derived `progress` percentage and `completed_at`.
The `progress` collection written by POST /progress/course/{id} is kept as a
compatibility view (free-form completed flag and score) and never feeds back
into the canonical percentage.
"""

import logging
from datetime import datetime
from typing import List

from pymongo import ReturnDocument

from app.courses.database import Store, serialize_mongo
from app.courses.models import ProgressUpsert
from app.courses.permissions import get_enrollment_or_404, verify_course_owner
from app.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def completion_percentage(completed: int, total: int) -> int:
    """round(completed / total * 100) with halves rounded up, clamped to [0, 100]"""
    if total <= 0:
        return 0
    percentage = (200 * completed + total) // (2 * total)
    return max(0, min(100, percentage))


class ProgressTracker:
    def __init__(self, store: Store):
        self.store = store

    async def complete_lesson(self, student_id: int, course_id: int, lesson_id: int) -> dict:
        """
        Mark a lesson completed and recompute the enrollment percentage.

        Returns {"progress": int, "completed_at": datetime | None}
        """
        enrollment = await get_enrollment_or_404(self.store, student_id, course_id)

        lesson = await self.store.lessons.find_one({"lesson_id": lesson_id, "course_id": course_id})
        if not lesson:
            raise NotFoundError("Lesson not found in this course")

        # revision orders concurrent writers of the same enrollment
        enrollment = await self.store.enrollments.find_one_and_update(
            {"enrollment_id": enrollment["enrollment_id"]},
            {
                "$addToSet": {"completed_lesson_ids": lesson_id},
                "$inc": {"revision": 1}
            },
            return_document=ReturnDocument.AFTER
        )
        return await self.recompute(enrollment)

    async def recompute(self, enrollment: dict, session=None) -> dict:
        """
        Rewrite `progress` from the completed lessons that still belong to the course.

        The write only lands if `revision` is unchanged since `enrollment` was read.
        A stale snapshot is dropped and the stored state is returned instead.
        `completed_at` is set once and never cleared.
        """
        course_id = enrollment["course_id"]
        lesson_ids = set(await self.store.lessons.distinct("lesson_id", {"course_id": course_id}, session=session))
        completed = lesson_ids & set(enrollment.get("completed_lesson_ids", []))
        progress = completion_percentage(len(completed), len(lesson_ids))

        completed_at = enrollment.get("completed_at")
        if completed_at is None and progress >= 100:
            completed_at = datetime.utcnow()

        result = await self.store.enrollments.update_one(
            {"enrollment_id": enrollment["enrollment_id"], "revision": enrollment.get("revision", 0)},
            {"$set": {
                "progress": progress,
                "completed_at": completed_at,
                "updated_at": datetime.utcnow()
            }},
            session=session
        )

        if result.matched_count == 0:
            logger.debug("Stale progress write skipped for enrollment %s", enrollment["enrollment_id"])
            current = await self.store.enrollments.find_one(
                {"enrollment_id": enrollment["enrollment_id"]},
                session=session
            )
            if current:
                return {"progress": current.get("progress", 0), "completed_at": current.get("completed_at")}
            return {"progress": progress, "completed_at": completed_at}

        if completed_at is not None and enrollment.get("completed_at") is None:
            logger.info("Student %s completed course %s", enrollment["student_id"], course_id)
        return {"progress": progress, "completed_at": completed_at}

    async def recompute_course(self, course_id: int, session=None) -> int:
        """
        Recompute every enrollment of a course after its lesson set changed.
        Callers bump `revision` in the same write that changes the lessons.
        """
        enrollments = await self.store.enrollments.find(
            {"course_id": course_id},
            session=session
        ).to_list(length=None)

        for enrollment in enrollments:
            await self.recompute(enrollment, session=session)
        return len(enrollments)

    async def upsert_progress(self, student_id: int, course_id: int, payload: ProgressUpsert) -> dict:
        """Compatibility endpoint: store a free-form completed flag / score"""
        if payload.score is not None and not 0 <= payload.score <= 100:
            raise ValidationError("Score must be between 0 and 100")

        enrollment = await get_enrollment_or_404(self.store, student_id, course_id)

        now = datetime.utcnow()
        update = {"updated_at": now}
        if payload.completed is not None:
            update["completed"] = payload.completed
        if payload.score is not None:
            update["score"] = payload.score

        defaults = {"completed": False, "score": None, "created_at": now}
        on_insert = {k: v for k, v in defaults.items() if k not in update}

        record = await self.store.progress.find_one_and_update(
            {"student_id": student_id, "course_id": course_id},
            {"$set": update, "$setOnInsert": on_insert},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )

        record = serialize_mongo(record)
        record["lesson_progress"] = enrollment.get("progress", 0)
        record["course_completed_at"] = enrollment.get("completed_at")
        return record

    async def student_progress(self, student_id: int) -> List[dict]:
        enrollments = await self.store.enrollments.find(
            {"student_id": student_id}
        ).sort("enrolled_at", -1).to_list(length=None)

        results = []
        for enr in enrollments:
            course = await self.store.courses.find_one({"course_id": enr["course_id"]})
            if not course:
                continue
            record = await self.store.progress.find_one(
                {"student_id": student_id, "course_id": enr["course_id"]}
            )
            results.append({
                "course_id": enr["course_id"],
                "course_title": course.get("title"),
                "progress": enr.get("progress", 0),
                "completed_lessons": len(enr.get("completed_lesson_ids", [])),
                "completed_at": enr.get("completed_at"),
                "completed": record.get("completed", False) if record else False,
                "score": record.get("score") if record else None
            })
        return results

    async def course_progress(self, instructor_id: int, course_id: int) -> List[dict]:
        """Progress of every student enrolled in an instructor's course"""
        await verify_course_owner(self.store, course_id, instructor_id)

        enrollments = await self.store.enrollments.find(
            {"course_id": course_id}
        ).sort("enrolled_at", 1).to_list(length=None)

        results = []
        for enr in enrollments:
            student = await self.store.users.find_one({"user_id": enr["student_id"]})
            record = await self.store.progress.find_one(
                {"student_id": enr["student_id"], "course_id": course_id}
            )
            results.append({
                "student_id": enr["student_id"],
                "student_name": student.get("name") if student else None,
                "progress": enr.get("progress", 0),
                "completed_at": enr.get("completed_at"),
                "score": record.get("score") if record else None
            })
        return results
