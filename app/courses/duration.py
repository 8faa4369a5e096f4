import logging
from datetime import datetime

from app.courses.database import Store

logger = logging.getLogger(__name__)

DURATION_SEPARATOR = " + "


class DurationAggregator:
    """
    Keeps course.duration in sync with its lessons.

    Lesson durations are free text ("15 minutes", "1h") and are never parsed,
    so the course value is a display string such as "10m + 15m + 1h", not a sum.
    """

    def __init__(self, store: Store):
        self.store = store

    async def recompute_duration(self, course_id: int, session=None) -> str:
        cursor = self.store.lessons.find(
            {"course_id": course_id},
            {"_id": 0, "duration": 1},
            session=session
        ).sort([("order", 1), ("lesson_id", 1)])
        lessons = await cursor.to_list(length=None)

        total = DURATION_SEPARATOR.join(
            lesson["duration"] for lesson in lessons if lesson.get("duration")
        )

        await self.store.courses.update_one(
            {"course_id": course_id},
            {"$set": {"duration": total, "updated_at": datetime.utcnow()}},
            session=session
        )
        logger.debug("Course %s duration recomputed: %r", course_id, total)
        return total
