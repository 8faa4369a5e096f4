"""
MongoDB indexes for the course collections
File: app/courses/schemas.py

Collections:
- categories, courses, lessons
- enrollments (canonical progress lives here)
- progress (compatibility view written by POST /progress/course/{id})
"""

import logging

logger = logging.getLogger(__name__)


# ==================== INDEXES ====================

INDEXES = {
    "categories": [
        {"keys": [("category_id", 1)], "unique": True},
        {"keys": [("name", 1)], "unique": True}
    ],

    "courses": [
        {"keys": [("course_id", 1)], "unique": True},
        {"keys": [("instructor_id", 1)]},
        {"keys": [("category_id", 1)]},
        {"keys": [("created_at", -1)]}
    ],

    "lessons": [
        {"keys": [("lesson_id", 1)], "unique": True},
        {"keys": [("course_id", 1), ("order", 1)]}
    ],

    "enrollments": [
        {"keys": [("enrollment_id", 1)], "unique": True},
        {"keys": [("student_id", 1), ("course_id", 1)], "unique": True},  # one enrollment per pair
        {"keys": [("course_id", 1)]}
    ],

    "progress": [
        {"keys": [("student_id", 1), ("course_id", 1)], "unique": True}
    ]
}


async def create_all_indexes(db):
    """Create all indexes for the course collections"""

    for collection_name, indexes in INDEXES.items():
        collection = db[collection_name]
        for index in indexes:
            try:
                await collection.create_index(
                    index["keys"],
                    unique=index.get("unique", False)
                )
                logger.debug("Created index on %s: %s", collection_name, index["keys"])
            except Exception as e:
                logger.warning("Index creation failed for %s: %s", collection_name, e)
                raise
