import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.courses.schemas import create_all_indexes

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    {"name": "Web Development", "description": "Courses about building websites"},
    {"name": "Data Science", "description": "Courses about data analysis and ML"},
    {"name": "Design", "description": "Courses about UI/UX and graphic design"},
    {"name": "Marketing", "description": "Courses about marketing and sales"},
]


def serialize_mongo(doc: Optional[dict]) -> Optional[dict]:
    if doc is not None:
        doc.pop("_id", None)
    return doc


def serialize_many(docs: List[dict]) -> List[dict]:
    return [serialize_mongo(doc) for doc in docs]


class Store:
    """
    Owned handle on the course database.
    Components get one of these in their constructor instead of importing a global client.
    """

    def __init__(self, db: AsyncIOMotorDatabase, use_transactions: bool = False):
        self.db = db
        self.use_transactions = use_transactions

    @classmethod
    def from_url(cls, mongo_url: str, db_name: str, use_transactions: bool = False) -> "Store":
        client = AsyncIOMotorClient(mongo_url)
        return cls(client[db_name], use_transactions=use_transactions)

    # ==================== COLLECTIONS ====================

    @property
    def users(self):
        return self.db.users

    @property
    def categories(self):
        return self.db.categories

    @property
    def courses(self):
        return self.db.courses

    @property
    def lessons(self):
        return self.db.lessons

    @property
    def enrollments(self):
        return self.db.enrollments

    @property
    def progress(self):
        return self.db.progress

    # ==================== HELPERS ====================

    async def next_id(self, name: str, session=None) -> int:
        """Allocate the next integer id for a collection"""
        counter = await self.db.counters.find_one_and_update(
            {"_id": name},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
            session=session
        )
        return counter["seq"]

    @asynccontextmanager
    async def transaction(self):
        """
        Yields a session bound to a transaction, or None when transactions are off.
        Pass the yielded value as `session=` to every write inside the block.
        """
        if not self.use_transactions:
            yield None
            return

        async with await self.db.client.start_session() as session:
            async with session.start_transaction():
                yield session

    async def ensure_indexes(self):
        await create_all_indexes(self.db)

    async def seed_categories(self) -> int:
        """Insert default categories on an empty database"""
        if await self.categories.count_documents({}) > 0:
            return 0

        for category in DEFAULT_CATEGORIES:
            category_id = await self.next_id("categories")
            await self.categories.insert_one({
                "category_id": category_id,
                "name": category["name"],
                "description": category["description"],
                "created_at": datetime.utcnow()
            })

        logger.info("Seeded %d default categories", len(DEFAULT_CATEGORIES))
        return len(DEFAULT_CATEGORIES)
