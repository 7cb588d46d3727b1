"""
MongoDB connection ownership and indexes

MongoManager owns the motor client for the life of the process: it is built
in create_app(), opened by the lifespan handler and closed on shutdown.
Tests hand in an in-memory client instead of a URL.
"""

import logging
from typing import Optional

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core import config

logger = logging.getLogger(__name__)


class MongoManager:
    def __init__(
        self,
        url: Optional[str] = None,
        db_name: Optional[str] = None,
        client=None
    ):
        self.url = url or config.MONGO_URL
        self.db_name = db_name or config.MONGO_DB_NAME
        self._client = client
        self._owns_client = client is None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> AsyncIOMotorDatabase:
        if self.db is not None:
            return self.db
        if self._client is None:
            self._client = AsyncIOMotorClient(self.url)
        self.db = self._client[self.db_name]
        logger.info("Connected to MongoDB database '%s'", self.db_name)
        return self.db

    async def close(self):
        # Injected clients belong to the caller
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None
            logger.info("MongoDB connection closed")
        self.db = None


# ==================== DEPENDENCY FUNCTIONS ====================

async def get_db(request: Request) -> AsyncIOMotorDatabase:
    """Database dependency"""
    return request.app.state.mongo.db


# ==================== DATABASE INDEXES ====================

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create MongoDB indexes; safe to call on every startup"""
    # Users
    await db.users.create_index("user_id", unique=True)
    await db.users.create_index("email", unique=True)
    await db.users.create_index([("role", 1), ("created_at", -1)])

    # Courses
    await db.courses.create_index("course_id", unique=True)
    await db.courses.create_index("created_at")
    await db.courses.create_index("deleting")

    # Modules
    await db.modules.create_index("module_id", unique=True)
    await db.modules.create_index([("course_id", 1), ("order", 1)])

    # Quizzes
    await db.quizzes.create_index("quiz_id", unique=True)
    await db.quizzes.create_index("module_id")

    # Progress: one record per learner x course
    await db.user_progress.create_index("progress_id", unique=True)
    await db.user_progress.create_index([("user_id", 1), ("course_id", 1)], unique=True)
    await db.user_progress.create_index("course_id")

    logger.info("Indexes created")
