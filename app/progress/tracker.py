"""
Progress Tracker

Per learner x course record of points, level, badges, completed modules and
course completion. Every mutation is a single-document conditional update,
so concurrent quiz submissions for the same module credit points once:

    {completed_modules: {$ne: module_id}} -> $addToSet module, $inc points

Level and badges only move forward ($max / $addToSet), and course_completed
is only ever set, never cleared.
"""

import logging
from datetime import datetime
from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.core import config
from app.core.errors import NotFoundError, ValidationError, store_errors
from app.courses.database import generate_id, get_course_module_ids, serialize_mongo
from app.progress.models import ProgressUpdateResult, ProgressWithCourse, UserProgress
from app.progress.rules import compute_level, evaluate_badges

logger = logging.getLogger(__name__)


class ProgressTracker:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    @property
    def collection(self):
        return self.db.user_progress

    # ==================== HELPERS ====================

    async def _ensure_progress(self, user_id: str, course_id: str) -> dict:
        """Create the zero-state record if absent; first write wins"""
        now = datetime.utcnow()
        zero_state = UserProgress(
            progress_id=generate_id("PRG"),
            user_id=user_id,
            course_id=course_id,
            created_at=now,
            updated_at=now
        ).model_dump()
        # user_id / course_id come from the filter on insert
        zero_state.pop("user_id")
        zero_state.pop("course_id")

        key = {"user_id": user_id, "course_id": course_id}
        try:
            await self.collection.update_one(key, {"$setOnInsert": zero_state}, upsert=True)
        except DuplicateKeyError:
            # Lost the race against a concurrent insert of the same key
            pass
        return await self.collection.find_one(key)

    async def _course_exists(self, course_id: str) -> bool:
        course = await self.db.courses.find_one(
            {"course_id": course_id, "deleting": {"$ne": True}},
            {"course_id": 1}
        )
        return course is not None

    @staticmethod
    def _to_model(doc: dict) -> UserProgress:
        return UserProgress(**serialize_mongo(doc))

    # ==================== OPERATIONS ====================

    @store_errors
    async def enroll(self, user_id: str, course_id: str) -> UserProgress:
        """Create-if-absent; enrolling twice returns the same record"""
        if not course_id:
            raise ValidationError("courseId is required")
        if not await self._course_exists(course_id):
            raise NotFoundError("Course not found")

        doc = await self._ensure_progress(user_id, course_id)
        return self._to_model(doc)

    @store_errors
    async def record_module_quiz_result(
        self,
        user_id: str,
        course_id: str,
        module_id: str,
        points_earned: int,
        all_answers_correct: bool
    ) -> ProgressUpdateResult:
        """
        Apply one quiz outcome for a module.

        Points and module credit are granted only when all answers are correct
        and the module was not already completed. Level, badges and course
        completion are re-derived afterwards.
        """
        if not course_id or not module_id:
            raise ValidationError("courseId and moduleId are required")
        if isinstance(points_earned, bool) or not isinstance(points_earned, int) or points_earned < 0:
            raise ValidationError("pointsEarned must be a non-negative integer")

        module = await self.db.modules.find_one(
            {"module_id": module_id}, {"course_id": 1}
        )
        if not module or module.get("course_id") != course_id:
            raise NotFoundError("Module not found in course")
        if not await self._course_exists(course_id):
            raise NotFoundError("Course not found")

        key = {"user_id": user_id, "course_id": course_id}
        progress = await self._ensure_progress(user_id, course_id)
        now = datetime.utcnow()

        already_completed = module_id in progress.get("completed_modules", [])
        if all_answers_correct and not already_completed:
            credited = await self.collection.find_one_and_update(
                {**key, "completed_modules": {"$ne": module_id}},
                {
                    "$addToSet": {"completed_modules": module_id},
                    "$inc": {"points": points_earned},
                    "$set": {"updated_at": now}
                },
                return_document=ReturnDocument.AFTER
            )
            if credited is None:
                # A concurrent submission credited this module first
                already_completed = True
            else:
                progress = credited
                logger.info(
                    "User %s passed module %s (+%d points, total %d)",
                    user_id, module_id, points_earned, credited["points"]
                )

        # Level and badges from the points now stored
        progress = await self.collection.find_one(key)
        points = progress.get("points", 0)
        derived = {
            "$max": {"level": compute_level(points)},
            "$set": {"module_id": module_id, "updated_at": now}
        }
        new_badges = evaluate_badges(points, progress.get("badges", []))
        if new_badges:
            derived["$addToSet"] = {"badges": {"$each": new_badges}}
            logger.info("User %s earned badges %s in course %s", user_id, new_badges, course_id)
        await self.collection.update_one(key, derived)

        # Course completion
        module_ids = await get_course_module_ids(self.db, course_id)
        completed = set(progress.get("completed_modules", []))
        if module_ids and completed.issuperset(module_ids):
            marked = await self.collection.update_one(
                {**key, "course_completed": {"$ne": True}},
                {"$set": {"course_completed": True, "completed_at": now}}
            )
            if marked.modified_count:
                logger.info("User %s completed course %s", user_id, course_id)

        final = self._to_model(await self.collection.find_one(key))
        return ProgressUpdateResult(
            progress=final,
            course_completed=final.course_completed,
            already_completed=already_completed
        )

    @store_errors
    async def list_progress(self, user_id: str) -> List[ProgressWithCourse]:
        """
        Every progress record of a user with the course titles.

        Records pointing at a missing or deleting course are left out; they
        are removed by prune_orphaned_progress, not here.
        """
        records = await self.collection.find({"user_id": user_id}).sort("updated_at", -1).to_list(length=None)
        if not records:
            return []

        course_ids = list({r["course_id"] for r in records})
        courses = await self.db.courses.find(
            {"course_id": {"$in": course_ids}, "deleting": {"$ne": True}},
            {"course_id": 1, "title_en": 1, "title_am": 1}
        ).to_list(length=None)
        by_id = {c["course_id"]: c for c in courses}

        result = []
        orphaned = 0
        for record in records:
            course = by_id.get(record["course_id"])
            if not course:
                orphaned += 1
                continue
            result.append(ProgressWithCourse(
                **serialize_mongo(record),
                course_title_en=course.get("title_en"),
                course_title_am=course.get("title_am")
            ))

        if orphaned:
            logger.warning("User %s has %d progress records for missing courses", user_id, orphaned)
        return result

    @store_errors
    async def leaderboard(self, limit: int = config.LEADERBOARD_LIMIT) -> List[dict]:
        """Total points per user across all courses, highest first"""
        pipeline = [
            {"$group": {"_id": "$user_id", "total_points": {"$sum": "$points"}}},
            # user id breaks ties so equal totals keep a stable order
            {"$sort": {"total_points": -1, "_id": 1}},
            {"$limit": limit}
        ]
        rows = await self.collection.aggregate(pipeline).to_list(length=limit)

        user_ids = [row["_id"] for row in rows]
        users = await self.db.users.find(
            {"user_id": {"$in": user_ids}},
            {"user_id": 1, "name": 1, "email": 1}
        ).to_list(length=None)
        by_id = {u["user_id"]: u for u in users}

        entries = []
        for idx, row in enumerate(rows):
            user = by_id.get(row["_id"])
            entries.append({
                "rank": idx + 1,
                "user_id": row["_id"],
                "user": {
                    "username": user["name"] if user else "Unknown",
                    "email": user.get("email", "") if user else ""
                },
                "points": row["total_points"]
            })
        return entries
