import logging
import uuid
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.core.errors import NotFoundError, store_errors
from app.courses.models import (
    Course, CourseCreate, CourseUpdate,
    Module, ModuleCreate, ModuleUpdate,
    Quiz, QuizCreate, QuizUpdate
)

logger = logging.getLogger(__name__)


def generate_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12].upper()}"

def serialize_mongo(doc: Optional[dict]) -> Optional[dict]:
    if doc is not None:
        doc.pop("_id", None)
    return doc

def serialize_many(docs: List[dict]) -> List[dict]:
    return [serialize_mongo(doc) for doc in docs]

def _changes(update_model) -> dict:
    """Only the fields the caller actually sent, non-null"""
    return {k: v for k, v in update_model.model_dump(exclude_unset=True).items() if v is not None}

# Courses mid-deletion are invisible to readers
VISIBLE = {"deleting": {"$ne": True}}

# ==================== COURSE CRUD ====================

@store_errors
async def create_course(db: AsyncIOMotorDatabase, data: CourseCreate, creator_id: str) -> dict:
    course = Course(
        course_id=generate_id("COURSE"),
        title_en=data.title_en,
        title_am=data.title_am,
        description_en=data.description_en,
        description_am=data.description_am,
        thumbnail=data.thumbnail_url or "",
        thumbnail_public_id=data.thumbnail_public_id or "",
        created_by=creator_id
    ).model_dump()

    await db.courses.insert_one(course)
    logger.info("Course %s created by %s", course["course_id"], creator_id)
    return serialize_mongo(course)

@store_errors
async def get_course(db: AsyncIOMotorDatabase, course_id: str) -> Optional[dict]:
    """Get course by ID (hidden while being deleted)"""
    course = await db.courses.find_one({"course_id": course_id, **VISIBLE})
    return serialize_mongo(course)

@store_errors
async def list_courses(db: AsyncIOMotorDatabase) -> List[dict]:
    cursor = db.courses.find(VISIBLE).sort("created_at", -1)
    return serialize_many(await cursor.to_list(length=None))

@store_errors
async def update_course(db: AsyncIOMotorDatabase, course_id: str, data: CourseUpdate) -> dict:
    updates = _changes(data)
    if "thumbnail_url" in updates:
        updates["thumbnail"] = updates.pop("thumbnail_url")
    updates["updated_at"] = datetime.utcnow()

    course = await db.courses.find_one_and_update(
        {"course_id": course_id, **VISIBLE},
        {"$set": updates},
        return_document=ReturnDocument.AFTER
    )
    if not course:
        raise NotFoundError("Course not found")
    return serialize_mongo(course)

# ==================== MODULE CRUD ====================

@store_errors
async def create_module(db: AsyncIOMotorDatabase, data: ModuleCreate, creator_id: str) -> dict:
    if not await get_course(db, data.course_id):
        raise NotFoundError("Course not found")

    module = Module(
        module_id=generate_id("MOD"),
        course_id=data.course_id,
        title_en=data.title_en,
        title_am=data.title_am,
        content_en=data.content_en,
        content_am=data.content_am,
        video_url=data.video_url,
        thumbnail=data.thumbnail_url or "",
        order=data.order,
        created_by=creator_id
    ).model_dump()

    await db.modules.insert_one(module)
    return serialize_mongo(module)

@store_errors
async def get_module(db: AsyncIOMotorDatabase, module_id: str) -> Optional[dict]:
    return serialize_mongo(await db.modules.find_one({"module_id": module_id}))

@store_errors
async def list_modules(db: AsyncIOMotorDatabase, course_id: str) -> List[dict]:
    cursor = db.modules.find({"course_id": course_id}).sort("order", 1)
    return serialize_many(await cursor.to_list(length=None))

@store_errors
async def get_course_module_ids(db: AsyncIOMotorDatabase, course_id: str) -> List[str]:
    """Identifiers of every module belonging to a course"""
    return await db.modules.distinct("module_id", {"course_id": course_id})

@store_errors
async def update_module(db: AsyncIOMotorDatabase, module_id: str, data: ModuleUpdate) -> dict:
    updates = _changes(data)
    if "thumbnail_url" in updates:
        updates["thumbnail"] = updates.pop("thumbnail_url")
    updates["updated_at"] = datetime.utcnow()

    module = await db.modules.find_one_and_update(
        {"module_id": module_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER
    )
    if not module:
        raise NotFoundError("Module not found")
    return serialize_mongo(module)

@store_errors
async def delete_module(db: AsyncIOMotorDatabase, module_id: str) -> dict:
    """
    Delete a module and its quizzes; progress keeps its completed ids.
    Quizzes go first so an interrupted run leaves no quiz without a module.
    """
    if not await db.modules.find_one({"module_id": module_id}, {"module_id": 1}):
        raise NotFoundError("Module not found")

    quizzes = await db.quizzes.delete_many({"module_id": module_id})
    await db.modules.delete_one({"module_id": module_id})
    return {"module_id": module_id, "quizzes_deleted": quizzes.deleted_count}

# ==================== QUIZ CRUD ====================

@store_errors
async def create_quiz(db: AsyncIOMotorDatabase, data: QuizCreate) -> dict:
    if not await get_module(db, data.module_id):
        raise NotFoundError("Module not found")

    quiz = Quiz(
        quiz_id=generate_id("QUIZ"),
        module_id=data.module_id,
        question_en=data.question_en,
        question_am=data.question_am,
        options_en=data.options_en,
        options_am=data.options_am,
        correct_answer=data.correct_answer
    ).model_dump()

    await db.quizzes.insert_one(quiz)
    return serialize_mongo(quiz)

@store_errors
async def list_quizzes(db: AsyncIOMotorDatabase, module_id: str) -> List[dict]:
    cursor = db.quizzes.find({"module_id": module_id}).sort("created_at", 1)
    return serialize_many(await cursor.to_list(length=None))

@store_errors
async def update_quiz(db: AsyncIOMotorDatabase, quiz_id: str, data: QuizUpdate) -> dict:
    updates = _changes(data)
    updates["updated_at"] = datetime.utcnow()

    quiz = await db.quizzes.find_one_and_update(
        {"quiz_id": quiz_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER
    )
    if not quiz:
        raise NotFoundError("Quiz not found")
    return serialize_mongo(quiz)

@store_errors
async def delete_quiz(db: AsyncIOMotorDatabase, quiz_id: str):
    result = await db.quizzes.delete_one({"quiz_id": quiz_id})
    if result.deleted_count == 0:
        raise NotFoundError("Quiz not found")

# ==================== CASCADING DELETE ====================

@store_errors
async def cascade_delete_course(db: AsyncIOMotorDatabase, course_id: str) -> dict:
    """
    Delete a course with its quizzes, modules and progress records.

    The course is first marked `deleting` together with its module ids
    (durable); the course document itself goes last. Every step is idempotent,
    so an interrupted run is finished by calling this again
    (resume_pending_deletions does so at startup). Quizzes are found through
    the recorded ids, which survive the modules being deleted.
    """
    current_ids = await get_course_module_ids(db, course_id)

    # Only the first run records the ids; a resumed run keeps them
    await db.courses.update_one(
        {"course_id": course_id, "deleting_module_ids": {"$exists": False}},
        {"$set": {
            "deleting": True,
            "deletion_started_at": datetime.utcnow(),
            "deleting_module_ids": current_ids
        }}
    )
    marked = await db.courses.find_one({"course_id": course_id}, {"deleting_module_ids": 1})
    if not marked:
        raise NotFoundError("Course not found")

    module_ids = sorted(set(marked.get("deleting_module_ids", [])) | set(current_ids))

    quizzes_deleted = 0
    if module_ids:
        quizzes = await db.quizzes.delete_many({"module_id": {"$in": module_ids}})
        quizzes_deleted = quizzes.deleted_count

    modules = await db.modules.delete_many({"course_id": course_id})
    progress = await db.user_progress.delete_many({"course_id": course_id})
    await db.courses.delete_one({"course_id": course_id, "deleting": True})

    summary = {
        "course_id": course_id,
        "quizzes_deleted": quizzes_deleted,
        "modules_deleted": modules.deleted_count,
        "progress_deleted": progress.deleted_count
    }
    logger.info(
        "Course %s deleted (%d quizzes, %d modules, %d progress records)",
        course_id, quizzes_deleted, modules.deleted_count, progress.deleted_count
    )
    return summary

@store_errors
async def resume_pending_deletions(db: AsyncIOMotorDatabase) -> int:
    """
    Finish every course deletion that was interrupted.
    Markers written without module ids leave quizzes behind, so orphaned
    quizzes are swept afterwards.
    """
    pending = await db.courses.find({"deleting": True}, {"course_id": 1}).to_list(length=None)
    for course in pending:
        logger.warning("Resuming interrupted deletion of course %s", course["course_id"])
        await cascade_delete_course(db, course["course_id"])
    if pending:
        await prune_orphaned_quizzes(db)
    return len(pending)

@store_errors
async def prune_orphaned_progress(db: AsyncIOMotorDatabase) -> int:
    """Delete progress records whose course no longer exists"""
    referenced = await db.user_progress.distinct("course_id")
    if not referenced:
        return 0

    existing = await db.courses.distinct("course_id", {"course_id": {"$in": referenced}})
    orphaned = sorted(set(referenced) - set(existing))
    if not orphaned:
        return 0

    result = await db.user_progress.delete_many({"course_id": {"$in": orphaned}})
    logger.warning(
        "Pruned %d orphaned progress records for %d missing courses",
        result.deleted_count, len(orphaned)
    )
    return result.deleted_count

@store_errors
async def prune_orphaned_quizzes(db: AsyncIOMotorDatabase) -> int:
    """Delete quizzes whose module no longer exists"""
    referenced = await db.quizzes.distinct("module_id")
    if not referenced:
        return 0

    existing = await db.modules.distinct("module_id", {"module_id": {"$in": referenced}})
    orphaned = sorted(set(referenced) - set(existing))
    if not orphaned:
        return 0

    result = await db.quizzes.delete_many({"module_id": {"$in": orphaned}})
    logger.warning(
        "Pruned %d orphaned quizzes for %d missing modules",
        result.deleted_count, len(orphaned)
    )
    return result.deleted_count
