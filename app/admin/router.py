"""
Admin API Router
Course, module and quiz authoring, analytics and maintenance
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.admin.analytics import get_dashboard_stats
from app.auth.auth_utils import UserContext, get_current_admin
from app.core.database import get_db
from app.core.errors import ValidationError
from app.courses.database import (
    cascade_delete_course, create_course, update_course,
    create_module, update_module, delete_module,
    create_quiz, update_quiz, delete_quiz,
    prune_orphaned_progress, prune_orphaned_quizzes, resume_pending_deletions
)
from app.courses.models import (
    CourseCreate, CourseUpdate, ModuleCreate, ModuleUpdate, QuizCreate, QuizUpdate
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"])


def _required(value: Optional[str], name: str) -> str:
    if not value:
        raise ValidationError(f"{name} is required")
    return value


# ============================================================================
# COURSES
# ============================================================================

@router.post("/courses", status_code=201)
async def admin_create_course(
    data: CourseCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(get_current_admin)
):
    course = await create_course(db, data, admin.user_id)
    return {"message": "Course created successfully", "course": course}


@router.patch("/courses")
async def admin_update_course(
    data: CourseUpdate,
    course_id: Optional[str] = Query(None, alias="courseId"),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(get_current_admin)
):
    course = await update_course(db, _required(course_id, "Course ID"), data)
    return {"message": "Course updated successfully", "course": course}


@router.delete("/courses")
async def admin_delete_course(
    course_id: Optional[str] = Query(None, alias="courseId"),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(get_current_admin)
):
    """Delete a course with its modules, quizzes and progress records"""
    summary = await cascade_delete_course(db, _required(course_id, "Course ID"))
    summary["orphans_pruned"] = await prune_orphaned_progress(db)
    logger.info("Admin %s deleted course %s", admin.user_id, course_id)
    return {"message": "Course deleted successfully", **summary}


# ============================================================================
# MODULES
# ============================================================================

@router.post("/courses/modules", status_code=201)
async def admin_create_module(
    data: ModuleCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(get_current_admin)
):
    module = await create_module(db, data, admin.user_id)
    return {"message": "Module created successfully", "module": module}


@router.patch("/courses/modules")
async def admin_update_module(
    data: ModuleUpdate,
    module_id: Optional[str] = Query(None, alias="moduleId"),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(get_current_admin)
):
    module = await update_module(db, _required(module_id, "Module ID"), data)
    return {"message": "Module updated successfully", "module": module}


@router.delete("/courses/modules")
async def admin_delete_module(
    module_id: Optional[str] = Query(None, alias="moduleId"),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(get_current_admin)
):
    summary = await delete_module(db, _required(module_id, "Module ID"))
    return {"message": "Module deleted successfully", **summary}


# ============================================================================
# QUIZZES
# ============================================================================

@router.post("/quizzes", status_code=201)
async def admin_create_quiz(
    data: QuizCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(get_current_admin)
):
    quiz = await create_quiz(db, data)
    return {"message": "Quiz created successfully", "quiz": quiz}


@router.patch("/quizzes")
async def admin_update_quiz(
    data: QuizUpdate,
    quiz_id: Optional[str] = Query(None, alias="quizId"),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(get_current_admin)
):
    quiz = await update_quiz(db, _required(quiz_id, "Quiz ID"), data)
    return {"message": "Quiz updated successfully", "quiz": quiz}


@router.delete("/quizzes")
async def admin_delete_quiz(
    quiz_id: Optional[str] = Query(None, alias="quizId"),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(get_current_admin)
):
    await delete_quiz(db, _required(quiz_id, "Quiz ID"))
    return {"message": "Quiz deleted successfully"}


# ============================================================================
# ANALYTICS & MAINTENANCE
# ============================================================================

@router.get("/analytics")
async def admin_analytics(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(get_current_admin)
):
    return await get_dashboard_stats(db)


@router.post("/maintenance/reconcile")
async def admin_reconcile(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(get_current_admin)
):
    """Finish interrupted course deletions and prune orphaned progress and quizzes"""
    resumed = await resume_pending_deletions(db)
    pruned = await prune_orphaned_progress(db)
    quizzes_pruned = await prune_orphaned_quizzes(db)
    return {"deletions_resumed": resumed, "orphans_pruned": pruned, "quizzes_pruned": quizzes_pruned}
