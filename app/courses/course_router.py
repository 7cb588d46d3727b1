"""
Learner-facing catalog: courses, modules, quizzes and quiz submission
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.auth_utils import UserContext, get_current_user
from app.core.database import get_db
from app.core.errors import NotFoundError, ValidationError
from app.courses.database import get_course, get_module, list_courses, list_modules, list_quizzes
from app.progress.models import QuizSubmission
from app.progress.progress_router import get_tracker
from app.progress.rules import grade_quiz_answers
from app.progress.tracker import ProgressTracker

router = APIRouter(tags=["Courses"])


# ==================== COURSES ====================

@router.get("/courses")
async def get_courses(db: AsyncIOMotorDatabase = Depends(get_db)):
    """All courses, newest first"""
    return {"courses": await list_courses(db)}


@router.get("/courses/modules")
async def get_course_modules(
    course_id: Optional[str] = Query(None, alias="courseId"),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    if not course_id:
        raise ValidationError("courseId is required")
    return {"modules": await list_modules(db, course_id)}


@router.get("/courses/{course_id}")
async def get_course_detail(course_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    course = await get_course(db, course_id)
    if not course:
        raise NotFoundError("Course not found")
    return {"course": course}


# ==================== MODULES & QUIZZES ====================

@router.get("/modules/quizzes")
async def get_module_quizzes(
    module_id: Optional[str] = Query(None, alias="moduleId"),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    if not module_id:
        raise ValidationError("moduleId is required")
    return {"quizzes": await list_quizzes(db, module_id)}


@router.get("/modules/{module_id}")
async def get_module_detail(module_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    module = await get_module(db, module_id)
    if not module:
        raise NotFoundError("Module not found")
    return {"module": module}


@router.post("/modules/{module_id}/quizzes/submit")
async def submit_module_quiz(
    module_id: str,
    submission: QuizSubmission,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: UserContext = Depends(get_current_user),
    tracker: ProgressTracker = Depends(get_tracker)
):
    """
    Grade a module's quizzes on the server and record the outcome.
    Module completion needs every answer correct.
    """
    module = await get_module(db, module_id)
    if not module:
        raise NotFoundError("Module not found")

    quizzes = await list_quizzes(db, module_id)
    if not quizzes:
        raise ValidationError("Module has no quizzes")

    score = grade_quiz_answers(quizzes, submission.answers)
    result = await tracker.record_module_quiz_result(
        user.user_id,
        module["course_id"],
        module_id,
        score["points_earned"],
        score["all_correct"]
    )

    return {
        "message": "Quiz submitted",
        "score": score,
        "progress": result.progress,
        "course_completed": result.course_completed,
        "already_completed": result.already_completed
    }
